"""
Unit tests for filesystem utilities.
"""

import os
import stat
from unittest.mock import patch

import pytest

from depkit.core.filesystem import (
    FilesystemError,
    atomic_write,
    compute_file_hash,
    find_executable,
    hash_tree,
    recursive_copy,
    safe_rmtree,
)


class TestAtomicWrite:
    """Tests for atomic_write."""

    def test_writes_text(self, temp_dir):
        """Test writing string content."""
        target = temp_dir / "out.json"
        atomic_write(target, '{"a": 1}')
        assert target.read_text() == '{"a": 1}'

    def test_writes_bytes(self, temp_dir):
        """Test writing bytes content."""
        target = temp_dir / "out.bin"
        atomic_write(target, b"\x00\x01")
        assert target.read_bytes() == b"\x00\x01"

    def test_creates_parent_directories(self, temp_dir):
        """Test that missing parents are created."""
        target = temp_dir / "a" / "b" / "out.txt"
        atomic_write(target, "x")
        assert target.exists()

    def test_failure_keeps_original_and_removes_temp(self, temp_dir):
        """Test that a failed write leaves the old file untouched."""
        target = temp_dir / "signature.json"
        target.write_text("original")

        with patch("depkit.core.filesystem.os.fsync", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                atomic_write(target, "replacement")

        assert target.read_text() == "original"
        assert [p.name for p in temp_dir.iterdir()] == ["signature.json"]


class TestSafeRmtree:
    """Tests for safe_rmtree."""

    def test_removes_directory(self, temp_dir):
        """Test removing a directory tree."""
        tree = temp_dir / "tree"
        (tree / "sub").mkdir(parents=True)
        (tree / "sub" / "f.txt").write_text("x")

        safe_rmtree(tree)
        assert not tree.exists()

    def test_missing_path_is_noop(self, temp_dir):
        """Test that a missing path is ignored."""
        safe_rmtree(temp_dir / "missing")

    def test_refuses_outside_prefix(self, temp_dir):
        """Test prefix safeguard."""
        outside = temp_dir / "outside"
        outside.mkdir()
        with pytest.raises(ValueError):
            safe_rmtree(outside, require_prefix=temp_dir / "cache")
        assert outside.exists()


class TestRecursiveCopy:
    """Tests for recursive_copy."""

    def test_copies_tree(self, temp_dir):
        """Test files and nested directories are copied."""
        src = temp_dir / "src"
        (src / "a" / "b").mkdir(parents=True)
        (src / "a" / "b" / "file.txt").write_text("content")
        (src / "empty").mkdir()

        recursive_copy(src, temp_dir / "dst")

        assert (temp_dir / "dst" / "a" / "b" / "file.txt").read_text() == "content"
        assert (temp_dir / "dst" / "empty").is_dir()

    @pytest.mark.skipif(os.name == "nt", reason="symlinks need privileges on Windows")
    def test_preserves_symlinks(self, temp_dir):
        """Test relative symlinks are copied as links."""
        src = temp_dir / "src"
        (src / "pkg").mkdir(parents=True)
        (src / "pkg" / "cli.js").write_text("#!/usr/bin/env node")
        (src / ".bin").mkdir()
        os.symlink("../pkg/cli.js", src / ".bin" / "pkg")

        recursive_copy(src, temp_dir / "dst")

        link = temp_dir / "dst" / ".bin" / "pkg"
        assert link.is_symlink()
        assert os.readlink(link) == "../pkg/cli.js"

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
    def test_preserves_directory_modes(self, temp_dir):
        """Test root and nested directory modes are copied."""
        src = temp_dir / "src"
        (src / "bin").mkdir(parents=True)
        (src / "bin" / "tool").write_text("#!/bin/sh\n")
        (src / "bin" / "tool").chmod(0o755)
        (src / "bin").chmod(0o750)
        src.chmod(0o755)

        dst = temp_dir / "dst"
        dst.mkdir(mode=0o700)
        recursive_copy(src, dst)

        assert stat.S_IMODE(dst.stat().st_mode) == 0o755
        assert stat.S_IMODE((dst / "bin").stat().st_mode) == 0o750
        assert stat.S_IMODE((dst / "bin" / "tool").stat().st_mode) == 0o755

    def test_missing_source(self, temp_dir):
        """Test error when source is missing."""
        with pytest.raises(FilesystemError):
            recursive_copy(temp_dir / "missing", temp_dir / "dst")


class TestHashing:
    """Tests for compute_file_hash and hash_tree."""

    def test_file_hash_is_sha256(self, temp_dir):
        """Test known SHA-256 of empty content."""
        empty = temp_dir / "empty"
        empty.write_bytes(b"")
        assert compute_file_hash(empty) == (
            "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
        )

    def test_hash_tree_detects_changes(self, temp_dir):
        """Test tree digest changes when a file changes."""
        tree = temp_dir / "tree"
        (tree / "pkg").mkdir(parents=True)
        (tree / "pkg" / "index.js").write_text("a")
        before = hash_tree(tree)

        (tree / "pkg" / "index.js").write_text("b")
        assert hash_tree(tree) != before

    def test_hash_tree_records_empty_directories(self, temp_dir):
        """Test empty directories are part of the digest."""
        tree = temp_dir / "tree"
        (tree / "empty").mkdir(parents=True)
        assert hash_tree(tree) == {"empty": "dir"}


class TestFindExecutable:
    """Tests for find_executable."""

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
    def test_finds_in_search_paths(self, temp_dir):
        """Test lookup honours search path order."""
        first = temp_dir / "first"
        second = temp_dir / "second"
        for directory in (first, second):
            directory.mkdir()
            exe = directory / "node"
            exe.write_text("#!/bin/sh\n")
            exe.chmod(0o755)

        assert find_executable("node", [first, second]) == first / "node"

    def test_not_found(self, temp_dir):
        """Test None when missing."""
        assert find_executable("node", [temp_dir]) is None
