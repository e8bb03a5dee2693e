"""
File system utilities for DepKit.

This module provides the file operations the cache store and signature
tracker are built on:
- Atomic writes (temp file + rename)
- Safe directory removal and recursive copy
- Executable lookup on explicit search paths
- File and directory tree hashing

All operations take explicit paths; nothing here reads the current
working directory.
"""

import hashlib
import os
import shutil
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Union

IS_WINDOWS = os.name == "nt"


class FilesystemError(Exception):
    """Base exception for filesystem operations."""

    pass


# ============================================================================
# Path Utilities
# ============================================================================


def is_relative_to(path: Path, parent: Path) -> bool:
    """
    Check if path is relative to (under) parent directory.

    Args:
        path: Path to check
        parent: Parent directory

    Returns:
        True if path is under parent directory
    """
    try:
        path.relative_to(parent)
        return True
    except ValueError:
        return False


def find_executable(name: str, search_paths: List[Path]) -> Optional[Path]:
    """
    Find an executable in the provided search paths.

    Args:
        name: Executable name (e.g., 'node', 'npm')
        search_paths: Directories to search, in priority order

    Returns:
        Path to executable if found, None otherwise

    Example:
        >>> find_executable('node', [Path('/usr/bin')])
        PosixPath('/usr/bin/node')
    """
    extensions = [""] if not IS_WINDOWS else ["", ".exe", ".cmd", ".bat"]

    for directory in search_paths:
        for ext in extensions:
            exe_path = Path(directory) / f"{name}{ext}"
            if exe_path.is_file() and os.access(exe_path, os.X_OK):
                return exe_path

    return None


# ============================================================================
# Safe File Operations
# ============================================================================


def atomic_write(
    file_path: Union[str, Path], content: Union[str, bytes], encoding: str = "utf-8"
) -> None:
    """
    Write file atomically using temp file + rename.

    The file is never observed in a partially-written state. If the write
    fails, the original file (if any) remains unchanged.

    Args:
        file_path: Path to write to
        content: Content to write (string or bytes)
        encoding: Text encoding (used only for string content)

    Example:
        >>> atomic_write('signature.json', '{"fingerprint": "sha256:..."}')
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    # Temp file in same directory keeps the rename on one filesystem
    temp_fd, temp_path_str = tempfile.mkstemp(
        dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp"
    )
    temp_path = Path(temp_path_str)

    try:
        if isinstance(content, str):
            with open(temp_fd, "w", encoding=encoding) as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
        else:
            with open(temp_fd, "wb") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())

        temp_path.replace(file_path)

    except Exception:
        try:
            temp_path.unlink(missing_ok=True)
        except OSError:
            pass
        raise


def safe_rmtree(
    path: Union[str, Path], require_prefix: Optional[Union[str, Path]] = None
) -> None:
    """
    Safely remove a directory tree with safeguards.

    Args:
        path: Directory to remove
        require_prefix: If specified, path must be under this directory

    Raises:
        ValueError: If path is not under require_prefix
        FilesystemError: If deletion fails

    Example:
        >>> safe_rmtree('/cache/entries/node_modules', require_prefix='/cache')
    """
    # Resolve the parent only so a symlink itself is removed, not its target
    path = Path(path)
    path = path.parent.resolve() / path.name

    if require_prefix is not None:
        require_prefix = Path(require_prefix).resolve()
        if not is_relative_to(path, require_prefix):
            raise ValueError(
                f"Refusing to delete '{path}': not under required prefix '{require_prefix}'"
            )

    if not path.exists() and not path.is_symlink():
        return

    if path.is_symlink() or not path.is_dir():
        try:
            path.unlink()
        except OSError as e:
            raise FilesystemError(f"Failed to remove '{path}': {e}")
        return

    try:
        if IS_WINDOWS:

            def handle_remove_readonly(func, path, exc):
                """Error handler for Windows read-only files."""
                if not os.access(path, os.W_OK):
                    os.chmod(path, 0o777)
                    func(path)
                else:
                    raise

            shutil.rmtree(path, onerror=handle_remove_readonly)
        else:
            shutil.rmtree(path)

    except Exception as e:
        raise FilesystemError(f"Failed to remove directory '{path}': {e}")


def recursive_copy(source: Union[str, Path], destination: Union[str, Path]) -> None:
    """
    Recursively copy a directory tree, preserving symlinks.

    node_modules trees rely on relative symlinks (e.g. `.bin/` entries), so
    links are copied as links rather than followed. File and directory
    permission bits are copied along with the contents, including those of
    the destination root.

    Args:
        source: Source directory
        destination: Destination directory (created if needed)

    Raises:
        FilesystemError: If source is missing or not a directory
    """
    source = Path(source)
    destination = Path(destination)

    if not source.exists():
        raise FilesystemError(f"Source does not exist: {source}")

    if not source.is_dir():
        raise FilesystemError(f"Source is not a directory: {source}")

    destination.mkdir(parents=True, exist_ok=True)
    directories = [(source, destination)]

    for item in sorted(source.rglob("*")):
        rel_path = item.relative_to(source)
        dest_item = destination / rel_path

        if item.is_symlink():
            dest_item.parent.mkdir(parents=True, exist_ok=True)
            if dest_item.exists() or dest_item.is_symlink():
                dest_item.unlink()
            os.symlink(os.readlink(item), dest_item)
        elif item.is_dir():
            dest_item.mkdir(parents=True, exist_ok=True)
            directories.append((item, dest_item))
        else:
            dest_item.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(item, dest_item)

    # Directory modes go on last so read-only directories are filled first
    for src_dir, dest_dir in reversed(directories):
        shutil.copymode(src_dir, dest_dir)


# ============================================================================
# Hashing
# ============================================================================


def compute_file_hash(
    file_path: Union[str, Path], algorithm: str = "sha256", chunk_size: int = 8192
) -> str:
    """
    Compute hash of a file.

    Memory-efficient implementation that reads file in chunks.

    Args:
        file_path: Path to file
        algorithm: Hash algorithm ('sha256', 'sha1', 'md5')
        chunk_size: Number of bytes to read at once

    Returns:
        Hex digest of the hash
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FilesystemError(f"File not found: {file_path}")

    try:
        hasher = hashlib.new(algorithm)
    except ValueError:
        raise ValueError(f"Unsupported hash algorithm: {algorithm}")

    with open(file_path, "rb") as f:
        while chunk := f.read(chunk_size):
            hasher.update(chunk)

    return hasher.hexdigest()


def hash_tree(root: Union[str, Path]) -> Dict[str, str]:
    """
    Hash every entry of a directory tree.

    Regular files map to their SHA-256, symlinks to ``link:<target>`` and
    empty directories to ``dir``. Keys are POSIX paths relative to root.

    Args:
        root: Directory to walk

    Returns:
        Mapping of relative path to digest
    """
    root = Path(root)
    digests: Dict[str, str] = {}

    for item in sorted(root.rglob("*")):
        rel = item.relative_to(root).as_posix()
        if item.is_symlink():
            digests[rel] = f"link:{os.readlink(item)}"
        elif item.is_dir():
            if not any(item.iterdir()):
                digests[rel] = "dir"
        else:
            digests[rel] = compute_file_hash(item)

    return digests


__all__ = [
    "FilesystemError",
    "is_relative_to",
    "find_executable",
    "atomic_write",
    "safe_rmtree",
    "recursive_copy",
    "compute_file_hash",
    "hash_tree",
]
