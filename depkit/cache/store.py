"""
Cache store for DepKit.

The cache store mirrors a configurable set of workspace directories into a
persistent cache root and restores them on the next build when the stored
signature matches the current dependency fingerprint.

Cache root layout:
    <cache_root>/
        signature.json   : Fingerprint + cache format version of the last save
        entries.json     : Per-entry file digests used to verify restores
        entries/         : One path-mirrored subtree per cached directory

Example:
    >>> from pathlib import Path
    >>> from depkit.cache.store import CacheStore, CacheStatus
    >>>
    >>> store = CacheStore(Path('/cache'))
    >>> status = store.status(fingerprint)
    >>> if status is CacheStatus.VALID:
    ...     report = store.restore(workspace, ['node_modules'])
    >>> store.save(workspace, ['node_modules'], fingerprint)
"""

import json
import logging
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Dict, Iterable, List, Optional, Sequence

from depkit.config.manifest import Manifest
from depkit.core.exceptions import CacheReadError, CacheWriteError
from depkit.core.filesystem import (
    FilesystemError,
    atomic_write,
    hash_tree,
    recursive_copy,
    safe_rmtree,
)
from depkit.core.signature import (
    CACHE_FORMAT_VERSION,
    SIGNATURE_FILENAME,
    Signature,
    SignatureTracker,
)

logger = logging.getLogger(__name__)

ENTRIES_DIRNAME = "entries"
INDEX_FILENAME = "entries.json"

DEFAULT_CACHE_DIRECTORIES = ("node_modules",)


class CacheStatus(Enum):
    """Validity of the cache root for the current build."""

    VALID = "valid"
    INVALID_NO_SIGNATURE = "invalid-no-signature"
    INVALID_VERSION_MISMATCH = "invalid-version-mismatch"
    INVALID_FINGERPRINT_MISMATCH = "invalid-fingerprint-mismatch"
    DISABLED = "disabled"

    @property
    def is_valid(self) -> bool:
        return self is CacheStatus.VALID

    def describe(self) -> str:
        """Human-readable reason for log output."""
        return _STATUS_DESCRIPTIONS[self]


_STATUS_DESCRIPTIONS = {
    CacheStatus.VALID: "valid",
    CacheStatus.INVALID_NO_SIGNATURE: "no previous cache signature",
    CacheStatus.INVALID_VERSION_MISMATCH: "cache format version changed",
    CacheStatus.INVALID_FINGERPRINT_MISMATCH: "dependencies changed",
    CacheStatus.DISABLED: "disabled by configuration",
}


@dataclass
class RestoreReport:
    """Outcome of a restore: which directories were placed and which were not."""

    restored: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)


def classify(
    stored: Optional[Signature],
    current: str,
    cache_format_version: int = CACHE_FORMAT_VERSION,
    enabled: bool = True,
) -> CacheStatus:
    """
    Classify cache validity.

    The result is VALID if and only if a signature exists, its format
    version matches, and its fingerprint equals the current one.

    Args:
        stored: Signature loaded from the cache root (None if absent)
        current: Fingerprint of the current build
        cache_format_version: Format version this code writes
        enabled: False when caching is switched off

    Returns:
        Cache status
    """
    if not enabled:
        return CacheStatus.DISABLED
    if stored is None:
        return CacheStatus.INVALID_NO_SIGNATURE
    if stored.cache_format_version != cache_format_version:
        return CacheStatus.INVALID_VERSION_MISMATCH
    if stored.fingerprint != current:
        return CacheStatus.INVALID_FINGERPRINT_MISMATCH
    return CacheStatus.VALID


def resolve_cache_directories(
    manifest: Manifest, default: Sequence[str] = DEFAULT_CACHE_DIRECTORIES
) -> List[str]:
    """
    Resolve which directories participate in caching.

    The manifest's explicit list is used verbatim when present, otherwise the
    default list. Paths that are absolute or escape the workspace are dropped.

    Args:
        manifest: Parsed manifest
        default: Directories used when the manifest declares none

    Returns:
        Normalized relative POSIX paths, in declaration order
    """
    declared = manifest.cache_directories or tuple(default)

    resolved: List[str] = []
    for raw in declared:
        normalized = _normalize_directory(raw)
        if normalized is None:
            logger.warning(f"Ignoring cache directory outside the workspace: {raw!r}")
            continue
        if normalized not in resolved:
            resolved.append(normalized)
    return resolved


def _normalize_directory(raw: str) -> Optional[str]:
    path = PurePosixPath(raw.strip().replace("\\", "/"))
    if path.is_absolute() or ".." in path.parts:
        return None
    normalized = path.as_posix()
    if normalized in (".", ""):
        return None
    return normalized


# ============================================================================
# Entry index
# ============================================================================


def _load_index(cache_root: Path) -> Dict[str, Dict[str, str]]:
    """Load per-entry digests. A missing or corrupt index reads as empty."""
    index_file = cache_root / INDEX_FILENAME
    if not index_file.exists():
        return {}

    try:
        with open(index_file, "r", encoding="utf-8") as f:
            data = json.load(f)
        entries = data["entries"]
        if not isinstance(entries, dict):
            raise TypeError("entries must be an object")
        return {name: record["files"] for name, record in entries.items()}
    except (OSError, ValueError, KeyError, TypeError) as e:
        logger.warning(f"Ignoring corrupt cache index {index_file}: {e}")
        return {}


def _write_index(cache_root: Path, records: Dict[str, Dict[str, str]]) -> None:
    content = {
        "version": CACHE_FORMAT_VERSION,
        "entries": {name: {"files": files} for name, files in records.items()},
    }
    atomic_write(cache_root / INDEX_FILENAME, json.dumps(content, indent=2))


# ============================================================================
# Restore / clear / save
# ============================================================================


def restore_directories(
    workspace: Path, cache_root: Path, directories: Iterable[str]
) -> RestoreReport:
    """
    Restore cached directories into a workspace.

    Each directory is restored all-or-nothing: the entry is copied into a
    staging directory next to its destination, verified against the entry
    index, then renamed into place. Missing entries, directories already
    present in the workspace and corrupt entries are skipped.

    Args:
        workspace: Build workspace
        cache_root: Cache root directory
        directories: Relative directory paths to restore

    Returns:
        RestoreReport listing restored and skipped directories
    """
    workspace = Path(workspace)
    cache_root = Path(cache_root)
    entries_root = cache_root / ENTRIES_DIRNAME
    index = _load_index(cache_root)
    report = RestoreReport()

    for directory in directories:
        source = entries_root / directory
        target = workspace / directory

        if not source.is_dir():
            logger.debug(f"- {directory} (not cached - skipping)")
            report.skipped.append(directory)
            continue

        if target.exists() or target.is_symlink():
            logger.info(f"- {directory} (exists - skipping)")
            report.skipped.append(directory)
            continue

        try:
            _restore_one(source, target, index.get(directory))
        except CacheReadError as e:
            logger.warning(f"- {directory} (unusable cache entry - skipping): {e}")
            report.skipped.append(directory)
            continue

        logger.info(f"- {directory}")
        report.restored.append(directory)

    return report


def _restore_one(
    source: Path, target: Path, expected: Optional[Dict[str, str]]
) -> None:
    if expected is None:
        raise CacheReadError(f"no index record for {source}")

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        staging = Path(
            tempfile.mkdtemp(dir=target.parent, prefix=f".{target.name}.restore-")
        )
    except OSError as e:
        raise CacheReadError(f"cannot stage restore of {source}: {e}") from e

    try:
        recursive_copy(source, staging)
        if hash_tree(staging) != expected:
            raise CacheReadError(f"contents of {source} do not match the cache index")
        staging.rename(target)
    except (OSError, FilesystemError) as e:
        raise CacheReadError(f"failed to restore {source}: {e}") from e
    finally:
        if staging.exists():
            try:
                safe_rmtree(staging)
            except FilesystemError as e:
                logger.warning(f"Could not remove staging directory {staging}: {e}")


def clear(cache_root: Path) -> None:
    """
    Remove every entry from a cache root.

    The signature is removed first so an interrupted clear is read as
    INVALID_NO_SIGNATURE by the next build.

    Raises:
        CacheWriteError: If the cache root cannot be cleared
    """
    cache_root = Path(cache_root)
    if not cache_root.exists():
        return

    try:
        (cache_root / SIGNATURE_FILENAME).unlink(missing_ok=True)
        (cache_root / INDEX_FILENAME).unlink(missing_ok=True)
        safe_rmtree(cache_root / ENTRIES_DIRNAME, require_prefix=cache_root)
        for leftover in cache_root.glob(".*.tmp"):
            leftover.unlink(missing_ok=True)
    except (OSError, FilesystemError, ValueError) as e:
        raise CacheWriteError(f"Failed to clear cache root {cache_root}: {e}") from e

    logger.debug(f"Cleared cache root {cache_root}")


def save_directories(
    workspace: Path, cache_root: Path, directories: Iterable[str]
) -> List[str]:
    """
    Copy workspace directories into the cache root.

    Directories absent from the workspace are skipped.

    Args:
        workspace: Build workspace
        cache_root: Cache root directory
        directories: Relative directory paths to save

    Returns:
        Directories that were saved

    Raises:
        CacheWriteError: If copying or writing the index fails
    """
    workspace = Path(workspace)
    cache_root = Path(cache_root)
    entries_root = cache_root / ENTRIES_DIRNAME
    records = _load_index(cache_root)
    saved: List[str] = []

    for directory in directories:
        source = workspace / directory
        if not source.is_dir():
            logger.info(f"- {directory} (nothing to cache)")
            continue

        destination = entries_root / directory
        try:
            safe_rmtree(destination, require_prefix=entries_root)
            recursive_copy(source, destination)
            records[directory] = hash_tree(destination)
        except (OSError, FilesystemError, ValueError) as e:
            raise CacheWriteError(f"Failed to cache {directory}: {e}") from e

        logger.info(f"- {directory}")
        saved.append(directory)

    try:
        _write_index(cache_root, records)
    except OSError as e:
        raise CacheWriteError(f"Failed to write cache index: {e}") from e

    return saved


class CacheStore:
    """
    Cache operations bound to one cache root.

    Attributes:
        cache_root: Cache root directory
        enabled: Whether caching is enabled for this build
        tracker: Signature tracker for the same root
    """

    def __init__(self, cache_root: Path, enabled: bool = True):
        self.cache_root = Path(cache_root)
        self.enabled = enabled
        self.tracker = SignatureTracker(self.cache_root)

    def status(self, fingerprint: str) -> CacheStatus:
        """Classify the cache root against the current fingerprint."""
        stored = self.tracker.load() if self.enabled else None
        return classify(stored, fingerprint, CACHE_FORMAT_VERSION, self.enabled)

    def restore(self, workspace: Path, directories: Iterable[str]) -> RestoreReport:
        return restore_directories(workspace, self.cache_root, directories)

    def clear(self) -> None:
        clear(self.cache_root)

    def save(
        self, workspace: Path, directories: Iterable[str], fingerprint: str
    ) -> List[str]:
        """
        Replace the cache contents with the workspace's directories.

        Clears the cache root, saves the directories, and writes the
        signature last.

        Raises:
            CacheWriteError: If any part of the save fails
        """
        self.clear()
        saved = save_directories(workspace, self.cache_root, directories)
        try:
            self.tracker.save(fingerprint)
        except OSError as e:
            raise CacheWriteError(f"Failed to write cache signature: {e}") from e
        return saved

    def list_entries(self) -> List[str]:
        """List directories recorded in the cache index."""
        return list(_load_index(self.cache_root))
