"""
Dependency-set fingerprinting and signature persistence for DepKit.

A fingerprint identifies the exact dependency set of a build: the canonical
manifest, the resolved lockfile (if any) and the runtime versions the
packages were installed with. The last successful build's fingerprint is
stored in the cache root as a signature and compared on the next build to
decide whether cached directories can be reused.

Example:
    >>> from pathlib import Path
    >>> from depkit.core.signature import SignatureTracker, compute_fingerprint
    >>>
    >>> tracker = SignatureTracker(Path('/cache'))
    >>> fingerprint = compute_fingerprint(manifest, lockfile=b'...')
    >>> stored = tracker.load()
    >>> if stored is None or stored.fingerprint != fingerprint:
    ...     print("Dependency set changed")
    >>> tracker.save(fingerprint)
"""

import hashlib
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Mapping, Optional

from depkit.config.manifest import Manifest
from depkit.core.filesystem import atomic_write

logger = logging.getLogger(__name__)

SIGNATURE_FILENAME = "signature.json"

# Bump when the cache root layout changes
CACHE_FORMAT_VERSION = 1

# Resolved lockfiles in priority order
LOCKFILE_NAMES = ("npm-shrinkwrap.json", "package-lock.json", "yarn.lock")


@dataclass(frozen=True)
class Signature:
    """
    Stored signature of the last saved cache.

    Attributes:
        fingerprint: Fingerprint active when the cache was saved
        cache_format_version: Cache root layout version used by the writer
        saved_at: ISO 8601 timestamp of the save
    """

    fingerprint: str
    cache_format_version: int
    saved_at: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "fingerprint": self.fingerprint,
            "cache_format_version": self.cache_format_version,
            "saved_at": self.saved_at,
        }


def compute_fingerprint(
    manifest: Manifest,
    lockfile: Optional[bytes] = None,
    runtime_versions: Optional[Mapping[str, str]] = None,
) -> str:
    """
    Compute the fingerprint of a dependency set.

    Pure function: identical inputs always give identical output.

    Args:
        manifest: Parsed manifest
        lockfile: Raw bytes of the resolved lockfile, if any
        runtime_versions: Resolved runtime versions (e.g. {'node': '18.17.0'})

    Returns:
        Fingerprint string with 'sha256:' prefix
    """
    hasher = hashlib.sha256()

    # Length-prefixed sections so content cannot shift between them
    for label, payload in (
        (b"manifest", manifest.canonical_bytes()),
        (b"lockfile", lockfile if lockfile is not None else b""),
        (
            b"runtime",
            json.dumps(
                dict(runtime_versions or {}), sort_keys=True, separators=(",", ":")
            ).encode("utf-8"),
        ),
    ):
        hasher.update(label)
        hasher.update(len(payload).to_bytes(8, "big"))
        hasher.update(payload)

    return f"sha256:{hasher.hexdigest()}"


def read_lockfile(workspace: Path) -> Optional[bytes]:
    """
    Read the resolved lockfile from a workspace.

    Returns:
        Lockfile bytes, or None if the workspace has no lockfile
    """
    for name in LOCKFILE_NAMES:
        candidate = Path(workspace) / name
        if candidate.is_file():
            logger.debug(f"Using lockfile {candidate}")
            return candidate.read_bytes()
    return None


def load_stored_signature(cache_root: Path) -> Optional[Signature]:
    """
    Load the last-saved signature from a cache root.

    A missing, unreadable or corrupt signature file is treated as absent.

    Args:
        cache_root: Cache root directory

    Returns:
        Stored signature, or None
    """
    signature_file = Path(cache_root) / SIGNATURE_FILENAME

    if not signature_file.exists():
        logger.debug(f"No signature found at {signature_file}")
        return None

    try:
        with open(signature_file, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning(f"Ignoring unreadable cache signature {signature_file}: {e}")
        return None

    if not isinstance(data, dict):
        logger.warning(f"Ignoring malformed cache signature {signature_file}")
        return None

    fingerprint = data.get("fingerprint")
    version = data.get("cache_format_version")
    if (
        not isinstance(fingerprint, str)
        or not isinstance(version, int)
        or isinstance(version, bool)
    ):
        logger.warning(f"Ignoring incomplete cache signature {signature_file}")
        return None

    saved_at = data.get("saved_at")
    return Signature(
        fingerprint=fingerprint,
        cache_format_version=version,
        saved_at=saved_at if isinstance(saved_at, str) else None,
    )


def save_signature(
    cache_root: Path, fingerprint: str, version: int = CACHE_FORMAT_VERSION
) -> Signature:
    """
    Persist a signature atomically.

    Args:
        cache_root: Cache root directory
        fingerprint: Fingerprint of the saved dependency set
        version: Cache format version

    Returns:
        The signature that was written
    """
    signature = Signature(
        fingerprint=fingerprint,
        cache_format_version=version,
        saved_at=datetime.now(timezone.utc).isoformat(),
    )
    signature_file = Path(cache_root) / SIGNATURE_FILENAME
    atomic_write(signature_file, json.dumps(signature.to_dict(), indent=2))
    logger.debug(f"Saved signature {fingerprint[:19]}... to {signature_file}")
    return signature


class SignatureTracker:
    """
    Signature operations bound to one cache root.

    Attributes:
        cache_root: Cache root directory
    """

    def __init__(self, cache_root: Path):
        self.cache_root = Path(cache_root)

    def load(self) -> Optional[Signature]:
        return load_stored_signature(self.cache_root)

    def save(self, fingerprint: str, version: int = CACHE_FORMAT_VERSION) -> Signature:
        return save_signature(self.cache_root, fingerprint, version)
