"""Dependency manifest (package.json) reader for DepKit.

Only the fields the pipeline needs are extracted: engine constraints and
cache directory overrides. Everything else in the document is kept as-is
for fingerprinting.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from depkit.core.exceptions import ManifestError, MissingManifestError

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "package.json"

# Both spellings are accepted, camelCase wins when both are present
CACHE_DIRECTORY_KEYS = ("cacheDirectories", "cache_directories")


@dataclass(frozen=True)
class Manifest:
    """Typed view of a dependency manifest."""

    engine_constraints: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType({})
    )
    cache_directories: Tuple[str, ...] = ()
    document: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    path: Optional[Path] = None

    @property
    def exists(self) -> bool:
        return self.path is not None

    def canonical_bytes(self) -> bytes:
        """Canonical JSON encoding used for fingerprinting."""
        return json.dumps(
            _thaw(self.document), sort_keys=True, separators=(",", ":")
        ).encode("utf-8")


def _thaw(value):
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_thaw(v) for v in value]
    return value


def read_manifest(path: Path) -> Manifest:
    """
    Read a package.json file.

    Args:
        path: Path to the manifest file

    Returns:
        Parsed manifest

    Raises:
        MissingManifestError: If the file does not exist
        ManifestError: If the file is not valid JSON or a field has the wrong type
    """
    path = Path(path)
    if not path.exists():
        raise MissingManifestError(path)

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ManifestError(f"Invalid JSON in {path}: {e}")
    except (OSError, UnicodeDecodeError) as e:
        raise ManifestError(f"Failed to read {path}: {e}")

    if not isinstance(data, dict):
        raise ManifestError(f"{path} must contain a JSON object")

    manifest = Manifest(
        engine_constraints=MappingProxyType(_parse_engines(data)),
        cache_directories=_parse_cache_directories(data),
        document=MappingProxyType(data),
        path=path,
    )
    logger.debug(
        f"Read manifest {path}: engines={dict(manifest.engine_constraints)}, "
        f"cache_directories={list(manifest.cache_directories)}"
    )
    return manifest


def read_manifest_or_default(workspace: Path) -> Manifest:
    """
    Read ``package.json`` from a workspace, tolerating its absence.

    A missing manifest yields an empty Manifest so default engine
    assumptions apply. A malformed one still raises ManifestError.
    """
    try:
        return read_manifest(Path(workspace) / MANIFEST_FILENAME)
    except MissingManifestError as e:
        logger.warning(f"{e}; using default engine assumptions")
        return Manifest()


def _parse_engines(data: dict) -> Dict[str, str]:
    engines = data.get("engines")
    if engines is None:
        return {}
    if not isinstance(engines, dict):
        raise ManifestError("'engines' must be an object mapping engine name to version")

    result = {}
    for name, constraint in engines.items():
        if not isinstance(constraint, str):
            raise ManifestError(f"engines.{name} must be a string, got {constraint!r}")
        result[name] = constraint.strip()
    return result


def _parse_cache_directories(data: dict) -> Tuple[str, ...]:
    for key in CACHE_DIRECTORY_KEYS:
        if key not in data:
            continue
        value = data[key]
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ManifestError(f"'{key}' must be a list of directory paths")
        return tuple(v for v in value if v.strip())
    return ()
