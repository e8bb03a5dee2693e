"""
Core functionality for DepKit.

This package contains the foundational modules that other components depend on.
"""

from .exceptions import (
    DepKitError,
    ConfigError,
    ManifestError,
    MissingManifestError,
    RuntimeProvisionError,
    CacheError,
    CacheReadError,
    CacheWriteError,
    PackageManagerError,
    PackageManagerNotFoundError,
    InstallError,
    PostStageError,
)

__all__ = [
    "DepKitError",
    "ConfigError",
    "ManifestError",
    "MissingManifestError",
    "RuntimeProvisionError",
    "CacheError",
    "CacheReadError",
    "CacheWriteError",
    "PackageManagerError",
    "PackageManagerNotFoundError",
    "InstallError",
    "PostStageError",
]
