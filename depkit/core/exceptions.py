"""
Centralized exception hierarchy for DepKit.

This module defines all custom exceptions used across the codebase
and separates fatal build errors from the recoverable cache errors.
"""


# ============================================================================
# Base Exceptions
# ============================================================================


class DepKitError(Exception):
    """Base exception for all DepKit errors."""

    pass


class ConfigError(DepKitError):
    """Configuration parsing or validation error."""

    pass


# ============================================================================
# Manifest Exceptions
# ============================================================================


class ManifestError(DepKitError):
    """Raised when the dependency manifest is malformed."""

    pass


class MissingManifestError(ManifestError):
    """Raised when the dependency manifest does not exist."""

    def __init__(self, path):
        self.path = path
        super().__init__(f"Manifest not found: {path}")


# ============================================================================
# Runtime Exceptions
# ============================================================================


class RuntimeProvisionError(DepKitError):
    """Raised when the language runtime or package-manager binary is unusable."""

    pass


# ============================================================================
# Cache Exceptions
# ============================================================================


class CacheError(DepKitError):
    """Base exception for cache store errors."""

    pass


class CacheReadError(CacheError):
    """Corrupt or unreadable cache entry. Always recovered locally."""

    pass


class CacheWriteError(CacheError):
    """Failed to persist cache entries or the signature."""

    pass


# ============================================================================
# Package Manager Exceptions
# ============================================================================


class PackageManagerError(DepKitError):
    """Base exception for package manager errors."""

    pass


class PackageManagerNotFoundError(PackageManagerError):
    """Package manager not found or not installed."""

    pass


class InstallError(PackageManagerError):
    """Dependency manager exited with a non-zero status."""

    def __init__(self, message: str, command=None, returncode=None):
        self.command = command
        self.returncode = returncode
        super().__init__(message)


# ============================================================================
# Post-stage Exceptions
# ============================================================================


class PostStageError(DepKitError):
    """Raised when an optional post-stage fails."""

    def __init__(self, stage_name: str, message: str):
        self.stage_name = stage_name
        super().__init__(f"Post-stage '{stage_name}' failed: {message}")
