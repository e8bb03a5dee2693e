"""
Configuration and manifest handling for DepKit.
"""

from depkit.config.manifest import (
    MANIFEST_FILENAME,
    Manifest,
    read_manifest,
    read_manifest_or_default,
)
from depkit.config.parser import (
    CONFIG_FILENAME,
    CacheConfig,
    DepKitConfig,
    InstallConfig,
    PostStageConfig,
    RuntimeConfig,
    load_config,
    parse_config,
)

__all__ = [
    "MANIFEST_FILENAME",
    "Manifest",
    "read_manifest",
    "read_manifest_or_default",
    "CONFIG_FILENAME",
    "CacheConfig",
    "DepKitConfig",
    "InstallConfig",
    "PostStageConfig",
    "RuntimeConfig",
    "load_config",
    "parse_config",
]
