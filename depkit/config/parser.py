"""YAML configuration parser for DepKit.

This module provides parsing and validation for depkit.yaml configuration files.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import yaml

from depkit.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "depkit.yaml"


@dataclass
class CacheConfig:
    """Cross-build cache configuration."""

    enabled: bool = True
    directory: Optional[str] = None


@dataclass
class InstallConfig:
    """Dependency installation configuration."""

    package_manager: str = "auto"  # 'auto', 'npm', 'yarn'
    strategy: str = "auto"  # 'auto', 'clean', 'rebuild'


@dataclass
class RuntimeConfig:
    """Runtime lookup configuration."""

    bin_dir: Optional[str] = None


@dataclass
class PostStageConfig:
    """A command run after the dependency pipeline."""

    name: str
    command: List[str]
    required: bool = True
    timeout: Optional[int] = None


@dataclass
class DepKitConfig:
    """Complete DepKit configuration."""

    version: int = 1
    cache: CacheConfig = field(default_factory=CacheConfig)
    install: InstallConfig = field(default_factory=InstallConfig)
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    post_stages: List[PostStageConfig] = field(default_factory=list)


def parse_config(config_path: Path) -> DepKitConfig:
    """
    Parse depkit.yaml configuration file.

    Args:
        config_path: Path to depkit.yaml

    Returns:
        Parsed and validated configuration

    Raises:
        ConfigError: If the file is missing or the configuration is invalid
    """
    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax: {e}")

    if data is None:
        return DepKitConfig()

    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a mapping")

    return _parse_and_validate(data)


def load_config(workspace: Path, config_path: Optional[Path] = None) -> DepKitConfig:
    """
    Load configuration for a workspace.

    An explicit path must exist; the default ``depkit.yaml`` in the
    workspace is optional.
    """
    if config_path is not None:
        return parse_config(Path(config_path))

    default_path = Path(workspace) / CONFIG_FILENAME
    if not default_path.exists():
        logger.debug(f"Config file not found (optional): {default_path}")
        return DepKitConfig()

    logger.debug(f"Loading configuration from {default_path}")
    return parse_config(default_path)


def _parse_and_validate(data: dict) -> DepKitConfig:
    """Parse and validate configuration data."""
    version = data.get("version", 1)
    if version != 1:
        raise ConfigError(f"Unsupported version: {version} (expected 1)")

    return DepKitConfig(
        version=version,
        cache=_parse_cache(_section(data, "cache")),
        install=_parse_install(_section(data, "install")),
        runtime=_parse_runtime(_section(data, "runtime")),
        post_stages=_parse_post_stages(data.get("post_stages") or []),
    )


def _section(data: dict, name: str) -> dict:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"'{name}' must be a mapping")
    return section


def _parse_cache(data: dict) -> CacheConfig:
    enabled = data.get("enabled", True)
    if not isinstance(enabled, bool):
        raise ConfigError(f"cache.enabled must be true or false, got {enabled!r}")

    directory = data.get("directory")
    if directory is not None and not isinstance(directory, str):
        raise ConfigError("cache.directory must be a path string")

    return CacheConfig(enabled=enabled, directory=directory)


def _parse_install(data: dict) -> InstallConfig:
    valid_managers = ["auto", "npm", "yarn"]
    manager = data.get("package_manager", "auto")
    if manager not in valid_managers:
        raise ConfigError(
            f"Invalid package manager: {manager} (expected one of {valid_managers})"
        )

    valid_strategies = ["auto", "clean", "rebuild"]
    strategy = data.get("strategy", "auto")
    if strategy not in valid_strategies:
        raise ConfigError(
            f"Invalid install strategy: {strategy} (expected one of {valid_strategies})"
        )

    return InstallConfig(package_manager=manager, strategy=strategy)


def _parse_runtime(data: dict) -> RuntimeConfig:
    bin_dir = data.get("bin_dir")
    if bin_dir is not None and not isinstance(bin_dir, str):
        raise ConfigError("runtime.bin_dir must be a path string")
    return RuntimeConfig(bin_dir=bin_dir)


def _parse_post_stages(data: list) -> List[PostStageConfig]:
    if not isinstance(data, list):
        raise ConfigError("post_stages must be a list")

    stages = []
    names = set()
    for stage_data in data:
        if not isinstance(stage_data, dict):
            raise ConfigError("Each post-stage must be a mapping")
        if "name" not in stage_data or "command" not in stage_data:
            raise ConfigError("Post-stage must specify 'name' and 'command'")

        name = str(stage_data["name"])
        if name in names:
            raise ConfigError(f"Duplicate post-stage name: {name}")
        names.add(name)

        command = stage_data["command"]
        if isinstance(command, str):
            command = command.split()
        if not command or not all(isinstance(arg, str) for arg in command):
            raise ConfigError(f"post_stages.{name}.command must be a non-empty list")

        timeout = stage_data.get("timeout")
        if timeout is not None and (not isinstance(timeout, int) or timeout <= 0):
            raise ConfigError(f"post_stages.{name}.timeout must be a positive integer")

        stages.append(
            PostStageConfig(
                name=name,
                command=command,
                required=bool(stage_data.get("required", True)),
                timeout=timeout,
            )
        )

    return stages
