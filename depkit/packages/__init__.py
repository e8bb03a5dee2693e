"""
Dependency manager integrations for DepKit.

Available Components:
--------------------
- DependencyManager: Abstract base class for dependency manager implementations
- DependencyManagerDetector: Pick the manager a workspace uses
- NpmManager: npm integration
- YarnManager: Yarn (classic) integration

Example Usage:
-------------
    from depkit.packages import create_dependency_manager, detect_dependency_manager

    name = detect_dependency_manager(workspace)       # 'yarn' if yarn.lock exists
    manager = create_dependency_manager(name, runtime.package_manager_path, env)
    manager.install(workspace)
"""

import logging
from pathlib import Path
from typing import Dict, Mapping, Optional, Type

from depkit.core.exceptions import (
    InstallError,
    PackageManagerError,
    PackageManagerNotFoundError,
)
from depkit.packages.base import DependencyManager, DependencyManagerDetector
from depkit.packages.npm import NpmManager
from depkit.packages.yarn import YarnManager

logger = logging.getLogger(__name__)

# Detection order: Yarn needs a yarn.lock, npm is the fallback
MANAGER_CLASSES: Dict[str, Type[DependencyManager]] = {
    "yarn": YarnManager,
    "npm": NpmManager,
}


def detect_dependency_manager(workspace: Path, preference: str = "auto") -> str:
    """
    Decide which dependency manager a workspace uses.

    Args:
        workspace: Build workspace
        preference: 'auto' or an explicit manager name

    Returns:
        Manager name

    Raises:
        PackageManagerNotFoundError: If preference names an unknown manager
    """
    detector = DependencyManagerDetector()
    for manager_cls in MANAGER_CLASSES.values():
        detector.register(manager_cls())

    if preference == "auto":
        manager = detector.detect_primary(workspace)
    else:
        manager = detector.get(preference)

    logger.debug(f"Selected dependency manager: {manager.get_name()}")
    return manager.get_name()


def create_dependency_manager(
    name: str,
    executable: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> DependencyManager:
    """
    Instantiate a dependency manager by name.

    Raises:
        PackageManagerNotFoundError: If the name is unknown
    """
    try:
        manager_cls = MANAGER_CLASSES[name]
    except KeyError:
        raise PackageManagerNotFoundError(
            f"Unknown package manager '{name}'. Available: {', '.join(MANAGER_CLASSES)}"
        )
    return manager_cls(executable, env)


__all__ = [
    "DependencyManager",
    "DependencyManagerDetector",
    "NpmManager",
    "YarnManager",
    "MANAGER_CLASSES",
    "detect_dependency_manager",
    "create_dependency_manager",
    "PackageManagerError",
    "PackageManagerNotFoundError",
    "InstallError",
]
