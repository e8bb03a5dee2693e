"""
Runtime provisioning interface for DepKit.

The pipeline calls a RuntimeInstaller before any cache or install logic.
How the runtime gets onto disk is up to the implementation; the pipeline
only consumes the resulting RuntimeHandle.
"""

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional


@dataclass(frozen=True)
class RuntimeHandle:
    """
    A usable language runtime and package-manager binary.

    Attributes:
        node_path: Path to the node executable
        node_version: Resolved node version (without leading 'v')
        package_manager: Package manager name ('npm' or 'yarn')
        package_manager_path: Path to the package manager executable
        package_manager_version: Resolved package manager version
    """

    node_path: Path
    node_version: str
    package_manager: str
    package_manager_path: Path
    package_manager_version: str

    @property
    def bin_dirs(self) -> list:
        dirs = [self.node_path.parent]
        if self.package_manager_path.parent not in dirs:
            dirs.append(self.package_manager_path.parent)
        return dirs

    def versions(self) -> Dict[str, str]:
        """Versions that affect installed packages, keyed by engine name."""
        return {
            "node": self.node_version,
            self.package_manager: self.package_manager_version,
        }

    def child_env(self, base: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        """
        Environment for package-manager child processes.

        The runtime's bin directories are put in front of PATH.
        """
        env = dict(base or {})
        path_entries = [str(d) for d in self.bin_dirs]
        if env.get("PATH"):
            path_entries.append(env["PATH"])
        env["PATH"] = os.pathsep.join(path_entries)
        return env


class RuntimeInstaller(ABC):
    """Installs or validates the language runtime and its package manager."""

    @abstractmethod
    def ensure(self, engine_constraints: Mapping[str, str]) -> RuntimeHandle:
        """
        Make the runtime available.

        Args:
            engine_constraints: Manifest 'engines' map (e.g. {'node': '18.x'})

        Returns:
            Handle to the usable runtime

        Raises:
            RuntimeProvisionError: If the runtime cannot be provided
        """
        pass
