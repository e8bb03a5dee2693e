"""
Base dependency manager abstraction for DepKit.

This module provides the abstract base class for the Node.js package
managers (npm, Yarn) the installer drives, and the shared subprocess
runner that turns a non-zero exit status into InstallError.

Classes:
    DependencyManager: Abstract base class for dependency manager implementations

Exceptions:
    PackageManagerError: Base exception for package manager errors
    PackageManagerNotFoundError: Package manager not found
    InstallError: Dependency manager exited non-zero
"""

import logging
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Mapping, Optional

from depkit.core.exceptions import InstallError, PackageManagerNotFoundError

logger = logging.getLogger(__name__)

# Lines of stderr kept in InstallError messages
STDERR_TAIL_LINES = 20


class DependencyManager(ABC):
    """
    Abstract base class for dependency manager implementations.

    Attributes:
        executable: Path to the package manager binary (None until resolved)
        env: Environment passed to every child process

    Abstract Methods:
        get_name(): Package manager name
        detect(): Whether the workspace uses this manager
        install_command(): Command for a full install
        rebuild_command(): Command for rebuilding an existing tree in place
        validate_command(): Command that checks an installed tree
    """

    lockfile_name: Optional[str] = None

    def __init__(
        self,
        executable: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
    ):
        """
        Initialize dependency manager.

        Args:
            executable: Path to the package manager binary; the bare name
                is used when not given
            env: Environment for child processes (inherits nothing implicitly)
        """
        self.executable = Path(executable) if executable else None
        self.env = dict(env) if env is not None else None

    @abstractmethod
    def get_name(self) -> str:
        """
        Get the package manager name.

        Returns:
            Package manager name (e.g., 'npm', 'yarn')
        """
        pass

    @abstractmethod
    def detect(self, workspace: Path) -> bool:
        """Detect if this package manager is used in the workspace."""
        pass

    @abstractmethod
    def install_command(self, workspace: Path) -> List[str]:
        pass

    @abstractmethod
    def rebuild_command(self, workspace: Path) -> List[str]:
        pass

    @abstractmethod
    def validate_command(self, workspace: Path) -> List[str]:
        pass

    def lockfile(self, workspace: Path) -> Optional[Path]:
        """Lockfile this manager resolves against, if present."""
        if self.lockfile_name is None:
            return None
        candidate = Path(workspace) / self.lockfile_name
        return candidate if candidate.is_file() else None

    def install(self, workspace: Path) -> None:
        """
        Install dependencies declared by the manifest.

        Raises:
            InstallError: If the package manager exits non-zero
        """
        self._run(self.install_command(workspace), workspace, "install")

    def rebuild(self, workspace: Path) -> None:
        """
        Rebuild a pre-existing dependency tree in place.

        Raises:
            InstallError: If the package manager exits non-zero
        """
        self._run(self.rebuild_command(workspace), workspace, "rebuild")

    def validate(self, workspace: Path) -> None:
        """
        Check that the installed tree satisfies the manifest.

        Raises:
            InstallError: If the package manager exits non-zero
        """
        self._run(self.validate_command(workspace), workspace, "validate")

    def _binary(self) -> str:
        return str(self.executable) if self.executable else self.get_name()

    def _run(self, cmd: List[str], workspace: Path, action: str) -> None:
        logger.info(f"Running: {' '.join(cmd)}")

        try:
            result = subprocess.run(
                cmd,
                cwd=workspace,
                env=self.env,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError as e:
            raise PackageManagerNotFoundError(
                f"{self.get_name()} executable not found: {cmd[0]}"
            ) from e
        except OSError as e:
            raise InstallError(
                f"Failed to execute {self.get_name()}: {e}\n"
                f"Command: {' '.join(cmd)}",
                command=cmd,
            ) from e

        if result.stdout:
            logger.debug(result.stdout.rstrip())

        if result.returncode != 0:
            stderr_tail = "\n".join(
                (result.stderr or "").rstrip().splitlines()[-STDERR_TAIL_LINES:]
            )
            raise InstallError(
                f"{self.get_name()} {action} failed with exit code {result.returncode}\n"
                f"Command: {' '.join(cmd)}\n"
                f"Error output:\n{stderr_tail}",
                command=cmd,
                returncode=result.returncode,
            )


# =============================================================================
# Dependency Manager Detector
# =============================================================================


class DependencyManagerDetector:
    """
    Pick the dependency manager a workspace uses.

    Managers are checked in registration order; the first whose detect()
    returns True wins. The last registered manager acts as the fallback.

    Example:
        detector = DependencyManagerDetector()
        detector.register(YarnManager())
        detector.register(NpmManager())
        manager = detector.detect_primary(workspace)
    """

    def __init__(self):
        self.managers: List[DependencyManager] = []

    def register(self, manager: DependencyManager) -> None:
        if not isinstance(manager, DependencyManager):
            raise TypeError(
                f"manager must be DependencyManager instance, got {type(manager)}"
            )
        self.managers.append(manager)

    def get(self, name: str) -> DependencyManager:
        """
        Get a registered manager by name.

        Raises:
            PackageManagerNotFoundError: If no manager has that name
        """
        for manager in self.managers:
            if manager.get_name() == name:
                return manager
        available = ", ".join(m.get_name() for m in self.managers)
        raise PackageManagerNotFoundError(
            f"Unknown package manager '{name}'. Available: {available}"
        )

    def detect_primary(self, workspace: Path) -> DependencyManager:
        """
        Detect the primary dependency manager.

        Raises:
            PackageManagerNotFoundError: If no manager is registered
        """
        if not self.managers:
            raise PackageManagerNotFoundError("No dependency managers registered")

        for manager in self.managers:
            if manager.detect(workspace):
                return manager
        return self.managers[-1]
