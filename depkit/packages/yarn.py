"""
Yarn (classic) dependency manager integration for DepKit.

Yarn is selected when the workspace contains a yarn.lock.
"""

from pathlib import Path
from typing import List

from depkit.packages.base import DependencyManager


class YarnManager(DependencyManager):
    """Yarn dependency manager."""

    lockfile_name = "yarn.lock"

    def get_name(self) -> str:
        return "yarn"

    def detect(self, workspace: Path) -> bool:
        return (Path(workspace) / self.lockfile_name).exists()

    def install_command(self, workspace: Path) -> List[str]:
        return [
            self._binary(),
            "install",
            "--non-interactive",
            self._lockfile_flag(workspace),
        ]

    def rebuild_command(self, workspace: Path) -> List[str]:
        return [
            self._binary(),
            "install",
            "--non-interactive",
            "--check-files",
            self._lockfile_flag(workspace),
        ]

    def _lockfile_flag(self, workspace: Path) -> str:
        # Never write a yarn.lock the source tree does not have
        if self.lockfile(workspace) is None:
            return "--pure-lockfile"
        return "--frozen-lockfile"

    def validate_command(self, workspace: Path) -> List[str]:
        return [self._binary(), "check", "--verify-tree"]
