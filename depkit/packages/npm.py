"""
npm dependency manager integration for DepKit.

Example:
    from pathlib import Path
    from depkit.packages.npm import NpmManager

    npm = NpmManager(executable=Path('/opt/node/bin/npm'))
    if npm.detect(workspace):
        npm.install(workspace)
"""

from pathlib import Path
from typing import List, Optional

from depkit.packages.base import DependencyManager

NPM_LOCKFILES = ("npm-shrinkwrap.json", "package-lock.json")


class NpmManager(DependencyManager):
    """
    npm dependency manager.

    npm is the fallback manager: it is used for every workspace that has a
    package.json and no yarn.lock.
    """

    def get_name(self) -> str:
        return "npm"

    def detect(self, workspace: Path) -> bool:
        return (Path(workspace) / "package.json").exists()

    def lockfile(self, workspace: Path) -> Optional[Path]:
        for name in NPM_LOCKFILES:
            candidate = Path(workspace) / name
            if candidate.is_file():
                return candidate
        return None

    def install_command(self, workspace: Path) -> List[str]:
        # Plain install reconciles a restored node_modules in place
        cmd = [self._binary(), "install", "--no-audit", "--no-fund"]
        if self.lockfile(workspace) is None:
            # The source tree has no lockfile; do not create one
            cmd.append("--no-package-lock")
        return cmd

    def rebuild_command(self, workspace: Path) -> List[str]:
        return [self._binary(), "rebuild"]

    def validate_command(self, workspace: Path) -> List[str]:
        return [self._binary(), "ls", "--depth=0"]
