"""
Installer: executes an InstallationPlan with a dependency manager.

Every path is fail-fast. A non-zero exit from the dependency manager
propagates as InstallError; nothing is retried here.
"""

import logging
from pathlib import Path

from depkit.packages.base import DependencyManager
from depkit.pipeline.strategy import InstallationPlan

logger = logging.getLogger(__name__)


class Installer:
    """
    Runs the chosen installation path.

    Attributes:
        manager: Dependency manager used for every command
    """

    def __init__(self, manager: DependencyManager):
        self.manager = manager

    def run(self, plan: InstallationPlan, workspace: Path) -> None:
        """
        Execute a plan against a workspace.

        Raises:
            InstallError: If the dependency manager fails
            ValueError: If the plan is unknown
        """
        handlers = {
            InstallationPlan.CLEAN_INSTALL: self.run_clean_install,
            InstallationPlan.REBUILD: self.run_rebuild,
            InstallationPlan.PASSTHROUGH_VALIDATE: self.run_passthrough_validate,
        }
        handler = handlers.get(plan)
        if handler is None:
            raise ValueError(f"Unknown installation plan: {plan}")

        logger.info(f"Installing dependencies ({plan.value}, {self.manager.get_name()})")
        handler(Path(workspace))

    def run_clean_install(self, workspace: Path) -> None:
        self.manager.install(workspace)

    def run_rebuild(self, workspace: Path) -> None:
        self.manager.rebuild(workspace)

    def run_passthrough_validate(self, workspace: Path) -> None:
        """Rebuild a prebuilt tree in place, then check it against the manifest."""
        self.manager.rebuild(workspace)
        self.manager.validate(workspace)
