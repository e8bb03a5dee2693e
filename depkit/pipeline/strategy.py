"""
Installation strategy selection.

One decision per build: the only structurally distinct case is whether the
dependency-output directory was already populated before the pipeline ran.
Cache validity only changes how much restored state the dependency manager
starts from, not which strategy runs.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from depkit.cache.store import CacheStatus

logger = logging.getLogger(__name__)

DEPENDENCY_OUTPUT_DIR = "node_modules"


class InstallationPlan(Enum):
    """Installation path executed by the Installer."""

    CLEAN_INSTALL = "clean-install"
    REBUILD = "rebuild"
    PASSTHROUGH_VALIDATE = "passthrough-validate"


@dataclass(frozen=True)
class WorkspaceState:
    """Workspace facts observed before any install step runs."""

    has_preexisting_modules: bool

    @classmethod
    def detect(
        cls, workspace: Path, output_dir: str = DEPENDENCY_OUTPUT_DIR
    ) -> "WorkspaceState":
        return cls(has_preexisting_modules=(Path(workspace) / output_dir).is_dir())


# Configuration values accepted for install.strategy
STRATEGY_OVERRIDES = {
    "auto": None,
    "clean": InstallationPlan.CLEAN_INSTALL,
    "rebuild": InstallationPlan.REBUILD,
}


def select_plan(
    status: CacheStatus,
    state: WorkspaceState,
    override: Optional[InstallationPlan] = None,
) -> InstallationPlan:
    """
    Pick the installation plan for this build.

    Args:
        status: Cache status (restore, if any, already happened)
        state: Workspace state captured before restore
        override: Plan forced by configuration

    Returns:
        Installation plan
    """
    if override is not None:
        logger.info(f"Installation strategy forced by configuration: {override.value}")
        return override

    if state.has_preexisting_modules:
        logger.info(
            f"Prebuild detected ({DEPENDENCY_OUTPUT_DIR} already exists); "
            f"validating in place"
        )
        return InstallationPlan.PASSTHROUGH_VALIDATE

    logger.debug(f"Clean install (cache {status.value})")
    return InstallationPlan.CLEAN_INSTALL
