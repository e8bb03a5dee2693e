"""
Build pipeline: strategy selection, installation and post-stages.
"""

from depkit.pipeline.build import BuildContext, BuildPipeline, BuildReport
from depkit.pipeline.installer import Installer
from depkit.pipeline.poststage import CommandPostStage, PostStage
from depkit.pipeline.strategy import InstallationPlan, WorkspaceState, select_plan

__all__ = [
    "BuildContext",
    "BuildPipeline",
    "BuildReport",
    "Installer",
    "CommandPostStage",
    "PostStage",
    "InstallationPlan",
    "WorkspaceState",
    "select_plan",
]
