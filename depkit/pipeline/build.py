"""
The dependency-provisioning build pipeline.

Stages run strictly in sequence, each reading the filesystem state the
previous one left behind:

    manifest -> runtime -> cache restore -> install -> cache save -> post-stages

Fatal errors (manifest, runtime, install) stop the pipeline and are recorded
in the returned BuildReport. Cache save failures only produce warnings, and
post-stage failures are reported separately from install failures.

Example:
    >>> from pathlib import Path
    >>> from depkit.pipeline.build import BuildContext, BuildPipeline
    >>>
    >>> context = BuildContext(workspace=Path('/app'), cache_dir=Path('/cache'))
    >>> report = BuildPipeline(context).run()
    >>> report.exit_code
    0
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Mapping, Optional

from depkit.cache.store import (
    CacheStatus,
    CacheStore,
    RestoreReport,
    resolve_cache_directories,
)
from depkit.config.manifest import Manifest, read_manifest_or_default
from depkit.config.parser import DepKitConfig
from depkit.core.exceptions import CacheWriteError, DepKitError, PostStageError
from depkit.core.signature import compute_fingerprint, read_lockfile
from depkit.packages import create_dependency_manager, detect_dependency_manager
from depkit.packages.base import DependencyManager
from depkit.pipeline.installer import Installer
from depkit.pipeline.poststage import CommandPostStage, PostStage
from depkit.pipeline.strategy import (
    STRATEGY_OVERRIDES,
    InstallationPlan,
    WorkspaceState,
    select_plan,
)
from depkit.runtime.base import RuntimeHandle, RuntimeInstaller
from depkit.runtime.system import SystemRuntimeInstaller

logger = logging.getLogger(__name__)

ManagerFactory = Callable[[str, Optional[Path], Mapping[str, str]], DependencyManager]


@dataclass(frozen=True)
class BuildContext:
    """
    Everything a build needs, passed explicitly instead of read from globals.

    Attributes:
        workspace: Build workspace containing package.json
        cache_dir: Cache root persisted across builds, or None to build uncached
        config: Parsed depkit.yaml
        env: Base environment for child processes
    """

    workspace: Path
    cache_dir: Optional[Path]
    config: DepKitConfig = field(default_factory=DepKitConfig)
    env: Mapping[str, str] = field(default_factory=dict)


@dataclass
class BuildReport:
    """Typed outcome of a pipeline run."""

    fingerprint: Optional[str] = None
    runtime: Optional[RuntimeHandle] = None
    cache_status: Optional[CacheStatus] = None
    workspace_state: Optional[WorkspaceState] = None
    cache_directories: List[str] = field(default_factory=list)
    restore: RestoreReport = field(default_factory=RestoreReport)
    plan: Optional[InstallationPlan] = None
    saved: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    failed_stage: Optional[str] = None
    error: Optional[DepKitError] = None
    post_stage_failures: List[PostStageError] = field(default_factory=list)
    required_post_stage_failed: bool = False

    @property
    def success(self) -> bool:
        return self.error is None and not self.required_post_stage_failed

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1


class BuildPipeline:
    """
    Runs one build against a workspace and cache root.

    Attributes:
        context: Build context
        runtime_installer: Installer used instead of the host lookup, if given
        manager_factory: Creates the dependency manager from the runtime
        post_stages: Stages run after a successful install
    """

    def __init__(
        self,
        context: BuildContext,
        runtime_installer: Optional[RuntimeInstaller] = None,
        manager_factory: ManagerFactory = create_dependency_manager,
        post_stages: Optional[List[PostStage]] = None,
    ):
        self.context = context
        self.runtime_installer = runtime_installer
        self.manager_factory = manager_factory
        if post_stages is None:
            post_stages = [
                CommandPostStage(s.name, s.command, s.required, s.timeout)
                for s in context.config.post_stages
            ]
        self.post_stages = post_stages

    def run(self) -> BuildReport:
        """
        Run every stage.

        Returns:
            BuildReport; fatal errors are recorded, not raised
        """
        report = BuildReport()
        workspace = Path(self.context.workspace)
        config = self.context.config
        stage = "manifest"

        try:
            manifest = read_manifest_or_default(workspace)

            stage = "runtime"
            manager_name = detect_dependency_manager(
                workspace, config.install.package_manager
            )
            runtime = self.runtime_installer_for(manager_name).ensure(
                manifest.engine_constraints
            )
            report.runtime = runtime

            stage = "cache-restore"
            store = self._open_store()
            self._restore(store, manifest, runtime, report)

            stage = "install"
            report.plan = select_plan(
                report.cache_status,
                report.workspace_state,
                STRATEGY_OVERRIDES[config.install.strategy],
            )
            manager = self.manager_factory(
                runtime.package_manager,
                runtime.package_manager_path,
                runtime.child_env(self.context.env),
            )
            Installer(manager).run(report.plan, workspace)
        except DepKitError as e:
            report.failed_stage = stage
            report.error = e
            logger.error(f"Build failed during {stage}: {e}")
            return report

        self._save(store, report)
        self._run_post_stages(report)
        return report

    def runtime_installer_for(self, manager_name: str) -> RuntimeInstaller:
        """Runtime installer for this build: the injected one, else a host lookup."""
        if self.runtime_installer is not None:
            return self.runtime_installer

        search_paths: List[Path] = []
        bin_dir = self.context.config.runtime.bin_dir
        if bin_dir:
            bin_path = Path(bin_dir)
            if not bin_path.is_absolute():
                bin_path = Path(self.context.workspace) / bin_path
            search_paths.append(bin_path)
        path_env = self.context.env.get("PATH", "")
        search_paths.extend(Path(p) for p in path_env.split(os.pathsep) if p)

        return SystemRuntimeInstaller(search_paths, manager_name)

    def _open_store(self) -> Optional[CacheStore]:
        if self.context.cache_dir is None:
            return None
        return CacheStore(
            self.context.cache_dir, enabled=self.context.config.cache.enabled
        )

    def _restore(
        self,
        store: Optional[CacheStore],
        manifest: Manifest,
        runtime: RuntimeHandle,
        report: BuildReport,
    ) -> None:
        workspace = Path(self.context.workspace)

        report.fingerprint = compute_fingerprint(
            manifest, read_lockfile(workspace), runtime.versions()
        )
        report.cache_status = (
            store.status(report.fingerprint)
            if store is not None
            else CacheStatus.DISABLED
        )
        report.workspace_state = WorkspaceState.detect(workspace)
        report.cache_directories = resolve_cache_directories(manifest)

        if report.workspace_state.has_preexisting_modules:
            logger.info("Skipping cache restore (prebuilt dependencies present)")
        elif not report.cache_status.is_valid:
            logger.info(f"Skipping cache restore ({report.cache_status.describe()})")
        else:
            logger.info("Restoring cache")
            report.restore = store.restore(workspace, report.cache_directories)

    def _save(self, store: Optional[CacheStore], report: BuildReport) -> None:
        if store is None or not store.enabled:
            logger.info("Skipping cache save (caching disabled)")
            return

        logger.info("Caching build")
        try:
            report.saved = store.save(
                self.context.workspace, report.cache_directories, report.fingerprint
            )
        except CacheWriteError as e:
            logger.warning(f"Cache save failed; next build will start cold: {e}")
            report.warnings.append(str(e))

    def _run_post_stages(self, report: BuildReport) -> None:
        env = (
            report.runtime.child_env(self.context.env)
            if report.runtime
            else dict(self.context.env)
        )
        for stage in self.post_stages:
            try:
                stage.run(Path(self.context.workspace), self.context.cache_dir, env)
            except PostStageError as e:
                report.post_stage_failures.append(e)
                if stage.required:
                    report.required_post_stage_failed = True
                    logger.error(str(e))
                else:
                    logger.warning(f"{e} (optional, continuing)")
