"""
Pytest configuration and shared fixtures for DepKit tests.
"""

import json
import tempfile
from pathlib import Path
from typing import Generator, List, Mapping, Optional

import pytest

from depkit.core.exceptions import InstallError
from depkit.packages.base import DependencyManager
from depkit.pipeline.build import BuildContext, BuildPipeline
from depkit.config.parser import DepKitConfig
from depkit.runtime.base import RuntimeHandle, RuntimeInstaller


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


# ============================================================================
# Fakes
# ============================================================================


class FakeRuntimeInstaller(RuntimeInstaller):
    """Runtime installer that never touches the host."""

    def __init__(
        self,
        node_version: str = "18.17.0",
        package_manager: str = "npm",
        package_manager_version: str = "9.6.7",
        error: Optional[Exception] = None,
    ):
        self.node_version = node_version
        self.package_manager = package_manager
        self.package_manager_version = package_manager_version
        self.error = error
        self.calls: List[dict] = []

    def ensure(self, engine_constraints: Mapping[str, str]) -> RuntimeHandle:
        self.calls.append(dict(engine_constraints))
        if self.error is not None:
            raise self.error
        return RuntimeHandle(
            node_path=Path("/opt/node/bin/node"),
            node_version=self.node_version,
            package_manager=self.package_manager,
            package_manager_path=Path(f"/opt/node/bin/{self.package_manager}"),
            package_manager_version=self.package_manager_version,
        )


class FakeDependencyManager(DependencyManager):
    """
    Dependency manager that "installs" by writing one file per dependency.

    Set ``fail_on`` to 'install', 'rebuild' or 'validate' to make that
    action raise InstallError.
    """

    def __init__(self, executable=None, env=None, fail_on: Optional[str] = None):
        super().__init__(executable, env)
        self.fail_on = fail_on
        self.calls: List[str] = []

    def get_name(self) -> str:
        return "npm"

    def detect(self, workspace: Path) -> bool:
        return True

    def install_command(self, workspace: Path) -> List[str]:
        return ["npm", "install"]

    def rebuild_command(self, workspace: Path) -> List[str]:
        return ["npm", "rebuild"]

    def validate_command(self, workspace: Path) -> List[str]:
        return ["npm", "ls"]

    def _maybe_fail(self, action: str) -> None:
        self.calls.append(action)
        if self.fail_on == action:
            raise InstallError(f"npm {action} failed with exit code 1", returncode=1)

    def install(self, workspace: Path) -> None:
        self._maybe_fail("install")
        manifest_path = Path(workspace) / "package.json"
        manifest = json.loads(manifest_path.read_text()) if manifest_path.exists() else {}
        for name, version in manifest.get("dependencies", {}).items():
            package_dir = Path(workspace) / "node_modules" / name
            package_dir.mkdir(parents=True, exist_ok=True)
            (package_dir / "package.json").write_text(
                json.dumps({"name": name, "version": version})
            )

    def rebuild(self, workspace: Path) -> None:
        self._maybe_fail("rebuild")

    def validate(self, workspace: Path) -> None:
        self._maybe_fail("validate")


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create temporary directory for test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def workspace(temp_dir: Path) -> Path:
    """Create a build workspace with a minimal package.json."""
    workspace = temp_dir / "workspace"
    workspace.mkdir()
    write_package_json(
        workspace,
        {
            "name": "test-app",
            "version": "1.0.0",
            "engines": {"node": "18.x"},
            "dependencies": {"express": "4.18.2"},
        },
    )
    return workspace


@pytest.fixture
def cache_dir(temp_dir: Path) -> Path:
    """Cache root that survives between the builds of one test."""
    cache_dir = temp_dir / "cache"
    cache_dir.mkdir()
    return cache_dir


@pytest.fixture
def fake_runtime() -> FakeRuntimeInstaller:
    return FakeRuntimeInstaller()


@pytest.fixture
def make_pipeline(fake_runtime):
    """
    Factory for pipelines wired to fake collaborators.

    Returns (pipeline, managers) where managers collects every manager
    the pipeline created.
    """

    def factory(
        workspace: Path,
        cache_dir: Path,
        config: Optional[DepKitConfig] = None,
        fail_on: Optional[str] = None,
        post_stages=None,
        runtime_installer=None,
    ):
        managers: List[FakeDependencyManager] = []

        def manager_factory(name, executable, env):
            manager = FakeDependencyManager(executable, env, fail_on=fail_on)
            managers.append(manager)
            return manager

        context = BuildContext(
            workspace=workspace,
            cache_dir=cache_dir,
            config=config or DepKitConfig(),
            env={"PATH": "/usr/bin"},
        )
        pipeline = BuildPipeline(
            context,
            runtime_installer=runtime_installer or fake_runtime,
            manager_factory=manager_factory,
            post_stages=post_stages,
        )
        return pipeline, managers

    return factory


def write_package_json(workspace: Path, data: dict) -> Path:
    """Write package.json into a workspace."""
    path = Path(workspace) / "package.json"
    path.write_text(json.dumps(data, indent=2))
    return path


@pytest.fixture
def package_json():
    """Expose write_package_json to tests."""
    return write_package_json


@pytest.fixture
def fake_runtime_cls():
    """The FakeRuntimeInstaller class, for tests that need a custom one."""
    return FakeRuntimeInstaller


@pytest.fixture
def fake_manager_cls():
    """The FakeDependencyManager class."""
    return FakeDependencyManager
