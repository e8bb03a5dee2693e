"""
Unit tests for host runtime validation.
"""

import os
import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from depkit.core.exceptions import RuntimeProvisionError
from depkit.runtime.base import RuntimeHandle
from depkit.runtime.system import SystemRuntimeInstaller, satisfies


@pytest.mark.parametrize(
    "version,constraint,expected",
    [
        ("18.17.0", "18.17.0", True),
        ("18.17.0", "=18.17.0", True),
        ("18.17.0", "v18.17.0", True),
        ("18.17.1", "18.17.0", False),
        ("18.17.0", "18", True),
        ("18.17.0", "18.x", True),
        ("18.17.0", "18.17.x", True),
        ("18.17.0", "18.16.x", False),
        ("20.5.0", "18.x", False),
        ("18.17.0", "*", True),
        ("18.17.0", "", True),
        ("18.17.0", "latest", True),
        ("18.17.0", ">=16", True),
        ("14.0.0", ">=16", False),
        ("18.17.0", "<18.17", False),
        ("18.16.9", "<18.17", True),
        ("18.17.0", ">18.17.0", False),
        ("18.17.0", "<=18.17.0", True),
        ("18.17.0", "^18.0.0", None),
        ("18.17.0", ">=14 <19", None),
        ("18.17.0", "16 || 18", None),
        ("not-a-version", "18.x", None),
    ],
)
def test_satisfies(version, constraint, expected):
    """Test supported and unsupported constraint forms."""
    assert satisfies(version, constraint) is expected


def _version_output(versions):
    def fake_run(cmd, **kwargs):
        name = Path(cmd[0]).name
        return subprocess.CompletedProcess(cmd, 0, stdout=f"{versions[name]}\n", stderr="")

    return fake_run


@pytest.fixture
def host():
    """Patch executable lookup and version queries."""
    with patch("depkit.runtime.system.find_executable") as mock_find, patch(
        "depkit.runtime.system.subprocess.run"
    ) as mock_run:
        mock_find.side_effect = lambda name, paths: Path("/opt/node/bin") / name
        mock_run.side_effect = _version_output(
            {"node": "v18.17.0", "npm": "9.6.7", "yarn": "1.22.19"}
        )
        yield mock_find, mock_run


class TestSystemRuntimeInstaller:
    """Tests for SystemRuntimeInstaller."""

    def test_ensure_returns_handle(self, host):
        """Test a satisfied runtime yields a handle."""
        installer = SystemRuntimeInstaller([Path("/opt/node/bin")])

        handle = installer.ensure({"node": "18.x"})

        assert handle == RuntimeHandle(
            node_path=Path("/opt/node/bin/node"),
            node_version="18.17.0",
            package_manager="npm",
            package_manager_path=Path("/opt/node/bin/npm"),
            package_manager_version="9.6.7",
        )

    def test_yarn(self, host):
        """Test the configured package manager is located."""
        handle = SystemRuntimeInstaller([Path("/opt/node/bin")], "yarn").ensure({})
        assert handle.package_manager == "yarn"
        assert handle.versions() == {"node": "18.17.0", "yarn": "1.22.19"}

    def test_unsatisfied_node_constraint(self, host):
        """Test a mismatching node version fails."""
        with pytest.raises(RuntimeProvisionError, match="does not satisfy"):
            SystemRuntimeInstaller([Path("/opt/node/bin")]).ensure({"node": "20.x"})

    def test_unsatisfied_npm_constraint(self, host):
        """Test package-manager constraints are checked too."""
        with pytest.raises(RuntimeProvisionError, match="engines.npm"):
            SystemRuntimeInstaller([Path("/opt/node/bin")]).ensure({"npm": ">=10"})

    def test_unverifiable_constraint_continues(self, host, caplog):
        """Test unsupported ranges only warn."""
        handle = SystemRuntimeInstaller([Path("/opt/node/bin")]).ensure(
            {"node": "^18.0.0"}
        )
        assert handle.node_version == "18.17.0"
        assert "Cannot verify node constraint" in caplog.text

    def test_node_not_found(self, host):
        """Test missing node binary."""
        mock_find, _ = host
        mock_find.side_effect = lambda name, paths: None
        with pytest.raises(RuntimeProvisionError, match="'node' executable not found"):
            SystemRuntimeInstaller([Path("/nowhere")]).ensure({})

    def test_version_query_fails(self, host):
        """Test non-zero --version exit."""
        _, mock_run = host
        mock_run.side_effect = lambda cmd, **kw: subprocess.CompletedProcess(
            cmd, 1, stdout="", stderr="boom"
        )
        with pytest.raises(RuntimeProvisionError, match="exited with code 1"):
            SystemRuntimeInstaller([Path("/opt/node/bin")]).ensure({})

    def test_version_query_timeout(self, host):
        """Test hung binaries."""
        _, mock_run = host
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="node", timeout=30)
        with pytest.raises(RuntimeProvisionError):
            SystemRuntimeInstaller([Path("/opt/node/bin")]).ensure({})

    def test_empty_version(self, host):
        """Test empty --version output."""
        _, mock_run = host
        mock_run.side_effect = lambda cmd, **kw: subprocess.CompletedProcess(
            cmd, 0, stdout="\n", stderr=""
        )
        with pytest.raises(RuntimeProvisionError, match="no version"):
            SystemRuntimeInstaller([Path("/opt/node/bin")]).ensure({})


class TestRuntimeHandle:
    """Tests for RuntimeHandle."""

    def _handle(self, pm_dir="/opt/node/bin"):
        return RuntimeHandle(
            node_path=Path("/opt/node/bin/node"),
            node_version="18.17.0",
            package_manager="yarn",
            package_manager_path=Path(pm_dir) / "yarn",
            package_manager_version="1.22.19",
        )

    def test_bin_dirs_deduplicated(self):
        """Test shared bin directory appears once."""
        assert self._handle().bin_dirs == [Path("/opt/node/bin")]
        assert self._handle("/opt/yarn/bin").bin_dirs == [
            Path("/opt/node/bin"),
            Path("/opt/yarn/bin"),
        ]

    def test_child_env_prepends_path(self):
        """Test runtime bin directories come first on PATH."""
        env = self._handle().child_env({"PATH": "/usr/bin", "HOME": "/root"})
        assert env["PATH"] == os.pathsep.join(["/opt/node/bin", "/usr/bin"])
        assert env["HOME"] == "/root"

    def test_child_env_without_base(self):
        """Test empty base environment."""
        assert self._handle().child_env()["PATH"] == str(Path("/opt/node/bin"))
