"""
Runtime validation against binaries already installed on the build host.

SystemRuntimeInstaller does not download anything: it locates `node` and the
package-manager binary on explicit search paths, reads their versions and
checks them against the manifest's engine constraints.

Supported constraint forms are exact versions (`18.17.0`), x-ranges
(`18`, `18.x`, `18.17.x`, `*`) and single comparators (`>=16`, `<20.1`).
Anything else (`^18`, `~16.4`, `>=14 <19`, `||`) is logged as unverified.

Example:
    >>> installer = SystemRuntimeInstaller([Path('/opt/node/bin')], 'npm')
    >>> handle = installer.ensure({'node': '18.x'})
    >>> handle.node_version
    '18.17.0'
"""

import logging
import re
import subprocess
from pathlib import Path
from typing import List, Mapping, Optional

from packaging.version import InvalidVersion, Version

from depkit.core.exceptions import RuntimeProvisionError
from depkit.core.filesystem import find_executable
from depkit.runtime.base import RuntimeHandle, RuntimeInstaller

logger = logging.getLogger(__name__)

VERSION_TIMEOUT_SECONDS = 30

_X_RANGE = re.compile(r"^(\d+|[xX*])(\.(\d+|[xX*])){0,2}$")
_COMPARATOR = re.compile(r"^(>=|<=|>|<)\s*v?(\d+(\.\d+){0,2})$")


def satisfies(version: str, constraint: str) -> Optional[bool]:
    """
    Check a version against an engine constraint.

    Args:
        version: Concrete version, e.g. '18.17.0'
        constraint: Engine constraint from the manifest

    Returns:
        True/False when the constraint form is supported, None otherwise
    """
    try:
        parsed = Version(version)
    except InvalidVersion:
        return None

    constraint = constraint.strip()
    if constraint.startswith("="):
        constraint = constraint.lstrip("=").strip()
    if constraint.startswith("v"):
        constraint = constraint[1:]

    if constraint in ("", "*", "latest"):
        return True

    if _X_RANGE.match(constraint):
        release = parsed.release + (0,) * (3 - len(parsed.release))
        for actual, wanted in zip(release, constraint.split(".")):
            if wanted in ("x", "X", "*"):
                break
            if actual != int(wanted):
                return False
        return True

    match = _COMPARATOR.match(constraint)
    if match:
        operator, bound = match.group(1), Version(match.group(2))
        return {
            ">=": parsed >= bound,
            "<=": parsed <= bound,
            ">": parsed > bound,
            "<": parsed < bound,
        }[operator]

    return None


class SystemRuntimeInstaller(RuntimeInstaller):
    """
    Validate host-installed node and package-manager binaries.

    Attributes:
        search_paths: Directories searched for executables, in order
        package_manager: Package manager binary to locate ('npm' or 'yarn')
    """

    def __init__(self, search_paths: List[Path], package_manager: str = "npm"):
        self.search_paths = [Path(p) for p in search_paths]
        self.package_manager = package_manager

    def ensure(self, engine_constraints: Mapping[str, str]) -> RuntimeHandle:
        node_path = self._locate("node")
        node_version = self._read_version(node_path)
        self._check("node", node_version, engine_constraints.get("node"))

        pm_path = self._locate(self.package_manager)
        pm_version = self._read_version(pm_path)
        self._check(
            self.package_manager, pm_version, engine_constraints.get(self.package_manager)
        )

        logger.info(
            f"Using node {node_version} and {self.package_manager} {pm_version}"
        )
        return RuntimeHandle(
            node_path=node_path,
            node_version=node_version,
            package_manager=self.package_manager,
            package_manager_path=pm_path,
            package_manager_version=pm_version,
        )

    def _locate(self, name: str) -> Path:
        path = find_executable(name, self.search_paths)
        if path is None:
            searched = ", ".join(str(p) for p in self.search_paths) or "(none)"
            raise RuntimeProvisionError(
                f"'{name}' executable not found. Searched: {searched}"
            )
        return path

    def _read_version(self, executable: Path) -> str:
        try:
            result = subprocess.run(
                [str(executable), "--version"],
                capture_output=True,
                text=True,
                timeout=VERSION_TIMEOUT_SECONDS,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise RuntimeProvisionError(f"Failed to run {executable}: {e}") from e

        if result.returncode != 0:
            raise RuntimeProvisionError(
                f"{executable} --version exited with code {result.returncode}: "
                f"{result.stderr.strip()}"
            )

        version = result.stdout.strip().lstrip("v")
        if not version:
            raise RuntimeProvisionError(f"{executable} reported no version")
        return version

    def _check(self, engine: str, version: str, constraint: Optional[str]) -> None:
        if not constraint:
            logger.debug(f"No {engine} engine constraint declared")
            return

        verdict = satisfies(version, constraint)
        if verdict is None:
            logger.warning(
                f"Cannot verify {engine} constraint '{constraint}' "
                f"against {version}; continuing"
            )
        elif not verdict:
            raise RuntimeProvisionError(
                f"{engine} {version} does not satisfy engines.{engine} '{constraint}'"
            )
