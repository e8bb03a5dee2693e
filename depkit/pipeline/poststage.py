"""
Optional post-stages run after dependencies are installed and cached.

Post-stages (for example a JDK installer for projects that also need a JVM)
are configured explicitly and never run by default. Their failures are
reported as PostStageError, separate from dependency installation errors.
"""

import logging
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from depkit.core.exceptions import PostStageError

logger = logging.getLogger(__name__)


class PostStage(ABC):
    """
    A pluggable step that runs after the dependency pipeline.

    Attributes:
        name: Stage name used in reports
        required: Whether a failure makes the build fail
    """

    def __init__(self, name: str, required: bool = True):
        self.name = name
        self.required = required

    @abstractmethod
    def run(
        self, workspace: Path, cache_dir: Optional[Path], env: Mapping[str, str]
    ) -> None:
        """
        Run the stage.

        Raises:
            PostStageError: If the stage fails
        """
        pass


class CommandPostStage(PostStage):
    """
    Post-stage that runs an external command.

    The command is a list of arguments; ``{workspace}`` and ``{cache_dir}``
    placeholders are substituted before execution.

    Example:
        stage = CommandPostStage("jdk", ["./bin/install-jdk", "{workspace}"])
        stage.run(workspace, cache_dir, env)
    """

    def __init__(
        self,
        name: str,
        command: List[str],
        required: bool = True,
        timeout: Optional[int] = None,
    ):
        super().__init__(name, required)
        if not command:
            raise ValueError(f"Post-stage '{name}' has an empty command")
        self.command = list(command)
        self.timeout = timeout

    def render_command(self, workspace: Path, cache_dir: Optional[Path]) -> List[str]:
        # An uncached build substitutes an empty cache_dir
        values: Dict[str, str] = {
            "workspace": str(workspace),
            "cache_dir": str(cache_dir) if cache_dir is not None else "",
        }
        return [arg.format(**values) for arg in self.command]

    def run(
        self, workspace: Path, cache_dir: Optional[Path], env: Mapping[str, str]
    ) -> None:
        try:
            cmd = self.render_command(workspace, cache_dir)
        except (KeyError, IndexError, ValueError) as e:
            raise PostStageError(self.name, f"invalid command template: {e}") from e

        logger.info(f"Running post-stage '{self.name}': {' '.join(cmd)}")
        try:
            result = subprocess.run(
                cmd,
                cwd=workspace,
                env=dict(env),
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise PostStageError(self.name, str(e)) from e

        if result.stdout:
            logger.debug(result.stdout.rstrip())

        if result.returncode != 0:
            raise PostStageError(
                self.name,
                f"exit code {result.returncode}\n{(result.stderr or '').strip()}",
            )
