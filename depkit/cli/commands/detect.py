"""
Detect command implementation.

Reports whether the workspace is a Node.js project.
"""

import logging

from depkit.cli.utils import resolve_workspace
from depkit.config.manifest import MANIFEST_FILENAME

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the detect command.

    Args:
        args: Parsed command-line arguments

    Returns:
        0 if package.json exists, 1 otherwise
    """
    workspace = resolve_workspace(args.workspace)

    if (workspace / MANIFEST_FILENAME).exists():
        print("Node.js")
        return 0

    logger.debug(f"No {MANIFEST_FILENAME} in {workspace}")
    return 1
