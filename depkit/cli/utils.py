"""
Shared utilities for CLI commands.

Provides common functionality used across multiple CLI commands to
eliminate duplication and ensure consistent behavior.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from depkit.config.parser import DepKitConfig

logger = logging.getLogger(__name__)


# ============================================================================
# Path Utilities
# ============================================================================


def resolve_workspace(path: Optional[Path] = None) -> Path:
    """
    Resolve the build workspace directory.

    Raises:
        FileNotFoundError: If the workspace does not exist
    """
    workspace = (path or Path.cwd()).resolve()
    if not workspace.is_dir():
        raise FileNotFoundError(f"Workspace not found: {workspace}")
    return workspace


def resolve_cache_dir(
    cli_value: Optional[Path],
    config: DepKitConfig,
    workspace: Path,
    required: bool = True,
) -> Optional[Path]:
    """
    Resolve the cache root: CLI flag first, then cache.directory.

    Relative config paths are resolved against the workspace.

    Args:
        required: False to allow running without a cache root

    Returns:
        Cache root, or None if none is set and it is not required

    Raises:
        ValueError: If neither is set and a cache root is required
    """
    if cli_value is not None:
        return Path(cli_value).resolve()

    if config.cache.directory:
        cache_dir = Path(config.cache.directory)
        if not cache_dir.is_absolute():
            cache_dir = workspace / cache_dir
        return cache_dir.resolve()

    if not required:
        return None

    raise ValueError("No cache directory given. Use --cache-dir or set cache.directory")


# ============================================================================
# User Interface / Output Formatting
# ============================================================================


def format_success_message(
    title: str,
    details: Dict[str, Any],
    notes: Optional[List[str]] = None,
    width: int = 70,
) -> str:
    """
    Format a standardized success message.

    Args:
        title: Success message title
        details: Key-value pairs to display
        notes: Optional list of warnings or remarks
        width: Width of message box

    Returns:
        Formatted message string
    """
    lines = ["=" * width, title, "=" * width, ""]

    for key, value in details.items():
        lines.append(f"{key}: {value}")

    if notes:
        lines.append("")
        lines.append("Notes:")
        for note in notes:
            lines.append(f"  {note}")

    lines.append("")
    return "\n".join(lines)


def format_failure_message(
    title: str, stage: str, error: Exception, width: int = 70
) -> str:
    """
    Format the single consolidated failure summary of a build.

    Args:
        title: Failure headline
        stage: Pipeline stage that failed
        error: The fatal error

    Returns:
        Formatted message string
    """
    lines = ["!" * width, title, "!" * width, ""]
    lines.append(f"Stage: {stage}")
    lines.append(f"Error: {type(error).__name__}")
    lines.append("")
    for line in str(error).splitlines():
        lines.append(f"  {line}")
    lines.append("")
    return "\n".join(lines)


def print_error(message: str, details: Optional[str] = None):
    """
    Print error message to stderr in consistent format.

    Args:
        message: Main error message
        details: Optional additional details
    """
    print(f"ERROR: {message}", file=sys.stderr)
    if details:
        print(f"  {details}", file=sys.stderr)
