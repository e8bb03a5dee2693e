"""
Compile command implementation.

Runs the full dependency pipeline and prints a success or failure summary.
"""

import logging
import os

from depkit.cli.utils import (
    format_failure_message,
    format_success_message,
    print_error,
    resolve_cache_dir,
    resolve_workspace,
)
from depkit.config.parser import load_config
from depkit.core.exceptions import ConfigError
from depkit.pipeline.build import BuildContext, BuildPipeline, BuildReport

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the compile command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 only if every stage succeeded)
    """
    workspace = resolve_workspace(args.workspace)

    try:
        config = load_config(workspace, args.config)
        cache_dir = resolve_cache_dir(
            args.cache_dir, config, workspace, required=config.cache.enabled
        )
    except (ConfigError, ValueError) as e:
        print_error("Invalid configuration", str(e))
        return 1

    context = BuildContext(
        workspace=workspace,
        cache_dir=cache_dir,
        config=config,
        env=dict(os.environ),
    )
    report = BuildPipeline(context).run()

    print(_summarize(report))
    return report.exit_code


def _summarize(report: BuildReport) -> str:
    if report.error is not None:
        return format_failure_message(
            "Dependency installation failed", report.failed_stage, report.error
        )

    notes = list(report.warnings)
    for failure in report.post_stage_failures:
        notes.append(str(failure))

    details = {
        "Node.js": report.runtime.node_version if report.runtime else "unknown",
        "Package manager": (
            f"{report.runtime.package_manager} {report.runtime.package_manager_version}"
            if report.runtime
            else "unknown"
        ),
        "Cache": report.cache_status.value if report.cache_status else "unknown",
        "Strategy": report.plan.value if report.plan else "unknown",
        "Restored": ", ".join(report.restore.restored) or "-",
        "Cached": ", ".join(report.saved) or "-",
    }

    title = (
        "Dependencies installed"
        if report.success
        else "Dependencies installed, but a required post-stage failed"
    )
    return format_success_message(title, details, notes)
