"""
Cache command implementation.

Shows or clears the build cache without running an install.
"""

import logging
import os

from depkit.cache.store import CacheStore, resolve_cache_directories
from depkit.cli.utils import print_error, resolve_cache_dir, resolve_workspace
from depkit.config.manifest import read_manifest_or_default
from depkit.config.parser import load_config
from depkit.core.exceptions import DepKitError
from depkit.core.signature import compute_fingerprint, read_lockfile
from depkit.packages import detect_dependency_manager
from depkit.pipeline.build import BuildContext, BuildPipeline

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the cache command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    if not getattr(args, "cache_command", None):
        print_error("No cache sub-command specified (status, clear)")
        return 1

    workspace = resolve_workspace(args.workspace)
    try:
        config = load_config(workspace, args.config)
        cache_dir = resolve_cache_dir(args.cache_dir, config, workspace)
    except (DepKitError, ValueError) as e:
        print_error("Invalid configuration", str(e))
        return 1

    store = CacheStore(cache_dir, enabled=config.cache.enabled)

    if args.cache_command == "clear":
        try:
            store.clear()
        except DepKitError as e:
            print_error("Failed to clear cache", str(e))
            return 1
        print(f"Cleared cache at {cache_dir}")
        return 0

    return _status(workspace, cache_dir, config, store)


def _status(workspace, cache_dir, config, store: CacheStore) -> int:
    try:
        manifest = read_manifest_or_default(workspace)
        context = BuildContext(
            workspace=workspace, cache_dir=cache_dir, config=config, env=dict(os.environ)
        )
        manager_name = detect_dependency_manager(
            workspace, config.install.package_manager
        )
        runtime = BuildPipeline(context).runtime_installer_for(manager_name).ensure(
            manifest.engine_constraints
        )
    except DepKitError as e:
        print_error("Cannot compute the current fingerprint", str(e))
        return 1

    fingerprint = compute_fingerprint(
        manifest, read_lockfile(workspace), runtime.versions()
    )
    stored = store.tracker.load()
    status = store.status(fingerprint)

    print(f"Cache root:   {cache_dir}")
    print(f"Status:       {status.value} ({status.describe()})")
    print(f"Fingerprint:  {fingerprint}")
    if stored is not None:
        print(f"Stored:       {stored.fingerprint} (format v{stored.cache_format_version})")
        if stored.saved_at:
            print(f"Saved at:     {stored.saved_at}")
    print(f"Directories:  {', '.join(resolve_cache_directories(manifest))}")
    print(f"Entries:      {', '.join(store.list_entries()) or '-'}")
    return 0
