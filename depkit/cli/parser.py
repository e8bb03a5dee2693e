"""
DepKit CLI argument parser.

This module implements the command-line interface for DepKit using argparse.
"""

import argparse
import importlib
import logging
import sys
import traceback
from pathlib import Path
from typing import List, Optional

from depkit import __version__

logger = logging.getLogger(__name__)


class CLI:
    """DepKit command-line interface."""

    def __init__(self):
        """Initialize CLI with argument parser."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser with all subcommands.

        Returns:
            Configured ArgumentParser instance
        """
        parser = argparse.ArgumentParser(
            prog="depkit",
            description="DepKit - Node.js dependency provisioning with a build cache",
            epilog='Use "depkit COMMAND --help" for command-specific help',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        # Global options
        parser.add_argument(
            "--version", action="version", version=f"DepKit {__version__}"
        )
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable verbose output"
        )
        parser.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Enable minimal output (errors only)",
        )
        parser.add_argument(
            "--config",
            type=Path,
            metavar="PATH",
            help="Path to configuration file (default: WORKSPACE/depkit.yaml)",
        )
        parser.add_argument(
            "--workspace",
            type=Path,
            metavar="PATH",
            default=Path.cwd(),
            help="Build workspace directory (default: current directory)",
        )

        subparsers = parser.add_subparsers(
            dest="command", help="Available commands", metavar="COMMAND"
        )

        self._add_detect_command(subparsers)
        self._add_compile_command(subparsers)
        self._add_cache_command(subparsers)

        return parser

    def _add_detect_command(self, subparsers):
        """Add 'detect' subcommand."""
        subparsers.add_parser(
            "detect",
            help="Check whether the workspace is a Node.js project",
            description="Exit 0 if the workspace contains package.json",
        )

    def _add_compile_command(self, subparsers):
        """Add 'compile' subcommand."""
        parser = subparsers.add_parser(
            "compile",
            help="Install dependencies using the build cache",
            description="Validate the runtime, restore the cache, install "
            "dependencies and save the cache for the next build",
        )
        parser.add_argument(
            "--cache-dir",
            type=Path,
            metavar="DIR",
            help="Cache root persisted across builds (default: cache.directory from config)",
        )

    def _add_cache_command(self, subparsers):
        """Add 'cache' subcommand with sub-subcommands."""
        parser = subparsers.add_parser(
            "cache",
            help="Inspect or clear the build cache",
            description="Inspect or clear the build cache",
        )
        cache_subparsers = parser.add_subparsers(
            dest="cache_command", help="Cache commands", metavar="COMMAND"
        )

        for name, help_text in (
            ("status", "Show cache status for the current workspace"),
            ("clear", "Remove all cached directories and the signature"),
        ):
            sub = cache_subparsers.add_parser(name, help=help_text, description=help_text)
            sub.add_argument(
                "--cache-dir",
                type=Path,
                metavar="DIR",
                help="Cache root (default: cache.directory from config)",
            )

    def parse_args(self, args: Optional[List[str]] = None):
        """
        Parse command-line arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Parsed arguments namespace
        """
        return self.parser.parse_args(args)

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run CLI with given arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        parsed_args = self.parse_args(args)

        self._configure_logging(parsed_args)

        if not parsed_args.command:
            self.parser.print_help()
            return 1

        try:
            return self._dispatch_command(parsed_args)
        except KeyboardInterrupt:
            logger.info("Operation cancelled by user")
            return 130
        except Exception as e:
            logger.error(f"Error: {e}")
            if parsed_args.verbose:
                traceback.print_exc()
            return 1

    def _configure_logging(self, args):
        """
        Configure logging based on verbose/quiet flags.

        Args:
            args: Parsed arguments with verbose/quiet flags
        """
        if args.verbose:
            level = logging.DEBUG
            format_str = "%(levelname)s [%(name)s] %(message)s"
        elif args.quiet:
            level = logging.ERROR
            format_str = "%(levelname)s: %(message)s"
        else:
            level = logging.INFO
            format_str = "%(message)s"

        logging.basicConfig(
            level=level,
            format=format_str,
            force=True,
        )

    def _dispatch_command(self, args) -> int:
        """
        Dispatch to appropriate command handler.

        Args:
            args: Parsed arguments with command field

        Returns:
            Exit code from command handler
        """
        command_map = {
            "detect": "depkit.cli.commands.detect",
            "compile": "depkit.cli.commands.compile",
            "cache": "depkit.cli.commands.cache",
        }

        module_name = command_map.get(args.command)
        if not module_name:
            logger.error(f"Unknown command: {args.command}")
            return 1

        module = importlib.import_module(module_name)
        return module.run(args)


def main():
    """Main entry point for CLI."""
    cli = CLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
