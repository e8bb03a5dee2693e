"""
Entry point for running DepKit CLI as a module.

Usage: python -m depkit [command] [options]
"""

from depkit.cli.parser import main

if __name__ == "__main__":
    main()
