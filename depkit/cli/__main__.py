"""
Entry point for running DepKit CLI as a module.

Usage: python -m depkit.cli [command] [options]
"""

from .parser import main

if __name__ == "__main__":
    main()
