"""
Entry point for running the Engram installer as a module.

Usage: python -m engram_installer [options]
"""

from engram_installer.cli.parser import main

if __name__ == "__main__":
    main()
