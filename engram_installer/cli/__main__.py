"""
Entry point for running the installer CLI as a module.

Usage: python -m engram_installer.cli [options]
"""

from .parser import main

if __name__ == "__main__":
    main()
