"""
Engram installer CLI argument parser.

This module implements the command-line interface using argparse. All
diagnostics go to stderr through logging; only argparse's --help and
--version output goes to stdout.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from engram_installer import __version__
from engram_installer.config import load_config
from engram_installer.core.exceptions import InstallerError, InstallInterrupted
from engram_installer.installer import EngramInstaller, path_hint

logger = logging.getLogger(__name__)


class CLI:
    """Engram installer command-line interface."""

    def __init__(self):
        """Initialize CLI with argument parser."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser.

        Returns:
            Configured ArgumentParser instance
        """
        parser = argparse.ArgumentParser(
            prog="engram-install",
            description="Download, verify and install the Engram binary",
            epilog=(
                "Environment: ENGRAM_REPO, INSTALL_DIR, ENGRAM_VERSION, "
                "ENGRAM_BASE_URL (overridden by flags)"
            ),
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        # Global options
        parser.add_argument(
            "--version", action="version", version=f"engram-installer {__version__}"
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
            help="Path to YAML configuration file",
        )

        # Release selection
        parser.add_argument(
            "--repo",
            metavar="OWNER/NAME",
            help="Repository to install from [default: lkubicek1/engram]",
        )
        parser.add_argument(
            "--release",
            "--version-tag",
            dest="release",
            metavar="VERSION",
            help="Release version (e.g. 2.4.0) or 'latest' [default: latest]",
        )
        parser.add_argument(
            "--base-url",
            metavar="URL",
            help="Release host root [default: https://github.com]",
        )
        parser.add_argument(
            "--install-dir",
            type=Path,
            metavar="PATH",
            help="Directory to install into [default: ~/.local/bin]",
        )

        # Platform overrides
        parser.add_argument(
            "--os",
            dest="target_os",
            metavar="OS",
            help="Override detected operating system (linux|darwin)",
        )
        parser.add_argument(
            "--arch",
            dest="target_arch",
            metavar="ARCH",
            help="Override detected architecture (x86_64|aarch64|arm64)",
        )

        # Backends
        parser.add_argument(
            "--transport",
            metavar="LIST",
            help="Comma-separated fetch backends in preference order "
            "[default: requests,curl,wget]",
        )
        parser.add_argument(
            "--digest",
            metavar="LIST",
            help="Comma-separated SHA-256 backends in preference order "
            "[default: hashlib,sha256sum,shasum]",
        )
        parser.add_argument(
            "--timeout",
            type=int,
            metavar="SECONDS",
            help="Network timeout for the requests backend [default: 60]",
        )

        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Resolve platform and URLs without downloading or installing",
        )

        return parser

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
            Exit code (0 for success, 1 for failure, 128+N for signal N)
        """
        parsed_args = self.parse_args(args)

        # Configure logging
        self._configure_logging(parsed_args)

        try:
            return self._run_install(parsed_args)
        except InstallInterrupted as e:
            logger.error(f"Error: {e}")
            return 128 + e.signum
        except KeyboardInterrupt:
            logger.error("Install cancelled by user")
            return 130
        except InstallerError as e:
            logger.error(f"Error: {e}")
            if parsed_args.verbose:
                import traceback

                traceback.print_exc()
            return 1
        except Exception as e:
            logger.error(f"Unexpected error: {e}")
            if parsed_args.verbose:
                import traceback

                traceback.print_exc()
            return 1

    def _run_install(self, args) -> int:
        """
        Load configuration and run (or plan) the install.

        Args:
            args: Parsed arguments

        Returns:
            Exit code
        """
        config = load_config(
            config_file=args.config,
            overrides={
                "repo": args.repo,
                "version": args.release,
                "base_url": args.base_url,
                "install_dir": args.install_dir,
                "transport": args.transport,
                "digest": args.digest,
                "timeout": args.timeout,
            },
        )
        logger.debug(f"Configuration: {config}")

        installer = EngramInstaller(config)

        if args.dry_run:
            plan = installer.plan(args.target_os, args.target_arch)
            logger.info(f"Platform:  {plan.platform}")
            logger.info(f"Asset:     {plan.asset.name}")
            logger.info(f"Checksums: {plan.asset.checksum_manifest_url}")
            logger.info(f"Binary:    {plan.asset.binary_url}")
            logger.info(f"Target:    {plan.install_path}")
            return 0

        result = installer.install(args.target_os, args.target_arch)

        logger.info("Try: engram --version")
        hint = path_hint(result.install_path.parent)
        if hint:
            logger.info(hint)

        return 0

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
            stream=sys.stderr,
            force=True,  # Reconfigure if already configured
        )


def main():
    """Main entry point for CLI."""
    cli = CLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
