#!/usr/bin/env python3
"""ScanQuell - stop game-library discovery scans.

Entry point for the command-line interface.
"""

import argparse
import logging
import sys
from pathlib import Path

from scanquell import __version__
from scanquell.core.config import get_config_path, load_config, save_config
from scanquell.core.logging_config import get_logger, setup_logging
from scanquell.ui.cli.commands import (
    run_apply_command,
    run_list_generations_command,
    run_undo_command,
)


def create_argument_parser() -> argparse.ArgumentParser:
    """Create the command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog="scanquelld",
        description=(
            "Suppress automatic game-library discovery while keeping "
            "Gaming Services working. Every change is snapshotted and "
            "can be reversed with --undo."
        ),
        epilog="Run from an elevated (Administrator) prompt.",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "--undo",
        action="store_true",
        help="Restore the settings saved by the most recent apply",
    )

    parser.add_argument(
        "--clear-cache",
        action="store_true",
        help="Also delete cached discovery files (cannot be undone)",
    )

    parser.add_argument(
        "--deep-clean",
        action="store_true",
        help="Also set live-presence and telemetry services to Manual and stop them",
    )

    parser.add_argument(
        "--generation",
        metavar="NAME",
        help="With --undo, restore this snapshot generation instead of the latest",
    )

    parser.add_argument(
        "--list-generations",
        action="store_true",
        help="List saved snapshot generations and exit",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log what would change without changing it",
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Output the report as JSON",
    )

    parser.add_argument(
        "--config",
        type=Path,
        help="Path to configuration file",
    )

    parser.add_argument(
        "--verbose", "-v",
        action="count",
        default=0,
        help="Increase verbosity (use -vv for debug)",
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress console log output",
    )

    return parser


def get_log_level(verbose: int) -> int:
    """Get logging level from verbosity count."""
    if verbose >= 2:
        return logging.DEBUG
    elif verbose >= 1:
        return logging.INFO
    return logging.WARNING


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if args.generation and not args.undo:
        parser.error("--generation can only be used with --undo")

    config_path = get_config_path(args.config)
    config = load_config(config_path)
    if not config_path.exists():
        # First run: write the defaults out so the target lists can be edited
        save_config(config, config_path)

    setup_logging(
        config.logs_dir,
        log_level=get_log_level(args.verbose),
        console_output=not args.quiet,
    )
    config.ensure_directories()

    logger = get_logger("main")
    logger.debug(f"Snapshots directory: {config.snapshots_dir}")

    if args.list_generations:
        return run_list_generations_command(args, config)
    if args.undo:
        return run_undo_command(args, config)
    return run_apply_command(args, config)


if __name__ == "__main__":
    sys.exit(main())
