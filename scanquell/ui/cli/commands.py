"""CLI command implementations.

This module provides the handlers behind the apply, undo and
generation-listing modes of the command line.
"""

import argparse
import sys

from scanquell.core.config import Config
from scanquell.core.logging_config import get_logger
from scanquell.core.models import ElevationRequiredError
from scanquell.core.orchestrator import SuppressionOrchestrator, create_orchestrator
from scanquell.core.snapshot import create_snapshot_store
from scanquell.system import create_accessors

from .formatters import JsonFormatter, TextFormatter

EXIT_OK = 0
EXIT_PRECONDITION_FAILED = 1


def _get_formatter(args: argparse.Namespace) -> TextFormatter | JsonFormatter:
    """Get the appropriate formatter based on args."""
    if getattr(args, "json", False):
        return JsonFormatter()
    return TextFormatter(verbose=getattr(args, "verbose", 0) > 0)


def _build_orchestrator(args: argparse.Namespace, config: Config) -> SuppressionOrchestrator:
    return create_orchestrator(config, dry_run=getattr(args, "dry_run", False))


def run_apply_command(args: argparse.Namespace, config: Config) -> int:
    """Execute the apply path.

    Args:
        args: Command-line arguments
        config: Configuration object

    Returns:
        Exit code (0 even when some resources failed)
    """
    logger = get_logger("main")
    orchestrator = _build_orchestrator(args, config)

    try:
        report = orchestrator.apply(
            clear_cache=args.clear_cache,
            deep_clean=args.deep_clean,
        )
    except ElevationRequiredError as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_PRECONDITION_FAILED

    print(_get_formatter(args).format_apply_report(report))
    return EXIT_OK


def run_undo_command(args: argparse.Namespace, config: Config) -> int:
    """Execute the undo path.

    Args:
        args: Command-line arguments
        config: Configuration object

    Returns:
        Exit code (0 even when some restores failed)
    """
    logger = get_logger("main")

    ignored = []
    if args.clear_cache:
        ignored.append("--clear-cache")
    if args.deep_clean:
        ignored.append("--deep-clean")
    if ignored:
        logger.warning(f"Ignoring {', '.join(ignored)} during --undo")

    orchestrator = _build_orchestrator(args, config)

    try:
        report = orchestrator.undo(generation=getattr(args, "generation", None))
    except ElevationRequiredError as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_PRECONDITION_FAILED

    print(_get_formatter(args).format_undo_report(report))
    return EXIT_OK


def run_list_generations_command(args: argparse.Namespace, config: Config) -> int:
    """List retained snapshot generations. Needs no elevation."""
    store = create_snapshot_store(config.snapshots_dir, create_accessors(dry_run=True))
    print(_get_formatter(args).format_generation_list(store.list_generations()))
    return EXIT_OK
