# File: schemasync/cli.py
"""
SchemaSync - Command-Line Interface
=====================================

Built on the standard-library ``argparse`` module.

Usage examples::

    # Sync the dev database into ./database
    schemasync

    # Explicit environment and output directory, verbose
    schemasync prod ./src/database -v

    # Show what would be generated without writing anything
    schemasync --dry-run -v

    # Offline generation from a saved snapshot, overwriting manual edits
    schemasync dev ./database --snapshot-file snapshot.json --overwrite

    # Keep a copy of the introspected schema
    schemasync dev ./database --save-snapshot snapshot.json

Connection parameters come from ``DB_HOST``, ``DB_PORT``, ``DB_USER``,
``DB_PASSWORD`` and ``DB_NAME``; the environment name from the first
positional argument, else ``SCHEMASYNC_ENV``, else ``dev``.

Exit codes:
    0 — success
    1 — failure (including argument and configuration errors)
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from pydantic import ValidationError

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("schemasync")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_FAILURE: int = 1

ENV_VARIABLE: str = "SCHEMASYNC_ENV"
DEFAULT_ENVIRONMENT: str = "dev"
DEFAULT_OUTPUT_DIR: str = "database"


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the ``schemasync`` logger based on verbosity level.

    Args:
        verbosity: -1 = silent, 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    elif verbosity == 0:
        level = logging.WARNING
    else:
        level = logging.CRITICAL + 1

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    fmt: str = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
    datefmt: str = "%H:%M:%S"
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root_logger: logging.Logger = logging.getLogger("schemasync")
    root_logger.setLevel(level)

    # Remove existing handlers to prevent duplication
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    from schemasync import __version__

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="schemasync",
        description=(
            "SchemaSync — database-driven data-access code generator.\n\n"
            "Introspects a MySQL schema and (re)generates SQLAlchemy entities, "
            "repositories and stored-routine files, preserving hand-written "
            "additions and never deleting files of dropped tables."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s\n"
            "  %(prog)s prod ./src/database -v\n"
            "  %(prog)s --dry-run\n"
            "  %(prog)s dev ./database --snapshot-file snapshot.json\n"
        ),
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"SchemaSync v{__version__}",
    )

    # --- Positionals ---
    parser.add_argument(
        "environment",
        nargs="?",
        default=None,
        help=f"Environment name (default: ${ENV_VARIABLE}, else '{DEFAULT_ENVIRONMENT}').",
    )
    parser.add_argument(
        "output_base_dir",
        nargs="?",
        default=DEFAULT_OUTPUT_DIR,
        metavar="outputBaseDir",
        help=f"Root of the generated tree (default: '{DEFAULT_OUTPUT_DIR}').",
    )

    # --- Pipeline switches ---
    pipeline_group = parser.add_argument_group("pipeline")
    pipeline_group.add_argument(
        "--no-backup",
        action="store_true",
        default=False,
        help="Do not back up the output directories before writing.",
    )
    pipeline_group.add_argument(
        "--overwrite",
        action="store_true",
        default=False,
        help="Regenerate entities without merging hand-written relations.",
    )
    pipeline_group.add_argument(
        "--skip-entities",
        action="store_true",
        default=False,
        help="Do not generate entity modules.",
    )
    pipeline_group.add_argument(
        "--skip-repositories",
        action="store_true",
        default=False,
        help="Do not generate repository modules.",
    )
    pipeline_group.add_argument(
        "--skip-procedures",
        action="store_true",
        default=False,
        help="Do not extract stored procedures and functions.",
    )
    pipeline_group.add_argument(
        "--procedure-repositories",
        action="store_true",
        default=False,
        help="Write call wrappers for stored procedures, one module per domain.",
    )
    pipeline_group.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Introspect and print the plan; write nothing.",
    )

    # --- Code style ---
    style_group = parser.add_argument_group("code style")
    style_group.add_argument(
        "--no-comments",
        action="store_true",
        default=False,
        help="Leave table/column comments and routine headers out.",
    )
    style_group.add_argument(
        "--no-relations",
        action="store_true",
        default=False,
        help="Do not derive relationship() attributes from foreign keys.",
    )
    style_group.add_argument(
        "--naming",
        choices=["snake_case", "camelCase"],
        default="snake_case",
        help="Attribute naming convention (default: snake_case).",
    )

    # --- Snapshot ---
    snapshot_group = parser.add_argument_group("snapshot")
    snapshot_group.add_argument(
        "--snapshot-file",
        type=str,
        default=None,
        metavar="PATH",
        help="Read the schema from a JSON/YAML snapshot instead of the database.",
    )
    snapshot_group.add_argument(
        "--save-snapshot",
        type=str,
        default=None,
        metavar="PATH",
        help="Write the introspected schema to PATH as JSON (plus a summary).",
    )
    snapshot_group.add_argument(
        "--workers",
        type=int,
        default=1,
        metavar="N",
        help="Parallel catalog reads (default: 1).",
    )

    # --- Verbosity ---
    verbosity_group = parser.add_argument_group("verbosity")
    verbosity_group.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for INFO, -vv for DEBUG).",
    )
    verbosity_group.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Suppress log output.",
    )

    return parser


# ---------------------------------------------------------------------------
# Options builder
# ---------------------------------------------------------------------------


def resolve_environment(value: Optional[str], environ: Optional[dict] = None) -> str:
    """Positional value, else ``$SCHEMASYNC_ENV``, else ``dev``."""
    if value:
        return value
    environ = os.environ if environ is None else environ
    return environ.get(ENV_VARIABLE) or DEFAULT_ENVIRONMENT


def build_options(args: argparse.Namespace):
    """Translate parsed arguments into ``SyncOptions``."""
    from schemasync.models import SyncOptions

    return SyncOptions(
        environment=resolve_environment(args.environment),
        output_base_dir=Path(args.output_base_dir),
        backup=not args.no_backup,
        overwrite=args.overwrite,
        skip_entities=args.skip_entities,
        skip_repositories=args.skip_repositories,
        skip_procedures=args.skip_procedures,
        generate_procedure_repositories=args.procedure_repositories,
        generate_comments=not args.no_comments,
        generate_relations=not args.no_relations,
        dry_run=args.dry_run,
        naming_convention=args.naming,
        introspection_workers=args.workers,
        snapshot_file=Path(args.snapshot_file) if args.snapshot_file else None,
        save_snapshot=Path(args.save_snapshot) if args.save_snapshot else None,
    )


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns the process exit code; ``__main__`` and the console script
    pass it to ``sys.exit``.
    """
    from schemasync.models import DatabaseConfig
    from schemasync.orchestrator import SyncOrchestrator, SyncReport

    parser: argparse.ArgumentParser = _build_parser()
    try:
        args: argparse.Namespace = parser.parse_args(argv)
    except SystemExit as exc:
        # --help / --version exit 0; usage errors must map to EXIT_FAILURE
        return EXIT_SUCCESS if exc.code in (0, None) else EXIT_FAILURE

    _setup_logging(-1 if args.quiet else args.verbose)

    try:
        options = build_options(args)
        config: Optional[DatabaseConfig] = (
            None if options.snapshot_file is not None else DatabaseConfig.from_env()
        )
    except (ValidationError, ValueError) as exc:
        logger.error("Invalid configuration: %s", exc)
        print(f"❌ Invalid configuration: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    logger.info("Environment: %s", options.environment)
    logger.info("Output:      %s", options.output_base_dir)
    if config is not None:
        logger.info("Database:    %s", config.describe())
    else:
        logger.info("Snapshot:    %s", options.snapshot_file)

    report: SyncReport = SyncOrchestrator(options, config=config).run()
    print(report.summary())

    if report.success:
        logger.info("Sync completed successfully.")
        return EXIT_SUCCESS
    logger.error("Sync failed: %s", report.errors[0] if report.errors else "unknown error")
    return EXIT_FAILURE


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "main",
    "build_options",
    "resolve_environment",
    "EXIT_SUCCESS",
    "EXIT_FAILURE",
]

logger.debug("schemasync.cli loaded.")
