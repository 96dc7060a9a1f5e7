# File: crudgen/cli.py
"""
CrudGen - Command-Line Interface
=================================

Standard-library ``argparse`` CLI with two subcommands.

Usage examples::

    # Column mode: one message per table of the connected schema
    crudgen api --service user --dsn "mysql+pymysql://u:p@host/db" --dir ./api

    # Only two tables, insert and query endpoints
    crudgen api -s user --dsn "$DSN" --tables user,user_auth --crud insert,query

    # Custom types from the service definition file as well
    crudgen api -s user --with-proto --proto ./rpc/proto/user.proto

    # Logic skeletons, one directory per service
    crudgen logic -s user --logic-dir internal/logic --multiple

    # Settings from a file, flags win
    crudgen --config crudgen.yaml api -v

Exit codes:
    0 — success
    1 — validation error
    2 — generation error
    3 — I/O error
    4 — input/argument error
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, NoReturn, Optional, Sequence

from crudgen.exceptions import ConfigError
from crudgen.generator import (
    ArtifactGenerator,
    GenerationReport,
    build_config,
    load_config_file,
)
from crudgen.introspection import MySQLSchemaSource
from crudgen.models import GenerationConfig, NamingFormat

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_VALIDATION_ERROR: int = 1
EXIT_GENERATION_ERROR: int = 2
EXIT_IO_ERROR: int = 3
EXIT_INPUT_ERROR: int = 4


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the root crudgen logger based on verbosity level.

    Args:
        verbosity: 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    fmt: str = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
    datefmt: str = "%H:%M:%S"
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root_logger: logging.Logger = logging.getLogger("crudgen")
    root_logger.setLevel(level)

    # Remove existing handlers to prevent duplication
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-s", "--service",
        dest="service_name",
        type=str,
        default=None,
        metavar="NAME",
        help="Service name (artifact file names, service block, proto path).",
    )
    parser.add_argument(
        "--dsn",
        type=str,
        default=None,
        metavar="URL",
        help="SQLAlchemy database URL (falls back to $CRUDGEN_DSN).",
    )
    parser.add_argument(
        "--proto",
        dest="proto_file",
        type=str,
        default=None,
        metavar="PATH",
        help="Service definition file (default ./rpc/proto/<service>.proto).",
    )

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
        help="Suppress all output except errors.",
    )


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    from crudgen import __version__

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="crudgen",
        description=(
            "CrudGen — CRUD interface definition generator.\n\n"
            "Derives REST parameter/service .api files from a MySQL schema "
            "and a .proto file, merging into existing files without touching "
            "hand-written content, and scaffolds rpc logic skeletons."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s api -s user --dsn mysql+pymysql://u:p@host/db\n"
            "  %(prog)s api -s user --with-proto --crud insert,query\n"
            "  %(prog)s logic -s user --multiple\n"
        ),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"CrudGen v{__version__}",
    )
    parser.add_argument(
        "-c", "--config",
        type=str,
        default=None,
        metavar="PATH",
        help="Settings file (YAML or JSON); command-line flags take precedence.",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    # --- api ---
    api_parser = subparsers.add_parser(
        "api",
        help="Create or merge <service>Param.api and <service>.api.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    _add_common_arguments(api_parser)
    api_group = api_parser.add_argument_group("artifact options")
    api_group.add_argument(
        "-d", "--dir",
        type=str,
        default=None,
        metavar="DIR",
        help="Directory holding the .api files (default: current directory).",
    )
    api_group.add_argument(
        "-t", "--tables",
        type=str,
        default=None,
        metavar="LIST",
        help="Comma-separated tables to introspect, or '*' for all.",
    )
    api_group.add_argument(
        "--ignore-tables",
        type=str,
        default=None,
        metavar="LIST",
        help="Comma-separated tables to leave out.",
    )
    api_group.add_argument(
        "--crud",
        dest="crud_methods",
        type=str,
        default=None,
        metavar="LIST",
        help="Endpoints to emit: insert,update,query (default: query).",
    )
    api_group.add_argument(
        "--with-proto",
        dest="with_proto_types",
        action="store_true",
        default=None,
        help="Add the messages of the definition file as custom types.",
    )
    api_group.add_argument(
        "--fail-on-warnings",
        action="store_true",
        default=False,
        help="Treat validation warnings as errors.",
    )

    # --- logic ---
    logic_parser = subparsers.add_parser(
        "logic",
        help="Write rpc logic skeletons for the definition file.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    _add_common_arguments(logic_parser)
    logic_group = logic_parser.add_argument_group("logic options")
    logic_group.add_argument(
        "--logic-dir",
        type=str,
        default=None,
        metavar="DIR",
        help="Output directory for logic files (default internal/logic).",
    )
    logic_group.add_argument(
        "--svc-package",
        type=str,
        default=None,
        metavar="PKG",
        help="Import path of the service context package (default internal/svc).",
    )
    logic_group.add_argument(
        "--naming-format",
        type=str,
        default=None,
        choices=[n.value for n in NamingFormat],
        help="Logic file naming style.",
    )
    logic_group.add_argument(
        "--multiple",
        action="store_true",
        default=None,
        help="One logic package per service.",
    )

    return parser


# ---------------------------------------------------------------------------
# Config builder
# ---------------------------------------------------------------------------


def _build_config_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Build a config override dictionary from CLI arguments."""
    names: List[str] = [
        "service_name",
        "dsn",
        "proto_file",
        "dir",
        "tables",
        "ignore_tables",
        "crud_methods",
        "with_proto_types",
        "logic_dir",
        "svc_package",
        "naming_format",
        "multiple",
    ]
    return {
        name: getattr(args, name)
        for name in names
        if getattr(args, name, None) is not None
    }


def _load_config(args: argparse.Namespace) -> GenerationConfig:
    raw: Dict[str, Any] = {}
    if args.config is not None:
        raw = load_config_file(Path(args.config))
    return build_config(raw, _build_config_overrides(args))


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------


def _exit_code_for(report: GenerationReport) -> int:
    if report.success:
        return EXIT_SUCCESS
    if report.validation_errors:
        return EXIT_VALIDATION_ERROR
    if report.io_errors:
        return EXIT_IO_ERROR
    return EXIT_GENERATION_ERROR


def _run_api(config: GenerationConfig, args: argparse.Namespace) -> int:
    generator: ArtifactGenerator = ArtifactGenerator(
        fail_on_warnings=args.fail_on_warnings
    )

    if config.dsn:
        logger.info("Column mode against %s.", config.dsn.split("@")[-1])
        with MySQLSchemaSource.from_url(config.dsn) as source:
            report: GenerationReport = generator.generate(config, source=source)
    else:
        report = generator.generate(config)

    print(report.summary())
    return _exit_code_for(report)


def _run_logic(config: GenerationConfig) -> int:
    generator: ArtifactGenerator = ArtifactGenerator()

    if config.dsn:
        with MySQLSchemaSource.from_url(config.dsn) as source:
            report: GenerationReport = generator.generate_logic(config, source=source)
    else:
        logger.info("No database URL; primary keys default to Id.")
        report = generator.generate_logic(config)

    print(report.summary())
    return _exit_code_for(report)


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Main CLI entry point.

    Can be called from ``__main__.py`` or directly for testing.

    Args:
        argv: Optional argument list (defaults to sys.argv[1:]).
    """
    parser: argparse.ArgumentParser = _build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    # --- Verbosity ---
    if args.quiet:
        verbosity: int = -1
    else:
        verbosity = args.verbose
    _setup_logging(verbosity)
    if args.quiet:
        logging.getLogger("crudgen").setLevel(logging.ERROR)

    # --- Configuration ---
    try:
        config: GenerationConfig = _load_config(args)
    except ConfigError as exc:
        logger.error("%s", exc)
        sys.exit(EXIT_INPUT_ERROR)

    needs_proto: bool = args.command == "logic" or config.with_proto_types
    if needs_proto and not Path(config.resolved_proto_file).is_file():
        logger.error("Definition file not found: %s", config.resolved_proto_file)
        sys.exit(EXIT_INPUT_ERROR)

    logger.info("Service: %s", config.service_name)
    logger.info("Command: %s", args.command)

    if args.command == "api":
        exit_code: int = _run_api(config, args)
    else:
        exit_code = _run_logic(config)

    if exit_code == EXIT_SUCCESS:
        logger.info("Generation completed successfully.")
    else:
        logger.error("Generation failed with exit code %d.", exit_code)

    sys.exit(exit_code)


def main() -> None:
    """Console-script entry point."""
    cli_main()


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "cli_main",
    "main",
    "EXIT_SUCCESS",
    "EXIT_VALIDATION_ERROR",
    "EXIT_GENERATION_ERROR",
    "EXIT_IO_ERROR",
    "EXIT_INPUT_ERROR",
]

logger.debug("crudgen.cli loaded.")
