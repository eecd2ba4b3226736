"""Command-line interface for the lsprig fixture server."""

from __future__ import annotations

import argparse
import dataclasses
import sys
from collections.abc import Sequence
from pathlib import Path

from lsprig.fixture.server import create_server
from lsprig.logging import configure_logging, get_logger

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclasses.dataclass(frozen=True)
class CliArgs:
    """Parsed fixture server options."""

    log_level: str
    log_file: Path | None
    debug: bool
    response_num: int | None = None
    progress_count: int | None = None


def _non_negative(text: str) -> int:
    value = int(text)
    if value < 0:
        raise argparse.ArgumentTypeError(f"expected a non-negative integer, got {value}")
    return value


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lsprig-fixture",
        description=(
            "Fixture language server for lsprig. Speaks LSP over stdio and "
            "answers every request with a canned response."
        ),
    )

    responses = parser.add_argument_group("responses")
    responses.add_argument(
        "--response-num",
        type=_non_negative,
        default=None,
        metavar="N",
        help="Response set used when the workspace has no response_num file",
    )
    responses.add_argument(
        "--progress-count",
        type=_non_negative,
        default=None,
        metavar="N",
        help="Progress cycles emitted when the workspace has no progress_count file",
    )

    logging_group = parser.add_argument_group("logging")
    logging_group.add_argument(
        "--log-level",
        choices=_LOG_LEVELS,
        default=None,
        help="Log level (default: WARNING, or DEBUG with --debug)",
    )
    logging_group.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Write logs here instead of stderr",
    )
    logging_group.add_argument(
        "-v",
        "--debug",
        action="store_true",
        help="Shorthand for --log-level DEBUG",
    )
    return parser


def parse_args(argv: Sequence[str] | None = None) -> CliArgs:
    """
    Parse fixture server options.

    Args:
        argv: Command-line arguments. If None, uses sys.argv[1:].

    Returns:
        The parsed options. An explicit ``--log-level`` wins over ``--debug``.
    """
    args = _build_parser().parse_args(argv)
    log_level = args.log_level or ("DEBUG" if args.debug else "WARNING")
    return CliArgs(
        log_level=log_level,
        log_file=args.log_file,
        debug=args.debug,
        response_num=args.response_num,
        progress_count=args.progress_count,
    )


def run(argv: Sequence[str] | None = None) -> int:
    """
    Serve on stdio until the client sends ``exit``.

    Returns:
        Process exit status: 0 on a clean stop or Ctrl-C, 1 on a fatal error.
    """
    args = parse_args(argv)
    configure_logging(level=args.log_level, log_file=args.log_file)
    logger = get_logger("fixture.main")
    logger.info("Starting lsprig fixture server")
    logger.debug("Options: %s", args)

    try:
        server = create_server(
            response_num=args.response_num,
            progress_count=args.progress_count,
        )
        server.start_io()
    except KeyboardInterrupt:
        logger.info("Fixture server interrupted")
    except Exception:
        logger.critical("Fatal error in fixture server", exc_info=True)
        return 1
    return 0


def main() -> None:
    """``lsprig-fixture`` console script."""
    sys.exit(run())
