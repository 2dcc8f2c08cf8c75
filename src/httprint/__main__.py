"""
=============================================================================
HTTPRINT CLI ENTRY POINT
=============================================================================

    httprint                    # Listen on 127.0.0.1:8000
    httprint 0.0.0.0:9000       # Listen on the given address
    httprint --help             # Print usage and exit

    python -m httprint          # Same, without the console script

Everything except the address comes from the environment, see
ServerConfig.from_env():

    HTTPRINT_LOG_LEVEL=DEBUG httprint

=============================================================================
OUTPUT STREAMS
=============================================================================

    stdout   "Listening at ..." and one report block per request
    stderr   one line per failed request, plus log records

So `httprint > requests.log` captures the requests and nothing else.

=============================================================================
"""

import argparse
import logging
import sys
from typing import List, Optional, TextIO

from .config import DEFAULT_ADDRESS, ServerConfig
from .errors import BindError
from .server import HTTPrintServer


DEFAULT_PROGRAM = "httprint"


def program_name(argv0: Optional[str]) -> str:
    """
    Name shown in the usage text: the last path segment of argv[0].

    Falls back to "httprint" when argv[0] is empty or is this module
    (python -m httprint).
    """
    name = (argv0 or "").split("/")[-1]
    if not name or name == "__main__.py":
        return DEFAULT_PROGRAM
    return name


def print_help(program: str, out: Optional[TextIO] = None):
    """Print the usage text."""
    out = out if out is not None else sys.stdout
    print(f"Usage: {program} [ADDRESS]\n", file=out)
    print(
        f"Parameters:\n  ADDRESS\tAddress to listen (default: {DEFAULT_ADDRESS})",
        file=out,
    )


def build_parser(program: str) -> argparse.ArgumentParser:
    """
    Argument parser for the one optional ADDRESS.

    Help is printed by print_help() rather than argparse, and unknown
    arguments are collected instead of rejected: any of them means "show
    usage", never an error exit.
    """
    parser = argparse.ArgumentParser(
        prog=program,
        add_help=False,
        allow_abbrev=False,
    )

    parser.add_argument("address", nargs="?", default=None)
    parser.add_argument("--help", action="store_true", dest="help")

    return parser


def setup_logging(config: ServerConfig, stream: Optional[TextIO] = None):
    """Configure logging based on config. Records go to stderr."""
    level = getattr(logging, config.log_level.upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=stream if stream is not None else sys.stderr,
    )
    logging.getLogger("httprint").setLevel(level)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Process exit code: 0 after help or a clean shutdown, 1 if the
        address could not be bound or the configuration is invalid.
    """
    if argv is None:
        argv = sys.argv

    program = program_name(argv[0] if argv else None)
    args, extra = build_parser(program).parse_known_args(argv[1:])

    if args.help or extra:
        print_help(program)
        return 0

    try:
        config = ServerConfig.from_env(address=args.address)
        config.validate()
    except ValueError as e:
        print(f"error: invalid configuration: {e}", file=sys.stderr)
        return 1

    setup_logging(config)

    try:
        HTTPrintServer(config).run()
    except BindError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        pass  # Ctrl+C, or a signal while a request was in progress

    return 0


# =============================================================================
# ENTRY POINT
# =============================================================================
# This allows running: python -m httprint

if __name__ == "__main__":
    sys.exit(main())
