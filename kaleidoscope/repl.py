"""
Command-line entry point for the Kaleidoscope JIT.

    kaleidoscope            interactive prompt on standard input
    kaleidoscope SCRIPT     run a script, stopping at the first error

Author: xwest
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

from .jit import ExecutionError, OrcJITEngine
from .session import Session, SessionConfig


def configure_logging(environ=None) -> None:
    """Send package logs to stderr at KALEIDOSCOPE_LOG_LEVEL, if set."""
    environ = os.environ if environ is None else environ
    level_name = environ.get("KALEIDOSCOPE_LOG_LEVEL")
    if not level_name:
        return

    level = logging.getLevelName(level_name.strip().upper())
    if not isinstance(level, int):
        level = logging.WARNING

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    logger = logging.getLogger("kaleidoscope")
    logger.addHandler(handler)
    logger.setLevel(level)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kaleidoscope",
        description="JIT-compiling interpreter for the Kaleidoscope language",
    )
    parser.add_argument("script", nargs="?", help="script to run instead of reading standard input")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    configure_logging()

    try:
        config = SessionConfig.from_env()
    except ValueError as e:
        print(f"kaleidoscope: {e}", file=sys.stderr)
        return 1

    stream = sys.stdin
    if args.script is not None:
        try:
            stream = open(args.script, "r", encoding="utf-8")
        except OSError as e:
            print(f"kaleidoscope: cannot open '{args.script}': {e.strerror}", file=sys.stderr)
            return 1

    try:
        with Session(OrcJITEngine(), config) as session:
            if args.script is None:
                return session.run(stream, interactive=True)
            return session.run(stream, interactive=False, filename=args.script)
    except ExecutionError as e:
        print(f"kaleidoscope: fatal: {e}", file=sys.stderr)
        return 1
    finally:
        if stream is not sys.stdin:
            stream.close()


if __name__ == "__main__":
    sys.exit(main())
