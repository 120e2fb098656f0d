# Copyright (C) 2019-2024 Intel Corporation
# SPDX-License-Identifier: BSD-3-Clause
"""
Command-line interface: preprocess one input file into one output file.
"""
from __future__ import annotations

import argparse
import logging
import sys

from macropass import __version__
from macropass.file_source import load_text, store_text
from macropass.preprocessor import Preprocessor, PreprocessorError

log = logging.getLogger("macropass")


class Formatter(logging.Formatter):
    """
    Prefix each message with its level, and indent continuation lines so
    that source excerpts line up beneath the message.
    """

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        prefix = f"{record.levelname.lower()}: "
        lines = message.splitlines() or [""]
        indent = " " * len(prefix)
        return prefix + ("\n" + indent).join(lines)


def _configure_logging(verbosity: int) -> None:
    """
    Configure logging for the macropass package.
    0 shows warnings, positive values show more, negative values less.
    """
    if verbosity >= 1:
        level = logging.DEBUG
    elif verbosity == 0:
        level = logging.WARNING
    else:
        level = logging.ERROR
    log.setLevel(level)

    if not any(isinstance(h.formatter, Formatter) for h in log.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(Formatter())
        log.addHandler(handler)
        log.propagate = False


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="macropass",
        description="A line-oriented #define/#undef/#include processor.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"macropass {__version__}",
    )
    parser.add_argument(
        "-i",
        "--input",
        metavar="<path>",
        required=True,
        help="Input file.",
    )
    parser.add_argument(
        "-o",
        "--output",
        metavar="<path>",
        required=True,
        help="Output file. Use '-' for stdout.",
    )
    parser.add_argument(
        "-I",
        "--include-path",
        dest="include_paths",
        metavar="<dir>",
        action="append",
        default=[],
        help="Directory searched for #include files. May be repeated.",
    )
    parser.add_argument(
        "-D",
        "--define",
        dest="defines",
        metavar="<name>[=<value>]",
        action="append",
        default=[],
        help="Define a macro before processing. May be repeated.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity level.",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="count",
        default=0,
        help="Decrease verbosity level.",
    )
    parser.add_argument(
        "--progress",
        action="store_true",
        help="Display a progress bar.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    _configure_logging(args.verbose - args.quiet)

    try:
        text = load_text(args.input)
    except OSError as e:
        log.error(f"Could not read '{args.input}': {e.strerror or e}")
        return 1
    except UnicodeDecodeError as e:
        log.error(f"Could not decode '{args.input}' as UTF-8: {e.reason}")
        return 1

    try:
        preprocessor = Preprocessor(
            include_paths=args.include_paths,
            defines=args.defines,
            show_progress=args.progress,
        )
    except ValueError as e:
        log.error(str(e))
        return 1

    try:
        output = preprocessor.run(text, filename=args.input)
    except PreprocessorError as e:
        log.error(f"{e.kind.value}: {e}")
        return 1

    try:
        store_text(args.output, output)
    except OSError as e:
        log.error(f"Could not write '{args.output}': {e.strerror or e}")
        return 1

    log.debug(repr(preprocessor))
    return 0


if __name__ == "__main__":
    sys.exit(main())
