# Copyright (C) 2019-2024 Intel Corporation
# SPDX-License-Identifier: BSD-3-Clause
"""
Contains classes and functions for loading source text, splitting it into
numbered lines, and storing the transformed result.
"""
from __future__ import annotations

import logging
import os
import sys
from collections.abc import Generator
from dataclasses import dataclass

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceLine:
    """
    Represents a single physical line of the input text.
    """

    number: int
    text: str
    terminator: str = ""

    def __str__(self) -> str:
        return self.text


def _split_terminator(line: str) -> tuple[str, str]:
    if line.endswith("\r\n"):
        return line[:-2], "\r\n"
    if line.endswith("\n"):
        return line[:-1], "\n"
    return line, ""


def source_lines(text: str) -> Generator[SourceLine, None, int]:
    """
    Yield each line of `text` as a SourceLine, numbered from 1.
    Return the total number of lines at exit.

    Lines end at "\\n" or "\\r\\n" only. Other characters that
    str.splitlines() treats as boundaries (form feeds, "\\u2028", a lone
    "\\r", ...) are part of the line text.
    """
    number = 0
    start = 0
    while start < len(text):
        end = text.find("\n", start)
        end = len(text) if end == -1 else end + 1
        number += 1
        content, terminator = _split_terminator(text[start:end])
        yield SourceLine(number, content, terminator)
        start = end
    return number


def load_text(path: str | os.PathLike[str]) -> str:
    """
    Read the whole of `path` as UTF-8 text, preserving line terminators.
    """
    log.debug(f"Loading {path}")
    with open(path, encoding="utf-8", newline="") as f:
        return f.read()


def store_text(path: str | os.PathLike[str], text: str) -> None:
    """
    Write `text` to `path` as UTF-8. A path of "-" writes to stdout.
    """
    if str(path) == "-":
        sys.stdout.write(text)
        sys.stdout.flush()
        return

    log.debug(f"Storing {path}")
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(text)
