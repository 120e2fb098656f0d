# Copyright (C) 2019-2024 Intel Corporation
# SPDX-License-Identifier: BSD-3-Clause
"""
Contains classes that define:
- Errors raised while processing directives
- Directives recognized in a line of text
- The expander applying substitutions to body lines
- The preprocessor driving a single pass over the input
"""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, ClassVar

from tqdm import tqdm

from macropass.file_source import SourceLine, source_lines
from macropass.macro_table import MacroTable

log = logging.getLogger(__name__)

MARKER = "#"


def _representation_string(
    obj: Any,
    *,
    name: str | None = None,
    attrs: list[str] | None = None,
) -> str:
    """
    Helper function to build representation strings of the form:
    Name(attribute={attribute!r},...)
    """
    if not name:
        name = obj.__class__.__name__
    if not attrs:
        attrs = obj.__dict__
    properties = ",".join(f"{a}={getattr(obj, a)!r}" for a in attrs)
    return f"{name}({properties})"


class ErrorKind(Enum):
    EMPTY_DIRECTIVE = "empty directive"
    INVALID_INCLUDE = "invalid include"
    UNRECOGNIZED_DIRECTIVE = "unrecognized directive"


class PreprocessorError(ValueError):
    """
    Represents an error that aborts a preprocessor run.
    """

    kind: ClassVar[ErrorKind]

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
        self.filename: str | None = None
        self.line: int | None = None
        self.spelling: str | None = None

    def locate(self, filename: str | None, line: SourceLine) -> None:
        """
        Attach the location of the offending line to this error.
        """
        self.filename = filename
        self.line = line.number
        self.spelling = line.text

    def __str__(self) -> str:
        if self.line is None:
            return self.message
        location = f"{self.filename}:" if self.filename else ""
        return (
            f"{location}{self.line}: {self.message}\n"
            + f"{self.line:>5} | {self.spelling}"
        )


class EmptyDirectiveError(PreprocessorError):
    """
    Represents a directive with nothing after the marker, or a directive
    missing a required operand.
    """

    kind = ErrorKind.EMPTY_DIRECTIVE


class InvalidIncludeError(PreprocessorError):
    """
    Represents an #include naming a file that cannot be opened.
    """

    kind = ErrorKind.INVALID_INCLUDE

    def __init__(self, message: str, path: str) -> None:
        super().__init__(message)
        self.path = path


class UnrecognizedDirectiveError(PreprocessorError):
    """
    Represents a directive keyword that is not supported.
    """

    kind = ErrorKind.UNRECOGNIZED_DIRECTIVE

    def __init__(self, message: str, keyword: str) -> None:
        super().__init__(message)
        self.keyword = keyword


def is_directive(line: str) -> bool:
    """
    Return True if `line` starts with the directive marker.
    """
    return line.startswith(MARKER)


def tokenize(line: str) -> list[str]:
    """
    Return the whitespace-separated tokens of a directive line.
    The first token holds both the marker and the keyword.
    """
    return line.split()


class DirectiveKind(Enum):
    DEFINE = "define"
    UNDEF = "undef"
    INCLUDE = "include"
    REGION = "region"
    ENDREGION = "endregion"
    UNRECOGNIZED = None

    @classmethod
    def from_keyword(cls, keyword: str) -> DirectiveKind:
        try:
            return cls(keyword)
        except ValueError:
            return cls.UNRECOGNIZED


@dataclass(frozen=True)
class Macro:
    """
    Represents a macro definition.
    A macro without replacement text is a flag.
    """

    name: str
    replacement: str | None = None

    def is_flag(self) -> bool:
        return self.replacement is None

    def spelling(self) -> list[str]:
        """
        Return (a list containing) a string of the form accepted by
        macro_from_definition_string.
        """
        if self.replacement is None:
            return [self.name]
        return [f"{self.name}={self.replacement}"]


def macro_from_definition_string(string: str) -> Macro:
    """
    Construct a Macro by parsing a string of the form MACRO or
    MACRO=expansion. Whitespace in the expansion is collapsed to single
    spaces, as it would be in a #define.
    """
    name, sep, value = string.partition("=")
    name = name.strip()
    if not name or any(c.isspace() for c in name):
        raise ValueError(f"Invalid macro definition: {string!r}")

    replacement = " ".join(value.split())
    if not sep or not replacement:
        return Macro(name)
    return Macro(name, replacement)


class IncludePath:
    """
    Represents an include path enclosed by "" or <>
    """

    def __init__(self, path: str, system: bool):
        self.path = path
        self.system = system

    @classmethod
    def from_token(cls, token: str) -> IncludePath:
        """
        Construct an IncludePath by stripping the first and last
        characters of `token`.
        """
        if len(token) < 2:
            raise InvalidIncludeError(f"Invalid include path: {token}", token)
        if (token[0], token[-1]) not in [('"', '"'), ("<", ">")]:
            log.warning(f"Unusual include delimiters: {token}")
        return cls(token[1:-1], system=token[0] == "<")

    def __repr__(self) -> str:
        return _representation_string(self)

    def spelling(self) -> list[str]:
        """
        Return the string representation of this path in the input code.
        Useful primarily for debugging and generating error messages.
        """
        if self.system:
            return [f"<{self.path!s}>"]
        return [f'"{self.path!s}"']


@dataclass(eq=False)
class Directive:
    """
    Base class for all directives.
    Contains the tokens of the directive line.
    """

    tokens: list[str]

    kind: ClassVar[DirectiveKind]

    def spelling(self) -> list[str]:
        """
        Recover the spelling of this directive, with whitespace normalized.
        """
        return [" ".join(self.tokens)]

    def operand(self, what: str) -> str:
        """
        Return the token following the keyword, or raise an
        EmptyDirectiveError naming `what` was expected.
        """
        if not self.tokens:
            raise EmptyDirectiveError("Empty directive encountered!")
        if len(self.tokens) < 2:
            raise EmptyDirectiveError(
                f"Expected {what} after {self.tokens[0]}.",
            )
        return self.tokens[1]

    def warn_extra_tokens(self) -> None:
        if len(self.tokens) > 2:
            extra = " ".join(self.tokens[2:])
            log.warning(f"Additional tokens at end of directive: {extra}")

    def evaluate(self, preprocessor: Preprocessor) -> None:
        """
        Apply this directive to the state of `preprocessor`.
        Does nothing by default.
        """


@dataclass(eq=False)
class DefineDirective(Directive):
    """
    Represents a #define directive.
    """

    kind = DirectiveKind.DEFINE

    def evaluate(self, preprocessor: Preprocessor) -> None:
        """
        Add a flag or a substitution into the preprocessor.
        """
        name = self.operand("a macro name")
        if len(self.tokens) == 2:
            macro = Macro(name)
        else:
            macro = Macro(name, " ".join(self.tokens[2:]))
        preprocessor.define(macro)


@dataclass(eq=False)
class UndefDirective(Directive):
    """
    Represents an #undef directive.
    """

    kind = DirectiveKind.UNDEF

    def evaluate(self, preprocessor: Preprocessor) -> None:
        """
        Remove a flag from the preprocessor.
        """
        name = self.operand("a macro name")
        self.warn_extra_tokens()
        preprocessor.undefine(name)


@dataclass(eq=False)
class IncludeDirective(Directive):
    """
    Represents an #include directive.
    The included file is validated and recorded, never expanded.
    """

    kind = DirectiveKind.INCLUDE

    def evaluate(self, preprocessor: Preprocessor) -> None:
        path = IncludePath.from_token(self.operand("an include path"))
        self.warn_extra_tokens()
        preprocessor.include(path)


@dataclass(eq=False)
class RegionDirective(Directive):
    """
    Represents a #region marker.
    """

    kind = DirectiveKind.REGION


@dataclass(eq=False)
class EndRegionDirective(RegionDirective):
    """
    Represents an #endregion marker.
    """

    kind = DirectiveKind.ENDREGION


@dataclass(eq=False)
class UnrecognizedDirective(Directive):
    """
    Represents an unrecognized directive.
    """

    kind = DirectiveKind.UNRECOGNIZED

    def evaluate(self, preprocessor: Preprocessor) -> None:
        raise UnrecognizedDirectiveError(
            f"Not supported directive found! {self.tokens[0]}",
            self.tokens[0],
        )


class DirectiveParser:
    """
    Recognizes the directive named by the first token of a line.
    """

    def __init__(self, tokens: list[str]) -> None:
        self.tokens = tokens

    def keyword(self) -> str:
        """
        Return the keyword following the marker in the first token.
        """
        return self.tokens[0][len(MARKER) :]

    def parse(self) -> Directive:
        """
        Parse a directive.
        Return a Directive, or raise an EmptyDirectiveError if there is
        nothing following the marker.

        <directive> := '#'[<define>|<undef>|<include>|<region>|<endregion>]
        """
        if not self.tokens or self.tokens == [MARKER]:
            raise EmptyDirectiveError("Empty directive encountered!")

        kind = DirectiveKind.from_keyword(self.keyword())
        if kind is DirectiveKind.DEFINE:
            return DefineDirective(self.tokens)
        elif kind is DirectiveKind.UNDEF:
            return UndefDirective(self.tokens)
        elif kind is DirectiveKind.INCLUDE:
            return IncludeDirective(self.tokens)
        elif kind is DirectiveKind.REGION:
            return RegionDirective(self.tokens)
        elif kind is DirectiveKind.ENDREGION:
            return EndRegionDirective(self.tokens)
        else:
            return UnrecognizedDirective(self.tokens)


class MacroExpander:
    """
    Applies the substitutions of a MacroTable to body lines.

    Each line is scanned once: replacement text is never rescanned, so a
    replacement naming another macro is emitted as written.
    """

    def __init__(self, macros: MacroTable) -> None:
        self.macros = macros

    def __replace(self, match: re.Match[str]) -> str:
        replacement = self.macros.get_replacement(match.group(0))
        if replacement is None:
            raise RuntimeError(f"No replacement for '{match.group(0)}'")
        return replacement

    def expand(self, line: str) -> str:
        """
        Return `line` with every whole-token occurrence of a substitution
        name replaced.
        """
        pattern = self.macros.pattern()
        if pattern is None:
            return line
        return pattern.sub(self.__replace, line)


class RunState(Enum):
    SCANNING = 0
    DONE = 1
    ABORTED = 2


class Preprocessor:
    """
    Represents a specific instance of a preprocessor, including:
    - Active macro definitions
    - Include files that have been validated
    - The state of its single pass over the input
    """

    def __init__(
        self,
        *,
        include_paths: list[str | os.PathLike[str]] | None = None,
        defines: list[str] | None = None,
        show_progress: bool = False,
    ) -> None:
        self._include_paths: list[Path]
        if include_paths is None:
            self._include_paths = []
        elif not isinstance(include_paths, list) or not all(
            [isinstance(p, (str, os.PathLike)) for p in include_paths],
        ):
            raise TypeError(
                "Each path in 'include_paths' must be PathLike.",
            )
        else:
            self._include_paths = [Path(p) for p in include_paths]

        self._macros = MacroTable()
        if defines is None:
            pass
        elif not isinstance(defines, list) or not all(
            [isinstance(d, str) for d in defines],
        ):
            raise TypeError("'defines' must be a list of strings.")
        else:
            for definition in defines:
                self.define(macro_from_definition_string(definition))

        if not isinstance(show_progress, bool):
            raise TypeError("'show_progress' must be a bool.")
        self.show_progress = show_progress

        self._includes: set[str] = set()
        self._found_incl: dict[str, str | None] = {}
        self._expander = MacroExpander(self._macros)
        self.filename: str | None = None
        self.state = RunState.SCANNING

    def __repr__(self) -> str:
        return _representation_string(
            self,
            attrs=["state", "_macros", "_includes"],
        )

    @property
    def macros(self) -> MacroTable:
        return self._macros

    @property
    def includes(self) -> frozenset[str]:
        return frozenset(self._includes)

    def define(self, macro: Macro) -> None:
        """
        Define a macro, as if the preprocessor encountered #define.
        A flag replaces a substitution of the same name and vice versa.

        Parameters
        ----------
        macro: Macro
            The macro to define.
        """
        if macro.replacement is None:
            log.debug(f"Defining flag {macro.name}")
            self._macros.define_flag(macro.name)
            return

        previous = self._macros.get_replacement(macro.name)
        if previous is not None and previous != macro.replacement:
            log.warning(
                f"Redefining '{macro.name}' from '{previous}' "
                + f"to '{macro.replacement}'",
            )
        log.debug(f"Defining {macro.spelling()[0]}")
        self._macros.define_substitution(macro.name, macro.replacement)

    def undefine(self, name: str) -> None:
        """
        Undefine a previously defined flag.

        Parameters
        ----------
        name: str
            The name of the macro.
        """
        if self._macros.get_replacement(name) is not None:
            log.debug(f"#undef {name} leaves its substitution in place")
        self._macros.undefine(name)

    def get_macro(self, name: str) -> Macro | None:
        """
        Returns
        -------
        Macro | None
            The macro associated with `name`, or None.
        """
        if self._macros.is_flag(name):
            return Macro(name)
        replacement = self._macros.get_replacement(name)
        if replacement is not None:
            return Macro(name, replacement)
        return None

    def has_macro(self, name: str) -> bool:
        """
        Returns
        -------
        bool
            True if `name` is defined and False otherwise.
        """
        return self.get_macro(name) is not None

    def find_include_file(self, filename: str) -> str | None:
        """
        Determine and return the full path to `filename`.

        Parameters
        ----------
        filename: str
            The name of the include file to find. It is tried as given
            first, then relative to each include path in order.

        Returns
        -------
        str | None
            The full path to `filename` if it can be opened and `None`
            otherwise.
        """
        if filename in self._found_incl:
            return self._found_incl[filename]

        candidates = [Path(filename)]
        if filename and not os.path.isabs(filename):
            candidates += [path / filename for path in self._include_paths]

        for test_path in candidates:
            if test_path.is_file() and os.access(test_path, os.R_OK):
                include_file = os.path.abspath(test_path)
                self._found_incl[filename] = include_file
                return include_file

        self._found_incl[filename] = None
        return None

    def include(self, path: IncludePath) -> None:
        """
        Validate and record an include file, as if the preprocessor
        encountered #include.

        Raises
        ------
        InvalidIncludeError
            If the file cannot be found.
        """
        include_file = self.find_include_file(path.path)
        if include_file is None:
            raise InvalidIncludeError(
                f"Tried to include non-existent file {path.spelling()[0]}",
                path.path,
            )
        log.debug(f"Including {path.spelling()[0]} ({include_file})")
        self._includes.add(path.path)

    def _process_line(self, line: SourceLine) -> str:
        """
        Process a single line and return its contribution to the output.
        """
        if not is_directive(line.text):
            return self._expander.expand(line.text) + line.terminator

        try:
            directive = DirectiveParser(tokenize(line.text)).parse()
            directive.evaluate(self)
        except PreprocessorError as e:
            e.locate(self.filename, line)
            raise
        return ""

    def run(self, text: str, *, filename: str | None = None) -> str:
        """
        Process every line of `text` in order and return the output.

        Parameters
        ----------
        text: str
            The complete input.

        filename: str, optional
            The name of the input, used in diagnostics.

        Raises
        ------
        PreprocessorError
            If a directive cannot be processed. No output is produced.

        RuntimeError
            If this preprocessor has already run.
        """
        if self.state is not RunState.SCANNING:
            raise RuntimeError(f"Cannot run a preprocessor in {self.state}.")
        self.filename = filename

        fragments = []
        try:
            for line in tqdm(
                source_lines(text),
                desc=filename or "Preprocessing",
                unit=" lines",
                leave=False,
                disable=not self.show_progress,
            ):
                fragments.append(self._process_line(line))
        except Exception:
            self.state = RunState.ABORTED
            raise

        self.state = RunState.DONE
        log.debug(f"Flags: {sorted(self._macros.flags)}")
        log.debug(f"Substitutions: {dict(self._macros.substitutions)}")
        log.debug(f"Includes: {sorted(self._includes)}")
        return "".join(fragments)


def preprocess(
    text: str,
    *,
    filename: str | None = None,
    **kwargs: Any,
) -> str:
    """
    Run a fresh Preprocessor over `text` and return the output.
    Keyword arguments are passed to the Preprocessor.
    """
    return Preprocessor(**kwargs).run(text, filename=filename)
