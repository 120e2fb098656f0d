# Copyright (C) 2019-2024 Intel Corporation
# SPDX-License-Identifier: BSD-3-Clause
"""
Contains the MacroTable class used to track flag-style and
substitution-style macro definitions.
"""
from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from types import MappingProxyType


def _check_name(name: str) -> None:
    if not isinstance(name, str):
        raise TypeError("Macro name must be a string.")
    if not name or any(c.isspace() for c in name):
        raise ValueError(f"Invalid macro name: {name!r}")


class MacroTable:
    """
    Represents the macros known to a preprocessor.
    Contains a set of flags (names with no replacement), and a mapping of
    substitutions (names with replacement text). A name is never present
    in both.
    """

    def __init__(self) -> None:
        self._flags: set[str] = set()
        self._substitutions: dict[str, str] = {}
        self._pattern: re.Pattern[str] | None = None

    def define_flag(self, name: str) -> None:
        """
        Define `name` as a flag, discarding any replacement text it had.
        """
        _check_name(name)
        if self._substitutions.pop(name, None) is not None:
            self._pattern = None
        self._flags.add(name)

    def define_substitution(self, name: str, replacement: str) -> None:
        """
        Define `name` as a substitution, replacing any earlier definition.
        """
        _check_name(name)
        if not isinstance(replacement, str):
            raise TypeError("Replacement text must be a string.")
        self._flags.discard(name)
        self._substitutions[name] = replacement
        self._pattern = None

    def undefine(self, name: str) -> None:
        """
        Undefine a flag, if it's defined.

        Substitutions are deliberately left alone: #undef only ever
        removes names from the flag set.
        """
        self._flags.discard(name)

    def is_defined(self, name: str) -> bool:
        return name in self._flags or name in self._substitutions

    def is_flag(self, name: str) -> bool:
        return name in self._flags

    def get_replacement(self, name: str) -> str | None:
        """
        Return either the replacement text (if `name` is a substitution),
        or None.
        """
        return self._substitutions.get(name)

    @property
    def flags(self) -> frozenset[str]:
        return frozenset(self._flags)

    @property
    def substitutions(self) -> Mapping[str, str]:
        return MappingProxyType(self._substitutions)

    def pattern(self) -> re.Pattern[str] | None:
        """
        Returns
        -------
        re.Pattern | None
            A pattern matching any substitution name as a whole token, or
            None if there are no substitutions.

        Longer names are tried first so that overlapping names resolve the
        same way on every run.
        """
        if not self._substitutions:
            return None
        if self._pattern is None:
            names = sorted(self._substitutions, key=lambda n: (-len(n), n))
            alternatives = "|".join(re.escape(n) for n in names)
            self._pattern = re.compile(rf"(?<!\w)(?:{alternatives})(?!\w)")
        return self._pattern

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.is_defined(name)

    def __iter__(self) -> Iterator[str]:
        yield from sorted(self._flags)
        yield from sorted(self._substitutions)

    def __len__(self) -> int:
        return len(self._flags) + len(self._substitutions)

    def __repr__(self) -> str:
        return (
            f"MacroTable(flags={sorted(self._flags)!r},"
            f"substitutions={self._substitutions!r})"
        )
