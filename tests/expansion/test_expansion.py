# Copyright (C) 2019-2024 Intel Corporation
# SPDX-License-Identifier: BSD-3-Clause

import unittest

from macropass.macro_table import MacroTable
from macropass.preprocessor import MacroExpander, preprocess


class TestMacroExpander(unittest.TestCase):
    """
    Test substitution of macros in body lines.
    """

    def setUp(self):
        self.table = MacroTable()
        self.expander = MacroExpander(self.table)

    def test_no_substitutions(self):
        """Check lines pass through unchanged with no substitutions"""
        self.table.define_flag("DEBUG")
        line = "if (DEBUG) { MAX; }"
        self.assertEqual(self.expander.expand(line), line)

    def test_whole_token(self):
        """Check names only match as whole tokens"""
        self.table.define_substitution("MAX", "100")
        self.assertEqual(
            self.expander.expand("MAX MAXIMUM _MAX MAX_ MAX2 xMAX"),
            "100 MAXIMUM _MAX MAX_ MAX2 xMAX",
        )

    def test_punctuation_boundaries(self):
        """Check punctuation separates tokens"""
        self.table.define_substitution("N", "4")
        self.assertEqual(
            self.expander.expand("a[N]=N+1;f(N,N);"),
            "a[4]=4+1;f(4,4);",
        )

    def test_flags_untouched(self):
        """Check flags are never rewritten"""
        self.table.define_flag("DEBUG")
        self.table.define_substitution("LEVEL", "3")
        self.assertEqual(
            self.expander.expand("DEBUG LEVEL"),
            "DEBUG 3",
        )

    def test_single_pass(self):
        """Check replacement text is not rescanned"""
        self.table.define_substitution("A", "B")
        self.table.define_substitution("B", "A")
        self.assertEqual(self.expander.expand("A B"), "B A")

    def test_self_reference(self):
        """Check a macro naming itself does not recurse"""
        self.table.define_substitution("X", "X + 1")
        self.assertEqual(self.expander.expand("X"), "X + 1")

    def test_overlapping_names(self):
        """Check longer names win over shorter ones deterministically"""
        self.table.define_substitution("A", "1")
        self.table.define_substitution("A.B", "2")
        self.assertEqual(self.expander.expand("A.B A"), "2 1")

    def test_special_characters(self):
        """Check names and replacements are taken literally"""
        self.table.define_substitution("PATH", r"C:\temp\n")
        self.table.define_substitution("a+", "plus")
        self.assertEqual(
            self.expander.expand("PATH a+ ba+"),
            r"C:\temp\n plus ba+",
        )

    def test_unicode_identifiers(self):
        """Check letters outside ASCII are identifier characters"""
        self.table.define_substitution("MAX", "100")
        self.assertEqual(self.expander.expand("éMAX MAX"), "éMAX 100")


class TestBodySubstitution(unittest.TestCase):
    """
    Test substitution as part of a run.
    """

    def test_forward_only(self):
        """Check definitions only affect later lines"""
        text = "MAX\n#define MAX 100\nMAX\n"
        self.assertEqual(preprocess(text), "MAX\n100\n")

    def test_redefinition(self):
        """Check each line sees the definition current at that line"""
        text = "#define N 1\nN\n#define N 2\nN\n#define N\nN\n"
        self.assertEqual(preprocess(text), "1\n2\nN\n")

    def test_directive_lines_not_substituted(self):
        """Check substitution does not apply inside directives"""
        text = "#define A 1\n#define B A\nB\n"
        self.assertEqual(preprocess(text), "A\n")

    def test_indented_marker_is_body(self):
        """Check lines with leading whitespace are body lines"""
        text = "#define MAX 100\n  #define MAX 5\n"
        self.assertEqual(preprocess(text), "  #define 100 5\n")


if __name__ == "__main__":
    unittest.main()
