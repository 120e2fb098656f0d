# Copyright (C) 2019-2024 Intel Corporation
# SPDX-License-Identifier: BSD-3-Clause

import unittest

from macropass.macro_table import MacroTable


class TestMacroTable(unittest.TestCase):
    """
    Test MacroTable class.
    """

    def test_empty(self):
        """Check a new table has no definitions"""
        table = MacroTable()
        self.assertEqual(len(table), 0)
        self.assertEqual(table.flags, set())
        self.assertEqual(dict(table.substitutions), {})
        self.assertIsNone(table.pattern())
        self.assertNotIn("MACRO", table)

    def test_define_flag(self):
        """Check flags carry no replacement"""
        table = MacroTable()
        table.define_flag("DEBUG")
        self.assertTrue(table.is_defined("DEBUG"))
        self.assertTrue(table.is_flag("DEBUG"))
        self.assertIsNone(table.get_replacement("DEBUG"))
        self.assertIn("DEBUG", table)

    def test_flag_then_substitution(self):
        """Check a flag redefined as a substitution is only a substitution"""
        table = MacroTable()
        table.define_flag("N")
        table.define_substitution("N", "4")
        self.assertFalse(table.is_flag("N"))
        self.assertEqual(table.get_replacement("N"), "4")
        self.assertEqual(table.flags, set())
        self.assertEqual(dict(table.substitutions), {"N": "4"})

    def test_substitution_then_flag(self):
        """Check a substitution redefined as a flag loses its text"""
        table = MacroTable()
        table.define_substitution("N", "4")
        table.define_flag("N")
        self.assertTrue(table.is_flag("N"))
        self.assertIsNone(table.get_replacement("N"))
        self.assertEqual(dict(table.substitutions), {})
        self.assertIsNone(table.pattern())

    def test_disjoint(self):
        """Check no sequence of definitions puts a name in both sets"""
        table = MacroTable()
        for name in ["A", "B", "C"]:
            table.define_flag(name)
            table.define_substitution(name, "x")
            table.define_flag(name)
            table.define_substitution(name, "y")
            self.assertEqual(
                table.flags & set(table.substitutions),
                set(),
            )
        self.assertEqual(len(table), 3)
        self.assertEqual(list(table), ["A", "B", "C"])

    def test_undefine_flag(self):
        """Check undefine removes flags"""
        table = MacroTable()
        table.define_flag("DEBUG")
        table.undefine("DEBUG")
        self.assertFalse(table.is_defined("DEBUG"))

    def test_undefine_substitution(self):
        """Check undefine does not remove substitutions"""
        table = MacroTable()
        table.define_substitution("MAX", "100")
        table.undefine("MAX")
        self.assertTrue(table.is_defined("MAX"))
        self.assertEqual(table.get_replacement("MAX"), "100")

    def test_undefine_unknown(self):
        """Check undefining an unknown name has no effect"""
        table = MacroTable()
        table.undefine("UNKNOWN")
        self.assertEqual(len(table), 0)

    def test_invalid_names(self):
        """Check names must be non-empty and free of whitespace"""
        table = MacroTable()
        with self.assertRaises(ValueError):
            table.define_flag("")
        with self.assertRaises(ValueError):
            table.define_substitution("A B", "x")
        with self.assertRaises(TypeError):
            table.define_flag(None)
        with self.assertRaises(TypeError):
            table.define_substitution("A", None)

    def test_views_are_read_only(self):
        """Check the exposed collections cannot mutate the table"""
        table = MacroTable()
        table.define_substitution("A", "x")
        with self.assertRaises(TypeError):
            table.substitutions["B"] = "y"
        with self.assertRaises(AttributeError):
            table.flags.add("C")

    def test_pattern(self):
        """Check the pattern matches whole names only"""
        table = MacroTable()
        table.define_substitution("MAX", "100")
        table.define_substitution("MAX_LEN", "8")
        pattern = table.pattern()
        self.assertEqual(
            pattern.findall("MAX MAX_LEN MAXIMUM _MAX MAX2 (MAX)"),
            ["MAX", "MAX_LEN", "MAX"],
        )

    def test_pattern_rebuilt(self):
        """Check the pattern follows changes to the substitutions"""
        table = MacroTable()
        table.define_substitution("A", "1")
        first = table.pattern()
        self.assertIs(table.pattern(), first)

        table.define_substitution("B", "2")
        self.assertEqual(table.pattern().findall("A B"), ["A", "B"])

        table.define_flag("A")
        self.assertEqual(table.pattern().findall("A B"), ["B"])


if __name__ == "__main__":
    unittest.main()
