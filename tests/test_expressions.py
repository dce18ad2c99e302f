"""
Tests for the expression grammar: the precedence tiers, associativity and
the dialect comparison operator.

Author: xwest
"""

import unittest
import sys
import os

# Add the project root to the Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

from codefix.parser.parser import Parser


def capture(parser, rules, rule, text):
    """Run `rule` over `text`, collecting what each of `rules` matched."""
    seen = {name: [] for name in rules}
    actions = {
        name: (lambda matched, name=name: seen[name].append(matched.significant()))
        for name in rules
    }
    consumed = parser.prefix_length(rule, text, actions=actions)
    return consumed, seen


class TestExpressions(unittest.TestCase):
    """Acceptance of Lua 5.3 expressions."""

    def setUp(self):
        self.parser = Parser()

    def test_valid_expressions(self):
        expressions = [
            "1 + 2 * 3",
            "a and b or not c",
            "a ~= b",
            "a == b",
            "a <= b and a >= c",
            "a < b",
            "a << 2 >> 1",
            "a & b | c ~ d",
            "a ~ ~b",
            "~a",
            "#t",
            "-x ^ 2",
            "2 ^ -3",
            "a // b % c",
            "'a' .. 'b' .. \"c\"",
            "function(a, b, ...) return a end",
            "function() end",
            "{1, 2; x = 3, [4] = 5,}",
            "{}",
            "{[[long]]}",
            "{ f(x), y == 1 }",
            "nil",
            "true",
            "false",
            "...",
            "f(a)(b)",
            "a.b.c:d(e)",
            "t[1][2]",
            "f{1}",
            "f'str'",
            "f[[str]]",
            "(a)",
            "((a))",
            "a--[[inline]]+--[==[x]==]b",
        ]
        for text in expressions:
            self.assertTrue(self.parser.matches("expression", text), text)

    def test_invalid_expressions(self):
        for text in ["a +", "a == ", "(a", "{1, 2", "a ! b", "a.", "f(", "not"]:
            self.assertFalse(self.parser.matches("expression", text), text)

    def test_not_equal_is_dialect_only(self):
        self.assertTrue(self.parser.matches("expression", "a != b"))
        canonical = Parser(pico8=False)
        self.assertFalse(canonical.matches("expression", "a != b"))
        self.assertTrue(canonical.matches("expression", "a ~= b"))
        self.assertNotIn("operator_notequal", canonical.grammar)


class TestPrecedence(unittest.TestCase):
    """Structure observed through rule actions."""

    def setUp(self):
        self.parser = Parser()

    def test_concat_is_right_associative(self):
        consumed, seen = capture(self.parser, ["expr_seven"], "expression", "a .. b .. c")
        self.assertEqual(consumed, len("a .. b .. c"))
        self.assertIn("b .. c", seen["expr_seven"])
        self.assertIn("a .. b .. c", seen["expr_seven"])
        self.assertNotIn("a .. b", seen["expr_seven"])

    def test_power_is_right_associative(self):
        _, seen = capture(self.parser, ["expr_eleven"], "expression", "a ^ b ^ c")
        self.assertEqual(seen["expr_eleven"], ["c", "b ^ c", "a ^ b ^ c"])

    def test_subtraction_is_left_associative(self):
        _, seen = capture(self.parser, ["expr_eight", "expr_nine"], "expression", "a - b - c")
        self.assertEqual(seen["expr_eight"], ["a - b - c"])
        self.assertEqual(seen["expr_nine"], ["a", "b", "c"])

    def test_multiplication_binds_tighter_than_addition(self):
        _, seen = capture(self.parser, ["expr_nine"], "expression", "1 + 2 * 3")
        self.assertEqual(seen["expr_nine"], ["1", "2 * 3"])

    def test_unary_minus_applies_to_power(self):
        _, seen = capture(self.parser, ["unary_apply"], "expression", "-x ^ 2")
        self.assertEqual(seen["unary_apply"], ["-x ^ 2"])

    def test_power_exponent_may_be_unary(self):
        _, seen = capture(self.parser, ["unary_apply"], "expression", "2 ^ -3")
        self.assertEqual(seen["unary_apply"], ["-3"])

    def test_comparison_below_concat(self):
        _, seen = capture(self.parser, ["expr_two", "expr_seven"], "expression", "a .. b == c")
        self.assertEqual(seen["expr_two"], ["a .. b == c"])
        self.assertEqual(seen["expr_seven"], ["b", "a .. b", "c"])

    def test_and_binds_tighter_than_or(self):
        _, seen = capture(self.parser, ["expr_one"], "expression", "a or b and c")
        self.assertEqual(seen["expr_one"], ["a", "b and c"])

    def test_xor_not_confused_with_not_equal(self):
        _, seen = capture(self.parser, ["expr_four", "operators_two"], "expression", "a ~ b ~= c")
        self.assertEqual(seen["expr_four"], ["a ~ b", "c"])
        self.assertEqual(seen["operators_two"], ["~="])

    def test_shift_not_confused_with_less_than(self):
        _, seen = capture(self.parser, ["operators_six", "operators_two"], "expression", "a << b < c")
        self.assertEqual(seen["operators_six"], ["<<"])
        self.assertEqual(seen["operators_two"], ["<"])


if __name__ == '__main__':
    unittest.main()
