"""
End-to-end tests for the fix pipeline.

Author: xwest
"""

import unittest
import sys
import os

# Add the project root to the Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

from codefix import CodeFixer, FixerConfig, OccurrenceKind, ParseError, fix_code
from codefix.parser.parser import Parser


CANONICAL_SAMPLES = [
    "",
    "x = 1",
    "local t = {1, 2, 3; n = 3}\nfor i, v in ipairs(t) do print(i, v) end\n",
    "function obj:move(dx, dy)\n  self.x, self.y = self.x + dx, self.y + dy\nend\n",
    "while not done do\n  done = step() ~= nil\nend\n",
    "repeat n = n // 2 until n <= 1\n",
    "local s = [[long\nstring]] .. 'x' .. \"y\"\n",
    "goto skip\nprint('unreached')\n::skip::\n",
    "if a then b() elseif c then d() else e() end\n",
    "-- comment only\n--[==[ block ]==]\n",
]


class TestFixer(unittest.TestCase):
    """Pipeline behaviour on whole carts."""

    def test_canonical_input_is_unchanged(self):
        for text in CANONICAL_SAMPLES:
            self.assertEqual(fix_code(text), text, text)

    def test_not_equal_only_replaced(self):
        text = "if a != b then\n  c = d != e\nend\n"
        fixed = fix_code(text)
        self.assertEqual(fixed, text.replace("!=", "~="))
        self.assertTrue(Parser(pico8=False).parse(fixed).complete)

    def test_compound_assignment_output_is_canonical(self):
        text = "x += 1\np.y -= dy * 2 -- move\nt[i] *= 0.5\nn /= 2\nm %= 3\n"
        fixed = fix_code(text)
        self.assertEqual(fixed, "x =x +( 1)\np.y =p.y -( dy * 2) -- move\n"
                                "t[i] =t[i] *( 0.5)\nn =n /( 2)\nm =m %( 3)\n")
        self.assertTrue(Parser(pico8=False).parse(fixed).complete)

    def test_idempotent(self):
        text = "a += b != c\nfunction f() d -= 1 end\n"
        once = fix_code(text)
        self.assertEqual(fix_code(once), once)

    def test_callback_rewritten_once(self):
        text = "f(function() a += 1 end)"
        result = CodeFixer(text).fix()
        self.assertEqual(result.code, "f(function() a =a +( 1) end)")
        self.assertEqual(len(result.occurrences_of(OccurrenceKind.REASSIGNMENT)), 1)

    def test_nested_callbacks(self):
        text = ("add(o,{update=function()\n"
                "  foreach(x,function(e) e.t += 1 if e.t != 0 then del(x,e) end end)\n"
                "end})\n")
        self.assertEqual(fix_code(text), text.replace("e.t += 1", "e.t =e.t +( 1)")
                         .replace("!=", "~="))

    def test_line_numbers_survive_multiline_targets(self):
        text = "t[\n1] += 2\nerror()\n"
        fixed = fix_code(text)
        self.assertEqual(fixed.count("\n"), text.count("\n"))
        self.assertEqual(fixed.splitlines()[2], "error()")

    def test_interpreter_line(self):
        text = "#!/usr/bin/env lua\na += 1\n"
        self.assertEqual(fix_code(text), "#!/usr/bin/env lua\na =a +( 1)\n")

    def test_known_fix_applied_before_parsing(self):
        text = "if(_update60)_update=function()\n_update60()\n_update60()\nend"
        result = CodeFixer(text).fix()
        self.assertFalse(result.has_errors())
        self.assertEqual(result.applied_fixes, ["update60_short_if"])
        self.assertEqual(result.code, "\nif(_update60)then _update=function()\n"
                                      "_update60()\n_update60()\nend end")

    def test_known_fix_can_be_disabled(self):
        text = "if(_update60)_update=function()\n_update60()\nend"
        result = CodeFixer(text, FixerConfig(apply_known_fixes=False)).fix()
        self.assertEqual(result.applied_fixes, [])
        self.assertTrue(result.has_errors())

    def test_short_if_warns(self):
        result = CodeFixer("if (btn(0)) x -= 1\ny = 2\n").fix()
        self.assertFalse(result.has_errors())
        self.assertTrue(result.has_warnings())
        warning = result.warnings[0]
        self.assertEqual(warning.diagnostic.code, "W001")
        self.assertEqual(warning.location.line, 1)
        self.assertEqual(result.code, "if (btn(0)) x -= 1\ny = 2\n")

    def test_syntax_error_reported_in_result(self):
        result = CodeFixer("x = = 1", FixerConfig(filename="bad.p8")).fix()
        self.assertTrue(result.has_errors())
        self.assertIsNone(result.code)
        self.assertEqual(result.errors[0].location.filename, "bad.p8")
        with self.assertRaises(ParseError):
            fix_code("x = = 1")

    def test_canonical_mode_rejects_extensions(self):
        config = FixerConfig.canonical()
        for text in ["if a != b then end", "a += 1", "if (a) b()"]:
            result = CodeFixer(text, config).fix()
            self.assertTrue(result.has_errors(), text)
        self.assertEqual(fix_code("a = b ~= c", config), "a = b ~= c")

    def test_occurrence_positions(self):
        result = CodeFixer("a = 1\n  b += 2\nc = d != e").fix()
        found = [(o.kind, o.line, o.column) for o in result.occurrences]
        self.assertEqual(found, [
            (OccurrenceKind.REASSIGNMENT, 2, 3),
            (OccurrenceKind.NOT_EQUAL, 3, 7),
        ])

    def test_config_validation(self):
        with self.assertRaises(ValueError):
            FixerConfig(recursion_limit=10)
        config = FixerConfig().with_filename("cart.p8")
        self.assertEqual(config.filename, "cart.p8")
        self.assertTrue(config.pico8)

    def test_logs_occurrences(self):
        with self.assertLogs("codefix.rewriter.recorder", level="INFO") as logs:
            CodeFixer("a += 1").fix()
        self.assertTrue(any("reassignment" in line for line in logs.output))


if __name__ == '__main__':
    unittest.main()
