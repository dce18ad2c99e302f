"""
Tests for the rewriter, the edit plan and the known-pattern pre-fix.

Author: xwest
"""

import unittest
import sys
import os

# Add the project root to the Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

from codefix.lexer.source import SourceText
from codefix.parser.parser import Parser
from codefix.rewriter.errors import RewriteError
from codefix.rewriter.prefix import KnownFix, apply_known_fixes
from codefix.rewriter.recorder import ExtensionRecorder, OccurrenceKind, OccurrenceRecord
from codefix.rewriter.rewriter import Edit, EditPlan, Rewriter, rewrite


def rewrite_text(text):
    source = SourceText(text)
    recorder = ExtensionRecorder()
    Parser().parse(source, actions=recorder.actions, logs=recorder.attached_logs())
    return Rewriter(source).rewrite(recorder.occurrences())


def make_record(source, kind, offset, length, operator=None):
    line, column = source.line_and_column(offset)
    return OccurrenceRecord(kind, offset, line, column, length,
                            source.text[offset:offset + length], operator)


class TestRewrites(unittest.TestCase):
    """Dialect extensions turned into canonical Lua."""

    def test_not_equal(self):
        self.assertEqual(rewrite_text("x = a != b"), "x = a ~= b")
        self.assertEqual(rewrite_text("if a!=b then end"), "if a~=b then end")

    def test_compound_assignment_format(self):
        self.assertEqual(rewrite_text("a += 1"), "a =a +( 1)")
        self.assertEqual(rewrite_text("a-=1"), "a=a-(1)")

    def test_every_compound_operator(self):
        for op in "+-*/%":
            self.assertEqual(rewrite_text(f"v {op}= w"), f"v =v {op}( w)")

    def test_compound_assignment_with_chain_target(self):
        self.assertEqual(rewrite_text("x.y[1] -= f(2)"), "x.y[1] =x.y[1] -( f(2))")

    def test_rhs_is_parenthesised(self):
        self.assertEqual(rewrite_text("a *= b + c"), "a =a *( b + c)")

    def test_negative_rhs(self):
        self.assertEqual(rewrite_text("a -= -1"), "a =a -( -1)")

    def test_trailing_comment_stays_outside(self):
        self.assertEqual(rewrite_text("a *= b + c -- note\nd = 1"),
                         "a =a *( b + c) -- note\nd = 1")
        self.assertEqual(rewrite_text("a += 1 --[[ x ]]"), "a =a +( 1) --[[ x ]]")
        self.assertEqual(rewrite_text("a += 1   \n"), "a =a +( 1)   \n")

    def test_not_equal_inside_compound_assignment(self):
        self.assertEqual(rewrite_text("a += b != c and 1 or 2"),
                         "a =a +( b ~= c and 1 or 2)")

    def test_not_equal_inside_target(self):
        self.assertEqual(rewrite_text("t[a != b] += 1"), "t[a ~= b] =t[a ~= b] +( 1)")

    def test_nested_compound_assignment(self):
        self.assertEqual(
            rewrite_text("a += (function() b -= 1 return b end)()"),
            "a =a +( (function() b =b -( 1) return b end)())")

    def test_operator_inside_string_target(self):
        self.assertEqual(rewrite_text('t["+="] += 1'), 't["+="] =t["+="] +( 1)')

    def test_operator_inside_long_string_target(self):
        self.assertEqual(rewrite_text("t[ [[k+=]] ] += 1"), "t[ [[k+=]] ] =t[ [[k+=]] ] +( 1)")

    def test_operator_inside_comment_in_target(self):
        self.assertEqual(rewrite_text("t[1 --[[ a*=2 ]] ] -= 3"),
                         "t[1 --[[ a*=2 ]] ] =t[1   ] -( 3)")

    def test_compound_assignment_inside_target(self):
        self.assertEqual(
            rewrite_text("t[f(function() x += 1 end)] += 2"),
            "t[f(function() x =x +( 1) end)] =t[f(function() x =x +( 1) end)] +( 2)")

    def test_line_count_preserved(self):
        text = "a += 1\nif b != c then\n  d *= 2\nend\n"
        fixed = rewrite_text(text)
        self.assertEqual(fixed, "a =a +( 1)\nif b ~= c then\n  d =d *( 2)\nend\n")
        self.assertEqual(fixed.count("\n"), text.count("\n"))

    def test_line_count_preserved_for_multiline_target(self):
        text = "t[\n1] += 2\nerror()"
        fixed = rewrite_text(text)
        self.assertEqual(fixed, "t[\n1] =t[ 1] +( 2)\nerror()")
        self.assertEqual(fixed.count("\n"), text.count("\n"))

    def test_comment_in_target_is_not_copied(self):
        text = "t[1 --[[ a*=2 ]]\n] -= 3"
        fixed = rewrite_text(text)
        self.assertEqual(fixed, "t[1 --[[ a*=2 ]]\n] =t[1   ] -( 3)")
        self.assertEqual(fixed.count("\n"), 1)

    def test_line_comment_in_target(self):
        fixed = rewrite_text("t[k -- key\n] += 1")
        self.assertEqual(fixed, "t[k -- key\n] =t[k  ] +( 1)")

    def test_multiline_long_string_in_target(self):
        fixed = rewrite_text("t[ [[a\nb]] ] += 1")
        self.assertEqual(fixed, 't[ [[a\nb]] ] =t[ "a\\nb" ] +( 1)')

    def test_continued_short_string_in_target(self):
        fixed = rewrite_text('t["a\\\nb"] += 1')
        self.assertEqual(fixed, 't["a\\\nb"] =t["a\\nb"] +( 1)')

    def test_canonical_text_unchanged(self):
        text = "local a = b ~= c\nfunction f() return a end\n"
        self.assertEqual(rewrite_text(text), text)

    def test_short_if_is_not_rewritten(self):
        self.assertEqual(rewrite_text("if (a) b = 1\n"), "if (a) b = 1\n")


class TestEditPlan(unittest.TestCase):

    def test_apply(self):
        source = SourceText("abcdef")
        plan = EditPlan(source, [Edit(0, 1, "X"), Edit(3, 5, "")])
        self.assertEqual(plan.apply(), "Xbcf")
        self.assertEqual(len(plan), 2)

    def test_plan_is_flat_for_nested_records(self):
        source = SourceText("a += b != c")
        records = [
            make_record(source, OccurrenceKind.REASSIGNMENT, 0, 11, operator=2),
            make_record(source, OccurrenceKind.NOT_EQUAL, 7, 2),
        ]
        plan = Rewriter(source).plan(records)
        self.assertEqual(list(plan), [Edit(0, 11, "a =a +( b ~= c)")])

    def test_rewrite_helper_counts_edits(self):
        source = SourceText("x = a != b")
        record = make_record(source, OccurrenceKind.NOT_EQUAL, 6, 2)
        self.assertEqual(rewrite(source, [record]), ("x = a ~= b", 1))


class TestRewriteErrors(unittest.TestCase):
    """Records that do not fit the text are rejected, never applied."""

    def test_token_mismatch(self):
        source = SourceText("a ~= b")
        record = make_record(source, OccurrenceKind.NOT_EQUAL, 2, 2)
        with self.assertRaises(RewriteError) as context:
            Rewriter(source).rewrite([record])
        self.assertEqual(context.exception.diagnostic.code, "R001")

    def test_missing_operator(self):
        source = SourceText("a = b")
        record = make_record(source, OccurrenceKind.REASSIGNMENT, 0, 5)
        with self.assertRaises(RewriteError) as context:
            Rewriter(source).rewrite([record])
        self.assertEqual(context.exception.diagnostic.code, "R002")

    def test_operator_offset_must_point_at_operator(self):
        source = SourceText("a = b")
        record = make_record(source, OccurrenceKind.REASSIGNMENT, 0, 5, operator=2)
        with self.assertRaises(RewriteError) as context:
            Rewriter(source).rewrite([record])
        self.assertEqual(context.exception.diagnostic.code, "R002")

    def test_partial_overlap(self):
        source = SourceText("a += b += c")
        records = [
            make_record(source, OccurrenceKind.REASSIGNMENT, 0, 6),
            make_record(source, OccurrenceKind.REASSIGNMENT, 5, 6),
        ]
        with self.assertRaises(RewriteError) as context:
            Rewriter(source).rewrite(records)
        self.assertEqual(context.exception.diagnostic.code, "R003")

    def test_stale_position(self):
        source = SourceText("a\nb != c")
        record = OccurrenceRecord(OccurrenceKind.NOT_EQUAL, 4, 1, 5, 2, "!=")
        with self.assertRaises(RewriteError) as context:
            Rewriter(source).rewrite([record])
        self.assertEqual(context.exception.diagnostic.code, "R004")


class TestKnownFixes(unittest.TestCase):

    PATTERN = "if(_update60)_update=function()"

    def test_update60_pattern(self):
        source = SourceText("x = 1\n" + self.PATTERN + " f() end")
        fixed, applied = apply_known_fixes(source)
        self.assertEqual(applied, ["update60_short_if"])
        self.assertEqual(fixed.text,
                         "x = 1\n\nif(_update60)then _update=function() f() end end")
        self.assertEqual(fixed.filename, source.filename)

    def test_only_first_occurrence(self):
        source = SourceText(self.PATTERN + " " + self.PATTERN)
        fixed, _ = apply_known_fixes(source)
        self.assertEqual(fixed.text.count("then"), 1)
        self.assertTrue(fixed.text.endswith(" end"))

    def test_no_match_returns_same_source(self):
        source = SourceText("print('hi')")
        fixed, applied = apply_known_fixes(source)
        self.assertIs(fixed, source)
        self.assertEqual(applied, [])

    def test_custom_fix(self):
        fix = KnownFix("shout", "print", "PRINT")
        fixed, applied = apply_known_fixes(SourceText("print(1) print(2)"), [fix])
        self.assertEqual(fixed.text, "PRINT(1) print(2)")
        self.assertEqual(applied, ["shout"])


if __name__ == '__main__':
    unittest.main()
