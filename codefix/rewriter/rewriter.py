"""
Rewriter: turns confirmed occurrence records into an edit plan and applies
it to the source in one left-to-right sweep.

    a != b     ->  a ~= b              (same length, in place)
    a += b     ->  a =a +( b)          (<lhs>=<lhs><op>(<rhs>))

Anything after a record's span is copied untouched, so trailing comments
stay outside the parentheses. A record nested inside a compound assignment
(a != inside its right-hand side, or another compound assignment inside a
function literal) is folded into the enclosing edit, which keeps the
top-level plan free of overlaps.

The second copy of a compound assignment's target is put on one line:
comments become a space, line breaks between tokens become spaces, and a
string literal spanning lines is rewritten with \\n escapes. The output
therefore has as many lines as the input.

Author: xwest
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, List, Optional, Sequence, Tuple

from ..lexer.source import SourceText
from .errors import (
    create_missing_operator_error, create_overlap_error,
    create_stale_position_error, create_token_mismatch_error,
)
from .recorder import Lexeme, OccurrenceKind, OccurrenceRecord

logger = logging.getLogger(__name__)

REASSIGN_OPERATORS = "+-*/%"
LINE_BREAK = re.compile(r"\r\n|\n\r|\r|\n")
SHORT_STRING_ESCAPE = re.compile(r"\\(?:z\s*|\r\n|\n\r|\r|\n|.)", re.DOTALL)


@dataclass(frozen=True)
class Edit:
    """Replace source[start:end] with `replacement`."""
    start: int
    end: int
    replacement: str


class EditPlan:
    """Ordered, non-overlapping edits over one source text."""

    def __init__(self, source: SourceText, edits: List[Edit]):
        self.source = source
        self.edits = edits

    def __len__(self) -> int:
        return len(self.edits)

    def __iter__(self) -> Iterator[Edit]:
        return iter(self.edits)

    def apply(self) -> str:
        return splice(self.source.text, 0, len(self.source), self.edits)


def splice(text: str, start: int, end: int, edits: List[Edit],
           gap: Optional[Callable[[str], str]] = None) -> str:
    """
    text[start:end] with `edits` (ordered, disjoint, inside the range)
    applied. `gap`, if given, transforms the text kept between edits.
    """
    pieces = []
    cursor = start
    for edit in edits:
        kept = text[cursor:edit.start]
        pieces.append(gap(kept) if gap else kept)
        pieces.append(edit.replacement)
        cursor = edit.end
    kept = text[cursor:end]
    pieces.append(gap(kept) if gap else kept)
    return "".join(pieces)


# Single-line rendering

def one_line(text: str) -> str:
    return text.replace("\r", " ").replace("\n", " ")


def long_string_value(text: str) -> str:
    """The value of a [==[ ... ]==] literal."""
    level = text.index("[", 1) - 1
    body = text[level + 2:len(text) - level - 2]
    match = LINE_BREAK.match(body)
    if match:
        # A line break right after the opening bracket is not part of the value
        body = body[match.end():]
    return body


def quote(value: str) -> str:
    value = value.replace("\\", "\\\\").replace('"', '\\"')
    return '"' + LINE_BREAK.sub(r"\\n", value) + '"'


def _short_string_escape(match) -> str:
    escape = match.group(0)
    if escape[1] == "z":
        return "\\z"
    if escape[1] in "\r\n":
        return "\\n"
    return escape


def flatten_lexeme(lexeme: Lexeme, text: str) -> Optional[str]:
    """Single-line replacement for a comment or string, None if it can stay."""
    if lexeme.kind == "comment":
        return " "
    if "\n" not in text and "\r" not in text:
        return None
    if text.startswith("["):
        return quote(long_string_value(text))
    return SHORT_STRING_ESCAPE.sub(_short_string_escape, text)


class Rewriter:
    """Builds and applies the edit plan for one source text."""

    def __init__(self, source: SourceText):
        self.source = source
        self.text = source.text

    def rewrite(self, occurrences: Iterable[OccurrenceRecord]) -> str:
        plan = self.plan(occurrences)
        logger.info("Applying %d edits", len(plan))
        return plan.apply()

    def plan(self, occurrences: Iterable[OccurrenceRecord]) -> EditPlan:
        records = [
            record for record in occurrences
            if record.kind in (OccurrenceKind.NOT_EQUAL, OccurrenceKind.REASSIGNMENT)
        ]
        for record in records:
            self._check_position(record)
        records.sort(key=lambda record: (record.offset, -record.length))
        return EditPlan(self.source, self._edits(records))

    def _check_position(self, record: OccurrenceRecord) -> None:
        actual = self.source.location(record.offset)
        if (actual.line, actual.column) != (record.line, record.column) or record.end > len(self.text):
            raise create_stale_position_error(f"{record.line}:{record.column}", actual)

    def _edits(self, records: List[OccurrenceRecord],
               layout: Optional[Sequence[Lexeme]] = None) -> List[Edit]:
        """Group sorted records into top-level edits with their nested records."""
        edits = []
        index = 0
        while index < len(records):
            outer = records[index]
            index += 1
            nested = []
            while index < len(records) and records[index].offset < outer.end:
                inner = records[index]
                if inner.end > outer.end:
                    raise create_overlap_error(outer.text, inner.text,
                                               self.source.location(inner.offset))
                nested.append(inner)
                index += 1
            edits.append(self._edit(outer, nested, layout))
        return edits

    def _render(self, start: int, end: int, records: List[OccurrenceRecord],
                layout: Optional[Sequence[Lexeme]] = None) -> str:
        """
        text[start:end] with `records` rewritten. Given the comments and
        strings of the range as `layout`, the result is a single line.
        """
        edits = self._edits(records, layout)
        if layout is None:
            return splice(self.text, start, end, edits)

        covered = [(edit.start, edit.end) for edit in edits]
        for lexeme in layout:
            if lexeme.offset < start or lexeme.end > end:
                continue
            if any(low <= lexeme.offset < high for low, high in covered):
                continue
            replacement = flatten_lexeme(lexeme, self.text[lexeme.offset:lexeme.end])
            if replacement is not None:
                edits.append(Edit(lexeme.offset, lexeme.end, replacement))
        edits.sort(key=lambda edit: edit.start)
        return splice(self.text, start, end, edits, gap=one_line)

    def _edit(self, record: OccurrenceRecord, nested: List[OccurrenceRecord],
              layout: Optional[Sequence[Lexeme]]) -> Edit:
        if record.kind is OccurrenceKind.NOT_EQUAL:
            return self._not_equal_edit(record, nested)
        return self._reassignment_edit(record, nested, layout)

    def _not_equal_edit(self, record: OccurrenceRecord, nested: List[OccurrenceRecord]) -> Edit:
        found = self.text[record.offset:record.offset + 2]
        if found != "!=":
            raise create_token_mismatch_error("!=", found, self.source.location(record.offset))
        if nested:
            raise create_overlap_error(record.text, nested[0].text,
                                       self.source.location(nested[0].offset))
        return Edit(record.offset, record.offset + 2, "~=")

    def _reassignment_edit(self, record: OccurrenceRecord, nested: List[OccurrenceRecord],
                           layout: Optional[Sequence[Lexeme]]) -> Edit:
        operator = self.find_operator(record)

        lhs_records, rhs_records = [], []
        for inner in nested:
            if inner.end <= operator:
                lhs_records.append(inner)
            elif inner.offset >= operator + 2:
                rhs_records.append(inner)
            else:
                raise create_overlap_error(record.text, inner.text,
                                           self.source.location(inner.offset))

        if layout is None:
            lhs = self._render(record.offset, operator, lhs_records)
            target = self._render(record.offset, operator, lhs_records, record.layout)
        else:
            # Already inside a copied target: everything stays on one line
            lhs = target = self._render(record.offset, operator, lhs_records, layout)
        rhs = self._render(operator + 2, record.end, rhs_records, layout)
        return Edit(record.offset, record.end,
                    f"{lhs}={target}{self.text[operator]}({rhs})")

    def find_operator(self, record: OccurrenceRecord) -> int:
        """
        Offset of the compound operator the parse recorded, checked against
        the text.
        """
        operator = record.operator
        if operator is None or not record.offset < operator <= record.end - 2 \
                or self.text[operator] not in REASSIGN_OPERATORS or self.text[operator + 1] != "=":
            raise create_missing_operator_error(record.text, self.source.location(record.offset))
        return operator


def rewrite(source: SourceText, occurrences: Iterable[OccurrenceRecord]) -> Tuple[str, int]:
    """Convenience wrapper returning the new text and the number of top-level edits."""
    rewriter = Rewriter(source)
    plan = rewriter.plan(occurrences)
    return plan.apply(), len(plan)
