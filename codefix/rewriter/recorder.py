"""
Occurrence recording for the PICO-8 dialect extensions.

Actions fire as soon as a named rule succeeds, even inside an alternative
that an enclosing rule later abandons. Each log is therefore attached to the
parse state and trimmed on every restore: when the matcher rewinds to
offset P, every record at or after P belongs to input that is no longer part
of the parse and is dropped from the tail.

Besides the extensions, the recorder keeps the comments and string literals
the parse went through. A compound assignment carries those found in its
target, which lets the rewriter copy the target onto a single line.

Author: xwest
"""

import bisect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple

from ..parser.peg import ActionInput, Action

logger = logging.getLogger(__name__)


class OccurrenceKind(Enum):
    """Dialect extensions, named after the grammar rule that detects them."""
    NOT_EQUAL = "operator_notequal"
    REASSIGNMENT = "reassignment"
    SHORT_IF = "short_if_statement"


# Rules whose matches the rewriter must not split or join across lines
LEXEME_RULES = {"comment": "comment", "literal_string": "string"}


@dataclass(frozen=True)
class Lexeme:
    """A comment or string literal at text[offset:end]."""
    kind: str
    offset: int
    end: int


@dataclass(frozen=True)
class OccurrenceRecord:
    """
    A detected extension. `length` excludes trailing padding.

    For a compound assignment, `operator` is the offset of its operator and
    `layout` lists the comments and strings of the target.
    """
    kind: OccurrenceKind
    offset: int
    line: int
    column: int
    length: int
    text: str
    operator: Optional[int] = None
    layout: Tuple[Lexeme, ...] = ()

    @property
    def end(self) -> int:
        return self.offset + self.length

    def __str__(self) -> str:
        return f"{self.kind.value} at {self.line}:{self.column}: {self.text}"


class OffsetLog:
    """Entries with an `offset`, kept ordered by it and trimmed from the tail."""

    def __init__(self):
        self._entries: list = []
        self._offsets: List[int] = []

    def record(self, entry) -> None:
        # Inner rules finish first, so an enclosing entry can arrive after
        # one it contains; keep offset order regardless.
        index = bisect.bisect_right(self._offsets, entry.offset)
        self._offsets.insert(index, entry.offset)
        self._entries.insert(index, entry)

    def trim(self, offset: int) -> None:
        """Drop every entry at or after `offset`."""
        while self._offsets and self._offsets[-1] >= offset:
            self._offsets.pop()
            self._entries.pop()

    def between(self, start: int, end: int) -> list:
        """Entries with start <= offset < end."""
        low = bisect.bisect_left(self._offsets, start)
        high = bisect.bisect_left(self._offsets, end)
        return self._entries[low:high]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator:
        return iter(list(self._entries))

    def __getitem__(self, index: int):
        return self._entries[index]


class OccurrenceLog(OffsetLog):
    """Records of one kind."""

    def __init__(self, kind: OccurrenceKind):
        super().__init__()
        self.kind = kind


class ExtensionRecorder:
    """
    Owns one log per extension kind for a single parse and provides the
    actions that fill them.
    """

    def __init__(self):
        self.logs: Dict[OccurrenceKind, OccurrenceLog] = {
            kind: OccurrenceLog(kind) for kind in OccurrenceKind
        }
        self.lexemes = OffsetLog()

    @property
    def actions(self) -> Dict[str, Action]:
        actions = {kind.value: self._action_for(kind) for kind in OccurrenceKind}
        for rule, kind in LEXEME_RULES.items():
            actions[rule] = self._lexeme_action(kind)
        return actions

    def attached_logs(self) -> List[OffsetLog]:
        """Every log the parser must trim when it backtracks."""
        return [*self.logs.values(), self.lexemes]

    def _action_for(self, kind: OccurrenceKind) -> Action:
        def action(matched: ActionInput) -> None:
            self.record(kind, matched)
        return action

    def _lexeme_action(self, kind: str) -> Action:
        def action(matched: ActionInput) -> None:
            self.lexemes.record(Lexeme(kind, matched.begin, matched.end))
        return action

    def record(self, kind: OccurrenceKind, matched: ActionInput) -> OccurrenceRecord:
        location = matched.location()
        operator, layout = None, ()
        if kind is OccurrenceKind.REASSIGNMENT:
            # The rule itself starts at the operator; the match starts at the target
            operator = matched.rule_begin
            layout = tuple(self.lexemes.between(matched.begin, operator))
        occurrence = OccurrenceRecord(
            kind=kind,
            offset=matched.begin,
            line=location.line,
            column=location.column,
            length=matched.token_end - matched.begin,
            text=matched.significant(),
            operator=operator,
            layout=layout,
        )
        logger.debug("candidate %s", occurrence)
        self.logs[kind].record(occurrence)
        return occurrence

    def occurrences(self, *kinds: OccurrenceKind) -> List[OccurrenceRecord]:
        """Confirmed records of the given kinds (all kinds if none), by offset."""
        selected = kinds or tuple(OccurrenceKind)
        records = [record for kind in selected for record in self.logs[kind]]
        return sorted(records, key=lambda record: (record.offset, -record.length))

    def report(self) -> None:
        """Send one informational message per confirmed occurrence."""
        for occurrence in self.occurrences():
            logger.info("%s %d:%d offset %d: %s", occurrence.kind.value, occurrence.line,
                        occurrence.column, occurrence.offset, occurrence.text)

    def counts(self) -> Dict[str, int]:
        return {kind.value: len(log) for kind, log in self.logs.items()}
