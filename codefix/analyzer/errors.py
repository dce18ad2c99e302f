"""
Error handling for the grammar self-check.

A GrammarError means the grammar itself is broken: it is raised before any
input is looked at and is never caused by user code.

Author: xwest
"""

from typing import List
from dataclasses import dataclass

from ..lexer.errors import Diagnostic


@dataclass
class GrammarDefect:
    """One structural problem found in a grammar."""
    code: str
    rule: str
    message: str

    def to_diagnostic(self) -> Diagnostic:
        return Diagnostic(
            message=f"{self.rule}: {self.message}",
            location=None,
            severity="error",
            code=self.code,
            help_text=GRAMMAR_ERROR_CODES.get(self.code),
        )

    def __str__(self) -> str:
        return f"[{self.code}] {self.rule}: {self.message}"


class GrammarError(Exception):
    """
    Exception raised when the grammar fails its static self-check.

    Carries every defect found, not only the first.
    """

    def __init__(self, grammar: str, defects: List[GrammarDefect]):
        self.grammar = grammar
        self.defects = list(defects)
        summary = "; ".join(str(defect) for defect in self.defects[:5])
        if len(self.defects) > 5:
            summary += f"; ... {len(self.defects) - 5} more"
        super().__init__(f"grammar {grammar} failed self-check: {summary}")

    @property
    def diagnostics(self) -> List[Diagnostic]:
        return [defect.to_diagnostic() for defect in self.defects]

    def codes(self) -> List[str]:
        return [defect.code for defect in self.defects]


# Grammar defect codes for categorization
GRAMMAR_ERROR_CODES = {
    "G001": "Reference to an undefined rule",
    "G002": "Rule unreachable from the root",
    "G003": "Repetition over a rule that can match the empty string",
    "G004": "Left recursion",
    "G005": "Root rule missing",
}
