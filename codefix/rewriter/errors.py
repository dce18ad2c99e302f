"""
Errors raised by the rewriter.

The rewriter only runs after a successful parse, so every error here means
the recorder and the rewriter disagree about the text. That is a bug, and
the rewrite is abandoned rather than producing corrupted code.

Author: xwest
"""

from typing import Optional

from ..lexer.source import SourceLocation
from ..lexer.errors import Diagnostic


class RewriteError(Exception):
    """Exception raised when an occurrence record does not fit the text."""

    def __init__(self, message: str, location: Optional[SourceLocation],
                 code: Optional[str] = None, help_text: Optional[str] = None):
        super().__init__(message)
        self.diagnostic = Diagnostic(
            message=message,
            location=location,
            severity="error",
            code=code,
            help_text=help_text,
        )

    @property
    def location(self) -> Optional[SourceLocation]:
        return self.diagnostic.location

    def __str__(self) -> str:
        return str(self.diagnostic)


REWRITE_ERROR_CODES = {
    "R001": "Record does not point at the expected token",
    "R002": "Compound assignment operator not found",
    "R003": "Overlapping occurrence records",
    "R004": "Record position disagrees with the source",
}


def create_token_mismatch_error(expected: str, found: str, location: SourceLocation) -> RewriteError:
    return RewriteError(
        message=f"Expected '{expected}' at recorded position, found '{found}'",
        location=location,
        code="R001",
        help_text="The recorder and the rewriter disagree about the source text.",
    )


def create_missing_operator_error(text: str, location: SourceLocation) -> RewriteError:
    return RewriteError(
        message=f"No compound assignment operator in '{text}'",
        location=location,
        code="R002",
        help_text="A reassignment record must contain one of +=, -=, *=, /=, %=.",
    )


def create_overlap_error(outer: str, inner: str, location: SourceLocation) -> RewriteError:
    return RewriteError(
        message=f"Occurrence '{inner}' overlaps '{outer}'",
        location=location,
        code="R003",
        help_text="Records must be disjoint or strictly nested.",
    )


def create_stale_position_error(recorded: str, actual: SourceLocation) -> RewriteError:
    return RewriteError(
        message=f"Record at {recorded} does not match its offset ({actual.line}:{actual.column})",
        location=actual,
        code="R004",
    )
