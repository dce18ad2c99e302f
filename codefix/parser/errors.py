"""
Error handling for the codefix parser.

Syntax errors carry the furthest position the matcher reached together with
the stack of grammar rules that were active there, which is the most useful
thing a PEG can tell a user about where their code went wrong.

Author: xwest
"""

from typing import Optional, List, Sequence, Tuple

from ..lexer.source import SourceLocation
from ..lexer.errors import Diagnostic, ErrorRecovery


class ParseError(Exception):
    """
    Exception raised when the input does not match the grammar.

    Contains detailed diagnostic information for error reporting.
    """

    def __init__(
        self,
        message: str,
        location: SourceLocation,
        rule: Optional[str] = None,
        context: Sequence[str] = (),
        code: Optional[str] = None,
        help_text: Optional[str] = None,
        suggestions: Optional[List[str]] = None
    ):
        super().__init__(message)
        self.diagnostic = Diagnostic(
            message=message,
            location=location,
            severity="error",
            code=code,
            help_text=help_text,
            suggestions=suggestions
        )
        self.rule = rule
        self.context: Tuple[str, ...] = tuple(context)

    @property
    def location(self) -> SourceLocation:
        return self.diagnostic.location

    def __str__(self) -> str:
        return str(self.diagnostic)


class ParseWarning:
    """
    Represents a parser warning that doesn't stop the fix.
    """

    def __init__(
        self,
        message: str,
        location: SourceLocation,
        text: str = "",
        code: Optional[str] = None,
        help_text: Optional[str] = None,
        suggestions: Optional[List[str]] = None
    ):
        self.diagnostic = Diagnostic(
            message=message,
            location=location,
            severity="warning",
            code=code,
            help_text=help_text,
            suggestions=suggestions
        )
        self.text = text

    @property
    def location(self) -> SourceLocation:
        return self.diagnostic.location

    def __str__(self) -> str:
        return str(self.diagnostic)


# Common parser error codes for categorization
PARSER_ERROR_CODES = {
    "P001": "Syntax error",
    "P002": "Unterminated long bracket",
    "P003": "Nesting too deep",
    "W001": "Unsupported single-line if",
}


def _context_text(context: Sequence[str]) -> str:
    # The innermost few rules are what a reader can act on.
    if not context:
        return ""
    tail = list(context[-4:])
    return " > ".join(tail)


def create_syntax_error(rule: Optional[str], location: SourceLocation,
                        context: Sequence[str], found: str,
                        keywords: Optional[List[str]] = None) -> ParseError:
    """Create an error for input that does not match the grammar."""
    if found:
        message = f"Syntax error near '{found}'"
    else:
        message = "Syntax error at end of input"
    if rule:
        message += f" while matching {rule}"

    help_text = None
    if context:
        help_text = f"Parser was inside: {_context_text(context)}"

    suggestions = []
    if keywords and found:
        for keyword in ErrorRecovery.suggest_keyword_corrections(found, keywords):
            suggestions.append(f"Did you mean '{keyword}'?")

    return ParseError(
        message=message,
        location=location,
        rule=rule,
        context=context,
        code="P001",
        help_text=help_text,
        suggestions=suggestions or None
    )


def create_unterminated_long_bracket_error(level: int, location: SourceLocation,
                                           context: Sequence[str]) -> ParseError:
    """Create an error for a long string or comment that is never closed."""
    closing = "]" + "=" * level + "]"
    return ParseError(
        message="Unterminated long bracket",
        location=location,
        rule="long_string",
        context=context,
        code="P002",
        help_text=f"A long string or comment opened here must be closed with '{closing}'.",
        suggestions=[f"Add a closing '{closing}'"]
    )


def create_short_if_warning(location: SourceLocation, text: str) -> ParseWarning:
    """Create a warning for the single-line if form, which is never rewritten."""
    return ParseWarning(
        message=f"Unsupported single-line if: {text.strip()}",
        location=location,
        text=text,
        code="W001",
        help_text="The form 'if (cond) stmt' is not rewritten; its extent is ambiguous with nested blocks.",
        suggestions=["Rewrite it as 'if cond then stmt end'"]
    )


def create_nesting_error(location: SourceLocation, limit: int) -> ParseError:
    """Create an error for input nested deeper than the matcher can follow."""
    return ParseError(
        message="Code is nested too deeply to parse",
        location=location,
        code="P003",
        help_text=f"The recursion limit ({limit}) was reached; raise recursion_limit to allow deeper nesting.",
    )
