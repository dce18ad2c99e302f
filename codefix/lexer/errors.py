"""
Shared diagnostic types for codefix.

Every stage (grammar check, parse, rewrite) reports through the same
Diagnostic record so callers can print or collect them uniformly.

Author: xwest
"""

from typing import Optional, List
from dataclasses import dataclass

from .source import SourceLocation


@dataclass
class Diagnostic:
    """Base class for diagnostics (errors, warnings, info)."""
    message: str
    location: Optional[SourceLocation]
    severity: str  # "error", "warning", "info"
    code: Optional[str] = None
    help_text: Optional[str] = None
    suggestions: Optional[List[str]] = None

    def __str__(self) -> str:
        severity_prefix = self.severity.upper()
        result = f"{severity_prefix}: {self.message}\n"
        if self.location is not None:
            result += f"  --> {self.location}"
            if self.location.byte_offset is not None:
                result += f" (byte {self.location.byte_offset})"
            result += "\n"

        if self.help_text:
            result += f"  help: {self.help_text}\n"

        if self.suggestions:
            result += "  suggestions:\n"
            for suggestion in self.suggestions:
                result += f"    - {suggestion}\n"

        return result


class ErrorRecovery:
    """
    Suggestion helpers used when building syntax error diagnostics.
    """

    @staticmethod
    def suggest_keyword_corrections(invalid_word: str, keywords: List[str]) -> List[str]:
        """Suggest corrections for misspelled keywords using edit distance."""
        word = invalid_word.lower()
        if not word or word in keywords:
            return []

        suggestions = []
        for keyword in keywords:
            distance = ErrorRecovery._edit_distance(word, keyword)
            if distance <= 2 and distance < len(keyword):
                suggestions.append(keyword)

        return sorted(suggestions, key=lambda k: ErrorRecovery._edit_distance(word, k))[:3]

    @staticmethod
    def _edit_distance(s1: str, s2: str) -> int:
        """Calculate Levenshtein distance between two strings."""
        if len(s1) < len(s2):
            return ErrorRecovery._edit_distance(s2, s1)

        if len(s2) == 0:
            return len(s1)

        previous_row = list(range(len(s2) + 1))
        for i, c1 in enumerate(s1):
            current_row = [i + 1]
            for j, c2 in enumerate(s2):
                insertions = previous_row[j + 1] + 1
                deletions = current_row[j] + 1
                substitutions = previous_row[j] + (c1 != c2)
                current_row.append(min(insertions, deletions, substitutions))
            previous_row = current_row

        return previous_row[-1]
