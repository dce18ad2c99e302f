"""
codefix grammar analyzer package

Static self-check run once per grammar before any input is parsed:
undefined references, unreachable rules, loops over rules that can match
nothing, and left recursion.

Author: xwest
"""

from .grammar_check import GrammarChecker, GrammarReport, check_grammar
from .errors import GrammarError, GrammarDefect

__all__ = [
    "GrammarChecker",
    "GrammarReport",
    "check_grammar",
    "GrammarError",
    "GrammarDefect",
]
