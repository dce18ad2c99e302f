"""
codefix parser package

PEG matcher, the Lua 5.3 grammar with its PICO-8 extensions, and the
parser front end.

Author: xwest
"""

from .errors import ParseError, ParseWarning, PARSER_ERROR_CODES
from .peg import Grammar, ParseState, ActionInput, Mark
from .lexical import KEYWORDS
from .grammar import ROOT_RULE, GrammarBuilder, build_grammar, get_grammar
from .parser import Parser, ParseResult, parse_string, parse_file, DEFAULT_RECURSION_LIMIT

__all__ = [
    "ParseError",
    "ParseWarning",
    "PARSER_ERROR_CODES",
    "Grammar",
    "ParseState",
    "ActionInput",
    "Mark",
    "KEYWORDS",
    "ROOT_RULE",
    "GrammarBuilder",
    "build_grammar",
    "get_grammar",
    "Parser",
    "ParseResult",
    "parse_string",
    "parse_file",
    "DEFAULT_RECURSION_LIMIT",
]
