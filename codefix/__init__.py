"""
codefix

Parser and source rewriter for PICO-8 cart code. Checks the code against
the Lua 5.3 grammar extended with the PICO-8 dialect and rewrites the
dialect extensions (!=, compound assignment) into plain Lua 5.3.

Architecture:
    codefix/
    ├── lexer/           # Source buffers, locations, diagnostics
    ├── parser/          # PEG matcher, Lua/PICO-8 grammar, parser front end
    ├── analyzer/        # Static self-check of grammars
    ├── rewriter/        # Occurrence recording, pre-fix, rewriting
    ├── config.py        # FixerConfig
    └── fixer.py         # The fix pipeline

Author: xwest
License: MIT
"""

__version__ = "0.1.0"
__author__ = "xwest"
__license__ = "MIT"

from .config import FixerConfig
from .fixer import CodeFixer, FixResult, fix_code
from .parser import Parser, ParseError, ParseWarning, get_grammar
from .analyzer import GrammarError, check_grammar
from .rewriter import RewriteError, OccurrenceKind

__all__ = [
    "FixerConfig",
    "CodeFixer",
    "FixResult",
    "fix_code",
    "Parser",
    "ParseError",
    "ParseWarning",
    "get_grammar",
    "GrammarError",
    "check_grammar",
    "RewriteError",
    "OccurrenceKind",

    # Version info
    "__version__",
    "__author__",
    "__license__",
]
