"""
codefix rewriter package

Records dialect extensions during a parse and turns them into canonical
Lua 5.3 text.

Author: xwest
"""

from .recorder import (
    OccurrenceKind, OccurrenceRecord, OccurrenceLog, OffsetLog, Lexeme, ExtensionRecorder,
)
from .rewriter import Edit, EditPlan, Rewriter, rewrite
from .prefix import KnownFix, KNOWN_FIXES, apply_known_fixes
from .errors import RewriteError, REWRITE_ERROR_CODES

__all__ = [
    "OccurrenceKind",
    "OccurrenceRecord",
    "OccurrenceLog",
    "OffsetLog",
    "Lexeme",
    "ExtensionRecorder",
    "Edit",
    "EditPlan",
    "Rewriter",
    "rewrite",
    "KnownFix",
    "KNOWN_FIXES",
    "apply_known_fixes",
    "RewriteError",
    "REWRITE_ERROR_CODES",
]
