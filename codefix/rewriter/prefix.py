"""
Known-pattern pre-fix.

Some carts contain constructs that only the PICO-8 runtime accepts and that
the grammar cannot express. The ones we know about are patched by literal
substitution before parsing.

Author: xwest
"""

import logging
from dataclasses import dataclass
from typing import List, Tuple

from ..lexer.source import SourceText

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KnownFix:
    """
    Replace the first occurrence of `pattern` with `replacement` and append
    `suffix` to the source when the pattern is found.
    """
    name: str
    pattern: str
    replacement: str
    suffix: str = ""

    def apply(self, text: str) -> Tuple[str, bool]:
        index = text.find(self.pattern)
        if index < 0:
            return text, False
        patched = text[:index] + self.replacement + text[index + len(self.pattern):]
        return patched + self.suffix, True


KNOWN_FIXES: List[KnownFix] = [
    # if(_update60)_update=function() ... never closes the short if
    KnownFix(
        name="update60_short_if",
        pattern="if(_update60)_update=function()",
        replacement="\nif(_update60)then _update=function()",
        suffix=" end",
    ),
]


def apply_known_fixes(source: SourceText, fixes: List[KnownFix] = None) -> Tuple[SourceText, List[str]]:
    """Apply every known fix. Returns the new source and the names applied."""
    text = source.text
    applied = []
    for fix in KNOWN_FIXES if fixes is None else fixes:
        text, changed = fix.apply(text)
        if changed:
            logger.info("Applied known fix %s", fix.name)
            applied.append(fix.name)
    if not applied:
        return source, applied
    return source.replaced(text), applied
