"""
The fix pipeline: pre-fix, parse with occurrence recording, rewrite.

    source -> known fixes -> parse (records !=, op=, short if) -> rewrite

Syntax errors are reported in the FixResult and produce no output.
GrammarError and RewriteError are bugs in this package, not in the input,
and propagate to the caller.

Author: xwest
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .config import FixerConfig
from .lexer.source import SourceText
from .parser.errors import ParseError, ParseWarning, create_short_if_warning
from .parser.parser import Parser
from .rewriter.prefix import apply_known_fixes
from .rewriter.recorder import ExtensionRecorder, OccurrenceKind, OccurrenceRecord
from .rewriter.rewriter import Rewriter

logger = logging.getLogger(__name__)


@dataclass
class FixResult:
    """Results of fixing one cart."""
    code: Optional[str]
    source: SourceText
    occurrences: List[OccurrenceRecord] = field(default_factory=list)
    errors: List[ParseError] = field(default_factory=list)
    warnings: List[ParseWarning] = field(default_factory=list)
    applied_fixes: List[str] = field(default_factory=list)

    def has_errors(self) -> bool:
        """Check if the fix failed."""
        return len(self.errors) > 0

    def has_warnings(self) -> bool:
        return len(self.warnings) > 0

    def occurrences_of(self, kind: OccurrenceKind) -> List[OccurrenceRecord]:
        return [occurrence for occurrence in self.occurrences if occurrence.kind is kind]


class CodeFixer:
    """
    Normalizes one PICO-8 cart to canonical Lua 5.3.

    Construct with the code and a config, then call fix(). The instance is
    single use.
    """

    def __init__(self, code: str, config: Optional[FixerConfig] = None):
        self.config = config or FixerConfig()
        self.source = SourceText(code, self.config.filename)

    def fix(self) -> FixResult:
        config = self.config
        source = self.source
        applied: List[str] = []
        if config.apply_known_fixes:
            source, applied = apply_known_fixes(source)
        result = FixResult(code=None, source=source, applied_fixes=applied)

        parser = Parser(pico8=config.pico8, recursion_limit=config.recursion_limit)
        recorder = ExtensionRecorder()
        try:
            parser.parse(source, actions=recorder.actions, logs=recorder.attached_logs())
        except ParseError as error:
            logger.error("Failed to parse %s: %s", source.filename, error.diagnostic.message)
            result.errors.append(error)
            return result

        recorder.report()
        result.occurrences = recorder.occurrences()
        for occurrence in result.occurrences_of(OccurrenceKind.SHORT_IF):
            warning = create_short_if_warning(source.location(occurrence.offset), occurrence.text)
            logger.warning("%s", warning.diagnostic.message)
            result.warnings.append(warning)

        rewriter = Rewriter(source)
        result.code = rewriter.rewrite(
            recorder.occurrences(OccurrenceKind.NOT_EQUAL, OccurrenceKind.REASSIGNMENT))
        logger.info("Fixed %s: %s", source.filename, recorder.counts())
        return result


def fix_code(code: str, config: Optional[FixerConfig] = None) -> str:
    """
    Return `code` rewritten to canonical Lua 5.3.

    Raises:
        ParseError: if the code does not parse
    """
    result = CodeFixer(code, config).fix()
    if result.has_errors():
        raise result.errors[0]
    return result.code
