"""
Parser front end for the Lua 5.3 / PICO-8 grammar.

Wraps the PEG matcher: builds a fresh ParseState per call, attaches the
caller's actions and occurrence logs, and turns matcher failures into
ParseError diagnostics. A successful parse produces no tree; callers learn
about the input through the actions they attach.

Author: xwest
"""

import logging
import sys
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Union

from ..lexer.source import SourceText
from .errors import ParseError, create_nesting_error
from .grammar import get_grammar
from .peg import Action, Grammar, ParseState

logger = logging.getLogger(__name__)

DEFAULT_RECURSION_LIMIT = 8000


@dataclass
class ParseResult:
    """Outcome of a successful parse."""
    source: SourceText
    grammar: str
    rule: str
    consumed: int

    @property
    def complete(self) -> bool:
        return self.consumed == len(self.source)


@contextmanager
def _recursion_limit(limit: int):
    """Raise the interpreter recursion limit for the duration of a parse."""
    previous = sys.getrecursionlimit()
    if limit > previous:
        sys.setrecursionlimit(limit)
    try:
        yield
    finally:
        sys.setrecursionlimit(previous)


def _as_source(source: Union[str, SourceText], filename: str) -> SourceText:
    if isinstance(source, SourceText):
        return source
    return SourceText(source, filename)


class Parser:
    """
    Matches source text against a grammar.

    The grammar's static self-check runs before the first parse if it has
    not been run yet, so a broken grammar never sees input.
    """

    def __init__(self, grammar: Optional[Grammar] = None, pico8: bool = True,
                 recursion_limit: int = DEFAULT_RECURSION_LIMIT):
        if grammar is None:
            grammar = get_grammar(pico8)
        elif not grammar.checked:
            from ..analyzer.grammar_check import check_grammar
            check_grammar(grammar)
        self.grammar = grammar
        self.recursion_limit = recursion_limit
        self._last_state: Optional[ParseState] = None

    def parse(self, source: Union[str, SourceText], actions: Optional[Dict[str, Action]] = None,
              logs: Iterable = (), filename: str = "<cart>") -> ParseResult:
        """
        Parse a whole program from the grammar's root rule.

        Args:
            source: program text
            actions: rule name -> callable run when that rule succeeds
            logs: objects with a trim(offset) method, trimmed on every backtrack

        Raises:
            ParseError: if the text is not a program of the grammar
        """
        source = _as_source(source, filename)
        logger.debug("Parsing %s with %s", source.filename, self.grammar.name)
        consumed = self._run(self.grammar.root, source, actions, logs)
        if consumed is None:
            # The root rule is wrapped in must(), so this only happens for
            # hand-built grammars with an optional root.
            raise self._last_state.syntax_error(self.grammar.root)
        return ParseResult(source, self.grammar.name, self.grammar.root, consumed)

    def prefix_length(self, rule: str, source: Union[str, SourceText],
                      actions: Optional[Dict[str, Action]] = None) -> Optional[int]:
        """
        Match `rule` at the start of `source`. Returns the number of characters
        consumed, or None if the rule does not match.

        Raises:
            ParseError: if a committed part of the rule fails
        """
        return self._run(rule, _as_source(source, "<string>"), actions, ())

    def matches(self, rule: str, source: Union[str, SourceText]) -> bool:
        """Does `rule` match the whole of `source`? Syntax errors count as no."""
        source = _as_source(source, "<string>")
        try:
            consumed = self.prefix_length(rule, source)
        except ParseError as error:
            logger.debug("%s rejected %r: %s", rule, source.text, error.diagnostic.message)
            return False
        return consumed == len(source)

    def _run(self, rule: str, source: SourceText, actions: Optional[Dict[str, Action]],
             logs: Iterable) -> Optional[int]:
        state = ParseState(source, actions, self.grammar.keywords)
        for log in logs:
            state.attach(log)
        self._last_state = state
        with _recursion_limit(self.recursion_limit):
            try:
                ok = self.grammar[rule].match(state)
            except RecursionError:
                raise create_nesting_error(source.location(state.offset), self.recursion_limit) from None
        return state.offset if ok else None


def parse_string(text: str, pico8: bool = True, filename: str = "<string>") -> ParseResult:
    """Parse program text with the shared grammar for the dialect."""
    return Parser(pico8=pico8).parse(text, filename=filename)


def parse_file(path: str, pico8: bool = True) -> ParseResult:
    """Parse a Lua source file with the shared grammar for the dialect."""
    with open(path, "r", encoding="utf-8") as f:
        text = f.read()
    return Parser(pico8=pico8).parse(text, filename=path)
