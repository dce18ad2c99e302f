"""
A small PEG matcher in the PEGTL style.

Rules are trees of RuleNode objects interpreted directly against a
SourceText. Lexing and parsing happen in the same pass: there is no token
stream, terminals match characters.

Conventions every node follows:
- match() returns True after consuming its input, or False with the state
  exactly as it was on entry (offset, token_end and occurrence logs).
- The only way the cursor moves backwards is ParseState.restore(), and each
  restore also trims the attached occurrence logs.
- Must turns a failure into a ParseError. There is no recovery.

Author: xwest
"""

from abc import ABC, abstractmethod
from string import ascii_letters, digits, hexdigits
from typing import Callable, Dict, List, NamedTuple, Optional, Sequence, Tuple

from ..lexer.source import SourceText
from .errors import ParseError, create_syntax_error, create_unterminated_long_bracket_error


DIGITS = digits
XDIGITS = hexdigits
SPACES = " \t\n\r\v\f"
IDENT_FIRST = ascii_letters + "_"
IDENT_OTHER = IDENT_FIRST + digits


class Mark(NamedTuple):
    """A saved parse position."""
    offset: int
    token_end: int


class ActionInput:
    """The text matched by a named rule, as seen by an action."""

    __slots__ = ("source", "begin", "end", "token_end", "rule_begin")

    def __init__(self, source: SourceText, begin: int, end: int, token_end: int,
                 rule_begin: Optional[int] = None):
        self.source = source
        self.begin = begin
        self.end = end
        # Where the rule itself started; differs from begin for anchored rules
        self.rule_begin = begin if rule_begin is None else rule_begin
        # End of the last non-padding character, never before begin
        self.token_end = max(begin, min(token_end, end))

    def string(self) -> str:
        return self.source.text[self.begin:self.end]

    def significant(self) -> str:
        """Matched text without trailing whitespace and comments."""
        return self.source.text[self.begin:self.token_end]

    def location(self):
        return self.source.location(self.begin)


Action = Callable[[ActionInput], None]


class ParseState:
    """
    Mutable state of one parse: the cursor, the rule stack for diagnostics,
    the furthest failure seen, and the logs that must follow backtracking.
    """

    def __init__(self, source: SourceText, actions: Optional[Dict[str, Action]] = None,
                 keywords: Sequence[str] = ()):
        self.source = source
        self.text = source.text
        self.length = len(self.text)
        self.offset = 0
        self.token_end = 0
        self.actions: Dict[str, Action] = actions or {}
        self.keywords = list(keywords)
        self.rule_stack: List[str] = []
        self.anchors: List[int] = []
        self.furthest = 0
        self.furthest_context: Tuple[str, ...] = ()
        self._logs: list = []
        self._padding = 0
        self._quiet = 0
        self._predicate = 0

    def attach(self, log) -> None:
        """Attach a log whose trim(offset) must run on every restore."""
        self._logs.append(log)

    def mark(self) -> Mark:
        return Mark(self.offset, self.token_end)

    def restore(self, mark: Mark) -> None:
        self.offset = mark.offset
        self.token_end = mark.token_end
        for log in self._logs:
            log.trim(mark.offset)

    def advance(self, count: int) -> None:
        self.offset += count
        if not self._padding:
            self.token_end = self.offset

    def fail(self) -> bool:
        if not self._predicate and self.offset > self.furthest:
            self.furthest = self.offset
            self.furthest_context = tuple(self.rule_stack)
        return False

    def at_end(self) -> bool:
        return self.offset >= self.length

    # Error construction

    def _found_text(self, offset: int) -> str:
        if offset >= self.length:
            return ""
        end = offset
        while end < self.length and self.text[end] in IDENT_OTHER:
            end += 1
        if end == offset:
            end = offset + 1
        return self.text[offset:end]

    def syntax_error(self, rule: Optional[str]) -> ParseError:
        if self.furthest >= self.offset:
            offset, context = self.furthest, self.furthest_context
        else:
            offset, context = self.offset, tuple(self.rule_stack)
        return create_syntax_error(
            rule, self.source.location(offset), context,
            self._found_text(offset), self.keywords
        )

    def unterminated_error(self, level: int, offset: int) -> ParseError:
        return create_unterminated_long_bracket_error(
            level, self.source.location(offset), tuple(self.rule_stack)
        )


# ============================================================================
# Rule nodes
# ============================================================================

class RuleNode(ABC):
    """Base class for grammar rule nodes."""

    @abstractmethod
    def match(self, state: ParseState) -> bool:
        ...

    def children(self) -> Tuple["RuleNode", ...]:
        return ()

    @abstractmethod
    def describe(self) -> str:
        ...

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.describe()}>"


# Terminals

class Literal(RuleNode):
    def __init__(self, text: str, ignore_case: bool = False):
        self.text = text
        self.ignore_case = ignore_case
        self._folded = text.lower()

    def match(self, state: ParseState) -> bool:
        end = state.offset + len(self.text)
        if self.ignore_case:
            ok = state.text[state.offset:end].lower() == self._folded
        else:
            ok = state.text.startswith(self.text, state.offset)
        if ok:
            state.advance(len(self.text))
            return True
        return state.fail()

    def describe(self) -> str:
        return repr(self.text)


class CharSet(RuleNode):
    def __init__(self, chars: str, negated: bool = False):
        self.chars = frozenset(chars)
        self.negated = negated
        self._label = chars

    def match(self, state: ParseState) -> bool:
        if state.offset < state.length and (state.text[state.offset] in self.chars) != self.negated:
            state.advance(1)
            return True
        return state.fail()

    def describe(self) -> str:
        prefix = "^" if self.negated else ""
        return f"[{prefix}{self._label!r}]"


class Identifier(RuleNode):
    """[A-Za-z_][A-Za-z0-9_]* as a single terminal."""

    def match(self, state: ParseState) -> bool:
        text, offset = state.text, state.offset
        if offset >= state.length or text[offset] not in IDENT_FIRST:
            return state.fail()
        end = offset + 1
        while end < state.length and text[end] in IDENT_OTHER:
            end += 1
        state.advance(end - offset)
        return True

    def describe(self) -> str:
        return "identifier"


class EndOfInput(RuleNode):
    def match(self, state: ParseState) -> bool:
        return True if state.at_end() else state.fail()

    def describe(self) -> str:
        return "end of input"


class EndOfLine(RuleNode):
    """'\\n' or '\\r\\n', optionally also succeeding at end of input."""

    def __init__(self, or_end: bool = False):
        self.or_end = or_end

    def match(self, state: ParseState) -> bool:
        if self.or_end and state.at_end():
            return True
        if state.text.startswith("\n", state.offset):
            state.advance(1)
            return True
        if state.text.startswith("\r\n", state.offset):
            state.advance(2)
            return True
        return state.fail()

    def describe(self) -> str:
        return "end of line or input" if self.or_end else "end of line"


class LongBracket(RuleNode):
    """
    [==[ ... ]==] with any number of '=' signs. Once the opening bracket is
    recognised a missing close is fatal.
    """

    def match(self, state: ParseState) -> bool:
        text, start = state.text, state.offset
        if not text.startswith("[", start):
            return state.fail()
        cursor = start + 1
        while cursor < state.length and text[cursor] == "=":
            cursor += 1
        if not text.startswith("[", cursor):
            return state.fail()
        level = cursor - start - 1
        close = "]" + "=" * level + "]"
        found = text.find(close, cursor + 1)
        if found < 0:
            raise state.unterminated_error(level, start)
        state.advance(found + len(close) - start)
        return True

    def describe(self) -> str:
        return "long bracket"


# Combinators

class Seq(RuleNode):
    def __init__(self, *items: RuleNode):
        self.items = items

    def match(self, state: ParseState) -> bool:
        mark = state.mark()
        for item in self.items:
            if not item.match(state):
                state.restore(mark)
                return False
        return True

    def children(self) -> Tuple[RuleNode, ...]:
        return self.items

    def describe(self) -> str:
        return "(" + " ".join(item.describe() for item in self.items) + ")"


class Sor(RuleNode):
    """Ordered choice: the first alternative that matches wins."""

    def __init__(self, *alternatives: RuleNode):
        self.alternatives = alternatives

    def match(self, state: ParseState) -> bool:
        mark = state.mark()
        for alternative in self.alternatives:
            if alternative.match(state):
                return True
            state.restore(mark)
        return False

    def children(self) -> Tuple[RuleNode, ...]:
        return self.alternatives

    def describe(self) -> str:
        return "(" + " | ".join(alt.describe() for alt in self.alternatives) + ")"


class Star(RuleNode):
    def __init__(self, body: RuleNode):
        self.body = body

    def match(self, state: ParseState) -> bool:
        while True:
            mark = state.mark()
            if not self.body.match(state):
                state.restore(mark)
                return True

    def children(self) -> Tuple[RuleNode, ...]:
        return (self.body,)

    def describe(self) -> str:
        return f"{self.body.describe()}*"


class Plus(RuleNode):
    def __init__(self, body: RuleNode):
        self.body = body

    def match(self, state: ParseState) -> bool:
        if not self.body.match(state):
            return False
        while True:
            mark = state.mark()
            if not self.body.match(state):
                state.restore(mark)
                return True

    def children(self) -> Tuple[RuleNode, ...]:
        return (self.body,)

    def describe(self) -> str:
        return f"{self.body.describe()}+"


class Opt(RuleNode):
    def __init__(self, body: RuleNode):
        self.body = body

    def match(self, state: ParseState) -> bool:
        mark = state.mark()
        if not self.body.match(state):
            state.restore(mark)
        return True

    def children(self) -> Tuple[RuleNode, ...]:
        return (self.body,)

    def describe(self) -> str:
        return f"{self.body.describe()}?"


class RepOpt(RuleNode):
    """Between zero and `count` repetitions."""

    def __init__(self, count: int, body: RuleNode):
        self.count = count
        self.body = body

    def match(self, state: ParseState) -> bool:
        for _ in range(self.count):
            mark = state.mark()
            if not self.body.match(state):
                state.restore(mark)
                break
        return True

    def children(self) -> Tuple[RuleNode, ...]:
        return (self.body,)

    def describe(self) -> str:
        return f"{self.body.describe()}{{0,{self.count}}}"


class At(RuleNode):
    """Lookahead. Never consumes, never runs actions."""

    def __init__(self, body: RuleNode, negated: bool = False):
        self.body = body
        self.negated = negated

    def match(self, state: ParseState) -> bool:
        mark = state.mark()
        state._quiet += 1
        state._predicate += 1
        try:
            ok = self.body.match(state)
        finally:
            state._quiet -= 1
            state._predicate -= 1
        state.restore(mark)
        return ok != self.negated

    def children(self) -> Tuple[RuleNode, ...]:
        return (self.body,)

    def describe(self) -> str:
        return ("!" if self.negated else "&") + self.body.describe()


class Until(RuleNode):
    """
    Repeat `body` until `condition` matches; the condition is consumed.
    Without a body, any single character is skipped per iteration.
    """

    def __init__(self, condition: RuleNode, body: Optional[RuleNode] = None):
        self.condition = condition
        self.body = body

    def match(self, state: ParseState) -> bool:
        mark = state.mark()
        while not self.condition.match(state):
            if self.body is None:
                if state.at_end():
                    state.restore(mark)
                    return state.fail()
                state.advance(1)
            elif not self.body.match(state):
                state.restore(mark)
                return False
        return True

    def children(self) -> Tuple[RuleNode, ...]:
        if self.body is None:
            return (self.condition,)
        return (self.condition, self.body)

    def describe(self) -> str:
        body = self.body.describe() if self.body is not None else "any"
        return f"until({self.condition.describe()}; {body})"


class Must(RuleNode):
    """Failure of the body is a syntax error, not a backtrack."""

    def __init__(self, body: RuleNode):
        self.body = body

    def match(self, state: ParseState) -> bool:
        if self.body.match(state):
            return True
        raise state.syntax_error(self.body.describe())

    def children(self) -> Tuple[RuleNode, ...]:
        return (self.body,)

    def describe(self) -> str:
        return self.body.describe()


class Named(RuleNode):
    """
    A grammar rule with a name. Names show up in diagnostics and select the
    action run when the rule succeeds.

    An `anchor` rule remembers where it started for the rules inside it. An
    `anchored` rule reports its match from the innermost enclosing anchor,
    so a rule that recognises only the end of a construct can still record
    the whole construct.
    """

    def __init__(self, name: str, body: RuleNode, padding: bool = False,
                 quiet: bool = False, anchor: bool = False, anchored: bool = False):
        self.name = name
        self.body = body
        self.padding = padding
        self.quiet = quiet
        self.anchor = anchor
        self.anchored = anchored

    def match(self, state: ParseState) -> bool:
        begin = state.offset
        state.rule_stack.append(self.name)
        if self.padding:
            state._padding += 1
        if self.quiet:
            state._quiet += 1
        if self.anchor:
            state.anchors.append(begin)
        try:
            ok = self.body.match(state)
        finally:
            state.rule_stack.pop()
            if self.padding:
                state._padding -= 1
            if self.quiet:
                state._quiet -= 1
            if self.anchor:
                state.anchors.pop()
        if ok and state._quiet == 0:
            action = state.actions.get(self.name)
            if action is not None:
                start = state.anchors[-1] if self.anchored and state.anchors else begin
                action(ActionInput(state.source, start, state.offset, state.token_end, begin))
        return ok

    def children(self) -> Tuple[RuleNode, ...]:
        return (self.body,)

    def describe(self) -> str:
        return self.name


class Ref(RuleNode):
    """A by-name reference, linked once the whole grammar is defined."""

    def __init__(self, name: str):
        self.name = name
        self.target: Optional[Named] = None

    def match(self, state: ParseState) -> bool:
        return self.target.match(state)

    def children(self) -> Tuple[RuleNode, ...]:
        return (self.target,) if self.target is not None else ()

    def describe(self) -> str:
        return self.name


# ============================================================================
# Grammar container
# ============================================================================

class Grammar:
    """
    A set of named rules with a root. Rules may refer to each other by name
    through Ref nodes; link() resolves them.
    """

    def __init__(self, name: str, root: str, keywords: Sequence[str] = ()):
        self.name = name
        self.root = root
        self.keywords = list(keywords)
        self.rules: Dict[str, Named] = {}
        self._refs: List[Ref] = []
        self.checked = False

    def define(self, name: str, body: RuleNode, padding: bool = False,
               quiet: bool = False, anchor: bool = False, anchored: bool = False) -> Named:
        if name in self.rules:
            raise ValueError(f"rule '{name}' defined twice in grammar {self.name}")
        rule = Named(name, body, padding=padding, quiet=quiet, anchor=anchor, anchored=anchored)
        self.rules[name] = rule
        return rule

    def ref(self, name: str) -> Ref:
        reference = Ref(name)
        self._refs.append(reference)
        return reference

    def link(self) -> List[str]:
        """Resolve references. Returns the names that could not be resolved."""
        missing = []
        for reference in self._refs:
            reference.target = self.rules.get(reference.name)
            if reference.target is None:
                missing.append(reference.name)
        return missing

    def __getitem__(self, name: str) -> Named:
        return self.rules[name]

    def __contains__(self, name: str) -> bool:
        return name in self.rules


# ============================================================================
# Construction helpers (PEGTL names)
# ============================================================================

def one(*chars: str) -> RuleNode:
    return CharSet("".join(chars))


def not_one(*chars: str) -> RuleNode:
    return CharSet("".join(chars), negated=True)


def string(text: str) -> RuleNode:
    return Literal(text)


def istring(text: str) -> RuleNode:
    return Literal(text, ignore_case=True)


def seq(*items: RuleNode) -> RuleNode:
    return items[0] if len(items) == 1 else Seq(*items)


def sor(*alternatives: RuleNode) -> RuleNode:
    return Sor(*alternatives)


def star(*items: RuleNode) -> RuleNode:
    return Star(seq(*items))


def plus(*items: RuleNode) -> RuleNode:
    return Plus(seq(*items))


def opt(*items: RuleNode) -> RuleNode:
    return Opt(seq(*items))


def rep_opt(count: int, *items: RuleNode) -> RuleNode:
    return RepOpt(count, seq(*items))


def at(*items: RuleNode) -> RuleNode:
    return At(seq(*items))


def not_at(*items: RuleNode) -> RuleNode:
    return At(seq(*items), negated=True)


def until(condition: RuleNode, *body: RuleNode) -> RuleNode:
    return Until(condition, seq(*body) if body else None)


def must(*items: RuleNode) -> RuleNode:
    return seq(*[Must(item) for item in items])


def if_must(first: RuleNode, *rest: RuleNode) -> RuleNode:
    return Seq(first, *[Must(item) for item in rest])


def pad(rule: RuleNode, padding: RuleNode) -> RuleNode:
    return Seq(Star(padding), rule, Star(padding))


def pad_opt(rule: RuleNode, padding: RuleNode) -> RuleNode:
    return Seq(Star(padding), Opt(Seq(rule, Star(padding))))


def list_of(rule: RuleNode, separator: RuleNode, padding: RuleNode) -> RuleNode:
    return Seq(rule, Star(Seq(pad(separator, padding), rule)))


def list_must(rule: RuleNode, separator: RuleNode, padding: RuleNode) -> RuleNode:
    return Seq(rule, Star(if_must(pad(separator, padding), rule)))


def list_tail(rule: RuleNode, separator: RuleNode, padding: RuleNode) -> RuleNode:
    return Seq(list_of(rule, separator, padding), Opt(Seq(Star(padding), separator)))


def eof() -> RuleNode:
    return EndOfInput()


def eolf() -> RuleNode:
    return EndOfLine(or_end=True)


def identifier() -> RuleNode:
    return Identifier()
