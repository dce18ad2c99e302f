"""
Static self-check for PEG grammars.

Runs once per grammar, before any input is parsed, and looks for the
structural defects that would make the matcher hang or silently ignore
rules:

- references to rules that were never defined
- rules that cannot be reached from the root
- repetitions (star, plus, until) whose body can succeed without consuming
  input, which would loop forever
- left recursion: a rule that can invoke itself before consuming anything

Author: xwest
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Set

from ..parser.peg import (
    Grammar, RuleNode, Literal, EndOfInput, EndOfLine, Seq, Sor, Star, Plus,
    Opt, RepOpt, At, Until, Must, Named, Ref,
)
from .errors import GrammarDefect, GrammarError

logger = logging.getLogger(__name__)


@dataclass
class GrammarReport:
    """Results of a grammar self-check."""
    grammar: str
    rule_count: int
    defects: List[GrammarDefect] = field(default_factory=list)
    nullable_rules: Set[str] = field(default_factory=set)

    def has_errors(self) -> bool:
        return len(self.defects) > 0

    def codes(self) -> List[str]:
        return [defect.code for defect in self.defects]


class GrammarChecker:
    """Runs every structural check over one grammar."""

    def __init__(self, grammar: Grammar):
        self.grammar = grammar
        self._nullable: Dict[str, bool] = {}

    def analyze(self) -> GrammarReport:
        grammar = self.grammar
        report = GrammarReport(grammar.name, len(grammar.rules))

        if grammar.root not in grammar.rules:
            report.defects.append(GrammarDefect("G005", grammar.root, "root rule is not defined"))
            return report

        self._check_references(report)
        self._compute_nullable()
        report.nullable_rules = {name for name, value in self._nullable.items() if value}
        self._check_reachability(report)
        self._check_loops(report)
        self._check_left_recursion(report)
        return report

    # Structure walking

    def _rule_nodes(self, rule: Named):
        """Nodes inside one rule body, stopping at references."""
        stack: List[RuleNode] = [rule.body]
        seen = set()
        while stack:
            node = stack.pop()
            if id(node) in seen:
                continue
            seen.add(id(node))
            yield node
            if isinstance(node, (Ref, Named)):
                continue
            stack.extend(node.children())

    def _check_references(self, report: GrammarReport) -> None:
        for name, rule in self.grammar.rules.items():
            for node in self._rule_nodes(rule):
                if isinstance(node, Ref) and node.name not in self.grammar.rules:
                    report.defects.append(GrammarDefect(
                        "G001", name, f"refers to undefined rule '{node.name}'"))

    def _check_reachability(self, report: GrammarReport) -> None:
        reached = {self.grammar.root}
        pending = [self.grammar.root]
        while pending:
            rule = self.grammar.rules[pending.pop()]
            for node in self._rule_nodes(rule):
                if isinstance(node, (Ref, Named)) and node.name in self.grammar.rules \
                        and node.name not in reached:
                    reached.add(node.name)
                    pending.append(node.name)

        for name in self.grammar.rules:
            if name not in reached:
                report.defects.append(GrammarDefect(
                    "G002", name, f"is not reachable from '{self.grammar.root}'"))

    # Nullability

    def _compute_nullable(self) -> None:
        self._nullable = {name: False for name in self.grammar.rules}
        changed = True
        while changed:
            changed = False
            for name, rule in self.grammar.rules.items():
                if not self._nullable[name] and self.nullable(rule.body):
                    self._nullable[name] = True
                    changed = True

    def nullable(self, node: RuleNode) -> bool:
        """Can `node` succeed without consuming input?"""
        if isinstance(node, (Ref, Named)):
            return self._nullable.get(node.name, False)
        if isinstance(node, Literal):
            return node.text == ""
        if isinstance(node, EndOfInput):
            return True
        if isinstance(node, EndOfLine):
            return node.or_end
        if isinstance(node, Seq):
            return all(self.nullable(item) for item in node.items)
        if isinstance(node, Sor):
            return any(self.nullable(alt) for alt in node.alternatives)
        if isinstance(node, (Star, Opt, RepOpt, At)):
            return True
        if isinstance(node, (Plus, Must)):
            return self.nullable(node.body)
        if isinstance(node, Until):
            return self.nullable(node.condition)
        # Character-consuming terminals
        return False

    def _check_loops(self, report: GrammarReport) -> None:
        for name, rule in self.grammar.rules.items():
            for node in self._rule_nodes(rule):
                if isinstance(node, (Star, Plus)) and self.nullable(node.body):
                    report.defects.append(GrammarDefect(
                        "G003", name, f"repeats {node.body.describe()}, which can match nothing"))
                elif isinstance(node, Until) and node.body is not None and self.nullable(node.body):
                    report.defects.append(GrammarDefect(
                        "G003", name, f"until-loop body {node.body.describe()} can match nothing"))

    # Left recursion

    def first_calls(self, node: RuleNode) -> Set[str]:
        """Rules that may be entered before `node` consumes anything."""
        if isinstance(node, (Ref, Named)):
            return {node.name}
        if isinstance(node, Seq):
            calls: Set[str] = set()
            for item in node.items:
                calls |= self.first_calls(item)
                if not self.nullable(item):
                    break
            return calls
        if isinstance(node, Sor):
            calls = set()
            for alt in node.alternatives:
                calls |= self.first_calls(alt)
            return calls
        if isinstance(node, Until):
            calls = self.first_calls(node.condition)
            if node.body is not None:
                calls |= self.first_calls(node.body)
            return calls
        if isinstance(node, (Star, Plus, Opt, RepOpt, At, Must)):
            return self.first_calls(node.body)
        return set()

    def _check_left_recursion(self, report: GrammarReport) -> None:
        graph = {
            name: sorted(self.first_calls(rule.body) & set(self.grammar.rules))
            for name, rule in self.grammar.rules.items()
        }
        reported: Set[frozenset] = set()
        visiting: List[str] = []
        done: Set[str] = set()

        def visit(name: str) -> None:
            if name in done:
                return
            if name in visiting:
                cycle = visiting[visiting.index(name):]
                key = frozenset(cycle)
                if key not in reported:
                    reported.add(key)
                    path = " -> ".join(cycle + [name])
                    report.defects.append(GrammarDefect("G004", name, f"is left recursive: {path}"))
                return
            visiting.append(name)
            for callee in graph[name]:
                visit(callee)
            visiting.pop()
            done.add(name)

        for name in graph:
            visit(name)


def check_grammar(grammar: Grammar) -> GrammarReport:
    """
    Run the self-check and mark the grammar as checked.

    Raises:
        GrammarError: listing every defect, if any were found
    """
    logger.info("Checking grammar %s (%d rules)", grammar.name, len(grammar.rules))
    report = GrammarChecker(grammar).analyze()
    if report.has_errors():
        for defect in report.defects:
            logger.error("Grammar defect %s", defect)
        raise GrammarError(grammar.name, report.defects)
    grammar.checked = True
    return report
