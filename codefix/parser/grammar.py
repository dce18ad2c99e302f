"""
Lua 5.3 grammar with the PICO-8 dialect extensions.

The grammar follows the Lua reference manual, restructured for a PEG:

- Operator precedence and associativity are encoded in thirteen tiers,
  expr_thirteen (tightest) down to expression. Left-associative tiers are
  `S (op S)*`, right-associative tiers recurse into themselves only after
  the operator has been consumed, so there is no left recursion.

- The reference productions

      prefixexp ::= var | functioncall | '(' exp ')'
      functioncall ::= prefixexp args | prefixexp ':' Name args
      var ::= Name | prefixexp '[' exp ']' | prefixexp '.' Name

  are left recursive, and in a chain such as `( a * b ).c()[ d ].e:f()`
  only the last element decides between call and variable. Each production
  is split into a head (how a chain starts) and tails (continuations):

      vartail  ::= '[' exp ']' | '.' Name
      calltail ::= args | ':' Name args
      var      ::= varhead { { calltail } vartail }
      combined ::= ( '(' exp ')' | Name ) { calltail | vartail }

  Tails are consumed one after the other and never re-parsed; `combined`
  (expr_thirteen) is what expressions use. A statement starting with a
  chain walks it once through continuation rules named after the element
  seen last, and that element decides whether an assignment must follow:

      stmt      ::= Name varcont | '(' exp ')' headcont
      varcont   ::= calltail callcont | vartail varcont | assignment
      callcont  ::= [ calltail callcont | vartail varcont ]
      headcont  ::= calltail callcont | vartail varcont

The dialect rules (operator_notequal, reassignment, short_if_statement) are
only defined when the grammar is built with pico8=True.

Author: xwest
"""

from typing import Dict

from .peg import (
    Grammar, RuleNode, eof, eolf, identifier, if_must, list_must, list_of,
    list_tail, must, not_at, not_one, one, opt, pad, pad_opt, plus, seq, sor,
    star, string, until,
)
from .lexical import KEYWORDS, define_lexical_rules, keyword_lookahead


ROOT_RULE = "grammar"


def op_one(operator: str, *excluded: str) -> RuleNode:
    """A one-character operator not followed by any of `excluded`."""
    return seq(one(operator), not_at(one(*excluded)))


def op_two(operator: str, *excluded: str) -> RuleNode:
    """A two-character operator not followed by any of `excluded`."""
    return seq(string(operator), not_at(one(*excluded)))


class GrammarBuilder:
    """Builds one grammar variant. Construct, call build(), discard."""

    def __init__(self, pico8: bool = True):
        self.pico8 = pico8
        name = "lua53-pico8" if pico8 else "lua53"
        self.grammar = Grammar(name, ROOT_RULE, keywords=KEYWORDS)

    def r(self, name: str) -> RuleNode:
        return self.grammar.ref(name)

    def define(self, name: str, body: RuleNode) -> None:
        self.grammar.define(name, body)

    def build(self) -> Grammar:
        define_lexical_rules(self.grammar)
        self._define_lists()
        self._define_tables_and_functions()
        self._define_chains()
        self._define_expressions()
        self._define_statements()
        self.grammar.link()
        return self.grammar

    # Helpers

    def left_assoc(self, operand: str, operator: RuleNode) -> RuleNode:
        r = self.r
        return seq(r(operand), r("seps"), star(if_must(operator, r("seps"), r(operand), r("seps"))))

    def right_assoc(self, name: str, operand: str, operator: RuleNode) -> RuleNode:
        r = self.r
        return seq(r(operand), r("seps"), opt(if_must(operator, r("seps"), r(name))))

    def statement_list(self, end: RuleNode) -> RuleNode:
        """Statements up to `end`; a return statement must be followed by `end`."""
        r = self.r
        return seq(
            r("seps"),
            until(sor(end, if_must(r("key_return"), r("statement_return"), end)),
                  r("statement"), r("seps")),
        )

    # Rules

    def _define_lists(self) -> None:
        r = self.r
        self.define("name_list", list_of(r("name"), one(","), r("sep")))
        self.define("name_list_must", list_must(r("name"), one(","), r("sep")))
        self.define("expr_list_must", list_must(r("expression"), one(","), r("sep")))

    def _define_tables_and_functions(self) -> None:
        r = self.r
        # '[' not opening a long string: {[[text]]} is a positional field
        self.define("table_field_one", if_must(
            seq(one("["), not_at(one("[", "="))), r("seps"), r("expression"), r("seps"), one("]"),
            r("seps"), one("="), r("seps"), r("expression")))
        self.define("table_field_two", if_must(
            seq(r("name"), r("seps"), op_one("=", "=")), r("seps"), r("expression")))
        self.define("table_field", sor(r("table_field_one"), r("table_field_two"), r("expression")))
        self.define("table_field_list", list_tail(r("table_field"), one(",", ";"), r("sep")))
        self.define("table_constructor", if_must(
            one("{"), pad_opt(r("table_field_list"), r("sep")), one("}")))

        self.define("parameter_list_one", seq(
            r("name_list"), opt(if_must(pad(one(","), r("sep")), r("three_dots")))))
        self.define("parameter_list", sor(r("three_dots"), r("parameter_list_one")))
        self.define("function_body", seq(
            one("("), pad_opt(r("parameter_list"), r("sep")), one(")"),
            r("seps"), self.statement_list(r("key_end"))))
        self.define("function_literal", if_must(r("key_function"), r("seps"), r("function_body")))

        self.define("bracket_expr", if_must(one("("), r("seps"), r("expression"), r("seps"), one(")")))
        self.define("function_args_one", if_must(
            one("("), pad_opt(r("expr_list_must"), r("sep")), one(")")))
        self.define("function_args", sor(
            r("function_args_one"), r("table_constructor"), r("literal_string")))

    def _define_chains(self) -> None:
        r = self.r
        self.define("variable_tail_one", if_must(
            one("["), r("seps"), r("expression"), r("seps"), one("]")))
        self.define("variable_tail_two", if_must(
            seq(not_at(string("..")), one(".")), r("seps"), r("name")))
        self.define("variable_tail", sor(r("variable_tail_one"), r("variable_tail_two")))

        self.define("function_call_tail_one", if_must(
            seq(not_at(string("::")), one(":")), r("seps"), r("name"), r("seps"), r("function_args")))
        self.define("function_call_tail", sor(r("function_args"), r("function_call_tail_one")))

        self.define("variable_head_one", seq(r("bracket_expr"), r("seps"), r("variable_tail")))
        self.define("variable_head", sor(r("name"), r("variable_head_one")))

        # A variable ends on a variable tail.
        self.define("variable", seq(
            r("variable_head"),
            star(star(r("seps"), r("function_call_tail")), r("seps"), r("variable_tail"))))

    def _define_chain_statement(self) -> None:
        # Assignments and call statements share their chain: it is parsed
        # once and the last tail decides what may follow. After a variable
        # (a bare name or a variable tail) the statement must be an
        # assignment; after a call tail it may simply end.
        r = self.r
        call_tail = seq(r("function_call_tail"), r("call_continuation"))
        variable_tail = seq(r("variable_tail"), r("variable_continuation"))

        endings = [call_tail, variable_tail, r("assignments")]
        if self.pico8:
            endings.append(r("reassignment"))
        self.define("variable_continuation", seq(r("seps"), sor(*endings)))
        self.define("call_continuation", opt(r("seps"), sor(call_tail, variable_tail)))
        self.define("bracket_continuation", seq(r("seps"), sor(call_tail, variable_tail)))

        self.define("assignments", seq(
            star(if_must(pad(one(","), r("sep")), r("variable"))), r("seps"),
            r("assignments_one")))
        if self.pico8:
            # a += b, a -= b, a *= b, a /= b, a %= b; recorded from the chain start
            self.define("operators_reassign", sor(
                string("+="), string("-="), string("*="), string("/="), string("%=")))
            self.grammar.define("reassignment", seq(
                r("operators_reassign"), r("seps"), r("expr_list_must")), anchored=True)

        self.grammar.define("chain_statement", sor(
            seq(r("name"), r("variable_continuation")),
            seq(r("bracket_expr"), r("bracket_continuation"))), anchor=True)

    def _define_expressions(self) -> None:
        r = self.r
        self.define("unary_operators", sor(one("-"), one("#"), op_one("~", "="), r("key_not")))

        self.define("expr_thirteen", seq(
            sor(r("bracket_expr"), r("name")),
            star(r("seps"), sor(r("function_call_tail"), r("variable_tail")))))
        self.define("expr_twelve", sor(
            r("key_nil"), r("key_true"), r("key_false"), r("three_dots"), r("numeral"),
            r("literal_string"), r("function_literal"), r("expr_thirteen"),
            r("table_constructor")))
        self.define("expr_eleven", seq(
            r("expr_twelve"), r("seps"), opt(one("^"), r("seps"), r("expr_ten"), r("seps"))))
        self.define("unary_apply", if_must(r("unary_operators"), r("seps"), r("expr_ten"), r("seps")))
        self.define("expr_ten", sor(r("unary_apply"), r("expr_eleven")))

        self.define("operators_nine", sor(string("//"), one("/"), one("*"), one("%")))
        self.define("expr_nine", self.left_assoc("expr_ten", r("operators_nine")))
        self.define("operators_eight", sor(one("+"), one("-")))
        self.define("expr_eight", self.left_assoc("expr_nine", r("operators_eight")))
        self.define("expr_seven", self.right_assoc("expr_seven", "expr_eight", op_two("..", ".")))
        self.define("operators_six", sor(string("<<"), string(">>")))
        self.define("expr_six", self.left_assoc("expr_seven", r("operators_six")))
        self.define("expr_five", self.left_assoc("expr_six", one("&")))
        self.define("expr_four", self.left_assoc("expr_five", op_one("~", "=")))
        self.define("expr_three", self.left_assoc("expr_four", one("|")))

        comparisons = [string("=="), string("<="), string(">="), op_one("<", "<"), op_one(">", ">")]
        if self.pico8:
            # PICO-8 accepts != for ~=
            self.define("operator_notequal", string("!="))
            comparisons.append(r("operator_notequal"))
        comparisons.append(string("~="))
        self.define("operators_two", sor(*comparisons))
        self.define("expr_two", self.left_assoc("expr_three", r("operators_two")))
        self.define("expr_one", self.left_assoc("expr_two", r("key_and")))
        self.define("expression", self.left_assoc("expr_one", r("key_or")))

    def _define_statements(self) -> None:
        r = self.r
        self.define("statement_return", seq(
            pad_opt(r("expr_list_must"), r("sep")), opt(one(";"), r("seps"))))

        self.define("label_statement", if_must(
            string("::"), r("seps"), r("name"), r("seps"), string("::")))
        self.define("goto_statement", if_must(r("key_goto"), r("seps"), r("name")))
        self.define("do_statement", if_must(r("key_do"), self.statement_list(r("key_end"))))
        self.define("while_statement", if_must(
            r("key_while"), r("seps"), r("expression"), r("seps"), r("key_do"),
            self.statement_list(r("key_end"))))
        self.define("repeat_statement", if_must(
            r("key_repeat"), self.statement_list(r("key_until")), r("seps"), r("expression")))

        at_block_end = keyword_lookahead(self.grammar, "elseif", "else", "end")
        self.define("elseif_statement", if_must(
            r("key_elseif"), r("seps"), r("expression"), r("seps"), r("key_then"),
            self.statement_list(at_block_end)))
        self.define("else_statement", if_must(r("key_else"), self.statement_list(r("key_end"))))
        if_rest = (
            self.statement_list(at_block_end),
            r("seps"),
            until(sor(r("else_statement"), r("key_end")), r("elseif_statement"), r("seps")),
        )
        if self.pico8:
            # Only commit once 'then' is seen so the short form can be tried next.
            self.define("if_statement", if_must(
                seq(r("key_if"), r("seps"), r("expression"), r("seps"), r("key_then")), *if_rest))
            self._define_short_if()
        else:
            self.define("if_statement", if_must(
                r("key_if"), r("seps"), r("expression"), r("seps"), r("key_then"), *if_rest))

        self.define("for_statement_one", seq(
            r("name"), r("seps"), one("="), r("seps"), r("expression"), r("seps"), one(","),
            r("seps"), r("expression"),
            pad_opt(if_must(one(","), r("seps"), r("expression")), r("sep")),
            r("key_do"), self.statement_list(r("key_end"))))
        self.define("for_statement_two", seq(
            r("name_list_must"), r("seps"), r("key_in"), r("seps"), r("expr_list_must"),
            r("seps"), r("key_do"), self.statement_list(r("key_end"))))
        self.define("for_statement", if_must(
            r("key_for"), r("seps"), sor(r("for_statement_one"), r("for_statement_two"))))

        self.define("assignments_one", if_must(one("="), r("seps"), r("expr_list_must")))
        self._define_chain_statement()
        self.define("function_name", seq(
            list_of(r("name"), one("."), r("sep")), r("seps"),
            opt(if_must(one(":"), r("seps"), r("name"), r("seps")))))
        self.define("function_definition", if_must(
            r("key_function"), r("seps"), r("function_name"), r("function_body")))

        self.define("local_function", if_must(
            r("key_function"), r("seps"), r("name"), r("seps"), r("function_body")))
        self.define("local_variables", if_must(
            r("name_list_must"), r("seps"), opt(r("assignments_one"))))
        self.define("local_statement", if_must(
            r("key_local"), r("seps"), sor(r("local_function"), r("local_variables"))))

        self.define("semicolon", one(";"))
        alternatives = [
            r("semicolon"), r("chain_statement"), r("label_statement"), r("key_break"),
            r("goto_statement"), r("do_statement"), r("while_statement"), r("repeat_statement"), r("if_statement"),
        ]
        if self.pico8:
            alternatives.append(r("short_if_statement"))
        alternatives += [r("for_statement"), r("function_definition"), r("local_statement")]
        self.define("statement", sor(*alternatives))

        self.define(ROOT_RULE, must(opt(r("interpreter")), self.statement_list(eof())))

    def _define_short_if(self) -> None:
        # IF (NOT B) I=1 J=2  is  IF (NOT B) THEN I=1 J=2 END
        # Recognised so it can be reported; the body is taken as raw text up
        # to the end of the line, a comment, or an 'end' keyword.
        r = self.r
        self.grammar.define("inline_space", plus(one(" ", "\t")), padding=True)
        body_token = sor(r("literal_string"), identifier(), r("inline_space"), not_one("\r", "\n"))
        stop = sor(eolf(), string("--"), r("key_end"))
        self.define("short_if_statement", seq(
            r("key_if"), r("seps"), r("bracket_expr"), opt(r("inline_space")),
            not_at(r("key_then")), plus(not_at(stop), body_token)))


_GRAMMARS: Dict[bool, Grammar] = {}


def build_grammar(pico8: bool = True) -> Grammar:
    """Build and link a fresh, unchecked grammar."""
    return GrammarBuilder(pico8).build()


def get_grammar(pico8: bool = True) -> Grammar:
    """
    Return the shared grammar for the dialect, running the static self-check
    the first time it is requested.

    Raises:
        GrammarError: if the grammar is structurally unsound
    """
    grammar = _GRAMMARS.get(pico8)
    if grammar is None:
        from ..analyzer.grammar_check import check_grammar
        grammar = build_grammar(pico8)
        check_grammar(grammar)
        _GRAMMARS[pico8] = grammar
    return grammar
