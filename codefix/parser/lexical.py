"""
Lexical rules of the Lua 5.3 grammar.

Padding convention: rules take care of their internal padding (spaces and
comments between their own parts) but never eat padding before or after
themselves. Higher rules place `seps` where padding is allowed.

Author: xwest
"""

from .peg import (
    Grammar, LongBracket, DIGITS, XDIGITS, SPACES, IDENT_OTHER,
    at, eolf, identifier, if_must, istring, not_at, not_one, one, opt, plus,
    rep_opt, seq, sor, star, string, until,
)


# Longer keywords that share a prefix with shorter ones must come first
# ('elseif' before 'else'), otherwise the trailing identifier check rejects
# the whole keyword match.
KEYWORDS = (
    "and", "break", "do", "else", "elseif", "end", "false", "for",
    "function", "goto", "if", "in", "local", "nil", "not", "or", "repeat",
    "return", "then", "true", "until", "while",
)


def keyword_order(keywords=KEYWORDS):
    return sorted(keywords, key=lambda word: (-len(word), word))


def define_lexical_rules(g: Grammar) -> None:
    """Add whitespace, comment, keyword, name and literal rules to `g`."""
    r = g.ref

    # Padding
    g.define("short_comment", until(eolf()))
    g.define("long_string", LongBracket())
    g.define("comment", seq(string("--"), sor(r("long_string"), r("short_comment"))), quiet=True)
    g.define("sep", sor(one(SPACES), r("comment")), padding=True)
    g.define("seps", star(r("sep")), padding=True)

    # Keywords
    not_identifier_char = not_at(one(IDENT_OTHER))
    for word in KEYWORDS:
        g.define(f"key_{word}", seq(string(word), not_identifier_char))
    g.define("keyword", seq(sor(*[string(word) for word in keyword_order()]), not_identifier_char))

    g.define("name", seq(not_at(r("keyword")), identifier()))
    g.define("three_dots", string("..."))

    # Strings
    single = one("a", "b", "f", "n", "r", "t", "v", "\\", '"', "'", "0")
    line_break = sor(string("\r\n"), string("\n\r"), one("\r", "\n"))
    skip_spaces = seq(one("z"), star(one(SPACES)))
    hexbyte = if_must(one("x"), one(XDIGITS), one(XDIGITS))
    decbyte = if_must(one(DIGITS), rep_opt(2, one(DIGITS)))
    unichar = if_must(one("u"), one("{"), plus(one(XDIGITS)), one("}"))
    g.define("escaped", if_must(
        one("\\"), sor(hexbyte, decbyte, unichar, single, line_break, skip_spaces)))
    g.define("character", sor(r("escaped"), not_one("\r", "\n")))
    g.define("double_quote_string", if_must(one('"'), until(one('"'), r("character"))))
    g.define("single_quote_string", if_must(one("'"), until(one("'"), r("character"))))
    g.define("literal_string", sor(r("double_quote_string"), r("single_quote_string"), r("long_string")))

    # Numerals
    g.define("decimal", _numeral(one(DIGITS), one("e", "E")))
    g.define("hexadecimal", if_must(istring("0x"), _numeral(one(XDIGITS), one("p", "P"))))
    g.define("numeral", sor(r("hexadecimal"), r("decimal")))

    # '#!...' first line, consumed and ignored
    g.define("interpreter", seq(one("#"), until(eolf())))


def _exponent(marker):
    return opt(if_must(marker, opt(one("+", "-")), plus(one(DIGITS))))


def _numeral(digit, marker):
    # digits [. digits*] [exp]  |  . digits+ [exp]
    with_integer_part = seq(plus(digit), opt(one("."), star(digit)), _exponent(marker))
    fraction_only = seq(if_must(one("."), plus(digit)), _exponent(marker))
    return sor(with_integer_part, fraction_only)


def keyword_lookahead(g: Grammar, *words: str):
    """`&(key_a | key_b ...)` for block terminators."""
    return sor(*[at(g.ref(f"key_{word}")) for word in words])
