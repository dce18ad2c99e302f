"""
Configuration for the codefix pipeline.

Author: xwest
"""

from dataclasses import dataclass, replace

from .parser.parser import DEFAULT_RECURSION_LIMIT


@dataclass(frozen=True)
class FixerConfig:
    """
    Options for one fix.

    pico8: accept and rewrite the PICO-8 extensions (!=, compound
        assignment, single-line if). When False the input must already be
        plain Lua 5.3.
    filename: name used in diagnostic locations.
    recursion_limit: interpreter recursion limit while parsing; bounds how
        deeply nested the input may be.
    apply_known_fixes: run the literal pre-fix patterns before parsing.
    """
    pico8: bool = True
    filename: str = "<cart>"
    recursion_limit: int = DEFAULT_RECURSION_LIMIT
    apply_known_fixes: bool = True

    def __post_init__(self):
        if self.recursion_limit < 100:
            raise ValueError(f"recursion_limit must be at least 100, got {self.recursion_limit}")

    @classmethod
    def canonical(cls, **overrides) -> "FixerConfig":
        """Configuration that accepts plain Lua 5.3 only."""
        return cls(pico8=False, **overrides)

    def with_filename(self, filename: str) -> "FixerConfig":
        return replace(self, filename=filename)
