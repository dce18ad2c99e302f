"""
codefix lexer support package

Source buffers, locations and the diagnostic record shared by every stage.
The lexical rules themselves live in codefix.parser.lexical because the PEG
matcher handles tokenisation and parsing in a single pass.

Author: xwest
"""

from .source import SourceText, SourceLocation
from .errors import Diagnostic, ErrorRecovery

__all__ = [
    "SourceText",
    "SourceLocation",
    "Diagnostic",
    "ErrorRecovery",
]
