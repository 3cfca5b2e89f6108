"""
Kaleidoscope Lexer Package

Implements the tokenizer for the Kaleidoscope language: identifiers and the
keywords def/extern/if/then/else/for/in, decimal numbers, the punctuation
( ) ; , and free-form operator runs.

Author: xwest
"""

from .tokens import Token, TokenType, SourceLocation, KEYWORDS
from .lexer import Lexer
from .errors import LexerError, InvalidNumericLiteral

__all__ = [
    "Lexer",
    "Token",
    "TokenType",
    "SourceLocation",
    "KEYWORDS",
    "LexerError",
    "InvalidNumericLiteral",
]
