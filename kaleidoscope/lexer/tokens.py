"""
Token definitions for the Kaleidoscope lexer.

Author: xwest
"""

from enum import Enum, auto
from dataclasses import dataclass, field
from typing import Optional


class TokenType(Enum):
    """
    Enumeration of all token types in Kaleidoscope.
    """

    # ========================================================================
    # Special Tokens
    # ========================================================================
    EOF = auto()                    # End of input
    ERROR = auto()                  # Malformed token (e.g. a lone '.')

    # ========================================================================
    # Keywords
    # ========================================================================
    DEF = auto()                    # def
    EXTERN = auto()                 # extern
    IF = auto()                     # if
    THEN = auto()                   # then
    ELSE = auto()                   # else
    FOR = auto()                    # for
    IN = auto()                     # in

    # ========================================================================
    # Literals and names
    # ========================================================================
    IDENTIFIER = auto()             # fib, x1
    NUMBER = auto()                 # 1, 1.0, .5

    # ========================================================================
    # Operators and Punctuation
    # ========================================================================
    OPERATOR = auto()               # any run of other characters: +, <, <=
    LEFT_PAREN = auto()             # (
    RIGHT_PAREN = auto()            # )
    SEMICOLON = auto()              # ;
    COMMA = auto()                  # ,


@dataclass(frozen=True)
class SourceLocation:
    """
    Represents a location in the source code.

    Lines and columns are 1-based; the column is the position of the first
    character of the token within its line.
    """
    filename: str
    line: int
    column: int
    offset: int  # Character offset from start of input

    def __str__(self) -> str:
        return f"{self.filename}:{self.line}:{self.column}"


@dataclass(frozen=True)
class Token:
    """
    Represents a lexical token.

    Equality is structural over type, lexeme and value; two tokens read from
    different places compare equal when they spell the same thing.
    """
    type: TokenType
    lexeme: str                     # Raw text from source
    value: Optional[float] = None   # Parsed number for NUMBER tokens
    location: Optional[SourceLocation] = field(default=None, compare=False)

    def __str__(self) -> str:
        if self.value is not None:
            return f"{self.type.name}({self.lexeme!r} -> {self.value!r})"
        return f"{self.type.name}({self.lexeme!r})"

    @property
    def is_keyword(self) -> bool:
        return self.type in KEYWORDS.values()


KEYWORDS = {
    "def": TokenType.DEF,
    "extern": TokenType.EXTERN,
    "if": TokenType.IF,
    "then": TokenType.THEN,
    "else": TokenType.ELSE,
    "for": TokenType.FOR,
    "in": TokenType.IN,
}

PUNCTUATION = {
    "(": TokenType.LEFT_PAREN,
    ")": TokenType.RIGHT_PAREN,
    ";": TokenType.SEMICOLON,
    ",": TokenType.COMMA,
}

# Characters that end an operator run
OPERATOR_TERMINATORS = frozenset(".();")

EOF_LEXEME = "EOF"
