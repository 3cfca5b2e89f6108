"""
Kaleidoscope Lexer - turns a character stream into tokens

Reads one character at a time so it can sit directly on top of an
interactive stdin: nothing is read before the parser asks for the next
token, and a single character of lookahead is all it ever buffers.

Author: xwest
"""

import string
from io import StringIO
from typing import Iterator, List, Optional, TextIO

from .tokens import (
    Token, TokenType, SourceLocation, KEYWORDS, PUNCTUATION,
    OPERATOR_TERMINATORS, EOF_LEXEME
)


# ASCII classification only, independent of locale and of str.isalpha()
WHITESPACE = frozenset(" \t\n\r\x0b\x0c")
LETTERS = frozenset(string.ascii_letters)
DIGITS = frozenset(string.digits)
ALNUM = LETTERS | DIGITS


class Lexer:
    """
    Kaleidoscope lexical analyzer.

    Produces tokens lazily from a forward-only text stream and offers one
    token of lookahead through peek()/next().
    """

    def __init__(self, stream: TextIO, filename: str = "<stdin>"):
        """
        Initialize the lexer with a text stream.

        Args:
            stream: Any object with a read(1) method returning '' at EOF
            filename: Name of the source for error reporting
        """
        self.stream = stream
        self.filename = filename
        self.line = 1
        self.column = 1
        self.offset = 0

        # Text consumed so far on the current line, for caret diagnostics
        self.line_text = ""

        self._pending: Optional[str] = None
        self._lookahead: Optional[Token] = None

    @classmethod
    def from_string(cls, source: str, filename: str = "<string>") -> "Lexer":
        """Create a lexer over an in-memory string."""
        return cls(StringIO(source), filename)

    # ========================================================================
    # Token interface
    # ========================================================================

    def peek(self) -> Token:
        """Return the next token without consuming it."""
        if self._lookahead is None:
            self._lookahead = self._scan_token()
        return self._lookahead

    def next(self) -> Token:
        """Consume and return the next token."""
        token = self.peek()
        self._lookahead = None
        return token

    @property
    def has_lookahead(self) -> bool:
        """True when a token has been peeked but not consumed yet."""
        return self._lookahead is not None

    def drop_lookahead(self) -> Optional[Token]:
        """Forget the peeked token (if any) and return it."""
        token, self._lookahead = self._lookahead, None
        return token

    def tokenize(self) -> List[Token]:
        """
        Tokenize the rest of the input.

        Returns:
            List of tokens including the final EOF token
        """
        tokens = list(self)
        tokens.append(self.next())
        return tokens

    def __iter__(self) -> Iterator[Token]:
        """Yield tokens up to, but not including, EOF."""
        while self.peek().type != TokenType.EOF:
            yield self.next()

    def discard_line(self) -> str:
        """
        Consume the remainder of the current line.

        Returns the discarded text without its trailing newline. Used after a
        syntax error so that lexing resumes at the start of the next line.
        """
        rest = []
        while True:
            char = self._peek_char()
            if char == "":
                break
            self._advance()
            if char == "\n":
                break
            rest.append(char)
        return "".join(rest)

    # ========================================================================
    # Character handling
    # ========================================================================

    def _peek_char(self) -> str:
        if self._pending is None:
            self._pending = self.stream.read(1)
        return self._pending

    def _advance(self) -> str:
        char = self._peek_char()
        if char == "":
            return char
        self._pending = None
        self.offset += 1
        if char == "\n":
            self.line += 1
            self.column = 1
            self.line_text = ""
        else:
            self.column += 1
            self.line_text += char
        return char

    def _location(self) -> SourceLocation:
        return SourceLocation(self.filename, self.line, self.column, self.offset)

    # ========================================================================
    # Scanning
    # ========================================================================

    def _scan_token(self) -> Token:
        char = self._peek_char()
        while char in WHITESPACE and char != "":
            self._advance()
            char = self._peek_char()

        location = self._location()

        if char == "":
            return Token(TokenType.EOF, EOF_LEXEME, None, location)

        # identifier: [a-zA-Z][a-zA-Z0-9]*
        if char in LETTERS:
            lexeme = self._take_while(ALNUM)
            return Token(KEYWORDS.get(lexeme, TokenType.IDENTIFIER), lexeme, None, location)

        # number: [0-9]*(\.[0-9]*)?
        if char in DIGITS or char == ".":
            return self._scan_number(location)

        if char in PUNCTUATION:
            self._advance()
            return Token(PUNCTUATION[char], char, None, location)

        return self._scan_operator(location)

    def _take_while(self, allowed: frozenset) -> str:
        chars = []
        while self._peek_char() in allowed and self._peek_char() != "":
            chars.append(self._advance())
        return "".join(chars)

    def _scan_number(self, location: SourceLocation) -> Token:
        lexeme = self._take_while(DIGITS)
        if self._peek_char() == ".":
            lexeme += self._advance()
            lexeme += self._take_while(DIGITS)

        try:
            value = float(lexeme)
        except ValueError:
            return Token(TokenType.ERROR, lexeme, None, location)
        return Token(TokenType.NUMBER, lexeme, value, location)

    def _scan_operator(self, location: SourceLocation) -> Token:
        # Any run of characters that cannot start another token, so that
        # multi-character operators like '<=' arrive as one opaque lexeme.
        chars = [self._advance()]
        while True:
            char = self._peek_char()
            if (char == "" or char in WHITESPACE or char in ALNUM
                    or char in OPERATOR_TERMINATORS):
                break
            chars.append(self._advance())
        return Token(TokenType.OPERATOR, "".join(chars), None, location)
