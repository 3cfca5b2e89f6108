"""
Error handling for the Kaleidoscope lexer.

Lexical problems never stop the lexer itself: malformed input is handed to
the parser as an ERROR token, and the parser raises the errors defined here
when it meets one.

Author: xwest
"""

from .tokens import Token
from ..errors import ParseError


class LexerError(ParseError):
    """Lexical error, reported through the parser like any other syntax error."""


class InvalidNumericLiteral(LexerError):
    """A NUMBER-shaped run of characters that is not a valid float, e.g. '.'."""


# Common error codes for categorization
ERROR_CODES = {
    "L001": "Invalid numeric literal",
}


def create_invalid_number_error(token: Token, consumed: str = "") -> InvalidNumericLiteral:
    """Create an error for a malformed numeric literal."""
    return InvalidNumericLiteral(
        message=f"Invalid numeric literal: '{token.lexeme}'",
        location=token.location,
        token=token,
        code="L001",
        help_text="Numbers need at least one digit, e.g. '1', '1.0' or '.5'.",
        consumed=consumed,
    )
