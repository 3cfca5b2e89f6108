"""
Error handling for the Kaleidoscope parser.

The parser never tries to recover inside a statement: the first mismatch
raises a ParseError and the caller throws away the rest of the line.

Author: xwest
"""

from typing import Union

from ..lexer.tokens import Token, TokenType
from ..errors import ParseError


# Common parser error codes for categorization
PARSER_ERROR_CODES = {
    "P001": "Unexpected token",
    "P002": "Expected token not found",
    "P003": "Expected expression",
    "P010": "Unexpected end of input",
}


def _describe(token: Token) -> str:
    if token.type == TokenType.EOF:
        return "end of input"
    return f"{token.type.name} '{token.lexeme}'"


def create_unexpected_token_error(
    expected: Union[TokenType, str], found: Token, consumed: str = ""
) -> ParseError:
    """Create an error for a token of the wrong kind."""
    expected_str = expected.name if isinstance(expected, TokenType) else expected
    code = "P010" if found.type == TokenType.EOF else "P002"

    return ParseError(
        message=f"Expected {expected_str}, found {_describe(found)}",
        location=found.location,
        token=found,
        code=code,
        help_text=f"The parser expected to see {expected_str} at this position.",
        consumed=consumed,
    )


def create_invalid_expression_error(found: Token, consumed: str = "") -> ParseError:
    """Create an error for a token that cannot start an expression."""
    if found.type == TokenType.EOF:
        return create_unexpected_token_error("expression", found, consumed)

    help_text = "An expression starts with a number, a name, '(', 'if' or 'for'."
    if found.type == TokenType.OPERATOR:
        help_text = (f"'{found.lexeme}' is not a known binary operator here; "
                     "unary operators are not supported.")

    return ParseError(
        message=f"Unexpected {_describe(found)}",
        location=found.location,
        token=found,
        code="P003",
        help_text=help_text,
        consumed=consumed,
    )
