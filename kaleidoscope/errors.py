"""
Shared diagnostic types for the Kaleidoscope front-end.

Every stage raises exceptions that carry a Diagnostic so that the session can
report them uniformly.

Author: xwest
"""

from typing import Optional
from dataclasses import dataclass

from .lexer.tokens import SourceLocation, Token


@dataclass
class Diagnostic:
    """Base record for diagnostics (errors, warnings, info)."""
    message: str
    location: Optional[SourceLocation]
    severity: str  # "error", "warning", "info"
    code: Optional[str] = None
    help_text: Optional[str] = None

    def __str__(self) -> str:
        result = f"{self.severity.upper()}: {self.message}"
        if self.code:
            result += f" [{self.code}]"
        if self.location is not None:
            result += f"\n  --> {self.location}"
        if self.help_text:
            result += f"\n  help: {self.help_text}"
        return result


class KaleidoscopeError(Exception):
    """
    Base class for all front-end errors.

    Contains detailed diagnostic information for error reporting.
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        code: Optional[str] = None,
        help_text: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.diagnostic = Diagnostic(
            message=message,
            location=location,
            severity="error",
            code=code,
            help_text=help_text,
        )

    def __str__(self) -> str:
        return str(self.diagnostic)


class ParseError(KaleidoscopeError):
    """
    Raised when a top-level form cannot be parsed.

    Besides the diagnostic, carries the offending token and the text already
    consumed on the current line so the caller can point a caret at the
    token.
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        token: Optional[Token] = None,
        code: Optional[str] = None,
        help_text: Optional[str] = None,
        consumed: str = "",
    ):
        super().__init__(message, location, code, help_text)
        self.token = token
        self.consumed = consumed
