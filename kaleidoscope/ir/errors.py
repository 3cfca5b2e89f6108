"""
Lowering error handling for Kaleidoscope.

Semantic problems found while emitting IR. All of them are recoverable at the
granularity of one top-level form: the unit being built is thrown away and
the session moves on.

Author: xwest
"""

from typing import Optional

from ..lexer.tokens import SourceLocation
from ..errors import KaleidoscopeError


class LoweringError(KaleidoscopeError):
    """Base class for errors raised while lowering an AST to IR."""


class UnboundVariable(LoweringError):
    """A name that is neither a parameter nor an enclosing loop variable."""


class UnsupportedOperator(LoweringError):
    """A binary operator the code generator has no instruction for."""


class UnknownFunction(LoweringError):
    """A call to a name with no known prototype."""


class ArityMismatch(LoweringError):
    """A call whose argument count differs from the prototype."""


class MalformedFunction(LoweringError):
    """A lowered function that fails structural validation."""


class UnresolvedSymbol(LoweringError):
    """An external function that nothing in the session can provide."""


class RedefinitionRefused(LoweringError):
    """A redefinition rejected because compiled code still calls the old body."""


# Lowering error codes for categorization
LOWERING_ERROR_CODES = {
    "C001": "Unbound variable",
    "C002": "Unsupported operator",
    "C003": "Unknown function",
    "C004": "Argument count mismatch",
    "C005": "Malformed function",
    "C006": "Unresolved external symbol",
    "C007": "Redefinition refused",
}


def create_unbound_variable_error(name: str, location: Optional[SourceLocation]) -> UnboundVariable:
    return UnboundVariable(
        message=f"Unknown variable name '{name}'",
        location=location,
        code="C001",
        help_text="Only function parameters and loop variables are in scope.",
    )


def create_unsupported_operator_error(op: str, location: Optional[SourceLocation]) -> UnsupportedOperator:
    return UnsupportedOperator(
        message=f"Unsupported binary operator '{op}'",
        location=location,
        code="C002",
    )


def create_unknown_function_error(name: str, location: Optional[SourceLocation]) -> UnknownFunction:
    return UnknownFunction(
        message=f"Unknown function referenced: '{name}'",
        location=location,
        code="C003",
        help_text=f"Define it with 'def {name}(...)' or declare it with 'extern {name}(...)'.",
    )


def create_arity_mismatch_error(name: str, expected: int, found: int,
                                location: Optional[SourceLocation]) -> ArityMismatch:
    return ArityMismatch(
        message=f"Function '{name}' takes {expected} argument(s), {found} given",
        location=location,
        code="C004",
    )


def create_unresolved_symbol_error(name: str, location: Optional[SourceLocation]) -> UnresolvedSymbol:
    return UnresolvedSymbol(
        message=f"No definition available for external function '{name}'",
        location=location,
        code="C006",
        help_text=f"Define '{name}' before calling it, or make sure the host process exports it.",
    )


def create_redefinition_refused_error(name: str, dependents, location: Optional[SourceLocation]) -> RedefinitionRefused:
    callers = ", ".join(sorted(dependents))
    return RedefinitionRefused(
        message=f"Cannot redefine '{name}': still called by {callers}",
        location=location,
        code="C007",
        help_text="Redefine the callers first, or use the legacy redefinition policy.",
    )


def create_conflicting_prototype_error(existing, declared, location: Optional[SourceLocation]) -> ArityMismatch:
    return ArityMismatch(
        message=f"extern {declared} conflicts with known prototype {existing}",
        location=location,
        code="C004",
        help_text=f"'{existing.name}' takes {existing.arity} argument(s).",
    )
