"""
Kaleidoscope Intermediate Representation Package

Lowers AST forms to SSA-form LLVM IR (via llvmlite.ir), one module per
top-level form.

Author: xwest
"""

from .context import LoweringContext, DOUBLE
from .ir_generator import IRGenerator, BINARY_OPERATORS
from .errors import (
    LoweringError, UnboundVariable, UnsupportedOperator, UnknownFunction,
    ArityMismatch, MalformedFunction, UnresolvedSymbol, RedefinitionRefused,
    create_unresolved_symbol_error, create_redefinition_refused_error,
)

__all__ = [
    "IRGenerator",
    "LoweringContext",
    "DOUBLE",
    "BINARY_OPERATORS",
    "LoweringError",
    "UnboundVariable",
    "UnsupportedOperator",
    "UnknownFunction",
    "ArityMismatch",
    "MalformedFunction",
    "UnresolvedSymbol",
    "RedefinitionRefused",
    "create_unresolved_symbol_error",
    "create_redefinition_refused_error",
]
