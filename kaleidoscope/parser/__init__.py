"""
Kaleidoscope Parser Package

Operator-precedence parser producing one AST root per top-level form.

Author: xwest
"""

from .ast_nodes import *
from .parser import Parser, DEFAULT_BINARY_PRECEDENCE
from .errors import ParseError

__all__ = [
    # Core parser
    "Parser",
    "DEFAULT_BINARY_PRECEDENCE",

    # AST nodes
    "ASTNodeType", "Expression", "TopLevelForm",
    "NumberLiteral", "VariableReference", "BinaryOp", "Call",
    "Prototype", "Function", "If", "For",
    "ANONYMOUS_FUNCTION_NAME",

    # Error handling
    "ParseError",
]
