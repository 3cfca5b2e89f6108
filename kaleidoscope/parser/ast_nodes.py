"""
Abstract Syntax Tree node definitions for Kaleidoscope.

The node set is closed: eight frozen dataclasses tagged with an ASTNodeType.
Children are owned by their parent node; a Prototype is a plain value that
the session's prototype table can hold independently of the Function that
introduced it.

Author: xwest
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union

from ..lexer.tokens import SourceLocation


# Reserved name for bare top-level expressions. Identifiers cannot contain
# underscores, so user code can never define or call it.
ANONYMOUS_FUNCTION_NAME = "__anon_expr"


class ASTNodeType(Enum):
    """Enumeration of all AST node types."""

    NUMBER_LITERAL = "NumberLiteral"
    VARIABLE_REFERENCE = "VariableReference"
    BINARY_OP = "BinaryOp"
    CALL = "Call"
    PROTOTYPE = "Prototype"
    FUNCTION = "Function"
    IF = "If"
    FOR = "For"


@dataclass(frozen=True)
class NumberLiteral:
    value: float
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)

    node_type = ASTNodeType.NUMBER_LITERAL


@dataclass(frozen=True)
class VariableReference:
    name: str
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)

    node_type = ASTNodeType.VARIABLE_REFERENCE


@dataclass(frozen=True)
class BinaryOp:
    operator: str
    left: "Expression"
    right: "Expression"
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)

    node_type = ASTNodeType.BINARY_OP


@dataclass(frozen=True)
class Call:
    callee: str
    arguments: Tuple["Expression", ...] = ()
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)

    node_type = ASTNodeType.CALL


@dataclass(frozen=True)
class If:
    condition: "Expression"
    then_branch: "Expression"
    else_branch: "Expression"
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)

    node_type = ASTNodeType.IF


@dataclass(frozen=True)
class For:
    """
    Counted loop: ``for var = start, end[, step] in body``.

    ``end`` is a condition re-evaluated every iteration, not a bound; the
    loop continues while it is non-zero. ``step`` defaults to 1.0.
    """
    variable: str
    start: "Expression"
    end: "Expression"
    step: Optional["Expression"]
    body: "Expression"
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)

    node_type = ASTNodeType.FOR


@dataclass(frozen=True)
class Prototype:
    """A function's name and its ordered parameter names."""
    name: str
    parameters: Tuple[str, ...] = ()
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)

    node_type = ASTNodeType.PROTOTYPE

    @property
    def arity(self) -> int:
        return len(self.parameters)

    def __str__(self) -> str:
        return f"{self.name}({' '.join(self.parameters)})"


@dataclass(frozen=True)
class Function:
    prototype: Prototype
    body: "Expression"
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)

    node_type = ASTNodeType.FUNCTION

    @property
    def name(self) -> str:
        return self.prototype.name

    @property
    def is_anonymous(self) -> bool:
        return self.prototype.name == ANONYMOUS_FUNCTION_NAME


Expression = Union[NumberLiteral, VariableReference, BinaryOp, Call, If, For]

# What parse_top_level() hands to the session
TopLevelForm = Union[Function, Prototype]
