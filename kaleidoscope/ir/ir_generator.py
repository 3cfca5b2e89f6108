"""
IR Generator for Kaleidoscope.

Lowers a top-level AST form into SSA-form LLVM IR inside a LoweringContext.
Dispatch over node kinds goes through a fixed table keyed by ASTNodeType.

Author: xwest
"""

import logging
from types import MappingProxyType
from typing import Callable, Dict, Mapping

import llvmlite.ir as ll

from ..parser.ast_nodes import (
    ASTNodeType, BinaryOp, Call, For, Function, If, NumberLiteral, Prototype,
    VariableReference,
)
from .context import DOUBLE, LoweringContext
from .errors import (
    LoweringError, MalformedFunction, create_arity_mismatch_error,
    create_conflicting_prototype_error,
    create_unbound_variable_error, create_unknown_function_error,
    create_unsupported_operator_error,
)

logger = logging.getLogger(__name__)

BinaryLowering = Callable[[ll.IRBuilder, ll.Value, ll.Value], ll.Value]

ZERO = ll.Constant(DOUBLE, 0.0)
ONE = ll.Constant(DOUBLE, 1.0)

_MISSING = object()


def _less_than(builder: ll.IRBuilder, lhs: ll.Value, rhs: ll.Value) -> ll.Value:
    # Comparison result as 0.0/1.0
    flag = builder.fcmp_unordered("<", lhs, rhs, name="cmptmp")
    return builder.uitofp(flag, DOUBLE, name="booltmp")


BINARY_OPERATORS: Mapping[str, BinaryLowering] = MappingProxyType({
    "+": lambda builder, lhs, rhs: builder.fadd(lhs, rhs, name="addtmp"),
    "-": lambda builder, lhs, rhs: builder.fsub(lhs, rhs, name="subtmp"),
    "*": lambda builder, lhs, rhs: builder.fmul(lhs, rhs, name="multmp"),
    "<": _less_than,
})


class IRGenerator:
    """
    Generates LLVM IR for one compilation unit.

    The generator performs the following transformations:
    - Function definitions become defined functions with an entry block
    - extern prototypes become declarations
    - Calls resolve through the module first, then the session prototypes
    - if/then/else and for loops become basic blocks joined by phi nodes
    """

    def __init__(self, context: LoweringContext):
        self.context = context
        self._lowerers: Dict[ASTNodeType, Callable] = {
            ASTNodeType.NUMBER_LITERAL: self._lower_number,
            ASTNodeType.VARIABLE_REFERENCE: self._lower_variable,
            ASTNodeType.BINARY_OP: self._lower_binary_op,
            ASTNodeType.CALL: self._lower_call,
            ASTNodeType.PROTOTYPE: self._lower_prototype,
            ASTNodeType.FUNCTION: self._lower_function,
            ASTNodeType.IF: self._lower_if,
            ASTNodeType.FOR: self._lower_for,
        }

    @property
    def builder(self) -> ll.IRBuilder:
        return self.context.builder

    def lower(self, node) -> ll.Value:
        """
        Lower a node and return the IR value it produces.

        Raises:
            LoweringError: On semantic errors (unbound names, unknown callees,
                arity mismatches, unsupported operators)
        """
        lowerer = self._lowerers.get(getattr(node, "node_type", None))
        if lowerer is None:
            raise TypeError(f"Cannot lower {type(node).__name__}")
        return lowerer(node)

    # ========================================================================
    # Expressions
    # ========================================================================

    def _lower_number(self, node: NumberLiteral) -> ll.Value:
        return ll.Constant(DOUBLE, node.value)

    def _lower_variable(self, node: VariableReference) -> ll.Value:
        value = self.context.named_values.get(node.name)
        if value is None:
            raise create_unbound_variable_error(node.name, node.location)
        return value

    def _lower_binary_op(self, node: BinaryOp) -> ll.Value:
        # Left operand is always emitted before the right one
        lhs = self.lower(node.left)
        rhs = self.lower(node.right)

        emit = BINARY_OPERATORS.get(node.operator)
        if emit is None:
            raise create_unsupported_operator_error(node.operator, node.location)
        return emit(self.builder, lhs, rhs)

    def _lower_call(self, node: Call) -> ll.Value:
        callee = self.context.get_function(node.callee)
        if callee is None:
            raise create_unknown_function_error(node.callee, node.location)

        if len(callee.args) != len(node.arguments):
            raise create_arity_mismatch_error(
                node.callee, len(callee.args), len(node.arguments), node.location)

        args = [self.lower(argument) for argument in node.arguments]
        return self.builder.call(callee, args, name="calltmp")

    def _lower_if(self, node: If) -> ll.Value:
        condition = self.lower(node.condition)
        condition_flag = self.builder.fcmp_ordered("!=", condition, ZERO, name="ifcond")

        function = self.builder.function
        then_block = function.append_basic_block("then")
        else_block = function.append_basic_block("else")
        merge_block = function.append_basic_block("ifcont")

        self.builder.cbranch(condition_flag, then_block, else_block)

        # Branch lowering may add blocks, so the phi takes its incoming edges
        # from wherever each branch ended up.
        self.builder.position_at_end(then_block)
        then_value = self.lower(node.then_branch)
        self.builder.branch(merge_block)
        then_end = self.builder.block

        self.builder.position_at_end(else_block)
        else_value = self.lower(node.else_branch)
        self.builder.branch(merge_block)
        else_end = self.builder.block

        self.builder.position_at_end(merge_block)
        phi = self.builder.phi(DOUBLE, name="iftmp")
        phi.add_incoming(then_value, then_end)
        phi.add_incoming(else_value, else_end)
        return phi

    def _lower_for(self, node: For) -> ll.Value:
        named_values = self.context.named_values

        start = self.lower(node.start)
        entry_end = self.builder.block

        function = self.builder.function
        loop_block = function.append_basic_block("loop")
        self.builder.branch(loop_block)
        self.builder.position_at_end(loop_block)

        loop_variable = self.builder.phi(DOUBLE, name=node.variable)
        loop_variable.add_incoming(start, entry_end)

        shadowed = named_values.get(node.variable, _MISSING)
        named_values[node.variable] = loop_variable
        try:
            self.lower(node.body)

            step = self.lower(node.step) if node.step is not None else ONE
            next_value = self.builder.fadd(loop_variable, step, name="nextvar")

            # The exit test sees the value the next iteration would run with
            named_values[node.variable] = next_value
            end = self.lower(node.end)
            end_flag = self.builder.fcmp_ordered("!=", end, ZERO, name="loopcond")

            loop_end = self.builder.block
            after_block = function.append_basic_block("afterloop")
            self.builder.cbranch(end_flag, loop_block, after_block)
            loop_variable.add_incoming(next_value, loop_end)

            self.builder.position_at_end(after_block)
        finally:
            if shadowed is _MISSING:
                named_values.pop(node.variable, None)
            else:
                named_values[node.variable] = shadowed

        return ZERO

    # ========================================================================
    # Top-level forms
    # ========================================================================

    def _lower_prototype(self, node: Prototype) -> ll.Function:
        # An extern is a forward declaration visible to later units too
        existing = self.context.prototypes.get(node.name)
        if existing is None:
            self.context.prototypes[node.name] = node
            logger.debug("declared prototype %s", node)
            return self.context.declare(node)

        if existing.arity != node.arity:
            raise create_conflicting_prototype_error(existing, node, node.location)
        return self.context.declare(existing)

    def _lower_function(self, node: Function) -> ll.Function:
        prototypes = self.context.prototypes
        prototype = node.prototype

        previous = prototypes.get(prototype.name, _MISSING)
        if not node.is_anonymous:
            prototypes[prototype.name] = prototype

        function = self.context.declare(prototype)
        try:
            entry = function.append_basic_block("entry")
            self.context.builder = ll.IRBuilder(entry)

            # Only the parameters are visible inside the body
            self.context.named_values = dict(zip(prototype.parameters, function.args))

            result = self.lower(node.body)
            self.builder.ret(result)
            self._validate(function, node)
        except LoweringError:
            # Leave neither a half-built symbol nor its signature behind
            self.context.erase_function(function)
            if not node.is_anonymous:
                if previous is _MISSING:
                    prototypes.pop(prototype.name, None)
                else:
                    prototypes[prototype.name] = previous
            raise

        if not node.is_anonymous:
            logger.debug("lowered function %s", prototype)
        return function

    def _validate(self, function: ll.Function, node: Function) -> None:
        for block in function.blocks:
            if not block.is_terminated:
                raise MalformedFunction(
                    message=f"Block '{block.name}' in '{function.name}' has no terminator",
                    location=node.location,
                    code="C005",
                )
