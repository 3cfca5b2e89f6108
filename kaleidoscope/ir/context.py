"""
Lowering context: everything one top-level form needs while it is turned
into IR.

Author: xwest
"""

from typing import Dict, List, MutableMapping, Optional

import llvmlite.ir as ll

from ..parser.ast_nodes import Prototype


# The language's only type
DOUBLE = ll.DoubleType()


class LoweringContext:
    """
    Holds a fresh IR module for one compilation unit, the builder positioned
    inside the function being emitted, the in-scope local variables, and a
    reference to the session-wide prototype table.
    """

    def __init__(
        self,
        prototypes: MutableMapping[str, Prototype],
        triple: Optional[str] = None,
        data_layout: Optional[str] = None,
        module_name: str = "kaleidoscope",
    ):
        self.module = ll.Module(name=module_name)
        if triple:
            self.module.triple = triple
        if data_layout:
            self.module.data_layout = data_layout

        self.builder: Optional[ll.IRBuilder] = None
        self.named_values: Dict[str, ll.Value] = {}
        self.prototypes = prototypes

    def get_function(self, name: str) -> Optional[ll.Function]:
        """
        Resolve a callee for this unit.

        Returns the function if this module already has it, otherwise
        declares it from the session prototype table. None if neither knows
        the name.
        """
        existing = self.module.globals.get(name)
        if isinstance(existing, ll.Function):
            return existing

        prototype = self.prototypes.get(name)
        if prototype is None:
            return None
        return self.declare(prototype)

    def declare(self, prototype: Prototype) -> ll.Function:
        """Declare a function signature; reuses an existing declaration."""
        existing = self.module.globals.get(prototype.name)
        if isinstance(existing, ll.Function):
            return existing

        function_type = ll.FunctionType(DOUBLE, [DOUBLE] * prototype.arity)
        function = ll.Function(self.module, function_type, name=prototype.name)
        for arg, parameter in zip(function.args, prototype.parameters):
            arg.name = parameter
        return function

    def erase_function(self, function: ll.Function) -> None:
        """Remove a (partially built) function from the module."""
        function.blocks = []
        self.module.globals.pop(function.name, None)

    def defined_functions(self) -> List[str]:
        return [f.name for f in self.module.functions if f.blocks]

    def external_functions(self) -> List[str]:
        """Functions this unit calls but does not define."""
        return [f.name for f in self.module.functions if not f.blocks]

    def __str__(self) -> str:
        return str(self.module)
