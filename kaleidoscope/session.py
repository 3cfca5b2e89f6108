"""
Kaleidoscope Compilation-Unit Session
=====================================

Drives the read -> parse -> lower -> submit -> evaluate cycle.

Every top-level form becomes its own compilation unit:
- a named function replaces (and releases) the unit previously providing it;
  if it calls a function that so far only has an extern, it waits until
  that function is defined
- a bare expression is compiled, called once, printed and released
- an extern declaration is released right after submission

Author: xwest
"""

import logging
import os
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, TextIO

from .errors import ParseError
from .ir import (
    IRGenerator, LoweringContext, LoweringError,
    create_redefinition_refused_error, create_unresolved_symbol_error,
)
from .jit import ExecutionEngine, UnitHandle, call_double
from .lexer import Lexer
from .parser import ANONYMOUS_FUNCTION_NAME, Function, Parser, Prototype

logger = logging.getLogger(__name__)


class RedefinitionPolicy(Enum):
    """What happens when a function other units still call is redefined"""
    LEGACY = "legacy"   # Replace it anyway; existing callers keep stale addresses
    REFUSE = "refuse"   # Reject the new definition with RedefinitionRefused


@dataclass
class SessionConfig:
    """Session settings"""
    prompt: str = ">>> "
    dump_ir: bool = False
    redefinition: RedefinitionPolicy = RedefinitionPolicy.LEGACY
    builtins: bool = True

    @classmethod
    def from_env(cls, environ=None) -> "SessionConfig":
        """
        Build a configuration from environment variables.

        KALEIDOSCOPE_DUMP_IR: "1"/"true"/"yes"/"on" prints each lowered unit
        KALEIDOSCOPE_REDEFINITION: "legacy" or "refuse"
        """
        environ = os.environ if environ is None else environ
        config = cls()

        dump_ir = environ.get("KALEIDOSCOPE_DUMP_IR", "")
        config.dump_ir = dump_ir.strip().lower() in ("1", "true", "yes", "on")

        policy = environ.get("KALEIDOSCOPE_REDEFINITION")
        if policy:
            try:
                config.redefinition = RedefinitionPolicy(policy.strip().lower())
            except ValueError:
                raise ValueError(
                    f"KALEIDOSCOPE_REDEFINITION must be one of "
                    f"{', '.join(p.value for p in RedefinitionPolicy)}, got '{policy}'"
                ) from None
        return config


@dataclass
class PendingDefinition:
    """A definition waiting for the functions it calls to be defined"""
    function: Function
    externals: FrozenSet[str]


def format_parse_error(error: ParseError, line: str) -> str:
    """Render a parse error with the offending line and a caret under the token."""
    if error.token is not None and error.token.location is not None:
        column = error.token.location.column
    else:
        column = len(error.consumed) + 1
    return f"{error.diagnostic}\n{line}\n{' ' * (column - 1)}^"


class Session:
    """
    One interactive compilation session.

    Owns the prototype table shared by all lowering contexts and the provider
    map from function name to the unit that currently defines it.
    """

    def __init__(self, engine: Optional[ExecutionEngine] = None,
                 config: Optional[SessionConfig] = None,
                 err: Optional[TextIO] = None):
        if engine is None:
            from .jit import OrcJITEngine
            engine = OrcJITEngine()

        self.engine = engine
        self.config = config or SessionConfig()
        self.err = err if err is not None else sys.stderr

        self.prototypes: Dict[str, Prototype] = {}
        self.provided: Dict[str, UnitHandle] = {}
        # Functions each provided unit calls but does not define
        self.calls: Dict[str, FrozenSet[str]] = {}
        # Definitions held back until every function they call has a body
        self.pending: Dict[str, PendingDefinition] = {}

        if self.config.builtins:
            self._register_builtins()

        logger.debug("session started on %s (%d-bit pointers)",
                     engine.triple or "unknown target", engine.pointer_width)

    def _register_builtins(self):
        def putchard(x):
            self.err.write(chr(int(x)))
            return 0.0

        def printd(x):
            self.err.write(f"{x:f}\n")
            return 0.0

        self.engine.register_host_function("putchard", putchard, 1)
        self.engine.register_host_function("printd", printd, 1)

    # ========================================================================
    # Per-form protocol
    # ========================================================================

    def handle(self, form) -> Optional[float]:
        """
        Lower, submit and (for bare expressions) evaluate one top-level form.

        A definition that calls a function known only from an extern is kept
        pending and compiled as soon as its callees have bodies, together
        with any pending definitions it depends on (mutual recursion ends up
        in one unit).

        Returns:
            The value of an anonymous expression, None otherwise

        Raises:
            LoweringError: The form was rejected; session state is unchanged
            ExecutionError: The execution engine failed
        """
        if isinstance(form, Function) and not form.is_anonymous:
            self._check_redefinition(form)

        context = self._new_context()
        IRGenerator(context).lower(form)
        externals = context.external_functions()

        if isinstance(form, Prototype):
            self._dump(context)
            handle = self.engine.submit(context.module, (), self._dependencies(externals))
            self.engine.remove(handle)
            return None

        if form.is_anonymous:
            self._materialize(externals, form.location)
            for name in externals:
                if not self._is_available(name):
                    raise create_unresolved_symbol_error(name, form.location)
            self._dump(context)
            return self._evaluate(context, self._dependencies(externals))

        self._define(form, context, externals)
        return None

    def _evaluate(self, context: LoweringContext, dependencies: List[UnitHandle]) -> float:
        handle = self.engine.submit(context.module, (ANONYMOUS_FUNCTION_NAME,), dependencies)
        try:
            address = self.engine.resolve(handle, ANONYMOUS_FUNCTION_NAME)
            value = call_double(address)
        finally:
            self.engine.remove(handle)

        print(f"Evaluated to {value:f}", file=self.err)
        return value

    def _define(self, form: Function, context: LoweringContext, externals: List[str]) -> None:
        name = form.name
        self.pending.pop(name, None)

        if all(self._is_available(callee) for callee in externals):
            self._dump(context)
            self._install(context, {name: frozenset(externals)})
            return

        self.pending[name] = PendingDefinition(form, frozenset(externals))
        group = self._pending_closure([name])
        missing = self._missing(group)
        if missing:
            logger.info("deferred %s until %s is defined", name, ", ".join(missing))
        else:
            self._submit_pending(group)

    def _install(self, context: LoweringContext, calls: Dict[str, FrozenSet[str]]) -> UnitHandle:
        """Submit a unit defining the functions in *calls* and make it their provider."""
        externals = context.external_functions()
        handle = self.engine.submit(context.module, tuple(calls), self._dependencies(externals))

        replaced: List[UnitHandle] = []
        for name, callees in calls.items():
            old = self.provided.get(name)
            self.provided[name] = handle
            self.calls[name] = callees
            if old is None:
                logger.info("defined %s in %s", name, handle.library)
                continue
            logger.info("redefined %s: %s replaces %s", name, handle.library, old.library)
            if not any(old is seen for seen in replaced):
                replaced.append(old)

        for old in replaced:
            self._release(old)
        return handle

    def _release(self, handle: UnitHandle) -> None:
        # A unit compiled from a pending group stays while any of its functions is current
        if any(current is handle for current in self.provided.values()):
            return
        self.engine.remove(handle)

    def _materialize(self, names: List[str], location) -> None:
        """Compile the pending definitions *names* reach, or raise UnresolvedSymbol."""
        group = self._pending_closure(names)
        if not group:
            return
        missing = self._missing(group)
        if missing:
            raise create_unresolved_symbol_error(missing[0], location)
        self._submit_pending(group)

    def _submit_pending(self, group: List[str]) -> None:
        context = self._new_context()
        generator = IRGenerator(context)
        for name in group:
            generator.lower(self.pending[name].function)
        self._dump(context)

        self._install(context, {name: self.pending[name].externals for name in group})
        for name in group:
            del self.pending[name]

    def _pending_closure(self, roots: List[str]) -> List[str]:
        group: List[str] = []
        stack = list(roots)
        while stack:
            name = stack.pop()
            if name in group or name not in self.pending:
                continue
            group.append(name)
            stack.extend(self.pending[name].externals)
        return group

    def _missing(self, group: List[str]) -> List[str]:
        members = set(group)
        return sorted({callee for name in group for callee in self.pending[name].externals
                       if callee not in members and not self._is_available(callee)})

    def _is_available(self, name: str) -> bool:
        if name in self.pending:
            return False
        return name in self.provided or self.engine.is_resolvable(name)

    def _dependencies(self, externals: List[str]) -> List[UnitHandle]:
        dependencies: List[UnitHandle] = []
        for name in externals:
            handle = self.provided.get(name)
            if handle is not None and not any(handle is seen for seen in dependencies):
                dependencies.append(handle)
        return dependencies

    def _check_redefinition(self, form: Function) -> None:
        name = form.name
        if self.config.redefinition is not RedefinitionPolicy.REFUSE or name not in self.provided:
            return
        own_unit = self.provided[name]
        dependents = [caller for caller, callees in self.calls.items()
                      if name in callees and self.provided.get(caller) is not own_unit]
        if dependents:
            raise create_redefinition_refused_error(name, dependents, form.location)

    def _new_context(self) -> LoweringContext:
        return LoweringContext(self.prototypes, self.engine.triple, self.engine.data_layout)

    def _dump(self, context: LoweringContext) -> None:
        if self.config.dump_ir:
            print(str(context.module), file=self.err)

    # ========================================================================
    # Driving input
    # ========================================================================

    def evaluate_source(self, source: str, filename: str = "<string>") -> List[float]:
        """
        Run every top-level form in *source*.

        Returns:
            Values of the anonymous expressions, in order

        Raises:
            ParseError, LoweringError: On the first bad form
        """
        parser = Parser(Lexer.from_string(source, filename))
        results = []
        while True:
            form = parser.parse_top_level()
            if form is None:
                return results
            value = self.handle(form)
            if value is not None:
                results.append(value)

    def run(self, stream: TextIO, interactive: bool = True, filename: str = "<stdin>") -> int:
        """
        Read and run top-level forms until end of input.

        Interactive mode prompts before each form and reports errors without
        stopping. Otherwise the first parse or lowering error ends the run.

        Returns:
            Exit status: 0 at clean end of input, 1 after an error in
            non-interactive mode
        """
        parser = Parser(Lexer(stream, filename))
        while True:
            if interactive:
                self.err.write(self.config.prompt)
                self.err.flush()

            try:
                form = parser.parse_top_level()
                if form is None:
                    if interactive:
                        self.err.write("\n")
                    return 0
                self.handle(form)
            except ParseError as e:
                line = e.consumed + parser.recover()
                print(format_parse_error(e, line), file=self.err)
                if not interactive:
                    return 1
            except LoweringError as e:
                print(e, file=self.err)
                if not interactive:
                    return 1

    # ========================================================================
    # Teardown
    # ========================================================================

    def close(self) -> None:
        """Release every unit still providing a function."""
        handles: List[UnitHandle] = []
        for handle in self.provided.values():
            if not any(handle is seen for seen in handles):
                handles.append(handle)

        self.provided.clear()
        self.calls.clear()
        self.pending.clear()
        for handle in handles:
            self.engine.remove(handle)
        logger.debug("session closed")

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()
