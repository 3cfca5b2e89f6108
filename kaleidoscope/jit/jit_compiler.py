"""
Kaleidoscope JIT Compiler
=========================

Execution collaborator for the interactive session, built on LLVM's ORC
LLJIT through llvmlite.

Each submitted compilation unit is linked as its own JIT library. The
library's ResourceTracker is the unit's removable handle: closing it unloads
the unit's code. Libraries link against the libraries that currently provide
the functions they call, against registered host functions, and against the
symbols of the running process (libm and friends).

Author: xwest
"""

import ctypes
import itertools
import logging
import os
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable, Dict, Optional, Sequence, Tuple

import llvmlite.binding as llvm
import llvmlite.ir as ll

logger = logging.getLogger(__name__)


class ExecutionError(Exception):
    """
    Failure inside the execution backend (submit, remove or resolve).

    Not recoverable at the statement level: it means the backend itself
    can no longer be trusted.
    """


class UnitState(Enum):
    """States of a submitted compilation unit"""
    LIVE = auto()       # Linked and callable
    REMOVED = auto()    # Released; its addresses are dangling


@dataclass(eq=False)
class UnitHandle:
    """Removable handle for one submitted compilation unit"""
    library: str
    exports: Tuple[str, ...] = ()
    externals: Tuple[str, ...] = ()
    state: UnitState = UnitState.LIVE
    tracker: Optional[object] = field(default=None, repr=False)

    @property
    def is_live(self) -> bool:
        return self.state is UnitState.LIVE


@dataclass
class HostFunction:
    """A Python callable exposed to compiled code as double(double, ...)"""
    name: str
    arity: int
    callback: Callable[..., float]
    c_function: object = field(default=None, repr=False)

    def __post_init__(self):
        prototype = ctypes.CFUNCTYPE(ctypes.c_double, *([ctypes.c_double] * self.arity))
        # Keep the ctypes thunk referenced for as long as compiled code may call it
        self.c_function = prototype(self.callback)

    @property
    def address(self) -> int:
        return ctypes.cast(self.c_function, ctypes.c_void_p).value


class ExecutionEngine(ABC):
    """
    What the session needs from a JIT: add a unit and get back a removable
    handle, remove it again, and look up compiled symbols.
    """

    triple: str = ""
    data_layout: str = ""

    @property
    def pointer_width(self) -> int:
        """Pointer size in bits according to the data layout."""
        match = re.search(r"(?:^|-)p(?:0)?:(\d+)", self.data_layout)
        return int(match.group(1)) if match else 64

    @abstractmethod
    def submit(self, module: ll.Module, exports: Sequence[str],
               dependencies: Sequence[UnitHandle] = ()) -> UnitHandle:
        """Compile and link a module; return its handle."""

    @abstractmethod
    def remove(self, handle: UnitHandle) -> None:
        """Release a unit. Releasing the same handle twice is an error."""

    @abstractmethod
    def resolve(self, handle: UnitHandle, name: str) -> int:
        """Address of an exported symbol of a live unit."""

    @abstractmethod
    def is_resolvable(self, name: str) -> bool:
        """Whether an external symbol can be satisfied outside the session's units."""

    @abstractmethod
    def register_host_function(self, name: str, callback: Callable[..., float],
                               arity: int) -> HostFunction:
        """Expose a Python callable to compiled code under *name*."""


class OrcJITEngine(ExecutionEngine):
    """LLVM ORC (LLJIT) backed execution engine"""

    def __init__(self):
        llvm.initialize_native_target()
        llvm.initialize_native_asmprinter()
        llvm.initialize_native_asmparser()

        try:
            self.lljit = llvm.create_lljit_compiler()
        except RuntimeError as e:
            raise ExecutionError(f"Failed to initialize LLVM JIT: {e}") from e

        self.triple = llvm.get_process_triple()
        self.data_layout = str(self.lljit.target_data)

        self.host_functions: Dict[str, HostFunction] = {}
        self._library_ids = itertools.count()
        self._process = ctypes.CDLL(None) if os.name != "nt" else None

        logger.debug("LLJIT ready for %s (%s)", self.triple, self.data_layout)

    def submit(self, module: ll.Module, exports: Sequence[str],
               dependencies: Sequence[UnitHandle] = ()) -> UnitHandle:
        ir_text = str(module)

        # Structural verification before handing the unit over
        try:
            llvm.parse_assembly(ir_text).verify()
        except RuntimeError as e:
            raise ExecutionError(f"Generated IR failed verification: {e}\n{ir_text}") from e

        externals = tuple(f.name for f in module.functions if not f.blocks)
        library = f"unit{next(self._library_ids)}"

        builder = llvm.JITLibraryBuilder().add_ir(ir_text)
        for dependency in dependencies:
            if not dependency.is_live:
                raise ExecutionError(f"Cannot link against released unit {dependency.library}")
            builder.add_jit_library(dependency.library)
        provided = {name for dependency in dependencies for name in dependency.exports}
        for name in externals:
            host = self.host_functions.get(name)
            if host is not None and name not in provided:
                builder.import_symbol(name, host.address)
        builder.add_current_process()
        for name in exports:
            builder.export_symbol(name)

        try:
            tracker = builder.link(self.lljit, library)
        except RuntimeError as e:
            raise ExecutionError(f"Failed to link {library}: {e}") from e

        handle = UnitHandle(library, tuple(exports), externals, UnitState.LIVE, tracker)
        logger.debug("submitted %s exporting %s", library, ", ".join(exports) or "nothing")
        return handle

    def remove(self, handle: UnitHandle) -> None:
        if not handle.is_live:
            raise ExecutionError(f"Unit {handle.library} was already released")
        try:
            handle.tracker.close()
        except RuntimeError as e:
            raise ExecutionError(f"Failed to release {handle.library}: {e}") from e
        handle.state = UnitState.REMOVED
        handle.tracker = None
        logger.debug("removed %s", handle.library)

    def resolve(self, handle: UnitHandle, name: str) -> int:
        if not handle.is_live:
            raise ExecutionError(f"Cannot resolve '{name}' in released unit {handle.library}")
        try:
            address = handle.tracker[name]
        except KeyError:
            raise ExecutionError(f"Symbol '{name}' is not exported by {handle.library}") from None
        if not address:
            raise ExecutionError(f"Symbol '{name}' has no address in {handle.library}")
        return address

    def is_resolvable(self, name: str) -> bool:
        if name in self.host_functions:
            return True
        if llvm.address_of_symbol(name) is not None:
            return True
        return self._process is not None and hasattr(self._process, name)

    def register_host_function(self, name: str, callback: Callable[..., float],
                               arity: int) -> HostFunction:
        host = HostFunction(name, arity, callback)
        self.host_functions[name] = host
        return host


def call_double(address: int, *args: float) -> float:
    """Call compiled code at *address* as double(double, ...)."""
    prototype = ctypes.CFUNCTYPE(ctypes.c_double, *([ctypes.c_double] * len(args)))
    return prototype(address)(*args)
