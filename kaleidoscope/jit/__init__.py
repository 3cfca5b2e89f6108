"""
Kaleidoscope JIT Package

ORC-based execution of lowered compilation units.
"""

from .jit_compiler import (
    ExecutionEngine, ExecutionError, HostFunction, OrcJITEngine,
    UnitHandle, UnitState, call_double,
)

__all__ = [
    "ExecutionEngine",
    "ExecutionError",
    "HostFunction",
    "OrcJITEngine",
    "UnitHandle",
    "UnitState",
    "call_double",
]
