"""
Kaleidoscope Language Front-End

An interactive, JIT-compiled implementation of the Kaleidoscope toy language:
every value is a double, functions are defined with `def`, foreign functions
are declared with `extern`, and bare expressions are evaluated immediately.

Architecture:
    kaleidoscope/
    ├── lexer/           # Tokenization
    ├── parser/          # Operator-precedence parser and AST
    ├── ir/              # Lowering to SSA-form LLVM IR
    ├── jit/             # ORC JIT execution engine
    ├── session.py       # Compilation-unit session
    └── repl.py          # Command-line entry point

Author: xwest
License: MIT
"""

import logging

__version__ = "0.1.0"
__author__ = "xwest"
__license__ = "MIT"

from .lexer import Lexer
from .parser import Parser
from .ir import IRGenerator, LoweringContext
from .session import Session, SessionConfig, RedefinitionPolicy

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Core classes
    "Lexer",
    "Parser",
    "IRGenerator",
    "LoweringContext",
    "Session",
    "SessionConfig",
    "RedefinitionPolicy",

    # Version info
    "__version__",
]
