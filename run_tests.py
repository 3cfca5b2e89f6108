#!/usr/bin/env python3
"""
Main test runner for the Kaleidoscope JIT.

Runs a quick pipeline smoke test (lex, parse, lower, JIT, evaluate) and
then the unittest suites under tests/.

Author: xwest
"""

import io
import os
import sys
import unittest

# Add the project root to the Python path
project_root = os.path.abspath(os.path.dirname(__file__))
sys.path.insert(0, project_root)


def run_pipeline_smoke_test() -> bool:
    """Push one program through every stage and check the answer."""

    print("🚀 Kaleidoscope JIT Test Suite")
    print("=" * 60)

    try:
        from kaleidoscope.lexer import Lexer
        from kaleidoscope.parser import Parser
        from kaleidoscope.ir import IRGenerator, LoweringContext
        from kaleidoscope.jit import OrcJITEngine
        from kaleidoscope.session import Session
        print("✅ All modules imported successfully")
    except ImportError as e:
        print(f"❌ Failed to import kaleidoscope modules: {e}")
        return False

    code = "def fib(x) if x < 3 then 1 else fib(x-1)+fib(x-2); fib(10);"

    print("  🔧 Lexing...")
    tokens = Lexer.from_string(code).tokenize()
    print(f"     Generated {len(tokens)} tokens")

    print("  🔧 Parsing...")
    forms = Parser.from_string(code).parse_all()
    print(f"     Parsed {len(forms)} top-level forms")

    print("  🔧 Lowering...")
    context = LoweringContext({})
    IRGenerator(context).lower(forms[0])
    print(f"     Defined {', '.join(context.defined_functions())}")

    print("  🔧 JIT evaluation...")
    with Session(OrcJITEngine(), err=io.StringIO()) as session:
        results = session.evaluate_source(code)
    if results != [55.0]:
        print(f"     ❌ fib(10) evaluated to {results}, expected [55.0]")
        return False
    print("     ✅ fib(10) = 55")
    print()
    return True


def run_all_tests() -> bool:
    if not run_pipeline_smoke_test():
        return False

    suite = unittest.defaultTestLoader.discover(os.path.join(project_root, "tests"))
    result = unittest.TextTestRunner(verbosity=2).run(suite)

    print("\n" + "=" * 60)
    if result.wasSuccessful():
        print("✅ All tests passed!")
    else:
        print("❌ Some tests failed.")
        print(f"Failures: {len(result.failures)}")
        print(f"Errors: {len(result.errors)}")
    return result.wasSuccessful()


if __name__ == "__main__":
    sys.exit(0 if run_all_tests() else 1)
