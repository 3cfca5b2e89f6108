"""
Test suite for the Kaleidoscope parser.

Tests cover:
- Operator precedence and associativity
- Definitions, externs and anonymous expressions
- if/then/else and for loops
- Syntax errors and line recovery

Author: xwest
"""

import unittest
import sys
import os

# Add the project root to the Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

from kaleidoscope.lexer import InvalidNumericLiteral, TokenType
from kaleidoscope.parser import (
    ANONYMOUS_FUNCTION_NAME, BinaryOp, Call, For, Function, If, NumberLiteral,
    ParseError, Parser, Prototype, VariableReference,
)


def num(value):
    return NumberLiteral(float(value))


def var(name):
    return VariableReference(name)


class TestParser(unittest.TestCase):
    """Test cases for the parser."""

    def _expression(self, source: str):
        return Parser.from_string(source).parse_expression()

    def test_left_associative(self):
        self.assertEqual(self._expression("1-2-3"),
                         BinaryOp("-", BinaryOp("-", num(1), num(2)), num(3)))

    def test_precedence(self):
        self.assertEqual(self._expression("1+2*3"),
                         BinaryOp("+", num(1), BinaryOp("*", num(2), num(3))))
        self.assertEqual(self._expression("1*2+3"),
                         BinaryOp("+", BinaryOp("*", num(1), num(2)), num(3)))

    def test_comparison_binds_loosest(self):
        self.assertEqual(self._expression("a+1 < b*2"),
                         BinaryOp("<", BinaryOp("+", var("a"), num(1)),
                                  BinaryOp("*", var("b"), num(2))))

    def test_parentheses(self):
        self.assertEqual(self._expression("(1+2)*3"),
                         BinaryOp("*", BinaryOp("+", num(1), num(2)), num(3)))

    def test_mixed_chain(self):
        # a + b*c - d  =>  (a + (b*c)) - d
        self.assertEqual(self._expression("a+b*c-d"),
                         BinaryOp("-", BinaryOp("+", var("a"), BinaryOp("*", var("b"), var("c"))),
                                  var("d")))

    def test_unknown_operator_ends_expression(self):
        parser = Parser.from_string("1 % 2")
        self.assertEqual(parser.parse_expression(), num(1))
        self.assertEqual(parser.lexer.peek().lexeme, "%")

    def test_custom_precedence_table(self):
        parser = Parser.from_string("1+2*3")
        parser.binary_precedence["+"] = 50
        self.assertEqual(parser.parse_expression(),
                         BinaryOp("*", BinaryOp("+", num(1), num(2)), num(3)))

    def test_calls(self):
        self.assertEqual(self._expression("foo()"), Call("foo", ()))
        self.assertEqual(self._expression("foo(1, x+2)"),
                         Call("foo", (num(1), BinaryOp("+", var("x"), num(2)))))

    def test_definition(self):
        form = Parser.from_string("def add(a b) a+b").parse_top_level()

        self.assertIsInstance(form, Function)
        self.assertEqual(form.prototype, Prototype("add", ("a", "b")))
        self.assertEqual(form.body, BinaryOp("+", var("a"), var("b")))
        self.assertFalse(form.is_anonymous)

    def test_extern(self):
        form = Parser.from_string("extern sin(x);").parse_top_level()
        self.assertEqual(form, Prototype("sin", ("x",)))
        self.assertEqual(form.arity, 1)
        self.assertEqual(str(form), "sin(x)")

    def test_anonymous_expression(self):
        form = Parser.from_string("1+2;").parse_top_level()

        self.assertIsInstance(form, Function)
        self.assertTrue(form.is_anonymous)
        self.assertEqual(form.name, ANONYMOUS_FUNCTION_NAME)
        self.assertEqual(form.prototype.parameters, ())

    def test_semicolons_and_end_of_input(self):
        parser = Parser.from_string(";;; 1; ;; def f() 2;;")
        forms = parser.parse_all()

        self.assertEqual(len(forms), 2)
        self.assertTrue(forms[0].is_anonymous)
        self.assertEqual(forms[1].name, "f")
        self.assertIsNone(parser.parse_top_level())

    def test_if(self):
        self.assertEqual(self._expression("if x < 3 then 1 else 2"),
                         If(BinaryOp("<", var("x"), num(3)), num(1), num(2)))

    def test_for(self):
        self.assertEqual(self._expression("for i = 1, i < 5, 2 in f(i)"),
                         For("i", num(1), BinaryOp("<", var("i"), num(5)), num(2),
                             Call("f", (var("i"),))))
        loop = self._expression("for i = 0, i < 3 in i")
        self.assertIsNone(loop.step)

    def test_missing_else(self):
        with self.assertRaises(ParseError) as ctx:
            Parser.from_string("if 1 then 2").parse_top_level()
        self.assertEqual(ctx.exception.diagnostic.code, "P010")
        self.assertEqual(ctx.exception.token.type, TokenType.EOF)

    def test_for_requires_equals(self):
        with self.assertRaises(ParseError) as ctx:
            Parser.from_string("for i 1, 2 in 3").parse_top_level()
        self.assertIn("'='", ctx.exception.message)

    def test_bad_prototype(self):
        with self.assertRaises(ParseError) as ctx:
            Parser.from_string("def 1(x) x").parse_top_level()
        self.assertEqual(ctx.exception.token.lexeme, "1")
        self.assertEqual(ctx.exception.consumed, "def 1")

    def test_invalid_expression_start(self):
        with self.assertRaises(ParseError) as ctx:
            Parser.from_string(")").parse_top_level()
        self.assertEqual(ctx.exception.diagnostic.code, "P003")

    def test_lone_dot(self):
        with self.assertRaises(InvalidNumericLiteral) as ctx:
            Parser.from_string("1 + .").parse_top_level()
        self.assertIsInstance(ctx.exception, ParseError)
        self.assertEqual(ctx.exception.diagnostic.code, "L001")

    def test_recover_discards_rest_of_line(self):
        parser = Parser.from_string("def (x) x + 1\n4;")
        with self.assertRaises(ParseError) as ctx:
            parser.parse_top_level()

        self.assertEqual(ctx.exception.consumed, "def (")
        self.assertEqual(parser.recover(), "x) x + 1")

        form = parser.parse_top_level()
        self.assertEqual(form.body, num(4))

    def test_recover_at_end_of_input(self):
        parser = Parser.from_string("def f(")
        with self.assertRaises(ParseError):
            parser.parse_top_level()
        self.assertEqual(parser.recover(), "")
        self.assertIsNone(parser.parse_top_level())


if __name__ == "__main__":
    unittest.main(verbosity=2)
