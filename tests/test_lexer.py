"""
Test suite for the Kaleidoscope lexer.

Tests cover:
- Numbers, identifiers and keywords
- Punctuation and free-form operator runs
- Source locations and line bookkeeping
- Malformed numeric literals

Author: xwest
"""

import unittest
import sys
import os

# Add the project root to the Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

from kaleidoscope.lexer import Lexer, Token, TokenType


def _kinds(source: str):
    return [(t.type, t.lexeme) for t in Lexer.from_string(source)]


class TestLexer(unittest.TestCase):
    """Test cases for the lexer."""

    def test_single_number(self):
        """'1.0' is exactly one NUMBER token."""
        tokens = Lexer.from_string("1.0").tokenize()

        self.assertEqual(len(tokens), 2)
        self.assertEqual(tokens[0].type, TokenType.NUMBER)
        self.assertEqual(tokens[0].lexeme, "1.0")
        self.assertEqual(tokens[0].value, 1.0)
        self.assertEqual(tokens[1].type, TokenType.EOF)

    def test_number_forms(self):
        values = [t.value for t in Lexer.from_string("42 3. .5 007")]
        self.assertEqual(values, [42.0, 3.0, 0.5, 7.0])

    def test_fib_definition(self):
        """The classic fib definition tokenizes with the extended keyword set."""
        source = "def fib(x) if x < 3 then 1 else fib(x-1)+fib(x-2)"
        expected = [
            (TokenType.DEF, "def"), (TokenType.IDENTIFIER, "fib"), (TokenType.LEFT_PAREN, "("),
            (TokenType.IDENTIFIER, "x"), (TokenType.RIGHT_PAREN, ")"),
            (TokenType.IF, "if"), (TokenType.IDENTIFIER, "x"), (TokenType.OPERATOR, "<"),
            (TokenType.NUMBER, "3"), (TokenType.THEN, "then"), (TokenType.NUMBER, "1"),
            (TokenType.ELSE, "else"), (TokenType.IDENTIFIER, "fib"), (TokenType.LEFT_PAREN, "("),
            (TokenType.IDENTIFIER, "x"), (TokenType.OPERATOR, "-"), (TokenType.NUMBER, "1"),
            (TokenType.RIGHT_PAREN, ")"), (TokenType.OPERATOR, "+"),
            (TokenType.IDENTIFIER, "fib"), (TokenType.LEFT_PAREN, "("),
            (TokenType.IDENTIFIER, "x"), (TokenType.OPERATOR, "-"), (TokenType.NUMBER, "2"),
            (TokenType.RIGHT_PAREN, ")"),
        ]
        self.assertEqual(_kinds(source), expected)

    def test_keywords(self):
        types = [t.type for t in Lexer.from_string("def extern if then else for in")]
        self.assertEqual(types, [
            TokenType.DEF, TokenType.EXTERN, TokenType.IF, TokenType.THEN,
            TokenType.ELSE, TokenType.FOR, TokenType.IN,
        ])
        self.assertTrue(Token(TokenType.DEF, "def").is_keyword)
        self.assertFalse(Token(TokenType.IDENTIFIER, "define").is_keyword)

    def test_identifiers_with_digits(self):
        self.assertEqual(_kinds("x1 abc2def"), [
            (TokenType.IDENTIFIER, "x1"), (TokenType.IDENTIFIER, "abc2def"),
        ])

    def test_punctuation(self):
        self.assertEqual([t.type for t in Lexer.from_string("(,);")], [
            TokenType.LEFT_PAREN, TokenType.COMMA, TokenType.RIGHT_PAREN, TokenType.SEMICOLON,
        ])

    def test_operator_runs(self):
        """Operator characters group into one opaque lexeme."""
        self.assertEqual(_kinds("a <= b"), [
            (TokenType.IDENTIFIER, "a"), (TokenType.OPERATOR, "<="), (TokenType.IDENTIFIER, "b"),
        ])
        self.assertEqual(_kinds("x=-(1)"), [
            (TokenType.IDENTIFIER, "x"), (TokenType.OPERATOR, "=-"), (TokenType.LEFT_PAREN, "("),
            (TokenType.NUMBER, "1"), (TokenType.RIGHT_PAREN, ")"),
        ])

    def test_lone_dot_is_error_token(self):
        tokens = Lexer.from_string(". 1").tokenize()
        self.assertEqual(tokens[0].type, TokenType.ERROR)
        self.assertEqual(tokens[0].lexeme, ".")
        self.assertEqual(tokens[1].type, TokenType.NUMBER)

    def test_locations(self):
        tokens = Lexer.from_string("def f(x)\n  x + 1", "demo.ks").tokenize()

        self.assertEqual(str(tokens[0].location), "demo.ks:1:1")
        self.assertEqual(tokens[1].location.column, 5)
        plus = tokens[6]
        self.assertEqual(plus.lexeme, "+")
        self.assertEqual((plus.location.line, plus.location.column), (2, 5))

    def test_peek_does_not_consume(self):
        lexer = Lexer.from_string("a b")
        self.assertEqual(lexer.peek().lexeme, "a")
        self.assertTrue(lexer.has_lookahead)
        self.assertEqual(lexer.next().lexeme, "a")
        self.assertFalse(lexer.has_lookahead)
        self.assertEqual(lexer.next().lexeme, "b")
        self.assertEqual(lexer.next().type, TokenType.EOF)
        self.assertEqual(lexer.next().type, TokenType.EOF)

    def test_discard_line(self):
        lexer = Lexer.from_string("1 2 3\n4")
        self.assertEqual(lexer.next().lexeme, "1")
        self.assertEqual(lexer.line_text, "1")

        self.assertEqual(lexer.discard_line(), " 2 3")
        self.assertEqual(lexer.next().lexeme, "4")

    def test_empty_input(self):
        tokens = Lexer.from_string("  \n\t ").tokenize()
        self.assertEqual([t.type for t in tokens], [TokenType.EOF])


if __name__ == "__main__":
    unittest.main(verbosity=2)
