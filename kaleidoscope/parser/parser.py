"""
Kaleidoscope Operator-Precedence Parser

Recursive descent for the statement-level grammar, precedence climbing for
binary operators. Reads tokens on demand through the lexer's single token of
lookahead and produces one AST root per top-level form.

Author: xwest
"""

from typing import Callable, Dict, List, Mapping, Optional

from ..lexer.lexer import Lexer
from ..lexer.tokens import Token, TokenType
from ..lexer.errors import create_invalid_number_error
from .ast_nodes import (
    ANONYMOUS_FUNCTION_NAME, BinaryOp, Call, Expression, For, Function, If,
    NumberLiteral, Prototype, TopLevelForm, VariableReference,
)
from .errors import (
    ParseError, create_unexpected_token_error, create_invalid_expression_error
)


# Higher binds tighter
DEFAULT_BINARY_PRECEDENCE: Mapping[str, int] = {
    "<": 10,
    "+": 20,
    "-": 20,
    "*": 40,
}

NO_PRECEDENCE = -1


class Parser:
    """
    Kaleidoscope parser.

    Grammar:
        top_level  := ';'* (definition | extern | expression)
        definition := 'def' prototype expression
        extern     := 'extern' prototype
        prototype  := identifier '(' identifier* ')'
        expression := primary binary_rhs(0)
        primary    := number | identifier ['(' args ')'] | '(' expression ')'
                    | if_expr | for_expr
    """

    def __init__(self, lexer: Lexer, precedence: Optional[Mapping[str, int]] = None):
        """
        Initialize parser over a lexer.

        Args:
            lexer: Token source; the parser shares its lookahead
            precedence: Binary operator precedence table
        """
        self.lexer = lexer
        self.binary_precedence: Dict[str, int] = dict(precedence or DEFAULT_BINARY_PRECEDENCE)

        self.prefix_parsers: Dict[TokenType, Callable[[], Expression]] = {
            TokenType.NUMBER: self._parse_number,
            TokenType.IDENTIFIER: self._parse_identifier,
            TokenType.LEFT_PAREN: self._parse_parenthesized,
            TokenType.IF: self._parse_if,
            TokenType.FOR: self._parse_for,
        }

    @classmethod
    def from_string(cls, source: str, filename: str = "<string>") -> "Parser":
        return cls(Lexer.from_string(source, filename))

    # ========================================================================
    # Top level
    # ========================================================================

    def parse_top_level(self) -> Optional[TopLevelForm]:
        """
        Parse one top-level form.

        Returns:
            A Function (definitions and wrapped bare expressions), a Prototype
            (extern declarations), or None at end of input.

        Raises:
            ParseError: On the first token that does not fit the grammar
        """
        while self._check(TokenType.SEMICOLON):
            self._advance()

        token_type = self._peek().type
        if token_type == TokenType.EOF:
            return None
        if token_type == TokenType.DEF:
            return self._parse_definition()
        if token_type == TokenType.EXTERN:
            return self._parse_extern()
        return self._parse_anonymous()

    def parse_all(self) -> List[TopLevelForm]:
        """Parse top-level forms until end of input."""
        forms = []
        while True:
            form = self.parse_top_level()
            if form is None:
                return forms
            forms.append(form)

    def recover(self) -> str:
        """
        Abandon the current statement after a ParseError.

        Drops the lookahead token and the rest of its line. Returns the
        discarded remainder of the line (without the newline).
        """
        dropped = self.lexer.drop_lookahead()
        if dropped is not None and dropped.type == TokenType.EOF:
            return ""
        return self.lexer.discard_line()

    def _parse_definition(self) -> Function:
        start = self._advance()
        prototype = self._parse_prototype()
        body = self.parse_expression()
        return Function(prototype, body, start.location)

    def _parse_extern(self) -> Prototype:
        self._advance()
        return self._parse_prototype()

    def _parse_anonymous(self) -> Function:
        location = self._peek().location
        body = self.parse_expression()
        return Function(Prototype(ANONYMOUS_FUNCTION_NAME, (), location), body, location)

    def _parse_prototype(self) -> Prototype:
        name = self._consume(TokenType.IDENTIFIER, "function name")
        self._consume(TokenType.LEFT_PAREN, "'(' after function name")

        parameters = []
        while self._check(TokenType.IDENTIFIER):
            parameters.append(self._advance().lexeme)

        self._consume(TokenType.RIGHT_PAREN, "')' after parameter names")
        return Prototype(name.lexeme, tuple(parameters), name.location)

    # ========================================================================
    # Expressions
    # ========================================================================

    def parse_expression(self) -> Expression:
        lhs = self._parse_primary()
        return self._parse_binary_rhs(0, lhs)

    def _parse_binary_rhs(self, min_precedence: int, lhs: Expression) -> Expression:
        """
        Precedence climbing.

        Consumes operators binding at least as tightly as min_precedence.
        The right operand only absorbs the following operator when that one
        binds strictly tighter, which keeps equal precedence left-associative.
        """
        while True:
            op_precedence = self._token_precedence(self._peek())
            if op_precedence < min_precedence:
                return lhs

            op = self._advance()
            rhs = self._parse_primary()

            if op_precedence < self._token_precedence(self._peek()):
                rhs = self._parse_binary_rhs(op_precedence + 1, rhs)

            lhs = BinaryOp(op.lexeme, lhs, rhs, op.location)

    def _token_precedence(self, token: Token) -> int:
        if token.type != TokenType.OPERATOR:
            return NO_PRECEDENCE
        return self.binary_precedence.get(token.lexeme, NO_PRECEDENCE)

    def _parse_primary(self) -> Expression:
        token = self._peek()
        if token.type == TokenType.ERROR:
            raise create_invalid_number_error(token, self.lexer.line_text)

        prefix_parser = self.prefix_parsers.get(token.type)
        if prefix_parser is None:
            raise create_invalid_expression_error(token, self.lexer.line_text)
        return prefix_parser()

    def _parse_number(self) -> NumberLiteral:
        token = self._advance()
        return NumberLiteral(token.value, token.location)

    def _parse_parenthesized(self) -> Expression:
        self._advance()
        expr = self.parse_expression()
        self._consume(TokenType.RIGHT_PAREN, "')'")
        return expr

    def _parse_identifier(self) -> Expression:
        """Either a variable reference or a call."""
        name = self._advance()
        if not self._check(TokenType.LEFT_PAREN):
            return VariableReference(name.lexeme, name.location)
        self._advance()

        arguments = []
        if not self._check(TokenType.RIGHT_PAREN):
            while True:
                arguments.append(self.parse_expression())
                if self._check(TokenType.RIGHT_PAREN):
                    break
                self._consume(TokenType.COMMA, "',' or ')' in argument list")
        self._advance()

        return Call(name.lexeme, tuple(arguments), name.location)

    def _parse_if(self) -> If:
        start = self._advance()
        condition = self.parse_expression()

        self._consume(TokenType.THEN, "'then'")
        then_branch = self.parse_expression()

        self._consume(TokenType.ELSE, "'else'")
        else_branch = self.parse_expression()

        return If(condition, then_branch, else_branch, start.location)

    def _parse_for(self) -> For:
        start_token = self._advance()
        variable = self._consume(TokenType.IDENTIFIER, "loop variable name")

        equals = self._peek()
        if not (equals.type == TokenType.OPERATOR and equals.lexeme == "="):
            raise create_unexpected_token_error("'=' after loop variable", equals,
                                                self.lexer.line_text)
        self._advance()

        start = self.parse_expression()
        self._consume(TokenType.COMMA, "',' after loop start value")
        end = self.parse_expression()

        step = None
        if self._check(TokenType.COMMA):
            self._advance()
            step = self.parse_expression()

        self._consume(TokenType.IN, "'in'")
        body = self.parse_expression()

        return For(variable.lexeme, start, end, step, body, start_token.location)

    # ========================================================================
    # Token helpers
    # ========================================================================

    def _peek(self) -> Token:
        return self.lexer.peek()

    def _advance(self) -> Token:
        return self.lexer.next()

    def _check(self, token_type: TokenType) -> bool:
        return self._peek().type == token_type

    def _consume(self, token_type: TokenType, expected: str) -> Token:
        """Consume token of expected type or raise error."""
        if self._check(token_type):
            return self._advance()
        raise create_unexpected_token_error(expected, self._peek(), self.lexer.line_text)
