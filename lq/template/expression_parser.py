"""
Парсер выражений с рекурсивным спуском.

Строит дерево выражения из токенов содержимого {{ ... }} или аргументов тега.
Поддерживает приоритеты операторов, цепочки фильтров и группировку в скобках.

Грамматика:
expression  → or_expr
or_expr     → and_expr ("or" and_expr)*
and_expr    → comparison ("and" comparison)*
comparison  → filtered (COMPARE_OP filtered)*
filtered    → primary ("|" IDENTIFIER (":" primary ("," primary)*)?)*
              (аргументы фильтра заканчиваются перед ", name:")
primary     → LITERAL | "true" | "false" | "nil" | "null"
            | path
            | "(" primary ".." primary ")"
            | "(" expression ")"
path        → IDENTIFIER ("." IDENTIFIER | "." INTEGER | "[" expression "]")*

COMPARE_OP  → "==" | "!=" | "<>" | "<" | ">" | "<=" | ">=" | "contains"

Все бинарные операторы левоассоциативны; and связывает сильнее or,
оба слабее сравнений.
"""

from __future__ import annotations

from typing import List, Optional

from .expressions import (
    Expression,
    LiteralExpr,
    PathExpr,
    PathSegment,
    KeySegment,
    IndexSegment,
    DynamicSegment,
    RangeExpr,
    FilterCall,
    FilteredExpr,
    BinaryExpr,
    Operator,
)
from .tokens import TokenType
from .types import ParsingContext, describe_token
from ..errors import SyntaxErrorKind
from ..values import NIL, TRUE, FALSE, IntegerValue, StringValue

# Идентификаторы, которые являются литералами
_KEYWORD_LITERALS = {
    "true": TRUE,
    "false": FALSE,
    "nil": NIL,
    "null": NIL,
}


class ExpressionParser:
    """
    Парсер выражений поверх общего контекста токенов.

    Работает с курсором ParsingContext, поэтому парсер тегов может
    разбирать выражения вперемешку со своими ключевыми словами
    (например, for item in collection limit: 2 reversed).
    """

    def __init__(self, ctx: ParsingContext, max_depth: int = 64):
        self.ctx = ctx
        self.max_depth = max_depth
        self._depth = 0

    def parse_expression(self, primary: Optional[Expression] = None) -> Expression:
        """
        Парсит полное выражение (начальный символ грамматики).

        Args:
            primary: Уже разобранный первый операнд, если он есть
        """
        return self._parse_or(primary)

    def expect_end(self) -> None:
        """Проверяет, что после выражения не осталось токенов."""
        if not self.ctx.is_at_end():
            current = self.ctx.current()
            raise self.ctx.error(
                f"Unexpected {describe_token(current)} after expression",
                SyntaxErrorKind.UNEXPECTED_TOKEN,
            )

    def _parse_or(self, primary: Optional[Expression] = None) -> Expression:
        """Парсит выражение с оператором or (низший приоритет)."""
        left = self._parse_and(primary)

        while self._match_operator(Operator.OR):
            right = self._parse_and()
            left = BinaryExpr(Operator.OR, left, right)

        return left

    def _parse_and(self, primary: Optional[Expression] = None) -> Expression:
        """Парсит выражение с оператором and."""
        left = self._parse_comparison(primary)

        while self._match_operator(Operator.AND):
            right = self._parse_comparison()
            left = BinaryExpr(Operator.AND, left, right)

        return left

    def _parse_comparison(self, primary: Optional[Expression] = None) -> Expression:
        """Парсит сравнение (высший приоритет среди бинарных операторов)."""
        left = self.parse_filtered(primary)

        while self.ctx.match(TokenType.OPERATOR):
            operator = Operator.from_symbol(self.ctx.current().value)
            if operator is None or operator.is_logical:
                break
            self.ctx.advance()
            right = self.parse_filtered()
            left = BinaryExpr(operator, left, right)

        return left

    def parse_filtered(self, primary: Optional[Expression] = None) -> Expression:
        """Парсит первичное выражение с необязательной цепочкой фильтров."""
        base = primary if primary is not None else self.parse_primary()

        filters: List[FilterCall] = []
        while self.ctx.match(TokenType.PIPE):
            self.ctx.advance()
            filters.append(self._parse_filter_call())

        if not filters:
            return base
        return FilteredExpr(base, tuple(filters))

    def _parse_filter_call(self) -> FilterCall:
        """Парсит один вызов фильтра: name[: arg, arg...]"""
        name_token = self.ctx.current()
        if name_token.type != TokenType.IDENTIFIER:
            raise self.ctx.error(
                f"Expected filter name after '|', got {describe_token(name_token)}",
                SyntaxErrorKind.MALFORMED_EXPRESSION,
            )
        self.ctx.advance()

        arguments: List[Expression] = []
        if self.ctx.match(TokenType.COLON):
            self.ctx.advance()
            arguments.append(self.parse_primary())
            # ", name:" начинает именованный аргумент тега, а не фильтра
            while self.ctx.match(TokenType.COMMA) and not self._at_keyword_argument(1):
                self.ctx.advance()
                arguments.append(self.parse_primary())

        return FilterCall(name_token.value, tuple(arguments), name_token.line, name_token.column)

    def _at_keyword_argument(self, offset: int = 0) -> bool:
        """Проверяет, начинается ли с токена на смещении конструкция name:"""
        return (
            self.ctx.peek(offset).type == TokenType.IDENTIFIER
            and self.ctx.peek(offset + 1).type == TokenType.COLON
        )

    def parse_primary(self) -> Expression:
        """Парсит первичное выражение (литералы, пути, диапазоны, группы)."""
        current = self.ctx.current()

        if current.type == TokenType.LITERAL:
            self.ctx.advance()
            return LiteralExpr(current.literal)

        if current.type == TokenType.IDENTIFIER:
            if current.value in _KEYWORD_LITERALS:
                self.ctx.advance()
                return LiteralExpr(_KEYWORD_LITERALS[current.value])
            return self._parse_path()

        if current.type == TokenType.LPAREN:
            return self._parse_parenthesized()

        raise self.ctx.error(
            f"Expected expression, got {describe_token(current)}",
            SyntaxErrorKind.MALFORMED_EXPRESSION,
        )

    def _parse_parenthesized(self) -> Expression:
        """
        Парсит диапазон (a..b) или группу (expression).

        Первый операнд разбирается один раз: если за ним нет '..',
        он становится левым операндом сгруппированного выражения.
        """
        open_paren = self.ctx.advance()
        self._enter(open_paren)
        try:
            start = self.parse_primary()
            if self.ctx.match(TokenType.DOTDOT):
                self.ctx.advance()
                stop = self.parse_primary()
                self.ctx.consume(TokenType.RPAREN, "')' after range")
                return RangeExpr(start, stop)

            expression = self.parse_expression(start)
            self.ctx.consume(TokenType.RPAREN, "')' after grouped expression")
            return expression
        finally:
            self._depth -= 1

    def _parse_path(self) -> PathExpr:
        """Парсит путь к переменной с сегментами через точку и скобки."""
        root = self.ctx.advance()
        segments: List[PathSegment] = []

        while True:
            if self.ctx.match(TokenType.DOT):
                self.ctx.advance()
                segment_token = self.ctx.current()
                if segment_token.type == TokenType.IDENTIFIER:
                    self.ctx.advance()
                    segments.append(KeySegment(segment_token.value))
                elif segment_token.type == TokenType.LITERAL and isinstance(segment_token.literal, IntegerValue):
                    self.ctx.advance()
                    segments.append(IndexSegment(segment_token.literal.value))
                else:
                    raise self.ctx.error(
                        f"Expected property name after '.', got {describe_token(segment_token)}",
                        SyntaxErrorKind.MALFORMED_EXPRESSION,
                    )
            elif self.ctx.match(TokenType.LBRACKET):
                segments.append(self._parse_bracket_segment())
            else:
                break

        return PathExpr(root.value, tuple(segments))

    def _parse_bracket_segment(self) -> PathSegment:
        """Парсит доступ в квадратных скобках: [0], ["key"] или [expr]."""
        open_bracket = self.ctx.advance()

        # Статические формы не требуют вычисления при рендеринге
        current = self.ctx.current()
        if current.type == TokenType.LITERAL and self.ctx.peek().type == TokenType.RBRACKET:
            self.ctx.advance()
            self.ctx.advance()
            if isinstance(current.literal, IntegerValue):
                return IndexSegment(current.literal.value)
            if isinstance(current.literal, StringValue):
                return KeySegment(current.literal.value)
            return DynamicSegment(LiteralExpr(current.literal))

        self._enter(open_bracket)
        try:
            expression = self.parse_expression()
        finally:
            self._depth -= 1
        self.ctx.consume(TokenType.RBRACKET, "']'")
        return DynamicSegment(expression)

    def _match_operator(self, operator: Operator) -> bool:
        """Потребляет оператор, если текущий токен совпадает."""
        current = self.ctx.current()
        if current.type == TokenType.OPERATOR and current.value == operator.value:
            self.ctx.advance()
            return True
        return False

    def _enter(self, token) -> None:
        """Учитывает вложенность скобок."""
        self._depth += 1
        if self._depth > self.max_depth:
            self._depth -= 1
            raise self.ctx.error(
                f"Expression nesting exceeds {self.max_depth} levels",
                SyntaxErrorKind.NESTING_TOO_DEEP,
                token,
            )


__all__ = ["ExpressionParser"]
