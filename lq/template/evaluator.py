"""
Вычислитель выражений для движка шаблонизации.

Интерпретирует выражения шаблона в контексте рендеринга. Ошибкой
считается только сбой фильтра или неизвестный фильтр; всё остальное
(отсутствующая переменная, несравнимые операнды, выход за границы)
деградирует до Nil или false.
"""

from __future__ import annotations

import logging
from typing import List, cast

from .context import RenderContext
from .expressions import (
    Expression,
    ExpressionType,
    LiteralExpr,
    PathExpr,
    KeySegment,
    IndexSegment,
    RangeExpr,
    FilterCall,
    FilteredExpr,
    BinaryExpr,
    Operator,
)
from ..errors import EvaluationError, EvaluationErrorKind, FilterError
from ..values import (
    Value, TRUE, FALSE, RangeValue,
    is_truthy, to_integer, values_equal, compare_values, contains_value,
    get_property, get_index, get_item,
)

logger = logging.getLogger(__name__)


class ExpressionEvaluator:
    """
    Вычислитель выражений.

    Вычисляет выражения на основе текущего состояния стека областей
    видимости и реестра фильтров контекста.
    """

    def __init__(self, context: RenderContext):
        """
        Инициализирует вычислитель с контекстом рендеринга.

        Args:
            context: Контекст с областями видимости и реестром фильтров
        """
        self.context = context

    def evaluate(self, expression: Expression) -> Value:
        """
        Вычисляет выражение.

        Args:
            expression: Выражение для вычисления

        Returns:
            Результирующее значение

        Raises:
            EvaluationError: При ошибке фильтра или неизвестном фильтре
        """
        expr_type = expression.get_type()

        if expr_type == ExpressionType.LITERAL:
            return cast(LiteralExpr, expression).value
        elif expr_type == ExpressionType.PATH:
            return self._evaluate_path(cast(PathExpr, expression))
        elif expr_type == ExpressionType.RANGE:
            return self._evaluate_range(cast(RangeExpr, expression))
        elif expr_type == ExpressionType.FILTERED:
            return self._evaluate_filtered(cast(FilteredExpr, expression))
        elif expr_type == ExpressionType.BINARY:
            return self._evaluate_binary(cast(BinaryExpr, expression))
        else:
            raise ValueError(f"Unknown expression type: {expr_type}")

    def is_true(self, expression: Expression) -> bool:
        """Вычисляет выражение как условие."""
        return is_truthy(self.evaluate(expression))

    def _evaluate_path(self, path: PathExpr) -> Value:
        """Разрешает имя по стеку областей, затем сегменты по одному."""
        value = self.context.resolve_name(path.root)

        for segment in path.segments:
            if isinstance(segment, KeySegment):
                value = get_property(value, segment.name)
            elif isinstance(segment, IndexSegment):
                value = get_index(value, segment.index)
            else:
                value = get_item(value, self.evaluate(segment.expression))

        return value

    def _evaluate_range(self, expression: RangeExpr) -> Value:
        """Границы диапазона приводятся к целым; нечисловая граница даёт 0."""
        start = to_integer(self.evaluate(expression.start))
        stop = to_integer(self.evaluate(expression.stop))
        return RangeValue(start or 0, stop or 0)

    def _evaluate_filtered(self, expression: FilteredExpr) -> Value:
        """Применяет фильтры строго слева направо."""
        value = self.evaluate(expression.base)
        for call in expression.filters:
            value = self.apply_filter(call, value)
        return value

    def apply_filter(self, call: FilterCall, value: Value) -> Value:
        """
        Применяет один вызов фильтра к значению.

        Аргументы вычисляются в текущем контексте, поэтому могут
        ссылаться на состояние цикла.
        """
        implementation = self.context.filters.get(call.name)
        if implementation is None:
            raise EvaluationError(
                f"Unknown filter '{call.name}' at {call.line}:{call.column}",
                EvaluationErrorKind.UNKNOWN_FILTER,
                filter_name=call.name,
            )

        arguments: List[Value] = [self.evaluate(arg) for arg in call.arguments]
        try:
            return implementation.evaluate(value, arguments)
        except FilterError as e:
            raise EvaluationError(
                f"Filter '{call.name}' failed: {e.message}",
                EvaluationErrorKind.FILTER_ERROR,
                filter_name=call.name,
                cause=e,
            ) from e

    def _evaluate_binary(self, expression: BinaryExpr) -> Value:
        """
        Вычисляет бинарную операцию.

        and/or вычисляются с коротким замыканием и возвращают Bool.
        Несравнимые операнды дают false, а не ошибку.
        """
        op = expression.operator

        if op == Operator.AND:
            if not self.is_true(expression.left):
                return FALSE
            return TRUE if self.is_true(expression.right) else FALSE

        if op == Operator.OR:
            if self.is_true(expression.left):
                return TRUE
            return TRUE if self.is_true(expression.right) else FALSE

        left = self.evaluate(expression.left)
        right = self.evaluate(expression.right)

        if op == Operator.EQ:
            result = values_equal(left, right)
        elif op == Operator.NE:
            result = not values_equal(left, right)
        elif op == Operator.CONTAINS:
            result = contains_value(left, right)
        else:
            order = compare_values(left, right)
            if order is None:
                logger.debug(f"Incomparable operands for '{op.value}': {left.get_kind().value}, {right.get_kind().value}")
                return FALSE
            if op == Operator.LT:
                result = order < 0
            elif op == Operator.GT:
                result = order > 0
            elif op == Operator.LE:
                result = order <= 0
            else:
                result = order >= 0

        return TRUE if result else FALSE


__all__ = ["ExpressionEvaluator"]
