"""
Модели выражений шаблона.

Содержит классы для представления выражений внутри {{ ... }} и аргументов
тегов: литералы, пути к переменным, диапазоны, цепочки фильтров и
бинарные операции сравнения и логики.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

from ..values import Value, StringValue


class ExpressionType(Enum):
    """Типы выражений."""
    LITERAL = "literal"
    PATH = "path"
    RANGE = "range"
    FILTERED = "filtered"
    BINARY = "binary"


class Operator(Enum):
    """Бинарные операторы в порядке возрастания приоритета групп."""
    OR = "or"
    AND = "and"
    EQ = "=="
    NE = "!="
    LT = "<"
    GT = ">"
    LE = "<="
    GE = ">="
    CONTAINS = "contains"

    @classmethod
    def from_symbol(cls, symbol: str) -> Optional[Operator]:
        """Оператор по его записи в шаблоне (None, если не оператор)."""
        if symbol == "<>":
            return cls.NE
        for op in cls:
            if op.value == symbol:
                return op
        return None

    @property
    def is_logical(self) -> bool:
        return self in (Operator.AND, Operator.OR)


@dataclass(frozen=True)
class Expression(ABC):
    """Базовый абстрактный класс для всех выражений."""

    @abstractmethod
    def get_type(self) -> ExpressionType:
        """Возвращает тип выражения."""
        pass

    def __str__(self) -> str:
        return self._to_string()

    @abstractmethod
    def _to_string(self) -> str:
        pass


@dataclass(frozen=True)
class LiteralExpr(Expression):
    """Литерал: строка, число, true/false/nil."""
    value: Value

    def get_type(self) -> ExpressionType:
        return ExpressionType.LITERAL

    def _to_string(self) -> str:
        if isinstance(self.value, StringValue):
            return f'"{self.value.value}"'
        text = str(self.value)
        return text if text else "nil"


# --------------------------------------------------------------------------- #
# Сегменты пути
# --------------------------------------------------------------------------- #

@dataclass(frozen=True)
class KeySegment:
    """Статический ключ: .name"""
    name: str

    def __str__(self) -> str:
        return f".{self.name}"


@dataclass(frozen=True)
class IndexSegment:
    """Статический индекс: [0]"""
    index: int

    def __str__(self) -> str:
        return f"[{self.index}]"


@dataclass(frozen=True)
class DynamicSegment:
    """Вычисляемый доступ: [expr]"""
    expression: Expression

    def __str__(self) -> str:
        return f"[{self.expression}]"


PathSegment = Union[KeySegment, IndexSegment, DynamicSegment]


@dataclass(frozen=True)
class PathExpr(Expression):
    """
    Путь к переменной: name.key[0][other.path]

    Первый сегмент всегда имя, которое ищется в стеке областей видимости.
    """
    root: str
    segments: Tuple[PathSegment, ...] = ()

    def get_type(self) -> ExpressionType:
        return ExpressionType.PATH

    def _to_string(self) -> str:
        return self.root + "".join(str(segment) for segment in self.segments)


@dataclass(frozen=True)
class RangeExpr(Expression):
    """Диапазон: (start..stop)"""
    start: Expression
    stop: Expression

    def get_type(self) -> ExpressionType:
        return ExpressionType.RANGE

    def _to_string(self) -> str:
        return f"({self.start}..{self.stop})"


@dataclass(frozen=True)
class FilterCall:
    """Вызов фильтра в цепочке: | name: arg1, arg2"""
    name: str
    arguments: Tuple[Expression, ...] = ()
    line: int = 0
    column: int = 0

    def __str__(self) -> str:
        if not self.arguments:
            return self.name
        return f"{self.name}: " + ", ".join(str(arg) for arg in self.arguments)


@dataclass(frozen=True)
class FilteredExpr(Expression):
    """
    Выражение с цепочкой фильтров.

    Фильтры применяются строго слева направо к результату base.
    """
    base: Expression
    filters: Tuple[FilterCall, ...]

    def get_type(self) -> ExpressionType:
        return ExpressionType.FILTERED

    def _to_string(self) -> str:
        chain = " | ".join(str(call) for call in self.filters)
        return f"{self.base} | {chain}"


@dataclass(frozen=True)
class BinaryExpr(Expression):
    """Бинарная операция: сравнение или логическая связка."""
    operator: Operator
    left: Expression
    right: Expression

    def get_type(self) -> ExpressionType:
        return ExpressionType.BINARY

    def _to_string(self) -> str:
        return f"({self.left} {self.operator.value} {self.right})"


# Объединенный тип для всех выражений
AnyExpression = Union[
    LiteralExpr,
    PathExpr,
    RangeExpr,
    FilteredExpr,
    BinaryExpr,
]


__all__ = [
    "ExpressionType",
    "Operator",
    "Expression",
    "LiteralExpr",
    "KeySegment",
    "IndexSegment",
    "DynamicSegment",
    "PathSegment",
    "PathExpr",
    "RangeExpr",
    "FilterCall",
    "FilteredExpr",
    "BinaryExpr",
    "AnyExpression",
]
