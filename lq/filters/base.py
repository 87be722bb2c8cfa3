"""
Контракт фильтров.

Фильтр - именованная подключаемая единица, преобразующая значение
с учётом нуля или более аргументов. Ядро вызывает только
Filter.evaluate(value, arguments); о своих ошибках фильтр сообщает
через FilterError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional, Sequence

from ..errors import FilterError, FilterErrorKind
from ..values import (
    Value, StringValue, ArrayValue, RangeValue,
    to_value, to_python, to_output_string, to_integer, iterate_value,
)


class Filter(ABC):
    """
    Базовый интерфейс для фильтров.

    Каждый фильтр должен реализовать этот интерфейс для регистрации
    в реестре фильтров.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Возвращает имя фильтра, под которым он вызывается из шаблона."""
        pass

    @abstractmethod
    def evaluate(self, value: Value, arguments: List[Value]) -> Value:
        """
        Применяет фильтр к значению.

        Args:
            value: Входное значение (результат предыдущего звена цепочки)
            arguments: Вычисленные аргументы вызова

        Returns:
            Результирующее значение

        Raises:
            FilterError: При неверных аргументах или неподдерживаемом входе
        """
        pass


class FunctionFilter(Filter):
    """
    Фильтр поверх обычной функции.

    Проверяет количество аргументов до вызова. При native=True функция
    получает и возвращает обычные значения Python вместо модели значений.
    """

    def __init__(
        self,
        name: str,
        func: Callable[..., Any],
        min_args: int = 0,
        max_args: Optional[int] = None,
        native: bool = False,
    ):
        self._name = name
        self.func = func
        self.min_args = min_args
        self.max_args = max_args
        self.native = native

    @property
    def name(self) -> str:
        return self._name

    def evaluate(self, value: Value, arguments: List[Value]) -> Value:
        count = len(arguments)
        if count < self.min_args or (self.max_args is not None and count > self.max_args):
            raise FilterError(
                f"'{self._name}' expects {self._arity_text()} argument(s), got {count}",
                FilterErrorKind.WRONG_ARGUMENT_COUNT,
            )

        if self.native:
            result = self.func(to_python(value), *(to_python(arg) for arg in arguments))
            return to_value(result)
        return self.func(value, *arguments)

    def _arity_text(self) -> str:
        if self.max_args is None:
            return f"at least {self.min_args}"
        if self.max_args == self.min_args:
            return str(self.min_args)
        return f"{self.min_args}..{self.max_args}"

    def __repr__(self) -> str:
        return f"FunctionFilter({self._name!r})"


# --------------------------------------------------------------------------- #
# Помощники для реализаций фильтров
# --------------------------------------------------------------------------- #

def text(value: Value) -> str:
    """Строковое представление входа по общему правилу движка."""
    return to_output_string(value)


def integer_argument(value: Optional[Value], filter_name: str, default: Optional[int] = None) -> int:
    """
    Целочисленный аргумент фильтра.

    Raises:
        FilterError: Если аргумент отсутствует без значения по умолчанию
            или не приводится к целому
    """
    if value is None:
        if default is None:
            raise FilterError(f"'{filter_name}' requires an integer argument", FilterErrorKind.WRONG_ARGUMENT_COUNT)
        return default
    number = to_integer(value)
    if number is None:
        raise FilterError(
            f"'{filter_name}' expects an integer, got '{to_output_string(value)}'",
            FilterErrorKind.WRONG_ARGUMENT_TYPE,
        )
    return number


def sequence_items(value: Value) -> Optional[List[Value]]:
    """Элементы массива или диапазона; None для прочих вариантов."""
    if isinstance(value, (ArrayValue, RangeValue)):
        return iterate_value(value)
    return None


def array_of(items: Sequence[Value]) -> ArrayValue:
    return ArrayValue(tuple(items))


def string_of(value: str) -> StringValue:
    return StringValue(value)


def optional_argument(arguments: Sequence[Value], index: int) -> Optional[Value]:
    """Аргумент по позиции или None, если он не передан."""
    return arguments[index] if index < len(arguments) else None


__all__ = [
    "Filter",
    "FunctionFilter",
    "text",
    "integer_argument",
    "sequence_items",
    "array_of",
    "string_of",
    "optional_argument",
]
