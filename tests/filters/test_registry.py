"""Тесты реестра фильтров и FunctionFilter."""

import logging

import pytest

from lq.errors import FilterError, FilterErrorKind
from lq.filters import Filter, FilterRegistry, FunctionFilter, create_default_registry
from lq.values import ArrayValue, IntegerValue, StringValue


class ShoutFilter(Filter):
    """Фильтр, реализованный классом."""

    @property
    def name(self) -> str:
        return "shout"

    def evaluate(self, value, arguments):
        return StringValue(str(value).upper() + "!")


class TestFilterRegistry:
    """Регистрация и поиск фильтров."""

    def setup_method(self):
        self.registry = FilterRegistry()

    def test_register_and_get(self):
        self.registry.register(ShoutFilter())

        assert "shout" in self.registry
        assert self.registry.get("shout").evaluate(StringValue("hi"), []) == StringValue("HI!")

    def test_missing_filter(self):
        assert self.registry.get("nope") is None
        assert "nope" not in self.registry

    def test_overwrite_warns(self, caplog):
        self.registry.register(ShoutFilter())
        with caplog.at_level(logging.WARNING, logger="lq.filters.registry"):
            self.registry.register_function("shout", lambda s: s)

        assert "overwrites" in caplog.text
        assert len(self.registry) == 1
        assert self.registry.get("shout").evaluate(StringValue("hi"), []) == StringValue("hi")

    def test_names_sorted(self):
        self.registry.register_function("b", lambda v: v)
        self.registry.register_function("a", lambda v: v)

        assert self.registry.names() == ["a", "b"]

    def test_copy_is_independent(self):
        self.registry.register_function("a", lambda v: v)
        clone = self.registry.copy()
        clone.register_function("b", lambda v: v)

        assert "b" in clone
        assert "b" not in self.registry

    def test_default_registry(self):
        registry = create_default_registry()

        for name in ("upcase", "plus", "join", "escape", "default", "date", "where", "base64_decode"):
            assert name in registry


class TestFunctionFilter:
    """Фильтр поверх функции."""

    def test_native_function(self):
        item = FunctionFilter("total", lambda items: sum(items), 0, 0, native=True)

        result = item.evaluate(ArrayValue((IntegerValue(1), IntegerValue(2))), [])

        assert result == IntegerValue(3)

    def test_native_arguments(self):
        item = FunctionFilter("wrap", lambda s, left, right: f"{left}{s}{right}", 2, 2, native=True)

        assert item.evaluate(StringValue("x"), [StringValue("["), StringValue("]")]) == StringValue("[x]")

    def test_value_function(self):
        item = FunctionFilter("same", lambda value: value, 0, 0)

        assert item.evaluate(IntegerValue(5), []) == IntegerValue(5)

    def test_open_ended_arity(self):
        item = FunctionFilter("count", lambda v, *args: len(args), 1, native=True)

        assert item.evaluate(StringValue(""), [IntegerValue(1)] * 4) == IntegerValue(4)
        with pytest.raises(FilterError) as exc_info:
            item.evaluate(StringValue(""), [])

        assert exc_info.value.kind == FilterErrorKind.WRONG_ARGUMENT_COUNT
        assert "at least 1" in str(exc_info.value)

    def test_repr(self):
        assert repr(FunctionFilter("x", len)) == "FunctionFilter('x')"
