"""Тесты для вычислителя выражений ExpressionEvaluator."""

from decimal import Decimal

import pytest

from lq.errors import EvaluationError, EvaluationErrorKind, FilterErrorKind
from lq.filters import FilterRegistry, FunctionFilter, create_default_registry
from lq.template.context import RenderContext
from lq.template.evaluator import ExpressionEvaluator
from lq.template.expression_parser import ExpressionParser
from lq.template.lexer import tokenize_template
from lq.template.types import ParsingContext
from lq.values import (
    NIL, TRUE, FALSE, ArrayValue, DecimalValue, IntegerValue, RangeValue, StringValue,
)


def compile_expression(source):
    """Разбирает выражение так же, как содержимое {{ ... }}."""
    tokens = tokenize_template("{{ " + source + " }}")
    inner = tokens[1:-2] + [tokens[-1]]
    parser = ExpressionParser(ParsingContext(inner))
    expression = parser.parse_expression()
    parser.expect_end()
    return expression


class TestExpressionEvaluator:
    """Вычисление выражений в контексте."""

    def setup_method(self):
        self.context = RenderContext({
            "user": {"name": "Ann", "tags": ["a", "b", "c"], "age": 30},
            "items": [1, 2, 3],
            "key": "name",
            "index": 1,
            "empty": "",
            "price": 2.5,
        })
        self.evaluator = ExpressionEvaluator(self.context)

    def eval(self, source):
        return self.evaluator.evaluate(compile_expression(source))

    def test_literals(self):
        assert self.eval("42") == IntegerValue(42)
        assert self.eval("'hi'") == StringValue("hi")
        assert self.eval("nil") == NIL
        assert self.eval("true") == TRUE

    def test_path_lookup(self):
        assert self.eval("user.name") == StringValue("Ann")
        assert self.eval("user.tags[1]") == StringValue("b")
        assert self.eval("user.tags.last") == StringValue("c")
        assert self.eval("user[key]") == StringValue("Ann")
        assert self.eval("items[index]") == IntegerValue(2)

    def test_negative_index(self):
        assert self.eval("items[-1]") == IntegerValue(3)

    def test_missing_values_are_nil(self):
        assert self.eval("missing") == NIL
        assert self.eval("user.missing.deeper") == NIL
        assert self.eval("items[10]") == NIL
        assert self.eval("user.name.first") == NIL

    def test_size_property(self):
        assert self.eval("items.size") == IntegerValue(3)
        assert self.eval("user.name.size") == IntegerValue(3)

    def test_float_data_becomes_decimal(self):
        assert self.eval("price") == DecimalValue(Decimal("2.5"))

    def test_range(self):
        assert self.eval("(1..index)") == RangeValue(1, 1)
        assert self.eval("(2..'4')") == RangeValue(2, 4)

    def test_range_with_non_numeric_bound(self):
        assert self.eval("(1..missing)") == RangeValue(1, 0)

    def test_comparisons(self):
        assert self.eval("1 == 1.0") == TRUE
        assert self.eval("'a' < 'b'") == TRUE
        assert self.eval("user.age >= 30") == TRUE
        assert self.eval("1 != 2") == TRUE
        assert self.eval("nil == nil") == TRUE

    def test_incomparable_operands_are_false(self):
        assert self.eval("'10' > 5") == FALSE
        assert self.eval("'10' < 5") == FALSE
        assert self.eval("nil < 1") == FALSE

    def test_string_is_not_equal_to_number(self):
        assert self.eval("'1' == 1") == FALSE

    def test_contains(self):
        assert self.eval("user.name contains 'nn'") == TRUE
        assert self.eval("user.tags contains 'b'") == TRUE
        assert self.eval("items contains 4") == FALSE
        assert self.eval("missing contains 'x'") == FALSE

    def test_logical_operators_return_bool(self):
        assert self.eval("1 and 'x'") == TRUE
        assert self.eval("nil or 0") == TRUE
        assert self.eval("nil and 1") == FALSE
        assert self.eval("false or nil") == FALSE

    def test_precedence(self):
        assert self.eval("true or false and false") == TRUE
        assert self.eval("(true or false) and false") == FALSE

    def test_truthiness(self):
        assert self.evaluator.is_true(compile_expression("empty")) is True
        assert self.evaluator.is_true(compile_expression("0")) is True
        assert self.evaluator.is_true(compile_expression("missing")) is False
        assert self.evaluator.is_true(compile_expression("false")) is False


class TestFilterApplication:
    """Применение фильтров вычислителем."""

    def setup_method(self):
        registry = create_default_registry()
        registry.register(FunctionFilter("double", lambda v: IntegerValue(v.value * 2), 0, 0))
        registry.register(FunctionFilter("addOne", lambda v: IntegerValue(v.value + 1), 0, 0))
        self.context = RenderContext({"name": "ann", "n": 4}, filters=registry)
        self.evaluator = ExpressionEvaluator(self.context)

    def eval(self, source):
        return self.evaluator.evaluate(compile_expression(source))

    def test_chain_applies_left_to_right(self):
        assert self.eval("3 | double | addOne") == IntegerValue(7)
        assert self.eval("3 | addOne | double") == IntegerValue(8)

    def test_arguments_are_evaluated_in_context(self):
        assert self.eval("name | append: n") == StringValue("ann4")

    def test_unknown_filter(self):
        with pytest.raises(EvaluationError) as exc_info:
            self.eval("name | nope")

        assert exc_info.value.kind == EvaluationErrorKind.UNKNOWN_FILTER
        assert exc_info.value.filter_name == "nope"

    def test_filter_error_is_wrapped(self):
        with pytest.raises(EvaluationError) as exc_info:
            self.eval("name | upcase: 1")

        error = exc_info.value
        assert error.kind == EvaluationErrorKind.FILTER_ERROR
        assert error.filter_name == "upcase"
        assert error.cause.kind == FilterErrorKind.WRONG_ARGUMENT_COUNT

    def test_division_by_zero_is_filter_error(self):
        with pytest.raises(EvaluationError) as exc_info:
            self.eval("n | divided_by: 0")

        assert exc_info.value.cause.kind == FilterErrorKind.INVALID_ARGUMENT

    def test_empty_registry(self):
        evaluator = ExpressionEvaluator(RenderContext({}, filters=FilterRegistry()))

        with pytest.raises(EvaluationError):
            evaluator.evaluate(compile_expression("1 | plus: 1"))

    def test_filtered_values_in_comparison(self):
        assert self.eval("name | size == 3") == TRUE
        assert self.eval("n | plus: 1 > 4") == TRUE

    def test_array_result(self):
        assert self.eval("'a,b' | split: ','") == ArrayValue((StringValue("a"), StringValue("b")))
