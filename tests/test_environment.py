"""Тесты публичного API Environment."""

import pytest

import lq
from lq.config import EngineConfig
from lq.environment import Environment, compile_template, default_environment, render
from lq.errors import (
    EvaluationError, EvaluationErrorKind, FilterErrorKind,
    RenderError, RenderErrorKind, SyntaxErrorKind, TemplateSyntaxError,
)
from lq.filters import FilterRegistry, FunctionFilter
from lq.template.loader import DictLoader
from lq.values import StringValue


def explode(value):
    raise ValueError("boom")


class TestCompile:
    """Компиляция и кэш."""

    def test_compile_and_render(self, env):
        template = env.compile("Hello {{ name | upcase }}!", "greeting")

        assert template.name == "greeting"
        assert env.render(template, {"name": "world"}) == "Hello WORLD!"

    def test_render_without_data(self, env):
        assert env.render(env.compile("a{{ x }}b")) == "ab"

    def test_template_is_reusable(self, env):
        template = env.compile("{% increment n %}{{ v }}")

        assert env.render(template, {"v": "a"}) == "0a"
        assert env.render(template, {"v": "b"}) == "0b"

    def test_cache_hit(self, env):
        assert env.compile("x", "a") is env.compile("x", "a")

    def test_cache_keys_by_name_and_source(self, env):
        assert env.compile("x", "a") is not env.compile("y", "a")
        assert env.compile("x", "a") is not env.compile("x", "b")

    def test_cache_disabled(self):
        env = Environment(EngineConfig(cache_templates=False))

        assert env.compile("x") is not env.compile("x")

    def test_clear_cache(self, env):
        first = env.compile("x")
        env.clear_cache()

        assert env.compile("x") is not first

    def test_syntax_error_propagates(self, env):
        with pytest.raises(TemplateSyntaxError):
            env.compile("{% if a %}")


class TestErrors:
    """Ошибки рендеринга на границе окружения."""

    def test_unknown_filter(self, render):
        with pytest.raises(EvaluationError) as exc_info:
            render("{{ x | frobnicate }}")

        assert exc_info.value.kind == EvaluationErrorKind.UNKNOWN_FILTER
        assert exc_info.value.filter_name == "frobnicate"

    def test_filter_error_is_wrapped(self, render):
        with pytest.raises(EvaluationError) as exc_info:
            render("{{ 1 | divided_by: 0 }}")

        assert exc_info.value.kind == EvaluationErrorKind.FILTER_ERROR
        assert exc_info.value.cause.kind == FilterErrorKind.INVALID_ARGUMENT

    def test_partial_output_discarded(self, render):
        with pytest.raises(EvaluationError):
            render("before {{ x | nope }} after")

    def test_unexpected_exception_becomes_internal_error(self, env):
        env.register_filter(FunctionFilter("explode", explode, 0, 0, native=True))

        with pytest.raises(RenderError) as exc_info:
            env.render_source("{{ 1 | explode }}", name="page")

        err = exc_info.value
        assert err.kind == RenderErrorKind.INTERNAL_ERROR
        assert isinstance(err.cause, ValueError)
        assert err.template_name == "page"

    def test_recursion_error_is_mapped(self, env):
        def deep(value):
            raise RecursionError("too deep")

        env.register_filter(FunctionFilter("deep", deep, 0, 0, native=True))

        with pytest.raises(RenderError) as exc_info:
            env.render_source("{{ 1 | deep }}")

        assert exc_info.value.kind == RenderErrorKind.RECURSION_LIMIT


class TestFiltersAndLoaders:
    """Пользовательские фильтры и загрузчики."""

    def test_register_filter(self, env):
        env.register_filter(FunctionFilter("exclaim", lambda s: s + "!", 0, 0, native=True))

        assert env.render_source("{{ 'hi' | exclaim }}") == "hi!"

    def test_override_builtin(self, env):
        env.register_filter(FunctionFilter("upcase", lambda v: StringValue("custom"), 0, 0))

        assert env.render_source("{{ 'a' | upcase }}") == "custom"

    def test_custom_registry(self):
        registry = FilterRegistry()
        registry.register_function("twice", lambda s: s * 2, 0, 0)
        env = Environment(filters=registry)

        assert env.render_source("{{ 'ab' | twice }}") == "abab"
        with pytest.raises(EvaluationError):
            env.render_source("{{ 'ab' | upcase }}")

    def test_set_loader(self, env):
        env.set_loader(DictLoader({"part": "P"}))

        assert env.render_source("[{% include 'part' %}]") == "[P]"

    def test_custom_loader_object(self, env):
        class UpperLoader:
            def load(self, name):
                return env.compile(name.upper(), name)

        env.set_loader(UpperLoader())

        assert env.render_source("{% render 'abc' %}") == "ABC"

    def test_loader_lookup_error_is_missing_template(self, env):
        class BrokenLoader:
            def load(self, name):
                raise KeyError(name)

        env.set_loader(BrokenLoader())

        with pytest.raises(RenderError) as exc_info:
            env.render_source("{% include 'x' %}")

        assert exc_info.value.kind == RenderErrorKind.MISSING_TEMPLATE

    def test_loader_inherits_environment_config(self):
        deep = "{% if a %}" * 3 + "{% endif %}" * 3
        env = Environment(config=EngineConfig(max_nesting_depth=2), loader=DictLoader({"deep": deep}))

        with pytest.raises(TemplateSyntaxError) as exc_info:
            env.render_source("{% include 'deep' %}")

        assert exc_info.value.kind == SyntaxErrorKind.NESTING_TOO_DEEP

    def test_set_loader_inherits_environment_config(self):
        env = Environment(config=EngineConfig(max_nesting_depth=2))
        loader = DictLoader({"deep": "{% if a %}" * 3 + "{% endif %}" * 3})
        env.set_loader(loader)

        assert loader.config is env.config
        with pytest.raises(TemplateSyntaxError):
            env.render_source("{% render 'deep' %}")

    def test_loader_keeps_own_config(self):
        own = EngineConfig(max_nesting_depth=8)
        loader = DictLoader({"p": "P"}, config=own)
        env = Environment(config=EngineConfig(max_nesting_depth=2), loader=loader)

        assert loader.config is own
        assert env.render_source("{% include 'p' %}") == "P"


class TestModuleLevelApi:
    """Функции уровня модуля и пакета."""

    def test_compile_and_render(self):
        template = compile_template("{{ a | plus: b }}")

        assert render(template, {"a": 1, "b": 2}) == "3"

    def test_default_environment_is_shared(self):
        assert default_environment() is default_environment()

    def test_package_exports(self):
        env = lq.Environment()

        assert env.render(env.compile("{{ 'x' | upcase }}")) == "X"
        assert isinstance(lq.tool_version(), str)
