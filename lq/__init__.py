"""
lq - шаблонизатор в стиле Liquid.

Шаблон компилируется в неизменяемый AST и рендерится с корневыми данными:

    env = Environment()
    template = env.compile("Hello {{ name | upcase }}!")
    env.render(template, {"name": "world"})  # "Hello WORLD!"
"""

from __future__ import annotations

from .config import EngineConfig, ConfigError, load_config, default_config
from .environment import Environment, compile_template, render
from .errors import (
    TemplateError,
    TemplateSyntaxError,
    SyntaxErrorKind,
    EvaluationError,
    EvaluationErrorKind,
    RenderError,
    RenderErrorKind,
    FilterError,
    FilterErrorKind,
)
from .filters import Filter, FunctionFilter, FilterRegistry, create_default_registry
from .template import Template, TemplateLoader, DictLoader, FileSystemLoader
from .version import tool_version

__all__ = [
    "Environment",
    "compile_template",
    "render",
    "Template",
    "TemplateLoader",
    "DictLoader",
    "FileSystemLoader",
    "EngineConfig",
    "ConfigError",
    "load_config",
    "default_config",
    "Filter",
    "FunctionFilter",
    "FilterRegistry",
    "create_default_registry",
    "TemplateError",
    "TemplateSyntaxError",
    "SyntaxErrorKind",
    "EvaluationError",
    "EvaluationErrorKind",
    "RenderError",
    "RenderErrorKind",
    "FilterError",
    "FilterErrorKind",
    "tool_version",
]
