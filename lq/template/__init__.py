"""
Ядро шаблонизатора: лексер, парсер, контекст, вычислитель и рендерер.
"""

from __future__ import annotations

from .context import RenderContext, FrameKind
from .evaluator import ExpressionEvaluator
from .lexer import TemplateLexer, tokenize_template
from .loader import TemplateLoader, DictLoader, FileSystemLoader
from .nodes import Template, TemplateNode, TemplateAST
from .parser import TemplateParser, parse_template
from .processor import TemplateRenderer

__all__ = [
    "RenderContext",
    "FrameKind",
    "ExpressionEvaluator",
    "TemplateLexer",
    "tokenize_template",
    "TemplateLoader",
    "DictLoader",
    "FileSystemLoader",
    "Template",
    "TemplateNode",
    "TemplateAST",
    "TemplateParser",
    "parse_template",
    "TemplateRenderer",
]
