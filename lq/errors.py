"""
Иерархия ошибок шаблонизатора.

Все ожидаемые ошибки, о которых нужно сообщить автору шаблона или
встраивающему приложению, наследуются от TemplateError.

Ошибки программирования и баги НЕ должны наследоваться от TemplateError:
они оборачиваются в RenderError(INTERNAL_ERROR) на границе Environment.
"""

from __future__ import annotations

import enum
from typing import Optional


class TemplateError(Exception):
    """Базовый класс для всех пользовательских ошибок шаблонизатора."""
    pass


class SyntaxErrorKind(enum.Enum):
    """Виды синтаксических ошибок (этап компиляции)."""
    UNEXPECTED_TOKEN = "unexpected_token"
    UNMATCHED_BLOCK = "unmatched_block"
    UNKNOWN_TAG = "unknown_tag"
    MALFORMED_EXPRESSION = "malformed_expression"
    NESTING_TOO_DEEP = "nesting_too_deep"


class TemplateSyntaxError(TemplateError):
    """
    Ошибка синтаксического анализа шаблона.

    Фатальна: шаблон целиком не компилируется. Несёт позицию в исходном
    тексте для точной диагностики.
    """

    def __init__(
        self,
        message: str,
        kind: SyntaxErrorKind,
        line: int = 0,
        column: int = 0,
        position: int = 0,
    ):
        super().__init__(f"{message} at {line}:{column}")
        self.message = message
        self.kind = kind
        self.line = line
        self.column = column
        self.position = position


class EvaluationErrorKind(enum.Enum):
    """Виды ошибок вычисления выражений."""
    FILTER_ERROR = "filter_error"
    UNKNOWN_FILTER = "unknown_filter"


class EvaluationError(TemplateError):
    """Ошибка вычисления выражения при рендеринге (только уровень фильтров)."""

    def __init__(
        self,
        message: str,
        kind: EvaluationErrorKind,
        filter_name: str = "",
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.filter_name = filter_name
        self.cause = cause


class RenderErrorKind(enum.Enum):
    """Виды ошибок рендеринга."""
    MISSING_TEMPLATE = "missing_template"
    RECURSION_LIMIT = "recursion_limit"
    INTERNAL_ERROR = "internal_error"


class RenderError(TemplateError):
    """Ошибка рендеринга (включения шаблонов, пределы вложенности)."""

    def __init__(
        self,
        message: str,
        kind: RenderErrorKind,
        template_name: str = "",
        cause: Optional[Exception] = None,
    ):
        if template_name:
            message = f"{message} (template '{template_name}')"
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.template_name = template_name
        self.cause = cause


class FilterErrorKind(enum.Enum):
    """Виды ошибок, которые может сообщить реализация фильтра."""
    WRONG_ARGUMENT_COUNT = "wrong_argument_count"
    WRONG_ARGUMENT_TYPE = "wrong_argument_type"
    UNSUPPORTED_INPUT = "unsupported_input"
    INVALID_ARGUMENT = "invalid_argument"


class FilterError(TemplateError):
    """
    Ошибка конкретного вызова фильтра.

    Движок не пропускает её наружу как есть: вычислитель оборачивает её
    в EvaluationError(FILTER_ERROR) с именем фильтра.
    """

    def __init__(self, message: str, kind: FilterErrorKind = FilterErrorKind.INVALID_ARGUMENT):
        super().__init__(message)
        self.message = message
        self.kind = kind


__all__ = [
    "TemplateError",
    "SyntaxErrorKind",
    "TemplateSyntaxError",
    "EvaluationErrorKind",
    "EvaluationError",
    "RenderErrorKind",
    "RenderError",
    "FilterErrorKind",
    "FilterError",
]
