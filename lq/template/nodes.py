"""
AST-узлы шаблона.

Определяет иерархию неизменяемых классов узлов для представления
структуры шаблонов. Дерево строится один раз при компиляции и только
читается при рендеринге, поэтому его можно разделять между потоками.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from .expressions import Expression


@dataclass(frozen=True)
class TemplateNode:
    """Базовый класс для всех узлов AST шаблона."""
    pass


# Алиас для последовательности узлов (AST)
TemplateAST = Tuple[TemplateNode, ...]


@dataclass(frozen=True)
class TextNode(TemplateNode):
    """
    Обычный текстовый контент в шаблоне.

    Флаги обрезки приходят от соседних разделителей с маркером '-'
    и применяются рендерером.
    """
    text: str
    trim_left: bool = False    # убрать ведущие пробелы ({{ ... -}} / {% ... -%} перед текстом)
    trim_right: bool = False   # убрать хвостовые пробелы ({{- / {%- после текста)


@dataclass(frozen=True)
class OutputNode(TemplateNode):
    """Вывод значения выражения: {{ expression }}"""
    expression: Expression


# --------------------------------------------------------------------------- #
# Ветвления
# --------------------------------------------------------------------------- #

@dataclass(frozen=True)
class ConditionalBranch:
    """Ветка условного блока: условие и тело."""
    condition: Expression
    body: TemplateAST


@dataclass(frozen=True)
class IfNode(TemplateNode):
    """
    Условный блок {% if %}...{% elsif %}...{% else %}...{% endif %}

    Выполняется первая ветка с истинным условием, иначе else_body.
    """
    branches: Tuple[ConditionalBranch, ...]
    else_body: Optional[TemplateAST] = None


@dataclass(frozen=True)
class UnlessNode(TemplateNode):
    """
    Блок {% unless %}: первое условие инвертировано.

    Последующие elsif-ветки проверяются как обычно.
    """
    condition: Expression
    body: TemplateAST
    elsif_branches: Tuple[ConditionalBranch, ...] = ()
    else_body: Optional[TemplateAST] = None


@dataclass(frozen=True)
class WhenClause:
    """Ветка {% when a, b %}: совпадает, если субъект равен любому значению."""
    values: Tuple[Expression, ...]
    body: TemplateAST


@dataclass(frozen=True)
class CaseNode(TemplateNode):
    subject: Expression
    whens: Tuple[WhenClause, ...]
    else_body: Optional[TemplateAST] = None


# --------------------------------------------------------------------------- #
# Циклы
# --------------------------------------------------------------------------- #

@dataclass(frozen=True)
class ForNode(TemplateNode):
    """
    Цикл {% for item in collection limit: n offset: m reversed %}

    else_body выполняется, если после материализации коллекция пуста.
    """
    variable: str
    collection: Expression
    body: TemplateAST
    else_body: Optional[TemplateAST] = None
    limit: Optional[Expression] = None
    offset: Optional[Expression] = None
    reversed: bool = False


@dataclass(frozen=True)
class TableRowNode(TemplateNode):
    """Цикл {% tablerow %}, генерирующий строки и ячейки HTML-таблицы."""
    variable: str
    collection: Expression
    body: TemplateAST
    cols: Optional[Expression] = None
    limit: Optional[Expression] = None
    offset: Optional[Expression] = None


@dataclass(frozen=True)
class BreakNode(TemplateNode):
    pass


@dataclass(frozen=True)
class ContinueNode(TemplateNode):
    pass


# --------------------------------------------------------------------------- #
# Переменные
# --------------------------------------------------------------------------- #

@dataclass(frozen=True)
class CaptureNode(TemplateNode):
    """Захват отрендеренного тела в переменную."""
    name: str
    body: TemplateAST


@dataclass(frozen=True)
class AssignNode(TemplateNode):
    name: str
    expression: Expression


@dataclass(frozen=True)
class IncrementNode(TemplateNode):
    name: str


@dataclass(frozen=True)
class DecrementNode(TemplateNode):
    name: str


@dataclass(frozen=True)
class CycleNode(TemplateNode):
    """
    Циклический перебор значений {% cycle [group:] a, b, c %}

    Без группы состояние разделяют все теги с одинаковым набором значений.
    """
    values: Tuple[Expression, ...]
    group: Optional[Expression] = None


# --------------------------------------------------------------------------- #
# Прочее
# --------------------------------------------------------------------------- #

@dataclass(frozen=True)
class RawNode(TemplateNode):
    """Текст из {% raw %}, выводится без обработки."""
    text: str


@dataclass(frozen=True)
class CommentNode(TemplateNode):
    """Комментарий. Содержимое отбрасывается при разборе."""
    pass


@dataclass(frozen=True)
class IncludeNode(TemplateNode):
    """
    Включение другого шаблона: {% include 'name', key: value %}

    isolated=True соответствует {% render %}: включаемый шаблон видит
    только переданные аргументы.
    """
    template_name: Expression
    arguments: Tuple[Tuple[str, Expression], ...] = ()
    isolated: bool = False
    line: int = 0
    column: int = 0


@dataclass(frozen=True)
class Template:
    """
    Скомпилированный шаблон.

    Никогда не изменяется после разбора: один экземпляр можно
    рендерить многократно и параллельно с разными данными.
    """
    name: str
    nodes: TemplateAST


__all__ = [
    "Template",
    "TemplateNode",
    "TemplateAST",
    "TextNode",
    "OutputNode",
    "ConditionalBranch",
    "IfNode",
    "UnlessNode",
    "WhenClause",
    "CaseNode",
    "ForNode",
    "TableRowNode",
    "BreakNode",
    "ContinueNode",
    "CaptureNode",
    "AssignNode",
    "IncrementNode",
    "DecrementNode",
    "CycleNode",
    "RawNode",
    "CommentNode",
    "IncludeNode",
]
