"""
Рендерер шаблонов.

Обходит неизменяемый AST, поддерживая состояние областей видимости
и циклов в контексте рендеринга, и собирает выходной текст. Управление
потоком (break/continue) передаётся вверх по цепочке вызовов как
значение Signal, а не через исключения.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Type

from .context import RenderContext, FrameKind
from .evaluator import ExpressionEvaluator
from .expressions import Expression
from .nodes import (
    TemplateNode, TextNode, OutputNode,
    IfNode, UnlessNode, CaseNode, ForNode, TableRowNode,
    BreakNode, ContinueNode, CaptureNode, AssignNode,
    IncrementNode, DecrementNode, CycleNode,
    RawNode, CommentNode, IncludeNode,
)
from .types import ProcessorRule, Signal
from ..errors import TemplateError, RenderError, RenderErrorKind
from ..values import (
    Value, BoolValue, IntegerValue, StringValue, DictionaryValue,
    iterate_value, to_integer, to_output_string, values_equal,
)

logger = logging.getLogger(__name__)


def loop_metadata(index: int, length: int, parent: Optional[DictionaryValue] = None) -> Dict[str, Value]:
    """Поля forloop для итерации index (с нуля) из length."""
    items: Dict[str, Value] = {
        "index": IntegerValue(index + 1),
        "index0": IntegerValue(index),
        "rindex": IntegerValue(length - index),
        "rindex0": IntegerValue(length - index - 1),
        "first": BoolValue(index == 0),
        "last": BoolValue(index == length - 1),
        "length": IntegerValue(length),
    }
    if parent is not None:
        items["parentloop"] = parent
    return items


class TemplateRenderer:
    """
    Исполнитель AST.

    Каждый тип узла обрабатывается своим правилом; обработчик дописывает
    результат в буфер и возвращает сигнал управления потоком.
    """

    def __init__(self, context: RenderContext):
        """
        Инициализирует рендерер.

        Args:
            context: Контекст рендеринга, которым владеет этот проход
        """
        self.context = context
        self.evaluator = ExpressionEvaluator(context)

        # Метаданные открытых циклов for для forloop.parentloop
        self._loops: List[DictionaryValue] = []
        # Глубина всех открытых циклов (for и tablerow)
        self._loop_depth = 0

        self._rules: Dict[Type[TemplateNode], ProcessorRule] = {}
        for rule in self._processor_rules():
            self._rules[rule.node_type] = rule

    def _processor_rules(self) -> List[ProcessorRule]:
        return [
            ProcessorRule(TextNode, self._render_text),
            ProcessorRule(OutputNode, self._render_output),
            ProcessorRule(IfNode, self._render_if),
            ProcessorRule(UnlessNode, self._render_unless),
            ProcessorRule(CaseNode, self._render_case),
            ProcessorRule(ForNode, self._render_for),
            ProcessorRule(TableRowNode, self._render_tablerow),
            ProcessorRule(BreakNode, self._render_break),
            ProcessorRule(ContinueNode, self._render_continue),
            ProcessorRule(CaptureNode, self._render_capture),
            ProcessorRule(AssignNode, self._render_assign),
            ProcessorRule(IncrementNode, self._render_increment),
            ProcessorRule(DecrementNode, self._render_decrement),
            ProcessorRule(CycleNode, self._render_cycle),
            ProcessorRule(RawNode, self._render_raw),
            ProcessorRule(CommentNode, self._render_comment),
            ProcessorRule(IncludeNode, self._render_include),
        ]

    def render(self, nodes: Sequence[TemplateNode]) -> str:
        """
        Рендерит последовательность узлов в строку.

        break/continue вне цикла доходят до корня и игнорируются.
        """
        output: List[str] = []
        self.render_body(nodes, output)
        return "".join(output)

    def render_body(self, nodes: Sequence[TemplateNode], output: List[str]) -> Signal:
        """Выполняет тело блока, прерываясь на первом сигнале break/continue."""
        for node in nodes:
            rule = self._rules.get(type(node))
            if rule is None:
                raise RenderError(
                    f"No renderer for node type {type(node).__name__}",
                    RenderErrorKind.INTERNAL_ERROR,
                )
            signal = rule.processor_func(node, output)
            if signal is not Signal.NORMAL:
                return signal
        return Signal.NORMAL

    # ------------------------------------------------------------------ #
    # Текст и вывод
    # ------------------------------------------------------------------ #

    def _render_text(self, node: TextNode, output: List[str]) -> Signal:
        text = node.text
        if node.trim_left:
            text = text.lstrip()
        if node.trim_right:
            text = text.rstrip()
        if text:
            output.append(text)
        return Signal.NORMAL

    def _render_output(self, node: OutputNode, output: List[str]) -> Signal:
        output.append(to_output_string(self.evaluator.evaluate(node.expression)))
        return Signal.NORMAL

    def _render_raw(self, node: RawNode, output: List[str]) -> Signal:
        output.append(node.text)
        return Signal.NORMAL

    def _render_comment(self, node: CommentNode, output: List[str]) -> Signal:
        return Signal.NORMAL

    # ------------------------------------------------------------------ #
    # Ветвления
    # ------------------------------------------------------------------ #

    def _render_if(self, node: IfNode, output: List[str]) -> Signal:
        for branch in node.branches:
            if self.evaluator.is_true(branch.condition):
                return self.render_body(branch.body, output)
        if node.else_body is not None:
            return self.render_body(node.else_body, output)
        return Signal.NORMAL

    def _render_unless(self, node: UnlessNode, output: List[str]) -> Signal:
        if not self.evaluator.is_true(node.condition):
            return self.render_body(node.body, output)
        for branch in node.elsif_branches:
            if self.evaluator.is_true(branch.condition):
                return self.render_body(branch.body, output)
        if node.else_body is not None:
            return self.render_body(node.else_body, output)
        return Signal.NORMAL

    def _render_case(self, node: CaseNode, output: List[str]) -> Signal:
        """Выполняет первую ветку when, одно из значений которой равно субъекту."""
        subject = self.evaluator.evaluate(node.subject)
        for clause in node.whens:
            if any(values_equal(subject, self.evaluator.evaluate(value)) for value in clause.values):
                return self.render_body(clause.body, output)
        if node.else_body is not None:
            return self.render_body(node.else_body, output)
        return Signal.NORMAL

    # ------------------------------------------------------------------ #
    # Циклы
    # ------------------------------------------------------------------ #

    def _loop_items(
        self,
        collection: Expression,
        offset: Optional[Expression],
        limit: Optional[Expression],
    ) -> List[Value]:
        """Материализует коллекцию цикла в пределах offset/limit."""
        value = self.evaluator.evaluate(collection)

        start = 0
        if offset is not None:
            start = to_integer(self.evaluator.evaluate(offset)) or 0
        count = None
        if limit is not None:
            count = to_integer(self.evaluator.evaluate(limit)) or 0
        return iterate_value(value, start, count)

    def _render_for(self, node: ForNode, output: List[str]) -> Signal:
        """
        Цикл for.

        Каждая итерация получает свежий кадр с переменной цикла и forloop;
        break останавливает цикл, continue переходит к следующей итерации.
        """
        items = self._loop_items(node.collection, node.offset, node.limit)
        if node.reversed:
            items.reverse()

        if not items:
            if node.else_body is not None:
                return self.render_body(node.else_body, output)
            return Signal.NORMAL

        parent = self._loops[-1] if self._loops else None
        length = len(items)

        self._loop_depth += 1
        try:
            for index, item in enumerate(items):
                forloop = DictionaryValue(loop_metadata(index, length, parent))
                self._loops.append(forloop)
                try:
                    with self.context.scope(FrameKind.LOOP, {node.variable: item, "forloop": forloop}):
                        signal = self.render_body(node.body, output)
                finally:
                    self._loops.pop()

                if signal is Signal.BREAK:
                    break
        finally:
            self._loop_depth -= 1

        return Signal.NORMAL

    def _render_tablerow(self, node: TableRowNode, output: List[str]) -> Signal:
        """
        Цикл tablerow: строки <tr class="rowN"> и ячейки <td class="colM">.

        Без cols все элементы попадают в одну строку.
        """
        items = self._loop_items(node.collection, node.offset, node.limit)
        length = len(items)

        cols = length
        if node.cols is not None:
            cols = to_integer(self.evaluator.evaluate(node.cols)) or length
        cols = max(1, cols)

        output.append('<tr class="row1">\n')
        self._loop_depth += 1
        try:
            for index, item in enumerate(items):
                col0 = index % cols
                row = index // cols + 1
                fields = loop_metadata(index, length)
                fields.update({
                    "col": IntegerValue(col0 + 1),
                    "col0": IntegerValue(col0),
                    "col_first": BoolValue(col0 == 0),
                    "col_last": BoolValue(col0 == cols - 1 or index == length - 1),
                    "row": IntegerValue(row),
                })

                output.append(f'<td class="col{col0 + 1}">')
                with self.context.scope(FrameKind.LOOP, {node.variable: item, "tablerowloop": DictionaryValue(fields)}):
                    signal = self.render_body(node.body, output)
                output.append('</td>')

                if signal is Signal.BREAK:
                    break
                if col0 == cols - 1 and index != length - 1:
                    output.append(f'</tr>\n<tr class="row{row + 1}">')
        finally:
            self._loop_depth -= 1

        output.append('</tr>\n')
        return Signal.NORMAL

    def _render_break(self, node: BreakNode, output: List[str]) -> Signal:
        """Вне цикла break ничего не делает."""
        return Signal.BREAK if self._loop_depth else Signal.NORMAL

    def _render_continue(self, node: ContinueNode, output: List[str]) -> Signal:
        return Signal.CONTINUE if self._loop_depth else Signal.NORMAL

    # ------------------------------------------------------------------ #
    # Переменные
    # ------------------------------------------------------------------ #

    def _render_capture(self, node: CaptureNode, output: List[str]) -> Signal:
        """Рендерит тело в отдельный буфер и присваивает результат."""
        buffer: List[str] = []
        with self.context.scope(FrameKind.BLOCK):
            signal = self.render_body(node.body, buffer)
        self.context.assign(node.name, StringValue("".join(buffer)))
        return signal

    def _render_assign(self, node: AssignNode, output: List[str]) -> Signal:
        self.context.assign(node.name, self.evaluator.evaluate(node.expression))
        return Signal.NORMAL

    def _render_increment(self, node: IncrementNode, output: List[str]) -> Signal:
        output.append(str(self.context.increment(node.name)))
        return Signal.NORMAL

    def _render_decrement(self, node: DecrementNode, output: List[str]) -> Signal:
        output.append(str(self.context.decrement(node.name)))
        return Signal.NORMAL

    def _render_cycle(self, node: CycleNode, output: List[str]) -> Signal:
        """Без явной группы ключом служит текстовая запись списка значений."""
        if node.group is not None:
            group = to_output_string(self.evaluator.evaluate(node.group))
        else:
            group = ", ".join(str(value) for value in node.values)
        values = [self.evaluator.evaluate(value) for value in node.values]
        output.append(to_output_string(self.context.cycle(group, values)))
        return Signal.NORMAL

    # ------------------------------------------------------------------ #
    # Включения
    # ------------------------------------------------------------------ #

    def _render_include(self, node: IncludeNode, output: List[str]) -> Signal:
        """
        include/render через внешний загрузчик.

        include выполняется в текущем контексте внутри блочной области
        с аргументами; render - в изолированном дочернем контексте.
        """
        name = to_output_string(self.evaluator.evaluate(node.template_name))
        config = self.context.config

        if self.context.include_depth >= config.max_include_depth:
            raise RenderError(
                f"Include depth exceeds {config.max_include_depth}",
                RenderErrorKind.RECURSION_LIMIT,
                template_name=name,
            )

        template = self._load(name)
        bindings = {key: self.evaluator.evaluate(expr) for key, expr in node.arguments}
        logger.debug(f"{'Rendering' if node.isolated else 'Including'} template '{name}' at depth {self.context.include_depth + 1}")

        if node.isolated:
            child = self.context.isolated_child(bindings)
            output.append(TemplateRenderer(child).render(template.nodes))
            return Signal.NORMAL

        self.context.include_depth += 1
        try:
            with self.context.scope(FrameKind.BLOCK, bindings):
                return self.render_body(template.nodes, output)
        finally:
            self.context.include_depth -= 1

    def _load(self, name: str):
        """Загружает шаблон, превращая сбои загрузчика в missing_template."""
        loader = self.context.loader
        if loader is None:
            raise RenderError("No template loader configured", RenderErrorKind.MISSING_TEMPLATE, template_name=name)
        try:
            return loader.load(name)
        except TemplateError:
            raise
        except (LookupError, OSError) as e:
            raise RenderError(
                f"Failed to load template: {e}",
                RenderErrorKind.MISSING_TEMPLATE,
                template_name=name,
                cause=e,
            ) from e


__all__ = ["TemplateRenderer", "loop_metadata"]
