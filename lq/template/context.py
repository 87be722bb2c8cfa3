"""
Контекст рендеринга шаблона.

Управляет состоянием одного прохода рендеринга: стеком областей
видимости, корневыми данными, счётчиками increment/decrement и
состоянием тегов cycle. Создаётся заново на каждый вызов render
и не предназначен для параллельного использования.
"""

from __future__ import annotations

import enum
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Union

from ..config import EngineConfig, default_config
from ..errors import RenderError, RenderErrorKind
from ..filters import FilterRegistry, create_default_registry
from ..values import Value, NIL, to_value, get_index, get_property

logger = logging.getLogger(__name__)

# Статический ключ пути: имя свойства или индекс
PathKey = Union[str, int]


class FrameKind(enum.Enum):
    """Виды кадров стека областей видимости."""
    ROOT = "root"      # переменные assign/capture, живут до конца рендеринга
    BLOCK = "block"    # временная область (capture, include)
    LOOP = "loop"      # итерация цикла: переменная цикла и forloop


@dataclass
class Frame:
    """Один кадр привязок. Родитель определяется только позицией в стеке."""
    kind: FrameKind
    bindings: Dict[str, Value] = field(default_factory=dict)


class RenderContext:
    """
    Контекст рендеринга с индексно-адресуемым стеком областей.

    Кадры кладутся и снимаются строго в порядке LIFO; поиск имени идёт
    от вершины стека к корню, затем в корневых данных вызывающей стороны.
    """

    def __init__(
        self,
        data: Optional[Mapping[str, Any]] = None,
        filters: Optional[FilterRegistry] = None,
        config: Optional[EngineConfig] = None,
        loader: Optional[Any] = None,
        include_depth: int = 0,
        counters: Optional[Dict[str, int]] = None,
    ):
        """
        Инициализирует контекст рендеринга.

        Args:
            data: Корневые данные (только для чтения)
            filters: Реестр фильтров (по умолчанию встроенные фильтры)
            config: Настройки движка
            loader: Загрузчик шаблонов для include/render
            include_depth: Текущая глубина вложенных включений
            counters: Общие счётчики increment/decrement
        """
        self.data: Dict[str, Value] = {str(key): to_value(value) for key, value in (data or {}).items()}
        self.filters = filters if filters is not None else create_default_registry()
        self.config = config or default_config()
        self.loader = loader
        self.include_depth = include_depth

        self.frames: List[Frame] = [Frame(FrameKind.ROOT)]
        self.counters: Dict[str, int] = counters if counters is not None else {}
        self._cycles: Dict[str, int] = {}

    # ------------------------------------------------------------------ #
    # Стек областей видимости
    # ------------------------------------------------------------------ #

    @property
    def depth(self) -> int:
        """Количество кадров в стеке (включая корневой)."""
        return len(self.frames)

    def push_scope(self, kind: FrameKind = FrameKind.BLOCK, bindings: Optional[Dict[str, Value]] = None) -> None:
        """
        Кладёт новый кадр на вершину стека.

        Raises:
            RenderError: Если глубина стека превышает max_scope_depth
        """
        if len(self.frames) >= self.config.max_scope_depth:
            raise RenderError(
                f"Scope depth exceeds {self.config.max_scope_depth}",
                RenderErrorKind.RECURSION_LIMIT,
            )
        self.frames.append(Frame(kind, dict(bindings or {})))

    def pop_scope(self) -> Frame:
        """Снимает кадр с вершины стека. Корневой кадр снять нельзя."""
        if len(self.frames) == 1:
            raise RuntimeError("Cannot pop the root scope")
        return self.frames.pop()

    @contextmanager
    def scope(self, kind: FrameKind = FrameKind.BLOCK, bindings: Optional[Dict[str, Value]] = None) -> Iterator[Frame]:
        """Парные push_scope/pop_scope вокруг тела блока."""
        self.push_scope(kind, bindings)
        try:
            yield self.frames[-1]
        finally:
            self.pop_scope()

    # ------------------------------------------------------------------ #
    # Переменные
    # ------------------------------------------------------------------ #

    def resolve_name(self, name: str) -> Value:
        """
        Ищет имя от внутренней области к внешней, затем в корневых данных.

        Отсутствующее имя даёт Nil, а не ошибку.
        """
        for frame in reversed(self.frames):
            if name in frame.bindings:
                return frame.bindings[name]
        return self.data.get(name, NIL)

    def resolve(self, root: str, keys: Sequence[PathKey] = ()) -> Value:
        """Разрешает путь из статических ключей: имя, затем свойства и индексы."""
        value = self.resolve_name(root)
        for key in keys:
            if isinstance(key, int):
                value = get_index(value, key)
            else:
                value = get_property(value, key)
        return value

    def set_local(self, name: str, value: Value) -> None:
        """Привязывает имя в кадре на вершине стека."""
        self.frames[-1].bindings[name] = value

    def assign(self, name: str, value: Value) -> None:
        """
        Присваивание assign/capture.

        Пишет во внешнюю нециклическую область (корневой кадр), поэтому
        значение видно до конца рендеринга, а не только внутри блока.
        """
        self.frames[0].bindings[name] = value

    # ------------------------------------------------------------------ #
    # Счётчики и cycle
    # ------------------------------------------------------------------ #

    def increment(self, name: str) -> int:
        """Возвращает текущее значение счётчика (с 0) и увеличивает его."""
        value = self.counters.get(name, 0)
        self.counters[name] = value + 1
        return value

    def decrement(self, name: str) -> int:
        """Уменьшает счётчик и возвращает новое значение (первый вызов даёт -1)."""
        value = self.counters.get(name, 0) - 1
        self.counters[name] = value
        return value

    def cycle(self, group: str, values: Sequence[Value]) -> Value:
        """Следующее значение циклического перебора для группы."""
        if not values:
            return NIL
        position = self._cycles.get(group, 0)
        self._cycles[group] = position + 1
        return values[position % len(values)]

    # ------------------------------------------------------------------ #
    # Вложенные шаблоны
    # ------------------------------------------------------------------ #

    def isolated_child(self, bindings: Dict[str, Value]) -> RenderContext:
        """
        Изолированный контекст для {% render %}.

        Видит только переданные привязки; фильтры, настройки, загрузчик
        и счётчики общие с родителем.
        """
        return RenderContext(
            data=bindings,
            filters=self.filters,
            config=self.config,
            loader=self.loader,
            include_depth=self.include_depth + 1,
            counters=self.counters,
        )


__all__ = ["FrameKind", "Frame", "RenderContext", "PathKey"]
