"""
Реестр фильтров.

Сопоставляет имя фильтра ровно одной реализации. Заполняется до
компиляции и рендеринга и только читается во время рендеринга.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from .base import Filter, FunctionFilter

logger = logging.getLogger(__name__)


class FilterRegistry:
    """Реестр фильтров по имени."""

    def __init__(self, filters: Iterable[Filter] = ()):
        self._filters: Dict[str, Filter] = {}
        for item in filters:
            self.register(item)

    def register(self, item: Filter) -> None:
        """
        Регистрирует фильтр.

        Фильтр с тем же именем перезаписывается с предупреждением.
        """
        if item.name in self._filters:
            logger.warning(f"Filter '{item.name}' overwrites existing filter")
        self._filters[item.name] = item

    def register_function(
        self,
        name: str,
        func: Callable[..., Any],
        min_args: int = 0,
        max_args: Optional[int] = None,
        native: bool = True,
    ) -> Filter:
        """
        Регистрирует обычную функцию как фильтр.

        По умолчанию функция работает с обычными значениями Python.
        """
        item = FunctionFilter(name, func, min_args, max_args, native)
        self.register(item)
        return item

    def get(self, name: str) -> Optional[Filter]:
        """Возвращает фильтр по имени или None."""
        return self._filters.get(name)

    def names(self) -> List[str]:
        """Отсортированный список зарегистрированных имён."""
        return sorted(self._filters)

    def copy(self) -> FilterRegistry:
        return FilterRegistry(self._filters.values())

    def __contains__(self, name: object) -> bool:
        return name in self._filters

    def __len__(self) -> int:
        return len(self._filters)


def create_default_registry() -> FilterRegistry:
    """Создаёт реестр со всеми встроенными фильтрами."""
    from . import arrays, encoding, misc, numbers, strings

    registry = FilterRegistry()
    for module in (strings, numbers, arrays, encoding, misc):
        for item in module.FILTERS:
            registry.register(item)

    logger.debug(f"Default filter registry created with {len(registry)} filters")
    return registry


__all__ = ["FilterRegistry", "create_default_registry"]
