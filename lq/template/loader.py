"""
Загрузчики шаблонов для тегов include и render.

Рендерер обращается к загрузчику по имени шаблона и получает
скомпилированный Template. Отсутствующий шаблон сообщается как
RenderError(missing_template).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Mapping, Optional, Protocol, Union, runtime_checkable

from .nodes import Template
from .parser import parse_template
from ..config import EngineConfig
from ..errors import RenderError, RenderErrorKind

logger = logging.getLogger(__name__)

TEMPLATE_SUFFIX = ".liquid"


@runtime_checkable
class TemplateLoader(Protocol):
    """Протокол загрузчика шаблонов."""

    def load(self, name: str) -> Template:
        """
        Возвращает скомпилированный шаблон по имени.

        Raises:
            RenderError: Если шаблон не найден
            TemplateSyntaxError: Если шаблон не разбирается
        """
        ...


class DictLoader:
    """Загрузчик шаблонов из словаря имя -> исходный текст."""

    def __init__(self, sources: Mapping[str, str], config: Optional[EngineConfig] = None):
        self.sources: Dict[str, str] = dict(sources)
        self.config = config
        self._cache: Dict[str, Template] = {}

    def load(self, name: str) -> Template:
        if name not in self.sources:
            raise RenderError(f"Template not found: {name}", RenderErrorKind.MISSING_TEMPLATE, template_name=name)

        if name not in self._cache:
            self._cache[name] = parse_template(self.sources[name], name, self.config)
        return self._cache[name]


class FileSystemLoader:
    """
    Загрузчик шаблонов из каталога: <root>/<name><suffix>.

    Имя, уже оканчивающееся суффиксом, используется как есть.
    Пути за пределами корневого каталога не загружаются.
    """

    def __init__(self, root: Union[Path, str], suffix: str = TEMPLATE_SUFFIX, config: Optional[EngineConfig] = None):
        self.root = Path(root).resolve()
        self.suffix = suffix
        self.config = config
        self._cache: Dict[str, Template] = {}

    def _resolve(self, name: str) -> Path:
        filename = name if name.endswith(self.suffix) else f"{name}{self.suffix}"
        path = (self.root / filename).resolve()
        try:
            path.relative_to(self.root)
        except ValueError:
            raise RenderError(
                f"Template path escapes loader root: {name}",
                RenderErrorKind.MISSING_TEMPLATE,
                template_name=name,
            )
        return path

    def load(self, name: str) -> Template:
        if name in self._cache:
            return self._cache[name]

        path = self._resolve(name)
        if not path.is_file():
            raise RenderError(f"Template not found: {path}", RenderErrorKind.MISSING_TEMPLATE, template_name=name)

        source = path.read_text(encoding="utf-8", errors="ignore")
        logger.debug(f"Loaded template '{name}' from {path}")
        template = parse_template(source, name, self.config)
        self._cache[name] = template
        return template


__all__ = ["TemplateLoader", "DictLoader", "FileSystemLoader", "TEMPLATE_SUFFIX"]
