"""
Окружение шаблонизатора: публичный API для встраивающего приложения.

Объединяет компиляцию, реестр фильтров, настройки и загрузчик шаблонов.
Каждый вызов render получает собственный контекст рендеринга, поэтому
скомпилированные шаблоны можно рендерить повторно и параллельно.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, TypeVar

from .config import EngineConfig, default_config
from .errors import TemplateError, RenderError, RenderErrorKind
from .filters import Filter, FilterRegistry, create_default_registry
from .template.context import RenderContext
from .template.loader import TemplateLoader
from .template.nodes import Template
from .template.parser import parse_template
from .template.processor import TemplateRenderer

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Environment:
    """
    Окружение шаблонизатора.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        loader: Optional[TemplateLoader] = None,
        filters: Optional[FilterRegistry] = None,
    ):
        """
        Инициализирует окружение.

        Args:
            config: Настройки движка (по умолчанию встроенные)
            loader: Загрузчик шаблонов для include/render
            filters: Реестр фильтров (по умолчанию встроенная библиотека)
        """
        self.config = config or default_config()
        self.loader = self._bind_loader(loader)
        self.filters = filters if filters is not None else create_default_registry()

        # Кэш скомпилированных шаблонов по (имя, хэш исходника)
        self._template_cache: Dict[Tuple[str, int], Template] = {}

    def register_filter(self, filter_impl: Filter) -> None:
        """Регистрирует пользовательский фильтр (перекрывает встроенный с тем же именем)."""
        self.filters.register(filter_impl)

    def set_loader(self, loader: Optional[TemplateLoader]) -> None:
        """Устанавливает загрузчик шаблонов для include/render."""
        self.loader = self._bind_loader(loader)

    def compile(self, source: str, name: str = "") -> Template:
        """
        Компилирует исходный текст в шаблон.

        Raises:
            TemplateSyntaxError: При ошибке разбора
        """
        if not self.config.cache_templates:
            return self._handle_errors(lambda: parse_template(source, name, self.config), name)

        cache_key = (name, hash(source))
        if cache_key not in self._template_cache:
            self._template_cache[cache_key] = self._handle_errors(
                lambda: parse_template(source, name, self.config), name
            )
        return self._template_cache[cache_key]

    def render(self, template: Template, data: Optional[Mapping[str, Any]] = None) -> str:
        """
        Рендерит скомпилированный шаблон с корневыми данными.

        При любой ошибке частичный вывод отбрасывается.

        Raises:
            EvaluationError: При ошибке фильтра или неизвестном фильтре
            RenderError: При ошибке включения, превышении пределов или внутреннем сбое
        """
        def render_template() -> str:
            context = RenderContext(
                data=data,
                filters=self.filters,
                config=self.config,
                loader=self.loader,
            )
            result = TemplateRenderer(context).render(template.nodes)
            logger.debug(f"Rendered template '{template.name}' -> {len(result)} chars")
            return result

        return self._handle_errors(render_template, template.name)

    def render_source(self, source: str, data: Optional[Mapping[str, Any]] = None, name: str = "") -> str:
        """Компилирует и рендерит шаблон за один вызов."""
        return self.render(self.compile(source, name), data)

    def clear_cache(self) -> None:
        self._template_cache.clear()

    # ======= Внутренние методы =======

    def _bind_loader(self, loader: Optional[TemplateLoader]) -> Optional[TemplateLoader]:
        """Загрузчик без собственных настроек разбирает шаблоны с настройками окружения."""
        if loader is not None and getattr(loader, "config", self.config) is None:
            loader.config = self.config
        return loader

    def _handle_errors(self, func: Callable[[], T], template_name: str) -> T:
        """Ошибки шаблонизатора проходят как есть, прочие оборачиваются в RenderError."""
        try:
            return func()
        except TemplateError:
            raise
        except RecursionError as e:
            raise RenderError(
                "Interpreter recursion limit reached",
                RenderErrorKind.RECURSION_LIMIT,
                template_name=template_name,
                cause=e,
            ) from e
        except Exception as e:
            logger.debug(f"Unexpected error in template '{template_name}': {e!r}")
            raise RenderError(
                f"Unexpected error: {e}",
                RenderErrorKind.INTERNAL_ERROR,
                template_name=template_name,
                cause=e,
            ) from e


# --------------------------------------------------------------------------- #
# Окружение по умолчанию
# --------------------------------------------------------------------------- #
_default_env: Optional[Environment] = None


def default_environment() -> Environment:
    """Лениво создаваемое окружение с настройками по умолчанию."""
    global _default_env
    if _default_env is None:
        _default_env = Environment()
    return _default_env


def compile_template(source: str, name: str = "") -> Template:
    return default_environment().compile(source, name)


def render(template: Template, data: Optional[Mapping[str, Any]] = None) -> str:
    return default_environment().render(template, data)


__all__ = ["Environment", "default_environment", "compile_template", "render"]
