from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import pytest

from lq.config import EngineConfig
from lq.environment import Environment
from lq.filters import FilterRegistry, create_default_registry
from lq.template.loader import DictLoader
from lq.values import Value, to_value


@pytest.fixture
def env() -> Environment:
    """Окружение с настройками и фильтрами по умолчанию."""
    return Environment()


@pytest.fixture
def render(env: Environment):
    """Компилирует и рендерит исходный текст в окружении env."""
    def _render(source: str, data: Optional[Mapping[str, Any]] = None) -> str:
        return env.render_source(source, data)
    return _render


@pytest.fixture
def make_env():
    """Фабрика окружений с загрузчиком из словаря шаблонов."""
    def _make(templates: Optional[Dict[str, str]] = None, **config: Any) -> Environment:
        cfg = EngineConfig(**config)
        loader = DictLoader(templates or {}, cfg)
        return Environment(config=cfg, loader=loader)
    return _make


@pytest.fixture(scope="session")
def default_filters() -> FilterRegistry:
    return create_default_registry()


@pytest.fixture
def apply_filter(default_filters: FilterRegistry):
    """Вызывает встроенный фильтр по имени на данных Python."""
    def _apply(name: str, value: Any, *arguments: Any) -> Value:
        return default_filters.get(name).evaluate(to_value(value), [to_value(arg) for arg in arguments])
    return _apply


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def write_file():
    return write
