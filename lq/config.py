from __future__ import annotations

import logging
from dataclasses import dataclass, fields, asdict
from pathlib import Path
from typing import Any, Dict

from ruamel.yaml import YAML

from .errors import TemplateError

SCHEMA_VERSION = 1
DEFAULT_CFG_FILE = "lq.yaml"

logger = logging.getLogger(__name__)

# --------------------------------------------------------------------------- #
# YAML loader
# --------------------------------------------------------------------------- #
_yaml = YAML(typ="safe")


class ConfigError(TemplateError):
    """Ошибка загрузки конфигурации движка."""
    pass


@dataclass(frozen=True)
class EngineConfig:
    """
    Настройки движка шаблонизации.

    Пределы вложенности превращают исчерпание стека в типизированную
    ошибку вместо падения интерпретатора.
    """
    schema_version: int = SCHEMA_VERSION
    max_nesting_depth: int = 64     # вложенность блоков при разборе
    max_scope_depth: int = 256      # глубина стека областей при рендеринге
    max_include_depth: int = 16     # вложенность include/render
    cache_templates: bool = True

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> EngineConfig:
        """
        Строит конфигурацию из словаря поверх дефолтов.

        Raises:
            ConfigError: При неизвестном ключе, неверном типе или версии схемы
        """
        known = {f.name: f for f in fields(cls)}
        values: Dict[str, Any] = {}
        for key, val in raw.items():
            if key not in known:
                raise ConfigError(f"Unknown config key '{key}'")
            expected = type(getattr(_DEFAULTS, key))
            # bool - подкласс int, поэтому сверяем точный тип
            if type(val) is not expected:
                raise ConfigError(
                    f"{key}: expected {expected.__name__}, got {type(val).__name__}"
                )
            if expected is int and key != "schema_version" and val < 1:
                raise ConfigError(f"{key}: must be positive, got {val}")
            values[key] = val

        if values.get("schema_version", SCHEMA_VERSION) != SCHEMA_VERSION:
            raise ConfigError(
                f"Unsupported config schema {values.get('schema_version')} "
                f"(engine expects {SCHEMA_VERSION})"
            )
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


_DEFAULTS = EngineConfig()


# --------------------------------------------------------------------------- #
# PUBLIC API
# --------------------------------------------------------------------------- #
def load_config(path: Path) -> EngineConfig:
    """
    Загрузить конфигурацию движка из YAML.

    • Если файла нет, вернуть дефолты.
    • Если schema_version отсутствует, считаем, что это актуальная версия.
    • Пользовательские ключи перекрывают дефолты.
    """
    if not path.exists():
        logger.debug(f"Config file {path} not found, using defaults")
        return _DEFAULTS

    with path.open(encoding="utf-8") as f:
        raw = _yaml.load(f) or {}

    if not isinstance(raw, dict):
        raise ConfigError(f"YAML must be a mapping: {path}")

    return EngineConfig.from_dict(raw)


def default_config() -> EngineConfig:
    return _DEFAULTS


__all__ = [
    "SCHEMA_VERSION",
    "DEFAULT_CFG_FILE",
    "ConfigError",
    "EngineConfig",
    "load_config",
    "default_config",
]
