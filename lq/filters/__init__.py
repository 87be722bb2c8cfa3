"""
Фильтры шаблонизатора: контракт, реестр и встроенная библиотека.
"""

from __future__ import annotations

from .base import Filter, FunctionFilter
from .registry import FilterRegistry, create_default_registry

__all__ = ["Filter", "FunctionFilter", "FilterRegistry", "create_default_registry"]
