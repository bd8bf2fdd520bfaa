"""
Vertical registry: key -> VerticalDescriptor lookup, loaded once at process start.
Built-in catalog by default; settings.verticals_file (YAML) replaces it.
"""
from __future__ import annotations

import functools
import logging
from pathlib import Path
from typing import Iterable

import yaml
from pydantic import ValidationError

from app.core.config import settings
from app.services.errors import UnknownVertical
from app.verticals.catalog import BUILTIN_VERTICALS
from app.verticals.models import VerticalDescriptor

logger = logging.getLogger(__name__)


class VerticalRegistry:
    """Read-only table of verticals. Lookups never mutate it."""

    def __init__(self, descriptors: Iterable[VerticalDescriptor]):
        self._by_key: dict[str, VerticalDescriptor] = {}
        self._by_operation: dict[str, VerticalDescriptor] = {}
        tables: set[str] = set()
        for descriptor in descriptors:
            if descriptor.key in self._by_key:
                raise ValueError(f"Duplicate vertical key: {descriptor.key}")
            if descriptor.entitlement_table in tables:
                raise ValueError(f"Duplicate entitlement table: {descriptor.entitlement_table}")
            if descriptor.unlock_operation in self._by_operation:
                raise ValueError(f"Duplicate unlock operation: {descriptor.unlock_operation}")
            self._by_key[descriptor.key] = descriptor
            self._by_operation[descriptor.unlock_operation] = descriptor
            tables.add(descriptor.entitlement_table)

    def __len__(self) -> int:
        return len(self._by_key)

    def __contains__(self, key: object) -> bool:
        return key in self._by_key

    def get(self, key: str) -> VerticalDescriptor | None:
        return self._by_key.get(key)

    def require(self, key: str) -> VerticalDescriptor:
        descriptor = self._by_key.get(key)
        if descriptor is None:
            raise UnknownVertical(key)
        return descriptor

    def by_operation(self, operation: str) -> VerticalDescriptor | None:
        """Resolve a legacy per-vertical operation name (e.g. unlock_dealflow_companies)."""
        return self._by_operation.get(operation)

    def all(self) -> list[VerticalDescriptor]:
        return list(self._by_key.values())


def load_descriptors_from_yaml(path: str | Path) -> list[VerticalDescriptor]:
    """
    Expects:
        verticals:
          - key: dealflow
            label: ...
    """
    raw = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    items = raw.get("verticals") if isinstance(raw, dict) else None
    if not isinstance(items, list) or not items:
        raise ValueError(f"{path}: expected a non-empty 'verticals' list")
    try:
        return [VerticalDescriptor(**item) for item in items]
    except (TypeError, ValidationError) as e:
        raise ValueError(f"{path}: invalid vertical definition: {e}") from e


def build_registry(verticals_file: str | None = None) -> VerticalRegistry:
    if verticals_file:
        descriptors = load_descriptors_from_yaml(verticals_file)
        logger.info("verticals_loaded", extra={"path": verticals_file})
        return VerticalRegistry(descriptors)
    return VerticalRegistry(BUILTIN_VERTICALS)


@functools.lru_cache(maxsize=1)
def get_registry() -> VerticalRegistry:
    """Process-wide registry (FastAPI dependency)."""
    return build_registry(settings.verticals_file)
