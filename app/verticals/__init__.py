"""
Vertical registry (internal library): static metadata for every data vertical.
Every store and the unlock processor resolve verticals only through the registry.
"""
from app.verticals.catalog import BUILTIN_VERTICALS
from app.verticals.models import VerticalDescriptor
from app.verticals.registry import (
    VerticalRegistry,
    build_registry,
    get_registry,
    load_descriptors_from_yaml,
)

__all__ = [
    "BUILTIN_VERTICALS",
    "VerticalDescriptor",
    "VerticalRegistry",
    "build_registry",
    "get_registry",
    "load_descriptors_from_yaml",
]
