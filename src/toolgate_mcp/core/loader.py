"""
Import entity registries from dotted module paths.

A registry module exposes either a ``get_registry()`` callable or a
``REGISTRY`` attribute. Both may yield a single :class:`EntityRegistry` or a
list of them:

    # myservice/milestones.py
    REGISTRY = EntityRegistry.from_tools("milestones", [...], read_only=[...])
"""

from __future__ import annotations

import importlib
import logging
from typing import Any, Iterable, List

from toolgate_mcp.core.errors import RegistryLoadError
from toolgate_mcp.core.registry import EntityRegistry

logger = logging.getLogger(__name__)

FACTORY_ATTR = "get_registry"
REGISTRY_ATTR = "REGISTRY"


def _coerce(module_path: str, value: Any) -> List[EntityRegistry]:
    if isinstance(value, EntityRegistry):
        return [value]
    if isinstance(value, (list, tuple)):
        if not value:
            raise RegistryLoadError(module_path, "registry list is empty")
        for item in value:
            if not isinstance(item, EntityRegistry):
                raise RegistryLoadError(
                    module_path,
                    f"expected EntityRegistry, got {type(item).__name__}",
                )
        return list(value)
    raise RegistryLoadError(
        module_path, f"expected EntityRegistry, got {type(value).__name__}"
    )


def load_registry_module(module_path: str) -> List[EntityRegistry]:
    """Import one module and return the registries it exposes."""
    try:
        module = importlib.import_module(module_path)
    except ImportError as e:
        raise RegistryLoadError(module_path, str(e)) from e

    factory = getattr(module, FACTORY_ATTR, None)
    if callable(factory):
        value = factory()
    else:
        value = getattr(module, REGISTRY_ATTR, None)
        if value is None:
            raise RegistryLoadError(
                module_path,
                f"module defines neither '{FACTORY_ATTR}()' nor '{REGISTRY_ATTR}'",
            )

    registries = _coerce(module_path, value)
    logger.debug(
        "Loaded %d registries from %s",
        len(registries),
        module_path,
        extra={"registry_module": module_path, "registries": [r.name for r in registries]},
    )
    return registries


def load_registries(module_paths: Iterable[str]) -> List[EntityRegistry]:
    """Load registries from every module path, in order."""
    registries: List[EntityRegistry] = []
    for module_path in module_paths:
        registries.extend(load_registry_module(module_path))
    return registries


__all__ = ["load_registries", "load_registry_module"]
