from .base import ObjectInfo, PermissionHandler
from .registry import (
    DEFAULT_ENTITY_HANDLERS,
    DEFAULT_REGISTRY,
    HANDLERS_BY_NAME,
    HandlerRegistry,
    build_registry,
)

__all__ = [
    "DEFAULT_ENTITY_HANDLERS",
    "DEFAULT_REGISTRY",
    "HANDLERS_BY_NAME",
    "HandlerRegistry",
    "ObjectInfo",
    "PermissionHandler",
    "build_registry",
]
