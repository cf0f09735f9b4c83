"""Template store abstraction and its backends."""

from flowhub.store.base import StoreError, TemplateStore
from flowhub.store.memory import InMemoryTemplateStore
from flowhub.store.query import (
    AnyOf,
    Contains,
    ElementILike,
    Eq,
    ILike,
    IsNull,
    StoreResult,
    TemplateQuery,
    escape_like,
    substring_pattern,
)
from flowhub.store.sql import SQLTemplateStore

__all__ = [
    "AnyOf",
    "Contains",
    "ElementILike",
    "Eq",
    "ILike",
    "InMemoryTemplateStore",
    "IsNull",
    "SQLTemplateStore",
    "StoreError",
    "StoreResult",
    "TemplateQuery",
    "TemplateStore",
    "escape_like",
    "substring_pattern",
]
