"""Backend-neutral description of a template query.

A ``TemplateQuery`` is a list of conditions (ANDed together), an ordering
and an optional row window. Store backends translate it into SQL or
evaluate it in memory, so the services above them never touch SQLAlchemy.

Pattern conditions use SQL LIKE syntax: ``%`` matches any run of
characters, ``_`` a single character, and ``\\`` escapes the next one.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Union

from flowhub.db.models import TemplateStatus

LIKE_ESCAPE = "\\"


@dataclass(frozen=True)
class Eq:
    """Column equals value."""

    field: str
    value: Any


@dataclass(frozen=True)
class IsNull:
    """Column is NULL."""

    field: str


@dataclass(frozen=True)
class ILike:
    """Text column matches a LIKE pattern, ignoring case."""

    field: str
    pattern: str


@dataclass(frozen=True)
class Contains:
    """List column holds an element equal to value."""

    field: str
    value: str


@dataclass(frozen=True)
class ElementILike:
    """Some element of a list column matches a LIKE pattern, ignoring case."""

    field: str
    pattern: str


@dataclass(frozen=True)
class AnyOf:
    """At least one of the nested conditions holds."""

    conditions: tuple[Condition, ...]


Condition = Union[Eq, IsNull, ILike, Contains, ElementILike, AnyOf]


def escape_like(text: str) -> str:
    """Escape LIKE wildcards so ``text`` matches literally."""
    return (
        text.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def substring_pattern(text: str) -> str:
    """LIKE pattern matching any value that contains ``text``."""
    return f"%{escape_like(text)}%"


@dataclass(frozen=True)
class Ordering:
    field: str
    descending: bool = False


@dataclass(frozen=True)
class TemplateQuery:
    """Immutable query builder; every method returns a new query."""

    conditions: tuple[Condition, ...] = ()
    ordering: tuple[Ordering, ...] = ()
    limit: int | None = None
    offset: int = 0
    with_count: bool = False

    def where(self, *conditions: Condition) -> TemplateQuery:
        return replace(self, conditions=self.conditions + tuple(conditions))

    def eq(self, field_name: str, value: Any) -> TemplateQuery:
        return self.where(Eq(field_name, value))

    def ilike(self, field_name: str, pattern: str) -> TemplateQuery:
        return self.where(ILike(field_name, pattern))

    def contains(self, field_name: str, value: str) -> TemplateQuery:
        return self.where(Contains(field_name, value))

    def any_of(self, *conditions: Condition) -> TemplateQuery:
        return self.where(AnyOf(tuple(conditions)))

    def visible(self) -> TemplateQuery:
        """Restrict to published templates, counting a missing status as published."""
        return self.any_of(Eq("status", TemplateStatus.PUBLISHED.value), IsNull("status"))

    def order(self, field_name: str, descending: bool = False) -> TemplateQuery:
        return replace(self, ordering=self.ordering + (Ordering(field_name, descending),))

    def window(self, limit: int | None, offset: int = 0) -> TemplateQuery:
        return replace(self, limit=limit, offset=max(offset, 0))

    def counted(self) -> TemplateQuery:
        """Ask the backend for the total number of matches before windowing."""
        return replace(self, with_count=True)


@dataclass
class StoreResult:
    """Rows returned by a store, plus the pre-window total when requested."""

    rows: list[Any] = field(default_factory=list)
    count: int | None = None
