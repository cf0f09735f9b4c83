"""In-memory template store.

Evaluates ``TemplateQuery`` objects in Python with the same semantics as
the SQL backend. Used by the test-suite and handy for local fixtures.
"""

import re
from functools import lru_cache
from typing import Any

from flowhub.db.models import Template, utc_now
from flowhub.store.base import StoreError
from flowhub.store.query import (
    LIKE_ESCAPE,
    AnyOf,
    Condition,
    Contains,
    ElementILike,
    Eq,
    ILike,
    IsNull,
    StoreResult,
    TemplateQuery,
)


@lru_cache(maxsize=256)
def like_to_regex(pattern: str) -> re.Pattern[str]:
    """Compile a LIKE pattern into a case-insensitive full-match regex."""
    parts: list[str] = []
    chars = iter(pattern)
    for char in chars:
        if char == LIKE_ESCAPE:
            parts.append(re.escape(next(chars, LIKE_ESCAPE)))
        elif char == "%":
            parts.append(".*")
        elif char == "_":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("".join(parts), re.IGNORECASE | re.DOTALL)


def _matches(template: Template, condition: Condition) -> bool:
    if isinstance(condition, AnyOf):
        return any(_matches(template, c) for c in condition.conditions)

    value = getattr(template, condition.field)
    if isinstance(condition, Eq):
        return value == condition.value
    if isinstance(condition, IsNull):
        return value is None
    if isinstance(condition, ILike):
        return value is not None and like_to_regex(condition.pattern).fullmatch(str(value)) is not None
    if isinstance(condition, Contains):
        return condition.value in (value or [])
    if isinstance(condition, ElementILike):
        regex = like_to_regex(condition.pattern)
        return any(regex.fullmatch(str(item)) for item in value or [])
    raise StoreError(f"Unsupported condition: {condition!r}")


def _sort_key(field_name: str):
    def key(template: Template) -> tuple[bool, Any]:
        value = getattr(template, field_name)
        return (value is not None, value)

    return key


class InMemoryTemplateStore:
    """Template store backed by a dict, preserving insertion order."""

    def __init__(self, templates: list[Template] | None = None) -> None:
        self._rows: dict[str, Template] = {}
        for template in templates or []:
            self._rows[template.id] = template

    def __len__(self) -> int:
        return len(self._rows)

    def get(self, template_id: str) -> Template | None:
        return self._rows.get(template_id)

    async def fetch(self, query: TemplateQuery) -> StoreResult:
        rows = [t for t in self._rows.values() if all(_matches(t, c) for c in query.conditions)]

        # Stable multi-key sort: apply the least significant key first
        for ordering in reversed(query.ordering):
            rows.sort(key=_sort_key(ordering.field), reverse=ordering.descending)

        count = len(rows) if query.with_count else None
        end = None if query.limit is None else query.offset + query.limit
        return StoreResult(rows=rows[query.offset:end], count=count)

    async def insert(self, template: Template) -> Template:
        if template.id in self._rows:
            raise StoreError(f"Template '{template.id}' already exists")
        self._rows[template.id] = template
        return template

    async def update(self, template_id: str, values: dict[str, Any]) -> Template | None:
        template = self._rows.get(template_id)
        if template is None:
            return None
        for name, value in values.items():
            setattr(template, name, value)
        template.updated_at = values.get("updated_at", utc_now())
        return template

    async def delete(self, template_id: str) -> bool:
        return self._rows.pop(template_id, None) is not None
