"""The narrow interface every template store implements."""

from typing import Any, Protocol

from flowhub.db.models import Template
from flowhub.store.query import StoreResult, TemplateQuery


class StoreError(Exception):
    """The template store could not be reached or rejected the query."""

    pass


class TemplateStore(Protocol):
    """Read/write access to the templates table."""

    async def fetch(self, query: TemplateQuery) -> StoreResult: ...

    async def insert(self, template: Template) -> Template: ...

    async def update(self, template_id: str, values: dict[str, Any]) -> Template | None: ...

    async def delete(self, template_id: str) -> bool: ...
