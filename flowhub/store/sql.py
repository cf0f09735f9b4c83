"""SQL template store built on SQLAlchemy/SQLModel.

List columns are JSON arrays. Membership and element patterns are checked
against the array elements through a correlated ``EXISTS`` over the
dialect's table-valued JSON function (``json_each`` on SQLite,
``json_array_elements_text`` on PostgreSQL).
"""

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from typing import Any

from sqlalchemy import String, column, delete, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from flowhub.db.models import Template, utc_now
from flowhub.logging import get_logger
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

logger = get_logger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]

JSON_ELEMENT_FUNCTIONS = {
    "sqlite": func.json_each,
    "postgresql": func.json_array_elements_text,
}


def _column(field_name: str):
    try:
        return getattr(Template, field_name)
    except AttributeError as e:
        raise StoreError(f"Unknown template field: {field_name}") from e


def _elements(field_name: str, dialect: str):
    try:
        element_function = JSON_ELEMENT_FUNCTIONS[dialect]
    except KeyError as e:
        raise StoreError(f"List columns are not supported on {dialect}") from e
    return element_function(_column(field_name)).table_valued(column("value", String))


def to_clause(condition: Condition, dialect: str = "sqlite"):
    """Translate a query condition into a SQLAlchemy expression."""
    if isinstance(condition, AnyOf):
        return or_(*(to_clause(c, dialect) for c in condition.conditions))
    if isinstance(condition, Eq):
        return _column(condition.field) == condition.value
    if isinstance(condition, IsNull):
        return _column(condition.field).is_(None)
    if isinstance(condition, ILike):
        return _column(condition.field).ilike(condition.pattern, escape=LIKE_ESCAPE)
    if isinstance(condition, Contains):
        elements = _elements(condition.field, dialect)
        return select(elements.c.value).where(elements.c.value == condition.value).exists()
    if isinstance(condition, ElementILike):
        elements = _elements(condition.field, dialect)
        return (
            select(elements.c.value)
            .where(elements.c.value.ilike(condition.pattern, escape=LIKE_ESCAPE))
            .exists()
        )
    raise StoreError(f"Unsupported condition: {condition!r}")


class SQLTemplateStore:
    """Template store over an async session factory.

    Args:
        session_factory: Callable returning an async context manager that
            yields a session and commits on exit, such as
            ``flowhub.db.get_session``.
    """

    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    async def fetch(self, query: TemplateQuery) -> StoreResult:
        try:
            async with self._session_factory() as session:
                dialect = session.get_bind().dialect.name
                clauses = [to_clause(c, dialect) for c in query.conditions]
                statement = select(Template).where(*clauses)
                for ordering in query.ordering:
                    ordered = _column(ordering.field)
                    statement = statement.order_by(ordered.desc() if ordering.descending else ordered.asc())
                if query.offset:
                    statement = statement.offset(query.offset)
                if query.limit is not None:
                    statement = statement.limit(query.limit)

                count = None
                if query.with_count:
                    total = await session.execute(
                        select(func.count()).select_from(Template).where(*clauses)
                    )
                    count = total.scalar_one()
                result = await session.execute(statement)
                rows = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("store_fetch_failed", error=str(e))
            raise StoreError(str(e)) from e
        return StoreResult(rows=rows, count=count)

    async def insert(self, template: Template) -> Template:
        try:
            async with self._session_factory() as session:
                session.add(template)
        except SQLAlchemyError as e:
            logger.error("store_insert_failed", template_id=template.id, error=str(e))
            raise StoreError(str(e)) from e
        return template

    async def update(self, template_id: str, values: dict[str, Any]) -> Template | None:
        try:
            async with self._session_factory() as session:
                template = await session.get(Template, template_id)
                if template is None:
                    return None
                for name, value in values.items():
                    setattr(template, name, value)
                template.updated_at = values.get("updated_at", utc_now())
                session.add(template)
        except SQLAlchemyError as e:
            logger.error("store_update_failed", template_id=template_id, error=str(e))
            raise StoreError(str(e)) from e
        return template

    async def delete(self, template_id: str) -> bool:
        try:
            async with self._session_factory() as session:
                result = await session.execute(delete(Template).where(Template.id == template_id))
        except SQLAlchemyError as e:
            logger.error("store_delete_failed", template_id=template_id, error=str(e))
            raise StoreError(str(e)) from e
        return result.rowcount > 0
