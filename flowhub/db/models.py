"""Database models for the template directory.

One table, ``templates``. List-valued columns are stored as JSON. Fields
prefixed ``ai_`` are filled in by background enrichment after a template
is accepted; until then they are empty.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from sqlmodel import JSON, Column, Field, SQLModel


def utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(timezone.utc)


def generate_uuid() -> str:
    """Generate a new UUID string."""
    return str(uuid4())


class TemplateStatus(str, Enum):
    """Publication status of a template.

    A missing status is treated as published (rows imported before the
    column existed).
    """

    PUBLISHED = "published"
    PENDING = "pending"


class ComplexityLevel(str, Enum):
    """Stored complexity levels."""

    SIMPLE = "simple"
    MEDIUM = "medium"
    COMPLEX = "complex"


class Template(SQLModel, table=True):
    """A workflow template listed in the directory."""

    __tablename__ = "templates"
    __table_args__ = {"extend_existing": True}

    id: str = Field(default_factory=generate_uuid, primary_key=True)
    title: str = Field(index=True)
    description: str = ""
    workflow_json: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    node_count: int = Field(default=0, index=True)
    nodes_used: list[str] = Field(default_factory=list, sa_column=Column(JSON))

    source: str | None = None
    source_url: str | None = None
    source_path: str | None = None

    categories: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    use_case: str | None = Field(default=None, index=True)
    complexity_level: str = Field(default=ComplexityLevel.SIMPLE.value, index=True)
    automation_pattern: str | None = None
    has_triggers: bool = False
    has_ai_nodes: bool = False
    workflow_hash: str | None = Field(default=None, index=True)

    # Enrichment output
    ai_title: str | None = None
    ai_description: str | None = None
    ai_use_cases: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    ai_how_works: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    ai_setup_steps: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    ai_apps_used: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    ai_categories: str | None = None
    ai_roles: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    ai_industries: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    ai_tags: list[str] = Field(default_factory=list, sa_column=Column(JSON))

    popularity_score: float = Field(default=0.0, index=True)
    status: str | None = Field(default=None, index=True)
    slug: str | None = Field(default=None, index=True)

    # Community submissions only
    contributor_email: str | None = None
    contributor_name: str | None = None
    contributor_contact: str | None = None
    contributor_website: str | None = None

    created_at: datetime = Field(default_factory=utc_now, index=True)
    updated_at: datetime = Field(default_factory=utc_now)
    extracted_at: datetime | None = None
