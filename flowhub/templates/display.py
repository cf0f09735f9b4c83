"""Projection of stored templates into the shape pages render."""

from typing import Any

from pydantic import BaseModel, Field

from flowhub.db.models import ComplexityLevel, Template
from flowhub.templates.slugs import to_slug

BEGINNER = "Beginner"
INTERMEDIATE = "Intermediate"
ADVANCED = "Advanced"

DISPLAY_TO_LEVEL = {
    BEGINNER: ComplexityLevel.SIMPLE.value,
    INTERMEDIATE: ComplexityLevel.MEDIUM.value,
    ADVANCED: ComplexityLevel.COMPLEX.value,
}
LEVEL_TO_DISPLAY = {level: label for label, level in DISPLAY_TO_LEVEL.items()}


def complexity_to_display(level: str | None) -> str:
    """Stored complexity level to its display label; unknown levels read as Beginner."""
    return LEVEL_TO_DISPLAY.get((level or "").lower(), BEGINNER)


def complexity_to_level(label: str) -> str:
    """Display label to stored level; unrecognised labels pass through lower-cased."""
    return DISPLAY_TO_LEVEL.get(label, label.lower())


class Integration(BaseModel):
    name: str
    logo: str | None = None
    description: str | None = None


class TemplateDisplay(BaseModel):
    """A template as shown on listing and detail pages."""

    id: str
    title: str
    description: str
    slug: str
    nodes: int
    complexity: str = Field(..., description="Beginner, Intermediate or Advanced")
    industries: list[str] = Field(default_factory=list)
    integrations: list[Integration] = Field(default_factory=list)
    use_cases: list[str] = Field(default_factory=list)
    how_works: str | None = None
    setup_steps: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    roles: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    workflow_json: Any = None
    source: str | None = None


def display_title(template: Template) -> str:
    return template.ai_title or template.title


def template_slug(template: Template) -> str:
    """Persisted slug, or one derived from the display title."""
    return template.slug or to_slug(display_title(template))


def to_display(template: Template) -> TemplateDisplay:
    return TemplateDisplay(
        id=template.id,
        title=display_title(template),
        description=template.ai_description or template.description or "",
        slug=template_slug(template),
        nodes=template.node_count or 0,
        complexity=complexity_to_display(template.complexity_level),
        industries=template.ai_industries or [],
        integrations=[Integration(name=app) for app in template.ai_apps_used or []],
        use_cases=template.ai_use_cases or [],
        how_works="\n\n".join(template.ai_how_works) if template.ai_how_works else None,
        setup_steps=template.ai_setup_steps or [],
        categories=[template.ai_categories] if template.ai_categories else [],
        roles=template.ai_roles or [],
        tags=template.ai_tags or [],
        workflow_json=template.workflow_json or None,
        source=template.source,
    )
