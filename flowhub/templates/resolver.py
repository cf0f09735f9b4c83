"""Resolve a template id or slug to a single published template.

Template pages are addressed either by the opaque template id or by a slug
of the title. Ids are recognised by shape; anything else is looked up as a
slug, first through an exact title reconstructed from the slug and then
through a looser per-word search. Candidates only count when their own slug
matches the requested one exactly.
"""

from dataclasses import dataclass
from enum import Enum

from flowhub.db.models import Template
from flowhub.logging import get_logger
from flowhub.store import (
    Eq,
    ILike,
    StoreError,
    TemplateQuery,
    TemplateStore,
    escape_like,
    substring_pattern,
)
from flowhub.templates.display import TemplateDisplay, display_title, to_display
from flowhub.templates.slugs import is_template_id, slug_to_title_guess, to_slug

logger = get_logger(__name__)

EXACT_CANDIDATE_LIMIT = 20
FALLBACK_CANDIDATE_LIMIT = 50
MIN_TOKEN_LENGTH = 3


class LookupStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass
class TemplateLookup:
    """Outcome of a lookup. ``error`` is only set when the store failed."""

    status: LookupStatus
    template: TemplateDisplay | None = None
    error: str | None = None

    @property
    def found(self) -> bool:
        return self.status is LookupStatus.FOUND


def _candidate_slugs(template: Template) -> set[str]:
    slugs = {to_slug(display_title(template)), to_slug(template.title)}
    if template.slug:
        slugs.add(template.slug)
    return slugs


def _first_matching(candidates: list[Template], slug: str) -> Template | None:
    return next((t for t in candidates if slug in _candidate_slugs(t)), None)


async def _find_by_id(store: TemplateStore, template_id: str) -> Template | None:
    result = await store.fetch(TemplateQuery().visible().eq("id", template_id).window(1))
    return result.rows[0] if result.rows else None


async def _find_by_slug(store: TemplateStore, slug: str) -> Template | None:
    guess = escape_like(slug_to_title_guess(slug))
    exact = await store.fetch(
        TemplateQuery()
        .visible()
        .any_of(ILike("title", guess), ILike("ai_title", guess), Eq("slug", slug))
        .window(EXACT_CANDIDATE_LIMIT)
    )
    if exact.rows:
        return _first_matching(exact.rows, slug)

    tokens = [token for token in slug.split("-") if len(token) >= MIN_TOKEN_LENGTH]
    if not tokens:
        return None

    loose = await store.fetch(
        TemplateQuery()
        .visible()
        .any_of(
            *(ILike(column, substring_pattern(token)) for token in tokens for column in ("title", "ai_title"))
        )
        .window(FALLBACK_CANDIDATE_LIMIT)
    )
    return _first_matching(loose.rows, slug)


async def resolve_template(store: TemplateStore, id_or_slug: str) -> TemplateLookup:
    """Find the published template addressed by ``id_or_slug``.

    Never raises: store failures come back as ``LookupStatus.ERROR``.
    """
    try:
        if is_template_id(id_or_slug):
            template = await _find_by_id(store, id_or_slug.lower())
        else:
            template = await _find_by_slug(store, id_or_slug)
    except StoreError as e:
        logger.error("template_lookup_failed", identifier=id_or_slug, error=str(e))
        return TemplateLookup(status=LookupStatus.ERROR, error=str(e))

    if template is None:
        logger.info("template_not_found", identifier=id_or_slug)
        return TemplateLookup(status=LookupStatus.NOT_FOUND)
    return TemplateLookup(status=LookupStatus.FOUND, template=to_display(template))
