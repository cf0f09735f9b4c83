"""Listing queries over published templates.

Search, facet filters, sorting and pagination are pushed down to the
store; the only work done here is a secondary ranking that moves templates
whose title contains every search keyword to the front of the page.
"""

import time
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum

from flowhub.logging import get_logger
from flowhub.metrics import record_template_query
from flowhub.store import (
    ElementILike,
    ILike,
    StoreError,
    TemplateQuery,
    TemplateStore,
    substring_pattern,
)
from flowhub.templates.display import (
    TemplateDisplay,
    complexity_to_display,
    complexity_to_level,
    to_display,
)
from flowhub.templates.slugs import to_slug

logger = get_logger(__name__)

ALL = "All"
DEFAULT_PAGE_SIZE = 50

TEXT_FIELDS = ("title", "ai_title", "description", "ai_description")
LIST_FIELDS = ("ai_apps_used", "ai_use_cases", "ai_tags")


class SortMode(str, Enum):
    RECENT = "recent"
    POPULAR = "popular"
    ALPHABETICAL = "alphabetical"
    NODE_COUNT = "node_count"


_ORDERING = {
    SortMode.RECENT: ("created_at", True),
    SortMode.POPULAR: ("popularity_score", True),
    SortMode.ALPHABETICAL: ("title", False),
    SortMode.NODE_COUNT: ("node_count", True),
}


@dataclass
class TemplateFilters:
    """Listing parameters. ``None`` or ``"All"`` disables a facet."""

    search: str | None = None
    category: str | None = None
    industry: str | None = None
    role: str | None = None
    complexity: str | None = None
    use_case: str | None = None
    sort_by: SortMode = SortMode.RECENT
    limit: int | None = None
    offset: int | None = None


@dataclass
class TemplatePage:
    items: list[TemplateDisplay] = field(default_factory=list)
    total: int = 0
    error: str | None = None


@dataclass
class FilterOptions:
    categories: list[str] = field(default_factory=list)
    industries: list[str] = field(default_factory=list)
    roles: list[str] = field(default_factory=list)
    use_cases: list[str] = field(default_factory=list)
    complexity_levels: list[str] = field(default_factory=list)
    error: str | None = None


@dataclass
class TemplateStats:
    total: int = 0
    by_complexity: dict[str, int] = field(default_factory=dict)
    by_use_case: dict[str, int] = field(default_factory=dict)
    error: str | None = None


def search_keywords(search: str | None) -> list[str]:
    return search.split() if search else []


def _active(value: str | None) -> bool:
    return bool(value) and value != ALL


def _keyword_conditions(keyword: str):
    pattern = substring_pattern(keyword)
    return [ILike(name, pattern) for name in TEXT_FIELDS] + [
        ElementILike(name, pattern) for name in LIST_FIELDS
    ]


def build_listing_query(filters: TemplateFilters, default_page_size: int = DEFAULT_PAGE_SIZE) -> TemplateQuery:
    """Translate listing filters into a store query."""
    query = TemplateQuery().visible().counted()

    # AND across keywords, OR across fields within one keyword
    for keyword in search_keywords(filters.search):
        query = query.any_of(*_keyword_conditions(keyword))

    if _active(filters.category):
        query = query.contains("categories", filters.category)
    if _active(filters.industry):
        query = query.contains("ai_industries", filters.industry)
    if _active(filters.role):
        query = query.contains("ai_roles", filters.role)
    if _active(filters.complexity):
        query = query.eq("complexity_level", complexity_to_level(filters.complexity))
    if _active(filters.use_case):
        query = query.eq("use_case", filters.use_case)

    field_name, descending = _ORDERING[SortMode(filters.sort_by)]
    query = query.order(field_name, descending=descending)

    if filters.limit:
        query = query.window(filters.limit, filters.offset or 0)
    elif filters.offset:
        query = query.window(default_page_size, filters.offset)
    return query


def rank_by_title(items: list[TemplateDisplay], keywords: list[str]) -> list[TemplateDisplay]:
    """Stable re-order putting titles that contain every keyword first."""
    if not keywords:
        return items
    lowered = [k.lower() for k in keywords]
    return sorted(items, key=lambda item: not all(k in item.title.lower() for k in lowered))


async def query_templates(
    store: TemplateStore,
    filters: TemplateFilters,
    default_page_size: int = DEFAULT_PAGE_SIZE,
) -> TemplatePage:
    """Fetch one page of published templates shaped for display."""
    start = time.perf_counter()
    try:
        result = await store.fetch(build_listing_query(filters, default_page_size))
    except StoreError as e:
        record_template_query("error", time.perf_counter() - start)
        logger.error("template_query_failed", error=str(e))
        return TemplatePage(error=str(e))
    record_template_query("ok", time.perf_counter() - start)

    items = rank_by_title([to_display(row) for row in result.rows], search_keywords(filters.search))
    total = result.count if result.count is not None else len(items)
    logger.debug("template_query", total=total, returned=len(items))
    return TemplatePage(items=items, total=total)


async def get_filter_options(store: TemplateStore) -> FilterOptions:
    """Distinct facet values across published templates, sorted."""
    try:
        result = await store.fetch(TemplateQuery().visible())
    except StoreError as e:
        logger.error("filter_options_failed", error=str(e))
        return FilterOptions(error=str(e))

    categories: set[str] = set()
    industries: set[str] = set()
    roles: set[str] = set()
    use_cases: set[str] = set()
    levels: set[str] = set()
    for row in result.rows:
        categories.update(row.categories or [])
        industries.update(row.ai_industries or [])
        roles.update(row.ai_roles or [])
        if row.use_case:
            use_cases.add(row.use_case)
        if row.complexity_level:
            levels.add(complexity_to_display(row.complexity_level))

    return FilterOptions(
        categories=sorted(categories),
        industries=sorted(industries),
        roles=sorted(roles),
        use_cases=sorted(use_cases),
        complexity_levels=sorted(levels),
    )


async def get_template_stats(store: TemplateStore) -> TemplateStats:
    """Counts of published templates by complexity and use case."""
    try:
        result = await store.fetch(TemplateQuery().visible().counted())
    except StoreError as e:
        logger.error("template_stats_failed", error=str(e))
        return TemplateStats(error=str(e))

    by_complexity = Counter(
        complexity_to_display(row.complexity_level) for row in result.rows if row.complexity_level
    )
    by_use_case = Counter(row.use_case for row in result.rows if row.use_case)
    return TemplateStats(
        total=result.count or 0,
        by_complexity=dict(by_complexity),
        by_use_case=dict(by_use_case),
    )


async def find_category(store: TemplateStore, slug: str) -> tuple[str | None, str | None]:
    """Map a category slug back to the category name.

    Returns:
        ``(name, error)``; ``name`` is None when no category has this slug.
    """
    options = await get_filter_options(store)
    if options.error:
        return None, options.error
    return next((c for c in options.categories if to_slug(c) == slug), None), None
