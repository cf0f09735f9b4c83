"""FastAPI application for the template directory.

Exposes:
- Template listing, lookup by id or slug, facets and stats
- Category landing pages
- Community template submission
- Newsletter signup proxy
- Sitemap, health and metrics

Handlers stay thin: each one calls a service from ``flowhub.templates`` or
``flowhub.newsletter`` and maps its outcome to an HTTP status.
"""

import math
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import Body, Depends, FastAPI, HTTPException, Query, status
from starlette.responses import PlainTextResponse, Response

from flowhub import __version__
from flowhub.config import get_settings
from flowhub.db import close_db, get_session, init_db
from flowhub.logging import configure_logging, get_logger
from flowhub.metrics import (
    metrics,
    record_newsletter_signup,
    record_submission,
    record_template_lookup,
)
from flowhub.middleware import RequestTracingMiddleware
from flowhub.newsletter import NewsletterClient, SubscriptionOutcome, is_valid_email
from flowhub.schemas import (
    CategoryPageResponse,
    FilterOptionsResponse,
    NewsletterSubscribeRequest,
    NewsletterSubscribeResponse,
    SimilarTemplateSummary,
    SubmissionResponse,
    TemplateDetailResponse,
    TemplateListResponse,
    TemplateStatsResponse,
)
from flowhub.seo import build_sitemap, category_metadata, render_sitemap_xml, template_metadata
from flowhub.store import SQLTemplateStore, StoreError, TemplateStore
from flowhub.templates import (
    DuplicateTemplateError,
    LookupStatus,
    SortMode,
    TemplateFilters,
    TemplateValidationError,
    find_category,
    get_filter_options,
    get_template_stats,
    parse_submission_form,
    query_templates,
    resolve_template,
    submit_template_for_review,
)

logger = get_logger(__name__)

NEWSLETTER_STATUS = {
    SubscriptionOutcome.SUBSCRIBED: status.HTTP_200_OK,
    SubscriptionOutcome.ALREADY_SUBSCRIBED: status.HTTP_409_CONFLICT,
    SubscriptionOutcome.INVALID_EMAIL: status.HTTP_400_BAD_REQUEST,
    SubscriptionOutcome.UNDELIVERABLE: status.HTTP_400_BAD_REQUEST,
}


def get_store() -> TemplateStore:
    """Template store dependency."""
    return SQLTemplateStore(get_session)


async def get_newsletter_client() -> AsyncIterator[NewsletterClient]:
    """Newsletter client dependency, closed after the request."""
    async with NewsletterClient.from_settings(get_settings()) as client:
        yield client


def _unavailable(error: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=f"Template store unavailable: {error}",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    settings = get_settings()
    configure_logging(json_format=not settings.debug, level=settings.log_level)

    logger.info(
        "server_starting",
        version=__version__,
        host=settings.host,
        port=settings.port,
        debug=settings.debug,
    )
    await init_db()
    logger.info("database_ready", database_url=settings.database_url)
    yield
    await close_db()
    logger.info("server_shutdown")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="flowhub",
        description="Directory of automation workflow templates",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.add_middleware(RequestTracingMiddleware)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy", "version": __version__}

    @app.get("/metrics", include_in_schema=False)
    async def get_metrics() -> PlainTextResponse:
        """Prometheus text exposition."""
        return PlainTextResponse(
            content=metrics.to_prometheus(),
            media_type="text/plain; version=0.0.4; charset=utf-8",
        )

    @app.get("/metrics/json")
    async def get_metrics_json() -> dict:
        return metrics.get_stats()

    # =========================================================================
    # Templates
    # =========================================================================

    @app.get("/v1/templates", response_model=TemplateListResponse)
    async def list_templates(
        search: str | None = Query(default=None, description="Space-separated keywords"),
        category: str | None = Query(default=None),
        industry: str | None = Query(default=None),
        role: str | None = Query(default=None),
        complexity: str | None = Query(default=None, description="Beginner, Intermediate or Advanced"),
        use_case: str | None = Query(default=None),
        sort: SortMode = Query(default=SortMode.RECENT),
        limit: int | None = Query(default=None, ge=1, le=500),
        offset: int | None = Query(default=None, ge=0),
        store: TemplateStore = Depends(get_store),
    ) -> TemplateListResponse:
        """List published templates with search, facets and pagination."""
        page = await query_templates(
            store,
            TemplateFilters(
                search=search,
                category=category,
                industry=industry,
                role=role,
                complexity=complexity,
                use_case=use_case,
                sort_by=sort,
                limit=limit,
                offset=offset,
            ),
            default_page_size=settings.default_page_size,
        )
        if page.error:
            raise _unavailable(page.error)
        return TemplateListResponse(templates=page.items, total=page.total)

    @app.get("/v1/templates/{id_or_slug}", response_model=TemplateDetailResponse)
    async def get_template(
        id_or_slug: str,
        store: TemplateStore = Depends(get_store),
    ) -> TemplateDetailResponse:
        """Get a published template by id or by slug."""
        lookup = await resolve_template(store, id_or_slug)
        record_template_lookup(lookup.status.value)

        if lookup.status is LookupStatus.ERROR:
            raise _unavailable(lookup.error)
        if lookup.status is LookupStatus.NOT_FOUND:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Template '{id_or_slug}' not found",
            )
        return TemplateDetailResponse(
            template=lookup.template,
            metadata=template_metadata(settings.site_name, settings.site_url, lookup.template),
        )

    @app.get("/v1/filters", response_model=FilterOptionsResponse)
    async def list_filters(store: TemplateStore = Depends(get_store)) -> FilterOptionsResponse:
        """Distinct facet values for the filter bar."""
        options = await get_filter_options(store)
        if options.error:
            raise _unavailable(options.error)
        return FilterOptionsResponse(
            categories=options.categories,
            industries=options.industries,
            roles=options.roles,
            use_cases=options.use_cases,
            complexity_levels=options.complexity_levels,
        )

    @app.get("/v1/stats", response_model=TemplateStatsResponse)
    async def template_stats(store: TemplateStore = Depends(get_store)) -> TemplateStatsResponse:
        stats = await get_template_stats(store)
        if stats.error:
            raise _unavailable(stats.error)
        return TemplateStatsResponse(
            total=stats.total,
            by_complexity=stats.by_complexity,
            by_use_case=stats.by_use_case,
        )

    @app.get("/v1/categories/{slug}", response_model=CategoryPageResponse)
    async def category_page(
        slug: str,
        page: int = Query(default=1, ge=1),
        store: TemplateStore = Depends(get_store),
    ) -> CategoryPageResponse:
        """Templates in one category, newest first."""
        category, error = await find_category(store, slug)
        if error:
            raise _unavailable(error)
        if category is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Category '{slug}' not found",
            )

        size = settings.category_page_size
        listing = await query_templates(
            store,
            TemplateFilters(category=category, sort_by=SortMode.RECENT, limit=size, offset=(page - 1) * size),
        )
        if listing.error:
            raise _unavailable(listing.error)

        return CategoryPageResponse(
            category=category,
            slug=slug,
            page=page,
            total_pages=math.ceil(listing.total / size),
            total=listing.total,
            templates=listing.items,
            metadata=category_metadata(settings.site_name, settings.site_url, category, slug, listing.total),
        )

    # =========================================================================
    # Submissions
    # =========================================================================

    @app.post("/v1/templates/submit", response_model=SubmissionResponse, status_code=201)
    async def submit_template(
        form: dict[str, Any] = Body(...),
        store: TemplateStore = Depends(get_store),
    ) -> SubmissionResponse:
        """Accept a community template for review.

        Raises:
            400: Missing field or malformed workflow JSON
            409: The exact workflow is already in the directory
            500: Store failure
        """
        try:
            upload = parse_submission_form(form)
            result = await submit_template_for_review(store, upload)
        except TemplateValidationError as e:
            record_submission("invalid")
            logger.info("template_submission_rejected", reason="invalid", error=str(e))
            detail = f"{e} {e.details}" if e.details else str(e)
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)
        except DuplicateTemplateError as e:
            record_submission("duplicate")
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"This exact workflow already exists in our database: {e.existing.title}",
            )
        except StoreError as e:
            record_submission("error")
            logger.error("template_submission_failed", error=str(e))
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="An unexpected error occurred while processing your submission. Please try again later.",
            )

        record_submission("accepted")
        response = SubmissionResponse(
            message="Template submitted successfully! It will be reviewed and published if approved.",
            template_id=result.template_id,
            workflow_title=upload.title,
            node_count=len(upload.workflow_json["nodes"]),
        )
        if result.similar_templates:
            response.warning = "Similar templates were found, but your submission was accepted for review"
            response.similar = [
                SimilarTemplateSummary(title=s.title, similarity=f"{round(s.similarity * 100)}%")
                for s in result.similar_templates
            ]
        return response

    # =========================================================================
    # Newsletter
    # =========================================================================

    @app.post("/v1/newsletter/subscribe", response_model=NewsletterSubscribeResponse)
    async def subscribe_newsletter(
        request: NewsletterSubscribeRequest,
        newsletter: NewsletterClient = Depends(get_newsletter_client),
    ) -> NewsletterSubscribeResponse:
        """Subscribe an address to the newsletter."""
        email = (request.email or "").strip()
        if not email:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email address is required")
        if not is_valid_email(email):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Please enter a valid email address",
            )

        result = await newsletter.subscribe(email)
        record_newsletter_signup(result.outcome.value)
        status_code = NEWSLETTER_STATUS.get(result.outcome, status.HTTP_500_INTERNAL_SERVER_ERROR)
        if status_code != status.HTTP_200_OK:
            raise HTTPException(status_code=status_code, detail=result.message)
        return NewsletterSubscribeResponse(message=result.message, subscription=result.payload)

    # =========================================================================
    # SEO
    # =========================================================================

    @app.get("/sitemap.xml", include_in_schema=False)
    async def sitemap(store: TemplateStore = Depends(get_store)) -> Response:
        options = await get_filter_options(store)
        if options.error:
            logger.warning("sitemap_static_only", error=options.error)
        entries = build_sitemap(
            settings.site_url,
            datetime.now(UTC),
            categories=options.categories,
            industries=options.industries,
            roles=options.roles,
        )
        return Response(content=render_sitemap_xml(entries), media_type="application/xml")

    return app


# Application instance for uvicorn
app = create_app()
