"""HTTP API schemas."""

from flowhub.schemas.api import (
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

__all__ = [
    "CategoryPageResponse",
    "FilterOptionsResponse",
    "NewsletterSubscribeRequest",
    "NewsletterSubscribeResponse",
    "SimilarTemplateSummary",
    "SubmissionResponse",
    "TemplateDetailResponse",
    "TemplateListResponse",
    "TemplateStatsResponse",
]
