"""Request and response bodies of the HTTP API."""

from typing import Any

from pydantic import BaseModel, Field

from flowhub.templates.display import TemplateDisplay


class TemplateListResponse(BaseModel):
    """One page of templates."""

    templates: list[TemplateDisplay]
    total: int = Field(..., description="Matches before pagination")


class TemplateDetailResponse(BaseModel):
    template: TemplateDisplay
    metadata: dict[str, Any] = Field(default_factory=dict, description="SEO metadata")


class FilterOptionsResponse(BaseModel):
    categories: list[str]
    industries: list[str]
    roles: list[str]
    use_cases: list[str]
    complexity_levels: list[str]


class TemplateStatsResponse(BaseModel):
    total: int
    by_complexity: dict[str, int]
    by_use_case: dict[str, int]


class CategoryPageResponse(BaseModel):
    """A category landing page."""

    category: str
    slug: str
    page: int
    total_pages: int
    total: int
    templates: list[TemplateDisplay]
    metadata: dict[str, Any] = Field(default_factory=dict)


class SimilarTemplateSummary(BaseModel):
    title: str
    similarity: str = Field(..., description="Node-type overlap as a percentage, e.g. '80%'")


class SubmissionResponse(BaseModel):
    success: bool = True
    message: str
    template_id: str
    workflow_title: str
    node_count: int
    warning: str | None = None
    similar: list[SimilarTemplateSummary] | None = None


class NewsletterSubscribeRequest(BaseModel):
    email: str | None = Field(default=None, description="Address to subscribe")


class NewsletterSubscribeResponse(BaseModel):
    message: str
    subscription: dict[str, Any] = Field(default_factory=dict)
