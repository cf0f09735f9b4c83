"""Template directory services: slugs, lookup, listing, duplicates, submission."""

from flowhub.templates.display import TemplateDisplay, to_display
from flowhub.templates.duplicates import (
    DuplicateCheckResult,
    check_for_duplicates,
    node_similarity,
    workflow_hash,
)
from flowhub.templates.queries import (
    FilterOptions,
    SortMode,
    TemplateFilters,
    TemplatePage,
    TemplateStats,
    find_category,
    get_filter_options,
    get_template_stats,
    query_templates,
)
from flowhub.templates.resolver import LookupStatus, TemplateLookup, resolve_template
from flowhub.templates.slugs import is_template_id, slug_to_title_guess, to_slug
from flowhub.templates.submission import (
    DuplicateTemplateError,
    SubmissionError,
    SubmissionResult,
    TemplateUpload,
    TemplateValidationError,
    approve_template,
    list_pending_templates,
    parse_submission_form,
    reject_template,
    submit_template_for_review,
    upload_template,
)

__all__ = [
    "DuplicateCheckResult",
    "DuplicateTemplateError",
    "FilterOptions",
    "LookupStatus",
    "SortMode",
    "SubmissionError",
    "SubmissionResult",
    "TemplateDisplay",
    "TemplateFilters",
    "TemplateLookup",
    "TemplatePage",
    "TemplateStats",
    "TemplateUpload",
    "TemplateValidationError",
    "approve_template",
    "check_for_duplicates",
    "find_category",
    "get_filter_options",
    "get_template_stats",
    "is_template_id",
    "list_pending_templates",
    "node_similarity",
    "parse_submission_form",
    "query_templates",
    "reject_template",
    "resolve_template",
    "slug_to_title_guess",
    "submit_template_for_review",
    "to_display",
    "to_slug",
    "upload_template",
    "workflow_hash",
]
