"""Template submission and review.

Community submissions arrive from a web form and wait for review with a
``pending`` status. Operators can upload templates that go live at once,
and approve or reject pending ones. Every new template goes through the
duplicate check first; an exact copy of an existing workflow is refused.
"""

import json
import re
from dataclasses import dataclass, field, replace
from typing import Any

from flowhub.db.models import Template, TemplateStatus, utc_now
from flowhub.logging import get_logger
from flowhub.store import TemplateQuery, TemplateStore
from flowhub.templates.duplicates import (
    SimilarTemplate,
    TemplateRef,
    check_for_duplicates,
    determine_complexity,
    extract_workflow_metadata,
    workflow_hash,
)
from flowhub.templates.slugs import to_slug

logger = get_logger(__name__)

COMMUNITY_SOURCE = "Community Contribution"
DEVELOPER_SOURCE = "Developer Upload"
DEFAULT_USE_CASE = "general_automation"
NODE_TYPE_PREFIX = "n8n-nodes-base."


class SubmissionError(Exception):
    """Base exception for rejected submissions."""

    pass


class TemplateValidationError(SubmissionError):
    """The submission is missing a field or carries a malformed workflow."""

    def __init__(self, message: str, details: str | None = None):
        super().__init__(message)
        self.details = details


class DuplicateTemplateError(SubmissionError):
    """The workflow matches an existing template exactly."""

    def __init__(self, existing: TemplateRef):
        super().__init__(f"Template already exists: {existing.title}")
        self.existing = existing


@dataclass
class TemplateUpload:
    title: str
    description: str
    workflow_json: dict[str, Any]
    source: str | None = None
    source_url: str | None = None
    categories: list[str] = field(default_factory=list)
    use_case: str | None = None
    contributor_email: str | None = None
    contributor_name: str | None = None
    contributor_contact: str | None = None
    contributor_website: str | None = None


@dataclass
class SubmissionResult:
    template_id: str
    message: str
    similar_templates: list[SimilarTemplate] = field(default_factory=list)


def _required(form: dict[str, Any], key: str, label: str) -> str:
    value = form.get(key)
    if not isinstance(value, str) or not value.strip():
        raise TemplateValidationError(f"{label} is required")
    return value.strip()


def _optional(form: dict[str, Any], key: str) -> str | None:
    value = form.get(key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def readable_node_type(node_type: str) -> str:
    """``n8n-nodes-base.httpRequest`` -> ``http Request``."""
    name = node_type.replace(NODE_TYPE_PREFIX, "")
    return re.sub(r"([A-Z])", r" \1", name).strip()


def describe_workflow(nodes: list[Any], contributor: str) -> str:
    """One-line description generated for community submissions."""
    names = list(
        dict.fromkeys(
            readable_node_type(node["type"])
            for node in nodes
            if isinstance(node, dict) and isinstance(node.get("type"), str)
        )
    )
    listed = ", ".join(names[:3])
    if len(names) > 3:
        listed += f" and {len(names) - 3} more"
    return f"A {len(nodes)}-node n8n workflow using {listed}. Contributed by {contributor}."


def parse_submission_form(form: dict[str, Any]) -> TemplateUpload:
    """Turn the public submission form into an upload.

    Expects the form fields ``email``, ``full-name``, ``automation-json``
    and optionally ``contact-info`` and ``website``.

    Raises:
        TemplateValidationError: On a missing field or unusable workflow JSON.
    """
    email = _required(form, "email", "Email")
    full_name = _required(form, "full-name", "Full name")
    raw_workflow = _required(form, "automation-json", "Automation JSON")

    try:
        workflow = json.loads(raw_workflow)
    except ValueError as e:
        raise TemplateValidationError(
            "Invalid JSON format. Please check your n8n workflow export.",
            details="Make sure you copied the complete JSON from n8n export.",
        ) from e

    if not isinstance(workflow, dict) or not isinstance(workflow.get("nodes"), list):
        raise TemplateValidationError("Invalid workflow: missing or invalid nodes array")
    nodes = workflow["nodes"]
    if not nodes:
        raise TemplateValidationError("Workflow must contain at least one node")

    title = workflow.get("name") or workflow.get("title") or f"{full_name}'s n8n Template"
    return TemplateUpload(
        title=str(title),
        description=describe_workflow(nodes, full_name),
        workflow_json=workflow,
        contributor_email=email,
        contributor_name=full_name,
        contributor_contact=_optional(form, "contact-info"),
        contributor_website=_optional(form, "website"),
    )


async def _create(
    store: TemplateStore,
    upload: TemplateUpload,
    status: TemplateStatus,
    source: str,
) -> tuple[Template, list[SimilarTemplate]]:
    if not upload.title or not upload.description or not upload.workflow_json:
        raise TemplateValidationError("Title, description, and workflow JSON are required")
    if not isinstance(upload.workflow_json, dict) or not isinstance(upload.workflow_json.get("nodes"), list):
        raise TemplateValidationError("Invalid workflow: missing or invalid nodes array")

    metadata = extract_workflow_metadata(upload.workflow_json)
    digest = workflow_hash(upload.workflow_json)

    duplicates = await check_for_duplicates(
        store, digest, upload.title, metadata.node_count, metadata.nodes_used
    )
    if duplicates.is_duplicate:
        logger.info(
            "template_submission_rejected",
            reason="duplicate",
            existing_id=duplicates.exact_match.id,
        )
        raise DuplicateTemplateError(duplicates.exact_match)

    now = utc_now()
    template = Template(
        title=upload.title,
        description=upload.description,
        workflow_json=upload.workflow_json,
        node_count=metadata.node_count,
        nodes_used=metadata.nodes_used,
        source=source,
        source_url=upload.source_url,
        categories=list(upload.categories),
        use_case=upload.use_case or DEFAULT_USE_CASE,
        complexity_level=determine_complexity(metadata.node_count, metadata.nodes_used),
        has_triggers=metadata.has_triggers,
        has_ai_nodes=metadata.has_ai_nodes,
        workflow_hash=digest,
        status=status.value,
        slug=to_slug(upload.title) if status is TemplateStatus.PUBLISHED else None,
        contributor_email=upload.contributor_email,
        contributor_name=upload.contributor_name,
        contributor_contact=upload.contributor_contact,
        contributor_website=upload.contributor_website,
        created_at=now,
        updated_at=now,
        extracted_at=now,
    )
    await store.insert(template)
    logger.info(
        "template_created",
        template_id=template.id,
        status=template.status,
        node_count=template.node_count,
        similar=len(duplicates.similar_templates),
    )
    return template, duplicates.similar_templates


async def submit_template_for_review(store: TemplateStore, upload: TemplateUpload) -> SubmissionResult:
    """Store a community submission as pending review.

    Raises:
        TemplateValidationError: Required fields are missing.
        DuplicateTemplateError: The workflow already exists.
        StoreError: The store failed.
    """
    upload = replace(upload, source_url=None, categories=[], use_case=None)
    template, similar = await _create(store, upload, TemplateStatus.PENDING, COMMUNITY_SOURCE)
    return SubmissionResult(
        template_id=template.id,
        similar_templates=similar,
        message="Template submitted successfully! It will be reviewed before being published.",
    )


async def upload_template(store: TemplateStore, upload: TemplateUpload) -> SubmissionResult:
    """Publish a template immediately (operator path)."""
    template, similar = await _create(
        store, upload, TemplateStatus.PUBLISHED, upload.source or DEVELOPER_SOURCE
    )
    return SubmissionResult(
        template_id=template.id,
        similar_templates=similar,
        message="Template uploaded successfully and is now live!",
    )


async def list_pending_templates(store: TemplateStore) -> list[Template]:
    result = await store.fetch(
        TemplateQuery().eq("status", TemplateStatus.PENDING.value).order("created_at", descending=True)
    )
    return result.rows


async def approve_template(store: TemplateStore, template_id: str) -> Template | None:
    """Publish a pending template. Returns None if it does not exist."""
    pending = await store.fetch(TemplateQuery().eq("id", template_id).window(1))
    if not pending.rows:
        return None
    template = pending.rows[0]
    approved = await store.update(
        template_id,
        {
            "status": TemplateStatus.PUBLISHED.value,
            "slug": template.slug or to_slug(template.ai_title or template.title),
        },
    )
    logger.info("template_approved", template_id=template_id)
    return approved


async def reject_template(store: TemplateStore, template_id: str) -> bool:
    """Delete a template. Returns False if it did not exist."""
    deleted = await store.delete(template_id)
    logger.info("template_rejected", template_id=template_id, deleted=deleted)
    return deleted
