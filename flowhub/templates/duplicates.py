"""Duplicate detection for submitted workflows.

Exact duplicates are found by comparing a content hash of the workflow
document. Near duplicates are a cheap pre-filter: same node count and a
title sharing one of its first words, scored by node-type overlap. This
finds facially similar templates, not every structurally similar one.
"""

import hashlib
import json
from dataclasses import dataclass, field
from typing import Any

from flowhub.db.models import ComplexityLevel
from flowhub.logging import get_logger
from flowhub.store import ILike, TemplateQuery, TemplateStore, substring_pattern

logger = get_logger(__name__)

SIMILARITY_THRESHOLD = 0.7
TITLE_KEYWORDS = 3

_TRIGGER_MARKERS = ("trigger", "Trigger", "webhook")
_AI_MARKERS = ("ai", "openai", "anthropic", "claude", "gpt")
_COMPLEX_MARKERS = ("code", "function", "Function", "ai", "webhook", "http", "database", "sql")


@dataclass
class TemplateRef:
    id: str
    title: str


@dataclass
class SimilarTemplate:
    id: str
    title: str
    similarity: float


@dataclass
class DuplicateCheckResult:
    is_duplicate: bool
    exact_match: TemplateRef | None = None
    similar_templates: list[SimilarTemplate] = field(default_factory=list)


@dataclass
class WorkflowMetadata:
    node_count: int
    nodes_used: list[str]
    has_triggers: bool
    has_ai_nodes: bool


def canonical_json(document: Any) -> str:
    """Serialize with object keys sorted at every depth."""
    return json.dumps(document, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def workflow_hash(document: Any) -> str:
    """MD5 hex digest of the canonical workflow document.

    Only used to spot re-submissions, so collision resistance against an
    adversary is not a concern.
    """
    return hashlib.md5(canonical_json(document).encode("utf-8")).hexdigest()


def extract_workflow_metadata(document: dict[str, Any]) -> WorkflowMetadata:
    """Node count, distinct node types and trigger/AI flags of a workflow."""
    nodes = document.get("nodes") or []
    types = [str(node.get("type", "")) for node in nodes if isinstance(node, dict)]
    nodes_used = list(dict.fromkeys(t for t in types if t))

    return WorkflowMetadata(
        node_count=len(nodes),
        nodes_used=nodes_used,
        has_triggers=any(marker in t for t in types for marker in _TRIGGER_MARKERS),
        has_ai_nodes=any(marker in t.lower() for t in types for marker in _AI_MARKERS),
    )


def determine_complexity(node_count: int, nodes_used: list[str]) -> str:
    """Classify a workflow as simple, medium or complex."""
    complex_nodes = sum(
        1 for node in nodes_used if any(marker in node for marker in _COMPLEX_MARKERS)
    )
    if node_count <= 3 and complex_nodes == 0:
        return ComplexityLevel.SIMPLE.value
    if node_count <= 8 and complex_nodes <= 2:
        return ComplexityLevel.MEDIUM.value
    return ComplexityLevel.COMPLEX.value


def node_similarity(ours: list[str], theirs: list[str]) -> float:
    """Shared node types over the size of the larger node-type set."""
    a, b = set(ours), set(theirs)
    largest = max(len(a), len(b))
    if largest == 0:
        return 0.0
    return len(a & b) / largest


def _node_types(value: Any) -> list[str]:
    # Older rows stored the list as a JSON string
    if isinstance(value, str):
        try:
            value = json.loads(value or "[]")
        except ValueError:
            return []
    return list(value or [])


async def check_for_duplicates(
    store: TemplateStore,
    digest: str,
    title: str,
    node_count: int,
    node_types: list[str],
) -> DuplicateCheckResult:
    """Look for an exact copy of a workflow, then for look-alikes.

    Raises:
        StoreError: If the store cannot be queried.
    """
    exact = await store.fetch(TemplateQuery().eq("workflow_hash", digest).window(1))
    if exact.rows:
        match = exact.rows[0]
        logger.info("duplicate_exact_match", template_id=match.id, digest=digest)
        return DuplicateCheckResult(
            is_duplicate=True,
            exact_match=TemplateRef(id=match.id, title=match.title),
        )

    keywords = title.split()[:TITLE_KEYWORDS]
    if not keywords:
        return DuplicateCheckResult(is_duplicate=False)

    query = TemplateQuery().any_of(
        *(ILike("title", substring_pattern(word)) for word in keywords)
    ).eq("node_count", node_count)
    candidates = await store.fetch(query)

    scored = [
        SimilarTemplate(
            id=candidate.id,
            title=candidate.title,
            similarity=node_similarity(node_types, _node_types(candidate.nodes_used)),
        )
        for candidate in candidates.rows
    ]
    similar = sorted(
        (s for s in scored if s.similarity > SIMILARITY_THRESHOLD),
        key=lambda s: s.similarity,
        reverse=True,
    )
    if similar:
        logger.info("duplicate_similar_found", count=len(similar), title=title)
    return DuplicateCheckResult(is_duplicate=False, similar_templates=similar)
