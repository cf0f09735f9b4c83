"""Tests for workflow hashing and duplicate detection."""

import pytest
from conftest import make_template

from flowhub.store import InMemoryTemplateStore
from flowhub.templates.duplicates import (
    canonical_json,
    check_for_duplicates,
    determine_complexity,
    extract_workflow_metadata,
    node_similarity,
    workflow_hash,
)


def workflow(*node_types: str, name: str = "Slack to Notion Sync") -> dict:
    return {
        "name": name,
        "nodes": [{"name": f"node {i}", "type": t, "parameters": {}} for i, t in enumerate(node_types)],
        "connections": {},
    }


class TestWorkflowHash:
    """Tests for the canonical workflow hash."""

    def test_key_order_does_not_matter(self):
        first = {"nodes": [{"type": "a", "name": "x"}], "connections": {"x": {"main": []}}}
        second = {"connections": {"x": {"main": []}}, "nodes": [{"name": "x", "type": "a"}]}
        assert workflow_hash(first) == workflow_hash(second)

    def test_list_order_matters(self):
        assert workflow_hash({"nodes": [1, 2]}) != workflow_hash({"nodes": [2, 1]})

    def test_md5_hex_digest(self):
        digest = workflow_hash({"nodes": []})
        assert len(digest) == 32
        assert int(digest, 16) >= 0

    def test_canonical_json_is_compact(self):
        assert canonical_json({"b": 1, "a": {"d": 2, "c": 3}}) == '{"a":{"c":3,"d":2},"b":1}'


class TestNodeSimilarity:
    """Tests for node_similarity."""

    def test_disjoint_sets(self):
        assert node_similarity(["a", "b"], ["c", "d"]) == 0.0

    def test_identical_sets(self):
        assert node_similarity(["a", "b", "c"], ["c", "b", "a"]) == 1.0

    def test_divides_by_larger_set(self):
        assert node_similarity(["a", "b"], ["a", "b", "c", "d"]) == 0.5

    def test_duplicates_in_list_are_ignored(self):
        assert node_similarity(["a", "a", "b"], ["a", "b"]) == 1.0

    def test_both_empty(self):
        assert node_similarity([], []) == 0.0


class TestWorkflowMetadata:
    """Tests for metadata extraction and complexity classification."""

    def test_extracts_counts_and_flags(self):
        meta = extract_workflow_metadata(
            workflow(
                "n8n-nodes-base.webhook",
                "@n8n/n8n-nodes-langchain.openAi",
                "n8n-nodes-base.set",
                "n8n-nodes-base.set",
            )
        )
        assert meta.node_count == 4
        assert meta.nodes_used == [
            "n8n-nodes-base.webhook",
            "@n8n/n8n-nodes-langchain.openAi",
            "n8n-nodes-base.set",
        ]
        assert meta.has_triggers
        assert meta.has_ai_nodes

    def test_plain_workflow_has_no_flags(self):
        meta = extract_workflow_metadata(workflow("n8n-nodes-base.set"))
        assert not meta.has_triggers
        assert not meta.has_ai_nodes

    def test_complexity_levels(self):
        assert determine_complexity(2, ["n8n-nodes-base.set"]) == "simple"
        assert determine_complexity(6, ["n8n-nodes-base.set", "n8n-nodes-base.code"]) == "medium"
        assert determine_complexity(12, ["n8n-nodes-base.set"]) == "complex"


class TestCheckForDuplicates:
    """Tests for check_for_duplicates against the in-memory store."""

    @pytest.fixture
    def existing(self):
        document = workflow(
            "n8n-nodes-base.webhook",
            "n8n-nodes-base.httpRequest",
            "n8n-nodes-base.code",
            "n8n-nodes-base.notion",
            "n8n-nodes-base.slack",
        )
        meta = extract_workflow_metadata(document)
        return make_template(
            "Slack to Notion Sync",
            workflow_json=document,
            workflow_hash=workflow_hash(document),
            node_count=meta.node_count,
            nodes_used=meta.nodes_used,
        )

    @pytest.mark.asyncio
    async def test_exact_match_reports_no_similar(self, existing):
        store = InMemoryTemplateStore([existing])
        result = await check_for_duplicates(
            store, existing.workflow_hash, existing.title, existing.node_count, existing.nodes_used
        )
        assert result.is_duplicate
        assert result.exact_match.id == existing.id
        assert result.exact_match.title == "Slack to Notion Sync"
        assert result.similar_templates == []

    @pytest.mark.asyncio
    async def test_near_match_scored(self, existing):
        store = InMemoryTemplateStore([existing])
        node_types = [
            "n8n-nodes-base.webhook",
            "n8n-nodes-base.httpRequest",
            "n8n-nodes-base.code",
            "n8n-nodes-base.notion",
            "n8n-nodes-base.gmail",
        ]
        result = await check_for_duplicates(store, "other-digest", "Slack to Notion Sync", 5, node_types)
        assert not result.is_duplicate
        assert [(s.id, s.similarity) for s in result.similar_templates] == [(existing.id, 0.8)]

    @pytest.mark.asyncio
    async def test_different_node_count_is_not_similar(self, existing):
        store = InMemoryTemplateStore([existing])
        result = await check_for_duplicates(
            store, "other-digest", "Slack to Notion Sync", 6, existing.nodes_used
        )
        assert result.similar_templates == []

    @pytest.mark.asyncio
    async def test_threshold_is_exclusive(self):
        candidate = make_template(
            "Slack digest",
            node_count=10,
            nodes_used=[f"type-{i}" for i in range(10)],
        )
        store = InMemoryTemplateStore([candidate])
        seven_of_ten = [f"type-{i}" for i in range(7)] + ["x", "y", "z"]
        result = await check_for_duplicates(store, "digest", "Slack report", 10, seven_of_ten)
        assert result.similar_templates == []

    @pytest.mark.asyncio
    async def test_sorted_by_similarity(self):
        types = [f"type-{i}" for i in range(10)]
        nine = make_template("Slack report A", node_count=10, nodes_used=types[:9] + ["other"])
        ten = make_template("Slack report B", node_count=10, nodes_used=types)
        store = InMemoryTemplateStore([nine, ten])
        result = await check_for_duplicates(store, "digest", "Slack report", 10, types)
        assert [s.title for s in result.similar_templates] == ["Slack report B", "Slack report A"]
        assert [s.similarity for s in result.similar_templates] == [1.0, 0.9]

    @pytest.mark.asyncio
    async def test_legacy_string_node_list(self):
        legacy = make_template("Slack report", node_count=2)
        legacy.nodes_used = '["a", "b"]'
        store = InMemoryTemplateStore([legacy])
        result = await check_for_duplicates(store, "digest", "Slack report", 2, ["a", "b"])
        assert [s.similarity for s in result.similar_templates] == [1.0]

    @pytest.mark.asyncio
    async def test_blank_title_skips_similarity(self, existing):
        store = InMemoryTemplateStore([existing])
        result = await check_for_duplicates(store, "digest", "   ", 5, existing.nodes_used)
        assert not result.is_duplicate
        assert result.similar_templates == []
