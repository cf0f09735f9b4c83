"""Shared test fixtures for pytest."""

import uuid
from datetime import UTC, datetime, timedelta

import httpx
import pytest

from flowhub.db.models import Template, TemplateStatus
from flowhub.store import InMemoryTemplateStore, StoreError

BASE_TIME = datetime(2025, 1, 1, tzinfo=UTC)


def make_template(title: str, day: int = 0, **overrides) -> Template:
    """Build a published template created ``day`` days after BASE_TIME."""
    values = {
        "title": title,
        "description": f"{title} workflow",
        "workflow_json": {"nodes": [{"type": "n8n-nodes-base.set"}], "connections": {}},
        "node_count": 1,
        "nodes_used": ["n8n-nodes-base.set"],
        "status": TemplateStatus.PUBLISHED.value,
        "created_at": BASE_TIME + timedelta(days=day),
        "updated_at": BASE_TIME + timedelta(days=day),
    }
    values.update(overrides)
    return Template(**values)


def catalog_templates() -> list[Template]:
    return [
        make_template(
            "Invoice Reminder to Slack",
            day=1,
            categories=["Finance"],
            ai_industries=["Accounting"],
            ai_roles=["Finance Manager"],
            complexity_level="simple",
            use_case="notifications",
            node_count=4,
            popularity_score=10.0,
        ),
        make_template(
            "Slack Alerts for Overdue Payments",
            day=2,
            ai_description="Posts invoice reminders to a channel",
            categories=["Finance"],
            complexity_level="medium",
            use_case="notifications",
            node_count=6,
            popularity_score=50.0,
        ),
        make_template(
            "Sales & Marketing Digest",
            day=3,
            categories=["Sales & Marketing"],
            ai_apps_used=["HubSpot"],
            complexity_level="complex",
            use_case="reporting",
            node_count=12,
            popularity_score=30.0,
        ),
        make_template(
            "Lead Scoring with OpenAI",
            day=4,
            ai_title="AI Lead Scoring Pipeline",
            categories=["Sales & Marketing"],
            ai_industries=["SaaS"],
            ai_roles=["Sales Rep"],
            complexity_level="complex",
            use_case="lead_generation",
            node_count=15,
            popularity_score=80.0,
        ),
        make_template(
            "Unreviewed Slack Invoice Bot",
            day=5,
            status=TemplateStatus.PENDING.value,
            categories=["Finance"],
            complexity_level="complex",
            node_count=3,
        ),
        make_template(
            "Legacy CRM Sync",
            day=0,
            status=None,
            categories=["CRM"],
            complexity_level="complex",
            use_case="data_sync",
            node_count=9,
            popularity_score=5.0,
        ),
        make_template(
            "Database Backup Rotation",
            day=6,
            categories=["DevOps"],
            complexity_level="complex",
            use_case="data_sync",
            node_count=20,
            popularity_score=20.0,
        ),
    ]


class FailingStore:
    """Store whose every call fails."""

    async def fetch(self, query):
        raise StoreError("connection refused")

    async def insert(self, template):
        raise StoreError("connection refused")

    async def update(self, template_id, values):
        raise StoreError("connection refused")

    async def delete(self, template_id):
        raise StoreError("connection refused")


class CountingStore(InMemoryTemplateStore):
    """In-memory store that records every query it answers."""

    def __init__(self, templates=None):
        super().__init__(templates)
        self.queries = []

    async def fetch(self, query):
        self.queries.append(query)
        return await super().fetch(query)


@pytest.fixture
def templates() -> list[Template]:
    return catalog_templates()


@pytest.fixture
def store(templates) -> CountingStore:
    return CountingStore(templates)


@pytest.fixture
def by_title(templates) -> dict[str, Template]:
    return {t.title: t for t in templates}


@pytest.fixture
def newsletter_responses():
    """Queue of (status, json body) answers for the fake newsletter provider."""
    return []


@pytest.fixture
def newsletter_requests():
    return []


@pytest.fixture
def newsletter_transport(newsletter_responses, newsletter_requests) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        newsletter_requests.append(request)
        status_code, body = newsletter_responses.pop(0) if newsletter_responses else (201, {"data": {}})
        return httpx.Response(status_code, json=body)

    return httpx.MockTransport(handler)


@pytest.fixture
def client(monkeypatch, store, newsletter_transport):
    """Create a test client with an isolated database and a seeded store."""
    import flowhub.config

    unique_name = f"test_{uuid.uuid4().hex}"
    monkeypatch.setenv(
        "FLOWHUB_DATABASE_URL",
        f"sqlite+aiosqlite:///file:{unique_name}?mode=memory&cache=shared&uri=true",
    )
    monkeypatch.setenv("FLOWHUB_LOG_LEVEL", "WARNING")
    monkeypatch.setenv("FLOWHUB_BEEHIIV_API_KEY", "test-key")
    monkeypatch.setenv("FLOWHUB_BEEHIIV_PUBLICATION_ID", "pub_123")
    flowhub.config.get_settings.cache_clear()

    import flowhub.db.engine

    # Reset engine to force new connection
    flowhub.db.engine._engine = None

    from fastapi.testclient import TestClient

    from flowhub.newsletter import NewsletterClient
    from flowhub.server import create_app, get_newsletter_client, get_store

    async def newsletter_client():
        async with httpx.AsyncClient(transport=newsletter_transport) as http_client:
            yield NewsletterClient.from_settings(
                flowhub.config.get_settings(),
                http_client=http_client,
                clock=lambda: BASE_TIME.timestamp(),
            )

    app = create_app()
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_newsletter_client] = newsletter_client
    with TestClient(app) as test_client:
        yield test_client

    # Cleanup
    flowhub.db.engine._engine = None
    flowhub.config.get_settings.cache_clear()
