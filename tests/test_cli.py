from __future__ import annotations

import json
from contextlib import asynccontextmanager

import pytest
from click.testing import CliRunner
from conftest import FailingStore

import flowhub.cli as cli
from flowhub.db.models import TemplateStatus


@pytest.fixture
def use_store(monkeypatch):
    """Point the CLI at the given store instead of the database."""

    def install(store):
        @asynccontextmanager
        async def fake_open_store():
            yield store

        monkeypatch.setattr(cli, "_open_store", fake_open_store)
        return store

    return install


def test_slug() -> None:
    result = CliRunner().invoke(cli.cli, ["slug", "Sales & Marketing"])

    assert result.exit_code == 0
    assert result.output.strip() == "sales-marketing"


def test_templates_list(use_store, store) -> None:
    use_store(store)
    result = CliRunner().invoke(cli.cli, ["templates", "list", "--search", "invoice slack"])

    assert result.exit_code == 0
    assert "Templates (2 of 2)" in result.output
    assert result.output.index("Invoice Reminder to Slack") < result.output.index("Slack Alerts")


def test_templates_list_filters(use_store, store) -> None:
    use_store(store)
    result = CliRunner().invoke(
        cli.cli, ["templates", "list", "--complexity", "Advanced", "--sort", "popular", "--limit", "1"]
    )

    assert result.exit_code == 0
    assert "Templates (1 of 4)" in result.output
    assert "AI Lead Scoring Pipeline" in result.output


def test_templates_list_store_error(use_store) -> None:
    use_store(FailingStore())
    result = CliRunner().invoke(cli.cli, ["templates", "list"])

    assert result.exit_code != 0
    assert "connection refused" in result.output


def test_templates_show(use_store, store) -> None:
    use_store(store)
    result = CliRunner().invoke(cli.cli, ["templates", "show", "sales-marketing-digest"])

    assert result.exit_code == 0
    assert "Sales & Marketing Digest" in result.output
    assert "HubSpot" in result.output


def test_templates_show_missing(use_store, store) -> None:
    use_store(store)
    result = CliRunner().invoke(cli.cli, ["templates", "show", "no-such-template"])

    assert result.exit_code == 1
    assert "not found" in result.output


def test_review_flow(use_store, store, by_title) -> None:
    use_store(store)
    pending = by_title["Unreviewed Slack Invoice Bot"]
    runner = CliRunner()

    listed = runner.invoke(cli.cli, ["templates", "pending"])
    assert listed.exit_code == 0
    assert pending.id in listed.output

    approved = runner.invoke(cli.cli, ["templates", "approve", pending.id])
    assert approved.exit_code == 0
    assert "/unreviewed-slack-invoice-bot" in approved.output
    assert store.get(pending.id).status == TemplateStatus.PUBLISHED.value

    assert "No templates pending review." in runner.invoke(cli.cli, ["templates", "pending"]).output


def test_reject(use_store, store, by_title) -> None:
    use_store(store)
    template_id = by_title["Unreviewed Slack Invoice Bot"].id

    result = CliRunner().invoke(cli.cli, ["templates", "reject", template_id])
    assert result.exit_code == 0
    assert store.get(template_id) is None

    again = CliRunner().invoke(cli.cli, ["templates", "reject", template_id])
    assert again.exit_code == 1


def test_upload(use_store, store, tmp_path) -> None:
    use_store(store)
    path = tmp_path / "workflow.json"
    path.write_text(
        json.dumps(
            {
                "name": "Gmail to Sheets",
                "description": "Log incoming mail in a spreadsheet",
                "nodes": [{"type": "n8n-nodes-base.gmailTrigger"}, {"type": "n8n-nodes-base.googleSheets"}],
                "connections": {},
            }
        )
    )

    result = CliRunner().invoke(
        cli.cli, ["templates", "upload", str(path), "--category", "Productivity", "--use-case", "data_sync"]
    )

    assert result.exit_code == 0, result.output
    assert "now live" in result.output
    template_id = result.output.split("id: ", 1)[1].split()[0]
    uploaded = store.get(template_id)
    assert uploaded.title == "Gmail to Sheets"
    assert uploaded.status == TemplateStatus.PUBLISHED.value
    assert uploaded.categories == ["Productivity"]
    assert uploaded.slug == "gmail-to-sheets"

    duplicate = CliRunner().invoke(cli.cli, ["templates", "upload", str(path)])
    assert duplicate.exit_code == 1
    assert "Duplicate" in duplicate.output


def test_upload_rejects_bad_json(use_store, store, tmp_path) -> None:
    use_store(store)
    path = tmp_path / "broken.json"
    path.write_text("{broken")

    result = CliRunner().invoke(cli.cli, ["templates", "upload", str(path)])
    assert result.exit_code == 1
    assert "not valid JSON" in result.output


def test_sitemap_to_file(use_store, store, tmp_path) -> None:
    use_store(store)
    output = tmp_path / "sitemap.xml"

    result = CliRunner().invoke(cli.cli, ["sitemap", "--output", str(output)])

    assert result.exit_code == 0
    text = output.read_text()
    assert text.startswith('<?xml version="1.0" encoding="UTF-8"?>')
    assert "/category/finance" in text


def test_serve_uses_settings(monkeypatch) -> None:
    called: dict[str, object] = {}
    monkeypatch.setattr(cli.uvicorn, "run", lambda app, **kwargs: called.update(app=app, **kwargs))

    result = CliRunner().invoke(cli.cli, ["serve", "--port", "9001"])

    assert result.exit_code == 0
    assert called["app"] == "flowhub.server:app"
    assert called["port"] == 9001
