"""CLI interface for flowhub.

Provides commands for:
- Starting the API server
- Browsing and reviewing templates
- Publishing operator uploads
- Sitemap and slug utilities
"""

import asyncio
import json
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, TypeVar

import click
import uvicorn

from flowhub import __version__
from flowhub.config import get_settings
from flowhub.db import close_db, get_session, init_db
from flowhub.seo import build_sitemap, render_sitemap_xml
from flowhub.store import SQLTemplateStore, StoreError, TemplateStore
from flowhub.templates import (
    DuplicateTemplateError,
    LookupStatus,
    SortMode,
    TemplateFilters,
    TemplateUpload,
    TemplateValidationError,
    approve_template,
    get_filter_options,
    list_pending_templates,
    query_templates,
    reject_template,
    resolve_template,
    to_slug,
    upload_template,
)

T = TypeVar("T")


@asynccontextmanager
async def _open_store() -> AsyncIterator[TemplateStore]:
    await init_db()
    try:
        yield SQLTemplateStore(get_session)
    finally:
        await close_db()


def _with_store(action: Callable[[TemplateStore], Awaitable[T]]) -> T:
    async def runner() -> T:
        async with _open_store() as store:
            return await action(store)

    try:
        return asyncio.run(runner())
    except StoreError as exc:
        raise click.ClickException(f"Template store error: {exc}") from exc


@click.group()
@click.version_option(version=__version__, prog_name="flowhub")
def cli() -> None:
    """flowhub - workflow template directory.

    Serves the template API and offers operator tools for review.
    """
    pass


@cli.command()
@click.option("--host", "-h", default=None, help="Host to bind to")
@click.option("--port", "-p", default=None, type=int, help="Port to bind to")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Start the API server."""
    settings = get_settings()

    actual_host = host or settings.host
    actual_port = port or settings.port

    click.echo(f"Starting flowhub server on {actual_host}:{actual_port}")

    uvicorn.run(
        "flowhub.server:app",
        host=actual_host,
        port=actual_port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


@cli.group()
def templates() -> None:
    """Template browsing and review commands."""
    pass


@templates.command("list")
@click.option("--search", "-s", default=None, help="Space-separated keywords")
@click.option("--category", default=None, help="Only templates in this category")
@click.option(
    "--complexity",
    type=click.Choice(["Beginner", "Intermediate", "Advanced"]),
    default=None,
)
@click.option(
    "--sort",
    "sort_by",
    type=click.Choice([mode.value for mode in SortMode]),
    default=SortMode.RECENT.value,
    show_default=True,
)
@click.option("--limit", "-n", default=20, show_default=True, type=int)
def list_templates(
    search: str | None,
    category: str | None,
    complexity: str | None,
    sort_by: str,
    limit: int,
) -> None:
    """List published templates."""
    filters = TemplateFilters(
        search=search,
        category=category,
        complexity=complexity,
        sort_by=SortMode(sort_by),
        limit=limit,
    )
    page = _with_store(lambda store: query_templates(store, filters))
    if page.error:
        raise click.ClickException(f"Template store error: {page.error}")

    if not page.items:
        click.echo("No templates found.")
        return

    click.echo(f"Templates ({len(page.items)} of {page.total}):\n")
    for item in page.items:
        click.echo(f"  {click.style(item.title, fg='green', bold=True)}")
        click.echo(f"    {item.slug}  [{item.complexity}, {item.nodes} nodes]")
        click.echo(f"    id: {item.id}")
        click.echo()


@templates.command("show")
@click.argument("id_or_slug")
def show_template(id_or_slug: str) -> None:
    """Show a published template by id or slug."""
    lookup = _with_store(lambda store: resolve_template(store, id_or_slug))
    if lookup.status is LookupStatus.ERROR:
        raise click.ClickException(f"Template store error: {lookup.error}")
    if lookup.status is LookupStatus.NOT_FOUND:
        raise click.ClickException(f"Template '{id_or_slug}' not found")

    template = lookup.template
    click.echo(click.style(template.title, fg="green", bold=True))
    click.echo(f"  id:         {template.id}")
    click.echo(f"  slug:       {template.slug}")
    click.echo(f"  complexity: {template.complexity}")
    click.echo(f"  nodes:      {template.nodes}")
    if template.categories:
        click.echo(f"  categories: {', '.join(template.categories)}")
    if template.integrations:
        click.echo(f"  apps:       {', '.join(i.name for i in template.integrations)}")
    click.echo()
    click.echo(template.description)


@templates.command("pending")
def pending_templates() -> None:
    """List submissions waiting for review."""
    pending = _with_store(list_pending_templates)
    if not pending:
        click.echo("No templates pending review.")
        return

    click.echo(f"Pending templates ({len(pending)}):\n")
    for template in pending:
        contributor = template.contributor_name or "unknown"
        if template.contributor_email:
            contributor = f"{contributor} <{template.contributor_email}>"
        click.echo(f"  {click.style(template.title, fg='yellow', bold=True)}")
        click.echo(f"    id: {template.id}")
        click.echo(f"    {template.node_count} nodes, submitted by {contributor}")
        click.echo()


@templates.command("approve")
@click.argument("template_id")
def approve(template_id: str) -> None:
    """Publish a pending template."""
    template = _with_store(lambda store: approve_template(store, template_id))
    if template is None:
        raise click.ClickException(f"Template '{template_id}' not found")
    click.echo(click.style(f"✓ Published {template.title} as /{template.slug}", fg="green"))


@templates.command("reject")
@click.argument("template_id")
def reject(template_id: str) -> None:
    """Delete a submitted template."""
    if not _with_store(lambda store: reject_template(store, template_id)):
        raise click.ClickException(f"Template '{template_id}' not found")
    click.echo(click.style(f"✓ Rejected {template_id}", fg="yellow"))


def _load_workflow(path: Path) -> dict[str, Any]:
    try:
        workflow = json.loads(path.read_text(encoding="utf-8"))
    except ValueError as exc:
        raise click.ClickException(f"{path} is not valid JSON: {exc}") from exc
    if not isinstance(workflow, dict):
        raise click.ClickException(f"{path} does not contain a workflow object")
    return workflow


@templates.command("upload")
@click.argument("workflow_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--title", default=None, help="Defaults to the workflow name")
@click.option("--description", default=None, help="Defaults to the workflow description")
@click.option("--category", "categories", multiple=True, help="Repeat for several categories")
@click.option("--use-case", default=None)
@click.option("--source-url", default=None)
def upload(
    workflow_file: Path,
    title: str | None,
    description: str | None,
    categories: tuple[str, ...],
    use_case: str | None,
    source_url: str | None,
) -> None:
    """Publish a workflow export file as a live template."""
    workflow = _load_workflow(workflow_file)
    template_upload = TemplateUpload(
        title=title or workflow.get("name") or "",
        description=description or workflow.get("description") or "",
        workflow_json=workflow,
        source_url=source_url,
        categories=list(categories),
        use_case=use_case,
    )

    try:
        result = _with_store(lambda store: upload_template(store, template_upload))
    except TemplateValidationError as exc:
        raise click.ClickException(str(exc)) from exc
    except DuplicateTemplateError as exc:
        raise click.ClickException(f"Duplicate: {exc}") from exc

    click.echo(click.style(f"✓ {result.message}", fg="green"))
    click.echo(f"  id: {result.template_id}")
    for similar in result.similar_templates:
        click.echo(f"  similar: {similar.title} ({round(similar.similarity * 100)}%)")


@cli.command()
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), default=None)
def sitemap(output: Path | None) -> None:
    """Render sitemap.xml from the published templates."""
    settings = get_settings()
    options = _with_store(get_filter_options)
    if options.error:
        click.echo(click.style(f"Facets unavailable: {options.error}", fg="yellow"), err=True)

    xml = render_sitemap_xml(
        build_sitemap(
            settings.site_url,
            datetime.now(UTC),
            categories=options.categories,
            industries=options.industries,
            roles=options.roles,
        )
    )
    if output is None:
        click.echo(xml)
        return
    output.write_text(xml, encoding="utf-8")
    click.echo(click.style(f"✓ Wrote {output}", fg="green"))


@cli.command()
@click.argument("text")
def slug(text: str) -> None:
    """Print the URL slug for a title."""
    click.echo(to_slug(text))


@cli.command()
def info() -> None:
    """Show configuration."""
    settings = get_settings()

    click.echo("flowhub Configuration:\n")
    click.echo(f"  Host:      {settings.host}")
    click.echo(f"  Port:      {settings.port}")
    click.echo(f"  Debug:     {settings.debug}")
    click.echo(f"  Log Level: {settings.log_level}")
    click.echo(f"  Database:  {settings.database_url}")
    click.echo(f"  Site:      {settings.site_url}")
    click.echo(f"  Newsletter configured: {bool(settings.beehiiv_api_key and settings.beehiiv_publication_id)}")


def main() -> None:
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
