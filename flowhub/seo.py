"""Sitemap and page metadata for search engines."""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from xml.etree import ElementTree

from flowhub.templates.display import TemplateDisplay
from flowhub.templates.slugs import to_slug

SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"
DESCRIPTION_LENGTH = 160


@dataclass
class SitemapEntry:
    url: str
    last_modified: datetime
    change_frequency: str
    priority: float


def static_pages(site_url: str, now: datetime) -> list[SitemapEntry]:
    return [
        SitemapEntry(site_url, now, "daily", 1.0),
        SitemapEntry(f"{site_url}/terms", now, "yearly", 0.3),
        SitemapEntry(f"{site_url}/privacy", now, "yearly", 0.3),
    ]


def build_sitemap(
    site_url: str,
    now: datetime,
    categories: Sequence[str] = (),
    industries: Sequence[str] = (),
    roles: Sequence[str] = (),
) -> list[SitemapEntry]:
    """Static pages plus one facet page per category, industry and role.

    Individual template pages are left to crawlers.
    """
    site_url = site_url.rstrip("/")
    entries = static_pages(site_url, now)
    for section, names in (("category", categories), ("industry", industries), ("role", roles)):
        entries.extend(
            SitemapEntry(f"{site_url}/{section}/{to_slug(name)}", now, "weekly", 0.8)
            for name in names
        )
    return entries


def render_sitemap_xml(entries: list[SitemapEntry]) -> str:
    urlset = ElementTree.Element("urlset", xmlns=SITEMAP_NS)
    for entry in entries:
        url = ElementTree.SubElement(urlset, "url")
        ElementTree.SubElement(url, "loc").text = entry.url
        ElementTree.SubElement(url, "lastmod").text = entry.last_modified.isoformat()
        ElementTree.SubElement(url, "changefreq").text = entry.change_frequency
        ElementTree.SubElement(url, "priority").text = f"{entry.priority:.1f}"
    body = ElementTree.tostring(urlset, encoding="unicode")
    return f'<?xml version="1.0" encoding="UTF-8"?>\n{body}'


def _truncate(text: str, length: int = DESCRIPTION_LENGTH) -> str:
    text = " ".join(text.split())
    if len(text) <= length:
        return text
    return text[: length - 1].rsplit(" ", 1)[0] + "…"


def category_metadata(
    site_name: str,
    site_url: str,
    category_name: str,
    slug: str,
    count: int,
) -> dict[str, Any]:
    """Title, description and social cards for a category listing."""
    title = f"{category_name} Templates | {site_name}"
    lowered = category_name.lower()
    description = (
        f"Discover {count} {lowered} automation templates for n8n workflows. "
        f"Browse ready-to-use templates to streamline your {lowered} processes."
    )
    canonical = f"{site_url.rstrip('/')}/category/{slug}"
    return {
        "title": title,
        "description": description,
        "open_graph": {"title": title, "description": description, "url": canonical, "type": "website"},
        "twitter": {"card": "summary_large_image", "title": title, "description": description},
        "canonical": canonical,
    }


def template_metadata(site_name: str, site_url: str, template: TemplateDisplay) -> dict[str, Any]:
    """Title, description and social cards for a template page."""
    title = f"{template.title} | {site_name}"
    description = _truncate(template.description)
    canonical = f"{site_url.rstrip('/')}/template/{template.slug}"
    return {
        "title": title,
        "description": description,
        "open_graph": {"title": title, "description": description, "url": canonical, "type": "article"},
        "twitter": {"card": "summary_large_image", "title": title, "description": description},
        "canonical": canonical,
    }
