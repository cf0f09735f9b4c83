"""URL slugs for template titles and category names."""

import re

from flowhub.logging import get_logger

logger = get_logger(__name__)

UNTITLED = "untitled"

TEMPLATE_ID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)

_SEPARATORS = re.compile(r"[&\s]+")
_DISALLOWED = re.compile(r"[^a-z0-9-]")
_HYPHEN_RUNS = re.compile(r"-+")
_AND_WORD = re.compile(r"\bAnd\b")


def to_slug(title: object) -> str:
    """Project a title onto ``[a-z0-9-]``.

    Whitespace and ``&`` become hyphens, everything else outside the
    alphabet is dropped. Never returns an empty string.

    >>> to_slug("Sales & Marketing")
    'sales-marketing'
    """
    if not isinstance(title, str) or not title:
        logger.warning("slug_invalid_input", value=repr(title))
        return UNTITLED

    slug = _SEPARATORS.sub("-", title.lower())
    slug = _DISALLOWED.sub("", slug)
    slug = _HYPHEN_RUNS.sub("-", slug).strip("-")

    if not slug:
        logger.warning("slug_empty", value=title)
        return UNTITLED
    return slug


def slug_to_title_guess(slug: str) -> str:
    """Best-effort title for a slug, used to narrow a title search.

    Casing and punctuation are not recoverable, and every standalone
    "and" comes back as "&".

    >>> slug_to_title_guess("sales-and-marketing")
    'Sales & Marketing'
    """
    words = [word[:1].upper() + word[1:] for word in slug.split("-")]
    return _AND_WORD.sub("&", " ".join(words))


def is_template_id(value: str) -> bool:
    """True when ``value`` has the 8-4-4-4-12 hex shape of a template id."""
    return bool(TEMPLATE_ID_RE.fullmatch(value))
