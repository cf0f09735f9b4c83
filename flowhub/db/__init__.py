"""Database module for template persistence."""

from flowhub.db.engine import close_db, get_session, init_db
from flowhub.db.models import Template, TemplateStatus

__all__ = [
    "close_db",
    "get_session",
    "init_db",
    "Template",
    "TemplateStatus",
]
