"""flowhub - backend for a directory of automation workflow templates."""

__version__ = "0.1.0"
