"""REST API for the company knowledge base."""

from .main import app

__all__ = ["app"]
