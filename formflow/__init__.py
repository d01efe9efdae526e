"""Conditional visibility and multi-page navigation engine for published forms."""

from formflow.main import create_app

__all__ = ["create_app"]
