"""
Tripsplit API package.

Provides the FastAPI application for the Tripsplit journey service.
"""

from .app import app, create_app

__all__ = ["app", "create_app"]
