"""
TrackWise API package.

Provides the FastAPI application for the TrackWise auth and session service.
"""

from .app import app, create_app

__all__ = ["app", "create_app"]
