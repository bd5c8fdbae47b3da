"""
API Module for the Lead Engine.

FastAPI application with routes for:
- Lead intake and management
- Discovery sessions
- Lead analytics
"""

from .main import create_app, app

__all__ = ["create_app", "app"]
