"""
API Routes for the Lead Engine.
"""

from . import leads, discovery

__all__ = ["leads", "discovery"]
