"""
Discovery Module for the Lead Engine.

Structured client discovery sessions and the analytics derived from them.
"""

from .models import DiscoverySession, DiscoveryStatus
from .templates import DISCOVERY_SECTIONS, DISCOVERY_TEMPLATES, DiscoveryTemplate, new_discovery_session
from .analytics import DiscoveryAnalytics, TalentRequirement, generate_discovery_analytics
from .report import generate_discovery_report

__all__ = [
    "DiscoverySession",
    "DiscoveryStatus",
    "DISCOVERY_SECTIONS",
    "DISCOVERY_TEMPLATES",
    "DiscoveryTemplate",
    "new_discovery_session",
    "DiscoveryAnalytics",
    "TalentRequirement",
    "generate_discovery_analytics",
    "generate_discovery_report",
]
