"""
Lead Scoring Module for the Lead Engine.

This module provides lead intake and qualification:
- Lead data model and row serialization
- Intake validation
- Lead scoring (0-100 scale) and priority tiers
- Aggregate lead analytics
"""

from .errors import LeadEngineError, NotFoundError, PersistenceError, ProvisioningError, ValidationError
from .models import (
    BudgetRange,
    CompanySize,
    Lead,
    LeadInput,
    LeadPriority,
    LeadSource,
    LeadStatus,
    ProjectType,
    Timeline,
)
from .scoring_model import LeadScore, LeadScorer, RESCORE_FIELDS, should_rescore
from .validation import validate_lead_input
from .analytics import DashboardStats, LeadAnalytics, compute_dashboard_stats, compute_lead_analytics

__all__ = [
    "LeadEngineError",
    "NotFoundError",
    "PersistenceError",
    "ProvisioningError",
    "ValidationError",
    "BudgetRange",
    "CompanySize",
    "Lead",
    "LeadInput",
    "LeadPriority",
    "LeadSource",
    "LeadStatus",
    "ProjectType",
    "Timeline",
    "LeadScore",
    "LeadScorer",
    "RESCORE_FIELDS",
    "should_rescore",
    "validate_lead_input",
    "DashboardStats",
    "LeadAnalytics",
    "compute_dashboard_stats",
    "compute_lead_analytics",
]
