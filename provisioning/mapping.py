"""
Lead to client and project mapping.

Lookup tables and record builders used when a lead completes discovery.
Tables are keyed by the service catalogue's project types; lead project
types without an entry fall back to the defaults.
"""

from datetime import date, timedelta
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from discovery.analytics import DiscoveryAnalytics
from lead_scoring.models import Lead, LeadPriority, utcnow

PROJECT_TYPE_MAPPING: Mapping[str, str] = MappingProxyType({
    "social_media_marketing": "social_media",
    "web_development": "web_development",
    "branding": "branding",
    "seo_optimization": "seo",
    "paid_advertising": "paid_ads",
    "content_marketing": "content_marketing",
    "full_service": "full_service",
})
DEFAULT_PROJECT_TYPE = "full_service"

PRIORITY_MAPPING: Mapping[str, str] = MappingProxyType({
    LeadPriority.HOT.value: "high",
    LeadPriority.WARM.value: "medium",
})
DEFAULT_PROJECT_PRIORITY = "low"

# Project duration in days per lead timeline
TIMELINE_DURATION_DAYS: Mapping[str, int] = MappingProxyType({
    "asap": 30,
    "1_month": 30,
    "3_months": 90,
    "6_months": 180,
    "1_year": 365,
    "1_plus_years": 365,
})
DEFAULT_DURATION_DAYS = 90

BUDGET_ESTIMATES: Mapping[str, int] = MappingProxyType({
    "under_10k": 8000,
    "10k_25k": 17500,
    "25k_50k": 37500,
    "50k_100k": 75000,
    "over_100k": 150000,
})
DEFAULT_BUDGET_ESTIMATE = 150000

CONTENT_REQUIREMENTS: Mapping[str, Mapping[str, Any]] = MappingProxyType({
    "social_media_marketing": {
        "posts_per_week": 5,
        "platforms": ["instagram", "facebook"],
        "content_types": ["post", "story", "reel"],
    },
    "web_development": {
        "posts_per_week": 0,
        "platforms": ["website"],
        "content_types": ["article"],
    },
    "branding": {
        "posts_per_week": 2,
        "platforms": ["instagram", "linkedin"],
        "content_types": ["post", "carousel"],
    },
    "seo_optimization": {
        "posts_per_week": 1,
        "platforms": ["website"],
        "content_types": ["article"],
    },
    "paid_advertising": {
        "posts_per_week": 3,
        "platforms": ["facebook", "instagram"],
        "content_types": ["ad", "carousel"],
    },
    "content_marketing": {
        "posts_per_week": 7,
        "platforms": ["instagram", "linkedin", "website"],
        "content_types": ["post", "article", "video"],
    },
    "full_service": {
        "posts_per_week": 10,
        "platforms": ["instagram", "facebook", "linkedin", "website"],
        "content_types": ["post", "story", "reel", "article", "video"],
    },
})

CLIENT_SOURCE = "converted_lead"
CLIENT_STATUS = "onboarding"
PROJECT_STATUS = "planning"
PROJECT_TAGS = ("auto-created", "from-discovery")


def _key(value) -> str:
    return getattr(value, "value", value)


def generate_content_requirements(project_type) -> Dict[str, Any]:
    template = CONTENT_REQUIREMENTS.get(_key(project_type), CONTENT_REQUIREMENTS["full_service"])
    return {
        "posts_per_week": template["posts_per_week"],
        "platforms": list(template["platforms"]),
        "content_types": list(template["content_types"]),
    }


def estimate_budget(budget_range) -> int:
    return BUDGET_ESTIMATES.get(_key(budget_range), DEFAULT_BUDGET_ESTIMATE)


def project_duration_days(timeline) -> int:
    return TIMELINE_DURATION_DAYS.get(_key(timeline), DEFAULT_DURATION_DAYS)


def build_client_record(lead: Lead) -> Dict[str, Any]:
    """Re-shape a lead's contact and company info into a client account."""
    return {
        "name": lead.name,
        "email": lead.email,
        "phone": lead.phone,
        "company": lead.company,
        "website": lead.website,
        "industry": lead.industry,
        "company_size": _key(lead.company_size),
        "project_type": _key(lead.project_type),
        "project_description": lead.project_description,
        "budget_range": _key(lead.budget_range),
        "source": CLIENT_SOURCE,
        "lead_id": lead.id,
        "status": CLIENT_STATUS,
        "created_at": utcnow().isoformat(),
    }


def build_project_record(
    lead: Lead,
    client_id: str,
    discovery_id: str,
    analytics: Optional[DiscoveryAnalytics] = None,
    today: Optional[date] = None,
    project_manager: str = "Auto-assigned",
    hourly_rate: float = 100,
) -> Dict[str, Any]:
    """
    Build the project record for a lead that completed discovery.

    Discovery analytics, when available, add complexity, team sizing,
    skills, roles and the timeline assessment.
    """
    today = today or utcnow().date()
    project_type = _key(lead.project_type)
    budget = estimate_budget(lead.budget_range)
    now = utcnow().isoformat()

    record: Dict[str, Any] = {
        "client_id": client_id,
        "discovery_id": discovery_id,
        "lead_id": lead.id,
        "name": f"{lead.company} - {project_type}",
        "description": lead.project_description,
        "type": PROJECT_TYPE_MAPPING.get(project_type, DEFAULT_PROJECT_TYPE),
        "status": PROJECT_STATUS,
        "priority": PRIORITY_MAPPING.get(_key(lead.priority), DEFAULT_PROJECT_PRIORITY),
        "start_date": today.isoformat(),
        "end_date": (today + timedelta(days=project_duration_days(lead.timeline))).isoformat(),
        "estimated_hours": round(budget / hourly_rate) if hourly_rate else 0,
        "project_manager": project_manager,
        "assigned_talent": [],
        "budget": budget,
        "hourly_rate": hourly_rate,
        "content_requirements": generate_content_requirements(project_type),
        "tags": [*PROJECT_TAGS, project_type],
        "notes": (
            f"Auto-created from discovery completion for lead {lead.name} ({lead.email}). "
            f"Primary challenge: {lead.primary_challenge}"
        ),
        "progress": 0,
        "created_at": now,
        "updated_at": now,
    }

    if analytics is not None:
        record.update({
            "complexity": analytics.project_complexity,
            "recommended_team_size": analytics.recommended_team_size,
            "required_skills": list(analytics.skills_required),
            "recommended_roles": [t.role for t in analytics.talent_requirements],
            "timeline_assessment": analytics.timeline_assessment,
        })

    return record
