"""
Discovery Analytics.

Derives staffing and planning estimates from a discovery session: talent
requirements, project complexity, team size, skills and a timeline
assessment. Pure functions of the session.
"""

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from lead_scoring.models import parse_timestamp

from .models import DiscoverySession, TOTAL_SECTIONS


@dataclass
class TalentRequirement:
    """A role needed to deliver the project."""
    role: str
    skills_required: List[str]
    experience_level: str  # junior, mid, senior, expert
    hours_required: int
    priority: str  # must_have, nice_to_have

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role": self.role,
            "skills_required": list(self.skills_required),
            "experience_level": self.experience_level,
            "hours_required": self.hours_required,
            "priority": self.priority,
        }


@dataclass
class DiscoveryAnalytics:
    """Derived analytics for a discovery session."""
    session_id: str
    completion_rate: float
    time_spent: int  # minutes
    talent_requirements: List[TalentRequirement] = field(default_factory=list)
    project_complexity: str = "low"
    estimated_budget: float = 0
    recommended_team_size: int = 2
    skills_required: List[str] = field(default_factory=list)
    timeline_assessment: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "completion_rate": self.completion_rate,
            "time_spent": self.time_spent,
            "talent_requirements": [t.to_dict() for t in self.talent_requirements],
            "project_complexity": self.project_complexity,
            "estimated_budget": self.estimated_budget,
            "recommended_team_size": self.recommended_team_size,
            "skills_required": list(self.skills_required),
            "timeline_assessment": self.timeline_assessment,
        }


# Base role per discovery project type; other types add none.
PROJECT_TYPE_TALENT: Mapping[str, TalentRequirement] = MappingProxyType({
    "website": TalentRequirement(
        role="Web Developer",
        skills_required=["HTML/CSS", "JavaScript", "Responsive Design"],
        experience_level="mid",
        hours_required=80,
        priority="must_have",
    ),
    "app": TalentRequirement(
        role="Mobile Developer",
        skills_required=["React Native", "iOS/Android", "API Integration"],
        experience_level="senior",
        hours_required=120,
        priority="must_have",
    ),
    "marketing_campaign": TalentRequirement(
        role="Digital Marketing Specialist",
        skills_required=["Social Media", "Content Strategy", "Campaign Management"],
        experience_level="mid",
        hours_required=60,
        priority="must_have",
    ),
})

DESIGNER_TALENT = TalentRequirement(
    role="UI/UX Designer",
    skills_required=["Figma", "User Experience", "Visual Design"],
    experience_level="mid",
    hours_required=40,
    priority="must_have",
)

CONTENT_TALENT = TalentRequirement(
    role="Content Creator",
    skills_required=["Copywriting", "Content Strategy", "SEO"],
    experience_level="mid",
    hours_required=30,
    priority="nice_to_have",
)

COMPLEXITY_WEIGHTS: Mapping[str, int] = MappingProxyType({
    "project_scope": 2,
    "integrations": 3,
    "performance_requirements": 2,
    "content_types": 1,
})

# (maximum score, complexity), checked top-down
COMPLEXITY_LADDER: Tuple[Tuple[int, str], ...] = (
    (10, "low"),
    (20, "medium"),
    (35, "high"),
)
COMPLEXITY_CEILING = "very_high"

MIN_TEAM_SIZE = 2
MAX_TEAM_SIZE = 8

# (days under, assessment), checked top-down
TIMELINE_ASSESSMENTS: Tuple[Tuple[int, str], ...] = (
    (30, "Very Tight - Additional resources recommended"),
    (60, "Tight - Well-planned execution needed"),
    (120, "Reasonable - Good timeline for quality delivery"),
)
TIMELINE_COMFORTABLE = "Comfortable - Ample time for iterative improvement"
TIMELINE_UNKNOWN = "Unknown - Timeline dates not provided"


def _copy(requirement: TalentRequirement) -> TalentRequirement:
    return TalentRequirement(
        role=requirement.role,
        skills_required=list(requirement.skills_required),
        experience_level=requirement.experience_level,
        hours_required=requirement.hours_required,
        priority=requirement.priority,
    )


def analyze_talent_requirements(session: DiscoverySession) -> List[TalentRequirement]:
    requirements: List[TalentRequirement] = []

    base = PROJECT_TYPE_TALENT.get(session.project_overview.project_type)
    if base:
        requirements.append(_copy(base))

    if session.content_creative.visual_style.design_inspiration:
        requirements.append(_copy(DESIGNER_TALENT))

    if session.content_creative.content_strategy.content_types:
        requirements.append(_copy(CONTENT_TALENT))

    return requirements


def complexity_score(session: DiscoverySession) -> int:
    technical = session.technical_requirements
    counts = {
        "project_scope": len(session.project_overview.project_scope),
        "integrations": len(technical.integrations),
        "performance_requirements": len(technical.performance_requirements),
        "content_types": len(session.content_creative.content_strategy.content_types),
    }
    return sum(COMPLEXITY_WEIGHTS[name] * count for name, count in counts.items())


def assess_project_complexity(session: DiscoverySession) -> str:
    score = complexity_score(session)
    for maximum, level in COMPLEXITY_LADDER:
        if score <= maximum:
            return level
    return COMPLEXITY_CEILING


def extract_required_skills(session: DiscoverySession) -> List[str]:
    """De-duplicated skills in first-seen order."""
    technical = session.technical_requirements
    candidates = [
        *technical.platform_preferences,
        *(integration.system for integration in technical.integrations),
        *session.content_creative.content_strategy.content_types,
    ]
    return list(dict.fromkeys(candidates))


def calculate_team_size(requirements: List[TalentRequirement]) -> int:
    return max(MIN_TEAM_SIZE, min(MAX_TEAM_SIZE, len(requirements)))


def _timeline_days(session: DiscoverySession) -> Optional[int]:
    timeline = session.project_overview.timeline
    try:
        start = parse_timestamp(timeline.start_date)
        launch = parse_timestamp(timeline.desired_launch)
    except ValueError:
        return None
    if start is None or launch is None:
        return None
    return math.ceil((launch - start).total_seconds() / 86400)


def assess_timeline(session: DiscoverySession) -> str:
    days = _timeline_days(session)
    if days is None:
        return TIMELINE_UNKNOWN
    for limit, assessment in TIMELINE_ASSESSMENTS:
        if days < limit:
            return assessment
    return TIMELINE_COMFORTABLE


def calculate_time_spent(session: DiscoverySession) -> int:
    """Minutes between creation and the last update, rounded up."""
    return math.ceil((session.updated_at - session.created_at).total_seconds() / 60)


def generate_discovery_analytics(session: DiscoverySession) -> DiscoveryAnalytics:
    """Compute analytics for a discovery session."""
    talent = analyze_talent_requirements(session)
    return DiscoveryAnalytics(
        session_id=session.id,
        completion_rate=len(set(session.completed_sections)) * 100 / TOTAL_SECTIONS,
        time_spent=calculate_time_spent(session),
        talent_requirements=talent,
        project_complexity=assess_project_complexity(session),
        estimated_budget=session.budget_resources.total_budget.amount,
        recommended_team_size=calculate_team_size(talent),
        skills_required=extract_required_skills(session),
        timeline_assessment=assess_timeline(session),
    )
