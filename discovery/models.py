"""
Discovery session document model.

A discovery session is a structured questionnaire in ten sections, filled
in incrementally with a prospect. Every model accepts both snake_case and
camelCase keys and serializes to camelCase for storage.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from lead_scoring.errors import ValidationError
from lead_scoring.models import utcnow

TOTAL_SECTIONS = 10


class DiscoveryStatus(str, Enum):
    DRAFT = "draft"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class DiscoveryModel(BaseModel):
    """Base for discovery documents: camelCase aliases, snake_case names."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


# ── Section 1: Company Fundamentals ──

class Stakeholder(DiscoveryModel):
    name: str = ""
    role: str = ""
    decision_making_power: str = "medium"
    contact_info: Optional[str] = None


class CompanyFundamentals(DiscoveryModel):
    company_name: str = ""
    industry: str = ""
    company_size: str = "medium"
    founded_year: Optional[str] = None
    headquarters: str = ""
    business_model: str = ""
    mission_statement: Optional[str] = None
    core_values: List[str] = []
    unique_selling_proposition: str = ""
    key_stakeholders: List[Stakeholder] = []


# ── Section 2: Project Overview ──

class ProjectTimeline(DiscoveryModel):
    start_date: str = ""
    desired_launch: str = ""
    flexibility: str = "flexible"


class ProjectOverview(DiscoveryModel):
    project_name: str = ""
    project_type: str = "website"  # rebrand, website, app, marketing_campaign, ecommerce, other
    project_description: str = ""
    key_objectives: List[str] = []
    timeline: ProjectTimeline = Field(default_factory=ProjectTimeline)
    project_scope: List[str] = []
    success_metrics: List[str] = []
    constraints: List[str] = []


# ── Section 3: Target Audience ──

class Demographics(DiscoveryModel):
    age_range: str = ""
    gender: str = ""
    income: str = ""
    education: str = ""
    occupation: str = ""


class AudienceSegment(DiscoveryModel):
    demographics: Demographics = Field(default_factory=Demographics)
    platforms: List[str] = []
    content_preferences: List[str] = []


class CustomerPersona(DiscoveryModel):
    name: str = ""
    description: str = ""
    goals: List[str] = []
    frustrations: List[str] = []
    preferred_channels: List[str] = []


class TargetAudience(DiscoveryModel):
    primary_audience: AudienceSegment = Field(default_factory=AudienceSegment)
    secondary_audience: Optional[AudienceSegment] = None
    customer_personas: List[CustomerPersona] = []
    geographic_target: List[str] = []
    psychographics: List[str] = []
    behavior_patterns: List[str] = []
    pain_points: List[str] = []
    customer_journey: List[str] = []


# ── Section 4: Current State ──

class SocialPresence(DiscoveryModel):
    platform: str = ""
    handle: str = ""
    followers: int = 0
    engagement: float = 0.0
    content_type: List[str] = []
    posting_frequency: str = ""


class ExistingBranding(DiscoveryModel):
    has_logo: bool = False
    has_brand_guidelines: bool = False
    brand_assets: List[str] = []
    brand_perception: str = ""


class MarketingChannel(DiscoveryModel):
    channel: str = ""
    budget: float = 0.0
    performance: str = "average"
    roi: Optional[float] = None


class CurrentState(DiscoveryModel):
    current_website: Optional[str] = None
    social_media_presence: List[SocialPresence] = []
    existing_branding: ExistingBranding = Field(default_factory=ExistingBranding)
    current_marketing: List[MarketingChannel] = []
    analytics_data: Optional[Dict[str, Any]] = None
    current_challenges: List[str] = []
    what_is_working: List[str] = []
    what_is_not_working: List[str] = []


# ── Section 5: Goals & KPIs ──

class KPI(DiscoveryModel):
    name: str = ""
    current_value: Optional[float] = None
    target_value: float = 0.0
    measurement: str = ""
    frequency: str = ""


class GoalsKPIs(DiscoveryModel):
    business_goals: List[Dict[str, Any]] = []
    marketing_goals: List[Dict[str, Any]] = []
    kpis: List[KPI] = []
    success_definition: str = ""
    timeframe: str = ""
    priority_level: str = "medium"


# ── Section 6: Competition & Market ──

class Competitor(DiscoveryModel):
    name: str = ""
    website: str = ""
    strengths: List[str] = []
    weaknesses: List[str] = []
    market_share: Optional[str] = None
    pricing_strategy: Optional[str] = None


class CompetitionMarket(DiscoveryModel):
    direct_competitors: List[Competitor] = []
    indirect_competitors: List[Competitor] = []
    market_position: str = ""
    differentiators: List[str] = []
    competitive_advantages: List[str] = []
    market_size: str = ""
    market_trends: List[str] = []
    threat_assessment: List[str] = []
    opportunities: List[str] = []


# ── Section 7: Budget & Resources ──

class TotalBudget(DiscoveryModel):
    amount: float = 0.0
    currency: str = "INR"
    flexibility: str = "flexible"


class BudgetCategory(DiscoveryModel):
    category: str = ""
    allocation: float = 0.0
    priority: str = "medium"


class InternalResource(DiscoveryModel):
    role: str = ""
    availability: str = ""
    skill_level: str = ""
    involvement: str = ""


class BudgetResources(DiscoveryModel):
    total_budget: TotalBudget = Field(default_factory=TotalBudget)
    budget_breakdown: List[BudgetCategory] = []
    payment_terms: str = ""
    internal_resources: List[InternalResource] = []
    external_resources: Optional[List[str]] = None
    roi_expectations: str = ""
    budget_approval_process: str = ""


# ── Section 8: Technical Requirements ──

class Integration(DiscoveryModel):
    system: str = ""
    purpose: str = ""
    priority: str = "must_have"
    api_available: bool = False


class PerformanceRequirement(DiscoveryModel):
    metric: str = ""
    target: str = ""
    priority: str = "medium"


class TechnicalRequirements(DiscoveryModel):
    platform_preferences: List[str] = []
    hosting_requirements: Optional[Dict[str, Any]] = None
    integrations: List[Integration] = []
    security_requirements: List[str] = []
    performance_requirements: List[PerformanceRequirement] = []
    accessibility_requirements: List[str] = []
    device_support: List[str] = []
    browser_support: List[str] = []
    future_scalability: List[str] = []


# ── Section 9: Content & Creative ──

class ToneOfVoice(DiscoveryModel):
    primary: str = ""
    characteristics: List[str] = []
    avoid_list: List[str] = []
    examples: List[str] = []


class VisualStyle(DiscoveryModel):
    color_preferences: List[str] = []
    font_preferences: List[str] = []
    image_style: List[str] = []
    design_inspiration: List[str] = []
    brand_moodboard: Optional[str] = None


class ContentStrategy(DiscoveryModel):
    content_types: List[str] = []
    posting_frequency: str = ""
    content_themes: List[str] = []
    seasonal_content: bool = False
    user_generated_content: bool = False
    content_workflow: str = ""


class ContentCreative(DiscoveryModel):
    brand_personality: List[str] = []
    tone_of_voice: ToneOfVoice = Field(default_factory=ToneOfVoice)
    visual_style: VisualStyle = Field(default_factory=VisualStyle)
    content_strategy: ContentStrategy = Field(default_factory=ContentStrategy)
    existing_assets: List[Dict[str, Any]] = []
    content_gaps: List[str] = []
    creative_preferences: List[str] = []
    brand_guidelines: Optional[str] = None


# ── Section 10: Next Steps ──

class Action(DiscoveryModel):
    task: str = ""
    owner: str = ""
    due_date: str = ""
    priority: str = "medium"
    status: str = "pending"


class ProjectPlan(DiscoveryModel):
    phases: List[Dict[str, Any]] = []
    milestones: List[Dict[str, Any]] = []
    dependencies: List[str] = []


class CommunicationPlan(DiscoveryModel):
    frequency: str = ""
    channels: List[str] = []
    reporting_format: str = ""
    meeting_schedule: str = ""
    point_of_contact: str = ""


class NextSteps(DiscoveryModel):
    immediate_actions: List[Action] = []
    decision_makers: List[str] = []
    approval_process: str = ""
    timeline: ProjectPlan = Field(default_factory=ProjectPlan)
    communication: CommunicationPlan = Field(default_factory=CommunicationPlan)
    risk_factors: List[str] = []
    success_factors: List[str] = []
    follow_up_date: str = ""


# ── Session ──

class DiscoverySession(DiscoveryModel):
    """A discovery session with its ten questionnaire sections."""

    id: str
    client_id: str
    lead_id: Optional[str] = None
    status: DiscoveryStatus = DiscoveryStatus.DRAFT
    template: str = "custom"
    current_section: int = Field(default=1, ge=1, le=TOTAL_SECTIONS)
    completed_sections: List[int] = []
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None
    assigned_to: str = ""

    company_fundamentals: CompanyFundamentals = Field(default_factory=CompanyFundamentals)
    project_overview: ProjectOverview = Field(default_factory=ProjectOverview)
    target_audience: TargetAudience = Field(default_factory=TargetAudience)
    current_state: CurrentState = Field(default_factory=CurrentState)
    goals_kpis: GoalsKPIs = Field(default_factory=GoalsKPIs, alias="goalsKPIs")
    competition_market: CompetitionMarket = Field(default_factory=CompetitionMarket)
    budget_resources: BudgetResources = Field(default_factory=BudgetResources)
    technical_requirements: TechnicalRequirements = Field(default_factory=TechnicalRequirements)
    content_creative: ContentCreative = Field(default_factory=ContentCreative)
    next_steps: NextSteps = Field(default_factory=NextSteps)

    @field_validator("completed_sections")
    @classmethod
    def _check_sections(cls, value: List[int]) -> List[int]:
        out_of_range = [n for n in value if not 1 <= n <= TOTAL_SECTIONS]
        if out_of_range:
            raise ValueError(f"sections must be between 1 and {TOTAL_SECTIONS}: {out_of_range}")
        return sorted(set(value))

    @property
    def is_archived(self) -> bool:
        return self.status == DiscoveryStatus.ARCHIVED

    @property
    def completion_rate(self) -> float:
        """Fraction of the ten sections completed (0.0 to 1.0)."""
        return len(set(self.completed_sections)) / TOTAL_SECTIONS

    def _ensure_writable(self):
        if self.is_archived:
            raise ValidationError([f"Discovery session {self.id} is archived and read-only"])

    def complete_section(self, section: int, now: Optional[datetime] = None) -> "DiscoverySession":
        """
        Mark a section as completed.

        Completing the first section moves a draft to in_progress; completing
        the last outstanding one marks the session completed.
        """
        self._ensure_writable()
        if not 1 <= section <= TOTAL_SECTIONS:
            raise ValidationError([f"Section must be between 1 and {TOTAL_SECTIONS}: {section}"])

        now = now or utcnow()
        if section not in self.completed_sections:
            self.completed_sections = sorted([*self.completed_sections, section])
        if section >= self.current_section:
            self.current_section = min(section + 1, TOTAL_SECTIONS)

        if len(set(self.completed_sections)) == TOTAL_SECTIONS:
            self.status = DiscoveryStatus.COMPLETED
            self.completed_at = self.completed_at or now
        elif self.status == DiscoveryStatus.DRAFT:
            self.status = DiscoveryStatus.IN_PROGRESS

        self.updated_at = now
        return self

    def with_updates(self, changes: Mapping[str, Any], now: Optional[datetime] = None) -> "DiscoverySession":
        """
        Return a copy with top-level fields replaced.

        Keys may be snake_case names or camelCase aliases. Archived sessions
        reject every update.
        """
        self._ensure_writable()

        names = {info.alias or to_camel(name): name for name, info in type(self).model_fields.items()}
        names.update({name: name for name in type(self).model_fields})

        errors = []
        normalized: Dict[str, Any] = {}
        for key, value in changes.items():
            name = names.get(key)
            if name is None:
                errors.append(f"Unknown discovery field: {key}")
            elif name in ("id", "created_at"):
                errors.append(f"{name} cannot be changed")
            else:
                normalized[name] = value
        if errors:
            raise ValidationError(errors)

        merged = {**self.model_dump(), **normalized, "updated_at": now or utcnow()}
        try:
            return type(self).model_validate(merged)
        except PydanticValidationError as e:
            raise ValidationError([
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            ]) from e

    def to_document(self) -> Dict[str, Any]:
        """JSON-compatible camelCase document."""
        return self.model_dump(mode="json", by_alias=True)
