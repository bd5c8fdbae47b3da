"""
Lead data model for the Lead Engine.

Leads are stored as flat key-value rows in the tabular store, so every
field has a cell-friendly representation (enum values, ISO timestamps,
JSON-encoded lists and dicts).
"""

import json
import random
import string
import time
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from .errors import ValidationError


class LeadStatus(str, Enum):
    """Lead status in the pipeline."""
    NEW = "new"
    CONTACTED = "contacted"
    QUALIFIED = "qualified"
    DISCOVERY_SCHEDULED = "discovery_scheduled"
    DISCOVERY_COMPLETED = "discovery_completed"
    PROPOSAL_SENT = "proposal_sent"
    NEGOTIATING = "negotiating"
    WON = "won"
    LOST = "lost"
    ARCHIVED = "archived"


class LeadSource(str, Enum):
    """Where the lead came from."""
    WEBSITE_FORM = "website_form"
    REFERRAL = "referral"
    SOCIAL_MEDIA = "social_media"
    GOOGLE_ADS = "google_ads"
    COLD_OUTREACH = "cold_outreach"
    EVENT = "event"
    PARTNER = "partner"
    OTHER = "other"


class ProjectType(str, Enum):
    """Project classification captured on the intake form."""
    WEBSITE_DESIGN = "website_design"
    ECOMMERCE = "ecommerce"
    MOBILE_APP = "mobile_app"
    WEB_APP = "web_app"
    BRANDING = "branding"
    DIGITAL_MARKETING = "digital_marketing"
    FULL_SERVICE = "full_service"
    CONSULTATION = "consultation"
    MAINTENANCE = "maintenance"
    OTHER = "other"


class BudgetRange(str, Enum):
    """Budget bands offered on the intake form."""
    UNDER_10K = "under_10k"
    RANGE_10K_25K = "10k_25k"
    RANGE_25K_50K = "25k_50k"
    RANGE_50K_100K = "50k_100k"
    RANGE_100K_250K = "100k_250k"
    OVER_250K = "over_250k"
    NOT_DISCLOSED = "not_disclosed"


class Timeline(str, Enum):
    """Desired start timeline."""
    ASAP = "asap"
    ONE_MONTH = "1_month"
    TWO_THREE_MONTHS = "2_3_months"
    THREE_SIX_MONTHS = "3_6_months"
    SIX_MONTHS_PLUS = "6_months_plus"
    FLEXIBLE = "flexible"


class CompanySize(str, Enum):
    """Company size used for qualification."""
    STARTUP = "startup"
    SMALL_BUSINESS = "small_business"
    MEDIUM_BUSINESS = "medium_business"
    ENTERPRISE = "enterprise"
    AGENCY = "agency"
    NONPROFIT = "nonprofit"
    INDIVIDUAL = "individual"


class LeadPriority(str, Enum):
    """Priority tier derived from the lead score."""
    HOT = "hot"
    WARM = "warm"
    COOL = "cool"
    COLD = "cold"


ENUM_FIELDS: Dict[str, type] = {
    "status": LeadStatus,
    "priority": LeadPriority,
    "source": LeadSource,
    "project_type": ProjectType,
    "budget_range": BudgetRange,
    "timeline": Timeline,
    "company_size": CompanySize,
}

DATETIME_FIELDS = (
    "created_at",
    "updated_at",
    "last_contact_date",
    "follow_up_date",
    "discovery_completed_at",
    "proposal_sent_at",
    "converted_to_client_at",
)

LIST_FIELDS = ("additional_challenges", "tags")
DICT_FIELDS = ("custom_fields",)

# Empty cells read back as None for these.
OPTIONAL_TEXT_FIELDS = (
    "phone",
    "website",
    "job_title",
    "industry",
    "specific_requirements",
    "assigned_to",
    "next_action",
    "client_id",
    "project_id",
)

# Never set through an update: computed by the scorer or fixed at creation.
COMPUTED_FIELDS = frozenset({"lead_score", "priority"})
IMMUTABLE_FIELDS = frozenset({"id", "created_at"})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO timestamp (or pass a datetime through); naive values are UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_base36(number: int) -> str:
    alphabet = string.digits + string.ascii_lowercase
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(alphabet[remainder])
    return "".join(reversed(digits))


def random_base36(length: int) -> str:
    return "".join(random.choices(string.digits + string.ascii_lowercase, k=length))


def generate_lead_id() -> str:
    """Generate a lead id: lead_<base36 millis>_<5 random chars>."""
    return f"lead_{to_base36(int(time.time() * 1000))}_{random_base36(5)}"


def _coerce(name: str, value: Any) -> Any:
    """Coerce a raw value (form input or sheet cell) to the field's type."""
    if name in ENUM_FIELDS:
        return ENUM_FIELDS[name](value)
    if name in DATETIME_FIELDS:
        return parse_timestamp(value)
    if name in LIST_FIELDS:
        if value is None or value == "":
            return []
        if isinstance(value, str):
            value = json.loads(value)
        return list(value)
    if name in DICT_FIELDS:
        if value is None or value == "":
            return {}
        if isinstance(value, str):
            value = json.loads(value)
        return dict(value)
    if name == "lead_score":
        return int(value or 0)
    if name in OPTIONAL_TEXT_FIELDS and value == "":
        return None
    return value


def _serialize(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    return value


@dataclass
class LeadInput:
    """Raw form submission for a new lead."""
    name: str = ""
    email: str = ""
    company: str = ""
    company_size: str = CompanySize.SMALL_BUSINESS.value
    project_type: str = ProjectType.OTHER.value
    project_description: str = ""
    budget_range: str = BudgetRange.NOT_DISCLOSED.value
    timeline: str = Timeline.FLEXIBLE.value
    primary_challenge: str = ""
    phone: Optional[str] = None
    website: Optional[str] = None
    job_title: Optional[str] = None
    industry: Optional[str] = None
    additional_challenges: List[str] = field(default_factory=list)
    specific_requirements: Optional[str] = None
    source: Optional[str] = None
    custom_fields: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LeadInput":
        """Build from a mapping, ignoring keys that are not input fields."""
        known = {f.name for f in fields(cls)}
        values = {k: _serialize(v) for k, v in data.items() if k in known and v is not None}
        return cls(**values)


@dataclass
class Lead:
    """A scored lead."""

    # Core identifiers
    id: str

    # Contact information
    name: str
    email: str
    company: str

    # Classification
    company_size: CompanySize
    project_type: ProjectType
    budget_range: BudgetRange
    timeline: Timeline

    # Challenges and needs
    project_description: str
    primary_challenge: str

    phone: Optional[str] = None
    website: Optional[str] = None
    job_title: Optional[str] = None
    industry: Optional[str] = None
    additional_challenges: List[str] = field(default_factory=list)
    specific_requirements: Optional[str] = None

    # Lead management
    status: LeadStatus = LeadStatus.NEW
    priority: LeadPriority = LeadPriority.COOL
    source: LeadSource = LeadSource.WEBSITE_FORM
    lead_score: int = 0

    # Assignment and tracking
    assigned_to: Optional[str] = None
    next_action: Optional[str] = None
    follow_up_date: Optional[datetime] = None
    notes: str = ""
    tags: List[str] = field(default_factory=list)
    custom_fields: Dict[str, Any] = field(default_factory=dict)

    # Timestamps
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    last_contact_date: Optional[datetime] = None

    # Conversion tracking
    discovery_completed_at: Optional[datetime] = None
    proposal_sent_at: Optional[datetime] = None
    converted_to_client_at: Optional[datetime] = None
    client_id: Optional[str] = None
    project_id: Optional[str] = None

    @classmethod
    def from_input(
        cls,
        data: LeadInput,
        lead_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> "Lead":
        """Create a new lead (status=new) from a validated form submission."""
        now = now or utcnow()
        return cls(
            id=lead_id or generate_lead_id(),
            name=data.name.strip(),
            email=data.email.strip(),
            company=data.company.strip(),
            company_size=CompanySize(data.company_size),
            project_type=ProjectType(data.project_type),
            budget_range=BudgetRange(data.budget_range),
            timeline=Timeline(data.timeline),
            project_description=data.project_description.strip(),
            primary_challenge=data.primary_challenge.strip(),
            phone=data.phone,
            website=data.website,
            job_title=data.job_title,
            industry=data.industry,
            additional_challenges=list(data.additional_challenges),
            specific_requirements=data.specific_requirements,
            source=LeadSource(data.source) if data.source else LeadSource.WEBSITE_FORM,
            custom_fields=dict(data.custom_fields),
            created_at=now,
            updated_at=now,
        )

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Lead":
        """Parse a stored row. Raises ValueError/KeyError on malformed rows."""
        known = {f.name for f in fields(cls)}
        values = {k: _coerce(k, v) for k, v in row.items() if k in known}
        return cls(**values)

    def to_row(self) -> Dict[str, Any]:
        """Cell-friendly representation: lists and dicts as JSON strings."""
        row: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name in LIST_FIELDS or f.name in DICT_FIELDS:
                row[f.name] = json.dumps(value)
            else:
                row[f.name] = _serialize(value)
        return row

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {f.name: _serialize(getattr(self, f.name)) for f in fields(self)}

    def with_changes(self, changes: Mapping[str, Any]) -> "Lead":
        """
        Return a copy with the given field changes applied.

        Computed fields (lead_score, priority) and immutable fields are
        rejected; so are unknown fields and invalid enum values.
        """
        known = {f.name for f in fields(self)}
        errors = []
        coerced: Dict[str, Any] = {}
        for name, value in changes.items():
            if name in COMPUTED_FIELDS:
                errors.append(f"{name} is computed and cannot be set directly")
            elif name in IMMUTABLE_FIELDS:
                errors.append(f"{name} cannot be changed")
            elif name not in known:
                errors.append(f"Unknown lead field: {name}")
            else:
                try:
                    coerced[name] = _coerce(name, value)
                except (ValueError, TypeError):
                    errors.append(f"Invalid value for {name}: {value!r}")
        if errors:
            raise ValidationError(errors)
        return replace(self, **coerced)
