"""
Discovery section titles, templates and the empty-session factory.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import List, Mapping, Optional

from lead_scoring.errors import ValidationError
from lead_scoring.models import utcnow

from .models import DiscoverySession, DiscoveryStatus

DISCOVERY_SECTIONS: Mapping[int, str] = MappingProxyType({
    1: "Company Fundamentals",
    2: "Project Overview",
    3: "Target Audience",
    4: "Current State Analysis",
    5: "Goals & KPIs",
    6: "Competition & Market",
    7: "Budget & Resources",
    8: "Technical Requirements",
    9: "Content & Creative",
    10: "Next Steps",
})


class DiscoveryTemplate(str, Enum):
    ECOMMERCE = "ecommerce"
    SAAS = "saas"
    LOCAL_BUSINESS = "local_business"
    ENTERPRISE = "enterprise"
    STARTUP = "startup"
    CUSTOM = "custom"


@dataclass(frozen=True)
class TemplateConfig:
    name: str
    description: str
    sections: List[int] = field(default_factory=lambda: list(DISCOVERY_SECTIONS))

    def section_titles(self) -> List[str]:
        return [DISCOVERY_SECTIONS[n] for n in self.sections]


DISCOVERY_TEMPLATES: Mapping[DiscoveryTemplate, TemplateConfig] = MappingProxyType({
    DiscoveryTemplate.ECOMMERCE: TemplateConfig(
        name="E-commerce Business",
        description="Online retail, marketplace, or e-commerce platform",
    ),
    DiscoveryTemplate.SAAS: TemplateConfig(
        name="SaaS Platform",
        description="Software as a Service or technology platform",
    ),
    DiscoveryTemplate.LOCAL_BUSINESS: TemplateConfig(
        name="Local Business",
        description="Local service provider or brick-and-mortar business",
        sections=[1, 2, 3, 4, 5, 6, 7, 9, 10],
    ),
    DiscoveryTemplate.ENTERPRISE: TemplateConfig(
        name="Enterprise",
        description="Large corporation or enterprise-level project",
    ),
    DiscoveryTemplate.STARTUP: TemplateConfig(
        name="Startup",
        description="Early-stage startup or new venture",
        sections=[1, 2, 3, 5, 7, 9, 10],
    ),
    DiscoveryTemplate.CUSTOM: TemplateConfig(
        name="Custom Discovery",
        description="Fully customizable discovery process",
    ),
})


def get_template(template) -> TemplateConfig:
    try:
        return DISCOVERY_TEMPLATES[DiscoveryTemplate(template)]
    except ValueError:
        raise ValidationError([f"Invalid discovery template: {template}"])


_last_millis = 0


def _next_millis() -> int:
    """Millisecond timestamp, bumped so ids stay unique within the process."""
    global _last_millis
    millis = max(int(time.time() * 1000), _last_millis + 1)
    _last_millis = millis
    return millis


def new_discovery_session(
    client_id: Optional[str] = None,
    lead_id: Optional[str] = None,
    template: str = DiscoveryTemplate.CUSTOM.value,
    assigned_to: str = "current-user",
    now: Optional[datetime] = None,
) -> DiscoverySession:
    """
    Build an empty draft session.

    Sessions without a client get an anonymous client id. Budget currency
    defaults to INR.
    """
    get_template(template)
    now = now or utcnow()
    millis = _next_millis()
    return DiscoverySession(
        id=f"discovery-{millis}",
        client_id=client_id or f"anonymous-{millis}",
        lead_id=lead_id,
        status=DiscoveryStatus.DRAFT,
        template=DiscoveryTemplate(template).value,
        current_section=1,
        completed_sections=[],
        created_at=now,
        updated_at=now,
        assigned_to=assigned_to,
    )
