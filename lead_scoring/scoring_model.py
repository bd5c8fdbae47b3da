"""
Lead Scoring Model for the Lead Engine.

Implements a fixed, auditable weighted-sum score over five factors and a
threshold ladder for priority tiers.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, Mapping, Optional

from .models import Lead, LeadPriority, utcnow
from .scoring_rules import (
    LEAD_SCORE_WEIGHTS,
    PRIORITY_THRESHOLDS,
    get_budget_score,
    get_company_size_score,
    get_industry_fit_score,
    get_timeline_score,
    get_urgency_score,
)

logger = logging.getLogger(__name__)

# Updates touching any of these fields trigger a re-score. Status is included
# because status changes can imply re-qualification.
RESCORE_FIELDS = frozenset({
    "status",
    "budget_range",
    "timeline",
    "company_size",
    "industry",
    "primary_challenge",
})


def should_rescore(changes: Iterable[str], fields: Iterable[str] = RESCORE_FIELDS) -> bool:
    """Check whether an update touches a scoring-relevant field."""
    relevant = set(fields)
    return any(name in relevant for name in changes)


@dataclass
class LeadScore:
    """Lead score result."""
    score: int  # 0-100
    priority: LeadPriority
    score_breakdown: Dict[str, int] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "score": self.score,
            "priority": self.priority.value,
            "score_breakdown": self.score_breakdown,
            "timestamp": self.timestamp.isoformat(),
        }


class LeadScorer:
    """
    Scores leads from their budget, timeline, company size, industry and
    urgency signals.

    Weights:
    - Budget: 40%
    - Timeline: 20%
    - Company size: 20%
    - Industry fit: 10%
    - Urgency: 10%

    Thresholds:
    - Score >= 80: Hot
    - Score >= 60: Warm
    - Score >= 40: Cool
    - Otherwise: Cold
    """

    def __init__(
        self,
        weights: Optional[Mapping[str, float]] = None,
        thresholds: Optional[Mapping[str, int]] = None,
    ):
        """
        Initialize the lead scorer.

        Args:
            weights: Optional factor weights to override defaults
            thresholds: Optional priority thresholds to override defaults
        """
        self.weights = dict(LEAD_SCORE_WEIGHTS)
        if weights:
            self.weights.update(weights)
        self.thresholds = dict(PRIORITY_THRESHOLDS)
        if thresholds:
            self.thresholds.update(thresholds)

    def factor_scores(self, lead: Lead) -> Dict[str, int]:
        """Compute each 0-100 sub-score for a lead."""
        return {
            "budget": get_budget_score(lead.budget_range),
            "timeline": get_timeline_score(lead.timeline),
            "company_size": get_company_size_score(lead.company_size),
            "industry_fit": get_industry_fit_score(lead.industry),
            "urgency": get_urgency_score(lead.timeline, lead.primary_challenge),
        }

    def calculate_lead_score(self, lead: Lead) -> int:
        """Weighted sum of the factor scores, rounded half up and clamped to 0-100."""
        factors = self.factor_scores(lead)
        total = sum(factors[name] * weight for name, weight in self.weights.items())
        return int(min(100, max(0, math.floor(total + 0.5))))

    def determine_priority(self, score: int) -> LeadPriority:
        """Map a final score onto a priority tier."""
        if score >= self.thresholds["hot"]:
            return LeadPriority.HOT
        if score >= self.thresholds["warm"]:
            return LeadPriority.WARM
        if score >= self.thresholds["cool"]:
            return LeadPriority.COOL
        return LeadPriority.COLD

    def score(self, lead: Lead) -> LeadScore:
        """Calculate the score, priority and per-factor breakdown."""
        value = self.calculate_lead_score(lead)
        return LeadScore(
            score=value,
            priority=self.determine_priority(value),
            score_breakdown=self.factor_scores(lead),
        )

    def apply(self, lead: Lead) -> Lead:
        """Set lead_score and priority on the lead from its current fields."""
        lead.lead_score = self.calculate_lead_score(lead)
        lead.priority = self.determine_priority(lead.lead_score)
        logger.debug(f"Scored lead {lead.id}: {lead.lead_score} ({lead.priority.value})")
        return lead

    def adjust_thresholds(self, hot: int = 80, warm: int = 60, cool: int = 40):
        """
        Adjust priority thresholds.

        Args:
            hot: Threshold for hot leads (default 80)
            warm: Threshold for warm leads (default 60)
            cool: Threshold for cool leads (default 40)
        """
        self.thresholds = {"hot": hot, "warm": warm, "cool": cool}
