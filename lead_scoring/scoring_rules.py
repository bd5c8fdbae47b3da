"""
Scoring primitives for lead qualification.

Each factor maps one lead signal to a 0-100 sub-score. Lookup tables and
thresholds are module constants so they can be inspected and tuned as data.
"""

from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Tuple

# Budget bands in INR: range -> (min, max)
BUDGET_VALUES: Mapping[str, Tuple[int, int]] = MappingProxyType({
    "under_10k": (0, 10000),
    "10k_25k": (10000, 25000),
    "25k_50k": (25000, 50000),
    "50k_100k": (50000, 100000),
    "100k_250k": (100000, 250000),
    "over_250k": (250000, 1000000),
    "not_disclosed": (0, 0),
})

# (minimum midpoint, score), checked top-down
BUDGET_SCORE_LADDER: Tuple[Tuple[int, int], ...] = (
    (100000, 100),
    (50000, 80),
    (25000, 60),
    (10000, 40),
)
BUDGET_SCORE_FLOOR = 20

TIMELINE_DAYS: Mapping[str, int] = MappingProxyType({
    "asap": 7,
    "1_month": 30,
    "2_3_months": 75,
    "3_6_months": 135,
    "6_months_plus": 365,
    "flexible": 180,
})

# (maximum days, score), checked top-down
TIMELINE_SCORE_LADDER: Tuple[Tuple[int, int], ...] = (
    (30, 100),
    (90, 80),
    (180, 60),
    (365, 40),
)
TIMELINE_SCORE_FLOOR = 20

COMPANY_SIZE_SCORES: Mapping[str, int] = MappingProxyType({
    "enterprise": 100,
    "medium_business": 80,
    "agency": 70,
    "small_business": 60,
    "startup": 50,
    "nonprofit": 40,
    "individual": 30,
})
COMPANY_SIZE_DEFAULT = 50

HIGH_FIT_INDUSTRIES = frozenset({"Technology", "E-commerce", "Healthcare", "Finance"})
INDUSTRY_FIT_HIGH = 100
INDUSTRY_FIT_DEFAULT = 70

URGENCY_BASE = 50
URGENCY_TIMELINE_BONUS: Mapping[str, int] = MappingProxyType({
    "asap": 30,
    "1_month": 20,
})
URGENT_KEYWORDS: Tuple[str, ...] = ("urgent", "asap", "immediately", "crisis", "critical", "deadline")
URGENCY_KEYWORD_BONUS = 20

# Weights of each factor in the final score (sum to 1.0)
LEAD_SCORE_WEIGHTS: Mapping[str, float] = MappingProxyType({
    "budget": 0.40,
    "timeline": 0.20,
    "company_size": 0.20,
    "industry_fit": 0.10,
    "urgency": 0.10,
})

# Priority tiers: minimum score for each tier, highest first
PRIORITY_THRESHOLDS: Mapping[str, int] = MappingProxyType({
    "hot": 80,
    "warm": 60,
    "cool": 40,
})


def _key(value) -> str:
    """Enum members and plain strings both resolve to their string value."""
    return getattr(value, "value", value)


def budget_midpoint(budget_range) -> float:
    low, high = BUDGET_VALUES.get(_key(budget_range), BUDGET_VALUES["not_disclosed"])
    return (low + high) / 2


def score_budget_midpoint(midpoint: float) -> int:
    for minimum, score in BUDGET_SCORE_LADDER:
        if midpoint >= minimum:
            return score
    return BUDGET_SCORE_FLOOR


def get_budget_score(budget_range) -> int:
    """Budget factor: midpoint of the budget band on a threshold ladder."""
    return score_budget_midpoint(budget_midpoint(budget_range))


def score_timeline_days(days: int) -> int:
    for maximum, score in TIMELINE_SCORE_LADDER:
        if days <= maximum:
            return score
    return TIMELINE_SCORE_FLOOR


def get_timeline_score(timeline) -> int:
    """Timeline factor: sooner starts score higher."""
    days = TIMELINE_DAYS.get(_key(timeline))
    if days is None:
        return TIMELINE_SCORE_FLOOR
    return score_timeline_days(days)


def get_company_size_score(company_size) -> int:
    return COMPANY_SIZE_SCORES.get(_key(company_size), COMPANY_SIZE_DEFAULT)


def get_industry_fit_score(industry: Optional[str]) -> int:
    if industry and industry in HIGH_FIT_INDUSTRIES:
        return INDUSTRY_FIT_HIGH
    return INDUSTRY_FIT_DEFAULT


def has_urgent_keyword(text: Optional[str], keywords: Iterable[str] = URGENT_KEYWORDS) -> bool:
    lowered = (text or "").lower()
    return any(keyword in lowered for keyword in keywords)


def get_urgency_score(timeline, primary_challenge: Optional[str]) -> int:
    """
    Urgency factor.

    Base 50, plus a timeline bonus (asap wins over 1_month), plus a bonus
    when the primary challenge mentions an urgent keyword. Capped at 100.
    """
    score = URGENCY_BASE + URGENCY_TIMELINE_BONUS.get(_key(timeline), 0)
    if has_urgent_keyword(primary_challenge):
        score += URGENCY_KEYWORD_BONUS
    return min(100, score)
