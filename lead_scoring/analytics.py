"""
Lead analytics for dashboards and reporting.

Pure aggregation over a list of leads. Inputs are never mutated and an
empty list yields zeros rather than division errors.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .models import Lead, LeadPriority, LeadStatus, utcnow
from .scoring_rules import budget_midpoint

QUALIFIED_STATUSES = frozenset({
    LeadStatus.QUALIFIED,
    LeadStatus.DISCOVERY_SCHEDULED,
    LeadStatus.DISCOVERY_COMPLETED,
    LeadStatus.PROPOSAL_SENT,
    LeadStatus.NEGOTIATING,
})

TREND_MONTHS = 6
RECENT_LEAD_DAYS = 7
TOP_SOURCES = 5
RECENT_ACTIVITY = 10


@dataclass
class MonthlyTrend:
    month: str
    leads: int
    conversions: int

    def to_dict(self) -> Dict[str, Any]:
        return {"month": self.month, "leads": self.leads, "conversions": self.conversions}


@dataclass
class LeadAnalytics:
    """Aggregate lead statistics."""
    total_leads: int = 0
    new_leads: int = 0
    qualified_leads: int = 0
    converted_leads: int = 0
    conversion_rate: float = 0.0
    average_lead_score: float = 0.0
    leads_by_source: Dict[str, int] = field(default_factory=dict)
    leads_by_status: Dict[str, int] = field(default_factory=dict)
    leads_by_priority: Dict[str, int] = field(default_factory=dict)
    average_time_to_conversion: float = 0.0
    monthly_trends: List[MonthlyTrend] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_leads": self.total_leads,
            "new_leads": self.new_leads,
            "qualified_leads": self.qualified_leads,
            "converted_leads": self.converted_leads,
            "conversion_rate": round(self.conversion_rate, 2),
            "average_lead_score": round(self.average_lead_score, 2),
            "leads_by_source": self.leads_by_source,
            "leads_by_status": self.leads_by_status,
            "leads_by_priority": self.leads_by_priority,
            "average_time_to_conversion": round(self.average_time_to_conversion, 2),
            "monthly_trends": [t.to_dict() for t in self.monthly_trends],
        }


@dataclass
class DashboardStats:
    """Headline numbers for the admin dashboard."""
    total_leads: int
    hot_leads: int
    recent_leads: int
    conversion_rate: float
    average_lead_value: float
    top_sources: List[Dict[str, Any]] = field(default_factory=list)
    recent_activity: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_leads": self.total_leads,
            "hot_leads": self.hot_leads,
            "recent_leads": self.recent_leads,
            "conversion_rate": round(self.conversion_rate, 2),
            "average_lead_value": round(self.average_lead_value, 2),
            "top_sources": self.top_sources,
            "recent_activity": self.recent_activity,
        }


def _shift_month(year: int, month: int, offset: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def calculate_monthly_trends(
    leads: Sequence[Lead],
    now: Optional[datetime] = None,
    months: int = TREND_MONTHS,
) -> List[MonthlyTrend]:
    """Lead and conversion counts for the trailing calendar months, oldest first."""
    now = now or utcnow()
    trends: List[MonthlyTrend] = []
    for offset in range(months - 1, -1, -1):
        year, month = _shift_month(now.year, now.month, -offset)
        next_year, next_month = _shift_month(year, month, 1)
        start = datetime(year, month, 1, tzinfo=now.tzinfo)
        end = datetime(next_year, next_month, 1, tzinfo=now.tzinfo)

        month_leads = [lead for lead in leads if start <= lead.created_at < end]
        conversions = sum(1 for lead in month_leads if lead.status == LeadStatus.WON)
        trends.append(MonthlyTrend(
            month=start.strftime("%b %Y"),
            leads=len(month_leads),
            conversions=conversions,
        ))
    return trends


def _average_days_to_conversion(leads: Sequence[Lead]) -> float:
    durations = [
        (lead.converted_to_client_at - lead.created_at).total_seconds() / 86400
        for lead in leads
        if lead.created_at and lead.converted_to_client_at
    ]
    if not durations:
        return 0.0
    return sum(durations) / len(durations)


def compute_lead_analytics(leads: Sequence[Lead], now: Optional[datetime] = None) -> LeadAnalytics:
    """Aggregate a lead collection into reporting statistics."""
    total = len(leads)
    converted = sum(1 for lead in leads if lead.status == LeadStatus.WON)

    return LeadAnalytics(
        total_leads=total,
        new_leads=sum(1 for lead in leads if lead.status == LeadStatus.NEW),
        qualified_leads=sum(1 for lead in leads if lead.status in QUALIFIED_STATUSES),
        converted_leads=converted,
        conversion_rate=(converted / total * 100) if total else 0.0,
        average_lead_score=(sum(lead.lead_score for lead in leads) / total) if total else 0.0,
        leads_by_source=dict(Counter(lead.source.value for lead in leads)),
        leads_by_status=dict(Counter(lead.status.value for lead in leads)),
        leads_by_priority=dict(Counter(lead.priority.value for lead in leads)),
        average_time_to_conversion=_average_days_to_conversion(leads),
        monthly_trends=calculate_monthly_trends(leads, now=now),
    )


def compute_dashboard_stats(leads: Sequence[Lead], now: Optional[datetime] = None) -> DashboardStats:
    """Headline dashboard numbers derived from the same lead collection."""
    now = now or utcnow()
    analytics = compute_lead_analytics(leads, now=now)
    total = analytics.total_leads

    since = now - timedelta(days=RECENT_LEAD_DAYS)
    recent = sum(1 for lead in leads if lead.created_at >= since)
    hot = sum(1 for lead in leads if lead.priority == LeadPriority.HOT)

    top_sources = [
        {
            "source": source,
            "count": count,
            "percentage": round(count / total * 100, 2) if total else 0.0,
        }
        for source, count in Counter(analytics.leads_by_source).most_common(TOP_SOURCES)
    ]

    recent_activity = [
        {
            "lead_id": lead.id,
            "action": f"Lead {lead.status.value}",
            "timestamp": lead.updated_at.isoformat(),
            "user": lead.assigned_to or "System",
        }
        for lead in sorted(leads, key=lambda l: l.updated_at, reverse=True)[:RECENT_ACTIVITY]
    ]

    average_value = sum(budget_midpoint(lead.budget_range) for lead in leads) / (total or 1)

    return DashboardStats(
        total_leads=total,
        hot_leads=hot,
        recent_leads=recent,
        conversion_rate=analytics.conversion_rate,
        average_lead_value=average_value,
        top_sources=top_sources,
        recent_activity=recent_activity,
    )
