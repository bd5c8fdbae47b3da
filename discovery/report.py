"""Markdown summary report for a discovery session."""

from datetime import date
from typing import List, Optional

from .analytics import generate_discovery_analytics
from .models import DiscoverySession


def _money(amount: float) -> str:
    if float(amount).is_integer():
        return f"₹{amount:,.0f}"
    return f"₹{amount:,.2f}"


def _bullets(lines: List[str]) -> str:
    return "\n".join(f"- {line}" for line in lines)


def generate_discovery_report(session: DiscoverySession, report_date: Optional[date] = None) -> str:
    """Render the session and its analytics as a Markdown report."""
    analytics = generate_discovery_analytics(session)
    overview = session.project_overview
    budget = session.budget_resources
    report_date = report_date or date.today()

    talent = _bullets([
        f"**{req.role}** ({req.experience_level}): {', '.join(req.skills_required)} - {req.hours_required}h"
        for req in analytics.talent_requirements
    ])
    breakdown = _bullets([
        f"{item.category}: {_money(item.allocation)} ({item.priority} priority)"
        for item in budget.budget_breakdown
    ])
    actions = _bullets([
        f"{action.task} ({action.owner}) - Due: {action.due_date}"
        for action in session.next_steps.immediate_actions
    ])

    sections = [
        f"# Discovery Report - {session.company_fundamentals.company_name}",
        "## Executive Summary\n"
        f"**Project:** {overview.project_name}\n"
        f"**Type:** {overview.project_type}\n"
        f"**Completion:** {analytics.completion_rate:.1f}%\n"
        f"**Complexity:** {analytics.project_complexity}\n"
        f"**Estimated Budget:** {_money(analytics.estimated_budget)}",
        f"## Project Overview\n{overview.project_description}",
        f"### Key Objectives\n{_bullets(overview.key_objectives)}",
        f"## Talent Requirements\n### Recommended Team ({analytics.recommended_team_size} members)\n{talent}",
        f"### Required Skills\n{_bullets(analytics.skills_required)}",
        "## Budget Breakdown\n"
        f"**Total Budget:** {_money(budget.total_budget.amount)}\n"
        f"**Flexibility:** {budget.total_budget.flexibility}\n\n"
        f"{breakdown}",
        "## Timeline Assessment\n"
        f"{analytics.timeline_assessment}\n\n"
        f"**Target Launch:** {overview.timeline.desired_launch}\n"
        f"**Timeline Flexibility:** {overview.timeline.flexibility}",
        f"## Next Steps\n{actions}",
        f"---\n*Generated by Discovery System*\n*Report Date: {report_date.isoformat()}*",
    ]
    return "\n\n".join(s.rstrip() for s in sections)
