"""Tests for discovery sessions, analytics and reports."""

import asyncio
from datetime import date, datetime, timedelta, timezone

import pytest

from discovery.analytics import generate_discovery_analytics
from discovery.models import DiscoverySession, DiscoveryStatus
from discovery.report import generate_discovery_report
from discovery.templates import DISCOVERY_SECTIONS, DISCOVERY_TEMPLATES, DiscoveryTemplate, new_discovery_session
from lead_scoring.errors import NotFoundError, ValidationError

CREATED = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def session():
    return new_discovery_session(client_id="client-1", lead_id="lead_1", now=CREATED)


def build(**sections) -> DiscoverySession:
    """Session from camelCase section documents."""
    return DiscoverySession.model_validate({
        "id": "discovery-1",
        "clientId": "client-1",
        "createdAt": CREATED.isoformat(),
        "updatedAt": CREATED.isoformat(),
        **sections,
    })


# ── Session model ─────────────────────────────────────

class TestSession:
    def test_new_session_defaults(self, session):
        assert session.id.startswith("discovery-")
        assert session.status == DiscoveryStatus.DRAFT
        assert session.current_section == 1
        assert session.completed_sections == []
        assert session.budget_resources.total_budget.currency == "INR"
        assert session.project_overview.project_type == "website"
        assert session.completion_rate == 0

    def test_anonymous_client(self):
        session = new_discovery_session()
        assert session.client_id.startswith("anonymous-")

    def test_ids_are_unique(self):
        assert new_discovery_session().id != new_discovery_session().id

    def test_unknown_template(self):
        with pytest.raises(ValidationError):
            new_discovery_session(template="spaceship")

    def test_accepts_camel_and_snake_case(self):
        camel = build(projectOverview={"projectType": "app", "projectScope": ["a"]})
        snake = DiscoverySession(
            id="discovery-1",
            client_id="client-1",
            project_overview={"project_type": "app", "project_scope": ["a"]},
        )
        assert camel.project_overview == snake.project_overview

    def test_document_uses_camel_case(self, session):
        document = session.to_document()
        assert document["clientId"] == "client-1"
        assert "goalsKPIs" in document
        assert document["budgetResources"]["totalBudget"]["currency"] == "INR"
        assert DiscoverySession.model_validate(document) == session


class TestSectionCompletion:
    def test_first_section_starts_session(self, session):
        session.complete_section(1)
        assert session.status == DiscoveryStatus.IN_PROGRESS
        assert session.current_section == 2

    def test_section_added_once(self, session):
        session.complete_section(3)
        session.complete_section(3)
        assert session.completed_sections == [3]
        assert session.completion_rate == 0.1

    def test_all_sections_complete_session(self, session):
        for n in range(1, 11):
            session.complete_section(n)
        assert session.status == DiscoveryStatus.COMPLETED
        assert session.completed_at is not None
        assert session.completion_rate == 1.0
        assert generate_discovery_analytics(session).completion_rate == 100

    def test_section_out_of_range(self, session):
        with pytest.raises(ValidationError):
            session.complete_section(11)

    def test_archived_is_read_only(self, session):
        archived = session.with_updates({"status": "archived"})
        with pytest.raises(ValidationError):
            archived.complete_section(1)
        with pytest.raises(ValidationError):
            archived.with_updates({"assignedTo": "someone"})

    def test_with_updates_rejects_unknown_and_immutable(self, session):
        with pytest.raises(ValidationError):
            session.with_updates({"favouriteColour": "blue"})
        with pytest.raises(ValidationError):
            session.with_updates({"id": "discovery-other"})

    def test_with_updates_rejects_bad_values(self, session):
        with pytest.raises(ValidationError):
            session.with_updates({"currentSection": "third"})

    def test_completed_sections_must_be_in_range(self, session):
        with pytest.raises(ValidationError):
            session.with_updates({"completedSections": list(range(1, 16))})
        with pytest.raises(ValidationError):
            session.with_updates({"completedSections": [0]})

    def test_current_section_must_be_in_range(self, session):
        with pytest.raises(ValidationError):
            session.with_updates({"currentSection": 11})

    def test_completed_sections_deduplicated(self, session):
        updated = session.with_updates({"completedSections": [3, 1, 3]})
        assert updated.completed_sections == [1, 3]
        assert updated.completion_rate == 0.2
        assert generate_discovery_analytics(updated).completion_rate == 20


class TestTemplates:
    def test_section_titles(self):
        assert len(DISCOVERY_SECTIONS) == 10
        assert DISCOVERY_SECTIONS[4] == "Current State Analysis"

    def test_startup_template_sections(self):
        template = DISCOVERY_TEMPLATES[DiscoveryTemplate.STARTUP]
        assert template.sections == [1, 2, 3, 5, 7, 9, 10]
        assert template.section_titles()[3] == "Goals & KPIs"


# ── Analytics ─────────────────────────────────────────

class TestDiscoveryAnalytics:
    def test_talent_roles_in_rule_order(self):
        session = build(
            projectOverview={"projectType": "website"},
            contentCreative={
                "visualStyle": {"designInspiration": ["Apple.com"]},
                "contentStrategy": {"contentTypes": ["blog"]},
            },
        )
        talent = generate_discovery_analytics(session).talent_requirements
        assert [t.role for t in talent] == ["Web Developer", "UI/UX Designer", "Content Creator"]
        assert talent[2].priority == "nice_to_have"

    def test_app_requires_senior_mobile_developer(self):
        talent = generate_discovery_analytics(build(projectOverview={"projectType": "app"})).talent_requirements
        assert talent[0].role == "Mobile Developer"
        assert talent[0].experience_level == "senior"
        assert talent[0].hours_required == 120

    def test_other_project_types_add_no_base_role(self):
        analytics = generate_discovery_analytics(build(projectOverview={"projectType": "rebrand"}))
        assert analytics.talent_requirements == []

    def test_team_size_clamped(self):
        assert generate_discovery_analytics(build(projectOverview={"projectType": "rebrand"})).recommended_team_size == 2
        full = build(
            projectOverview={"projectType": "website"},
            contentCreative={
                "visualStyle": {"designInspiration": ["x"]},
                "contentStrategy": {"contentTypes": ["blog"]},
            },
        )
        assert generate_discovery_analytics(full).recommended_team_size == 3

    def test_very_tight_timeline(self):
        session = build(projectOverview={"timeline": {"startDate": "2025-03-01", "desiredLaunch": "2025-03-20"}})
        assert "Very Tight" in generate_discovery_analytics(session).timeline_assessment

    @pytest.mark.parametrize("launch,expected", [
        ("2025-04-15", "Tight - Well-planned execution needed"),
        ("2025-06-01", "Reasonable - Good timeline for quality delivery"),
        ("2025-12-01", "Comfortable - Ample time for iterative improvement"),
    ])
    def test_timeline_bands(self, launch, expected):
        session = build(projectOverview={"timeline": {"startDate": "2025-03-01", "desiredLaunch": launch}})
        assert generate_discovery_analytics(session).timeline_assessment == expected

    def test_missing_dates(self):
        assert generate_discovery_analytics(build()).timeline_assessment == "Unknown - Timeline dates not provided"
        garbled = build(projectOverview={"timeline": {"startDate": "soon", "desiredLaunch": "later"}})
        assert generate_discovery_analytics(garbled).timeline_assessment.startswith("Unknown")

    def test_complexity_high(self):
        session = build(
            projectOverview={"projectScope": [f"scope {i}" for i in range(6)]},
            technicalRequirements={
                "integrations": [{"system": f"sys{i}"} for i in range(4)],
                "performanceRequirements": [{"metric": f"m{i}"} for i in range(3)],
            },
        )
        assert generate_discovery_analytics(session).project_complexity == "high"

    @pytest.mark.parametrize("scope,expected", [
        (5, "low"),
        (6, "medium"),
        (10, "medium"),
        (11, "high"),
        (18, "very_high"),
    ])
    def test_complexity_ladder(self, scope, expected):
        session = build(projectOverview={"projectScope": ["s"] * scope})
        assert generate_discovery_analytics(session).project_complexity == expected

    def test_skills_deduplicated(self):
        session = build(
            technicalRequirements={
                "platformPreferences": ["Shopify", "React"],
                "integrations": [{"system": "Stripe"}, {"system": "Shopify"}],
            },
            contentCreative={"contentStrategy": {"contentTypes": ["blog", "React"]}},
        )
        assert generate_discovery_analytics(session).skills_required == ["Shopify", "React", "Stripe", "blog"]

    def test_budget_and_time_spent(self, session):
        session = session.with_updates(
            {"budgetResources": {"totalBudget": {"amount": 250000}}},
            now=CREATED + timedelta(minutes=12, seconds=5),
        )
        analytics = generate_discovery_analytics(session)
        assert analytics.estimated_budget == 250000
        assert analytics.time_spent == 13


class TestReport:
    def test_report_sections(self):
        session = build(
            companyFundamentals={"companyName": "Acme Retail"},
            projectOverview={
                "projectName": "Storefront",
                "projectType": "website",
                "keyObjectives": ["Grow online sales"],
            },
            budgetResources={
                "totalBudget": {"amount": 150000, "flexibility": "fixed"},
                "budgetBreakdown": [{"category": "Design", "allocation": 50000, "priority": "high"}],
            },
            nextSteps={"immediateActions": [{"task": "Send proposal", "owner": "Sam", "dueDate": "2026-03-10"}]},
        )
        report = generate_discovery_report(session, report_date=date(2026, 3, 2))

        assert report.startswith("# Discovery Report - Acme Retail")
        assert "**Estimated Budget:** ₹150,000" in report
        assert "- Grow online sales" in report
        assert "- **Web Developer** (mid): HTML/CSS, JavaScript, Responsive Design - 80h" in report
        assert "- Design: ₹50,000 (high priority)" in report
        assert "Unknown - Timeline dates not provided" in report
        assert "- Send proposal (Sam) - Due: 2026-03-10" in report
        assert "*Report Date: 2026-03-02*" in report


# ── Repository ────────────────────────────────────────

class TestDiscoveryRepository:
    def test_create_and_get(self, discovery_repository, session):
        assert run(discovery_repository.create(session)).persisted
        assert run(discovery_repository.get(session.id)) == session

    def test_get_missing(self, discovery_repository):
        with pytest.raises(NotFoundError):
            run(discovery_repository.get("discovery-missing"))

    def test_update_and_complete(self, discovery_repository, session):
        run(discovery_repository.create(session))
        run(discovery_repository.update(session.id, {"projectOverview": {"projectType": "app"}}))
        run(discovery_repository.complete_section(session.id, 2))

        stored = run(discovery_repository.get(session.id))
        assert stored.project_overview.project_type == "app"
        assert stored.completed_sections == [2]
        assert stored.status == DiscoveryStatus.IN_PROGRESS

    def test_archived_update_rejected(self, discovery_repository, session):
        run(discovery_repository.create(session))
        run(discovery_repository.update(session.id, {"status": "archived"}))
        with pytest.raises(ValidationError):
            run(discovery_repository.update(session.id, {"assignedTo": "x"}))

    def test_latest_for_lead_prefers_completed(self, discovery_repository):
        completed = new_discovery_session(lead_id="lead_9", now=CREATED)
        for n in range(1, 11):
            completed.complete_section(n, now=CREATED)
        draft = new_discovery_session(lead_id="lead_9", now=CREATED + timedelta(days=1))
        run(discovery_repository.create(completed))
        run(discovery_repository.create(draft))

        assert run(discovery_repository.latest_for_lead("lead_9")).id == completed.id
        assert run(discovery_repository.latest_for_lead("lead_other")) is None

    def test_list_by_client(self, discovery_repository):
        run(discovery_repository.create(new_discovery_session(client_id="client-a")))
        run(discovery_repository.create(new_discovery_session(client_id="client-b")))
        assert len(run(discovery_repository.list_by_client("client-a"))) == 1
