"""Tests for the provisioning pipeline and lead service."""

import asyncio
from datetime import date, datetime, timezone

import pytest

from discovery.templates import new_discovery_session
from lead_scoring.errors import ProvisioningError, ValidationError
from lead_scoring.models import LeadStatus
from provisioning.lead_service import LeadService
from provisioning.mapping import build_client_record, build_project_record, generate_content_requirements
from provisioning.pipeline import ProvisioningPipeline, should_trigger

NOW = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)


def run(coro):
    return asyncio.run(coro)


class RecordingCreator:
    """Client and project creator that records calls and can be made to fail."""

    def __init__(self):
        self.clients = []
        self.projects = []
        self.fail_clients = False
        self.fail_projects = False

    async def create_client(self, record):
        if self.fail_clients:
            raise ConnectionError("client store down")
        self.clients.append(dict(record))
        return f"client-{len(self.clients)}"

    async def create_project(self, record):
        if self.fail_projects:
            raise ConnectionError("project store down")
        self.projects.append(dict(record))
        return f"proj-{len(self.projects)}"

    async def find_by_lead(self, lead_id):
        for index, project in enumerate(self.projects, start=1):
            if project["lead_id"] == lead_id:
                return f"proj-{index}"
        return None


@pytest.fixture
def creator():
    return RecordingCreator()


@pytest.fixture
def pipeline(creator):
    return ProvisioningPipeline(client_creator=creator, project_creator=creator)


# ── Trigger ───────────────────────────────────────────

class TestTrigger:
    def test_edge_into_discovery_completed(self):
        assert should_trigger("discovery_scheduled", "discovery_completed")
        assert should_trigger(LeadStatus.QUALIFIED, LeadStatus.DISCOVERY_COMPLETED)

    def test_no_trigger_when_already_completed(self):
        assert not should_trigger("discovery_completed", "discovery_completed")

    def test_no_trigger_for_other_statuses(self):
        assert not should_trigger("qualified", "proposal_sent")


# ── Mapping ───────────────────────────────────────────

class TestMapping:
    def test_client_record(self, lead_factory):
        lead = lead_factory(id="lead_1", phone="555-0100", industry="Finance")
        record = build_client_record(lead)
        assert record["source"] == "converted_lead"
        assert record["status"] == "onboarding"
        assert record["lead_id"] == "lead_1"
        assert record["company_size"] == "small_business"
        assert record["phone"] == "555-0100"

    def test_project_record_defaults(self, lead_factory):
        lead = lead_factory(id="lead_1", company="Acme", project_type="web_app", timeline="2_3_months",
                            budget_range="25k_50k", primary_challenge="Slow growth")
        record = build_project_record(lead, "client-1", "discovery-1", today=date(2026, 3, 1))

        assert record["name"] == "Acme - web_app"
        assert record["type"] == "full_service"
        assert record["status"] == "planning"
        assert record["start_date"] == "2026-03-01"
        assert record["end_date"] == "2026-05-30"
        assert record["budget"] == 37500
        assert record["estimated_hours"] == 375
        assert record["hourly_rate"] == 100
        assert record["project_manager"] == "Auto-assigned"
        assert record["progress"] == 0
        assert record["tags"] == ["auto-created", "from-discovery", "web_app"]
        assert record["content_requirements"]["posts_per_week"] == 10
        assert "Primary challenge: Slow growth" in record["notes"]

    @pytest.mark.parametrize("budget_range,budget", [
        ("under_10k", 8000),
        ("10k_25k", 17500),
        ("50k_100k", 75000),
        ("100k_250k", 150000),
        ("not_disclosed", 150000),
    ])
    def test_budget_estimates(self, lead_factory, budget_range, budget):
        record = build_project_record(lead_factory(budget_range=budget_range), "c", "d")
        assert record["budget"] == budget

    def test_estimated_hours_follow_hourly_rate(self, lead_factory):
        record = build_project_record(lead_factory(budget_range="25k_50k"), "c", "d", hourly_rate=50)
        assert record["hourly_rate"] == 50
        assert record["estimated_hours"] == 750

    def test_asap_timeline_is_thirty_days(self, lead_factory):
        record = build_project_record(lead_factory(timeline="asap"), "c", "d", today=date(2026, 1, 1))
        assert record["end_date"] == "2026-01-31"

    def test_priority_mapping(self, lead_factory):
        hot = lead_factory(budget_range="over_250k", timeline="asap", company_size="enterprise",
                           industry="Technology")
        from lead_scoring.scoring_model import LeadScorer
        LeadScorer().apply(hot)
        assert build_project_record(hot, "c", "d")["priority"] == "high"
        assert build_project_record(lead_factory(), "c", "d")["priority"] == "low"

    def test_content_requirements(self):
        assert generate_content_requirements("branding") == {
            "posts_per_week": 2,
            "platforms": ["instagram", "linkedin"],
            "content_types": ["post", "carousel"],
        }
        assert generate_content_requirements("branding") is not generate_content_requirements("branding")


# ── Pipeline ──────────────────────────────────────────

class TestPipeline:
    def test_creates_client_and_project(self, pipeline, creator, lead_factory):
        lead = lead_factory(id="lead_1")
        result = run(pipeline.provision(lead, now=NOW))

        assert result.succeeded
        assert result.client_id == "client-1"
        assert result.project_id == "proj-1"
        assert result.discovery_id.startswith("discovery-")
        assert result.lead.client_id == "client-1"
        assert result.lead.project_id == "proj-1"
        assert result.lead.converted_to_client_at == NOW
        assert result.lead.discovery_completed_at == NOW
        assert lead.client_id is None
        assert creator.projects[0]["client_id"] == "client-1"

    def test_uses_paired_session(self, pipeline, creator, lead_factory):
        session = new_discovery_session(lead_id="lead_1")
        session = session.with_updates({
            "projectOverview": {"projectType": "website"},
            "technicalRequirements": {"platformPreferences": ["Shopify"]},
        })
        result = run(pipeline.provision(lead_factory(id="lead_1"), session, now=NOW))

        project = creator.projects[0]
        assert project["discovery_id"] == session.id
        assert project["recommended_roles"] == ["Web Developer"]
        assert project["required_skills"] == ["Shopify"]
        assert project["recommended_team_size"] == 2
        assert project["complexity"] == "low"
        assert result.analytics is not None

    def test_idempotent(self, pipeline, creator, lead_factory):
        first = run(pipeline.provision(lead_factory(id="lead_1"), now=NOW))
        second = run(pipeline.provision(first.lead, now=NOW))

        assert second.skipped
        assert second.project_id == first.project_id
        assert len(creator.clients) == 1
        assert len(creator.projects) == 1

    def test_reuses_existing_client(self, pipeline, creator, lead_factory):
        lead = lead_factory(id="lead_1", client_id="client-existing")
        result = run(pipeline.provision(lead, now=NOW))
        assert creator.clients == []
        assert creator.projects[0]["client_id"] == "client-existing"
        assert result.client_id == "client-existing"

    def test_client_failure_recorded(self, pipeline, creator, lead_factory):
        creator.fail_clients = True
        result = run(pipeline.provision(lead_factory(id="lead_1"), now=NOW))

        assert not result.succeeded
        assert isinstance(result.errors[0], ProvisioningError)
        assert result.errors[0].step == "client"
        assert result.errors[0].lead_id == "lead_1"
        assert result.project_id is None
        assert creator.projects == []

    def test_project_failure_keeps_client(self, pipeline, creator, lead_factory):
        creator.fail_projects = True
        result = run(pipeline.provision(lead_factory(id="lead_1"), now=NOW))

        assert result.errors[0].step == "project"
        assert result.linkage() == {"client_id": "client-1", "converted_to_client_at": NOW}

        creator.fail_projects = False
        retry = run(pipeline.provision(result.lead, now=NOW))
        assert retry.succeeded
        assert len(creator.clients) == 1

    def test_repeat_run_with_existing_client_creates_one_project(self, pipeline, creator, lead_factory):
        lead = lead_factory(id="lead_1", client_id="client-existing")
        first = run(pipeline.provision(lead, now=NOW))
        second = run(pipeline.provision(lead, now=NOW))

        assert creator.clients == []
        assert len(creator.projects) == 1
        assert second.succeeded
        assert second.project_id == first.project_id
        assert second.lead.project_id == first.project_id

    def test_new_client_linked_before_project_step(self, pipeline, creator, lead_factory):
        linked = []

        async def link_client(linkage):
            linked.append(linkage)

        creator.fail_projects = True
        run(pipeline.provision(lead_factory(id="lead_1"), now=NOW, link_client=link_client))
        assert linked == [{"client_id": "client-1", "converted_to_client_at": NOW}]

    def test_existing_client_is_not_relinked(self, pipeline, lead_factory):
        linked = []

        async def link_client(linkage):
            linked.append(linkage)

        run(pipeline.provision(lead_factory(id="lead_1", client_id="client-9"), now=NOW, link_client=link_client))
        assert linked == []


# ── Lead Service ──────────────────────────────────────

@pytest.fixture
def service(lead_repository, discovery_repository, client_repository, project_repository):
    return LeadService(
        leads=lead_repository,
        discovery=discovery_repository,
        pipeline=ProvisioningPipeline(client_repository, project_repository),
    )


class TestLeadService:
    def test_discovery_completion_provisions_once(self, service, client_repository,
                                                  project_repository, lead_form):
        lead = run(service.create_lead(lead_form)).unwrap()
        run(service.update_lead(lead.id, {"status": "discovery_scheduled"}))

        outcome = run(service.update_lead(lead.id, {"status": "discovery_completed"}))
        assert outcome.provisioning is not None and outcome.provisioning.succeeded
        assert outcome.lead.status == LeadStatus.DISCOVERY_COMPLETED
        assert outcome.lead.client_id and outcome.lead.project_id

        stored = run(service.get_lead(lead.id))
        assert stored.project_id == outcome.lead.project_id
        assert stored.discovery_completed_at is not None

        again = run(service.update_lead(lead.id, {"status": "discovery_completed", "notes": "dup"}))
        assert again.provisioning is None
        assert len(run(client_repository.list())) == 1
        assert len(run(project_repository.list())) == 1

    def test_pairs_discovery_session(self, service, discovery_repository, project_repository, lead_form):
        lead = run(service.create_lead(lead_form)).unwrap()
        session = new_discovery_session(lead_id=lead.id)
        run(discovery_repository.create(session))

        run(service.update_lead(lead.id, {"status": "discovery_completed"}))
        project = run(project_repository.list())[0]
        assert project["discovery_id"] == session.id
        assert project["content_requirements"]["posts_per_week"] == 10
        assert project["tags"] == ["auto-created", "from-discovery", "ecommerce"]

    def test_provisioning_failure_does_not_block_status(self, service, store, lead_form):
        lead = run(service.create_lead(lead_form)).unwrap()
        original_append = store.append

        async def failing_append(table, rows):
            if table in ("Clients", "Projects"):
                raise ConnectionError("down")
            await original_append(table, rows)

        store.append = failing_append
        outcome = run(service.update_lead(lead.id, {"status": "discovery_completed"}))

        assert outcome.provisioning.errors
        assert outcome.lead.status == LeadStatus.DISCOVERY_COMPLETED
        assert outcome.lead.project_id is None
        assert run(service.get_lead(lead.id)).status == LeadStatus.DISCOVERY_COMPLETED

    def test_invalid_update_does_not_provision(self, service, client_repository, lead_form):
        lead = run(service.create_lead(lead_form)).unwrap()
        with pytest.raises(ValidationError):
            run(service.update_lead(lead.id, {"status": "discovery_completed", "lead_score": 99}))
        assert run(client_repository.list()) == []

    def test_auto_provision_disabled(self, lead_repository, client_repository, project_repository, lead_form):
        service = LeadService(
            leads=lead_repository,
            pipeline=ProvisioningPipeline(client_repository, project_repository),
            auto_provision=False,
        )
        lead = run(service.create_lead(lead_form)).unwrap()
        outcome = run(service.update_lead(lead.id, {"status": "discovery_completed"}))
        assert outcome.provisioning is None
        assert run(client_repository.list()) == []
        assert outcome.lead.discovery_completed_at is not None
        assert run(service.get_lead(lead.id)).discovery_completed_at is not None

    def test_client_linked_when_project_step_fails(self, service, store, client_repository, lead_form):
        lead = run(service.create_lead(lead_form)).unwrap()
        original_append = store.append

        async def failing_append(table, rows):
            if table == "Projects":
                raise ConnectionError("down")
            await original_append(table, rows)

        store.append = failing_append
        outcome = run(service.update_lead(lead.id, {"status": "discovery_completed"}))

        stored = run(service.get_lead(lead.id))
        assert outcome.provisioning.errors[0].step == "project"
        assert stored.client_id == run(client_repository.list())[0]["id"]
        assert stored.project_id is None
        assert stored.discovery_completed_at is not None

    def test_converted_lead_gets_one_project(self, service, client_repository, project_repository, lead_form):
        lead = run(service.create_lead(lead_form)).unwrap()
        converted = run(service.convert_to_client(lead.id)).unwrap()
        run(service.update_lead(lead.id, {"status": "discovery_completed"}))

        stored = run(service.get_lead(lead.id))
        projects = run(project_repository.list())
        assert stored.client_id == converted.client_id
        assert len(run(client_repository.list())) == 1
        assert [p["id"] for p in projects] == [stored.project_id]
        assert projects[0]["client_id"] == converted.client_id

    def test_convert_to_client(self, service, client_repository, lead_form):
        lead = run(service.create_lead(lead_form)).unwrap()
        converted = run(service.convert_to_client(lead.id)).unwrap()

        assert converted.status == LeadStatus.WON
        assert converted.converted_to_client_at is not None
        clients = run(client_repository.list())
        assert clients[0]["id"] == converted.client_id
        assert clients[0]["status"] == "onboarding"

    def test_convert_reuses_client_from_provisioning(self, service, client_repository, lead_form):
        lead = run(service.create_lead(lead_form)).unwrap()
        provisioned = run(service.update_lead(lead.id, {"status": "discovery_completed"})).lead
        converted = run(service.convert_to_client(lead.id)).unwrap()

        assert converted.client_id == provisioned.client_id
        assert len(run(client_repository.list())) == 1

    def test_convert_failure_leaves_lead_unchanged(self, service, store, lead_form):
        lead = run(service.create_lead(lead_form)).unwrap()
        original_append = store.append

        async def failing_append(table, rows):
            if table == "Clients":
                raise ConnectionError("down")
            await original_append(table, rows)

        store.append = failing_append
        with pytest.raises(ProvisioningError):
            run(service.convert_to_client(lead.id))
        assert run(service.get_lead(lead.id)).status == LeadStatus.NEW

    def test_analytics_from_stored_leads(self, service, lead_form):
        run(service.create_lead(lead_form))
        analytics = run(service.get_analytics()).unwrap()
        stats = run(service.get_dashboard_stats()).unwrap()
        assert analytics.total_leads == 1
        assert stats.hot_leads == 1
