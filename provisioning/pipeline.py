"""
Provisioning Pipeline.

When a lead reaches discovery_completed, a client account and a project are
created for it. Each step commits on its own; a failed step is recorded on
the result and never blocks the lead's status change.
"""

import logging
import time
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Protocol

from discovery.analytics import DiscoveryAnalytics, generate_discovery_analytics
from discovery.models import DiscoverySession
from lead_scoring.errors import ProvisioningError
from lead_scoring.models import Lead, LeadStatus, random_base36, utcnow

from .mapping import build_client_record, build_project_record

logger = logging.getLogger(__name__)


class ClientCreator(Protocol):
    async def create_client(self, record: Mapping[str, Any]) -> str:
        """Persist a client record and return its id."""
        ...


class ProjectCreator(Protocol):
    async def create_project(self, record: Mapping[str, Any]) -> str:
        """Persist a project record and return its id."""
        ...

    async def find_by_lead(self, lead_id: str) -> Optional[str]:
        """Id of a project already created for the lead, or None."""
        ...


ClientLinker = Callable[[Dict[str, Any]], Awaitable[Any]]


def should_trigger(previous_status, new_status) -> bool:
    """True only on the transition into discovery_completed."""
    target = LeadStatus.DISCOVERY_COMPLETED.value
    previous = getattr(previous_status, "value", previous_status)
    new = getattr(new_status, "value", new_status)
    return new == target and previous != target


def synthesize_discovery_id() -> str:
    return f"discovery-{int(time.time() * 1000)}-{random_base36(9)}"


@dataclass
class ProvisioningResult:
    """Outcome of one pipeline run."""
    lead: Lead
    client_id: Optional[str] = None
    project_id: Optional[str] = None
    discovery_id: Optional[str] = None
    analytics: Optional[DiscoveryAnalytics] = None
    errors: List[ProvisioningError] = field(default_factory=list)
    skipped: bool = False

    @property
    def succeeded(self) -> bool:
        return not self.errors

    def linkage(self) -> Dict[str, Any]:
        """Lead fields set by the pipeline, ready to merge into a lead update."""
        changes: Dict[str, Any] = {}
        for name in ("client_id", "project_id", "converted_to_client_at", "discovery_completed_at"):
            value = getattr(self.lead, name)
            if value is not None:
                changes[name] = value
        return changes

    def to_dict(self) -> Dict[str, Any]:
        return {
            "client_id": self.client_id,
            "project_id": self.project_id,
            "discovery_id": self.discovery_id,
            "skipped": self.skipped,
            "errors": [str(e) for e in self.errors],
        }


class ProvisioningPipeline:
    """
    Creates a client and a project for a lead that completed discovery.

    Idempotent by inspection: a lead with a project_id is left alone, a lead
    with a client_id reuses that client, and a project already stored for the
    lead is linked instead of created again.
    """

    def __init__(
        self,
        client_creator: ClientCreator,
        project_creator: ProjectCreator,
        project_manager: str = "Auto-assigned",
        hourly_rate: float = 100,
    ):
        self.client_creator = client_creator
        self.project_creator = project_creator
        self.project_manager = project_manager
        self.hourly_rate = hourly_rate

    def _fail(self, result: ProvisioningResult, step: str, cause: Exception) -> ProvisioningResult:
        error = ProvisioningError(step, result.lead.id, cause)
        logger.error(f"Provisioning step '{step}' failed for lead {result.lead.id}: {cause}")
        result.errors.append(error)
        return result

    async def provision(
        self,
        lead: Lead,
        session: Optional[DiscoverySession] = None,
        now: Optional[datetime] = None,
        link_client: Optional[ClientLinker] = None,
    ) -> ProvisioningResult:
        """
        Run the pipeline for a lead.

        Args:
            lead: Lead that completed discovery (not mutated)
            session: Paired discovery session, when one exists
            now: Timestamp for linkage fields
            link_client: Called with the client linkage as soon as a new
                client is created, so the lead records it before the project
                step runs
        """
        if lead.project_id:
            logger.info(f"Lead {lead.id} already has project {lead.project_id}; skipping provisioning")
            return ProvisioningResult(
                lead=lead,
                client_id=lead.client_id,
                project_id=lead.project_id,
                skipped=True,
            )

        now = now or utcnow()
        result = ProvisioningResult(lead=replace(lead))

        # Step 1: client
        client_id = lead.client_id
        created_client = False
        if not client_id:
            try:
                client_id = await self.client_creator.create_client(build_client_record(lead))
            except Exception as e:
                return self._fail(result, "client", e)
            created_client = True
            logger.info(f"Created client {client_id} from lead {lead.id}")
        result.client_id = client_id
        result.lead = replace(
            result.lead,
            client_id=client_id,
            converted_to_client_at=lead.converted_to_client_at or now,
        )
        if created_client and link_client is not None:
            try:
                await link_client({
                    "client_id": client_id,
                    "converted_to_client_at": result.lead.converted_to_client_at,
                })
            except Exception as e:
                logger.warning(f"Could not record client {client_id} on lead {lead.id} yet: {e}")

        # Step 2: discovery record
        if session is not None:
            result.discovery_id = session.id
            result.analytics = generate_discovery_analytics(session)
        else:
            result.discovery_id = synthesize_discovery_id()

        # Step 3: project
        try:
            project_id = await self.project_creator.find_by_lead(lead.id)
        except Exception as e:
            return self._fail(result, "project", e)

        if project_id:
            logger.info(f"Lead {lead.id} already has stored project {project_id}; linking it")
        else:
            record = build_project_record(
                result.lead,
                client_id=client_id,
                discovery_id=result.discovery_id,
                analytics=result.analytics,
                today=now.date(),
                project_manager=self.project_manager,
                hourly_rate=self.hourly_rate,
            )
            try:
                project_id = await self.project_creator.create_project(record)
            except Exception as e:
                return self._fail(result, "project", e)
            logger.info(f"Created project {project_id} for lead {lead.id} (discovery {result.discovery_id})")

        result.project_id = project_id
        result.lead = replace(
            result.lead,
            project_id=project_id,
            discovery_completed_at=lead.discovery_completed_at or now,
        )
        return result
