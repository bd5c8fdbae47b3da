"""
Lead Service.

Orchestrates lead intake and status transitions: persistence through the
lead repository, provisioning when a lead completes discovery, conversion
to a client, and analytics over the stored leads.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Union

from database.repositories import (
    DiscoveryRepository,
    LeadFilters,
    LeadRepository,
    LeadSort,
    RepositoryResult,
)
from discovery.models import DiscoverySession
from lead_scoring.analytics import DashboardStats, LeadAnalytics, compute_dashboard_stats, compute_lead_analytics
from lead_scoring.errors import PersistenceError, ProvisioningError
from lead_scoring.models import Lead, LeadInput, LeadStatus, utcnow

from .mapping import build_client_record
from .pipeline import ClientCreator, ProvisioningPipeline, ProvisioningResult, should_trigger

logger = logging.getLogger(__name__)


@dataclass
class LeadUpdateOutcome:
    """A lead update plus the provisioning run it triggered, if any."""
    result: RepositoryResult[Lead]
    provisioning: Optional[ProvisioningResult] = None

    @property
    def lead(self) -> Lead:
        return self.result.value

    @property
    def degraded(self) -> bool:
        return self.result.degraded


class LeadService:
    """Entry point for lead operations."""

    def __init__(
        self,
        leads: LeadRepository,
        discovery: Optional[DiscoveryRepository] = None,
        pipeline: Optional[ProvisioningPipeline] = None,
        auto_provision: bool = True,
    ):
        self.leads = leads
        self.discovery = discovery
        self.pipeline = pipeline
        self.auto_provision = auto_provision

    @property
    def client_creator(self) -> Optional[ClientCreator]:
        return self.pipeline.client_creator if self.pipeline else None

    async def create_lead(self, data: Union[LeadInput, Mapping[str, Any]]) -> RepositoryResult[Lead]:
        return await self.leads.create(data)

    async def get_lead(self, lead_id: str) -> Lead:
        return await self.leads.get(lead_id)

    async def list_leads(
        self,
        filters: Optional[LeadFilters] = None,
        sort: Optional[LeadSort] = None,
    ):
        return await self.leads.list(filters, sort)

    async def _paired_session(self, lead_id: str) -> Optional[DiscoverySession]:
        if self.discovery is None:
            return None
        try:
            return await self.discovery.latest_for_lead(lead_id)
        except PersistenceError as e:
            logger.warning(f"Could not load discovery session for lead {lead_id}: {e}")
            return None

    async def update_lead(self, lead_id: str, changes: Mapping[str, Any]) -> LeadUpdateOutcome:
        """
        Update a lead. The transition into discovery_completed stamps
        discovery_completed_at and runs the provisioning pipeline; a newly
        created client is linked right away, the rest of the linkage is
        persisted with the status change.

        Raises:
            NotFoundError: no lead with this id
            ValidationError: invalid changes; nothing is provisioned or written
        """
        current = await self.leads.get(lead_id)
        proposed = current.with_changes(changes)
        completing = "status" in changes and should_trigger(current.status, proposed.status)

        if completing and proposed.discovery_completed_at is None:
            completed_at = utcnow()
            changes = {**changes, "discovery_completed_at": completed_at}
            proposed = replace(proposed, discovery_completed_at=completed_at)

        provisioning = None
        if completing and self.auto_provision and self.pipeline is not None:
            session = await self._paired_session(lead_id)

            async def link_client(linkage: Dict[str, Any]):
                linked = await self.leads.update(lead_id, linkage)
                if linked.degraded:
                    logger.warning(f"Client linkage for lead {lead_id} not persisted: {linked.error}")

            provisioning = await self.pipeline.provision(proposed, session, link_client=link_client)
            if provisioning.errors:
                logger.warning(
                    f"Lead {lead_id} moved to discovery_completed with "
                    f"{len(provisioning.errors)} provisioning error(s)"
                )
            changes = {**changes, **provisioning.linkage()}

        result = await self.leads.update(lead_id, changes)
        return LeadUpdateOutcome(result=result, provisioning=provisioning)

    async def convert_to_client(self, lead_id: str, now: Optional[datetime] = None) -> RepositoryResult[Lead]:
        """
        Mark a lead as won, creating a client for it unless it already has one.

        Raises:
            NotFoundError: no lead with this id
            ProvisioningError: client creation failed; the lead is unchanged
        """
        lead = await self.leads.get(lead_id)
        client_id = lead.client_id
        if not client_id:
            if self.client_creator is None:
                raise ProvisioningError("client", lead_id, RuntimeError("no client creator configured"))
            try:
                client_id = await self.client_creator.create_client(build_client_record(lead))
            except Exception as e:
                logger.error(f"Failed to convert lead {lead_id} to client: {e}")
                raise ProvisioningError("client", lead_id, e) from e
            logger.info(f"Converted lead {lead_id} to client {client_id}")

        return await self.leads.update(lead_id, {
            "status": LeadStatus.WON.value,
            "converted_to_client_at": lead.converted_to_client_at or now or utcnow(),
            "client_id": client_id,
        })

    async def get_analytics(self, now: Optional[datetime] = None) -> RepositoryResult[LeadAnalytics]:
        result = await self.leads.list()
        return RepositoryResult(compute_lead_analytics(result.value, now=now), result.error)

    async def get_dashboard_stats(self, now: Optional[datetime] = None) -> RepositoryResult[DashboardStats]:
        result = await self.leads.list()
        return RepositoryResult(compute_dashboard_stats(result.value, now=now), result.error)
