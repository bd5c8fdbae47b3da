"""
Provisioning Module for the Lead Engine.

Turns a lead that completed discovery into a client and a project.
"""

from .mapping import build_client_record, build_project_record, generate_content_requirements
from .pipeline import (
    ClientCreator,
    ProjectCreator,
    ProvisioningPipeline,
    ProvisioningResult,
    should_trigger,
    synthesize_discovery_id,
)
from .lead_service import LeadService, LeadUpdateOutcome

__all__ = [
    "build_client_record",
    "build_project_record",
    "generate_content_requirements",
    "ClientCreator",
    "ProjectCreator",
    "ProvisioningPipeline",
    "ProvisioningResult",
    "should_trigger",
    "synthesize_discovery_id",
    "LeadService",
    "LeadUpdateOutcome",
]
