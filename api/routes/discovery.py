"""
Discovery Session API Routes for the Lead Engine.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel

from database.repositories import DiscoveryRepository
from discovery.analytics import generate_discovery_analytics
from discovery.report import generate_discovery_report
from discovery.templates import new_discovery_session
from ..services import get_discovery_repository

logger = logging.getLogger(__name__)

router = APIRouter()


class DiscoveryCreate(BaseModel):
    """Discovery session creation request."""
    client_id: Optional[str] = None
    lead_id: Optional[str] = None
    template: str = "custom"
    assigned_to: str = "current-user"


def _session_response(result) -> Dict[str, Any]:
    response = {"session": result.value.to_document(), "persisted": result.persisted}
    if result.degraded:
        response["warning"] = f"Saved locally but not persisted: {result.error}"
    return response


@router.post("/discovery", status_code=201)
async def create_discovery_session(
    data: DiscoveryCreate,
    repository: DiscoveryRepository = Depends(get_discovery_repository),
):
    """Start an empty discovery session."""
    session = new_discovery_session(
        client_id=data.client_id,
        lead_id=data.lead_id,
        template=data.template,
        assigned_to=data.assigned_to,
    )
    return _session_response(await repository.create(session))


@router.get("/discovery/{session_id}")
async def get_discovery_session(
    session_id: str,
    repository: DiscoveryRepository = Depends(get_discovery_repository),
):
    session = await repository.get(session_id)
    return session.to_document()


@router.patch("/discovery/{session_id}")
async def update_discovery_session(
    session_id: str,
    changes: Dict[str, Any] = Body(...),
    repository: DiscoveryRepository = Depends(get_discovery_repository),
):
    """Replace top-level session fields (camelCase or snake_case keys)."""
    return _session_response(await repository.update(session_id, changes))


@router.post("/discovery/{session_id}/sections/{section}/complete")
async def complete_discovery_section(
    session_id: str,
    section: int,
    repository: DiscoveryRepository = Depends(get_discovery_repository),
):
    return _session_response(await repository.complete_section(session_id, section))


@router.get("/discovery/{session_id}/analytics")
async def discovery_analytics(
    session_id: str,
    repository: DiscoveryRepository = Depends(get_discovery_repository),
):
    """Talent, complexity and timeline analysis for a session."""
    session = await repository.get(session_id)
    return generate_discovery_analytics(session).to_dict()


@router.get("/discovery/{session_id}/report")
async def discovery_report(
    session_id: str,
    repository: DiscoveryRepository = Depends(get_discovery_repository),
):
    """Markdown discovery report."""
    session = await repository.get(session_id)
    return {"session_id": session.id, "report": generate_discovery_report(session)}
