"""
Lead Management API Routes for the Lead Engine.
"""

import logging
from typing import Any, Dict, List, Optional
from datetime import datetime

from fastapi import APIRouter, Body, Depends, Query
from pydantic import BaseModel

from database.repositories import LeadFilters, LeadSort, RepositoryResult
from lead_scoring.models import parse_timestamp
from provisioning.lead_service import LeadService
from ..services import get_lead_service

logger = logging.getLogger(__name__)

router = APIRouter()


# Models
class LeadCreate(BaseModel):
    """Lead intake form submission."""
    name: str = ""
    email: str = ""
    company: str = ""
    company_size: str = "small_business"
    project_type: str = "other"
    project_description: str = ""
    budget_range: str = "not_disclosed"
    timeline: str = "flexible"
    primary_challenge: str = ""
    phone: Optional[str] = None
    website: Optional[str] = None
    job_title: Optional[str] = None
    industry: Optional[str] = None
    additional_challenges: List[str] = []
    specific_requirements: Optional[str] = None
    source: Optional[str] = None
    custom_fields: Dict[str, Any] = {}


def _write_response(result: RepositoryResult, key: str, payload: Any) -> Dict[str, Any]:
    """Response body for a write: degraded writes report persisted=false."""
    response = {key: payload, "persisted": result.persisted}
    if result.degraded:
        response["warning"] = f"Saved locally but not persisted: {result.error}"
    return response


# Endpoints
@router.post("/leads", status_code=201)
async def create_lead(data: LeadCreate, service: LeadService = Depends(get_lead_service)):
    """Validate, score and store a new lead."""
    result = await service.create_lead(data.model_dump())
    return _write_response(result, "lead", result.value.to_dict())


@router.get("/leads")
async def list_leads(
    status: Optional[List[str]] = Query(None),
    priority: Optional[List[str]] = Query(None),
    source: Optional[List[str]] = Query(None),
    project_type: Optional[List[str]] = Query(None),
    budget_range: Optional[List[str]] = Query(None),
    company_size: Optional[List[str]] = Query(None),
    assigned_to: Optional[List[str]] = Query(None),
    tags: Optional[List[str]] = Query(None),
    created_from: Optional[datetime] = None,
    created_to: Optional[datetime] = None,
    search: Optional[str] = None,
    sort_by: str = "created_at",
    sort_direction: str = Query("desc", pattern="^(asc|desc)$"),
    service: LeadService = Depends(get_lead_service),
):
    """List leads with optional filters."""
    filters = LeadFilters(
        status=status,
        priority=priority,
        source=source,
        project_type=project_type,
        budget_range=budget_range,
        company_size=company_size,
        assigned_to=assigned_to,
        tags=tags,
        created_from=parse_timestamp(created_from),
        created_to=parse_timestamp(created_to),
        search=search,
    )
    result = await service.list_leads(filters, LeadSort(field=sort_by, direction=sort_direction))

    response = {
        "leads": [lead.to_dict() for lead in result.value],
        "total": len(result.value),
        "available": not result.degraded,
    }
    if result.degraded:
        response["warning"] = f"Lead store unreachable: {result.error}"
    return response


@router.get("/leads/analytics")
async def lead_analytics(service: LeadService = Depends(get_lead_service)):
    """Aggregate lead statistics."""
    result = await service.get_analytics()
    return {"analytics": result.value.to_dict(), "available": not result.degraded}


@router.get("/leads/dashboard")
async def lead_dashboard(service: LeadService = Depends(get_lead_service)):
    """Headline numbers for the admin dashboard."""
    result = await service.get_dashboard_stats()
    return {"stats": result.value.to_dict(), "available": not result.degraded}


@router.get("/leads/{lead_id}")
async def get_lead(lead_id: str, service: LeadService = Depends(get_lead_service)):
    """Get a lead by ID."""
    lead = await service.get_lead(lead_id)
    return lead.to_dict()


@router.patch("/leads/{lead_id}")
async def update_lead(
    lead_id: str,
    changes: Dict[str, Any] = Body(...),
    service: LeadService = Depends(get_lead_service),
):
    """Update lead fields; completing discovery provisions a client and project."""
    outcome = await service.update_lead(lead_id, changes)
    response = _write_response(outcome.result, "lead", outcome.lead.to_dict())
    response["provisioning"] = outcome.provisioning.to_dict() if outcome.provisioning else None
    return response


@router.post("/leads/{lead_id}/convert")
async def convert_lead(lead_id: str, service: LeadService = Depends(get_lead_service)):
    """Convert a lead into a client and mark it won."""
    result = await service.convert_to_client(lead_id)
    response = _write_response(result, "lead", result.value.to_dict())
    response["client_id"] = result.value.client_id
    return response
