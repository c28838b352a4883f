from fastapi import APIRouter, Depends
from app.core.dependencies import get_current_user
from app.database.document_store import DocumentStore
from app.database.supabase_client import get_document_store
from app.modules.auth.schemas import Principal
from app.modules.workshops.schemas import (
    DecisionRequest, NavigateRequest, ProgressResponse, SessionView, StepContentEdit,
    WorkshopCreate, WorkshopRename, WorkshopReportData,
)
from app.modules.workshops.service import WorkshopService
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/workshops", tags=["workshops"])


def get_workshop_service(documents: DocumentStore = Depends(get_document_store)) -> WorkshopService:
    return WorkshopService(documents)


@router.post("", response_model=SessionView, status_code=201)
async def create_workshop(
    workshop_data: WorkshopCreate,
    principal: Principal = Depends(get_current_user),
    service: WorkshopService = Depends(get_workshop_service)
):
    """Create a new workshop with the default Lean Inception steps"""
    return await service.create_workshop(workshop_data, principal)


@router.get("/{workshop_id}", response_model=SessionView)
async def open_workshop(
    workshop_id: str,
    principal: Principal = Depends(get_current_user),
    service: WorkshopService = Depends(get_workshop_service)
):
    """Open a workshop: load steps (seeding defaults if empty), recompute progress and the report step"""
    return await service.open_workshop(workshop_id, principal)


@router.put("/{workshop_id}", response_model=SessionView)
async def rename_workshop(
    workshop_id: str,
    rename: WorkshopRename,
    principal: Principal = Depends(get_current_user),
    service: WorkshopService = Depends(get_workshop_service)
):
    """Rename workshop"""
    return await service.rename_workshop(workshop_id, rename.name, principal)


@router.get("/{workshop_id}/progress", response_model=ProgressResponse)
async def get_progress(
    workshop_id: str,
    principal: Principal = Depends(get_current_user),
    service: WorkshopService = Depends(get_workshop_service)
):
    return await service.get_progress(workshop_id, principal)


@router.get("/{workshop_id}/report", response_model=WorkshopReportData)
async def get_report(
    workshop_id: str,
    principal: Principal = Depends(get_current_user),
    service: WorkshopService = Depends(get_workshop_service)
):
    """Data for the exported workshop report; rendering happens client-side"""
    return await service.get_report(workshop_id, principal)


@router.post("/{workshop_id}/session/edit", response_model=SessionView)
async def edit_step(
    workshop_id: str,
    edit: StepContentEdit,
    principal: Principal = Depends(get_current_user),
    service: WorkshopService = Depends(get_workshop_service)
):
    """Replace the open step's local draft. Nothing is written until save."""
    return await service.edit_step(workshop_id, edit.content, principal)


@router.post("/{workshop_id}/session/navigate", response_model=SessionView)
async def navigate(
    workshop_id: str,
    navigate_request: NavigateRequest,
    principal: Principal = Depends(get_current_user),
    service: WorkshopService = Depends(get_workshop_service)
):
    """Select a step, go next/previous or leave. Deferred while there are unsaved changes."""
    return await service.navigate(workshop_id, navigate_request.action, principal)


@router.post("/{workshop_id}/session/decision", response_model=SessionView)
async def decide(
    workshop_id: str,
    decision_request: DecisionRequest,
    principal: Principal = Depends(get_current_user),
    service: WorkshopService = Depends(get_workshop_service)
):
    """Resolve a deferred navigation: save, discard or cancel"""
    return await service.decide(workshop_id, decision_request.decision, principal)


@router.post("/{workshop_id}/session/save", response_model=SessionView)
async def save_step(
    workshop_id: str,
    principal: Principal = Depends(get_current_user),
    service: WorkshopService = Depends(get_workshop_service)
):
    return await service.save_step(workshop_id, principal)


@router.post("/{workshop_id}/session/lock", response_model=SessionView)
async def toggle_lock(
    workshop_id: str,
    principal: Principal = Depends(get_current_user),
    service: WorkshopService = Depends(get_workshop_service)
):
    """Mark the open step complete, or re-open it"""
    return await service.toggle_lock(workshop_id, principal)
