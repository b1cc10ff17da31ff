"""
Cases API

Case lifecycle endpoints. Every endpoint that touches a specific case first
asks the AccessDecisionEngine (ownership / assignment), then hands status
changes to the WorkflowCoordinator.
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from caseflow.config import settings
from caseflow.api.deps import enforce_access, get_db, get_request_context
from caseflow.auth.context import RequestContext
from caseflow.auth.roles import Role
from caseflow.errors import ForbiddenError
from caseflow.repositories.cases import CaseRepository
from caseflow.repositories.documents import DocumentRepository
from caseflow.schemas.schemas import (
    AuditEntry,
    CaseAssign,
    CaseCreate,
    CaseDetail,
    CaseHistoryResponse,
    CaseListResponse,
    CasePriorityUpdate,
    CaseStatusUpdate,
    CaseSummary,
    DocumentCreate,
    DocumentSchema,
)
from caseflow.services.access_control import ActionType, ResourceType
from caseflow.services.audit_service import AuditAction, AuditEntityType, AuditService
from caseflow.services.case_workflow import WorkflowCoordinator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cases", tags=["cases"])


# ── GET /api/cases — the caller's cases ──────────────────────────────────────

@router.get("", response_model=CaseListResponse)
async def list_cases(
    page: int = Query(1, ge=1, description="Page number"),
    size: int = Query(50, ge=1, le=200, description="Page size"),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    """Applicants see their own cases, agents and experts their assigned ones, admins all."""
    coordinator = WorkflowCoordinator(db)
    cases = await coordinator.list_for_user(ctx.user_id, ctx.role, limit=size, offset=(page - 1) * size)
    total = await coordinator.count_for_user(ctx.user_id, ctx.role)
    return CaseListResponse(
        total=total,
        page=page,
        size=size,
        pages=(total + size - 1) // size if total > 0 else 1,
        items=[CaseSummary.model_validate(c) for c in cases],
    )


# ── POST /api/cases — open a draft ───────────────────────────────────────────

@router.post("", response_model=CaseDetail, status_code=201)
async def create_case(
    body: CaseCreate,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    """Applicants open cases for themselves; admins may open one for any applicant."""
    applicant_id = body.applicant_id or ctx.user_id
    if applicant_id != ctx.user_id and not ctx.is_admin:
        raise ForbiddenError("Only administrators can open cases for other users")
    if ctx.role not in (Role.APPLICANT, Role.ADMIN):
        raise ForbiddenError("Only applicants can open cases")

    case = await WorkflowCoordinator(db).create_case(
        applicant_id,
        body.title,
        body.visa_type,
        acting_user_id=ctx.user_id,
        description=body.description,
        priority=body.priority,
    )
    return CaseDetail.model_validate(case)


# ── GET /api/cases/{case_id} ─────────────────────────────────────────────────

@router.get("/{case_id}", response_model=CaseDetail)
async def get_case(
    case_id: str,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    await enforce_access(db, ctx, ResourceType.CASE, case_id, ActionType.READ)
    case = await CaseRepository(db).get(case_id)
    return CaseDetail.model_validate(case)


# ── PUT /api/cases/{case_id}/status — transition case status ────────────────

@router.put("/{case_id}/status", response_model=CaseDetail)
async def update_case_status(
    case_id: str,
    body: CaseStatusUpdate,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    """
    Move the case to a new status.

    The caller must be allowed to write the case (owner or assignee), and
    their role must be cleared to act from the case's current status.
    A timeout means the outcome is unknown: re-read the case before retrying.
    """
    await enforce_access(db, ctx, ResourceType.CASE, case_id, ActionType.WRITE)

    coordinator = WorkflowCoordinator(db)
    try:
        case = await asyncio.wait_for(
            coordinator.transition(case_id, body.status, ctx.user_id, ctx.role, body.notes),
            timeout=settings.workflow_timeout_seconds,
        )
    except asyncio.TimeoutError:
        logger.warning("Status change for case %s timed out", case_id, extra={"case_id": case_id})
        raise HTTPException(
            status_code=504,
            detail="Status change timed out with unknown outcome; re-check the case status before retrying",
        )
    return CaseDetail.model_validate(case)


# ── PUT /api/cases/{case_id}/assign — assign case worker ─────────────────────

@router.put("/{case_id}/assign", response_model=CaseDetail)
async def assign_case(
    case_id: str,
    body: CaseAssign,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    await enforce_access(db, ctx, ResourceType.CASE, case_id, ActionType.ASSIGN)
    case = await WorkflowCoordinator(db).assign_agent(case_id, body.agent_id, ctx.user_id)
    return CaseDetail.model_validate(case)


# ── PUT /api/cases/{case_id}/priority ────────────────────────────────────────

@router.put("/{case_id}/priority", response_model=CaseDetail)
async def update_case_priority(
    case_id: str,
    body: CasePriorityUpdate,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    await enforce_access(db, ctx, ResourceType.CASE, case_id, ActionType.ASSIGN)
    case = await WorkflowCoordinator(db).update_priority(case_id, body.priority, ctx.user_id)
    return CaseDetail.model_validate(case)


# ── GET /api/cases/{case_id}/history — audit trail for one case ──────────────

@router.get("/{case_id}/history", response_model=CaseHistoryResponse)
async def get_case_history(
    case_id: str,
    limit: int = Query(100, ge=1, le=500),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    await enforce_access(db, ctx, ResourceType.CASE, case_id, ActionType.READ)
    entries = await WorkflowCoordinator(db).history(case_id, limit=limit)
    return CaseHistoryResponse(
        case_id=case_id,
        history=[AuditEntry.model_validate(e) for e in entries],
    )


# ── Documents attached to a case ─────────────────────────────────────────────

@router.get("/{case_id}/documents", response_model=list[DocumentSchema])
async def list_case_documents(
    case_id: str,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    await enforce_access(db, ctx, ResourceType.CASE, case_id, ActionType.READ)
    documents = await DocumentRepository(db).list_by_case(case_id)
    return [DocumentSchema.model_validate(d) for d in documents]


@router.post("/{case_id}/documents", response_model=DocumentSchema, status_code=201)
async def add_case_document(
    case_id: str,
    body: DocumentCreate,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    """Register document metadata against a case the caller may write."""
    await enforce_access(db, ctx, ResourceType.CASE, case_id, ActionType.WRITE)

    document = await DocumentRepository(db).create(
        case_id=case_id,
        uploaded_by=ctx.user_id,
        name=body.name,
        document_type=body.document_type,
    )
    await AuditService(db).record(
        actor_id=ctx.user_id,
        entity_type=AuditEntityType.DOCUMENT,
        entity_id=document.id,
        action=AuditAction.UPLOAD,
        description=f"Document {body.name} added to case {case_id}",
        details={"case_id": case_id, "document_type": body.document_type},
    )
    return DocumentSchema.model_validate(document)
