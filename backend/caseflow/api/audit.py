"""
Audit API Router — query audit trail and verify hash-chain integrity.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from caseflow.api.deps import get_db, require
from caseflow.auth.permissions import Permission
from caseflow.auth.context import RequestContext
from caseflow.services.audit_service import AuditService
from caseflow.schemas.schemas import AuditListResponse, AuditEntry, IntegrityCheckResponse

router = APIRouter(prefix="/api/audit", tags=["audit"])


@router.get("", response_model=AuditListResponse)
async def list_audit_entries(
    entity_type: str | None = Query(None, description="Filter by entity type"),
    entity_id: str | None = Query(None, description="Filter by entity ID"),
    action: str | None = Query(None, description="Filter by action"),
    page: int = Query(1, ge=1, description="Page number"),
    size: int = Query(50, ge=1, le=200, description="Page size"),
    ctx: RequestContext = Depends(require(Permission.SECURITY_READ)),
    db: AsyncSession = Depends(get_db),
) -> AuditListResponse:
    """Return a paginated list of audit log entries with optional filters."""
    service = AuditService(db)
    offset = (page - 1) * size

    entries = await service.get_entries(
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        limit=size,
        offset=offset,
    )

    total = await service.get_entry_count(entity_type=entity_type, entity_id=entity_id, action=action)
    pages = (total + size - 1) // size if total > 0 else 1

    return AuditListResponse(
        total=total,
        page=page,
        size=size,
        pages=pages,
        items=[AuditEntry.model_validate(e) for e in entries],
    )


@router.get("/integrity", response_model=IntegrityCheckResponse)
async def check_integrity(
    ctx: RequestContext = Depends(require(Permission.SECURITY_READ)),
    db: AsyncSession = Depends(get_db),
) -> IntegrityCheckResponse:
    """Verify the hash-chain integrity of the entire audit trail."""
    service = AuditService(db)
    result = await service.verify_chain_integrity()
    return IntegrityCheckResponse(**result)
