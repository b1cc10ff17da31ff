"""
Security API — access checks and permission-group grants.

POST /api/security/access-check evaluates a single access decision and
records the check in the audit trail.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from caseflow.api.deps import get_db, get_request_context, require
from caseflow.auth.context import RequestContext
from caseflow.auth.permissions import Permission
from caseflow.errors import NotFoundError
from caseflow.repositories.users import UserRepository
from caseflow.schemas.schemas import (
    AccessCheckRequest,
    AccessDecisionSchema,
    PermissionGrant,
    PermissionGroupCreate,
    PermissionGroupSchema,
)
from caseflow.services.access_control import AccessDecisionEngine, ActionType, ResourceType
from caseflow.services.audit_service import AuditAction, AuditEntityType, AuditService
from caseflow.services.permission_resolver import PermissionResolver

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/security", tags=["security"])


@router.post("/access-check", response_model=AccessDecisionSchema)
async def check_access(
    body: AccessCheckRequest,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    """Would ``user_id`` (default: the caller) be allowed to perform ``action``?"""
    try:
        resource_type = ResourceType(body.resource_type)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid resource type")
    try:
        action = ActionType(body.action)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid action")

    subject_id = body.user_id or ctx.user_id
    if subject_id != ctx.user_id and not ctx.is_admin:
        raise HTTPException(
            status_code=403,
            detail="Insufficient permissions to check access for other users",
        )

    decision = await AccessDecisionEngine(db).check_access(
        subject_id, resource_type, body.resource_id, action,
    )

    await AuditService(db).log_access_check(
        actor_id=ctx.user_id,
        subject_id=subject_id,
        resource_type=resource_type.value,
        resource_id=body.resource_id,
        action=action.value,
        allowed=decision.allowed,
        reason=decision.reason,
    )

    return AccessDecisionSchema(allowed=decision.allowed, reason=decision.reason)


# ── Permission groups ────────────────────────────────────────────────────────

@router.get("/permission-groups", response_model=list[PermissionGroupSchema])
async def list_permission_groups(
    ctx: RequestContext = Depends(require(Permission.SECURITY_READ)),
    db: AsyncSession = Depends(get_db),
):
    groups = await PermissionResolver(db).list_groups()
    return [PermissionGroupSchema.model_validate(g) for g in groups]


@router.post("/permission-groups", response_model=PermissionGroupSchema, status_code=201)
async def create_permission_group(
    body: PermissionGroupCreate,
    ctx: RequestContext = Depends(require(Permission.SECURITY_WRITE)),
    db: AsyncSession = Depends(get_db),
):
    group = await PermissionResolver(db).create_group(body.name, body.permissions, body.description)
    await AuditService(db).record(
        actor_id=ctx.user_id,
        entity_type=AuditEntityType.PERMISSION_GROUP,
        entity_id=group.id,
        action=AuditAction.CREATE,
        description=f"Permission group {group.name} created",
        details={"permissions": list(group.permissions)},
    )
    return PermissionGroupSchema.model_validate(group)


@router.post("/permission-groups/{group_id}/grants", status_code=204)
async def grant_permission_group(
    group_id: str,
    body: PermissionGrant,
    ctx: RequestContext = Depends(require(Permission.SECURITY_WRITE)),
    db: AsyncSession = Depends(get_db),
):
    if await UserRepository(db).get(body.user_id) is None:
        raise NotFoundError(f"User {body.user_id} not found")

    await PermissionResolver(db).grant_group(body.user_id, group_id, assigned_by=ctx.user_id)
    await AuditService(db).record(
        actor_id=ctx.user_id,
        entity_type=AuditEntityType.USER,
        entity_id=body.user_id,
        action=AuditAction.GRANT,
        details={"group_id": group_id},
    )


@router.delete("/permission-groups/{group_id}/grants/{user_id}", status_code=204)
async def revoke_permission_group(
    group_id: str,
    user_id: str,
    ctx: RequestContext = Depends(require(Permission.SECURITY_WRITE)),
    db: AsyncSession = Depends(get_db),
):
    if not await PermissionResolver(db).revoke_group(user_id, group_id):
        raise NotFoundError(f"User {user_id} does not hold permission group {group_id}")
    await AuditService(db).record(
        actor_id=ctx.user_id,
        entity_type=AuditEntityType.USER,
        entity_id=user_id,
        action=AuditAction.REVOKE,
        details={"group_id": group_id},
    )
