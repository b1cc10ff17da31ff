"""
API Dependencies — DB session, auth context, permission guards.

`get_request_context` decodes the Bearer JWT, loads the user it names and
builds a RequestContext from the stored role plus granted permission
groups. Coarse role guards use `require(...)`; anything touching a
specific case, document or user goes through `enforce_access`, which asks
the AccessDecisionEngine.

Auth-exempt paths (no token required):
  /api/auth/login, /api/health, /metrics
"""

import logging
from typing import AsyncGenerator

from fastapi import Depends, Request, HTTPException
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from caseflow.database import async_session
from caseflow.auth.permissions import Permission
from caseflow.auth.roles import Role
from caseflow.auth.context import RequestContext
from caseflow.auth.jwt import decode_access_token
from caseflow.errors import ForbiddenError
from caseflow.repositories.users import UserRepository
from caseflow.services.access_control import AccessDecisionEngine, ActionType, ResourceType
from caseflow.services.permission_resolver import PermissionResolver

logger = logging.getLogger(__name__)


# ── Database session ─────────────────────────────────────────────────────────

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a DB session per request, commit on success, rollback on error."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# ── Request context (JWT authentication) ──────────────────────────────────────

async def get_request_context(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> RequestContext:
    """
    Authenticate the Bearer JWT and build the caller's RequestContext.

    The token only identifies the user. Role, active flag and permission
    tokens come from the database, so role changes, deactivation and
    permission-group grants apply to tokens that are already issued.
    """
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing or invalid Authorization header")

    try:
        claims = decode_access_token(auth_header.removeprefix("Bearer "))
    except JWTError as e:
        logger.debug("JWT decode failed: %s", e)
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    user = await UserRepository(db).get(claims["sub"])
    if user is None:
        raise HTTPException(status_code=401, detail="User no longer exists")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is disabled")

    try:
        role = Role(user.role)
    except ValueError:
        raise HTTPException(status_code=403, detail="Account has an unknown role")

    if claims.get("role") != role.value:
        logger.info(
            "Role of user %s changed since token was issued (%s -> %s)",
            user.id, claims.get("role"), role.value,
        )

    return RequestContext(
        user_id=user.id,
        role=role,
        permissions=await PermissionResolver(db).tokens_for(user.id, role),
    )


# ── Permission guards ────────────────────────────────────────────────────────

def require(*perms: Permission):
    """
    FastAPI dependency that checks the caller has ALL listed permissions.

    Usage:
        @router.get("/audit")
        async def list_audit(ctx: RequestContext = Depends(require(Permission.SECURITY_READ))):
            ...
    """
    async def _check(ctx: RequestContext = Depends(get_request_context)) -> RequestContext:
        for p in perms:
            ctx.require_permission(p)
        return ctx
    return _check


async def enforce_access(
    db: AsyncSession,
    ctx: RequestContext,
    resource_type: ResourceType,
    resource_id: str,
    action: ActionType,
) -> None:
    """Raise ForbiddenError (403) unless the caller may act on this resource."""
    decision = await AccessDecisionEngine(db).check_access(
        ctx.user_id, resource_type, resource_id, action,
    )
    if not decision.allowed:
        raise ForbiddenError(decision.reason)
