"""Notifications API — the caller's in-app notifications."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from caseflow.api.deps import get_db, get_request_context
from caseflow.auth.context import RequestContext
from caseflow.errors import NotFoundError
from caseflow.schemas.schemas import NotificationSchema
from caseflow.services.notification_service import NotificationService

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationSchema])
async def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    notifications = await NotificationService(db).list_for_user(ctx.user_id, unread_only, limit)
    return [NotificationSchema.model_validate(n) for n in notifications]


@router.post("/{notification_id}/read", status_code=204)
async def mark_notification_read(
    notification_id: str,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    if not await NotificationService(db).mark_read(notification_id, ctx.user_id):
        raise NotFoundError(f"Notification {notification_id} not found")
