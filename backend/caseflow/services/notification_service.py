"""
Notification Service

In-app notification dispatcher. `send()` persists one notification for one
user; delivery over email/SMS/push is someone else's job. The workflow
treats every send as fire-and-forget.
"""

from dataclasses import dataclass, field
from enum import Enum

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from caseflow.models import Notification
from caseflow.workflow.transitions import CaseStatus, TransitionRequirement


class NotificationKind(str, Enum):
    CASE_STATUS_CHANGE = "case_status_change"
    CASE_ASSIGNED = "case_assigned"
    CASE_APPROVED = "case_approved"
    CASE_REJECTED = "case_rejected"
    ACTION_REQUIRED = "action_required"


@dataclass(frozen=True)
class NotificationEvent:
    user_id: str
    kind: NotificationKind
    title: str
    message: str
    data: dict = field(default_factory=dict)


def status_change_events(
    case_id: str,
    applicant_id: str,
    agent_id: str | None,
    previous: CaseStatus,
    new: CaseStatus,
    requirement: TransitionRequirement,
) -> list[NotificationEvent]:
    """
    Fan a status change out to the people who need to hear about it.

    The applicant always gets the generic change notice plus a dedicated
    one for action-required, approval and rejection. The agent is only
    notified when one is assigned.
    """
    data = {"case_id": case_id, "previous_status": previous.value, "new_status": new.value}
    events: list[NotificationEvent] = []

    if requirement.notify_applicant:
        events.append(NotificationEvent(
            user_id=applicant_id,
            kind=NotificationKind.CASE_STATUS_CHANGE,
            title="Case Status Updated",
            message=f"Your case status has been updated from {previous.label} to {new.label}.",
            data=data,
        ))
        if new == CaseStatus.ADDITIONAL_INFO_REQUIRED:
            events.append(NotificationEvent(
                user_id=applicant_id,
                kind=NotificationKind.ACTION_REQUIRED,
                title="Action Required",
                message="Additional information is required for your case. "
                        "Please review and provide the requested information.",
                data={"case_id": case_id},
            ))
        elif new == CaseStatus.APPROVED:
            events.append(NotificationEvent(
                user_id=applicant_id,
                kind=NotificationKind.CASE_APPROVED,
                title="Case Approved",
                message="Congratulations! Your case has been approved.",
                data={"case_id": case_id},
            ))
        elif new == CaseStatus.REJECTED:
            events.append(NotificationEvent(
                user_id=applicant_id,
                kind=NotificationKind.CASE_REJECTED,
                title="Case Rejected",
                message="Your case has been rejected. Please review the details for more information.",
                data={"case_id": case_id},
            ))

    if requirement.notify_agent and agent_id:
        events.append(NotificationEvent(
            user_id=agent_id,
            kind=NotificationKind.CASE_STATUS_CHANGE,
            title="Case Status Updated",
            message=f"Case {case_id[:8]} status has been updated from {previous.label} to {new.label}.",
            data=data,
        ))

    return events


class NotificationService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def send(
        self,
        user_id: str,
        kind: NotificationKind | str,
        title: str,
        message: str,
        data: dict | None = None,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            kind=NotificationKind(kind).value,
            title=title,
            message=message,
            data=data or {},
        )
        self.session.add(notification)
        await self.session.flush()
        return notification

    async def send_event(self, event: NotificationEvent) -> Notification:
        return await self.send(event.user_id, event.kind, event.title, event.message, event.data)

    async def list_for_user(self, user_id: str, unread_only: bool = False, limit: int = 50) -> list[Notification]:
        query = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            query = query.where(Notification.is_read.is_(False))
        result = await self.session.execute(
            query.order_by(Notification.created_at.desc()).limit(limit)
        )
        return list(result.scalars())

    async def mark_read(self, notification_id: str, user_id: str) -> bool:
        result = await self.session.execute(
            update(Notification)
            .where(Notification.id == notification_id, Notification.user_id == user_id)
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
