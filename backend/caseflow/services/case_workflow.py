"""
Case Workflow Coordinator

Drives a case through its lifecycle:
- Draft creation by the applicant
- Status transitions with structural, role and notes validation
- Compare-and-swap commit on the status column
- Audit + notification side effects after commit
- Agent assignment and priority changes

Each call re-reads the case; nothing is cached between calls.

Side-effect guarantee: audit and notifications run after the status change
is committed, each in its own short transaction. If one of them fails the
failure is logged and counted, and the committed transition stands. The
audit trail is therefore best-effort and should be monitored through the
`post_commit_failures_total` metric.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from caseflow.auth.roles import Role
from caseflow.errors import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from caseflow.middleware.metrics import (
    case_transition_conflicts_total,
    case_transitions_total,
    post_commit_failures_total,
)
from caseflow.models import AuditLog, Case, CasePriority, VisaType
from caseflow.models.base import utcnow
from caseflow.repositories.cases import CaseRepository
from caseflow.repositories.users import UserRepository
from caseflow.services.audit_service import AuditEntityType, AuditService
from caseflow.services.notification_service import (
    NotificationEvent,
    NotificationKind,
    NotificationService,
    status_change_events,
)
from caseflow.workflow.role_matrix import has_permission
from caseflow.workflow.transitions import (
    CaseStatus,
    allowed_targets,
    is_valid_transition,
    requirements_for,
)

logger = logging.getLogger(__name__)

# Roles a case can be assigned to
_ASSIGNABLE_ROLES = {Role.AGENT.value, Role.EXPERT.value}


class WorkflowCoordinator:
    """Orchestrates case status changes and their side effects."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        audit: AuditService | None = None,
        notifications: NotificationService | None = None,
    ):
        self.session = session
        self.cases = CaseRepository(session)
        self.users = UserRepository(session)
        self.audit = audit or AuditService(session)
        self.notifications = notifications or NotificationService(session)

    # ── Creation ─────────────────────────────────────────────────────────

    async def create_case(
        self,
        applicant_id: str,
        title: str,
        visa_type: str,
        *,
        acting_user_id: str,
        description: str | None = None,
        priority: str = CasePriority.MEDIUM.value,
    ) -> Case:
        """Open a new case in draft for ``applicant_id``."""
        if not title or not title.strip():
            raise ValidationError("Case title is required")
        try:
            visa_type = VisaType(visa_type).value
            priority = CasePriority(priority).value
        except ValueError as e:
            raise ValidationError(str(e)) from e

        applicant = await self.users.get(applicant_id)
        if applicant is None:
            raise NotFoundError(f"User {applicant_id} not found")
        if applicant.role != Role.APPLICANT.value:
            raise ValidationError("Cases can only be opened for applicants")

        case = await self.cases.create(
            title=title.strip(),
            description=description,
            visa_type=visa_type,
            priority=priority,
            applicant_id=applicant_id,
            status=CaseStatus.DRAFT.value,
        )
        await self.audit.log_case_created(
            case_id=case.id,
            actor_id=acting_user_id,
            visa_type=visa_type,
            priority=priority,
        )
        await self.session.commit()
        logger.info("Case %s created for applicant %s", case.id, applicant_id)
        return case

    # ── Status transitions ───────────────────────────────────────────────

    async def transition(
        self,
        case_id: str,
        target_status: CaseStatus | str,
        acting_user_id: str,
        acting_role: Role | str,
        notes: str | None = None,
    ) -> Case:
        """
        Move a case to ``target_status``.

        Raises:
            NotFoundError: the case does not exist
            InvalidTransitionError: the lifecycle has no such edge
            ForbiddenError: the acting role may not act from the current status
            ValidationError: notes are required and missing, or the status is unknown
            ConflictError: the case changed between read and commit
        """
        try:
            target = CaseStatus(target_status)
        except ValueError as e:
            raise ValidationError(f"Unknown case status: {target_status}") from e
        role = Role(acting_role)

        case = await self.cases.get(case_id)
        if case is None:
            raise NotFoundError(f"Case {case_id} not found")
        current = CaseStatus(case.status)

        if current == target:
            return case

        if not is_valid_transition(current, target):
            allowed = sorted(s.value for s in allowed_targets(current))
            raise InvalidTransitionError(
                f"Invalid status transition from {current.value} to {target.value}. "
                f"Allowed: {allowed if allowed else 'none (terminal)'}"
            )

        if not has_permission(role, current, target):
            raise ForbiddenError(
                f"Role {role.value} cannot change case status from {current.value} to {target.value}"
            )

        requirement = requirements_for(current, target)
        notes = notes.strip() if notes else None
        if requirement.requires_notes and not notes:
            raise ValidationError(
                f"Notes are required for status transition from {current.value} to {target.value}"
            )

        now = utcnow()
        fields: dict = {"status": target.value, "updated_at": now}
        if notes:
            fields["notes"] = notes
        if requirement.update_submission_date:
            fields["submission_date"] = now
        if requirement.update_decision_date:
            fields["decision_date"] = now
        if target == CaseStatus.COMPLETED:
            fields["completed_at"] = now

        applicant_id, agent_id = case.applicant_id, case.agent_id

        try:
            committed = await self.cases.update(case_id, current.value, fields)
            if not committed:
                await self.session.rollback()
                case_transition_conflicts_total.inc()
                raise ConflictError(
                    f"Case {case_id} was modified concurrently; "
                    f"it is no longer in {current.value}. Re-read and retry."
                )
            await self.session.commit()
        except ConflictError:
            raise
        except Exception:
            await self.session.rollback()
            raise

        case_transitions_total.labels(from_status=current.value, to_status=target.value).inc()
        logger.info(
            "Case %s: %s -> %s by %s:%s",
            case_id, current.value, target.value, role.value, acting_user_id,
            extra={"case_id": case_id},
        )

        await self._record_transition(case_id, acting_user_id, current, target, notes, now.isoformat())

        events = status_change_events(case_id, applicant_id, agent_id, current, target, requirement)
        await self._dispatch(events, case_id)

        return await self.cases.get(case_id)

    async def _record_transition(
        self,
        case_id: str,
        actor_id: str,
        previous: CaseStatus,
        new: CaseStatus,
        notes: str | None,
        timestamp: str,
    ) -> None:
        try:
            await self.audit.log_status_changed(
                case_id=case_id,
                actor_id=actor_id,
                previous_status=previous.value,
                new_status=new.value,
                notes=notes,
                timestamp=timestamp,
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            post_commit_failures_total.labels(kind="audit").inc()
            logger.exception(
                "Audit entry lost for committed transition of case %s (%s -> %s)",
                case_id, previous.value, new.value,
                extra={"case_id": case_id},
            )

    async def _dispatch(self, events: list[NotificationEvent], case_id: str) -> None:
        """Send each notification independently; one failure does not stop the rest."""
        for event in events:
            try:
                await self.notifications.send_event(event)
                await self.session.commit()
            except Exception:
                await self.session.rollback()
                post_commit_failures_total.labels(kind="notification").inc()
                logger.exception(
                    "Notification %s to user %s for case %s failed",
                    event.kind.value, event.user_id, case_id,
                    extra={"case_id": case_id},
                )

    # ── Assignment & priority ────────────────────────────────────────────

    async def assign_agent(self, case_id: str, agent_id: str | None, acting_user_id: str) -> Case:
        """Assign (or with ``None``, unassign) the case worker."""
        case = await self.cases.get(case_id)
        if case is None:
            raise NotFoundError(f"Case {case_id} not found")

        if agent_id is not None:
            agent = await self.users.get(agent_id)
            if agent is None:
                raise NotFoundError(f"User {agent_id} not found")
            if agent.role not in _ASSIGNABLE_ROLES:
                raise ValidationError("Cases can only be assigned to agents or experts")

        previous_agent_id = case.agent_id
        if previous_agent_id == agent_id:
            return case

        await self.cases.set_fields(case_id, {"agent_id": agent_id, "updated_at": utcnow()})
        await self.audit.log_agent_assigned(
            case_id=case_id,
            actor_id=acting_user_id,
            previous_agent_id=previous_agent_id,
            new_agent_id=agent_id,
        )
        await self.session.commit()
        logger.info("Case %s assigned to %s", case_id, agent_id, extra={"case_id": case_id})

        if agent_id is not None:
            await self._dispatch([NotificationEvent(
                user_id=agent_id,
                kind=NotificationKind.CASE_ASSIGNED,
                title="Case Assigned",
                message=f"Case {case_id[:8]} ({case.title}) has been assigned to you.",
                data={"case_id": case_id},
            )], case_id)

        return await self.cases.get(case_id)

    async def update_priority(self, case_id: str, priority: str, acting_user_id: str) -> Case:
        try:
            priority = CasePriority(priority).value
        except ValueError as e:
            raise ValidationError(str(e)) from e

        case = await self.cases.get(case_id)
        if case is None:
            raise NotFoundError(f"Case {case_id} not found")

        previous_priority = case.priority
        if previous_priority == priority:
            return case

        await self.cases.set_fields(case_id, {"priority": priority, "updated_at": utcnow()})
        await self.audit.log_priority_changed(
            case_id=case_id,
            actor_id=acting_user_id,
            previous_priority=previous_priority,
            new_priority=priority,
        )
        await self.session.commit()
        return await self.cases.get(case_id)

    # ── Queries ──────────────────────────────────────────────────────────

    async def list_for_user(
        self, user_id: str, role: Role | str, limit: int = 50, offset: int = 0
    ) -> list[Case]:
        """Applicants see their own cases, case workers their assigned ones, admins all."""
        role = Role(role)
        if role == Role.ADMIN:
            return await self.cases.list_all(limit=limit, offset=offset)
        if role == Role.APPLICANT:
            return await self.cases.list_by_applicant(user_id, limit=limit, offset=offset)
        return await self.cases.list_by_agent(user_id, limit=limit, offset=offset)

    async def count_for_user(self, user_id: str, role: Role | str) -> int:
        """Total behind ``list_for_user``, independent of paging."""
        role = Role(role)
        if role == Role.ADMIN:
            return await self.cases.count()
        if role == Role.APPLICANT:
            return await self.cases.count(applicant_id=user_id)
        return await self.cases.count(agent_id=user_id)

    async def history(self, case_id: str, limit: int = 100) -> list[AuditLog]:
        """Audit entries for one case, newest first."""
        if await self.cases.get(case_id) is None:
            raise NotFoundError(f"Case {case_id} not found")
        return await self.audit.get_entries(
            entity_type=AuditEntityType.CASE.value,
            entity_id=case_id,
            limit=limit,
        )
