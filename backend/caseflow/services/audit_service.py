"""
Audit Service

Append-only, hash-chained audit trail. Every committed case state change,
assignment and audited access check creates one entry. The workflow core
only ever appends; reads exist for the history and admin audit endpoints.
"""

import hashlib
import json
from enum import Enum
from uuid import uuid4

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from caseflow.models import AuditLog
from caseflow.models.base import utcnow


class AuditEntityType(str, Enum):
    USER = "user"
    CASE = "case"
    DOCUMENT = "document"
    PERMISSION_GROUP = "permission_group"


class AuditAction(str, Enum):
    CREATE = "create"
    UPDATE_STATUS = "update_status"
    ASSIGN_AGENT = "assign_agent"
    UPDATE_PRIORITY = "update_priority"
    UPLOAD = "upload"
    ACCESS_CHECK = "access_check"
    GRANT = "grant"
    REVOKE = "revoke"


class AuditService:
    """Immutable, hash-chained audit trail."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _calculate_hash(self, content: dict, previous_hash: str | None) -> str:
        """SHA-256 hash of entry contents + previous hash."""
        payload = {
            "content": content,
            "previous_hash": previous_hash or "",
        }
        raw = json.dumps(payload, sort_keys=True, default=str)
        return hashlib.sha256(raw.encode()).hexdigest()

    async def _get_latest_hash(self) -> str | None:
        result = await self.session.execute(
            select(AuditLog.current_hash)
            .order_by(AuditLog.id.desc())
            .limit(1)
        )
        return result.scalar()

    async def record(
        self,
        actor_id: str,
        entity_type: AuditEntityType | str,
        entity_id: str,
        action: AuditAction | str,
        details: dict | None = None,
        description: str | None = None,
    ) -> AuditLog:
        """
        Append an audit entry.

        Args:
            actor_id: id of the user who performed the action
            entity_type: "case", "user", "document", ...
            entity_id: id of the affected entity
            action: what happened, e.g. "update_status"
            details: JSON-serialisable event payload
            description: human-readable one-liner; derived if omitted
        """
        entity_type = AuditEntityType(entity_type).value
        action = AuditAction(action).value
        entry_details = details or {}
        if description is None:
            description = f"{action} on {entity_type} {entity_id}"

        previous_hash = await self._get_latest_hash()
        content_for_hash = {
            "actor_id": actor_id,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "action": action,
            "description": description,
            "details": entry_details,
        }
        current_hash = self._calculate_hash(content_for_hash, previous_hash)

        entry = AuditLog(
            event_id=str(uuid4()),
            actor_id=actor_id,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            description=description,
            details=entry_details,
            previous_hash=previous_hash,
            current_hash=current_hash,
            created_at=utcnow(),
        )
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def log_case_created(self, case_id: str, actor_id: str, visa_type: str, priority: str) -> AuditLog:
        return await self.record(
            actor_id=actor_id,
            entity_type=AuditEntityType.CASE,
            entity_id=case_id,
            action=AuditAction.CREATE,
            description=f"Case {case_id} created ({visa_type})",
            details={"visa_type": visa_type, "priority": priority},
        )

    async def log_status_changed(
        self,
        case_id: str,
        actor_id: str,
        previous_status: str,
        new_status: str,
        notes: str | None,
        timestamp: str,
    ) -> AuditLog:
        return await self.record(
            actor_id=actor_id,
            entity_type=AuditEntityType.CASE,
            entity_id=case_id,
            action=AuditAction.UPDATE_STATUS,
            description=f"Case {case_id} status: {previous_status} → {new_status}",
            details={
                "previous_status": previous_status,
                "new_status": new_status,
                "notes": notes,
                "timestamp": timestamp,
            },
        )

    async def log_agent_assigned(
        self, case_id: str, actor_id: str, previous_agent_id: str | None, new_agent_id: str | None
    ) -> AuditLog:
        return await self.record(
            actor_id=actor_id,
            entity_type=AuditEntityType.CASE,
            entity_id=case_id,
            action=AuditAction.ASSIGN_AGENT,
            description=f"Case {case_id} assigned to {new_agent_id or 'nobody'}",
            details={"previous_agent_id": previous_agent_id, "new_agent_id": new_agent_id},
        )

    async def log_priority_changed(
        self, case_id: str, actor_id: str, previous_priority: str, new_priority: str
    ) -> AuditLog:
        return await self.record(
            actor_id=actor_id,
            entity_type=AuditEntityType.CASE,
            entity_id=case_id,
            action=AuditAction.UPDATE_PRIORITY,
            description=f"Case {case_id} priority: {previous_priority} → {new_priority}",
            details={"previous_priority": previous_priority, "new_priority": new_priority},
        )

    async def log_access_check(
        self,
        actor_id: str,
        subject_id: str,
        resource_type: str,
        resource_id: str,
        action: str,
        allowed: bool,
        reason: str | None,
    ) -> AuditLog:
        return await self.record(
            actor_id=actor_id,
            entity_type=AuditEntityType.USER,
            entity_id=subject_id,
            action=AuditAction.ACCESS_CHECK,
            description=f"Access check {resource_type}:{action} on {resource_id}: "
                        f"{'allowed' if allowed else 'denied'}",
            details={
                "resource_type": resource_type,
                "resource_id": resource_id,
                "action": action,
                "allowed": allowed,
                "reason": reason,
            },
        )

    async def verify_chain_integrity(self) -> dict:
        """Walk the full chain and verify each entry's hash."""
        result = await self.session.execute(
            select(AuditLog).order_by(AuditLog.id.asc())
        )
        entries = list(result.scalars())

        if not entries:
            return {"valid": True, "entries_checked": 0, "first_invalid": None}

        for i, entry in enumerate(entries):
            expected_prev = entries[i - 1].current_hash if i > 0 else None
            if entry.previous_hash != expected_prev:
                return {
                    "valid": False,
                    "entries_checked": i + 1,
                    "first_invalid": entry.event_id,
                    "reason": "previous_hash mismatch",
                }

            content = {
                "actor_id": entry.actor_id,
                "entity_type": entry.entity_type,
                "entity_id": entry.entity_id,
                "action": entry.action,
                "description": entry.description,
                "details": entry.details,
            }
            expected_hash = self._calculate_hash(content, entry.previous_hash)
            if entry.current_hash != expected_hash:
                return {
                    "valid": False,
                    "entries_checked": i + 1,
                    "first_invalid": entry.event_id,
                    "reason": "current_hash mismatch (data tampered)",
                }

        return {"valid": True, "entries_checked": len(entries), "first_invalid": None}

    async def get_entries(
        self,
        entity_type: str | None = None,
        entity_id: str | None = None,
        action: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[AuditLog]:
        """Query audit entries with optional filters, newest first."""
        query = select(AuditLog).order_by(AuditLog.id.desc())

        if entity_type:
            query = query.where(AuditLog.entity_type == entity_type)
        if entity_id:
            query = query.where(AuditLog.entity_id == entity_id)
        if action:
            query = query.where(AuditLog.action == action)

        query = query.offset(offset).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars())

    async def get_entry_count(
        self,
        entity_type: str | None = None,
        entity_id: str | None = None,
        action: str | None = None,
    ) -> int:
        query = select(func.count()).select_from(AuditLog)
        if entity_type:
            query = query.where(AuditLog.entity_type == entity_type)
        if entity_id:
            query = query.where(AuditLog.entity_id == entity_id)
        if action:
            query = query.where(AuditLog.action == action)
        result = await self.session.execute(query)
        return result.scalar() or 0
