"""
RequestContext — who is asking and which permission tokens they hold.

Built per request by `get_request_context()` in api/deps.py: the JWT names
the user, the stored user row supplies the role, and PermissionResolver
supplies the tokens (role plus granted groups).
Coarse, role-level guards live here; per-resource decisions (ownership,
assignment) belong to AccessDecisionEngine.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from fastapi import HTTPException

from caseflow.auth.permissions import Permission
from caseflow.auth.roles import Role


@dataclass
class RequestContext:
    user_id: str
    role: Role = Role.APPLICANT
    permissions: set[str] = field(default_factory=set)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def has_permission(self, perm: Permission | str) -> bool:
        token = perm.value if isinstance(perm, Permission) else perm
        return token in self.permissions

    def require_permission(self, perm: Permission | str) -> None:
        """Raise 403 if the caller lacks the given permission."""
        if not self.has_permission(perm):
            token = perm.value if isinstance(perm, Permission) else perm
            raise HTTPException(
                status_code=403,
                detail=f"Insufficient permissions: requires {token}",
            )
