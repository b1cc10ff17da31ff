"""
Role definitions — which bundles of permission tokens make up each role.

    APPLICANT   self-scoped access to their own profile, cases, documents
    EXPERT      read-only access (assignment is still enforced per case)
    AGENT       expert + write on cases, documents, forms
    ADMIN       everything

Per-user grants from permission groups are layered on top of these by
PermissionResolver.
"""

from enum import Enum

from caseflow.auth.permissions import Permission


class Role(str, Enum):
    APPLICANT = "applicant"
    AGENT = "agent"
    EXPERT = "expert"
    ADMIN = "admin"

    @property
    def label(self) -> str:
        return self.value.capitalize()


# ── Applicant: only things they own ──
_APPLICANT_PERMS: frozenset[Permission] = frozenset({
    Permission.USER_READ_SELF,
    Permission.CASE_READ_SELF,
    Permission.CASE_WRITE_SELF,
    Permission.DOCUMENT_READ_SELF,
    Permission.DOCUMENT_WRITE_SELF,
    Permission.FORM_READ_SELF,
    Permission.FORM_WRITE_SELF,
})

# ── Expert: read-only ──
_EXPERT_PERMS: frozenset[Permission] = frozenset({
    Permission.USER_READ,
    Permission.CASE_READ,
    Permission.DOCUMENT_READ,
    Permission.FORM_READ,
})

# ── Agent: expert + write ──
_AGENT_PERMS: frozenset[Permission] = frozenset({
    *_EXPERT_PERMS,
    Permission.CASE_WRITE,
    Permission.DOCUMENT_WRITE,
    Permission.FORM_WRITE,
})

# ── Admin: everything ──
_ADMIN_PERMS: frozenset[Permission] = frozenset(Permission)


ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    Role.APPLICANT: _APPLICANT_PERMS,
    Role.AGENT: _AGENT_PERMS,
    Role.EXPERT: _EXPERT_PERMS,
    Role.ADMIN: _ADMIN_PERMS,
}


def role_tokens(role: Role | str) -> set[str]:
    """Plain-string token set for a role."""
    return {p.value for p in ROLE_PERMISSIONS[Role(role)]}
