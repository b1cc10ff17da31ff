from caseflow.auth.permissions import Permission
from caseflow.auth.roles import Role, ROLE_PERMISSIONS, role_tokens
from caseflow.auth.context import RequestContext

__all__ = ["Permission", "Role", "ROLE_PERMISSIONS", "role_tokens", "RequestContext"]
