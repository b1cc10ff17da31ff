"""
Access Decision Engine

Decides whether a user may perform an action on one specific resource,
combining role permission tokens (RBAC) with ownership and assignment
attributes of the resource itself (ABAC).

Evaluation order, first match wins:
    1. unknown user                       -> NotFoundError
       disabled user                      -> deny
    2. admin                              -> allow
    3. own user record, profile action    -> allow
    4. resolve permission tokens
    5. case      -> owner / assignee rule + case token
    6. document  -> same rule against the document's case + document token
    7. anything else -> allow iff `<namespace>:<action>` is held

A deny is a normal outcome, returned as an AccessDecision with a reason.
Exceptions are reserved for missing records and infrastructure failures.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from sqlalchemy.ext.asyncio import AsyncSession

from caseflow.auth.roles import Role
from caseflow.errors import NotFoundError
from caseflow.middleware.metrics import access_decisions_total
from caseflow.models import Case
from caseflow.repositories.cases import CaseRepository
from caseflow.repositories.documents import DocumentRepository
from caseflow.repositories.users import UserRepository
from caseflow.services.permission_resolver import PermissionResolver

logger = logging.getLogger(__name__)


class ResourceType(str, Enum):
    USER = "user"
    CASE = "case"
    DOCUMENT = "document"
    FORM = "form"
    REPORT = "report"


class ActionType(str, Enum):
    READ = "read"
    WRITE = "write"
    DELETE = "delete"
    APPROVE = "approve"
    REJECT = "reject"
    ASSIGN = "assign"
    SUBMIT = "submit"
    ACCESS_CHECK = "access_check"


# Actions a user may always perform on their own user record
_PROFILE_ACTIONS = frozenset({ActionType.READ, ActionType.WRITE, ActionType.ACCESS_CHECK})

# Token namespace per resource type, where it differs from the type name
_TOKEN_NAMESPACE = {ResourceType.REPORT: "analytics"}


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: str | None = None

    def __post_init__(self):
        if not self.allowed and not self.reason:
            raise ValueError("A denied AccessDecision must carry a reason")

    @classmethod
    def allow(cls) -> "AccessDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str) -> "AccessDecision":
        return cls(allowed=False, reason=reason)


def required_token(resource_type: ResourceType, action: ActionType, *, self_scoped: bool = False) -> str:
    """Token implied by (resource_type, action); access checks ride on read."""
    namespace = _TOKEN_NAMESPACE.get(resource_type, resource_type.value)
    verb = ActionType.READ.value if action == ActionType.ACCESS_CHECK else action.value
    token = f"{namespace}:{verb}"
    return f"{token}:self" if self_scoped else token


class AccessDecisionEngine:
    def __init__(self, session: AsyncSession, resolver: PermissionResolver | None = None):
        self.session = session
        self.users = UserRepository(session)
        self.cases = CaseRepository(session)
        self.documents = DocumentRepository(session)
        self.resolver = resolver or PermissionResolver(session)

    async def check_access(
        self,
        user_id: str,
        resource_type: ResourceType | str,
        resource_id: str,
        action: ActionType | str,
    ) -> AccessDecision:
        resource_type = ResourceType(resource_type)
        action = ActionType(action)

        decision = await self._decide(user_id, resource_type, resource_id, action)

        access_decisions_total.labels(
            resource_type=resource_type.value,
            outcome="allow" if decision.allowed else "deny",
        ).inc()
        if not decision.allowed:
            logger.info(
                "Access denied: user=%s %s:%s on %s (%s)",
                user_id, resource_type.value, action.value, resource_id, decision.reason,
            )
        return decision

    async def _decide(
        self,
        user_id: str,
        resource_type: ResourceType,
        resource_id: str,
        action: ActionType,
    ) -> AccessDecision:
        user = await self.users.get(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        if not user.is_active:
            return AccessDecision.deny("Account is disabled")
        role = Role(user.role)

        if role == Role.ADMIN:
            return AccessDecision.allow()

        if resource_type == ResourceType.USER and resource_id == user_id and action in _PROFILE_ACTIONS:
            return AccessDecision.allow()

        tokens = await self.resolver.tokens_for(user_id, role)

        if resource_type == ResourceType.CASE:
            case = await self.cases.get(resource_id)
            if case is None:
                raise NotFoundError(f"Case {resource_id} not found")
            return self._check_case_relationship(
                user_id, role, tokens, case, resource_type, action, noun="cases",
            )

        if resource_type == ResourceType.DOCUMENT:
            document = await self.documents.get(resource_id)
            if document is None:
                raise NotFoundError(f"Document {resource_id} not found")
            case = await self.cases.get(document.case_id)
            if case is None:
                raise NotFoundError(f"Case {document.case_id} not found")
            return self._check_case_relationship(
                user_id, role, tokens, case, resource_type, action,
                noun="documents", assigned_noun="documents for cases",
            )

        token = required_token(resource_type, action)
        if token in tokens:
            return AccessDecision.allow()
        return AccessDecision.deny(f"Missing permission {token}")

    @staticmethod
    def _check_case_relationship(
        user_id: str,
        role: Role,
        tokens: set[str],
        case: Case,
        resource_type: ResourceType,
        action: ActionType,
        *,
        noun: str,
        assigned_noun: str | None = None,
    ) -> AccessDecision:
        """Ownership rule for applicants, assignment rule for agents and experts."""
        if role == Role.APPLICANT:
            if case.applicant_id != user_id:
                return AccessDecision.deny(f"Applicants can only access their own {noun}")
            token = required_token(resource_type, action, self_scoped=True)
        else:
            if case.agent_id != user_id:
                return AccessDecision.deny(
                    f"{role.label}s can only access {assigned_noun or noun} assigned to them"
                )
            token = required_token(resource_type, action)

        if token in tokens:
            return AccessDecision.allow()
        return AccessDecision.deny(f"Missing permission {token}")
