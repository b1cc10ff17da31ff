"""
Role × origin-status matrix — which roles may move a case out of a status.

Permission is keyed by the status the case is *leaving*, not the one it is
entering: a role cleared for in_review may reach every status legal from
in_review. Agent and expert currently share the same row.
"""

from types import MappingProxyType
from typing import Mapping

from caseflow.auth.roles import Role
from caseflow.workflow.transitions import CaseStatus, is_valid_transition

_S = CaseStatus

# Applicants submit, withdraw and resubmit their own applications.
_APPLICANT_ORIGINS = frozenset({_S.DRAFT, _S.SUBMITTED, _S.ADDITIONAL_INFO_REQUIRED})

# Case workers pick up submissions, decide, and close out approvals.
_CASEWORKER_ORIGINS = frozenset({
    _S.SUBMITTED,
    _S.IN_REVIEW,
    _S.ADDITIONAL_INFO_REQUIRED,
    _S.APPROVED,
})

ROLE_TRANSITION_ORIGINS: Mapping[Role, frozenset[CaseStatus]] = MappingProxyType({
    Role.APPLICANT: _APPLICANT_ORIGINS,
    Role.AGENT: _CASEWORKER_ORIGINS,
    Role.EXPERT: _CASEWORKER_ORIGINS,
    Role.ADMIN: frozenset(CaseStatus),
})


def permitted_origins(role: Role | str) -> frozenset[CaseStatus]:
    """Statuses from which ``role`` may drive a transition."""
    return ROLE_TRANSITION_ORIGINS[Role(role)]


def has_permission(role: Role | str, current: CaseStatus | str, target: CaseStatus | str) -> bool:
    """True if ``role`` may move a case from ``current`` to ``target``."""
    if not is_valid_transition(current, target):
        return False
    return CaseStatus(current) in permitted_origins(role)
