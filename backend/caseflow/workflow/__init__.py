from caseflow.workflow.transitions import (
    CaseStatus,
    TERMINAL_STATUSES,
    VALID_TRANSITIONS,
    TransitionRequirement,
    allowed_targets,
    is_valid_transition,
    requirements_for,
)
from caseflow.workflow.role_matrix import (
    ROLE_TRANSITION_ORIGINS,
    has_permission,
    permitted_origins,
)

__all__ = [
    "CaseStatus", "TERMINAL_STATUSES", "VALID_TRANSITIONS", "TransitionRequirement",
    "allowed_targets", "is_valid_transition", "requirements_for",
    "ROLE_TRANSITION_ORIGINS", "has_permission", "permitted_origins",
]
