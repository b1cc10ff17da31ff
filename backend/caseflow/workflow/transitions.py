"""
Case lifecycle — statuses, legal transitions, and per-transition requirements.

    draft ──► submitted ──► in_review ──► approved ──► completed
      │           │          │   ▲  │
      │           │          ▼   │  └──► rejected
      │           │   additional_info_required
      ▼           ▼          │
    withdrawn ◄──────────────┘   (withdrawn reachable from every open status)

rejected, withdrawn and completed are terminal. Both tables below are built
once at import time and exposed read-only.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping


class CaseStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    IN_REVIEW = "in_review"
    ADDITIONAL_INFO_REQUIRED = "additional_info_required"
    APPROVED = "approved"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"
    COMPLETED = "completed"

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]


_STATUS_LABELS = {
    CaseStatus.DRAFT: "Draft",
    CaseStatus.SUBMITTED: "Submitted",
    CaseStatus.IN_REVIEW: "In Review",
    CaseStatus.ADDITIONAL_INFO_REQUIRED: "Additional Information Required",
    CaseStatus.APPROVED: "Approved",
    CaseStatus.REJECTED: "Rejected",
    CaseStatus.WITHDRAWN: "Withdrawn",
    CaseStatus.COMPLETED: "Completed",
}

TERMINAL_STATUSES: frozenset[CaseStatus] = frozenset({
    CaseStatus.REJECTED,
    CaseStatus.WITHDRAWN,
    CaseStatus.COMPLETED,
})

# Valid status transitions: current_status -> set of allowed next statuses
VALID_TRANSITIONS: Mapping[CaseStatus, frozenset[CaseStatus]] = MappingProxyType({
    CaseStatus.DRAFT: frozenset({CaseStatus.SUBMITTED, CaseStatus.WITHDRAWN}),
    CaseStatus.SUBMITTED: frozenset({CaseStatus.IN_REVIEW, CaseStatus.WITHDRAWN}),
    CaseStatus.IN_REVIEW: frozenset({
        CaseStatus.ADDITIONAL_INFO_REQUIRED,
        CaseStatus.APPROVED,
        CaseStatus.REJECTED,
        CaseStatus.WITHDRAWN,
    }),
    CaseStatus.ADDITIONAL_INFO_REQUIRED: frozenset({CaseStatus.IN_REVIEW, CaseStatus.WITHDRAWN}),
    CaseStatus.APPROVED: frozenset({CaseStatus.COMPLETED}),
    CaseStatus.REJECTED: frozenset(),  # terminal
    CaseStatus.WITHDRAWN: frozenset(),  # terminal
    CaseStatus.COMPLETED: frozenset(),  # terminal
})


@dataclass(frozen=True)
class TransitionRequirement:
    """Side effects attached to a single (from, to) transition."""

    requires_notes: bool = False
    update_submission_date: bool = False
    update_decision_date: bool = False
    notify_applicant: bool = True
    notify_agent: bool = True


def allowed_targets(current: CaseStatus | str) -> frozenset[CaseStatus]:
    """Statuses reachable in one step from ``current``."""
    return VALID_TRANSITIONS[CaseStatus(current)]


def is_valid_transition(current: CaseStatus | str, target: CaseStatus | str) -> bool:
    """
    True if ``current -> target`` is structurally legal.

    Staying in the same status is always legal (idempotent no-op). Values
    outside CaseStatus raise ValueError.
    """
    current, target = CaseStatus(current), CaseStatus(target)
    if current == target:
        return True
    return target in VALID_TRANSITIONS[current]


def requirements_for(current: CaseStatus | str, target: CaseStatus | str) -> TransitionRequirement:
    """
    Derive the requirement flags for ``current -> target``.

        draft -> submitted         stamp submission_date
        * -> approved | rejected   notes required, stamp decision_date
        * -> additional_info_req.  notes required

    Both parties are notified on every transition; a missing agent is
    handled by the dispatcher, not suppressed here.
    """
    current, target = CaseStatus(current), CaseStatus(target)

    requires_notes = False
    update_submission_date = False
    update_decision_date = False

    if current == CaseStatus.DRAFT and target == CaseStatus.SUBMITTED:
        update_submission_date = True

    if target in (CaseStatus.APPROVED, CaseStatus.REJECTED):
        requires_notes = True
        update_decision_date = True

    if target == CaseStatus.ADDITIONAL_INFO_REQUIRED:
        requires_notes = True

    return TransitionRequirement(
        requires_notes=requires_notes,
        update_submission_date=update_submission_date,
        update_decision_date=update_decision_date,
    )
