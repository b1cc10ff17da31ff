"""
Workflow error taxonomy.

Every failure the workflow core raises is a WorkflowError subclass carrying
the HTTP status code the API layer maps it to. Access *denials* are not
errors: AccessDecisionEngine returns a structured AccessDecision instead.
"""


class WorkflowError(Exception):
    """Base class for typed failures raised by the workflow core."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(WorkflowError):
    status_code = 404


class ForbiddenError(WorkflowError):
    status_code = 403


class InvalidTransitionError(WorkflowError):
    status_code = 400


class ValidationError(WorkflowError):
    status_code = 400


class ConflictError(WorkflowError):
    """The case changed between read and write; re-read and retry."""

    status_code = 409


class InternalError(WorkflowError):
    status_code = 500
