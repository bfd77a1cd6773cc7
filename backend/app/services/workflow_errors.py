"""
Rejections raised by the match workflow.

Every error carries a machine-readable ``code`` and a human message. All of
them are raised before any mutation is committed, so a rejected request
never leaves a match half-updated.
"""


class WorkflowError(Exception):
    code = "WORKFLOW_ERROR"

    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code

    @property
    def detail(self) -> str:
        return f"{self.code}: {self.message}"


class MatchNotFound(WorkflowError):
    code = "MATCH_NOT_FOUND"


class NotAuthorized(WorkflowError):
    """Actor lacks the role or permission for the requested transition. Not retried."""

    code = "NOT_AUTHORIZED"


class InvalidState(WorkflowError):
    """Transition does not exist from the current state. Caller should re-fetch."""

    code = "INVALID_STATE"


class AlreadyProcessed(InvalidState):
    """The same request was already applied. Non-fatal; caller should re-fetch."""

    code = "ALREADY_PROCESSED"


class PreconditionFailed(WorkflowError):
    """Structural requirement unmet (slots, start time, pending invitations)."""

    code = "PRECONDITION_FAILED"


class ValidationError(WorkflowError):
    """Malformed input."""

    code = "VALIDATION_ERROR"
