"""
Domain errors for the crew service.

Every error carries a stable ``code`` string that the HTTP layer copies into
the response envelope, plus the status it maps to.
"""

from __future__ import annotations


class CrewError(Exception):
    """Base class for errors the API surfaces with a structured envelope."""

    code = "INTERNAL_ERROR"
    status_code = 500
    message = "An unexpected error occurred."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        self.message = message or self.message


class AllocationExhausted(CrewError):
    """No free join code was found within the attempt budget. Retryable."""

    code = "CODE_ALLOCATION_FAILED"
    status_code = 500
    message = "Unable to allocate a unique join code. Try again."

    def __init__(self, attempts: int, length: int) -> None:
        super().__init__()
        self.attempts = attempts
        self.length = length


class InviteNotFound(CrewError):
    code = "INVITE_NOT_FOUND"
    status_code = 404
    message = "Invite not found. Double-check the code."


class GroupNotFound(CrewError):
    code = "NOT_FOUND"
    status_code = 404
    message = "Group not found."


class MoodSubmissionFailed(CrewError):
    """Raised client-side after an optimistic mood submission was rolled back."""

    code = "MOOD_SUBMISSION_FAILED"
    status_code = 502
    message = "Could not save your answers. Try again."
