"""Exceptions raised at the service boundary.

Evaluation and navigation never raise these; they surface missing sessions,
unusable form definitions and missing saved progress to the HTTP layer, which
maps each `code` to a problem+json response.
"""

from __future__ import annotations


class FormflowError(Exception):
    status = 500
    code = "INTERNAL_ERROR"
    title = "Internal Server Error"

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail)
        self.detail = detail


class SessionNotFoundError(FormflowError):
    status = 404
    code = "SESSION_NOT_FOUND"
    title = "Not Found"

    def __init__(self, session_id: str) -> None:
        super().__init__(f"form session {session_id} not found")
        self.session_id = session_id


class FormDefinitionError(FormflowError):
    status = 422
    code = "FORM_DEFINITION_INVALID"
    title = "Invalid Form Definition"


class ProgressNotFoundError(FormflowError):
    status = 404
    code = "PROGRESS_NOT_FOUND"
    title = "Not Found"

    def __init__(self, session_id: str) -> None:
        super().__init__(f"no saved progress for session {session_id}")
        self.session_id = session_id


__all__ = [
    "FormflowError",
    "SessionNotFoundError",
    "FormDefinitionError",
    "ProgressNotFoundError",
]
