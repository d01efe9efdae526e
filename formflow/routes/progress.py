"""Saved-progress endpoints.

- POST /form-sessions/{session_id}/progress saves the session's navigation
  state, variables, field values and flow states.
- DELETE /form-sessions/{session_id}/progress discards saved progress.
- POST /form-sessions/{session_id}/progress/restore resumes from saved
  progress (the session's own, or `source_session_id`'s) by jumping to the
  saved page without validation.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Response

from formflow.errors import ProgressNotFoundError
from formflow.logic.inmemory_state import SESSIONS
from formflow.logic.repository_progress import delete_progress, load_progress, save_progress
from formflow.models.response_types import NavigationResult, ProgressSaved
from formflow.models.session_payloads import RestorePayload
from formflow.routes.sessions import mutation_result

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/form-sessions/{session_id}/progress", status_code=201, response_model=ProgressSaved)
def post_progress(session_id: str) -> ProgressSaved:
    with SESSIONS.locked(session_id) as session:
        progress = session.progress()
    save_progress(progress)
    return ProgressSaved(session_id=session_id, current_page=progress.current_page, saved_at=progress.saved_at)


@router.post("/form-sessions/{session_id}/progress/restore", response_model=NavigationResult)
def restore_progress(session_id: str, body: Optional[RestorePayload] = None) -> NavigationResult:
    source_id = (body.source_session_id if body is not None else None) or session_id
    progress = load_progress(source_id)
    if progress is None:
        raise ProgressNotFoundError(source_id)
    with SESSIONS.locked(session_id) as session:
        before = session.snapshot()
        moved = session.restore(progress)
        return mutation_result(session, before, NavigationResult, moved=moved)


@router.delete("/form-sessions/{session_id}/progress", status_code=204)
def discard_progress(session_id: str) -> Response:
    if not delete_progress(session_id):
        raise ProgressNotFoundError(session_id)
    return Response(status_code=204)
