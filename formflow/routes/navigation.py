"""Navigation endpoints: Next, Previous and Submit for a form session."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter

from formflow.logic.inmemory_state import SESSIONS
from formflow.models.response_types import NavigationResult, SubmitResult
from formflow.models.session_payloads import NavigationPayload
from formflow.routes.sessions import mutation_result

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/form-sessions/{session_id}/navigation/next", response_model=NavigationResult)
def navigate_next(session_id: str, body: Optional[NavigationPayload] = None) -> NavigationResult:
    values = body.values if body is not None else {}
    with SESSIONS.locked(session_id) as session:
        before = session.snapshot()
        moved = session.navigation.next(values)
        return mutation_result(session, before, NavigationResult, moved=moved)


@router.post("/form-sessions/{session_id}/navigation/previous", response_model=NavigationResult)
def navigate_previous(session_id: str, body: Optional[NavigationPayload] = None) -> NavigationResult:
    values = body.values if body is not None else {}
    with SESSIONS.locked(session_id) as session:
        before = session.snapshot()
        moved = session.navigation.previous(values)
        return mutation_result(session, before, NavigationResult, moved=moved)


@router.post("/form-sessions/{session_id}/navigation/submit", response_model=SubmitResult)
def submit(session_id: str, body: Optional[NavigationPayload] = None) -> SubmitResult:
    values = body.values if body is not None else {}
    with SESSIONS.locked(session_id) as session:
        before = session.snapshot()
        payload = session.navigation.submit(values)
        return mutation_result(session, before, SubmitResult, submitted=payload is not None, payload=payload)
