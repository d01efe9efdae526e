"""Form session endpoints.

Implements:
- POST/GET/DELETE /form-sessions[/{session_id}]
- GET/PATCH /form-sessions/{session_id}/variables and PUT .../variables/{name}
- PUT /form-sessions/{session_id}/fields/{field_id}/value
- PUT/DELETE /form-sessions/{session_id}/flow-states/{key}
- GET /form-sessions/{session_id}/validation

Mutations report the field and page visibility changes they caused.
"""

from __future__ import annotations

import logging
from typing import Any, Type

from fastapi import APIRouter, Response

from formflow.logic.inmemory_state import SESSIONS
from formflow.logic.session import FormSession, Snapshot
from formflow.models.response_types import MutationResult, SessionView, ValidationResult, VariablesView
from formflow.models.session_payloads import (
    CreateSessionRequest,
    FlowStatePayload,
    ValuePayload,
    VariablesPayload,
)

router = APIRouter()
logger = logging.getLogger(__name__)


def mutation_result(
    session: FormSession,
    before: Snapshot,
    model: Type[MutationResult] = MutationResult,
    **extra: Any,
) -> MutationResult:
    field_delta, page_delta = session.delta_since(before)
    return model(session=session.view(), visibility_delta=field_delta, page_delta=page_delta, **extra)


@router.post("/form-sessions", status_code=201, response_model=SessionView)
def create_session(body: CreateSessionRequest) -> SessionView:
    session = SESSIONS.create(body.form, variables=body.variables)
    with session.lock:
        return session.view()


@router.get("/form-sessions/{session_id}", response_model=SessionView)
def get_session(session_id: str) -> SessionView:
    with SESSIONS.locked(session_id) as session:
        return session.view()


@router.delete("/form-sessions/{session_id}", status_code=204)
def delete_session(session_id: str) -> Response:
    SESSIONS.discard(session_id)
    return Response(status_code=204)


@router.get("/form-sessions/{session_id}/variables", response_model=VariablesView)
def get_variables(session_id: str) -> VariablesView:
    with SESSIONS.locked(session_id) as session:
        return VariablesView(variables=session.store.get_all())


@router.put("/form-sessions/{session_id}/variables/{name}", response_model=MutationResult)
def put_variable(session_id: str, name: str, body: ValuePayload) -> MutationResult:
    with SESSIONS.locked(session_id) as session:
        before = session.snapshot()
        session.store.set(name, body.value)
        logger.info("variable_set session_id=%s name=%s", session_id, name)
        return mutation_result(session, before)


@router.patch("/form-sessions/{session_id}/variables", response_model=MutationResult)
def patch_variables(session_id: str, body: VariablesPayload) -> MutationResult:
    with SESSIONS.locked(session_id) as session:
        before = session.snapshot()
        session.store.set_multiple(body.variables)
        logger.info("variables_merged session_id=%s names=%s", session_id, sorted(body.variables))
        return mutation_result(session, before)


@router.put("/form-sessions/{session_id}/fields/{field_id}/value", response_model=MutationResult)
def put_field_value(session_id: str, field_id: str, body: ValuePayload) -> MutationResult:
    with SESSIONS.locked(session_id) as session:
        before = session.snapshot()
        session.engine.set_field_value(field_id, body.value)
        return mutation_result(session, before)


@router.put("/form-sessions/{session_id}/flow-states/{key}", response_model=MutationResult)
def put_flow_state(session_id: str, key: str, body: FlowStatePayload) -> MutationResult:
    with SESSIONS.locked(session_id) as session:
        before = session.snapshot()
        session.flow_states.set_flow_state(key, body.state, body.data)
        return mutation_result(session, before)


@router.delete("/form-sessions/{session_id}/flow-states/{key}", response_model=MutationResult)
def delete_flow_state(session_id: str, key: str) -> MutationResult:
    with SESSIONS.locked(session_id) as session:
        before = session.snapshot()
        session.flow_states.clear_flow_state(key)
        return mutation_result(session, before)


@router.get("/form-sessions/{session_id}/validation", response_model=ValidationResult)
def get_validation(session_id: str) -> ValidationResult:
    with SESSIONS.locked(session_id) as session:
        report = session.engine.validate()
        return ValidationResult(session_id=session_id, valid=report.valid, errors=report.errors)
