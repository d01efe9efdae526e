"""Condition export/import endpoints.

Export returns the registry as `{fieldConditions, pageConditions}`; import
replaces the registry and re-evaluates every artifact against the live store.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter
from pydantic import ValidationError as PydanticValidationError

from formflow.errors import FormDefinitionError
from formflow.logic.inmemory_state import SESSIONS
from formflow.models.response_types import MutationResult
from formflow.models.session_payloads import ConditionsPayload
from formflow.routes.sessions import mutation_result

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/form-sessions/{session_id}/conditions")
def export_conditions(session_id: str) -> Dict[str, Any]:
    with SESSIONS.locked(session_id) as session:
        return session.engine.export_conditions()


@router.put("/form-sessions/{session_id}/conditions", response_model=MutationResult)
def import_conditions(session_id: str, body: ConditionsPayload) -> MutationResult:
    with SESSIONS.locked(session_id) as session:
        before = session.snapshot()
        try:
            session.engine.import_conditions(body.model_dump(by_alias=True))
        except PydanticValidationError as exc:
            raise FormDefinitionError(f"conditions config is invalid: {exc.error_count()} error(s)") from exc
        logger.info(
            "conditions_imported session_id=%s fields=%s pages=%s",
            session_id,
            len(body.field_conditions),
            len(body.page_conditions),
        )
        return mutation_result(session, before)
