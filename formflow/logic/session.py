"""Form session: the composition root for one published-form session.

Each session owns its own event bus, variable store, flow state store, sink,
visibility engine and navigation controller. Nothing is shared between
sessions.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Set, Tuple
import logging
import threading

from pydantic import ValidationError as PydanticValidationError

from formflow.config import EngineSettings
from formflow.errors import FormDefinitionError
from formflow.logic.events import FORM_SUBMITTED, EventBus, FormSubmitted
from formflow.logic.flow_state import FlowStateStore
from formflow.logic.navigation import NavigationController
from formflow.logic.sink import RecordingSink
from formflow.logic.variable_store import VariableStore
from formflow.logic.visibility_delta import compute_visibility_delta
from formflow.logic.visibility_engine import VisibilityEngine
from formflow.models.form_definition import FormDefinition
from formflow.models.progress import SessionProgress
from formflow.models.response_types import ButtonState, SessionView
from formflow.models.visibility import VisibilityDelta

logger = logging.getLogger(__name__)

Snapshot = Tuple[Set[str], Set[str]]


class FormSession:
    def __init__(
        self,
        session_id: str,
        definition: FormDefinition,
        *,
        variables: Optional[Mapping[str, Any]] = None,
        settings: Optional[EngineSettings] = None,
    ) -> None:
        self.id = session_id
        self.definition = definition
        self.lock = threading.RLock()
        self.bus = EventBus()
        self.store = VariableStore(self.bus, initial=variables)
        self.flow_states = FlowStateStore(self.bus)
        self.sink = RecordingSink()
        self.engine = VisibilityEngine(
            self.store,
            self.sink,
            bus=self.bus,
            flow_states=self.flow_states,
            settings=settings,
        )
        self.engine.load_form(definition)
        self.navigation = NavigationController(self.engine, definition, self.sink, bus=self.bus)
        self.submission: Optional[Dict[str, Any]] = None
        self._unsubscribe = self.bus.subscribe(FORM_SUBMITTED, self._on_submitted)
        self.navigation.start()

    def _on_submitted(self, event: FormSubmitted) -> None:
        self.submission = event.payload

    # -- snapshots ------------------------------------------------------------

    def snapshot(self) -> Snapshot:
        """Return the currently visible field ids and page ids."""
        fields = {fid for fid, visible in self.engine.field_visibility().items() if visible}
        pages = {pid for pid, visible in self.engine.page_visibility().items() if visible}
        return fields, pages

    def delta_since(self, before: Snapshot) -> Tuple[VisibilityDelta, VisibilityDelta]:
        after = self.snapshot()
        values = self.engine.field_values()
        now_visible, now_hidden, suppressed = compute_visibility_delta(
            before[0], after[0], lambda fid: values.get(fid) not in (None, "")
        )
        field_delta = VisibilityDelta(
            now_visible=now_visible, now_hidden=now_hidden, suppressed_values=suppressed
        )
        pages_visible, pages_hidden, _ = compute_visibility_delta(before[1], after[1], lambda _pid: False)
        page_delta = VisibilityDelta(now_visible=pages_visible, now_hidden=pages_hidden)
        return field_delta, page_delta

    def view(self) -> SessionView:
        nav = self.navigation
        page = nav.current_page
        return SessionView(
            session_id=self.id,
            form_id=self.definition.id,
            page_index=nav.page_index,
            page_id=page.id if page is not None else None,
            control_state=nav.control_state,
            history=list(nav.history),
            buttons=ButtonState(**nav.button_state()),
            fields=self.engine.field_visibility(),
            pages=self.engine.page_visibility(),
            errors=nav.errors,
        )

    # -- progress -------------------------------------------------------------

    def progress(self) -> SessionProgress:
        return SessionProgress(
            session_id=self.id,
            form_id=self.definition.id,
            current_page=self.navigation.page_index,
            history=list(self.navigation.history),
            variables=self.store.get_all(),
            field_values=self.engine.field_values(),
            flow_states={key: fs.to_dict() for key, fs in self.flow_states.all().items()},
            saved_at=datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z"),
        )

    def restore(self, progress: SessionProgress) -> bool:
        """Resume from saved progress, jumping to the saved page without validation."""
        self.engine.remember_field_values(progress.field_values)
        for key, entry in progress.flow_states.items():
            if entry.get("state"):
                self.flow_states.set_flow_state(
                    key, entry["state"], entry.get("data"), timestamp=entry.get("timestamp")
                )
        if progress.variables:
            self.store.set_multiple(progress.variables)
        moved = self.navigation.restore(progress.current_page, progress.history, progress.field_values)
        if not moved:
            self.engine.evaluate_all()
            self.navigation.refresh_buttons()
        logger.info(
            "session.restored session_id=%s source=%s page=%s moved=%s",
            self.id,
            progress.session_id,
            progress.current_page,
            moved,
        )
        return moved

    def close(self) -> None:
        self._unsubscribe()
        self.navigation.dispose()
        self.engine.dispose()


def parse_definition(payload: Mapping[str, Any]) -> FormDefinition:
    try:
        definition = FormDefinition.model_validate(dict(payload))
    except PydanticValidationError as exc:
        raise FormDefinitionError(f"form definition is invalid: {exc.error_count()} error(s)") from exc
    if not definition.pages:
        raise FormDefinitionError("form definition has no pages")
    return definition


def build_session(
    session_id: str,
    payload: Mapping[str, Any],
    *,
    variables: Optional[Mapping[str, Any]] = None,
    settings: Optional[EngineSettings] = None,
) -> FormSession:
    definition = parse_definition(payload)
    session = FormSession(session_id, definition, variables=variables, settings=settings)
    logger.info(
        "session.created session_id=%s form_id=%s pages=%s",
        session_id,
        definition.id,
        len(definition.pages),
    )
    return session


__all__ = ["FormSession", "Snapshot", "build_session", "parse_definition"]
