"""Navigation controller: a state machine over the page index.

The controller asks the visibility engine whether pages and navigation
buttons are visible, validates the current page before moving forward and
keeps a history stack for Previous. It also owns the page-scoped variable map
the engine consults as its third value source.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional
import logging

from formflow.logic.events import (
    FIELD_VALUE_CHANGED,
    FLOW_STATE_CHANGED,
    FORM_SUBMITTED,
    PAGE_CHANGED,
    EventBus,
    FormSubmitted,
    PageChanged,
)
from formflow.logic.gating import validate_page
from formflow.logic.sink import NavigationSink
from formflow.logic.visibility_engine import VisibilityEngine
from formflow.models.conditions import ButtonKind, NavigationButtonGroup
from formflow.models.form_definition import FormDefinition, PageDefinition
from formflow.models.visibility import FieldError

logger = logging.getLogger(__name__)

PREVIOUS_BUTTON = "previous"


class ControlState:
    """Which forward control is currently offered."""

    NEXT = "next"
    SUBMIT = "submit"
    NONE = "none"


class NavigationController:
    def __init__(
        self,
        engine: VisibilityEngine,
        definition: FormDefinition,
        sink: NavigationSink,
        *,
        bus: Optional[EventBus] = None,
    ) -> None:
        self.engine = engine
        self.definition = definition
        self.sink = sink
        self.bus = bus or engine.bus
        self.page_index = 0
        self.history: List[int] = []
        self.control_state = ControlState.NEXT
        self._variables: Dict[str, Any] = {}
        self._errors: Dict[str, str] = {}
        self._buttons: Dict[str, bool] = {}
        engine.attach_page_variables(self)
        self._unsubscribers: List[Callable[[], None]] = [
            engine.store.subscribe(self._on_change),
            self.bus.subscribe(FIELD_VALUE_CHANGED, self._on_change),
            self.bus.subscribe(FLOW_STATE_CHANGED, self._on_change),
        ]

    @property
    def page_count(self) -> int:
        return len(self.definition.pages)

    @property
    def current_page(self) -> Optional[PageDefinition]:
        if 0 <= self.page_index < self.page_count:
            return self.definition.pages[self.page_index]
        return None

    @property
    def errors(self) -> Dict[str, str]:
        return dict(self._errors)

    def start(self) -> None:
        """Show the first page."""
        if self.page_count:
            self._switch_to(0)

    def dispose(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        self.engine.attach_page_variables(None)

    # -- page-scoped variables ------------------------------------------------

    def set_variable(self, name: str, value: Any) -> None:
        self._variables[name] = value

    def get_variable(self, name: str) -> Any:
        return self._variables.get(name)

    def get_all_variables(self) -> Dict[str, Any]:
        return dict(self._variables)

    def store_page_values(self, values: Mapping[str, Any]) -> None:
        """Capture field values into the page-scoped map and the engine cache.

        Artifacts depending on the captured field ids are re-evaluated so the
        page visibility cache reflects the new input before any forward scan.
        """
        self._variables.update(values)
        self.engine.remember_field_values(values)
        if values:
            self.engine.evaluate_dependents(values.keys())

    # -- transitions ----------------------------------------------------------

    def next(self, values: Optional[Mapping[str, Any]] = None) -> bool:
        """Validate the current page and move to the next visible page.

        Returns False when validation fails or when no later page is visible;
        in the latter case the control state flips to submit.
        """
        if self.validate_current_page(values):
            logger.info("navigation.next_blocked page_index=%s errors=%s", self.page_index, sorted(self._errors))
            return False
        self.store_page_values(self._page_values(values))
        target = self._next_visible_index()
        if target is None:
            logger.info("navigation.next_exhausted page_index=%s", self.page_index)
            self._show_submit()
            return False
        logger.info("navigation.next from=%s to=%s", self.page_index, target)
        self.history.append(self.page_index)
        self._switch_to(target)
        return True

    def previous(self, values: Optional[Mapping[str, Any]] = None) -> bool:
        self.store_page_values(self._page_values(values))
        if self.history:
            target = self.history.pop()
        elif self.page_index > 0:
            target = self.page_index - 1
        else:
            return False
        logger.info("navigation.previous from=%s to=%s", self.page_index, target)
        self._switch_to(target)
        return True

    def go_to_page(self, page_index: int) -> bool:
        """Jump without validation or history; out-of-range indexes are ignored."""
        if not 0 <= page_index < self.page_count:
            logger.info("navigation.go_to_page_ignored page_index=%s", page_index)
            return False
        logger.info("navigation.go_to_page from=%s to=%s", self.page_index, page_index)
        self._switch_to(page_index)
        return True

    def restore(self, page_index: int, history: Iterable[int], variables: Mapping[str, Any]) -> bool:
        """Reinstate saved navigation state and jump to the saved page."""
        self.history = [int(i) for i in history if 0 <= int(i) < self.page_count]
        self._variables.update(variables)
        return self.go_to_page(page_index)

    def submit(self, values: Optional[Mapping[str, Any]] = None) -> Optional[Dict[str, Any]]:
        """Validate the current page and build the submission payload."""
        if self.validate_current_page(values):
            logger.info("navigation.submit_blocked page_index=%s errors=%s", self.page_index, sorted(self._errors))
            return None
        self.store_page_values(self._page_values(values))
        payload: Dict[str, Any] = {
            "fields": {
                field_id: value
                for field_id, value in self.engine.field_values().items()
                if self.engine.is_field_visible(field_id)
            },
            "_variables": self.get_all_variables(),
        }
        logger.info("navigation.submit page_index=%s fields=%s", self.page_index, len(payload["fields"]))
        self.bus.publish(FORM_SUBMITTED, FormSubmitted(payload))
        return payload

    def _switch_to(self, page_index: int) -> None:
        self.page_index = page_index
        self.engine.evaluate_all()
        self.refresh_buttons()
        self.sink.show_page(page_index)
        page_id = self.definition.pages[page_index].id
        self.bus.publish(PAGE_CHANGED, PageChanged(page_index, page_id))

    def _next_visible_index(self) -> Optional[int]:
        for index in range(self.page_index + 1, self.page_count):
            if self.engine.is_page_visible(self.definition.pages[index].id):
                return index
        return None

    def _page_values(self, overrides: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        page = self.current_page
        if page is None:
            return {}
        overrides = overrides or {}
        cached = self.engine.field_values()
        values: Dict[str, Any] = {}
        for field in page.fields:
            if field.id in overrides:
                values[field.id] = overrides[field.id]
            elif field.id in cached:
                values[field.id] = cached[field.id]
        return values

    # -- validation -----------------------------------------------------------

    def validate_current_page(self, values: Optional[Mapping[str, Any]] = None) -> List[FieldError]:
        """Run page validation and update the error markers of the current page."""
        page = self.current_page
        if page is None:
            return []
        for field in page.fields:
            if self._errors.pop(field.id, None) is not None:
                self.sink.clear_field_error(field.id)
        current = self._page_values(values)
        errors = validate_page(page, self.engine.is_field_visible, current.get)
        for error in errors:
            self._errors[error.field_id] = error.message
            self.sink.show_field_error(error.field_id, error.message)
        return errors

    # -- buttons --------------------------------------------------------------

    def has_visible_page_after(self, page_index: int) -> bool:
        return any(self.engine.is_page_visible(p.id) for p in self.definition.pages[page_index + 1 :])

    def button_group(self, page_index: int, button: str) -> Optional[NavigationButtonGroup]:
        if not 0 <= page_index < self.page_count:
            return None
        config = self.definition.pages[page_index].navigation_config
        button_config = config.for_button(button) if config is not None else None
        if button_config is None or not button_config.enabled:
            return None
        group = button_config.conditional_visibility
        return NavigationButtonGroup(
            conditions=group.conditions,
            combinator=group.logic,
            button=button,
            page_index=page_index,
        )

    def should_show_button(self, button: str) -> bool:
        if button == PREVIOUS_BUTTON:
            return self.page_index > 0
        if button not in ButtonKind.ALL:
            return False
        has_later = self.has_visible_page_after(self.page_index)
        if button == ButtonKind.NEXT and not has_later:
            return False
        if button == ButtonKind.SUBMIT and has_later:
            return False
        return self.engine.evaluate_condition_group(self.button_group(self.page_index, button))

    def button_state(self) -> Dict[str, bool]:
        return {
            PREVIOUS_BUTTON: self.should_show_button(PREVIOUS_BUTTON),
            ButtonKind.NEXT: self.should_show_button(ButtonKind.NEXT),
            ButtonKind.SUBMIT: self.should_show_button(ButtonKind.SUBMIT),
        }

    def refresh_buttons(self) -> Dict[str, bool]:
        state = self.button_state()
        if state[ButtonKind.NEXT]:
            self.control_state = ControlState.NEXT
        elif state[ButtonKind.SUBMIT]:
            self.control_state = ControlState.SUBMIT
        else:
            self.control_state = ControlState.NONE
        self._apply_buttons(state)
        return state

    def _show_submit(self) -> None:
        self.control_state = ControlState.SUBMIT
        self._apply_buttons({**self._buttons, ButtonKind.NEXT: False, ButtonKind.SUBMIT: True})

    def _apply_buttons(self, state: Mapping[str, bool]) -> None:
        for button, visible in state.items():
            if self._buttons.get(button) != visible:
                self._buttons[button] = visible
                self.sink.set_button_visible(button, visible)

    def _on_change(self, _event: Any) -> None:
        self.refresh_buttons()


__all__ = ["ControlState", "NavigationController", "PREVIOUS_BUTTON"]
