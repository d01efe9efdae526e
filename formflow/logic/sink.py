"""Rendering-layer interfaces the engine and navigation write to.

`VisibilitySink` receives field/page visibility decisions and
`NavigationSink` receives button state, page switches and field error
markers. `RecordingSink` implements both by keeping the latest state in
memory; the HTTP layer serves session views from it.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, Set, Tuple


class VisibilitySink(Protocol):
    def set_field_visible(self, field_id: str, visible: bool) -> None: ...

    def set_page_visible(self, page_id: str, visible: bool) -> None: ...


class NavigationSink(Protocol):
    def set_button_visible(self, button: str, visible: bool) -> None: ...

    def show_page(self, page_index: int) -> None: ...

    def show_field_error(self, field_id: str, message: str) -> None: ...

    def clear_field_error(self, field_id: str) -> None: ...


class RecordingSink:
    """In-memory sink that records both the latest state and every call."""

    def __init__(self) -> None:
        self.fields: Dict[str, bool] = {}
        self.disabled_fields: Set[str] = set()
        self.pages: Dict[str, bool] = {}
        self.buttons: Dict[str, bool] = {}
        self.field_errors: Dict[str, str] = {}
        self.current_page: Optional[int] = None
        self.calls: List[Tuple[str, Any, Any]] = []

    def set_field_visible(self, field_id: str, visible: bool) -> None:
        self.calls.append(("set_field_visible", field_id, visible))
        self.fields[field_id] = visible
        # Hidden inputs are disabled so they cannot be submitted
        if visible:
            self.disabled_fields.discard(field_id)
        else:
            self.disabled_fields.add(field_id)

    def set_page_visible(self, page_id: str, visible: bool) -> None:
        self.calls.append(("set_page_visible", page_id, visible))
        self.pages[page_id] = visible

    def set_button_visible(self, button: str, visible: bool) -> None:
        self.calls.append(("set_button_visible", button, visible))
        self.buttons[button] = visible

    def show_page(self, page_index: int) -> None:
        self.calls.append(("show_page", page_index, None))
        self.current_page = page_index

    def show_field_error(self, field_id: str, message: str) -> None:
        self.calls.append(("show_field_error", field_id, message))
        self.field_errors[field_id] = message

    def clear_field_error(self, field_id: str) -> None:
        self.calls.append(("clear_field_error", field_id, None))
        self.field_errors.pop(field_id, None)

    def calls_for(self, method: str, target: Optional[str] = None) -> List[Tuple[str, Any, Any]]:
        return [c for c in self.calls if c[0] == method and (target is None or c[1] == target)]


__all__ = ["VisibilitySink", "NavigationSink", "RecordingSink"]
