"""Event bus, topic names and event payloads.

Defines the topic constants used to connect the variable store, the
visibility engine and the navigation controller, and a small synchronous
publish/subscribe implementation. Each form session owns its own bus.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, List, Optional, Tuple, TypeVar
import logging

logger = logging.getLogger(__name__)

T = TypeVar("T")

VARIABLE_CHANGED = "variable.changed"
VARIABLES_BATCH_CHANGED = "variables.batch_changed"
FIELD_VALUE_CHANGED = "field.value_changed"
FLOW_STATE_CHANGED = "flow_state.changed"
PAGE_CHANGED = "page.changed"
FORM_SUBMITTED = "form.submitted"


@dataclass(frozen=True)
class VariableChanged:
    name: str
    old_value: Any
    new_value: Any


@dataclass(frozen=True)
class VariablesBatchChanged:
    """One notification for a `set_multiple` call."""

    changes: Tuple[VariableChanged, ...]

    @property
    def names(self) -> List[str]:
        return [c.name for c in self.changes]


@dataclass(frozen=True)
class FieldValueChanged:
    field_id: str
    value: Any


@dataclass(frozen=True)
class FlowStateChanged:
    key: str
    state: Optional[str]


@dataclass(frozen=True)
class PageChanged:
    page_index: int
    page_id: Optional[str]


@dataclass(frozen=True)
class FormSubmitted:
    payload: Dict[str, Any] = field(default_factory=dict)


class Topic(Generic[T]):
    """Synchronous topic: `publish` returns after every subscriber has run."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._subscribers: List[Callable[[T], None]] = []

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, event: T) -> None:
        logger.debug("event_publish topic=%s event=%s", self.name, event)
        # Snapshot so subscribers may unsubscribe while being notified
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                logger.error("event_subscriber_failed topic=%s", self.name, exc_info=True)

    def __len__(self) -> int:
        return len(self._subscribers)


class EventBus:
    """Named topics created on first use."""

    def __init__(self) -> None:
        self._topics: Dict[str, Topic[Any]] = {}

    def topic(self, name: str) -> Topic[Any]:
        existing = self._topics.get(name)
        if existing is None:
            existing = Topic(name)
            self._topics[name] = existing
        return existing

    def subscribe(self, name: str, callback: Callable[[Any], None]) -> Callable[[], None]:
        return self.topic(name).subscribe(callback)

    def publish(self, name: str, event: Any) -> None:
        self.topic(name).publish(event)

    def subscriber_count(self, name: str) -> int:
        topic = self._topics.get(name)
        return len(topic) if topic is not None else 0


__all__ = [
    "VARIABLE_CHANGED",
    "VARIABLES_BATCH_CHANGED",
    "FIELD_VALUE_CHANGED",
    "FLOW_STATE_CHANGED",
    "PAGE_CHANGED",
    "FORM_SUBMITTED",
    "VariableChanged",
    "VariablesBatchChanged",
    "FieldValueChanged",
    "FlowStateChanged",
    "PageChanged",
    "FormSubmitted",
    "Topic",
    "EventBus",
]
