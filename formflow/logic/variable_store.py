"""Form-wide variable store.

Holds user input, verification results and server query results for one
form session. The store is created by the session and passed by reference to
every consumer; there is no module-level instance.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Mapping, Optional, Union
import logging

from formflow.logic.events import (
    VARIABLE_CHANGED,
    VARIABLES_BATCH_CHANGED,
    EventBus,
    VariableChanged,
    VariablesBatchChanged,
)

logger = logging.getLogger(__name__)

StoreEvent = Union[VariableChanged, VariablesBatchChanged]


class VariableStore:
    def __init__(self, bus: Optional[EventBus] = None, initial: Optional[Mapping[str, Any]] = None) -> None:
        self.bus = bus or EventBus()
        self._values: Dict[str, Any] = dict(initial or {})

    def get(self, name: str) -> Any:
        return self._values.get(name)

    def has(self, name: str) -> bool:
        return name in self._values

    def get_all(self) -> Dict[str, Any]:
        return dict(self._values)

    def set(self, name: str, value: Any) -> None:
        old_value = self._values.get(name)
        self._values[name] = value
        logger.debug("variable_store.set name=%s", name)
        self.bus.publish(VARIABLE_CHANGED, VariableChanged(name, old_value, value))

    def set_multiple(self, values: Mapping[str, Any]) -> None:
        """Write every entry, then emit a single aggregate notification.

        Subscribers therefore always observe the fully updated store.
        """
        if not values:
            return
        changes = []
        for name, value in values.items():
            changes.append(VariableChanged(name, self._values.get(name), value))
            self._values[name] = value
        logger.debug("variable_store.set_multiple names=%s", [c.name for c in changes])
        self.bus.publish(VARIABLES_BATCH_CHANGED, VariablesBatchChanged(tuple(changes)))

    def subscribe(self, callback: Callable[[StoreEvent], None]) -> Callable[[], None]:
        """Subscribe to both single and batched change notifications."""
        unsubscribers = [
            self.bus.subscribe(VARIABLE_CHANGED, callback),
            self.bus.subscribe(VARIABLES_BATCH_CHANGED, callback),
        ]

        def unsubscribe() -> None:
            for fn in unsubscribers:
                fn()

        return unsubscribe

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __len__(self) -> int:
        return len(self._values)


__all__ = ["VariableStore", "StoreEvent"]
