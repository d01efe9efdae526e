"""Verification flow states (login, OTP, email verify).

Verification collaborators record a tagged state per field; the visibility
engine reads them as the last-resort value source for dependency keys of the
form ``<fieldId>_<variableName>``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional
import logging
import time

from formflow.logic.events import FLOW_STATE_CHANGED, EventBus, FlowStateChanged

logger = logging.getLogger(__name__)


class FlowStateTag:
    VARIABLE_SET = "variable_set"
    LOGIN_COMPLETE = "login_complete"
    VERIFIED_USER = "verified_user"
    NEW_ACCOUNT_ALLOWED = "new_account_allowed"


@dataclass(frozen=True)
class FlowState:
    state: str
    data: Any = None
    timestamp: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {"state": self.state, "data": self.data, "timestamp": self.timestamp}


class FlowStateStore:
    def __init__(self, bus: Optional[EventBus] = None) -> None:
        self._bus = bus
        self._states: Dict[str, FlowState] = {}

    def set_flow_state(
        self, key: str, state: str, data: Any = None, *, timestamp: Optional[float] = None
    ) -> FlowState:
        """Record a flow state; `timestamp` defaults to now (restores pass the saved one)."""
        entry = FlowState(state=state, data=data, timestamp=time.time() if timestamp is None else float(timestamp))
        self._states[key] = entry
        logger.info("flow_state.set key=%s state=%s", key, state)
        if self._bus is not None:
            self._bus.publish(FLOW_STATE_CHANGED, FlowStateChanged(key, state))
        return entry

    def get_flow_state(self, key: str) -> Optional[FlowState]:
        return self._states.get(key)

    def clear_flow_state(self, key: str) -> None:
        if self._states.pop(key, None) is not None and self._bus is not None:
            self._bus.publish(FLOW_STATE_CHANGED, FlowStateChanged(key, None))

    def all(self) -> Dict[str, FlowState]:
        return dict(self._states)


__all__ = ["FlowStateTag", "FlowState", "FlowStateStore"]
