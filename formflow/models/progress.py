"""Saved navigation progress of a form session."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class SessionProgress(BaseModel):
    session_id: str
    form_id: Optional[str] = None
    current_page: int = 0
    history: List[int] = Field(default_factory=list)
    variables: Dict[str, Any] = Field(default_factory=dict)
    field_values: Dict[str, Any] = Field(default_factory=dict)
    # flow key -> {state, data, timestamp}
    flow_states: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    saved_at: str = ""


__all__ = ["SessionProgress"]
