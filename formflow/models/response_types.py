"""Pydantic models for HTTP response bodies."""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from formflow.models.visibility import ValidationReport, VisibilityDelta


class ButtonState(BaseModel):
    previous: bool
    next: bool
    submit: bool


class SessionView(BaseModel):
    session_id: str
    form_id: Optional[str] = None
    page_index: int
    page_id: Optional[str] = None
    control_state: str
    history: List[int] = Field(default_factory=list)
    buttons: ButtonState
    fields: Dict[str, bool] = Field(default_factory=dict)
    pages: Dict[str, bool] = Field(default_factory=dict)
    errors: Dict[str, str] = Field(default_factory=dict)


class MutationResult(BaseModel):
    session: SessionView
    # Field visibility changes caused by the mutation
    visibility_delta: VisibilityDelta
    page_delta: VisibilityDelta


class NavigationResult(MutationResult):
    moved: bool


class SubmitResult(MutationResult):
    submitted: bool
    payload: Optional[Dict[str, Any]] = None


class VariablesView(BaseModel):
    variables: Dict[str, Any]


class ValidationResult(ValidationReport):
    session_id: str


class ProgressSaved(BaseModel):
    session_id: str
    current_page: int
    saved_at: str


__all__ = [
    "ButtonState",
    "SessionView",
    "MutationResult",
    "NavigationResult",
    "SubmitResult",
    "VariablesView",
    "ValidationResult",
    "ProgressSaved",
]
