"""Visibility-related reusable types."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class ValidationReport(BaseModel):
    """Outcome of a dependency validation pass.

    Circular dependencies and dangling references share one list; neither
    stops evaluation.
    """

    valid: bool
    errors: List[str] = Field(default_factory=list)


class FieldError(BaseModel):
    field_id: str
    message: str


class VisibilityDelta(BaseModel):
    now_visible: List[str] = Field(default_factory=list)
    now_hidden: List[str] = Field(default_factory=list)
    suppressed_values: List[str] = Field(default_factory=list)


__all__ = ["ValidationReport", "FieldError", "VisibilityDelta"]
