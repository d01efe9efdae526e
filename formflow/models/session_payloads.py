"""Request bodies accepted by the form session routes."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class CreateSessionRequest(BaseModel):
    # Raw published form definition; validated when the session is built
    form: Dict[str, Any]
    variables: Dict[str, Any] = Field(default_factory=dict)


class ValuePayload(BaseModel):
    value: Any = None


class VariablesPayload(BaseModel):
    variables: Dict[str, Any]


class FlowStatePayload(BaseModel):
    state: str
    data: Any = None


class NavigationPayload(BaseModel):
    """Current page input sent with Next, Previous and Submit."""

    values: Dict[str, Any] = Field(default_factory=dict)


class RestorePayload(BaseModel):
    source_session_id: Optional[str] = None


class ConditionsPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    field_conditions: Dict[str, Dict[str, Any]] = Field(default_factory=dict, alias="fieldConditions")
    page_conditions: Dict[str, Dict[str, Any]] = Field(default_factory=dict, alias="pageConditions")


__all__ = [
    "CreateSessionRequest",
    "ValuePayload",
    "VariablesPayload",
    "FlowStatePayload",
    "NavigationPayload",
    "RestorePayload",
    "ConditionsPayload",
]
