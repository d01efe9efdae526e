"""Published form definition as consumed by the visibility engine.

Only the parts of a saved form that drive visibility and navigation are
modelled; rendering and CRM properties are ignored.
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from formflow.models.conditions import ConditionPredicate, Combinator


class FieldType:
    """Field types with engine-relevant behaviour."""

    TEXT = "text"
    EMAIL = "email"
    PHONE = "phone"
    NUMBER = "number"
    CHECKBOX = "checkbox"
    SIGNATURE = "signature"
    DISPLAY = "display"
    LOGIN = "login"
    EMAIL_VERIFY = "email-verify"


class _Definition(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class FieldVisibilityConfig(_Definition):
    enabled: bool = False
    depends_on: Optional[str] = Field(default=None, alias="dependsOn")
    condition: Optional[str] = "equals"
    value: Any = None
    depends_on_page: Optional[int] = Field(default=None, alias="dependsOnPage")


class GroupVisibilityConfig(_Definition):
    """Predicate group used by pages and navigation buttons.

    Older saved forms store a single predicate directly on the page
    (`dependsOn`/`condition`/`value`); that shape is lifted into a
    one-element `conditions` list.
    """

    enabled: bool = False
    conditions: List[ConditionPredicate] = Field(default_factory=list)
    logic: Optional[str] = Combinator.AND

    @model_validator(mode="before")
    @classmethod
    def _lift_single_predicate(cls, data: Any) -> Any:
        if isinstance(data, dict) and "conditions" not in data and data.get("dependsOn"):
            lifted = dict(data)
            lifted["conditions"] = [
                {
                    "dependsOn": data.get("dependsOn"),
                    "condition": data.get("condition"),
                    "value": data.get("value"),
                }
            ]
            return lifted
        return data


class NavigationButtonConfig(_Definition):
    """Conditional configuration of one navigation button.

    Accepts the nested `{conditionalVisibility: {...}}` shape as well as a
    flat group `{enabled, conditions, logic}`.
    """

    conditional_visibility: Optional[GroupVisibilityConfig] = Field(
        default=None, alias="conditionalVisibility"
    )

    @model_validator(mode="before")
    @classmethod
    def _wrap_flat_group(cls, data: Any) -> Any:
        if isinstance(data, dict) and "conditionalVisibility" not in data and (
            "conditions" in data or "enabled" in data
        ):
            return {"conditionalVisibility": data}
        return data

    @property
    def enabled(self) -> bool:
        return bool(self.conditional_visibility and self.conditional_visibility.enabled)


class NavigationConfig(_Definition):
    next: Optional[NavigationButtonConfig] = None
    submit: Optional[NavigationButtonConfig] = None

    def for_button(self, button: str) -> Optional[NavigationButtonConfig]:
        return getattr(self, button, None) if button in ("next", "submit") else None


class SetVariablesConfig(_Definition):
    enabled: bool = False
    set_variables: Dict[str, Any] = Field(default_factory=dict, alias="setVariables")


class FieldDefinition(_Definition):
    id: str
    type: str = FieldType.TEXT
    label: str = ""
    required: bool = False
    conditional_visibility: Optional[FieldVisibilityConfig] = Field(
        default=None, alias="conditionalVisibility"
    )
    set_variables_config: Optional[SetVariablesConfig] = Field(
        default=None, alias="setVariablesConfig"
    )


class PageDefinition(_Definition):
    id: str
    name: str = ""
    fields: List[FieldDefinition] = Field(default_factory=list)
    conditional_visibility: Optional[GroupVisibilityConfig] = Field(
        default=None, alias="conditionalVisibility"
    )
    navigation_config: Optional[NavigationConfig] = Field(
        default=None, alias="navigationConfig"
    )


class FormDefinition(_Definition):
    id: Optional[str] = None
    name: str = ""
    pages: List[PageDefinition] = Field(default_factory=list)

    def iter_fields(self) -> Iterator[Tuple[int, FieldDefinition]]:
        for index, page in enumerate(self.pages):
            for field in page.fields:
                yield index, field

    def find_field(self, field_id: str) -> Optional[FieldDefinition]:
        for _index, field in self.iter_fields():
            if field.id == field_id:
                return field
        return None

    def field_ids(self) -> List[str]:
        return [field.id for _index, field in self.iter_fields()]


__all__ = [
    "FieldType",
    "FieldVisibilityConfig",
    "GroupVisibilityConfig",
    "NavigationButtonConfig",
    "NavigationConfig",
    "SetVariablesConfig",
    "FieldDefinition",
    "PageDefinition",
    "FormDefinition",
]
