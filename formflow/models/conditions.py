"""Condition records held by the dependency registry.

Three tagged record shapes share the atomic predicate fields
(`dependsOn`, `condition`, `value`):

- ``FieldCondition`` (kind ``"field"``): one per conditionally visible field.
- ``PageConditionGroup`` (kind ``"page"``): a page's predicates plus combinator.
- ``NavigationButtonGroup`` (kind ``"button"``): Next/Submit button predicates.

Models accept both the camelCase keys used by form definitions and their
snake_case attribute names, and export with the camelCase aliases.
"""

from __future__ import annotations

from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Operator:
    """Operators understood by the condition evaluator."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    GREATER_EQUAL = "greater_equal"
    LESS_EQUAL = "less_equal"

    STRING = (EQUALS, NOT_EQUALS, CONTAINS, NOT_CONTAINS, STARTS_WITH, ENDS_WITH)
    EMPTINESS = (IS_EMPTY, IS_NOT_EMPTY)
    NUMERIC = (GREATER_THAN, LESS_THAN, GREATER_EQUAL, LESS_EQUAL)
    ALL = STRING + EMPTINESS + NUMERIC


class Combinator:
    AND = "AND"
    OR = "OR"

    ALL = (AND, OR)


class ButtonKind:
    NEXT = "next"
    SUBMIT = "submit"

    ALL = (NEXT, SUBMIT)


class _Record(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ConditionPredicate(_Record):
    """Atomic ``(depends_on, operator, comparand)`` test."""

    kind: Literal["predicate"] = "predicate"
    depends_on: str = Field(default="", alias="dependsOn")
    # Raw operator string; unknown operators are kept and evaluate to False
    operator: str = Field(default=Operator.EQUALS, alias="condition")
    comparand: Any = Field(default=None, alias="value")

    @field_validator("depends_on", "operator", mode="before")
    @classmethod
    def _none_as_blank(cls, v: Any) -> Any:
        return "" if v is None else v


class FieldCondition(ConditionPredicate):
    kind: Literal["field"] = "field"
    field_id: str = Field(alias="fieldId")
    page_index: int = Field(default=0, alias="pageIndex")
    depends_on_page: Optional[int] = Field(default=None, alias="dependsOnPage")


class ConditionGroup(_Record):
    """Predicates combined with AND/OR."""

    conditions: List[ConditionPredicate] = Field(default_factory=list)
    combinator: str = Field(default=Combinator.AND, alias="logic")

    @field_validator("combinator", mode="before")
    @classmethod
    def _normalize_combinator(cls, v: Any) -> Any:
        if v is None:
            return Combinator.AND
        return str(v).strip().upper()

    def depends_on_keys(self) -> set[str]:
        return {c.depends_on for c in self.conditions}


class PageConditionGroup(ConditionGroup):
    kind: Literal["page"] = "page"
    page_id: str = Field(alias="pageId")
    page_index: int = Field(default=0, alias="pageIndex")


class NavigationButtonGroup(ConditionGroup):
    kind: Literal["button"] = "button"
    button: str = ButtonKind.NEXT
    page_index: int = Field(default=0, alias="pageIndex")


ConditionRecord = Annotated[
    Union[FieldCondition, PageConditionGroup, NavigationButtonGroup],
    Field(discriminator="kind"),
]


__all__ = [
    "Operator",
    "Combinator",
    "ButtonKind",
    "ConditionPredicate",
    "FieldCondition",
    "ConditionGroup",
    "PageConditionGroup",
    "NavigationButtonGroup",
    "ConditionRecord",
]
