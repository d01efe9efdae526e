"""Page gating: required-field and type checks run before moving forward.

Only fields that are currently visible are checked, and display fields are
never checked. The result is a list of per-field errors; an empty list means
the page may be left.
"""

from __future__ import annotations

from typing import Any, Callable, List
import logging
import math
import re

from formflow.logic.conditions import to_number, to_text
from formflow.models.form_definition import FieldType, PageDefinition
from formflow.models.visibility import FieldError

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^[\+]?[\d\s\-\(\)]+$")

REQUIRED_MESSAGE = "This field is required"
SIGNATURE_REQUIRED_MESSAGE = "Signature is required"
EMAIL_MESSAGE = "Please enter a valid email address"
PHONE_MESSAGE = "Please enter a valid phone number"
NUMBER_MESSAGE = "Please enter a valid number"


def _is_blank(value: Any) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False


def check_field_value(field_type: str, value: Any, required: bool) -> str | None:
    """Return the error message for one field value, or None when it passes."""
    if field_type == FieldType.SIGNATURE:
        if required and _is_blank(value):
            return SIGNATURE_REQUIRED_MESSAGE
        return None
    if required and _is_blank(value):
        return REQUIRED_MESSAGE
    if _is_blank(value):
        return None
    text = to_text(value).strip()
    if field_type == FieldType.EMAIL and not EMAIL_RE.match(text):
        return EMAIL_MESSAGE
    if field_type == FieldType.PHONE and not PHONE_RE.match(text):
        return PHONE_MESSAGE
    if field_type == FieldType.NUMBER and math.isnan(to_number(value)):
        return NUMBER_MESSAGE
    return None


def validate_page(
    page: PageDefinition,
    is_field_visible: Callable[[str], bool],
    field_value: Callable[[str], Any],
) -> List[FieldError]:
    """Validate the visible, non-display fields of one page."""
    errors: List[FieldError] = []
    for field in page.fields:
        if field.type == FieldType.DISPLAY or not is_field_visible(field.id):
            continue
        message = check_field_value(field.type, field_value(field.id), field.required)
        if message is not None:
            errors.append(FieldError(field_id=field.id, message=message))
    logger.info("gating_verdict page_id=%s errors=%s", page.id, [e.field_id for e in errors])
    return errors


__all__ = ["validate_page", "check_field_value", "FieldError"]
