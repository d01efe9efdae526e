"""Variables derived from a field's `setVariablesConfig`.

Templates may reference `{value}`, `{fieldId}` and `{timestamp}`; non-string
templates are used as-is.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from formflow.logic.conditions import to_text
from formflow.models.form_definition import FieldDefinition


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def render_template(template: Any, *, value: Any, field_id: str, now: Optional[str] = None) -> Any:
    if not isinstance(template, str):
        return template
    rendered = template.replace("{value}", to_text(value) if value else "")
    rendered = rendered.replace("{fieldId}", field_id)
    if "{timestamp}" in rendered:
        rendered = rendered.replace("{timestamp}", now or _iso_now())
    return rendered


def variables_for_field(field: Optional[FieldDefinition], value: Any) -> Dict[str, Any]:
    """Return the variables a field sets for its new value (may be empty)."""
    if field is None:
        return {}
    cfg = field.set_variables_config
    if cfg is None or not cfg.enabled or not cfg.set_variables:
        return {}
    now = _iso_now()
    return {
        name: render_template(template, value=value, field_id=field.id, now=now)
        for name, template in cfg.set_variables.items()
    }


__all__ = ["render_template", "variables_for_field"]
