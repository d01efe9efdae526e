"""Functional tests for page gating, field variables and visibility deltas."""

from __future__ import annotations

import re

import pytest

from formflow.logic.field_variables import render_template, variables_for_field
from formflow.logic.gating import check_field_value, validate_page
from formflow.logic.visibility_delta import compute_visibility_delta
from formflow.models.form_definition import FieldDefinition, PageDefinition


@pytest.mark.parametrize(
    "field_type, value, required, expected",
    [
        ("text", "", True, "This field is required"),
        ("text", "   ", True, "This field is required"),
        ("checkbox", False, True, "This field is required"),
        ("text", "", False, None),
        ("text", "hello", True, None),
        ("signature", "", True, "Signature is required"),
        ("signature", "data:image/png;base64,AAA", True, None),
        ("signature", "", False, None),
        ("email", "ada@example.com", True, None),
        ("email", "ada@example", False, "Please enter a valid email address"),
        ("phone", "+1 (555) 123-4567", False, None),
        ("phone", "call me", False, "Please enter a valid phone number"),
        ("number", "42.5", False, None),
        ("number", "forty", False, "Please enter a valid number"),
    ],
)
def test_check_field_value(field_type, value, required, expected) -> None:
    assert check_field_value(field_type, value, required) == expected


def test_validate_page_checks_only_visible_input_fields() -> None:
    page = PageDefinition.model_validate(
        {
            "id": "p1",
            "fields": [
                {"id": "a", "required": True},
                {"id": "b", "required": True},
                {"id": "note", "type": "display", "required": True},
            ],
        }
    )
    errors = validate_page(page, lambda fid: fid != "b", {}.get)
    assert [(e.field_id, e.message) for e in errors] == [("a", "This field is required")]


def test_render_template_placeholders() -> None:
    assert render_template("{value}-{fieldId}", value="x", field_id="f1") == "x-f1"
    assert render_template("got {value}", value="", field_id="f1") == "got "
    assert render_template("at {timestamp}", value=1, field_id="f", now="2024-01-01T00:00:00.000Z") == (
        "at 2024-01-01T00:00:00.000Z"
    )
    assert render_template(True, value="x", field_id="f") is True


def test_variables_for_field_requires_enabled_config() -> None:
    disabled = FieldDefinition.model_validate(
        {"id": "f", "setVariablesConfig": {"enabled": False, "setVariables": {"v": "{value}"}}}
    )
    enabled = FieldDefinition.model_validate(
        {"id": "f", "setVariablesConfig": {"enabled": True, "setVariables": {"v": "{value}", "t": "{timestamp}"}}}
    )
    assert variables_for_field(None, "x") == {}
    assert variables_for_field(disabled, "x") == {}
    derived = variables_for_field(enabled, "x")
    assert derived["v"] == "x"
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", derived["t"])


def test_compute_visibility_delta() -> None:
    now_visible, now_hidden, suppressed = compute_visibility_delta(
        ["a", "b", " c "], ["b", "d"], lambda fid: fid == "a"
    )
    assert now_visible == ["d"]
    assert now_hidden == ["a", "c"]
    assert suppressed == ["a"]
