"""Step definitions for form session scenarios.

Steps keep the session under test in `context.vars["session_id"]` and the
last HTTP response in `context.response`.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from behave import given, then, when


SIGNUP_FORM: Dict[str, Any] = {
    "id": "signup",
    "name": "Signup",
    "pages": [
        {
            "id": "p1",
            "fields": [
                {"id": "email", "type": "email", "required": True},
                {"id": "country", "type": "text"},
                {
                    "id": "stateField",
                    "type": "text",
                    "conditionalVisibility": {
                        "enabled": True,
                        "dependsOn": "country",
                        "condition": "equals",
                        "value": "US",
                    },
                },
            ],
        },
        {
            "id": "p2",
            "fields": [{"id": "province", "type": "text"}],
            "conditionalVisibility": {
                "enabled": True,
                "conditions": [{"dependsOn": "country", "condition": "equals", "value": "CA"}],
            },
        },
        {"id": "p3", "fields": [{"id": "notes", "type": "textarea"}]},
    ],
}

FORMS: Dict[str, Dict[str, Any]] = {"signup": SIGNUP_FORM}


def _url(context, path: str) -> str:
    return f"{context.api_prefix}{path}"


def _session_path(context, suffix: str = "", session_id: Optional[str] = None) -> str:
    sid = session_id or context.vars["session_id"]
    return _url(context, f"/form-sessions/{sid}{suffix}")


def _body(context) -> Dict[str, Any]:
    assert context.response is not None, "No HTTP response recorded"
    return context.response.json()


def _session_view(context) -> Dict[str, Any]:
    body = _body(context)
    return body.get("session", body)


def _table_values(context) -> Dict[str, Any]:
    if context.table is None:
        return {}
    return {row["field"]: row["value"] for row in context.table}


def _create_session(context, form_name: str) -> str:
    resp = context.client.post(_url(context, "/form-sessions"), json={"form": FORMS[form_name]})
    assert resp.status_code == 201, resp.text
    return resp.json()["session_id"]


# ------------------
# Given
# ------------------


@given('a form session for the "{form_name}" form')
def step_form_session(context, form_name: str) -> None:
    context.vars["session_id"] = _create_session(context, form_name)


@given('variable "{name}" is "{value}"')
@when('I set variable "{name}" to "{value}"')
def step_set_variable(context, name: str, value: str) -> None:
    context.response = context.client.put(_session_path(context, f"/variables/{name}"), json={"value": value})


@given('field "{field_id}" has value "{value}"')
def step_field_value(context, field_id: str, value: str) -> None:
    context.response = context.client.put(_session_path(context, f"/fields/{field_id}/value"), json={"value": value})
    assert context.response.status_code == 200, context.response.text


@given("progress is saved")
def step_progress_saved(context) -> None:
    resp = context.client.post(_session_path(context, "/progress"))
    assert resp.status_code == 201, resp.text


# ------------------
# When
# ------------------


@given("I press next with values")
@when("I press next with values")
def step_press_next(context) -> None:
    payload = {"values": _table_values(context)}
    context.response = context.client.post(_session_path(context, "/navigation/next"), json=payload)


@when("I press previous")
def step_press_previous(context) -> None:
    context.response = context.client.post(_session_path(context, "/navigation/previous"))


@when("a new session restores that progress")
def step_restore_into_new_session(context) -> None:
    source = context.vars["session_id"]
    target = _create_session(context, "signup")
    context.vars.setdefault("extra_sessions", []).append(source)
    context.vars["session_id"] = target
    context.response = context.client.post(
        _session_path(context, "/progress/restore"),
        json={"source_session_id": source},
    )


@when('I fetch session "{session_id}"')
def step_fetch_session(context, session_id: str) -> None:
    context.response = context.client.get(_session_path(context, session_id=session_id))


# ------------------
# Then
# ------------------


@then("the response status is {status:d}")
def step_status(context, status: int) -> None:
    assert context.response.status_code == status, context.response.text


@then('field "{field_id}" is visible')
def step_field_visible(context, field_id: str) -> None:
    assert _session_view(context)["fields"][field_id] is True


@then('field "{field_id}" is hidden')
def step_field_hidden(context, field_id: str) -> None:
    assert _session_view(context)["fields"][field_id] is False


@then('the visibility delta reports "{field_id}" as now visible')
def step_delta_visible(context, field_id: str) -> None:
    assert field_id in _body(context)["visibility_delta"]["now_visible"]


@then('the visibility delta reports "{field_id}" as suppressed')
def step_delta_suppressed(context, field_id: str) -> None:
    delta = _body(context)["visibility_delta"]
    assert field_id in delta["now_hidden"]
    assert field_id in delta["suppressed_values"]


@then('the session is on page "{page_id}"')
def step_on_page(context, page_id: str) -> None:
    assert _session_view(context)["page_id"] == page_id, _body(context)


@then('the history is "{history}"')
def step_history(context, history: str) -> None:
    expected = [int(i) for i in history.split(",") if i.strip()]
    assert _session_view(context)["history"] == expected


@then('field "{field_id}" has error "{message}"')
def step_field_error(context, field_id: str, message: str) -> None:
    assert _session_view(context)["errors"].get(field_id) == message


@then('the "{button}" button is hidden')
def step_button_hidden(context, button: str) -> None:
    assert _session_view(context)["buttons"][button] is False


@then('the problem code is "{code}"')
def step_problem_code(context, code: str) -> None:
    assert context.response.headers["content-type"].startswith("application/problem+json")
    assert _body(context)["code"] == code
