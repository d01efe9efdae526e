from __future__ import annotations

"""Functional test bootstrap.

Points the service at a shared in-memory SQLite database before any app
module resolves its configuration, applies the package migrations once per
test session, and provides small form definitions reused across modules.
"""

import os
from typing import Any, Dict, Iterator

import pytest

os.environ["TEST_DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["DATABASE_URL"] = os.environ["TEST_DATABASE_URL"]
os.environ["AUTO_APPLY_MIGRATIONS"] = "1"


@pytest.fixture(scope="session", autouse=True)
def functional_sqlite_bootstrap() -> Iterator[None]:
    """Session-level bootstrap: apply migrations once for the shared DB."""
    from formflow.db.base import get_engine
    from formflow.db.migrations_runner import apply_migrations

    apply_migrations(get_engine(os.environ["TEST_DATABASE_URL"]))
    yield


@pytest.fixture(autouse=True)
def _clear_sessions() -> Iterator[None]:
    yield
    from formflow.logic.inmemory_state import SESSIONS

    SESSIONS.clear()


@pytest.fixture
def client():
    from fastapi.testclient import TestClient
    from formflow.main import create_app

    with TestClient(create_app()) as c:
        yield c


def _cv(depends_on: str, condition: str = "equals", value: Any = None) -> Dict[str, Any]:
    return {"enabled": True, "dependsOn": depends_on, "condition": condition, "value": value}


@pytest.fixture
def country_form() -> Dict[str, Any]:
    return {
        "id": "address",
        "name": "Address",
        "pages": [
            {
                "id": "p1",
                "fields": [
                    {"id": "country", "type": "text", "label": "Country"},
                    {
                        "id": "stateField",
                        "type": "text",
                        "label": "State",
                        "conditionalVisibility": _cv("country", "equals", "US"),
                    },
                ],
            }
        ],
    }


@pytest.fixture
def tier_form() -> Dict[str, Any]:
    """Three pages; the third is shown only to `pro` subscribers."""
    return {
        "id": "signup",
        "name": "Signup",
        "pages": [
            {"id": "p1", "name": "About you", "fields": [{"id": "name", "type": "text"}]},
            {"id": "p2", "name": "Plan", "fields": [{"id": "plan", "type": "text"}]},
            {
                "id": "p3",
                "name": "Pro extras",
                "fields": [{"id": "seats", "type": "number"}],
                "conditionalVisibility": {
                    "enabled": True,
                    "logic": "AND",
                    "conditions": [{"dependsOn": "tier", "condition": "equals", "value": "pro"}],
                },
            },
        ],
    }
