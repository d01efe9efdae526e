"""Saved-progress data access helpers.

Encapsulates the `form_progress` queries so route handlers and the session
layer stay free of inline SQL. Structured columns are stored as JSON text.
"""

from __future__ import annotations

import json
import logging
from typing import Optional

from sqlalchemy import text as sql_text

from formflow.db.base import get_engine
from formflow.models.progress import SessionProgress

logger = logging.getLogger(__name__)


def save_progress(progress: SessionProgress) -> None:
    """Insert or replace the saved progress row for a session."""
    eng = get_engine()
    with eng.begin() as conn:
        conn.execute(
            sql_text("DELETE FROM form_progress WHERE session_id = :sid"),
            {"sid": progress.session_id},
        )
        conn.execute(
            sql_text(
                """
                INSERT INTO form_progress (
                    session_id, form_id, current_page, history,
                    variables, field_values, flow_states, saved_at
                ) VALUES (:sid, :fid, :page, :history, :variables, :field_values, :flow_states, :saved_at)
                """
            ),
            {
                "sid": progress.session_id,
                "fid": progress.form_id,
                "page": int(progress.current_page),
                "history": json.dumps(progress.history),
                "variables": json.dumps(progress.variables, default=str),
                "field_values": json.dumps(progress.field_values, default=str),
                "flow_states": json.dumps(progress.flow_states, default=str),
                "saved_at": progress.saved_at,
            },
        )
    logger.info("progress_saved session_id=%s page=%s", progress.session_id, progress.current_page)


def load_progress(session_id: str) -> Optional[SessionProgress]:
    """Return the saved progress for a session, or None when nothing was saved."""
    eng = get_engine()
    with eng.connect() as conn:
        row = conn.execute(
            sql_text(
                """
                SELECT session_id, form_id, current_page, history,
                       variables, field_values, flow_states, saved_at
                FROM form_progress
                WHERE session_id = :sid
                """
            ),
            {"sid": session_id},
        ).fetchone()
    if row is None:
        logger.info("progress_missing session_id=%s", session_id)
        return None
    return SessionProgress(
        session_id=str(row[0]),
        form_id=row[1],
        current_page=int(row[2] or 0),
        history=json.loads(row[3] or "[]"),
        variables=json.loads(row[4] or "{}"),
        field_values=json.loads(row[5] or "{}"),
        flow_states=json.loads(row[6] or "{}"),
        saved_at=str(row[7] or ""),
    )


def delete_progress(session_id: str) -> bool:
    """Delete saved progress; returns True when a row was removed."""
    eng = get_engine()
    with eng.begin() as conn:
        result = conn.execute(
            sql_text("DELETE FROM form_progress WHERE session_id = :sid"),
            {"sid": session_id},
        )
    removed = bool(result.rowcount)
    logger.info("progress_deleted session_id=%s removed=%s", session_id, removed)
    return removed


__all__ = ["save_progress", "load_progress", "delete_progress"]
