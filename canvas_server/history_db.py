"""SQLite storage for workflow runs and node runs."""

import json
import sqlite3

from canvas.models.records import (
    NodeRunCreate,
    NodeRunRecord,
    NodeRunUpdate,
    RunCreate,
    RunRecord,
    RunUpdate,
)
from canvas.models.workflow_run import NodeRunStatus, RunStatus
from canvas.utils.identifiers import generate_id, utc_timestamp
from canvas_server.db import connect


def _loads(value: str | None) -> dict | None:
    return json.loads(value) if value is not None else None


def _dumps(value: dict | None) -> str | None:
    return json.dumps(value) if value is not None else None


def _node_run(row: sqlite3.Row) -> NodeRunRecord:
    return NodeRunRecord(
        id=row["id"],
        workflow_run_id=row["workflow_run_id"],
        node_id=row["node_id"],
        node_name=row["node_name"],
        node_type=row["node_type"],
        status=row["status"],
        started_at=row["started_at"],
        completed_at=row["completed_at"],
        duration=row["duration"],
        input_data=_loads(row["input_json"]),
        output_data=_loads(row["output_json"]),
        error=row["error"],
    )


def _load_node_runs(conn: sqlite3.Connection, run_id: str) -> list[NodeRunRecord]:
    rows = conn.execute(
        """
        select * from node_runs
        where workflow_run_id = ?
        order by started_at asc, rowid asc
        """,
        (run_id,),
    ).fetchall()
    return [_node_run(row) for row in rows]


def _run(conn: sqlite3.Connection, row: sqlite3.Row) -> RunRecord:
    return RunRecord(
        id=row["id"],
        workflow_id=row["workflow_id"],
        run_scope=row["run_scope"],
        status=row["status"],
        started_at=row["started_at"],
        completed_at=row["completed_at"],
        duration=row["duration"],
        node_count=row["node_count"],
        node_runs=_load_node_runs(conn, row["id"]),
    )


# --- runs ---


def create_run(user_id: str, request: RunCreate) -> RunRecord:
    run = RunRecord(
        id=generate_id(),
        workflow_id=request.workflow_id,
        run_scope=request.run_scope,
        status=RunStatus.running,
        started_at=utc_timestamp(),
        node_count=request.node_count,
    )
    with connect() as conn:
        conn.execute(
            """
            insert into workflow_runs (
                id,
                user_id,
                workflow_id,
                run_scope,
                status,
                started_at,
                node_count
            )
            values (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                run.id,
                user_id,
                run.workflow_id,
                run.run_scope.value,
                run.status.value,
                run.started_at,
                run.node_count,
            ),
        )
        conn.commit()
    return run


def get_run(user_id: str, run_id: str) -> RunRecord | None:
    with connect() as conn:
        row = conn.execute(
            "select * from workflow_runs where id = ? and user_id = ?",
            (run_id, user_id),
        ).fetchone()
        if not row:
            return None
        return _run(conn, row)


def update_run(user_id: str, run_id: str, update: RunUpdate) -> RunRecord | None:
    with connect() as conn:
        cursor = conn.execute(
            """
            update workflow_runs
            set status = ?, completed_at = ?, duration = ?
            where id = ? and user_id = ?
            """,
            (
                update.status.value,
                update.completed_at or utc_timestamp(),
                update.duration,
                run_id,
                user_id,
            ),
        )
        conn.commit()
    if cursor.rowcount == 0:
        return None
    return get_run(user_id, run_id)


def delete_run(user_id: str, run_id: str) -> bool:
    with connect() as conn:
        cursor = conn.execute(
            "delete from workflow_runs where id = ? and user_id = ?",
            (run_id, user_id),
        )
        if cursor.rowcount == 0:
            return False
        conn.execute("delete from node_runs where workflow_run_id = ?", (run_id,))
        conn.commit()
    return True


def list_runs(user_id: str, workflow_id: str, limit: int = 50) -> list[RunRecord]:
    """list a workflow's runs, newest first, each with its node runs."""
    with connect() as conn:
        rows = conn.execute(
            """
            select * from workflow_runs
            where workflow_id = ? and user_id = ?
            order by started_at desc, rowid desc
            limit ?
            """,
            (workflow_id, user_id, limit),
        ).fetchall()
        return [_run(conn, row) for row in rows]


def clear_runs(user_id: str, workflow_id: str) -> int:
    """delete every run of a workflow; returns how many runs were removed."""
    with connect() as conn:
        conn.execute(
            """
            delete from node_runs
            where workflow_run_id in (
                select id from workflow_runs where workflow_id = ? and user_id = ?
            )
            """,
            (workflow_id, user_id),
        )
        cursor = conn.execute(
            "delete from workflow_runs where workflow_id = ? and user_id = ?",
            (workflow_id, user_id),
        )
        conn.commit()
    return cursor.rowcount


# --- node runs ---


def create_node_run(request: NodeRunCreate) -> NodeRunRecord:
    node_run = NodeRunRecord(
        id=generate_id(),
        workflow_run_id=request.workflow_run_id,
        node_id=request.node_id,
        node_name=request.node_name,
        node_type=request.node_type,
        status=NodeRunStatus.running,
        started_at=utc_timestamp(),
        input_data=request.input_data,
    )
    with connect() as conn:
        conn.execute(
            """
            insert into node_runs (
                id,
                workflow_run_id,
                node_id,
                node_name,
                node_type,
                status,
                started_at,
                input_json
            )
            values (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                node_run.id,
                node_run.workflow_run_id,
                node_run.node_id,
                node_run.node_name,
                node_run.node_type,
                node_run.status.value,
                node_run.started_at,
                _dumps(node_run.input_data),
            ),
        )
        conn.commit()
    return node_run


def get_node_run(user_id: str, node_run_id: str) -> NodeRunRecord | None:
    """fetch a node run, provided its parent run belongs to ``user_id``."""
    with connect() as conn:
        row = conn.execute(
            """
            select n.* from node_runs n
            join workflow_runs r on r.id = n.workflow_run_id
            where n.id = ? and r.user_id = ?
            """,
            (node_run_id, user_id),
        ).fetchone()
    if not row:
        return None
    return _node_run(row)


def update_node_run(user_id: str, node_run_id: str, update: NodeRunUpdate) -> NodeRunRecord | None:
    if not get_node_run(user_id, node_run_id):
        return None
    with connect() as conn:
        conn.execute(
            """
            update node_runs
            set status = ?, completed_at = ?, duration = ?, output_json = ?, error = ?
            where id = ?
            """,
            (
                update.status.value,
                update.completed_at or utc_timestamp(),
                update.duration,
                _dumps(update.output_data),
                update.error,
                node_run_id,
            ),
        )
        conn.commit()
    return get_node_run(user_id, node_run_id)
