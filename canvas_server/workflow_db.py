"""SQLite storage for workflows."""

import json
import sqlite3
from typing import Any

from canvas.adapters.base import ROOT_FOLDER
from canvas.models.records import WorkflowCreate, WorkflowRecord, WorkflowSummary
from canvas.utils.identifiers import generate_id, utc_timestamp
from canvas_server.db import connect

_SUMMARY_COLUMNS = "id, name, folder_id, thumbnail, created_at, updated_at"


def _summary(row: sqlite3.Row) -> WorkflowSummary:
    return WorkflowSummary(
        id=row["id"],
        name=row["name"],
        folder_id=row["folder_id"],
        thumbnail=row["thumbnail"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _record(row: sqlite3.Row) -> WorkflowRecord:
    return WorkflowRecord(
        **_summary(row).model_dump(),
        nodes=json.loads(row["nodes_json"]),
        edges=json.loads(row["edges_json"]),
    )


def list_workflows(user_id: str, folder_id: str | None = None) -> list[WorkflowSummary]:
    """list a user's workflows, most recently updated first.

    ``folder_id`` of ``"root"`` selects workflows outside any folder; None
    selects all of them.
    """
    query = f"select {_SUMMARY_COLUMNS} from workflows where user_id = ?"
    params: list[Any] = [user_id]
    if folder_id == ROOT_FOLDER:
        query += " and folder_id is null"
    elif folder_id is not None:
        query += " and folder_id = ?"
        params.append(folder_id)
    query += " order by updated_at desc, rowid desc"

    with connect() as conn:
        rows = conn.execute(query, params).fetchall()
    return [_summary(row) for row in rows]


def get_workflow(user_id: str, workflow_id: str) -> WorkflowRecord | None:
    with connect() as conn:
        row = conn.execute(
            "select * from workflows where id = ? and user_id = ?",
            (workflow_id, user_id),
        ).fetchone()
    if not row:
        return None
    return _record(row)


def create_workflow(user_id: str, request: WorkflowCreate) -> WorkflowRecord:
    now = utc_timestamp()
    record = WorkflowRecord(
        id=generate_id(),
        name=request.name,
        folder_id=request.folder_id,
        nodes=request.nodes,
        edges=request.edges,
        created_at=now,
        updated_at=now,
    )
    with connect() as conn:
        conn.execute(
            """
            insert into workflows (
                id,
                user_id,
                folder_id,
                name,
                nodes_json,
                edges_json,
                created_at,
                updated_at
            )
            values (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.id,
                user_id,
                record.folder_id,
                record.name,
                json.dumps(record.nodes),
                json.dumps(record.edges),
                record.created_at,
                record.updated_at,
            ),
        )
        conn.commit()
    return record


def update_workflow(user_id: str, workflow_id: str, changes: dict[str, Any]) -> WorkflowRecord | None:
    """apply a partial update; keys are WorkflowUpdate field names."""
    existing = get_workflow(user_id, workflow_id)
    if not existing:
        return None

    record = existing.model_copy(update={**changes, "updated_at": utc_timestamp()})
    with connect() as conn:
        conn.execute(
            """
            update workflows
            set folder_id = ?,
                name = ?,
                nodes_json = ?,
                edges_json = ?,
                thumbnail = ?,
                updated_at = ?
            where id = ? and user_id = ?
            """,
            (
                record.folder_id,
                record.name,
                json.dumps(record.nodes),
                json.dumps(record.edges),
                record.thumbnail,
                record.updated_at,
                workflow_id,
                user_id,
            ),
        )
        conn.commit()
    return record


def delete_workflow(user_id: str, workflow_id: str) -> bool:
    """delete a workflow together with its run history."""
    with connect() as conn:
        cursor = conn.execute(
            "delete from workflows where id = ? and user_id = ?",
            (workflow_id, user_id),
        )
        if cursor.rowcount == 0:
            return False
        conn.execute(
            """
            delete from node_runs
            where workflow_run_id in (
                select id from workflow_runs where workflow_id = ?
            )
            """,
            (workflow_id,),
        )
        conn.execute("delete from workflow_runs where workflow_id = ?", (workflow_id,))
        conn.commit()
    return True
