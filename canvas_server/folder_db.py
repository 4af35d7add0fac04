"""SQLite storage for folders."""

import sqlite3
from typing import Any

from canvas.models.records import FolderCreate, FolderRecord
from canvas.utils.identifiers import generate_id, utc_timestamp
from canvas_server.db import connect

# folder columns plus the number of workflows filed directly in it
_SELECT = """
    select f.id, f.name, f.parent_id, f.created_at, f.updated_at,
           (select count(*) from workflows w where w.folder_id = f.id) as file_count
    from folders f
"""


def _record(row: sqlite3.Row) -> FolderRecord:
    return FolderRecord(
        id=row["id"],
        name=row["name"],
        parent_id=row["parent_id"],
        file_count=row["file_count"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def list_folders(user_id: str, parent_id: str | None = None) -> list[FolderRecord]:
    """list the folders directly under ``parent_id`` (None for top level)."""
    with connect() as conn:
        if parent_id is None:
            rows = conn.execute(
                _SELECT + " where f.user_id = ? and f.parent_id is null"
                " order by f.updated_at desc, f.rowid desc",
                (user_id,),
            ).fetchall()
        else:
            rows = conn.execute(
                _SELECT + " where f.user_id = ? and f.parent_id = ?"
                " order by f.updated_at desc, f.rowid desc",
                (user_id, parent_id),
            ).fetchall()
    return [_record(row) for row in rows]


def get_folder(user_id: str, folder_id: str) -> FolderRecord | None:
    with connect() as conn:
        row = conn.execute(
            _SELECT + " where f.id = ? and f.user_id = ?",
            (folder_id, user_id),
        ).fetchone()
    if not row:
        return None
    return _record(row)


def create_folder(user_id: str, request: FolderCreate) -> FolderRecord:
    now = utc_timestamp()
    folder = FolderRecord(
        id=generate_id(),
        name=request.name,
        parent_id=request.parent_id,
        created_at=now,
        updated_at=now,
    )
    with connect() as conn:
        conn.execute(
            """
            insert into folders (id, user_id, name, parent_id, created_at, updated_at)
            values (?, ?, ?, ?, ?, ?)
            """,
            (folder.id, user_id, folder.name, folder.parent_id, folder.created_at, folder.updated_at),
        )
        conn.commit()
    return folder


def update_folder(user_id: str, folder_id: str, changes: dict[str, Any]) -> FolderRecord | None:
    existing = get_folder(user_id, folder_id)
    if not existing:
        return None

    folder = existing.model_copy(update={**changes, "updated_at": utc_timestamp()})
    with connect() as conn:
        conn.execute(
            """
            update folders
            set name = ?, parent_id = ?, updated_at = ?
            where id = ? and user_id = ?
            """,
            (folder.name, folder.parent_id, folder.updated_at, folder_id, user_id),
        )
        conn.commit()
    return folder


def delete_folder(user_id: str, folder_id: str) -> bool:
    """delete a folder, moving its workflows and child folders to the top level."""
    with connect() as conn:
        cursor = conn.execute(
            "delete from folders where id = ? and user_id = ?",
            (folder_id, user_id),
        )
        if cursor.rowcount == 0:
            return False
        conn.execute(
            "update workflows set folder_id = null where folder_id = ? and user_id = ?",
            (folder_id, user_id),
        )
        conn.execute(
            "update folders set parent_id = null where parent_id = ? and user_id = ?",
            (folder_id, user_id),
        )
        conn.commit()
    return True
