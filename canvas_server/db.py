"""SQLite connection and schema."""

import os
import sqlite3
from pathlib import Path

DEFAULT_DB_PATH = Path(__file__).parent / "data" / "canvas.db"
DB_PATH = Path(os.getenv("CANVAS_DB_PATH", str(DEFAULT_DB_PATH)))


def connect() -> sqlite3.Connection:
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(DB_PATH)
    conn.row_factory = sqlite3.Row
    return conn


def init_all() -> None:
    """initialize all sqlite tables."""
    with connect() as conn:
        conn.execute(
            """
            create table if not exists users (
                id text primary key,
                created_at text not null
            )
            """
        )
        conn.execute(
            """
            create table if not exists folders (
                id text primary key,
                user_id text not null,
                name text not null,
                parent_id text,
                created_at text not null,
                updated_at text not null
            )
            """
        )
        conn.execute(
            """
            create table if not exists workflows (
                id text primary key,
                user_id text not null,
                folder_id text,
                name text not null,
                nodes_json text not null default '[]',
                edges_json text not null default '[]',
                thumbnail text,
                created_at text not null,
                updated_at text not null
            )
            """
        )
        conn.execute(
            """
            create table if not exists workflow_runs (
                id text primary key,
                user_id text not null,
                workflow_id text not null,
                run_scope text not null,
                status text not null,
                started_at text not null,
                completed_at text,
                duration integer,
                node_count integer not null default 0
            )
            """
        )
        conn.execute(
            """
            create table if not exists node_runs (
                id text primary key,
                workflow_run_id text not null,
                node_id text not null,
                node_name text not null,
                node_type text not null,
                status text not null,
                started_at text not null,
                completed_at text,
                duration integer,
                input_json text,
                output_json text,
                error text
            )
            """
        )
        conn.execute(
            "create index if not exists idx_folders_user_parent on folders(user_id, parent_id)"
        )
        conn.execute(
            "create index if not exists idx_workflows_user_folder on workflows(user_id, folder_id)"
        )
        conn.execute(
            "create index if not exists idx_workflow_runs_workflow on workflow_runs(workflow_id)"
        )
        conn.execute(
            "create index if not exists idx_node_runs_run on node_runs(workflow_run_id)"
        )
        conn.commit()
