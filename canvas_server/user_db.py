"""SQLite storage for users."""

from canvas.utils.identifiers import utc_timestamp
from canvas_server.db import connect


def ensure_user(user_id: str) -> None:
    """create the user row on first sight of an id."""
    with connect() as conn:
        conn.execute(
            "insert or ignore into users (id, created_at) values (?, ?)",
            (user_id, utc_timestamp()),
        )
        conn.commit()


def user_exists(user_id: str) -> bool:
    with connect() as conn:
        row = conn.execute("select id from users where id = ?", (user_id,)).fetchone()
    return row is not None
