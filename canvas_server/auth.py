"""Request identity.

Sign-in is handled by the identity provider in front of this server; by the
time a request gets here the gateway has put the user's id in a header.
"""

from fastapi import Header, HTTPException

from canvas.config import USER_ID_HEADER
from canvas_server.user_db import ensure_user


def get_current_user(
    user_id: str | None = Header(default=None, alias=USER_ID_HEADER),
) -> str:
    """FastAPI dependency returning the signed-in user's id.

    Raises 401 when the request carries no identity.
    """
    if not user_id:
        raise HTTPException(status_code=401, detail="Not authenticated")
    ensure_user(user_id)
    return user_id
