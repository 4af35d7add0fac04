"""ID generation and timestamp utilities."""

import random
import string
import time
import uuid
from datetime import datetime, timezone

TEMP_ID_PREFIX = "temp_"

_BASE36 = string.digits + string.ascii_lowercase


def generate_id() -> str:
    """Generate a server-side record ID (UUID4)."""
    return str(uuid.uuid4())


def generate_temp_id() -> str:
    """Generate an optimistic client-side ID.

    Format: ``temp_<epoch ms>_<9 base36 chars>``.
    """
    suffix = "".join(random.choices(_BASE36, k=9))
    return f"{TEMP_ID_PREFIX}{int(time.time() * 1000)}_{suffix}"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_timestamp() -> str:
    """Generate an ISO8601 UTC timestamp."""
    return utc_now().isoformat()


def duration_ms(started_at: datetime, completed_at: datetime) -> int:
    """Wall-clock milliseconds between two timestamps."""
    return int((completed_at - started_at).total_seconds() * 1000)
