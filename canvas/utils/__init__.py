"""Utility functions."""

from canvas.utils.identifiers import (
    TEMP_ID_PREFIX,
    duration_ms,
    generate_id,
    generate_temp_id,
    utc_now,
    utc_timestamp,
)

__all__ = [
    "TEMP_ID_PREFIX",
    "duration_ms",
    "generate_id",
    "generate_temp_id",
    "utc_now",
    "utc_timestamp",
]
