"""Default identifier and timestamp factories for synthesized nodes.

Records loaded from storage always carry their own ids and timestamps. These
factories are only used for nodes the library creates itself (stubs and
schema-derived notes) when the caller does not inject its own.
"""

import datetime
import os
import threading
from datetime import timezone

# Counter seeded from the PID so separate processes never collide
_id_lock = threading.Lock()
_last_timestamp = 0
_counter = (os.getpid() * 7) % 1_000_000


def utc_now() -> datetime.datetime:
    """Current UTC time as a timezone-aware datetime."""
    return datetime.datetime.now(timezone.utc)


def utc_timestamp() -> str:
    """Current UTC time as an ISO 8601 string (the opaque node timestamp)."""
    return utc_now().isoformat()


def generate_id() -> str:
    """Generate a unique, chronologically sortable node id.

    Returns:
        A string in format "YYYYMMDDTHHMMSSsssssscccccc": date, "T", time,
        6-digit microseconds and a 6-digit counter that disambiguates ids
        created within the same microsecond.
    """
    global _last_timestamp, _counter

    with _id_lock:
        now = utc_now()
        current_timestamp = int(now.timestamp() * 1_000_000)

        if current_timestamp == _last_timestamp:
            _counter = (_counter + 1) % 1_000_000
        else:
            _last_timestamp = current_timestamp
            _counter = (os.getpid() * 7) % 1_000_000

        return f"{now.strftime('%Y%m%dT%H%M%S')}{now.microsecond:06d}{_counter:06d}"
