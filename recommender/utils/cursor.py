"""
Opaque paging cursors for history queries.

A cursor encodes the (viewed_at, id) key of the last entry on a page, so the
next page starts strictly after it regardless of appends in between.
"""

import base64
import binascii
import json
from datetime import datetime
from typing import Tuple

from .time import ensure_utc


def encode_cursor(viewed_at: datetime, entry_id: str) -> str:
    payload = json.dumps({"t": ensure_utc(viewed_at).isoformat(), "id": entry_id})
    return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii").rstrip("=")


def decode_cursor(cursor: str) -> Tuple[datetime, str]:
    """Decode a cursor; raises ValueError when it is malformed."""
    padded = cursor + "=" * (-len(cursor) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded.encode("ascii"))
        payload = json.loads(raw.decode("utf-8"))
        return ensure_utc(datetime.fromisoformat(payload["t"])), str(payload["id"])
    except (binascii.Error, UnicodeError, json.JSONDecodeError, KeyError, TypeError) as e:
        raise ValueError(f"Invalid cursor: {cursor!r}") from e
