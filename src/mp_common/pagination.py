"""Opaque cursor helpers shared by every list endpoint.

Two shapes:
  - composite ``{"ts": <created_at ISO>, "id": <text id>}`` for snowflake-keyed
    tables listed newest first (products, bids, transactions)
  - ``{"id": <bigint>}`` for BIGSERIAL tables (notifications)

Both are Base64 JSON. A malformed cursor decodes to "no cursor" rather than
an error: the client just gets the first page again.
"""

import base64
import json
from datetime import datetime


def encode_ts_cursor(created_at: datetime, last_id: str) -> str:
    payload = {"ts": created_at.isoformat(), "id": last_id}
    return base64.b64encode(json.dumps(payload).encode()).decode()


def decode_ts_cursor(cursor: str | None) -> tuple[datetime | None, str | None]:
    """Decode -> (created_at, id). asyncpg needs a real datetime, not an ISO string."""
    if cursor is None:
        return None, None
    try:
        data = json.loads(base64.b64decode(cursor.encode()).decode())
        return datetime.fromisoformat(data["ts"]), str(data["id"])
    except Exception:
        return None, None


def encode_id_cursor(last_id: int) -> str:
    return base64.b64encode(json.dumps({"id": last_id}).encode()).decode()


def decode_id_cursor(cursor: str | None) -> int | None:
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.b64decode(cursor.encode()).decode())
        return int(payload["id"])
    except Exception:
        return None
