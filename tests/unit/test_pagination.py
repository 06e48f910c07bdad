"""Tests for opaque cursor helpers."""
from datetime import UTC, datetime

from src.mp_common.pagination import (
    decode_id_cursor,
    decode_ts_cursor,
    encode_id_cursor,
    encode_ts_cursor,
)


def test_ts_cursor_decodes_to_datetime() -> None:
    ts = datetime(2026, 3, 1, 12, 30, tzinfo=UTC)
    created_at, last_id = decode_ts_cursor(encode_ts_cursor(ts, "bid_9"))
    assert created_at == ts
    assert last_id == "bid_9"


def test_malformed_ts_cursor_means_first_page() -> None:
    assert decode_ts_cursor("not-base64!!") == (None, None)
    assert decode_ts_cursor(None) == (None, None)


def test_id_cursor() -> None:
    assert decode_id_cursor(encode_id_cursor(42)) == 42
    assert decode_id_cursor("garbage") is None
