"""Webhook signature verification through stripe.Webhook.construct_event."""

import hashlib
import hmac
import json
import time

import pytest

from src.mp_common.errors import InvalidWebhookSignatureError
from src.mp_payments.domain.webhook import verify_and_parse

SECRET = "whsec_test"
PAYLOAD = json.dumps({
    "id": "evt_1",
    "object": "event",
    "type": "checkout.session.completed",
    "data": {"object": {
        "id": "cs_1", "payment_status": "paid", "metadata": {"bid_id": "bid_1"},
    }},
}).encode()


def _sign(secret: str, ts: int, payload: bytes) -> str:
    signed = f"{ts}.".encode() + payload
    return hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()


def _header(secret: str = SECRET, ts: int | None = None, payload: bytes = PAYLOAD) -> str:
    ts = int(time.time()) if ts is None else ts
    return f"t={ts},v1={_sign(secret, ts, payload)}"


def test_valid_signature_parses_event() -> None:
    event = verify_and_parse(PAYLOAD, _header(), SECRET, 300)
    assert event.id == "evt_1"
    assert event.type == "checkout.session.completed"
    assert event.data_object["id"] == "cs_1"
    assert event.data_object["metadata"] == {"bid_id": "bid_1"}


def test_any_of_several_signatures_accepted() -> None:
    ts = int(time.time())
    header = f"t={ts},v1=deadbeef,v1={_sign(SECRET, ts, PAYLOAD)}"
    assert verify_and_parse(PAYLOAD, header, SECRET, 300).id == "evt_1"


def test_wrong_secret() -> None:
    with pytest.raises(InvalidWebhookSignatureError) as exc:
        verify_and_parse(PAYLOAD, _header(secret="whsec_other"), SECRET, 300)
    assert exc.value.code == 5003


def test_tampered_body() -> None:
    with pytest.raises(InvalidWebhookSignatureError):
        verify_and_parse(PAYLOAD + b" ", _header(), SECRET, 300)


def test_stale_timestamp() -> None:
    stale = int(time.time()) - 3600
    with pytest.raises(InvalidWebhookSignatureError) as exc:
        verify_and_parse(PAYLOAD, _header(ts=stale), SECRET, 300)
    assert "tolerance" in exc.value.message


def test_signed_body_that_is_not_json() -> None:
    body = b"not json"
    with pytest.raises(InvalidWebhookSignatureError) as exc:
        verify_and_parse(body, _header(payload=body), SECRET, 300)
    assert "JSON" in exc.value.message


@pytest.mark.parametrize("header", [None, "", "v1=abc", "t=notanint,v1=abc", "t=1700000000"])
def test_malformed_header(header: str | None) -> None:
    with pytest.raises(InvalidWebhookSignatureError):
        verify_and_parse(PAYLOAD, header, SECRET, 300)


def test_missing_secret_refuses_everything() -> None:
    with pytest.raises(InvalidWebhookSignatureError):
        verify_and_parse(PAYLOAD, _header(), "", 300)
