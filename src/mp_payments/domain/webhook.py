"""Gateway webhook verification.

The ``Stripe-Signature`` header is checked by ``stripe.Webhook.construct_event``
against the raw request body; several v1 entries may appear while a signing
secret is being rolled and any match is accepted.
"""

from dataclasses import dataclass
from typing import Any

import stripe

from src.mp_common.errors import InvalidWebhookSignatureError


@dataclass(frozen=True)
class WebhookEvent:
    id: str
    type: str
    data_object: dict[str, Any]


def verify_and_parse(
    payload: bytes,
    header: str | None,
    secret: str,
    tolerance_seconds: int,
) -> WebhookEvent:
    """Verify the signature header and return the decoded event.

    Raises InvalidWebhookSignatureError on a missing header, a timestamp
    outside the tolerance window, no matching signature or a body that is
    not JSON.
    """
    if not secret:
        raise InvalidWebhookSignatureError("Webhook secret is not configured")
    if not header:
        raise InvalidWebhookSignatureError("Missing signature header")

    try:
        event = stripe.Webhook.construct_event(
            payload, header, secret, tolerance=tolerance_seconds
        )
    except stripe.SignatureVerificationError as exc:
        raise InvalidWebhookSignatureError(f"Invalid webhook signature: {exc}") from exc
    except ValueError:
        raise InvalidWebhookSignatureError("Webhook body is not valid JSON") from None

    body = event.to_dict()
    return WebhookEvent(
        id=str(body.get("id", "")),
        type=str(body.get("type", "")),
        data_object=(body.get("data") or {}).get("object") or {},
    )
