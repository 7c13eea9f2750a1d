"""Webhook signature verification.

Polar signs with the Standard Webhooks scheme::

    signed_content = f"{webhook_id}.{webhook_timestamp}.{raw_body}"
    signature      = "v1," + base64(HMAC_SHA256(secret_bytes, signed_content))

where ``secret_bytes`` is the base64-decoded secret with its ``whsec_`` prefix
removed. Razorpay signs the raw body (webhooks) or ``order_id|payment_id``
(checkout) with a hex HMAC-SHA256.

All comparisons are constant time.
"""

import base64
import binascii
import hashlib
import hmac
import time

SIGNATURE_VERSION = "v1"
SECRET_PREFIX = "whsec_"


class WebhookVerificationError(Exception):
    """Signature or timestamp check failed. The delivery is untrusted."""


class WebhookTimestampError(WebhookVerificationError):
    pass


class WebhookSecretError(ValueError):
    """The configured secret cannot be used."""


def decode_webhook_secret(secret: str) -> bytes:
    if not secret:
        raise WebhookSecretError("Webhook secret is not configured")
    if secret.startswith(SECRET_PREFIX):
        secret = secret[len(SECRET_PREFIX) :]
    try:
        return base64.b64decode(secret, validate=True)
    except (binascii.Error, ValueError) as e:
        raise WebhookSecretError("Webhook secret is not valid base64") from e


class StandardWebhookVerifier:
    """Verifies Standard Webhooks signatures with a replay window."""

    def __init__(self, secret: str, tolerance_seconds: int = 300):
        self.key = decode_webhook_secret(secret)
        self.tolerance_seconds = tolerance_seconds

    def sign(self, webhook_id: str, timestamp: int, body: bytes) -> str:
        signed_content = f"{webhook_id}.{timestamp}.".encode() + body
        digest = hmac.new(self.key, signed_content, hashlib.sha256).digest()
        return f"{SIGNATURE_VERSION},{base64.b64encode(digest).decode()}"

    def verify(
        self,
        body: bytes,
        webhook_id: str | None,
        webhook_timestamp: str | None,
        signature_header: str | None,
        now: int | None = None,
    ) -> None:
        """Raise WebhookVerificationError unless the delivery is authentic and fresh."""
        if not webhook_id or not webhook_timestamp or not signature_header:
            raise WebhookVerificationError("Missing required webhook headers")

        try:
            timestamp = int(webhook_timestamp)
        except ValueError as e:
            raise WebhookVerificationError("Invalid webhook timestamp") from e

        now = int(time.time()) if now is None else now
        if abs(now - timestamp) > self.tolerance_seconds:
            raise WebhookTimestampError("Webhook timestamp outside of tolerance")

        expected = self.sign(webhook_id, timestamp, body).split(",", 1)[1]

        # Header may carry several space separated "v1,<sig>" entries during rotation
        for candidate in signature_header.split(" "):
            version, _, value = candidate.partition(",")
            if version != SIGNATURE_VERSION or not value:
                continue
            if hmac.compare_digest(value.encode(), expected.encode()):
                return

        raise WebhookVerificationError("No matching signature found")


def hmac_sha256_hex(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def verify_razorpay_webhook_signature(
    body: bytes, signature: str | None, secret: str
) -> bool:
    if not secret:
        raise WebhookSecretError("Razorpay webhook secret is not configured")
    if not signature:
        return False
    expected = hmac_sha256_hex(secret, body)
    return hmac.compare_digest(expected.encode(), signature.strip().encode())


def verify_razorpay_payment_signature(
    order_id: str, payment_id: str, signature: str, key_secret: str
) -> bool:
    """Checkout handshake: HMAC of ``order_id|payment_id`` under the key secret."""
    if not key_secret:
        raise WebhookSecretError("Razorpay key secret is not configured")
    expected = hmac_sha256_hex(key_secret, f"{order_id}|{payment_id}".encode())
    return hmac.compare_digest(expected.encode(), signature.strip().encode())
