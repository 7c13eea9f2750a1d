import pytest
from httpx import AsyncClient

from src.modules.webhooks.signing import hmac_sha256_hex
from tests.conftest import TEST_RAZORPAY_KEY_SECRET

VERIFY_URL = "/v1/payments/razorpay/verify"


def _signature(order_id: str, payment_id: str) -> str:
    return hmac_sha256_hex(TEST_RAZORPAY_KEY_SECRET, f"{order_id}|{payment_id}".encode())


@pytest.mark.asyncio
async def test_valid_checkout_signature(public_client: AsyncClient):
    response = await public_client.post(
        VERIFY_URL,
        json={
            "order_id": "order_1",
            "payment_id": "pay_1",
            "signature": _signature("order_1", "pay_1"),
        },
    )

    assert response.status_code == 200
    assert response.json() == {
        "verified": True,
        "order_id": "order_1",
        "payment_id": "pay_1",
    }


@pytest.mark.asyncio
async def test_signature_for_another_payment_is_rejected(public_client: AsyncClient):
    response = await public_client.post(
        VERIFY_URL,
        json={
            "order_id": "order_1",
            "payment_id": "pay_2",
            "signature": _signature("order_1", "pay_1"),
        },
    )

    assert response.status_code == 400
    body = response.json()
    assert body["verified"] is False
    assert body["message_code"] == "PAYMENT_VERIFICATION_FAILED"


@pytest.mark.asyncio
async def test_missing_fields_fail_validation(public_client: AsyncClient):
    response = await public_client.post(VERIFY_URL, json={"order_id": "order_1"})

    assert response.status_code == 422
    assert response.json()["message_code"] == "INVALID_INPUT"


@pytest.mark.asyncio
async def test_verification_is_rate_limited_per_ip(public_client: AsyncClient):
    payload = {"order_id": "order_1", "payment_id": "pay_1", "signature": "00"}
    for _ in range(10):
        response = await public_client.post(VERIFY_URL, json=payload)
        assert response.status_code == 400

    response = await public_client.post(VERIFY_URL, json=payload)

    assert response.status_code == 429
    assert response.json()["message_code"] == "RATE_LIMIT_EXCEEDED"
    assert response.headers["X-RateLimit-Limit"] == "10"
    assert "Retry-After" in response.headers
