"""Tests for the operator endpoints."""

from decimal import Decimal

import pytest
from httpx import AsyncClient
from rq.job import Job, JobStatus

from src.api.core.messages import MessageCode
from src.database.models import WebhookEventStatus
from src.modules.webhooks.queue import enqueue_webhook_event, get_webhook_queue
from tests.utils.assertions import (
    assert_authentication_error,
    assert_error_response,
    assert_permission_error,
)

QUEUE_URL = "/v1/admin/webhook-queue"


def _fail(job: Job, queue_connection, error: str = "boom") -> None:
    queue = get_webhook_queue(queue_connection)
    queue.remove(job)
    job.meta["last_error"] = error
    job.save_meta()
    job.set_status(JobStatus.FAILED)
    queue.failed_job_registry.add(job, ttl=3600)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "method,path",
    [
        ("GET", QUEUE_URL),
        ("GET", "/v1/admin/webhook-events"),
        ("GET", "/v1/admin/usage"),
    ],
)
async def test_admin_endpoints_reject_regular_users(
    authorized_client: AsyncClient, public_client: AsyncClient, method, path
):
    assert_permission_error(await authorized_client.request(method, path))
    assert_authentication_error(await public_client.request(method, path))


@pytest.mark.asyncio
async def test_queue_stats(admin_client: AsyncClient, queue_connection):
    enqueue_webhook_event("msg_1", "order.created", {})
    _fail(enqueue_webhook_event("msg_2", "order.created", {}), queue_connection)

    response = await admin_client.get(QUEUE_URL)

    assert response.status_code == 200
    body = response.json()
    assert body["view"] == "stats"
    assert body["stats"] == {
        "waiting": 1,
        "active": 0,
        "completed": 0,
        "failed": 1,
        "delayed": 0,
        "total": 2,
    }


@pytest.mark.asyncio
async def test_queue_failed_view(admin_client: AsyncClient, queue_connection):
    _fail(
        enqueue_webhook_event("msg_9", "payment.captured", {}),
        queue_connection,
        error="user not found",
    )

    response = await admin_client.get(QUEUE_URL, params={"view": "failed"})

    body = response.json()
    assert body["count"] == 1
    job = body["jobs"][0]
    assert job["eventId"] == "msg_9"
    assert job["eventType"] == "payment.captured"
    assert job["error"] == "user not found"
    assert job["maxAttempts"] == 5


@pytest.mark.asyncio
async def test_queue_unknown_view(admin_client: AsyncClient):
    response = await admin_client.get(QUEUE_URL, params={"view": "everything"})

    assert_error_response(response, MessageCode.INVALID_INPUT, 400)


@pytest.mark.asyncio
async def test_retry_failed_job(admin_client: AsyncClient, queue_connection):
    _fail(enqueue_webhook_event("msg_r", "order.created", {}), queue_connection)

    response = await admin_client.post(
        QUEUE_URL, json={"action": "retry", "eventId": "msg_r"}
    )

    assert response.status_code == 200
    assert response.json()["eventId"] == "msg_r"
    queue = get_webhook_queue(queue_connection)
    assert queue.failed_job_registry.count == 0
    assert queue.job_ids == ["msg_r"]


@pytest.mark.asyncio
async def test_retry_unknown_event(admin_client: AsyncClient):
    response = await admin_client.post(
        QUEUE_URL, json={"action": "retry", "eventId": "msg_missing"}
    )

    assert_error_response(response, MessageCode.QUEUE_JOB_NOT_FOUND, 404)


@pytest.mark.asyncio
async def test_retry_requeues_failed_event_whose_job_expired(
    admin_client: AsyncClient, db_session, webhook_event_factory, queue_connection
):
    await webhook_event_factory.create_async(
        db_session, event_id="msg_gone", status=WebhookEventStatus.FAILED
    )

    response = await admin_client.post(
        QUEUE_URL, json={"action": "retry", "eventId": "msg_gone"}
    )

    assert response.status_code == 200
    assert get_webhook_queue(queue_connection).job_ids == ["msg_gone"]


@pytest.mark.asyncio
async def test_retry_failed_events(
    admin_client: AsyncClient, db_session, webhook_event_factory, queue_connection
):
    await webhook_event_factory.create_async(
        db_session, event_id="msg_f1", status=WebhookEventStatus.FAILED, retry_count=1
    )
    await webhook_event_factory.create_async(
        db_session, event_id="msg_f2", status=WebhookEventStatus.FAILED, retry_count=3
    )
    await webhook_event_factory.create_async(db_session, event_id="msg_ok")

    response = await admin_client.post(QUEUE_URL, json={"action": "retry-failed"})

    body = response.json()
    assert body["success"] is True
    assert body["retried"] == 1
    assert body["failed"] == 0
    assert get_webhook_queue(queue_connection).job_ids == ["msg_f1"]


@pytest.mark.asyncio
async def test_cleanup_action(admin_client: AsyncClient):
    response = await admin_client.post(
        QUEUE_URL, json={"action": "cleanup", "gracePeriodDays": 7}
    )

    assert response.status_code == 200
    assert response.json()["removed"] == 0


@pytest.mark.asyncio
async def test_unknown_action_fails_validation(admin_client: AsyncClient):
    response = await admin_client.post(QUEUE_URL, json={"action": "drop-all"})

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_list_webhook_events_by_status(
    admin_client: AsyncClient, db_session, webhook_event_factory
):
    await webhook_event_factory.create_async(db_session, event_id="msg_p")
    await webhook_event_factory.create_async(
        db_session,
        event_id="msg_x",
        status=WebhookEventStatus.FAILED,
        error_message="boom",
    )

    response = await admin_client.get(
        "/v1/admin/webhook-events", params={"status": "failed"}
    )

    body = response.json()
    assert body["count"] == 1
    assert body["events"][0]["eventId"] == "msg_x"
    assert body["events"][0]["errorMessage"] == "boom"


@pytest.mark.asyncio
async def test_usage_report(
    admin_client: AsyncClient, db_session, test_admin_user, usage_factory
):
    await usage_factory.create_async(
        db_session,
        user_id=test_admin_user.id,
        input_tokens=10,
        output_tokens=20,
        provider_cost_usd=Decimal("0.5"),
    )

    response = await admin_client.get("/v1/admin/usage", params={"days": 7})

    body = response.json()
    assert body["totals"]["totalCalls"] == 1
    assert body["totals"]["totalTokens"] == 30
    assert Decimal(body["totals"]["totalCostUsd"]) == Decimal("0.5")
    assert body["models"][0]["model"] == "gpt-5"
    assert body["topUsers"][0]["userId"] == str(test_admin_user.id)
