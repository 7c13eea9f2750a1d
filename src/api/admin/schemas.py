from datetime import datetime
from decimal import Decimal
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


# Webhook queue


class QueueStatsModel(CamelModel):
    waiting: int
    active: int
    completed: int
    failed: int
    delayed: int
    total: int


class QueueJobModel(CamelModel):
    id: str
    event_id: str | None
    event_type: str | None
    attempt: int
    max_attempts: int
    error: str | None
    timestamp: datetime | None
    processed_on: datetime | None
    finished_on: datetime | None


class QueueStatsResponse(CamelModel):
    success: bool = True
    view: Literal["stats"] = "stats"
    stats: QueueStatsModel


class QueueJobsResponse(CamelModel):
    success: bool = True
    view: Literal["failed", "completed"]
    count: int
    jobs: list[QueueJobModel]


class RetryAction(CamelModel):
    action: Literal["retry"]
    event_id: str = Field(min_length=1, max_length=255)


class RetryFailedAction(CamelModel):
    action: Literal["retry-failed"]


class CleanupAction(CamelModel):
    action: Literal["cleanup"]
    grace_period_days: int = Field(default=7, ge=0, le=365)


QueueAction = Annotated[
    Union[RetryAction, RetryFailedAction, CleanupAction],
    Field(discriminator="action"),
]


class QueueActionResponse(CamelModel):
    success: bool
    action: str
    message: str
    event_id: str | None = None
    retried: int | None = None
    failed: int | None = None
    removed: int | None = None


# Persisted webhook events


class WebhookEventModel(CamelModel):
    id: str
    provider: str
    event_id: str
    event_type: str
    status: str
    retry_count: int
    error_message: str | None
    processed_at: datetime | None
    created_at: datetime


class WebhookEventsResponse(CamelModel):
    success: bool = True
    count: int
    events: list[WebhookEventModel]


# Usage


class UsageTotalsModel(CamelModel):
    days: int
    total_calls: int
    input_tokens: int
    output_tokens: int
    total_tokens: int
    total_cost_usd: Decimal
    unique_users: int


class ModelUsageModel(CamelModel):
    model: str
    calls: int
    total_tokens: int
    cost_usd: Decimal


class UserUsageModel(CamelModel):
    user_id: str
    email: str
    calls: int
    cost_usd: Decimal


class UsageReportResponse(CamelModel):
    success: bool = True
    totals: UsageTotalsModel
    models: list[ModelUsageModel]
    top_users: list[UserUsageModel]
