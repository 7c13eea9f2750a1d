"""Typed webhook events.

Provider payloads are parsed once, at the boundary, into one of the models
below. Business handlers only ever see these types, never raw dicts.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Literal, Union, get_args

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.database.models import WebhookProvider


class WebhookPayloadError(ValueError):
    """Payload does not match the shape its event type declares."""


class _ProviderModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# Polar


class PolarCustomer(_ProviderModel):
    id: str | None = None
    email: str | None = None
    external_id: str | None = None


class PolarOrderMetadata(_ProviderModel):
    purchase_type: str | None = Field(default=None, alias="purchaseType")
    user_id: str | None = Field(default=None, alias="userId")
    requested_balance: Decimal | None = Field(default=None, alias="requestedBalance")
    platform_fee: Decimal | None = Field(default=None, alias="platformFee")
    total_charged: Decimal | None = Field(default=None, alias="totalCharged")


class PolarOrder(_ProviderModel):
    id: str
    customer_id: str | None = None
    amount: int | None = None
    currency: str | None = None
    billing_reason: str | None = None
    metadata: PolarOrderMetadata = Field(default_factory=PolarOrderMetadata)
    customer: PolarCustomer | None = None


class PolarSubscription(_ProviderModel):
    id: str
    status: str
    customer_id: str | None = None
    current_period_start: datetime | None = None
    current_period_end: datetime | None = None
    cancel_at_period_end: bool = False
    metadata: dict[str, Any] = Field(default_factory=dict)
    customer: PolarCustomer | None = None


class PolarOrderEvent(_ProviderModel):
    provider: Literal[WebhookProvider.POLAR] = WebhookProvider.POLAR
    type: Literal["order.created", "order.paid", "order.updated", "order.refunded"]
    data: PolarOrder


class PolarSubscriptionEvent(_ProviderModel):
    provider: Literal[WebhookProvider.POLAR] = WebhookProvider.POLAR
    type: Literal[
        "subscription.created",
        "subscription.active",
        "subscription.updated",
        "subscription.renewed",
        "subscription.canceled",
        "subscription.revoked",
        "subscription.uncanceled",
    ]
    data: PolarSubscription


# Razorpay


class RazorpayNotes(_ProviderModel):
    purchase_type: str | None = None
    user_id: str | None = None
    requested_balance: Decimal | None = None


class RazorpayPayment(_ProviderModel):
    id: str
    order_id: str | None = None
    # Smallest currency unit (paise)
    amount: int
    currency: str = "INR"
    status: str | None = None
    method: str | None = None
    email: str | None = None
    error_description: str | None = None
    notes: RazorpayNotes = Field(default_factory=RazorpayNotes)


class RazorpayOrder(_ProviderModel):
    id: str
    amount: int
    currency: str = "INR"
    status: str | None = None
    notes: RazorpayNotes = Field(default_factory=RazorpayNotes)


class _RazorpayPaymentEntity(_ProviderModel):
    entity: RazorpayPayment


class _RazorpayOrderEntity(_ProviderModel):
    entity: RazorpayOrder


class RazorpayPaymentPayload(_ProviderModel):
    payment: _RazorpayPaymentEntity


class RazorpayOrderPayload(_ProviderModel):
    order: _RazorpayOrderEntity
    payment: _RazorpayPaymentEntity | None = None


class RazorpayPaymentEvent(_ProviderModel):
    provider: Literal[WebhookProvider.RAZORPAY] = WebhookProvider.RAZORPAY
    type: Literal["payment.authorized", "payment.captured", "payment.failed"] = Field(
        alias="event"
    )
    account_id: str | None = None
    created_at: int | None = None
    payload: RazorpayPaymentPayload

    @property
    def payment(self) -> RazorpayPayment:
        return self.payload.payment.entity


class RazorpayOrderEvent(_ProviderModel):
    provider: Literal[WebhookProvider.RAZORPAY] = WebhookProvider.RAZORPAY
    type: Literal["order.paid"] = Field(alias="event")
    account_id: str | None = None
    created_at: int | None = None
    payload: RazorpayOrderPayload

    @property
    def order(self) -> RazorpayOrder:
        return self.payload.order.entity


class UnhandledEvent(_ProviderModel):
    """Any event type without a dedicated model. Acknowledged and logged only."""

    provider: WebhookProvider
    type: str


ProviderEvent = Union[
    PolarOrderEvent,
    PolarSubscriptionEvent,
    RazorpayPaymentEvent,
    RazorpayOrderEvent,
    UnhandledEvent,
]

_EVENT_MODELS: dict[tuple[WebhookProvider, str], type[_ProviderModel]] = {
    **{
        (WebhookProvider.POLAR, event_type): PolarOrderEvent
        for event_type in get_args(PolarOrderEvent.model_fields["type"].annotation)
    },
    **{
        (WebhookProvider.POLAR, event_type): PolarSubscriptionEvent
        for event_type in get_args(PolarSubscriptionEvent.model_fields["type"].annotation)
    },
    **{
        (WebhookProvider.RAZORPAY, event_type): RazorpayPaymentEvent
        for event_type in get_args(RazorpayPaymentEvent.model_fields["type"].annotation)
    },
    (WebhookProvider.RAZORPAY, "order.paid"): RazorpayOrderEvent,
}


def get_event_type(provider: WebhookProvider, payload: dict) -> str:
    """Read the provider's event type field from a raw payload."""
    key = "type" if provider == WebhookProvider.POLAR else "event"
    event_type = payload.get(key) if isinstance(payload, dict) else None
    if not isinstance(event_type, str) or not event_type:
        raise WebhookPayloadError(f"Missing '{key}' in {provider.value} payload")
    return event_type


def parse_webhook_event(provider: WebhookProvider, payload: dict) -> ProviderEvent:
    event_type = get_event_type(provider, payload)
    model = _EVENT_MODELS.get((provider, event_type))
    if model is None:
        return UnhandledEvent(provider=provider, type=event_type)

    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise WebhookPayloadError(
            f"Invalid {provider.value} {event_type} payload: {e.error_count()} error(s)"
        ) from e
