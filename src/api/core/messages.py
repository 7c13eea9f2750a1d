"""Centralized message codes and default messages for API responses."""

from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel


class MessageCode(str, Enum):
    """Centralized message codes for API responses."""

    # Success codes
    SUCCESS = "SUCCESS"
    CREATED = "CREATED"
    UPDATED = "UPDATED"

    # Authentication & Authorization
    AUTH_REQUIRED = "AUTH_REQUIRED"
    FORBIDDEN = "FORBIDDEN"
    INVALID_TOKEN = "INVALID_TOKEN"
    CRON_UNAUTHORIZED = "CRON_UNAUTHORIZED"

    # User management
    USER_NOT_FOUND = "USER_NOT_FOUND"

    # Balance ledger
    BALANCE_RETRIEVED = "BALANCE_RETRIEVED"
    BALANCE_CHARGED = "BALANCE_CHARGED"
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    INVALID_AMOUNT = "INVALID_AMOUNT"

    # Subscriptions & referrals
    INVALID_REFERRAL_CODE = "INVALID_REFERRAL_CODE"
    REFERRAL_ALREADY_APPLIED = "REFERRAL_ALREADY_APPLIED"

    # Webhooks & payments
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    WEBHOOK_TIMESTAMP_EXPIRED = "WEBHOOK_TIMESTAMP_EXPIRED"
    WEBHOOK_PAYLOAD_INVALID = "WEBHOOK_PAYLOAD_INVALID"
    WEBHOOK_NOT_CONFIGURED = "WEBHOOK_NOT_CONFIGURED"
    PAYMENT_VERIFICATION_FAILED = "PAYMENT_VERIFICATION_FAILED"

    # Webhook queue administration
    QUEUE_JOB_NOT_FOUND = "QUEUE_JOB_NOT_FOUND"
    QUEUE_JOB_RETRIED = "QUEUE_JOB_RETRIED"
    QUEUE_CLEANED = "QUEUE_CLEANED"
    QUEUE_UNAVAILABLE = "QUEUE_UNAVAILABLE"

    # Rate limiting
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"

    # Generic errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    BAD_REQUEST = "BAD_REQUEST"
    NOT_FOUND = "NOT_FOUND"


# Default messages for each message code
DEFAULT_MESSAGES = {
    # Success messages
    MessageCode.SUCCESS: "Operation completed successfully",
    MessageCode.CREATED: "Resource created successfully",
    MessageCode.UPDATED: "Resource updated successfully",
    # Authentication & Authorization
    MessageCode.AUTH_REQUIRED: "Authentication required",
    MessageCode.FORBIDDEN: "Access denied",
    MessageCode.INVALID_TOKEN: "Invalid authentication token",
    MessageCode.CRON_UNAUTHORIZED: "Invalid or missing cron secret",
    # User management
    MessageCode.USER_NOT_FOUND: "User not found",
    # Balance ledger
    MessageCode.BALANCE_RETRIEVED: "Balance retrieved successfully",
    MessageCode.BALANCE_CHARGED: "Balance charged successfully",
    MessageCode.INSUFFICIENT_BALANCE: "Insufficient balance. Please top up to continue.",
    MessageCode.INVALID_AMOUNT: "Amount must be greater than zero",
    # Subscriptions & referrals
    MessageCode.INVALID_REFERRAL_CODE: "Invalid referral code",
    MessageCode.REFERRAL_ALREADY_APPLIED: "User has already been referred",
    # Webhooks & payments
    MessageCode.INVALID_SIGNATURE: "Invalid webhook signature",
    MessageCode.WEBHOOK_TIMESTAMP_EXPIRED: "Webhook timestamp outside of tolerance",
    MessageCode.WEBHOOK_PAYLOAD_INVALID: "Malformed webhook payload",
    MessageCode.WEBHOOK_NOT_CONFIGURED: "Webhook secret is not configured",
    MessageCode.PAYMENT_VERIFICATION_FAILED: "Payment signature verification failed",
    # Webhook queue administration
    MessageCode.QUEUE_JOB_NOT_FOUND: "Job not found or already completed",
    MessageCode.QUEUE_JOB_RETRIED: "Job re-queued for processing",
    MessageCode.QUEUE_CLEANED: "Completed jobs cleaned up",
    MessageCode.QUEUE_UNAVAILABLE: "Webhook queue is unavailable",
    # Rate limiting
    MessageCode.RATE_LIMIT_EXCEEDED: "Rate limit exceeded",
    # Validation errors
    MessageCode.VALIDATION_ERROR: "Validation failed",
    MessageCode.INVALID_INPUT: "Invalid input provided",
    # Generic errors
    MessageCode.INTERNAL_ERROR: "Internal server error",
    MessageCode.BAD_REQUEST: "Bad request",
    MessageCode.NOT_FOUND: "Resource not found",
}

T = TypeVar("T")


class PaginationInfo(BaseModel):
    """Common pagination information."""

    total: int
    limit: int
    offset: int
    has_more: bool


class Paginated(BaseModel, Generic[T]):
    """Generic paginated response wrapper."""

    items: list[T]
    pagination: PaginationInfo


class APIResponse(BaseModel, Generic[T]):
    """Base API response model with consistent structure and proper typing."""

    message_code: MessageCode
    message: str
    data: T | None = None

    @classmethod
    def success(
        cls,
        message_code: MessageCode = MessageCode.SUCCESS,
        message: str | None = None,
        data: T | None = None,
    ) -> "APIResponse[T]":
        """Create a success response."""
        return cls(
            message_code=message_code,
            message=message or DEFAULT_MESSAGES.get(message_code, "Success"),
            data=data,
        )

    @classmethod
    def error(
        cls,
        message_code: MessageCode,
        message: str | None = None,
        data: T | None = None,
    ) -> "APIResponse[T]":
        """Create an error response."""
        return cls(
            message_code=message_code,
            message=message or DEFAULT_MESSAGES.get(message_code, "Error occurred"),
            data=data,
        )


def get_default_message(message_code: MessageCode) -> str:
    """Get default message for a message code."""
    return DEFAULT_MESSAGES.get(message_code, "Operation completed")
