"""Test utilities for asserting API responses and message codes."""

from typing import Any
from httpx import Response
from src.api.core.messages import MessageCode
from src.api.core.exceptions.base import CraftException


def assert_success_response(
    response: Response,
    expected_message_code: MessageCode = MessageCode.SUCCESS,
    expected_status: int = 200,
) -> Any:
    """Assert an ``APIResponse`` envelope and return its ``data``."""
    assert response.status_code == expected_status, (
        f"Expected status {expected_status}, got {response.status_code}. "
        f"Response: {response.text}"
    )

    json_data = response.json()
    assert json_data.get("message_code") == expected_message_code.value, (
        f"Expected message_code {expected_message_code.value}, "
        f"got {json_data.get('message_code')}"
    )
    assert "message" in json_data, "Success response should have message"

    return json_data.get("data")


def assert_error_response(
    response: Response,
    expected_message_code: MessageCode,
    expected_status: int,
    expected_message: str | None = None,
) -> dict[str, Any]:
    """Assert that response is an error with expected message code.

    Args:
        response: HTTP response to check
        expected_message_code: Expected error message code
        expected_status: Expected HTTP status code
        expected_message: Optional expected error message

    Returns:
        Response body for further assertions
    """
    assert response.status_code == expected_status, (
        f"Expected status {expected_status}, got {response.status_code}. "
        f"Response: {response.text}"
    )

    json_data = response.json()
    assert json_data.get("message_code") == expected_message_code.value, (
        f"Expected message_code {expected_message_code.value}, "
        f"got {json_data.get('message_code')}"
    )

    if expected_message:
        assert json_data.get("message") == expected_message, (
            f"Expected message '{expected_message}', "
            f"got '{json_data.get('message')}'"
        )

    return json_data


def assert_permission_error(response: Response) -> dict[str, Any]:
    """Assert that response is a permission/authorization error."""
    return assert_error_response(response, MessageCode.FORBIDDEN, 403)


def assert_authentication_error(response: Response) -> dict[str, Any]:
    """Assert that response is an authentication error."""
    return assert_error_response(response, MessageCode.AUTH_REQUIRED, 401)


def assert_craft_exception(
    exception: CraftException,
    expected_message_code: MessageCode,
    expected_status: int | None = None,
) -> None:
    assert exception.message_code == expected_message_code, (
        f"Expected message_code {expected_message_code}, "
        f"got {exception.message_code}"
    )

    if expected_status:
        assert exception.status_code == expected_status, (
            f"Expected status_code {expected_status}, " f"got {exception.status_code}"
        )
