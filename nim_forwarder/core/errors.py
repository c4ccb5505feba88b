# nim_forwarder/core/errors.py
"""
Maps every failure of a chat completion request onto the OpenAI error body:

    {"error": {"message": ..., "type": "invalid_request_error", "code": <status>}}

The `type` is always "invalid_request_error", matching what OpenAI clients expect.
With STRICT_ERROR_TYPES enabled it instead names the failure category
(see `classify_failure`).
"""
from typing import Any, Optional, Tuple, Union

from fastapi import status

from nim_forwarder.models.api import ErrorEnvelope, ErrorResponse, ForwarderResponse

DEFAULT_ERROR_TYPE = "invalid_request_error"

Failure = Union[ForwarderResponse, BaseException]


def upstream_error_message(error_details: Any) -> Optional[str]:
    """Extracts `error.message` from a parsed NIM error body, if there is one."""
    if not isinstance(error_details, dict):
        return None
    error = error_details.get("error")
    if not isinstance(error, dict):
        return None
    message = error.get("message")
    if message and isinstance(message, str):
        return message
    return None


def describe_exception(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


def classify_failure(failure: Failure, status_code: int) -> str:
    if isinstance(failure, ForwarderResponse):
        if failure.status_code is None:
            return "transport_error"
        if status_code < 500:
            return "upstream_client_error"
        return "upstream_server_error"
    # JSONDecodeError and pydantic's ValidationError are both ValueErrors
    if isinstance(failure, ValueError):
        return "malformed_request_error"
    return "api_error"


def normalize_failure(failure: Failure, strict_types: bool = False) -> Tuple[int, ErrorResponse]:
    """
    Returns the status code and error body for a failed upstream call or an exception.

    Upstream status and message win when NIM supplied them; otherwise 500 and the
    failure's own description.
    """
    if isinstance(failure, ForwarderResponse):
        status_code = failure.status_code or status.HTTP_500_INTERNAL_SERVER_ERROR
        message = upstream_error_message(failure.error_details) or failure.error or "Upstream request failed"
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        message = describe_exception(failure)

    error_type = classify_failure(failure, status_code) if strict_types else DEFAULT_ERROR_TYPE
    return status_code, ErrorResponse(error=ErrorEnvelope(message=message, type=error_type, code=status_code))


def not_found(path: str) -> ErrorResponse:
    return ErrorResponse(
        error=ErrorEnvelope(
            message=f"Endpoint {path} not found",
            type=DEFAULT_ERROR_TYPE,
            code=status.HTTP_404_NOT_FOUND,
        )
    )
