"""
Response normalization for the stats API wire envelope.

Success:  {"success": true, "data": <payload>}
Failure:  {"success": false, "error": {"message": "..."}}
Legacy:   any object without a `success` key, used as-is.
"""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from .errors import ApiError, HttpError, MalformedResponseError, RateLimitError

ModelT = TypeVar("ModelT", bound=BaseModel)

DEFAULT_API_ERROR = "API error"


def raise_for_status(status_code: int, reason_phrase: str = "") -> None:
    if 200 <= status_code < 300:
        return
    if status_code == 429:
        raise RateLimitError(reason_phrase or "Too Many Requests")
    raise HttpError(status_code, reason_phrase)


def _raise_api_error(body: dict[str, Any]) -> None:
    error = body.get("error")
    message = None
    if isinstance(error, dict):
        message = error.get("message")
    raise ApiError(message if isinstance(message, str) and message else DEFAULT_API_ERROR)


def unwrap_envelope(body: Any) -> Any:
    """Return the payload inside an envelope, or raise the matching error."""
    if not isinstance(body, dict):
        raise MalformedResponseError(f"Expected JSON object, got {type(body).__name__}")

    if "success" not in body:
        # Legacy responses carry the payload directly.
        return body

    success = body["success"]
    if success is True:
        return body.get("data")
    if success is False and body.get("error") is not None:
        _raise_api_error(body)

    raise MalformedResponseError("Invalid API response format")


def check_envelope(body: Any) -> dict[str, Any]:
    """
    Validate an envelope but return it whole.

    Paginated endpoints put metadata beside `data` (`meta.pagination`), so their
    callers need the full body rather than the unwrapped payload.
    """
    if not isinstance(body, dict):
        raise MalformedResponseError(f"Expected JSON object, got {type(body).__name__}")

    if "success" not in body or body["success"] is True:
        return body
    if body["success"] is False and body.get("error") is not None:
        _raise_api_error(body)

    raise MalformedResponseError("Invalid API response format")


def normalize_response(status_code: int, reason_phrase: str, body: Any) -> Any:
    raise_for_status(status_code, reason_phrase)
    return unwrap_envelope(body)


def normalize_envelope(status_code: int, reason_phrase: str, body: Any) -> dict[str, Any]:
    raise_for_status(status_code, reason_phrase)
    return check_envelope(body)


def parse_payload(model: type[ModelT], payload: Any) -> ModelT:
    """Validate a payload against its schema; schema mismatches are malformed responses."""
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise MalformedResponseError(
            f"{model.__name__} did not match response: {e.error_count()} error(s)"
        ) from e
