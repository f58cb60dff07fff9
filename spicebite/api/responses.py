"""
Response helpers shared by the API clients.
"""

from typing import Any

import httpx

from spicebite.core.errors import ApiError
from spicebite.utils.logger import get_logger

logger = get_logger(__name__)


def error_detail(response: httpx.Response) -> Any:
    """
    Extract the backend's error description from a response.

    The backend reports errors as {"error": ...}, {"detail": ...} or a
    field -> messages mapping; anything else falls back to the raw text.
    """
    try:
        payload = response.json()
    except ValueError:
        return response.text or None

    if isinstance(payload, dict):
        return payload.get("error") or payload.get("detail") or payload
    return payload


def json_or_raise(response: httpx.Response, *, action: str) -> Any:
    """
    Decode a successful JSON response.

    Args:
        response: Backend response.
        action: Short description used in log and error messages.

    Returns:
        Decoded JSON body (None for empty 204 responses).

    Raises:
        ApiError: On non-2xx status or invalid JSON.
    """
    if not response.is_success:
        detail = error_detail(response)
        logger.warning(
            "Backend rejected request",
            extra={
                "action": action,
                "status_code": response.status_code,
                "url": str(response.request.url),
            },
        )
        raise ApiError(
            f"Failed to {action}",
            status_code=response.status_code,
            detail=detail,
        )

    if response.status_code == 204 or not response.content:
        return None

    try:
        return response.json()
    except ValueError as exc:
        logger.exception("Invalid JSON response", extra={"action": action})
        raise ApiError(
            f"Invalid response received while trying to {action}",
            status_code=response.status_code,
        ) from exc
