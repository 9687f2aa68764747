"""
Backend HTTP client - Shared envelope handling for the vendor API.

The vendor backend wraps every payload as
``{"status": ..., "error": bool, "message": str, "data": ...}`` and reports
rejected fields under ``fieldErrors`` (older endpoints use ``errors``).
This module turns those responses, and transport failures, into domain
exceptions so the adapters stay small.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from src.domain.exceptions import ConflictError, FieldValidationError, GeneralError

logger = logging.getLogger(__name__)

UNREACHABLE_MESSAGE = "Unable to reach the server. Please check your connection and try again."


@dataclass
class BackendResponse:
    """Decoded vendor API response."""

    status_code: int
    error: bool
    message: str
    data: Any = None
    field_errors: dict[str, str] = field(default_factory=dict)

    @property
    def failed(self) -> bool:
        return self.error or self.status_code >= 400


class BackendClient:
    """
    Thin wrapper over httpx.AsyncClient for the vendor API.

    Timeouts are configured on the injected client; a timeout surfaces
    as a retryable GeneralError like any other transport failure.
    """

    def __init__(self, http: httpx.AsyncClient) -> None:
        self._http = http

    async def request(self, method: str, path: str, **kwargs: Any) -> BackendResponse:
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise GeneralError(UNREACHABLE_MESSAGE) from exc
        return decode_response(response)


def decode_response(response: httpx.Response) -> BackendResponse:
    """Decode the vendor envelope, tolerating non-JSON error bodies."""
    try:
        body = response.json()
    except ValueError:
        body = None

    if not isinstance(body, dict):
        return BackendResponse(
            status_code=response.status_code,
            error=response.status_code >= 400,
            message=response.reason_phrase or "Unexpected server response",
            data=body,
        )

    raw_errors = body.get("fieldErrors") or body.get("errors") or {}
    field_errors = {
        str(name): _first_message(message)
        for name, message in raw_errors.items()
    } if isinstance(raw_errors, dict) else {}

    return BackendResponse(
        status_code=response.status_code,
        error=bool(body.get("error", False)),
        message=str(body.get("message") or ""),
        data=body.get("data"),
        field_errors=field_errors,
    )


def _first_message(message: Any) -> str:
    if isinstance(message, list):
        return str(message[0]) if message else ""
    return str(message)


def raise_for_failure(response: BackendResponse, default_message: str) -> None:
    """
    Map a failed response to the domain error taxonomy.

    409 -> ConflictError, field errors -> FieldValidationError,
    anything else -> GeneralError.
    """
    if not response.failed:
        return

    message = response.message or default_message
    if response.status_code == 409:
        raise ConflictError(message)
    if response.field_errors:
        raise FieldValidationError(message, response.field_errors)
    raise GeneralError(message)
