"""HTTP client for the summarization backend.

One POST per digest, never retried. Every failure surfaces as a
``DigestError`` carrying the HTTP status, or ``0`` for network failures and
timeouts, so the controller can pick the right user-facing message.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import httpx
import structlog

from webdigest.errors import DigestError, ErrorCode, error_for_status

if TYPE_CHECKING:
    from webdigest.config import BackendSettings

log = structlog.get_logger()


def build_http_client(settings: BackendSettings) -> httpx.AsyncClient:
    """Create the shared httpx client. Called once at startup."""
    return httpx.AsyncClient(
        follow_redirects=False,
        timeout=httpx.Timeout(settings.timeout_seconds),
        headers={"User-Agent": settings.user_agent},
        limits=httpx.Limits(
            max_connections=10,
            max_keepalive_connections=5,
        ),
    )


def api_headers(api_key: str) -> dict[str, str]:
    return {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
        "Accept": "application/json",
    }


class Backend:
    """OpenAI Responses-style endpoint implementing BackendProtocol."""

    def __init__(self, client: httpx.AsyncClient, settings: BackendSettings) -> None:
        self._client = client
        self._settings = settings

    async def create_response(self, api_key: str, body: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await self._client.post(
                self._settings.url,
                json=body,
                headers=api_headers(api_key),
            )
        except httpx.TimeoutException as exc:
            raise DigestError(
                code=ErrorCode.NETWORK_OR_TIMEOUT,
                message="Request timeout",
                suggestion="Check your network or try again.",
                status=0,
                recoverable=True,
            ) from exc
        except httpx.HTTPError as exc:
            raise DigestError(
                code=ErrorCode.NETWORK_OR_TIMEOUT,
                message=f"Network error: {exc}",
                suggestion="Check your network or try again.",
                status=0,
                recoverable=True,
            ) from exc

        if not response.is_success:
            log.warning("backend_http_error", status_code=response.status_code)
            raise error_for_status(response.status_code, response.text)

        try:
            payload = response.json()
        except json.JSONDecodeError as exc:
            raise DigestError(
                code=ErrorCode.NO_OUTPUT,
                message="Backend returned a response that is not JSON.",
                suggestion="Try again later.",
                status=response.status_code,
            ) from exc

        log.info(
            "backend_response",
            status_code=response.status_code,
            response_status=payload.get("status") if isinstance(payload, dict) else None,
        )
        if not isinstance(payload, dict):
            raise DigestError(
                code=ErrorCode.NO_OUTPUT,
                message="Backend returned an unexpected response shape.",
                suggestion="Try again later.",
                status=response.status_code,
            )
        return payload

    async def validate_credential(self, api_key: str) -> None:
        """Probe the models endpoint with ``api_key``. Raises DigestError on failure."""
        try:
            response = await self._client.get(
                self._settings.models_url,
                headers={"Authorization": f"Bearer {api_key}"},
            )
        except httpx.HTTPError as exc:
            raise DigestError(
                code=ErrorCode.NETWORK_OR_TIMEOUT,
                message=f"Validation failed: {exc}",
                suggestion="Check your network or try again.",
                status=0,
                recoverable=True,
            ) from exc
        if not response.is_success:
            raise error_for_status(response.status_code)
        log.info("credential_validated")
