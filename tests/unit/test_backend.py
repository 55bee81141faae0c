"""Unit tests for webdigest.backend."""

from __future__ import annotations

import json

import httpx
import pytest
import respx

from webdigest.backend import Backend, api_headers, build_http_client
from webdigest.config import BackendSettings
from webdigest.errors import DigestError, ErrorCode, MessageCategory, error_for_status

URL = "https://api.openai.com/v1/responses"
MODELS_URL = "https://api.openai.com/v1/models"


@pytest.fixture()
def backend_settings() -> BackendSettings:
    return BackendSettings()


def test_client_configuration(backend_settings: BackendSettings) -> None:
    client = build_http_client(backend_settings)
    assert isinstance(client, httpx.AsyncClient)
    assert client.follow_redirects is False
    assert client.headers["User-Agent"] == backend_settings.user_agent


def test_api_headers() -> None:
    headers = api_headers("sk-abc")
    assert headers["Authorization"] == "Bearer sk-abc"
    assert headers["Content-Type"] == "application/json"


# ---------------------------------------------------------------------------
# error_for_status
# ---------------------------------------------------------------------------


class TestErrorForStatus:
    @pytest.mark.parametrize(
        ("status", "code", "category"),
        [
            (401, ErrorCode.UNAUTHORIZED, MessageCategory.KEY_PROMPT),
            (429, ErrorCode.RATE_LIMITED, MessageCategory.WAIT),
            (400, ErrorCode.BAD_REQUEST, MessageCategory.SHORTEN),
            (503, ErrorCode.UNKNOWN_HTTP, MessageCategory.GENERIC),
        ],
    )
    def test_mapping(self, status: int, code: ErrorCode, category: MessageCategory) -> None:
        error = error_for_status(status)
        assert error.code == code
        assert error.status == status
        assert error.category == category

    def test_unknown_status_includes_body_excerpt(self) -> None:
        error = error_for_status(502, "upstream gateway exploded" + "x" * 500)
        assert "(502)" in error.message
        assert "upstream gateway exploded" in error.message
        assert len(error.message) < 300


# ---------------------------------------------------------------------------
# create_response
# ---------------------------------------------------------------------------


class TestCreateResponse:
    async def test_posts_body_with_bearer_key(self, backend_settings: BackendSettings) -> None:
        with respx.mock:
            route = respx.post(URL).mock(
                return_value=httpx.Response(200, json={"output_text": "ok"})
            )
            async with httpx.AsyncClient() as client:
                payload = await Backend(client, backend_settings).create_response(
                    "sk-abc", {"model": "gpt-5-nano", "input": "hello"}
                )
            assert payload == {"output_text": "ok"}
            request = route.calls.last.request
            assert request.headers["Authorization"] == "Bearer sk-abc"
            assert json.loads(request.content) == {"model": "gpt-5-nano", "input": "hello"}

    @pytest.mark.parametrize(
        ("status", "code"),
        [
            (401, ErrorCode.UNAUTHORIZED),
            (429, ErrorCode.RATE_LIMITED),
            (400, ErrorCode.BAD_REQUEST),
            (500, ErrorCode.UNKNOWN_HTTP),
        ],
    )
    async def test_http_errors(
        self, backend_settings: BackendSettings, status: int, code: ErrorCode
    ) -> None:
        with respx.mock:
            respx.post(URL).mock(return_value=httpx.Response(status, text="nope"))
            async with httpx.AsyncClient() as client:
                with pytest.raises(DigestError) as exc_info:
                    await Backend(client, backend_settings).create_response("sk", {})
            assert exc_info.value.code == code
            assert exc_info.value.status == status

    async def test_timeout_has_status_zero(self, backend_settings: BackendSettings) -> None:
        with respx.mock:
            respx.post(URL).mock(side_effect=httpx.ReadTimeout("slow"))
            async with httpx.AsyncClient() as client:
                with pytest.raises(DigestError) as exc_info:
                    await Backend(client, backend_settings).create_response("sk", {})
            assert exc_info.value.code == ErrorCode.NETWORK_OR_TIMEOUT
            assert exc_info.value.status == 0
            assert exc_info.value.message == "Request timeout"

    async def test_network_error_has_status_zero(self, backend_settings: BackendSettings) -> None:
        with respx.mock:
            respx.post(URL).mock(side_effect=httpx.ConnectError("refused"))
            async with httpx.AsyncClient() as client:
                with pytest.raises(DigestError) as exc_info:
                    await Backend(client, backend_settings).create_response("sk", {})
            assert exc_info.value.code == ErrorCode.NETWORK_OR_TIMEOUT
            assert exc_info.value.status == 0

    async def test_non_json_body(self, backend_settings: BackendSettings) -> None:
        with respx.mock:
            respx.post(URL).mock(return_value=httpx.Response(200, text="<html>"))
            async with httpx.AsyncClient() as client:
                with pytest.raises(DigestError) as exc_info:
                    await Backend(client, backend_settings).create_response("sk", {})
            assert exc_info.value.code == ErrorCode.NO_OUTPUT

    async def test_json_array_body(self, backend_settings: BackendSettings) -> None:
        with respx.mock:
            respx.post(URL).mock(return_value=httpx.Response(200, json=["a"]))
            async with httpx.AsyncClient() as client:
                with pytest.raises(DigestError) as exc_info:
                    await Backend(client, backend_settings).create_response("sk", {})
            assert exc_info.value.code == ErrorCode.NO_OUTPUT


# ---------------------------------------------------------------------------
# validate_credential
# ---------------------------------------------------------------------------


class TestValidateCredential:
    async def test_valid_key(self, backend_settings: BackendSettings) -> None:
        with respx.mock:
            route = respx.get(MODELS_URL).mock(return_value=httpx.Response(200, json={"data": []}))
            async with httpx.AsyncClient() as client:
                await Backend(client, backend_settings).validate_credential("sk-good")
            assert route.calls.last.request.headers["Authorization"] == "Bearer sk-good"

    async def test_rejected_key(self, backend_settings: BackendSettings) -> None:
        with respx.mock:
            respx.get(MODELS_URL).mock(return_value=httpx.Response(401))
            async with httpx.AsyncClient() as client:
                with pytest.raises(DigestError) as exc_info:
                    await Backend(client, backend_settings).validate_credential("sk-bad")
            assert exc_info.value.code == ErrorCode.UNAUTHORIZED
            assert exc_info.value.category == MessageCategory.KEY_PROMPT
