"""Unit tests for the network transport."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from app_services_sdk.errors import (
    APIError,
    RequestTimeoutError,
    TransportError,
    UnexpectedResponseError,
)
from app_services_sdk.models import RawResponse, Request
from app_services_sdk.transport import classify_response, create_http_client, encode_body
from conftest import json_response, make_transport


def get(url: str = "https://x/y", **kwargs) -> Request:
    return Request(method="GET", url=url, **kwargs)


class TestFetchAndParse:
    def test_json_success(self) -> None:
        transport = make_transport(lambda request: json_response(200, {"a": 1}))

        result = asyncio.run(transport.fetch_and_parse(get()))

        assert result == {"a": 1}

    def test_json_content_type_with_charset(self) -> None:
        transport = make_transport(
            lambda request: httpx.Response(
                200,
                headers={"content-type": "application/json; charset=utf-8"},
                content=b"[1, 2]",
            )
        )

        assert asyncio.run(transport.fetch_and_parse(get())) == [1, 2]

    def test_empty_success_without_content_type(self) -> None:
        transport = make_transport(lambda request: httpx.Response(204))

        assert asyncio.run(transport.fetch_and_parse(get())) is None

    def test_api_error(self) -> None:
        transport = make_transport(
            lambda request: json_response(401, {"error": "invalid session"})
        )

        with pytest.raises(APIError) as exc_info:
            asyncio.run(transport.fetch_and_parse(get()))

        error = exc_info.value
        assert error.status_code == 401
        assert error.status_text == "Unauthorized"
        assert error.payload == {"error": "invalid session"}
        assert error.method == "GET"
        assert error.url == "https://x/y"
        assert error.__cause__ is None

    def test_success_with_other_content_type(self) -> None:
        transport = make_transport(
            lambda request: httpx.Response(
                200, headers={"content-type": "text/html"}, content=b"<html></html>"
            )
        )

        with pytest.raises(UnexpectedResponseError) as exc_info:
            asyncio.run(transport.fetch_and_parse(get()))

        assert "Expected an empty or a JSON response" in str(exc_info.value)
        assert "GET https://x/y" in str(exc_info.value)
        assert exc_info.value.content_type == "text/html"
        assert exc_info.value.details["content_type"] == "text/html"

    def test_error_status_without_json(self) -> None:
        transport = make_transport(
            lambda request: httpx.Response(
                502, headers={"content-type": "text/plain"}, content=b"bad gateway"
            )
        )

        with pytest.raises(TransportError) as exc_info:
            asyncio.run(transport.fetch_and_parse(get()))

        error = exc_info.value
        assert not isinstance(error, APIError)
        assert "502" in str(error)
        assert error.details["status_code"] == 502
        assert error.content_type == "text/plain"

    def test_malformed_json_is_transport_error(self) -> None:
        transport = make_transport(
            lambda request: httpx.Response(
                200, headers={"content-type": "application/json"}, content=b"{not json"
            )
        )

        with pytest.raises(TransportError, match="Failed to parse JSON response"):
            asyncio.run(transport.fetch_and_parse(get()))

    def test_network_failure_is_wrapped(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        transport = make_transport(handler)

        with pytest.raises(TransportError) as exc_info:
            asyncio.run(transport.fetch_and_parse(get()))

        error = exc_info.value
        assert str(error) == "Request failed (GET https://x/y): Connection refused"
        assert isinstance(error.__cause__, httpx.ConnectError)


class TestRequestEncoding:
    def test_default_headers_and_json_body(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(204)

        transport = make_transport(handler)
        asyncio.run(
            transport.fetch_and_parse(
                Request(method="POST", url="https://x/login", body={"username": "a"})
            )
        )

        request = seen[0]
        assert request.method == "POST"
        assert request.headers["accept"] == "application/json"
        assert request.headers["content-type"] == "application/json"
        assert json.loads(request.content) == {"username": "a"}

    def test_string_body_and_custom_headers(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(204)

        transport = make_transport(handler)
        asyncio.run(
            transport.fetch_and_parse(
                Request(
                    method="PUT",
                    url="https://x/raw",
                    body="plain text",
                    headers={"Content-Type": "text/plain"},
                )
            )
        )

        request = seen[0]
        assert request.content == b"plain text"
        assert request.headers["content-type"] == "text/plain"
        assert request.headers.get("accept") != "application/json"

    def test_encode_body(self) -> None:
        assert encode_body(None) is None
        assert encode_body("x") == "x"
        assert encode_body(b"x") == b"x"
        assert encode_body({"a": [1, True]}) == '{"a": [1, true]}'


class TestTimeouts:
    def test_slow_call_times_out(self) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(1)
            return httpx.Response(204)

        transport = make_transport(handler)

        with pytest.raises(RequestTimeoutError) as exc_info:
            asyncio.run(transport.fetch_and_parse(get(timeout_ms=20)))

        error = exc_info.value
        assert error.timeout_ms == 20
        assert "GET https://x/y" in str(error)

    def test_timer_is_disarmed_after_success(self) -> None:
        transport = make_transport(lambda request: json_response(200, {"ok": True}))

        async def run() -> str:
            result = await transport.fetch_and_parse(get(timeout_ms=30))
            assert result == {"ok": True}
            # A lingering deadline would cancel this sleep
            await asyncio.sleep(0.1)
            return "done"

        assert asyncio.run(run()) == "done"

    def test_timer_is_disarmed_after_failure(self) -> None:
        transport = make_transport(lambda request: json_response(500, {"error": "x"}))

        async def run() -> str:
            with pytest.raises(APIError):
                await transport.fetch_and_parse(get(timeout_ms=30))
            await asyncio.sleep(0.1)
            return "done"

        assert asyncio.run(run()) == "done"

    def test_default_timeout_applies(self) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(1)
            return httpx.Response(204)

        transport = make_transport(handler, default_timeout_ms=20)

        with pytest.raises(RequestTimeoutError):
            asyncio.run(transport.fetch_and_parse(get()))


class RecordingHandler:
    def __init__(self) -> None:
        self.responses: list[RawResponse] = []
        self.errors: list[BaseException] = []

    def on_success(self, response: RawResponse) -> None:
        self.responses.append(response)

    def on_error(self, error: BaseException) -> None:
        self.errors.append(error)


class TestFetchWithCallbacks:
    def test_error_status_is_delivered_raw(self) -> None:
        transport = make_transport(
            lambda request: httpx.Response(
                404, headers={"content-type": "text/plain", "x-extra": "1"}, content=b"nope"
            )
        )
        handler = RecordingHandler()

        async def run() -> None:
            await transport.fetch_with_callbacks(get(), handler)

        asyncio.run(run())

        assert handler.errors == []
        raw = handler.responses[0]
        assert raw.status_code == 404
        assert raw.body == "nope"
        assert raw.headers["x-extra"] == "1"
        assert raw.headers["content-type"] == "text/plain"

    def test_json_body_is_not_parsed(self) -> None:
        transport = make_transport(lambda request: json_response(200, {"a": 1}))
        handler = RecordingHandler()

        async def run() -> None:
            await transport.fetch_with_callbacks(get(), handler)

        asyncio.run(run())

        assert json.loads(handler.responses[0].body) == {"a": 1}

    def test_call_failure_goes_to_on_error(self) -> None:
        def failing(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        transport = make_transport(failing)
        handler = RecordingHandler()

        async def run() -> None:
            await transport.fetch_with_callbacks(get(), handler)

        asyncio.run(run())

        assert handler.responses == []
        assert isinstance(handler.errors[0], TransportError)

    def test_on_success_failure_goes_to_on_error(self) -> None:
        transport = make_transport(lambda request: httpx.Response(204))
        handler = RecordingHandler()
        failure = RuntimeError("handler broke")

        def on_success(response: RawResponse) -> None:
            raise failure

        handler.on_success = on_success  # type: ignore[method-assign]

        async def run() -> None:
            await transport.fetch_with_callbacks(get(), handler)

        asyncio.run(run())

        assert handler.errors == [failure]

    def test_returns_before_the_call_settles(self) -> None:
        async def slow(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(0.05)
            return httpx.Response(204)

        transport = make_transport(slow)
        handler = RecordingHandler()

        async def run() -> None:
            task = transport.fetch_with_callbacks(get(), handler)
            assert handler.responses == []
            await task

        asyncio.run(run())

        assert handler.responses[0].status_code == 204


class TestClassifyResponse:
    def test_precedence(self) -> None:
        assert classify_response(200, "OK", None, "").kind == "empty"
        assert classify_response(200, "OK", "application/json", "1").value == 1
        assert classify_response(200, "OK", "text/plain", "x").kind == "transport_error"
        assert classify_response(400, "Bad Request", "application/json", "{}").kind == "api_error"
        assert classify_response(400, "Bad Request", None, "").kind == "transport_error"

    def test_empty_content_type_header_is_not_absent(self) -> None:
        classified = classify_response(200, "OK", "", "")

        assert classified.kind == "transport_error"

    def test_malformed_json_error_body(self) -> None:
        classified = classify_response(500, "Internal Server Error", "application/json", "<")

        assert classified.kind == "transport_error"
        assert "500" in (classified.message or "")

    def test_transport_error_keeps_content_type(self) -> None:
        classified = classify_response(200, "OK", "text/csv; charset=utf-8", "a,b")

        assert classified.content_type == "text/csv; charset=utf-8"


class TestCreateHttpClient:
    def test_uses_configured_user_agent(self, base_config) -> None:
        config = base_config.with_overrides(transport={"user_agent": "my-app/2.0"})

        client = create_http_client(config)

        assert client.headers["user-agent"] == "my-app/2.0"
        assert client.follow_redirects is False
        asyncio.run(client.aclose())
