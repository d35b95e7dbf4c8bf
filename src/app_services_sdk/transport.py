"""Network transport for the App Services SDK.

Sends request descriptors through an ``httpx.AsyncClient``, enforces
per-request timeouts and classifies responses into success values or typed
errors. No retries happen here; a failed call surfaces exactly one error.
"""

from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING, Any, Protocol

import httpx

from .config import DEFAULT_HEADERS
from .core.errors import ErrorFactory
from .models import ClassifiedResponse, RawResponse, Request, ResponseKind
from .telemetry import get_logger, trace_operation

if TYPE_CHECKING:
    from .config import AppServicesConfig

JSON_CONTENT_TYPE = "application/json"


class HTTPCapability(Protocol):
    """The subset of ``httpx.AsyncClient`` the transport relies on."""

    async def request(
        self,
        method: str,
        url: str,
        *,
        content: str | bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Perform a request and return the fully read response."""
        ...


class ResponseHandler(Protocol):
    """Receives the outcome of ``fetch_with_callbacks``."""

    def on_success(self, response: RawResponse) -> None: ...

    def on_error(self, error: BaseException) -> None: ...


def create_http_client(config: AppServicesConfig) -> httpx.AsyncClient:
    """Create configured async HTTP client.

    Read/write timeouts are left unset: request timeouts are enforced per call
    by the transport.

    Args:
        config: SDK configuration.

    Returns:
        Configured httpx.AsyncClient.
    """
    return httpx.AsyncClient(
        timeout=httpx.Timeout(None, connect=config.transport.connect_timeout),
        headers={"User-Agent": config.transport.user_agent},
        follow_redirects=False,
    )


def encode_body(body: Any) -> str | bytes | None:
    """Strings and bytes go out verbatim, anything else is JSON encoded."""
    if body is None:
        return None
    if isinstance(body, (str, bytes)):
        return body
    return json.dumps(body)


def classify_response(
    status_code: int,
    status_text: str,
    content_type: str | None,
    body: str,
) -> ClassifiedResponse:
    """Classify a response by status and content type.

    Args:
        status_code: HTTP status code.
        status_text: HTTP reason phrase.
        content_type: Value of the content-type header, ``None`` when absent.
        body: Response body as text.

    Returns:
        Exactly one of empty, JSON value, API error or transport error.
    """
    is_json = content_type is not None and content_type.startswith(JSON_CONTENT_TYPE)

    if 200 <= status_code < 300:
        if content_type is None:
            return ClassifiedResponse.empty()
        if is_json:
            try:
                return ClassifiedResponse.json_value(json.loads(body))
            except ValueError as e:
                return ClassifiedResponse.transport_error(
                    f"Failed to parse JSON response: {e}",
                    status=status_code,
                    status_text=status_text,
                    content_type=content_type,
                )
        return ClassifiedResponse.transport_error(
            "Expected an empty or a JSON response",
            status=status_code,
            status_text=status_text,
            content_type=content_type,
        )

    if is_json:
        try:
            payload = json.loads(body)
        except ValueError as e:
            return ClassifiedResponse.transport_error(
                f"Failed to parse JSON error response ({status_code} {status_text}): {e}",
                status=status_code,
                status_text=status_text,
                content_type=content_type,
            )
        return ClassifiedResponse.api_error(status_code, status_text, payload)

    return ClassifiedResponse.transport_error(
        f"Unexpected status code ({status_code} {status_text})",
        status=status_code,
        status_text=status_text,
        content_type=content_type,
    )


class DefaultNetworkTransport:
    """Transport performing requests through an injected HTTP client."""

    def __init__(
        self,
        client: HTTPCapability,
        *,
        default_headers: dict[str, str] | None = None,
        default_timeout_ms: float | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            client: HTTP client used to perform requests.
            default_headers: Headers sent when a request carries none.
            default_timeout_ms: Timeout for requests that carry none.
        """
        self._client = client
        self._default_headers = dict(
            DEFAULT_HEADERS if default_headers is None else default_headers
        )
        self._default_timeout_ms = default_timeout_ms
        self._background_tasks: set[asyncio.Task[None]] = set()
        self._logger = get_logger()

    @property
    def default_headers(self) -> dict[str, str]:
        return dict(self._default_headers)

    async def fetch_and_parse(self, request: Request) -> Any:
        """Perform a request and return its parsed JSON body.

        Args:
            request: Request descriptor.

        Returns:
            The decoded JSON value, or ``None`` for an empty success.

        Raises:
            APIError: The server answered with a JSON error body.
            TransportError: Anything else went wrong.
        """
        with trace_operation(
            "fetch_and_parse",
            attributes={"http.method": request.method, "http.url": request.url},
        ) as span:
            try:
                response = await self._send(request)
                classified = classify_response(
                    response.status_code,
                    response.reason_phrase,
                    response.headers.get("content-type"),
                    response.text,
                )
                span.set_attribute("http.status_code", response.status_code)
                self._logger.debug(
                    "Classified response",
                    method=request.method,
                    url=request.url,
                    status_code=response.status_code,
                    kind=classified.kind.value,
                )
                if classified.kind is ResponseKind.EMPTY:
                    return None
                if classified.kind is ResponseKind.JSON:
                    return classified.value
                raise ErrorFactory.from_classified(request, classified)
            except Exception as e:
                error = ErrorFactory.wrap_exception(
                    e,
                    method=request.method,
                    url=request.url,
                    timeout_ms=self._timeout_for(request),
                )
                self._logger.warning(
                    "Request failed",
                    method=request.method,
                    url=request.url,
                    error=error.message,
                    code=error.code,
                )
                if error is e:
                    raise
                raise error from e

    async def fetch_raw(self, request: Request) -> RawResponse:
        """Perform a request and return the unclassified response.

        Non-success statuses are returned like any other response; only a
        failure of the call itself raises.

        Raises:
            TransportError: The call could not be completed.
        """
        try:
            response = await self._send(request)
        except Exception as e:
            raise ErrorFactory.wrap_exception(
                e,
                method=request.method,
                url=request.url,
                timeout_ms=self._timeout_for(request),
            ) from e
        return RawResponse(
            status_code=response.status_code,
            headers={key: value for key, value in response.headers.items()},
            body=response.text,
        )

    def fetch_with_callbacks(
        self,
        request: Request,
        handler: ResponseHandler,
    ) -> asyncio.Task[None]:
        """Perform a request in the background and report to ``handler``.

        Must be called from a running event loop. The returned task can be
        awaited by callers that want to know when the handler has run.
        """
        task = asyncio.get_running_loop().create_task(
            self._fetch_with_callbacks(request, handler)
        )
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task

    async def _fetch_with_callbacks(
        self,
        request: Request,
        handler: ResponseHandler,
    ) -> None:
        try:
            raw = await self.fetch_raw(request)
            handler.on_success(raw)
        except Exception as e:
            handler.on_error(e)

    def _timeout_for(self, request: Request) -> float | None:
        if request.timeout_ms is not None:
            return request.timeout_ms
        return self._default_timeout_ms

    async def _send(self, request: Request) -> httpx.Response:
        """Issue the call, bounded by the request timeout if one applies."""
        timeout_ms = self._timeout_for(request)
        headers = self._default_headers if request.headers is None else request.headers
        self._logger.debug(
            "Dispatching request",
            method=request.method,
            url=request.url,
            token_type=request.token_type.value,
            timeout_ms=timeout_ms,
        )
        # The deadline is disarmed when the block exits, whatever the outcome
        async with asyncio.timeout(timeout_ms / 1000 if timeout_ms is not None else None):
            return await self._client.request(
                request.method,
                request.url,
                content=encode_body(request.body),
                headers=dict(headers),
            )
