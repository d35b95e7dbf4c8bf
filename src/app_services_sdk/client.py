"""App Services SDK client.

Wires configuration, the HTTP client, the transport and the authenticator
together behind one async context manager.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Self

import httpx
from pydantic import ValidationError

from .authenticator import Authenticator
from .config import AppServicesConfig
from .errors import TransportError
from .models import AppLocation, Request
from .routes import AppUrl, app_base_url
from .storage import MemoryStorage, Storage
from .telemetry import configure_telemetry, get_logger, trace_operation
from .transport import DefaultNetworkTransport, create_http_client

if TYPE_CHECKING:
    from .credentials import Credentials
    from .models import AuthResponse
    from .oauth2 import Navigator
    from .transport import ResponseHandler


class AppServicesClient:
    """Asynchronous client for an App Services app."""

    def __init__(
        self,
        config: AppServicesConfig,
        *,
        storage: Storage | None = None,
        http_client: httpx.AsyncClient | None = None,
        navigator: Navigator | None = None,
    ) -> None:
        """Initialize client.

        Args:
            config: SDK configuration.
            storage: Storage shared with OAuth 2.0 redirect pages.
            http_client: HTTP client to use instead of creating one. A client
                passed in is not closed by ``close()``.
            navigator: Sends the user agent to a URL for redirect logins.
        """
        self.config = config
        configure_telemetry(config.telemetry)
        self._own_http = http_client is None
        self._http = http_client if http_client is not None else create_http_client(config)
        self.storage = storage if storage is not None else MemoryStorage()
        self.transport = DefaultNetworkTransport(
            self._http,
            default_headers=config.transport.default_headers,
            default_timeout_ms=config.transport.timeout_ms,
        )
        self.authenticator = Authenticator(
            self.transport,
            self.storage,
            self.get_app_url,
            navigator=navigator,
            oauth2_config=config.oauth2,
        )
        self._hostname: str | None = None
        self._location_lock = asyncio.Lock()
        self._logger = get_logger()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client if this client created it."""
        if self._own_http:
            await self._http.aclose()

    async def get_app_url(self) -> AppUrl:
        """Resolve the base URL of the app.

        With ``resolve_location`` enabled the deployment hostname is looked
        up once and reused afterwards.
        """
        if not self.config.resolve_location:
            return AppUrl(self.config.app_url)
        async with self._location_lock:
            if self._hostname is None:
                location = await self._fetch_location()
                self._hostname = location.hostname
                self._logger.debug(
                    "Resolved app location",
                    app_id=self.config.app_id,
                    hostname=location.hostname,
                    location=location.location,
                )
        return AppUrl(app_base_url(self._hostname, self.config.app_id))

    async def _fetch_location(self) -> AppLocation:
        url = self.config.location_url
        body = await self.transport.fetch_and_parse(Request(method="GET", url=url))
        try:
            return AppLocation.model_validate(body)
        except ValidationError as e:
            msg = f"Unexpected location response (GET {url}): {e.error_count()} invalid field(s)"
            raise TransportError(msg, method="GET", url=url, cause=e) from e

    async def log_in(
        self,
        credentials: Credentials,
        link_with_user: Any = None,
    ) -> AuthResponse:
        """Authenticate with ``credentials`` and return the session."""
        with trace_operation("log_in", attributes={"app.id": self.config.app_id}):
            return await self.authenticator.authenticate(credentials, link_with_user)

    async def fetch_and_parse(self, request: Request) -> Any:
        return await self.transport.fetch_and_parse(request)

    def fetch_with_callbacks(
        self,
        request: Request,
        handler: ResponseHandler,
    ) -> asyncio.Task[None]:
        return self.transport.fetch_with_callbacks(request, handler)
