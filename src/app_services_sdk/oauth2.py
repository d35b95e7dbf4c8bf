"""OAuth 2.0 redirect flow coordination.

The flow never talks to the identity provider itself. It computes the URL a
user agent has to visit, records the pending state in storage and waits for
the redirect page to drop the outcome next to it. Every storage key is
partitioned by the state token, so concurrent flows never see each other's
entries.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from .config import OAuth2Config
from .credentials import Credentials
from .errors import (
    AuthenticationFlowError,
    ErrorCode,
    InvalidConfigError,
    SessionValidationError,
)
from .models import AuthResponse
from .routes import AppUrl
from .storage import PrefixedStorage, Storage
from .strings import decode_query_string, encode_url, generate_random_string
from .telemetry import get_logger, trace_operation

AppUrlSupplier = Callable[[], Awaitable[AppUrl]]
Navigator = Callable[[str], Any]

# Parameters the server appends to the redirect URL once the provider is done
REDIRECT_APP_ID = "_stitch_client_app_id"
REDIRECT_USER_AUTH = "_stitch_ua"
REDIRECT_LINK = "_stitch_link"
REDIRECT_ERROR = "_stitch_error"
REDIRECT_STATE = "_stitch_state"

_UNSET: Any = object()


class FlowState(StrEnum):
    """Lifecycle of a single redirect flow."""

    IDLE = "idle"
    REDIRECT_ISSUED = "redirect_issued"
    AWAITING_COMPLETION = "awaiting_completion"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class PendingFlow:
    """A redirect flow that has been started but not settled."""

    state_token: str
    url: str
    provider_name: str
    status: FlowState = FlowState.IDLE
    cancelled: bool = field(default=False, repr=False)


class OAuth2RedirectResult(BaseModel):
    """Outcome delivered by the redirect page."""

    model_config = ConfigDict(frozen=True)

    state: str
    user_auth: str | None = None
    link: bool = False
    error: str | None = None
    app_id: str | None = None


class OAuth2Flow:
    """Coordinates redirect based OAuth 2.0 logins through shared storage."""

    def __init__(
        self,
        storage: Storage,
        app_url_supplier: AppUrlSupplier,
        *,
        navigator: Navigator | None = None,
        config: OAuth2Config | None = None,
    ) -> None:
        """Initialize the flow coordinator.

        Args:
            storage: Storage shared with the redirect page. It should not be
                scoped to a single app.
            app_url_supplier: Resolves the base URL of the app.
            navigator: Sends the user agent to a URL. May be async.
            config: Flow settings.
        """
        self.config = config or OAuth2Config()
        self._storage = PrefixedStorage(storage, self.config.storage_prefix)
        self._app_url_supplier = app_url_supplier
        self._navigator = navigator
        self._logger = get_logger()

    @staticmethod
    def _pending_key(state_token: str) -> str:
        return f"state({state_token}):pending"

    @staticmethod
    def _result_key(state_token: str) -> str:
        return f"state({state_token}):result"

    async def begin(self, credentials: Credentials) -> PendingFlow:
        """Compute the provider URL and record the pending state.

        Raises:
            InvalidConfigError: The credentials carry no redirect URL.
        """
        redirect_url = credentials.redirect_url
        if redirect_url is None:
            msg = "OAuth 2.0 redirect flows need a redirectUrl in the credentials"
            raise InvalidConfigError(msg, field="redirectUrl")

        state_token = generate_random_string(self.config.state_length)
        app_url = await self._app_url_supplier()
        login_url = app_url.auth_provider(credentials.provider_name).login().url
        url = encode_url(
            login_url,
            {
                "redirect": redirect_url,
                "state": state_token,
                "providerRedirectHeader": (
                    True if credentials.payload.get("providerRedirectHeader") else None
                ),
            },
        )

        # A stale result under a reused token must not complete this flow
        self._storage.remove(self._result_key(state_token))
        self._storage.set(self._pending_key(state_token), credentials.provider_name)

        flow = PendingFlow(
            state_token=state_token,
            url=url,
            provider_name=credentials.provider_name,
            status=FlowState.REDIRECT_ISSUED,
        )
        self._logger.info(
            "OAuth 2.0 redirect issued",
            provider=credentials.provider_name,
            state=state_token,
        )
        return flow

    async def wait_for_result(
        self,
        flow: PendingFlow,
        *,
        timeout: float | None = _UNSET,
    ) -> OAuth2RedirectResult:
        """Wait until the redirect page stores the outcome of ``flow``.

        Storage entries of the flow are removed on every exit path.

        Args:
            flow: Flow returned by ``begin``.
            timeout: Seconds to wait, ``None`` to wait forever. Defaults to
                the configured completion timeout.

        Raises:
            AuthenticationFlowError: Timed out, cancelled or rejected.
        """
        if timeout is _UNSET:
            timeout = self.config.completion_timeout

        flow.status = FlowState.AWAITING_COMPLETION
        result_key = self._result_key(flow.state_token)
        try:
            async with asyncio.timeout(timeout):
                while (raw := self._storage.get(result_key)) is None:
                    if flow.cancelled:
                        flow.status = FlowState.FAILED
                        raise AuthenticationFlowError(
                            "Authentication was cancelled",
                            state=flow.state_token,
                        )
                    await asyncio.sleep(self.config.poll_interval)
        except TimeoutError as e:
            flow.status = FlowState.FAILED
            self._logger.warning(
                "OAuth 2.0 flow timed out",
                provider=flow.provider_name,
                state=flow.state_token,
                timeout=timeout,
            )
            raise AuthenticationFlowError(
                "Authentication was not completed",
                state=flow.state_token,
            ) from e
        except BaseException:
            flow.status = FlowState.FAILED
            raise
        finally:
            self._clear(flow)

        try:
            result = OAuth2RedirectResult.model_validate_json(raw)
        except ValidationError as e:
            flow.status = FlowState.FAILED
            raise AuthenticationFlowError(
                "Failed to decode the redirect result",
                ErrorCode.FLOW_REJECTED,
                state=flow.state_token,
            ) from e
        if result.error:
            flow.status = FlowState.FAILED
            raise AuthenticationFlowError(
                result.error,
                ErrorCode.FLOW_REJECTED,
                state=flow.state_token,
            )
        flow.status = FlowState.COMPLETED
        return result

    def cancel(self, flow: PendingFlow) -> None:
        """Stop waiting for ``flow``. Other flows are unaffected."""
        flow.cancelled = True

    async def initiate(self, credentials: Credentials) -> OAuth2RedirectResult:
        """Run a complete redirect flow for ``credentials``.

        Raises:
            InvalidConfigError: No navigator was configured.
            AuthenticationFlowError: The flow did not complete.
        """
        if self._navigator is None:
            msg = "A navigator is required to run OAuth 2.0 redirect flows"
            raise InvalidConfigError(msg, field="navigator")

        with trace_operation(
            "oauth2_flow",
            attributes={"auth.provider": credentials.provider_name},
        ):
            flow = await self.begin(credentials)
            try:
                outcome = self._navigator(flow.url)
                if inspect.isawaitable(outcome):
                    await outcome
            except BaseException:
                flow.status = FlowState.FAILED
                self._clear(flow)
                raise
            return await self.wait_for_result(flow)

    def handle_redirect(self, query_string: str) -> OAuth2RedirectResult:
        """Store the outcome carried by a redirect URL's query or fragment.

        Called on the page the identity provider redirects back to.

        Raises:
            AuthenticationFlowError: The redirect does not belong to a pending flow.
        """
        params = decode_query_string(query_string.lstrip("?#"))
        state_token = params.get(REDIRECT_STATE)
        if not state_token:
            msg = "Expected a state in the redirect"
            raise AuthenticationFlowError(msg, ErrorCode.FLOW_REJECTED)
        if self._storage.get(self._pending_key(state_token)) is None:
            msg = "Redirect does not match a pending authentication"
            raise AuthenticationFlowError(msg, ErrorCode.FLOW_REJECTED, state=state_token)

        result = OAuth2RedirectResult(
            state=state_token,
            user_auth=params.get(REDIRECT_USER_AUTH) or None,
            link=params.get(REDIRECT_LINK) == "true",
            error=params.get(REDIRECT_ERROR) or None,
            app_id=params.get(REDIRECT_APP_ID) or None,
        )
        self._storage.set(self._result_key(state_token), result.model_dump_json())
        return result

    def _clear(self, flow: PendingFlow) -> None:
        self._storage.remove(self._pending_key(flow.state_token))
        self._storage.remove(self._result_key(flow.state_token))

    @staticmethod
    def decode_auth_info(user_auth: str | None) -> AuthResponse:
        """Decode ``accessToken$refreshToken$userId$deviceId`` into a session.

        Raises:
            SessionValidationError: The value is malformed or lacks ids.
        """
        parts = (user_auth or "").split("$")
        if len(parts) != 4:
            msg = "Failed to decode 'userAuth' into ids and tokens"
            raise SessionValidationError(msg)
        access_token, refresh_token, user_id, device_id = parts
        if not user_id:
            raise SessionValidationError(
                "Expected a user id in the response", field="user_id"
            )
        if not access_token:
            raise SessionValidationError(
                "Expected an access token in the response", field="access_token"
            )
        return AuthResponse(
            user_id=user_id,
            access_token=access_token,
            refresh_token=refresh_token or None,
            device_id=device_id or None,
        )
