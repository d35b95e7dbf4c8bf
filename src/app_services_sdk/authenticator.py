"""Authentication and linking of users."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .errors import SessionValidationError
from .models import AuthResponse, Request, TokenType
from .oauth2 import OAuth2Flow
from .strings import encode_url
from .telemetry import get_logger, trace_operation

if TYPE_CHECKING:
    from .config import OAuth2Config
    from .credentials import Credentials
    from .oauth2 import AppUrlSupplier, Navigator
    from .storage import Storage
    from .transport import DefaultNetworkTransport


class Authenticator:
    """Turns credentials into a session.

    Credentials of the OAuth 2.0 family that carry a redirect URL go through
    the redirect flow; everything else is exchanged with a direct login
    request.
    """

    def __init__(
        self,
        transport: DefaultNetworkTransport,
        storage: Storage,
        app_url_supplier: AppUrlSupplier,
        *,
        navigator: Navigator | None = None,
        oauth2_config: OAuth2Config | None = None,
    ) -> None:
        """Initialize the authenticator.

        Args:
            transport: Transport used for the login request.
            storage: Storage used when completing OAuth 2.0 flows.
            app_url_supplier: Resolves the base URL of the app on every call.
            navigator: Sends the user agent to the provider's login page.
            oauth2_config: Settings of the redirect flow.
        """
        self.transport = transport
        self._app_url_supplier = app_url_supplier
        self.oauth2 = OAuth2Flow(
            storage,
            app_url_supplier,
            navigator=navigator,
            config=oauth2_config,
        )
        self._logger = get_logger()

    async def authenticate(
        self,
        credentials: Credentials,
        link_with_user: Any = None,
    ) -> AuthResponse:
        """Log in with ``credentials``.

        Args:
            credentials: Credentials to use when logging in.
            link_with_user: Existing user the new identity gets linked to.

        Returns:
            The session of the authenticated user.

        Raises:
            APIError: The server rejected the credentials.
            TransportError: The login request failed or returned no session.
            AuthenticationFlowError: A redirect flow was not completed.
        """
        with trace_operation(
            "authenticate",
            attributes={
                "auth.provider": credentials.provider_name,
                "auth.provider_type": credentials.provider_type,
                "auth.link": link_with_user is not None,
            },
        ):
            if credentials.is_oauth2_redirect:
                result = await self.oauth2.initiate(credentials)
                return OAuth2Flow.decode_auth_info(result.user_auth)

            app_url = await self._app_url_supplier()
            login_url = app_url.auth_provider(credentials.provider_name).login().url
            linking = link_with_user is not None
            response = await self.transport.fetch_and_parse(
                Request(
                    method="POST",
                    url=encode_url(login_url, {"link": True if linking else None}),
                    body=credentials.payload,
                    token_type=TokenType.ACCESS if linking else TokenType.NONE,
                    user=link_with_user,
                )
            )
            session = parse_auth_response(response)
            self._logger.info(
                "Authenticated",
                provider=credentials.provider_name,
                user_id=session.user_id,
                linked=linking,
            )
            return session


def parse_auth_response(response: Any) -> AuthResponse:
    """Validate a login response body and turn it into a session.

    Raises:
        SessionValidationError: ``user_id`` or ``access_token`` is missing or
            not a string.
    """
    body = response if isinstance(response, dict) else {}
    user_id = body.get("user_id")
    access_token = body.get("access_token")
    refresh_token = body.get("refresh_token")
    device_id = body.get("device_id")

    if not isinstance(user_id, str) or not user_id:
        raise SessionValidationError("Expected a user id in the response", field="user_id")
    if not isinstance(access_token, str) or not access_token:
        raise SessionValidationError(
            "Expected an access token in the response", field="access_token"
        )
    return AuthResponse(
        user_id=user_id,
        access_token=access_token,
        refresh_token=refresh_token if isinstance(refresh_token, str) else None,
        device_id=device_id if isinstance(device_id, str) else None,
    )
