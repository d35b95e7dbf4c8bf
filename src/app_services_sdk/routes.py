"""Routes of the client API, relative to an app's base URL."""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import quote

CLIENT_API_PATH = "/api/client/v2.0"


def app_base_url(hostname: str, app_id: str) -> str:
    """Build the base URL of an app on a given deployment hostname."""
    return f"{hostname.rstrip('/')}{CLIENT_API_PATH}/app/{quote(app_id, safe='')}"


def app_location_url(hostname: str, app_id: str) -> str:
    """URL of the endpoint reporting where an app is deployed."""
    return f"{app_base_url(hostname, app_id)}/location"


@dataclass(frozen=True)
class AuthProviderRoute:
    """Routes of a single authentication provider."""

    url: str

    def login(self) -> AuthProviderRoute:
        return AuthProviderRoute(f"{self.url}/login")


@dataclass(frozen=True)
class AppUrl:
    """Base URL of an app, as handed out by an app URL supplier."""

    url: str

    def auth_provider(self, provider_name: str) -> AuthProviderRoute:
        return AuthProviderRoute(
            f"{self.url}/auth/providers/{quote(provider_name, safe='')}"
        )
