"""Credentials accepted by the authenticator.

A credential is a provider name, a provider type tag and an arbitrary
payload. The provider type is an open set: anything starting with
``oauth2`` belongs to the OAuth 2.0 family, including namespaced
sub-providers such as ``oauth2-google``.
"""

from __future__ import annotations

import re
from enum import StrEnum
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field

OAUTH2_PROVIDER_PREFIX = "oauth2"

_REDIRECT_URL_PATTERN = re.compile(r"^https?://", re.IGNORECASE)


class ProviderType(StrEnum):
    """Provider types with built-in factories."""

    ANONYMOUS = "anon-user"
    EMAIL_PASSWORD = "local-userpass"
    API_KEY = "api-key"
    FUNCTION = "custom-function"
    JWT = "custom-token"
    GOOGLE = "oauth2-google"
    FACEBOOK = "oauth2-facebook"
    APPLE = "oauth2-apple"


class Credentials(BaseModel):
    """Identity material plus the provider it should be exchanged with."""

    model_config = ConfigDict(frozen=True)

    provider_name: str = Field(..., min_length=1)
    provider_type: str = Field(..., min_length=1)
    payload: dict[str, Any] = Field(default_factory=dict)

    @property
    def redirect_url(self) -> str | None:
        value = self.payload.get("redirectUrl")
        return value if isinstance(value, str) else None

    @property
    def is_oauth2_redirect(self) -> bool:
        """Whether authentication must go through the browser redirect flow."""
        return (
            self.provider_type.startswith(OAUTH2_PROVIDER_PREFIX)
            and self.redirect_url is not None
        )

    @classmethod
    def _create(
        cls,
        provider_type: ProviderType,
        payload: dict[str, Any],
        provider_name: str | None = None,
    ) -> Self:
        return cls(
            provider_name=provider_name or provider_type.value,
            provider_type=provider_type.value,
            payload=payload,
        )

    @classmethod
    def anonymous(cls) -> Self:
        return cls._create(ProviderType.ANONYMOUS, {})

    @classmethod
    def email_password(cls, email: str, password: str) -> Self:
        return cls._create(
            ProviderType.EMAIL_PASSWORD, {"username": email, "password": password}
        )

    @classmethod
    def api_key(cls, key: str) -> Self:
        return cls._create(ProviderType.API_KEY, {"key": key})

    # Server and user API keys share the same provider on the backend
    server_api_key = api_key
    user_api_key = api_key

    @classmethod
    def function(cls, payload: dict[str, Any]) -> Self:
        return cls._create(ProviderType.FUNCTION, dict(payload))

    @classmethod
    def jwt(cls, token: str) -> Self:
        return cls._create(ProviderType.JWT, {"token": token})

    @classmethod
    def google(cls, redirect_url_or_auth_code: str) -> Self:
        """Google login, either via redirect or with a server auth code."""
        if _REDIRECT_URL_PATTERN.match(redirect_url_or_auth_code):
            payload = {"redirectUrl": redirect_url_or_auth_code}
        else:
            payload = {"authCode": redirect_url_or_auth_code}
        return cls._create(ProviderType.GOOGLE, payload)

    @classmethod
    def facebook(cls, redirect_url_or_access_token: str) -> Self:
        if _REDIRECT_URL_PATTERN.match(redirect_url_or_access_token):
            payload = {"redirectUrl": redirect_url_or_access_token}
        else:
            payload = {"accessToken": redirect_url_or_access_token}
        return cls._create(ProviderType.FACEBOOK, payload)

    @classmethod
    def apple(cls, redirect_url_or_id_token: str) -> Self:
        if _REDIRECT_URL_PATTERN.match(redirect_url_or_id_token):
            payload = {"redirectUrl": redirect_url_or_id_token}
        else:
            payload = {"id_token": redirect_url_or_id_token}
        return cls._create(ProviderType.APPLE, payload)
