"""
Shared test fixtures for App Services SDK tests.

Provides configuration fixtures and helpers that build a transport on top of
``httpx.MockTransport``.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from app_services_sdk.config import AppServicesConfig, OAuth2Config, TelemetryConfig
from app_services_sdk.routes import AppUrl
from app_services_sdk.storage import MemoryStorage
from app_services_sdk.transport import DefaultNetworkTransport

APP_URL = "https://services.example.com/api/client/v2.0/app/test-app"

Handler = Callable[[httpx.Request], Any]


def make_transport(handler: Handler, **kwargs: Any) -> DefaultNetworkTransport:
    """Build a transport whose HTTP calls are answered by ``handler``."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return DefaultNetworkTransport(client, **kwargs)


def json_response(status_code: int, body: Any) -> httpx.Response:
    """Response with a JSON body and content type."""
    return httpx.Response(
        status_code,
        headers={"content-type": "application/json"},
        content=json.dumps(body).encode(),
    )


async def static_app_url() -> AppUrl:
    return AppUrl(APP_URL)


@pytest.fixture
def base_config() -> AppServicesConfig:
    """Provide a basic SDK configuration for testing."""
    return AppServicesConfig(
        base_url="https://services.example.com",
        app_id="test-app",
        telemetry=TelemetryConfig(enabled=False),
    )


@pytest.fixture
def fast_oauth2_config() -> OAuth2Config:
    """Provide OAuth 2.0 settings that poll quickly."""
    return OAuth2Config(poll_interval=0.01, completion_timeout=1.0)


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def sample_login_response() -> dict:
    """Provide a sample login response."""
    return {
        "user_id": "u1",
        "access_token": "access-token-value",
        "refresh_token": "refresh-token-value",
        "device_id": "device-1",
    }
