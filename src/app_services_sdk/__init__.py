"""App Services Python SDK."""

from .authenticator import Authenticator
from .client import AppServicesClient
from .config import AppServicesConfig, OAuth2Config, TelemetryConfig, TransportConfig
from .credentials import Credentials, ProviderType
from .errors import (
    APIError,
    AppServicesError,
    AuthenticationFlowError,
    ErrorCode,
    InvalidConfigError,
    RequestTimeoutError,
    SessionValidationError,
    TransportError,
    UnexpectedResponseError,
)
from .models import AuthResponse, RawResponse, Request, TokenType
from .oauth2 import OAuth2Flow
from .routes import AppUrl
from .storage import MemoryStorage, Storage
from .strings import decode_query_string, encode_query_string, encode_url
from .transport import DefaultNetworkTransport

__all__ = [
    "AppServicesClient",
    "AppServicesConfig",
    "Authenticator",
    "AuthResponse",
    "AppUrl",
    "Credentials",
    "DefaultNetworkTransport",
    "MemoryStorage",
    "OAuth2Config",
    "OAuth2Flow",
    "ProviderType",
    "RawResponse",
    "Request",
    "Storage",
    "TelemetryConfig",
    "TokenType",
    "TransportConfig",
    "APIError",
    "AppServicesError",
    "AuthenticationFlowError",
    "ErrorCode",
    "InvalidConfigError",
    "RequestTimeoutError",
    "SessionValidationError",
    "TransportError",
    "UnexpectedResponseError",
    "decode_query_string",
    "encode_query_string",
    "encode_url",
]

__version__ = "0.1.0"
