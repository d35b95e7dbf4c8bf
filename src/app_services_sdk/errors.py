"""Error classes for the App Services SDK.

Two families matter to callers: ``APIError`` when the server answered with a
structured failure, and ``TransportError`` for everything that prevented a
well-formed response. ``AuthenticationFlowError`` covers redirect flows that
never completed.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    """Standardized error codes for the App Services SDK."""

    # Server reported errors (1xxx)
    API_ERROR = "API_1001"

    # Configuration errors (2xxx)
    INVALID_CONFIG = "VAL_2001"

    # Transport errors (3xxx)
    TRANSPORT_ERROR = "NET_3001"
    TIMEOUT_ERROR = "NET_3002"
    UNEXPECTED_RESPONSE = "NET_3003"
    INVALID_SESSION = "NET_3004"

    # Redirect flow errors (6xxx)
    FLOW_NOT_COMPLETED = "FLOW_6001"
    FLOW_REJECTED = "FLOW_6002"


class AppServicesError(Exception):
    """Base error for the App Services SDK with structured error information."""

    def __init__(
        self,
        message: str,
        code: ErrorCode | str,
        *,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code.value if isinstance(code, ErrorCode) else code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            "error": self.message,
            "code": self.code,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class APIError(AppServicesError):
    """The server responded with a non-success status and a JSON error body."""

    def __init__(
        self,
        method: str,
        url: str,
        status_code: int,
        status_text: str,
        payload: Any,
    ) -> None:
        self.method = method
        self.url = url
        self.status_code = status_code
        self.status_text = status_text
        self.payload = payload

        summary = self.error or status_text
        super().__init__(
            f"Request failed ({method} {url}): {summary} "
            f"(status {status_code} {status_text})",
            ErrorCode.API_ERROR,
            details={
                "method": method,
                "url": url,
                "status_code": status_code,
                "status_text": status_text,
                "error_code": self.error_code,
            },
        )

    def _payload_field(self, key: str) -> str | None:
        if isinstance(self.payload, dict):
            value = self.payload.get(key)
            if isinstance(value, str):
                return value
        return None

    @property
    def error(self) -> str | None:
        """Human readable error reported by the server, if any."""
        return self._payload_field("error")

    @property
    def error_code(self) -> str | None:
        """Machine readable error code reported by the server, if any."""
        return self._payload_field("error_code") or self._payload_field("errorCode")

    @property
    def link(self) -> str | None:
        """Link to server logs for this failure, if provided."""
        return self._payload_field("link")

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["payload"] = self.payload
        return data


class TransportError(AppServicesError):
    """Request could not produce a well-formed response."""

    def __init__(
        self,
        message: str = "Request failed",
        *,
        method: str | None = None,
        url: str | None = None,
        cause: BaseException | None = None,
        code: ErrorCode = ErrorCode.TRANSPORT_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        merged: dict[str, Any] = {}
        if method is not None:
            merged["method"] = method
        if url is not None:
            merged["url"] = url
        if cause is not None:
            merged["cause"] = str(cause)
        if details:
            merged.update(details)
        super().__init__(message, code, details=merged)
        self.method = method
        self.url = url
        self.__cause__ = cause


class RequestTimeoutError(TransportError):
    """The per-request timeout fired before the call settled."""

    def __init__(
        self,
        message: str = "Request timed out",
        *,
        method: str | None = None,
        url: str | None = None,
        timeout_ms: float | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(
            message,
            method=method,
            url=url,
            cause=cause,
            code=ErrorCode.TIMEOUT_ERROR,
            details={"timeout_ms": timeout_ms} if timeout_ms is not None else None,
        )
        self.timeout_ms = timeout_ms


class UnexpectedResponseError(TransportError):
    """The response could not be classified as empty, JSON or an API error."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        status_text: str | None = None,
        content_type: str | None = None,
    ) -> None:
        details: dict[str, Any] = {}
        if status_code is not None:
            details["status_code"] = status_code
        if status_text:
            details["status_text"] = status_text
        if content_type:
            details["content_type"] = content_type
        super().__init__(message, code=ErrorCode.UNEXPECTED_RESPONSE, details=details)
        self.status_code = status_code
        self.status_text = status_text
        self.content_type = content_type


class SessionValidationError(TransportError):
    """An authentication response did not carry a usable session."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(
            message,
            code=ErrorCode.INVALID_SESSION,
            details={"field": field} if field else None,
        )
        self.field = field


class AuthenticationFlowError(AppServicesError):
    """A redirect based authentication flow was not completed."""

    def __init__(
        self,
        message: str = "Authentication was not completed",
        code: ErrorCode = ErrorCode.FLOW_NOT_COMPLETED,
        *,
        state: str | None = None,
    ) -> None:
        super().__init__(
            message,
            code,
            details={"state": state} if state else None,
        )
        self.state = state


class InvalidConfigError(AppServicesError):
    """Invalid SDK configuration."""

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
    ) -> None:
        super().__init__(
            message,
            ErrorCode.INVALID_CONFIG,
            details={"field": field} if field else None,
        )
