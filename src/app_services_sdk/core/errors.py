"""Centralized error factory for the App Services SDK.

Turns classified responses and raw exceptions into the SDK's error types so
the transport and the authenticator report failures the same way.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx

from ..errors import (
    APIError,
    AppServicesError,
    RequestTimeoutError,
    TransportError,
    UnexpectedResponseError,
)
from ..models import ResponseKind

if TYPE_CHECKING:
    from ..models import ClassifiedResponse, Request


class ErrorFactory:
    """Centralized error creation with consistent structure."""

    @staticmethod
    def from_classified(
        request: Request,
        classified: ClassifiedResponse,
    ) -> AppServicesError:
        """Create the error matching a failed classification.

        Args:
            request: The request the response belongs to.
            classified: An ``api_error`` or ``transport_error`` classification.

        Returns:
            ``APIError`` or ``UnexpectedResponseError``.
        """
        if classified.kind is ResponseKind.API_ERROR:
            return APIError(
                request.method,
                request.url,
                classified.status or 0,
                classified.status_text or "",
                classified.payload,
            )
        if classified.kind is ResponseKind.TRANSPORT_ERROR:
            return UnexpectedResponseError(
                classified.message or "Unexpected response",
                status_code=classified.status,
                status_text=classified.status_text,
                content_type=classified.content_type,
            )
        msg = f"Classification {classified.kind} is not a failure"
        raise ValueError(msg)

    @staticmethod
    def wrap_exception(
        exc: BaseException,
        *,
        method: str,
        url: str,
        timeout_ms: float | None = None,
    ) -> AppServicesError:
        """Annotate a failure with the request it happened on.

        ``APIError`` instances pass through unchanged; anything else becomes a
        ``TransportError`` whose message names the method and URL and keeps
        the original message.

        Args:
            exc: Original exception.
            method: HTTP method of the failed request.
            url: URL of the failed request.
            timeout_ms: Timeout armed for the request, if any.

        Returns:
            Appropriate AppServicesError subclass.
        """
        if isinstance(exc, APIError):
            return exc

        message = f"Request failed ({method} {url}): {_describe(exc)}"

        if isinstance(exc, TransportError):
            # Keep the subclass and its details, only annotate the request once
            if exc.method is None:
                exc.method = method
                exc.url = url
                exc.message = message
                exc.args = (message,)
                exc.details.update({"method": method, "url": url})
            return exc

        if isinstance(exc, (TimeoutError, httpx.TimeoutException)):
            return RequestTimeoutError(
                message,
                method=method,
                url=url,
                timeout_ms=timeout_ms,
                cause=exc,
            )

        return TransportError(message, method=method, url=url, cause=exc)


def _describe(exc: BaseException) -> str:
    if isinstance(exc, AppServicesError):
        return exc.message
    text = str(exc)
    if isinstance(exc, TimeoutError) and not text:
        return "The request timed out"
    return text or exc.__class__.__name__
