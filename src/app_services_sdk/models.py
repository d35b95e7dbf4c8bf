"""Pydantic models for the App Services SDK.

Uses Pydantic v2 with frozen models for immutability; every model here is
created per call and never mutated afterwards.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, Self

from pydantic import BaseModel, ConfigDict, Field, model_validator


class TokenType(StrEnum):
    """Which session token a request should be authorized with."""

    NONE = "none"
    ACCESS = "access"
    REFRESH = "refresh"


class Request(BaseModel):
    """Descriptor of a single outbound request.

    ``token_type`` and ``user`` only record intent; attaching the bearer token
    is left to the layer wrapping the transport.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    method: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)
    body: Any = None
    headers: dict[str, str] | None = None
    timeout_ms: Annotated[float, Field(ge=0)] | None = None
    token_type: TokenType = TokenType.NONE
    user: Any = None


class RawResponse(BaseModel):
    """Unclassified wire-level response."""

    model_config = ConfigDict(frozen=True)

    status_code: int
    headers: dict[str, str] = Field(default_factory=dict)
    body: str = ""


class ResponseKind(StrEnum):
    """Outcome of classifying a response."""

    EMPTY = "empty"
    JSON = "json"
    API_ERROR = "api_error"
    TRANSPORT_ERROR = "transport_error"


class ClassifiedResponse(BaseModel):
    """Exactly one classification outcome for a response."""

    model_config = ConfigDict(frozen=True)

    kind: ResponseKind
    value: Any = None
    status: int | None = None
    status_text: str | None = None
    payload: Any = None
    message: str | None = None
    content_type: str | None = None

    @model_validator(mode="after")
    def check_exclusive(self) -> Self:
        """Reject field combinations that mix two outcomes."""
        if self.kind is ResponseKind.EMPTY:
            fields = (self.value, self.status, self.payload, self.message)
            if any(field is not None for field in fields):
                msg = "An empty response carries no other fields"
                raise ValueError(msg)
        elif self.kind is ResponseKind.JSON:
            if self.status is not None or self.payload is not None or self.message is not None:
                msg = "A JSON response only carries a value"
                raise ValueError(msg)
        elif self.kind is ResponseKind.API_ERROR:
            if self.status is None or self.value is not None or self.message is not None:
                msg = "An API error carries a status and payload only"
                raise ValueError(msg)
        elif self.message is None or self.value is not None or self.payload is not None:
            msg = "A transport error carries a message only"
            raise ValueError(msg)
        return self

    @classmethod
    def empty(cls) -> Self:
        return cls(kind=ResponseKind.EMPTY)

    @classmethod
    def json_value(cls, value: Any) -> Self:
        return cls(kind=ResponseKind.JSON, value=value)

    @classmethod
    def api_error(cls, status: int, status_text: str, payload: Any) -> Self:
        return cls(
            kind=ResponseKind.API_ERROR,
            status=status,
            status_text=status_text,
            payload=payload,
        )

    @classmethod
    def transport_error(
        cls,
        message: str,
        *,
        status: int | None = None,
        status_text: str | None = None,
        content_type: str | None = None,
    ) -> Self:
        return cls(
            kind=ResponseKind.TRANSPORT_ERROR,
            message=message,
            status=status,
            status_text=status_text,
            content_type=content_type,
        )


class AuthResponse(BaseModel):
    """Session produced by a successful authentication."""

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., min_length=1)
    access_token: str = Field(..., min_length=1)
    refresh_token: str | None = None
    device_id: str | None = None


class AppLocation(BaseModel):
    """Deployment location of an app as reported by the location endpoint."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    hostname: str = Field(..., min_length=1)
    location: str | None = None
    deployment_model: str | None = None
    ws_hostname: str | None = None
