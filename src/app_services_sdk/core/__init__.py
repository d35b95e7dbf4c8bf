"""Core components for the App Services SDK.

Logic shared by the transport and the authenticator.
"""

from __future__ import annotations

from .errors import ErrorFactory

__all__ = [
    "ErrorFactory",
]
