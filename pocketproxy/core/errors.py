from __future__ import annotations

from typing import Optional, Sequence


class ProxyError(Exception):
    """Base class for every error raised by the proxy itself."""


class ConfigError(ProxyError):
    pass


class BackendError(ProxyError):
    """The backend reported a failure (or answered with something unusable)."""

    def __init__(self, message: str, *, codes: Optional[Sequence[str]] = None) -> None:
        super().__init__(message)
        self.codes = list(codes or [])


class AuthError(BackendError):
    pass


class NotFoundError(BackendError):
    pass


class ConnectivityError(BackendError):
    pass


__all__ = [
    "ProxyError",
    "ConfigError",
    "BackendError",
    "AuthError",
    "NotFoundError",
    "ConnectivityError",
]
