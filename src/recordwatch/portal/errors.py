from __future__ import annotations


class PortalError(RuntimeError):
    """Base class for every failure raised while talking to the records portal."""


class AuthenticationError(PortalError):
    """Raised when the login exchange does not answer with HTTP 200."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PortalTransportError(PortalError):
    """Raised on network failures and non-2xx listing responses."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MalformedResponseError(PortalError):
    """Raised when a response body does not have the expected JSON shape."""


class UnrecognizedValueError(PortalError, ValueError):
    """Raised when a strict vocabulary receives a wire value outside its closed set."""

    def __init__(self, vocabulary: str, value: object) -> None:
        super().__init__(f"unknown {vocabulary}: {value!r}")
        self.vocabulary = vocabulary
        self.value = value


__all__ = [
    "AuthenticationError",
    "MalformedResponseError",
    "PortalError",
    "PortalTransportError",
    "UnrecognizedValueError",
]
