"""Exception types for contract and transport failures.

Only conditions that mean the service contract or local setup is broken are
raised. Per-call and per-object failures are returned as values
(``AuthError``, ``PresignedUrlResult``, ``StatusDetail``).
"""


class WiserError(Exception):
    """Base class for all errors raised by the exchange client."""


class ConfigurationError(WiserError):
    """Raised when required configuration is missing or invalid."""


class MalformedResponseError(WiserError):
    """Raised when a success response does not match the expected shape."""


class TransportError(WiserError):
    """Raised when a request fails below HTTP (connection, timeout, reset)."""


class ServiceHTTPError(WiserError):
    """Raised when the service answers with a non-success HTTP status."""

    def __init__(self, status_code: int, message: str, *, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
