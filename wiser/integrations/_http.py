"""Shared HTTP plumbing for the service gateways."""

import httpx

from wiser.config import HttpTimeouts

USER_AGENT = "wiser-exchange/1.0"
SNIPPET_LIMIT = 1024


def build_client(
    timeouts: HttpTimeouts,
    *,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    """Create a client with explicit timeouts and retries disabled."""
    timeout = httpx.Timeout(
        connect=timeouts.connect,
        read=timeouts.read,
        write=timeouts.read,
        pool=timeouts.pool,
    )
    return httpx.Client(
        timeout=timeout,
        transport=transport or httpx.HTTPTransport(retries=0),
        headers={"User-Agent": USER_AGENT},
    )


def snippet(text: str | None, limit: int = SNIPPET_LIMIT) -> str:
    """Bound a response body for logging."""
    if not text:
        return ""
    return text if len(text) <= limit else text[:limit] + "...(truncated)"


def mask(value: str | None) -> str:
    if not value:
        return ""
    return "****" if len(value) <= 4 else "****" + value[-4:]


def normalize_bearer(token: str) -> str:
    """Return ``token`` as an ``Authorization`` value with a ``Bearer`` prefix."""
    token = token.strip()
    if token.lower().startswith("bearer "):
        return "Bearer " + token[7:].strip()
    return "Bearer " + token
