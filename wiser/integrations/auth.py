"""Client for the service's token endpoint."""

import json
import logging

import httpx

from wiser.config import Settings
from wiser.errors import MalformedResponseError, TransportError
from wiser.integrations._http import build_client, mask, snippet
from wiser.schemas.exchange import AuthError, Token

logger = logging.getLogger(__name__)


class AuthClient:
    """Exchanges a scope for a bearer token.

    Credentials travel as headers, never as query parameters. A non-200
    response is returned as an ``AuthError``; a 200 without exactly one of
    token or error raises ``MalformedResponseError``.

    Usage::

        with AuthClient(settings) as auth:
            result = auth.get_token(settings.scope_download)
    """

    def __init__(self, settings: Settings, *, transport: httpx.BaseTransport | None = None) -> None:
        self._url = settings.endpoint_url("auth")
        self._mailbox_id = settings.require("mailbox_id")
        self._client_id = settings.require("client_id")
        self._client_secret = settings.require("client_secret")
        self._client = build_client(settings.timeouts, transport=transport)
        logger.info("AuthClient initialized: env=%s, url=%s", settings.environment, self._url)

    def __enter__(self) -> "AuthClient":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def get_token(self, scope: str) -> Token | AuthError:
        """Request a token for ``scope``.

        Returns:
            ``Token`` with the ``Bearer`` prefix applied, or ``AuthError``
            carrying the HTTP status and the best available error message.

        Raises:
            ValueError: If ``scope`` is blank.
            MalformedResponseError: If a 200 body has no token or carries an error.
            TransportError: If the request fails below HTTP.
        """
        if not scope or not scope.strip():
            raise ValueError("Scope must not be blank")

        logger.debug(
            "Auth token request: mailboxId=%s, clientId=%s", self._mailbox_id, mask(self._client_id)
        )
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "clientid": self._client_id,
            "clientsecret": self._client_secret,
            "scope": scope.strip(),
            "mailboxid": self._mailbox_id,
        }
        try:
            response = self._client.post(self._url, headers=headers)
        except httpx.TransportError as exc:
            logger.error("Transport error during auth request: %s", exc)
            raise TransportError(f"Auth request failed: {exc}") from exc

        body = response.text
        if response.status_code != 200:
            error = _error_field(body) or f"Request failed with status {response.status_code}"
            logger.warning(
                "Auth token request failed: status=%d, error=%s", response.status_code, error
            )
            return AuthError(status_code=response.status_code, error=error)

        try:
            payload = json.loads(body)
        except json.JSONDecodeError as exc:
            logger.error("Auth success body is not JSON: %s", snippet(body))
            raise MalformedResponseError("Auth success response is not valid JSON") from exc

        if not isinstance(payload, dict):
            raise MalformedResponseError("Auth success response is not a JSON object")

        access_token = str(payload.get("access_token") or "").strip()
        error = str(payload.get("error") or "").strip()
        if error or not access_token:
            msg = "Authentication failed: invalid success response (missing token or error present)"
            logger.error("%s status=%d", msg, response.status_code)
            raise MalformedResponseError(msg)

        token = Token(access_token=f"Bearer {access_token}", status_code=response.status_code)
        logger.debug("Auth token acquired successfully")
        return token


def _error_field(body: str) -> str:
    """Best-effort extraction of ``error`` from a failure body."""
    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, TypeError):
        return ""
    if isinstance(payload, dict) and payload.get("error"):
        return str(payload["error"]).strip()
    return ""
