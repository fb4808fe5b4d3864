"""Client for the service's notification endpoint."""

import logging

import httpx
from pydantic import ValidationError

from wiser.config import Settings
from wiser.errors import MalformedResponseError, ServiceHTTPError, TransportError
from wiser.integrations._http import build_client, normalize_bearer, snippet
from wiser.schemas.exchange import NotificationAck, Token

logger = logging.getLogger(__name__)

NOTIFICATION_SUCCESS = (200, 201, 202)


class NotificationGateway:
    """Posts notification envelopes (pickup and friends) to the service."""

    def __init__(self, settings: Settings, *, transport: httpx.BaseTransport | None = None) -> None:
        self._url = settings.endpoint_url("notification")
        self._client = build_client(settings.timeouts, transport=transport)
        logger.info("NotificationGateway initialized: url=%s", self._url)

    def __enter__(self) -> "NotificationGateway":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def submit_notification(
        self,
        token: Token | str,
        envelope_json: str,
        notification_type: str,
        endpoint: str | None = None,
    ) -> NotificationAck:
        """POST a JSON envelope and parse the acknowledgment.

        Args:
            token: Bearer token, with or without the ``Bearer`` prefix.
            envelope_json: Serialized notification envelope.
            notification_type: Used for logging only; the type travels in the envelope.
            endpoint: Overrides the configured notification URL.

        Raises:
            ValueError: If the token or envelope is blank.
            ServiceHTTPError: On any status other than 200, 201 or 202.
            MalformedResponseError: If the acknowledgment cannot be parsed.
            TransportError: If the request fails below HTTP.
        """
        raw_token = token.access_token if isinstance(token, Token) else token
        if not envelope_json or not envelope_json.strip():
            raise ValueError("Notification envelope must not be blank")
        if not raw_token or not raw_token.strip():
            raise ValueError("Token must not be blank")

        url = endpoint.strip() if endpoint and endpoint.strip() else self._url
        payload = envelope_json.encode("utf-8")
        logger.debug(
            "Submitting notification: type=%s, endpoint=%s, payloadBytes=%d",
            notification_type,
            url,
            len(payload),
        )
        headers = {
            "Content-Type": "application/json",
            "Authorization": normalize_bearer(raw_token),
        }
        try:
            response = self._client.post(url, content=payload, headers=headers)
        except httpx.TransportError as exc:
            logger.error("Transport error during notification: %s", exc)
            raise TransportError(f"Notification request failed: {exc}") from exc

        body = response.text
        if response.status_code not in NOTIFICATION_SUCCESS:
            logger.error(
                "Notification failed: status=%d body(snippet)=%s", response.status_code, snippet(body)
            )
            raise ServiceHTTPError(
                response.status_code,
                f"Notification request failed with status {response.status_code}",
                body=snippet(body),
            )

        logger.debug(
            "Notification succeeded: status=%d body(snippet)=%s", response.status_code, snippet(body)
        )
        if not body.strip():
            return NotificationAck()
        try:
            return NotificationAck.model_validate_json(body)
        except ValidationError as exc:
            raise MalformedResponseError("Invalid notification acknowledgment") from exc
