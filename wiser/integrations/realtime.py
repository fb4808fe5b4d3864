"""Client for the real-time PA results endpoint.

A PA results letter is posted as a single JSON document. The service
checks it against the ``contentchecksum`` (SHA-256 hex) and ``size``
(UTF-8 byte count) headers, so both are computed from the exact bytes sent.
"""

import logging
import re

import httpx
from pydantic import ValidationError

from wiser.config import Settings
from wiser.errors import MalformedResponseError, ServiceHTTPError, TransportError
from wiser.integrations._http import build_client, mask, normalize_bearer, snippet
from wiser.integrity.checksum import sha256_hex
from wiser.schemas.exchange import RealtimeUploadAck, Token

logger = logging.getLogger(__name__)

REALTIME_SUCCESS = (200, 201, 202)
MAX_IDENTIFIER_LENGTH = 1000
MAX_JSON_SIZE = 10_000_000

_IDENTIFIER = re.compile(r"[A-Za-z0-9_-]+")


def check_identifier(value: str | None, field: str) -> str:
    """Reject identifiers that are blank, too long, or not ``[A-Za-z0-9_-]``."""
    if value is None or not value.strip():
        raise ValueError(f"{field} cannot be null or empty")
    if len(value) > MAX_IDENTIFIER_LENGTH:
        raise ValueError(f"{field} exceeds maximum length of {MAX_IDENTIFIER_LENGTH}")
    if not _IDENTIFIER.fullmatch(value):
        raise ValueError(
            f"{field} contains invalid characters. Only letters, digits, "
            "underscores and hyphens are allowed"
        )
    return value


class RealtimeUploadGateway:
    """Posts PA results JSON documents to the real-time endpoint.

    Usage::

        with RealtimeUploadGateway(settings) as gateway:
            ack = gateway.upload_realtime(body_json, letter_id, token, uid)
    """

    def __init__(self, settings: Settings, *, transport: httpx.BaseTransport | None = None) -> None:
        self._url = settings.endpoint_url("realtime")
        self._sender_routing_id = settings.require("mailbox_id")
        self._content_type_code = settings.require("lines_of_business_id")
        self._timeout = httpx.Timeout(
            connect=settings.timeouts.connect,
            read=settings.timeouts.transfer_read,
            write=settings.timeouts.transfer_read,
            pool=settings.timeouts.pool,
        )
        self._client = build_client(settings.timeouts, transport=transport)
        logger.info(
            "RealtimeUploadGateway initialized for env=%s endpoint=%s", settings.environment, self._url
        )

    def __enter__(self) -> "RealtimeUploadGateway":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def upload_realtime(
        self, body_json: str, letter_id: str, token: Token | str, uid: str
    ) -> RealtimeUploadAck:
        """Upload one PA results JSON document.

        Raises:
            ValueError: If an argument is blank, malformed or the document is too large.
            ServiceHTTPError: On any status other than 200, 201 or 202.
            MalformedResponseError: If the receipt cannot be parsed.
            TransportError: If the request fails below HTTP.
        """
        raw_token = token.access_token if isinstance(token, Token) else token
        if not body_json or not body_json.strip():
            raise ValueError("bodyJson cannot be null or empty")
        check_identifier(letter_id, "letterId")
        if not raw_token or not raw_token.strip():
            raise ValueError("token cannot be null or empty")
        check_identifier(uid, "uid")

        payload = body_json.encode("utf-8")
        if len(payload) > MAX_JSON_SIZE:
            raise ValueError(f"bodyJson exceeds maximum size of {MAX_JSON_SIZE} bytes")
        checksum = sha256_hex(payload)
        logger.debug(
            "Preparing real-time upload letterId=%s, sizeBytes=%d, checksum=%s",
            letter_id,
            len(payload),
            checksum,
        )

        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Authorization": normalize_bearer(raw_token),
            "contentchecksum": checksum,
            "uid": uid,
            "size": str(len(payload)),
            "letterid": letter_id,
            "contenttypecode": self._content_type_code,
            "senderroutingid": self._sender_routing_id,
        }
        logger.debug(
            "Real-time upload request url=%s uid=%s senderRoutingId=%s contentTypeCode=%s",
            self._url,
            mask(uid),
            self._sender_routing_id,
            self._content_type_code,
        )
        try:
            response = self._client.post(
                self._url, content=payload, headers=headers, timeout=self._timeout
            )
        except httpx.TransportError as exc:
            logger.error("Transport error during real-time upload (letterId=%s): %s", letter_id, exc)
            raise TransportError(f"Real-time upload failed: {exc}") from exc

        body = response.text
        if response.status_code not in REALTIME_SUCCESS:
            logger.error(
                "Real-time upload failed: status=%d body(snippet)=%s", response.status_code, snippet(body)
            )
            raise ServiceHTTPError(
                response.status_code,
                f"Real-time upload failed with status {response.status_code}",
                body=snippet(body),
            )

        logger.debug(
            "Real-time upload succeeded: status=%d body(snippet)=%s", response.status_code, snippet(body)
        )
        if not body.strip():
            return RealtimeUploadAck()
        try:
            return RealtimeUploadAck.model_validate_json(body)
        except ValidationError as exc:
            logger.error("Failed to parse real-time upload receipt. body(snippet)=%s", snippet(body))
            raise MalformedResponseError("Invalid real-time upload receipt") from exc
