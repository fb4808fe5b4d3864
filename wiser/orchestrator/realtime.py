"""Authenticated submission of PA results letters to the real-time endpoint."""

import logging

import httpx

from wiser.config import Settings
from wiser.integrations.auth import AuthClient
from wiser.integrations.realtime import RealtimeUploadGateway
from wiser.schemas.exchange import AuthError, RealtimeUploadAck

logger = logging.getLogger(__name__)


class RealtimeUploadService:
    """Authenticate with the upload scope and post one letter per call.

    The client id is sent as the ``uid`` header.
    """

    def __init__(self, settings: Settings, *, transport: httpx.BaseTransport | None = None) -> None:
        self._uid = settings.require("client_id")
        self._scope = settings.require("scope_upload")
        self._auth = AuthClient(settings, transport=transport)
        try:
            self._gateway = RealtimeUploadGateway(settings, transport=transport)
        except Exception:
            self._auth.close()
            raise

    def __enter__(self) -> "RealtimeUploadService":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        self._gateway.close()
        self._auth.close()

    def send(self, body_json: str, letter_id: str) -> RealtimeUploadAck | AuthError:
        logger.info("Getting authentication token for scope: %s", self._scope)
        token = self._auth.get_token(self._scope)
        if isinstance(token, AuthError):
            logger.error("Letter %s not sent, authentication failed: %s", letter_id, token.error)
            return token

        ack = self._gateway.upload_realtime(body_json, letter_id, token, self._uid)
        logger.info(
            "Letter %s accepted: transaction=%s status=%s", letter_id, ack.esmd_transaction_id, ack.status
        )
        return ack
