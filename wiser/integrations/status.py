"""Client for the service's latest-status endpoint."""

import logging

import httpx
from pydantic import ValidationError

from wiser.config import Settings
from wiser.errors import MalformedResponseError, ServiceHTTPError, TransportError
from wiser.integrations._http import build_client, normalize_bearer, snippet
from wiser.schemas.exchange import StatusReport, Token

logger = logging.getLogger(__name__)


class StatusGateway:
    """Queries the latest processing status for a mailbox or a transaction."""

    def __init__(self, settings: Settings, *, transport: httpx.BaseTransport | None = None) -> None:
        self._url = settings.endpoint_url("status")
        self._client = build_client(settings.timeouts, transport=transport)
        logger.info("StatusGateway initialized: url=%s", self._url)

    def __enter__(self) -> "StatusGateway":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def retrieve_latest_status(
        self,
        mailbox_id: str,
        token: Token | str,
        esmd_transaction_id: str | None = None,
        endpoint: str | None = None,
    ) -> StatusReport:
        """Latest status for everything sent from ``mailbox_id``.

        ``esmd_transaction_id`` narrows the query when given.
        """
        return self._get(
            mailbox_id=mailbox_id,
            uid=mailbox_id,
            token=token,
            esmd_transaction_id=esmd_transaction_id,
            endpoint=endpoint,
        )

    def retrieve_latest_status_by_transaction_id(
        self,
        mailbox_id: str,
        token: Token | str,
        esmd_transaction_id: str,
        endpoint: str | None = None,
    ) -> StatusReport:
        """Latest status of a single transaction."""
        if not esmd_transaction_id or not esmd_transaction_id.strip():
            raise ValueError("Transaction id must not be blank")
        return self._get(
            mailbox_id=mailbox_id,
            uid=esmd_transaction_id,
            token=token,
            esmd_transaction_id=esmd_transaction_id,
            endpoint=endpoint,
        )

    def _get(
        self,
        *,
        mailbox_id: str,
        uid: str,
        token: Token | str,
        esmd_transaction_id: str | None,
        endpoint: str | None,
    ) -> StatusReport:
        raw_token = token.access_token if isinstance(token, Token) else token
        if not mailbox_id or not mailbox_id.strip():
            raise ValueError("Mailbox id must not be blank")
        if not raw_token or not raw_token.strip():
            raise ValueError("Token must not be blank")

        url = endpoint.strip() if endpoint and endpoint.strip() else self._url
        headers = {
            "Content-Type": "application/json",
            "Authorization": normalize_bearer(raw_token),
            "uid": uid,
            "senderroutingid": mailbox_id,
        }
        if esmd_transaction_id:
            headers["esMDTransactionId"] = esmd_transaction_id
        logger.debug(
            "Retrieving status: txId=%s, mailboxId=%s, endpoint=%s",
            esmd_transaction_id,
            mailbox_id,
            url,
        )

        try:
            response = self._client.get(url, headers=headers)
        except httpx.TransportError as exc:
            logger.error("Transport error during status request (endpoint=%s): %s", url, exc)
            raise TransportError(f"Status request failed: {exc}") from exc

        body = response.text
        if response.status_code != 200:
            logger.error(
                "Status request failed: status=%d body(snippet)=%s", response.status_code, snippet(body)
            )
            raise ServiceHTTPError(
                response.status_code,
                f"Status request failed with status {response.status_code}",
                body=snippet(body),
            )

        logger.debug("Status request succeeded: body(snippet)=%s", snippet(body))
        try:
            return StatusReport.model_validate_json(body)
        except ValidationError as exc:
            raise MalformedResponseError("Invalid status response") from exc
