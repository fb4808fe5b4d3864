"""Notification and status round-trips with the service.

Both services authenticate with the status scope. ``NotificationService``
keeps the token it obtained for the rest of its lifetime;
``StatusService`` authenticates on every query.
"""

import logging
from datetime import UTC, datetime

import httpx

from wiser.config import Settings
from wiser.integrations.auth import AuthClient
from wiser.integrations.notification import NotificationGateway
from wiser.integrations.status import StatusGateway
from wiser.schemas.exchange import (
    AuthError,
    NotificationAck,
    PickupNotification,
    PickupNotificationItem,
    StatusReport,
    Token,
    TransferStatus,
)
from wiser.timestamps import format_timestamp

logger = logging.getLogger(__name__)


def build_pickup_notification(
    notification_type: str,
    sender_routing_id: str,
    transaction_id: str | None,
    filename: str,
    *,
    now: datetime | None = None,
) -> PickupNotification:
    """Build the envelope acknowledging that one package was picked up."""
    stamp = format_timestamp(now or datetime.now(UTC))
    item = PickupNotificationItem(
        esmd_transaction_id=transaction_id,
        pickup_time=stamp,
        submission_time=stamp,
        filename=filename,
        status=TransferStatus.SUCCESS,
    )
    return PickupNotification(
        notification_type=notification_type,
        sender_routing_id=sender_routing_id,
        notification=[item],
    )


class NotificationService:
    """Authenticate once, then submit notification envelopes.

    Usage::

        with NotificationService(settings) as notifications:
            result = notifications.send_pickup(transaction_id, filename)
    """

    def __init__(self, settings: Settings, *, transport: httpx.BaseTransport | None = None) -> None:
        self._settings = settings
        self._scope = settings.require("scope_status")
        self._auth = AuthClient(settings, transport=transport)
        try:
            self._gateway = NotificationGateway(settings, transport=transport)
        except Exception:
            self._auth.close()
            raise
        self._token: Token | None = None

    def __enter__(self) -> "NotificationService":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        self._gateway.close()
        self._auth.close()

    def _authenticate(self) -> Token | AuthError:
        if self._token is None:
            logger.info("Getting authentication token for scope: %s", self._scope)
            result = self._auth.get_token(self._scope)
            if isinstance(result, AuthError):
                return result
            self._token = result
        return self._token

    def submit(
        self, envelope: PickupNotification | str, notification_type: str | None = None
    ) -> NotificationAck | AuthError:
        """Submit an envelope (model or JSON string)."""
        if isinstance(envelope, PickupNotification):
            envelope_json = envelope.to_json()
            notification_type = notification_type or envelope.notification_type
        else:
            envelope_json = envelope
        notification_type = notification_type or self._settings.pickup_notification_type

        token = self._authenticate()
        if isinstance(token, AuthError):
            logger.error("Notification not sent, authentication failed: %s", token.error)
            return token

        ack = self._gateway.submit_notification(token, envelope_json, notification_type)
        if not ack.status_details:
            logger.info("No new statuses available for %s", self._settings.mailbox_id)
        return ack

    def send_pickup(
        self, transaction_id: str | None, filename: str, *, now: datetime | None = None
    ) -> NotificationAck | AuthError:
        """Build and submit a pickup notification for one downloaded package."""
        envelope = build_pickup_notification(
            self._settings.pickup_notification_type,
            self._settings.mailbox_id,
            transaction_id,
            filename,
            now=now,
        )
        logger.debug("Pickup notification: %s", envelope.to_json())
        return self.submit(envelope)


class StatusService:
    """Authenticate and fetch the latest status for the mailbox or one transaction."""

    def __init__(self, settings: Settings, *, transport: httpx.BaseTransport | None = None) -> None:
        self._mailbox_id = settings.require("mailbox_id")
        self._scope = settings.require("scope_status")
        self._auth = AuthClient(settings, transport=transport)
        try:
            self._gateway = StatusGateway(settings, transport=transport)
        except Exception:
            self._auth.close()
            raise

    def __enter__(self) -> "StatusService":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        self._gateway.close()
        self._auth.close()

    def latest(self, transaction_id: str | None = None) -> StatusReport | AuthError:
        logger.info("Getting authentication token for scope: %s", self._scope)
        token = self._auth.get_token(self._scope)
        if isinstance(token, AuthError):
            logger.error("Status not retrieved, authentication failed: %s", token.error)
            return token

        if transaction_id:
            report = self._gateway.retrieve_latest_status_by_transaction_id(
                self._mailbox_id, token, transaction_id
            )
        else:
            report = self._gateway.retrieve_latest_status(self._mailbox_id, token)
        logger.info(
            "Status retrieved for mailbox %s: %d detail(s)",
            self._mailbox_id,
            len(report.status_details),
        )
        return report
