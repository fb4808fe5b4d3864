"""Download workflow: list remote objects, fetch each one, extract and acknowledge it."""

import logging
from pathlib import Path

import httpx

from wiser.config import Settings
from wiser.errors import MalformedResponseError, ServiceHTTPError, TransportError
from wiser.integrations._http import mask
from wiser.integrations.auth import AuthClient
from wiser.integrations.transfer import TransferGateway
from wiser.integrity.archive import extract_archive
from wiser.orchestrator.outcomes import auth_failed, error, failed
from wiser.orchestrator.reconcile import NotificationService
from wiser.schemas.exchange import (
    AuthError,
    ErrorMessage,
    RemoteObject,
    StatusDetail,
    Token,
    TransferDirection,
    TransferStatus,
)
from wiser.transactions import derive_transaction

logger = logging.getLogger(__name__)

DOWNLOAD = TransferDirection.DOWNLOAD


def is_safe_filename(filename: str) -> bool:
    """A remote filename must be a bare name: no separators, not ``.`` or ``..``."""
    if not filename.strip() or "/" in filename or "\\" in filename:
        return False
    return filename not in {".", ".."} and Path(filename).name == filename


class DownloadOrchestrator:
    """Downloads every listed object, recording one outcome per object.

    A failing object never stops the loop. Zip packages are extracted into
    the download directory and acknowledged with a pickup notification.
    """

    def __init__(self, settings: Settings, *, transport: httpx.BaseTransport | None = None) -> None:
        self._settings = settings
        self._scope = settings.require("scope_download")
        self._uid = settings.require("client_id")
        self._download_dir = settings.require_dir("download_dir")
        settings.endpoint_url("download")
        settings.endpoint_url("notification")
        settings.require("scope_status")
        self._transport = transport

    def run(self) -> list[StatusDetail]:
        logger.info("Starting download process for environment: %s", self._settings.environment)
        self._download_dir.mkdir(parents=True, exist_ok=True)

        with (
            AuthClient(self._settings, transport=self._transport) as auth,
            TransferGateway(self._settings, transport=self._transport) as gateway,
            NotificationService(self._settings, transport=self._transport) as notifications,
        ):
            logger.info("Step 1: Getting authentication token for scope: %s", self._scope)
            token = auth.get_token(self._scope)
            if isinstance(token, AuthError):
                return [auth_failed(DOWNLOAD, token)]
            logger.info("Authentication successful, token acquired")

            logger.info("Step 2: Retrieving list of files for uid: %s", mask(self._uid))
            objects = gateway.list_remote_objects(token, self._uid)
            if not objects:
                logger.info("No files available for download")
                return []
            logger.info("Found %d files available for download", len(objects))

            details = [self._process(gateway, notifications, token, obj) for obj in objects]

        logger.info(
            "Download process completed for environment: %s (%d succeeded of %d)",
            self._settings.environment,
            sum(1 for d in details if d.ok),
            len(details),
        )
        return details

    def _process(
        self,
        gateway: TransferGateway,
        notifications: NotificationService,
        token: Token,
        obj: RemoteObject,
    ) -> StatusDetail:
        filename = obj.filename
        logger.info("Processing file: %s", filename)

        if not is_safe_filename(filename):
            logger.warning("Refusing unsafe remote filename: %r", filename)
            return failed(
                DOWNLOAD,
                filename,
                "Unsafe filename",
                error("UNSAFE_FILENAME", "Unsafe Filename", f"Refusing remote filename: {filename}"),
            )

        try:
            return self._download_one(gateway, notifications, token, filename)
        except (TransportError, ServiceHTTPError, MalformedResponseError, OSError) as exc:
            logger.exception("Error processing file: %s", filename)
            return failed(
                DOWNLOAD,
                filename,
                f"Error processing file: {exc}",
                error(
                    "PROCESSING_ERROR",
                    "Processing Error",
                    f"Error processing file {filename}: {exc}",
                ),
            )

    def _download_one(
        self,
        gateway: TransferGateway,
        notifications: NotificationService,
        token: Token,
        filename: str,
    ) -> StatusDetail:
        logger.debug("Getting presigned URL for file: %s", filename)
        result = gateway.get_presigned_url(filename, token, self._uid, DOWNLOAD)
        if not result.ok:
            return result.failure

        local_path = self._download_dir / filename
        logger.info("Downloading file to: %s", local_path)
        if not gateway.transfer_bytes(result.presigned.url, local_path, token, DOWNLOAD):
            logger.error("Failed to download file: %s", filename)
            return failed(
                DOWNLOAD,
                filename,
                "Download failed",
                error("DOWNLOAD_FAILED", "Download Error", f"Failed to download file: {filename}"),
            )

        record = derive_transaction(filename)
        transaction_id = record.esmd_transaction_id
        errors = list(record.error_messages)
        if transaction_id:
            logger.info("Extracted esMD transaction ID: %s from filename: %s", transaction_id, filename)

        if not filename.lower().endswith(".zip"):
            logger.info("File is not a zip file, skipping extraction: %s", filename)
            return self._detail(
                TransferStatus.SUCCESS,
                "File downloaded successfully (not a zip file)",
                filename,
                transaction_id,
                errors,
            )

        if not extract_archive(local_path, self._download_dir):
            logger.warning("Failed to extract zip file: %s", filename)
            errors.append(
                error("EXTRACTION_FAILED", "Extraction Error", f"Failed to extract zip file: {filename}")
            )
            return self._detail(
                TransferStatus.PARTIAL_SUCCESS,
                "File downloaded but extraction failed",
                filename,
                transaction_id,
                errors,
            )

        notice = self._send_pickup(notifications, transaction_id, filename)
        if notice is not None:
            errors.append(notice)
            return self._detail(
                TransferStatus.FAILED,
                "File extracted but pickup notification failed",
                filename,
                transaction_id,
                errors,
            )

        logger.info("Successfully downloaded and extracted file: %s", filename)
        return self._detail(
            TransferStatus.SUCCESS,
            "File downloaded and extracted successfully",
            filename,
            transaction_id,
            errors,
        )

    @staticmethod
    def _send_pickup(
        notifications: NotificationService, transaction_id: str | None, filename: str
    ) -> ErrorMessage | None:
        """Send the pickup notification. Returns an error message if it failed."""
        try:
            ack = notifications.send_pickup(transaction_id, filename)
        except ServiceHTTPError as exc:
            logger.error("Pickup notification failed for %s: %s", filename, exc)
            return error("NOTIFICATION_FAILED", f"HTTP {exc.status_code}", str(exc))
        except (MalformedResponseError, TransportError) as exc:
            logger.error("Pickup notification failed for %s: %s", filename, exc)
            return error("NOTIFICATION_FAILED", type(exc).__name__, str(exc))
        if isinstance(ack, AuthError):
            return error(
                "NOTIFICATION_FAILED",
                f"HTTP {ack.status_code}",
                f"Authentication failed for pickup notification: {ack.error}",
            )
        logger.info("Pickup notification sent for %s", filename)
        return None

    @staticmethod
    def _detail(
        status: TransferStatus,
        description: str,
        filename: str,
        transaction_id: str | None,
        errors: list[ErrorMessage],
    ) -> StatusDetail:
        return StatusDetail(
            status=status,
            status_description=description,
            esmd_transaction_id=transaction_id,
            filename=filename,
            delivery_type=DOWNLOAD,
            error_messages=errors,
        )

