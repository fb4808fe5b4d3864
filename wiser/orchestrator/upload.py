"""Upload workflow: authenticate, then push every local file through a presigned URL."""

import logging
from pathlib import Path

import httpx

from wiser.config import Settings
from wiser.errors import ConfigurationError, ServiceHTTPError
from wiser.integrations.auth import AuthClient
from wiser.integrations.transfer import TransferGateway
from wiser.integrity.checksum import md5_file_base64
from wiser.orchestrator.outcomes import auth_failed, error, failed
from wiser.schemas.exchange import AuthError, StatusDetail, Token, TransferDirection, TransferStatus
from wiser.transactions import derive_transaction

logger = logging.getLogger(__name__)

BYTES_PER_MB = 1024 * 1024
UPLOAD = TransferDirection.UPLOAD


def size_in_mb(path: Path) -> str:
    """File size in MB with four decimals, as the upload contract expects."""
    return f"{path.stat().st_size / BYTES_PER_MB:.4f}"


def list_upload_files(directory: Path) -> list[Path]:
    """Regular files directly inside ``directory``, sorted by name."""
    return sorted((p for p in directory.iterdir() if p.is_file()), key=lambda p: p.name)


class UploadOrchestrator:
    """Uploads the configured directory, stopping at the first failure.

    Any file whose presigned URL or byte transfer fails ends the run with a
    single FAILED ``StatusDetail``; later files are not attempted.
    """

    def __init__(self, settings: Settings, *, transport: httpx.BaseTransport | None = None) -> None:
        self._settings = settings
        self._scope = settings.require("scope_upload")
        self._uid = settings.require("client_id")
        self._upload_dir = settings.require_dir("upload_dir")
        settings.endpoint_url("upload")
        self._transport = transport

    def run(self) -> StatusDetail:
        """Upload every file and return one record for the whole run."""
        logger.info("Starting upload process for environment: %s", self._settings.environment)
        if not self._upload_dir.is_dir():
            raise ConfigurationError(f"Upload directory does not exist: {self._upload_dir}")

        with (
            AuthClient(self._settings, transport=self._transport) as auth,
            TransferGateway(self._settings, transport=self._transport) as gateway,
        ):
            logger.info("Step 1: Getting authentication token for scope: %s", self._scope)
            token = auth.get_token(self._scope)
            if isinstance(token, AuthError):
                return auth_failed(UPLOAD, token)
            logger.info("Authentication successful, token acquired")

            files = list_upload_files(self._upload_dir)
            if not files:
                logger.info("No files to upload in %s", self._upload_dir)
                return StatusDetail(
                    status=TransferStatus.SUCCESS,
                    status_description="No files to upload",
                    delivery_type=UPLOAD,
                    error_messages=[
                        error("NO_FILES", "No Files", f"No files found in {self._upload_dir}")
                    ],
                )

            for path in files:
                failure = self._upload_one(gateway, token, path)
                if failure is not None:
                    return failure

        last = files[-1].name
        record = derive_transaction(last)
        logger.info(
            "Upload process completed for environment: %s (%d file(s))",
            self._settings.environment,
            len(files),
        )
        return StatusDetail(
            status=TransferStatus.SUCCESS,
            status_description=f"{len(files)} file(s) uploaded successfully",
            esmd_transaction_id=record.esmd_transaction_id,
            filename=last,
            delivery_type=UPLOAD,
            error_messages=record.error_messages,
        )

    def _upload_one(self, gateway: TransferGateway, token: Token, path: Path) -> StatusDetail | None:
        """Upload one file. Returns a FAILED record, or None on success."""
        filename = path.name
        size = size_in_mb(path)
        checksum = md5_file_base64(path)
        logger.debug("Getting presigned URL for file: %s (%s MB)", filename, size)

        try:
            result = gateway.get_presigned_url(
                filename, token, self._uid, UPLOAD, checksum=checksum, size=size
            )
        except ServiceHTTPError as exc:
            logger.error("Presigned URL request failed for %s: %s", filename, exc)
            return failed(
                UPLOAD,
                filename,
                "Presigned URL request failed",
                error("PRESIGNED_URL_FAILED", f"HTTP {exc.status_code}", str(exc)),
            )
        if not result.ok:
            return result.failure

        if not gateway.transfer_bytes(result.presigned.url, path, token, UPLOAD, checksum=checksum):
            logger.error("Failed to upload file: %s", filename)
            return failed(
                UPLOAD,
                filename,
                "upload failed",
                error("UPLOAD_FAILED", "Upload Error", f"Failed to upload file: {filename}"),
            )

        logger.info("Uploaded %s", filename)
        return None
