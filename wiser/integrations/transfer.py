"""Presigned-URL operations: list remote objects, negotiate URLs, move bytes."""

import logging
from collections.abc import Iterator
from pathlib import Path
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from wiser.config import Settings
from wiser.errors import ConfigurationError, MalformedResponseError, ServiceHTTPError, TransportError
from wiser.integrations._http import build_client, mask, snippet
from wiser.integrity.checksum import decode_checksum, digests_match, new_hasher
from wiser.schemas.exchange import (
    DigestAlgorithm,
    ErrorMessage,
    ListObjectsResponse,
    PresignedUrlResponse,
    PresignedUrlResult,
    RemoteObject,
    StatusDetail,
    Token,
    TransferDirection,
    TransferStatus,
)

logger = logging.getLogger(__name__)

API_SUCCESS = (200, 202)
DOWNLOAD_CHUNK_SIZE = 64 * 1024


def _token_value(token: Token | str) -> str:
    return token.access_token if isinstance(token, Token) else token


def _presigned_failure(
    key: str, direction: TransferDirection, code: str, name: str, summary: str
) -> PresignedUrlResult:
    description = f"{summary} for file: {key}"
    detail = StatusDetail(
        status=TransferStatus.FAILED,
        status_description=summary,
        filename=key,
        delivery_type=direction,
        error_messages=[
            ErrorMessage(error_code=code, error_name=name, error_description=description)
        ],
    )
    return PresignedUrlResult(failure=detail)


class TransferGateway:
    """Stateless wrapper around the three presigned-URL operations.

    Endpoints are resolved once from ``Settings``; an endpoint that is not
    configured raises ``ConfigurationError`` when an operation needs it.

    Usage::

        with TransferGateway(settings) as gateway:
            objects = gateway.list_remote_objects(token, settings.mailbox_id)
    """

    def __init__(self, settings: Settings, *, transport: httpx.BaseTransport | None = None) -> None:
        base_url = settings.base_url
        self._sender_routing_id = settings.require("mailbox_id")
        self._download_url = self._join(base_url, settings.download_endpoint)
        self._upload_url = self._join(base_url, settings.upload_endpoint)
        self._scope_download = settings.scope_download
        self._scope_upload = settings.scope_upload
        self._part_size = settings.upload_part_size
        self._transfer_timeout = httpx.Timeout(
            connect=settings.timeouts.connect,
            read=settings.timeouts.transfer_read,
            write=settings.timeouts.transfer_read,
            pool=settings.timeouts.pool,
        )
        self._client = build_client(settings.timeouts, transport=transport)
        logger.info("TransferGateway initialized for environment: %s", settings.environment)

    def __enter__(self) -> "TransferGateway":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    @staticmethod
    def _join(base_url: str, endpoint: str) -> str | None:
        endpoint = endpoint.strip()
        return base_url + "/" + endpoint.lstrip("/") if endpoint else None

    def _endpoint(self, direction: TransferDirection) -> str:
        url = self._upload_url if direction == TransferDirection.UPLOAD else self._download_url
        if not url:
            raise ConfigurationError(f"Missing {direction.lower()} endpoint")
        return url

    def _send(self, method: str, url: str, headers: dict[str, str]) -> httpx.Response:
        try:
            return self._client.request(method, url, headers=headers)
        except httpx.TransportError as exc:
            logger.error("Transport error calling %s %s: %s", method, url, exc)
            raise TransportError(f"{method} {url} failed: {exc}") from exc

    @staticmethod
    def _check_status(response: httpx.Response, what: str) -> None:
        if response.status_code not in API_SUCCESS:
            body = snippet(response.text)
            logger.error(
                "%s request failed with status: %d, response: %s", what, response.status_code, body
            )
            raise ServiceHTTPError(
                response.status_code,
                f"{what} request failed with status: {response.status_code}",
                body=body,
            )

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def list_remote_objects(self, token: Token | str, uid: str) -> list[RemoteObject]:
        """List the objects waiting for download.

        Raises:
            ServiceHTTPError: On any status other than 200 or 202.
            MalformedResponseError: If the body does not match the listing shape.
        """
        url = self._endpoint(TransferDirection.DOWNLOAD)
        logger.info("Retrieving file list for uid: %s", mask(uid))
        headers = {
            "uid": uid,
            "senderroutingid": self._sender_routing_id,
            "authorization": _token_value(token),
            "scope": self._scope_download,
        }
        response = self._send("GET", url, headers)
        self._check_status(response, "File list")

        try:
            listing = ListObjectsResponse.model_validate_json(response.text)
        except ValidationError as exc:
            logger.error("Failed to parse file list response: %s", snippet(response.text))
            raise MalformedResponseError("Invalid JSON response for file list") from exc

        logger.info("File list contains %d object(s)", len(listing.objects))
        return listing.objects

    # ------------------------------------------------------------------
    # Presigned URLs
    # ------------------------------------------------------------------

    def get_presigned_url(
        self,
        key: str,
        token: Token | str,
        uid: str,
        direction: TransferDirection,
        *,
        checksum: str | None = None,
        size: str | None = None,
    ) -> PresignedUrlResult:
        """Request a presigned URL for one object.

        Download requests only need the key; upload requests also send the
        file's checksum and size. An empty URL list is returned as a FAILED
        result rather than raised.

        Raises:
            ValueError: If ``key`` is blank, or an upload lacks checksum or size.
            ServiceHTTPError: On any status other than 200 or 202.
            MalformedResponseError: If the body does not match the expected shape.
        """
        if not key or not key.strip():
            raise ValueError("Object key must not be blank")

        url = self._endpoint(direction)
        headers = {
            "uid": uid,
            "senderroutingid": self._sender_routing_id,
            "authorization": _token_value(token),
        }
        if direction == TransferDirection.UPLOAD:
            if not checksum or not size:
                raise ValueError("Upload presigned URL requests need checksum and size")
            headers.update(
                {
                    "filename": key,
                    "size": size,
                    "scope": self._scope_upload,
                    "contentchecksum": checksum,
                    "Content-Type": "application/zip",
                }
            )
            method = "POST"
        else:
            headers["scope"] = self._scope_download
            url = f"{url}/{quote(key, safe='')}"
            method = "GET"

        logger.info("Retrieving %s presigned URL for key: %s", direction.lower(), key)
        response = self._send(method, url, headers)
        self._check_status(response, "Presigned URL")

        try:
            parsed = PresignedUrlResponse.model_validate_json(response.text)
        except ValidationError as exc:
            logger.error("Failed to parse presigned URL response: %s", snippet(response.text))
            raise MalformedResponseError("Invalid JSON response for presigned URL") from exc

        if not parsed.contents:
            logger.warning("No presigned URL returned for %s", key)
            return _presigned_failure(
                key, direction, "NO_PRESIGNED_URL", "Missing URL", "No presigned URL content received"
            )

        presigned = parsed.contents[0]
        if not presigned.url or not presigned.url.strip():
            logger.warning("Empty presigned URL returned for %s", key)
            return _presigned_failure(
                key, direction, "EMPTY_PRESIGNED_URL", "Empty URL", "Empty presigned URL received"
            )
        return PresignedUrlResult(presigned=presigned)

    # ------------------------------------------------------------------
    # Byte transfer
    # ------------------------------------------------------------------

    def transfer_bytes(
        self,
        url: str,
        local_path: str | Path,
        token: Token | str,
        direction: TransferDirection,
        *,
        checksum: str | None = None,
    ) -> bool:
        """Move one object's bytes through its presigned URL.

        Args:
            url: The presigned URL.
            local_path: Destination (download) or source (upload) file.
            token: Bearer token sent as ``Authorization``.
            direction: Which way the bytes move.
            checksum: Base64 MD5 of the file. Required for uploads.

        Returns:
            True only when the service answered 200 and the bytes on the
            wire match their checksum.

        Raises:
            TransportError: If the connection fails or times out.
            OSError: If the local file cannot be read or written.
        """
        path = Path(local_path)
        if direction == TransferDirection.UPLOAD:
            if not checksum:
                raise ValueError("Uploads need the file checksum")
            return self._upload_file(url, path, _token_value(token), checksum)
        return self._download_file(url, path, _token_value(token))

    def _download_file(self, url: str, path: Path, token: str) -> bool:
        logger.info("Starting file download from presigned URL to: %s", path)
        path.parent.mkdir(parents=True, exist_ok=True)
        hasher = new_hasher(DigestAlgorithm.MD5)
        try:
            with self._client.stream(
                "GET", url, headers={"authorization": token}, timeout=self._transfer_timeout
            ) as response:
                if response.status_code != 200:
                    logger.error(
                        "Download failed with HTTP code: %d (%s)",
                        response.status_code,
                        response.reason_phrase,
                    )
                    return False
                declared = response.headers.get("Content-MD5")
                with open(path, "wb") as f:
                    for chunk in response.iter_bytes(DOWNLOAD_CHUNK_SIZE):
                        hasher.update(chunk)
                        f.write(chunk)
        except httpx.TransportError as exc:
            logger.error("Transport error downloading to %s: %s", path, exc)
            raise TransportError(f"Download to {path} failed: {exc}") from exc

        if declared:
            expected = decode_checksum(declared)
            if expected is None or not digests_match(hasher.digest(), expected):
                logger.error("Checksum mismatch for downloaded file %s; removing it", path)
                path.unlink(missing_ok=True)
                return False

        logger.info("File downloaded successfully to: %s", path)
        return True

    def _upload_file(self, url: str, path: Path, token: str, checksum: str) -> bool:
        size = path.stat().st_size
        hasher = new_hasher(DigestAlgorithm.MD5)
        part_size = self._part_size

        def parts() -> Iterator[bytes]:
            with open(path, "rb") as f:
                while part := f.read(part_size):
                    hasher.update(part)
                    logger.debug("Uploading part of %d bytes from %s", len(part), path.name)
                    yield part

        logger.info("Uploading file [%s] with size: %d bytes", path.name, size)
        headers = {
            "Content-MD5": checksum,
            "Content-Type": "application/zip",
            "Authorization": token,
            "Content-Length": str(size),
        }
        try:
            response = self._client.post(
                url, content=parts(), headers=headers, timeout=self._transfer_timeout
            )
        except httpx.TransportError as exc:
            logger.error("Transport error uploading %s: %s", path, exc)
            raise TransportError(f"Upload of {path} failed: {exc}") from exc

        if response.status_code != 200:
            logger.error(
                "Upload of %s failed with HTTP code: %d, response: %s",
                path.name,
                response.status_code,
                snippet(response.text),
            )
            return False

        expected = decode_checksum(checksum)
        if expected is None or not digests_match(hasher.digest(), expected):
            logger.error("Bytes sent for %s do not match the declared checksum", path.name)
            return False

        logger.info("File [%s] uploaded successfully", path.name)
        return True
