"""Schemas for the document-exchange workflows.

Covers the wire shapes of the service (auth, object listing, presigned URLs,
notifications, status) and the outcome records returned to callers.
Field names follow Python conventions; the service's JSON names are aliases.
"""

import base64
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


def _none_as_empty(value: object) -> object:
    return [] if value is None else value


# --- Enums ---


class TransferStatus(StrEnum):
    """Outcome of processing one object."""

    SUCCESS = "SUCCESS"
    PARTIAL_SUCCESS = "PARTIAL_SUCCESS"
    FAILED = "FAILED"


class TransferDirection(StrEnum):
    """Which way bytes move through a presigned URL."""

    UPLOAD = "UPLOAD"
    DOWNLOAD = "DOWNLOAD"


class DigestAlgorithm(StrEnum):
    """Digest algorithms understood by ``hashlib.new``."""

    SHA256 = "sha256"
    MD5 = "md5"


# --- Shared records ---


class ErrorMessage(_Frozen):
    """A structured error entry, as used throughout the service's payloads."""

    error_code: str | None = Field(default=None, alias="errorCode")
    error_name: str | None = Field(default=None, alias="errorName")
    error_description: str | None = Field(default=None, alias="errorDescription")


class ChecksumDigest(_Frozen):
    """Integrity proof for a byte sequence."""

    algorithm: DigestAlgorithm
    value: bytes

    @property
    def hex(self) -> str:
        return self.value.hex()

    @property
    def base64(self) -> str:
        return base64.b64encode(self.value).decode("ascii")


# --- Auth ---


class Token(_Frozen):
    """A bearer token ready to be used as an ``Authorization`` header value."""

    access_token: str = Field(repr=False, description="Always prefixed with 'Bearer '")
    status_code: int = 200


class AuthError(_Frozen):
    """Recoverable authentication failure (non-200 from the auth endpoint)."""

    status_code: int
    error: str


# --- Object listing and presigned URLs ---


class RemoteObject(_Frozen):
    """A file the service exposes for download."""

    filename: str
    size: str | int | float | None = None
    created_on: str | None = Field(default=None, alias="createdOn")
    last_downloaded: str | None = Field(default=None, alias="lastDownloaded")


class ListObjectsResponse(_Frozen):
    """Response body of the object listing call."""

    status: str | None = None
    message: str | None = None
    objects: list[RemoteObject] = Field(default_factory=list)

    @field_validator("objects", mode="before")
    @classmethod
    def objects_none_as_empty(cls, value: object) -> object:
        return _none_as_empty(value)


class PresignedUrl(_Frozen):
    """A time-boxed transfer endpoint for exactly one object."""

    filename: str | None = None
    url: str | None = None
    created_on: str | None = Field(default=None, alias="createdOn")
    comments: str | None = None


class PresignedUrlResponse(_Frozen):
    """Response body of both presigned URL calls."""

    status: str | None = None
    message: str | None = None
    contents: list[PresignedUrl] = Field(default_factory=list)

    @field_validator("contents", mode="before")
    @classmethod
    def contents_none_as_empty(cls, value: object) -> object:
        return _none_as_empty(value)


# --- Outcomes ---


class StatusDetail(_Frozen):
    """Outcome of processing one object (or one upload run).

    Always carries a transaction id, a non-empty error list, or both.
    """

    status: TransferStatus
    status_description: str = Field(default="", alias="statusDescription")
    esmd_transaction_id: str | None = Field(default=None, alias="esMDTransactionID")
    filename: str = ""
    content_type_cd: str = Field(default="ZIP", alias="contenttypecd")
    delivery_type: TransferDirection | None = Field(default=None, alias="deliveryType")
    error_messages: list[ErrorMessage] = Field(default_factory=list, alias="errorMessages")

    @model_validator(mode="after")
    def require_id_or_errors(self) -> "StatusDetail":
        if not self.esmd_transaction_id and not self.error_messages:
            raise ValueError("StatusDetail needs a transaction id or at least one error message")
        return self

    @property
    def ok(self) -> bool:
        return self.status == TransferStatus.SUCCESS


class PresignedUrlResult(_Frozen):
    """Either a usable presigned URL or a FAILED status detail explaining why not."""

    presigned: PresignedUrl | None = None
    failure: StatusDetail | None = None

    @property
    def ok(self) -> bool:
        return self.presigned is not None and self.failure is None


class TransactionRecord(_Frozen):
    """A transaction id derived from a filename, or the reason it could not be."""

    filename: str
    esmd_transaction_id: str | None = None
    status: TransferStatus = TransferStatus.SUCCESS
    error_messages: list[ErrorMessage] = Field(default_factory=list)


# --- Notifications and status ---


class PickupNotificationItem(_Frozen):
    """One acknowledged object inside a pickup notification."""

    esmd_transaction_id: str | None = Field(default=None, alias="esMDTransactionId")
    pickup_time: str = Field(alias="pickupTime")
    submission_time: str = Field(alias="submissionTime")
    filename: str
    status: TransferStatus = TransferStatus.SUCCESS
    error_messages: list[ErrorMessage] = Field(default_factory=list, alias="errorMessages")


class PickupNotification(_Frozen):
    """Outbound notification envelope (e.g. ``PICKUP``)."""

    notification_type: str = Field(alias="notificationType")
    sender_routing_id: str = Field(alias="senderRoutingId")
    notification: list[PickupNotificationItem]

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class ReportedStatus(_Frozen):
    """A status detail as reported by the service (free-form status strings)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    esmd_transaction_id: str | None = Field(default=None, alias="esMDTransactionID")
    content_type_cd: str | None = Field(default=None, alias="contenttypecd")
    parent_transaction_id: str | None = Field(default=None, alias="parentTransactionID")
    delivery_type: str | None = Field(default=None, alias="deliveryType")
    unique_tracking_number: str | None = Field(default=None, alias="uniqueTrackingNumber")
    unique_id: str | None = Field(default=None, alias="uniqueId")
    carrier_id: str | None = Field(default=None, alias="carrierId")
    transaction_type: str | None = Field(default=None, alias="transactionType")
    status: str | None = None
    status_description: str | None = Field(default=None, alias="statusDescription")
    error_messages: list[ErrorMessage] = Field(default_factory=list, alias="errorMessages")

    @field_validator("error_messages", mode="before")
    @classmethod
    def errors_none_as_empty(cls, value: object) -> object:
        return _none_as_empty(value)


class NotificationAck(_Frozen):
    """Structured acknowledgment returned by the notification endpoint."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    sender_routing_id: str | None = Field(default=None, alias="senderRoutingId")
    message: str | None = None
    status_details: list[ReportedStatus] = Field(default_factory=list, alias="statusDetails")

    @field_validator("status_details", mode="before")
    @classmethod
    def details_none_as_empty(cls, value: object) -> object:
        return _none_as_empty(value)


class StatusReport(NotificationAck):
    """Latest processing status for a mailbox or transaction."""


# --- Real-time PA results ---


class RealtimeUploadAck(_Frozen):
    """Receipt returned when a PA results JSON document is accepted."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    esmd_transaction_id: str | None = Field(default=None, alias="esmdTransactionId")
    routing_id: str | None = Field(default=None, alias="routingId")
    hih_oid: str | None = Field(default=None, alias="hihOid")
    rc_oid: str | None = Field(default=None, alias="rcOid")
    rc_name: str | None = Field(default=None, alias="rcName")
    letter_id: str | None = Field(default=None, alias="letterId")
    content_type: str | None = Field(default=None, alias="contentType")
    status: str | None = None
    status_description: str | None = Field(default=None, alias="statusDescription")
    error_details: list[ErrorMessage] = Field(default_factory=list, alias="errorDetails")

    @field_validator("error_details", mode="before")
    @classmethod
    def errors_none_as_empty(cls, value: object) -> object:
        return _none_as_empty(value)
