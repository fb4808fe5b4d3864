"""Required-field checks for payloads the service sends to the provider.

Each validator returns an ordered list of ``ErrorMessage``; an empty list
means the payload is valid. Missing optional blocks are never an error,
and nothing here raises on bad input.
"""

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from wiser.schemas.exchange import ErrorMessage, NotificationAck, ReportedStatus, TransferStatus
from wiser.schemas.inbound import (
    AdminErrorNotification,
    PARejectResponse,
    ProviderBlock,
    RejectBlock,
)

logger = logging.getLogger(__name__)

ERROR_TEXT: dict[str, str] = {
    "EMPTY_PAREJECT_RESPONSE": "PA reject response is empty",
    "EMPTY_ADMINERROR_RESPONSE": "Admin error notification is empty",
    "MALFORMED_PAYLOAD": "Payload is not valid JSON or does not match the expected structure",
    "NOTIFICATION_TYPE_MISSING_ERR_CD": "Notification type is required",
    "ESMD_TRANS_ID_MISSING_ERR_CD": "esMD transaction id is required",
    "SENDER_ROUTING_ID_MISSING_ERR_CD": "Sender routing id is required",
    "NOTIFICATION_ELEMENT_MISSING_ERR_CD": "Notification element is required",
    "CREATION_TIME_MSSING_ERR_CD": "Creation time is required",
    "SUBMISSION_TIME_MISSING_ERR_CD": "Submission time is required",
    "ERROR_MSG_ELEMENT_MISSING_ERR_CD": "Error messages element is required",
    "ERROR_CD_MISSING_ERR_CD": "Error code is required",
    "ERR_NAME_MISSING_ERR_CD": "Error name is required",
    "ERR_DES_MISSING_ERR_CD": "Error description is required when error code or name is 'Other'",
    "REQTR_REASON_CD": "Requester reject reason code is required",
    "REQTR_REASON": "Requester reject reason is required",
    "BENEFICIARY_REASON_CD": "Beneficiary reject reason code is required",
    "BENEFICIARY_REASON": "Beneficiary reject reason is required",
    "PATIENT_EVENT_REASON_CD": "Patient event reject reason code is required",
    "PATIENT_EVENT_REASON": "Patient event reject reason is required",
}

# (attribute, code prefix, label)
REASON_ONLY_BLOCKS: tuple[tuple[str, str, str], ...] = (
    ("requester", "REQTR", "Requester"),
    ("beneficiary", "BENEFICIARY", "Beneficiary"),
    ("patient_event", "PATIENT_EVENT", "Patient event"),
)

# (attribute, code prefix, label, expected qualifier)
PROVIDER_BLOCKS: tuple[tuple[str, str, str, str], ...] = (
    ("facility_provider", "FACILITY_PROVIDER", "Facility provider", "FA"),
    ("ordering_provider", "ORDERING_PROVIDER", "Ordering provider", "DK"),
    ("rendering_or_supplier_provider", "RENDERING_PROVIDER", "Rendering provider", "SJ"),
    ("referring_provider", "REFERRING_PROVIDER", "Referring provider", "DN"),
    ("operating_provider", "OPERATING_PROVIDER", "Operating provider", "72"),
    ("attending_provider", "ATTENDING_PROVIDER", "Attending provider", "71"),
)

for _attr, _prefix, _label, _qualifier in PROVIDER_BLOCKS:
    ERROR_TEXT[f"{_prefix}_QUALIFIER_CD"] = f"{_label} qualifier must be '{_qualifier}'"
    ERROR_TEXT[f"{_prefix}_REASON_CD"] = f"{_label} reject reason code is required"
    ERROR_TEXT[f"{_prefix}_REASON"] = f"{_label} reject reason is required"


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


def error_message(code: str, messages: Mapping[str, str] | None = None) -> ErrorMessage:
    """Build the error for ``code``, looking its text up in ``messages`` then ``ERROR_TEXT``."""
    text = (messages or {}).get(code) or ERROR_TEXT.get(code, code)
    return ErrorMessage(error_code=code, error_name=text, error_description=text)


def _check_reasons(block: RejectBlock | None, prefix: str, errors: list[str]) -> None:
    if block is None or block.reject_reason_codes is None:
        return
    for reason in block.reject_reason_codes:
        if reason is None:
            continue
        if _blank(reason.reject_reason_code):
            errors.append(f"{prefix}_REASON_CD")
        if _blank(reason.reject_reason):
            errors.append(f"{prefix}_REASON")


def _check_provider(block: ProviderBlock | None, prefix: str, qualifier: str, errors: list[str]) -> None:
    if block is None or block.reject_reason_codes is None:
        return
    if block.qualifier is not None and block.qualifier != qualifier:
        errors.append(f"{prefix}_QUALIFIER_CD")
    _check_reasons(block, prefix, errors)


def _coerce(model: type, payload: Any) -> Any:
    if payload is None or isinstance(payload, model):
        return payload
    return model.model_validate(payload)


def _to_messages(
    codes: list[str], messages: Mapping[str, str] | None, what: str
) -> list[ErrorMessage]:
    for code in codes:
        logger.warning("%s validation failed: %s", what, code)
    return [error_message(code, messages) for code in codes]


# ------------------------------------------------------------------
# PA reject responses
# ------------------------------------------------------------------


def validate_pa_reject(
    payload: PARejectResponse | Mapping[str, Any] | None,
    messages: Mapping[str, str] | None = None,
) -> list[ErrorMessage]:
    """Validate a PA reject response.

    Checks the required top-level fields, the reject reasons of every block,
    and the qualifier of every provider block that carries reject reasons.
    """
    try:
        response = _coerce(PARejectResponse, payload)
    except ValidationError:
        logger.warning("PA reject payload does not match the expected structure")
        return [error_message("MALFORMED_PAYLOAD", messages)]

    if response is None:
        return _to_messages(["EMPTY_PAREJECT_RESPONSE"], messages, "PA reject")

    codes: list[str] = []
    if _blank(response.notification_type):
        codes.append("NOTIFICATION_TYPE_MISSING_ERR_CD")
    if _blank(response.esmd_transaction_id):
        codes.append("ESMD_TRANS_ID_MISSING_ERR_CD")
    if _blank(response.sender_routing_id):
        codes.append("SENDER_ROUTING_ID_MISSING_ERR_CD")

    for attr, prefix, _label in REASON_ONLY_BLOCKS:
        _check_reasons(getattr(response, attr), prefix, codes)
    for attr, prefix, _label, qualifier in PROVIDER_BLOCKS:
        _check_provider(getattr(response, attr), prefix, qualifier, codes)

    return _to_messages(codes, messages, "PA reject")


def validate_pa_reject_json(
    text: str | bytes, messages: Mapping[str, str] | None = None
) -> list[ErrorMessage]:
    """Validate a PA reject response given as JSON text."""
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")
    if not text.strip() or text.strip() == "null":
        return validate_pa_reject(None, messages)
    try:
        response = PARejectResponse.model_validate_json(text)
    except ValidationError:
        logger.warning("PA reject payload is not valid JSON")
        return [error_message("MALFORMED_PAYLOAD", messages)]
    return validate_pa_reject(response, messages)


# ------------------------------------------------------------------
# Admin error notifications
# ------------------------------------------------------------------


def validate_admin_errors(
    payload: AdminErrorNotification | Mapping[str, Any] | None,
    messages: Mapping[str, str] | None = None,
) -> list[ErrorMessage]:
    """Validate an administrative error notification."""
    try:
        notification = _coerce(AdminErrorNotification, payload)
    except ValidationError:
        logger.warning("Admin error payload does not match the expected structure")
        return [error_message("MALFORMED_PAYLOAD", messages)]

    if notification is None:
        return _to_messages(["EMPTY_ADMINERROR_RESPONSE"], messages, "Admin error")

    codes: list[str] = []
    if _blank(notification.notification_type):
        codes.append("NOTIFICATION_TYPE_MISSING_ERR_CD")
    if _blank(notification.sender_routing_id):
        codes.append("SENDER_ROUTING_ID_MISSING_ERR_CD")

    if not notification.notification:
        codes.append("NOTIFICATION_ELEMENT_MISSING_ERR_CD")
        return _to_messages(codes, messages, "Admin error")

    for item in notification.notification:
        if _blank(item.esmd_transaction_id):
            codes.append("ESMD_TRANS_ID_MISSING_ERR_CD")
        if item.creation_time is None:
            codes.append("CREATION_TIME_MSSING_ERR_CD")
        if item.submission_time is None:
            codes.append("SUBMISSION_TIME_MISSING_ERR_CD")
        if not item.error_messages:
            codes.append("ERROR_MSG_ELEMENT_MISSING_ERR_CD")
            continue
        for message in item.error_messages:
            if _blank(message.error_code):
                codes.append("ERROR_CD_MISSING_ERR_CD")
            if _blank(message.error_name):
                codes.append("ERR_NAME_MISSING_ERR_CD")
            is_other = "other" in ((message.error_code or "").lower(), (message.error_name or "").lower())
            if is_other and _blank(message.error_description):
                codes.append("ERR_DES_MISSING_ERR_CD")

    return _to_messages(codes, messages, "Admin error")


def validate_admin_errors_json(
    text: str | bytes, messages: Mapping[str, str] | None = None
) -> list[ErrorMessage]:
    """Validate an administrative error notification given as JSON text."""
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")
    if not text.strip() or text.strip() == "null":
        return validate_admin_errors(None, messages)
    try:
        notification = AdminErrorNotification.model_validate_json(text)
    except ValidationError:
        logger.warning("Admin error payload is not valid JSON")
        return [error_message("MALFORMED_PAYLOAD", messages)]
    return validate_admin_errors(notification, messages)


def build_error_report(errors: list[ErrorMessage]) -> NotificationAck | None:
    """Wrap validation errors in the service's error response shape.

    Returns None when there is nothing to report.
    """
    if not errors:
        return None
    return NotificationAck(
        status_details=[ReportedStatus(status=TransferStatus.FAILED.value, error_messages=errors)]
    )
