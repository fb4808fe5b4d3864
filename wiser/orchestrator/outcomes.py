"""Builders for the per-object ``StatusDetail`` records."""

from wiser.schemas.exchange import (
    AuthError,
    ErrorMessage,
    StatusDetail,
    TransferDirection,
    TransferStatus,
)


def error(code: str, name: str, description: str) -> ErrorMessage:
    return ErrorMessage(error_code=code, error_name=name, error_description=description)


def failed(
    direction: TransferDirection,
    filename: str,
    description: str,
    *errors: ErrorMessage,
    transaction_id: str | None = None,
) -> StatusDetail:
    return StatusDetail(
        status=TransferStatus.FAILED,
        status_description=description,
        esmd_transaction_id=transaction_id,
        filename=filename,
        delivery_type=direction,
        error_messages=list(errors),
    )


def auth_failed(direction: TransferDirection, result: AuthError) -> StatusDetail:
    """A FAILED record for a run that could not authenticate."""
    return failed(
        direction,
        "",
        f"Authentication failed: {result.error}",
        error("AUTH_ERROR", f"HTTP {result.status_code}", result.error),
    )
