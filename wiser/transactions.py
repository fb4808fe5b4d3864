"""Transaction ids derived from service filenames.

Downloaded packages are named
``<sender>.<flag>.<seq>.E<TRANSACTION_ID>.<other>.D<date>.T<time>.zip``;
the fourth dot-delimited segment, minus its ``E`` prefix, is the id.
"""

import logging

from wiser.schemas.exchange import ErrorMessage, TransactionRecord, TransferStatus

logger = logging.getLogger(__name__)

TRANSACTION_SEGMENT = 3


def _strip_zip(filename: str) -> str:
    return filename[:-4] if filename.lower().endswith(".zip") else filename


def extract_transaction_id(filename: str) -> str | None:
    """Return the transaction id encoded in ``filename``, or None."""
    if not filename:
        return None

    parts = _strip_zip(filename.strip()).split(".")
    while parts and not parts[-1]:
        parts.pop()
    if len(parts) <= TRANSACTION_SEGMENT:
        return None

    segment = parts[TRANSACTION_SEGMENT].strip()
    if len(segment) > 1 and segment.startswith("E"):
        segment = segment[1:]
    return segment or None


def derive_transaction(filename: str) -> TransactionRecord:
    """Derive a transaction id, recording an ``INVALID_FILENAME`` error on failure."""
    transaction_id = extract_transaction_id(filename)
    if transaction_id:
        return TransactionRecord(filename=filename, esmd_transaction_id=transaction_id)

    logger.warning("Cannot derive transaction id from filename: %s", filename)
    return TransactionRecord(
        filename=filename,
        status=TransferStatus.FAILED,
        error_messages=[
            ErrorMessage(
                error_code="INVALID_FILENAME",
                error_name="Invalid Filename",
                error_description=f"Could not extract esMD transaction ID from filename: {filename}",
            )
        ],
    )
