"""Required-key checks for the flat settings values."""

import logging
from collections.abc import Mapping

from wiser.schemas.exchange import ErrorMessage

logger = logging.getLogger(__name__)

ENV_PREFIX = "WISER_"
BASE_URL_PREFIX = f"{ENV_PREFIX}BASE_URL_"

# (key, error code, message)
REQUIRED_SETTINGS: tuple[tuple[str, str, str], ...] = (
    ("CLIENT_ID", "CLIENTID_REQUIRED", "Client id is required"),
    ("CLIENT_SECRET", "SECRETKEY_REQUIRED", "Client secret is required"),
    ("MAILBOX_ID", "MAILBOX_REQUIRED", "Mailbox id (sender routing id) is required"),
    ("AUTH_ENDPOINT", "APIURL_REQUIRED", "Auth endpoint is required"),
)


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


def validate_settings_values(values: Mapping[str, str]) -> list[ErrorMessage]:
    """Report every missing required setting.

    ``error_name`` carries the missing key so callers can list them.
    Returns an empty list when the configuration is usable.
    """
    errors: list[ErrorMessage] = []
    for key, code, message in REQUIRED_SETTINGS:
        full_key = f"{ENV_PREFIX}{key}"
        if _blank(values.get(full_key)):
            logger.warning("Configuration check failed: %s", message)
            errors.append(
                ErrorMessage(error_code=code, error_name=full_key, error_description=message)
            )

    environment = (values.get(f"{ENV_PREFIX}ENVIRONMENT") or "dev").strip()
    base_url_key = f"{BASE_URL_PREFIX}{environment.upper()}"
    if _blank(values.get(base_url_key)):
        logger.warning("Configuration check failed: no base URL for %s", environment)
        errors.append(
            ErrorMessage(
                error_code="APIURL_REQUIRED",
                error_name=base_url_key,
                error_description=f"Base URL for environment '{environment}' is required",
            )
        )
    return errors
