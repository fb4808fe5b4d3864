"""Single source of truth for all configuration and secrets.

Settings are loaded once at process start by ``load_settings`` and passed
explicitly into every client and orchestrator. Nothing else reads the
environment or the settings file.

Values come from a dotenv file (``secrets/wiser.env`` unless ``WISER_ENV_FILE``
points elsewhere, SOPS-encrypted when ``WISER_USE_SOPS=true``), overlaid with
any ``WISER_*`` process environment variables.
"""

import logging
import os
import re
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from wiser.errors import ConfigurationError
from wiser.secrets import load_dotenv_file, load_secrets
from wiser.validation.settings import BASE_URL_PREFIX, ENV_PREFIX, validate_settings_values

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_ENV_FILE = PROJECT_ROOT / "secrets" / "wiser.env"

DEFAULT_UPLOAD_PART_SIZE = 5 * 1024 * 1024
DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_READ_TIMEOUT = 30.0
DEFAULT_TRANSFER_READ_TIMEOUT = 60.0
DEFAULT_POOL_TIMEOUT = 10.0

_ENVIRONMENT_NAME = re.compile(r"^[A-Za-z0-9_-]+$")


class HttpTimeouts(BaseModel):
    """Timeouts (seconds) applied to every HTTP client. Retries are always zero."""

    model_config = ConfigDict(frozen=True)

    connect: float = Field(default=DEFAULT_CONNECT_TIMEOUT, gt=0)
    read: float = Field(default=DEFAULT_READ_TIMEOUT, gt=0)
    transfer_read: float = Field(default=DEFAULT_TRANSFER_READ_TIMEOUT, gt=0)
    pool: float = Field(default=DEFAULT_POOL_TIMEOUT, gt=0)


class Settings(BaseModel):
    """Immutable configuration for one process."""

    model_config = ConfigDict(frozen=True)

    environment: str = "dev"
    base_urls: dict[str, str] = Field(default_factory=dict)

    auth_endpoint: str = ""
    download_endpoint: str = ""
    upload_endpoint: str = ""
    notification_endpoint: str = ""
    status_endpoint: str = ""
    realtime_endpoint: str = ""

    client_id: str = ""
    client_secret: str = Field(default="", repr=False)
    mailbox_id: str = ""
    lines_of_business_id: str = ""

    scope_upload: str = ""
    scope_download: str = ""
    scope_status: str = ""
    pickup_notification_type: str = "PICKUP"

    upload_dir: Path | None = None
    download_dir: Path | None = None
    upload_part_size: int = Field(default=DEFAULT_UPLOAD_PART_SIZE, gt=0)
    timeouts: HttpTimeouts = Field(default_factory=HttpTimeouts)

    @field_validator("environment")
    @classmethod
    def environment_is_simple_name(cls, value: str) -> str:
        if not _ENVIRONMENT_NAME.match(value):
            raise ValueError(
                "environment may only contain letters, digits, underscores and hyphens"
            )
        return value

    @property
    def base_url(self) -> str:
        """Base URL of the selected environment."""
        url = self.base_urls.get(self.environment.lower(), "").strip()
        if not url:
            raise ConfigurationError(f"Missing base URL for environment '{self.environment}'")
        return url.rstrip("/")

    def endpoint_url(self, name: str) -> str:
        """Join the environment base URL with the endpoint path named ``name``."""
        endpoint = str(getattr(self, f"{name}_endpoint", "")).strip()
        if not endpoint:
            raise ConfigurationError(f"Missing {name} endpoint")
        return self.base_url + "/" + endpoint.lstrip("/")

    def require(self, field: str) -> str:
        """Return a non-blank string setting or raise ``ConfigurationError``."""
        value = getattr(self, field)
        if value is None or not str(value).strip():
            raise ConfigurationError(f"Missing required setting: {field}")
        return str(value).strip()

    def require_dir(self, field: str) -> Path:
        value = getattr(self, field)
        if value is None:
            raise ConfigurationError(f"Missing required setting: {field}")
        return Path(value)


def _read_values(env_file: str | Path | None, environ: Mapping[str, str]) -> dict[str, str]:
    path = Path(env_file or environ.get(f"{ENV_PREFIX}ENV_FILE") or DEFAULT_ENV_FILE)
    if environ.get(f"{ENV_PREFIX}USE_SOPS", "false").lower() == "true":
        file_values = load_secrets(path.with_name(path.name + ".enc"))
    else:
        file_values = load_dotenv_file(path)

    values = {k: v for k, v in file_values.items() if v is not None}
    values.update({k: v for k, v in environ.items() if k.startswith(ENV_PREFIX)})
    return values


def _float(values: Mapping[str, str], key: str, default: float) -> float:
    raw = values.get(key, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Invalid number for %s=%r; using default %s", key, raw, default)
        return default


def _int(values: Mapping[str, str], key: str, default: int) -> int:
    raw = values.get(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Invalid integer for %s=%r; using default %s", key, raw, default)
        return default


def _optional_path(values: Mapping[str, str], key: str) -> Path | None:
    raw = values.get(key, "").strip()
    return Path(raw) if raw else None


def settings_from_values(values: Mapping[str, str]) -> Settings:
    """Build ``Settings`` from flat ``WISER_*`` key-value pairs.

    Raises:
        ConfigurationError: If required keys are missing or a value is invalid.
    """
    errors = validate_settings_values(values)
    if errors:
        missing = ", ".join(e.error_name or "" for e in errors)
        raise ConfigurationError(f"Missing required configuration: {missing}")

    def get(key: str, default: str = "") -> str:
        return values.get(f"{ENV_PREFIX}{key}", default).strip()

    base_urls = {
        key[len(BASE_URL_PREFIX):].lower(): value.strip()
        for key, value in values.items()
        if key.startswith(BASE_URL_PREFIX) and value.strip()
    }

    try:
        return Settings(
            environment=get("ENVIRONMENT", "dev"),
            base_urls=base_urls,
            auth_endpoint=get("AUTH_ENDPOINT"),
            download_endpoint=get("DOWNLOAD_ENDPOINT"),
            upload_endpoint=get("UPLOAD_ENDPOINT"),
            notification_endpoint=get("NOTIFICATION_ENDPOINT"),
            status_endpoint=get("STATUS_ENDPOINT"),
            realtime_endpoint=get("REALTIME_ENDPOINT"),
            client_id=get("CLIENT_ID"),
            client_secret=get("CLIENT_SECRET"),
            mailbox_id=get("MAILBOX_ID"),
            lines_of_business_id=get("LINES_OF_BUSINESS_ID"),
            scope_upload=get("SCOPE_UPLOAD"),
            scope_download=get("SCOPE_DOWNLOAD"),
            scope_status=get("SCOPE_STATUS"),
            pickup_notification_type=get("PICKUP_NOTIFICATION_TYPE", "PICKUP"),
            upload_dir=_optional_path(values, f"{ENV_PREFIX}UPLOAD_DIR"),
            download_dir=_optional_path(values, f"{ENV_PREFIX}DOWNLOAD_DIR"),
            upload_part_size=_int(values, f"{ENV_PREFIX}UPLOAD_PART_SIZE", DEFAULT_UPLOAD_PART_SIZE),
            timeouts=HttpTimeouts(
                connect=_float(values, f"{ENV_PREFIX}CONNECT_TIMEOUT", DEFAULT_CONNECT_TIMEOUT),
                read=_float(values, f"{ENV_PREFIX}READ_TIMEOUT", DEFAULT_READ_TIMEOUT),
                transfer_read=_float(
                    values, f"{ENV_PREFIX}TRANSFER_READ_TIMEOUT", DEFAULT_TRANSFER_READ_TIMEOUT
                ),
                pool=_float(values, f"{ENV_PREFIX}POOL_TIMEOUT", DEFAULT_POOL_TIMEOUT),
            ),
        )
    except ValueError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc


def load_settings(
    env_file: str | Path | None = None,
    *,
    environment: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Load, validate and freeze the process configuration.

    Args:
        env_file: Settings file to read. Defaults to ``WISER_ENV_FILE`` or
            ``secrets/wiser.env`` under the project root.
        environment: Overrides ``WISER_ENVIRONMENT`` (dev, val, uat, prod...).
        environ: Process environment to overlay. Defaults to ``os.environ``.

    Raises:
        ConfigurationError: If required settings are missing or invalid.
    """
    values = _read_values(env_file, os.environ if environ is None else environ)
    if environment:
        values[f"{ENV_PREFIX}ENVIRONMENT"] = environment
    settings = settings_from_values(values)
    logger.debug(
        "Settings loaded: environment=%s, environments=%s",
        settings.environment,
        sorted(settings.base_urls),
    )
    return settings
