"""Readers for the settings file, plain dotenv or SOPS-encrypted dotenv."""

import logging
import subprocess
from io import StringIO
from pathlib import Path

from dotenv import dotenv_values

from wiser.errors import ConfigurationError

logger = logging.getLogger(__name__)


def load_secrets(encrypted_path: str | Path, *, sops_binary: str = "sops") -> dict[str, str | None]:
    """Decrypt a SOPS-encrypted settings file and parse it as dotenv.

    Args:
        encrypted_path: Path to the ``.enc`` settings file.
        sops_binary: Name or path of the SOPS executable.

    Raises:
        ConfigurationError: If the file is missing or SOPS cannot decrypt it.
    """
    path = Path(encrypted_path)
    if not path.is_file():
        raise ConfigurationError(f"Encrypted settings file not found: {path}")

    logger.debug("Decrypting settings file %s with %s", path, sops_binary)
    try:
        result = subprocess.run(
            [sops_binary, "--decrypt", "--input-type", "dotenv", "--output-type", "dotenv", str(path)],
            capture_output=True,
            text=True,
            check=True,
        )
    except FileNotFoundError as exc:
        raise ConfigurationError(f"SOPS binary not found: {sops_binary}") from exc
    except subprocess.CalledProcessError as exc:
        stderr = (exc.stderr or "").strip()
        raise ConfigurationError(f"SOPS could not decrypt {path.name}: {stderr}") from exc
    return dict(dotenv_values(stream=StringIO(result.stdout)))


def load_dotenv_file(dotenv_path: str | Path) -> dict[str, str | None]:
    """Load a plain dotenv file. Returns an empty dict when the file is absent."""
    path = Path(dotenv_path)
    if not path.is_file():
        logger.debug("Settings file %s not found; using environment only", path)
        return {}
    return dict(dotenv_values(path))
