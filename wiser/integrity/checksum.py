"""Content digests for transfer integrity checks.

SHA-256 is the default for every new check. MD5 exists only because the
upload presigned-URL contract expects a base64 ``Content-MD5`` value.

Client-supplied checksums may be hex or base64; hex is tried first.
All comparisons are constant-time.
"""

import base64
import binascii
import hashlib
import hmac
import logging
from pathlib import Path
from typing import BinaryIO

from wiser.schemas.exchange import ChecksumDigest, DigestAlgorithm

logger = logging.getLogger(__name__)

HASH_CHUNK_SIZE = 8192
DEFAULT_ALGORITHM = DigestAlgorithm.SHA256


def new_hasher(algorithm: DigestAlgorithm = DEFAULT_ALGORITHM) -> "hashlib._Hash":
    return hashlib.new(DigestAlgorithm(algorithm).value)


def digest(data: bytes, algorithm: DigestAlgorithm = DEFAULT_ALGORITHM) -> bytes:
    """Digest an in-memory byte buffer."""
    hasher = new_hasher(algorithm)
    hasher.update(data)
    return hasher.digest()


def digest_stream(stream: BinaryIO, algorithm: DigestAlgorithm = DEFAULT_ALGORITHM) -> bytes:
    """Digest a binary stream, reading it in fixed-size chunks."""
    hasher = new_hasher(algorithm)
    while chunk := stream.read(HASH_CHUNK_SIZE):
        hasher.update(chunk)
    return hasher.digest()


def digest_file(path: str | Path, algorithm: DigestAlgorithm = DEFAULT_ALGORITHM) -> bytes:
    """Digest a file's contents without loading it into memory."""
    logger.debug("Calculating %s for file %s", algorithm, path)
    with open(path, "rb") as f:
        return digest_stream(f, algorithm)


def compute_checksum(
    path: str | Path, algorithm: DigestAlgorithm = DEFAULT_ALGORITHM
) -> ChecksumDigest:
    return ChecksumDigest(algorithm=algorithm, value=digest_file(path, algorithm))


# ------------------------------------------------------------------
# Encoding
# ------------------------------------------------------------------


def to_hex(value: bytes) -> str:
    return value.hex()


def to_base64(value: bytes) -> str:
    return base64.b64encode(value).decode("ascii")


def decode_hex_or_none(value: str) -> bytes | None:
    """Decode a hex string (either case). Returns None if it is not valid hex."""
    text = value.strip()
    if len(text) % 2:
        return None
    try:
        return bytes.fromhex(text)
    except ValueError:
        return None


def decode_base64_or_none(value: str) -> bytes | None:
    """Decode strict base64. Returns None if it is not valid base64."""
    try:
        return base64.b64decode(value.strip(), validate=True)
    except (binascii.Error, ValueError):
        return None


def decode_checksum(value: str | bytes) -> bytes | None:
    """Turn a client-supplied checksum into raw digest bytes.

    Bytes are taken as-is; strings are decoded as hex, then as base64.
    """
    if isinstance(value, bytes):
        return value
    decoded = decode_hex_or_none(value)
    if decoded is None:
        decoded = decode_base64_or_none(value)
    return decoded


# ------------------------------------------------------------------
# Verification
# ------------------------------------------------------------------


def digests_match(expected: bytes, provided: bytes) -> bool:
    """Constant-time comparison of two raw digests."""
    return hmac.compare_digest(expected, provided)


def verify(
    checksum: str | bytes, data: bytes, algorithm: DigestAlgorithm = DEFAULT_ALGORITHM
) -> bool:
    """Check ``data`` against a checksum given as raw bytes, hex or base64."""
    provided = decode_checksum(checksum)
    if provided is None:
        logger.debug("Checksum is neither valid hex nor base64")
        return False
    match = digests_match(digest(data, algorithm), provided)
    logger.debug("Checksum %s", "validated" if match else "mismatch")
    return match


def verify_file(
    checksum: str | bytes, path: str | Path, algorithm: DigestAlgorithm = DEFAULT_ALGORITHM
) -> bool:
    """Check a file's contents against a checksum given as raw bytes, hex or base64."""
    provided = decode_checksum(checksum)
    if provided is None:
        return False
    match = digests_match(digest_file(path, algorithm), provided)
    logger.debug("File checksum for %s %s", path, "validated" if match else "mismatch")
    return match


# ------------------------------------------------------------------
# Shortcuts
# ------------------------------------------------------------------


def sha256_hex(data: bytes | str) -> str:
    """SHA-256 hex of bytes, or of a string encoded as UTF-8."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return to_hex(digest(data, DigestAlgorithm.SHA256))


def sha256_file_hex(path: str | Path) -> str:
    return to_hex(digest_file(path, DigestAlgorithm.SHA256))


def md5_file_base64(path: str | Path) -> str:
    """Base64 MD5 of a file, the form the upload contract sends as ``Content-MD5``."""
    return to_base64(digest_file(path, DigestAlgorithm.MD5))
