"""Tests for content digests and checksum verification."""

import base64
import hashlib
import io

import pytest

from wiser.integrity.checksum import (
    compute_checksum,
    decode_base64_or_none,
    decode_hex_or_none,
    digest,
    digest_file,
    digest_stream,
    md5_file_base64,
    sha256_file_hex,
    sha256_hex,
    to_base64,
    to_hex,
    verify,
    verify_file,
)
from wiser.schemas.exchange import DigestAlgorithm

# ------------------------------------------------------------------
# digest
# ------------------------------------------------------------------


class TestDigest:
    def test_sha256_is_default(self):
        assert digest(b"hello world") == hashlib.sha256(b"hello world").digest()

    def test_md5(self):
        assert digest(b"abc", DigestAlgorithm.MD5) == hashlib.md5(b"abc").digest()

    def test_stream_matches_buffer(self):
        data = b"x" * 20000
        assert digest_stream(io.BytesIO(data)) == digest(data)

    def test_file_matches_buffer(self, tmp_path):
        f = tmp_path / "data.bin"
        f.write_bytes(b"payload" * 5000)
        assert digest_file(f) == digest(b"payload" * 5000)

    def test_sha256_hex_known_value(self):
        # SHA-256 of "hello world"
        assert sha256_hex("hello world") == "b94d27b9934d3e08a52e52d7da7dabfac484efe37a5380ee9088f7ace2efcde9"

    def test_sha256_file_hex_empty(self, tmp_path):
        f = tmp_path / "empty"
        f.write_bytes(b"")
        assert sha256_file_hex(f) == "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"

    def test_md5_file_base64(self, tmp_path):
        f = tmp_path / "a.zip"
        f.write_bytes(b"zip bytes")
        expected = base64.b64encode(hashlib.md5(b"zip bytes").digest()).decode()
        assert md5_file_base64(f) == expected

    def test_compute_checksum(self, tmp_path):
        f = tmp_path / "a.zip"
        f.write_bytes(b"zip bytes")
        checksum = compute_checksum(f, DigestAlgorithm.MD5)
        assert checksum.algorithm == DigestAlgorithm.MD5
        assert checksum.hex == hashlib.md5(b"zip bytes").hexdigest()
        assert checksum.base64 == md5_file_base64(f)


# ------------------------------------------------------------------
# encoding
# ------------------------------------------------------------------


class TestEncoding:
    def test_hex_round_trip(self):
        raw = digest(b"abc")
        assert decode_hex_or_none(to_hex(raw)) == raw

    def test_hex_accepts_upper_case(self):
        raw = digest(b"abc")
        assert decode_hex_or_none(to_hex(raw).upper()) == raw

    def test_invalid_hex(self):
        assert decode_hex_or_none("zz") is None
        assert decode_hex_or_none("abc") is None

    def test_base64_round_trip(self):
        raw = digest(b"abc")
        assert decode_base64_or_none(to_base64(raw)) == raw

    def test_invalid_base64(self):
        assert decode_base64_or_none("not base64!!") is None


# ------------------------------------------------------------------
# verify
# ------------------------------------------------------------------


class TestVerify:
    DATA = b"prior authorization package"

    def test_raw_digest(self):
        assert verify(digest(self.DATA), self.DATA)

    def test_hex_digest(self):
        assert verify(to_hex(digest(self.DATA)), self.DATA)

    def test_base64_digest(self):
        assert verify(to_base64(digest(self.DATA)), self.DATA)

    def test_md5_base64(self):
        checksum = to_base64(digest(self.DATA, DigestAlgorithm.MD5))
        assert verify(checksum, self.DATA, DigestAlgorithm.MD5)

    @pytest.mark.parametrize("bit", [0, 7, 8 * 13 + 3, 8 * 26 + 6])
    def test_single_bit_flip_fails(self, bit):
        mutated = bytearray(self.DATA)
        mutated[bit // 8] ^= 1 << (bit % 8)
        assert not verify(digest(self.DATA), bytes(mutated))

    def test_garbage_checksum_fails(self):
        assert not verify("definitely not a checksum", self.DATA)

    def test_wrong_algorithm_fails(self):
        assert not verify(digest(self.DATA, DigestAlgorithm.MD5), self.DATA)

    def test_verify_file(self, tmp_path):
        f = tmp_path / "pkg.zip"
        f.write_bytes(self.DATA)
        assert verify_file(sha256_hex(self.DATA), f)
        assert not verify_file(sha256_hex(b"other"), f)
