"""Tests for transaction ids derived from filenames."""

import pytest

from wiser.schemas.exchange import TransferStatus
from wiser.transactions import derive_transaction, extract_transaction_id

SAMPLE = "ES9999.D.L1.EZKW0007260517EC.ESMD2.D071425.T2219020.zip"


class TestExtractTransactionId:
    def test_sample_filename(self):
        assert extract_transaction_id(SAMPLE) == "ZKW0007260517EC"

    def test_upper_case_extension(self):
        assert extract_transaction_id(SAMPLE[:-4] + ".ZIP") == "ZKW0007260517EC"

    def test_without_extension(self):
        assert extract_transaction_id("A.B.C.EXYZ123.rest") == "XYZ123"

    def test_segment_without_prefix_kept(self):
        assert extract_transaction_id("A.B.C.XYZ123.rest.zip") == "XYZ123"

    def test_single_e_is_kept(self):
        assert extract_transaction_id("A.B.C.E.rest.zip") == "E"

    def test_exactly_four_segments(self):
        assert extract_transaction_id("A.B.C.EID1.zip") == "ID1"

    @pytest.mark.parametrize("name", ["A.B.C.zip", "nodots.zip", "", "A.B.C..zip", "A.B.C.."])
    def test_too_few_segments(self, name):
        assert extract_transaction_id(name) is None


class TestDeriveTransaction:
    def test_success(self):
        record = derive_transaction(SAMPLE)
        assert record.esmd_transaction_id == "ZKW0007260517EC"
        assert record.status == TransferStatus.SUCCESS
        assert record.error_messages == []

    def test_failure_is_a_record_not_an_exception(self):
        record = derive_transaction("short.zip")
        assert record.esmd_transaction_id is None
        assert record.status == TransferStatus.FAILED
        assert record.error_messages[0].error_code == "INVALID_FILENAME"
        assert "short.zip" in record.error_messages[0].error_description
