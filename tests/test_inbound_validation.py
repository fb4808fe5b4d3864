"""Tests for PA reject and admin error validation."""

import json

import pytest

from wiser.schemas.exchange import ErrorMessage
from wiser.validation.inbound import (
    build_error_report,
    error_message,
    validate_admin_errors,
    validate_admin_errors_json,
    validate_pa_reject,
    validate_pa_reject_json,
)


def _codes(errors):
    return [e.error_code for e in errors]


def _reason(code="A1", text="Missing data"):
    return {"rejectreasoncode": code, "rejectreason": text}


VALID_REJECT = {
    "notificationType": "PAREJECT",
    "senderRoutingId": "MBX0001",
    "esmdtransactionid": "ZKW0007260517EC",
    "requester": {"rejectreasoncodes": [_reason()]},
    "facilityProvider": {"qualifier": "FA", "rejectreasoncodes": [_reason()]},
    "attendingProvider": {"qualifier": "71", "rejectreasoncodes": [_reason()]},
}

VALID_ADMIN = {
    "notificationType": "ADMINERROR",
    "senderRoutingId": "MBX0001",
    "notification": [
        {
            "esMDTransactionId": "ZKW0007260517EC",
            "creationTime": "2025-07-14T22:19:02.1234560-04:00",
            "submissionTime": "2025-07-14T22:19:02.1234560-04:00",
            "errorMessages": [
                {"errorCode": "E101", "errorName": "Bad Package", "errorDescription": "Corrupt"}
            ],
        }
    ],
}


class TestValidatePAReject:
    def test_valid(self):
        assert validate_pa_reject(VALID_REJECT) == []

    def test_none_is_empty_response(self):
        assert _codes(validate_pa_reject(None)) == ["EMPTY_PAREJECT_RESPONSE"]

    def test_missing_top_level_fields_in_order(self):
        errors = validate_pa_reject({"notificationType": " "})
        assert _codes(errors) == [
            "NOTIFICATION_TYPE_MISSING_ERR_CD",
            "ESMD_TRANS_ID_MISSING_ERR_CD",
            "SENDER_ROUTING_ID_MISSING_ERR_CD",
        ]

    def test_blank_reason_fields(self):
        payload = {**VALID_REJECT, "beneficiary": {"rejectreasoncodes": [_reason("", None)]}}
        assert _codes(validate_pa_reject(payload)) == ["BENEFICIARY_REASON_CD", "BENEFICIARY_REASON"]

    def test_null_reason_entries_skipped(self):
        payload = {**VALID_REJECT, "patientevent": {"rejectreasoncodes": [None]}}
        assert validate_pa_reject(payload) == []

    @pytest.mark.parametrize(
        "field, qualifier, prefix",
        [
            ("facilityProvider", "DK", "FACILITY_PROVIDER"),
            ("orderingProvider", "FA", "ORDERING_PROVIDER"),
            ("renderingOrSupplierProvider", "DK", "RENDERING_PROVIDER"),
            ("referringProvider", "SJ", "REFERRING_PROVIDER"),
            ("operatingProvider", "71", "OPERATING_PROVIDER"),
            ("attendingProvider", "72", "ATTENDING_PROVIDER"),
        ],
    )
    def test_wrong_qualifier(self, field, qualifier, prefix):
        payload = {**VALID_REJECT, field: {"qualifier": qualifier, "rejectreasoncodes": [_reason()]}}
        assert _codes(validate_pa_reject(payload)) == [f"{prefix}_QUALIFIER_CD"]

    def test_qualifier_ignored_without_reasons(self):
        payload = {**VALID_REJECT, "orderingProvider": {"qualifier": "XX"}}
        assert validate_pa_reject(payload) == []

    def test_missing_optional_blocks_are_fine(self):
        payload = {k: VALID_REJECT[k] for k in ("notificationType", "senderRoutingId", "esmdtransactionid")}
        assert validate_pa_reject(payload) == []

    def test_error_text_from_catalogue(self):
        error = validate_pa_reject(None)[0]
        assert error.error_name == "PA reject response is empty"
        assert error.error_description == error.error_name

    def test_custom_messages_override(self):
        errors = validate_pa_reject(None, {"EMPTY_PAREJECT_RESPONSE": "Nothing received"})
        assert errors[0].error_description == "Nothing received"

    def test_wrong_shape_is_malformed(self):
        assert _codes(validate_pa_reject({"requester": "not-an-object"})) == ["MALFORMED_PAYLOAD"]


class TestValidatePARejectJson:
    def test_valid_json(self):
        assert validate_pa_reject_json(json.dumps(VALID_REJECT)) == []

    @pytest.mark.parametrize("text", ["", "  ", "null", b"null"])
    def test_empty(self, text):
        assert _codes(validate_pa_reject_json(text)) == ["EMPTY_PAREJECT_RESPONSE"]

    def test_not_json(self):
        assert _codes(validate_pa_reject_json("{broken")) == ["MALFORMED_PAYLOAD"]

    def test_bytes(self):
        assert validate_pa_reject_json(json.dumps(VALID_REJECT).encode()) == []


class TestValidateAdminErrors:
    def test_valid(self):
        assert validate_admin_errors(VALID_ADMIN) == []

    def test_none_is_empty_response(self):
        assert _codes(validate_admin_errors(None)) == ["EMPTY_ADMINERROR_RESPONSE"]

    def test_missing_notification_element_stops(self):
        errors = validate_admin_errors({"notificationType": "ADMINERROR", "notification": []})
        assert _codes(errors) == [
            "SENDER_ROUTING_ID_MISSING_ERR_CD",
            "NOTIFICATION_ELEMENT_MISSING_ERR_CD",
        ]

    def test_item_fields(self):
        payload = {**VALID_ADMIN, "notification": [{"errorMessages": []}]}
        assert _codes(validate_admin_errors(payload)) == [
            "ESMD_TRANS_ID_MISSING_ERR_CD",
            "CREATION_TIME_MSSING_ERR_CD",
            "SUBMISSION_TIME_MISSING_ERR_CD",
            "ERROR_MSG_ELEMENT_MISSING_ERR_CD",
        ]

    def test_error_entry_fields(self):
        item = {**VALID_ADMIN["notification"][0], "errorMessages": [{"errorDescription": "x"}]}
        payload = {**VALID_ADMIN, "notification": [item]}
        assert _codes(validate_admin_errors(payload)) == ["ERROR_CD_MISSING_ERR_CD", "ERR_NAME_MISSING_ERR_CD"]

    @pytest.mark.parametrize(
        "entry",
        [
            {"errorCode": "Other", "errorName": "Something"},
            {"errorCode": "E1", "errorName": "OTHER", "errorDescription": " "},
        ],
    )
    def test_other_requires_description(self, entry):
        item = {**VALID_ADMIN["notification"][0], "errorMessages": [entry]}
        payload = {**VALID_ADMIN, "notification": [item]}
        assert _codes(validate_admin_errors(payload)) == ["ERR_DES_MISSING_ERR_CD"]

    def test_other_with_description_is_valid(self):
        entry = {"errorCode": "other", "errorName": "Other", "errorDescription": "Explained"}
        item = {**VALID_ADMIN["notification"][0], "errorMessages": [entry]}
        assert validate_admin_errors({**VALID_ADMIN, "notification": [item]}) == []

    def test_json_entry_points(self):
        assert validate_admin_errors_json(json.dumps(VALID_ADMIN)) == []
        assert _codes(validate_admin_errors_json("null")) == ["EMPTY_ADMINERROR_RESPONSE"]
        assert _codes(validate_admin_errors_json("[1, 2")) == ["MALFORMED_PAYLOAD"]


class TestErrorReport:
    def test_nothing_to_report(self):
        assert build_error_report([]) is None

    def test_wraps_errors(self):
        errors = [error_message("EMPTY_PAREJECT_RESPONSE")]

        report = build_error_report(errors)

        assert len(report.status_details) == 1
        assert report.status_details[0].status == "FAILED"
        assert report.status_details[0].error_messages == errors

    def test_unknown_code_uses_code_as_text(self):
        assert error_message("SOMETHING_NEW") == ErrorMessage(
            error_code="SOMETHING_NEW", error_name="SOMETHING_NEW", error_description="SOMETHING_NEW"
        )
