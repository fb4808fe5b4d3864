"""Tests for the download workflow."""

import httpx
import pytest

from fakes import json_response, make_zip
from wiser.errors import ConfigurationError, ServiceHTTPError
from wiser.orchestrator.download import DownloadOrchestrator, is_safe_filename
from wiser.schemas.exchange import TransferDirection, TransferStatus

NAMES = [
    "ES9999.D.L1.EZKW0000000001EC.ESMD2.D071425.T2219020.zip",
    "ES9999.D.L1.EZKW0000000002EC.ESMD2.D071425.T2219021.zip",
    "ES9999.D.L1.EZKW0000000003EC.ESMD2.D071425.T2219022.zip",
]


def _run(settings, service):
    return DownloadOrchestrator(settings, transport=service.transport).run()


@pytest.fixture()
def packages(service):
    for i, name in enumerate(NAMES):
        service.remote_files[name] = make_zip({f"doc{i}/request.xml": f"<r>{i}</r>".encode()})
    return service


class TestDownloadRun:
    def test_all_objects_processed(self, settings, packages):
        details = _run(settings, packages)

        assert [d.status for d in details] == [TransferStatus.SUCCESS] * 3
        assert [d.esmd_transaction_id for d in details] == [
            "ZKW0000000001EC",
            "ZKW0000000002EC",
            "ZKW0000000003EC",
        ]
        assert all(d.delivery_type == TransferDirection.DOWNLOAD for d in details)
        assert details[0].status_description == "File downloaded and extracted successfully"
        assert (settings.download_dir / "doc1" / "request.xml").read_bytes() == b"<r>1</r>"

    def test_pickup_notification_sent_per_extracted_package(self, settings, packages):
        _run(settings, packages)

        assert len(packages.notifications) == 3
        envelope = packages.notifications[0]
        assert envelope["notificationType"] == "PICKUP"
        assert envelope["senderRoutingId"] == "MBX0001"
        item = envelope["notification"][0]
        assert item["esMDTransactionId"] == "ZKW0000000001EC"
        assert item["filename"] == NAMES[0]
        assert item["status"] == "SUCCESS"
        assert item["errorMessages"] == []
        assert item["pickupTime"] == item["submissionTime"]

    def test_extraction_failure_is_partial_success(self, settings, packages):
        packages.remote_files[NAMES[1]] = b"corrupted, not a zip"

        details = _run(settings, packages)

        assert len(details) == 3
        assert details[0].status == TransferStatus.SUCCESS
        assert details[1].status == TransferStatus.PARTIAL_SUCCESS
        assert details[1].error_messages[-1].error_code == "EXTRACTION_FAILED"
        assert details[2].status == TransferStatus.SUCCESS
        assert len(packages.notifications) == 2

    def test_failures_do_not_stop_the_loop(self, settings, packages):
        packages.presign_empty.add(NAMES[0])
        packages.download_status[NAMES[1]] = 403

        details = _run(settings, packages)

        assert [d.status for d in details] == [
            TransferStatus.FAILED,
            TransferStatus.FAILED,
            TransferStatus.SUCCESS,
        ]
        assert details[0].error_messages[0].error_code == "NO_PRESIGNED_URL"
        assert details[1].error_messages[0].error_code == "DOWNLOAD_FAILED"

    def test_presign_http_error_recorded_per_object(self, settings, packages):
        packages.presign_status[NAMES[0]] = 500

        details = _run(settings, packages)

        assert details[0].status == TransferStatus.FAILED
        assert details[0].error_messages[0].error_code == "PROCESSING_ERROR"
        assert details[1].ok and details[2].ok

    def test_malformed_presign_body_recorded_per_object(self, settings, packages):
        packages.presign_body[NAMES[1]] = "<html>gateway page</html>"

        details = _run(settings, packages)

        assert len(details) == 3
        assert details[1].status == TransferStatus.FAILED
        assert details[1].error_messages[0].error_code == "PROCESSING_ERROR"
        assert details[0].ok and details[2].ok
        assert len(packages.notifications) == 2

    def test_notification_failure_marks_failed(self, settings, packages):
        packages.notification_status = 500

        details = _run(settings, packages)

        assert all(d.status == TransferStatus.FAILED for d in details)
        assert details[0].error_messages[-1].error_code == "NOTIFICATION_FAILED"
        assert details[0].esmd_transaction_id == "ZKW0000000001EC"

    def test_malformed_pickup_ack_marks_notification_failed(self, settings, packages):
        packages.notification_body = "OK"

        details = _run(settings, packages)

        assert len(details) == 3
        assert all(d.status == TransferStatus.FAILED for d in details)
        assert all(d.error_messages[-1].error_code == "NOTIFICATION_FAILED" for d in details)
        assert details[0].error_messages[-1].error_name == "MalformedResponseError"
        assert len(packages.notifications) == 3

    def test_non_zip_accepted_as_is(self, settings, service):
        service.remote_files["report.pdf"] = b"%PDF-1.7"

        details = _run(settings, service)

        assert details[0].status == TransferStatus.SUCCESS
        assert details[0].status_description == "File downloaded successfully (not a zip file)"
        assert details[0].error_messages[0].error_code == "INVALID_FILENAME"
        assert service.notifications == []
        assert (settings.download_dir / "report.pdf").read_bytes() == b"%PDF-1.7"

    def test_unsafe_remote_filename_refused(self, settings, service):
        service.remote_files["..\\evil.zip"] = b"x"

        details = _run(settings, service)

        assert details[0].status == TransferStatus.FAILED
        assert details[0].error_messages[0].error_code == "UNSAFE_FILENAME"
        assert service.presign_requests == []

    def test_nothing_to_download(self, settings, service):
        assert _run(settings, service) == []

    def test_auth_failure(self, settings, service):
        service.auth = (503, {"error": "unavailable"})

        details = _run(settings, service)

        assert len(details) == 1
        assert details[0].status == TransferStatus.FAILED
        assert details[0].error_messages[0].error_code == "AUTH_ERROR"
        assert details[0].error_messages[0].error_description == "unavailable"

    def test_listing_failure_raises(self, settings, service):
        def refuse_listing(request):
            if request.url.path == "/wiser/download":
                return json_response(500, {"message": "down"})
            return service.handle(request)

        with pytest.raises(ServiceHTTPError):
            DownloadOrchestrator(settings, transport=httpx.MockTransport(refuse_listing)).run()


class TestConstruction:
    def test_missing_download_dir(self, settings):
        with pytest.raises(ConfigurationError):
            DownloadOrchestrator(settings.model_copy(update={"download_dir": None}))

    def test_missing_notification_endpoint(self, settings):
        with pytest.raises(ConfigurationError):
            DownloadOrchestrator(settings.model_copy(update={"notification_endpoint": ""}))


class TestIsSafeFilename:
    @pytest.mark.parametrize("name", ["pkg.zip", "A.B.C.EID.zip", "report.pdf", "ES9999.D..x.zip"])
    def test_safe(self, name):
        assert is_safe_filename(name)

    @pytest.mark.parametrize("name", ["../pkg.zip", "a/b.zip", "a\\b.zip", "", "   ", ".", ".."])
    def test_unsafe(self, name):
        assert not is_safe_filename(name)
