"""Shared fixtures for Wiser tests."""

import os

import pytest

from fakes import FakeService
from wiser.config import HttpTimeouts, Settings

BASE_URL = "https://esmd.test"


@pytest.fixture(autouse=True)
def _no_sops(monkeypatch):
    """Ensure tests never try to invoke SOPS."""
    monkeypatch.setenv("WISER_USE_SOPS", "false")


@pytest.fixture()
def project_root():
    """Return the project root path."""
    return os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


@pytest.fixture()
def settings(tmp_path):
    """Complete settings pointing at a fake service and temp directories."""
    upload_dir = tmp_path / "outbox"
    download_dir = tmp_path / "inbox"
    upload_dir.mkdir()
    return Settings(
        environment="dev",
        base_urls={"dev": BASE_URL},
        auth_endpoint="/auth/token",
        download_endpoint="/wiser/download",
        upload_endpoint="/wiser/upload",
        notification_endpoint="/wiser/notification",
        status_endpoint="/wiser/status",
        client_id="client-12345678",
        client_secret="s3cret",
        mailbox_id="MBX0001",
        scope_upload="wiser/upload",
        scope_download="wiser/download",
        scope_status="wiser/status",
        upload_dir=upload_dir,
        download_dir=download_dir,
        upload_part_size=4,
        timeouts=HttpTimeouts(connect=1, read=1, transfer_read=1, pool=1),
    )


@pytest.fixture()
def service():
    """A scriptable fake of the remote service."""
    return FakeService()
