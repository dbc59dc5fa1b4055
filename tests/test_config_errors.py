"""Tests for settings and the error taxonomy."""

import pytest

from governance_archive.config import Settings
from governance_archive.errors import (
    AccessError,
    ArchiveError,
    CertificationFailure,
    StorageNotFound,
    ValidationError,
)
from governance_archive.storage.locator import _get_default_locator_config


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("ARCHIVE_SIGNED_URL_TTL_SECONDS", "ARCHIVE_STRICT_UNKNOWN_LANE", "ARCHIVE_SANDBOX_BUCKET"):
            monkeypatch.delenv(name, raising=False)
        settings = Settings(_env_file=None)

        assert settings.signed_url_ttl_seconds == 600
        assert settings.repair_list_limit == 200
        assert settings.repair_extension == ".pdf"
        assert settings.signed_marker == "-signed"
        assert settings.sandbox_bucket == "governance_sandbox"
        assert settings.truth_bucket == "governance_truth"
        assert settings.uploads_bucket == "minute_book"
        assert settings.strict_unknown_lane is False

    def test_reads_prefixed_environment(self, monkeypatch):
        monkeypatch.setenv("ARCHIVE_STRICT_UNKNOWN_LANE", "true")
        monkeypatch.setenv("ARCHIVE_SIGNED_URL_TTL_SECONDS", "120")
        monkeypatch.setenv("ARCHIVE_TRUTH_BUCKET", "prod_archive")

        settings = Settings(_env_file=None)

        assert settings.strict_unknown_lane is True
        assert settings.signed_url_ttl_seconds == 120
        assert settings.truth_bucket == "prod_archive"

    def test_locator_config_follows_settings(self, monkeypatch):
        from governance_archive import config

        monkeypatch.setattr(config, "settings", Settings(_env_file=None, uploads_bucket="uploads", strict_unknown_lane=True))

        locator_config = _get_default_locator_config()

        assert locator_config.uploads_bucket == "uploads"
        assert locator_config.lanes.strict_unknown is True


class TestErrors:
    def test_all_errors_share_a_base(self):
        for error in (
            StorageNotFound("b", "p"),
            AccessError("denied"),
            ValidationError("bad"),
            CertificationFailure("nope"),
        ):
            assert isinstance(error, ArchiveError)

    @pytest.mark.parametrize(
        "error,code,category",
        [
            (StorageNotFound("minute_book", "a.pdf"), "OBJECT_NOT_FOUND", "not_found"),
            (AccessError("denied", code="ACCESS_DENIED"), "ACCESS_DENIED", "access_error"),
            (AccessError("reset"), "TRANSPORT_FAILED", "access_error"),
            (ValidationError("x", code="LEDGER_ORIGINATED"), "LEDGER_ORIGINATED", "validation_error"),
            (CertificationFailure("remote said no"), "CERTIFICATION_FAILED", "certification_failure"),
        ],
    )
    def test_codes(self, error, code, category):
        data = error.to_dict()
        assert data["code"] == code
        assert data["error"] == category

    def test_not_found_carries_location(self):
        data = StorageNotFound("minute_book", "acme/a.pdf").to_dict()
        assert data["bucket"] == "minute_book"
        assert data["path"] == "acme/a.pdf"
        assert "minute_book" in data["message"]

    def test_certification_details(self):
        error = CertificationFailure("remote said no", details={"hint": "upload a PDF"})
        assert error.message == "remote said no"
        assert error.to_dict()["details"] == {"hint": "upload a PDF"}
