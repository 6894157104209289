"""
Tests for upload checks, object paths and the object store client.

The store is faked with httpx.MockTransport; no network access.
"""

from unittest.mock import patch

import httpx
import pytest

from careerbird.core.config import settings
from careerbird.core.exceptions import PersistenceError
from careerbird.services.storage_service import StorageService, check_upload, object_path

BASE_URL = "https://storage.example.test"


def _service(handler):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return StorageService(base_url=BASE_URL, api_key="service-key", bucket="tryouts", client=client)


class TestCheckUpload:

    @pytest.mark.parametrize("kind, filename, content_type", [
        ("proposal", "plan.pdf", None),
        ("proposal", "plan", "application/pdf"),
        ("transcript", "grades.PDF", None),
        ("video", "intro.mp4", None),
        ("video", "intro", "video/webm"),
        ("portfolio", "work.zip", None),
        ("portfolio", "work.rar", None),
    ])
    def test_expected_types_pass(self, kind, filename, content_type):
        assert check_upload(kind, filename, content_type).ok

    @pytest.mark.parametrize("kind, filename, message", [
        ("proposal", "plan.docx", "PDF"),
        ("video", "intro.pdf", "video file"),
        ("portfolio", "work.pdf", ".zip or .rar"),
    ])
    def test_unexpected_types_warn(self, kind, filename, message):
        result = check_upload(kind, filename)

        assert not result.ok
        assert message in result.warnings[0]

    def test_oversized_file_warns(self):
        result = check_upload("proposal", "plan.pdf", size=settings.MAX_UPLOAD_BYTES + 1)

        assert result.warnings == ["File is larger than 10 MB"]


class TestObjectPath:

    def test_groups_by_kind_and_owner(self):
        assert object_path("proposal", 12, "plan.pdf") == "proposals/12/plan.pdf"
        assert object_path("document", "student-1", "cv.pdf") == "documents/student-1/cv.pdf"

    def test_filename_is_made_safe(self):
        assert object_path("video", 3, "../../etc/My Intro (final).mp4") == "videos/3/My_Intro_final_.mp4"

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            object_path("essay", 1, "essay.pdf")


class TestStorageService:

    def test_upload_posts_to_bucket_and_returns_path(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["upsert"] = request.headers["x-upsert"]
            seen["type"] = request.headers["content-type"]
            seen["body"] = request.content
            return httpx.Response(200, json={"Key": "tryouts/proposals/7/plan.pdf"})

        path = _service(handler).upload("proposal", 7, "plan.pdf", b"%PDF-1.7")

        assert path == "proposals/7/plan.pdf"
        assert seen["url"] == f"{BASE_URL}/storage/v1/object/tryouts/proposals/7/plan.pdf"
        assert seen["auth"] == "Bearer service-key"
        assert seen["upsert"] == "true"
        assert seen["type"] == "application/pdf"
        assert seen["body"] == b"%PDF-1.7"

    @patch("careerbird.utils.retry.time.sleep")
    def test_server_errors_are_retried_then_reported(self, mock_sleep):
        attempts = []

        def handler(request):
            attempts.append(request)
            return httpx.Response(500, json={"error": "boom"})

        with pytest.raises(PersistenceError, match="retry"):
            _service(handler).upload("video", 7, "intro.mp4", b"\x00\x01")

        assert len(attempts) == 3
        assert mock_sleep.call_count == 2

    @patch("careerbird.utils.retry.time.sleep")
    def test_client_errors_are_not_retried(self, mock_sleep):
        attempts = []

        def handler(request):
            attempts.append(request)
            return httpx.Response(403, json={"error": "forbidden"})

        with pytest.raises(PersistenceError):
            _service(handler).upload("video", 7, "intro.mp4", b"\x00\x01")

        assert len(attempts) == 1
        mock_sleep.assert_not_called()

    @patch("careerbird.utils.retry.time.sleep")
    def test_transport_errors_are_retried(self, mock_sleep):
        attempts = []

        def handler(request):
            attempts.append(request)
            if len(attempts) < 3:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200)

        path = _service(handler).upload("portfolio", 7, "work.zip", b"PK")

        assert path == "portfolios/7/work.zip"
        assert len(attempts) == 3
        assert mock_sleep.call_count == 2

    @patch("careerbird.utils.retry.time.sleep")
    def test_unreachable_store_gives_up(self, mock_sleep):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(PersistenceError):
            _service(handler).upload("proposal", 7, "plan.pdf", b"%PDF")

        assert mock_sleep.call_count == 2

    def test_missing_configuration(self):
        service = StorageService(base_url="", api_key="")

        with pytest.raises(PersistenceError, match="not configured"):
            service.upload("proposal", 7, "plan.pdf", b"%PDF")
