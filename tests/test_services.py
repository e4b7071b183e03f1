"""
Unit tests for the helper services: YouTube links, Excel export, R2 storage,
reCAPTCHA and login sessions
"""

import asyncio
from datetime import datetime, timedelta, timezone
from io import BytesIO
from unittest import mock

import httpx
import pandas as pd
import pytest
from botocore.exceptions import ClientError

from lms_backend.core import recaptcha
from lms_backend.core.config import settings
from lms_backend.models.enums import UserRole, PurchaseStatus
from lms_backend.services import session_manager, storage
from lms_backend.services.excel_export import build_excel_bytes, format_cell
from lms_backend.services.youtube import extract_youtube_video_id


class TestYoutube:
    @pytest.mark.parametrize("url", [
        "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
        "https://youtu.be/dQw4w9WgXcQ?si=abc",
        "youtube.com/embed/dQw4w9WgXcQ",
        "https://m.youtube.com/shorts/dQw4w9WgXcQ",
        "  https://www.youtube-nocookie.com/embed/dQw4w9WgXcQ  ",
    ])
    def test_recognised_links(self, url):
        assert extract_youtube_video_id(url) == "dQw4w9WgXcQ"

    @pytest.mark.parametrize("url", [
        None,
        "",
        "https://vimeo.com/76979871",
        "https://www.youtube.com/watch?v=short",
        "https://www.youtube.com/channel/UC123",
        "https://notyoutube.com/watch?v=dQw4w9WgXcQ",
    ])
    def test_rejected_links(self, url):
        assert extract_youtube_video_id(url) is None


class TestExcelExport:
    def test_format_cell(self):
        assert format_cell(None) == ""
        assert format_cell(datetime(2024, 3, 5, 14, 30)) == "2024-03-05"
        assert format_cell(UserRole.TEACHER) == "TEACHER"
        assert format_cell(12.5) == 12.5

    def test_workbook_columns_follow_headers(self):
        rows = [
            {"name": "Mona", "status": PurchaseStatus.ACTIVE, "ignored": "x"},
            {"name": "Adam", "status": None},
        ]
        content = build_excel_bytes(rows, [("name", "Student"), ("status", "Status")])

        df = pd.read_excel(BytesIO(content), engine="openpyxl", dtype=str, keep_default_na=False)
        assert list(df.columns) == ["Student", "Status"]
        assert df.to_dict("records") == [
            {"Student": "Mona", "Status": "ACTIVE"},
            {"Student": "Adam", "Status": ""},
        ]

    def test_empty_export_keeps_headers(self):
        content = build_excel_bytes([], [("name", "Student")])
        df = pd.read_excel(BytesIO(content), engine="openpyxl")
        assert list(df.columns) == ["Student"]
        assert df.empty


class TestStorage:
    @pytest.fixture
    def r2_client(self):
        client = mock.MagicMock()
        with mock.patch.object(storage, "get_r2_client", return_value=client), \
                mock.patch.object(settings, "R2_BUCKET_NAME", "lms-files"), \
                mock.patch.object(settings, "R2_PUBLIC_URL", "https://files.example.com/"):
            yield client

    def test_generated_keys_are_unique_and_sanitised(self):
        first = storage.generate_r2_key("../My Lecture (1).mp4", "videos")
        second = storage.generate_r2_key("../My Lecture (1).mp4", "videos")
        assert first != second
        assert first.startswith("videos/")
        assert first.endswith("-My_Lecture__1_.mp4")

    def test_folder_by_type(self):
        assert storage.get_folder_by_type("Video") == "videos"
        assert storage.get_folder_by_type("document") == "documents"
        assert storage.get_folder_by_type("spreadsheet") == "misc"
        assert storage.get_folder_by_type(None) == "misc"

    def test_guess_content_type(self):
        assert storage.guess_content_type("documents/notes.PDF") == "application/pdf"
        assert storage.guess_content_type("images/logo.webp") == "image/webp"
        assert storage.guess_content_type("misc/blob") == storage.DEFAULT_CONTENT_TYPE

    def test_upload_sets_cache_headers(self, r2_client):
        url = storage.upload_to_r2(b"data", "images/a.png")
        assert url == "https://files.example.com/images/a.png"
        r2_client.put_object.assert_called_once_with(
            Bucket="lms-files",
            Key="images/a.png",
            Body=b"data",
            ContentType="image/png",
            CacheControl=storage.CACHE_CONTROL,
        )

    def test_explicit_content_type_wins(self, r2_client):
        storage.upload_to_r2(b"data", "misc/blob", content_type="text/csv")
        assert r2_client.put_object.call_args.kwargs["ContentType"] == "text/csv"

    def test_file_exists(self, r2_client):
        assert storage.file_exists_in_r2("images/a.png") is True

        r2_client.head_object.side_effect = ClientError(
            {"Error": {"Code": "404", "Message": "Not Found"}, "ResponseMetadata": {"HTTPStatusCode": 404}},
            "HeadObject",
        )
        assert storage.file_exists_in_r2("images/missing.png") is False

    def test_file_exists_propagates_other_errors(self, r2_client):
        r2_client.head_object.side_effect = ClientError(
            {"Error": {"Code": "403", "Message": "Forbidden"}, "ResponseMetadata": {"HTTPStatusCode": 403}},
            "HeadObject",
        )
        with pytest.raises(ClientError):
            storage.file_exists_in_r2("images/a.png")

    def test_client_requires_configuration(self):
        with mock.patch.object(storage, "_client", None), \
                mock.patch.object(settings, "R2_ACCOUNT_ID", None):
            with pytest.raises(ValueError):
                storage.get_r2_client()


class TestRecaptcha:
    def verify_with(self, handler, token="token"):
        real_client = httpx.AsyncClient

        def client_factory(**kwargs):
            return real_client(transport=httpx.MockTransport(handler), **kwargs)

        with mock.patch.object(settings, "RECAPTCHA_SECRET_KEY", "secret"), \
                mock.patch.object(recaptcha.httpx, "AsyncClient", side_effect=client_factory):
            return asyncio.run(recaptcha.verify_recaptcha_token(token, remote_ip="10.0.0.1"))

    def test_missing_secret_rejects(self):
        with mock.patch.object(settings, "RECAPTCHA_SECRET_KEY", None):
            assert asyncio.run(recaptcha.verify_recaptcha_token("token")) is False

    def test_google_accepts(self):
        seen = {}

        def handler(request):
            seen["body"] = request.content.decode()
            return httpx.Response(200, json={"success": True})

        assert self.verify_with(handler) is True
        assert "secret=secret" in seen["body"]
        assert "remoteip=10.0.0.1" in seen["body"]

    def test_google_rejects(self):
        assert self.verify_with(lambda request: httpx.Response(200, json={"success": False, "error-codes": ["bad"]})) is False

    def test_http_failure_rejects(self):
        assert self.verify_with(lambda request: httpx.Response(500)) is False


class TestSessions:
    def test_student_session_is_single_device(self, db, student):
        first = session_manager.create_session(db, student)
        second = session_manager.create_session(db, student)
        assert first != second
        assert session_manager.validate_session(db, student, second) is True
        assert session_manager.validate_session(db, student, first) is False

    def test_staff_token_not_bound_to_session(self, db, teacher):
        session_manager.create_session(db, teacher)
        assert session_manager.validate_session(db, teacher, None) is True

    def test_inactive_user_rejected(self, db, student):
        session_id = session_manager.create_session(db, student)
        session_manager.end_session(db, student)
        assert session_manager.validate_session(db, student, session_id) is False

    def test_logout_due_after_grace_period(self, student):
        scheduled = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        student.logout_scheduled_at = scheduled.replace(tzinfo=None)
        grace = timedelta(minutes=settings.SESSION_LOGOUT_GRACE_MINUTES)
        assert session_manager.is_logout_due(student, now=scheduled + grace - timedelta(seconds=1)) is False
        assert session_manager.is_logout_due(student, now=scheduled + grace) is True

    def test_cancel_scheduled_logout(self, db, student):
        session_id = session_manager.create_session(db, student)
        session_manager.schedule_delayed_logout(db, student)
        session_manager.cancel_scheduled_logout(db, student)
        assert student.logout_scheduled_at is None
        assert session_manager.validate_session(db, student, session_id) is True

    def test_reset_all_sessions(self, db, student, teacher):
        session_manager.create_session(db, student)
        session_manager.create_session(db, teacher)
        assert session_manager.reset_all_sessions(db) >= 2
        db.refresh(student)
        assert student.is_active is False
        assert student.session_id is None


class TestResetSessionsCommand:
    def test_main_resets_sessions(self, engine, db, student, capsys):
        from sqlalchemy.orm import sessionmaker
        from lms_backend.scripts import reset_sessions

        session_manager.create_session(db, student)
        with mock.patch.object(reset_sessions, "SessionLocal", sessionmaker(bind=engine)):
            assert reset_sessions.main() == 0

        assert "Reset 1 user sessions" in capsys.readouterr().out
        db.refresh(student)
        assert student.is_active is False
