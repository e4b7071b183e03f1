"""
Course chat, saved documents, notifications and upload tests
"""

import asyncio
from unittest import mock

from lms_backend.core.config import settings
from lms_backend.models.course_model import Chapter
from lms_backend.models.enums import UserRole
from lms_backend.services import storage


class TestCourseChat:
    def test_purchasers_and_teachers_share_the_chat(self, client, course, student, student_headers, teacher_headers, make_purchase):
        make_purchase(student, course)
        url = f"/api/v1/courses/{course.id}/chat"

        assert client.post(url, json={"message": "  Is chapter 2 out?  "}, headers=student_headers).status_code == 201
        assert client.post(url, json={"message": "Tomorrow"}, headers=teacher_headers).status_code == 201

        messages = client.get(url, headers=student_headers).json()
        assert [m["message"] for m in messages] == ["Is chapter 2 out?", "Tomorrow"]
        assert messages[1]["user"]["role"] == "TEACHER"

    def test_non_purchaser_denied(self, client, course, student_headers):
        response = client.get(f"/api/v1/courses/{course.id}/chat", headers=student_headers)
        assert response.status_code == 403

    def test_cancelled_purchase_denied(self, client, course, student, student_headers, make_purchase):
        from lms_backend.models.enums import PurchaseStatus
        make_purchase(student, course, status=PurchaseStatus.CANCELLED)
        assert client.get(f"/api/v1/courses/{course.id}/chat", headers=student_headers).status_code == 403

    def test_empty_message_rejected(self, client, course, teacher_headers):
        response = client.post(f"/api/v1/courses/{course.id}/chat", json={"message": "   "}, headers=teacher_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Message cannot be empty"

    def test_long_message_rejected(self, client, course, teacher_headers):
        text = "x" * (settings.CHAT_MESSAGE_MAX_LENGTH + 1)
        response = client.post(f"/api/v1/courses/{course.id}/chat", json={"message": text}, headers=teacher_headers)
        assert response.status_code == 400

    def test_only_latest_messages_returned(self, client, course, teacher_headers):
        url = f"/api/v1/courses/{course.id}/chat"
        with mock.patch.object(settings, "CHAT_MESSAGE_LIMIT", 2):
            for text in ("one", "two", "three"):
                client.post(url, json={"message": text}, headers=teacher_headers)
            messages = client.get(url, headers=teacher_headers).json()
        assert [m["message"] for m in messages] == ["two", "three"]


class TestSavedDocuments:
    def document(self, course):
        chapter = course.chapters[0]
        return {
            "attachment_id": "att-1",
            "course_id": course.id,
            "chapter_id": chapter.id,
            "attachment_name": "Slides.pdf",
            "attachment_url": "https://cdn.example.com/slides.pdf",
        }

    def test_save_and_unsave(self, client, course, student_headers):
        response = client.post("/api/v1/saved-documents/", json=self.document(course), headers=student_headers)
        assert response.status_code == 201

        status = client.get("/api/v1/saved-documents/by-attachment/att-1", headers=student_headers).json()
        assert status["is_saved"] is True

        assert client.delete("/api/v1/saved-documents/by-attachment/att-1", headers=student_headers).status_code == 204
        assert client.get("/api/v1/saved-documents/", headers=student_headers).json() == []

    def test_duplicate_save(self, client, course, student_headers):
        client.post("/api/v1/saved-documents/", json=self.document(course), headers=student_headers)
        response = client.post("/api/v1/saved-documents/", json=self.document(course), headers=student_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Document already saved"

    def test_cannot_delete_someone_elses_document(self, client, course, student_headers, make_user, login_as):
        saved = client.post("/api/v1/saved-documents/", json=self.document(course), headers=student_headers).json()
        other = make_user(UserRole.USER)
        response = client.delete(f"/api/v1/saved-documents/{saved['id']}", headers=login_as(other))
        assert response.status_code == 403


class TestNotifications:
    def test_publishing_chapter_notifies_purchasers(self, client, db, course, student, make_user, make_purchase, login_as, student_headers, teacher_headers):
        outsider = make_user(UserRole.USER)
        make_purchase(student, course)
        chapter = Chapter(course_id=course.id, title="Graphs", position=2, is_published=False)
        db.add(chapter)
        db.commit()

        client.patch(f"/api/v1/courses/{course.id}/chapters/{chapter.id}/publish", headers=teacher_headers)

        inbox = client.get("/api/v1/notifications", headers=student_headers).json()
        assert inbox["unread_count"] == 1
        assert inbox["notifications"][0]["type"] == "NEW_CHAPTER"
        assert inbox["notifications"][0]["chapter_id"] == chapter.id
        assert "Graphs" in inbox["notifications"][0]["message"]

        outsider_inbox = client.get("/api/v1/notifications", headers=login_as(outsider)).json()
        assert outsider_inbox["unread_count"] == 0

    def test_mark_as_read(self, client, db, course, student, make_purchase, student_headers, teacher_headers):
        make_purchase(student, course)
        for title in ("Trees", "Graphs"):
            chapter = Chapter(course_id=course.id, title=title, position=5, is_published=False)
            db.add(chapter)
            db.commit()
            client.patch(f"/api/v1/courses/{course.id}/chapters/{chapter.id}/publish", headers=teacher_headers)

        inbox = client.get("/api/v1/notifications", headers=student_headers).json()
        first_id = inbox["notifications"][0]["id"]
        assert client.patch("/api/v1/notifications", json={"notification_id": first_id}, headers=student_headers).status_code == 200
        assert client.get("/api/v1/notifications", headers=student_headers).json()["unread_count"] == 1

        response = client.patch("/api/v1/notifications", json={"mark_all_as_read": True}, headers=student_headers)
        assert response.json()["updated"] == 1
        assert client.get("/api/v1/notifications", headers=student_headers).json()["unread_count"] == 0

    def test_unknown_notification(self, client, student_headers):
        response = client.patch("/api/v1/notifications", json={"notification_id": "missing"}, headers=student_headers)
        assert response.status_code == 404


class TestChapterMedia:
    def test_youtube_link_is_parsed(self, client, course, teacher_headers):
        chapter = course.chapters[0]
        response = client.post(
            f"/api/v1/courses/{course.id}/chapters/{chapter.id}/youtube",
            json={"youtube_url": "https://youtu.be/dQw4w9WgXcQ?t=42"},
            headers=teacher_headers,
        )
        assert response.status_code == 200
        assert response.json()["video_type"] == "YOUTUBE"
        assert response.json()["youtube_video_id"] == "dQw4w9WgXcQ"

    def test_invalid_youtube_link(self, client, course, teacher_headers):
        chapter = course.chapters[0]
        response = client.post(
            f"/api/v1/courses/{course.id}/chapters/{chapter.id}/youtube",
            json={"youtube_url": "https://vimeo.com/123"},
            headers=teacher_headers,
        )
        assert response.status_code == 400

    def test_uploaded_video_clears_youtube_id(self, client, course, teacher_headers):
        chapter = course.chapters[0]
        base = f"/api/v1/courses/{course.id}/chapters/{chapter.id}"
        client.post(f"{base}/youtube", json={"youtube_url": "https://youtu.be/dQw4w9WgXcQ"}, headers=teacher_headers)
        response = client.post(f"{base}/upload-video", json={"video_url": "https://cdn.example.com/v.mp4"}, headers=teacher_headers)
        assert response.json()["video_type"] == "UPLOAD"
        assert response.json()["youtube_video_id"] is None

    def test_attachments_follow_access(self, client, course, student, student_headers, teacher_headers, make_purchase):
        chapter = course.chapters[0]
        base = f"/api/v1/courses/{course.id}/chapters/{chapter.id}/attachments"
        first = client.post(base, json={"url": "https://cdn.example.com/a.pdf", "name": "A"}, headers=teacher_headers)
        second = client.post(base, json={"url": "https://cdn.example.com/b.pdf"}, headers=teacher_headers)
        assert [first.json()["position"], second.json()["position"]] == [0, 1]

        assert client.get(base, headers=student_headers).status_code == 403
        make_purchase(student, course)
        assert [a["name"] for a in client.get(base, headers=student_headers).json()] == ["A", "Attachment"]


class TestUploads:
    def test_upload_goes_to_r2(self, client, teacher_headers):
        with mock.patch.object(storage, "is_storage_configured", return_value=True), \
                mock.patch.object(storage, "upload_to_r2", return_value="https://files.example.com/videos/x.mp4") as upload:
            response = client.post(
                "/api/v1/uploads/",
                files={"file": ("lecture 1.mp4", b"\x00\x01", "video/mp4")},
                data={"type": "video"},
                headers=teacher_headers,
            )
        assert response.status_code == 201
        assert response.json()["url"] == "https://files.example.com/videos/x.mp4"
        key = upload.call_args[0][1]
        assert key.startswith("videos/")
        assert key.endswith("lecture_1.mp4")

    def test_upload_without_storage(self, client, teacher_headers):
        with mock.patch.object(storage, "is_storage_configured", return_value=False):
            response = client.post(
                "/api/v1/uploads/", files={"file": ("a.pdf", b"%PDF", "application/pdf")}, headers=teacher_headers
            )
        assert response.status_code == 503

    def test_students_cannot_upload(self, client, student_headers):
        response = client.post(
            "/api/v1/uploads/", files={"file": ("a.pdf", b"%PDF", "application/pdf")}, headers=student_headers
        )
        assert response.status_code == 403

    def test_upload_runs_outside_the_event_loop(self, client, teacher_headers):
        loops = []

        def fake_upload(data, key, content_type=None):
            try:
                loops.append(asyncio.get_running_loop())
            except RuntimeError:
                loops.append(None)
            return f"https://files.example.com/{key}"

        with mock.patch.object(storage, "is_storage_configured", return_value=True), \
                mock.patch.object(storage, "upload_to_r2", side_effect=fake_upload):
            response = client.post(
                "/api/v1/uploads/", files={"file": ("a.pdf", b"%PDF", "application/pdf")}, headers=teacher_headers
            )
        assert response.status_code == 201
        assert loops == [None]
