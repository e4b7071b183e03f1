"""
Course authoring, publishing, catalogue and access tests
"""

from lms_backend.models.course_model import Chapter
from lms_backend.models.enums import UserRole

API = "/api/v1/courses"


class TestCourseAuthoring:
    def test_student_cannot_create_course(self, client, student_headers):
        response = client.post(f"{API}/", json={"title": "Hacking"}, headers=student_headers)
        assert response.status_code == 403

    def test_publish_requires_complete_course(self, client, teacher_headers):
        course = client.post(f"{API}/", json={"title": "Databases"}, headers=teacher_headers).json()
        assert course["is_published"] is False

        response = client.patch(f"{API}/{course['id']}/publish", headers=teacher_headers)
        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail.startswith("Missing required fields:")
        for field in ("description", "image", "price", "published chapter"):
            assert field in detail

    def test_publish_complete_course(self, client, teacher_headers):
        course_id = client.post(f"{API}/", json={"title": "Databases"}, headers=teacher_headers).json()["id"]
        client.patch(
            f"{API}/{course_id}",
            json={"description": "SQL from scratch", "image_url": "https://cdn.example.com/db.png", "price": 300},
            headers=teacher_headers,
        )
        chapter = client.post(f"{API}/{course_id}/chapters/", json={"title": "SELECT"}, headers=teacher_headers).json()
        assert chapter["position"] == 1
        toggled = client.patch(f"{API}/{course_id}/chapters/{chapter['id']}/publish", headers=teacher_headers)
        assert toggled.json()["is_published"] is True

        response = client.patch(f"{API}/{course_id}/publish", headers=teacher_headers)
        assert response.status_code == 200
        assert response.json()["is_published"] is True

    def test_unpublishing_last_chapter_unpublishes_course(self, client, db, course, teacher_headers):
        chapter = course.chapters[0]
        response = client.patch(f"{API}/{course.id}/chapters/{chapter.id}/publish", headers=teacher_headers)
        assert response.json()["is_published"] is False

        db.refresh(course)
        assert course.is_published is False

    def test_new_chapters_are_appended(self, client, course, teacher_headers):
        response = client.post(f"{API}/{course.id}/chapters/", json={"title": "Heaps"}, headers=teacher_headers)
        assert response.status_code == 201
        assert response.json()["position"] == 2

    def test_blank_targeting_means_everyone(self, client, course, teacher_headers):
        response = client.patch(f"{API}/{course.id}", json={"target_college": "  "}, headers=teacher_headers)
        assert response.status_code == 200
        assert response.json()["target_college"] is None

    def test_other_teacher_cannot_edit(self, client, course, make_user, login_as):
        outsider = make_user(UserRole.TEACHER)
        response = client.patch(f"{API}/{course.id}", json={"title": "Mine now"}, headers=login_as(outsider))
        assert response.status_code == 403


class TestAllowedTeachers:
    def test_admin_grants_edit_rights(self, client, course, make_user, login_as, admin_headers):
        helper = make_user(UserRole.TEACHER)
        response = client.put(
            f"{API}/{course.id}/allowed-teachers", json={"teacher_ids": [helper.id]}, headers=admin_headers
        )
        assert response.status_code == 200
        flags = {t["id"]: t for t in response.json()}
        assert flags[helper.id]["is_allowed"] is True
        assert flags[course.user_id]["is_creator"] is True

        edit = client.patch(f"{API}/{course.id}", json={"title": "Algorithms II"}, headers=login_as(helper))
        assert edit.status_code == 200

    def test_unknown_teacher_id(self, client, course, student, admin_headers):
        response = client.put(
            f"{API}/{course.id}/allowed-teachers", json={"teacher_ids": [student.id]}, headers=admin_headers
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid teacher IDs"

    def test_teacher_cannot_manage_list(self, client, course, teacher_headers):
        response = client.get(f"{API}/{course.id}/allowed-teachers", headers=teacher_headers)
        assert response.status_code == 403


class TestCatalogue:
    def test_only_published_courses_listed(self, client, make_course, teacher, course, student_headers):
        make_course(teacher, title="Draft", is_published=False)
        response = client.get(f"{API}/", headers=student_headers)
        assert response.status_code == 200
        titles = [c["title"] for c in response.json()]
        assert titles == ["Algorithms"]

    def test_progress_included_for_purchased_courses(self, client, db, course, student, student_headers, make_purchase):
        make_purchase(student, course)
        chapter = course.chapters[0]
        client.put(f"{API}/{course.id}/chapters/{chapter.id}/progress", json={"is_completed": True}, headers=student_headers)

        response = client.get(f"{API}/", params={"includeProgress": "true"}, headers=student_headers)
        entry = response.json()[0]
        assert entry["is_purchased"] is True
        assert entry["progress"] == 100.0

    def test_unpublished_course_hidden_from_students(self, client, make_course, teacher, student_headers, teacher_headers):
        draft = make_course(teacher, title="Draft", is_published=False)
        assert client.get(f"{API}/{draft.id}", headers=student_headers).status_code == 404
        assert client.get(f"{API}/{draft.id}", headers=teacher_headers).status_code == 200


class TestAccessAndEnrolment:
    def test_paid_course_requires_purchase(self, client, course, student, student_headers, make_purchase):
        response = client.get(f"{API}/{course.id}/access", headers=student_headers)
        assert response.json() == {"has_access": False}

        make_purchase(student, course)
        response = client.get(f"{API}/{course.id}/access", headers=student_headers)
        assert response.json() == {"has_access": True}

    def test_enroll_in_free_course(self, client, make_course, teacher, student_headers):
        free_course = make_course(teacher, title="Intro", price=0, is_free=True)
        response = client.post(f"{API}/{free_course.id}/enroll", headers=student_headers)
        assert response.status_code == 201
        assert response.json()["purchase_id"]

        again = client.post(f"{API}/{free_course.id}/enroll", headers=student_headers)
        assert again.status_code == 400
        assert again.json()["detail"] == "Already enrolled"

    def test_cannot_enroll_in_paid_course(self, client, course, student_headers):
        response = client.post(f"{API}/{course.id}/enroll", headers=student_headers)
        assert response.status_code == 400

    def test_chapter_media_hidden_without_access(self, client, db, course, student, student_headers, make_purchase):
        chapter = course.chapters[0]
        chapter.video_url = "https://cdn.example.com/video.mp4"
        db.commit()

        locked = client.get(f"{API}/{course.id}/chapters/{chapter.id}", headers=student_headers).json()
        assert locked["can_view"] is False
        assert locked["video_url"] is None

        make_purchase(student, course)
        unlocked = client.get(f"{API}/{course.id}/chapters/{chapter.id}", headers=student_headers).json()
        assert unlocked["can_view"] is True
        assert unlocked["video_url"] == "https://cdn.example.com/video.mp4"


class TestContentAndProgress:
    def test_content_merges_chapters_and_quizzes(self, client, course, quiz, teacher_headers, student_headers):
        content = client.get(f"{API}/{course.id}/content", headers=student_headers).json()
        assert [item["type"] for item in content] == ["chapter", "quiz"]

        response = client.put(
            f"{API}/{course.id}/reorder",
            json={"items": [{"id": quiz.id, "type": "quiz", "position": 0}]},
            headers=teacher_headers,
        )
        assert response.status_code == 200

        content = client.get(f"{API}/{course.id}/content", headers=student_headers).json()
        assert [item["id"] for item in content] == [quiz.id, course.chapters[0].id]

    def test_reorder_rejects_foreign_items(self, client, course, teacher_headers):
        response = client.put(
            f"{API}/{course.id}/reorder",
            json={"items": [{"id": "missing", "type": "chapter", "position": 1}]},
            headers=teacher_headers,
        )
        assert response.status_code == 400

    def test_progress_counts_chapters_and_quizzes(self, client, db, course, quiz, student_headers):
        db.add(Chapter(course_id=course.id, title="Unpublished", position=5, is_published=False))
        db.commit()
        chapter = course.chapters[0]
        client.put(f"{API}/{course.id}/chapters/{chapter.id}/progress", json={"is_completed": True}, headers=student_headers)

        progress = client.get(f"{API}/{course.id}/progress", headers=student_headers).json()
        assert progress["total_items"] == 2
        assert progress["completed_chapters"] == 1
        assert progress["completed_quizzes"] == 0
        assert progress["progress"] == 50.0
