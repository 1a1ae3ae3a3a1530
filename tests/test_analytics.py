"""Admin progress analytics and the per-user detail view."""
from datetime import datetime

import pytest

from certflow.extensions import db
from certflow.models import Progress
from certflow.services import workflow_service

from conftest import auth_headers, complete_course


def add_progress(user, course, subsection_id, completed=True):
    db.session.add(Progress(
        user_id=user.id,
        course_id=course.id,
        subsection_id=subsection_id,
        completed_at=datetime.utcnow() if completed else None,
    ))
    db.session.commit()


@pytest.fixture
def activity(seed):
    """Ada finishes level 1; Grace does one lesson of it and opens level 2 without finishing."""
    complete_course(seed.student, seed.level1)
    workflow_service.ensure_workflow_if_course_completed(seed.student.id, seed.level1)
    add_progress(seed.other, seed.level1, seed.level1.subsection_ids[0])
    add_progress(seed.other, seed.level2, seed.level2.subsection_ids[0], completed=False)
    return seed


@pytest.mark.integration
class TestProgressAnalytics:
    def test_requires_admin(self, client, seed, student_headers):
        assert client.get("/admin/analytics/progress", headers=student_headers).status_code == 403

    def test_section_counts(self, client, activity, admin_headers):
        body = client.get("/admin/analytics/progress", headers=admin_headers).get_json()
        rows = [
            (s["course_level"], s["section_title"], s["total_subsections"],
             s["users_started"], s["users_completed"], s["completion_rate"])
            for s in body["sections"]
        ]
        assert rows == [
            (1, "Section 1", 2, 2, 1, 50.0),
            (1, "Section 2", 1, 1, 1, 100.0),
            (2, "Section 1", 1, 1, 0, 0),
        ]

    def test_course_counts(self, client, activity, admin_headers):
        body = client.get("/admin/analytics/progress", headers=admin_headers).get_json()
        level1, level2 = body["courses"]

        assert level1["course_title"] == "Level 1 Fundamentals"
        assert (level1["total_sections"], level1["users_started"], level1["users_completed"]) == (2, 2, 1)
        assert level1["completion_rate"] == 50.0
        assert (level2["users_started"], level2["users_completed"], level2["completion_rate"]) == (1, 0, 0)

    def test_stats(self, client, activity, admin_headers):
        stats = client.get("/admin/analytics/progress", headers=admin_headers).get_json()["stats"]
        assert stats == {
            "total_users": 2,
            "total_courses": 2,
            "total_sections": 3,
            "total_course_completions": 1,
        }

    def test_no_activity(self, client, seed, admin_headers):
        body = client.get("/admin/analytics/progress", headers=admin_headers).get_json()
        assert all(s["users_started"] == 0 and s["completion_rate"] == 0 for s in body["sections"])
        assert body["stats"]["total_course_completions"] == 0


@pytest.mark.integration
class TestUserDetail:
    def test_profile_progress_and_workflows(self, client, activity, admin_headers):
        response = client.get(f"/admin/users/{activity.student.id}", headers=admin_headers)
        assert response.status_code == 200

        body = response.get_json()
        assert (body["email"], body["full_name"], body["role"]) == ("ada@example.com", "Ada Student", "student")

        level1, level2 = body["courses"]
        assert (level1["level"], level1["progress"], level1["status"]) == (1, 100, "available")
        assert [s["progress"] for s in level1["sections"]] == [100, 100]
        assert (level2["progress"], level2["status"]) == (0, "locked")

        assert list(body["workflows"]) == ["1"]
        assert body["workflows"]["1"]["current_step"] == "exam"

    def test_partial_user(self, client, activity, admin_headers):
        body = client.get(f"/admin/users/{activity.other.id}", headers=admin_headers).get_json()
        level1, level2 = body["courses"]

        assert (level1["completed_subsections"], level1["total_subsections"], level1["progress"]) == (1, 3, 33)
        assert [s["completed"] for s in level1["sections"]] == [1, 0]
        assert level2["progress"] == 0
        assert body["workflows"] == {}

    def test_unknown_user(self, client, seed, admin_headers):
        response = client.get("/admin/users/9999", headers=admin_headers)
        assert response.status_code == 404
        assert "9999" in response.get_json()["error"]

    def test_student_cannot_view(self, client, seed):
        response = client.get(f"/admin/users/{seed.other.id}", headers=auth_headers(seed.student))
        assert response.status_code == 403
