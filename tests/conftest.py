"""
Pytest configuration and shared fixtures.

The app is built with ``TestConfig`` (in-memory SQLite) and an application
context stays pushed for the whole test, so fixtures and the test client
share one session.
"""
from datetime import datetime
from types import SimpleNamespace

import pytest
from flask_jwt_extended import create_access_token

from certflow import create_app
from certflow.config import TestConfig
from certflow.extensions import db
from certflow.models import Course, Progress, Section, Subsection, User
from certflow.workflow.transitions import apply_initial_state


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def _make_course(level, sections, available=True, coming_soon=False):
    course = Course(
        title=f"Level {level} Fundamentals",
        level=level,
        is_available=available,
        is_coming_soon=coming_soon,
        exam_url=f"https://exams.example.com/level-{level}",
    )
    for s_index, count in enumerate(sections):
        section = Section(title=f"Section {s_index + 1}", order_index=s_index)
        for i in range(count):
            section.subsections.append(Subsection(title=f"Lesson {s_index + 1}.{i + 1}", order_index=i))
        course.sections.append(section)
    db.session.add(course)
    return course


@pytest.fixture
def seed(app):
    """Two students, one admin, a level-1 course (2+1 subsections) and a level-2 course."""
    student = User(full_name="Ada Student", email="ada@example.com", role="student")
    student.set_password("secret123")
    other = User(full_name="Grace Student", email="grace@example.com", role="student")
    other.set_password("secret123")
    admin = User(full_name="Admin User", email="admin@example.com", role="admin")
    admin.set_password("admin123")
    db.session.add_all([student, other, admin])

    level1 = _make_course(1, [2, 1])
    level2 = _make_course(2, [1])
    db.session.commit()

    return SimpleNamespace(
        student=student,
        other=other,
        admin=admin,
        level1=level1,
        level2=level2,
    )


def auth_headers(user):
    token = create_access_token(identity=str(user.id), additional_claims={"role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def student_headers(seed):
    return auth_headers(seed.student)


@pytest.fixture
def admin_headers(seed):
    return auth_headers(seed.admin)


def complete_course(user, course):
    """Mark every subsection of ``course`` complete for ``user``."""
    for subsection_id in course.subsection_ids:
        db.session.add(Progress(
            user_id=user.id,
            course_id=course.id,
            subsection_id=subsection_id,
            completed_at=datetime.utcnow(),
        ))
    db.session.commit()


@pytest.fixture
def new_workflow():
    """A plain object carrying the workflow fields, at the initial state."""
    def factory(**overrides):
        wf = apply_initial_state(SimpleNamespace(
            exam_results_json=None,
            exam_submission_url=None,
            contract_document_id=None,
            contract_doc_url=None,
            stripe_checkout_session_id=None,
            completed_at=None,
        ))
        for field, value in overrides.items():
            setattr(wf, field, value)
        return wf
    return factory
