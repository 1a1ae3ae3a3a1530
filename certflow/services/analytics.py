"""
Admin reporting: per-section and per-course progress analytics and the
single-user detail view.

Counts come from ``user_progress`` rows. A user has *started* a section or
course once any progress row exists for one of its subsections, and has
*completed* a section once every subsection in it carries a
``completed_at``.
"""
from sqlalchemy import func

from certflow.extensions import db
from certflow.models import Course, CourseCompletion, Progress, Section, User
from certflow.services import workflow_service
from certflow.workflow.errors import NotFound
from certflow.workflow.unlock import course_statuses


def users_started(subsection_ids):
    if not subsection_ids:
        return 0
    return (
        db.session.query(func.count(func.distinct(Progress.user_id)))
        .filter(Progress.subsection_id.in_(subsection_ids))
        .scalar()
    ) or 0


def users_completed(subsection_ids):
    if not subsection_ids:
        return 0
    rows = (
        db.session.query(Progress.user_id, func.count(func.distinct(Progress.subsection_id)))
        .filter(Progress.subsection_id.in_(subsection_ids), Progress.completed_at.isnot(None))
        .group_by(Progress.user_id)
        .all()
    )
    return sum(1 for _, count in rows if count >= len(subsection_ids))


def section_analytics():
    result = []
    sections = (
        Section.query.join(Course, Course.id == Section.course_id)
        .order_by(Course.level, Section.order_index)
        .all()
    )
    for section in sections:
        ids = [sub.id for sub in section.subsections]
        started = users_started(ids)
        completed = users_completed(ids)
        result.append({
            "section_id": section.id,
            "section_title": section.title,
            "course_title": section.course.title,
            "course_level": section.course.level,
            "total_subsections": len(ids),
            "users_started": started,
            "users_completed": completed,
            "completion_rate": workflow_service.calculate_percentage(completed, started),
        })
    return result


def course_analytics():
    completions = dict(
        db.session.query(CourseCompletion.course_id, func.count(CourseCompletion.id))
        .group_by(CourseCompletion.course_id)
        .all()
    )

    result = []
    for course in Course.query.order_by(Course.level).all():
        started = users_started(course.subsection_ids)
        completed = completions.get(course.id, 0)
        result.append({
            "course_id": course.id,
            "course_title": course.title,
            "course_level": course.level,
            "total_sections": len(course.sections),
            "users_started": started,
            "users_completed": completed,
            "completion_rate": workflow_service.calculate_percentage(completed, started),
        })
    return result


def overview_stats():
    return {
        "total_users": User.query.filter_by(role="student").count(),
        "total_courses": Course.query.count(),
        "total_sections": Section.query.count(),
        "total_course_completions": CourseCompletion.query.count(),
    }


def progress_analytics():
    return {
        "sections": section_analytics(),
        "courses": course_analytics(),
        "stats": overview_stats(),
    }


def user_detail(user_id):
    """Profile, per-course progress and certification workflows for one user."""
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound(message=f"User {user_id} not found")

    courses = Course.query.order_by(Course.level).all()
    workflows = workflow_service.workflows_by_level(user_id)
    statuses = course_statuses(courses, workflows)

    course_rows = []
    for course in courses:
        progress = workflow_service.course_progress(user_id, course)
        course_rows.append({
            "course_id": course.id,
            "title": course.title,
            "level": course.level,
            "status": statuses[course.id].value,
            "progress": progress.percentage,
            "completed_subsections": progress.completed,
            "total_subsections": progress.total,
            "sections": [
                {
                    "section_id": s.section_id,
                    "title": s.title,
                    "progress": s.percentage,
                    "completed": s.completed,
                    "total": s.total,
                }
                for s in workflow_service.section_progress(user_id, course)
            ],
        })

    data = user.to_dict()
    data["created_at"] = user.created_at.isoformat() if user.created_at else None
    data["courses"] = course_rows
    data["workflows"] = {str(level): wf.to_dict() for level, wf in sorted(workflows.items())}
    return data
