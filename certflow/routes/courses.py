from flask import Blueprint, jsonify
from certflow.extensions import db
from certflow.models import Course
from certflow.services import workflow_service
from certflow.workflow.unlock import course_statuses
from flask_jwt_extended import jwt_required, get_jwt_identity

bp = Blueprint("courses", __name__)


def serialize_subsection(sub, completed_ids):
    return {
        "id": sub.id,
        "title": sub.title,
        "type": sub.subsection_type,
        "video_url": sub.video_url,
        "quiz_url": sub.quiz_url,
        "duration_minutes": sub.duration_minutes,
        "is_completed": sub.id in completed_ids,
    }


@bp.route("/", methods=["GET"])
@jwt_required()
def get_courses():
    user_id = int(get_jwt_identity())
    courses = Course.query.order_by(Course.level).all()
    statuses = course_statuses(courses, workflow_service.workflows_by_level(user_id))

    result = []
    for course in courses:
        progress = workflow_service.course_progress(user_id, course)
        result.append({
            "id": course.id,
            "title": course.title,
            "description": course.description,
            "level": course.level,
            "status": statuses[course.id].value,
            "progress": progress.percentage,
            "completed_subsections": progress.completed,
            "total_subsections": progress.total,
        })

    return jsonify(result), 200


@bp.route("/<int:course_id>", methods=["GET"])
@jwt_required()
def get_course(course_id):
    user_id = int(get_jwt_identity())
    course = db.session.get(Course, course_id)
    if not course:
        return jsonify({"error": "Course not found"}), 404

    workflows = workflow_service.workflows_by_level(user_id)
    status = course_statuses([course], workflows)[course.id]
    progress = workflow_service.course_progress(user_id, course)
    section_views = {s.section_id: s for s in workflow_service.section_progress(user_id, course)}
    completed_ids = {
        subsection_id
        for subsection_id, completed_at in workflow_service.completions_for(user_id, course)
        if completed_at is not None
    }

    sections = []
    for section in course.sections:
        view = section_views[section.id]
        sections.append({
            "id": section.id,
            "title": section.title,
            "description": section.description,
            "progress": view.percentage,
            "completed": view.completed,
            "total": view.total,
            "subsections": [serialize_subsection(sub, completed_ids) for sub in section.subsections],
        })

    return jsonify({
        "id": course.id,
        "title": course.title,
        "description": course.description,
        "level": course.level,
        "status": status.value,
        "progress": progress.percentage,
        "exam": {
            "url": course.exam_url,
            "instructions": course.exam_instructions,
            "duration_minutes": course.exam_duration_minutes,
        },
        "sections": sections,
    }), 200
