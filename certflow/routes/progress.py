from flask import Blueprint, request, jsonify
from certflow.extensions import db
from certflow.models import Course, Progress, Subsection
from certflow.services import workflow_service
from flask_jwt_extended import jwt_required, get_jwt_identity
from datetime import datetime

bp = Blueprint("progress", __name__)


def _subsection_from_request():
    data = request.get_json() or {}
    subsection_id = data.get("subsection_id")
    if not subsection_id:
        return None, (jsonify({"error": "Missing subsection_id"}), 400)

    subsection = db.session.get(Subsection, subsection_id)
    if not subsection:
        return None, (jsonify({"error": "Subsection not found"}), 404)
    return subsection, None


# Mark subsection complete
@bp.route("/complete", methods=["POST"])
@jwt_required()
def mark_complete():
    user_id = int(get_jwt_identity())
    subsection, error = _subsection_from_request()
    if error:
        return error

    course = subsection.section.course
    progress = Progress.query.filter_by(
        user_id=user_id,
        subsection_id=subsection.id
    ).first()

    # If already exists, update it
    if progress:
        if progress.completed_at is not None:
            return jsonify({"message": "Subsection already marked as complete"}), 200
        progress.completed_at = datetime.utcnow()
    else:
        progress = Progress(
            user_id=user_id,
            course_id=course.id,
            subsection_id=subsection.id,
            completed_at=datetime.utcnow()
        )
        db.session.add(progress)

    db.session.commit()

    workflow = workflow_service.ensure_workflow_if_course_completed(user_id, course)
    course_progress = workflow_service.course_progress(user_id, course)

    return jsonify({
        "message": "Subsection marked as complete",
        "progress": course_progress.percentage,
        "workflow": workflow.to_dict() if workflow else None
    }), 200


@bp.route("/uncomplete", methods=["POST"])
@jwt_required()
def uncomplete_subsection():
    user_id = int(get_jwt_identity())
    subsection, error = _subsection_from_request()
    if error:
        return error

    progress = Progress.query.filter_by(
        user_id=user_id,
        subsection_id=subsection.id
    ).first()

    if not progress:
        return jsonify({"error": "Progress record not found"}), 404

    progress.completed_at = None
    db.session.commit()

    return jsonify({"message": "Subsection marked as incomplete"}), 200


@bp.route("/courses/<int:course_id>", methods=["GET"])
@jwt_required()
def course_progress(course_id):
    user_id = int(get_jwt_identity())
    course = db.session.get(Course, course_id)
    if not course:
        return jsonify({"error": "Course not found"}), 404

    progress = workflow_service.course_progress(user_id, course)
    sections = workflow_service.section_progress(user_id, course)

    return jsonify({
        "course_id": course.id,
        "percentage": progress.percentage,
        "completed": progress.completed,
        "total": progress.total,
        "sections": [s._asdict() for s in sections]
    }), 200
