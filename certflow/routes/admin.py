from flask import Blueprint, jsonify, request
from certflow.services import analytics, signnow_client, workflow_service
from certflow.utils.auth import role_required

bp = Blueprint("admin", __name__)


@bp.route("/certifications/pending", methods=["GET"])
@role_required("admin")
def pending_certifications():
    """Users who finished a course and are waiting for a decision."""
    result = []
    for workflow in workflow_service.pending_reviews():
        data = workflow.to_dict()
        data["user"] = {
            "id": workflow.user.id,
            "full_name": workflow.user.full_name,
            "email": workflow.user.email,
        }
        data["course_title"] = workflow.course.title if workflow.course else None
        result.append(data)

    return jsonify(result), 200


@bp.route("/certifications/<int:user_id>/<int:level>", methods=["POST"])
@role_required("admin")
def decide_certification(user_id, level):
    data = request.get_json() or {}
    action = data.get("action")

    if action not in workflow_service.ADMIN_ACTIONS:
        return jsonify({"error": "Invalid action. Must be 'approve' or 'reject'"}), 400

    workflow = workflow_service.admin_decide(user_id, level, action)
    return jsonify({
        "message": f"Certification {'approved' if action == 'approve' else 'rejected'} successfully",
        "workflow": workflow.to_dict()
    }), 200


@bp.route("/certifications/<int:user_id>/<int:level>/exam-result", methods=["POST"])
@role_required("admin")
def exam_result(user_id, level):
    data = request.get_json() or {}
    result = data.get("result")

    if result not in ("passed", "failed", "under_review"):
        return jsonify({"error": "result must be 'passed', 'failed' or 'under_review'"}), 400

    workflow = workflow_service.record_exam_result(user_id, level, result)
    return jsonify({"message": "Exam result recorded", "workflow": workflow.to_dict()}), 200


@bp.route("/funnel", methods=["GET"])
@role_required("admin")
def funnel():
    return jsonify({"stages": workflow_service.funnel_stats()}), 200


@bp.route("/signnow/templates", methods=["GET"])
@role_required("admin")
def signnow_templates():
    templates = signnow_client.list_templates()
    return jsonify({"templates": templates, "total": len(templates)}), 200


@bp.route("/analytics/progress", methods=["GET"])
@role_required("admin")
def progress_analytics():
    """Section and course completion counts for the admin dashboard."""
    return jsonify(analytics.progress_analytics()), 200


@bp.route("/users/<int:user_id>", methods=["GET"])
@role_required("admin")
def user_detail(user_id):
    return jsonify(analytics.user_detail(user_id)), 200
