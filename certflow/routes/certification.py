from flask import Blueprint, request, jsonify
from certflow.services import workflow_service
from certflow.workflow.display import describe_steps, steps_as_dicts
from certflow.workflow.unlock import course_statuses
from flask_jwt_extended import jwt_required, get_jwt_identity

bp = Blueprint("certification", __name__)


@bp.route("/<int:level>", methods=["GET"])
@jwt_required()
def get_certification(level):
    """Workflow and step cards for one level; opens the workflow if the course is done."""
    user_id = int(get_jwt_identity())
    course = workflow_service.course_for_level(level)

    workflow = workflow_service.get_workflow(user_id, level)
    if workflow is None:
        workflow = workflow_service.ensure_workflow_if_course_completed(user_id, course)

    progress = workflow_service.course_progress(user_id, course)
    status = course_statuses([course], workflow_service.workflows_by_level(user_id))[course.id]

    return jsonify({
        "level": level,
        "course_id": course.id,
        "course_status": status.value,
        "course_progress": progress.percentage,
        "workflow": workflow.to_dict() if workflow else None,
        "steps": steps_as_dicts(describe_steps(workflow, progress.percentage)),
    }), 200


@bp.route("/<int:level>/exam", methods=["POST"])
@jwt_required()
def submit_exam(level):
    user_id = int(get_jwt_identity())
    data = request.get_json() or {}

    results = data.get("results")
    if results is not None and not isinstance(results, dict):
        return jsonify({"error": "results must be an object"}), 400

    workflow = workflow_service.submit_exam(
        user_id, level,
        results=results,
        submission_url=data.get("submission_url")
    )
    return jsonify({"message": "Exam submitted", "workflow": workflow.to_dict()}), 200


@bp.route("/<int:level>/contract", methods=["POST"])
@jwt_required()
def start_contract(level):
    user_id = int(get_jwt_identity())
    workflow, signing_url = workflow_service.start_contract_signing(user_id, level)
    return jsonify({
        "signing_url": signing_url,
        "workflow": workflow.to_dict()
    }), 200


@bp.route("/<int:level>/payment", methods=["POST"])
@jwt_required()
def start_payment(level):
    user_id = int(get_jwt_identity())
    data = request.get_json(silent=True) or {}
    workflow, checkout_url = workflow_service.start_payment(user_id, level, data.get("email"))
    if checkout_url is None:
        message = "Payment already received" if workflow.completed_at else "Payment is being processed"
    else:
        message = "Checkout session ready"
    return jsonify({
        "message": message,
        "checkout_url": checkout_url,
        "workflow": workflow.to_dict()
    }), 200
