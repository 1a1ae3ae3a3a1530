from flask import Blueprint, current_app, jsonify, request
from certflow.models import User
from certflow.services import stripe_client, workflow_service
from certflow.workflow.errors import WorkflowError

bp = Blueprint("webhooks", __name__)


def _acknowledge(result):
    return jsonify({
        "acknowledged": result.acknowledged,
        "updated": result.updated,
        "workflow_id": result.workflow_id,
        "message": result.message
    }), 200


@bp.route("/stripe", methods=["POST"])
def stripe_webhook():
    payload = request.get_data(as_text=True)
    signature = request.headers.get("Stripe-Signature")

    try:
        event = stripe_client.verify_webhook(
            payload, signature, current_app.config.get("STRIPE_WEBHOOK_SECRET")
        )
    except stripe_client.WebhookSignatureError as e:
        current_app.logger.warning(f"Stripe webhook rejected: {e}")
        return jsonify({"error": str(e)}), 400

    try:
        result = workflow_service.handle_payment_callback(event)
    except WorkflowError as e:
        current_app.logger.error(f"Stripe webhook not applied: {e}")
        result = workflow_service.CallbackResult(True, False, None, str(e))
    return _acknowledge(result)


@bp.route("/signnow", methods=["POST"])
def signnow_webhook():
    payload = request.get_json(silent=True) or {}

    try:
        result = workflow_service.handle_contract_callback(payload)
    except WorkflowError as e:
        current_app.logger.error(f"SignNow webhook not applied: {e}")
        result = workflow_service.CallbackResult(True, False, None, str(e))
    return _acknowledge(result)


@bp.route("/exam", methods=["POST"])
def exam_webhook():
    """Exam form submission. Identifies the student by ``user_id`` or ``email``."""
    data = request.get_json(silent=True) or {}
    level = data.get("level")
    user_id = data.get("user_id")

    if user_id is None and data.get("email"):
        user = User.query.filter_by(email=data["email"].strip().lower()).first()
        user_id = user.id if user else None

    try:
        user_id, level = int(user_id), int(level)
    except (TypeError, ValueError):
        current_app.logger.warning("Exam webhook missing user or level")
        return _acknowledge(workflow_service.CallbackResult(True, False, None, "Missing required webhook fields"))

    results = data.get("results")
    try:
        workflow = workflow_service.submit_exam(
            user_id, level,
            results=results if isinstance(results, dict) else None,
            submission_url=data.get("submission_url")
        )
    except WorkflowError as e:
        current_app.logger.warning(f"Exam webhook not applied: {e}")
        return _acknowledge(workflow_service.CallbackResult(True, False, None, str(e)))

    return _acknowledge(workflow_service.CallbackResult(True, True, workflow.id, "Exam submission recorded"))
