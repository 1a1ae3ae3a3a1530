"""
Certification workflow service.

Reads rows, runs the pure transitions from ``certflow.workflow`` and commits
one workflow record per call. Provider calls (SignNow, Stripe, email) are
made here so the transitions stay free of I/O.
"""
from collections import namedtuple
from datetime import datetime

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from certflow.extensions import db
from certflow.models import CertificationWorkflow, Course, CourseCompletion, Progress, User
from certflow.services import notifications, signnow_client, stripe_client
from certflow.workflow import transitions
from certflow.workflow.errors import CallbackUnmatched, NotFound, PreconditionFailed
from certflow.workflow.progress import (
    compute_progress,
    compute_section_progress,
    is_course_fully_completed,
)
from certflow.workflow.statuses import (
    ApprovalStatus,
    ContractStatus,
    ExamStatus,
    SubscriptionStatus,
)

CallbackResult = namedtuple("CallbackResult", ["acknowledged", "updated", "workflow_id", "message"])

ADMIN_ACTIONS = {
    "approve": transitions.admin_approve,
    "reject": transitions.admin_reject,
}

SIGNED_STATUSES = ("signed", "completed")
DECLINED_STATUSES = ("declined", "rejected")


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def get_workflow(user_id, level):
    return CertificationWorkflow.query.filter_by(user_id=user_id, level=level).first()


def require_workflow(user_id, level):
    workflow = get_workflow(user_id, level)
    if workflow is None:
        raise NotFound(user_id, level)
    return workflow


def workflows_by_level(user_id):
    return {wf.level: wf for wf in CertificationWorkflow.query.filter_by(user_id=user_id).all()}


def course_for_level(level):
    course = Course.query.filter_by(level=level).first()
    if course is None:
        raise NotFound(message=f"No course found for level {level}")
    return course


def completions_for(user_id, course):
    ids = course.subsection_ids
    if not ids:
        return []
    return (
        db.session.query(Progress.subsection_id, Progress.completed_at)
        .filter(Progress.user_id == user_id, Progress.subsection_id.in_(ids))
        .all()
    )


def course_progress(user_id, course):
    ids = course.subsection_ids
    return compute_progress(completions_for(user_id, course), len(ids), ids)


def section_progress(user_id, course):
    sections = [
        (section.id, section.title, [sub.id for sub in section.subsections])
        for section in course.sections
    ]
    return compute_section_progress(sections, completions_for(user_id, course))


# ---------------------------------------------------------------------------
# Lazy creation
# ---------------------------------------------------------------------------

def _log(workflow, message):
    current_app.logger.info(
        "certification workflow %s: %s (user=%s level=%s step=%s)",
        workflow.id, message, workflow.user_id, workflow.level, workflow.current_step,
    )


def get_or_create_workflow(user_id, level, course_id=None):
    workflow = get_workflow(user_id, level)
    if workflow is not None:
        return workflow

    workflow = transitions.apply_initial_state(
        CertificationWorkflow(user_id=user_id, level=level, course_id=course_id)
    )
    db.session.add(workflow)
    try:
        db.session.commit()
    except IntegrityError:
        # another request created it first
        db.session.rollback()
        return require_workflow(user_id, level)

    _log(workflow, "created")
    return workflow


def ensure_workflow_if_course_completed(user_id, course):
    """Record the course completion and open the workflow once every subsection is done."""
    progress = course_progress(user_id, course)
    if not is_course_fully_completed(progress):
        return None

    if not CourseCompletion.query.filter_by(user_id=user_id, course_id=course.id).first():
        db.session.add(CourseCompletion(user_id=user_id, course_id=course.id))
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()

    return get_or_create_workflow(user_id, course.level, course.id)


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------

def _commit(workflow, message):
    workflow.updated_at = datetime.utcnow()
    db.session.commit()
    _log(workflow, message)
    return workflow


def submit_exam(user_id, level, results=None, submission_url=None):
    course = course_for_level(level)
    progress = course_progress(user_id, course)
    completed = is_course_fully_completed(progress)

    workflow = get_workflow(user_id, level)
    if workflow is None:
        if not completed:
            raise PreconditionFailed(
                "submit_exam", "subsections", ["all_completed"], "incomplete",
                message="submit_exam requires every course subsection to be completed",
            )
        workflow = ensure_workflow_if_course_completed(user_id, course)

    transitions.submit_exam(workflow, completed, results=results, submission_url=submission_url)
    return _commit(workflow, "exam submitted")


def record_exam_result(user_id, level, result):
    workflow = require_workflow(user_id, level)
    if result == "under_review":
        transitions.mark_exam_under_review(workflow)
    elif result in ("passed", "failed"):
        transitions.record_exam_result(workflow, result == "passed")
    else:
        raise ValueError(f"Unknown exam result: {result}")
    return _commit(workflow, f"exam result {result}")


def admin_decide(user_id, level, action):
    if action not in ADMIN_ACTIONS:
        raise ValueError("Invalid action. Must be 'approve' or 'reject'")

    workflow = require_workflow(user_id, level)
    ADMIN_ACTIONS[action](workflow)
    _commit(workflow, f"admin {action}")

    user = db.session.get(User, user_id)
    if user is not None:
        try:
            notifications.send_certification_notification(user, level, action)
        except Exception as e:
            current_app.logger.error(f"Error sending certification notification: {e}")
    return workflow


def start_contract_signing(user_id, level):
    """Open a signing session. Returns ``(workflow, signing_url)``."""
    workflow = require_workflow(user_id, level)
    transitions.check_can_start_contract(workflow)

    user = db.session.get(User, user_id)
    document_id, signing_url = signnow_client.create_signing_session(user.email, level)

    transitions.start_contract_signing(workflow, document_id)
    _commit(workflow, "contract signing started")
    return workflow, signing_url


def start_payment(user_id, level, email=None):
    """Open a checkout session. Returns ``(workflow, checkout_url)``.

    An earlier session of a pending payment is looked up first: an open one
    is handed out again, a paid one completes the workflow at once (the URL
    is then ``None``). Only an expired session is replaced.
    """
    workflow = require_workflow(user_id, level)
    transitions.check_can_start_payment(workflow)

    previous_id = workflow.stripe_checkout_session_id
    if previous_id and transitions.subscription_status_of(workflow) == SubscriptionStatus.PENDING_PAYMENT:
        previous = stripe_client.retrieve_checkout_session(previous_id)
        if previous.get("payment_status") == "paid":
            if transitions.payment_completed(workflow, previous_id):
                _commit(workflow, "payment completed")
            return workflow, None
        if previous.get("status") == "open" and previous.get("url"):
            current_app.logger.info(f"Reusing open checkout session {previous_id} for workflow {workflow.id}")
            return workflow, previous["url"]
        if previous.get("status") != "expired":
            current_app.logger.info(f"Checkout session {previous_id} is still processing for workflow {workflow.id}")
            return workflow, None

    user = db.session.get(User, user_id)
    session_id, checkout_url = stripe_client.create_checkout_session(
        user_id, level, email or user.email, workflow.id
    )

    transitions.start_payment(workflow, session_id)
    _commit(workflow, "payment started")
    return workflow, checkout_url


# ---------------------------------------------------------------------------
# Provider callbacks (never raise for unknown workflows)
# ---------------------------------------------------------------------------

def _as_level(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _find_contract_workflow(payload):
    user_id = _as_level(payload.get("user_id"))
    level = _as_level(payload.get("level"))
    if user_id is not None and level is not None:
        workflow = get_workflow(user_id, level)
        if workflow is not None:
            return workflow

    document_id = payload.get("document_id")
    workflow = CertificationWorkflow.query.filter_by(contract_document_id=document_id).first()
    if workflow is None:
        raise CallbackUnmatched(f"document {document_id} (user={user_id}, level={level})")
    return workflow


def handle_contract_callback(payload):
    document_id = payload.get("document_id")
    status = (payload.get("status") or "").lower()
    if not document_id or not status:
        current_app.logger.warning("SignNow callback missing document_id or status")
        return CallbackResult(True, False, None, "Missing required webhook fields")

    try:
        workflow = _find_contract_workflow(payload)
    except CallbackUnmatched as e:
        current_app.logger.warning(f"SignNow callback unmatched: {e}")
        return CallbackResult(True, False, None, "Workflow not found but webhook acknowledged")

    if status in SIGNED_STATUSES:
        changed = transitions.contract_signed(workflow, payload.get("document_url"))
        message = "contract signed"
    elif status in DECLINED_STATUSES:
        changed = transitions.contract_declined(workflow)
        message = "contract declined"
    else:
        current_app.logger.info(f"SignNow callback status '{status}' ignored for workflow {workflow.id}")
        return CallbackResult(True, False, workflow.id, f"Status '{status}' requires no update")

    if not changed:
        return CallbackResult(True, False, workflow.id, "Already processed")

    _commit(workflow, message)
    return CallbackResult(True, True, workflow.id, "SignNow webhook processed successfully")


def handle_payment_callback(event):
    event_type = event.get("type")
    if event_type != "checkout.session.completed":
        current_app.logger.info(f"Unhandled Stripe event type: {event_type}")
        return CallbackResult(True, False, None, f"Unhandled event type {event_type}")

    session = (event.get("data") or {}).get("object") or {}
    session_id = session.get("id")

    try:
        workflow = CertificationWorkflow.query.filter_by(stripe_checkout_session_id=session_id).first()
        if workflow is None or session_id is None:
            raise CallbackUnmatched(f"checkout session {session_id}")
    except CallbackUnmatched as e:
        current_app.logger.warning(f"Stripe callback unmatched: {e}")
        return CallbackResult(True, False, None, "No workflow matches this checkout session")

    if session.get("payment_status") != "paid":
        return CallbackResult(True, False, workflow.id, "Payment not completed yet")

    if not transitions.payment_completed(workflow, session_id):
        return CallbackResult(True, False, workflow.id, "Already processed")

    _commit(workflow, "payment completed")
    return CallbackResult(True, True, workflow.id, "Payment recorded")


# ---------------------------------------------------------------------------
# Admin views
# ---------------------------------------------------------------------------

def users_who_completed(course):
    ids = course.subsection_ids
    if not ids:
        return []
    rows = (
        db.session.query(Progress.user_id, func.count(func.distinct(Progress.subsection_id)))
        .filter(Progress.subsection_id.in_(ids), Progress.completed_at.isnot(None))
        .group_by(Progress.user_id)
        .all()
    )
    return [user_id for user_id, count in rows if count >= len(ids)]


def pending_reviews():
    """Workflows awaiting admin review, creating any that are missing."""
    pending = []
    for course in Course.query.order_by(Course.level).all():
        for user_id in users_who_completed(course):
            workflow = ensure_workflow_if_course_completed(user_id, course)
            if workflow is not None and workflow.admin_approval_status == ApprovalStatus.PENDING.value:
                pending.append(workflow)
    return pending


def calculate_percentage(value, total):
    return round((value / total) * 100, 1) if total > 0 else 0


def funnel_stats():
    total_users = User.query.filter_by(role="student").count()
    completed_training = CourseCompletion.query.count()
    passed_exams = CertificationWorkflow.query.filter(
        db.or_(
            CertificationWorkflow.exam_status == ExamStatus.PASSED.value,
            CertificationWorkflow.admin_approval_status == ApprovalStatus.APPROVED.value,
        )
    ).count()
    signed_contracts = CertificationWorkflow.query.filter_by(contract_status=ContractStatus.SIGNED.value).count()
    paid = CertificationWorkflow.query.filter_by(subscription_status=SubscriptionStatus.PAID.value).count()

    return [
        {"stage": "total_users", "title": "Total Users", "count": total_users},
        {"stage": "completed_training", "title": "Completed Training", "count": completed_training,
         "percentage": calculate_percentage(completed_training, total_users)},
        {"stage": "passed_exam", "title": "Passed Exam", "count": passed_exams,
         "percentage": calculate_percentage(passed_exams, completed_training)},
        {"stage": "signed_contract", "title": "Signed Contract", "count": signed_contracts,
         "percentage": calculate_percentage(signed_contracts, passed_exams)},
        {"stage": "paid", "title": "Active Subscription", "count": paid,
         "percentage": calculate_percentage(paid, signed_contracts)},
    ]
