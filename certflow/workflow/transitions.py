"""Certification workflow transitions.

Each operation takes a workflow (an ORM row or anything exposing the same
attributes), checks its precondition against the current field values,
mutates only the fields it owns and returns the workflow. Nothing here
touches the database: the caller commits.

A violated precondition raises ``PreconditionFailed`` before any field is
written, so a failed call always leaves the record untouched.
"""
from datetime import datetime

from .errors import PreconditionFailed
from .statuses import (
    ApprovalStatus,
    ContractStatus,
    ExamStatus,
    SubscriptionStatus,
    WorkflowStep,
)

INITIAL_STATE = {
    "current_step": WorkflowStep.EXAM.value,
    "exam_status": ExamStatus.PENDING_SUBMISSION.value,
    "admin_approval_status": ApprovalStatus.PENDING.value,
    "contract_status": ContractStatus.NOT_REQUIRED.value,
    "subscription_status": SubscriptionStatus.NOT_REQUIRED.value,
}

EXAM_SUBMITTABLE = (ExamStatus.PENDING_SUBMISSION, ExamStatus.FAILED)
EXAM_REVIEWABLE = (ExamStatus.SUBMITTED, ExamStatus.PENDING_REVIEW)


def step_of(workflow):
    return WorkflowStep(workflow.current_step)


def exam_status_of(workflow):
    return ExamStatus(workflow.exam_status)


def approval_status_of(workflow):
    return ApprovalStatus(workflow.admin_approval_status)


def contract_status_of(workflow):
    return ContractStatus(workflow.contract_status)


def subscription_status_of(workflow):
    return SubscriptionStatus(workflow.subscription_status)


def apply_initial_state(workflow):
    for field, value in INITIAL_STATE.items():
        setattr(workflow, field, value)
    return workflow


def _require(operation, field, actual, allowed, message=None):
    if actual not in allowed:
        raise PreconditionFailed(operation, field, allowed, actual, message)


def submit_exam(workflow, all_subsections_completed, results=None, submission_url=None):
    """Record an exam submission.

    Allowed while the exam is still open (never submitted, or failed) and
    only once every subsection of the course has been completed. A
    submission after an admin rejection reopens the approval.
    """
    _require("submit_exam", "exam_status", exam_status_of(workflow), EXAM_SUBMITTABLE)
    _require("submit_exam", "current_step", step_of(workflow), (WorkflowStep.EXAM,))
    if not all_subsections_completed:
        raise PreconditionFailed(
            "submit_exam",
            "subsections",
            ["all_completed"],
            "incomplete",
            message="submit_exam requires every course subsection to be completed",
        )

    workflow.exam_status = ExamStatus.SUBMITTED.value
    workflow.current_step = WorkflowStep.APPROVAL.value
    if approval_status_of(workflow) == ApprovalStatus.REJECTED:
        workflow.admin_approval_status = ApprovalStatus.PENDING.value
    if results is not None:
        workflow.exam_results_json = results
    if submission_url:
        workflow.exam_submission_url = submission_url
    return workflow


def mark_exam_under_review(workflow):
    _require("mark_exam_under_review", "exam_status", exam_status_of(workflow), (ExamStatus.SUBMITTED,))
    workflow.exam_status = ExamStatus.PENDING_REVIEW.value
    return workflow


def record_exam_result(workflow, passed):
    """Store the reviewed exam outcome; a failure reopens the exam step."""
    _require("record_exam_result", "exam_status", exam_status_of(workflow), EXAM_REVIEWABLE)
    _require("record_exam_result", "current_step", step_of(workflow), (WorkflowStep.APPROVAL,))
    if passed:
        workflow.exam_status = ExamStatus.PASSED.value
    else:
        workflow.exam_status = ExamStatus.FAILED.value
        workflow.current_step = WorkflowStep.EXAM.value
    return workflow


def admin_approve(workflow):
    _require("admin_approve", "admin_approval_status", approval_status_of(workflow), (ApprovalStatus.PENDING,))
    workflow.admin_approval_status = ApprovalStatus.APPROVED.value
    workflow.current_step = WorkflowStep.CONTRACT.value
    return workflow


def admin_reject(workflow):
    """Send the user back to the exam. History fields are kept."""
    _require("admin_reject", "admin_approval_status", approval_status_of(workflow), (ApprovalStatus.PENDING,))
    workflow.admin_approval_status = ApprovalStatus.REJECTED.value
    workflow.current_step = WorkflowStep.EXAM.value
    workflow.exam_status = ExamStatus.PENDING_SUBMISSION.value
    return workflow


def start_contract_signing(workflow, document_id=None):
    check_can_start_contract(workflow)
    workflow.contract_status = ContractStatus.PENDING_SIGNING.value
    workflow.current_step = WorkflowStep.CONTRACT.value
    if document_id:
        workflow.contract_document_id = document_id
    return workflow


def check_can_start_contract(workflow):
    _require(
        "start_contract_signing",
        "admin_approval_status",
        approval_status_of(workflow),
        (ApprovalStatus.APPROVED,),
    )
    _require(
        "start_contract_signing",
        "contract_status",
        contract_status_of(workflow),
        (ContractStatus.NOT_REQUIRED, ContractStatus.PENDING_SIGNING, ContractStatus.REJECTED),
    )


def contract_signed(workflow, document_url=None):
    """Apply a "signed" callback. Returns True when the record changed."""
    if contract_status_of(workflow) == ContractStatus.SIGNED:
        return False
    _require("contract_signed", "admin_approval_status", approval_status_of(workflow), (ApprovalStatus.APPROVED,))
    workflow.contract_status = ContractStatus.SIGNED.value
    workflow.current_step = WorkflowStep.PAYMENT.value
    if document_url:
        workflow.contract_doc_url = document_url
    return True


def contract_declined(workflow):
    """Apply a "declined" callback. Only an open signing session can be declined."""
    if contract_status_of(workflow) != ContractStatus.PENDING_SIGNING:
        return False
    workflow.contract_status = ContractStatus.REJECTED.value
    workflow.current_step = WorkflowStep.CONTRACT.value
    return True


def start_payment(workflow, session_id):
    check_can_start_payment(workflow)
    workflow.subscription_status = SubscriptionStatus.PENDING_PAYMENT.value
    workflow.current_step = WorkflowStep.PAYMENT.value
    workflow.stripe_checkout_session_id = session_id
    return workflow


def check_can_start_payment(workflow):
    _require("start_payment", "contract_status", contract_status_of(workflow), (ContractStatus.SIGNED,))
    _require(
        "start_payment",
        "subscription_status",
        subscription_status_of(workflow),
        (SubscriptionStatus.NOT_REQUIRED, SubscriptionStatus.PENDING_PAYMENT, SubscriptionStatus.CANCELLED),
    )


def payment_completed(workflow, session_id, now=None):
    """Apply a paid checkout callback. Returns True when the record changed."""
    if not session_id or session_id != workflow.stripe_checkout_session_id:
        raise PreconditionFailed(
            "payment_completed",
            "stripe_checkout_session_id",
            [workflow.stripe_checkout_session_id or "<none>"],
            session_id,
        )
    if subscription_status_of(workflow) == SubscriptionStatus.PAID:
        return False
    workflow.subscription_status = SubscriptionStatus.PAID.value
    workflow.current_step = WorkflowStep.COMPLETED.value
    workflow.completed_at = now or datetime.utcnow()
    return True
