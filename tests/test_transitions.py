"""Unit tests for the certification workflow transitions."""
from datetime import datetime

import pytest

from certflow.workflow import transitions
from certflow.workflow.errors import PreconditionFailed
from certflow.workflow.statuses import WorkflowStep

FIELDS = (
    "current_step",
    "exam_status",
    "admin_approval_status",
    "contract_status",
    "subscription_status",
    "stripe_checkout_session_id",
)


def snapshot(wf):
    return {field: getattr(wf, field) for field in FIELDS}


def rank(wf):
    return WorkflowStep(wf.current_step).rank


@pytest.mark.unit
class TestSubmitExam:
    def test_requires_all_subsections(self, new_workflow):
        wf = new_workflow()
        before = snapshot(wf)
        with pytest.raises(PreconditionFailed) as exc:
            transitions.submit_exam(wf, all_subsections_completed=False)
        assert exc.value.field == "subsections"
        assert snapshot(wf) == before

    def test_moves_to_approval(self, new_workflow):
        wf = transitions.submit_exam(new_workflow(), True, results={"score": 88}, submission_url="https://x/1")
        assert wf.exam_status == "submitted"
        assert wf.current_step == "approval"
        assert wf.exam_results_json == {"score": 88}
        assert wf.exam_submission_url == "https://x/1"

    def test_cannot_submit_twice(self, new_workflow):
        wf = transitions.submit_exam(new_workflow(), True)
        with pytest.raises(PreconditionFailed):
            transitions.submit_exam(wf, True)

    def test_failed_exam_can_be_retaken(self, new_workflow):
        wf = transitions.submit_exam(new_workflow(), True)
        transitions.record_exam_result(wf, passed=False)
        assert (wf.exam_status, wf.current_step) == ("failed", "exam")

        transitions.submit_exam(wf, True)
        assert (wf.exam_status, wf.current_step) == ("submitted", "approval")


@pytest.mark.unit
class TestExamReview:
    def test_under_review_then_passed(self, new_workflow):
        wf = transitions.submit_exam(new_workflow(), True)
        transitions.mark_exam_under_review(wf)
        assert wf.exam_status == "pending_review"
        transitions.record_exam_result(wf, passed=True)
        assert (wf.exam_status, wf.current_step) == ("passed", "approval")

    def test_result_requires_submission(self, new_workflow):
        with pytest.raises(PreconditionFailed):
            transitions.record_exam_result(new_workflow(), passed=True)


@pytest.mark.unit
class TestAdminDecision:
    def test_approve(self, new_workflow):
        wf = transitions.admin_approve(transitions.submit_exam(new_workflow(), True))
        assert (wf.admin_approval_status, wf.current_step) == ("approved", "contract")

    def test_reject_resets_exam(self, new_workflow):
        wf = new_workflow(current_step="approval", exam_status="submitted")
        transitions.admin_reject(wf)
        assert wf.admin_approval_status == "rejected"
        assert wf.current_step == "exam"
        assert wf.exam_status == "pending_submission"

    def test_reject_from_initial_state(self, new_workflow):
        wf = transitions.admin_reject(new_workflow())
        assert (wf.admin_approval_status, wf.current_step, wf.exam_status) == (
            "rejected", "exam", "pending_submission"
        )

    @pytest.mark.parametrize("status", ["approved", "rejected"])
    def test_decisions_require_pending(self, new_workflow, status):
        wf = new_workflow(admin_approval_status=status)
        before = snapshot(wf)
        for operation in (transitions.admin_approve, transitions.admin_reject):
            with pytest.raises(PreconditionFailed):
                operation(wf)
        assert snapshot(wf) == before

    def test_reject_then_retry_reaches_same_state(self, new_workflow):
        single = transitions.admin_approve(transitions.submit_exam(new_workflow(), True))

        retried = transitions.submit_exam(new_workflow(), True)
        transitions.admin_reject(retried)
        transitions.submit_exam(retried, True)
        assert retried.admin_approval_status == "pending"
        transitions.admin_approve(retried)

        assert (retried.admin_approval_status, retried.current_step) == ("approved", "contract")
        assert snapshot(retried) == snapshot(single)


@pytest.mark.unit
class TestContract:
    def test_start_requires_approval(self, new_workflow):
        wf = new_workflow()
        before = snapshot(wf)
        with pytest.raises(PreconditionFailed) as exc:
            transitions.start_contract_signing(wf, "doc-1")
        assert exc.value.field == "admin_approval_status"
        assert exc.value.actual == "pending"
        assert exc.value.to_dict()["required"] == {"admin_approval_status": ["approved"]}
        assert snapshot(wf) == before
        assert wf.contract_document_id is None

    def test_start_and_sign(self, new_workflow):
        wf = new_workflow(admin_approval_status="approved", current_step="contract")
        transitions.start_contract_signing(wf, "doc-1")
        assert (wf.contract_status, wf.contract_document_id) == ("pending_signing", "doc-1")

        assert transitions.contract_signed(wf, "https://docs/1.pdf") is True
        assert (wf.contract_status, wf.current_step) == ("signed", "payment")
        assert wf.contract_doc_url == "https://docs/1.pdf"

    def test_signed_is_idempotent(self, new_workflow):
        wf = new_workflow(admin_approval_status="approved", contract_status="pending_signing",
                          current_step="contract")
        assert transitions.contract_signed(wf) is True
        before = snapshot(wf)
        assert transitions.contract_signed(wf) is False
        assert snapshot(wf) == before

    def test_signed_requires_approval(self, new_workflow):
        wf = new_workflow()
        with pytest.raises(PreconditionFailed):
            transitions.contract_signed(wf)
        assert wf.current_step == "exam"

    def test_declined_then_restart(self, new_workflow):
        wf = new_workflow(admin_approval_status="approved", contract_status="pending_signing",
                          current_step="contract")
        assert transitions.contract_declined(wf) is True
        assert wf.contract_status == "rejected"
        assert transitions.contract_declined(wf) is False

        transitions.start_contract_signing(wf, "doc-2")
        assert wf.contract_status == "pending_signing"

    def test_declined_never_reopens_signed_contract(self, new_workflow):
        wf = new_workflow(admin_approval_status="approved", contract_status="signed", current_step="payment")
        assert transitions.contract_declined(wf) is False
        assert (wf.contract_status, wf.current_step) == ("signed", "payment")

    def test_cannot_restart_after_signing(self, new_workflow):
        wf = new_workflow(admin_approval_status="approved", contract_status="signed", current_step="payment")
        with pytest.raises(PreconditionFailed):
            transitions.start_contract_signing(wf)


@pytest.mark.unit
class TestPayment:
    def signed(self, new_workflow):
        return new_workflow(admin_approval_status="approved", contract_status="signed", current_step="payment")

    def test_start_requires_signed_contract(self, new_workflow):
        wf = new_workflow(admin_approval_status="approved", current_step="contract")
        with pytest.raises(PreconditionFailed):
            transitions.start_payment(wf, "cs_1")
        assert wf.stripe_checkout_session_id is None

    def test_complete(self, new_workflow):
        wf = transitions.start_payment(self.signed(new_workflow), "cs_1")
        assert wf.subscription_status == "pending_payment"

        paid_at = datetime(2025, 5, 1, 12, 0, 0)
        assert transitions.payment_completed(wf, "cs_1", now=paid_at) is True
        assert (wf.subscription_status, wf.current_step) == ("paid", "completed")
        assert wf.completed_at == paid_at

    def test_complete_is_idempotent(self, new_workflow):
        wf = transitions.start_payment(self.signed(new_workflow), "cs_1")
        transitions.payment_completed(wf, "cs_1")
        completed_at = wf.completed_at
        assert transitions.payment_completed(wf, "cs_1") is False
        assert wf.completed_at == completed_at

    def test_session_must_match(self, new_workflow):
        wf = transitions.start_payment(self.signed(new_workflow), "cs_1")
        with pytest.raises(PreconditionFailed):
            transitions.payment_completed(wf, "cs_other")
        assert wf.subscription_status == "pending_payment"

    def test_cannot_restart_after_paid(self, new_workflow):
        wf = transitions.start_payment(self.signed(new_workflow), "cs_1")
        transitions.payment_completed(wf, "cs_1")
        with pytest.raises(PreconditionFailed):
            transitions.start_payment(wf, "cs_2")


@pytest.mark.unit
class TestMonotonicity:
    def test_full_run_only_moves_forward(self, new_workflow):
        wf = new_workflow()
        steps = [
            lambda w: transitions.submit_exam(w, True),
            transitions.mark_exam_under_review,
            lambda w: transitions.record_exam_result(w, True),
            transitions.admin_approve,
            lambda w: transitions.start_contract_signing(w, "doc-1"),
            transitions.contract_signed,
            lambda w: transitions.start_payment(w, "cs_1"),
            lambda w: transitions.payment_completed(w, "cs_1"),
        ]
        ranks = [rank(wf)]
        for step in steps:
            step(wf)
            ranks.append(rank(wf))

        assert ranks == sorted(ranks)
        assert wf.current_step == "completed"

    def test_replayed_callbacks_do_not_move_backward(self, new_workflow):
        wf = new_workflow(admin_approval_status="approved", contract_status="signed",
                          subscription_status="paid", current_step="completed",
                          stripe_checkout_session_id="cs_1")
        transitions.contract_signed(wf)
        transitions.contract_declined(wf)
        transitions.payment_completed(wf, "cs_1")
        assert wf.current_step == "completed"
