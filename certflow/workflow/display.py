"""Step cards for the certification path.

One place that turns a workflow row and the course percentage into the
six cards shown on every certification screen. Each status vocabulary is
read through a table keyed by every member of its enum.
"""
from collections import namedtuple

from .statuses import ApprovalStatus, ContractStatus, ExamStatus, SubscriptionStatus
from .unlock import is_workflow_completed

StepView = namedtuple("StepView", ["id", "title", "is_unlocked", "is_completed", "action_text", "message"])

EXAM_TEXT = {
    ExamStatus.PENDING_SUBMISSION: ("Take Exam", "Take your certification exam to proceed."),
    ExamStatus.SUBMITTED: ("Under Review", "Your exam has been submitted and is awaiting review."),
    ExamStatus.PENDING_REVIEW: ("Under Review", "Your exam is being reviewed by our team."),
    ExamStatus.PASSED: ("Passed", "Exam completed successfully!"),
    ExamStatus.FAILED: ("Retake Exam", "Your exam was not successful. You may retake it."),
}

APPROVAL_TEXT = {
    ApprovalStatus.PENDING: ("Under Review", "Your certification request is awaiting admin review."),
    ApprovalStatus.APPROVED: ("Approved", "Your certification has been approved."),
    ApprovalStatus.REJECTED: ("Rejected", "Your request was not approved. Review the material and retake the exam."),
}

CONTRACT_TEXT = {
    ContractStatus.NOT_REQUIRED: ("Sign Contract", "Sign your certification contract to continue."),
    ContractStatus.PENDING_SIGNING: ("Sign Contract", "Your contract is waiting for your signature."),
    ContractStatus.SIGNED: ("Contract Signed", "Contract signed successfully!"),
    ContractStatus.REJECTED: ("Sign Contract", "The contract was declined. Start signing again to continue."),
}

PAYMENT_TEXT = {
    SubscriptionStatus.NOT_REQUIRED: ("Pay Now", "Complete your certification payment."),
    SubscriptionStatus.PENDING_PAYMENT: ("Complete Payment", "Your payment has not been completed yet."),
    SubscriptionStatus.PAID: ("Payment Complete", "Payment completed successfully!"),
    SubscriptionStatus.CANCELLED: ("Pay Now", "Your payment was cancelled. You can try again."),
}

LOCKED = "Locked"


def display_exam_status(workflow):
    """Exam status as shown to users.

    An approved request shows the exam as passed whatever the stored value
    is; the stored value is never rewritten.
    """
    if workflow is None:
        return None
    if ApprovalStatus(workflow.admin_approval_status) == ApprovalStatus.APPROVED:
        return ExamStatus.PASSED
    return ExamStatus(workflow.exam_status)


def describe_steps(workflow, course_percentage):
    course_done = course_percentage >= 100
    steps = [
        StepView(
            "course",
            "Complete Course",
            True,
            course_done,
            "Course Complete!" if course_done else "Continue Learning",
            "Course completed successfully!" if course_done
            else "{}% completed. Finish all lessons to unlock certification.".format(course_percentage),
        )
    ]

    if workflow is None:
        steps.append(StepView(
            "exam", "Certification Exam", course_done, False,
            "Take Exam" if course_done else LOCKED,
            "Take your certification exam to proceed." if course_done
            else "Complete the course to unlock the exam.",
        ))
        for step_id, title in (("approval", "Admin Approval"), ("contract", "Contract Signing"),
                               ("payment", "Payment"), ("certified", "Certified!")):
            steps.append(StepView(step_id, title, False, False, LOCKED, "Complete the previous step first."))
        return steps

    exam = display_exam_status(workflow)
    approval = ApprovalStatus(workflow.admin_approval_status)
    contract = ContractStatus(workflow.contract_status)
    subscription = SubscriptionStatus(workflow.subscription_status)
    certified = is_workflow_completed(workflow)

    exam_action, exam_message = EXAM_TEXT[exam]
    steps.append(StepView("exam", "Certification Exam", course_done, exam == ExamStatus.PASSED,
                          exam_action, exam_message))

    approval_unlocked = exam != ExamStatus.PENDING_SUBMISSION or approval != ApprovalStatus.PENDING
    approval_action, approval_message = APPROVAL_TEXT[approval]
    steps.append(StepView("approval", "Admin Approval", approval_unlocked,
                          approval == ApprovalStatus.APPROVED, approval_action, approval_message))

    approved = approval == ApprovalStatus.APPROVED
    contract_action, contract_message = CONTRACT_TEXT[contract]
    steps.append(StepView(
        "contract", "Contract Signing", approved, contract == ContractStatus.SIGNED,
        contract_action if approved else LOCKED,
        contract_message if approved else "Contract signing unlocks after admin approval.",
    ))

    signed = contract == ContractStatus.SIGNED
    payment_action, payment_message = PAYMENT_TEXT[subscription]
    steps.append(StepView(
        "payment", "Payment", signed, subscription == SubscriptionStatus.PAID,
        payment_action if signed else LOCKED,
        payment_message if signed else "Payment unlocks after the contract is signed.",
    ))

    steps.append(StepView(
        "certified", "Certified!", certified, certified,
        "Certified!" if certified else LOCKED,
        "Congratulations! You are now certified." if certified else "Complete payment to finish certification.",
    ))
    return steps


def steps_as_dicts(steps):
    return [step._asdict() for step in steps]
