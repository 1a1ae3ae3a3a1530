"""Closed status vocabularies for the certification workflow.

Every status field of a workflow row is one of these enums. Values are the
strings stored in the database, so members compare equal to the raw column
value (``ExamStatus.PASSED == "passed"``).
"""
import enum


class WorkflowStep(str, enum.Enum):
    EXAM = "exam"
    APPROVAL = "approval"
    CONTRACT = "contract"
    PAYMENT = "payment"
    COMPLETED = "completed"

    @property
    def rank(self):
        return _STEP_ORDER.index(self)


_STEP_ORDER = [
    WorkflowStep.EXAM,
    WorkflowStep.APPROVAL,
    WorkflowStep.CONTRACT,
    WorkflowStep.PAYMENT,
    WorkflowStep.COMPLETED,
]


class ExamStatus(str, enum.Enum):
    PENDING_SUBMISSION = "pending_submission"
    SUBMITTED = "submitted"
    PENDING_REVIEW = "pending_review"
    PASSED = "passed"
    FAILED = "failed"


class ApprovalStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ContractStatus(str, enum.Enum):
    NOT_REQUIRED = "not_required"
    PENDING_SIGNING = "pending_signing"
    SIGNED = "signed"
    REJECTED = "rejected"


class SubscriptionStatus(str, enum.Enum):
    NOT_REQUIRED = "not_required"
    PENDING_PAYMENT = "pending_payment"
    PAID = "paid"
    CANCELLED = "cancelled"

    @classmethod
    def _missing_(cls, value):
        # Older rows recorded a successful payment as "active".
        if value == "active":
            return cls.PAID
        return None


class CourseStatus(str, enum.Enum):
    AVAILABLE = "available"
    LOCKED = "locked"
    COMING_SOON = "coming-soon"
    COMPLETED = "completed"


def step_order():
    return list(_STEP_ORDER)


def values(enum_cls):
    return [member.value for member in enum_cls]
