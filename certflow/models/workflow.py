from certflow.extensions import db
from certflow.workflow.statuses import (
    ApprovalStatus,
    ContractStatus,
    ExamStatus,
    SubscriptionStatus,
    WorkflowStep,
    values,
)
from certflow.workflow.display import display_exam_status
from datetime import datetime


class CertificationWorkflow(db.Model):
    __tablename__ = "certification_workflows"
    __table_args__ = (db.UniqueConstraint("user_id", "level", name="uq_workflow_user_level"),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False)
    course_id = db.Column(db.Integer, db.ForeignKey("courses.id"), nullable=True)
    level = db.Column(db.Integer, nullable=False)

    current_step = db.Column(
        db.Enum(*values(WorkflowStep), name="workflow_step"),
        nullable=False, default=WorkflowStep.EXAM.value
    )
    exam_status = db.Column(
        db.Enum(*values(ExamStatus), name="exam_status"),
        nullable=False, default=ExamStatus.PENDING_SUBMISSION.value
    )
    admin_approval_status = db.Column(
        db.Enum(*values(ApprovalStatus), name="admin_approval_status"),
        nullable=False, default=ApprovalStatus.PENDING.value
    )
    contract_status = db.Column(
        db.Enum(*values(ContractStatus), name="contract_status"),
        nullable=False, default=ContractStatus.NOT_REQUIRED.value
    )
    subscription_status = db.Column(
        db.Enum(*values(SubscriptionStatus), name="subscription_status"),
        nullable=False, default=SubscriptionStatus.NOT_REQUIRED.value
    )

    exam_results_json = db.Column(db.JSON, nullable=True)
    exam_submission_url = db.Column(db.String(500), nullable=True)
    contract_document_id = db.Column(db.String(120), nullable=True)
    contract_doc_url = db.Column(db.String(500), nullable=True)
    stripe_checkout_session_id = db.Column(db.String(255), unique=True, nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = db.relationship("User", back_populates="workflows")
    course = db.relationship("Course")

    def to_dict(self):
        shown_exam = display_exam_status(self)
        return {
            "id": self.id,
            "user_id": self.user_id,
            "course_id": self.course_id,
            "level": self.level,
            "current_step": self.current_step,
            "exam_status": self.exam_status,
            "display_exam_status": shown_exam.value if shown_exam else None,
            "admin_approval_status": self.admin_approval_status,
            "contract_status": self.contract_status,
            "subscription_status": self.subscription_status,
            "contract_doc_url": self.contract_doc_url,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<CertificationWorkflow user={self.user_id} level={self.level} step={self.current_step}>"
