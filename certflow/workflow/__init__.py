from .errors import CallbackUnmatched, NotFound, PreconditionFailed, WorkflowError
from .progress import CourseProgress, SectionProgress, compute_progress, compute_section_progress
from .statuses import (
    ApprovalStatus,
    ContractStatus,
    CourseStatus,
    ExamStatus,
    SubscriptionStatus,
    WorkflowStep,
)
from .unlock import compute_course_status, is_workflow_completed
