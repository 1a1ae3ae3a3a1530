"""Course availability derived from course flags and certification workflows."""
from .statuses import CourseStatus, SubscriptionStatus, WorkflowStep


def is_workflow_completed(workflow):
    """True once the workflow reached its terminal state."""
    if workflow is None:
        return False
    try:
        if WorkflowStep(workflow.current_step) == WorkflowStep.COMPLETED:
            return True
        return SubscriptionStatus(workflow.subscription_status) == SubscriptionStatus.PAID
    except ValueError:
        return False


def previous_level_workflow(workflows_by_level, level):
    return workflows_by_level.get(level - 1)


def compute_course_status(course, workflow_for_level=None, workflow_for_previous_level=None):
    """First matching rule wins: coming soon, completed, level-1 gate, predecessor gate."""
    if getattr(course, "is_coming_soon", False):
        return CourseStatus.COMING_SOON

    if is_workflow_completed(workflow_for_level):
        return CourseStatus.COMPLETED

    is_available = bool(getattr(course, "is_available", False))
    level = getattr(course, "level", None)

    if level == 1:
        return CourseStatus.AVAILABLE if is_available else CourseStatus.LOCKED

    if is_available and is_workflow_completed(workflow_for_previous_level):
        return CourseStatus.AVAILABLE
    return CourseStatus.LOCKED


def course_statuses(courses, workflows_by_level):
    """Map course id to status for an ordered list of courses."""
    return {
        course.id: compute_course_status(
            course,
            workflows_by_level.get(course.level),
            previous_level_workflow(workflows_by_level, course.level),
        )
        for course in courses
    }
