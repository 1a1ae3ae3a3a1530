from .user import User
from .course import Course, Section, Subsection
from .progress import Progress, CourseCompletion
from .workflow import CertificationWorkflow
