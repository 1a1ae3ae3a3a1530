from certflow.extensions import db
from datetime import datetime


class Course(db.Model):
    __tablename__ = "courses"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text, nullable=True)
    level = db.Column(db.Integer, unique=True, nullable=False)
    is_available = db.Column(db.Boolean, default=False, nullable=False)
    is_coming_soon = db.Column(db.Boolean, default=False, nullable=False)

    # Exam
    exam_url = db.Column(db.String(500), nullable=True)
    exam_instructions = db.Column(db.Text, nullable=True)
    exam_duration_minutes = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    sections = db.relationship(
        "Section",
        back_populates="course",
        cascade="all, delete-orphan",
        order_by="Section.order_index"
    )

    @property
    def subsection_ids(self):
        return [sub.id for section in self.sections for sub in section.subsections]

    @property
    def total_subsections(self):
        return sum(len(section.subsections) for section in self.sections)


class Section(db.Model):
    __tablename__ = "sections"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    order_index = db.Column(db.Integer, nullable=False, default=0)

    course_id = db.Column(db.Integer, db.ForeignKey("courses.id"), nullable=False)

    course = db.relationship("Course", back_populates="sections")

    subsections = db.relationship(
        "Subsection",
        back_populates="section",
        cascade="all, delete-orphan",
        order_by="Subsection.order_index"
    )


class Subsection(db.Model):
    __tablename__ = "subsections"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    content = db.Column(db.Text, nullable=True)
    video_url = db.Column(db.String(500), nullable=True)
    quiz_url = db.Column(db.String(500), nullable=True)
    subsection_type = db.Column(db.Enum("content", "quiz", name="subsection_type"), nullable=False, default="content")
    order_index = db.Column(db.Integer, nullable=False, default=0)
    duration_minutes = db.Column(db.Integer, nullable=True)

    section_id = db.Column(db.Integer, db.ForeignKey("sections.id"), nullable=False)

    section = db.relationship("Section", back_populates="subsections")
