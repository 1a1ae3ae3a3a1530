from certflow.extensions import db
from datetime import datetime


class Progress(db.Model):
    __tablename__ = "user_progress"
    __table_args__ = (db.UniqueConstraint("user_id", "subsection_id", name="uq_progress_user_subsection"),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    course_id = db.Column(db.Integer, db.ForeignKey('courses.id'), nullable=False)
    subsection_id = db.Column(db.Integer, db.ForeignKey('subsections.id'), nullable=False)
    completed_at = db.Column(db.DateTime, nullable=True)

    student = db.relationship('User', back_populates='progress')


class CourseCompletion(db.Model):
    __tablename__ = "course_completions"
    __table_args__ = (db.UniqueConstraint("user_id", "course_id", name="uq_completion_user_course"),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    course_id = db.Column(db.Integer, db.ForeignKey('courses.id'), nullable=False)
    completed_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    certificate_url = db.Column(db.String(500), nullable=True)
