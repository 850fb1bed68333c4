"""Database models - classes, exams, assignments and submissions."""
import json
from datetime import datetime

from app import db


class Classroom(db.Model):
    """A class run by an instructor; students join through enrollments."""
    __tablename__ = 'classes'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    instructor_id = db.Column(db.String(64), nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    enrollments = db.relationship('Enrollment', backref='classroom', lazy='dynamic',
                                  cascade='all, delete-orphan')
    exams = db.relationship('Exam', backref='classroom', lazy='dynamic',
                            cascade='all, delete-orphan', order_by='Exam.due_date')

    def __repr__(self):
        return f'<Classroom {self.name}>'

    @property
    def student_count(self):
        return self.enrollments.count()


class Enrollment(db.Model):
    """Student membership of a class."""
    __tablename__ = 'enrollments'
    __table_args__ = (
        db.UniqueConstraint('class_id', 'student_id', name='uq_enrollment_class_student'),
    )

    id = db.Column(db.Integer, primary_key=True)
    class_id = db.Column(db.Integer, db.ForeignKey('classes.id'), nullable=False)
    student_id = db.Column(db.String(64), nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<Enrollment C{self.class_id} S{self.student_id}>'


class Exam(db.Model):
    """Exam or assignment distributed to a class.

    Questions are stored as a JSON list of records with the keys
    ``id``, ``text``, ``options``, ``correctAnswer`` and ``points``. An exam
    without questions takes a single free-text answer.
    """
    __tablename__ = 'exams'

    id = db.Column(db.Integer, primary_key=True)
    class_id = db.Column(db.Integer, db.ForeignKey('classes.id'), nullable=False)
    title = db.Column(db.String(300), nullable=False)
    due_date = db.Column(db.DateTime, nullable=False)
    duration_minutes = db.Column(db.Integer)
    file_url = db.Column(db.String(1000))
    created_by = db.Column(db.String(64))
    questions_json = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    submissions = db.relationship('Submission', backref='exam', lazy='dynamic',
                                  cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Exam {self.title}>'

    @property
    def questions(self):
        if not self.questions_json:
            return []
        try:
            value = json.loads(self.questions_json)
        except (TypeError, ValueError):
            return []
        return value if isinstance(value, list) else []

    @questions.setter
    def questions(self, value):
        self.questions_json = json.dumps(value or [], ensure_ascii=False)

    @property
    def question_count(self):
        return len(self.questions)

    @property
    def has_marking_scheme(self):
        """True when at least one question carries a correct answer."""
        return any(q.get('correctAnswer') for q in self.questions)

    def is_overdue(self, now=None):
        return (now or datetime.utcnow()) > self.due_date


class Submission(db.Model):
    """A student's single submission for an exam."""
    __tablename__ = 'submissions'
    __table_args__ = (
        db.UniqueConstraint('exam_id', 'student_id', name='uq_submission_exam_student'),
    )

    STATUS_SUBMITTED = 'submitted'
    STATUS_GRADED = 'graded'

    id = db.Column(db.Integer, primary_key=True)
    exam_id = db.Column(db.Integer, db.ForeignKey('exams.id'), nullable=False)
    student_id = db.Column(db.String(64), nullable=False, index=True)
    answers_json = db.Column(db.Text)
    grade = db.Column(db.Float)
    feedback = db.Column(db.Text)
    status = db.Column(db.String(20), default=STATUS_SUBMITTED)
    is_auto = db.Column(db.Boolean, default=False)
    submitted_at = db.Column(db.DateTime, default=datetime.utcnow)
    graded_at = db.Column(db.DateTime)

    def __repr__(self):
        return f'<Submission E{self.exam_id} S{self.student_id} ({self.status})>'

    @property
    def answers(self):
        if not self.answers_json:
            return {}
        try:
            value = json.loads(self.answers_json)
        except (TypeError, ValueError):
            return {}
        return value if isinstance(value, dict) else {}

    @answers.setter
    def answers(self, value):
        self.answers_json = json.dumps(value or {}, ensure_ascii=False)

    @property
    def is_graded(self):
        return self.status == self.STATUS_GRADED


class Assignment(db.Model):
    """File-upload coursework with a points total and an optional late penalty."""
    __tablename__ = 'assignments'

    id = db.Column(db.Integer, primary_key=True)
    class_id = db.Column(db.Integer, db.ForeignKey('classes.id'), nullable=False)
    title = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text)
    due_date = db.Column(db.DateTime, nullable=False)
    points = db.Column(db.Integer, nullable=False, default=100)
    late_penalty_amount = db.Column(db.Integer, nullable=False, default=0)
    created_by = db.Column(db.String(64))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    classroom = db.relationship('Classroom', backref=db.backref(
        'assignments', lazy='dynamic', cascade='all, delete-orphan'))
    submissions = db.relationship('AssignmentSubmission', backref='assignment', lazy='dynamic',
                                  cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Assignment {self.title}>'

    def is_overdue(self, now=None):
        return (now or datetime.utcnow()) > self.due_date


class AssignmentSubmission(db.Model):
    """A student's uploaded work for an assignment; resubmitting replaces it."""
    __tablename__ = 'assignment_submissions'
    __table_args__ = (
        db.UniqueConstraint('assignment_id', 'student_id', name='uq_assignment_submission_student'),
    )

    id = db.Column(db.Integer, primary_key=True)
    assignment_id = db.Column(db.Integer, db.ForeignKey('assignments.id'), nullable=False)
    student_id = db.Column(db.String(64), nullable=False, index=True)
    file_url = db.Column(db.String(1000), nullable=False)
    is_late = db.Column(db.Boolean, default=False)
    raw_grade = db.Column(db.Float)
    grade = db.Column(db.Float)
    feedback = db.Column(db.Text)
    status = db.Column(db.String(20), default=Submission.STATUS_SUBMITTED)
    submitted_at = db.Column(db.DateTime, default=datetime.utcnow)
    graded_at = db.Column(db.DateTime)

    def __repr__(self):
        return f'<AssignmentSubmission A{self.assignment_id} S{self.student_id} ({self.status})>'
