"""Exam service: classes, exams, submissions and grading.

Routes delegate to these functions rather than implementing business logic.
"""

from __future__ import annotations

import math
import uuid
from datetime import datetime, timedelta, timezone
from numbers import Number
from typing import Any, Dict, List, Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from app import db
from app.models import (
    Assignment,
    AssignmentSubmission,
    Classroom,
    Enrollment,
    Exam,
    Submission,
)
from config.base import DEFAULT_QUESTION_POINTS


class ExamServiceError(Exception):
    """Base error carrying an API error code and HTTP status."""

    status = 400

    def __init__(self, code: str, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        if status is not None:
            self.status = status


class ExamValidationError(ExamServiceError):
    pass


class SubmissionError(ExamServiceError):
    pass


class NotFoundError(ExamServiceError):
    status = 404


# ============================================================
# Parsing helpers
# ============================================================

def parse_datetime(value: Any, field_name: str = 'dueDate') -> datetime:
    """Parse an ISO-8601 timestamp into a naive UTC datetime."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        raw = value.strip()
        if raw.endswith('Z'):
            raw = raw[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            raise ExamValidationError('INVALID_PAYLOAD', f'Invalid {field_name}.')
    else:
        raise ExamValidationError('INVALID_PAYLOAD', f'{field_name} is required.')

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def format_datetime(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.replace(microsecond=0).isoformat() + 'Z'


def _is_number(value: Any) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool)


def normalize_question(raw: Any, position: int) -> Dict[str, Any]:
    """Validate one question record and fill in defaults."""
    label = f'Question {position + 1}'
    if not isinstance(raw, dict):
        raise ExamValidationError('INVALID_QUESTION', f'{label} must be an object.')

    text = raw.get('text')
    if not isinstance(text, str) or not text.strip():
        raise ExamValidationError('INVALID_QUESTION', f'{label} has no text.')

    options = raw.get('options') or []
    if not isinstance(options, list) or not all(isinstance(o, str) for o in options):
        raise ExamValidationError('INVALID_QUESTION', f'{label} options must be a list of strings.')

    correct_answer = raw.get('correctAnswer') or ''
    if not isinstance(correct_answer, str):
        raise ExamValidationError('INVALID_QUESTION', f'{label} correctAnswer must be a string.')
    if correct_answer and correct_answer not in options:
        raise ExamValidationError(
            'INVALID_QUESTION', f'{label} correctAnswer must be one of its options.'
        )

    points = raw.get('points', DEFAULT_QUESTION_POINTS)
    if not _is_number(points) or points < 0:
        raise ExamValidationError('INVALID_QUESTION', f'{label} points must be a non-negative number.')

    question_id = raw.get('id')
    if not question_id:
        question_id = uuid.uuid4().hex

    return {
        'id': str(question_id),
        'text': text.strip(),
        'options': list(options),
        'correctAnswer': correct_answer,
        'points': points,
    }


def normalize_questions(raw_questions: Any) -> List[Dict[str, Any]]:
    if raw_questions is None:
        return []
    if not isinstance(raw_questions, list):
        raise ExamValidationError('INVALID_PAYLOAD', 'questions must be a list.')
    return [normalize_question(raw, i) for i, raw in enumerate(raw_questions)]


def _parse_duration(value: Any) -> Optional[int]:
    if value in (None, ''):
        return None
    if isinstance(value, bool):
        raise ExamValidationError('INVALID_PAYLOAD', 'durationMinutes must be a positive integer.')
    try:
        duration = int(value)
    except (TypeError, ValueError):
        raise ExamValidationError('INVALID_PAYLOAD', 'durationMinutes must be a positive integer.')
    if duration <= 0:
        raise ExamValidationError('INVALID_PAYLOAD', 'durationMinutes must be a positive integer.')
    return duration


def _require_text(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ExamValidationError('INVALID_PAYLOAD', f'{key} is required.')
    return value.strip()


# ============================================================
# Classes
# ============================================================

def create_class(name: str, instructor_id: str) -> Classroom:
    classroom = Classroom(name=name, instructor_id=instructor_id)
    db.session.add(classroom)
    db.session.commit()
    return classroom


def list_classes(instructor_id: Optional[str] = None) -> List[Classroom]:
    query = Classroom.query
    if instructor_id:
        query = query.filter_by(instructor_id=instructor_id)
    return query.order_by(Classroom.created_at.desc(), Classroom.id.desc()).all()


def get_class_or_404(class_id: int) -> Classroom:
    classroom = db.session.get(Classroom, class_id)
    if classroom is None:
        raise NotFoundError('CLASS_NOT_FOUND', 'Class not found.')
    return classroom


def enroll_student(class_id: int, student_id: str) -> Enrollment:
    get_class_or_404(class_id)
    existing = Enrollment.query.filter_by(class_id=class_id, student_id=student_id).first()
    if existing:
        raise ExamServiceError('ALREADY_ENROLLED', 'Student is already enrolled.', status=409)

    enrollment = Enrollment(class_id=class_id, student_id=student_id)
    db.session.add(enrollment)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ExamServiceError('ALREADY_ENROLLED', 'Student is already enrolled.', status=409)
    return enrollment


def unenroll_student(class_id: int, student_id: str) -> None:
    enrollment = Enrollment.query.filter_by(class_id=class_id, student_id=student_id).first()
    if enrollment is None:
        raise NotFoundError('ENROLLMENT_NOT_FOUND', 'Enrollment not found.')
    db.session.delete(enrollment)
    db.session.commit()


# ============================================================
# Exams
# ============================================================

def get_exam_or_404(exam_id: int) -> Exam:
    exam = db.session.get(Exam, exam_id)
    if exam is None:
        raise NotFoundError('EXAM_NOT_FOUND', 'Exam not found.')
    return exam


def create_exam(data: Dict[str, Any]) -> Exam:
    title = _require_text(data, 'title')
    class_id = data.get('classId')
    if not isinstance(class_id, int) or isinstance(class_id, bool):
        raise ExamValidationError('INVALID_PAYLOAD', 'classId is required.')
    get_class_or_404(class_id)

    exam = Exam(
        class_id=class_id,
        title=title,
        due_date=parse_datetime(data.get('dueDate')),
        duration_minutes=_parse_duration(data.get('durationMinutes')),
        file_url=data.get('fileUrl') or None,
        created_by=data.get('createdBy') or None,
    )
    exam.questions = normalize_questions(data.get('questions'))
    db.session.add(exam)
    db.session.commit()
    current_app.logger.info(
        "Created exam %s with %d questions", exam.id, exam.question_count
    )
    return exam


def update_exam(exam_id: int, data: Dict[str, Any]) -> Exam:
    exam = get_exam_or_404(exam_id)
    if 'title' in data:
        exam.title = _require_text(data, 'title')
    if 'dueDate' in data:
        exam.due_date = parse_datetime(data.get('dueDate'))
    if 'durationMinutes' in data:
        exam.duration_minutes = _parse_duration(data.get('durationMinutes'))
    if 'fileUrl' in data:
        exam.file_url = data.get('fileUrl') or None
    if 'questions' in data:
        exam.questions = normalize_questions(data.get('questions'))
    db.session.commit()
    return exam


def delete_exam(exam_id: int) -> None:
    exam = get_exam_or_404(exam_id)
    db.session.delete(exam)
    db.session.commit()


def list_exams(class_id: Optional[int] = None) -> List[Exam]:
    query = Exam.query
    if class_id is not None:
        query = query.filter_by(class_id=class_id)
    return query.order_by(Exam.due_date, Exam.id).all()


def list_student_exams(student_id: str) -> List[Dict[str, Any]]:
    """Exams from every class the student is enrolled in, with submission state."""
    class_ids = [
        e.class_id for e in Enrollment.query.filter_by(student_id=student_id).all()
    ]
    if not class_ids:
        return []

    exams = Exam.query.filter(Exam.class_id.in_(class_ids)).order_by(Exam.due_date, Exam.id).all()
    submissions = {
        s.exam_id: s
        for s in Submission.query.filter(
            Submission.student_id == student_id,
            Submission.exam_id.in_([e.id for e in exams] or [-1]),
        ).all()
    }

    now = datetime.utcnow()
    items = []
    for exam in exams:
        sub = submissions.get(exam.id)
        items.append({
            'exam': exam,
            'submitted': sub is not None,
            'grade': sub.grade if sub else None,
            'status': sub.status if sub else None,
            'isOverdue': exam.is_overdue(now),
        })
    return items


# ============================================================
# Submissions and grading
# ============================================================

def auto_grade(questions: List[Dict[str, Any]], answers: Dict[str, Any]) -> Optional[float]:
    """
    Score multiple-choice answers against the marking scheme.

    Args:
        questions: Exam question records.
        answers: Mapping of question index (as string) to the selected option text.

    Returns:
        Percentage of questions answered correctly, rounded to one decimal,
        or None when no question has a correct answer.
    """
    if not questions or not any(q.get('correctAnswer') for q in questions):
        return None

    correct = 0
    for index, question in enumerate(questions):
        expected = question.get('correctAnswer')
        if expected and answers.get(str(index)) == expected:
            correct += 1
    return round(correct / len(questions) * 100, 1)


def _normalize_answers(raw: Any) -> Dict[str, str]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise SubmissionError('INVALID_PAYLOAD', 'answers must be an object.')
    answers = {}
    for key, value in raw.items():
        if value is None:
            continue
        if not isinstance(value, str):
            raise SubmissionError('INVALID_PAYLOAD', 'answers values must be strings.')
        answers[str(key)] = value
    return answers


def submit_exam(
    exam_id: int,
    student_id: str,
    answers: Any = None,
    answer_text: Optional[str] = None,
    is_auto: bool = False,
    now: Optional[datetime] = None,
) -> Submission:
    """
    Record a student's submission and auto-grade it when possible.

    Timer auto-submits (``is_auto``) are accepted even with nothing answered.

    Raises:
        NotFoundError: Unknown exam.
        SubmissionError: Exam closed, duplicate submission or empty answer.
    """
    exam = get_exam_or_404(exam_id)
    now = now or datetime.utcnow()

    if exam.is_overdue(now):
        raise SubmissionError('EXAM_CLOSED', 'The due date for this exam has passed.', status=403)

    existing = Submission.query.filter_by(exam_id=exam.id, student_id=student_id).first()
    if existing:
        raise SubmissionError('ALREADY_SUBMITTED', 'You have already submitted this exam.', status=409)

    questions = exam.questions
    submission = Submission(
        exam_id=exam.id,
        student_id=student_id,
        submitted_at=now,
        is_auto=bool(is_auto),
    )

    if questions:
        submitted_answers = _normalize_answers(answers)
        submission.answers = submitted_answers
        grade = auto_grade(questions, submitted_answers)
    else:
        text = (answer_text or '').strip()
        if not text and not is_auto:
            raise SubmissionError('EMPTY_ANSWER', 'Please enter your answer.')
        submission.answers = {'text': text}
        grade = None

    if grade is not None:
        submission.grade = grade
        submission.status = Submission.STATUS_GRADED
        submission.graded_at = now
    else:
        submission.grade = None
        submission.status = Submission.STATUS_SUBMITTED

    db.session.add(submission)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise SubmissionError('ALREADY_SUBMITTED', 'You have already submitted this exam.', status=409)

    current_app.logger.info(
        "Exam %s submitted by %s (auto=%s, grade=%s)",
        exam.id, student_id, submission.is_auto, submission.grade,
    )
    return submission


def grade_submission(submission_id: int, grade: Any, feedback: Optional[str] = None) -> Submission:
    """Apply an instructor's manual grade (0-100)."""
    submission = db.session.get(Submission, submission_id)
    if submission is None:
        raise NotFoundError('SUBMISSION_NOT_FOUND', 'Submission not found.')

    if not _is_number(grade) or not 0 <= grade <= 100:
        raise SubmissionError('INVALID_GRADE', 'Please enter a valid grade (0-100).')

    submission.grade = float(grade)
    if feedback is not None:
        submission.feedback = feedback
    submission.status = Submission.STATUS_GRADED
    submission.graded_at = datetime.utcnow()
    db.session.commit()
    return submission


def analyze_questions(
    questions: List[Dict[str, Any]],
    submissions: List[Dict[str, Any]],
) -> Optional[Dict[str, Any]]:
    """
    Per-question pass rates across submissions.

    Only answered questions count towards a question's total. Returns None
    when there are no questions or no submissions.
    """
    if not questions or not submissions:
        return None

    question_stats = []
    for index, question in enumerate(questions):
        correct = 0
        incorrect = 0
        for answers in submissions:
            answer = answers.get(str(index))
            if not answer:
                continue
            if answer == question.get('correctAnswer'):
                correct += 1
            else:
                incorrect += 1
        total = correct + incorrect
        question_stats.append({
            'index': index,
            'question': question.get('text') or f'Question {index + 1}',
            'correct': correct,
            'incorrect': incorrect,
            'total': total,
            'passRate': (correct / total) * 100 if total else 0,
        })

    most_failed = min(question_stats, key=lambda s: s['passRate'])
    highest_passed = max(question_stats, key=lambda s: s['passRate'])
    total_correct = sum(s['correct'] for s in question_stats)
    total_answers = sum(s['total'] for s in question_stats)

    return {
        'questionStats': question_stats,
        'mostFailed': most_failed,
        'highestPassed': highest_passed,
        'overallPassRate': (total_correct / total_answers) * 100 if total_answers else 0,
    }


def get_exam_analysis(exam_id: int) -> Optional[Dict[str, Any]]:
    exam = get_exam_or_404(exam_id)
    answers = [s.answers for s in exam.submissions.order_by(Submission.id).all()]
    return analyze_questions(exam.questions, answers)


# ============================================================
# Dashboards
# ============================================================

RECENT_SUBMISSION_WINDOW = timedelta(hours=24)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _dashboard_entry(kind: str, item) -> Dict[str, Any]:
    return {
        'type': kind,
        'id': item.id,
        'classId': item.class_id,
        'title': item.title,
        'dueDate': format_datetime(item.due_date),
    }


def get_student_dashboard(student_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Sort a student's exams and assignments into to-do, missed and completed.

    Anything submitted is completed. Unsubmitted work is missed once its due
    date has passed, otherwise pending. ``avgGrade`` averages every graded
    submission as a percentage (assignment points are scaled by the
    assignment total) and is 0 when nothing is graded.
    """
    now = now or datetime.utcnow()
    class_ids = [
        e.class_id for e in Enrollment.query.filter_by(student_id=student_id).all()
    ]

    exams = Exam.query.filter(Exam.class_id.in_(class_ids)).all() if class_ids else []
    assignments = (
        Assignment.query.filter(Assignment.class_id.in_(class_ids)).all() if class_ids else []
    )
    exam_subs = Submission.query.filter_by(student_id=student_id).all()
    assignment_subs = AssignmentSubmission.query.filter_by(student_id=student_id).all()

    submitted_exams = {s.exam_id for s in exam_subs}
    submitted_assignments = {s.assignment_id for s in assignment_subs}

    items = [('exam', e, e.id in submitted_exams) for e in exams]
    items += [('assignment', a, a.id in submitted_assignments) for a in assignments]
    items.sort(key=lambda entry: (entry[1].due_date, entry[0], entry[1].id))

    todo, missed, completed = [], [], []
    for kind, item, submitted in items:
        if submitted:
            completed.append(_dashboard_entry(kind, item))
        elif item.is_overdue(now):
            missed.append(_dashboard_entry(kind, item))
        else:
            todo.append(_dashboard_entry(kind, item))

    percentages = [s.grade for s in exam_subs if s.grade is not None]
    percentages += [
        s.grade / s.assignment.points * 100
        for s in assignment_subs
        if s.grade is not None and s.assignment.points
    ]
    avg_grade = _round_half_up(sum(percentages) / len(percentages)) if percentages else 0

    return {
        'metrics': {
            'pending': len(todo),
            'missed': len(missed),
            'completed': len(completed),
            'avgGrade': avg_grade,
        },
        'todo': todo,
        'missed': missed,
        'completed': completed,
    }


def get_instructor_stats(instructor_id: str, now: Optional[datetime] = None) -> Dict[str, int]:
    """Class and exam totals plus exam submissions received in the last 24 hours."""
    now = now or datetime.utcnow()
    class_count = Classroom.query.filter_by(instructor_id=instructor_id).count()
    exam_ids = [e.id for e in Exam.query.filter_by(created_by=instructor_id).all()]

    recent = 0
    if exam_ids:
        recent = Submission.query.filter(
            Submission.exam_id.in_(exam_ids),
            Submission.submitted_at > now - RECENT_SUBMISSION_WINDOW,
        ).count()

    return {
        'classCount': class_count,
        'examCount': len(exam_ids),
        'recentSubmissionCount': recent,
    }


# ============================================================
# Timer
# ============================================================

LOW_TIME_CAP_SECONDS = 300


def remaining_seconds(duration_minutes: int, started_at: datetime, now: Optional[datetime] = None) -> int:
    """Seconds left in a timed attempt, never below zero."""
    now = now or datetime.utcnow()
    elapsed = (now - started_at).total_seconds()
    return max(0, int(duration_minutes * 60 - elapsed))


def is_low_time(remaining: int, duration_minutes: int) -> bool:
    """True once less than 5 minutes or 10% of the duration remains."""
    return remaining < min(LOW_TIME_CAP_SECONDS, duration_minutes * 60 / 10)


__all__ = [
    'ExamServiceError',
    'ExamValidationError',
    'SubmissionError',
    'NotFoundError',
    'parse_datetime',
    'format_datetime',
    'normalize_questions',
    'create_class',
    'list_classes',
    'get_class_or_404',
    'enroll_student',
    'unenroll_student',
    'get_exam_or_404',
    'create_exam',
    'update_exam',
    'delete_exam',
    'list_exams',
    'list_student_exams',
    'auto_grade',
    'submit_exam',
    'grade_submission',
    'analyze_questions',
    'get_exam_analysis',
    'get_student_dashboard',
    'get_instructor_stats',
    'remaining_seconds',
    'is_low_time',
]
