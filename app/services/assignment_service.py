"""Assignment service: file-upload coursework with points and late penalties.

A submission made after the due date is accepted but flagged late. When an
instructor grades a late submission, the assignment's penalty is taken off
the awarded points (never below zero).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from app import db
from app.models import Assignment, AssignmentSubmission, Submission
from app.services.exam_service import (
    ExamValidationError,
    NotFoundError,
    SubmissionError,
    _is_number,
    get_class_or_404,
    parse_datetime,
)

DEFAULT_ASSIGNMENT_POINTS = 100


def _parse_non_negative_int(value: Any, field_name: str, default: int) -> int:
    if value in (None, ''):
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ExamValidationError('INVALID_PAYLOAD', f'{field_name} must be a non-negative integer.')
    return value


def get_assignment_or_404(assignment_id: int) -> Assignment:
    assignment = db.session.get(Assignment, assignment_id)
    if assignment is None:
        raise NotFoundError('ASSIGNMENT_NOT_FOUND', 'Assignment not found.')
    return assignment


def create_assignment(data: Dict[str, Any]) -> Assignment:
    title = data.get('title')
    if not isinstance(title, str) or not title.strip():
        raise ExamValidationError('INVALID_PAYLOAD', 'title is required.')

    class_id = data.get('classId')
    if not isinstance(class_id, int) or isinstance(class_id, bool):
        raise ExamValidationError('INVALID_PAYLOAD', 'classId is required.')
    get_class_or_404(class_id)

    points = _parse_non_negative_int(data.get('points'), 'points', DEFAULT_ASSIGNMENT_POINTS)
    if points == 0:
        raise ExamValidationError('INVALID_PAYLOAD', 'points must be greater than zero.')
    penalty = _parse_non_negative_int(data.get('latePenaltyAmount'), 'latePenaltyAmount', 0)
    if penalty > points:
        raise ExamValidationError('INVALID_PAYLOAD', 'latePenaltyAmount cannot exceed points.')

    description = data.get('description')
    if description is not None and not isinstance(description, str):
        raise ExamValidationError('INVALID_PAYLOAD', 'description must be a string.')

    assignment = Assignment(
        class_id=class_id,
        title=title.strip(),
        description=description or None,
        due_date=parse_datetime(data.get('dueDate')),
        points=points,
        late_penalty_amount=penalty,
        created_by=data.get('createdBy') or None,
    )
    db.session.add(assignment)
    db.session.commit()
    current_app.logger.info(
        "Created assignment %s (%d points, late penalty %d)",
        assignment.id, points, penalty,
    )
    return assignment


def list_assignments(class_id: Optional[int] = None) -> List[Assignment]:
    query = Assignment.query
    if class_id is not None:
        query = query.filter_by(class_id=class_id)
    return query.order_by(Assignment.due_date, Assignment.id).all()


def delete_assignment(assignment_id: int) -> None:
    assignment = get_assignment_or_404(assignment_id)
    db.session.delete(assignment)
    db.session.commit()


def submit_assignment(
    assignment_id: int,
    student_id: str,
    file_url: Any,
    agreement_confirmed: bool = False,
    now: Optional[datetime] = None,
) -> AssignmentSubmission:
    """
    Record or replace a student's upload for an assignment.

    Late uploads are accepted and flagged. A resubmission replaces the file
    and clears any earlier grade.

    Raises:
        NotFoundError: Unknown assignment.
        SubmissionError: Missing file or unconfirmed agreement.
    """
    assignment = get_assignment_or_404(assignment_id)
    now = now or datetime.utcnow()

    if not isinstance(file_url, str) or not file_url.strip():
        raise SubmissionError('MISSING_FILE', 'Please attach your work.')
    if not agreement_confirmed:
        raise SubmissionError(
            'AGREEMENT_REQUIRED', 'Please confirm this is your own work before submitting.'
        )

    submission = AssignmentSubmission.query.filter_by(
        assignment_id=assignment.id, student_id=student_id
    ).first()
    if submission is None:
        submission = AssignmentSubmission(assignment_id=assignment.id, student_id=student_id)
        db.session.add(submission)

    submission.file_url = file_url.strip()
    submission.submitted_at = now
    submission.is_late = assignment.is_overdue(now)
    submission.raw_grade = None
    submission.grade = None
    submission.feedback = None
    submission.graded_at = None
    submission.status = Submission.STATUS_SUBMITTED

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise SubmissionError('ALREADY_SUBMITTED', 'Submission is already being saved.', status=409)

    current_app.logger.info(
        "Assignment %s submitted by %s (late=%s)", assignment.id, student_id, submission.is_late
    )
    return submission


def apply_late_penalty(raw_grade: float, penalty: int, is_late: bool) -> float:
    if not is_late:
        return raw_grade
    return max(0.0, raw_grade - penalty)


def grade_assignment_submission(
    submission_id: int,
    grade: Any,
    feedback: Optional[str] = None,
) -> AssignmentSubmission:
    """Award points (0 to the assignment's total), deducting the late penalty."""
    submission = db.session.get(AssignmentSubmission, submission_id)
    if submission is None:
        raise NotFoundError('SUBMISSION_NOT_FOUND', 'Submission not found.')

    assignment = submission.assignment
    if not _is_number(grade) or not 0 <= grade <= assignment.points:
        raise SubmissionError(
            'INVALID_GRADE', f'Please enter a valid grade (0-{assignment.points}).'
        )

    submission.raw_grade = float(grade)
    submission.grade = apply_late_penalty(
        float(grade), assignment.late_penalty_amount, bool(submission.is_late)
    )
    if feedback is not None:
        submission.feedback = feedback
    submission.status = Submission.STATUS_GRADED
    submission.graded_at = datetime.utcnow()
    db.session.commit()
    return submission


__all__ = [
    'DEFAULT_ASSIGNMENT_POINTS',
    'get_assignment_or_404',
    'create_assignment',
    'list_assignments',
    'delete_assignment',
    'submit_assignment',
    'apply_late_penalty',
    'grade_assignment_submission',
]
