"""JSON API for assignments and their uploaded submissions."""
from flask import Blueprint, request, jsonify

from app.models import AssignmentSubmission
from app.services import assignment_service
from app.services.db_guard import guard_write_request
from app.services.exam_service import ExamServiceError, format_datetime

api_assignments_bp = Blueprint('api_assignments', __name__, url_prefix='/api')


@api_assignments_bp.before_request
def guard_read_only():
    blocked = guard_write_request()
    if blocked is not None:
        return blocked
    return None


@api_assignments_bp.errorhandler(ExamServiceError)
def handle_service_error(exc):
    return error_response(exc.message, exc.code, exc.status)


def ok(data=None, status=200):
    return jsonify({'ok': True, 'data': data}), status


def error_response(message, code, status=400):
    return jsonify({'ok': False, 'code': code, 'message': message}), status


def _assignment_payload(assignment):
    return {
        'id': assignment.id,
        'classId': assignment.class_id,
        'title': assignment.title,
        'description': assignment.description,
        'dueDate': format_datetime(assignment.due_date),
        'points': assignment.points,
        'latePenaltyAmount': assignment.late_penalty_amount,
        'createdBy': assignment.created_by,
        'createdAt': format_datetime(assignment.created_at),
    }


def _submission_payload(submission):
    return {
        'id': submission.id,
        'assignmentId': submission.assignment_id,
        'studentId': submission.student_id,
        'fileUrl': submission.file_url,
        'isLate': bool(submission.is_late),
        'rawGrade': submission.raw_grade,
        'grade': submission.grade,
        'feedback': submission.feedback,
        'status': submission.status,
        'submittedAt': format_datetime(submission.submitted_at),
        'gradedAt': format_datetime(submission.graded_at),
    }


@api_assignments_bp.post('/assignments')
def create_assignment():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return error_response('No data provided.', 'INVALID_PAYLOAD')
    assignment = assignment_service.create_assignment(data)
    return ok(_assignment_payload(assignment), 201)


@api_assignments_bp.get('/assignments')
def list_assignments():
    class_id = request.args.get('classId', type=int)
    assignments = assignment_service.list_assignments(class_id)
    return ok({'items': [_assignment_payload(a) for a in assignments]})


@api_assignments_bp.get('/assignments/<int:assignment_id>')
def get_assignment(assignment_id):
    assignment = assignment_service.get_assignment_or_404(assignment_id)
    return ok(_assignment_payload(assignment))


@api_assignments_bp.delete('/assignments/<int:assignment_id>')
def delete_assignment(assignment_id):
    assignment_service.delete_assignment(assignment_id)
    return ok({'id': assignment_id})


@api_assignments_bp.post('/assignments/<int:assignment_id>/submissions')
def submit_assignment(assignment_id):
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return error_response('Request body must be a JSON object.', 'INVALID_PAYLOAD')
    student_id = str(data.get('studentId') or '').strip()
    if not student_id:
        return error_response('studentId is required.', 'INVALID_PAYLOAD')

    submission = assignment_service.submit_assignment(
        assignment_id,
        student_id,
        data.get('fileUrl'),
        agreement_confirmed=data.get('agreementConfirmed') is True,
    )
    return ok(_submission_payload(submission), 201)


@api_assignments_bp.get('/assignments/<int:assignment_id>/submissions')
def list_assignment_submissions(assignment_id):
    assignment = assignment_service.get_assignment_or_404(assignment_id)
    submissions = assignment.submissions.order_by(
        AssignmentSubmission.submitted_at, AssignmentSubmission.id
    ).all()
    return ok({'items': [_submission_payload(s) for s in submissions]})


@api_assignments_bp.patch('/assignment-submissions/<int:submission_id>/grade')
def grade_assignment_submission(submission_id):
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return error_response('Request body must be a JSON object.', 'INVALID_PAYLOAD')
    feedback = data.get('feedback')
    if feedback is not None and not isinstance(feedback, str):
        return error_response('feedback must be a string.', 'INVALID_PAYLOAD')
    submission = assignment_service.grade_assignment_submission(
        submission_id, data.get('grade'), feedback
    )
    return ok(_submission_payload(submission))
