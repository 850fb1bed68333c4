"""JSON API for exams, submissions and grading."""
from flask import Blueprint, request, jsonify

from app.models import Submission
from app.services import exam_service
from app.services.db_guard import guard_write_request
from app.services.exam_service import (
    ExamServiceError,
    format_datetime,
    is_low_time,
    parse_datetime,
    remaining_seconds,
)

api_exams_bp = Blueprint('api_exams', __name__, url_prefix='/api')


@api_exams_bp.before_request
def guard_read_only():
    blocked = guard_write_request()
    if blocked is not None:
        return blocked
    return None


@api_exams_bp.errorhandler(ExamServiceError)
def handle_service_error(exc):
    return error_response(exc.message, exc.code, exc.status)


def ok(data=None, status=200):
    return jsonify({'ok': True, 'data': data}), status


def error_response(message, code, status=400):
    return jsonify({'ok': False, 'code': code, 'message': message}), status


def _exam_payload(exam, include_questions=True):
    payload = {
        'id': exam.id,
        'classId': exam.class_id,
        'className': exam.classroom.name if exam.classroom else None,
        'title': exam.title,
        'dueDate': format_datetime(exam.due_date),
        'durationMinutes': exam.duration_minutes,
        'fileUrl': exam.file_url,
        'createdBy': exam.created_by,
        'questionCount': exam.question_count,
        'createdAt': format_datetime(exam.created_at),
    }
    if include_questions:
        payload['questions'] = exam.questions
    return payload


def _submission_payload(submission):
    return {
        'id': submission.id,
        'examId': submission.exam_id,
        'studentId': submission.student_id,
        'answers': submission.answers,
        'grade': submission.grade,
        'feedback': submission.feedback,
        'status': submission.status,
        'isAuto': bool(submission.is_auto),
        'submittedAt': format_datetime(submission.submitted_at),
        'gradedAt': format_datetime(submission.graded_at),
    }


def _parse_int_arg(name):
    value = request.args.get(name)
    if value is None or value == '':
        return None, None
    try:
        return int(value), None
    except ValueError:
        return None, error_response(f'Invalid {name}.', 'INVALID_PAYLOAD')


# ============================================================
# Exams
# ============================================================

@api_exams_bp.post('/exams')
def create_exam():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return error_response('No data provided.', 'INVALID_PAYLOAD')
    exam = exam_service.create_exam(data)
    return ok(_exam_payload(exam), 201)


@api_exams_bp.get('/exams')
def list_exams():
    class_id, error = _parse_int_arg('classId')
    if error:
        return error
    exams = exam_service.list_exams(class_id)
    return ok({'items': [_exam_payload(e, include_questions=False) for e in exams]})


@api_exams_bp.get('/exams/<int:exam_id>')
def get_exam(exam_id):
    exam = exam_service.get_exam_or_404(exam_id)
    payload = _exam_payload(exam)

    started_at = request.args.get('startedAt')
    if started_at and exam.duration_minutes:
        started = parse_datetime(started_at, 'startedAt')
        remaining = remaining_seconds(exam.duration_minutes, started)
        payload['timer'] = {
            'remainingSeconds': remaining,
            'isLowTime': is_low_time(remaining, exam.duration_minutes),
            'isTimeUp': remaining == 0,
        }
    return ok(payload)


@api_exams_bp.put('/exams/<int:exam_id>')
def update_exam(exam_id):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return error_response('No data provided.', 'INVALID_PAYLOAD')
    exam = exam_service.update_exam(exam_id, data)
    return ok(_exam_payload(exam))


@api_exams_bp.delete('/exams/<int:exam_id>')
def delete_exam(exam_id):
    exam_service.delete_exam(exam_id)
    return ok({'id': exam_id})


@api_exams_bp.get('/students/<student_id>/exams')
def list_student_exams(student_id):
    items = exam_service.list_student_exams(student_id)
    return ok({
        'items': [
            {
                **_exam_payload(item['exam'], include_questions=False),
                'submitted': item['submitted'],
                'grade': item['grade'],
                'status': item['status'],
                'isOverdue': item['isOverdue'],
            }
            for item in items
        ]
    })


# ============================================================
# Submissions
# ============================================================

@api_exams_bp.post('/exams/<int:exam_id>/submissions')
def submit_exam(exam_id):
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return error_response('Request body must be a JSON object.', 'INVALID_PAYLOAD')
    student_id = str(data.get('studentId') or '').strip()
    if not student_id:
        return error_response('studentId is required.', 'INVALID_PAYLOAD')

    submission = exam_service.submit_exam(
        exam_id,
        student_id,
        answers=data.get('answers'),
        answer_text=data.get('answerText'),
        is_auto=bool(data.get('isAuto')),
    )
    return ok(_submission_payload(submission), 201)


@api_exams_bp.get('/exams/<int:exam_id>/submissions')
def list_submissions(exam_id):
    exam = exam_service.get_exam_or_404(exam_id)
    submissions = exam.submissions.order_by(Submission.submitted_at, Submission.id).all()
    return ok({'items': [_submission_payload(s) for s in submissions]})


@api_exams_bp.patch('/submissions/<int:submission_id>/grade')
def grade_submission(submission_id):
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return error_response('Request body must be a JSON object.', 'INVALID_PAYLOAD')
    feedback = data.get('feedback')
    if feedback is not None and not isinstance(feedback, str):
        return error_response('feedback must be a string.', 'INVALID_PAYLOAD')
    submission = exam_service.grade_submission(submission_id, data.get('grade'), feedback)
    return ok(_submission_payload(submission))


@api_exams_bp.get('/exams/<int:exam_id>/analysis')
def exam_analysis(exam_id):
    analysis = exam_service.get_exam_analysis(exam_id)
    return ok({'examId': exam_id, 'analysis': analysis})


# ============================================================
# Dashboards
# ============================================================

@api_exams_bp.get('/students/<student_id>/dashboard')
def student_dashboard(student_id):
    return ok(exam_service.get_student_dashboard(student_id))


@api_exams_bp.get('/instructors/<instructor_id>/stats')
def instructor_stats(instructor_id):
    return ok(exam_service.get_instructor_stats(instructor_id))
