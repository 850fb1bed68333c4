"""JSON API for classes and enrollments."""
from flask import Blueprint, request, jsonify

from app.services import exam_service
from app.services.db_guard import guard_write_request
from app.services.exam_service import ExamServiceError, format_datetime

api_classes_bp = Blueprint('api_classes', __name__, url_prefix='/api/classes')


@api_classes_bp.before_request
def guard_read_only():
    blocked = guard_write_request()
    if blocked is not None:
        return blocked
    return None


@api_classes_bp.errorhandler(ExamServiceError)
def handle_service_error(exc):
    return error_response(exc.message, exc.code, exc.status)


def ok(data=None, status=200):
    return jsonify({'ok': True, 'data': data}), status


def error_response(message, code, status=400):
    return jsonify({'ok': False, 'code': code, 'message': message}), status


def _class_payload(classroom):
    return {
        'id': classroom.id,
        'name': classroom.name,
        'instructorId': classroom.instructor_id,
        'studentCount': classroom.student_count,
        'createdAt': format_datetime(classroom.created_at),
    }


@api_classes_bp.post('')
def create_class():
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return error_response('Request body must be a JSON object.', 'INVALID_PAYLOAD')
    name = str(data.get('name') or '').strip()
    instructor_id = str(data.get('instructorId') or '').strip()
    if not name:
        return error_response('Class name is required.', 'INVALID_PAYLOAD')
    if not instructor_id:
        return error_response('instructorId is required.', 'INVALID_PAYLOAD')

    classroom = exam_service.create_class(name, instructor_id)
    return ok(_class_payload(classroom), 201)


@api_classes_bp.get('')
def list_classes():
    instructor_id = request.args.get('instructorId')
    classes = exam_service.list_classes(instructor_id)
    return ok({'items': [_class_payload(c) for c in classes]})


@api_classes_bp.get('/<int:class_id>')
def get_class(class_id):
    classroom = exam_service.get_class_or_404(class_id)
    payload = _class_payload(classroom)
    payload['studentIds'] = [e.student_id for e in classroom.enrollments.all()]
    return ok(payload)


@api_classes_bp.post('/<int:class_id>/enrollments')
def enroll(class_id):
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return error_response('Request body must be a JSON object.', 'INVALID_PAYLOAD')
    student_id = str(data.get('studentId') or '').strip()
    if not student_id:
        return error_response('studentId is required.', 'INVALID_PAYLOAD')

    enrollment = exam_service.enroll_student(class_id, student_id)
    return ok({'classId': enrollment.class_id, 'studentId': enrollment.student_id}, 201)


@api_classes_bp.delete('/<int:class_id>/enrollments/<student_id>')
def unenroll(class_id, student_id):
    exam_service.unenroll_student(class_id, student_id)
    return ok({'classId': class_id, 'studentId': student_id})
