"""AI exam generation and grading API Blueprint"""
from flask import Blueprint, request, jsonify, current_app

from app.services.ai_exam import AiServiceError, generate_exam, grade_answer

ai_bp = Blueprint('ai', __name__, url_prefix='/api/ai')


def ok(data=None, status=200):
    return jsonify({'ok': True, 'data': data}), status


def error_response(message, code, status=400):
    return jsonify({'ok': False, 'code': code, 'message': message}), status


@ai_bp.post('/generate-exam')
def generate_exam_route():
    """Draft an exam from pasted text or a topic."""
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return error_response('Request body must be a JSON object.', 'INVALID_PAYLOAD')
    text = str(data.get('text') or '').strip()
    topic = str(data.get('topic') or '').strip()

    if not text and not topic:
        return error_response('Please provide text content or a topic', 'MISSING_CONTENT')

    try:
        result = generate_exam(text=text or None, topic=topic or None)
    except AiServiceError as e:
        current_app.logger.error("AI generation error: %s", e)
        return error_response(str(e) or 'Failed to generate exam', 'AI_ERROR', 500)

    return ok(result)


@ai_bp.post('/grade-exam')
def grade_exam_route():
    """Grade a free-text answer against an optional rubric."""
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return error_response('Request body must be a JSON object.', 'INVALID_PAYLOAD')
    question = str(data.get('question') or '').strip()
    student_answer = str(data.get('studentAnswer') or '').strip()
    rubric = data.get('rubric')

    if not question or not student_answer:
        return error_response('Missing question or answer', 'MISSING_FIELDS')

    try:
        result = grade_answer(question, student_answer, rubric)
    except AiServiceError as e:
        current_app.logger.error("AI grading error: %s", e)
        return error_response(str(e) or 'Failed to grade', 'AI_ERROR', 500)

    return ok(result)
