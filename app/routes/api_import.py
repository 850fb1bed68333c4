"""JSON API for importing question banks from PDF or plain text."""
from flask import Blueprint, request, jsonify, current_app

from app.services.pdf_text import PdfTextExtractionError, extract_text_from_pdf
from app.services.question_bank_parser import NoQuestionsDetected, import_question_bank

api_import_bp = Blueprint('api_import', __name__, url_prefix='/api/exams')


def ok(data=None, status=200):
    return jsonify({'ok': True, 'data': data}), status


def error_response(message, code, status=400):
    return jsonify({'ok': False, 'code': code, 'message': message}), status


def _allowed_pdf(upload):
    filename = (upload.filename or '').lower()
    if '.' not in filename:
        return True
    extension = filename.rsplit('.', 1)[1]
    return extension in current_app.config.get('ALLOWED_EXTENSIONS', {'pdf'})


@api_import_bp.post('/parse-pdf')
def parse_pdf():
    """Parse an uploaded question bank (and optional answer key) into questions."""
    upload = request.files.get('file')
    answers_upload = request.files.get('answersFile')
    text = request.form.get('text', '')
    answers_text = request.form.get('answersText', '')

    if upload is None or not upload.filename:
        if not text.strip():
            return error_response('No file uploaded', 'NO_FILE')
    else:
        if not _allowed_pdf(upload):
            return error_response('Only PDF files are supported.', 'UNSUPPORTED_FILE')
        try:
            text = extract_text_from_pdf(upload.stream)
        except PdfTextExtractionError as exc:
            current_app.logger.error("PDF parse error for %s: %s", upload.filename, exc)
            return error_response(
                f'Failed to parse PDF file content: {exc}', 'PDF_PARSE_FAILED'
            )

    if answers_upload is not None and answers_upload.filename:
        try:
            answers_text = extract_text_from_pdf(answers_upload.stream)
        except PdfTextExtractionError as exc:
            # The import still succeeds without the key.
            current_app.logger.warning(
                "Answer key PDF parse error for %s: %s", answers_upload.filename, exc
            )
            answers_text = ''

    try:
        questions = import_question_bank(text, answers_text or None)
    except NoQuestionsDetected as exc:
        return error_response(exc.message, 'NO_QUESTIONS_DETECTED')

    answered = sum(1 for q in questions if q['correctAnswer'])
    current_app.logger.info(
        "Imported %d questions (%d with answers)", len(questions), answered
    )
    return ok({'questions': questions, 'count': len(questions)})
