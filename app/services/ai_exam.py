"""AI exam generation and grading service.

Uses the Google Gemini API to draft exams from source material and to grade
free-text answers against a rubric.
"""
from __future__ import annotations

import json
import re
import uuid
from typing import Any, Dict, List, Optional

from flask import current_app
from google import genai
from google.genai import types
from tenacity import (
    RetryError,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from config.base import DEFAULT_QUESTION_POINTS

GENERATION_SYSTEM_PROMPT = "You are a helpful assistant that generates exams in JSON."
GRADING_SYSTEM_PROMPT = "You are a fair and constructive grader."

GENERATION_PROMPT_TEMPLATE = """You are an expert exam creator. Based on the following content, generate an exam with 5 multiple choice questions and 2 short answer questions.

Content:
{context}

Output ONLY valid JSON in the following format:
{{
  "title": "Exam Title based on content",
  "questions": [
    {{
      "type": "multiple_choice",
      "question": "Question text",
      "options": ["A", "B", "C", "D"],
      "answer": "Correct Option"
    }},
    {{
      "type": "short_answer",
      "question": "Question text"
    }}
  ]
}}
"""

GRADING_PROMPT_TEMPLATE = """You are an expert teacher grading a student's answer.

Question: "{question}"
Rubric/Correct Answer Context: "{rubric}"
Student Answer: "{student_answer}"

Please provide:
1. A grade from 0 to 100.
2. Constructive feedback explaining the grade.

Output JSON format:
{{
  "grade": 85,
  "feedback": "Good understanding of X, but missed Y."
}}
"""

DEFAULT_RUBRIC = "Grade based on accuracy and completeness."


class AiServiceError(RuntimeError):
    """Raised when the model cannot be reached or returns unusable output."""


# ============================================================
# Response parsing
# ============================================================

def _extract_first_json_object(text: str) -> Optional[str]:
    start = text.find('{')
    if start == -1:
        return None
    depth = 0
    in_string = False
    escape = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escape:
                escape = False
            elif ch == '\\':
                escape = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
            continue
        if ch == '{':
            depth += 1
        elif ch == '}':
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None


def _sanitize_json_text(text: str) -> str:
    if not text:
        return text
    text = re.sub(r'```(?:json)?', '', text, flags=re.IGNORECASE)
    text = text.replace('```', '')
    text = (
        text.replace('“', '"')
            .replace('”', '"')
    )
    text = re.sub(r',\s*([}\]])', r'\1', text)
    return text.strip()


def parse_json_response(text: Optional[str]) -> Dict[str, Any]:
    """Parse a model reply into a dict, tolerating code fences and stray prose."""
    cleaned = _sanitize_json_text(text or '')
    if not cleaned:
        return {}
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError:
        candidate = _extract_first_json_object(cleaned)
        if candidate is None:
            raise AiServiceError('Model response was not valid JSON.')
        try:
            payload = json.loads(candidate)
        except json.JSONDecodeError as exc:
            raise AiServiceError(f'Model response was not valid JSON: {exc}')
    if not isinstance(payload, dict):
        raise AiServiceError('Model response was not a JSON object.')
    return payload


# ============================================================
# Gemini calls
# ============================================================

def _client() -> genai.Client:
    api_key = current_app.config.get('GEMINI_API_KEY')
    if not api_key:
        raise AiServiceError('GEMINI_API_KEY is not configured.')
    return genai.Client(api_key=api_key)


def _retry_attempts() -> int:
    return int(current_app.config.get('AI_RETRY_ATTEMPTS', 3))


def _call_gemini(prompt: str, system_instruction: str, temperature: float) -> str:
    """Send one JSON-mode prompt, retrying transient failures."""
    client = _client()
    model_name = current_app.config.get('GEMINI_MODEL_NAME', 'gemini-2.0-flash-lite')
    max_tokens = int(current_app.config.get('GEMINI_MAX_OUTPUT_TOKENS', 4096))

    @retry(
        stop=stop_after_attempt(_retry_attempts()),
        wait=wait_exponential(multiplier=2, min=2, max=30),
        retry=retry_if_exception_type((Exception,)),
    )
    def _generate() -> str:
        response = client.models.generate_content(
            model=model_name,
            contents=prompt,
            config=types.GenerateContentConfig(
                system_instruction=system_instruction,
                temperature=temperature,
                max_output_tokens=max_tokens,
                response_mime_type='application/json',
            ),
        )
        return (response.text or '').strip()

    try:
        return _generate()
    except RetryError as exc:
        cause = exc.last_attempt.exception()
        current_app.logger.warning("Gemini request failed after retries: %s", cause)
        raise AiServiceError(str(cause) or 'Gemini request failed.') from cause


# ============================================================
# Generation
# ============================================================

def build_generation_context(text: Optional[str], topic: Optional[str], max_chars: int) -> str:
    context = text or f'Topic: {topic}'
    if len(context) > max_chars:
        context = context[:max_chars]
    return context


def to_importable_questions(generated: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Convert generated multiple-choice questions to exam question records.

    Short-answer questions and entries without options are skipped. A model
    answer that is not one of the options is dropped.
    """
    records = []
    for item in generated:
        if not isinstance(item, dict):
            continue
        text = item.get('question') or item.get('text')
        options = item.get('options')
        if not text or not isinstance(options, list) or not options:
            continue
        options = [str(o) for o in options]
        answer = item.get('answer')
        records.append({
            'id': uuid.uuid4().hex,
            'text': str(text),
            'options': options,
            'correctAnswer': answer if answer in options else '',
            'points': DEFAULT_QUESTION_POINTS,
        })
    return records


def generate_exam(text: Optional[str] = None, topic: Optional[str] = None) -> Dict[str, Any]:
    """
    Draft an exam from source text or a topic.

    Returns:
        ``{"title", "questions", "importableQuestions"}``
    """
    max_chars = int(current_app.config.get('AI_CONTEXT_MAX_CHARS', 20000))
    context = build_generation_context(text, topic, max_chars)
    prompt = GENERATION_PROMPT_TEMPLATE.format(context=context)

    raw = _call_gemini(
        prompt,
        GENERATION_SYSTEM_PROMPT,
        float(current_app.config.get('AI_GENERATION_TEMPERATURE', 0.4)),
    )
    result = parse_json_response(raw)
    questions = result.get('questions')
    if not isinstance(questions, list):
        questions = []

    return {
        'title': result.get('title') or (f'{topic} Exam' if topic else 'Generated Exam'),
        'questions': questions,
        'importableQuestions': to_importable_questions(questions),
    }


# ============================================================
# Grading
# ============================================================

def _clamp_grade(value: Any) -> int:
    try:
        grade = float(value)
    except (TypeError, ValueError):
        raise AiServiceError('Model did not return a numeric grade.')
    return int(round(min(100.0, max(0.0, grade))))


def grade_answer(question: str, student_answer: str, rubric: Optional[str] = None) -> Dict[str, Any]:
    """
    Grade a free-text answer.

    Returns:
        ``{"grade": int 0..100, "feedback": str}``
    """
    prompt = GRADING_PROMPT_TEMPLATE.format(
        question=question,
        rubric=rubric or DEFAULT_RUBRIC,
        student_answer=student_answer,
    )
    raw = _call_gemini(
        prompt,
        GRADING_SYSTEM_PROMPT,
        float(current_app.config.get('AI_GRADING_TEMPERATURE', 0.1)),
    )
    result = parse_json_response(raw)
    return {
        'grade': _clamp_grade(result.get('grade')),
        'feedback': str(result.get('feedback') or ''),
    }


__all__ = [
    'AiServiceError',
    'parse_json_response',
    'build_generation_context',
    'to_importable_questions',
    'generate_exam',
    'grade_answer',
]
