"""
Tests for AI exam generation and grading. Gemini is never called.
"""

import json

import pytest

from app.services import ai_exam
from app.services.ai_exam import (
    AiServiceError,
    build_generation_context,
    parse_json_response,
    to_importable_questions,
)

GENERATED = {
    "title": "Photosynthesis Basics",
    "questions": [
        {
            "type": "multiple_choice",
            "question": "Where does photosynthesis happen?",
            "options": ["Mitochondria", "Chloroplast", "Nucleus", "Ribosome"],
            "answer": "Chloroplast",
        },
        {
            "type": "multiple_choice",
            "question": "Which gas is released?",
            "options": ["Oxygen", "Nitrogen"],
            "answer": "Helium",
        },
        {"type": "short_answer", "question": "Explain the light reactions."},
    ],
}


@pytest.fixture
def fake_gemini(monkeypatch):
    """Record prompts and return canned replies instead of calling Gemini."""
    calls = []
    replies = []

    def _call(prompt, system_instruction, temperature):
        calls.append({"prompt": prompt, "system": system_instruction, "temperature": temperature})
        return replies.pop(0)

    monkeypatch.setattr(ai_exam, "_call_gemini", _call)
    return calls, replies


class TestParseJsonResponse:

    def test_plain_json(self):
        assert parse_json_response('{"grade": 90}') == {"grade": 90}

    def test_code_fence_and_trailing_comma(self):
        text = '```json\n{"grade": 70, "feedback": "ok",}\n```'

        assert parse_json_response(text) == {"grade": 70, "feedback": "ok"}

    def test_object_embedded_in_prose(self):
        text = 'Here you go: {"feedback": "uses {braces}", "grade": 1} Thanks!'

        assert parse_json_response(text) == {"feedback": "uses {braces}", "grade": 1}

    def test_empty_reply_is_empty_dict(self):
        assert parse_json_response("") == {}

    @pytest.mark.parametrize("text", ["no json here", "[1, 2]"])
    def test_unusable_reply_raises(self, text):
        with pytest.raises(AiServiceError):
            parse_json_response(text)


class TestGenerationHelpers:

    def test_context_prefers_text_and_truncates(self):
        assert build_generation_context("abcdef", "ignored", 4) == "abcd"

    def test_context_falls_back_to_topic(self):
        assert build_generation_context(None, "Cells", 100) == "Topic: Cells"

    def test_importable_questions_only_multiple_choice(self):
        records = to_importable_questions(GENERATED["questions"])

        assert [r["text"] for r in records] == [
            "Where does photosynthesis happen?",
            "Which gas is released?",
        ]
        assert records[0]["correctAnswer"] == "Chloroplast"
        # Answer not among the options is dropped
        assert records[1]["correctAnswer"] == ""
        for record in records:
            assert set(record) == {"id", "text", "options", "correctAnswer", "points"}


class TestGenerateExamRoute:

    def test_generate_from_topic(self, client, fake_gemini):
        calls, replies = fake_gemini
        replies.append(json.dumps(GENERATED))

        response = client.post("/api/ai/generate-exam", json={"topic": "Photosynthesis"})

        assert response.status_code == 200
        data = response.get_json()["data"]
        assert data["title"] == "Photosynthesis Basics"
        assert len(data["questions"]) == 3
        assert len(data["importableQuestions"]) == 2
        assert "Topic: Photosynthesis" in calls[0]["prompt"]

    def test_generate_truncates_long_text(self, app, client, fake_gemini):
        calls, replies = fake_gemini
        replies.append(json.dumps(GENERATED))
        app.config["AI_CONTEXT_MAX_CHARS"] = 50

        client.post("/api/ai/generate-exam", json={"text": "x" * 200})

        assert "x" * 50 in calls[0]["prompt"]
        assert "x" * 51 not in calls[0]["prompt"]

    def test_generate_requires_text_or_topic(self, client):
        response = client.post("/api/ai/generate-exam", json={"text": "  "})

        assert response.status_code == 400
        assert response.get_json()["code"] == "MISSING_CONTENT"

    def test_generate_without_api_key_returns_500(self, app, client):
        app.config["GEMINI_API_KEY"] = None

        response = client.post("/api/ai/generate-exam", json={"topic": "Cells"})

        assert response.status_code == 500
        body = response.get_json()
        assert body["code"] == "AI_ERROR"
        assert "GEMINI_API_KEY" in body["message"]


class TestGradeExamRoute:

    def test_grade_answer(self, client, fake_gemini):
        calls, replies = fake_gemini
        replies.append('{"grade": 85, "feedback": "Good, but missed Y."}')

        response = client.post("/api/ai/grade-exam", json={
            "question": "What is X?",
            "studentAnswer": "X is a thing",
        })

        assert response.status_code == 200
        assert response.get_json()["data"] == {"grade": 85, "feedback": "Good, but missed Y."}
        assert ai_exam.DEFAULT_RUBRIC in calls[0]["prompt"]

    def test_grade_is_clamped(self, client, fake_gemini):
        _, replies = fake_gemini
        replies.append('{"grade": 140, "feedback": "Generous"}')

        response = client.post("/api/ai/grade-exam", json={
            "question": "Q", "studentAnswer": "A", "rubric": "Anything goes",
        })

        assert response.get_json()["data"]["grade"] == 100

    def test_non_numeric_grade_is_an_error(self, client, fake_gemini):
        _, replies = fake_gemini
        replies.append('{"grade": "excellent"}')

        response = client.post("/api/ai/grade-exam", json={"question": "Q", "studentAnswer": "A"})

        assert response.status_code == 500
        assert response.get_json()["code"] == "AI_ERROR"

    def test_grade_requires_question_and_answer(self, client):
        response = client.post("/api/ai/grade-exam", json={"question": "Q"})

        assert response.status_code == 400
        assert response.get_json()["code"] == "MISSING_FIELDS"
