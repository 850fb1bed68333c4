"""
Unit tests for grading, analysis and timer helpers.
"""

from datetime import datetime, timedelta

import pytest

from app.services.exam_service import (
    ExamValidationError,
    analyze_questions,
    auto_grade,
    is_low_time,
    normalize_questions,
    parse_datetime,
    remaining_seconds,
)

QUESTIONS = [
    {"text": "Q1", "options": ["a", "b"], "correctAnswer": "a"},
    {"text": "Q2", "options": ["c", "d"], "correctAnswer": "d"},
]


class TestAutoGrade:

    def test_all_correct(self):
        assert auto_grade(QUESTIONS, {"0": "a", "1": "d"}) == 100.0

    def test_unanswered_counts_against_score(self):
        assert auto_grade(QUESTIONS, {"0": "a"}) == 50.0

    def test_rounds_to_one_decimal(self):
        questions = QUESTIONS + [{"text": "Q3", "options": ["e"], "correctAnswer": "e"}]

        assert auto_grade(questions, {"0": "a", "1": "d"}) == 66.7

    def test_without_marking_scheme_returns_none(self):
        questions = [{"text": "Q", "options": ["a"], "correctAnswer": ""}]

        assert auto_grade(questions, {"0": "a"}) is None

    def test_without_questions_returns_none(self):
        assert auto_grade([], {}) is None


class TestAnalyzeQuestions:

    def test_no_submissions_returns_none(self):
        assert analyze_questions(QUESTIONS, []) is None

    def test_ties_pick_first_question(self):
        analysis = analyze_questions(QUESTIONS, [{"0": "a", "1": "d"}])

        assert analysis["mostFailed"]["index"] == 0
        assert analysis["highestPassed"]["index"] == 0
        assert analysis["overallPassRate"] == 100

    def test_question_label_falls_back_to_number(self):
        analysis = analyze_questions([{"options": ["a"], "correctAnswer": "a"}], [{}])

        assert analysis["questionStats"][0]["question"] == "Question 1"
        assert analysis["overallPassRate"] == 0


class TestNormalizeQuestions:

    def test_generates_ids_and_default_points(self):
        questions = normalize_questions([{"text": " Q ", "options": ["a"]}])

        assert questions[0]["text"] == "Q"
        assert questions[0]["points"] == 5
        assert questions[0]["correctAnswer"] == ""
        assert len(questions[0]["id"]) == 32

    def test_keeps_supplied_id(self):
        questions = normalize_questions([{"id": "abc", "text": "Q"}])

        assert questions[0]["id"] == "abc"

    def test_rejects_boolean_points(self):
        with pytest.raises(ExamValidationError):
            normalize_questions([{"text": "Q", "points": True}])


class TestParseDatetime:

    def test_utc_suffix_is_normalized_to_naive_utc(self):
        assert parse_datetime("2030-05-01T12:00:00Z") == datetime(2030, 5, 1, 12, 0)

    def test_offset_is_converted_to_utc(self):
        assert parse_datetime("2030-05-01T12:00:00+02:00") == datetime(2030, 5, 1, 10, 0)

    @pytest.mark.parametrize("value", [None, "", "soon", 5])
    def test_invalid_values_raise(self, value):
        with pytest.raises(ExamValidationError):
            parse_datetime(value)


class TestTimer:

    def test_remaining_seconds(self):
        start = datetime(2030, 1, 1, 9, 0, 0)

        assert remaining_seconds(30, start, start + timedelta(minutes=10)) == 20 * 60

    def test_remaining_seconds_never_negative(self):
        start = datetime(2030, 1, 1, 9, 0, 0)

        assert remaining_seconds(30, start, start + timedelta(hours=2)) == 0

    @pytest.mark.parametrize("remaining, duration, expected", [
        (299, 120, True),    # 5 minute cap applies to long exams
        (300, 120, False),
        (59, 10, True),      # 10% of a 10 minute exam is 60 seconds
        (60, 10, False),
    ])
    def test_is_low_time(self, remaining, duration, expected):
        assert is_low_time(remaining, duration) is expected
