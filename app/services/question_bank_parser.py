"""Question bank text parser.

Turns loosely structured exam text (as extracted from a PDF) into question
records, and merges a separate answer key onto them by question number.

Expected layout::

    1. What is the capital of France?
    A) Berlin
    B) Paris
    Answer: B

Lines are classified in priority order: question start, option, inline
answer, continuation. Continuation text is only accepted before the first
option of a question; anything unmatched after that is dropped.
"""
from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional

from config.base import DEFAULT_QUESTION_POINTS

QUESTION_START_RE = re.compile(r"^([0-9]+)[.)]\s*(.+)")
OPTION_RE = re.compile(r"^\(?([A-Za-z])[.)]\s*(.+)")
INLINE_ANSWER_RE = re.compile(
    r"^(?:Answer|Ans|Correct)\s*:\s*([A-Za-z])", re.IGNORECASE | re.ASCII
)

ANSWER_KEY_SPLIT_RE = re.compile(r"\r?\n|;|,")
ANSWER_KEY_TOKEN_RE = re.compile(r"^([0-9]+)[.\-:\s]+([A-Za-z])$")

NO_QUESTIONS_MESSAGE = (
    'Could not detect any questions. Ensure format is: "1. Question... A) Option..."'
)


class NoQuestionsDetected(ValueError):
    """Raised when the source text contains no question-start line."""

    def __init__(self, message: str = NO_QUESTIONS_MESSAGE):
        super().__init__(message)
        self.message = message


@dataclass
class ParsedQuestion:
    """A question read from a question bank.

    ``original_index`` is the number printed in the source. It is only kept
    for joining with an answer key and is left out of ``to_dict()``.
    """

    id: str
    text: str
    options: List[str] = field(default_factory=list)
    correct_answer: str = ""
    points: int = DEFAULT_QUESTION_POINTS
    original_index: Optional[int] = None

    def option_for_letter(self, letter: str) -> Optional[str]:
        """Return the option labelled by ``letter`` (A = first), or None if out of range."""
        index = ord(letter.upper()) - ord("A")
        if 0 <= index < len(self.options):
            return self.options[index]
        return None

    def to_dict(self) -> dict:
        """Convert to dict for JSON serialization."""
        return {
            "id": self.id,
            "text": self.text,
            "options": list(self.options),
            "correctAnswer": self.correct_answer,
            "points": self.points,
        }


def _new_question_id() -> str:
    return uuid.uuid4().hex


def _normalized_lines(text: str) -> List[str]:
    lines = []
    for raw in (text or "").split("\n"):
        line = raw.strip()
        if line:
            lines.append(line)
    return lines


def parse_question_bank(
    text: str,
    id_factory: Optional[Callable[[], str]] = None,
) -> List[ParsedQuestion]:
    """
    Parse question bank text into ordered question records.

    Args:
        text: Raw newline-delimited text.
        id_factory: Optional callable producing question ids. Defaults to UUID4 hex.

    Returns:
        Questions in source order, with ``original_index`` still attached.

    Raises:
        NoQuestionsDetected: If no line starts a question.
    """
    make_id = id_factory or _new_question_id
    questions: List[ParsedQuestion] = []
    current: Optional[ParsedQuestion] = None

    for line in _normalized_lines(text):
        q_match = QUESTION_START_RE.match(line)
        if q_match:
            if current is not None:
                questions.append(current)
            current = ParsedQuestion(
                id=make_id(),
                text=q_match.group(2),
                original_index=int(q_match.group(1)),
            )
            continue

        if current is None:
            continue

        o_match = OPTION_RE.match(line)
        if o_match:
            current.options.append(o_match.group(2))
            continue

        a_match = INLINE_ANSWER_RE.match(line)
        if a_match:
            option = current.option_for_letter(a_match.group(1))
            if option is not None:
                current.correct_answer = option
            continue

        if not current.options:
            current.text = f"{current.text} {line}"

    if current is not None:
        questions.append(current)

    if not questions:
        raise NoQuestionsDetected()

    return questions


def _answer_key_tokens(answers_text: str) -> Iterable[str]:
    for token in ANSWER_KEY_SPLIT_RE.split(answers_text or ""):
        token = token.strip()
        if token:
            yield token


def merge_answer_key(questions: List[ParsedQuestion], answers_text: Optional[str]) -> int:
    """
    Apply an answer key such as ``"1. A, 2-C; 3 B"`` onto parsed questions.

    Entries are joined on the source question number, not on position. When
    numbers repeat in the source, the first question with that number wins.
    Unknown numbers, malformed entries and out-of-range letters are ignored.

    Returns:
        Number of answers applied.
    """
    applied = 0
    for token in _answer_key_tokens(answers_text):
        match = ANSWER_KEY_TOKEN_RE.match(token)
        if not match:
            continue
        number = int(match.group(1))
        target = next((q for q in questions if q.original_index == number), None)
        if target is None:
            continue
        option = target.option_for_letter(match.group(2))
        if option is not None:
            target.correct_answer = option
            applied += 1
    return applied


def finalize_questions(questions: List[ParsedQuestion]) -> List[dict]:
    """Drop the join keys and serialize questions for API consumers."""
    for question in questions:
        question.original_index = None
    return [question.to_dict() for question in questions]


def import_question_bank(
    text: str,
    answers_text: Optional[str] = None,
    id_factory: Optional[Callable[[], str]] = None,
) -> List[dict]:
    """
    Full import: parse questions, merge an optional answer key, serialize.

    Raises:
        NoQuestionsDetected: If no question could be read from ``text``.
    """
    questions = parse_question_bank(text, id_factory=id_factory)
    if answers_text:
        merge_answer_key(questions, answers_text)
    return finalize_questions(questions)


__all__ = [
    "NoQuestionsDetected",
    "NO_QUESTIONS_MESSAGE",
    "ParsedQuestion",
    "parse_question_bank",
    "merge_answer_key",
    "finalize_questions",
    "import_question_bank",
]
