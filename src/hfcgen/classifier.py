"""
Question type classification.

Maps each question's raw type tokens to a semantic QuestionType through an
explicit, ordered rule table. The first matching rule wins.

Precedence:
    1. NotRelevant overrides (structural rows, notes, preloaded values)
    2. Specific base tokens (text, select_one, date, ...)
    3. Numeric catch-all for any other non-empty base token
    4. NotRelevant for blank types
"""

import re
from typing import Callable, List, Tuple

from hfcgen.model import Question, QuestionType


_PRELOAD_RE = re.compile(r"^pulldata")

_STRUCTURAL_TOKENS = {
    "begin_group",
    "end_group",
    "begin_repeat",
    "end_repeat",
    "deviceid",
    "image",
}

# Compared against the whole type cell, not the base token
_STRUCTURAL_TYPES = {"text audit"}


def is_note(question: Question) -> bool:
    return question.raw_type.strip() == "note"


def is_preloaded(question: Question) -> bool:
    """True when the value is pulled from a preload file (calculation starts with pulldata)."""
    return bool(_PRELOAD_RE.match((question.calculation or "").strip()))


def _is_structural(question: Question) -> bool:
    if question.base_type in _STRUCTURAL_TOKENS:
        return True
    return " ".join(question.type_tokens) in _STRUCTURAL_TYPES


def _base_in(*tokens: str) -> Callable[[Question], bool]:
    wanted = set(tokens)
    return lambda question: question.base_type in wanted


_RULES: List[Tuple[Callable[[Question], bool], QuestionType]] = [
    (_is_structural, QuestionType.NOT_RELEVANT),
    (is_note, QuestionType.NOT_RELEVANT),
    (is_preloaded, QuestionType.NOT_RELEVANT),
    (_base_in("text"), QuestionType.STRING),
    (_base_in("select_one"), QuestionType.SELECT_ONE),
    (_base_in("select_multiple"), QuestionType.SELECT_MULTIPLE),
    (_base_in("date", "today"), QuestionType.DATE),
    (_base_in("start", "end", "submissiondate"), QuestionType.DATETIME),
    (_base_in("geopoint"), QuestionType.GEOPOINT),
    (lambda question: question.base_type != "", QuestionType.NUMERIC),
]


def classify_question(question: Question) -> QuestionType:
    """
    Classify a single question.

    Args:
        question: Question with type_tokens and calculation populated

    Returns:
        The QuestionType of the first matching rule, NOT_RELEVANT otherwise
    """
    for predicate, qtype in _RULES:
        if predicate(question):
            return qtype
    return QuestionType.NOT_RELEVANT


def classify_questions(questions: List[Question]) -> List[Question]:
    """Set question_type on every question in place and return the list."""
    for question in questions:
        question.question_type = classify_question(question)
    return questions


__all__ = [
    "classify_question",
    "classify_questions",
    "is_note",
    "is_preloaded",
]
