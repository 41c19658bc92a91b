"""
Tests for question type classification.

Precedence matters: structural rows, notes and preloaded values override the
Numeric catch-all.
"""

import pytest

from hfcgen.classifier import classify_question, classify_questions, is_note, is_preloaded
from hfcgen.model import Question, QuestionType


def make_question(raw_type, calculation="", name="q"):
    return Question(name=name, raw_type=raw_type, type_tokens=raw_type.split(), calculation=calculation)


@pytest.mark.parametrize("raw_type, expected", [
    ("text", QuestionType.STRING),
    ("select_one yn", QuestionType.SELECT_ONE),
    ("select_multiple colors", QuestionType.SELECT_MULTIPLE),
    ("date", QuestionType.DATE),
    ("today", QuestionType.DATE),
    ("start", QuestionType.DATETIME),
    ("end", QuestionType.DATETIME),
    ("submissiondate", QuestionType.DATETIME),
    ("geopoint", QuestionType.GEOPOINT),
    ("integer", QuestionType.NUMERIC),
    ("decimal", QuestionType.NUMERIC),
    ("calculate", QuestionType.NUMERIC),
])
def test_base_token_types(raw_type, expected):
    assert classify_question(make_question(raw_type)) == expected


@pytest.mark.parametrize("raw_type", [
    "begin_group",
    "end_group",
    "begin_repeat",
    "end_repeat",
    "deviceid",
    "image",
    "note",
    "text audit",
])
def test_not_relevant_types(raw_type):
    assert classify_question(make_question(raw_type)) == QuestionType.NOT_RELEVANT


def test_begin_repeat_overrides_numeric_catch_all():
    """begin_repeat is not text/date, so it would be Numeric without the override."""
    assert classify_question(make_question("begin_repeat")) == QuestionType.NOT_RELEVANT


def test_text_audit_is_not_string():
    question = make_question("text  audit")
    assert question.base_type == "text"
    assert classify_question(question) == QuestionType.NOT_RELEVANT


def test_preloaded_value_is_not_relevant():
    question = make_question("integer", calculation="pulldata('file','sheet','col','key')")
    assert is_preloaded(question)
    assert classify_question(question) == QuestionType.NOT_RELEVANT


def test_preloaded_overrides_select():
    question = make_question("select_one yn", calculation="pulldata('f','s','c','k')")
    assert classify_question(question) == QuestionType.NOT_RELEVANT


def test_pulldata_must_be_prefix():
    question = make_question("calculate", calculation="if(${x} > 0, pulldata('f','s','c','k'), 0)")
    assert not is_preloaded(question)
    assert classify_question(question) == QuestionType.NUMERIC


def test_select_multiple_choice_list():
    question = make_question("select_multiple colors", calculation="")
    assert classify_question(question) == QuestionType.SELECT_MULTIPLE
    assert question.choice_list == "colors"


def test_blank_type_is_not_relevant():
    assert classify_question(make_question("")) == QuestionType.NOT_RELEVANT


def test_note_detection():
    assert is_note(make_question("note"))
    assert not is_note(make_question("text"))


def test_classify_questions_sets_types():
    questions = [make_question("text", name="a"), make_question("integer", name="b")]
    classify_questions(questions)
    assert [q.question_type for q in questions] == [QuestionType.STRING, QuestionType.NUMERIC]
