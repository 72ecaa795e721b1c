from __future__ import annotations

import pytest

from notequiz.quizzer.errors import ConfigurationError
from notequiz.quizzer.models import (
    AnswerRecord,
    Difficulty,
    QuestionMix,
    QuestionType,
    QuizConfig,
    ResultSummary,
    coerce_question,
    coerce_topic,
    normalize_answer,
)


@pytest.mark.parametrize("count", [3, 7, 20])
def test_quiz_config_accepts_bounds(count):
    assert QuizConfig(num_questions=count).num_questions == count


@pytest.mark.parametrize("count", [2, 21, 0, True, 7.0])
def test_quiz_config_rejects_out_of_range(count):
    with pytest.raises(ConfigurationError):
        QuizConfig(num_questions=count)


def test_quiz_config_from_dict_uses_wire_names():
    config = QuizConfig.from_dict(
        {"numQuestions": "5", "difficulty": "EASY", "questionTypes": "mcq"}
    )

    assert config == QuizConfig(5, Difficulty.EASY, QuestionMix.MCQ)
    assert config.to_dict() == {
        "numQuestions": 5,
        "difficulty": "easy",
        "questionTypes": "mcq",
    }


def test_quiz_config_from_dict_defaults():
    assert QuizConfig.from_dict({}) == QuizConfig()


def test_unknown_enum_value_lists_choices():
    with pytest.raises(ConfigurationError, match="easy, medium, hard, mixed"):
        Difficulty.from_value("brutal")


def test_normalize_answer():
    assert normalize_answer("  Mitochondria ") == "mitochondria"
    assert normalize_answer(None) == ""


def test_coerce_multiple_choice_resolves_letter_and_case():
    base = {
        "question": "Which?",
        "type": "multiple_choice",
        "options": ["Alpha", "Beta", "Gamma", "Delta"],
    }

    assert coerce_question({**base, "correct_answer": "B"}).correct_answer == (
        "Beta"
    )
    assert coerce_question(
        {**base, "correct_answer": "gamma"}
    ).correct_answer == "Gamma"
    with pytest.raises(ValueError, match="not one of the options"):
        coerce_question({**base, "correct_answer": "Omega"})


def test_coerce_multiple_choice_requires_unique_options():
    with pytest.raises(ValueError, match="unique"):
        coerce_question(
            {
                "question": "Q?",
                "type": "mcq",
                "options": ["A", "A"],
                "correct_answer": "A",
            }
        )
    with pytest.raises(ValueError, match="two options"):
        coerce_question(
            {
                "question": "Q?",
                "type": "mcq",
                "options": ["only"],
                "correct_answer": "only",
            }
        )


def test_coerce_true_false_normalizes_answer():
    question = coerce_question(
        {
            "question": "Sky is blue.",
            "type": "true-false",
            "correct_answer": "TRUE",
            "options": ["True", "False"],
        }
    )

    assert question.type is QuestionType.TRUE_FALSE
    assert question.correct_answer == "True"
    assert question.options == ()
    with pytest.raises(ValueError, match="True or False"):
        coerce_question(
            {"question": "x", "type": "true_false", "correct_answer": "maybe"}
        )


def test_coerce_short_answer_accepts_camel_case_key():
    question = coerce_question(
        {"question": "Name it", "type": "short", "correctAnswer": " ATP "}
    )

    assert question.type is QuestionType.SHORT_ANSWER
    assert question.correct_answer == "ATP"
    assert "options" not in question.to_dict()


@pytest.mark.parametrize(
    "raw",
    [
        "not a mapping",
        {"type": "short_answer", "correct_answer": "x"},
        {"question": "q", "type": "essay", "correct_answer": "x"},
        {"question": "q", "type": "short_answer"},
    ],
)
def test_coerce_question_rejects_malformed(raw):
    with pytest.raises(ValueError):
        coerce_question(raw)


def test_coerce_topic_fills_missing_id_and_filters_subtopics():
    topic = coerce_topic(
        {"name": "Cells", "subtopics": ["Nucleus", "", 3, " Ribosome "]}, 2
    )

    assert topic.id == "topic-2"
    assert topic.title == "Cells"
    assert topic.subtopics == ("Nucleus", "Ribosome")
    assert coerce_topic("Membranes", 4).id == "topic-4"
    with pytest.raises(ValueError):
        coerce_topic({"description": "no title"}, 1)


def test_result_summary_scores_and_percentage():
    answers = [
        AnswerRecord("q1", "a", "a", True),
        AnswerRecord("q2", "b", "c", False),
        AnswerRecord("q3", "d", "d", True),
    ]

    summary = ResultSummary.from_answers(answers)

    assert (summary.score, summary.total) == (2, 3)
    assert summary.percentage == 67
    assert [r.question for r in summary.incorrect_answers] == ["q2"]
    assert ResultSummary.from_dict(summary.to_dict()) == summary
    assert ResultSummary.from_answers([]).percentage == 0


def test_question_type_closed_form():
    assert QuestionType.MULTIPLE_CHOICE.closed_form
    assert QuestionType.TRUE_FALSE.closed_form
    assert not QuestionType.SHORT_ANSWER.closed_form
