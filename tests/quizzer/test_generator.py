from __future__ import annotations

import json

import pytest

from fixtures import StatusError
from fixtures.samples import (
    CELL_NOTES,
    mcq,
    questions_reply,
    short_answer,
    true_false,
)

from notequiz.quizzer import generator, topics
from notequiz.quizzer.errors import ErrorKind, GenerationError
from notequiz.quizzer.models import (
    Difficulty,
    QuestionMix,
    QuestionType,
    QuizConfig,
    Topic,
)


@pytest.mark.parametrize(
    "count, expected",
    [
        (3, (2, 0, 1)),
        (4, (2, 1, 1)),
        (6, (3, 1, 2)),
        (7, (4, 2, 1)),
        (10, (5, 3, 2)),
        (20, (10, 6, 4)),
    ],
)
def test_mixed_distribution(count, expected):
    distribution = generator.type_distribution(QuizConfig(num_questions=count))

    assert (
        distribution[QuestionType.MULTIPLE_CHOICE],
        distribution[QuestionType.TRUE_FALSE],
        distribution[QuestionType.SHORT_ANSWER],
    ) == expected
    assert sum(distribution.values()) == count


def test_single_type_distribution():
    config = QuizConfig(num_questions=5, question_types=QuestionMix.TRUE_FALSE)

    assert generator.type_distribution(config) == {QuestionType.TRUE_FALSE: 5}


def test_prompt_mentions_topics_difficulty_and_grounding():
    config = QuizConfig(num_questions=5, difficulty=Difficulty.HARD)
    focus = (Topic(id="a", title="Organelles"), Topic(id="b", title="DNA"))

    prompt = generator.build_prompt(CELL_NOTES, config, focus)

    assert "Create exactly 5 quiz questions" in prompt
    assert "Focus ONLY on these specific topics from the content: " in prompt
    assert "Organelles, DNA" in prompt
    assert "Use ONLY facts stated in the text" in prompt
    assert "Difficulty: hard" in prompt
    assert "3 multiple_choice question(s)" in prompt


def test_prompt_without_topics_has_no_focus_line():
    prompt = generator.build_prompt(CELL_NOTES, QuizConfig())

    assert "Focus ONLY" not in prompt


def test_generate_returns_typed_questions(chat, openai_stub):
    openai_stub.queue_json(
        questions_reply(mcq(1), true_false(1), short_answer(1)), fenced=True
    )

    questions = generator.generate(
        CELL_NOTES, None, QuizConfig(num_questions=3), client=chat
    )

    assert [q.type for q in questions] == [
        QuestionType.MULTIPLE_CHOICE,
        QuestionType.TRUE_FALSE,
        QuestionType.SHORT_ANSWER,
    ]
    assert questions[0].options == (
        "Nucleus",
        "Mitochondria",
        "Ribosome",
        "Chloroplast",
    )
    call = openai_stub.last_call
    assert call["temperature"] == 0.7
    assert "Only use information from the provided text." in (
        call["messages"][0]["content"]
    )


def test_generate_discards_invalid_items(chat, openai_stub, caplog):
    invalid = mcq(2, answer="Golgi body")
    openai_stub.queue_json(
        questions_reply(
            mcq(1), invalid, {"type": "short_answer"}, true_false(1)
        )
    )

    with caplog.at_level("WARNING", logger="notequiz.quizzer.generator"):
        questions = generator.generate(
            CELL_NOTES, (), QuizConfig(num_questions=4), client=chat
        )

    assert len(questions) == 2
    assert caplog.text.count("discarding question") == 2


def test_generate_truncates_extra_questions(chat, openai_stub):
    openai_stub.queue_json(questions_reply(*(mcq(i) for i in range(6))))

    questions = generator.generate(
        CELL_NOTES, (), QuizConfig(num_questions=4), client=chat
    )

    assert len(questions) == 4
    assert questions[0].question.endswith("(0)")


def test_generate_accepts_fewer_questions(chat, openai_stub):
    openai_stub.queue_json(questions_reply(mcq(1), mcq(2)))

    questions = generator.generate(
        CELL_NOTES, (), QuizConfig(num_questions=7), client=chat
    )

    assert len(questions) == 2


def test_generate_rejects_short_corpus_without_calling(chat):
    with pytest.raises(GenerationError) as excinfo:
        generator.generate("tiny", (), QuizConfig(), client=chat)

    assert excinfo.value.kind is ErrorKind.INPUT_TOO_SHORT
    assert chat.client.calls == []


def test_generate_no_valid_questions(chat, openai_stub):
    openai_stub.queue_json(questions_reply({"question": "", "type": "mcq"}))

    with pytest.raises(GenerationError) as excinfo:
        generator.generate(CELL_NOTES, (), QuizConfig(), client=chat)

    assert excinfo.value.kind is ErrorKind.NO_QUESTIONS
    assert excinfo.value.user_message.startswith("No questions generated")


@pytest.mark.parametrize(
    "reply", ["Sorry, no.", json.dumps([1, 2]), json.dumps({"items": []})]
)
def test_generate_unparsable_reply(chat, openai_stub, reply):
    openai_stub.queue(reply)

    with pytest.raises(GenerationError) as excinfo:
        generator.generate(CELL_NOTES, (), QuizConfig(), client=chat)

    assert excinfo.value.kind is ErrorKind.RESPONSE_UNPARSABLE


def test_generate_quota_exhausted(chat, openai_stub):
    openai_stub.queue(StatusError(429, code="insufficient_quota"))

    with pytest.raises(GenerationError) as excinfo:
        generator.generate(CELL_NOTES, (), QuizConfig(), client=chat)

    assert excinfo.value.kind is ErrorKind.QUOTA_EXHAUSTED
    assert "add credits" in excinfo.value.user_message


def test_corpus_length_boundary(chat, openai_stub):
    with pytest.raises(GenerationError) as excinfo:
        generator.generate("x" * 49, (), QuizConfig(), client=chat)
    assert excinfo.value.kind is ErrorKind.INPUT_TOO_SHORT
    assert openai_stub.calls == []

    openai_stub.queue_json(questions_reply(mcq(1)))
    accepted = generator.generate("x" * 50, (), QuizConfig(), client=chat)
    assert len(accepted) == 1


def test_five_easy_multiple_choice_questions(chat, openai_stub):
    openai_stub.queue_json(questions_reply(*(mcq(i) for i in range(1, 6))))
    config = QuizConfig(
        num_questions=5,
        difficulty=Difficulty.EASY,
        question_types=QuestionMix.MCQ,
    )

    questions = generator.generate(CELL_NOTES, None, config, client=chat)

    assert len(questions) == 5
    for question in questions:
        assert question.type is QuestionType.MULTIPLE_CHOICE
        assert len(question.options) == 4
        assert question.correct_answer in question.options
    assert "5 multiple_choice question(s)" in openai_stub.last_prompt


def test_malformed_topics_leave_generation_unscoped(chat, openai_stub):
    openai_stub.queue("{topics: [broken")
    openai_stub.queue_json(questions_reply(mcq(1), true_false(1)))

    found = topics.segment_or_empty(CELL_NOTES, client=chat)
    questions = generator.generate(
        CELL_NOTES, found, QuizConfig(), client=chat
    )

    assert found == ()
    assert len(questions) == 2
    assert "Focus ONLY" not in openai_stub.last_prompt
