"""Generate a typed question set grounded in a corpus."""

from __future__ import annotations

import logging
import math
from collections import Counter
from typing import Dict, List, Optional, Sequence

from ..core.ai import ChatClient, RemoteCallError
from ..core.responses import parse_json_reply
from .config import Settings
from .errors import ErrorKind, GenerationError
from .models import (
    MIN_QUIZ_CHARS,
    Difficulty,
    Question,
    QuestionMix,
    QuestionType,
    QuizConfig,
    Topic,
    coerce_question,
)

__all__ = ["type_distribution", "build_prompt", "generate", "SYSTEM_PROMPT"]

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert educator who writes quiz questions strictly from the "
    "study material provided. Only use information from the provided text."
)

_DIFFICULTY_GUIDANCE = {
    Difficulty.EASY: "Ask about basic recall of facts stated directly.",
    Difficulty.MEDIUM: (
        "Ask questions that require understanding and applying concepts."
    ),
    Difficulty.HARD: (
        "Ask questions that require analysis, synthesis and comparing ideas."
    ),
    Difficulty.MIXED: (
        "Mix difficulty levels from basic recall to deeper analysis."
    ),
}

_TYPE_LABELS = {
    QuestionType.MULTIPLE_CHOICE: "multiple_choice",
    QuestionType.TRUE_FALSE: "true_false",
    QuestionType.SHORT_ANSWER: "short_answer",
}

_SINGLE_TYPES = {
    QuestionMix.MCQ: QuestionType.MULTIPLE_CHOICE,
    QuestionMix.TRUE_FALSE: QuestionType.TRUE_FALSE,
    QuestionMix.SHORT_ANSWER: QuestionType.SHORT_ANSWER,
}


def type_distribution(config: QuizConfig) -> Dict[QuestionType, int]:
    """Requested count per question type; values always sum to ``n``."""

    n = config.num_questions
    single = _SINGLE_TYPES.get(config.question_types)
    if single is not None:
        return {single: n}
    mcq = math.ceil(n * 0.5)
    true_false = math.floor(n * 0.3)
    return {
        QuestionType.MULTIPLE_CHOICE: mcq,
        QuestionType.TRUE_FALSE: true_false,
        QuestionType.SHORT_ANSWER: n - mcq - true_false,
    }


def build_prompt(
    corpus: str,
    config: QuizConfig,
    selected_topics: Sequence[Topic] = (),
) -> str:
    distribution = type_distribution(config)
    mix_lines = "\n".join(
        f"- {count} {_TYPE_LABELS[qtype]} question(s)"
        for qtype, count in distribution.items()
        if count > 0
    )
    focus = ""
    if selected_topics:
        titles = ", ".join(topic.title for topic in selected_topics)
        focus = (
            "\nFocus ONLY on these specific topics from the content: "
            f"{titles}\n"
        )
    return (
        f"Create exactly {config.num_questions} quiz questions from the text "
        "below.\n\n"
        "Rules:\n"
        "- Use ONLY facts stated in the text; do not add outside knowledge\n"
        "- Explanations must refer back to the text\n"
        f"- Difficulty: {config.difficulty.value}. "
        f"{_DIFFICULTY_GUIDANCE[config.difficulty]}\n"
        "- Question types:\n"
        f"{mix_lines}\n"
        "- multiple_choice questions have exactly 4 options and the "
        "correct_answer is the full text of one option\n"
        '- true_false answers are "True" or "False"\n'
        "- short_answer answers are a brief phrase\n"
        f"{focus}\n"
        "Return ONLY valid JSON in this format:\n"
        '{"questions": [{"question": "...", "type": "multiple_choice", '
        '"options": ["...", "...", "...", "..."], "correct_answer": "...", '
        '"explanation": "..."}]}\n'
        'Omit "options" for true_false and short_answer questions.\n\n'
        f"Text:\n{corpus}"
    )


def generate(
    corpus: str,
    selected_topics: Optional[Sequence[Topic]],
    config: QuizConfig,
    *,
    client: Optional[ChatClient] = None,
    settings: Optional[Settings] = None,
) -> tuple[Question, ...]:
    """Ask the model for ``config.num_questions`` questions about ``corpus``.

    Malformed items are dropped one by one; the call fails with
    ``NO_QUESTIONS`` only when none survive.
    """
    text = (corpus or "").strip()
    if len(text) < MIN_QUIZ_CHARS:
        raise GenerationError(
            f"Content must be at least {MIN_QUIZ_CHARS} characters.",
            kind=ErrorKind.INPUT_TOO_SHORT,
        )
    settings = settings or Settings()
    chat = client or settings.chat_client()
    topics = tuple(selected_topics or ())
    try:
        reply = chat.complete_prompt(
            build_prompt(text, config, topics),
            system=SYSTEM_PROMPT,
            temperature=0.7,
        )
    except RemoteCallError as exc:
        raise GenerationError.from_remote(exc) from exc

    parsed = parse_json_reply(reply, expect=dict)
    if not parsed.ok:
        raise GenerationError(
            f"Could not parse questions: {parsed.error}",
            kind=ErrorKind.RESPONSE_UNPARSABLE,
        )
    raw_items = parsed.value.get("questions")
    if not isinstance(raw_items, list):
        raise GenerationError(
            "The AI reply has no 'questions' array.",
            kind=ErrorKind.RESPONSE_UNPARSABLE,
        )

    questions: List[Question] = []
    for index, item in enumerate(raw_items):
        try:
            questions.append(coerce_question(item))
        except ValueError as exc:
            logger.warning(
                "discarding question %d: %s",
                index,
                exc,
                extra={"event": "generate.discarded", "index": index},
            )
    if not questions:
        raise GenerationError(
            "No usable questions were generated.",
            kind=ErrorKind.NO_QUESTIONS,
        )

    questions = questions[: config.num_questions]
    _log_composition(questions, config)
    return tuple(questions)


def _log_composition(
    questions: Sequence[Question], config: QuizConfig
) -> None:
    actual = Counter(question.type for question in questions)
    requested = type_distribution(config)
    counts = {qtype.value: actual.get(qtype, 0) for qtype in QuestionType}
    if any(
        actual.get(qtype, 0) != count for qtype, count in requested.items()
    ):
        logger.info(
            "question mix differs from request",
            extra={
                "event": "generate.mix_mismatch",
                "requested": {k.value: v for k, v in requested.items()},
                "actual": counts,
            },
        )
    logger.info(
        "questions generated",
        extra={
            "event": "generate.done",
            "count": len(questions),
            "requested": config.num_questions,
        },
    )
