"""Typed values flowing through the quiz pipeline.

Model replies are untrusted: :func:`coerce_question` and :func:`coerce_topic`
are the only way raw mappings become :class:`Question`/:class:`Topic`
instances, and they raise ``ValueError`` with a reason when an item is not
usable.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Sequence

from .errors import ConfigurationError

MIN_QUIZ_CHARS = 50
MIN_TOPIC_CHARS = 100
MIN_TOPIC_INGEST_CHARS = 500
MIN_QUESTIONS = 3
MAX_QUESTIONS = 20
DEFAULT_QUESTIONS = 7

_LETTER_RE = re.compile(r"^\(?([A-Za-z])[).:]?$")


def normalize_answer(value: object) -> str:
    """Case- and surrounding-whitespace-insensitive form of an answer."""

    return str(value if value is not None else "").strip().lower()


class _ValueEnum(Enum):
    @classmethod
    def from_value(cls, value: object):
        normalized = str(value or "").strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        expected = ", ".join(member.value for member in cls)
        raise ConfigurationError(
            f"Unknown {cls.__name__} '{value}'. Expected one of: {expected}."
        )


class Difficulty(_ValueEnum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    MIXED = "mixed"


class QuestionMix(_ValueEnum):
    """Requested composition of a quiz."""

    MCQ = "mcq"
    TRUE_FALSE = "true_false"
    SHORT_ANSWER = "short_answer"
    MIXED = "mixed"


class QuestionType(Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"
    SHORT_ANSWER = "short_answer"

    @property
    def closed_form(self) -> bool:
        return self is not QuestionType.SHORT_ANSWER


@dataclass(frozen=True)
class QuizConfig:
    """User-chosen generation parameters; validated at construction."""

    num_questions: int = DEFAULT_QUESTIONS
    difficulty: Difficulty = Difficulty.MIXED
    question_types: QuestionMix = QuestionMix.MIXED

    def __post_init__(self) -> None:
        count = self.num_questions
        if isinstance(count, bool) or not isinstance(count, int):
            raise ConfigurationError("numQuestions must be an integer.")
        if not MIN_QUESTIONS <= count <= MAX_QUESTIONS:
            raise ConfigurationError(
                f"numQuestions must be between {MIN_QUESTIONS} and "
                f"{MAX_QUESTIONS}, got {count}."
            )
        if not isinstance(self.difficulty, Difficulty):
            raise ConfigurationError("difficulty must be a Difficulty.")
        if not isinstance(self.question_types, QuestionMix):
            raise ConfigurationError("question_types must be a QuestionMix.")

    @classmethod
    def create(
        cls,
        num_questions: object = DEFAULT_QUESTIONS,
        difficulty: object = Difficulty.MIXED,
        question_types: object = QuestionMix.MIXED,
    ) -> "QuizConfig":
        """Build a config from loosely typed values (CLI, TOML, JSON)."""

        if isinstance(num_questions, str) and num_questions.strip().isdigit():
            num_questions = int(num_questions.strip())
        if not isinstance(difficulty, Difficulty):
            difficulty = Difficulty.from_value(difficulty)
        if not isinstance(question_types, QuestionMix):
            question_types = QuestionMix.from_value(question_types)
        return cls(
            num_questions=num_questions,  # type: ignore[arg-type]
            difficulty=difficulty,
            question_types=question_types,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "QuizConfig":
        return cls.create(
            data.get("numQuestions", DEFAULT_QUESTIONS),
            data.get("difficulty", Difficulty.MIXED.value),
            data.get("questionTypes", QuestionMix.MIXED.value),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "numQuestions": self.num_questions,
            "difficulty": self.difficulty.value,
            "questionTypes": self.question_types.value,
        }


@dataclass(frozen=True)
class Topic:
    id: str
    title: str
    description: str = ""
    subtopics: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "subtopics": list(self.subtopics),
        }


@dataclass(frozen=True)
class Question:
    question: str
    type: QuestionType
    correct_answer: str
    explanation: str = ""
    options: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "question": self.question,
            "type": self.type.value,
            "correct_answer": self.correct_answer,
            "explanation": self.explanation,
        }
        if self.type is QuestionType.MULTIPLE_CHOICE:
            payload["options"] = list(self.options)
        return payload


@dataclass(frozen=True)
class AnswerRecord:
    question: str
    user_answer: str
    correct_answer: str
    is_correct: bool
    explanation: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AnswerRecord":
        return cls(
            question=str(data.get("question", "")),
            user_answer=str(data.get("userAnswer", "")),
            correct_answer=str(data.get("correctAnswer", "")),
            is_correct=bool(data.get("isCorrect", False)),
            explanation=str(data.get("explanation", "") or ""),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "question": self.question,
            "userAnswer": self.user_answer,
            "correctAnswer": self.correct_answer,
            "isCorrect": self.is_correct,
            "explanation": self.explanation,
        }


@dataclass(frozen=True)
class ResultSummary:
    """Final score of a completed session, derived from its records."""

    score: int
    total: int
    answers: tuple[AnswerRecord, ...] = field(default_factory=tuple)

    @classmethod
    def from_answers(cls, answers: Iterable[AnswerRecord]) -> "ResultSummary":
        records = tuple(answers)
        return cls(
            score=sum(1 for record in records if record.is_correct),
            total=len(records),
            answers=records,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ResultSummary":
        raw = data.get("answers") or []
        if not isinstance(raw, list) or not all(
            isinstance(item, Mapping) for item in raw
        ):
            raise ValueError("answers must be a list of objects")
        return cls.from_answers(AnswerRecord.from_dict(item) for item in raw)

    @property
    def percentage(self) -> int:
        if self.total == 0:
            return 0
        return round(self.score * 100 / self.total)

    @property
    def incorrect_answers(self) -> tuple[AnswerRecord, ...]:
        return tuple(record for record in self.answers if not record.is_correct)

    def to_dict(self) -> dict[str, object]:
        return {
            "score": self.score,
            "total": self.total,
            "answers": [record.to_dict() for record in self.answers],
        }


def _clean_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return ""
    return str(value).strip()


def _coerce_type(raw: object, options: Sequence[str]) -> QuestionType:
    value = _clean_text(raw).lower().replace("-", "_").replace(" ", "_")
    aliases = {
        "mcq": QuestionType.MULTIPLE_CHOICE,
        "multiple_choice": QuestionType.MULTIPLE_CHOICE,
        "true_false": QuestionType.TRUE_FALSE,
        "truefalse": QuestionType.TRUE_FALSE,
        "boolean": QuestionType.TRUE_FALSE,
        "short_answer": QuestionType.SHORT_ANSWER,
        "short": QuestionType.SHORT_ANSWER,
    }
    if value in aliases:
        return aliases[value]
    if not value and options:
        return QuestionType.MULTIPLE_CHOICE
    raise ValueError(f"unknown question type '{raw}'")


def _resolve_option(answer: str, options: Sequence[str]) -> Optional[str]:
    if answer in options:
        return answer
    wanted = normalize_answer(answer)
    for option in options:
        if normalize_answer(option) == wanted:
            return option
    match = _LETTER_RE.match(answer)
    if match:
        index = ord(match.group(1).upper()) - ord("A")
        if 0 <= index < len(options):
            return options[index]
    return None


def coerce_question(raw: object) -> Question:
    """Validate a raw question mapping and return a :class:`Question`.

    Multiple-choice answers given as a letter (``"B"``) or a case variant of
    an option are resolved to the option text; anything else that is not one
    of the options is rejected.
    """
    if not isinstance(raw, Mapping):
        raise ValueError("question must be an object")
    text = _clean_text(raw.get("question"))
    if not text:
        raise ValueError("question text is required")
    raw_options = raw.get("options")
    options: tuple[str, ...] = ()
    if isinstance(raw_options, list):
        options = tuple(
            option for option in (_clean_text(item) for item in raw_options)
            if option
        )
    qtype = _coerce_type(raw.get("type"), options)
    answer = _clean_text(raw.get("correct_answer", raw.get("correctAnswer")))
    if not answer:
        raise ValueError("correct_answer is required")
    explanation = _clean_text(raw.get("explanation"))

    if qtype is QuestionType.MULTIPLE_CHOICE:
        if len(options) < 2:
            raise ValueError("multiple_choice needs at least two options")
        if len(set(options)) != len(options):
            raise ValueError("multiple_choice options must be unique")
        resolved = _resolve_option(answer, options)
        if resolved is None:
            raise ValueError("correct_answer is not one of the options")
        answer = resolved
    elif qtype is QuestionType.TRUE_FALSE:
        lowered = normalize_answer(answer)
        if lowered not in {"true", "false"}:
            raise ValueError("true_false answer must be True or False")
        answer = lowered.capitalize()
        options = ()
    else:
        options = ()

    return Question(
        question=text,
        type=qtype,
        correct_answer=answer,
        explanation=explanation,
        options=options,
    )


def coerce_topic(raw: object, index: int) -> Topic:
    """Validate one topic item; ``index`` seeds a fallback identifier."""

    if isinstance(raw, str):
        title = raw.strip()
        if not title:
            raise ValueError("topic title is required")
        return Topic(id=f"topic-{index}", title=title)
    if not isinstance(raw, Mapping):
        raise ValueError("topic must be an object")
    title = _clean_text(raw.get("title") or raw.get("name"))
    if not title:
        raise ValueError("topic title is required")
    topic_id = _clean_text(raw.get("id")) or f"topic-{index}"
    subtopics_raw = raw.get("subtopics")
    subtopics: tuple[str, ...] = ()
    if isinstance(subtopics_raw, list):
        subtopics = tuple(
            item.strip()
            for item in subtopics_raw
            if isinstance(item, str) and item.strip()
        )
    return Topic(
        id=topic_id,
        title=title,
        description=_clean_text(raw.get("description")),
        subtopics=subtopics,
    )
