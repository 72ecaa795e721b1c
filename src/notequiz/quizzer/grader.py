"""Grade answers: exact match for closed forms, AI judgement for short ones."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..core.ai import ChatClient, RemoteCallError
from ..core.responses import parse_json_reply
from .config import Settings
from .errors import ErrorKind, QuizPipelineError, VerificationError
from .models import Question, normalize_answer

__all__ = [
    "GradeMethod",
    "GradeResult",
    "Verification",
    "AnswerVerifier",
    "verify_answer",
    "grade",
    "exact_match",
]

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a fair teacher grading short answers for conceptual "
    "understanding, not exact wording."
)


class GradeMethod(Enum):
    EXACT = "exact"
    AI = "ai"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class GradeResult:
    is_correct: bool
    method: GradeMethod
    reasoning: str = ""


@dataclass(frozen=True)
class Verification:
    is_correct: bool
    reasoning: str = ""

    def to_dict(self) -> dict[str, object]:
        return {"isCorrect": self.is_correct, "reasoning": self.reasoning}


def exact_match(user_answer: str, correct_answer: str) -> bool:
    return normalize_answer(user_answer) == normalize_answer(correct_answer)


def build_prompt(
    question: str, user_answer: str, correct_answer: str, context: str
) -> str:
    context_block = (
        f"\nContext from the study material:\n{context}\n" if context else ""
    )
    return (
        "Decide whether the student's answer shows the same understanding as "
        "the expected answer.\n\n"
        f"Question: {question}\n"
        f"Expected answer: {correct_answer}\n"
        f"Student answer: {user_answer}\n"
        f"{context_block}\n"
        "Grading rules:\n"
        "- Accept paraphrases, synonyms and different wording of the same idea\n"
        "- Accept answers that are partially worded but conceptually right\n"
        "- Mark incorrect only when the answer shows a fundamental "
        "misunderstanding or is unrelated\n\n"
        "Return ONLY valid JSON in this format:\n"
        '{"isCorrect": true, "reasoning": "one sentence"}'
    )


class AnswerVerifier:
    """Conceptual grading backed by the chat model."""

    def __init__(
        self,
        client: Optional[ChatClient] = None,
        *,
        settings: Optional[Settings] = None,
    ) -> None:
        self.settings = settings or Settings()
        self.client = client or self.settings.chat_client()

    @property
    def context_chars(self) -> int:
        return self.settings.grading_context_chars

    def verify(
        self,
        question: str,
        user_answer: str,
        correct_answer: str,
        context: str = "",
    ) -> Verification:
        context = (context or "")[: self.context_chars]
        try:
            reply = self.client.complete_prompt(
                build_prompt(question, user_answer, correct_answer, context),
                system=SYSTEM_PROMPT,
                temperature=0.3,
            )
        except RemoteCallError as exc:
            raise VerificationError.from_remote(exc) from exc
        parsed = parse_json_reply(reply, expect=dict)
        if not parsed.ok:
            raise VerificationError(
                f"Could not parse verification: {parsed.error}",
                kind=ErrorKind.RESPONSE_UNPARSABLE,
            )
        verdict = parsed.value.get("isCorrect")
        if not isinstance(verdict, bool):
            raise VerificationError(
                "Verification reply is missing a boolean 'isCorrect'.",
                kind=ErrorKind.RESPONSE_UNPARSABLE,
            )
        reasoning = parsed.value.get("reasoning")
        return Verification(
            is_correct=verdict,
            reasoning=reasoning.strip() if isinstance(reasoning, str) else "",
        )


def verify_answer(
    question: str,
    user_answer: str,
    correct_answer: str,
    context: str = "",
    *,
    client: Optional[ChatClient] = None,
    settings: Optional[Settings] = None,
) -> Verification:
    """One-shot conceptual verification; raises :class:`VerificationError`."""

    if not (question or "").strip() or not (correct_answer or "").strip():
        raise VerificationError(
            "question and correctAnswer are required.",
            kind=ErrorKind.INVALID_INPUT,
        )
    verifier = AnswerVerifier(client, settings=settings)
    return verifier.verify(question, user_answer, correct_answer, context)


def grade(
    question: Question,
    user_answer: str,
    *,
    verifier: Optional[AnswerVerifier] = None,
    context: str = "",
) -> GradeResult:
    """Grade ``user_answer``; never raises.

    Short answers go to ``verifier`` when given; when it is missing or fails
    the answer is compared exactly after normalization.
    """
    if question.type.closed_form:
        return GradeResult(
            is_correct=exact_match(user_answer, question.correct_answer),
            method=GradeMethod.EXACT,
        )

    if verifier is not None:
        try:
            verification = verifier.verify(
                question.question,
                user_answer,
                question.correct_answer,
                context,
            )
        except QuizPipelineError as exc:
            logger.warning(
                "answer verification failed, using exact match: %s",
                exc,
                extra={"event": "grade.fallback", "kind": exc.kind.value},
            )
        else:
            return GradeResult(
                is_correct=verification.is_correct,
                method=GradeMethod.AI,
                reasoning=verification.reasoning,
            )

    return GradeResult(
        is_correct=exact_match(user_answer, question.correct_answer),
        method=GradeMethod.FALLBACK,
    )
