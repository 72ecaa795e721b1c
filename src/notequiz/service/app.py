"""HTTP surface for the quiz pipeline.

Run with ``uvicorn notequiz.service.app:app`` or ``notequiz serve``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, List, Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..core.ai import ChatClient
from ..core.logging import configure_logger
from ..quizzer.config import Settings
from ..quizzer.errors import ConfigurationError, ErrorKind, QuizPipelineError
from ..quizzer.extractor import SourceInput, extract
from ..quizzer.generator import generate
from ..quizzer.grader import verify_answer
from ..quizzer.models import QuizConfig, Topic
from ..quizzer.topics import segment

logger = logging.getLogger(__name__)

ALLOWED_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": ", ".join(ALLOWED_HEADERS),
}
ROUTES = (
    "/extract-content",
    "/extract-topics",
    "/generate-quiz",
    "/verify-answer",
)

INTERNAL_KIND = "internal"

ClientFactory = Callable[[], Any]


class ExtractContentRequest(BaseModel):
    fileData: str
    mimeType: str
    extractTopics: bool = False


class ExtractTopicsRequest(BaseModel):
    content: str


class QuizConfigPayload(BaseModel):
    numQuestions: int = 7
    difficulty: str = "mixed"
    questionTypes: str = "mixed"


class GenerateQuizRequest(BaseModel):
    content: str
    selectedTopics: Optional[List[str]] = None
    config: QuizConfigPayload = Field(default_factory=QuizConfigPayload)


class VerifyAnswerRequest(BaseModel):
    question: str
    userAnswer: str
    correctAnswer: str
    context: str = ""


def _error_body(exc: Exception, **extra: Any) -> JSONResponse:
    if isinstance(exc, QuizPipelineError):
        kind = exc.kind.value
        message = exc.user_message if exc.kind.is_remote else str(exc)
    elif isinstance(exc, ConfigurationError):
        kind = ErrorKind.INVALID_INPUT.value
        message = str(exc)
    else:
        kind = INTERNAL_KIND
        message = "Internal server error."
    logger.warning(
        "request failed: %s",
        exc,
        exc_info=exc if kind == INTERNAL_KIND else None,
        extra={"event": "service.error", "kind": kind},
    )
    return JSONResponse(
        status_code=500,
        content={"error": message, "kind": kind, **extra},
        headers=CORS_HEADERS,
    )


def _topics_from_titles(titles: Optional[List[str]]) -> List[Topic]:
    topics: List[Topic] = []
    for index, title in enumerate(titles or [], start=1):
        cleaned = title.strip()
        if cleaned:
            topics.append(Topic(id=f"topic-{index}", title=cleaned))
    return topics


def create_app(
    settings: Optional[Settings] = None,
    client_factory: Optional[ClientFactory] = None,
    *,
    log_dir: Optional[Path] = None,
) -> FastAPI:
    """Build the FastAPI application.

    ``client_factory`` returns an object exposing the OpenAI chat completions
    surface; it is called once per request. When omitted the OpenAI client is
    built from the environment.
    """
    settings = settings or Settings()
    if log_dir is not None:
        configure_logger("notequiz", log_dir=log_dir, level=settings.log_level)

    app = FastAPI(title="notequiz")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=ALLOWED_HEADERS,
    )

    @app.exception_handler(Exception)
    def unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        return _error_body(exc)

    def chat() -> ChatClient:
        raw = client_factory() if client_factory is not None else None
        return settings.chat_client(raw)

    def preflight() -> Response:
        return Response(status_code=200, headers=CORS_HEADERS)

    for path in ROUTES:
        app.add_api_route(
            path, preflight, methods=["OPTIONS"], include_in_schema=False
        )

    @app.post("/extract-content")
    def extract_content(body: ExtractContentRequest):
        try:
            source = SourceInput.from_base64(body.fileData, body.mimeType)
            result = extract(
                source,
                extract_topics=body.extractTopics,
                client=chat(),
                settings=settings,
            )
        except QuizPipelineError as exc:
            return _error_body(exc)
        return result.to_dict()

    @app.post("/extract-topics")
    def extract_topics(body: ExtractTopicsRequest):
        try:
            topics = segment(body.content, client=chat(), settings=settings)
        except QuizPipelineError as exc:
            return _error_body(exc)
        return {"topics": [topic.to_dict() for topic in topics]}

    @app.post("/generate-quiz")
    def generate_quiz(body: GenerateQuizRequest):
        try:
            config = QuizConfig.from_dict(body.config.model_dump())
            questions = generate(
                body.content,
                _topics_from_titles(body.selectedTopics),
                config,
                client=chat(),
                settings=settings,
            )
        except (QuizPipelineError, ConfigurationError) as exc:
            return _error_body(exc)
        return {"questions": [question.to_dict() for question in questions]}

    @app.post("/verify-answer")
    def verify(body: VerifyAnswerRequest):
        try:
            verification = verify_answer(
                body.question,
                body.userAnswer,
                body.correctAnswer,
                body.context,
                client=chat(),
                settings=settings,
            )
        except QuizPipelineError as exc:
            return _error_body(exc, isCorrect=False)
        return verification.to_dict()

    return app


app = create_app()
