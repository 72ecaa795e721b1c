from ._main import build_arg_parser
from .errors import (
    ConfigurationError,
    ErrorKind,
    ExtractionError,
    GenerationError,
    NoQuestionsError,
    QuizPipelineError,
    SegmentationError,
    SessionError,
    VerificationError,
    user_message,
)
from .extractor import Extraction, SourceInput, SourceKind, extract
from .generator import generate, type_distribution
from .grader import (
    AnswerVerifier,
    GradeMethod,
    GradeResult,
    Verification,
    grade,
    verify_answer,
)
from .models import (
    AnswerRecord,
    Difficulty,
    Question,
    QuestionMix,
    QuestionType,
    QuizConfig,
    ResultSummary,
    Topic,
)
from .review import (
    build_flashcards,
    collect_incorrect,
    performance_feedback,
    run_review,
)
from .session import (
    Phase,
    QuizSessionResult,
    SessionState,
    advance,
    finish,
    go_back,
    run_quiz_session,
    running_score,
    set_draft,
    start_session,
    submit_answer,
)
from .storage import append_result, load_results, read_jsonl, write_jsonl
from .topics import segment, segment_or_empty

__all__ = [
    "build_arg_parser",
    "ConfigurationError",
    "ErrorKind",
    "ExtractionError",
    "GenerationError",
    "NoQuestionsError",
    "QuizPipelineError",
    "SegmentationError",
    "SessionError",
    "VerificationError",
    "user_message",
    "Extraction",
    "SourceInput",
    "SourceKind",
    "extract",
    "generate",
    "type_distribution",
    "AnswerVerifier",
    "GradeMethod",
    "GradeResult",
    "Verification",
    "grade",
    "verify_answer",
    "AnswerRecord",
    "Difficulty",
    "Question",
    "QuestionMix",
    "QuestionType",
    "QuizConfig",
    "ResultSummary",
    "Topic",
    "build_flashcards",
    "collect_incorrect",
    "performance_feedback",
    "run_review",
    "Phase",
    "QuizSessionResult",
    "SessionState",
    "advance",
    "finish",
    "go_back",
    "run_quiz_session",
    "running_score",
    "set_draft",
    "start_session",
    "submit_answer",
    "append_result",
    "load_results",
    "read_jsonl",
    "write_jsonl",
    "segment",
    "segment_or_empty",
]
