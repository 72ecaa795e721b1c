import argparse
import sys
from pathlib import Path
from typing import Any, Callable, List, Mapping, Optional, Sequence, TextIO

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..core import config_templates
from ..core.logging import close_logger, configure_logger
from ..core.workspace import WorkspaceError
from .config import (
    ConfigOverrides,
    LoadResult,
    QuizzerConfigError,
    load_settings,
)
from .errors import ConfigurationError, QuizPipelineError
from .extractor import SourceInput, extract
from .generator import generate
from .grader import AnswerVerifier
from .models import QuizConfig, Topic
from .review import (
    build_flashcards,
    collect_incorrect,
    performance_feedback,
    render_missed_table,
    result_stats,
    run_review,
)
from .session import run_quiz_session
from .storage import (
    append_result,
    load_questions,
    load_results,
    load_topics,
    save_questions,
    save_topics,
)
from .topics import segment_or_empty

CORPUS_FILE = "corpus.txt"
TOPICS_FILE = "topics.jsonl"
QUESTIONS_FILE = "questions.jsonl"
RESULTS_FILE = "results.jsonl"

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


class _Context:
    """Per-invocation dependencies shared by the command handlers."""

    def __init__(
        self,
        loaded: LoadResult,
        console: Console,
        input_provider: Callable[[], str],
        client: Any,
        stdin: TextIO,
    ) -> None:
        self.loaded = loaded
        self.settings = loaded.settings
        self.layout = loaded.layout
        self.console = console
        self.input_provider = input_provider
        self.stdin = stdin
        self._raw_client = client
        self._chat = None

    @property
    def chat(self):
        if self._chat is None:
            self._chat = self.settings.chat_client(self._raw_client)
        return self._chat

    def quiz_dir(self, name: str, *, create: bool = False) -> Path:
        return self.layout.quiz_dir(name, create=create)

    def error(self, message: str) -> None:
        self.console.print(f"[red]Error:[/] {escape(message)}")


def _read_corpus(ctx: _Context, name: str) -> Optional[str]:
    path = ctx.quiz_dir(name) / CORPUS_FILE
    if not path.exists():
        ctx.error(
            f"No content found at {path}. Run 'notequiz quizzer extract "
            f"<file> --name {name}' first."
        )
        return None
    return path.read_text(encoding="utf-8")


def _load_saved(
    ctx: _Context, loader: Callable[[Path], Any], path: Path, label: str
) -> Any:
    """Run ``loader`` on a stored artifact; ``None`` when it is corrupt."""

    try:
        return loader(path)
    except ValueError as exc:
        ctx.error(f"Saved {label} are invalid: {exc}")
        return None


def _load_results(ctx: _Context, name: str):
    return _load_saved(
        ctx, load_results, ctx.quiz_dir(name) / RESULTS_FILE, "results"
    )


def _print_topics(ctx: _Context, topics: Sequence[Topic]) -> None:
    table = Table(title="Topics", box=box.SIMPLE, expand=True)
    table.add_column("ID", style="cyan")
    table.add_column("Title", style="bold")
    table.add_column("Subtopics", overflow="fold")
    for topic in topics:
        table.add_row(topic.id, topic.title, ", ".join(topic.subtopics))
    ctx.console.print(table)


def _cmd_init(args: argparse.Namespace, ctx: _Context) -> int:
    template = config_templates.get_template("quizzer")
    target = ctx.layout.path_for("config") / template.target
    if target.exists() and not args.force:
        ctx.console.print(f"{template.target} already exists at {target}")
        return EXIT_OK
    path = template.write(ctx.layout.path_for("config"), overwrite=args.force)
    ctx.console.print(f"Created template {path}")
    return EXIT_OK


def _cmd_extract(args: argparse.Namespace, ctx: _Context) -> int:
    if args.source == "-":
        source = SourceInput.text(ctx.stdin.read())
        name = args.name or "pasted"
    else:
        path = Path(args.source).expanduser()
        if not path.is_file():
            ctx.error(f"File not found: {path}")
            return EXIT_USAGE
        source = SourceInput.from_path(path)
        name = args.name or path.stem
    result = extract(
        source,
        extract_topics=args.topics,
        client=ctx.chat,
        settings=ctx.settings,
    )
    out_dir = ctx.quiz_dir(name, create=True)
    corpus_path = out_dir / CORPUS_FILE
    corpus_path.write_text(result.content, encoding="utf-8")
    ctx.console.print(
        f"Wrote {len(result.content)} characters -> {corpus_path}"
    )
    if result.topics:
        topics_path = out_dir / TOPICS_FILE
        save_topics(topics_path, result.topics)
        ctx.console.print(
            f"Wrote {len(result.topics)} topic(s) -> {topics_path}"
        )
    elif args.topics:
        ctx.console.print(
            "[yellow]Topics were not extracted; quizzes will cover all "
            "content.[/]"
        )
    return EXIT_OK


def _cmd_topics(args: argparse.Namespace, ctx: _Context) -> int:
    corpus = _read_corpus(ctx, args.name)
    if corpus is None:
        return EXIT_FAILURE
    topics = segment_or_empty(corpus, client=ctx.chat, settings=ctx.settings)
    if not topics:
        ctx.console.print(
            "[yellow]Topics were not extracted; quizzes will cover all "
            "content.[/]"
        )
        return EXIT_OK
    topics_path = ctx.quiz_dir(args.name, create=True) / TOPICS_FILE
    save_topics(topics_path, topics)
    _print_topics(ctx, topics)
    ctx.console.print(f"Wrote {len(topics)} topic(s) -> {topics_path}")
    return EXIT_OK


def _select_topics(
    wanted: Sequence[str], available: Sequence[Topic]
) -> List[Topic]:
    selected: List[Topic] = []
    for raw in wanted:
        key = raw.strip().lower()
        match = next(
            (
                topic
                for topic in available
                if topic.id.lower() == key or topic.title.lower() == key
            ),
            None,
        )
        if match is None:
            raise ConfigurationError(f"Unknown topic '{raw}'.")
        if match not in selected:
            selected.append(match)
    return selected


def _cmd_generate(args: argparse.Namespace, ctx: _Context) -> int:
    defaults = ctx.settings.quiz
    config = QuizConfig.create(
        args.num if args.num is not None else defaults.num_questions,
        args.difficulty or defaults.difficulty,
        args.types or defaults.question_types,
    )
    corpus = _read_corpus(ctx, args.name)
    if corpus is None:
        return EXIT_FAILURE
    selected: List[Topic] = []
    if args.topic:
        topics = _load_saved(
            ctx, load_topics, ctx.quiz_dir(args.name) / TOPICS_FILE, "topics"
        )
        if topics is None:
            return EXIT_FAILURE
        selected = _select_topics(args.topic, topics)
    questions = generate(
        corpus, selected, config, client=ctx.chat, settings=ctx.settings
    )
    q_path = ctx.quiz_dir(args.name, create=True) / QUESTIONS_FILE
    save_questions(q_path, questions)
    ctx.console.print(f"Wrote {len(questions)} question(s) -> {q_path}")
    return EXIT_OK


def _cmd_start(args: argparse.Namespace, ctx: _Context) -> int:
    q_path = ctx.quiz_dir(args.name) / QUESTIONS_FILE
    if not q_path.exists():
        ctx.error(
            f"No questions found at {q_path}. Run 'notequiz quizzer generate "
            f"{args.name}'."
        )
        return EXIT_FAILURE
    questions = _load_saved(ctx, load_questions, q_path, "questions")
    if questions is None:
        return EXIT_FAILURE
    corpus_path = ctx.quiz_dir(args.name) / CORPUS_FILE
    context = (
        corpus_path.read_text(encoding="utf-8") if corpus_path.exists() else ""
    )
    verifier = (
        None
        if args.no_verify
        else AnswerVerifier(ctx.chat, settings=ctx.settings)
    )
    result = run_quiz_session(
        questions,
        ctx.console,
        ctx.input_provider,
        verifier=verifier,
        context=context,
    )
    if result.exit_action == "empty":
        return EXIT_FAILURE
    if result.summary is not None:
        saved = append_result(
            ctx.quiz_dir(args.name, create=True) / RESULTS_FILE, result.summary
        )
        ctx.console.print(f"Result saved ({saved.completed_at}).")
    return EXIT_OK


def _cmd_review(args: argparse.Namespace, ctx: _Context) -> int:
    results = _load_results(ctx, args.name)
    if results is None:
        return EXIT_FAILURE
    if not results:
        ctx.error(f"No saved results for '{args.name}'. Take a quiz first.")
        return EXIT_FAILURE
    missed = collect_incorrect(results)
    if args.flashcards and missed:
        deck = build_flashcards(missed, seed=args.seed)
        run_review(deck, ctx.console, ctx.input_provider)
    else:
        render_missed_table(ctx.console, missed)
    return EXIT_OK


def _cmd_report(args: argparse.Namespace, ctx: _Context) -> int:
    results = _load_results(ctx, args.name)
    if results is None:
        return EXIT_FAILURE
    if not results:
        ctx.error(f"No saved results for '{args.name}'. Take a quiz first.")
        return EXIT_FAILURE
    table = Table(title=f"Results for {args.name}", box=box.SIMPLE)
    table.add_column("Completed")
    table.add_column("Score", justify="right")
    table.add_column("Percent", justify="right")
    table.add_column("Feedback")
    for saved in results:
        summary = saved.summary
        table.add_row(
            saved.completed_at,
            f"{summary.score}/{summary.total}",
            f"{summary.percentage}%",
            performance_feedback(summary.percentage),
        )
    ctx.console.print(table)
    stats = result_stats(results)
    ctx.console.print(
        f"Quizzes taken: {stats.total_quizzes}  "
        f"Average: {stats.average_score}%  Best: {stats.best_score}%"
    )
    return EXIT_OK


_HANDLERS = {
    "init": _cmd_init,
    "extract": _cmd_extract,
    "topics": _cmd_topics,
    "generate": _cmd_generate,
    "start": _cmd_start,
    "review": _cmd_review,
    "report": _cmd_report,
}


def build_arg_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", type=Path, help="Path to notequiz.toml")
    common.add_argument(
        "--workspace",
        type=Path,
        help="Workspace root (defaults to NOTEQUIZ_DATA_HOME or ~/.notequiz)",
    )
    common.add_argument("--model", help="Chat model override")
    common.add_argument("--log-level", help="Logging level (default INFO)")
    common.add_argument(
        "--verbose", action="store_true", help="Echo logs to stderr"
    )

    p = argparse.ArgumentParser(
        prog="quizzer",
        description="Turn study material into AI-generated quizzes",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    sub = p.add_subparsers(dest="command", required=True)

    sp_init = sub.add_parser(
        "init", parents=[common], help="Write the notequiz.toml template"
    )
    sp_init.add_argument("--force", action="store_true")

    sp_extract = sub.add_parser(
        "extract",
        parents=[common],
        help="Extract text from a file (or '-' for stdin)",
    )
    sp_extract.add_argument("source")
    sp_extract.add_argument(
        "--name", help="Quiz name (defaults to the file stem)"
    )
    sp_extract.add_argument(
        "--topics", action="store_true", help="Also extract topics"
    )

    sp_topics = sub.add_parser(
        "topics", parents=[common], help="Segment saved content into topics"
    )
    sp_topics.add_argument("name")

    sp_gen = sub.add_parser(
        "generate", parents=[common], help="Generate quiz questions"
    )
    sp_gen.add_argument("name")
    sp_gen.add_argument("--num", type=int)
    sp_gen.add_argument(
        "--difficulty", choices=["easy", "medium", "hard", "mixed"]
    )
    sp_gen.add_argument(
        "--types", choices=["mcq", "true_false", "short_answer", "mixed"]
    )
    sp_gen.add_argument(
        "--topic",
        action="append",
        help="Topic id or title to focus on (repeatable)",
    )

    sp_start = sub.add_parser(
        "start", parents=[common], help="Start a quiz session"
    )
    sp_start.add_argument("name")
    sp_start.add_argument(
        "--no-verify",
        action="store_true",
        help="Grade short answers by exact match only",
    )

    sp_rev = sub.add_parser(
        "review", parents=[common], help="Review missed questions"
    )
    sp_rev.add_argument("name")
    sp_rev.add_argument("--flashcards", action="store_true")
    sp_rev.add_argument("--seed", type=int)

    sp_rep = sub.add_parser(
        "report", parents=[common], help="Show saved quiz results"
    )
    sp_rep.add_argument("name")
    return p


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    console: Optional[Console] = None,
    input_provider: Optional[Callable[[], str]] = None,
    client: Any = None,
    env: Optional[Mapping[str, str]] = None,
    stdin: Optional[TextIO] = None,
) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    console = console or Console()

    try:
        loaded = load_settings(
            config_path=args.config,
            overrides=ConfigOverrides(
                model=args.model, log_level=args.log_level
            ),
            env=env,
            workspace_path=args.workspace,
        )
    except (QuizzerConfigError, WorkspaceError) as exc:
        console.print(f"[red]Error:[/] {escape(str(exc))}")
        return EXIT_USAGE

    logger, _ = configure_logger(
        "notequiz",
        log_dir=loaded.layout.path_for("logs"),
        level=loaded.settings.log_level,
        verbose=args.verbose,
    )
    ctx = _Context(
        loaded,
        console,
        input_provider or (lambda: console.input("> ")),
        client,
        stdin or sys.stdin,
    )
    logger.debug("quizzer command %s", args.command)
    try:
        return _HANDLERS[args.command](args, ctx)
    except (ConfigurationError, WorkspaceError) as exc:
        ctx.error(str(exc))
        return EXIT_USAGE
    except config_templates.ConfigTemplateError as exc:
        ctx.error(str(exc))
        return EXIT_USAGE
    except QuizPipelineError as exc:
        logger.error(
            "quizzer command failed: %s",
            exc,
            extra={
                "event": "cli.failed",
                "command": args.command,
                "kind": exc.kind.value,
                "status": exc.status,
            },
        )
        ctx.error(exc.user_message)
        return EXIT_FAILURE
    finally:
        close_logger(logger)


if __name__ == "__main__":  # pragma: no cover - manual invocation guard
    raise SystemExit(main())
