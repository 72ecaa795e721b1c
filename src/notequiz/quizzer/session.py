"""Quiz session state machine and the Rich loop that drives it.

The state is an immutable :class:`SessionState`; every transition is a plain
function returning a new state, so the scoring rules can be tested without a
console. ``run_quiz_session`` wires those transitions to Rich prompts.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Literal, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .errors import NoQuestionsError, SessionError
from .grader import AnswerVerifier, GradeResult, grade
from .models import AnswerRecord, Question, QuestionType, ResultSummary
from .review import performance_feedback

InputProvider = Callable[[], str]
Grader = Callable[[Question, str], GradeResult]
ExitAction = Literal["completed", "quit", "empty"]


class Phase(Enum):
    AWAITING = "awaiting"
    FEEDBACK = "feedback"
    COMPLETE = "complete"


@dataclass(frozen=True)
class SessionState:
    questions: tuple[Question, ...]
    index: int = 0
    phase: Phase = Phase.AWAITING
    answers: tuple[AnswerRecord, ...] = ()
    draft: str = ""
    last_grade: Optional[GradeResult] = None

    @property
    def total(self) -> int:
        return len(self.questions)

    @property
    def current(self) -> Question:
        return self.questions[self.index]

    @property
    def reviewing(self) -> bool:
        """True while showing a question that already has a record."""

        return self.phase is Phase.AWAITING and self.index < len(self.answers)

    @property
    def current_record(self) -> Optional[AnswerRecord]:
        if self.index < len(self.answers):
            return self.answers[self.index]
        return None


@dataclass(frozen=True)
class QuizSessionResult:
    """Return value from ``run_quiz_session``."""

    summary: Optional[ResultSummary]
    exit_action: ExitAction


def start_session(questions: Sequence[Question]) -> SessionState:
    items = tuple(questions)
    if not items:
        raise NoQuestionsError("Cannot start a quiz without questions.")
    return SessionState(questions=items)


def set_draft(state: SessionState, text: str) -> SessionState:
    if state.phase is not Phase.AWAITING or state.reviewing:
        raise SessionError("The current question is not accepting answers.")
    return replace(state, draft=text)


def submit_answer(
    state: SessionState, answer: str, grader: Grader = grade
) -> SessionState:
    """Grade ``answer`` for the current question and record it."""

    if state.phase is not Phase.AWAITING:
        raise SessionError("Answers can only be submitted while awaiting one.")
    if state.reviewing:
        raise SessionError("This question has already been answered.")
    if not (answer or "").strip():
        raise SessionError("Answer must not be blank.")
    question = state.current
    result = grader(question, answer)
    record = AnswerRecord(
        question=question.question,
        user_answer=answer.strip(),
        correct_answer=question.correct_answer,
        is_correct=result.is_correct,
        explanation=question.explanation,
    )
    return replace(
        state,
        phase=Phase.FEEDBACK,
        answers=state.answers + (record,),
        draft=answer,
        last_grade=result,
    )


def advance(state: SessionState) -> SessionState:
    """Move past feedback, or forward through already-answered questions."""

    if state.phase is Phase.FEEDBACK:
        if state.index + 1 >= state.total:
            return replace(state, phase=Phase.COMPLETE, draft="")
        return replace(
            state,
            index=state.index + 1,
            phase=Phase.AWAITING,
            draft="",
            last_grade=None,
        )
    if state.reviewing:
        return replace(state, index=state.index + 1, draft="")
    raise SessionError("Submit an answer before moving on.")


def go_back(state: SessionState) -> SessionState:
    if state.phase is not Phase.AWAITING or state.index == 0:
        raise SessionError("There is no previous question to review.")
    return replace(state, index=state.index - 1, draft="", last_grade=None)


def running_score(state: SessionState) -> int:
    return sum(1 for record in state.answers if record.is_correct)


def finish(state: SessionState) -> ResultSummary:
    if state.phase is not Phase.COMPLETE:
        raise SessionError("The quiz is not complete yet.")
    return ResultSummary.from_answers(state.answers)


def parse_answer(question: Question, raw: str) -> Optional[str]:
    """Translate console input into an answer, or ``None`` if not valid.

    Multiple choice accepts a letter or a 1-based number; true/false accepts
    ``t``/``f`` as well as the full words.
    """
    text = (raw or "").strip()
    if not text:
        return None
    if question.type is QuestionType.MULTIPLE_CHOICE:
        if text.isdigit():
            index = int(text) - 1
        elif len(text) == 1 and text.isalpha():
            index = ord(text.upper()) - ord("A")
        else:
            index = -1
        if 0 <= index < len(question.options):
            return question.options[index]
        return None
    if question.type is QuestionType.TRUE_FALSE:
        lowered = text.lower()
        if lowered in {"t", "true"}:
            return "True"
        if lowered in {"f", "false"}:
            return "False"
        return None
    return text


def run_quiz_session(
    questions: Sequence[Question],
    console: Console,
    input_provider: InputProvider,
    *,
    grader: Optional[Grader] = None,
    verifier: Optional[AnswerVerifier] = None,
    context: str = "",
) -> QuizSessionResult:
    """Run an interactive quiz session using Rich-rendered prompts."""

    if not questions:
        console.print(
            Panel(
                "There are no questions to ask.",
                title="Quiz Session",
                border_style="yellow",
            )
        )
        return QuizSessionResult(None, "empty")

    grade_answer: Grader = grader or (
        lambda question, answer: grade(
            question, answer, verifier=verifier, context=context
        )
    )
    state = start_session(questions)
    while state.phase is not Phase.COMPLETE:
        if state.phase is Phase.FEEDBACK:
            _render_feedback(console, state)
            prompt = "Press Enter to continue, q to quit"
        else:
            _render_question(console, state)
            prompt = _command_hint(state)
        console.print(Text(prompt, style="dim"))
        try:
            raw = input_provider()
        except (EOFError, KeyboardInterrupt, StopIteration):
            console.print("\n[bold yellow]Session interrupted.[/]")
            return QuizSessionResult(None, "quit")

        command = (raw or "").strip().lower()
        if command in {"q", "quit"}:
            console.print("\n[bold yellow]Ending quiz without a score.[/]")
            return QuizSessionResult(None, "quit")
        if command in {"p", "prev"} and state.phase is Phase.AWAITING:
            if state.index == 0:
                console.print("[red]Already at the first question.[/]")
            else:
                state = go_back(state)
            continue
        if state.phase is Phase.FEEDBACK or state.reviewing:
            state = advance(state)
            continue

        answer = parse_answer(state.current, raw)
        if answer is None:
            console.print("[red]Unrecognized answer. Try again.[/]")
            continue
        state = submit_answer(set_draft(state, answer), answer, grade_answer)

    summary = finish(state)
    _render_summary(console, summary)
    return QuizSessionResult(summary, "completed")


def _command_hint(state: SessionState) -> str:
    if state.reviewing:
        return "Commands: Enter (next), p (prev), q (quit)"
    question = state.current
    if question.type is QuestionType.MULTIPLE_CHOICE:
        keys = ", ".join(
            chr(ord("A") + i) for i in range(len(question.options))
        )
        answer_hint = f"choices [{keys}]"
    elif question.type is QuestionType.TRUE_FALSE:
        answer_hint = "t (true), f (false)"
    else:
        answer_hint = "type your answer"
    back = ", p (prev)" if state.index > 0 else ""
    return f"Commands: {answer_hint}{back}, q (quit)"


def _render_question(console: Console, state: SessionState) -> None:
    question = state.current
    header = Text.assemble(
        (f"Question {state.index + 1}", "bold cyan"),
        (f" / {state.total}", "dim"),
        (f"  Score {running_score(state)}/{len(state.answers)}", "dim"),
    )
    console.print()
    console.rule(header)
    console.print(Text(question.question, style="bold"))

    record = state.current_record
    if question.type is QuestionType.MULTIPLE_CHOICE:
        table = Table(show_header=False, box=box.SIMPLE, expand=True)
        table.add_column("Key", justify="center", style="cyan")
        table.add_column("Choice")
        for idx, option in enumerate(question.options):
            text = Text(option)
            if record is not None and option == record.user_answer:
                text.stylize("bold green" if record.is_correct else "bold red")
            table.add_row(chr(ord("A") + idx), text)
        console.print(table)
    elif question.type is QuestionType.TRUE_FALSE:
        console.print(Text("True or False?", style="italic"))

    if record is not None:
        outcome = "correct" if record.is_correct else "incorrect"
        console.print(
            Text(f"Your answer: {record.user_answer} ({outcome})", style="dim")
        )


def _render_feedback(console: Console, state: SessionState) -> None:
    record = state.answers[-1]
    if record.is_correct:
        title, border = "Correct!", "green"
    else:
        title, border = "Incorrect", "red"
    body = Text()
    if not record.is_correct:
        body.append("Correct answer: ", style="bold")
        body.append(record.correct_answer + "\n")
    if record.explanation:
        body.append(record.explanation)
    reasoning = state.last_grade.reasoning if state.last_grade else ""
    if reasoning:
        body.append("\n" + reasoning, style="italic")
    console.print(Panel(body, title=title, border_style=border))


def _render_summary(console: Console, summary: ResultSummary) -> None:
    console.print()
    console.rule(Text("Quiz Summary", style="bold magenta"))

    overview = Table(
        show_header=False,
        box=box.MINIMAL_DOUBLE_HEAD,
        expand=False,
    )
    overview.add_column("Metric", style="bold")
    overview.add_column("Value", justify="right")
    overview.add_row("Total questions", str(summary.total))
    overview.add_row("Correct", str(summary.score))
    overview.add_row("Score", f"{summary.percentage}%")
    console.print(overview)
    console.print(Text(performance_feedback(summary.percentage), style="bold"))

    response_table = Table(title="Responses", box=box.SIMPLE, expand=True)
    response_table.add_column("#", justify="right")
    response_table.add_column("Question", overflow="fold")
    response_table.add_column("Your answer")
    response_table.add_column("Correct answer")
    response_table.add_column("Result", justify="center")
    for idx, record in enumerate(summary.answers, start=1):
        response_table.add_row(
            str(idx),
            record.question,
            record.user_answer,
            record.correct_answer,
            "✅" if record.is_correct else "❌",
        )
    console.print(response_table)
