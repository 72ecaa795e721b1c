"""Study missed questions from saved results, as a list or flashcards."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .storage import SavedResult

InputProvider = Callable[[], str]

_FEEDBACK_BANDS = (
    (90, "Outstanding! You have mastered this material."),
    (75, "Great job! You have a solid understanding."),
    (60, "Good effort! Review the missed questions to improve."),
)
_FEEDBACK_DEFAULT = "Keep practicing! Study the material and try again."


@dataclass(frozen=True)
class MissedItem:
    question: str
    user_answer: str
    correct_answer: str
    explanation: str
    completed_at: str


@dataclass(frozen=True)
class ResultStats:
    total_quizzes: int
    average_score: int
    best_score: int


def result_stats(results: Sequence[SavedResult]) -> ResultStats:
    """Quiz count with average and best percentage across ``results``."""

    ratios = [
        item.summary.score / item.summary.total
        for item in results
        if item.summary.total
    ]
    if not ratios:
        return ResultStats(len(results), 0, 0)
    return ResultStats(
        total_quizzes=len(results),
        average_score=round(sum(ratios) / len(ratios) * 100),
        best_score=round(max(ratios) * 100),
    )


def performance_feedback(percentage: int) -> str:
    for threshold, message in _FEEDBACK_BANDS:
        if percentage >= threshold:
            return message
    return _FEEDBACK_DEFAULT


def collect_incorrect(results: Sequence[SavedResult]) -> List[MissedItem]:
    """Flatten incorrect answers across ``results``, newest result first."""

    ordered = sorted(results, key=lambda item: item.completed_at, reverse=True)
    return [
        MissedItem(
            question=record.question,
            user_answer=record.user_answer,
            correct_answer=record.correct_answer,
            explanation=record.explanation,
            completed_at=result.completed_at,
        )
        for result in ordered
        for record in result.summary.incorrect_answers
    ]


def build_flashcards(
    items: Sequence[MissedItem], seed: Optional[int] = None
) -> List[MissedItem]:
    deck = list(items)
    random.Random(seed).shuffle(deck)
    return deck


def render_missed_table(console: Console, items: Sequence[MissedItem]) -> None:
    if not items:
        console.print(
            Panel(
                "No missed questions yet. Nice work!",
                title="Review",
                border_style="green",
            )
        )
        return
    table = Table(title="Missed questions", box=box.SIMPLE, expand=True)
    table.add_column("#", justify="right")
    table.add_column("Question", overflow="fold")
    table.add_column("Your answer")
    table.add_column("Correct answer")
    table.add_column("Taken", style="dim")
    for idx, item in enumerate(items, start=1):
        table.add_row(
            str(idx),
            item.question,
            item.user_answer,
            item.correct_answer,
            item.completed_at,
        )
    console.print(table)


def run_review(
    items: Sequence[MissedItem],
    console: Console,
    input_provider: InputProvider,
) -> int:
    """Flashcard loop over ``items``; returns the number of cards seen."""

    if not items:
        render_missed_table(console, items)
        return 0

    index = 0
    flipped = False
    seen = {0}
    while True:
        card = items[index]
        console.print()
        console.rule(
            Text.assemble(
                (f"Card {index + 1}", "bold cyan"), (f" / {len(items)}", "dim")
            )
        )
        if flipped:
            body = Text()
            body.append(card.correct_answer, style="bold green")
            if card.explanation:
                body.append("\n\n" + card.explanation)
            body.append(f"\n\nYou answered: {card.user_answer}", style="dim")
            console.print(Panel(body, title="Answer", border_style="green"))
        else:
            console.print(
                Panel(Text(card.question, style="bold"), title="Question")
            )
        console.print(
            Text(
                "Commands: f (flip), n (next), p (prev), q (quit)",
                style="dim",
            )
        )
        try:
            raw = input_provider()
        except (EOFError, KeyboardInterrupt, StopIteration):
            break
        command = (raw or "").strip().lower()
        if command in {"q", "quit"}:
            break
        if command in {"f", "flip"}:
            flipped = not flipped
        elif command in {"n", "next", ""}:
            if index + 1 < len(items):
                index += 1
                flipped = False
        elif command in {"p", "prev"}:
            if index > 0:
                index -= 1
                flipped = False
        else:
            console.print("[red]Unrecognized command. Try again.[/]")
        seen.add(index)
    return len(seen)
