"""Rich console front end for quiz sessions.

The loop reads one command at a time from an input provider, applies it to
the :class:`~topic_quiz.quiz.session.QuizSession`, and re-renders. Choice
questions are answered with ``1``..``n``; fill questions take free text
(prefix with ``=`` to answer with a word that is also a command, e.g.
``=next``). After submission the review and high-score table are shown and
``r`` starts a new session.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Literal

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from . import grader
from .ledger import HighScoreLedger, ScoreEntry
from .session import QuizSession, QuizSummary, SessionState

InputProvider = Callable[[], str]
ExitAction = Literal["submitted", "quit", "empty"]
CommandType = Literal["select", "answer", "next", "submit", "restart", "quit"]


@dataclass(frozen=True)
class SessionCommand:
    """Normalized user command parsed from console input."""

    type: CommandType
    value: int | str | None = None


@dataclass(frozen=True)
class QuizSessionResult:
    """Return value from :func:`run_quiz_session`."""

    session: QuizSession
    exit_action: ExitAction
    summary: QuizSummary | None = None
    entry: ScoreEntry | None = None
    sessions_played: int = 1


_KEYWORDS: dict[str, CommandType] = {
    "n": "next",
    "next": "next",
    "s": "submit",
    "submit": "submit",
    "r": "restart",
    "restart": "restart",
    "q": "quit",
    "quit": "quit",
    "exit": "quit",
}


def parse_session_command(
    raw: str | None, *, fill: bool = False
) -> SessionCommand | None:
    """Parse raw input; ``fill`` treats unrecognized text as an answer."""

    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None
    if text.startswith("="):
        answer = text[1:].strip()
        return SessionCommand("answer", answer) if answer else None
    keyword = _KEYWORDS.get(text.lower())
    if keyword:
        return SessionCommand(keyword)
    if fill:
        return SessionCommand("answer", text)
    if text.isdigit():
        return SessionCommand("select", int(text) - 1)
    return None


def run_quiz_session(
    session: QuizSession,
    console: Console,
    input_provider: InputProvider,
    *,
    ledger: HighScoreLedger | None = None,
    show_explanations: bool = True,
) -> QuizSessionResult:
    """Drive ``session`` interactively until the user quits.

    Restarts replace the session; the result describes the last one.
    """

    if session.state is SessionState.EMPTY:
        console.print(
            Panel(
                "Question bank is empty.",
                title="Quiz Session",
                border_style="yellow",
            )
        )
        return QuizSessionResult(session, "empty")

    played = 1
    summary: QuizSummary | None = None
    entry: ScoreEntry | None = None
    while True:
        if session.complete:
            raw = _read(console, input_provider)
            command = parse_session_command(raw) if raw is not None else None
            if raw is None or (command and command.type == "quit"):
                return QuizSessionResult(
                    session, "submitted", summary, entry, played
                )
            if command and command.type == "restart":
                session = session.restart()
                played += 1
                summary = entry = None
                continue
            console.print("[dim]Enter r to play again or q to quit.[/]")
            continue

        render_question(console, session)
        raw = _read(console, input_provider)
        if raw is None:
            return QuizSessionResult(session, "quit", None, None, played)
        question = session.current
        command = parse_session_command(
            raw, fill=question is not None and question.type == "fill"
        )
        if command is None:
            console.print("[red]Unrecognized command. Try again.[/]")
            continue
        if command.type == "quit":
            console.print("\n[bold yellow]Ending session without submission.[/]")
            return QuizSessionResult(session, "quit", None, None, played)
        if command.type == "restart":
            session = session.restart()
            played += 1
            console.print("[bold]New questions drawn.[/]")
            continue
        if apply_command(command, session, console) and session.complete:
            summary = session.review(show_explanations=show_explanations)
            entry = ledger.record(session) if ledger is not None else None
            render_summary(console, summary)
            if ledger is not None:
                render_high_scores(console, ledger.top())
            console.print("[dim]Enter r to play again or q to quit.[/]")


def _read(console: Console, input_provider: InputProvider) -> str | None:
    try:
        return input_provider()
    except (EOFError, KeyboardInterrupt, StopIteration):
        console.print("\n[bold yellow]Session interrupted.[/]")
        return None


def apply_command(
    command: SessionCommand, session: QuizSession, console: Console
) -> bool:
    """Apply an in-question command; returns whether state changed."""

    question = session.current
    if question is None:
        return False
    if command.type in ("select", "answer"):
        if not session.record_answer(question.id, command.value):
            labels = grader.choices_for(question)
            hint = f"1-{len(labels)}" if labels else "some text"
            console.print(f"[red]Not a valid answer. Enter {hint}.[/red]")
            return False
        shown = grader.display_answer(question, session.answer_for(question))
        if shown is None:
            console.print("[yellow]Answer cleared.[/]")
        else:
            console.print(Text.assemble("Selected ", (shown, "bold"), "."))
        return True
    if command.type == "next":
        if session.advance():
            return True
        if session.state is SessionState.AT_LAST_QUESTION:
            console.print("[yellow]Last question: enter s to submit.[/]")
        else:
            console.print("[yellow]Answer this question before moving on.[/]")
        return False
    if command.type == "submit":
        if session.submit():
            return True
        if session.state is SessionState.AT_LAST_QUESTION:
            console.print("[yellow]Answer this question before submitting.[/]")
        else:
            console.print(
                "[yellow]Submit is available on the last question.[/]"
            )
        return False
    return False


def render_question(console: Console, session: QuizSession) -> None:
    question = session.current
    if question is None:
        return
    header = Text.assemble(
        (f"Question {session.current_index + 1}", "bold cyan"),
        (f" of {session.total}", "dim"),
    )
    console.print()
    console.rule(header)
    console.print(Text(question.question, style="bold"))
    console.print(Text(f"Topic: {question.topic}", style="italic dim"))

    recorded = session.answer_for(question)
    if question.type == "fill":
        current = recorded if isinstance(recorded, str) and recorded else None
        console.print(
            Text(
                f"Your answer: {current}" if current else "Type your answer.",
                style="green" if current else "dim",
            )
        )
    else:
        table = Table(show_header=False, box=box.SIMPLE, expand=True)
        table.add_column("Key", justify="center", style="cyan")
        table.add_column("Choice")
        for index, label in enumerate(grader.choices_for(question)):
            selected = recorded == index
            row = Text("• " if selected else "  ")
            row.append(label, style="bold green" if selected else "")
            table.add_row(str(index + 1), row)
        console.print(table)

    commands = ["n (next)"] if session.can_advance() else []
    if session.can_submit():
        commands.append("s (submit)")
    commands.extend(["r (restart)", "q (quit)"])
    console.print(
        Text(
            f"Answered {session.answered_count()}/{session.total} | "
            f"Commands: {', '.join(commands)}",
            style="dim",
        )
    )


def render_summary(console: Console, summary: QuizSummary) -> None:
    console.print()
    console.rule(Text("Quiz Summary", style="bold magenta"))
    console.print(
        f"You scored [bold]{summary.correct_answers}[/] out of "
        f"{summary.total_questions} ({summary.percent}%)."
    )

    if summary.per_topic:
        per_topic = Table(title="Per topic", box=box.SIMPLE, expand=False)
        per_topic.add_column("Topic")
        per_topic.add_column("Asked", justify="right")
        per_topic.add_column("Correct", justify="right")
        per_topic.add_column("Accuracy", justify="right")
        for topic, metrics in summary.per_topic.items():
            per_topic.add_row(
                Text(topic),
                str(metrics.asked),
                str(metrics.correct),
                f"{metrics.accuracy * 100:.1f}%",
            )
        console.print(per_topic)

    review = Table(title="Review", box=box.SIMPLE, expand=True)
    review.add_column("#", justify="right")
    review.add_column("Question", overflow="fold")
    review.add_column("Your answer")
    review.add_column("Correct answer")
    review.add_column("Result", justify="center")
    for idx, response in enumerate(summary.responses, start=1):
        review.add_row(
            str(idx),
            Text(f"{response.question} ({response.topic})"),
            Text(response.selected_text)
            if response.selected_text
            else Text("(blank)", style="dim"),
            Text(response.answer_text),
            Text("Correct", style="green")
            if response.is_correct
            else Text("Incorrect", style="red"),
        )
    console.print(review)

    for response in summary.responses:
        if not response.explanation:
            continue
        console.print(
            Panel(
                Text(response.explanation),
                title=f"Explanation: question {response.question_id}",
                border_style="green" if response.is_correct else "red",
            )
        )


def render_high_scores(
    console: Console, entries: Sequence[ScoreEntry]
) -> None:
    table = Table(title="High Scores", box=box.SIMPLE, expand=False)
    table.add_column("#", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Correct", justify="right")
    table.add_column("Topics")
    table.add_column("Date")
    if not entries:
        console.print(Text("No scores yet.", style="dim"))
        return
    for idx, entry in enumerate(entries, start=1):
        table.add_row(
            str(idx),
            f"{entry.percent}%",
            f"{entry.correct}/{entry.total}",
            Text(entry.topics or "all"),
            _format_date(entry.date),
        )
    console.print(table)


def _format_date(epoch_ms: int) -> str:
    try:
        return datetime.fromtimestamp(epoch_ms / 1000).strftime("%Y-%m-%d")
    except (OverflowError, OSError, ValueError):
        return "?"
