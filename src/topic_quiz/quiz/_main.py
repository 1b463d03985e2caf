import argparse
import random
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from rich.console import Console
from rich.table import Table
from rich.text import Text

from topic_quiz.core import config as core_config
from topic_quiz.core import workspace as workspace_mod
from topic_quiz.core.logging import configure_logger

from .bank import (
    Question,
    QuestionBankError,
    default_bank,
    load_bank,
    topic_counts,
)
from .config import (
    CONFIG_FILENAME,
    ConfigOverrides,
    LoadResult,
    QuizConfigError,
    load_config,
)
from .ledger import (
    DISPLAY_LIMIT,
    HighScoreLedger,
    JsonFileStore,
    TopicPreference,
)
from .session import start_session
from .view import InputProvider, render_high_scores, run_quiz_session

LOGGER_NAME = "topic_quiz"


def _common_options() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        type=Path,
        help="Path to a quiz TOML config (defaults to the workspace config).",
    )
    common.add_argument(
        "--workspace",
        type=Path,
        help="Override the workspace root holding config, logs and scores.",
    )
    return common


def build_arg_parser() -> argparse.ArgumentParser:
    common = _common_options()
    p = argparse.ArgumentParser(
        prog="topic-quiz",
        description="Topic-balanced quizzes with a local high-score ledger",
    )
    sub = p.add_subparsers(dest="command", required=True)

    sp_play = sub.add_parser(
        "play", parents=[common], help="Start an interactive quiz session"
    )
    sp_play.add_argument(
        "--topics",
        nargs="*",
        help="Topics to balance across (default: saved preference or all)",
    )
    sp_play.add_argument("--length", type=int, help="Questions per session")
    sp_play.add_argument(
        "--bank", type=Path, help="Question bank (.json or .jsonl)"
    )
    sp_play.add_argument(
        "--explain", dest="explain", action="store_true", default=None
    )
    sp_play.add_argument("--no-explain", dest="explain", action="store_false")
    sp_play.add_argument(
        "--seed", type=int, help="Seed the shuffle for a repeatable quiz"
    )
    sp_play.add_argument("--log-level", help="File log level (default INFO)")
    sp_play.add_argument(
        "--verbose", action="store_true", help="Mirror logs to stderr"
    )

    sp_scores = sub.add_parser("scores", help="High-score commands")
    scores_sub = sp_scores.add_subparsers(dest="action", required=True)
    sp_s_list = scores_sub.add_parser(
        "list", parents=[common], help="Show the best scores"
    )
    sp_s_list.add_argument("--limit", type=int, default=DISPLAY_LIMIT)
    scores_sub.add_parser(
        "clear", parents=[common], help="Delete all saved scores"
    )

    sp_topics = sub.add_parser("topics", help="Topic filter commands")
    topics_sub = sp_topics.add_subparsers(dest="action", required=True)
    sp_t_list = topics_sub.add_parser(
        "list", parents=[common], help="List topics in the question bank"
    )
    sp_t_list.add_argument("--bank", type=Path)
    sp_t_set = topics_sub.add_parser(
        "set", parents=[common], help="Save a default topic filter"
    )
    sp_t_set.add_argument("topics", nargs="+")
    sp_t_set.add_argument("--bank", type=Path)
    topics_sub.add_parser(
        "clear", parents=[common], help="Forget the saved topic filter"
    )

    sp_config = sub.add_parser("config", help="Configuration commands")
    config_sub = sp_config.add_subparsers(dest="action", required=True)
    sp_c_init = config_sub.add_parser(
        "init", help=f"Write the default {CONFIG_FILENAME} template"
    )
    sp_c_init.add_argument("--path", type=Path)
    sp_c_init.add_argument("--workspace", type=Path)
    sp_c_init.add_argument("--force", action="store_true")
    return p


def _load(
    parser: argparse.ArgumentParser,
    args: argparse.Namespace,
    overrides: Optional[ConfigOverrides] = None,
) -> LoadResult:
    try:
        return load_config(
            config_path=args.config,
            overrides=overrides,
            workspace_path=args.workspace,
        )
    except QuizConfigError as exc:
        parser.error(str(exc))
        raise  # pragma: no cover - parser.error exits


def _load_bank(bank_path: Optional[Path]) -> List[Question]:
    if bank_path is None:
        return list(default_bank())
    return list(load_bank(bank_path))


def _cmd_play(
    parser: argparse.ArgumentParser,
    args: argparse.Namespace,
    console: Console,
    input_provider: Optional[InputProvider],
) -> int:
    if args.length is not None and args.length <= 0:
        parser.error("--length must be a positive integer")
    result = _load(
        parser,
        args,
        ConfigOverrides(
            length=args.length,
            bank_path=args.bank,
            explain=args.explain,
            log_level=args.log_level,
        ),
    )
    config = result.config
    logger, log_path = configure_logger(
        LOGGER_NAME,
        log_dir=result.layout.path_for("logs"),
        level=config.log_level,
        verbose=bool(args.verbose),
    )
    logger.debug("play invoked", extra={"config_path": result.config_path})

    try:
        bank = _load_bank(config.bank_path)
    except QuestionBankError as exc:
        logger.error("Invalid question bank", extra={"error": str(exc)})
        sys.stderr.write(f"Error: {exc}\n")
        return 1

    store = JsonFileStore(config.scores_file)
    if args.topics is not None:
        topics = list(args.topics)
    else:
        topics = TopicPreference(store).load() or list(config.topics)

    rng = random.Random(args.seed) if args.seed is not None else None
    session = start_session(bank, topics, config.length, rng=rng)
    outcome = run_quiz_session(
        session,
        console,
        input_provider or (lambda: console.input("> ")),
        ledger=HighScoreLedger(store),
        show_explanations=config.explain,
    )
    logger.debug(
        "play finished",
        extra={
            "exit_action": outcome.exit_action,
            "sessions": outcome.sessions_played,
            "log_path": log_path,
        },
    )
    return 1 if outcome.exit_action == "empty" else 0


def _cmd_scores_list(args: argparse.Namespace, config, console: Console) -> int:
    limit = max(0, int(args.limit))
    ledger = HighScoreLedger(JsonFileStore(config.scores_file))
    render_high_scores(console, ledger.top(limit))
    return 0


def _cmd_scores_clear(config, console: Console) -> int:
    ledger = HighScoreLedger(JsonFileStore(config.scores_file))
    if not ledger.clear():
        console.print("[red]Could not clear high scores.[/]")
        return 1
    console.print("Cleared high scores.")
    return 0


def _cmd_topics_list(args: argparse.Namespace, config, console: Console) -> int:
    try:
        bank = _load_bank(args.bank or config.bank_path)
    except QuestionBankError as exc:
        sys.stderr.write(f"Error: {exc}\n")
        return 1
    counts = topic_counts(bank)
    if not counts:
        console.print("Question bank is empty.")
        return 1
    saved = set(TopicPreference(JsonFileStore(config.scores_file)).load())
    table = Table(title="Topics", show_lines=False)
    table.add_column("Topic")
    table.add_column("Questions", justify="right")
    table.add_column("Saved", justify="center")
    for topic, count in counts.items():
        table.add_row(Text(topic), str(count), "*" if topic in saved else "")
    console.print(table)
    return 0


def _cmd_topics_set(args: argparse.Namespace, config, console: Console) -> int:
    topics = list(dict.fromkeys(t.strip() for t in args.topics if t.strip()))
    try:
        known = topic_counts(_load_bank(args.bank or config.bank_path))
    except QuestionBankError as exc:
        sys.stderr.write(f"Error: {exc}\n")
        return 1
    unknown = [t for t in topics if t not in known]
    if unknown:
        console.print(
            Text(
                f"No questions for: {', '.join(unknown)}. Those topics will "
                "be ignored when playing.",
                style="yellow",
            )
        )
    if not TopicPreference(JsonFileStore(config.scores_file)).save(topics):
        console.print("[red]Could not save topic preference.[/]")
        return 1
    console.print(Text(f"Saved topic filter: {', '.join(topics)}"))
    return 0


def _cmd_topics_clear(config, console: Console) -> int:
    TopicPreference(JsonFileStore(config.scores_file)).clear()
    console.print("Topic filter cleared; quizzes cover all topics.")
    return 0


def _cmd_config_init(args: argparse.Namespace) -> int:
    if args.path is not None:
        target = args.path.expanduser()
        if not target.is_absolute():
            target = (Path.cwd() / target).resolve()
    else:
        try:
            layout = workspace_mod.ensure_workspace(path=args.workspace)
        except workspace_mod.WorkspaceError as exc:
            sys.stderr.write(f"{exc}\n")
            return 1
        target = layout.path_for("config") / CONFIG_FILENAME
    try:
        written = core_config.get_template("quiz").write(
            target, overwrite=args.force
        )
    except core_config.TomlConfigError as exc:
        sys.stderr.write(f"{exc}\n")
        return 1
    sys.stdout.write(f"Wrote quiz config to {written}\n")
    return 0


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    console: Optional[Console] = None,
    input_provider: Optional[InputProvider] = None,
) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    console = console or Console()

    if args.command == "play":
        return _cmd_play(parser, args, console, input_provider)
    if args.command == "config" and args.action == "init":
        return _cmd_config_init(args)

    config = _load(parser, args).config
    if args.command == "scores" and args.action == "list":
        return _cmd_scores_list(args, config, console)
    if args.command == "scores" and args.action == "clear":
        return _cmd_scores_clear(config, console)
    if args.command == "topics" and args.action == "list":
        return _cmd_topics_list(args, config, console)
    if args.command == "topics" and args.action == "set":
        return _cmd_topics_set(args, config, console)
    if args.command == "topics" and args.action == "clear":
        return _cmd_topics_clear(config, console)
    parser.print_help()  # pragma: no cover - argparse enforces choices
    return 2


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())
