from .bank import (
    Question,
    QuestionBankError,
    QUIZ_LENGTH,
    build_bank,
    default_bank,
    load_bank,
    parse_question,
)
from .selector import (
    RandomSource,
    randomize_choices,
    select_questions,
    shuffle,
)
from .grader import (
    BOOLEAN_INDEX_MAP,
    boolean_from_index,
    calculate_score,
    grade,
    is_answered,
)
from .session import (
    QuizSession,
    QuizSummary,
    SessionState,
    start_session,
)
from .ledger import (
    HighScoreLedger,
    JsonFileStore,
    MemoryStore,
    ScoreEntry,
    TopicPreference,
)
from .view import run_quiz_session, QuizSessionResult
from ._main import build_arg_parser

__all__ = [
    "Question",
    "QuestionBankError",
    "QUIZ_LENGTH",
    "build_bank",
    "default_bank",
    "load_bank",
    "parse_question",
    "RandomSource",
    "randomize_choices",
    "select_questions",
    "shuffle",
    "BOOLEAN_INDEX_MAP",
    "boolean_from_index",
    "calculate_score",
    "grade",
    "is_answered",
    "QuizSession",
    "QuizSummary",
    "SessionState",
    "start_session",
    "HighScoreLedger",
    "JsonFileStore",
    "MemoryStore",
    "ScoreEntry",
    "TopicPreference",
    "run_quiz_session",
    "QuizSessionResult",
    "build_arg_parser",
]
