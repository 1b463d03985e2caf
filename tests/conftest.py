from __future__ import annotations

import sys
from pathlib import Path

import pytest

TESTS_DIR = Path(__file__).resolve().parent
ROOT = TESTS_DIR.parent
for extra in (TESTS_DIR, ROOT / "src"):
    path_str = str(extra)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)

from fixtures import WorkspaceBuilder  # noqa: E402
from topic_quiz.core import workspace as workspace_mod  # noqa: E402


@pytest.fixture
def workspace(tmp_path: Path) -> WorkspaceBuilder:
    """Provide a helper bound to pytest's per-test tmp directory."""

    return WorkspaceBuilder(tmp_path)


@pytest.fixture(autouse=True)
def _isolated_data_home(
    tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch
) -> Path:
    """Keep tests from touching the real ~/.topic-quiz-data."""

    home = tmp_path_factory.mktemp("data-home")
    monkeypatch.setenv(workspace_mod.WORKSPACE_ENV, str(home))
    for name in ("CONFIG", "LENGTH", "BANK", "TOPICS", "EXPLAIN", "LOG_LEVEL",
                 "SCORES_FILE"):
        monkeypatch.delenv(f"TOPIC_QUIZ_{name}", raising=False)
    return home
