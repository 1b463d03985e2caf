"""Shared testing fixtures for the topic_quiz test suite."""

from .quiz import FixedRandom, boolean, fill, ids, make_bank, mcq  # noqa: F401
from .workspace import WorkspaceBuilder  # noqa: F401

__all__ = [
    "FixedRandom",
    "WorkspaceBuilder",
    "boolean",
    "fill",
    "ids",
    "make_bank",
    "mcq",
]
