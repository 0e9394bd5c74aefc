"""Lexical relevance scoring of one file against a term list."""

from __future__ import annotations

from typing import Final

from repo_qa.ingest.models import RepoFile

TERM_HIT_WEIGHT: Final[float] = 8.0
EARLY_POSITION_SPAN: Final[int] = 1500
PATH_WEIGHT: Final[float] = 1.5
MAX_BODY_SCAN_CHARS: Final[int] = 16_000
TEST_FILE_DAMPING: Final[float] = 0.55

TEST_FILE_MARKERS: Final[tuple[str, ...]] = (".test.", ".spec.")
TEST_DIR_NAMES: Final[frozenset[str]] = frozenset({"__tests__", "fixtures"})


def count_term_hits(text: str, terms: list[str]) -> float:
    """Sum a fixed weight plus an early-position bonus for each term present."""
    lowered = text.lower()
    score = 0.0
    for term in terms:
        index = lowered.find(term)
        if index < 0:
            continue
        score += TERM_HIT_WEIGHT
        score += max(0, EARLY_POSITION_SPAN - index) / EARLY_POSITION_SPAN
    return score


def looks_like_test_file(path: str) -> bool:
    """Heuristic for test, spec and fixture files."""
    lowered = path.lower()
    if any(marker in lowered for marker in TEST_FILE_MARKERS):
        return True
    directories = lowered.split("/")[:-1]
    return any(part in TEST_DIR_NAMES for part in directories)


def score_file(file: RepoFile, terms: list[str], prefer_tests: bool) -> float:
    """Score a file; path hits weigh 1.5x and test files are damped unless preferred."""
    path_score = count_term_hits(file.path, terms) * PATH_WEIGHT
    body_score = count_term_hits(file.content[:MAX_BODY_SCAN_CHARS], terms)
    score = path_score + body_score
    if not prefer_tests and looks_like_test_file(file.path):
        score *= TEST_FILE_DAMPING
    return score
