"""Ranked snippet retrieval: tokenize, score every file, window the top hits."""

from __future__ import annotations

from repo_qa.ingest.models import RepoFile
from repo_qa.retrieval.models import ScoredFile, Snippet
from repo_qa.retrieval.scoring import score_file
from repo_qa.retrieval.terms import question_prefers_tests, tokenize
from repo_qa.retrieval.window import locate_window

DEFAULT_TOP_K = 6


def rank_files(files: list[RepoFile], terms: list[str], prefer_tests: bool) -> list[ScoredFile]:
    """Score all files, drop non-positive scores and sort descending.

    The sort is stable so equal scores keep their ingestion order, which keeps
    snippet ids reproducible across identical calls.
    """
    scored: list[ScoredFile] = []
    for file in files:
        score = score_file(file, terms, prefer_tests)
        if score <= 0:
            continue
        scored.append(ScoredFile(file=file, score=score))
    scored.sort(key=lambda item: -item.score)
    return scored


def retrieve(files: list[RepoFile], question: str, top_k: int = DEFAULT_TOP_K) -> list[Snippet]:
    """Return at most top_k snippets, one window per file, ids S1..Sn by rank."""
    terms = tokenize(question)
    if not terms or top_k < 1:
        return []
    prefer_tests = question_prefers_tests(question)
    ranked = rank_files(files, terms, prefer_tests)[:top_k]

    snippets: list[Snippet] = []
    for rank, item in enumerate(ranked, start=1):
        window = locate_window(item.file.content, terms)
        snippets.append(
            Snippet(
                id=f"S{rank}",
                path=item.file.path,
                start_line=window.start_line,
                end_line=window.end_line,
                code=window.code,
                score=round(item.score, 2),
            )
        )
    return snippets
