"""Typed models for one retrieval call."""

from __future__ import annotations

from dataclasses import dataclass

from repo_qa.ingest.models import RepoFile


@dataclass(slots=True, frozen=True)
class ScoredFile:
    """A file paired with its relevance score for one question."""

    file: RepoFile
    score: float


@dataclass(slots=True, frozen=True)
class LineWindow:
    """Contiguous evidence window; start_line is 1-based, end_line is the slice end."""

    start_line: int
    end_line: int
    code: str


@dataclass(slots=True, frozen=True)
class Snippet:
    """Ranked evidence excerpt. The id is a per-call rank label, not a stable key."""

    id: str
    path: str
    start_line: int
    end_line: int
    code: str
    score: float
    source_url: str | None = None
