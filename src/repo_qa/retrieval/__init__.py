"""Lexical retrieval over an ingested file set."""

from .engine import DEFAULT_TOP_K, rank_files, retrieve
from .models import LineWindow, ScoredFile, Snippet
from .scoring import count_term_hits, looks_like_test_file, score_file
from .terms import MAX_TERMS, question_prefers_tests, tokenize
from .window import locate_window

__all__ = [
    "DEFAULT_TOP_K",
    "LineWindow",
    "MAX_TERMS",
    "ScoredFile",
    "Snippet",
    "count_term_hits",
    "locate_window",
    "looks_like_test_file",
    "question_prefers_tests",
    "rank_files",
    "retrieve",
    "score_file",
    "tokenize",
]
