"""Question tokenization into bounded lexical search terms."""

from __future__ import annotations

import re
from typing import Final

MAX_TERMS: Final[int] = 30
MIN_TERM_LENGTH: Final[int] = 3

CAMEL_BOUNDARY: Final[re.Pattern[str]] = re.compile(r"([a-z])([A-Z])")
NON_TERM_CHARS: Final[re.Pattern[str]] = re.compile(r"[^a-z0-9_]+")
TEST_VOCABULARY: Final[re.Pattern[str]] = re.compile(
    r"\b(test|spec|coverage|assert)\b", re.IGNORECASE
)

# Filler words of questions about code, not a general English stop list.
QUESTION_STOP_WORDS: Final[frozenset[str]] = frozenset(
    {
        "the",
        "and",
        "for",
        "with",
        "where",
        "what",
        "which",
        "when",
        "why",
        "how",
        "does",
        "this",
        "that",
        "from",
        "into",
        "about",
        "work",
        "works",
        "handled",
        "handle",
        "code",
    }
)


def tokenize(question: str) -> list[str]:
    """Split a question into ordered, unique, lowercase terms (at most MAX_TERMS)."""
    spaced = CAMEL_BOUNDARY.sub(r"\1 \2", question).lower()
    terms = [
        token
        for token in NON_TERM_CHARS.split(spaced)
        if len(token) >= MIN_TERM_LENGTH and token not in QUESTION_STOP_WORDS
    ]
    return list(dict.fromkeys(terms))[:MAX_TERMS]


def question_prefers_tests(question: str) -> bool:
    """Return True when the question itself is about testing."""
    return TEST_VOCABULARY.search(question) is not None
