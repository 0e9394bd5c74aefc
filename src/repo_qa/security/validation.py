"""Validation of user-supplied questions, URLs and archive uploads."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Final

from repo_qa.security.policy import PolicyBlockedError

DEFAULT_MAX_QUESTION_CHARS: Final[int] = 500
DEFAULT_MAX_UPLOAD_BYTES: Final[int] = 15 * 1024 * 1024

GITHUB_URL_PREFIX: Final[re.Pattern[str]] = re.compile(r"^https?://github\.com/", re.IGNORECASE)


@dataclass(slots=True, frozen=True)
class InvalidInputError(Exception):
    """Raised when a request argument is missing or malformed."""

    message: str
    code: str = "INVALID_PARAMS"


def validate_question(text: str, max_chars: int = DEFAULT_MAX_QUESTION_CHARS) -> str:
    """Return the stripped question or raise when empty or too long."""
    question = text.strip()
    if not question:
        raise InvalidInputError(message="Question is required.")
    if len(question) > max_chars:
        raise PolicyBlockedError(
            reason=f"Question too long. Max {max_chars} chars.",
            hint="Shorten the question.",
        )
    return question


def validate_github_url(text: str) -> str:
    """Return the stripped URL, "" when absent, or raise for non-GitHub URLs."""
    value = text.strip()
    if not value:
        return ""
    if not GITHUB_URL_PREFIX.match(value):
        raise InvalidInputError(message="Use a valid public GitHub URL.")
    return value


def validate_archive_upload(
    name: str,
    size: int,
    max_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
) -> None:
    """Raise when an uploaded archive is not a .zip or exceeds max_bytes."""
    if not name.lower().endswith(".zip"):
        raise InvalidInputError(message="Only .zip archives are supported.")
    if size > max_bytes:
        raise PolicyBlockedError(
            reason=f"Archive too large. Max {max_bytes // (1024 * 1024)}MB.",
            hint="Upload a smaller archive or raise limits.max_upload_bytes.",
        )
