"""Denylists, extraction caps and limit policy for untrusted archives."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

MAX_ARCHIVE_FILES: Final[int] = 500
MAX_ENTRY_BYTES: Final[int] = 150_000
BINARY_SNIFF_BYTES: Final[int] = 2000

BLOCKED_EXTENSIONS: Final[tuple[str, ...]] = (
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".webp",
    ".svg",
    ".ico",
    ".pdf",
    ".zip",
    ".gz",
    ".tar",
    ".woff",
    ".woff2",
    ".ttf",
    ".exe",
    ".dll",
    ".mp4",
    ".mp3",
    ".lock",
)
BLOCKED_DIR_NAMES: Final[frozenset[str]] = frozenset(
    {".git", "node_modules", ".next", "dist", "build", "target", "coverage", "vendor"}
)


@dataclass(slots=True, frozen=True)
class PolicyBlockedError(Exception):
    """Raised when a request exceeds a configured limit."""

    reason: str
    hint: str


def is_probably_text(path: str) -> bool:
    """Return False for denylisted extensions or build/VCS/dependency directories."""
    lowered = path.lower()
    if lowered.endswith(BLOCKED_EXTENSIONS):
        return False
    return not any(part in BLOCKED_DIR_NAMES for part in lowered.split("/"))


def looks_binary(data: bytes) -> bool:
    """Sniff the head of a buffer for NUL bytes."""
    return b"\x00" in data[:BINARY_SNIFF_BYTES]
