"""Locate the densest line of term hits and cut a fixed evidence window around it."""

from __future__ import annotations

import re
from typing import Final

from repo_qa.retrieval.models import LineWindow

MAX_SCAN_LINES: Final[int] = 1200
LINES_BEFORE: Final[int] = 7
LINES_AFTER: Final[int] = 11

LINE_BREAK: Final[re.Pattern[str]] = re.compile(r"\r\n|\r|\n")


def split_lines(content: str) -> list[str]:
    """Split on any line-ending style, keeping a trailing empty line if present."""
    return LINE_BREAK.split(content)


def best_line_index(lines: list[str], terms: list[str]) -> int:
    """Return the first scanned line with the strictly highest distinct-term count."""
    best_line = 0
    best_count = -1
    for index, line in enumerate(lines[:MAX_SCAN_LINES]):
        lowered = line.lower()
        count = sum(1 for term in terms if term in lowered)
        if count > best_count:
            best_count = count
            best_line = index
    return best_line


def locate_window(content: str, terms: list[str]) -> LineWindow:
    """Return the window spanning 7 lines before to 11 lines after the best line."""
    lines = split_lines(content)
    best_line = best_line_index(lines, terms)
    start = max(0, best_line - LINES_BEFORE)
    end = min(len(lines), best_line + LINES_AFTER + 1)
    return LineWindow(
        start_line=start + 1,
        end_line=end,
        code="\n".join(lines[start:end]),
    )
