"""Structured JSONL audit log of tool requests."""

from __future__ import annotations

import json
from collections import deque
from collections.abc import Iterator
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from pathlib import Path

# Only archive names and timestamps are echoed; other strings may carry user text or secrets.
_VERBATIM_STRING_KEYS = frozenset({"archive_name", "since"})


@dataclass(slots=True, frozen=True)
class AuditEvent:
    """Sanitized record of one tool request."""

    timestamp: str
    request_id: str
    tool: str
    ok: bool
    blocked: bool
    error_code: str | None
    metadata: dict[str, object]


def utc_timestamp() -> str:
    """Return an ISO-8601 UTC timestamp with millisecond precision."""
    return datetime.now(tz=UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def sanitize_arguments(arguments: dict[str, object]) -> dict[str, object]:
    """Reduce tool arguments to loggable metadata.

    Numbers, booleans and None are kept as-is. Questions, URLs, paths and
    base64 payloads are reduced to ``<key>_present`` / ``<key>_length``. Any
    other value is recorded only by type name.
    """
    sanitized: dict[str, object] = {}
    for key in sorted(arguments):
        sanitized.update(_describe_value(key, arguments[key]))
    return sanitized


def _describe_value(key: str, value: object) -> dict[str, object]:
    if value is None or isinstance(value, (bool, int, float)):
        return {key: value}
    if isinstance(value, str):
        if key in _VERBATIM_STRING_KEYS:
            return {key: value}
        return {f"{key}_present": bool(value), f"{key}_length": len(value)}
    return {f"{key}_type": type(value).__name__}


class JsonlAuditLogger:
    """Append-only JSONL audit log with a bounded tail reader."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    def append(self, event: AuditEvent) -> None:
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(asdict(event), sort_keys=True) + "\n")

    def read(self, since: str | None = None, limit: int = 50) -> list[dict[str, object]]:
        """Return the last ``limit`` events whose timestamp is at or after ``since``."""
        if limit < 1 or not self._path.exists():
            return []
        tail: deque[dict[str, object]] = deque(maxlen=limit)
        for record in self._records():
            if since is not None:
                timestamp = record.get("timestamp")
                if not isinstance(timestamp, str) or timestamp < since:
                    continue
            tail.append(record)
        return list(tail)

    def _records(self) -> Iterator[dict[str, object]]:
        """Yield decoded events, skipping blank, truncated or non-object lines."""
        with self._path.open("r", encoding="utf-8", errors="replace") as handle:
            for line in handle:
                stripped = line.strip()
                if not stripped:
                    continue
                try:
                    record = json.loads(stripped)
                except json.JSONDecodeError:
                    continue
                if isinstance(record, dict):
                    yield record
