"""Path normalization helpers for archive entry names."""

from __future__ import annotations


def _normalize_separators(candidate: str) -> str:
    """Use forward slashes and drop leading slashes."""
    return candidate.replace("\\", "/").lstrip("/")


def sanitize_entry_path(raw_path: str) -> str:
    """Return a safe repository-relative path, or "" when the entry must be skipped."""
    normalized = _normalize_separators(raw_path)
    if not normalized:
        return ""
    if ":" in normalized:
        return ""
    if normalized.startswith("/"):
        return ""
    if any(part == ".." for part in normalized.split("/")):
        return ""
    return normalized


def strip_archive_root(path: str) -> str:
    """Drop the synthetic top-level folder that forge archives wrap around a repo."""
    stripped = sanitize_entry_path("/".join(path.split("/")[1:]))
    return stripped or path
