from __future__ import annotations

from pathlib import Path

from repo_qa.logging import AuditEvent, JsonlAuditLogger, sanitize_arguments


def test_user_text_is_logged_by_length_only() -> None:
    sanitized = sanitize_arguments(
        {
            "question": "where is the secret token?",
            "github_url": "https://github.com/octo/hello",
            "archive_base64": "UEsDBA==",
            "archive_name": "demo.zip",
            "top_k": 4,
        }
    )

    assert sanitized == {
        "archive_base64_length": 8,
        "archive_base64_present": True,
        "archive_name": "demo.zip",
        "github_url_length": 29,
        "github_url_present": True,
        "question_length": 26,
        "question_present": True,
        "top_k": 4,
    }


def test_empty_sensitive_value_is_not_present() -> None:
    assert sanitize_arguments({"github_url": ""}) == {
        "github_url_length": 0,
        "github_url_present": False,
    }


def test_non_scalar_values_are_logged_by_type_only() -> None:
    sanitized = sanitize_arguments(
        {"question": ["where", "is", "the", "token?"], "arguments": {"secret": "value"}}
    )

    assert sanitized == {"arguments_type": "dict", "question_type": "list"}
    assert "secret" not in str(sanitized)


def test_scalars_are_logged_verbatim() -> None:
    assert sanitize_arguments({"check_llm": True, "limit": 20, "since": None}) == {
        "check_llm": True,
        "limit": 20,
        "since": None,
    }


def _event(timestamp: str, request_id: str) -> AuditEvent:
    return AuditEvent(
        timestamp=timestamp,
        request_id=request_id,
        tool="repo.status",
        ok=True,
        blocked=False,
        error_code=None,
        metadata={},
    )


def test_reader_filters_and_limits(tmp_path: Path) -> None:
    logger = JsonlAuditLogger(tmp_path / "logs" / "audit.jsonl")
    logger.append(_event("2026-01-01T00:00:00.000Z", "req-1"))
    logger.append(_event("2026-01-02T00:00:00.000Z", "req-2"))
    logger.append(_event("2026-01-03T00:00:00.000Z", "req-3"))

    assert [entry["request_id"] for entry in logger.read(limit=2)] == ["req-2", "req-3"]
    since = logger.read(since="2026-01-02T00:00:00.000Z")
    assert [entry["request_id"] for entry in since] == ["req-2", "req-3"]
    assert logger.read(limit=0) == []


def test_reader_skips_corrupt_lines(tmp_path: Path) -> None:
    path = tmp_path / "audit.jsonl"
    logger = JsonlAuditLogger(path)
    logger.append(_event("2026-01-01T00:00:00.000Z", "req-1"))
    with path.open("a", encoding="utf-8") as handle:
        handle.write("{truncated\n\n[1]\n")

    assert [entry["request_id"] for entry in logger.read()] == ["req-1"]
