"""Built-in tool handlers: argument validation in front of server callbacks."""

from __future__ import annotations

import base64
import binascii
from collections.abc import Callable
from pathlib import Path

from repo_qa.config import ServiceLimits
from repo_qa.security import (
    InvalidInputError,
    PolicyBlockedError,
    validate_archive_upload,
    validate_github_url,
    validate_question,
)
from repo_qa.tools.registry import ToolDispatchError, ToolHandler, ToolRegistry

_ARCHIVE_SOURCE_KEYS = ("github_url", "archive_path", "archive_base64")
DEFAULT_AUDIT_ENTRIES = 50
MAX_AUDIT_ENTRIES = 200


def register_builtin_tools(
    registry: ToolRegistry,
    limits: ServiceLimits,
    read_status: Callable[[bool], dict[str, object]],
    ingest_github: Callable[[str], dict[str, object]],
    ingest_archive: Callable[[str, bytes], dict[str, object]],
    retrieve_snippets: Callable[[str, int], dict[str, object]],
    ask_question: Callable[[str, int], dict[str, object]],
    read_history: Callable[[], dict[str, object]],
    clear_history: Callable[[], dict[str, object]],
    read_audit_entries: Callable[[str | None, int], list[dict[str, object]]],
) -> None:
    """Register the tool set in its listing order."""
    registry.register(
        "repo.status",
        _status_handler(read_status),
        "Loaded repository, history, store and LLM status.",
    )
    registry.register(
        "repo.ingest",
        _ingest_handler(limits, ingest_github, ingest_archive),
        "Ingest a GitHub repository URL or a .zip archive.",
    )
    registry.register(
        "repo.retrieve",
        _question_handler(limits, retrieve_snippets),
        "Rank evidence snippets for a question without composing an answer.",
    )
    registry.register(
        "repo.ask",
        _question_handler(limits, ask_question),
        "Answer a question with cited snippets and record it in history.",
    )
    registry.register(
        "repo.history",
        _no_argument_handler(read_history),
        "List recent answers, newest first.",
    )
    registry.register(
        "repo.clear_history",
        _no_argument_handler(clear_history),
        "Delete all recorded answers.",
    )
    registry.register(
        "repo.audit_log",
        _audit_log_handler(read_audit_entries),
        "Read recent audit events.",
    )


def _status_handler(read_status: Callable[[bool], dict[str, object]]) -> ToolHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        check_llm = arguments.get("check_llm", False)
        if not isinstance(check_llm, bool):
            raise ToolDispatchError(
                code="INVALID_PARAMS",
                message="repo.status check_llm must be a boolean.",
            )
        return read_status(check_llm)

    return handler


def _ingest_handler(
    limits: ServiceLimits,
    ingest_github: Callable[[str], dict[str, object]],
    ingest_archive: Callable[[str, bytes], dict[str, object]],
) -> ToolHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        provided = [key for key in _ARCHIVE_SOURCE_KEYS if arguments.get(key)]
        if not provided:
            raise ToolDispatchError(
                code="INVALID_PARAMS",
                message="Provide either a public GitHub URL or a .zip archive.",
            )
        if len(provided) > 1:
            raise ToolDispatchError(
                code="INVALID_PARAMS",
                message="Provide either a GitHub URL or an archive, not both.",
            )
        source = provided[0]
        value = arguments[source]
        if not isinstance(value, str):
            raise ToolDispatchError(
                code="INVALID_PARAMS",
                message=f"repo.ingest {source} must be a string.",
            )

        if source == "github_url":
            return ingest_github(validate_github_url(value))
        if source == "archive_path":
            path = Path(value)
            if not path.is_file():
                raise InvalidInputError(message=f"Archive not found: {value}")
            validate_archive_upload(path.name, path.stat().st_size, limits.max_upload_bytes)
            return ingest_archive(path.name, path.read_bytes())

        name_value = arguments.get("archive_name", "upload.zip")
        if not isinstance(name_value, str) or not name_value:
            raise ToolDispatchError(
                code="INVALID_PARAMS",
                message="repo.ingest archive_name must be a non-empty string.",
            )
        # Decoded size is checked from the encoded length so oversize payloads are never decoded.
        decoded_size = len(value) * 3 // 4 - value[-2:].count("=")
        validate_archive_upload(name_value, decoded_size, limits.max_upload_bytes)
        try:
            archive_bytes = base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as error:
            raise InvalidInputError(message="archive_base64 is not valid base64.") from error
        return ingest_archive(name_value, archive_bytes)

    return handler


def _question_handler(
    limits: ServiceLimits,
    run: Callable[[str, int], dict[str, object]],
) -> ToolHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        question_value = arguments.get("question")
        if not isinstance(question_value, str):
            raise ToolDispatchError(
                code="INVALID_PARAMS",
                message="question must be a string.",
            )
        question = validate_question(question_value, limits.max_question_chars)

        top_k_value = arguments.get("top_k", limits.default_top_k)
        if isinstance(top_k_value, bool) or not isinstance(top_k_value, int):
            raise ToolDispatchError(code="INVALID_PARAMS", message="top_k must be an integer.")
        if top_k_value < 1:
            raise ToolDispatchError(code="INVALID_PARAMS", message="top_k must be >= 1.")
        if top_k_value > limits.max_top_k:
            raise PolicyBlockedError(
                reason="Requested top_k exceeds max_top_k limit.",
                hint="Reduce top_k or adjust limits.max_top_k.",
            )
        return run(question, top_k_value)

    return handler


def _no_argument_handler(run: Callable[[], dict[str, object]]) -> ToolHandler:
    def handler(_: dict[str, object]) -> dict[str, object]:
        return run()

    return handler


def _audit_log_handler(
    read_audit_entries: Callable[[str | None, int], list[dict[str, object]]],
) -> ToolHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        since_value = arguments.get("since")
        limit_value = arguments.get("limit", DEFAULT_AUDIT_ENTRIES)

        since: str | None = since_value if isinstance(since_value, str) else None
        limit = limit_value if isinstance(limit_value, int) else DEFAULT_AUDIT_ENTRIES
        limit = max(1, min(limit, MAX_AUDIT_ENTRIES))
        return {"entries": read_audit_entries(since, limit)}

    return handler
