"""STDIO JSON-line server entrypoint."""

from __future__ import annotations

import argparse
import json
import os
import sys
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from typing import TextIO

from repo_qa.answer import ChatCompletionClient, LlmError, LlmSettings
from repo_qa.answer.compose import CompletionClient, compose_answer, select_evidence
from repo_qa.config import CliOverrides, ServerConfig, load_effective_config
from repo_qa.ingest import (
    ArchiveError,
    ArchiveFetchError,
    GitHubArchive,
    build_source_url,
    download_github_archive,
    extract_files,
)
from repo_qa.logging import AuditEvent, JsonlAuditLogger, sanitize_arguments, utc_timestamp
from repo_qa.retrieval import Snippet, retrieve
from repo_qa.security import InvalidInputError, PolicyBlockedError
from repo_qa.store import QARecord, RepoState, StateStore, qa_to_dict, snippet_to_dict
from repo_qa.tools.builtin import register_builtin_tools
from repo_qa.tools.registry import ToolDispatchError, ToolRegistry

ArchiveFetcher = Callable[..., GitHubArchive]


@dataclass(slots=True, frozen=True)
class Request:
    """Normalized incoming request."""

    request_id: str
    method: str
    params: dict[str, object]


def build_arg_parser() -> argparse.ArgumentParser:
    """Build argument parser for server startup configuration."""
    parser = argparse.ArgumentParser(prog="repo-qa")
    parser.add_argument("--base-dir", required=False, default=".")
    parser.add_argument("--data-dir", required=False, default=None)
    parser.add_argument("--default-top-k", type=int, required=False, default=None)
    parser.add_argument("--max-top-k", type=int, required=False, default=None)
    parser.add_argument("--max-question-chars", type=int, required=False, default=None)
    parser.add_argument("--max-upload-bytes", type=int, required=False, default=None)
    parser.add_argument("--history-size", type=int, required=False, default=None)
    parser.add_argument("--max-total-bytes-per-response", type=int, required=False, default=None)
    return parser


class StdioServer:
    """Deterministic STDIO server routing JSON-line requests to tools."""

    def __init__(
        self,
        config: ServerConfig,
        llm_client: CompletionClient,
        fetch_archive: ArchiveFetcher = download_github_archive,
    ) -> None:
        self._config = config
        self._limits = config.limits
        self._data_dir = config.data_dir
        self._llm_client = llm_client
        self._fetch_archive = fetch_archive
        self._audit_logger = JsonlAuditLogger(path=self._data_dir / "audit.jsonl")
        self._store = StateStore(
            path=self._data_dir / "state.json",
            history_size=self._limits.history_size,
        )
        self._registry = ToolRegistry()
        register_builtin_tools(
            self._registry,
            limits=self._limits,
            read_status=self._status,
            ingest_github=self._ingest_github,
            ingest_archive=self._ingest_archive,
            retrieve_snippets=self._retrieve,
            ask_question=self._ask,
            read_history=self._history,
            clear_history=self._clear_history,
            read_audit_entries=self._audit_logger.read,
        )
        self._fallback_request_counter = 0

    def serve(self, in_stream: TextIO, out_stream: TextIO) -> None:
        """Process JSON-line requests from in_stream and write JSON-line responses."""
        for raw_line in in_stream:
            line = raw_line.strip()
            if not line:
                continue
            response = self.handle_json_line(line)
            out_stream.write(f"{json.dumps(response, sort_keys=True)}\n")
            out_stream.flush()

    def handle_json_line(self, raw_line: str) -> dict[str, object]:
        """Handle a single JSON-line request."""
        try:
            payload = json.loads(raw_line)
        except json.JSONDecodeError:
            request_id = self.next_request_id()
            response = self.error_response(
                request_id=request_id,
                code="INVALID_JSON",
                message="Request must be valid JSON.",
            )
            self.log_request(
                request_id=request_id,
                tool_name="invalid_json",
                arguments={"raw_line_length": len(raw_line)},
                response=response,
            )
            return response
        return self.handle_payload(payload)

    def handle_payload(self, payload: object) -> dict[str, object]:
        """Validate and dispatch a parsed payload."""
        parsed = self.parse_request(payload)
        if isinstance(parsed, dict):
            request_id_value = parsed.get("request_id")
            request_id = (
                request_id_value if isinstance(request_id_value, str) else self.next_request_id()
            )
            self.log_request(
                request_id=request_id,
                tool_name="invalid_request",
                arguments={},
                response=parsed,
            )
            return parsed

        request = parsed
        if request.method == "tools/call":
            tool_name_value = request.params.get("name")
            arguments_value = request.params.get("arguments", {})
            if not isinstance(tool_name_value, str) or not tool_name_value:
                return self.error_response(
                    request_id=request.request_id,
                    code="INVALID_PARAMS",
                    message="tools/call params.name must be a non-empty string.",
                )
            if not isinstance(arguments_value, dict):
                return self.error_response(
                    request_id=request.request_id,
                    code="INVALID_PARAMS",
                    message="tools/call params.arguments must be an object.",
                )
            tool_name = tool_name_value
            arguments = arguments_value
        else:
            tool_name = request.method
            arguments = request.params

        response = self._dispatch(request.request_id, tool_name, arguments)
        self.log_request(
            request_id=request.request_id,
            tool_name=tool_name,
            arguments=arguments,
            response=response,
        )
        return response

    def _dispatch(
        self,
        request_id: str,
        tool_name: str,
        arguments: dict[str, object],
    ) -> dict[str, object]:
        try:
            result = self._registry.dispatch(name=tool_name, arguments=arguments)
        except PolicyBlockedError as error:
            return self.blocked_response(request_id, reason=error.reason, hint=error.hint)
        except InvalidInputError as error:
            return self.error_response(request_id, code=error.code, message=error.message)
        except ToolDispatchError as error:
            return self.error_response(request_id, code=error.code, message=error.message)
        except ArchiveError as error:
            return self.error_response(request_id, code=error.code, message=error.message)
        except ArchiveFetchError as error:
            return self.error_response(request_id, code=error.code, message=error.message)
        except LlmError as error:
            return self.error_response(request_id, code=error.code, message=error.message)
        except Exception:
            return self.error_response(
                request_id,
                code="INTERNAL_ERROR",
                message="Unhandled server error while executing tool.",
            )
        response = self.success_response(request_id=request_id, result=result)
        return self.enforce_response_size_limit(request_id=request_id, response=response)

    def parse_request(self, payload: object) -> Request | dict[str, object]:
        """Validate request payload and return normalized Request."""
        if not isinstance(payload, dict):
            return self.error_response(
                request_id=self.next_request_id(),
                code="INVALID_REQUEST",
                message="Request must be an object.",
            )

        request_id = self.extract_request_id(payload.get("id"))
        method = payload.get("method")
        params = payload.get("params", {})

        if not isinstance(method, str) or not method:
            return self.error_response(
                request_id=request_id,
                code="INVALID_REQUEST",
                message="Request method must be a non-empty string.",
            )
        if not isinstance(params, dict):
            return self.error_response(
                request_id=request_id,
                code="INVALID_PARAMS",
                message="Request params must be an object.",
            )

        return Request(request_id=request_id, method=method, params=params)

    def extract_request_id(self, request_id: object) -> str:
        """Extract request ID from payload or synthesize a deterministic fallback."""
        if isinstance(request_id, str) and request_id:
            return request_id
        if isinstance(request_id, int):
            return str(request_id)
        return self.next_request_id()

    def next_request_id(self) -> str:
        self._fallback_request_counter += 1
        return f"req-{self._fallback_request_counter:06d}"

    @staticmethod
    def success_response(request_id: str, result: dict[str, object]) -> dict[str, object]:
        return {
            "request_id": request_id,
            "ok": True,
            "result": result,
            "warnings": [],
            "blocked": False,
        }

    @staticmethod
    def error_response(request_id: str, code: str, message: str) -> dict[str, object]:
        return {
            "request_id": request_id,
            "ok": False,
            "result": {},
            "warnings": [],
            "blocked": False,
            "error": {"code": code, "message": message},
        }

    @staticmethod
    def blocked_response(request_id: str, reason: str, hint: str) -> dict[str, object]:
        return {
            "request_id": request_id,
            "ok": False,
            "result": {"reason": reason, "hint": hint},
            "warnings": [],
            "blocked": True,
            "error": {"code": "POLICY_BLOCKED", "message": reason},
        }

    def enforce_response_size_limit(
        self,
        request_id: str,
        response: dict[str, object],
    ) -> dict[str, object]:
        """Block responses that exceed max_total_bytes_per_response."""
        response_bytes = len(json.dumps(response, sort_keys=True).encode("utf-8"))
        if response_bytes <= self._limits.max_total_bytes_per_response:
            return response
        return self.blocked_response(
            request_id=request_id,
            reason="Response exceeds max_total_bytes_per_response limit.",
            hint="Request fewer snippets with a lower top_k.",
        )

    def log_request(
        self,
        request_id: str,
        tool_name: str,
        arguments: dict[str, object],
        response: dict[str, object],
    ) -> None:
        """Log one sanitized request event."""
        error_payload = response.get("error")
        error_code: str | None = None
        if isinstance(error_payload, dict):
            code_value = error_payload.get("code")
            if isinstance(code_value, str):
                error_code = code_value
        event = AuditEvent(
            timestamp=utc_timestamp(),
            request_id=request_id,
            tool=tool_name,
            ok=bool(response.get("ok", False)),
            blocked=bool(response.get("blocked", False)),
            error_code=error_code,
            metadata=sanitize_arguments(arguments),
        )
        self._audit_logger.append(event)

    def _status(self, check_llm: bool) -> dict[str, object]:
        repo = self._store.get_repo()
        repo_summary: dict[str, object] | None = None
        if repo is not None:
            repo_summary = {
                "source_type": repo.source_type,
                "source_label": repo.source_label,
                "file_count": len(repo.files),
                "ingested_at": repo.ingested_at,
            }
        settings = self._llm_client.settings
        if check_llm:
            llm_status = self._llm_client.health_check()
        elif settings.configured:
            llm_status = {
                "ok": True,
                "detail": f"configured ({settings.provider}: {settings.model})",
            }
        else:
            llm_status = {"ok": False, "detail": settings.missing_message()}
        return {
            "repo": repo_summary,
            "history_count": len(self._store.list_qas()),
            "database": self._store.health(),
            "llm": llm_status,
            "tools": self._registry.describe(),
            "effective_config": self._config.to_public_dict(),
            "checked_at": utc_timestamp(),
        }

    def _ingest_github(self, url: str) -> dict[str, object]:
        downloaded = self._fetch_archive(
            url,
            timeout_sec=self._config.timeouts.fetch_timeout_sec,
            max_bytes=self._limits.max_upload_bytes,
        )
        profile: dict[str, object] = {}
        files = extract_files(downloaded.archive_bytes, profile=profile)
        repo = RepoState(
            source_type="github",
            source_label=downloaded.label,
            files=tuple(files),
            ingested_at=utc_timestamp(),
            github=downloaded.ref,
        )
        self._store.set_repo(repo)
        return _ingest_result(repo, profile)

    def _ingest_archive(self, name: str, archive_bytes: bytes) -> dict[str, object]:
        profile: dict[str, object] = {}
        files = extract_files(archive_bytes, profile=profile)
        repo = RepoState(
            source_type="zip",
            source_label=name,
            files=tuple(files),
            ingested_at=utc_timestamp(),
        )
        self._store.set_repo(repo)
        return _ingest_result(repo, profile)

    def _require_repo(self) -> RepoState:
        repo = self._store.get_repo()
        if repo is None:
            raise ToolDispatchError(
                code="NO_REPO",
                message="No codebase loaded. Ingest a zip archive or GitHub URL first.",
            )
        return repo

    def _decorated_snippets(self, repo: RepoState, question: str, top_k: int) -> list[Snippet]:
        return [
            replace(snippet, source_url=build_source_url(repo.github, snippet.path))
            for snippet in retrieve(list(repo.files), question, top_k)
        ]

    def _retrieve(self, question: str, top_k: int) -> dict[str, object]:
        repo = self._require_repo()
        snippets = self._decorated_snippets(repo, question, top_k)
        return {
            "repo_label": repo.source_label,
            "snippets": [snippet_to_dict(snippet) for snippet in snippets],
        }

    def _ask(self, question: str, top_k: int) -> dict[str, object]:
        repo = self._require_repo()
        snippets = self._decorated_snippets(repo, question, top_k)
        if not snippets:
            raise ToolDispatchError(
                code="NO_EVIDENCE",
                message="Could not retrieve relevant snippets.",
            )
        draft = compose_answer(question, snippets, self._llm_client)
        record = QARecord(
            id=str(uuid.uuid4()),
            created_at=utc_timestamp(),
            question=question,
            answer=draft.answer,
            repo_label=repo.source_label,
            snippets=tuple(select_evidence(snippets, draft)),
        )
        self._store.save_qa(record)
        return qa_to_dict(record)

    def _history(self) -> dict[str, object]:
        records = self._store.list_qas()
        return {"items": [qa_to_dict(record) for record in records], "count": len(records)}

    def _clear_history(self) -> dict[str, object]:
        self._store.clear_qas()
        return {"cleared": True}


def _ingest_result(repo: RepoState, profile: dict[str, object]) -> dict[str, object]:
    return {
        "source_type": repo.source_type,
        "source_label": repo.source_label,
        "file_count": len(repo.files),
        "extraction_profile": profile,
    }


def create_server(
    base_dir: str = ".",
    cli_overrides: CliOverrides | None = None,
    environ: Mapping[str, str] | None = None,
    llm_client: CompletionClient | None = None,
    fetch_archive: ArchiveFetcher = download_github_archive,
) -> StdioServer:
    """Create a server from merged config; collaborators may be injected for tests."""
    config = load_effective_config(base_dir=Path(base_dir), overrides=cli_overrides)
    if llm_client is None:
        settings = LlmSettings.from_env(os.environ if environ is None else environ)
        llm_client = ChatCompletionClient(settings, timeout_sec=config.timeouts.llm_timeout_sec)
    return StdioServer(config=config, llm_client=llm_client, fetch_archive=fetch_archive)


def main(argv: list[str] | None = None) -> int:
    """Entrypoint for the repo-qa server process."""
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    overrides = CliOverrides(
        data_dir=Path(args.data_dir).resolve() if args.data_dir is not None else None,
        default_top_k=args.default_top_k,
        max_top_k=args.max_top_k,
        max_question_chars=args.max_question_chars,
        max_upload_bytes=args.max_upload_bytes,
        history_size=args.history_size,
        max_total_bytes_per_response=args.max_total_bytes_per_response,
    )
    server = create_server(base_dir=args.base_dir, cli_overrides=overrides)
    server.serve(in_stream=sys.stdin, out_stream=sys.stdout)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
