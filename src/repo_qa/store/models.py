"""Persisted repository and question/answer records."""

from __future__ import annotations

from dataclasses import dataclass

from repo_qa.ingest.models import GitHubRepoRef, RepoFile
from repo_qa.retrieval.models import Snippet


@dataclass(slots=True, frozen=True)
class RepoState:
    """The currently ingested repository."""

    source_type: str
    source_label: str
    files: tuple[RepoFile, ...]
    ingested_at: str
    github: GitHubRepoRef | None = None


@dataclass(slots=True, frozen=True)
class QARecord:
    """One answered question with the evidence that supports it."""

    id: str
    created_at: str
    question: str
    answer: str
    repo_label: str
    snippets: tuple[Snippet, ...]


def repo_to_dict(repo: RepoState) -> dict[str, object]:
    github: dict[str, object] | None = None
    if repo.github is not None:
        github = {
            "owner": repo.github.owner,
            "repo": repo.github.repo,
            "branch": repo.github.branch,
        }
    return {
        "source_type": repo.source_type,
        "source_label": repo.source_label,
        "ingested_at": repo.ingested_at,
        "github": github,
        "files": [{"path": file.path, "content": file.content} for file in repo.files],
    }


def repo_from_dict(raw: object) -> RepoState | None:
    """Rebuild a RepoState, or None when the payload is malformed."""
    if not isinstance(raw, dict):
        return None
    source_type = raw.get("source_type")
    source_label = raw.get("source_label")
    ingested_at = raw.get("ingested_at")
    raw_files = raw.get("files")
    if not isinstance(source_type, str) or not isinstance(source_label, str):
        return None
    if not isinstance(ingested_at, str) or not isinstance(raw_files, list):
        return None
    files: list[RepoFile] = []
    for item in raw_files:
        if not isinstance(item, dict):
            continue
        path = item.get("path")
        content = item.get("content")
        if isinstance(path, str) and path and isinstance(content, str) and content:
            files.append(RepoFile(path=path, content=content))
    return RepoState(
        source_type=source_type,
        source_label=source_label,
        files=tuple(files),
        ingested_at=ingested_at,
        github=_github_from_dict(raw.get("github")),
    )


def _github_from_dict(raw: object) -> GitHubRepoRef | None:
    if not isinstance(raw, dict):
        return None
    owner = raw.get("owner")
    repo = raw.get("repo")
    branch = raw.get("branch")
    if not isinstance(owner, str) or not isinstance(repo, str):
        return None
    return GitHubRepoRef(
        owner=owner,
        repo=repo,
        branch=branch if isinstance(branch, str) else None,
    )


def snippet_to_dict(snippet: Snippet) -> dict[str, object]:
    return {
        "id": snippet.id,
        "path": snippet.path,
        "start_line": snippet.start_line,
        "end_line": snippet.end_line,
        "code": snippet.code,
        "score": snippet.score,
        "source_url": snippet.source_url,
    }


def qa_to_dict(record: QARecord) -> dict[str, object]:
    return {
        "id": record.id,
        "created_at": record.created_at,
        "question": record.question,
        "answer": record.answer,
        "repo_label": record.repo_label,
        "snippets": [snippet_to_dict(snippet) for snippet in record.snippets],
    }


def qa_from_dict(raw: object) -> QARecord | None:
    """Rebuild a QARecord; records missing required fields are dropped."""
    if not isinstance(raw, dict):
        return None
    record_id = raw.get("id")
    created_at = raw.get("created_at")
    question = raw.get("question")
    answer = raw.get("answer")
    raw_snippets = raw.get("snippets")
    if not record_id or not created_at or not question or not answer:
        return None
    if not isinstance(raw_snippets, list):
        return None
    repo_label = raw.get("repo_label")
    return QARecord(
        id=str(record_id),
        created_at=str(created_at),
        question=str(question),
        answer=str(answer),
        repo_label=str(repo_label or "unknown-source"),
        snippets=tuple(
            _snippet_from_dict(item) for item in raw_snippets if isinstance(item, dict)
        ),
    )


def _snippet_from_dict(raw: dict[str, object]) -> Snippet:
    source_url = raw.get("source_url")
    return Snippet(
        id=str(raw.get("id")),
        path=str(raw.get("path")),
        start_line=_as_int(raw.get("start_line")),
        end_line=_as_int(raw.get("end_line")),
        code=str(raw.get("code") or ""),
        score=_as_float(raw.get("score")),
        source_url=str(source_url) if source_url else None,
    )


def _as_int(value: object) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    return 0


def _as_float(value: object) -> float:
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    return 0.0
