"""JSON file store for the current repository and recent answers."""

from __future__ import annotations

import json
import threading
from pathlib import Path

from repo_qa.store.models import (
    QARecord,
    RepoState,
    qa_from_dict,
    qa_to_dict,
    repo_from_dict,
    repo_to_dict,
)

DEFAULT_HISTORY_SIZE = 10


class StateStore:
    """Single-file state with serialized, atomic writes."""

    def __init__(self, path: Path, history_size: int = DEFAULT_HISTORY_SIZE) -> None:
        self._path = path
        self._history_size = history_size
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def get_repo(self) -> RepoState | None:
        repo, _ = self._read()
        return repo

    def set_repo(self, repo: RepoState) -> None:
        """Replace the ingested repository; history is kept."""
        with self._lock:
            _, qas = self._read()
            self._write(repo, qas)

    def list_qas(self) -> list[QARecord]:
        """Return history, newest first."""
        _, qas = self._read()
        return qas

    def save_qa(self, record: QARecord) -> None:
        with self._lock:
            repo, qas = self._read()
            self._write(repo, [record, *qas])

    def clear_qas(self) -> None:
        with self._lock:
            repo, _ = self._read()
            self._write(repo, [])

    def health(self) -> dict[str, object]:
        """Report whether the state file can be created and read."""
        try:
            self._ensure_file()
            self._read()
        except OSError as error:
            return {"ok": False, "detail": str(error)}
        return {"ok": True, "detail": f"state.json reachable ({self._path})"}

    def _read(self) -> tuple[RepoState | None, list[QARecord]]:
        if not self._path.exists():
            return None, []
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            return None, []
        if not isinstance(payload, dict):
            return None, []
        repo = repo_from_dict(payload.get("repo"))
        raw_qas = payload.get("qas")
        qas: list[QARecord] = []
        if isinstance(raw_qas, list):
            for item in raw_qas:
                record = qa_from_dict(item)
                if record is not None:
                    qas.append(record)
        return repo, qas[: self._history_size]

    def _write(self, repo: RepoState | None, qas: list[QARecord]) -> None:
        payload = {
            "repo": repo_to_dict(repo) if repo is not None else None,
            "qas": [qa_to_dict(record) for record in qas[: self._history_size]],
        }
        self._atomic_write_json(self._path, payload)

    def _ensure_file(self) -> None:
        if self._path.exists():
            return
        self._atomic_write_json(self._path, {"repo": None, "qas": []})

    @staticmethod
    def _atomic_write_json(path: Path, payload: dict[str, object]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(path.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2, sort_keys=True)
            handle.write("\n")
        tmp.replace(path)
