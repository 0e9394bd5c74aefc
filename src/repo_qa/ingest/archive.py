"""Bounded, deterministic extraction of text files from zip archives."""

from __future__ import annotations

import io
import zipfile
import zlib
from collections.abc import Callable
from dataclasses import asdict, dataclass

from repo_qa.ingest.models import ExtractionProfile, RepoFile
from repo_qa.security.paths import sanitize_entry_path, strip_archive_root
from repo_qa.security.policy import (
    MAX_ARCHIVE_FILES,
    MAX_ENTRY_BYTES,
    is_probably_text,
    looks_binary,
)


@dataclass(slots=True, frozen=True)
class ArchiveError(Exception):
    """Raised when an archive cannot be turned into a file set."""

    code: str
    message: str


class EmptyArchiveError(ArchiveError):
    """Raised when no entry of an archive survives filtering."""

    def __init__(self) -> None:
        super().__init__(
            code="EMPTY_ARCHIVE",
            message="No readable text files found in the archive.",
        )


@dataclass(slots=True, frozen=True)
class EntryCandidate:
    """Archive entry under evaluation; data is None until the body is read."""

    path: str
    size: int
    data: bytes | None = None


EntryPredicate = Callable[[EntryCandidate], bool]


def declared_size_within_cap(entry: EntryCandidate) -> bool:
    """Accept entries whose declared uncompressed size fits the per-file cap."""
    return entry.size <= MAX_ENTRY_BYTES


def path_is_safe(entry: EntryCandidate) -> bool:
    """Accept entries whose name survived sanitization."""
    return bool(entry.path)


def path_is_probably_text(entry: EntryCandidate) -> bool:
    """Accept entries whose logical path passes the extension/directory denylists."""
    return is_probably_text(entry.path)


def body_within_cap(entry: EntryCandidate) -> bool:
    """Accept bodies whose actual decompressed size fits the per-file cap."""
    return entry.data is not None and len(entry.data) <= MAX_ENTRY_BYTES


def body_not_empty(entry: EntryCandidate) -> bool:
    return bool(entry.data)


def body_not_binary(entry: EntryCandidate) -> bool:
    return entry.data is not None and not looks_binary(entry.data)


# Header predicates run before the entry body is decompressed.
HEADER_PREDICATES: tuple[tuple[str, EntryPredicate], ...] = (
    ("oversize", declared_size_within_cap),
    ("unsafe_path", path_is_safe),
    ("not_text", path_is_probably_text),
)
BODY_PREDICATES: tuple[tuple[str, EntryPredicate], ...] = (
    ("oversize", body_within_cap),
    ("empty", body_not_empty),
    ("binary", body_not_binary),
)

# Encrypted, corrupt or unsupported entries are skipped, never raised.
_ENTRY_READ_ERRORS = (
    zipfile.BadZipFile,
    RuntimeError,
    EOFError,
    zlib.error,
)


def first_rejection(
    entry: EntryCandidate,
    predicates: tuple[tuple[str, EntryPredicate], ...],
) -> str | None:
    """Return the reason of the first predicate that rejects the entry, if any."""
    for reason, predicate in predicates:
        if not predicate(entry):
            return reason
    return None


def logical_entry_path(raw_name: str) -> str:
    """Map a raw archive entry name to its repository-relative path, or ""."""
    full_path = sanitize_entry_path(raw_name)
    if not full_path:
        return ""
    return strip_archive_root(full_path)


def extract_files(
    archive_bytes: bytes,
    profile: dict[str, object] | None = None,
) -> list[RepoFile]:
    """Extract sanitized text files from a zip archive, bounded by fixed caps."""
    try:
        archive = zipfile.ZipFile(io.BytesIO(archive_bytes))
    except zipfile.BadZipFile as error:
        raise ArchiveError(
            code="INVALID_ARCHIVE",
            message="Archive is not a readable zip file.",
        ) from error

    skipped = {
        "directory": 0,
        "oversize": 0,
        "unsafe_path": 0,
        "not_text": 0,
        "binary": 0,
        "empty": 0,
        "unreadable": 0,
    }
    entries_seen = 0
    file_cap_reached = False
    files: list[RepoFile] = []
    with archive:
        for info in archive.infolist():
            if len(files) >= MAX_ARCHIVE_FILES:
                file_cap_reached = True
                break
            entries_seen += 1
            if info.is_dir():
                skipped["directory"] += 1
                continue
            path = logical_entry_path(info.filename)
            header = EntryCandidate(path=path, size=info.file_size)
            rejection = first_rejection(header, HEADER_PREDICATES)
            if rejection is not None:
                skipped[rejection] += 1
                continue
            try:
                data = _read_bounded(archive, info)
            except _ENTRY_READ_ERRORS:
                skipped["unreadable"] += 1
                continue
            rejection = first_rejection(
                EntryCandidate(path=path, size=info.file_size, data=data),
                BODY_PREDICATES,
            )
            if rejection is not None:
                skipped[rejection] += 1
                continue
            text = data.decode("utf-8", errors="replace").strip()
            if not text:
                skipped["empty"] += 1
                continue
            files.append(RepoFile(path=path, content=text))

    if profile is not None:
        payload = ExtractionProfile(
            entries_seen=entries_seen,
            skipped_directories=skipped["directory"],
            skipped_oversize=skipped["oversize"],
            skipped_unsafe_path=skipped["unsafe_path"],
            skipped_not_text=skipped["not_text"],
            skipped_binary=skipped["binary"],
            skipped_empty=skipped["empty"],
            skipped_unreadable=skipped["unreadable"],
            accepted=len(files),
            file_cap_reached=file_cap_reached,
        )
        profile.update(asdict(payload))
    if not files:
        raise EmptyArchiveError()
    return files


def _read_bounded(archive: zipfile.ZipFile, info: zipfile.ZipInfo) -> bytes:
    """Read at most cap + 1 bytes so a lying header cannot force a large inflate."""
    with archive.open(info) as handle:
        return handle.read(MAX_ENTRY_BYTES + 1)
