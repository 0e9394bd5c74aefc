"""Typed models for ingested repository content."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class RepoFile:
    """One sanitized text file from an ingested archive."""

    path: str
    content: str


@dataclass(slots=True, frozen=True)
class ExtractionProfile:
    """Deterministic counters for one extraction pass."""

    entries_seen: int
    skipped_directories: int
    skipped_oversize: int
    skipped_unsafe_path: int
    skipped_not_text: int
    skipped_binary: int
    skipped_empty: int
    skipped_unreadable: int
    accepted: int
    file_cap_reached: bool


@dataclass(slots=True, frozen=True)
class GitHubRepoRef:
    """Owner/repo coordinates parsed from a GitHub URL."""

    owner: str
    repo: str
    branch: str | None = None


@dataclass(slots=True, frozen=True)
class GitHubArchive:
    """Downloaded archive bytes together with the branch that served them."""

    owner: str
    repo: str
    branch: str
    url: str
    archive_bytes: bytes

    @property
    def ref(self) -> GitHubRepoRef:
        """Return the resolved ref, with the branch that actually downloaded."""
        return GitHubRepoRef(owner=self.owner, repo=self.repo, branch=self.branch)

    @property
    def label(self) -> str:
        """Return the owner/repo@branch label shown to users."""
        return f"{self.owner}/{self.repo}@{self.branch}"
