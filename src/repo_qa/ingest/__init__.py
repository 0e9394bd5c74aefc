"""Archive ingestion: extraction, GitHub download and ingestion models."""

from .archive import (
    ArchiveError,
    EmptyArchiveError,
    EntryCandidate,
    extract_files,
    logical_entry_path,
)
from .github import (
    ArchiveFetchError,
    archive_download_urls,
    build_source_url,
    download_github_archive,
    parse_github_url,
)
from .models import ExtractionProfile, GitHubArchive, GitHubRepoRef, RepoFile

__all__ = [
    "ArchiveError",
    "ArchiveFetchError",
    "EmptyArchiveError",
    "EntryCandidate",
    "ExtractionProfile",
    "GitHubArchive",
    "GitHubRepoRef",
    "RepoFile",
    "archive_download_urls",
    "build_source_url",
    "download_github_archive",
    "extract_files",
    "logical_entry_path",
    "parse_github_url",
]
