"""GitHub archive source: URL parsing, bounded download and display links."""

from __future__ import annotations

import re
import urllib.error
import urllib.parse
import urllib.request
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Final

from repo_qa.ingest.models import GitHubArchive, GitHubRepoRef
from repo_qa.security.policy import PolicyBlockedError
from repo_qa.security.validation import DEFAULT_MAX_UPLOAD_BYTES, InvalidInputError

DEFAULT_FETCH_TIMEOUT_SEC: Final[float] = 12.0
DEFAULT_BRANCHES: Final[tuple[str, ...]] = ("main", "master")
USER_AGENT: Final[str] = "repo-qa"

TREE_URL_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^https?://github\.com/([^/]+)/([^/]+?)(?:\.git)?/tree/([^/]+)(?:/.*)?/?$",
    re.IGNORECASE,
)
ROOT_URL_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^https?://github\.com/([^/]+)/([^/]+?)(?:\.git|/)?$",
    re.IGNORECASE,
)

Opener = Callable[..., Any]


@dataclass(slots=True, frozen=True)
class ArchiveFetchError(Exception):
    """Raised when no candidate branch yields a downloadable archive."""

    message: str
    code: str = "FETCH_FAILED"


def parse_github_url(url: str) -> GitHubRepoRef:
    """Parse a repository root or /tree/<branch> URL."""
    trimmed = url.strip()
    tree_match = TREE_URL_PATTERN.match(trimmed)
    if tree_match:
        return GitHubRepoRef(
            owner=tree_match.group(1),
            repo=tree_match.group(2),
            branch=urllib.parse.unquote(tree_match.group(3)),
        )
    root_match = ROOT_URL_PATTERN.match(trimmed)
    if root_match:
        return GitHubRepoRef(owner=root_match.group(1), repo=root_match.group(2))
    raise InvalidInputError(
        message="Use a public GitHub repo URL like https://github.com/owner/repo."
    )


def candidate_branches(ref: GitHubRepoRef) -> tuple[str, ...]:
    """Return the explicit branch, or the conventional default branches in order."""
    if ref.branch:
        return (ref.branch,)
    return DEFAULT_BRANCHES


def archive_download_url(ref: GitHubRepoRef, branch: str) -> str:
    """Build the codeload zip URL for one branch."""
    quoted = urllib.parse.quote(branch, safe="")
    return f"https://codeload.github.com/{ref.owner}/{ref.repo}/zip/refs/heads/{quoted}"


def archive_download_urls(ref: GitHubRepoRef) -> list[tuple[str, str]]:
    """Return (branch, url) pairs in the order they are tried."""
    return [(branch, archive_download_url(ref, branch)) for branch in candidate_branches(ref)]


def download_github_archive(
    url: str,
    timeout_sec: float = DEFAULT_FETCH_TIMEOUT_SEC,
    max_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
    opener: Opener = urllib.request.urlopen,
) -> GitHubArchive:
    """Download a repository zip, falling back across candidate branches.

    Each branch is attempted once with a hard timeout. Non-success responses,
    connection failures and timeouts move on to the next branch; when all of
    them fail the download is reported as failed rather than retried.
    """
    ref = parse_github_url(url)
    for branch, zip_url in archive_download_urls(ref):
        request = urllib.request.Request(zip_url, headers={"User-Agent": USER_AGENT})
        try:
            with opener(request, timeout=timeout_sec) as response:
                status = getattr(response, "status", 200)
                if status < 200 or status >= 300:
                    continue
                payload = response.read(max_bytes + 1)
        except (urllib.error.HTTPError, urllib.error.URLError, TimeoutError):
            continue
        if len(payload) > max_bytes:
            raise PolicyBlockedError(
                reason=f"Repository archive exceeds {max_bytes} bytes.",
                hint="Download a smaller repository or upload a trimmed zip.",
            )
        return GitHubArchive(
            owner=ref.owner,
            repo=ref.repo,
            branch=branch,
            url=f"https://github.com/{ref.owner}/{ref.repo}",
            archive_bytes=payload,
        )
    raise ArchiveFetchError(
        message="Failed to download repository zip (branch not found or repo is private)."
    )


def build_source_url(ref: GitHubRepoRef | None, path: str) -> str | None:
    """Return the blob URL for a file, or None for non-GitHub sources."""
    if ref is None or not ref.branch:
        return None
    return f"https://github.com/{ref.owner}/{ref.repo}/blob/{ref.branch}/{path}"
