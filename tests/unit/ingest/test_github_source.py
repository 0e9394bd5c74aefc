from __future__ import annotations

import urllib.error
from typing import Any

import pytest

from repo_qa.ingest import (
    ArchiveFetchError,
    GitHubRepoRef,
    archive_download_urls,
    build_source_url,
    download_github_archive,
    parse_github_url,
)
from repo_qa.security import InvalidInputError, PolicyBlockedError


class _FakeResponse:
    def __init__(self, body: bytes, status: int = 200) -> None:
        self._body = body
        self.status = status

    def __enter__(self) -> _FakeResponse:
        return self

    def __exit__(self, *exc_info: object) -> None:
        return None

    def read(self, size: int = -1) -> bytes:
        if size < 0:
            return self._body
        return self._body[:size]


class _RecordingOpener:
    def __init__(self, responses: dict[str, object]) -> None:
        self.responses = responses
        self.calls: list[tuple[str, Any]] = []

    def __call__(self, request: Any, timeout: float) -> _FakeResponse:
        self.calls.append((request.full_url, timeout))
        outcome = self.responses.get(request.full_url)
        if isinstance(outcome, BaseException):
            raise outcome
        if outcome is None:
            raise urllib.error.HTTPError(request.full_url, 404, "Not Found", None, None)
        assert isinstance(outcome, _FakeResponse)
        return outcome


MAIN_URL = "https://codeload.github.com/octo/hello/zip/refs/heads/main"
MASTER_URL = "https://codeload.github.com/octo/hello/zip/refs/heads/master"


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://github.com/octo/hello", GitHubRepoRef("octo", "hello")),
        ("https://github.com/octo/hello/", GitHubRepoRef("octo", "hello")),
        ("https://github.com/octo/hello.git", GitHubRepoRef("octo", "hello")),
        ("http://GitHub.com/octo/hello", GitHubRepoRef("octo", "hello")),
        (
            "https://github.com/octo/hello/tree/develop",
            GitHubRepoRef("octo", "hello", "develop"),
        ),
        (
            "https://github.com/octo/hello/tree/feature%2Fx/src/app",
            GitHubRepoRef("octo", "hello", "feature/x"),
        ),
    ],
)
def test_parse_github_url(url: str, expected: GitHubRepoRef) -> None:
    assert parse_github_url(url) == expected


@pytest.mark.parametrize(
    "url",
    [
        "https://github.com/octo",
        "https://github.com/octo/hello/issues",
        "https://gitlab.com/octo/hello",
    ],
)
def test_parse_github_url_rejects_other_shapes(url: str) -> None:
    with pytest.raises(InvalidInputError):
        parse_github_url(url)


def test_default_branches_are_tried_in_order() -> None:
    assert archive_download_urls(GitHubRepoRef("octo", "hello")) == [
        ("main", MAIN_URL),
        ("master", MASTER_URL),
    ]


def test_explicit_branch_is_the_only_candidate() -> None:
    pairs = archive_download_urls(GitHubRepoRef("octo", "hello", "release/1.0"))

    assert pairs == [
        (
            "release/1.0",
            "https://codeload.github.com/octo/hello/zip/refs/heads/release%2F1.0",
        )
    ]


def test_download_falls_back_to_master() -> None:
    opener = _RecordingOpener({MASTER_URL: _FakeResponse(b"PK-zip-bytes")})

    archive = download_github_archive(
        "https://github.com/octo/hello", timeout_sec=3.5, opener=opener
    )

    assert archive.branch == "master"
    assert archive.label == "octo/hello@master"
    assert archive.archive_bytes == b"PK-zip-bytes"
    assert archive.ref == GitHubRepoRef("octo", "hello", "master")
    assert opener.calls == [(MAIN_URL, 3.5), (MASTER_URL, 3.5)]


def test_download_timeout_moves_to_next_branch() -> None:
    opener = _RecordingOpener(
        {
            MAIN_URL: TimeoutError("timed out"),
            MASTER_URL: _FakeResponse(b"zip"),
        }
    )

    archive = download_github_archive("https://github.com/octo/hello", opener=opener)

    assert archive.branch == "master"


def test_non_success_status_moves_to_next_branch() -> None:
    opener = _RecordingOpener(
        {
            MAIN_URL: _FakeResponse(b"", status=500),
            MASTER_URL: _FakeResponse(b"zip"),
        }
    )

    archive = download_github_archive("https://github.com/octo/hello", opener=opener)

    assert archive.branch == "master"


def test_download_failure_on_every_branch() -> None:
    opener = _RecordingOpener({MAIN_URL: urllib.error.URLError("offline")})

    with pytest.raises(ArchiveFetchError) as error:
        download_github_archive("https://github.com/octo/hello", opener=opener)

    assert error.value.code == "FETCH_FAILED"
    assert len(opener.calls) == 2


def test_download_larger_than_limit_is_blocked() -> None:
    opener = _RecordingOpener({MAIN_URL: _FakeResponse(b"x" * 11)})

    with pytest.raises(PolicyBlockedError):
        download_github_archive("https://github.com/octo/hello", max_bytes=10, opener=opener)


def test_build_source_url() -> None:
    ref = GitHubRepoRef("octo", "hello", "main")

    expected = "https://github.com/octo/hello/blob/main/src/app.py"
    assert build_source_url(ref, "src/app.py") == expected
    assert build_source_url(None, "src/app.py") is None
