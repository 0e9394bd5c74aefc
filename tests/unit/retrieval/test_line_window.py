from __future__ import annotations

from repo_qa.retrieval import locate_window


def _numbered(total: int, hits: dict[int, str] | None = None) -> str:
    hits = hits or {}
    return "\n".join(hits.get(number, f"line {number}") for number in range(1, total + 1))


def test_window_spans_seven_before_and_eleven_after() -> None:
    content = _numbered(100, {50: "token refresh happens here"})

    window = locate_window(content, ["token", "refresh"])

    assert (window.start_line, window.end_line) == (43, 61)
    lines = window.code.split("\n")
    assert len(lines) == 19
    assert lines[7] == "token refresh happens here"
    assert lines[0] == "line 43"
    assert lines[-1] == "line 61"


def test_no_hits_anchors_at_first_line() -> None:
    window = locate_window(_numbered(30), ["absent"])

    assert (window.start_line, window.end_line) == (1, 12)
    assert window.code.split("\n")[0] == "line 1"


def test_first_line_wins_ties() -> None:
    content = _numbered(40, {5: "token here", 20: "token there"})

    window = locate_window(content, ["token"])

    assert (window.start_line, window.end_line) == (1, 16)


def test_more_distinct_terms_win() -> None:
    content = _numbered(60, {10: "token only", 40: "token refresh both"})

    window = locate_window(content, ["token", "refresh"])

    assert (window.start_line, window.end_line) == (33, 51)


def test_window_clamps_at_end_of_file() -> None:
    content = _numbered(10, {10: "token"})

    window = locate_window(content, ["token"])

    assert (window.start_line, window.end_line) == (3, 10)
    assert window.code.split("\n")[-1] == "token"


def test_mixed_line_endings_are_split() -> None:
    window = locate_window("alpha\r\nbeta token\rgamma\ndelta", ["token"])

    assert (window.start_line, window.end_line) == (1, 4)
    assert window.code == "alpha\nbeta token\ngamma\ndelta"


def test_lines_past_scan_limit_are_ignored() -> None:
    content = _numbered(1300, {1250: "token"})

    window = locate_window(content, ["token"])

    assert window.start_line == 1


def test_window_is_never_empty_for_single_line() -> None:
    window = locate_window("only line", ["missing"])

    assert (window.start_line, window.end_line, window.code) == (1, 1, "only line")
