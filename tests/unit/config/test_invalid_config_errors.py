from __future__ import annotations

from pathlib import Path

import pytest

from repo_qa.config import CliOverrides, load_effective_config


def _write_config(tmp_path: Path, text: str) -> None:
    (tmp_path / "repo_qa.toml").write_text(text, encoding="utf-8")


def test_non_integer_limit_is_rejected(tmp_path: Path) -> None:
    _write_config(tmp_path, '[limits]\nmax_top_k = "ten"\n')

    with pytest.raises(ValueError, match="limits.max_top_k"):
        load_effective_config(tmp_path)


def test_limit_above_cap_is_rejected(tmp_path: Path) -> None:
    _write_config(tmp_path, "[limits]\nhistory_size = 1000\n")

    with pytest.raises(ValueError, match="must be <= 100"):
        load_effective_config(tmp_path)


def test_boolean_is_not_a_positive_integer(tmp_path: Path) -> None:
    _write_config(tmp_path, "[limits]\ndefault_top_k = true\n")

    with pytest.raises(ValueError, match="positive integer"):
        load_effective_config(tmp_path)


def test_section_must_be_a_table(tmp_path: Path) -> None:
    _write_config(tmp_path, 'limits = "big"\n')

    with pytest.raises(ValueError, match="Config section 'limits' must be a table."):
        load_effective_config(tmp_path)


def test_extraction_caps_are_not_configurable(tmp_path: Path) -> None:
    _write_config(tmp_path, "[ingest]\nmax_files = 10000\n")

    with pytest.raises(ValueError, match="archive extraction caps are fixed"):
        load_effective_config(tmp_path)


def test_default_top_k_cannot_exceed_max_top_k(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="default_top_k"):
        load_effective_config(tmp_path, CliOverrides(default_top_k=10, max_top_k=5))


def test_timeout_must_be_positive(tmp_path: Path) -> None:
    _write_config(tmp_path, "[llm]\ntimeout_sec = 0\n")

    with pytest.raises(ValueError, match="llm.timeout_sec"):
        load_effective_config(tmp_path)
