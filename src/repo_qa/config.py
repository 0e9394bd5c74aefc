"""Configuration loading and deterministic merge order."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path

from repo_qa.answer.llm import DEFAULT_LLM_TIMEOUT_SEC
from repo_qa.ingest.github import DEFAULT_FETCH_TIMEOUT_SEC
from repo_qa.retrieval import DEFAULT_TOP_K
from repo_qa.security.policy import MAX_ARCHIVE_FILES, MAX_ENTRY_BYTES
from repo_qa.security.validation import DEFAULT_MAX_QUESTION_CHARS, DEFAULT_MAX_UPLOAD_BYTES
from repo_qa.store import DEFAULT_HISTORY_SIZE

CONFIG_FILE_NAME = "repo_qa.toml"

MAX_TOP_K_CAP = 50
MAX_QUESTION_CHARS_CAP = 4_000
MAX_UPLOAD_BYTES_CAP = 100 * 1024 * 1024
HISTORY_SIZE_CAP = 100
MAX_TOTAL_BYTES_PER_RESPONSE_CAP = 1024 * 1024
TIMEOUT_SEC_CAP = 120

# Extraction caps bound worst-case work on untrusted archives and are not configurable.
_FIXED_INGEST_KEYS = ("max_files", "max_file_bytes", "max_entry_bytes")


@dataclass(slots=True, frozen=True)
class ServiceLimits:
    """Per-request limits enforced by the tool handlers."""

    default_top_k: int = DEFAULT_TOP_K
    max_top_k: int = 20
    max_question_chars: int = DEFAULT_MAX_QUESTION_CHARS
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    history_size: int = DEFAULT_HISTORY_SIZE
    max_total_bytes_per_response: int = 256 * 1024


@dataclass(slots=True, frozen=True)
class TimeoutConfig:
    """Hard timeouts for the network collaborators."""

    fetch_timeout_sec: float = DEFAULT_FETCH_TIMEOUT_SEC
    llm_timeout_sec: float = DEFAULT_LLM_TIMEOUT_SEC


@dataclass(slots=True, frozen=True)
class ServerConfig:
    """Fully merged server configuration."""

    base_dir: Path
    data_dir: Path
    limits: ServiceLimits
    timeouts: TimeoutConfig

    def to_public_dict(self) -> dict[str, object]:
        """Return a serializable config snapshot for tool responses."""
        return {
            "base_dir": str(self.base_dir),
            "data_dir": str(self.data_dir),
            "limits": {
                "default_top_k": self.limits.default_top_k,
                "max_top_k": self.limits.max_top_k,
                "max_question_chars": self.limits.max_question_chars,
                "max_upload_bytes": self.limits.max_upload_bytes,
                "history_size": self.limits.history_size,
                "max_total_bytes_per_response": self.limits.max_total_bytes_per_response,
            },
            "timeouts": {
                "fetch_timeout_sec": self.timeouts.fetch_timeout_sec,
                "llm_timeout_sec": self.timeouts.llm_timeout_sec,
            },
            "ingest": {
                "max_files": MAX_ARCHIVE_FILES,
                "max_file_bytes": MAX_ENTRY_BYTES,
            },
        }


@dataclass(slots=True, frozen=True)
class CliOverrides:
    """Optional startup overrides applied at highest precedence."""

    data_dir: Path | None = None
    default_top_k: int | None = None
    max_top_k: int | None = None
    max_question_chars: int | None = None
    max_upload_bytes: int | None = None
    history_size: int | None = None
    max_total_bytes_per_response: int | None = None


def default_config(base_dir: Path) -> ServerConfig:
    """Build default config rooted at base_dir."""
    resolved = base_dir.resolve()
    return ServerConfig(
        base_dir=resolved,
        data_dir=resolved / ".repo_qa",
        limits=ServiceLimits(),
        timeouts=TimeoutConfig(),
    )


def load_config_file(base_dir: Path) -> dict[str, object]:
    """Load optional repo_qa.toml from base_dir."""
    config_path = base_dir / CONFIG_FILE_NAME
    if not config_path.exists():
        return {}
    with config_path.open("rb") as handle:
        return tomllib.load(handle)


def _get_table(payload: dict[str, object], key: str) -> dict[str, object]:
    value = payload.get(key, {})
    if not isinstance(value, dict):
        raise ValueError(f"Config section '{key}' must be a table.")
    return value


def merge_config(
    base: ServerConfig, file_payload: dict[str, object], overrides: CliOverrides
) -> ServerConfig:
    """Merge defaults, config file, then CLI/startup overrides."""
    limits_payload = _get_table(file_payload, "limits")
    fetch_payload = _get_table(file_payload, "fetch")
    llm_payload = _get_table(file_payload, "llm")
    ingest_payload = _get_table(file_payload, "ingest")

    for key in _FIXED_INGEST_KEYS:
        if key in ingest_payload:
            raise ValueError(
                f"Config field 'ingest.{key}' is not supported; "
                "archive extraction caps are fixed."
            )

    limits = _merge_limits(
        base.limits,
        {
            key: limits_payload.get(key)
            for key in (
                "default_top_k",
                "max_top_k",
                "max_question_chars",
                "max_upload_bytes",
                "history_size",
                "max_total_bytes_per_response",
            )
        },
        prefix="limits",
    )
    timeouts = TimeoutConfig(
        fetch_timeout_sec=_optional_positive_number(
            fetch_payload.get("timeout_sec"),
            "fetch.timeout_sec",
            base.timeouts.fetch_timeout_sec,
        ),
        llm_timeout_sec=_optional_positive_number(
            llm_payload.get("timeout_sec"),
            "llm.timeout_sec",
            base.timeouts.llm_timeout_sec,
        ),
    )
    merged = ServerConfig(
        base_dir=base.base_dir,
        data_dir=base.data_dir,
        limits=limits,
        timeouts=timeouts,
    )
    return apply_cli_overrides(merged, overrides)


def apply_cli_overrides(config: ServerConfig, overrides: CliOverrides) -> ServerConfig:
    """Apply startup overrides at highest precedence."""
    limits = _merge_limits(
        config.limits,
        {
            "default_top_k": overrides.default_top_k,
            "max_top_k": overrides.max_top_k,
            "max_question_chars": overrides.max_question_chars,
            "max_upload_bytes": overrides.max_upload_bytes,
            "history_size": overrides.history_size,
            "max_total_bytes_per_response": overrides.max_total_bytes_per_response,
        },
        prefix="overrides",
    )
    data_dir = overrides.data_dir or config.data_dir
    return ServerConfig(
        base_dir=config.base_dir,
        data_dir=data_dir.resolve(),
        limits=limits,
        timeouts=config.timeouts,
    )


def load_effective_config(base_dir: Path, overrides: CliOverrides | None = None) -> ServerConfig:
    """Load effective config using merge order defaults -> config file -> overrides."""
    resolved = base_dir.resolve()
    base = default_config(resolved)
    payload = load_config_file(resolved)
    return merge_config(base, payload, overrides or CliOverrides())


def _merge_limits(
    base: ServiceLimits,
    values: dict[str, object],
    prefix: str,
) -> ServiceLimits:
    limits = ServiceLimits(
        default_top_k=_optional_positive_int_with_cap(
            values.get("default_top_k"),
            f"{prefix}.default_top_k",
            base.default_top_k,
            MAX_TOP_K_CAP,
        ),
        max_top_k=_optional_positive_int_with_cap(
            values.get("max_top_k"),
            f"{prefix}.max_top_k",
            base.max_top_k,
            MAX_TOP_K_CAP,
        ),
        max_question_chars=_optional_positive_int_with_cap(
            values.get("max_question_chars"),
            f"{prefix}.max_question_chars",
            base.max_question_chars,
            MAX_QUESTION_CHARS_CAP,
        ),
        max_upload_bytes=_optional_positive_int_with_cap(
            values.get("max_upload_bytes"),
            f"{prefix}.max_upload_bytes",
            base.max_upload_bytes,
            MAX_UPLOAD_BYTES_CAP,
        ),
        history_size=_optional_positive_int_with_cap(
            values.get("history_size"),
            f"{prefix}.history_size",
            base.history_size,
            HISTORY_SIZE_CAP,
        ),
        max_total_bytes_per_response=_optional_positive_int_with_cap(
            values.get("max_total_bytes_per_response"),
            f"{prefix}.max_total_bytes_per_response",
            base.max_total_bytes_per_response,
            MAX_TOTAL_BYTES_PER_RESPONSE_CAP,
        ),
    )
    if limits.default_top_k > limits.max_top_k:
        raise ValueError(f"Config field '{prefix}.default_top_k' must be <= max_top_k.")
    return limits


def _optional_positive_int_with_cap(
    value: object,
    name: str,
    default: int,
    cap: int,
) -> int:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f"Config field '{name}' must be a positive integer.")
    if value > cap:
        raise ValueError(f"Config field '{name}' must be <= {cap}.")
    return value


def _optional_positive_number(value: object, name: str, default: float) -> float:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ValueError(f"Config field '{name}' must be a positive number.")
    if value > TIMEOUT_SEC_CAP:
        raise ValueError(f"Config field '{name}' must be <= {TIMEOUT_SEC_CAP}.")
    return float(value)
