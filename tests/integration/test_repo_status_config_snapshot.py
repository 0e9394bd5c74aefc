from __future__ import annotations

from pathlib import Path

from repo_qa.answer import LlmSettings
from repo_qa.server import create_server


class _ProbeLlm:
    def __init__(self) -> None:
        self.settings = LlmSettings.from_env(
            {"LLM_PROVIDER": "openai", "OPENAI_API_KEY": "sk", "OPENAI_MODEL": "gpt-test"}
        )
        self.configured = True
        self.probes = 0

    def complete(self, messages: list[dict[str, str]]) -> str:
        return "{}"

    def health_check(self) -> dict[str, object]:
        self.probes += 1
        return {"ok": False, "detail": "LLM call failed: unreachable"}


def test_status_lists_tools_and_store_health(tmp_path: Path) -> None:
    server = create_server(base_dir=str(tmp_path), environ={})

    response = server.handle_payload({"id": "req-1", "method": "repo.status", "params": {}})

    result = response["result"]
    assert [tool["name"] for tool in result["tools"]] == [
        "repo.status",
        "repo.ingest",
        "repo.retrieve",
        "repo.ask",
        "repo.history",
        "repo.clear_history",
        "repo.audit_log",
    ]
    assert result["database"]["ok"] is True
    assert result["history_count"] == 0
    assert result["effective_config"]["data_dir"] == str((tmp_path / ".repo_qa").resolve())
    assert str(result["checked_at"]).endswith("Z")


def test_status_probes_llm_only_on_request(tmp_path: Path) -> None:
    llm = _ProbeLlm()
    server = create_server(base_dir=str(tmp_path), llm_client=llm)

    passive = server.handle_payload({"id": "req-1", "method": "repo.status", "params": {}})
    probed = server.handle_payload(
        {"id": "req-2", "method": "repo.status", "params": {"check_llm": True}}
    )

    assert passive["result"]["llm"] == {"ok": True, "detail": "configured (openai: gpt-test)"}
    assert probed["result"]["llm"] == {"ok": False, "detail": "LLM call failed: unreachable"}
    assert llm.probes == 1


def test_status_rejects_non_boolean_probe_flag(tmp_path: Path) -> None:
    server = create_server(base_dir=str(tmp_path), environ={})

    response = server.handle_payload(
        {"id": "req-1", "method": "repo.status", "params": {"check_llm": "yes"}}
    )

    assert response["error"]["code"] == "INVALID_PARAMS"
