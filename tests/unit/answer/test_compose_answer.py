from __future__ import annotations

from dataclasses import dataclass, field

from repo_qa.answer import (
    AnswerDraft,
    LlmSettings,
    build_messages,
    compose_answer,
    heuristic_answer,
    parse_answer_payload,
    select_evidence,
)
from repo_qa.retrieval import Snippet


def _snippets(count: int) -> list[Snippet]:
    return [
        Snippet(
            id=f"S{index}",
            path=f"src/mod_{index}.py",
            start_line=1,
            end_line=12,
            code=f"def handler_{index}(): pass",
            score=10.0 - index,
        )
        for index in range(1, count + 1)
    ]


@dataclass
class _ScriptedClient:
    content: str = "{}"
    configured: bool = True
    settings: LlmSettings = field(
        default_factory=lambda: LlmSettings.from_env({"GROQ_API_KEY": "k", "GROQ_MODEL": "m"})
    )
    calls: list[list[dict[str, str]]] = field(default_factory=list)

    def complete(self, messages: list[dict[str, str]]) -> str:
        self.calls.append(messages)
        return self.content

    def health_check(self) -> dict[str, object]:
        return {"ok": True, "detail": "scripted"}


def test_messages_carry_labelled_snippets() -> None:
    messages = build_messages("where is handler_1?", _snippets(2))

    assert [message["role"] for message in messages] == ["system", "user"]
    assert "snippetIds" in messages[0]["content"]
    user = messages[1]["content"]
    assert user.startswith("Question: where is handler_1?\n\nSnippets:\n")
    assert "Snippet S1\nPath: src/mod_1.py:1-12\n\ndef handler_1(): pass" in user
    assert "\n\n----\n\n" in user


def test_parse_plain_json_payload() -> None:
    draft = parse_answer_payload('{"answer": "It is in mod_1.", "snippetIds": ["S1"]}')

    assert draft == AnswerDraft(answer="It is in mod_1.", snippet_ids=("S1",))


def test_parse_fenced_json_payload() -> None:
    content = '```json\n{"answer": "Fenced.", "snippetIds": ["S2", "S1"]}\n```'

    assert parse_answer_payload(content) == AnswerDraft(answer="Fenced.", snippet_ids=("S2", "S1"))


def test_parse_defaults_missing_fields() -> None:
    assert parse_answer_payload("{}") == AnswerDraft(answer="No answer generated.", snippet_ids=())


def test_parse_rejects_unreadable_output() -> None:
    assert parse_answer_payload("not json at all") is None
    assert parse_answer_payload("null") is None


def test_parse_non_object_json_yields_default_answer() -> None:
    empty = AnswerDraft(answer="No answer generated.", snippet_ids=())

    assert parse_answer_payload("[1, 2]") == empty
    assert parse_answer_payload('"just prose"') == empty
    assert parse_answer_payload("```json\n42\n```") == empty


def test_heuristic_answer_cites_top_three() -> None:
    draft = heuristic_answer("where?", _snippets(5))

    assert draft.snippet_ids == ("S1", "S2", "S3")
    assert "src/mod_1.py:1-12" in draft.answer
    assert "src/mod_4.py" not in draft.answer


def test_unconfigured_client_cites_first_two_without_calling() -> None:
    client = _ScriptedClient(configured=False, settings=LlmSettings.from_env({}))

    draft = compose_answer("where?", _snippets(4), client)

    assert draft.answer == "LLM is not configured. GROQ_API_KEY or GROQ_MODEL missing"
    assert draft.snippet_ids == ("S1", "S2")
    assert client.calls == []


def test_configured_client_answer_is_used() -> None:
    client = _ScriptedClient(content='{"answer": "See S2.", "snippetIds": ["S2"]}')

    draft = compose_answer("where?", _snippets(3), client)

    assert draft == AnswerDraft(answer="See S2.", snippet_ids=("S2",))
    assert len(client.calls) == 1


def test_unparseable_output_falls_back_to_heuristic() -> None:
    client = _ScriptedClient(content="Sure! The handler lives in mod_1.")

    draft = compose_answer("where?", _snippets(4), client)

    assert draft.snippet_ids == ("S1", "S2", "S3")
    assert draft.answer.startswith("The model did not return a structured answer.")


def test_select_evidence_keeps_cited_in_rank_order() -> None:
    snippets = _snippets(4)

    selected = select_evidence(snippets, AnswerDraft(answer="x", snippet_ids=("S3", "S1")))

    assert [item.id for item in selected] == ["S1", "S3"]


def test_select_evidence_falls_back_to_first_three() -> None:
    snippets = _snippets(5)

    selected = select_evidence(snippets, AnswerDraft(answer="x", snippet_ids=("S9",)))

    assert [item.id for item in selected] == ["S1", "S2", "S3"]
