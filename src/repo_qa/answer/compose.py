"""Turn retrieved snippets into a cited answer."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Final, Protocol

from repo_qa.answer.llm import ChatMessage, LlmSettings
from repo_qa.retrieval.models import Snippet

CODE_FENCE: Final[re.Pattern[str]] = re.compile(r"```json|```", re.IGNORECASE)
UNCONFIGURED_CITATIONS: Final[int] = 2
FALLBACK_CITATIONS: Final[int] = 3

SYSTEM_INSTRUCTIONS: Final[str] = " ".join(
    [
        "You answer repository questions using only provided snippets.",
        'Output only a valid JSON object: {"answer": string, "snippetIds": string[] }.',
        "Be technically precise and concise.",
        "If question asks a symbol (e.g. Foo.bar), explain where it is used/defined in snippets.",
        "Only include snippet IDs that directly support your answer.",
    ]
)


class CompletionClient(Protocol):
    """Chat completion callable used to phrase answers."""

    @property
    def settings(self) -> LlmSettings:
        """Return provider settings."""

    @property
    def configured(self) -> bool:
        """Return True when credentials and model are present."""

    def complete(self, messages: list[ChatMessage]) -> str:
        """Return raw completion text."""

    def health_check(self) -> dict[str, object]:
        """Return an ok/detail probe result without raising."""


@dataclass(slots=True, frozen=True)
class AnswerDraft:
    """Answer text plus the snippet ids it cites."""

    answer: str
    snippet_ids: tuple[str, ...]


def snippet_location(snippet: Snippet) -> str:
    return f"{snippet.path}:{snippet.start_line}-{snippet.end_line}"


def build_messages(question: str, snippets: list[Snippet]) -> list[ChatMessage]:
    """Build the system + user messages for one question."""
    blocks = [
        f"Snippet {snippet.id}\nPath: {snippet_location(snippet)}\n\n{snippet.code}"
        for snippet in snippets
    ]
    user = f"Question: {question}\n\nSnippets:\n" + "\n\n----\n\n".join(blocks)
    return [
        {"role": "system", "content": SYSTEM_INSTRUCTIONS},
        {"role": "user", "content": user},
    ]


def parse_answer_payload(content: str) -> AnswerDraft | None:
    """Parse model output as JSON, tolerating surrounding code fences."""
    for candidate in (content, CODE_FENCE.sub("", content).strip()):
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if parsed is None:
            continue
        fields = parsed if isinstance(parsed, dict) else {}
        answer = fields.get("answer")
        raw_ids = fields.get("snippetIds")
        ids = tuple(str(item) for item in raw_ids) if isinstance(raw_ids, list) else ()
        return AnswerDraft(answer=str(answer or "No answer generated."), snippet_ids=ids)
    return None


def heuristic_answer(question: str, snippets: list[Snippet]) -> AnswerDraft:
    """Fallback answer that points at the top locations without model prose."""
    top = snippets[:FALLBACK_CITATIONS]
    refs = ", ".join(snippet_location(snippet) for snippet in top)
    return AnswerDraft(
        answer=(
            "The model did not return a structured answer. "
            f'Relevant locations from retrieved evidence: {refs}. Question: "{question}".'
        ),
        snippet_ids=tuple(snippet.id for snippet in top),
    )


def compose_answer(
    question: str,
    snippets: list[Snippet],
    client: CompletionClient,
) -> AnswerDraft:
    """Ask the completion client for a cited answer, degrading to local fallbacks."""
    if not client.configured:
        return AnswerDraft(
            answer=f"LLM is not configured. {client.settings.missing_message()}",
            snippet_ids=tuple(snippet.id for snippet in snippets[:UNCONFIGURED_CITATIONS]),
        )
    content = client.complete(build_messages(question, snippets))
    parsed = parse_answer_payload(content)
    if parsed is not None:
        return parsed
    return heuristic_answer(question, snippets)


def select_evidence(snippets: list[Snippet], draft: AnswerDraft) -> list[Snippet]:
    """Keep the snippets the answer cites, or the first three when it cites none."""
    cited = set(draft.snippet_ids)
    selected = [snippet for snippet in snippets if snippet.id in cited]
    return selected or snippets[:FALLBACK_CITATIONS]
