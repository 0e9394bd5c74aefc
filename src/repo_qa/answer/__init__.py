"""Answer composition over retrieved evidence."""

from .compose import (
    AnswerDraft,
    build_messages,
    compose_answer,
    heuristic_answer,
    parse_answer_payload,
    select_evidence,
)
from .llm import ChatCompletionClient, LlmError, LlmSettings

__all__ = [
    "AnswerDraft",
    "ChatCompletionClient",
    "LlmError",
    "LlmSettings",
    "build_messages",
    "compose_answer",
    "heuristic_answer",
    "parse_answer_payload",
    "select_evidence",
]
