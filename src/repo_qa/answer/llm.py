"""OpenAI-compatible chat completion client configured from the environment."""

from __future__ import annotations

import json
import urllib.error
import urllib.request
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Final

DEFAULT_LLM_TIMEOUT_SEC: Final[float] = 25.0
SUPPORTED_PROVIDERS: Final[tuple[str, ...]] = ("groq", "openai")

_PROVIDER_SETTINGS: Final[dict[str, tuple[str, str, str]]] = {
    "groq": ("GROQ_API_KEY", "GROQ_MODEL", "https://api.groq.com/openai/v1"),
    "openai": ("OPENAI_API_KEY", "OPENAI_MODEL", "https://api.openai.com/v1"),
}

Opener = Callable[..., Any]
ChatMessage = dict[str, str]


@dataclass(slots=True, frozen=True)
class LlmError(Exception):
    """Raised when the completion endpoint fails or returns a non-success status."""

    message: str
    code: str = "LLM_FAILED"


@dataclass(slots=True, frozen=True)
class LlmSettings:
    """Provider credentials and endpoint."""

    provider: str
    api_key: str
    model: str
    base_url: str

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> LlmSettings:
        """Read LLM_PROVIDER and the provider-specific key/model variables."""
        provider = environ.get("LLM_PROVIDER", "groq").strip().lower()
        if provider not in SUPPORTED_PROVIDERS:
            provider = "groq"
        key_var, model_var, base_url = _PROVIDER_SETTINGS[provider]
        return cls(
            provider=provider,
            api_key=environ.get(key_var, ""),
            model=environ.get(model_var, ""),
            base_url=base_url,
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.model)

    def missing_message(self) -> str:
        """Name the environment variables that must be set for this provider."""
        key_var, model_var, _ = _PROVIDER_SETTINGS[self.provider]
        return f"{key_var} or {model_var} missing"


class ChatCompletionClient:
    """Minimal chat completion caller with a hard request timeout."""

    def __init__(
        self,
        settings: LlmSettings,
        timeout_sec: float = DEFAULT_LLM_TIMEOUT_SEC,
        opener: Opener = urllib.request.urlopen,
    ) -> None:
        self._settings = settings
        self._timeout_sec = timeout_sec
        self._opener = opener

    @property
    def settings(self) -> LlmSettings:
        return self._settings

    @property
    def configured(self) -> bool:
        return self._settings.configured

    def complete(self, messages: list[ChatMessage]) -> str:
        """Return the first choice's message content, or "{}" when absent."""
        payload = {
            "model": self._settings.model,
            "temperature": 0.2,
            "max_tokens": 800,
            "messages": messages,
        }
        request = urllib.request.Request(
            f"{self._settings.base_url}/chat/completions",
            method="POST",
            data=json.dumps(payload).encode("utf-8"),
            headers={
                "Authorization": f"Bearer {self._settings.api_key}",
                "Content-Type": "application/json",
            },
        )
        try:
            with self._opener(request, timeout=self._timeout_sec) as response:
                raw = response.read().decode("utf-8", errors="replace")
        except urllib.error.HTTPError as error:
            body = error.read().decode("utf-8", errors="replace")
            raise LlmError(message=f"LLM call failed: {body[:180]}") from error
        except (urllib.error.URLError, TimeoutError) as error:
            raise LlmError(message=f"LLM call failed: {error}") from error

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as error:
            raise LlmError(message="LLM response was not valid JSON.") from error
        choices = data.get("choices") if isinstance(data, dict) else None
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            return "{}"
        message = choices[0].get("message")
        content = message.get("content") if isinstance(message, dict) else None
        return content if isinstance(content, str) else "{}"

    def health_check(self) -> dict[str, object]:
        """Probe the endpoint; failures are reported, never raised."""
        if not self.configured:
            return {"ok": False, "detail": self._settings.missing_message()}
        try:
            self.complete([{"role": "user", "content": "Reply with OK"}])
        except LlmError as error:
            return {"ok": False, "detail": error.message}
        return {
            "ok": True,
            "detail": f"LLM reachable ({self._settings.provider}: {self._settings.model})",
        }
