"""Tool registration and dispatch."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

ToolHandler = Callable[[dict[str, object]], dict[str, object]]


@dataclass(slots=True, frozen=True)
class ToolDispatchError(Exception):
    """Raised for unknown tools and malformed tool arguments."""

    code: str
    message: str


@dataclass(slots=True, frozen=True)
class ToolSpec:
    """A named handler with a one-line summary for status listings."""

    name: str
    summary: str
    handler: ToolHandler


@dataclass(slots=True)
class ToolRegistry:
    """In-memory registry; listing order is registration order."""

    _tools: dict[str, ToolSpec] = field(default_factory=dict)

    def register(self, name: str, handler: ToolHandler, summary: str = "") -> None:
        self._tools[name] = ToolSpec(name=name, summary=summary, handler=handler)

    def names(self) -> tuple[str, ...]:
        return tuple(self._tools.keys())

    def describe(self) -> list[dict[str, str]]:
        """Return name/summary pairs in registration order."""
        return [{"name": spec.name, "summary": spec.summary} for spec in self._tools.values()]

    def dispatch(self, name: str, arguments: dict[str, object]) -> dict[str, object]:
        spec = self._tools.get(name)
        if spec is None:
            raise ToolDispatchError(code="UNKNOWN_TOOL", message=f"Unknown tool: {name}")
        return spec.handler(arguments)
