"""Message types."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class SystemMessage:
    content: str
    role: str = "system"


@dataclass(frozen=True)
class UserMessage:
    content: str
    role: str = "user"


@dataclass(frozen=True)
class AssistantMessage:
    content: str
    role: str = "assistant"


@dataclass(frozen=True)
class ToolCall:
    """A tool-call request produced by the LLM. ``content`` is the JSON argument string."""

    id: str | None
    tool: str
    content: str
    role: str = "tool_call"

    @property
    def args(self) -> dict[str, Any]:
        if not self.content:
            return {}
        return json.loads(self.content)


@dataclass(frozen=True)
class ToolMessage:
    """Result of a tool call, sent back to the LLM."""

    id: str | None
    tool: str
    content: str
    role: str = "tool"


Message = SystemMessage | UserMessage | AssistantMessage | ToolCall | ToolMessage

Response = AssistantMessage | ToolCall
