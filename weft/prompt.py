"""Prompt snapshots and the builder used to extend them.

A ``Prompt`` is immutable: every update produces a new snapshot so code that
still holds an older reference keeps a consistent view of the history.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from .types import (
    AssistantMessage,
    LLMParams,
    Message,
    SystemMessage,
    ToolCall,
    ToolMessage,
    UserMessage,
)


@dataclass(frozen=True)
class Prompt:
    id: str
    messages: tuple[Message, ...] = ()
    params: LLMParams = field(default_factory=LLMParams)

    def with_messages(self, messages: Iterable[Message]) -> Prompt:
        return dataclasses.replace(self, messages=tuple(messages))

    def with_updated_messages(
        self, update: Callable[[list[Message]], Iterable[Message]]
    ) -> Prompt:
        return self.with_messages(update(list(self.messages)))

    def with_params(self, params: LLMParams) -> Prompt:
        return dataclasses.replace(self, params=params)

    def with_updated_params(self, **changes: Any) -> Prompt:
        return self.with_params(dataclasses.replace(self.params, **changes))

    @property
    def latest_user_message(self) -> UserMessage | None:
        for m in reversed(self.messages):
            if isinstance(m, UserMessage):
                return m
        return None


class PromptBuilder:
    """Appends messages to a copy of a prompt; ``build()`` returns the new snapshot."""

    def __init__(self, prompt: Prompt) -> None:
        self._prompt = prompt
        self._messages: list[Message] = list(prompt.messages)

    def system(self, content: str) -> PromptBuilder:
        self._messages.append(SystemMessage(content))
        return self

    def user(self, content: str) -> PromptBuilder:
        self._messages.append(UserMessage(content))
        return self

    def assistant(self, content: str) -> PromptBuilder:
        self._messages.append(AssistantMessage(content))
        return self

    def tool_call(self, id: str | None, tool: str, content: str) -> PromptBuilder:
        self._messages.append(ToolCall(id=id, tool=tool, content=content))
        return self

    def tool_result(self, result: Any) -> PromptBuilder:
        """Append a tool result. Accepts a ``ReceivedToolResult`` or anything with id/tool/content."""
        self._messages.append(ToolMessage(id=result.id, tool=result.tool, content=result.content))
        return self

    def message(self, message: Message) -> PromptBuilder:
        self._messages.append(message)
        return self

    def messages(self, messages: Iterable[Message]) -> PromptBuilder:
        self._messages.extend(messages)
        return self

    def build(self) -> Prompt:
        return self._prompt.with_messages(self._messages)


def prompt(
    id: str,
    build: Callable[[PromptBuilder], Any] | None = None,
    params: LLMParams | None = None,
) -> Prompt:
    """Create a prompt, optionally filling it through ``build``.

    >>> p = prompt("calc", lambda b: b.system("You are a calculator."))
    """
    base = Prompt(id=id, params=params or LLMParams())
    if build is None:
        return base
    builder = PromptBuilder(base)
    build(builder)
    return builder.build()
