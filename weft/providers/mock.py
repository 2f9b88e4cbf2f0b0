"""
Mock prompt executor for tests and demos.

Responses are scripted with rules matched against the last message of the
prompt; the first matching rule answers, otherwise the default text is returned.

    executor = MockPromptExecutor(default_response="done")
    executor.when("add 2 and 3").call_tool("plus", {"a": 2, "b": 3})
    executor.when(lambda m: isinstance(m, ToolMessage)).respond("The sum is 5")
"""

from __future__ import annotations

import hashlib
import itertools
import json
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any, Callable

from ..prompt import Prompt
from ..types import AssistantMessage, LLModel, Message, Response, ToolCall, ToolDescriptor

MessageMatcher = Callable[[Message], bool]


@dataclass
class MockRule:
    matcher: MessageMatcher
    responses: list[Response] = field(default_factory=list)
    once: bool = False

    def respond(self, text: str) -> MockRule:
        self.responses = [AssistantMessage(text)]
        return self

    def call_tool(self, tool: str, args: dict[str, Any] | None = None) -> MockRule:
        return self.call_tools([(tool, args or {})])

    def call_tools(self, calls: list[tuple[str, dict[str, Any]]]) -> MockRule:
        self.responses = [ToolCall(None, name, json.dumps(args)) for name, args in calls]
        return self

    def only_once(self) -> MockRule:
        self.once = True
        return self


def _matcher(condition: str | MessageMatcher) -> MessageMatcher:
    if callable(condition):
        return condition
    return lambda message: condition in message.content


class MockPromptExecutor:
    """Implements ``PromptExecutor`` without network access.

    Every executed prompt is recorded in ``prompts`` with the tools offered in ``tools``.
    """

    def __init__(self, default_response: str = "Mock response", embedding_size: int = 8) -> None:
        self.default_response = default_response
        self.embedding_size = embedding_size
        self.rules: list[MockRule] = []
        self.prompts: list[Prompt] = []
        self.tools: list[list[ToolDescriptor]] = []
        self._ids = itertools.count(1)

    def when(self, condition: str | MessageMatcher) -> MockRule:
        rule = MockRule(_matcher(condition))
        self.rules.append(rule)
        return rule

    def _answer(self, prompt: Prompt) -> list[Response]:
        if not prompt.messages:
            return [AssistantMessage(self.default_response)]
        last = prompt.messages[-1]
        for rule in self.rules:
            if rule.responses and rule.matcher(last):
                if rule.once:
                    self.rules.remove(rule)
                return list(rule.responses)
        return [AssistantMessage(self.default_response)]

    async def execute(
        self, prompt: Prompt, model: LLModel, tools: list[ToolDescriptor] | None = None
    ) -> list[Response]:
        self.prompts.append(prompt)
        self.tools.append(list(tools or []))
        responses = []
        for response in self._answer(prompt):
            if isinstance(response, ToolCall):
                response = ToolCall(f"call_mock_{next(self._ids)}", response.tool, response.content)
            responses.append(response)
        return responses

    async def execute_streaming(self, prompt: Prompt, model: LLModel) -> AsyncIterator[str]:
        self.prompts.append(prompt)
        text = " ".join(r.content for r in self._answer(prompt) if isinstance(r, AssistantMessage))
        words = text.split(" ")
        for i, word in enumerate(words):
            yield word if i == len(words) - 1 else word + " "

    async def embed(self, text: str, model: LLModel) -> list[float]:
        digest = hashlib.sha256(text.encode()).digest()
        return [b / 255 for b in digest[: self.embedding_size]]
