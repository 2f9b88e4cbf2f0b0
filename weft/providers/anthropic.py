"""Anthropic Claude prompt executor."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from typing import Any

from ..config import ProviderConfig
from ..errors import LLMAuthError, LLMError, LLMRateLimitError
from ..prompt import Prompt
from ..types import (
    AssistantMessage,
    LLModel,
    Message,
    Response,
    SystemMessage,
    ToolCall,
    ToolChoice,
    ToolDescriptor,
    ToolMessage,
)
from .base import BaseLLMProvider


def _append(result: list[dict], role: str, block: dict) -> None:
    # consecutive blocks of one role share a message
    if result and result[-1]["role"] == role:
        result[-1]["content"].append(block)
    else:
        result.append({"role": role, "content": [block]})


def messages_to_dicts(messages: list[Message] | tuple[Message, ...]) -> tuple[str, list[dict]]:
    """Split out the system prompt and map the rest to Anthropic content blocks."""
    system = "\n\n".join(m.content for m in messages if isinstance(m, SystemMessage))
    result: list[dict] = []
    for m in messages:
        if isinstance(m, SystemMessage):
            continue
        if isinstance(m, ToolCall):
            _append(
                result,
                "assistant",
                {"type": "tool_use", "id": m.id, "name": m.tool, "input": m.args},
            )
        elif isinstance(m, ToolMessage):
            _append(
                result,
                "user",
                {"type": "tool_result", "tool_use_id": m.id, "content": m.content},
            )
        else:
            _append(result, m.role, {"type": "text", "text": m.content})
    return system, result


def tools_to_dicts(tools: list[ToolDescriptor]) -> list[dict]:
    return [
        {"name": t.name, "description": t.description, "input_schema": t.parameters}
        for t in tools
    ]


def tool_choice_to_param(choice: ToolChoice) -> dict | None:
    match choice.mode:
        case "auto":
            return {"type": "auto"}
        case "required":
            return {"type": "any"}
        case "named":
            return {"type": "tool", "name": choice.tool}
        case _:
            return None


def responses_from_content(content: list[Any]) -> list[Response]:
    text = ""
    calls: list[Response] = []
    for block in content:
        if block.type == "text":
            text += block.text
        elif block.type == "tool_use":
            calls.append(ToolCall(id=block.id, tool=block.name, content=json.dumps(block.input)))
    return calls or [AssistantMessage(text)]


class AnthropicProvider(BaseLLMProvider):
    provider_name = "anthropic"

    def __init__(self, config: ProviderConfig | None = None, **kwargs) -> None:
        super().__init__(**kwargs)
        try:
            from anthropic import AsyncAnthropic
        except ImportError:
            raise ImportError("pip install anthropic") from None
        config = config or ProviderConfig.from_env("ANTHROPIC")
        self._client = AsyncAnthropic(
            api_key=config.api_key, base_url=config.base_url, timeout=config.timeout
        )
        self._max_tokens = config.max_tokens

    def _request_kwargs(
        self, prompt: Prompt, model: LLModel, tools: list[ToolDescriptor]
    ) -> dict[str, Any]:
        system, msgs = messages_to_dicts(prompt.messages)
        kwargs: dict[str, Any] = {"model": model.id, "max_tokens": self._max_tokens, "messages": msgs}
        if system:
            kwargs["system"] = system
        if prompt.params.temperature is not None:
            kwargs["temperature"] = prompt.params.temperature
        if tools and not (prompt.params.tool_choice and prompt.params.tool_choice.mode == "none"):
            kwargs["tools"] = tools_to_dicts(tools)
            if prompt.params.tool_choice is not None:
                choice = tool_choice_to_param(prompt.params.tool_choice)
                if choice is not None:
                    kwargs["tool_choice"] = choice
        return kwargs

    async def _do_execute(
        self, prompt: Prompt, model: LLModel, tools: list[ToolDescriptor]
    ) -> list[Response]:
        import anthropic

        try:
            resp = await self._client.messages.create(**self._request_kwargs(prompt, model, tools))
        except anthropic.AuthenticationError as e:
            raise LLMAuthError(self.provider_name) from e
        except anthropic.RateLimitError as e:
            raise LLMRateLimitError(self.provider_name) from e
        except anthropic.APIStatusError as e:
            raise LLMError("LLM_API_ERROR", self.provider_name, str(e), e.status_code, e) from e
        return responses_from_content(resp.content)

    async def _do_stream(self, prompt: Prompt, model: LLModel) -> AsyncIterator[str]:
        async with self._client.messages.stream(**self._request_kwargs(prompt, model, [])) as stream:
            async for text in stream.text_stream:
                yield text
