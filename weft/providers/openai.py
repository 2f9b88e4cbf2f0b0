"""OpenAI-compatible prompt executor."""

from __future__ import annotations

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
    ToolCall,
    ToolChoice,
    ToolDescriptor,
    ToolMessage,
)
from .base import BaseLLMProvider


def messages_to_dicts(messages: list[Message] | tuple[Message, ...]) -> list[dict]:
    """Consecutive tool calls are grouped into one assistant message."""
    result: list[dict] = []
    for m in messages:
        if isinstance(m, ToolCall):
            call = {
                "id": m.id,
                "type": "function",
                "function": {"name": m.tool, "arguments": m.content or "{}"},
            }
            last = result[-1] if result else None
            if last is not None and last["role"] == "assistant" and "tool_calls" in last:
                last["tool_calls"].append(call)
            else:
                result.append({"role": "assistant", "content": None, "tool_calls": [call]})
        elif isinstance(m, ToolMessage):
            result.append({"role": "tool", "tool_call_id": m.id, "content": m.content})
        else:
            result.append({"role": m.role, "content": m.content})
    return result


def tools_to_dicts(tools: list[ToolDescriptor]) -> list[dict]:
    return [
        {
            "type": "function",
            "function": {
                "name": t.name,
                "description": t.description,
                "parameters": t.parameters,
            },
        }
        for t in tools
    ]


def tool_choice_to_param(choice: ToolChoice) -> str | dict:
    if choice.mode == "named":
        return {"type": "function", "function": {"name": choice.tool}}
    return choice.mode


def responses_from_choice(message: Any) -> list[Response]:
    if message.tool_calls:
        return [
            ToolCall(id=tc.id, tool=tc.function.name, content=tc.function.arguments or "")
            for tc in message.tool_calls
        ]
    return [AssistantMessage(message.content or "")]


class OpenAIProvider(BaseLLMProvider):
    provider_name = "openai"

    def __init__(self, config: ProviderConfig | None = None, **kwargs) -> None:
        super().__init__(**kwargs)
        try:
            from openai import AsyncOpenAI
        except ImportError:
            raise ImportError("pip install openai") from None
        config = config or ProviderConfig.from_env("OPENAI")
        self._client = AsyncOpenAI(
            api_key=config.api_key, base_url=config.base_url, timeout=config.timeout
        )
        self._max_tokens = config.max_tokens

    def _request_kwargs(
        self, prompt: Prompt, model: LLModel, tools: list[ToolDescriptor]
    ) -> dict[str, Any]:
        params = prompt.params
        kwargs: dict[str, Any] = {
            "model": model.id,
            "messages": messages_to_dicts(prompt.messages),
            "max_tokens": self._max_tokens,
        }
        if params.temperature is not None:
            kwargs["temperature"] = params.temperature
        if params.number_of_choices > 1:
            kwargs["n"] = params.number_of_choices
        if tools:
            kwargs["tools"] = tools_to_dicts(tools)
            if params.tool_choice is not None:
                kwargs["tool_choice"] = tool_choice_to_param(params.tool_choice)
        if params.schema is not None:
            kwargs["response_format"] = {
                "type": "json_schema",
                "json_schema": {"name": prompt.id, "schema": params.schema},
            }
        return kwargs

    async def _do_execute(
        self, prompt: Prompt, model: LLModel, tools: list[ToolDescriptor]
    ) -> list[Response]:
        import openai

        try:
            resp = await self._client.chat.completions.create(
                **self._request_kwargs(prompt, model, tools)
            )
        except openai.AuthenticationError as e:
            raise LLMAuthError(self.provider_name) from e
        except openai.RateLimitError as e:
            raise LLMRateLimitError(self.provider_name) from e
        except openai.APIStatusError as e:
            raise LLMError(
                "LLM_API_ERROR", self.provider_name, str(e), e.status_code, e
            ) from e

        responses: list[Response] = []
        for choice in resp.choices:
            responses.extend(responses_from_choice(choice.message))
        return responses

    async def _do_stream(self, prompt: Prompt, model: LLModel) -> AsyncIterator[str]:
        kwargs = self._request_kwargs(prompt, model, [])
        kwargs["stream"] = True
        resp = await self._client.chat.completions.create(**kwargs)
        async for chunk in resp:
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta
            if delta and delta.content:
                yield delta.content

    async def _do_embed(self, text: str, model: LLModel) -> list[float]:
        resp = await self._client.embeddings.create(model=model.id, input=text)
        return list(resp.data[0].embedding)
