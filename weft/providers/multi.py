"""Routes each request to the executor registered for ``model.provider``."""

from __future__ import annotations

from collections.abc import AsyncIterator

from ..errors import LLMError
from ..prompt import Prompt
from ..types import LLModel, PromptExecutor, Response, ToolDescriptor


class MultiLLMPromptExecutor:
    def __init__(self, providers: dict[str, PromptExecutor]) -> None:
        self._providers = dict(providers)

    def _executor(self, model: LLModel) -> PromptExecutor:
        executor = self._providers.get(model.provider)
        if executor is None:
            raise LLMError(
                "LLM_PROVIDER_NOT_FOUND",
                model.provider,
                f"No executor registered for provider {model.provider!r}",
            )
        return executor

    async def execute(
        self, prompt: Prompt, model: LLModel, tools: list[ToolDescriptor] | None = None
    ) -> list[Response]:
        return await self._executor(model).execute(prompt, model, tools)

    async def execute_streaming(self, prompt: Prompt, model: LLModel) -> AsyncIterator[str]:
        async for chunk in self._executor(model).execute_streaming(prompt, model):
            yield chunk

    async def embed(self, text: str, model: LLModel) -> list[float]:
        return await self._executor(model).embed(text, model)
