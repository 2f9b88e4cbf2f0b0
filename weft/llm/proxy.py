"""Executor proxy that reports every LLM call to the feature pipeline."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import TYPE_CHECKING

from ..prompt import Prompt
from ..types import LLModel, PromptExecutor, Response, ToolDescriptor

if TYPE_CHECKING:
    from ..features.pipeline import AgentPipeline


class PromptExecutorProxy:
    def __init__(self, executor: PromptExecutor, pipeline: AgentPipeline) -> None:
        self.executor = executor
        self._pipeline = pipeline

    async def execute(
        self, prompt: Prompt, model: LLModel, tools: list[ToolDescriptor] | None = None
    ) -> list[Response]:
        tools = list(tools or [])
        if tools:
            await self._pipeline.on_before_llm_call_with_tools(prompt, tools)
        else:
            await self._pipeline.on_before_llm_call(prompt)

        responses = await self.executor.execute(prompt, model, tools)

        if tools:
            await self._pipeline.on_after_llm_call_with_tools(responses, tools)
        else:
            await self._pipeline.on_after_llm_call(responses)
        return responses

    async def execute_streaming(self, prompt: Prompt, model: LLModel) -> AsyncIterator[str]:
        await self._pipeline.on_before_llm_call(prompt)
        async for chunk in self.executor.execute_streaming(prompt, model):
            yield chunk

    async def embed(self, text: str, model: LLModel) -> list[float]:
        return await self.executor.embed(text, model)
