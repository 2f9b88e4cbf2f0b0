"""Agent pipeline: ordered hook lists per lifecycle event.

Handlers run in registration order. Each call is isolated: an exception is
logged and the next handler still runs, so feature bugs never change the
control flow of the agent.
"""

from __future__ import annotations

import inspect
import logging
from collections import defaultdict
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Callable

from ..state import StorageKey
from .base import AgentFeature, FeatureConfig

if TYPE_CHECKING:
    from ..agent.context import AgentContext
    from ..agent.node import Node
    from ..agent.strategy import Strategy
    from ..prompt import Prompt
    from ..tools import Tool, ToolStage
    from ..types import Response, ToolDescriptor

logger = logging.getLogger(__name__)

Handler = Callable[..., Any]


class Hook(StrEnum):
    AGENT_CREATED = "agent_created"
    AGENT_STARTED = "agent_started"
    AGENT_FINISHED = "agent_finished"
    AGENT_RUN_ERROR = "agent_run_error"
    STRATEGY_STARTED = "strategy_started"
    STRATEGY_FINISHED = "strategy_finished"
    BEFORE_NODE = "before_node"
    AFTER_NODE = "after_node"
    BEFORE_LLM_CALL = "before_llm_call"
    AFTER_LLM_CALL = "after_llm_call"
    BEFORE_LLM_CALL_WITH_TOOLS = "before_llm_call_with_tools"
    AFTER_LLM_CALL_WITH_TOOLS = "after_llm_call_with_tools"
    TOOL_CALL = "tool_call"
    TOOL_VALIDATION_ERROR = "tool_validation_error"
    TOOL_CALL_FAILURE = "tool_call_failure"
    TOOL_CALL_RESULT = "tool_call_result"


class AgentPipeline:
    def __init__(self) -> None:
        self._handlers: dict[Hook, list[tuple[StorageKey, Handler]]] = defaultdict(list)
        self._configs: dict[StorageKey, FeatureConfig] = {}
        self._context_factories: dict[StorageKey, Callable[[AgentContext], Any]] = {}

    # -- Installation --

    def install(
        self,
        feature: AgentFeature,
        configure: Callable[[Any], Any] | None = None,
    ) -> None:
        config = feature.create_initial_config()
        if configure is not None:
            configure(config)
        feature.install(config, self)
        self._configs[feature.key] = config
        logger.debug("Installed feature %s", feature.key.name)

    @property
    def installed_features(self) -> list[StorageKey]:
        return list(self._configs)

    async def prepare_features(self) -> None:
        for key, config in self._configs.items():
            for processor in config.message_processors:
                try:
                    await processor.initialize()
                except Exception:
                    logger.exception("Failed to initialize processor for feature %s", key.name)

    async def close_features(self) -> None:
        for key, config in self._configs.items():
            for processor in config.message_processors:
                try:
                    await processor.close()
                except Exception:
                    logger.exception("Failed to close processor for feature %s", key.name)

    # -- Registration --

    def _register(self, hook: Hook, feature: AgentFeature, handler: Handler) -> None:
        self._handlers[hook].append((feature.key, handler))

    def intercept_agent_created(self, feature: AgentFeature, handler: Handler) -> None:
        self._register(Hook.AGENT_CREATED, feature, handler)

    def intercept_agent_started(self, feature: AgentFeature, handler: Handler) -> None:
        self._register(Hook.AGENT_STARTED, feature, handler)

    def intercept_agent_finished(self, feature: AgentFeature, handler: Handler) -> None:
        self._register(Hook.AGENT_FINISHED, feature, handler)

    def intercept_agent_run_error(self, feature: AgentFeature, handler: Handler) -> None:
        """``handler(strategy_name, error)`` may return True to mark the error handled."""
        self._register(Hook.AGENT_RUN_ERROR, feature, handler)

    def intercept_strategy_started(self, feature: AgentFeature, handler: Handler) -> None:
        self._register(Hook.STRATEGY_STARTED, feature, handler)

    def intercept_strategy_finished(self, feature: AgentFeature, handler: Handler) -> None:
        self._register(Hook.STRATEGY_FINISHED, feature, handler)

    def intercept_before_node(self, feature: AgentFeature, handler: Handler) -> None:
        self._register(Hook.BEFORE_NODE, feature, handler)

    def intercept_after_node(self, feature: AgentFeature, handler: Handler) -> None:
        self._register(Hook.AFTER_NODE, feature, handler)

    def intercept_before_llm_call(self, feature: AgentFeature, handler: Handler) -> None:
        self._register(Hook.BEFORE_LLM_CALL, feature, handler)

    def intercept_after_llm_call(self, feature: AgentFeature, handler: Handler) -> None:
        self._register(Hook.AFTER_LLM_CALL, feature, handler)

    def intercept_before_llm_call_with_tools(self, feature: AgentFeature, handler: Handler) -> None:
        self._register(Hook.BEFORE_LLM_CALL_WITH_TOOLS, feature, handler)

    def intercept_after_llm_call_with_tools(self, feature: AgentFeature, handler: Handler) -> None:
        self._register(Hook.AFTER_LLM_CALL_WITH_TOOLS, feature, handler)

    def intercept_tool_call(self, feature: AgentFeature, handler: Handler) -> None:
        self._register(Hook.TOOL_CALL, feature, handler)

    def intercept_tool_validation_error(self, feature: AgentFeature, handler: Handler) -> None:
        self._register(Hook.TOOL_VALIDATION_ERROR, feature, handler)

    def intercept_tool_call_failure(self, feature: AgentFeature, handler: Handler) -> None:
        self._register(Hook.TOOL_CALL_FAILURE, feature, handler)

    def intercept_tool_call_result(self, feature: AgentFeature, handler: Handler) -> None:
        self._register(Hook.TOOL_CALL_RESULT, feature, handler)

    def intercept_context_feature(
        self, feature: AgentFeature, factory: Callable[[AgentContext], Any]
    ) -> None:
        """Register a factory creating one feature instance per agent context."""
        self._context_factories[feature.key] = factory

    def create_context_feature(self, key: StorageKey, context: AgentContext) -> Any | None:
        factory = self._context_factories.get(key)
        return factory(context) if factory is not None else None

    # -- Dispatch --

    async def _fire(self, hook: Hook, *args: Any) -> list[Any]:
        results: list[Any] = []
        for key, handler in self._handlers.get(hook, ()):
            try:
                result = handler(*args)
                if inspect.isawaitable(result):
                    result = await result
                results.append(result)
            except Exception:
                logger.exception("Feature %s failed in %s handler", key.name, hook.value)
        return results

    async def on_agent_created(self, strategy: Strategy, agent: Any) -> None:
        await self._fire(Hook.AGENT_CREATED, strategy, agent)

    async def on_agent_started(self, strategy_name: str) -> None:
        await self._fire(Hook.AGENT_STARTED, strategy_name)

    async def on_agent_finished(self, strategy_name: str, result: str | None) -> None:
        await self._fire(Hook.AGENT_FINISHED, strategy_name, result)

    async def on_agent_run_error(self, strategy_name: str, error: Exception) -> bool:
        results = await self._fire(Hook.AGENT_RUN_ERROR, strategy_name, error)
        return any(r is True for r in results)

    async def on_strategy_started(self, strategy: Strategy) -> None:
        await self._fire(Hook.STRATEGY_STARTED, strategy)

    async def on_strategy_finished(self, strategy_name: str, result: Any) -> None:
        await self._fire(Hook.STRATEGY_FINISHED, strategy_name, result)

    async def on_before_node(self, node: Node, context: AgentContext, input: Any) -> None:
        await self._fire(Hook.BEFORE_NODE, node, context, input)

    async def on_after_node(
        self, node: Node, context: AgentContext, input: Any, output: Any
    ) -> None:
        await self._fire(Hook.AFTER_NODE, node, context, input, output)

    async def on_before_llm_call(self, prompt: Prompt) -> None:
        await self._fire(Hook.BEFORE_LLM_CALL, prompt)

    async def on_after_llm_call(self, responses: list[Response]) -> None:
        await self._fire(Hook.AFTER_LLM_CALL, responses)

    async def on_before_llm_call_with_tools(
        self, prompt: Prompt, tools: list[ToolDescriptor]
    ) -> None:
        await self._fire(Hook.BEFORE_LLM_CALL_WITH_TOOLS, prompt, tools)

    async def on_after_llm_call_with_tools(
        self, responses: list[Response], tools: list[ToolDescriptor]
    ) -> None:
        await self._fire(Hook.AFTER_LLM_CALL_WITH_TOOLS, responses, tools)

    async def on_tool_call(self, stage: ToolStage, tool: Tool, args: Any) -> None:
        await self._fire(Hook.TOOL_CALL, stage, tool, args)

    async def on_tool_validation_error(
        self, stage: ToolStage, tool: Tool, args: Any, error: str
    ) -> None:
        await self._fire(Hook.TOOL_VALIDATION_ERROR, stage, tool, args, error)

    async def on_tool_call_failure(
        self, stage: ToolStage, tool: Tool, args: Any, error: Exception
    ) -> None:
        await self._fire(Hook.TOOL_CALL_FAILURE, stage, tool, args, error)

    async def on_tool_call_result(
        self, stage: ToolStage, tool: Tool, args: Any, result: Any
    ) -> None:
        await self._fire(Hook.TOOL_CALL_RESULT, stage, tool, args, result)
