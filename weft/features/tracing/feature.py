"""Tracing: turns every pipeline hook into an event record for the writers."""

from __future__ import annotations

import logging
from dataclasses import asdict, is_dataclass
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from ...state import StorageKey
from ..base import FeatureConfig
from ..messages import (
    AgentCreateEvent,
    AgentFinishedEvent,
    AgentRunErrorEvent,
    AgentStartedEvent,
    LLMCallEndEvent,
    LLMCallStartEvent,
    LLMCallWithToolsEndEvent,
    LLMCallWithToolsStartEvent,
    NodeExecutionEndEvent,
    NodeExecutionStartEvent,
    StrategyFinishedEvent,
    StrategyStartEvent,
    ToolCallEvent,
    ToolCallFailureEvent,
    ToolCallResultEvent,
    ToolValidationErrorEvent,
)
from ..pipeline import AgentPipeline

if TYPE_CHECKING:
    from ...agent.context import AgentContext
    from ...agent.node import Node
    from ...agent.strategy import Strategy
    from ...prompt import Prompt
    from ...tools import Tool, ToolStage
    from ...types import Response, ToolDescriptor

logger = logging.getLogger(__name__)


class TraceFeatureConfig(FeatureConfig):
    pass


def _message_dict(message: Any) -> dict[str, Any]:
    return asdict(message) if is_dataclass(message) else {"content": str(message)}


def _args(args: Any) -> Any:
    if isinstance(args, BaseModel):
        return args.model_dump(mode="json")
    return args


class Tracing:
    """Records agent execution as ``FeatureEvent`` objects.

        pipeline.install(Tracing(), lambda c: c.add_message_processor(TraceLogWriter(log)))
    """

    key: StorageKey = StorageKey("agent_tracing")

    def create_initial_config(self) -> TraceFeatureConfig:
        return TraceFeatureConfig()

    def install(self, config: TraceFeatureConfig, pipeline: AgentPipeline) -> None:
        if not config.message_processors:
            logger.warning(
                "Tracing installed without message processors; events will be dropped"
            )
        emit = config.dispatch

        async def agent_created(strategy: Strategy, agent: Any) -> None:
            await emit(AgentCreateEvent(strategy_name=strategy.name))

        async def agent_started(strategy_name: str) -> None:
            await emit(AgentStartedEvent(strategy_name=strategy_name))

        async def agent_finished(strategy_name: str, result: str | None) -> None:
            await emit(AgentFinishedEvent(strategy_name=strategy_name, result=result))

        async def agent_run_error(strategy_name: str, error: Exception) -> None:
            await emit(AgentRunErrorEvent(strategy_name=strategy_name, error=str(error)))

        async def strategy_started(strategy: Strategy) -> None:
            await emit(StrategyStartEvent(strategy_name=strategy.name))

        async def strategy_finished(strategy_name: str, result: Any) -> None:
            await emit(StrategyFinishedEvent(strategy_name=strategy_name, result=str(result)))

        async def before_node(node: Node, context: AgentContext, input: Any) -> None:
            await emit(
                NodeExecutionStartEvent(
                    node_name=node.name, stage_name=context.stage_name, input=str(input)
                )
            )

        async def after_node(node: Node, context: AgentContext, input: Any, output: Any) -> None:
            await emit(
                NodeExecutionEndEvent(
                    node_name=node.name,
                    stage_name=context.stage_name,
                    input=str(input),
                    output=str(output),
                )
            )

        async def before_llm_call(prompt: Prompt) -> None:
            await emit(
                LLMCallStartEvent(
                    prompt_id=prompt.id, messages=[_message_dict(m) for m in prompt.messages]
                )
            )

        async def after_llm_call(responses: list[Response]) -> None:
            await emit(LLMCallEndEvent(responses=[_message_dict(r) for r in responses]))

        async def before_llm_call_with_tools(prompt: Prompt, tools: list[ToolDescriptor]) -> None:
            await emit(
                LLMCallWithToolsStartEvent(
                    prompt_id=prompt.id,
                    messages=[_message_dict(m) for m in prompt.messages],
                    tools=[t.name for t in tools],
                )
            )

        async def after_llm_call_with_tools(
            responses: list[Response], tools: list[ToolDescriptor]
        ) -> None:
            await emit(
                LLMCallWithToolsEndEvent(
                    responses=[_message_dict(r) for r in responses],
                    tools=[t.name for t in tools],
                )
            )

        async def tool_call(stage: ToolStage, tool: Tool, args: Any) -> None:
            await emit(
                ToolCallEvent(stage_name=stage.name, tool_name=tool.name, tool_args=_args(args))
            )

        async def tool_validation_error(stage: ToolStage, tool: Tool, args: Any, error: str) -> None:
            await emit(
                ToolValidationErrorEvent(
                    stage_name=stage.name, tool_name=tool.name, tool_args=_args(args), error=error
                )
            )

        async def tool_call_failure(
            stage: ToolStage, tool: Tool, args: Any, error: Exception
        ) -> None:
            await emit(
                ToolCallFailureEvent(
                    stage_name=stage.name,
                    tool_name=tool.name,
                    tool_args=_args(args),
                    error=f"{type(error).__name__}: {error}",
                )
            )

        async def tool_call_result(stage: ToolStage, tool: Tool, args: Any, result: Any) -> None:
            await emit(
                ToolCallResultEvent(
                    stage_name=stage.name,
                    tool_name=tool.name,
                    tool_args=_args(args),
                    result=tool.encode_result(result),
                )
            )

        pipeline.intercept_agent_created(self, agent_created)
        pipeline.intercept_agent_started(self, agent_started)
        pipeline.intercept_agent_finished(self, agent_finished)
        pipeline.intercept_agent_run_error(self, agent_run_error)
        pipeline.intercept_strategy_started(self, strategy_started)
        pipeline.intercept_strategy_finished(self, strategy_finished)
        pipeline.intercept_before_node(self, before_node)
        pipeline.intercept_after_node(self, after_node)
        pipeline.intercept_before_llm_call(self, before_llm_call)
        pipeline.intercept_after_llm_call(self, after_llm_call)
        pipeline.intercept_before_llm_call_with_tools(self, before_llm_call_with_tools)
        pipeline.intercept_after_llm_call_with_tools(self, after_llm_call_with_tools)
        pipeline.intercept_tool_call(self, tool_call)
        pipeline.intercept_tool_validation_error(self, tool_validation_error)
        pipeline.intercept_tool_call_failure(self, tool_call_failure)
        pipeline.intercept_tool_call_result(self, tool_call_result)
