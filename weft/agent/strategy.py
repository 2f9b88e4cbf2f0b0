"""Strategy: an ordered list of stages run against one shared prompt history."""

from __future__ import annotations

import logging
import uuid
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from ..config import AgentConfig
from ..llm import LLMContext, PromptExecutorProxy
from ..state import AgentStateManager, AgentStorage
from ..tools import ToolRegistry
from ..types import PromptExecutor
from .context import AgentContext
from .environment import AgentEnvironment, SubAgentEnvironment
from .graph import Stage
from .node import FinishNode, Node, StartNode

if TYPE_CHECKING:
    from ..features.pipeline import AgentPipeline

logger = logging.getLogger(__name__)


class ContextTransitionPolicy(StrEnum):
    """What happens to the LLM history between two stages."""

    PERSIST_LLM_HISTORY = "persist"
    COMPRESS_LLM_HISTORY = "compress"
    CLEAR_LLM_HISTORY = "clear"


def _passthrough_stage(name: str, body: Any) -> Stage:
    start, finish = StartNode(), FinishNode()
    node = Node(name, body)
    start.add_edge(start.forward_to(node).build())
    node.add_edge(node.forward_to(finish).build())
    return Stage(name, start, finish)


def _compress_history_stage() -> Stage:
    async def compress(context: AgentContext, input: Any) -> Any:
        async with context.llm.write_session() as session:
            await session.replace_history_with_tldr()
        return input

    return _passthrough_stage("__compress_history__", compress)


def _clear_history_stage() -> Stage:
    async def clear(context: AgentContext, input: Any) -> Any:
        async with context.llm.write_session() as session:
            session.clear_history()
        return input

    return _passthrough_stage("__clear_history__", clear)


class Strategy(Node):
    def __init__(
        self,
        name: str,
        stages: list[Stage],
        llm_history_transition_policy: ContextTransitionPolicy = (
            ContextTransitionPolicy.PERSIST_LLM_HISTORY
        ),
    ) -> None:
        super().__init__(name, input_type=str, output_type=str)
        self.llm_history_transition_policy = llm_history_transition_policy
        self.stages = self._with_transitions(stages)

    def _with_transitions(self, stages: list[Stage]) -> list[Stage]:
        policy = self.llm_history_transition_policy
        if policy is ContextTransitionPolicy.PERSIST_LLM_HISTORY:
            return list(stages)
        result: list[Stage] = []
        for i, stage in enumerate(stages):
            if i > 0:
                if policy is ContextTransitionPolicy.COMPRESS_LLM_HISTORY:
                    result.append(_compress_history_stage())
                else:
                    result.append(_clear_history_stage())
            result.append(stage)
        return result

    async def run(
        self,
        session_id: str,
        user_input: str,
        tool_registry: ToolRegistry,
        executor: PromptExecutor,
        environment: AgentEnvironment,
        config: AgentConfig,
        pipeline: AgentPipeline,
        state_manager: AgentStateManager | None = None,
    ) -> None:
        """Run every stage in order, then report the outcome to ``environment``.

        Failures are not raised: they go to ``environment.report_problem``.
        Pass ``state_manager`` to share an existing iteration budget.
        """
        if not isinstance(executor, PromptExecutorProxy):
            executor = PromptExecutorProxy(executor, pipeline)
        if state_manager is None:
            state_manager = AgentStateManager()
        storage = AgentStorage()
        descriptors = tool_registry.stages_tool_descriptors
        prompt, model = config.prompt, config.model
        value: Any = user_input

        try:
            await pipeline.on_strategy_started(self)
            for stage in self.stages:
                logger.info("Starting stage %s [%s, %s]", stage.name, self.name, session_id)
                llm = LLMContext(
                    tools=descriptors.get(stage.name, []),
                    tool_registry=tool_registry,
                    prompt=prompt,
                    model=model,
                    executor=executor,
                    environment=environment,
                    config=config,
                )
                context = AgentContext(
                    environment=environment,
                    agent_input=user_input,
                    config=config,
                    llm=llm,
                    state_manager=state_manager,
                    storage=storage,
                    session_id=session_id,
                    strategy_id=self.name,
                    stage_name=stage.name,
                    pipeline=pipeline,
                )
                value = await stage._run(context, value)
                logger.info("Completed stage %s [%s, %s]", stage.name, self.name, session_id)
                async with llm.read_session() as session:
                    prompt, model = session.prompt, session.model
            await pipeline.on_strategy_finished(self.name, value)
        except Exception as e:
            logger.error("Strategy %s failed [%s]: %s", self.name, session_id, e)
            await environment.report_problem(e)
            return

        await environment.send_termination(None if value is None else str(value))

    async def _run(self, context: AgentContext, input: Any) -> Any:
        environment = SubAgentEnvironment(context.environment)
        await self.run(
            session_id=str(uuid.uuid4()),
            user_input=input,
            tool_registry=context.llm.tool_registry,
            executor=context.llm.executor,
            environment=environment,
            config=context.config,
            pipeline=context.pipeline,
            state_manager=context.state_manager,
        )
        return await environment.result()
