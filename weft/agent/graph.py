"""Subgraphs and stages: the node-by-node execution loop."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import BaseModel, Field

from ..errors import AgentStuckInNodeError, MaxIterationsReachedError
from ..llm import JsonStructuredData
from ..types import ToolDescriptor
from .node import FinishNode, Node, StartNode

if TYPE_CHECKING:
    from .context import AgentContext

logger = logging.getLogger(__name__)


class ToolSelectionStrategy:
    """Which of the context's tools a subgraph exposes to the LLM."""

    ALL: ClassVar[ToolSelectionStrategy]
    NONE: ClassVar[ToolSelectionStrategy]


@dataclass(frozen=True)
class AllTools(ToolSelectionStrategy):
    pass


@dataclass(frozen=True)
class NoTools(ToolSelectionStrategy):
    pass


@dataclass(frozen=True)
class Tools(ToolSelectionStrategy):
    tools: tuple[ToolDescriptor, ...]

    def __init__(self, tools: list[ToolDescriptor] | tuple[ToolDescriptor, ...]) -> None:
        object.__setattr__(self, "tools", tuple(tools))


@dataclass(frozen=True)
class AutoSelectForTask(ToolSelectionStrategy):
    """Let the LLM pick the tools relevant for ``subtask_description``."""

    subtask_description: str
    max_retries: int = 3


ToolSelectionStrategy.ALL = AllTools()
ToolSelectionStrategy.NONE = NoTools()


class SelectedTools(BaseModel):
    tools: list[str] = Field(
        default_factory=list,
        description="Names of the tools needed to solve the subtask",
    )


def _selection_request(tools: list[ToolDescriptor], subtask: str) -> str:
    listing = "\n".join(f"- {t.name}: {t.description}" for t in tools)
    return (
        "Select the tools needed to solve the following subtask. "
        "Choose only from the available tools.\n\n"
        f"Subtask: {subtask}\n\nAvailable tools:\n{listing}"
    )


class Subgraph(Node):
    def __init__(
        self,
        name: str,
        start: StartNode,
        finish: FinishNode,
        tool_selection: ToolSelectionStrategy = ToolSelectionStrategy.ALL,
    ) -> None:
        super().__init__(name)
        self.start = start
        self.finish = finish
        self.tool_selection = tool_selection

    async def _run(self, context: AgentContext, input: Any) -> Any:
        if isinstance(self.tool_selection, AllTools):
            return await self.run_graph(context, input)

        tools = await self._select_tools(context)
        inner = context.copy_with_tools(tools)
        result = await self.run_graph(inner, input)

        async with inner.llm.read_session() as session:
            final_prompt = session.prompt
        async with context.llm.write_session() as session:
            session.rewrite_prompt(lambda _: final_prompt)
        return result

    async def _select_tools(self, context: AgentContext) -> list[ToolDescriptor]:
        selection = self.tool_selection
        if isinstance(selection, NoTools):
            return []
        if isinstance(selection, Tools):
            return list(selection.tools)
        if not isinstance(selection, AutoSelectForTask):
            raise TypeError(f"Unknown tool selection strategy: {selection!r}")

        async with context.llm.write_session() as session:
            initial_prompt = session.prompt
            available = list(session.tools)
            session.update_prompt(
                lambda b: b.user(_selection_request(available, selection.subtask_description))
            )
            response = await session.request_llm_structured(
                JsonStructuredData(SelectedTools), retries=selection.max_retries
            )
            session.rewrite_prompt(lambda _: initial_prompt)

        chosen = set(response.structure.tools)
        selected = [t for t in available if t.name in chosen]
        logger.info("Subgraph %s selected tools: %s", self.name, [t.name for t in selected])
        return selected

    async def run_graph(self, context: AgentContext, input: Any) -> Any:
        current: Node = self.start
        value = input
        while current is not self.finish:
            async with context.state_manager.lock() as state:
                if state.iterations >= context.config.max_agent_iterations:
                    logger.error(
                        "Max iterations limit (%d) reached in node %s [%s, %s, %s]",
                        context.config.max_agent_iterations,
                        current.name,
                        context.stage_name,
                        context.strategy_id,
                        context.session_id,
                    )
                    raise MaxIterationsReachedError(context.config.max_agent_iterations)
                state.iterations += 1

            suffix = (context.stage_name, context.strategy_id, context.session_id)
            logger.info("Executing node %s [%s, %s, %s]", current.name, *suffix)
            output = await current.execute(context, value)
            logger.info("Completed node %s [%s, %s, %s]", current.name, *suffix)
            resolved = await current.resolve_edge(output)
            if resolved is None:
                logger.error(
                    "Agent stuck in node %s with output %r [%s, %s, %s]",
                    current.name,
                    output,
                    context.stage_name,
                    context.strategy_id,
                    context.session_id,
                )
                raise AgentStuckInNodeError(current.name, output)
            current = resolved.edge.target
            value = resolved.output
        return value


class Stage(Subgraph):
    """Top-level subgraph of a strategy; its tools come from the registry stage of the same name."""
