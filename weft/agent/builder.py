"""Builders for subgraphs, stages and strategies.

    strategy = StrategyBuilder("calculator")
    stage = strategy.stage()
    send = nodes.llm_send_stage_input()
    stage.edge(stage.node_start.forward_to(send))
    stage.edge(send.forward_to(stage.node_finish).on_assistant_message())
    agent = AIAgent(executor, strategy.build(), config)
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Any

from ..tools import DEFAULT_STAGE_NAME
from .edges import EdgeBuilder
from .graph import Stage, Subgraph, ToolSelectionStrategy
from .node import Edge, FinishNode, Node, NodeFn, StartNode
from .strategy import ContextTransitionPolicy, Strategy

logger = logging.getLogger(__name__)


class SubgraphBuilder:
    def __init__(
        self,
        name: str,
        tool_selection: ToolSelectionStrategy = ToolSelectionStrategy.ALL,
    ) -> None:
        self.name = name
        self.tool_selection = tool_selection
        self.node_start = StartNode()
        self.node_finish = FinishNode()

    def node(
        self,
        name: str,
        execute: NodeFn,
        input_type: Any = object,
        output_type: Any = object,
    ) -> Node:
        return Node(name, execute, input_type, output_type)

    def edge(self, edge: EdgeBuilder) -> Edge:
        built = edge.build()
        edge.source.add_edge(built)
        return built

    def subgraph(
        self,
        name: str,
        tool_selection: ToolSelectionStrategy = ToolSelectionStrategy.ALL,
    ) -> SubgraphBuilder:
        return SubgraphBuilder(name, tool_selection)

    def _check_reachability(self) -> None:
        seen: set[int] = {id(self.node_start)}
        queue: deque[Node] = deque([self.node_start])
        while queue:
            node = queue.popleft()
            if node is not self.node_finish and not node.edges:
                logger.warning("Node %s in %s has no outgoing edges", node.name, self.name)
            for edge in node.edges:
                if id(edge.target) not in seen:
                    seen.add(id(edge.target))
                    queue.append(edge.target)
        if id(self.node_finish) not in seen:
            logger.warning("Finish node of %s is not reachable from start", self.name)

    def build(self) -> Subgraph:
        self._check_reachability()
        return Subgraph(self.name, self.node_start, self.node_finish, self.tool_selection)


class StageBuilder(SubgraphBuilder):
    def build(self) -> Stage:
        self._check_reachability()
        return Stage(self.name, self.node_start, self.node_finish, self.tool_selection)


class StrategyBuilder:
    def __init__(
        self,
        name: str,
        llm_history_transition_policy: ContextTransitionPolicy = (
            ContextTransitionPolicy.PERSIST_LLM_HISTORY
        ),
    ) -> None:
        self.name = name
        self.llm_history_transition_policy = llm_history_transition_policy
        self._stages: list[StageBuilder] = []

    def stage(
        self,
        name: str = DEFAULT_STAGE_NAME,
        tool_selection: ToolSelectionStrategy = ToolSelectionStrategy.ALL,
    ) -> StageBuilder:
        stage = StageBuilder(name, tool_selection)
        self._stages.append(stage)
        return stage

    def build(self) -> Strategy:
        if not self._stages:
            raise ValueError(f"Strategy {self.name} has no stages")
        return Strategy(
            self.name,
            [s.build() for s in self._stages],
            self.llm_history_transition_policy,
        )


def simple_strategy(
    name: str,
    llm_history_transition_policy: ContextTransitionPolicy = (
        ContextTransitionPolicy.PERSIST_LLM_HISTORY
    ),
) -> tuple[StrategyBuilder, StageBuilder]:
    """Single-stage strategy: returns the strategy builder and its default stage."""
    builder = StrategyBuilder(name, llm_history_transition_policy)
    return builder, builder.stage()
