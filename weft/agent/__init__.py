"""Strategy graphs, the execution loop and the agent runner."""

from .agent import AIAgent
from .agent_tool import AgentToolResult, AIAgentTool
from .builder import StageBuilder, StrategyBuilder, SubgraphBuilder, simple_strategy
from .context import AgentContext
from .edges import EdgeBuilder
from .environment import (
    AgentEnvironment,
    AgentErrorMessage,
    AgentServiceError,
    AgentServiceErrorType,
    AgentTerminationMessage,
    AgentToolCallMessage,
    AgentToolCallsMessage,
    EnvironmentToolResultMessage,
    EnvironmentToolResultsMessage,
    SubAgentEnvironment,
    ToolCallContent,
    ToolResultContent,
)
from .graph import AutoSelectForTask, Stage, Subgraph, Tools, ToolSelectionStrategy
from .node import Edge, FinishNode, Node, ResolvedEdge, StartNode
from .strategies import chat_strategy, single_run_strategy
from .strategy import ContextTransitionPolicy, Strategy

__all__ = [
    "AIAgent", "AIAgentTool", "AgentToolResult",
    "Node", "StartNode", "FinishNode", "Edge", "ResolvedEdge", "EdgeBuilder",
    "Subgraph", "Stage", "Strategy", "ContextTransitionPolicy",
    "ToolSelectionStrategy", "Tools", "AutoSelectForTask",
    "SubgraphBuilder", "StageBuilder", "StrategyBuilder", "simple_strategy",
    "single_run_strategy", "chat_strategy",
    "AgentContext",
    "AgentEnvironment", "SubAgentEnvironment",
    "ToolCallContent", "ToolResultContent",
    "AgentToolCallMessage", "AgentToolCallsMessage", "AgentErrorMessage", "AgentTerminationMessage",
    "EnvironmentToolResultMessage", "EnvironmentToolResultsMessage",
    "AgentServiceError", "AgentServiceErrorType",
]
