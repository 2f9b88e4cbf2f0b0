"""
Weft - graph-based agent orchestration
======================================

An agent runs a **strategy**: an ordered list of stages, each a graph of nodes
joined by guarded edges. A node takes the previous node's output, does some
work (usually talking to the LLM through a session), and the first edge whose
guard matches carries its output on to the next node.

## Map

- `weft.agent`: nodes, edges, builders, strategies and the `AIAgent` runner.
- `weft.llm`: `LLMContext` with read/write sessions over prompt, tools and model.
- `weft.tools`: tool definitions, the stage-aware `ToolRegistry` and `SafeTool`.
- `weft.features`: the hook pipeline, `EventHandler` and `Tracing`.
- `weft.memory`: fact storage scoped by subject and visibility.
- `weft.providers`: OpenAI, Anthropic, routing and mock prompt executors.

## Quick start

```python
from pydantic import BaseModel

from weft import AIAgent, AgentConfig, LLModel, define_tool, simple_strategy, simple_tool_registry
from weft.agent import nodes
from weft.providers import OpenAIProvider


class PlusArgs(BaseModel):
    a: int
    b: int


plus = define_tool("plus", "Add two numbers", PlusArgs, lambda args: args.a + args.b)

builder, stage = simple_strategy("calculator")
send, call, reply = nodes.llm_send_stage_input(), nodes.execute_tool(), nodes.llm_send_tool_result()
stage.edge(stage.node_start.forward_to(send))
stage.edge(send.forward_to(call).on_tool_call())
stage.edge(send.forward_to(stage.node_finish).on_assistant_message())
stage.edge(call.forward_to(reply))
stage.edge(reply.forward_to(call).on_tool_call())
stage.edge(reply.forward_to(stage.node_finish).on_assistant_message())

config = AgentConfig.with_system_prompt("You are a calculator.", LLModel("openai", "gpt-4o"))
agent = AIAgent(OpenAIProvider(), builder.build(), config, simple_tool_registry([plus]))
print(await agent.run_and_get_result("What is 2 + 3?"))
```
"""

from weft.agent import (
    AIAgent,
    AgentContext,
    ContextTransitionPolicy,
    EdgeBuilder,
    Node,
    Stage,
    StageBuilder,
    Strategy,
    StrategyBuilder,
    Subgraph,
    SubgraphBuilder,
    chat_strategy,
    simple_strategy,
    single_run_strategy,
)
from weft.config import AgentConfig, ProviderConfig
from weft.errors import WeftError
from weft.features import AgentPipeline, EventHandler, EventHandlerConfig, Tracing
from weft.llm import LLMContext
from weft.prompt import Prompt, PromptBuilder, prompt
from weft.tools import (
    SafeTool,
    Tool,
    ToolException,
    ToolRegistry,
    ToolRegistryBuilder,
    define_tool,
    simple_tool_registry,
)
from weft.types import (
    AssistantMessage,
    LLModel,
    LLMParams,
    SystemMessage,
    ToolCall,
    ToolChoice,
    ToolMessage,
    UserMessage,
)

__version__ = "0.1.0"

__all__ = [
    "AIAgent", "AgentContext", "AgentConfig", "ProviderConfig",
    "Node", "EdgeBuilder", "Subgraph", "Stage", "Strategy", "ContextTransitionPolicy",
    "SubgraphBuilder", "StageBuilder", "StrategyBuilder", "simple_strategy",
    "single_run_strategy", "chat_strategy",
    "AgentPipeline", "EventHandler", "EventHandlerConfig", "Tracing",
    "LLMContext", "Prompt", "PromptBuilder", "prompt",
    "Tool", "define_tool", "ToolException", "SafeTool",
    "ToolRegistry", "ToolRegistryBuilder", "simple_tool_registry",
    "SystemMessage", "UserMessage", "AssistantMessage", "ToolCall", "ToolMessage",
    "LLModel", "LLMParams", "ToolChoice",
    "WeftError",
]
