"""
Pytest Configuration and Fixtures
"""

import pytest
from pydantic import BaseModel, Field

from weft.agent import AIAgent, nodes
from weft.agent.builder import StrategyBuilder, simple_strategy
from weft.config import AgentConfig
from weft.errors import ToolException
from weft.features import AgentPipeline
from weft.llm import LLMContext, PromptExecutorProxy
from weft.providers import MockPromptExecutor
from weft.tools import Tool, simple_tool_registry
from weft.types import LLModel, ToolMessage


class PlusArgs(BaseModel):
    a: int = Field(..., description="First operand")
    b: int = Field(..., description="Second operand")


class PlusTool(Tool[PlusArgs, int]):
    name = "plus"
    description = "Adds two integers"
    args_type = PlusArgs

    async def execute(self, args: PlusArgs) -> int:
        return args.a + args.b


class DivideTool(Tool[PlusArgs, float]):
    name = "divide"
    description = "Divides a by b"
    args_type = PlusArgs

    async def execute(self, args: PlusArgs) -> float:
        if args.b == 0:
            raise ToolException("Division by zero is not allowed")
        return args.a / args.b


class BrokenTool(Tool[PlusArgs, int]):
    name = "broken"
    description = "Always fails"
    args_type = PlusArgs

    async def execute(self, args: PlusArgs) -> int:
        raise RuntimeError("boom")


def is_tool_result(message) -> bool:
    return isinstance(message, ToolMessage)


def add_tool_loop(stage) -> None:
    """send input -> (tool call -> execute -> send result)* -> finish on assistant message."""
    send = nodes.llm_send_stage_input()
    call = nodes.execute_tool()
    reply = nodes.llm_send_tool_result()
    stage.edge(stage.node_start.forward_to(send))
    stage.edge(send.forward_to(call).on_tool_call())
    stage.edge(send.forward_to(stage.node_finish).on_assistant_message())
    stage.edge(call.forward_to(reply))
    stage.edge(reply.forward_to(call).on_tool_call())
    stage.edge(reply.forward_to(stage.node_finish).on_assistant_message())


def tool_loop_strategy(name: str = "calculator"):
    builder, stage = simple_strategy(name)
    add_tool_loop(stage)
    return builder.build()


@pytest.fixture
def model() -> LLModel:
    return LLModel("mock", "mock-model")


@pytest.fixture
def config(model) -> AgentConfig:
    return AgentConfig.with_system_prompt("You are a calculator.", model)


@pytest.fixture
def executor() -> MockPromptExecutor:
    """Returns a fresh scripted prompt executor."""
    return MockPromptExecutor(default_response="Done")


@pytest.fixture
def plus_tool() -> PlusTool:
    return PlusTool()


@pytest.fixture
def registry(plus_tool):
    return simple_tool_registry([plus_tool, DivideTool(), BrokenTool()])


@pytest.fixture
def calculator_strategy():
    return tool_loop_strategy()


@pytest.fixture
def strategy_builder() -> StrategyBuilder:
    return StrategyBuilder("test-strategy")


@pytest.fixture
def make_llm(executor, config, registry):
    """Builds a standalone LLM context over the default stage tools."""

    def make(tools=None):
        environment = AIAgent(executor, tool_loop_strategy(), config, tool_registry=registry)
        return LLMContext(
            tools=registry.stages_tool_descriptors["default"] if tools is None else tools,
            tool_registry=registry,
            prompt=config.prompt,
            model=config.model,
            executor=PromptExecutorProxy(executor, AgentPipeline()),
            environment=environment,
            config=config,
        )

    return make
