"""Predefined nodes for common LLM and tool steps.

Each factory returns a ready ``Node``; wire it with edges like any other.
"""

from __future__ import annotations

from typing import Any, Callable

from ..llm import HistoryCompressionStrategy, JsonStructuredData, WholeHistory
from ..prompt import PromptBuilder
from ..tools import ReceivedToolResult, Tool
from ..types import LLModel, ToolCall, ToolDescriptor
from .context import AgentContext
from .node import Node


def do_nothing(name: str = "do_nothing") -> Node:
    return Node(name, lambda context, input: input)


def update_prompt(body: Callable[[PromptBuilder], Any], name: str = "update_prompt") -> Node:
    """Append to the prompt and pass the input through unchanged."""

    async def run(context: AgentContext, input: Any) -> Any:
        async with context.llm.write_session() as session:
            session.update_prompt(body)
        return input

    return Node(name, run)


# -- LLM requests --


def llm_send_stage_input(name: str = "send_stage_input") -> Node:
    """Send the stage input as a user message and return the LLM response."""

    async def run(context: AgentContext, input: str) -> Any:
        async with context.llm.write_session() as session:
            session.update_prompt(lambda b: b.user(input))
            return await session.request_llm()

    return Node(name, run, input_type=str)


def llm_send_stage_input_multiple(name: str = "send_stage_input_multiple") -> Node:
    async def run(context: AgentContext, input: str) -> list:
        async with context.llm.write_session() as session:
            session.update_prompt(lambda b: b.user(input))
            return await session.request_llm_multiple()

    return Node(name, run, input_type=str, output_type=list)


def llm_request(allow_tool_calls: bool = True, name: str = "llm_request") -> Node:
    async def run(context: AgentContext, input: str) -> Any:
        async with context.llm.write_session() as session:
            session.update_prompt(lambda b: b.user(input))
            if allow_tool_calls:
                return await session.request_llm()
            return await session.request_llm_without_tools()

    return Node(name, run, input_type=str)


def llm_request_multiple(name: str = "llm_request_multiple") -> Node:
    async def run(context: AgentContext, input: str) -> list:
        async with context.llm.write_session() as session:
            session.update_prompt(lambda b: b.user(input))
            return await session.request_llm_multiple()

    return Node(name, run, input_type=str, output_type=list)


def llm_send_message_only_calling_tools(name: str = "send_message_only_calling_tools") -> Node:
    async def run(context: AgentContext, input: str) -> Any:
        async with context.llm.write_session() as session:
            session.update_prompt(lambda b: b.user(input))
            return await session.request_llm_only_calling_tools()

    return Node(name, run, input_type=str)


def llm_send_message_force_one_tool(
    tool: ToolDescriptor | Tool | str,
    name: str = "send_message_force_one_tool",
) -> Node:
    async def run(context: AgentContext, input: str) -> Any:
        async with context.llm.write_session() as session:
            session.update_prompt(lambda b: b.user(input))
            return await session.request_llm_force_one_tool(tool)

    return Node(name, run, input_type=str)


def llm_request_structured(
    structure: JsonStructuredData,
    retries: int = 1,
    fixing_model: LLModel | None = None,
    name: str = "llm_request_structured",
) -> Node:
    async def run(context: AgentContext, input: str) -> Any:
        async with context.llm.write_session() as session:
            session.update_prompt(lambda b: b.user(input))
            return await session.request_llm_structured(structure, retries, fixing_model)

    return Node(name, run, input_type=str)


def llm_request_streaming(
    structure: JsonStructuredData | None = None,
    name: str = "llm_request_streaming",
) -> Node:
    """Return the async iterator of text chunks for the current prompt."""

    async def run(context: AgentContext, input: Any) -> Any:
        async with context.llm.write_session() as session:
            return session.request_llm_streaming(structure)

    return Node(name, run)


def llm_compress_history(
    strategy: HistoryCompressionStrategy | None = None,
    preserve_memory: bool = True,
    name: str = "compress_history",
) -> Node:
    async def run(context: AgentContext, input: Any) -> Any:
        async with context.llm.write_session() as session:
            await session.replace_history_with_tldr(strategy or WholeHistory(), preserve_memory)
        return input

    return Node(name, run)


# -- Tools --


def execute_tool(name: str = "execute_tool") -> Node:
    async def run(context: AgentContext, call: ToolCall) -> ReceivedToolResult:
        return await context.environment.execute_tool(call)

    return Node(name, run, input_type=ToolCall, output_type=ReceivedToolResult)


def execute_multiple_tools(
    parallel_tools: bool = False,
    name: str = "execute_multiple_tools",
) -> Node:
    async def run(context: AgentContext, calls: list[ToolCall]) -> list[ReceivedToolResult]:
        if parallel_tools:
            return await context.environment.execute_tools(calls)
        return [await context.environment.execute_tool(call) for call in calls]

    return Node(name, run, input_type=list, output_type=list)


def llm_send_tool_result(name: str = "send_tool_result") -> Node:
    """Append the tool result to the prompt and request the next LLM response."""

    async def run(context: AgentContext, result: ReceivedToolResult) -> Any:
        async with context.llm.write_session() as session:
            session.update_prompt(lambda b: b.tool_result(result))
            return await session.request_llm()

    return Node(name, run, input_type=ReceivedToolResult)


def llm_send_multiple_tool_results(name: str = "send_multiple_tool_results") -> Node:
    async def run(context: AgentContext, results: list[ReceivedToolResult]) -> list:
        async with context.llm.write_session() as session:
            session.update_prompt(lambda b: [b.tool_result(r) for r in results])
            return await session.request_llm_multiple()

    return Node(name, run, input_type=list, output_type=list)

