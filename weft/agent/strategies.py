"""Ready-made strategies for common agent shapes."""

from __future__ import annotations

from typing import Any

from ..tools import ExitTool
from . import nodes
from .builder import simple_strategy
from .context import AgentContext
from .strategy import Strategy

CHAT_FINISHED = "Chat finished"


def single_run_strategy(name: str = "single_run") -> Strategy:
    """Send the input, run tools while the LLM asks for them, finish on its answer."""
    builder, stage = simple_strategy(name)
    send = nodes.llm_send_stage_input("send_input")
    call = nodes.execute_tool()
    reply = nodes.llm_send_tool_result()

    stage.edge(stage.node_start.forward_to(send))
    stage.edge(send.forward_to(call).on_tool_call())
    stage.edge(send.forward_to(stage.node_finish).on_assistant_message())
    stage.edge(call.forward_to(reply))
    stage.edge(reply.forward_to(stage.node_finish).on_assistant_message())
    stage.edge(reply.forward_to(call).on_tool_call())
    return builder.build()


def chat_strategy(name: str = "chat") -> Strategy:
    """Talk to the user only through tools.

    Plain text answers are pushed back with a request to call a tool. The chat
    ends when the LLM answers a tool result with text or calls ``ExitTool``.
    """
    builder, stage = simple_strategy(name)
    send = nodes.llm_send_stage_input("send_input")
    call = nodes.execute_tool()
    reply = nodes.llm_send_tool_result()

    async def ask_for_tool_call(context: AgentContext, input: str) -> Any:
        async with context.llm.write_session() as session:
            names = ", ".join(t.name for t in session.tools)
            session.update_prompt(
                lambda b: b.user(
                    f"Don't chat with plain text! Call one of the available tools, instead: {names}"
                )
            )
            return await session.request_llm()

    feedback = stage.node("give_feedback_to_call_tools", ask_for_tool_call, input_type=str)

    stage.edge(stage.node_start.forward_to(send))
    stage.edge(send.forward_to(call).on_tool_call())
    stage.edge(send.forward_to(feedback).on_assistant_message())
    stage.edge(feedback.forward_to(feedback).on_assistant_message())
    stage.edge(feedback.forward_to(call).on_tool_call())
    stage.edge(call.forward_to(reply))
    stage.edge(reply.forward_to(stage.node_finish).on_assistant_message())
    stage.edge(
        reply.forward_to(stage.node_finish)
        .on_tool_call(lambda tool_call: tool_call.tool == ExitTool.NAME)
        .transformed(lambda _: CHAT_FINISHED, output_type=str)
    )
    stage.edge(reply.forward_to(call).on_tool_call())
    return builder.build()
