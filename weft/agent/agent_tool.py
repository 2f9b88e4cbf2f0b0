"""Exposing an agent as a tool of another agent."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field, create_model

from ..tools import Tool

if TYPE_CHECKING:
    from .agent import AIAgent

logger = logging.getLogger(__name__)


class AgentToolResult(BaseModel):
    successful: bool
    error_message: str | None = None
    result: str | None = None


class AIAgentTool(Tool[BaseModel, AgentToolResult]):
    """Runs the wrapped agent on the ``request`` argument.

    Errors of the inner run are returned as an unsuccessful result so the
    calling LLM can react to them.
    """

    def __init__(
        self,
        agent: AIAgent,
        name: str,
        description: str,
        request_description: str = "Input for the task",
    ) -> None:
        self.agent = agent
        self.name = name
        self.description = description
        self.args_type = create_model(
            "AgentToolArgs",
            request=(str, Field(..., description=request_description)),
        )

    async def execute(self, args: BaseModel) -> AgentToolResult:
        try:
            result = await self.agent.run_and_get_result(args.request)
        except Exception as e:
            logger.warning('Agent tool "%s" failed: %s', self.name, e)
            return AgentToolResult(
                successful=False,
                error_message=f"Error happened: {type(e).__name__}({e})",
            )
        return AgentToolResult(successful=True, result=result)
