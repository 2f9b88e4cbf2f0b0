"""SafeTool: tool invocation that never raises, returning a tagged result instead."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from pydantic import BaseModel

from ..errors import ToolException
from ..types import ToolCall
from .tool import Tool

if TYPE_CHECKING:
    from ..agent.environment import AgentEnvironment

R = TypeVar("R")


class SafeToolResult(Generic[R]):
    content: str

    def is_successful(self) -> bool:
        return isinstance(self, Success)

    def as_successful(self) -> Success[R]:
        if not isinstance(self, Success):
            raise ValueError(f"Tool call failed: {self.content}")
        return self


@dataclass
class Success(SafeToolResult[R]):
    result: R
    content: str


@dataclass
class Failure(SafeToolResult[R]):
    message: str

    @property
    def content(self) -> str:
        return self.message


@dataclass
class ReceivedToolResult:
    """Outcome of one tool call as delivered by the environment.

    ``successful`` tells whether the tool ran to completion; ``result`` may
    legitimately be ``None`` even then. For failed calls ``content`` holds the
    error text shown to the LLM.
    """

    id: str | None
    tool: str
    content: str
    result: Any = None
    successful: bool = False

    def to_safe_result(self) -> SafeToolResult:
        if not self.successful:
            return Failure(self.content)
        return Success(result=self.result, content=self.content)


class SafeTool(Generic[R]):
    """Runs a tool through the agent environment so validation and hooks apply."""

    def __init__(self, tool: Tool[Any, R], environment: AgentEnvironment) -> None:
        self.tool = tool
        self._environment = environment

    async def execute(self, args: BaseModel | dict[str, Any]) -> SafeToolResult[R]:
        call = ToolCall(id=None, tool=self.tool.name, content=self.tool.encode_args(args))
        received = await self._environment.execute_tool(call)
        return received.to_safe_result()

    async def execute_raw(self, args: BaseModel | dict[str, Any]) -> str:
        return (await self.execute(args)).content

    async def execute_unsafe(self, args: BaseModel | dict[str, Any]) -> R:
        result = await self.execute(args)
        if isinstance(result, Failure):
            raise ToolException(result.message)
        return result.result
