"""Agent <-> environment protocol: tool calls out, tool results back."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Protocol, runtime_checkable

from ..errors import (
    AgentEngineError,
    AgentNotFoundError,
    MalformedMessageError,
    UnexpectedMessageTypeError,
    UnexpectedServerError,
)
from ..tools import ReceivedToolResult
from ..types import ToolCall


@runtime_checkable
class AgentEnvironment(Protocol):
    async def execute_tool(self, call: ToolCall) -> ReceivedToolResult: ...

    async def execute_tools(self, calls: list[ToolCall]) -> list[ReceivedToolResult]: ...

    async def report_problem(self, exception: Exception) -> None: ...

    async def send_termination(self, result: str | None) -> None: ...


# -- Message contents --


@dataclass
class ToolCallContent:
    agent_id: str
    tool_call_id: str | None
    tool_name: str
    tool_args: dict[str, Any]


@dataclass
class ToolResultContent:
    tool_call_id: str | None
    tool_name: str
    agent_id: str
    message: str
    tool_result: Any = None
    successful: bool = False

    def to_received(self) -> ReceivedToolResult:
        return ReceivedToolResult(
            id=self.tool_call_id,
            tool=self.tool_name,
            content=self.message,
            result=self.tool_result,
            successful=self.successful,
        )


class AgentServiceErrorType(StrEnum):
    UNEXPECTED_MESSAGE_TYPE = "unexpected_message_type"
    MALFORMED_MESSAGE = "malformed_message"
    AGENT_NOT_FOUND = "agent_not_found"
    UNEXPECTED_ERROR = "unexpected_error"


@dataclass
class AgentServiceError:
    type: AgentServiceErrorType
    message: str
    cause: Exception | None = field(default=None, compare=False, repr=False)

    def as_exception(self) -> AgentEngineError:
        error = self._typed()
        error.cause = self.cause
        return error

    def _typed(self) -> AgentEngineError:
        match self.type:
            case AgentServiceErrorType.UNEXPECTED_MESSAGE_TYPE:
                return UnexpectedMessageTypeError(self.message)
            case AgentServiceErrorType.MALFORMED_MESSAGE:
                return MalformedMessageError(self.message)
            case AgentServiceErrorType.AGENT_NOT_FOUND:
                return AgentNotFoundError(self.message)
            case _:
                return UnexpectedServerError(self.message)


# -- Agent -> environment --


@dataclass
class AgentToolCallMessage:
    session_id: str
    content: ToolCallContent


@dataclass
class AgentToolCallsMessage:
    session_id: str
    content: list[ToolCallContent] = field(default_factory=list)


@dataclass
class AgentErrorMessage:
    session_id: str
    error: AgentServiceError


@dataclass
class AgentTerminationMessage:
    session_id: str
    content: ToolCallContent | None = None
    error: AgentServiceError | None = None


AgentMessage = (
    AgentToolCallMessage | AgentToolCallsMessage | AgentErrorMessage | AgentTerminationMessage
)


# -- Environment -> agent --


@dataclass
class EnvironmentToolResultMessage:
    session_id: str
    content: ToolResultContent


@dataclass
class EnvironmentToolResultsMessage:
    session_id: str
    content: list[ToolResultContent] = field(default_factory=list)


class SubAgentEnvironment:
    """Environment for a strategy running as a node inside another strategy.

    Tool calls go to the parent environment. Termination and problems are
    captured so the enclosing node returns the result or re-raises the error.
    """

    def __init__(self, parent: AgentEnvironment) -> None:
        self._parent = parent
        self._result: asyncio.Future[str | None] = asyncio.get_running_loop().create_future()

    async def execute_tool(self, call: ToolCall) -> ReceivedToolResult:
        return await self._parent.execute_tool(call)

    async def execute_tools(self, calls: list[ToolCall]) -> list[ReceivedToolResult]:
        return await self._parent.execute_tools(calls)

    async def report_problem(self, exception: Exception) -> None:
        if not self._result.done():
            self._result.set_exception(exception)

    async def send_termination(self, result: str | None) -> None:
        if not self._result.done():
            self._result.set_result(result)

    async def result(self) -> str | None:
        return await self._result
