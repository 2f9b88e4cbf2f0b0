"""AIAgent: runs a strategy and serves as its tool-dispatching environment."""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Callable

from ..config import AgentConfig
from ..errors import (
    AgentAlreadyRunningError,
    TerminationError,
    ToolException,
    UnexpectedMessageTypeError,
)
from ..features.pipeline import AgentPipeline
from ..tools import (
    DEFAULT_STAGE_NAME,
    STAGE_PARAM_NAME,
    ReceivedToolResult,
    TerminationTool,
    ToolRegistry,
    ToolStage,
)
from ..types import PromptExecutor, ToolCall
from .agent_tool import AIAgentTool
from .environment import (
    AgentErrorMessage,
    AgentMessage,
    AgentServiceError,
    AgentServiceErrorType,
    AgentTerminationMessage,
    AgentToolCallMessage,
    AgentToolCallsMessage,
    EnvironmentToolResultMessage,
    EnvironmentToolResultsMessage,
    ToolCallContent,
    ToolResultContent,
)
from .strategy import Strategy

logger = logging.getLogger(__name__)


class AIAgent:
    """Runs ``strategy`` for one input at a time.

    The agent is the strategy's environment: tool calls issued by nodes are
    resolved against ``tool_registry`` here, with every failure turned into
    an error message for the LLM instead of an exception.

        agent = AIAgent(executor, strategy, config, tool_registry=registry)
        answer = await agent.run_and_get_result("add 2 and 2")
    """

    def __init__(
        self,
        executor: PromptExecutor,
        strategy: Strategy,
        config: AgentConfig,
        tool_registry: ToolRegistry = ToolRegistry.EMPTY,
        install_features: Callable[[AgentPipeline], Any] | None = None,
        id: str | None = None,
    ) -> None:
        self.id = id or str(uuid.uuid4())
        self.executor = executor
        self.strategy = strategy
        self.config = config
        self.tool_registry = tool_registry
        self.pipeline = AgentPipeline()
        if install_features is not None:
            install_features(self.pipeline)

        self._created = False
        self._run_lock = asyncio.Lock()
        self._is_running = False
        self._session_id: str | None = None
        self._result: asyncio.Future[str | None] | None = None

    @property
    def is_running(self) -> bool:
        return self._is_running

    @property
    def session_id(self) -> str | None:
        return self._session_id

    # -- Run --

    async def run(self, input: str) -> None:
        await self._run(input)

    async def run_and_get_result(self, input: str) -> str | None:
        return await self._run(input)

    def as_tool(
        self,
        description: str,
        name: str | None = None,
        request_description: str = "Input for the task",
    ) -> AIAgentTool:
        """Wrap this agent as a tool taking a single ``request`` string."""
        return AIAgentTool(
            self,
            name=name or type(self).__name__.lower(),
            description=description,
            request_description=request_description,
        )

    async def _run(self, input: str) -> str | None:
        async with self._run_lock:
            if self._is_running:
                raise AgentAlreadyRunningError()
            self._is_running = True
            self._session_id = str(uuid.uuid4())
            result: asyncio.Future[str | None] = asyncio.get_running_loop().create_future()
            self._result = result

        logger.info("Starting agent %s with strategy %s [%s]", self.id, self.strategy.name, self._session_id)
        try:
            await self.pipeline.prepare_features()
            if not self._created:
                self._created = True
                await self.pipeline.on_agent_created(self.strategy, self)
            await self.pipeline.on_agent_started(self.strategy.name)
            await self.strategy.run(
                session_id=self._session_id,
                user_input=input,
                tool_registry=self.tool_registry,
                executor=self.executor,
                environment=self,
                config=self.config,
                pipeline=self.pipeline,
            )
        finally:
            await self.pipeline.close_features()
            async with self._run_lock:
                self._is_running = False
            if not result.done():
                result.set_result(None)
        return result.result()

    # -- Environment --

    async def execute_tool(self, call: ToolCall) -> ReceivedToolResult:
        try:
            args = call.args
            if not isinstance(args, dict):
                raise ValueError(f"expected a JSON object, got {type(args).__name__}")
        except ValueError as e:
            return ReceivedToolResult(
                id=call.id,
                tool=call.tool,
                content=f'Tool "{call.tool}" failed to parse arguments because of {e}!',
            )
        message = AgentToolCallMessage(
            session_id=self._session_id or "",
            content=ToolCallContent(self.id, call.id, call.tool, args),
        )
        response = await self.handle(message)
        return response.content.to_received()

    async def execute_tools(self, calls: list[ToolCall]) -> list[ReceivedToolResult]:
        return list(await asyncio.gather(*(self.execute_tool(call) for call in calls)))

    async def report_problem(self, exception: Exception) -> None:
        error = AgentServiceError(
            AgentServiceErrorType.UNEXPECTED_ERROR,
            f"{type(exception).__name__}: {exception}",
            cause=exception,
        )
        await self.handle(AgentErrorMessage(session_id=self._session_id or "", error=error))

    async def send_termination(self, result: str | None) -> None:
        content = ToolCallContent(
            agent_id=self.id,
            tool_call_id=None,
            tool_name=TerminationTool.NAME,
            tool_args={TerminationTool.ARG: result},
        )
        await self.handle(AgentTerminationMessage(session_id=self._session_id or "", content=content))

    # -- Message handling --

    async def handle(
        self, message: AgentMessage
    ) -> EnvironmentToolResultMessage | EnvironmentToolResultsMessage | None:
        match message:
            case AgentToolCallMessage():
                result = await self._process_tool_call(message.content)
                return EnvironmentToolResultMessage(message.session_id, result)
            case AgentToolCallsMessage():
                logger.info("Executing %d tool calls [%s]", len(message.content), message.session_id)
                results = await asyncio.gather(
                    *(self._process_tool_call(c) for c in message.content)
                )
                return EnvironmentToolResultsMessage(message.session_id, list(results))
            case AgentErrorMessage():
                await self._process_error(message.error)
                return None
            case AgentTerminationMessage():
                await self._terminate(message)
                return None
            case _:
                raise UnexpectedMessageTypeError(
                    f"Unexpected message type: {type(message).__name__}"
                )

    def _resolve_stage(self, content: ToolCallContent) -> ToolStage | None:
        stage_name = content.tool_args.get(STAGE_PARAM_NAME)
        if stage_name is not None:
            return self.tool_registry.get_stage_by_name_or_none(stage_name)
        return self.tool_registry.get_stage_by_tool_or_none(
            content.tool_name
        ) or self.tool_registry.get_stage_by_name_or_none(DEFAULT_STAGE_NAME)

    async def _process_tool_call(self, content: ToolCallContent) -> ToolResultContent:
        name = content.tool_name

        def reply(message: str, result: Any = None, successful: bool = False) -> ToolResultContent:
            return ToolResultContent(
                tool_call_id=content.tool_call_id,
                tool_name=name,
                agent_id=self.id,
                message=message,
                tool_result=result,
                successful=successful,
            )

        stage = self._resolve_stage(content)
        tool = stage.get_tool_or_none(name) if stage is not None else None
        if stage is None or tool is None:
            logger.warning('Tool "%s" not found [%s]', name, self._session_id)
            return reply(f'Tool "{name}" not found!')

        raw_args = {k: v for k, v in content.tool_args.items() if k != STAGE_PARAM_NAME}
        try:
            args = tool.decode_args(raw_args)
        except Exception as e:
            logger.exception('Tool "%s" failed to parse arguments', name)
            return reply(f'Tool "{name}" failed to parse arguments because of {e}!')

        await self.pipeline.on_tool_call(stage, tool, args)
        try:
            result, serialized = await tool.execute_and_serialize(args)
        except ToolException as e:
            await self.pipeline.on_tool_validation_error(stage, tool, args, e.message)
            return reply(e.message)
        except Exception as e:
            logger.exception('Tool "%s" failed to execute', name)
            await self.pipeline.on_tool_call_failure(stage, tool, args, e)
            return reply(f'Tool "{name}" failed to execute because of {e}!')

        await self.pipeline.on_tool_call_result(stage, tool, args, result)
        return reply(serialized, result, successful=True)

    async def _process_error(self, error: AgentServiceError) -> None:
        exception = error.as_exception()
        if await self.pipeline.on_agent_run_error(self.strategy.name, exception):
            logger.info("Agent run error handled by a feature: %s", error.message)
            return
        logger.error("Agent run failed [%s]: %s", self._session_id, error.message)
        raise exception from error.cause

    async def _terminate(self, message: AgentTerminationMessage) -> None:
        if message.error is not None:
            await self._process_error(message.error)
            return
        if message.content is None:
            raise TerminationError('Could not find "content", but "error" is also absent!')
        if message.content.tool_name != TerminationTool.NAME:
            raise TerminationError(f'Can not call tools beside "{TerminationTool.NAME}"!')
        if TerminationTool.ARG not in message.content.tool_args:
            raise TerminationError(
                f'Required tool argument value not found: "{TerminationTool.ARG}"!'
            )

        result = message.content.tool_args[TerminationTool.ARG]
        await self.pipeline.on_agent_finished(self.strategy.name, result)
        if self._result is not None and not self._result.done():
            self._result.set_result(result)
