"""LLM sessions: scoped views over one prompt snapshot and tool list.

A session is OPEN while its owning ``LLMContext`` block runs and CLOSED
afterwards; touching a closed session raises ``SessionClosedError``.
``ReadSession`` only inspects. ``WriteSession`` edits the prompt copy-on-write
and appends every LLM response it receives.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

from ..config import AgentConfig, MissingToolsConversionStrategy
from ..errors import LLMError, SessionClosedError, StructuredOutputError, ToolRegistryError
from ..prompt import Prompt, PromptBuilder, prompt as build_prompt
from ..types import (
    AssistantMessage,
    LLModel,
    LLMParams,
    Message,
    Response,
    SystemMessage,
    ToolCall,
    ToolChoice,
    ToolDescriptor,
    ToolMessage,
    UserMessage,
)
from ..tools import SafeTool, SafeToolResult, Tool, ToolRegistry
from .compression import (
    SUMMARIZE_PROMPT,
    HistoryCompressionStrategy,
    WholeHistory,
    is_memory_message,
)
from .structure import JsonStructuredData, StructuredResponse, fixing_prompt

if TYPE_CHECKING:
    from ..agent.environment import AgentEnvironment
    from .proxy import PromptExecutorProxy

logger = logging.getLogger(__name__)


class SessionState(Enum):
    OPEN = "open"
    CLOSED = "closed"


class _ActiveProperty:
    """Attribute that can only be read (or written) while the session is open."""

    def __init__(self, writable: bool = False) -> None:
        self.writable = writable

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name
        self.slot = f"_{name}"

    def __get__(self, instance: Any, owner: type | None = None) -> Any:
        if instance is None:
            return self
        instance._check_active()
        return instance.__dict__[self.slot]

    def __set__(self, instance: Any, value: Any) -> None:
        if not self.writable:
            raise AttributeError(f"{self.name} is read-only in {type(instance).__name__}")
        instance._check_active()
        instance.__dict__[self.slot] = value


def convert_tool_messages(
    prompt: Prompt,
    tools: list[ToolDescriptor],
    strategy: MissingToolsConversionStrategy,
) -> Prompt:
    """Rewrite tool calls/results into plain text for tools the LLM cannot see."""
    available = {t.name for t in tools}

    def convert(m: Message) -> Message:
        if isinstance(m, (ToolCall, ToolMessage)) and (
            strategy is MissingToolsConversionStrategy.ALL or m.tool not in available
        ):
            if isinstance(m, ToolCall):
                return AssistantMessage(f'Tool call: "{m.tool}" was called with arguments: {m.content}')
            return UserMessage(f'Tool call: "{m.tool}" returned result: {m.content}')
        return m

    converted = [convert(m) for m in prompt.messages]
    if all(a is b for a, b in zip(converted, prompt.messages)):
        return prompt
    return prompt.with_messages(converted)


class LLMSession:
    def __init__(
        self,
        executor: PromptExecutorProxy,
        tools: list[ToolDescriptor],
        tool_registry: ToolRegistry,
        prompt: Prompt,
        model: LLModel,
        environment: AgentEnvironment,
        config: AgentConfig,
    ) -> None:
        self._state = SessionState.OPEN
        self._executor = executor
        self._tool_registry = tool_registry
        self._environment = environment
        self._config = config
        self.__dict__["_prompt"] = prompt
        self.__dict__["_tools"] = list(tools)
        self.__dict__["_model"] = model

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state is SessionState.OPEN

    def _check_active(self) -> None:
        if self._state is not SessionState.OPEN:
            raise SessionClosedError()

    def close(self) -> None:
        self._state = SessionState.CLOSED


class ReadSession(LLMSession):
    prompt: Prompt = _ActiveProperty()
    tools: list[ToolDescriptor] = _ActiveProperty()
    model: LLModel = _ActiveProperty()


class WriteSession(LLMSession):
    prompt: Prompt = _ActiveProperty(writable=True)
    tools: list[ToolDescriptor] = _ActiveProperty(writable=True)
    model: LLModel = _ActiveProperty(writable=True)

    # -- Prompt editing --

    def update_prompt(self, body: Callable[[PromptBuilder], Any]) -> None:
        builder = PromptBuilder(self.prompt)
        body(builder)
        self.prompt = builder.build()

    def append_messages(self, *messages: Message) -> None:
        self.update_prompt(lambda b: b.messages(messages))

    def rewrite_prompt(self, body: Callable[[Prompt], Prompt]) -> None:
        self.prompt = body(self.prompt)

    def change_model(self, model: LLModel) -> None:
        self.model = model

    def change_llm_params(self, params: LLMParams) -> None:
        self.prompt = self.prompt.with_params(params)

    def clear_history(self) -> None:
        self.prompt = self.prompt.with_messages([])

    def leave_last_n_messages(self, n: int) -> None:
        self.prompt = self.prompt.with_updated_messages(lambda ms: ms[-n:] if n > 0 else [])

    def drop_trailing_tool_calls(self) -> None:
        def drop(messages: list[Message]) -> list[Message]:
            while messages and isinstance(messages[-1], ToolCall):
                messages.pop()
            return messages

        self.prompt = self.prompt.with_updated_messages(drop)

    # -- LLM requests --

    async def _execute(self, prompt: Prompt, tools: list[ToolDescriptor]) -> list[Response]:
        prepared = convert_tool_messages(prompt, tools, self._config.missing_tools_conversion)
        responses = await self._executor.execute(prepared, self.model, tools)
        if not responses:
            raise LLMError("LLM_EMPTY_RESPONSE", self.model.provider, "LLM returned no responses")
        return responses

    async def request_llm(self) -> Response:
        response = (await self._execute(self.prompt, self.tools))[0]
        self.append_messages(response)
        return response

    async def request_llm_multiple(self) -> list[Response]:
        responses = await self._execute(self.prompt, self.tools)
        self.append_messages(*responses)
        return responses

    async def request_llm_without_tools(self) -> Response:
        response = (await self._execute(self.prompt, []))[0]
        self.append_messages(response)
        return response

    async def request_llm_only_calling_tools(self) -> Response:
        forced = self.prompt.with_updated_params(tool_choice=ToolChoice.REQUIRED)
        response = (await self._execute(forced, self.tools))[0]
        self.append_messages(response)
        return response

    async def request_llm_force_one_tool(self, tool: ToolDescriptor | Tool | str) -> Response:
        name = tool if isinstance(tool, str) else tool.name
        if name not in {t.name for t in self.tools}:
            raise ValueError(f'Unable to force call to tool "{name}" because it is not defined')
        forced = self.prompt.with_updated_params(tool_choice=ToolChoice.named(name))
        response = (await self._execute(forced, self.tools))[0]
        self.append_messages(response)
        return response

    async def request_llm_structured_one_shot(
        self, structure: JsonStructuredData
    ) -> StructuredResponse:
        self.update_prompt(lambda b: b.user(structure.definition))
        response = await self.request_llm_without_tools()
        parsed, error = structure.try_parse(response.content)
        if parsed is None:
            raise StructuredOutputError(
                f"Could not parse {structure.id}: {error}", response.content, error
            )
        return StructuredResponse(structure=parsed, raw=response.content)

    async def request_llm_structured(
        self,
        structure: JsonStructuredData,
        retries: int = 1,
        fixing_model: LLModel | None = None,
    ) -> StructuredResponse:
        """Request a structured reply; on parse failure ask ``fixing_model`` to repair it."""
        self.update_prompt(lambda b: b.user(structure.definition))
        response = await self.request_llm_without_tools()
        raw = response.content
        parsed, error = structure.try_parse(raw)

        attempt = 0
        while parsed is None and attempt < retries:
            attempt += 1
            logger.debug("Structured output %s invalid, fixing attempt %d", structure.id, attempt)
            fix = build_prompt(
                f"{self.prompt.id}-fixing",
                lambda b: b.user(fixing_prompt(structure, raw, error)),
            )
            fixed = await self._executor.execute(fix, fixing_model or self.model, [])
            if fixed:
                raw = fixed[0].content
            parsed, error = structure.try_parse(raw)

        if parsed is None:
            raise StructuredOutputError(
                f"Could not parse {structure.id} after {retries} fixing attempt(s): {error}",
                raw,
                error,
            )
        return StructuredResponse(structure=parsed, raw=raw)

    def request_llm_streaming(
        self, definition: JsonStructuredData | None = None
    ) -> AsyncIterator[str]:
        if definition is not None:
            self.update_prompt(lambda b: b.user(definition.definition))
        prepared = convert_tool_messages(self.prompt, [], self._config.missing_tools_conversion)
        return self._executor.execute_streaming(prepared, self.model)

    async def replace_history_with_tldr(
        self,
        strategy: HistoryCompressionStrategy | None = None,
        preserve_memory: bool = True,
    ) -> None:
        strategy = strategy or WholeHistory()
        self.drop_trailing_tool_calls()
        messages = list(self.prompt.messages)
        system = [m for m in messages if isinstance(m, SystemMessage)]
        first_user = next((m for m in messages if isinstance(m, UserMessage)), None)
        memory = [m for m in messages if is_memory_message(m)] if preserve_memory else []

        summary_request = self.prompt.with_messages(
            [*system, *strategy.select(messages), UserMessage(SUMMARIZE_PROMPT)]
        )
        tldr = (await self._execute(summary_request, []))[0]

        kept: list[Message] = [*system]
        if first_user is not None:
            kept.append(first_user)
        kept.extend(m for m in memory if m is not first_user)
        kept.append(AssistantMessage(tldr.content))
        self.prompt = self.prompt.with_messages(kept)

    # -- Tools --

    def find_tool(self, tool: type[Tool] | Tool | str) -> SafeTool:
        key = tool.name if isinstance(tool, Tool) else tool
        found = self._tool_registry.get_tool(key)
        if found.name not in {t.name for t in self.tools}:
            raise ToolRegistryError(f'Tool "{found.name}" is not defined')
        return SafeTool(found, self._environment)

    async def call_tool(self, tool: type[Tool] | Tool | str, args: Any) -> SafeToolResult:
        return await self.find_tool(tool).execute(args)

    async def call_tool_raw(self, tool: type[Tool] | Tool | str, args: Any) -> str:
        return await self.find_tool(tool).execute_raw(args)
