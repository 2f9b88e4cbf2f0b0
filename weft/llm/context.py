"""LLMContext: owns the baseline prompt/tools/model and hands out sessions."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from ..config import AgentConfig
from ..prompt import Prompt
from ..tools import ToolRegistry
from ..types import LLModel, ToolDescriptor
from .rwlock import RWLock
from .session import ReadSession, WriteSession

if TYPE_CHECKING:
    from ..agent.environment import AgentEnvironment
    from .proxy import PromptExecutorProxy


class LLMContext:
    """Single-writer / multi-reader access to the prompt of one agent context.

    ``write_session`` publishes the session's prompt, tools and model back as the
    new baseline only when its block exits normally; the session is closed on
    every exit path.
    """

    def __init__(
        self,
        tools: list[ToolDescriptor],
        tool_registry: ToolRegistry,
        prompt: Prompt,
        model: LLModel,
        executor: PromptExecutorProxy,
        environment: AgentEnvironment,
        config: AgentConfig,
    ) -> None:
        self._tools = list(tools)
        self.tool_registry = tool_registry
        self._prompt = prompt
        self._model = model
        self.executor = executor
        self.environment = environment
        self.config = config
        self._lock = RWLock()

    @asynccontextmanager
    async def write_session(self) -> AsyncIterator[WriteSession]:
        async with self._lock.write():
            session = WriteSession(
                executor=self.executor,
                tools=self._tools,
                tool_registry=self.tool_registry,
                prompt=self._prompt,
                model=self._model,
                environment=self.environment,
                config=self.config,
            )
            try:
                yield session
                prompt, tools, model = session.prompt, session.tools, session.model
            finally:
                session.close()
            self._prompt, self._tools, self._model = prompt, list(tools), model

    @asynccontextmanager
    async def read_session(self) -> AsyncIterator[ReadSession]:
        async with self._lock.read():
            session = ReadSession(
                executor=self.executor,
                tools=self._tools,
                tool_registry=self.tool_registry,
                prompt=self._prompt,
                model=self._model,
                environment=self.environment,
                config=self.config,
            )
            try:
                yield session
            finally:
                session.close()

    def copy(
        self,
        tools: list[ToolDescriptor] | None = None,
        prompt: Prompt | None = None,
        model: LLModel | None = None,
    ) -> LLMContext:
        """Independent context (own lock) seeded from the current baseline."""
        return LLMContext(
            tools=self._tools if tools is None else tools,
            tool_registry=self.tool_registry,
            prompt=self._prompt if prompt is None else prompt,
            model=self._model if model is None else model,
            executor=self.executor,
            environment=self.environment,
            config=self.config,
        )
