"""LLM model, parameter and executor types."""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from .messages import Response
from .tools import ToolDescriptor

if TYPE_CHECKING:
    from ..prompt import Prompt


@dataclass(frozen=True)
class LLModel:
    provider: str
    id: str
    capabilities: tuple[str, ...] = ()


@dataclass(frozen=True)
class ToolChoice:
    mode: str  # "auto" | "none" | "required" | "named"
    tool: str | None = None

    @classmethod
    def named(cls, tool: str) -> ToolChoice:
        return cls("named", tool)


ToolChoice.AUTO = ToolChoice("auto")
ToolChoice.NONE = ToolChoice("none")
ToolChoice.REQUIRED = ToolChoice("required")


@dataclass(frozen=True)
class LLMParams:
    temperature: float | None = None
    tool_choice: ToolChoice | None = None
    schema: dict[str, Any] | None = None
    number_of_choices: int = 1


@runtime_checkable
class PromptExecutor(Protocol):
    """Client boundary to an LLM provider."""

    async def execute(
        self, prompt: Prompt, model: LLModel, tools: list[ToolDescriptor] | None = None
    ) -> list[Response]: ...

    def execute_streaming(self, prompt: Prompt, model: LLModel) -> AsyncIterator[str]: ...

    async def embed(self, text: str, model: LLModel) -> list[float]: ...
