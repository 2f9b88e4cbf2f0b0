"""Agent configuration."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from ..prompt import Prompt, prompt
from ..types import LLModel


class MissingToolsConversionStrategy(StrEnum):
    """How tool messages are rewritten before a request.

    MISSING converts only calls/results of tools absent from the current tool
    list; ALL converts every tool message into plain text.
    """

    MISSING = "missing"
    ALL = "all"


class AgentConfig(BaseModel):
    """Static configuration of one agent: initial prompt, model and run limits."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    prompt: Prompt = Field(..., description="Initial prompt (system instructions, history)")
    model: LLModel = Field(..., description="Model used for LLM requests")
    max_agent_iterations: int = Field(50, gt=0, description="Upper bound on executed nodes per run")
    missing_tools_conversion: MissingToolsConversionStrategy = Field(
        MissingToolsConversionStrategy.MISSING,
        description="Tool message conversion applied before each request",
    )

    @classmethod
    def with_system_prompt(
        cls,
        system_prompt: str,
        model: LLModel,
        id: str = "weft-agent",
        max_agent_iterations: int = 50,
    ) -> AgentConfig:
        return cls(
            prompt=prompt(id, lambda b: b.system(system_prompt)),
            model=model,
            max_agent_iterations=max_agent_iterations,
        )
