"""AgentContext: everything a node can reach while it runs."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from ..config import AgentConfig
from ..llm import LLMContext
from ..state import AgentStateManager, AgentStorage
from ..types import ToolDescriptor

if TYPE_CHECKING:
    from ..features.base import AgentFeature
    from ..features.pipeline import AgentPipeline
    from .environment import AgentEnvironment


@dataclass
class AgentContext:
    environment: AgentEnvironment
    agent_input: str
    config: AgentConfig
    llm: LLMContext
    state_manager: AgentStateManager
    storage: AgentStorage
    session_id: str
    strategy_id: str
    stage_name: str
    pipeline: AgentPipeline
    _features: dict[Any, Any] = field(default_factory=dict, repr=False)

    def feature(self, feature: AgentFeature) -> Any:
        """Per-context instance of an installed feature, created on first access."""
        if feature.key not in self._features:
            instance = self.pipeline.create_context_feature(feature.key, self)
            if instance is None:
                raise KeyError(f"Feature {feature.key.name} is not installed")
            self._features[feature.key] = instance
        return self._features[feature.key]

    def copy_with_tools(self, tools: list[ToolDescriptor]) -> AgentContext:
        return replace(self, llm=self.llm.copy(tools=tools), _features={})
