"""Feature event records, one per pipeline hook."""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class FeatureEvent:
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()), kw_only=True)
    timestamp: datetime = field(default_factory=_now, kw_only=True)

    @property
    def event_type(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        data["event_type"] = self.event_type
        return data


# -- Agent --


@dataclass
class AgentCreateEvent(FeatureEvent):
    strategy_name: str


@dataclass
class AgentStartedEvent(FeatureEvent):
    strategy_name: str


@dataclass
class AgentFinishedEvent(FeatureEvent):
    strategy_name: str
    result: str | None


@dataclass
class AgentRunErrorEvent(FeatureEvent):
    strategy_name: str
    error: str


# -- Strategy --


@dataclass
class StrategyStartEvent(FeatureEvent):
    strategy_name: str


@dataclass
class StrategyFinishedEvent(FeatureEvent):
    strategy_name: str
    result: str


# -- Nodes --


@dataclass
class NodeExecutionStartEvent(FeatureEvent):
    node_name: str
    stage_name: str
    input: str


@dataclass
class NodeExecutionEndEvent(FeatureEvent):
    node_name: str
    stage_name: str
    input: str
    output: str


# -- LLM --


@dataclass
class LLMCallStartEvent(FeatureEvent):
    prompt_id: str
    messages: list[dict[str, Any]]


@dataclass
class LLMCallEndEvent(FeatureEvent):
    responses: list[dict[str, Any]]


@dataclass
class LLMCallWithToolsStartEvent(FeatureEvent):
    prompt_id: str
    messages: list[dict[str, Any]]
    tools: list[str]


@dataclass
class LLMCallWithToolsEndEvent(FeatureEvent):
    responses: list[dict[str, Any]]
    tools: list[str]


# -- Tools --


@dataclass
class ToolCallEvent(FeatureEvent):
    stage_name: str
    tool_name: str
    tool_args: Any


@dataclass
class ToolValidationErrorEvent(FeatureEvent):
    stage_name: str
    tool_name: str
    tool_args: Any
    error: str


@dataclass
class ToolCallFailureEvent(FeatureEvent):
    stage_name: str
    tool_name: str
    tool_args: Any
    error: str


@dataclass
class ToolCallResultEvent(FeatureEvent):
    stage_name: str
    tool_name: str
    tool_args: Any
    result: str
