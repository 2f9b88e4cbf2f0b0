"""EventHandler: plug plain callbacks into the agent pipeline."""

from __future__ import annotations

from typing import Any, Callable

from ..state import StorageKey
from .base import FeatureConfig
from .pipeline import AgentPipeline

Callback = Callable[..., Any]


class EventHandlerConfig(FeatureConfig):
    """Callbacks per hook; each may be sync or async.

    ``on_agent_run_error(strategy_name, error)`` may return True to mark the
    error as handled, in which case the agent does not raise it.
    """

    def __init__(self) -> None:
        super().__init__()
        self.on_agent_created: Callback | None = None
        self.on_agent_started: Callback | None = None
        self.on_agent_finished: Callback | None = None
        self.on_agent_run_error: Callback | None = None
        self.on_strategy_started: Callback | None = None
        self.on_strategy_finished: Callback | None = None
        self.on_before_node: Callback | None = None
        self.on_after_node: Callback | None = None
        self.on_before_llm_call: Callback | None = None
        self.on_after_llm_call: Callback | None = None
        self.on_before_llm_call_with_tools: Callback | None = None
        self.on_after_llm_call_with_tools: Callback | None = None
        self.on_tool_call: Callback | None = None
        self.on_tool_validation_error: Callback | None = None
        self.on_tool_call_failure: Callback | None = None
        self.on_tool_call_result: Callback | None = None


class EventHandler:
    key: StorageKey = StorageKey("event_handler")

    def create_initial_config(self) -> EventHandlerConfig:
        return EventHandlerConfig()

    def install(self, config: EventHandlerConfig, pipeline: AgentPipeline) -> None:
        hooks = {
            "on_agent_created": pipeline.intercept_agent_created,
            "on_agent_started": pipeline.intercept_agent_started,
            "on_agent_finished": pipeline.intercept_agent_finished,
            "on_agent_run_error": pipeline.intercept_agent_run_error,
            "on_strategy_started": pipeline.intercept_strategy_started,
            "on_strategy_finished": pipeline.intercept_strategy_finished,
            "on_before_node": pipeline.intercept_before_node,
            "on_after_node": pipeline.intercept_after_node,
            "on_before_llm_call": pipeline.intercept_before_llm_call,
            "on_after_llm_call": pipeline.intercept_after_llm_call,
            "on_before_llm_call_with_tools": pipeline.intercept_before_llm_call_with_tools,
            "on_after_llm_call_with_tools": pipeline.intercept_after_llm_call_with_tools,
            "on_tool_call": pipeline.intercept_tool_call,
            "on_tool_validation_error": pipeline.intercept_tool_validation_error,
            "on_tool_call_failure": pipeline.intercept_tool_call_failure,
            "on_tool_call_result": pipeline.intercept_tool_call_result,
        }
        for attr, intercept in hooks.items():
            callback = getattr(config, attr)
            if callback is not None:
                intercept(self, callback)
