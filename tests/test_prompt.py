"""
Prompt snapshot and agent configuration tests
"""

import pytest
from pydantic import ValidationError

from weft.config import AgentConfig, MissingToolsConversionStrategy
from weft.prompt import prompt
from weft.tools import ReceivedToolResult
from weft.types import (
    AssistantMessage,
    LLMParams,
    SystemMessage,
    ToolCall,
    ToolChoice,
    ToolMessage,
    UserMessage,
)


class TestPrompt:
    def test_builder_appends_in_order(self):
        built = prompt(
            "calc",
            lambda b: b.system("sys")
            .user("add")
            .tool_call("1", "plus", '{"a": 1, "b": 2}')
            .tool_result(ReceivedToolResult("1", "plus", "3", result=3, successful=True))
            .assistant("3"),
        )
        assert built.messages == (
            SystemMessage("sys"),
            UserMessage("add"),
            ToolCall("1", "plus", '{"a": 1, "b": 2}'),
            ToolMessage("1", "plus", "3"),
            AssistantMessage("3"),
        )
        assert built.latest_user_message == UserMessage("add")

    def test_updates_return_new_snapshots(self):
        original = prompt("calc", lambda b: b.user("a"))
        updated = original.with_updated_messages(lambda ms: ms + [UserMessage("b")])
        tuned = updated.with_updated_params(temperature=0.5, tool_choice=ToolChoice.NONE)

        assert len(original.messages) == 1
        assert len(updated.messages) == 2
        assert tuned.params == LLMParams(temperature=0.5, tool_choice=ToolChoice.NONE)
        assert updated.params == LLMParams()

    def test_tool_call_args(self):
        assert ToolCall("1", "plus", "").args == {}
        assert ToolCall("1", "plus", '{"a": 1}').args == {"a": 1}


class TestAgentConfig:
    def test_with_system_prompt(self, model):
        config = AgentConfig.with_system_prompt("Be brief.", model, max_agent_iterations=5)
        assert config.prompt.id == "weft-agent"
        assert config.prompt.messages == (SystemMessage("Be brief."),)
        assert config.max_agent_iterations == 5
        assert config.missing_tools_conversion is MissingToolsConversionStrategy.MISSING

    def test_iterations_must_be_positive(self, model):
        with pytest.raises(ValidationError):
            AgentConfig.with_system_prompt("x", model, max_agent_iterations=0)

    def test_frozen(self, config):
        with pytest.raises(ValidationError):
            config.max_agent_iterations = 1
