"""
Feature pipeline tests: hook dispatch, EventHandler and Tracing writers
"""

import io
import json
import logging

import pytest
from conftest import is_tool_result
from rich.console import Console

from weft.agent import AIAgent
from weft.features import (
    AgentPipeline,
    EventHandler,
    FeatureConfig,
    FeatureMessageProcessor,
    TraceConsoleWriter,
    TraceFileWriter,
    TraceLogWriter,
    Tracing,
)
from weft.features.messages import AgentFinishedEvent, ToolCallEvent
from weft.features.tracing.writers import format_event
from weft.state import StorageKey


class CollectingProcessor(FeatureMessageProcessor):
    def __init__(self):
        self.messages = []
        self.initialized = False
        self.closed = False

    async def initialize(self):
        self.initialized = True

    async def process_message(self, message):
        self.messages.append(message)

    async def close(self):
        self.closed = True


class FailingProcessor(FeatureMessageProcessor):
    async def initialize(self):
        raise OSError("cannot open")

    async def process_message(self, message):
        raise RuntimeError("sink down")


class DummyFeature:
    key = StorageKey("dummy")

    def create_initial_config(self):
        return FeatureConfig()

    def install(self, config, pipeline):
        pass


class TestAgentPipeline:
    """Hook dispatch rules"""

    @pytest.mark.asyncio
    async def test_handlers_run_in_registration_order(self):
        pipeline = AgentPipeline()
        calls = []
        pipeline.intercept_agent_started(DummyFeature(), lambda name: calls.append(("first", name)))

        async def second(name):
            calls.append(("second", name))

        pipeline.intercept_agent_started(DummyFeature(), second)
        await pipeline.on_agent_started("s")
        assert calls == [("first", "s"), ("second", "s")]

    @pytest.mark.asyncio
    async def test_failing_handler_is_isolated(self, caplog):
        pipeline = AgentPipeline()
        calls = []

        def explode(name):
            raise ValueError("bad handler")

        pipeline.intercept_agent_started(DummyFeature(), explode)
        pipeline.intercept_agent_started(DummyFeature(), calls.append)
        with caplog.at_level(logging.ERROR, logger="weft.features.pipeline"):
            await pipeline.on_agent_started("s")
        assert calls == ["s"]
        assert "dummy failed in agent_started handler" in caplog.text

    @pytest.mark.asyncio
    async def test_run_error_handled_if_any_handler_returns_true(self):
        pipeline = AgentPipeline()
        assert await pipeline.on_agent_run_error("s", RuntimeError()) is False
        pipeline.intercept_agent_run_error(DummyFeature(), lambda name, error: None)
        pipeline.intercept_agent_run_error(DummyFeature(), lambda name, error: True)
        assert await pipeline.on_agent_run_error("s", RuntimeError()) is True

    @pytest.mark.asyncio
    async def test_processors_prepared_and_closed(self):
        pipeline = AgentPipeline()
        collector = CollectingProcessor()

        def configure(config):
            config.add_message_processor(FailingProcessor())
            config.add_message_processor(collector)

        pipeline.install(DummyFeature(), configure)
        assert pipeline.installed_features == [DummyFeature.key]
        await pipeline.prepare_features()
        await pipeline.close_features()
        assert collector.initialized and collector.closed

    def test_context_feature_factory(self):
        pipeline = AgentPipeline()
        assert pipeline.create_context_feature(DummyFeature.key, None) is None
        pipeline.intercept_context_feature(DummyFeature(), lambda context: ("instance", context))
        assert pipeline.create_context_feature(DummyFeature.key, "ctx") == ("instance", "ctx")


class TestFeatureConfig:
    """Message dispatch to processors"""

    @pytest.mark.asyncio
    async def test_filter_and_failing_processor(self):
        config = FeatureConfig()
        collector = CollectingProcessor()
        config.add_message_processor(FailingProcessor())
        config.add_message_processor(collector)
        config.set_message_filter(lambda m: m != "skip")

        await config.dispatch("keep")
        await config.dispatch("skip")
        assert collector.messages == ["keep"]


class TestTracing:
    """Tracing records every hook as an event"""

    def agent(self, executor, config, registry, strategy, configure):
        return AIAgent(
            executor,
            strategy,
            config,
            tool_registry=registry,
            install_features=lambda pipeline: pipeline.install(Tracing(), configure),
        )

    @pytest.mark.asyncio
    async def test_event_order(self, executor, config, registry, calculator_strategy):
        executor.when("add").call_tool("plus", {"a": 2, "b": 3})
        executor.when(is_tool_result).respond("5")
        collector = CollectingProcessor()
        agent = self.agent(
            executor, config, registry, calculator_strategy,
            lambda c: c.add_message_processor(collector),
        )
        await agent.run("add 2 and 3")

        assert [e.event_type for e in collector.messages] == [
            "AgentCreateEvent",
            "AgentStartedEvent",
            "StrategyStartEvent",
            "NodeExecutionStartEvent",
            "NodeExecutionEndEvent",
            "NodeExecutionStartEvent",
            "LLMCallWithToolsStartEvent",
            "LLMCallWithToolsEndEvent",
            "NodeExecutionEndEvent",
            "NodeExecutionStartEvent",
            "ToolCallEvent",
            "ToolCallResultEvent",
            "NodeExecutionEndEvent",
            "NodeExecutionStartEvent",
            "LLMCallWithToolsStartEvent",
            "LLMCallWithToolsEndEvent",
            "NodeExecutionEndEvent",
            "StrategyFinishedEvent",
            "AgentFinishedEvent",
        ]
        tool_call = next(e for e in collector.messages if isinstance(e, ToolCallEvent))
        assert tool_call.tool_args == {"a": 2, "b": 3}
        assert tool_call.stage_name == "default"
        assert collector.messages[-1].result == "5"
        assert collector.initialized and collector.closed

    @pytest.mark.asyncio
    async def test_message_filter(self, executor, config, registry, calculator_strategy):
        collector = CollectingProcessor()

        def configure(c):
            c.add_message_processor(collector)
            c.set_message_filter(lambda e: isinstance(e, AgentFinishedEvent))

        await self.agent(executor, config, registry, calculator_strategy, configure).run("hi")
        assert [e.event_type for e in collector.messages] == ["AgentFinishedEvent"]

    @pytest.mark.asyncio
    async def test_file_writer(self, executor, config, registry, calculator_strategy, tmp_path):
        path = tmp_path / "traces" / "run.jsonl"
        writer = TraceFileWriter(path)
        await self.agent(
            executor, config, registry, calculator_strategy,
            lambda c: c.add_message_processor(writer),
        ).run("hi")

        records = [json.loads(line) for line in path.read_text().splitlines()]
        assert records[0]["event_type"] == "AgentCreateEvent"
        last = records[-1]
        assert (last["event_type"], last["strategy_name"], last["result"]) == (
            "AgentFinishedEvent",
            "calculator",
            "Done",
        )
        assert all("timestamp" in r and "event_id" in r for r in records)

    @pytest.mark.asyncio
    async def test_file_writer_requires_initialize(self, tmp_path):
        writer = TraceFileWriter(tmp_path / "run.jsonl")
        with pytest.raises(RuntimeError, match="not initialized"):
            await writer.process_message(AgentFinishedEvent(strategy_name="s", result=None))

    @pytest.mark.asyncio
    async def test_log_writer(self, executor, config, registry, calculator_strategy, caplog):
        trace_logger = logging.getLogger("weft.tests.trace")
        with caplog.at_level(logging.INFO, logger="weft.tests.trace"):
            await self.agent(
                executor, config, registry, calculator_strategy,
                lambda c: c.add_message_processor(TraceLogWriter(trace_logger)),
            ).run("hi")
        assert "AgentFinishedEvent (strategy_name='calculator', result='Done')" in caplog.text

    @pytest.mark.asyncio
    async def test_console_writer(self):
        buffer = io.StringIO()
        writer = TraceConsoleWriter(Console(file=buffer, width=120, color_system=None))
        await writer.process_message(
            ToolCallEvent(stage_name="default", tool_name="plus", tool_args={"a": 1, "b": 2})
        )
        await writer.process_message(AgentFinishedEvent(strategy_name="calc", result="3"))
        output = buffer.getvalue()
        assert "ToolCallEvent plus" in output
        assert '"a": 1' in output
        assert "AgentFinishedEvent result='3'" in output

    def test_format_event(self):
        event = ToolCallEvent(stage_name="default", tool_name="plus", tool_args={"a": 1})
        assert format_event(event) == (
            "ToolCallEvent (stage_name='default', tool_name='plus', tool_args={'a': 1})"
        )

    def test_install_without_processors_warns(self, caplog):
        with caplog.at_level(logging.WARNING, logger="weft.features.tracing.feature"):
            AgentPipeline().install(Tracing())
        assert "without message processors" in caplog.text


class TestEventHandler:
    @pytest.mark.asyncio
    async def test_llm_call_callbacks(self, executor, config, calculator_strategy):
        seen = []

        def configure(c):
            c.on_before_llm_call = lambda prompt: seen.append(("before", prompt.id))
            c.on_after_llm_call = lambda responses: seen.append(("after", responses[0].content))
            c.on_strategy_finished = lambda name, result: seen.append(("finished", name, result))

        agent = AIAgent(
            executor,
            calculator_strategy,
            config,
            install_features=lambda p: p.install(EventHandler(), configure),
        )
        await agent.run("hi")
        assert seen == [
            ("before", "weft-agent"),
            ("after", "Done"),
            ("finished", "calculator", "Done"),
        ]
