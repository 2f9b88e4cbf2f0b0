"""
Strategy graph tests: execution loop, stages, subgraphs and nested strategies
"""

import logging

import pytest
from conftest import BrokenTool, DivideTool, PlusTool

from weft.agent import AIAgent, ContextTransitionPolicy, Node
from weft.agent import nodes
from weft.agent.builder import StrategyBuilder, simple_strategy
from weft.agent.graph import AutoSelectForTask, ToolSelectionStrategy, Tools
from weft.config import AgentConfig
from weft.errors import AgentStuckInNodeError, MaxIterationsReachedError, UnexpectedServerError
from weft.features import EventHandler
from weft.llm.compression import SUMMARIZE_PROMPT
from weft.tools import simple_tool_registry
from weft.types import AssistantMessage, SystemMessage, UserMessage


def linear(stage, *steps):
    """start -> steps... -> finish with unconditional edges."""
    chain = [stage.node_start, *steps, stage.node_finish]
    for source, target in zip(chain, chain[1:]):
        stage.edge(source.forward_to(target))


def send_and_finish(stage):
    send = nodes.llm_send_stage_input()
    stage.edge(stage.node_start.forward_to(send))
    stage.edge(send.forward_to(stage.node_finish).on_assistant_message())


def read_last_message(name="read_last"):
    async def run(context, value):
        async with context.llm.read_session() as session:
            return session.prompt.messages[-1].content

    return Node(name, run)


class TestExecutionLoop:
    """Node-by-node loop"""

    @pytest.mark.asyncio
    async def test_values_flow_through_nodes(self, executor, config):
        builder, stage = simple_strategy("pipeline")
        linear(
            stage,
            stage.node("double", lambda ctx, v: v * 2),
            stage.node("shout", lambda ctx, v: v.upper()),
        )
        agent = AIAgent(executor, builder.build(), config)
        assert await agent.run_and_get_result("ab") == "ABAB"

    @pytest.mark.asyncio
    async def test_node_hooks_wrap_each_node(self, executor, config):
        builder, stage = simple_strategy("hooks")
        linear(stage, stage.node("inc", lambda ctx, v: v + "!"))
        events = []

        def install(pipeline):
            def configure(c):
                c.on_before_node = lambda node, ctx, value: events.append(("before", node.name))
                c.on_after_node = lambda node, ctx, value, out: events.append(("after", node.name, out))

            pipeline.install(EventHandler(), configure)

        agent = AIAgent(executor, builder.build(), config, install_features=install)
        await agent.run("hi")
        assert events == [
            ("before", "__start__"),
            ("after", "__start__", "hi"),
            ("before", "inc"),
            ("after", "inc", "hi!"),
        ]

    @pytest.mark.asyncio
    async def test_stuck_node(self, executor, config):
        builder, stage = simple_strategy("stuck")
        check = stage.node("check", lambda ctx, v: v)
        stage.edge(stage.node_start.forward_to(check))
        stage.edge(check.forward_to(stage.node_finish).on_condition(lambda v: v == "go"))
        agent = AIAgent(executor, builder.build(), config)

        with pytest.raises(UnexpectedServerError) as exc_info:
            await agent.run("stop")
        cause = exc_info.value.__cause__
        assert isinstance(cause, AgentStuckInNodeError)
        assert cause.node_name == "check"
        assert cause.output == "stop"

    @pytest.mark.asyncio
    async def test_max_iterations(self, executor, model):
        config = AgentConfig.with_system_prompt("loop", model, max_agent_iterations=3)
        builder, stage = simple_strategy("loop")
        spin = stage.node("spin", lambda ctx, v: v)
        stage.edge(stage.node_start.forward_to(spin))
        stage.edge(spin.forward_to(spin))
        agent = AIAgent(executor, builder.build(), config)

        with pytest.raises(UnexpectedServerError) as exc_info:
            await agent.run("x")
        assert isinstance(exc_info.value.__cause__, MaxIterationsReachedError)
        assert exc_info.value.__cause__.max_iterations == 3

    @pytest.mark.asyncio
    async def test_feedback_loop_terminates(self, executor, model):
        config = AgentConfig.with_system_prompt("loop", model, max_agent_iterations=10)
        visits = []

        def tick(ctx, value):
            visits.append(value)
            return value + "."

        builder, stage = simple_strategy("feedback")
        step = stage.node("tick", tick)
        stage.edge(stage.node_start.forward_to(step))
        stage.edge(step.forward_to(step).on_condition(lambda v: len(v) < 4))
        stage.edge(step.forward_to(stage.node_finish))
        agent = AIAgent(executor, builder.build(), config)

        assert await agent.run_and_get_result("x") == "x..."
        assert visits == ["x", "x.", "x.."]


class TestBuilders:
    def test_strategy_without_stages(self):
        with pytest.raises(ValueError, match="has no stages"):
            StrategyBuilder("empty").build()

    def test_unreachable_finish_warns(self, caplog):
        builder, stage = simple_strategy("dead-end")
        stage.edge(stage.node_start.forward_to(stage.node("orphan", lambda ctx, v: v)))
        with caplog.at_level(logging.WARNING, logger="weft.agent.builder"):
            builder.build()
        assert "has no outgoing edges" in caplog.text
        assert "not reachable" in caplog.text


class TestStages:
    """Multi-stage strategies and history transition policies"""

    def two_stages(self, policy):
        builder = StrategyBuilder("staged", policy)
        send_and_finish(builder.stage("first"))
        send_and_finish(builder.stage("second"))
        return builder.build()

    @pytest.mark.asyncio
    async def test_persist_history(self, executor, config):
        agent = AIAgent(executor, self.two_stages(ContextTransitionPolicy.PERSIST_LLM_HISTORY), config)
        await agent.run("hello")
        second = executor.prompts[1].messages
        assert second == (
            SystemMessage("You are a calculator."),
            UserMessage("hello"),
            AssistantMessage("Done"),
            UserMessage("Done"),
        )

    @pytest.mark.asyncio
    async def test_clear_history(self, executor, config):
        strategy = self.two_stages(ContextTransitionPolicy.CLEAR_LLM_HISTORY)
        assert [s.name for s in strategy.stages] == ["first", "__clear_history__", "second"]

        agent = AIAgent(executor, strategy, config)
        await agent.run("hello")
        assert executor.prompts[1].messages == (UserMessage("Done"),)

    @pytest.mark.asyncio
    async def test_compress_history(self, executor, config):
        executor.when(SUMMARIZE_PROMPT).respond("User said hello")
        strategy = self.two_stages(ContextTransitionPolicy.COMPRESS_LLM_HISTORY)
        agent = AIAgent(executor, strategy, config)
        await agent.run("hello")

        assert executor.prompts[1].messages[-1] == UserMessage(SUMMARIZE_PROMPT)
        assert executor.prompts[2].messages == (
            SystemMessage("You are a calculator."),
            UserMessage("hello"),
            AssistantMessage("User said hello"),
            UserMessage("Done"),
        )


class TestSubgraphs:
    """Tool selection inside subgraphs"""

    def strategy_with_subgraph(self, selection):
        builder, stage = simple_strategy("outer")
        inner = stage.subgraph("math", selection)
        send_and_finish(inner)
        linear(stage, inner.build(), read_last_message())
        return builder.build()

    @pytest.fixture
    def registry(self, plus_tool):
        return simple_tool_registry([plus_tool, DivideTool()])

    @pytest.mark.asyncio
    async def test_fixed_tools(self, executor, config, registry):
        selection = Tools([PlusTool().descriptor])
        agent = AIAgent(executor, self.strategy_with_subgraph(selection), config, tool_registry=registry)
        result = await agent.run_and_get_result("hi")

        assert [t.name for t in executor.tools[0]] == ["plus"]
        # inner history is written back to the enclosing context
        assert result == "Done"

    @pytest.mark.asyncio
    async def test_no_tools(self, executor, config, registry):
        strategy = self.strategy_with_subgraph(ToolSelectionStrategy.NONE)
        agent = AIAgent(executor, strategy, config, tool_registry=registry)
        await agent.run("hi")
        assert executor.tools[0] == []

    @pytest.mark.asyncio
    async def test_auto_select(self, executor, config, registry):
        executor.when("SelectedTools").respond('{"tools": ["divide"]}')
        strategy = self.strategy_with_subgraph(AutoSelectForTask("divide two numbers"))
        agent = AIAgent(executor, strategy, config, tool_registry=registry)
        await agent.run("hi")

        assert executor.tools[0] == []
        assert [t.name for t in executor.tools[1]] == ["divide"]
        # the selection exchange is not left in the history
        sent = executor.prompts[1].messages
        assert not any("SelectedTools" in m.content for m in sent)

    @pytest.mark.asyncio
    async def test_stage_tool_selection(self, executor, config, plus_tool):
        seen = []

        async def record_tools(context, value):
            async with context.llm.read_session() as session:
                seen.append([t.name for t in session.tools])
            return value

        builder = StrategyBuilder("staged")
        stage = builder.stage(tool_selection=Tools([PlusTool().descriptor]))
        linear(stage, stage.node("record", record_tools))
        registry = simple_tool_registry([plus_tool, BrokenTool()])
        agent = AIAgent(executor, builder.build(), config, tool_registry=registry)

        assert await agent.run_and_get_result("hi") == "hi"
        assert seen == [["plus"]]


class TestNestedStrategy:
    """A strategy used as a node of another strategy"""

    def inner(self, fail=False):
        builder, stage = simple_strategy("inner")
        shout = stage.node("shout", lambda ctx, v: v.upper())
        stage.edge(stage.node_start.forward_to(shout))
        if fail:
            stage.edge(shout.forward_to(stage.node_finish).on_condition(lambda v: False))
        else:
            stage.edge(shout.forward_to(stage.node_finish))
        return builder.build()

    @pytest.mark.asyncio
    async def test_inner_result_becomes_node_output(self, executor, config):
        builder, stage = simple_strategy("outer")
        linear(stage, self.inner(), stage.node("exclaim", lambda ctx, v: v + "!"))
        agent = AIAgent(executor, builder.build(), config)
        assert await agent.run_and_get_result("hey") == "HEY!"

    @pytest.mark.asyncio
    async def test_inner_failure_propagates(self, executor, config):
        builder, stage = simple_strategy("outer")
        linear(stage, self.inner(fail=True))
        agent = AIAgent(executor, builder.build(), config)
        with pytest.raises(UnexpectedServerError) as exc_info:
            await agent.run("hey")
        assert isinstance(exc_info.value.__cause__, AgentStuckInNodeError)

    @pytest.mark.asyncio
    async def test_inner_nodes_count_against_outer_budget(self, executor, model):
        def outer():
            builder, stage = simple_strategy("outer")
            linear(stage, self.inner())
            return builder.build()

        # outer start, the nested strategy node, inner start and shout
        enough = AgentConfig.with_system_prompt("x", model, max_agent_iterations=4)
        assert await AIAgent(executor, outer(), enough).run_and_get_result("hey") == "HEY"

        short = AgentConfig.with_system_prompt("x", model, max_agent_iterations=3)
        with pytest.raises(UnexpectedServerError) as exc_info:
            await AIAgent(executor, outer(), short).run("hey")
        assert isinstance(exc_info.value.__cause__, MaxIterationsReachedError)
