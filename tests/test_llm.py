"""
LLM context tests: read/write sessions, RW lock, structured output and history rewriting
"""

import asyncio

import pytest
from pydantic import BaseModel

from weft.config import MissingToolsConversionStrategy
from weft.errors import SessionClosedError, StructuredOutputError, ToolRegistryError
from weft.llm import (
    FromLastNMessages,
    JsonStructuredData,
    RWLock,
    SessionState,
    convert_tool_messages,
)
from weft.llm.compression import MEMORY_FACTS_PREFIX, SUMMARIZE_PROMPT
from weft.prompt import prompt
from weft.tools import Success
from weft.types import (
    AssistantMessage,
    SystemMessage,
    ToolCall,
    ToolChoice,
    ToolMessage,
    UserMessage,
)


class Answer(BaseModel):
    value: int


@pytest.fixture
def llm(make_llm):
    return make_llm()


class TestRWLock:
    """Readers share, writers are exclusive and preferred"""

    @pytest.mark.asyncio
    async def test_readers_share(self):
        lock = RWLock()
        async with lock.read():
            async with lock.read():
                assert lock.readers == 2
        assert lock.readers == 0

    @pytest.mark.asyncio
    async def test_writer_waits_for_readers(self):
        lock = RWLock()
        order = []

        async def writer():
            async with lock.write():
                order.append("write")

        async with lock.read():
            task = asyncio.create_task(writer())
            await asyncio.sleep(0)
            order.append("read")
            assert not lock.write_locked
        await task
        assert order == ["read", "write"]

    @pytest.mark.asyncio
    async def test_waiting_writer_blocks_new_readers(self):
        lock = RWLock()
        order = []

        async def writer():
            async with lock.write():
                order.append("write")

        async def late_reader():
            async with lock.read():
                order.append("late read")

        async with lock.read():
            w = asyncio.create_task(writer())
            await asyncio.sleep(0)
            r = asyncio.create_task(late_reader())
            await asyncio.sleep(0)
            assert order == []
        await asyncio.gather(w, r)
        assert order == ["write", "late read"]


class TestSessions:
    """Session lifecycle and publication rules"""

    @pytest.mark.asyncio
    async def test_write_published_on_normal_exit(self, llm):
        async with llm.write_session() as session:
            session.update_prompt(lambda b: b.user("hi"))
        async with llm.read_session() as session:
            assert session.prompt.messages[-1] == UserMessage("hi")

    @pytest.mark.asyncio
    async def test_failed_write_not_published(self, llm):
        with pytest.raises(RuntimeError):
            async with llm.write_session() as session:
                session.update_prompt(lambda b: b.user("lost"))
                raise RuntimeError("node failed")
        async with llm.read_session() as session:
            assert session.prompt.messages == (SystemMessage("You are a calculator."),)

    @pytest.mark.asyncio
    async def test_closed_session_rejects_access(self, llm):
        async with llm.write_session() as session:
            assert session.state is SessionState.OPEN
        assert session.state is SessionState.CLOSED
        with pytest.raises(SessionClosedError):
            session.prompt
        with pytest.raises(SessionClosedError):
            session.update_prompt(lambda b: b.user("late"))

    @pytest.mark.asyncio
    async def test_read_session_is_read_only(self, llm):
        async with llm.read_session() as session:
            with pytest.raises(AttributeError):
                session.prompt = prompt("other")
            assert not hasattr(session, "request_llm")

    @pytest.mark.asyncio
    async def test_readers_see_snapshot(self, llm):
        """A reader keeps the snapshot it started with"""
        async with llm.read_session() as session:
            snapshot = session.prompt
        async with llm.write_session() as session:
            session.update_prompt(lambda b: b.user("new"))
        assert len(snapshot.messages) == 1

    @pytest.mark.asyncio
    async def test_concurrent_writers_do_not_lose_messages(self, llm):
        async def writer(tag):
            for i in range(5):
                async with llm.write_session() as session:
                    session.update_prompt(lambda b: b.user(f"{tag}{i}"))
                    await asyncio.sleep(0)

        await asyncio.gather(writer("a"), writer("b"))

        async with llm.read_session() as session:
            contents = [m.content for m in session.prompt.messages[1:]]
        assert len(contents) == 10
        assert [c for c in contents if c.startswith("a")] == [f"a{i}" for i in range(5)]
        assert [c for c in contents if c.startswith("b")] == [f"b{i}" for i in range(5)]

    @pytest.mark.asyncio
    async def test_reader_waits_for_open_write(self, llm):
        """A read requested during a write sees only the committed result"""
        started, release = asyncio.Event(), asyncio.Event()
        seen = []

        async def slow_writer():
            async with llm.write_session() as session:
                session.update_prompt(lambda b: b.user("pending"))
                started.set()
                await release.wait()

        async def reader():
            async with llm.read_session() as session:
                seen.append(session.prompt.messages)

        write = asyncio.create_task(slow_writer())
        await started.wait()
        read = asyncio.create_task(reader())
        for _ in range(3):
            await asyncio.sleep(0)
        assert seen == []

        release.set()
        await asyncio.gather(write, read)
        assert seen == [(SystemMessage("You are a calculator."), UserMessage("pending"))]

    @pytest.mark.asyncio
    async def test_copy_is_independent(self, llm):
        copied = llm.copy(tools=[])
        async with copied.write_session() as session:
            session.update_prompt(lambda b: b.user("only in copy"))
            assert session.tools == []
        async with llm.read_session() as session:
            assert len(session.prompt.messages) == 1


class TestRequests:
    """LLM requests through a write session"""

    @pytest.mark.asyncio
    async def test_request_appends_response(self, llm, executor):
        async with llm.write_session() as session:
            session.update_prompt(lambda b: b.user("hi"))
            response = await session.request_llm()
            assert response == AssistantMessage("Done")
            assert session.prompt.messages[-1] == response
        assert len(executor.tools[0]) == 4

    @pytest.mark.asyncio
    async def test_request_without_tools(self, llm, executor):
        async with llm.write_session() as session:
            await session.request_llm_without_tools()
        assert executor.tools == [[]]

    @pytest.mark.asyncio
    async def test_multiple_responses(self, llm, executor):
        executor.when("both").call_tools([("plus", {"a": 1, "b": 1}), ("divide", {"a": 4, "b": 2})])
        async with llm.write_session() as session:
            session.update_prompt(lambda b: b.user("both"))
            responses = await session.request_llm_multiple()
            assert [r.tool for r in responses] == ["plus", "divide"]
            assert list(session.prompt.messages[-2:]) == responses

    @pytest.mark.asyncio
    async def test_only_calling_tools(self, llm, executor):
        async with llm.write_session() as session:
            await session.request_llm_only_calling_tools()
            assert session.prompt.params.tool_choice is None
        assert executor.prompts[0].params.tool_choice == ToolChoice.REQUIRED

    @pytest.mark.asyncio
    async def test_force_one_tool(self, llm, executor, plus_tool):
        async with llm.write_session() as session:
            await session.request_llm_force_one_tool(plus_tool)
            with pytest.raises(ValueError, match="not defined"):
                await session.request_llm_force_one_tool("missing")
        assert executor.prompts[0].params.tool_choice == ToolChoice.named("plus")

    @pytest.mark.asyncio
    async def test_streaming(self, llm, executor):
        executor.when(lambda m: True).respond("one two three")
        async with llm.write_session() as session:
            chunks = [chunk async for chunk in session.request_llm_streaming()]
        assert chunks == ["one ", "two ", "three"]

    @pytest.mark.asyncio
    async def test_call_tool_from_session(self, llm, make_llm):
        async with llm.write_session() as session:
            result = await session.call_tool("plus", {"a": 1, "b": 2})
            assert isinstance(result, Success)
            assert result.result == 3
            assert await session.call_tool_raw("plus", {"a": 2, "b": 2}) == "4"

        async with make_llm(tools=[]).write_session() as session:
            with pytest.raises(ToolRegistryError):
                session.find_tool("plus")


class TestStructuredOutput:
    """Structured requests with fixing retries"""

    @pytest.mark.asyncio
    async def test_parses_fenced_json(self, llm, executor):
        executor.when("type Answer").respond('```json\n{"value": 7}\n```')
        async with llm.write_session() as session:
            response = await session.request_llm_structured(JsonStructuredData(Answer))
        assert response.structure == Answer(value=7)

    @pytest.mark.asyncio
    async def test_fixing_retry(self, llm, executor):
        executor.when("could not be parsed").respond('{"value": 42}')
        executor.when("type Answer").respond("forty two")
        async with llm.write_session() as session:
            response = await session.request_llm_structured(JsonStructuredData(Answer), retries=2)
        assert response.structure.value == 42
        assert len(executor.prompts) == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_retries(self, llm, executor):
        executor.when("type Answer").respond("forty two")
        async with llm.write_session() as session:
            with pytest.raises(StructuredOutputError) as exc_info:
                await session.request_llm_structured(JsonStructuredData(Answer), retries=2)
        assert exc_info.value.raw == "forty two"
        assert len(executor.prompts) == 3

    @pytest.mark.asyncio
    async def test_one_shot(self, llm, executor):
        executor.when("type Answer").respond("nope")
        async with llm.write_session() as session:
            with pytest.raises(StructuredOutputError):
                await session.request_llm_structured_one_shot(JsonStructuredData(Answer))
        assert len(executor.prompts) == 1

    def test_definition_lists_examples(self):
        structure = JsonStructuredData(Answer, examples=[Answer(value=1)])
        assert '"value"' in structure.definition
        assert '{"value":1}' in structure.definition


class TestHistory:
    """History editing and compression"""

    @pytest.mark.asyncio
    async def test_tldr_keeps_system_first_user_and_memory(self, llm, executor):
        executor.when(SUMMARIZE_PROMPT).respond("summary")
        memory_message = f"{MEMORY_FACTS_PREFIX} [lang](Preferred language...):\n- [lang]: python"
        async with llm.write_session() as session:
            session.update_prompt(
                lambda b: b.user("task")
                .user(memory_message)
                .assistant("working")
                .tool_call("1", "plus", '{"a": 1, "b": 1}')
            )
            await session.replace_history_with_tldr()
            assert session.prompt.messages == (
                SystemMessage("You are a calculator."),
                UserMessage("task"),
                UserMessage(memory_message),
                AssistantMessage("summary"),
            )
        summary_request = executor.prompts[0].messages
        assert not any(isinstance(m, ToolCall) for m in summary_request)

    @pytest.mark.asyncio
    async def test_tldr_from_last_messages_without_memory(self, llm, executor):
        async with llm.write_session() as session:
            session.update_prompt(lambda b: b.user("a").user(f"{MEMORY_FACTS_PREFIX} x").user("c"))
            await session.replace_history_with_tldr(FromLastNMessages(1), preserve_memory=False)
            assert session.prompt.messages[-1] == AssistantMessage("Done")
            assert len(session.prompt.messages) == 3
        assert executor.prompts[0].messages[1:] == (UserMessage("c"), UserMessage(SUMMARIZE_PROMPT))

    @pytest.mark.asyncio
    async def test_leave_last_n_and_clear(self, llm):
        async with llm.write_session() as session:
            session.update_prompt(lambda b: b.user("a").user("b"))
            session.leave_last_n_messages(1)
            assert session.prompt.messages == (UserMessage("b"),)
            session.clear_history()
            assert session.prompt.messages == ()


class TestToolMessageConversion:
    """Tool messages for tools the LLM can't see become plain text"""

    def history(self):
        return prompt(
            "conv",
            lambda b: b.tool_call("1", "plus", '{"a": 1}')
            .tool_result(ToolMessage("1", "plus", "2"))
            .tool_call("2", "divide", '{"a": 1}'),
        )

    def test_missing_only(self, plus_tool):
        converted = convert_tool_messages(
            self.history(), [plus_tool.descriptor], MissingToolsConversionStrategy.MISSING
        )
        assert isinstance(converted.messages[0], ToolCall)
        assert isinstance(converted.messages[1], ToolMessage)
        assert converted.messages[2] == AssistantMessage(
            'Tool call: "divide" was called with arguments: {"a": 1}'
        )

    def test_all(self, plus_tool):
        converted = convert_tool_messages(
            self.history(), [plus_tool.descriptor], MissingToolsConversionStrategy.ALL
        )
        assert converted.messages[1] == UserMessage('Tool call: "plus" returned result: 2')
        assert not any(isinstance(m, (ToolCall, ToolMessage)) for m in converted.messages)

    def test_unchanged_prompt_returned_as_is(self, plus_tool):
        original = prompt("conv", lambda b: b.user("hi"))
        assert convert_tool_messages(original, [], MissingToolsConversionStrategy.ALL) is original
