import pytest

from fakes import FakeTool, ScriptedChatModel, answer, tool_request
from app.ai_feature.errors import ModelProviderError
from app.ai_feature.loop import ToolCallingLoop
from app.ai_feature.registry import ToolRegistry
from app.ai_feature.service import ChatService
from app.ai_feature.streaming import (
    CompleteEvent,
    ContentEvent,
    DoneEvent,
    ErrorEvent,
    chunk_text,
    encode_event,
)


def make_service(steps, chunk_size=0, tools=()):
    loop = ToolCallingLoop(ScriptedChatModel(steps), ToolRegistry(tools))
    return ChatService(loop, chunk_size=chunk_size)


async def collect(service, message="How many users are there?", history=None):
    return [event async for event in service.stream_chat(message, history)]


def test_encode_event_framing():
    assert encode_event(ContentEvent(content="Hello")) == 'data: {"type":"content","content":"Hello"}\n\n'
    assert encode_event(CompleteEvent(response="Hi")) == 'data: {"type":"complete","response":"Hi"}\n\n'
    assert encode_event(ErrorEvent(message="boom")) == 'data: {"type":"error","message":"boom"}\n\n'
    assert encode_event(DoneEvent()) == 'data: {"type":"done"}\n\n'


def test_encode_event_keeps_unicode_and_escapes_newlines():
    frame = encode_event(ContentEvent(content="Café\nline"))
    assert frame == 'data: {"type":"content","content":"Café\\nline"}\n\n'


def test_chunk_text():
    assert list(chunk_text("abcdefg")) == ["abcdefg"]
    assert list(chunk_text("abcdefg", 3)) == ["abc", "def", "g"]
    assert list(chunk_text("ab", 1)) == ["a", "b"]
    assert list(chunk_text("", 4)) == [""]


@pytest.mark.asyncio
async def test_buffered_and_streamed_agree():
    steps = [tool_request("count_rows", "users"), lambda t: answer(t[-1].content)]
    tool = FakeTool("count_rows", result="There are 50 rows in the users table.")

    outcome = await make_service(steps, tools=[tool]).chat("How many users are there?")
    events = await collect(make_service(steps, tools=[tool]))

    assert outcome.response == "There are 50 rows in the users table."
    assert [e.type for e in events] == ["content", "complete", "done"]
    assert events[0].content == outcome.response
    assert events[1].response == outcome.response


@pytest.mark.asyncio
@pytest.mark.parametrize("chunk_size", [0, 1, 4, 1000])
async def test_content_fragments_rebuild_the_answer(chunk_size):
    text = "The cheapest product is Pen at 1.99."
    events = await collect(make_service([answer(text)], chunk_size=chunk_size))

    contents = [e for e in events if e.type == "content"]
    complete = [e for e in events if e.type == "complete"]

    assert "".join(e.content for e in contents) == complete[0].response == text
    assert len(complete) == 1
    assert [e.type for e in events].count("done") == 1
    assert events[-1] == DoneEvent()


@pytest.mark.asyncio
async def test_empty_answer_still_streams_one_content_event():
    events = await collect(make_service([answer("")], chunk_size=5))
    assert [e.type for e in events] == ["content", "complete", "done"]
    assert events[0].content == ""


@pytest.mark.asyncio
async def test_failure_yields_error_then_done():
    events = await collect(make_service([ModelProviderError("provider unreachable")]))

    assert [e.type for e in events] == ["error", "done"]
    assert events[0].message == "provider unreachable"


@pytest.mark.asyncio
async def test_buffered_failure_raises():
    with pytest.raises(ModelProviderError):
        await make_service([ModelProviderError("provider unreachable")]).chat("Hi")
