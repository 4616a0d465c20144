import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage, ToolMessage

from app.ai_feature.errors import ModelProviderError
from app.ai_feature.messages import Message, ToolCall
from app.ai_feature.model import (
    ChatModel,
    LangChainChatModel,
    argument_from_args,
    from_langchain_message,
    to_langchain_messages,
    tool_schema,
)
from app.ai_feature.tools import ToolDescriptor


def test_tool_schema():
    schema = tool_schema(ToolDescriptor(name="count_rows", description="Count rows"))
    assert schema == {
        "type": "function",
        "function": {
            "name": "count_rows",
            "description": "Count rows",
            "parameters": {
                "type": "object",
                "properties": {"input": {"type": "string"}},
                "required": [],
            },
        },
    }


@pytest.mark.parametrize(
    "args, expected",
    [
        ({"input": "users"}, "users"),
        ({"table": "orders"}, "orders"),
        ({}, ""),
        (None, ""),
        ("products, price, min", "products, price, min"),
        ({"input": 5}, "5"),
    ],
)
def test_argument_from_args(args, expected):
    assert argument_from_args(args) == expected


def test_argument_from_args_keeps_rich_payloads():
    assert argument_from_args({"a": 1, "b": 2}) == '{"a": 1, "b": 2}'


def test_to_langchain_messages():
    transcript = [
        Message.system("be useful"),
        Message.user("How many users?"),
        Message.assistant(tool_calls=[ToolCall(id="c1", name="count_rows", argument="users")]),
        Message.tool("There are 50 rows in the users table.", "c1"),
    ]

    system, human, ai, tool = to_langchain_messages(transcript)

    assert isinstance(system, SystemMessage)
    assert isinstance(human, HumanMessage) and human.content == "How many users?"
    assert isinstance(ai, AIMessage)
    assert ai.tool_calls[0]["name"] == "count_rows"
    assert ai.tool_calls[0]["args"] == {"input": "users"}
    assert ai.tool_calls[0]["id"] == "c1"
    assert isinstance(tool, ToolMessage) and tool.tool_call_id == "c1"


def test_from_langchain_message():
    result = AIMessage(
        content="",
        tool_calls=[
            {"id": "c1", "name": "count_rows", "args": {"input": "users"}},
            {"id": "c2", "name": "list_tables", "args": {}},
        ],
    )
    message = from_langchain_message(result)

    assert message.role == "assistant"
    assert message.tool_calls == [
        ToolCall(id="c1", name="count_rows", argument="users"),
        ToolCall(id="c2", name="list_tables", argument=""),
    ]


def test_from_langchain_message_plain_answer():
    message = from_langchain_message(AIMessage(content="There are 50 users."))
    assert message.tool_calls == []
    assert message.text == "There are 50 users."


class FakeLLM:
    """Just enough of a LangChain chat model for the adapter."""

    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.bound = None
        self.received = None

    def bind_tools(self, tools):
        self.bound = tools
        return self

    async def ainvoke(self, messages):
        self.received = messages
        if self.error:
            raise self.error
        return self.reply


@pytest.mark.asyncio
async def test_langchain_adapter_binds_tools_and_converts():
    llm = FakeLLM(
        reply=AIMessage(content="", tool_calls=[{"id": "c1", "name": "count_rows", "args": {"input": "users"}}])
    )
    model = LangChainChatModel(llm, name="fake")
    tools = [ToolDescriptor(name="count_rows", description="Count rows")]

    message = await model.invoke([Message.user("How many users?")], tools)

    assert isinstance(model, ChatModel)
    assert llm.bound[0]["function"]["name"] == "count_rows"
    assert isinstance(llm.received[0], HumanMessage)
    assert message.tool_calls[0].argument == "users"


@pytest.mark.asyncio
async def test_langchain_adapter_wraps_provider_errors():
    model = LangChainChatModel(FakeLLM(error=ConnectionError("no route to host")), name="fake")

    with pytest.raises(ModelProviderError) as excinfo:
        await model.invoke([Message.user("Hi")], [])

    assert "no route to host" in str(excinfo.value)
