"""
Model capability: transcript + tool catalogue in, one assistant message out.

The loop only knows the ChatModel protocol. LangChainChatModel adapts any
LangChain chat model that supports bind_tools (ChatOpenAI in production).
"""

import json
import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence, runtime_checkable

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage
from langchain_openai import ChatOpenAI

from app.ai_feature.errors import ModelProviderError
from app.ai_feature.messages import Message, ToolCall
from app.ai_feature.tools import ToolDescriptor
from app.core.config import Settings


logger = logging.getLogger(__name__)

# Tools take one string; the model passes it under this key
ARGUMENT_KEY = "input"


@runtime_checkable
class ChatModel(Protocol):
    async def invoke(
        self, transcript: Sequence[Message], tools: Sequence[ToolDescriptor]
    ) -> Message:
        """Return the assistant reply, possibly carrying tool requests."""
        ...


def tool_schema(descriptor: ToolDescriptor) -> Dict[str, Any]:
    """OpenAI function-calling schema accepted by bind_tools()."""
    return {
        "type": "function",
        "function": {
            "name": descriptor.name,
            "description": descriptor.description,
            "parameters": {
                "type": "object",
                "properties": {ARGUMENT_KEY: {"type": "string"}},
                "required": [],
            },
        },
    }


def argument_from_args(args: Any) -> str:
    """
    Collapse provider tool-call args into the single string a tool takes.

    {"input": "users"} -> "users"; a lone differently-named key is accepted
    too; anything richer is passed on as JSON.
    """
    if args is None:
        return ""
    if isinstance(args, str):
        return args
    if isinstance(args, dict):
        if ARGUMENT_KEY in args:
            value = args[ARGUMENT_KEY]
        elif len(args) == 1:
            value = next(iter(args.values()))
        elif not args:
            return ""
        else:
            return json.dumps(args, ensure_ascii=False)
        return value if isinstance(value, str) else json.dumps(value, ensure_ascii=False)
    return str(args)


def to_langchain_messages(transcript: Sequence[Message]) -> List[BaseMessage]:
    lc_messages: List[BaseMessage] = []
    for m in transcript:
        if m.role == "system":
            lc_messages.append(SystemMessage(content=m.text))
        elif m.role == "assistant":
            content = m.content if isinstance(m.content, (str, list)) else m.text
            lc_messages.append(
                AIMessage(
                    content=content,
                    tool_calls=[
                        {"id": tc.id, "name": tc.name, "args": {ARGUMENT_KEY: tc.argument}}
                        for tc in m.tool_calls
                    ],
                )
            )
        elif m.role == "tool" and m.tool_call_id:
            lc_messages.append(ToolMessage(content=m.text, tool_call_id=m.tool_call_id))
        else:
            # user, or a tool result without a call id
            lc_messages.append(HumanMessage(content=m.text))
    return lc_messages


def from_langchain_message(result: Any) -> Message:
    content = getattr(result, "content", None)
    if content is None:
        content = str(result)

    tool_calls = []
    for tc in getattr(result, "tool_calls", None) or []:
        if isinstance(tc, dict):
            tool_calls.append(
                ToolCall(
                    id=tc.get("id") or "",
                    name=tc.get("name") or "",
                    argument=argument_from_args(tc.get("args")),
                )
            )
        else:
            tool_calls.append(
                ToolCall(
                    id=getattr(tc, "id", "") or "",
                    name=getattr(tc, "name", "") or "",
                    argument=argument_from_args(getattr(tc, "args", None)),
                )
            )
    return Message.assistant(content=content, tool_calls=tool_calls)


class LangChainChatModel:
    def __init__(self, llm: BaseChatModel, name: Optional[str] = None):
        self.llm = llm
        self.name = name or getattr(llm, "model_name", None) or llm.__class__.__name__

    async def invoke(
        self, transcript: Sequence[Message], tools: Sequence[ToolDescriptor]
    ) -> Message:
        client = self.llm
        if tools:
            client = client.bind_tools([tool_schema(d) for d in tools])
        try:
            result = await client.ainvoke(to_langchain_messages(transcript))
        except Exception as exc:
            raise ModelProviderError(f"Model call failed for {self.name}: {exc}") from exc
        return from_langchain_message(result)


def build_chat_model(config: Settings) -> LangChainChatModel:
    kwargs: Dict[str, Any] = {
        "model": config.CHAT_MODEL,
        "temperature": config.CHAT_TEMPERATURE,
        "timeout": config.MODEL_TIMEOUT_SECONDS,
        "max_retries": config.MODEL_MAX_RETRIES,
    }
    if config.OPENAI_API_KEY:
        kwargs["api_key"] = config.OPENAI_API_KEY
    if config.OPENAI_BASE_URL:
        kwargs["base_url"] = config.OPENAI_BASE_URL

    logger.info(f"Using chat model {config.CHAT_MODEL}")
    return LangChainChatModel(ChatOpenAI(**kwargs), name=config.CHAT_MODEL)


__all__ = [
    "ChatModel",
    "LangChainChatModel",
    "build_chat_model",
    "tool_schema",
    "argument_from_args",
    "to_langchain_messages",
    "from_langchain_message",
]
