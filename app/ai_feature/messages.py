"""
Conversation state threaded through one run of the tool loop.

Messages are frozen; a Conversation never changes in place, append()
returns a new one. A run owns its Conversation and never shares it.
"""

import json
from typing import Any, Dict, List, Literal, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field


Role = Literal["system", "user", "assistant", "tool"]
Content = Union[str, List[Any], Dict[str, Any]]


class ToolCall(BaseModel):
    """A tool invocation requested by the model."""

    id: str = ""
    name: str
    argument: str = ""

    model_config = ConfigDict(frozen=True)


class Message(BaseModel):
    role: Role
    content: Content = ""
    tool_calls: List[ToolCall] = Field(default_factory=list)  # assistant only
    tool_call_id: Optional[str] = None  # tool only

    model_config = ConfigDict(frozen=True)

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role="system", content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role="user", content=content)

    @classmethod
    def assistant(
        cls, content: Content = "", tool_calls: Optional[List[ToolCall]] = None
    ) -> "Message":
        return cls(role="assistant", content=content, tool_calls=tool_calls or [])

    @classmethod
    def tool(cls, content: str, tool_call_id: str) -> "Message":
        return cls(role="tool", content=content, tool_call_id=tool_call_id)

    @property
    def text(self) -> str:
        return content_to_text(self.content)


def content_to_text(content: Content) -> str:
    """Plain text passes through, structured payloads become compact JSON."""
    if isinstance(content, str):
        return content
    return json.dumps(content, separators=(",", ":"), ensure_ascii=False, default=str)


class Conversation:
    """Append-only transcript: system instruction, history, user turn, tool traffic."""

    def __init__(self, messages: Sequence[Message] = ()):
        self._messages: Tuple[Message, ...] = tuple(messages)

    @classmethod
    def start(
        cls, system_prompt: str, history: Sequence[Message], message: str
    ) -> "Conversation":
        return cls((Message.system(system_prompt), *history, Message.user(message)))

    def append(self, *messages: Message) -> "Conversation":
        return Conversation(self._messages + tuple(messages))

    @property
    def messages(self) -> Tuple[Message, ...]:
        return self._messages

    @property
    def last(self) -> Message:
        return self._messages[-1]

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self):
        return iter(self._messages)


class LoopOutcome(BaseModel):
    """Final product of one loop run. Built once, delivered, then dropped."""

    response: str
    follow_up: Optional[str] = None


__all__ = [
    "Role",
    "Content",
    "ToolCall",
    "Message",
    "content_to_text",
    "Conversation",
    "LoopOutcome",
]
