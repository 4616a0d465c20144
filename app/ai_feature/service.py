"""Chat delivery: one loop, answered in one piece or as an event stream.

Flow:
1. Build the transcript (system instruction, history, user message)
2. Let the model pick read-only tools until it answers
3. Return the answer, or stream it as content/complete/done events
"""
import logging
from typing import AsyncIterator, Optional, Sequence

from app.ai_feature.loop import ToolCallingLoop
from app.ai_feature.messages import LoopOutcome, Message
from app.ai_feature.streaming import (
    CompleteEvent,
    ContentEvent,
    DoneEvent,
    ErrorEvent,
    StreamEvent,
    chunk_text,
)


logger = logging.getLogger(__name__)


class ChatService:
    def __init__(self, loop: ToolCallingLoop, chunk_size: int = 0):
        self.loop = loop
        self.chunk_size = chunk_size

    async def chat(
        self, message: str, history: Optional[Sequence[Message]] = None
    ) -> LoopOutcome:
        """Run the loop to completion and return the answer."""
        return await self.loop.run(message, history)

    async def stream_chat(
        self, message: str, history: Optional[Sequence[Message]] = None
    ) -> AsyncIterator[StreamEvent]:
        """
        Run the loop, then emit the answer as events.

        Success: content fragment(s), complete, done.
        Failure: error, done.
        The tools all finish before the first event goes out.
        """
        try:
            outcome = await self.loop.run(message, history)
        except Exception as error:
            logger.exception(f"Streaming chat failed: {error}")
            yield ErrorEvent(message=str(error) or "Unknown error")
        else:
            for fragment in chunk_text(outcome.response, self.chunk_size):
                yield ContentEvent(content=fragment)
            yield CompleteEvent(response=outcome.response)
        yield DoneEvent()
