import logging
from typing import Optional, Sequence

from app.ai_feature.messages import Conversation, LoopOutcome, Message
from app.ai_feature.model import ChatModel
from app.ai_feature.registry import ToolRegistry


# -----------------------------------------------------------------------------
# TOOL LOOP
# Purpose: alternate model calls and tool runs until the model answers.
# Deciding: wait for the model reply to the current transcript.
# Executing: run the first requested tool, append the result, go back to Deciding.
# -----------------------------------------------------------------------------

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a database assistant. For any question about the contents of the database "
    "(such as counts, lists, or details), you must always use the available tools (such as "
    "count_rows, list_tables, get_table_info, or query_database) to get the answer. Never "
    "guess or make up numbers. If you do not know, use the tools to find out."
)

DEFAULT_MAX_ROUNDS = 10


def round_limit_note(max_rounds: int) -> str:
    return (
        f"[Stopped after {max_rounds} rounds of tool calls without a final answer. "
        "The answer above may be incomplete.]"
    )


class ToolCallingLoop:
    """
    Drives one conversation turn to a final answer.

    A round is one model call plus, when requested, one tool run. Only the
    first tool request of a reply is honoured. The loop stops when:
    - the reply requests no tool (its content is the answer);
    - the requested tool is not registered (the reply's content, possibly
      empty, is the answer);
    - max_rounds model calls were made and the last one still wants a
      tool (best content so far plus a note).

    Model failures propagate to the caller.
    """

    def __init__(
        self,
        model: ChatModel,
        registry: ToolRegistry,
        max_rounds: int = DEFAULT_MAX_ROUNDS,
        system_prompt: str = SYSTEM_PROMPT,
    ):
        if max_rounds < 1:
            raise ValueError("max_rounds must be at least 1")
        self.model = model
        self.registry = registry
        self.max_rounds = max_rounds
        self.system_prompt = system_prompt

    async def run(
        self, message: str, history: Optional[Sequence[Message]] = None
    ) -> LoopOutcome:
        conversation = Conversation.start(self.system_prompt, history or (), message)
        catalog = self.registry.list_tools()

        for round_number in range(1, self.max_rounds + 1):
            reply = await self.model.invoke(conversation.messages, catalog)

            if not reply.tool_calls:
                logger.info(f"Round {round_number}: final answer")
                return LoopOutcome(response=reply.text)

            call = reply.tool_calls[0]
            if len(reply.tool_calls) > 1:
                logger.info(
                    f"Round {round_number}: {len(reply.tool_calls)} tool calls requested, "
                    f"running only {call.name}"
                )

            tool = self.registry.resolve(call.name)
            if tool is None:
                logger.warning(f"Round {round_number}: no tool named {call.name!r}, stopping")
                return LoopOutcome(response=reply.text)

            if round_number == self.max_rounds:
                logger.warning(
                    f"Round limit {self.max_rounds} reached with {call.name} still pending"
                )
                return LoopOutcome(response=self._limit_answer(conversation, reply))

            logger.info(f"Round {round_number}: {call.name}({call.argument!r})")
            result = await tool.invoke(call.argument)
            conversation = conversation.append(reply, Message.tool(result, call.id))

        # unreachable: the last round always returns
        return LoopOutcome(response=round_limit_note(self.max_rounds))

    def _limit_answer(self, conversation: Conversation, reply: Message) -> str:
        content = reply.text
        if not content:
            # Fall back to the newest assistant text the transcript holds
            for earlier in reversed(conversation.messages):
                if earlier.role == "assistant" and earlier.text:
                    content = earlier.text
                    break
        note = round_limit_note(self.max_rounds)
        return f"{content}\n\n{note}" if content else note
