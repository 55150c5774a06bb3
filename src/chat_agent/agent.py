"""Tool-calling loop: invoke the model, run requested tools, repeat until it answers."""
from __future__ import annotations

import logging
from typing import List, Optional

from .llm import ChatModel, message_from_reply
from .memory import MessageStore
from .tools import ToolRegistry
from .typing import Message

logger = logging.getLogger(__name__)


class AgentLoopError(RuntimeError):
    """The model kept requesting tools past the iteration limit."""


def run_agent(
    user_message: str,
    *,
    llm: ChatModel,
    memory: MessageStore,
    tools: Optional[ToolRegistry] = None,
    max_iterations: int = 10,
) -> List[Message]:
    """Store ``user_message``, then loop model → tools until a reply has no tool calls.

    Every turn (user, assistant, tool) is persisted as soon as it exists, so
    the store always holds the history the next invocation will see.

    Returns the full conversation history after the final reply.
    """
    if tools is None:
        tools = ToolRegistry()
    memory.append_messages([{"role": "user", "content": user_message}])

    for iteration in range(1, max_iterations + 1):
        history = memory.get_all_messages()
        reply = llm.invoke(history, tools=tools.descriptors())
        memory.append_messages([message_from_reply(reply)])

        tool_calls = getattr(reply, "tool_calls", None) or []
        if not tool_calls:
            return memory.get_all_messages()

        for tool_call in tool_calls:
            logger.info("Iteration %d: running tool %s", iteration, tool_call.function.name)
            result = tools.run(tool_call)
            memory.record_tool_response(tool_call.id, result)

    logger.warning("Reached max_iterations=%d while the model still requested tools", max_iterations)
    raise AgentLoopError(f"No final answer after {max_iterations} iterations")


def final_answer(history: List[Message]) -> str:
    """Text content of the last assistant turn, or an empty string."""
    for message in reversed(history):
        if message.get("role") == "assistant":
            return str(message.get("content") or "")
    return ""
