"""Agent state definition.

The state is the shared data structure that flows through every node in the graph.
It uses LangGraph's `add_messages` annotation to automatically accumulate messages.
"""

from typing import Annotated, TypedDict

from langchain_core.messages import AIMessage, ToolMessage
from langgraph.graph.message import add_messages


class AgentState(TypedDict):
    """Shared state for the agentic graph.

    Attributes:
        messages: Conversation history. Uses `add_messages` reducer so that
                  each node can append messages without overwriting the list.
        iteration_count: Number of model calls in the current user turn.
    """

    messages: Annotated[list, add_messages]
    iteration_count: int


def unanswered_tool_calls(messages: list) -> list[dict]:
    """Tool calls of the latest AI message that have no result yet.

    Calls to confirmation-required tools stay here until a human supplies
    their results.
    """
    answered: set[str] = set()
    for msg in reversed(messages):
        if isinstance(msg, ToolMessage):
            answered.add(msg.tool_call_id)
        elif isinstance(msg, AIMessage):
            return [tc for tc in msg.tool_calls if tc["id"] not in answered]
    return []
