"""Graph node functions.

Each function takes the current AgentState and returns a partial state update.
LangGraph merges the returned dict into the shared state automatically.
The graph builder binds the model and tool registry each node needs.
"""

import logging

from langchain_core.messages import AIMessage, SystemMessage, ToolMessage
from langchain_google_genai import ChatGoogleGenerativeAI
from langgraph.prebuilt import ToolNode

from agent import config
from agent.guardrails import split_tool_calls, tool_logger
from agent.state import unanswered_tool_calls
from tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


def build_base_model():
    """Build the bare Gemini LLM *without* tools bound."""
    return ChatGoogleGenerativeAI(
        model=config.MODEL_NAME,
        temperature=config.TEMPERATURE,
        google_api_key=config.GOOGLE_API_KEY or None,
    )


async def call_model(state: dict, model) -> dict:
    """Invoke the chat model with the current conversation history.

    Prepends the system prompt as the first message (it is not stored in
    the state).  Increments the iteration counter on every call.
    """
    messages = [SystemMessage(content=config.SYSTEM_PROMPT), *state["messages"]]
    response = await model.ainvoke(messages)

    return {
        "messages": [response],
        "iteration_count": state.get("iteration_count", 0) + 1,
    }


# ── Tool execution ────────────────────────────────────────────────────────────


def _tool_error_message(e: Exception) -> str:
    return f"Error: {e}"


def build_tool_node(registry: ToolRegistry) -> ToolNode:
    return ToolNode(
        registry.executable_tools(),
        handle_tool_errors=_tool_error_message,
    )


async def guarded_tool_node(state: dict, registry: ToolRegistry, tool_node: ToolNode) -> dict:
    """Run the outstanding auto-executing tool calls and log them.

    Calls to confirmation-required tools are left unanswered; the graph
    pauses until their results are added from outside.
    """
    auto_calls, pending = split_tool_calls(unanswered_tool_calls(state["messages"]), registry)
    if pending:
        logger.info(
            "Awaiting confirmation for: %s", ", ".join(tc["name"] for tc in pending)
        )
    if not auto_calls:
        return {"messages": []}

    result = await tool_node.ainvoke(
        {"messages": [AIMessage(content="", tool_calls=auto_calls)]}
    )

    # ── Log each tool call ────────────────────────────────────────────────
    result_messages = result.get("messages", []) if isinstance(result, dict) else []
    for tc, msg in zip(auto_calls, result_messages):
        status = getattr(msg, "status", "success")
        if status == "error":
            logger.warning("Tool %s failed: %s", tc.get("name"), msg.content)
        tool_logger.log(
            tool_name=tc.get("name", "unknown"),
            tool_args=tc.get("args", {}),
            result_summary=str(getattr(msg, "content", ""))[:500],
            status=status,
        )

    return {"messages": result_messages}


# ── Sentinel nodes ────────────────────────────────────────────────────────────


def limit_reached_node(state: dict) -> dict:
    """Answer outstanding tool calls with a skip notice and stop the turn."""
    last_message = state["messages"][-1]
    skipped = [
        ToolMessage(
            content="Skipped: iteration limit reached.",
            tool_call_id=tc["id"],
            name=tc.get("name"),
            status="error",
        )
        for tc in getattr(last_message, "tool_calls", [])
    ]
    return {
        "messages": skipped
        + [
            AIMessage(
                content=(
                    f"⚠️ Iteration limit of {config.MAX_ITERATIONS} reached. "
                    "Stopping to avoid runaway execution. "
                    "You can continue by sending another message."
                )
            )
        ]
    }
