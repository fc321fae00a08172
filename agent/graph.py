"""LangGraph graph construction.

Builds a ReAct-style agent graph with human-confirmation pauses:

    ┌──────────┐      tool calls?      ┌───────────┐
    │  agent   │ ─────────────────────▶│   tools   │
    │(call_model)│                      │(auto only)│
    └──────────┘◀──── all answered ─────└───────────┘
         │                                   │
         ├─ iteration limit ──▶ [limit_reached] ──▶ END
         │                                   └─ confirmation pending ──▶ END
         └─ no tool calls ──▶ END

A run that ends with unanswered calls to confirmation-required tools is
paused.  Adding a ToolMessage for each of them
(``ChatAgentClient.add_tool_result``) re-enters the graph, which routes
straight back to the agent once nothing is outstanding.  Auto-tool calls
left unanswered by an interrupted run are executed on re-entry.
"""

from typing import Optional

from langgraph.checkpoint.memory import MemorySaver
from langgraph.graph import END, StateGraph

from agent import config
from agent.nodes import (
    build_base_model,
    build_tool_node,
    call_model,
    guarded_tool_node,
    limit_reached_node,
)
from agent.state import AgentState, unanswered_tool_calls
from tools.registry import ToolRegistry, get_registry


def _awaiting_confirmation(state: dict, registry: ToolRegistry) -> bool:
    """True when every outstanding tool call needs a human-supplied result."""
    pending = unanswered_tool_calls(state["messages"])
    return bool(pending) and all(registry.requires_confirmation(tc["name"]) for tc in pending)


def _route_start(state: dict, registry: ToolRegistry) -> str:
    """Stay paused for confirmations, finish leftover auto calls, else run the agent."""
    if _awaiting_confirmation(state, registry):
        return END
    if unanswered_tool_calls(state["messages"]):
        return "tools"
    return "agent"


def _should_continue(state: dict) -> str:
    """Route based on tool calls and the iteration limit."""
    last_message = state["messages"][-1]

    # 1. No tool calls → done
    if not (hasattr(last_message, "tool_calls") and last_message.tool_calls):
        return END

    # 2. Iteration limit
    if state.get("iteration_count", 0) >= config.MAX_ITERATIONS:
        return "limit_reached"

    return "tools"


def _after_tools(state: dict, registry: ToolRegistry) -> str:
    """Pause for human results, or hand tool output back to the agent."""
    if _awaiting_confirmation(state, registry):
        return END
    return "agent"


def build_graph(registry: Optional[ToolRegistry] = None, model=None):
    """Construct and compile the agentic graph.

    Args:
        registry: Tool registry; defaults to the process-wide one.
        model:    Chat model exposing ``bind_tools``; defaults to Gemini,
                  created on first use.
    """
    registry = registry or get_registry()
    tool_node = build_tool_node(registry)
    bound_model = None

    async def agent(state: dict) -> dict:
        nonlocal bound_model
        if bound_model is None:
            base = model if model is not None else build_base_model()
            tools = registry.bindable_tools()
            bound_model = base.bind_tools(tools) if tools else base
        return await call_model(state, bound_model)

    async def tools(state: dict) -> dict:
        return await guarded_tool_node(state, registry, tool_node)

    workflow = StateGraph(AgentState)

    # ── Nodes ──────────────────────────────────────────────────────────────
    workflow.add_node("agent", agent)
    workflow.add_node("tools", tools)
    workflow.add_node("limit_reached", limit_reached_node)

    # ── Edges ──────────────────────────────────────────────────────────────
    workflow.set_conditional_entry_point(
        lambda state: _route_start(state, registry),
        {
            "agent": "agent",
            "tools": "tools",
            END: END,
        },
    )

    workflow.add_conditional_edges(
        "agent",
        _should_continue,
        {
            "tools": "tools",
            "limit_reached": "limit_reached",
            END: END,
        },
    )

    workflow.add_conditional_edges(
        "tools",
        lambda state: _after_tools(state, registry),
        {
            "agent": "agent",
            END: END,
        },
    )
    workflow.add_edge("limit_reached", END)

    # ── Compile with checkpointing ─────────────────────────────────────────
    memory = MemorySaver()
    return workflow.compile(checkpointer=memory)
