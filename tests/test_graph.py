"""Smoke tests for the agent graph.

These tests verify the graph compiles correctly and routes as expected.
They do NOT require API keys — no LLM calls are made.
"""

from unittest.mock import MagicMock

import pytest
from langchain_core.messages import AIMessage, HumanMessage, ToolMessage
from langgraph.graph import END


def test_tools_are_discovered():
    """The process-wide registry exposes the Canvas tools."""
    from tools.registry import get_registry

    tool_names = [t.name for t in get_registry().executable_tools()]

    assert tool_names == ["getCourses", "getAssignments"]


def test_agent_state_has_expected_keys():
    """AgentState schema includes messages and the iteration counter."""
    from agent.state import AgentState

    assert "messages" in AgentState.__annotations__
    assert "iteration_count" in AgentState.__annotations__


def test_tool_node_builds_from_registry(registry):
    """Executable tools carry real coroutine functions that ToolNode can introspect."""
    import inspect

    from agent.nodes import build_tool_node

    tool_node = build_tool_node(registry)

    assert set(tool_node.tools_by_name) == {"getCourses", "getAssignments"}
    for tool in tool_node.tools_by_name.values():
        assert inspect.iscoroutinefunction(tool.coroutine)


@pytest.mark.asyncio
async def test_executable_tool_runs_through_executor(registry, executor):
    tool = {t.name: t for t in registry.executable_tools()}["getCourses"]

    assert await tool.ainvoke({}) == "Math101\nCS200"
    assert executor.calls == [("get_courses", {})]


def test_graph_compiles(registry):
    """The graph compiles without errors."""
    from agent.graph import build_graph

    assert build_graph(registry, model=MagicMock()) is not None


def test_graph_has_expected_nodes(registry):
    """The compiled graph has the core and sentinel nodes."""
    from agent.graph import build_graph

    graph = build_graph(registry, model=MagicMock())
    node_names = set(graph.get_graph().nodes.keys())
    for expected in ("agent", "tools", "limit_reached"):
        assert expected in node_names, f"'{expected}' node missing. Found: {node_names}"


# ── Routing ──────────────────────────────────────────────────────────────────


def test_iteration_limit_routing():
    """_should_continue returns 'limit_reached' when iteration_count >= MAX_ITERATIONS."""
    from agent import config
    from agent.graph import _should_continue

    mock_msg = MagicMock()
    mock_msg.tool_calls = [{"name": "getCourses", "args": {}, "id": "1"}]

    state = {"messages": [mock_msg], "iteration_count": config.MAX_ITERATIONS}
    assert _should_continue(state) == "limit_reached"


def test_tool_calls_route_to_tools():
    """_should_continue returns 'tools' for tool calls under the limit."""
    from agent.graph import _should_continue

    mock_msg = MagicMock()
    mock_msg.tool_calls = [{"name": "getCourses", "args": {}, "id": "1"}]

    state = {"messages": [mock_msg], "iteration_count": 0}
    assert _should_continue(state) == "tools"


def test_plain_reply_ends_turn():
    from agent.graph import _should_continue

    state = {"messages": [AIMessage(content="Hello!")], "iteration_count": 0}
    assert _should_continue(state) == END


def test_start_pauses_while_results_outstanding(confirm_registry):
    """_route_start stays paused until every tool call of the last AI message is answered."""
    from agent.graph import _route_start

    call_a = {"name": "shout", "args": {"text": "a"}, "id": "a"}
    call_b = {"name": "shout", "args": {"text": "b"}, "id": "b"}
    history = [
        HumanMessage(content="go"),
        AIMessage(content="", tool_calls=[call_a, call_b]),
        ToolMessage(content="A", tool_call_id="a"),
    ]
    assert _route_start({"messages": history}, confirm_registry) == END

    history.append(ToolMessage(content="B", tool_call_id="b"))
    assert _route_start({"messages": history}, confirm_registry) == "agent"


def test_start_runs_agent_for_new_user_message(registry):
    from agent.graph import _route_start

    history = [
        AIMessage(content="Hi, how can I help?"),
        HumanMessage(content="list my courses"),
    ]
    assert _route_start({"messages": history}, registry) == "agent"


def test_start_finishes_leftover_auto_calls(confirm_registry):
    """Auto-tool calls left unanswered by an interrupted run do not wedge the thread."""
    from agent.graph import _route_start

    history = [
        HumanMessage(content="courses?"),
        AIMessage(content="", tool_calls=[{"name": "getCourses", "args": {}, "id": "1"}]),
        HumanMessage(content="hello again"),
    ]
    assert _route_start({"messages": history}, confirm_registry) == "tools"


def test_after_tools_waits_for_confirmation(confirm_registry):
    from agent.graph import _after_tools

    history = [
        AIMessage(
            content="",
            tool_calls=[
                {"name": "getCourses", "args": {}, "id": "1"},
                {"name": "shout", "args": {"text": "x"}, "id": "2"},
            ],
        ),
        ToolMessage(content="Math101", tool_call_id="1"),
    ]
    assert _after_tools({"messages": history}, confirm_registry) == END


# ── Guardrails ───────────────────────────────────────────────────────────────


def test_split_tool_calls(confirm_registry):
    """split_tool_calls separates auto tools from confirmation-required ones."""
    from agent.guardrails import split_tool_calls

    calls = [
        {"name": "getCourses", "args": {}, "id": "1"},
        {"name": "shout", "args": {"text": "x"}, "id": "2"},
        {"name": "unknown", "args": {}, "id": "3"},
    ]
    auto, confirm = split_tool_calls(calls, confirm_registry)
    assert [tc["id"] for tc in auto] == ["1", "3"]
    assert [tc["id"] for tc in confirm] == ["2"]


def test_limit_reached_answers_outstanding_calls():
    from agent.nodes import limit_reached_node

    last = AIMessage(content="", tool_calls=[{"name": "getCourses", "args": {}, "id": "1"}])
    result = limit_reached_node({"messages": [last]})

    skipped, warning = result["messages"]
    assert skipped.tool_call_id == "1"
    assert skipped.status == "error"
    assert "Iteration limit" in warning.content


def test_tool_logger_writes(tmp_path):
    """ToolUsageLogger creates a JSONL file with the expected entry."""
    import json

    from agent.guardrails import ToolUsageLogger

    logger = ToolUsageLogger(log_dir=str(tmp_path / "logs"))
    logger.log(tool_name="getAssignments", tool_args={"course_name": "CS200"}, result_summary="[]")

    log_file = tmp_path / "logs" / "tool_usage.jsonl"
    assert log_file.exists()

    entry = json.loads(log_file.read_text().strip())
    assert entry["tool"] == "getAssignments"
    assert entry["args"] == {"course_name": "CS200"}
    assert entry["status"] == "success"
    assert entry["result"] == "[]"
