"""Tests for the tool invocation reconciler."""

import pytest

from agent.messages import Message, TextPart, ToolInvocationPart, ToolInvocationState
from agent.reconciler import (
    BLOCKED_PLACEHOLDER,
    DEFAULT_PLACEHOLDER,
    DENIED_RESULT,
    ToolInvocationReconciler,
    UnknownToolCallError,
)


class RecordingClient:
    """Minimal chat client: fixed history, records submitted results."""

    def __init__(self, messages):
        self.messages = messages
        self.results = []

    async def add_tool_result(self, tool, tool_call_id, output):
        self.results.append({"tool": tool, "tool_call_id": tool_call_id, "output": output})


def _assistant(*parts, msg_id="a1"):
    return Message(id=msg_id, role="assistant", parts=list(parts))


def _call(tool_name, call_id, state=ToolInvocationState.INPUT_AVAILABLE, **tool_input):
    return ToolInvocationPart(tool_call_id=call_id, tool_name=tool_name, state=state, input=tool_input)


def test_part_type_tag_is_derived_from_tool_name():
    part = _call("getAssignments", "abc")
    assert part.type == "tool-getAssignments"
    dumped = part.model_dump(mode="json", by_alias=True)
    assert dumped["toolCallId"] == "abc"
    assert dumped["toolName"] == "getAssignments"
    assert dumped["state"] == "input-available"


def test_pending_confirmation_blocks_input(confirm_registry):
    part = _call("shout", "c1", text="hi")
    client = RecordingClient([Message(id="u1", role="user", parts=[TextPart(text="hey")]), _assistant(part)])
    reconciler = ToolInvocationReconciler(client, confirm_registry)

    assert reconciler.pending_confirmations() == [part]
    assert reconciler.is_blocked() is True
    assert reconciler.input_placeholder() == BLOCKED_PLACEHOLDER

    part.state = ToolInvocationState.OUTPUT_AVAILABLE
    part.output = "HI"
    assert reconciler.is_blocked() is False
    assert reconciler.input_placeholder() == DEFAULT_PLACEHOLDER


def test_auto_tools_never_block(confirm_registry):
    client = RecordingClient([_assistant(_call("getCourses", "c1"), _call("getAssignments", "c2"))])
    reconciler = ToolInvocationReconciler(client, confirm_registry)
    assert reconciler.is_blocked() is False


def test_any_pending_part_in_history_blocks(confirm_registry):
    first = _call("shout", "c1", text="a")
    second = _call("shout", "c2", text="b")
    client = RecordingClient([_assistant(first, msg_id="a1"), _assistant(second, msg_id="a2")])
    reconciler = ToolInvocationReconciler(client, confirm_registry)

    first.state = ToolInvocationState.OUTPUT_AVAILABLE
    assert reconciler.is_blocked() is True
    assert reconciler.pending_confirmations() == [second]

    second.state = ToolInvocationState.OUTPUT_ERROR
    assert reconciler.is_blocked() is False


def test_empty_history_is_not_blocked(registry):
    reconciler = ToolInvocationReconciler(RecordingClient([]), registry)
    assert reconciler.is_blocked() is False
    assert reconciler.is_blocked([_assistant(_call("getCourses", "c1"))]) is False


@pytest.mark.asyncio
async def test_submit_forwards_tool_name_and_output(registry):
    client = RecordingClient([_assistant(_call("getAssignments", "abc", course_name="CS200"))])
    reconciler = ToolInvocationReconciler(client, registry)

    await reconciler.submit("abc", "42")

    assert client.results == [{"tool": "getAssignments", "tool_call_id": "abc", "output": "42"}]


@pytest.mark.asyncio
async def test_submit_unknown_call_raises(registry):
    reconciler = ToolInvocationReconciler(RecordingClient([]), registry)
    with pytest.raises(UnknownToolCallError):
        await reconciler.submit("missing", "42")


@pytest.mark.asyncio
async def test_confirm_approved_runs_handler(confirm_registry):
    client = RecordingClient([_assistant(_call("shout", "c1", text="hello"))])
    reconciler = ToolInvocationReconciler(client, confirm_registry)

    await reconciler.confirm("c1", approved=True)

    assert client.results == [{"tool": "shout", "tool_call_id": "c1", "output": "HELLO"}]


@pytest.mark.asyncio
async def test_confirm_denied_reports_denial(confirm_registry):
    client = RecordingClient([_assistant(_call("shout", "c1", text="hello"))])
    reconciler = ToolInvocationReconciler(client, confirm_registry)

    await reconciler.confirm("c1", approved=False)

    assert client.results == [{"tool": "shout", "tool_call_id": "c1", "output": DENIED_RESULT}]


@pytest.mark.asyncio
async def test_confirm_handler_error_becomes_output(confirm_registry):
    # Missing required 'text' argument fails validation inside the handler call
    client = RecordingClient([_assistant(_call("shout", "c1"))])
    reconciler = ToolInvocationReconciler(client, confirm_registry)

    await reconciler.confirm("c1", approved=True)

    assert client.results[0]["output"].startswith("Error: ")
