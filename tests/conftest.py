import pytest

from fakes import COURSES_ENVELOPE, EchoInput, FakeExecutor, shout
from tools.canvas import CANVAS_TOOLS
from tools.registry import ToolDefinition, ToolRegistry


@pytest.fixture()
def executor():
    return FakeExecutor(responses={"get_courses": COURSES_ENVELOPE})


@pytest.fixture()
def registry(executor):
    """Registry with the Canvas tools over a fake executor."""
    return ToolRegistry(CANVAS_TOOLS, executor)


@pytest.fixture()
def confirm_registry(executor):
    """Canvas tools plus one confirmation-required tool, 'shout'."""
    shout_tool = ToolDefinition(name="shout", description="Upper-case text.", input_schema=EchoInput)
    return ToolRegistry([*CANVAS_TOOLS, shout_tool], executor, executions={"shout": shout})


@pytest.fixture(autouse=True)
def tool_log_dir(tmp_path, monkeypatch):
    """Keep the tool-usage audit log out of the working directory."""
    from agent import nodes
    from agent.guardrails import ToolUsageLogger

    monkeypatch.setattr(nodes, "tool_logger", ToolUsageLogger(log_dir=str(tmp_path / "tool_logs")))
    return tmp_path / "tool_logs"
