"""Canvas course tools.

Both tools proxy a remote Canvas MCP tool through the registry's
RemoteToolExecutor.  ``getCourses`` unwraps the MCP result envelope and
returns plain course names; ``getAssignments`` returns the serialized
result envelope as-is.
"""

import json
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from tools.mcp_client import RemoteToolExecutor
from tools.registry import ToolDefinition

logger = logging.getLogger(__name__)


class MalformedResponseError(ValueError):
    """Raised when a remote tool result does not have the expected shape."""


# ── Input schemas ─────────────────────────────────────────────────────────────


class GetCoursesInput(BaseModel):
    model_config = ConfigDict(title="getCourses")


class GetAssignmentsInput(BaseModel):
    model_config = ConfigDict(title="getAssignments")

    course_name: str = Field(min_length=1)


# ── Envelope handling ─────────────────────────────────────────────────────────


def serialize_response(response: dict[str, Any]) -> str:
    """Compact JSON text of an MCP result envelope."""
    return json.dumps(response, separators=(",", ":"), ensure_ascii=False)


def unwrap_text_envelope(response: dict[str, Any]) -> str:
    """Return ``content[0].text`` from an MCP result envelope."""
    try:
        text = response["content"][0]["text"]
    except (KeyError, IndexError, TypeError) as exc:
        raise MalformedResponseError(
            f"Expected content[0].text in tool response, got: {serialize_response(response)[:200]}"
        ) from exc
    if not isinstance(text, str):
        raise MalformedResponseError("content[0].text is not a string")
    return text


# ── Tool implementations ──────────────────────────────────────────────────────


async def get_courses(executor: RemoteToolExecutor) -> str:
    response = await executor.call_tool("get_courses", {})
    logger.debug("get_courses response: %s", serialize_response(response))

    inner = unwrap_text_envelope(response)
    try:
        courses = json.loads(inner)
    except json.JSONDecodeError as exc:
        raise MalformedResponseError(f"Course list is not valid JSON: {exc}") from exc
    if not isinstance(courses, dict):
        raise MalformedResponseError(
            f"Expected a mapping of course name to id, got {type(courses).__name__}"
        )

    return "\n".join(courses)


async def get_assignments(executor: RemoteToolExecutor, course_name: str) -> str:
    response = await executor.call_tool(
        "get_assignments_by_course_name",
        {"course_name": course_name},
    )
    return serialize_response(response)


# ── Definitions ───────────────────────────────────────────────────────────────

CANVAS_TOOLS: list[ToolDefinition] = [
    ToolDefinition(
        name="getCourses",
        description=(
            "Use this tool to retrieve all available Canvas courses for the current user. "
            "This tool returns a dictionary mapping course names to their corresponding IDs. "
            "Use this when you need to find course IDs based on names, display all available "
            "courses, or when needing to access any course-related information"
        ),
        input_schema=GetCoursesInput,
        execute=get_courses,
    ),
    ToolDefinition(
        name="getAssignments",
        description=(
            "Use this tool to retrieve all assignments for a specific Canvas course by course "
            "name. Provide the course name as input, and the tool will return a list of "
            "assignments associated with that course. This is useful for accessing assignment "
            "details, due dates, and other related information for a given course."
        ),
        input_schema=GetAssignmentsInput,
        execute=get_assignments,
    ),
]
