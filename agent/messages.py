"""UI message model.

The chat view works on ``Message`` objects made of ordered parts rather
than on raw LangChain messages.  ``to_ui_messages`` folds the graph's
message history into that form: each assistant turn (model output plus the
results of the tools it called) becomes one assistant message.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal, Optional, Union

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, ToolMessage
from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

TOOL_TYPE_PREFIX = "tool-"


class _UIModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ToolInvocationState(str, Enum):
    INPUT_STREAMING = "input-streaming"
    INPUT_AVAILABLE = "input-available"
    OUTPUT_AVAILABLE = "output-available"
    OUTPUT_ERROR = "output-error"


class TextPart(_UIModel):
    type: Literal["text"] = "text"
    text: str


class ToolInvocationPart(_UIModel):
    """One tool call requested by the model, tracked until it has output."""

    tool_call_id: str
    tool_name: str
    state: ToolInvocationState = ToolInvocationState.INPUT_AVAILABLE
    input: dict[str, Any] = Field(default_factory=dict)
    output: Optional[Any] = None
    error_text: Optional[str] = None

    @computed_field
    @property
    def type(self) -> str:
        """Display tag, e.g. ``tool-getCourses``."""
        return f"{TOOL_TYPE_PREFIX}{self.tool_name}"


Part = Union[TextPart, ToolInvocationPart]


class MessageMetadata(_UIModel):
    created_at: datetime


class Message(_UIModel):
    id: str
    role: Literal["user", "assistant"]
    parts: list[Part] = Field(default_factory=list)
    metadata: Optional[MessageMetadata] = None

    def tool_parts(self) -> list[ToolInvocationPart]:
        return [p for p in self.parts if isinstance(p, ToolInvocationPart)]


# ── Conversion from graph history ─────────────────────────────────────────────


def _text_of(content: Any) -> str:
    """Flatten LangChain message content (str or content blocks) to text."""
    if isinstance(content, str):
        return content
    chunks: list[str] = []
    for block in content or []:
        if isinstance(block, str):
            chunks.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            chunks.append(block.get("text", ""))
    return "".join(chunks)


def _tool_part(call: dict, result: Optional[ToolMessage]) -> ToolInvocationPart:
    part = ToolInvocationPart(
        tool_call_id=call["id"],
        tool_name=call["name"],
        input=call.get("args") or {},
    )
    if result is None:
        return part
    if getattr(result, "status", "success") == "error":
        part.state = ToolInvocationState.OUTPUT_ERROR
        part.error_text = _text_of(result.content)
    else:
        part.state = ToolInvocationState.OUTPUT_AVAILABLE
        part.output = result.content
    return part


def to_ui_messages(
    history: list[BaseMessage],
    created_at: Optional[dict[str, datetime]] = None,
) -> list[Message]:
    """Build UI messages from a LangChain message history.

    Args:
        history:    Messages as stored in the graph state.
        created_at: Optional cache of first-seen timestamps keyed by message
                    id; new ids are stamped with the current time.
    """
    stamps = created_at if created_at is not None else {}
    results = {m.tool_call_id: m for m in history if isinstance(m, ToolMessage)}
    messages: list[Message] = []

    for msg in history:
        if isinstance(msg, HumanMessage):
            role = "user"
            parts: list[Part] = [TextPart(text=_text_of(msg.content))]
        elif isinstance(msg, AIMessage):
            role = "assistant"
            parts = []
            text = _text_of(msg.content)
            if text:
                parts.append(TextPart(text=text))
            for call in msg.tool_calls:
                parts.append(_tool_part(call, results.get(call["id"])))
        else:
            # Tool results are folded into their call; system prompts are hidden.
            continue

        if role == "assistant" and messages and messages[-1].role == "assistant":
            messages[-1].parts.extend(parts)
            continue

        msg_id = msg.id or f"{role}-{len(messages)}"
        stamp = stamps.setdefault(msg_id, datetime.now(timezone.utc))
        messages.append(
            Message(
                id=msg_id,
                role=role,
                parts=parts,
                metadata=MessageMetadata(created_at=stamp),
            )
        )

    return messages
