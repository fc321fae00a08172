"""Tool invocation reconciler.

Matches the tool-invocation parts of streamed messages against the tool
registry.  A part in state ``input-available`` whose tool requires human
confirmation blocks the chat input until a result is submitted for it.
Results are routed back through the chat client's ``add_tool_result``.
"""

from typing import Any, Optional, Protocol

from agent.messages import Message, ToolInvocationPart, ToolInvocationState
from tools.registry import ToolRegistry

DENIED_RESULT = "Error: User denied access to tool execution"
BLOCKED_PLACEHOLDER = "Please respond to the tool confirmation above..."
DEFAULT_PLACEHOLDER = "Type your message..."


class ToolResultSink(Protocol):
    @property
    def messages(self) -> list[Message]: ...

    async def add_tool_result(self, tool: str, tool_call_id: str, output: Any) -> None: ...


class UnknownToolCallError(LookupError):
    """Raised when a result is submitted for a tool call not in the history."""


class ToolInvocationReconciler:
    """Derives pending confirmations and submits tool results."""

    def __init__(self, client: ToolResultSink, registry: ToolRegistry) -> None:
        self._client = client
        self._registry = registry

    def needs_confirmation(self, part: ToolInvocationPart) -> bool:
        return self._registry.requires_confirmation(part.tool_name)

    def pending_confirmations(
        self, messages: Optional[list[Message]] = None
    ) -> list[ToolInvocationPart]:
        """Every part, anywhere in the history, still awaiting a human result."""
        history = self._client.messages if messages is None else messages
        return [
            part
            for message in history
            for part in message.tool_parts()
            if part.state == ToolInvocationState.INPUT_AVAILABLE
            and self.needs_confirmation(part)
        ]

    def is_blocked(self, messages: Optional[list[Message]] = None) -> bool:
        return bool(self.pending_confirmations(messages))

    def input_placeholder(self, messages: Optional[list[Message]] = None) -> str:
        return BLOCKED_PLACEHOLDER if self.is_blocked(messages) else DEFAULT_PLACEHOLDER

    def find_part(self, tool_call_id: str) -> ToolInvocationPart:
        for message in self._client.messages:
            for part in message.tool_parts():
                if part.tool_call_id == tool_call_id:
                    return part
        raise UnknownToolCallError(f"No tool call with id '{tool_call_id}'")

    async def submit(self, tool_call_id: str, result: Any) -> None:
        """Forward *result* as the output of tool call *tool_call_id*."""
        part = self.find_part(tool_call_id)
        await self._client.add_tool_result(
            tool=part.tool_name,
            tool_call_id=tool_call_id,
            output=result,
        )

    async def confirm(self, tool_call_id: str, approved: bool) -> None:
        """Resolve a pending confirmation by running or denying the tool."""
        part = self.find_part(tool_call_id)
        if approved:
            try:
                result = await self._registry.run_confirmed(part.tool_name, part.input)
            except Exception as e:
                # Same text the tool node reports for auto-executed tools
                result = f"Error: {e}"
        else:
            result = DENIED_RESULT
        await self.submit(tool_call_id, result)
