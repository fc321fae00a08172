"""Chat agent client.

Wraps a compiled agent graph for one conversation thread: sends user
messages, feeds tool results back in, streams state snapshots, and keeps
the UI-facing message history and status up to date.  Observers registered
with ``subscribe`` are awaited after every change.
"""

import asyncio
import json
import logging
import uuid
from contextlib import aclosing
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from langchain_core.messages import HumanMessage, ToolMessage

from agent.messages import Message, to_ui_messages
from agent.state import unanswered_tool_calls

logger = logging.getLogger(__name__)

CANCELLED_RESULT = "Cancelled: the response was stopped before this tool ran."


class ChatStatus(str, Enum):
    IDLE = "idle"
    SUBMITTED = "submitted"
    STREAMING = "streaming"


Listener = Callable[["ChatAgentClient"], Awaitable[None]]


class ChatAgentClient:
    """Message history and streaming state of one chat thread."""

    def __init__(self, graph, thread_id: Optional[str] = None) -> None:
        self._graph = graph
        self._thread_id = thread_id or str(uuid.uuid4())
        self._messages: list[Message] = []
        self._created_at: dict[str, datetime] = {}
        self._listeners: list[Listener] = []
        self._stop_requested = False
        self._run_lock = asyncio.Lock()

        self.status = ChatStatus.IDLE
        self.error: Optional[str] = None

    @property
    def thread_id(self) -> str:
        return self._thread_id

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; returns a function that removes it."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    # ── Public API ────────────────────────────────────────────────────────

    async def send_message(self, text: str) -> None:
        """Append a user message and stream the agent's reply."""
        await self._run(
            {
                "messages": [HumanMessage(content=text, id=str(uuid.uuid4()))],
                "iteration_count": 0,
            }
        )

    async def add_tool_result(self, tool: str, tool_call_id: str, output: Any) -> None:
        """Supply the output of a tool call and resume the agent."""
        content = output if isinstance(output, str) else json.dumps(output)
        await self._run(
            {
                "messages": [
                    ToolMessage(content=content, tool_call_id=tool_call_id, name=tool)
                ]
            }
        )

    async def clear_history(self) -> None:
        """Forget the conversation by moving to a fresh thread."""
        self._thread_id = str(uuid.uuid4())
        self._messages = []
        self._created_at = {}
        self.error = None
        await self._notify()

    def stop(self) -> None:
        """Stop streaming the current response after the step in progress.

        Tool calls the stopped run leaves unanswered are answered with
        ``CANCELLED_RESULT`` so the thread can take new messages.
        """
        if self.status is not ChatStatus.IDLE:
            self._stop_requested = True

    # ── Streaming ─────────────────────────────────────────────────────────

    async def _run(self, payload: dict) -> None:
        # Runs on one thread are serialized.
        async with self._run_lock:
            await self._stream(payload)

    async def _stream(self, payload: dict) -> None:
        config = {"configurable": {"thread_id": self._thread_id}}
        self._stop_requested = False
        self.error = None
        await self._set_status(ChatStatus.SUBMITTED)

        try:
            stopped = False
            stream = self._graph.astream(payload, config=config, stream_mode="values")
            async with aclosing(stream):
                async for event in stream:
                    self._messages = to_ui_messages(event.get("messages", []), self._created_at)
                    await self._set_status(ChatStatus.STREAMING)
                    if self._stop_requested:
                        logger.info("Stopped streaming on thread %s", self._thread_id)
                        stopped = True
                        break
            if stopped:
                await self._cancel_unanswered(config)
        except Exception as e:
            logger.exception("Agent run failed on thread %s", self._thread_id)
            self.error = f"Agent error: {e}"
        finally:
            self._stop_requested = False
            await self._set_status(ChatStatus.IDLE)

    async def _cancel_unanswered(self, config: dict) -> None:
        """Answer the tool calls a stopped run left behind."""
        snapshot = await self._graph.aget_state(config)
        history = snapshot.values.get("messages", [])
        cancelled = [
            ToolMessage(
                content=CANCELLED_RESULT,
                tool_call_id=tc["id"],
                name=tc.get("name"),
                status="error",
            )
            for tc in unanswered_tool_calls(history)
        ]
        if not cancelled:
            return
        await self._graph.aupdate_state(config, {"messages": cancelled}, as_node="tools")
        self._messages = to_ui_messages(history + cancelled, self._created_at)

    async def _set_status(self, status: ChatStatus) -> None:
        self.status = status
        await self._notify()

    async def _notify(self) -> None:
        for listener in list(self._listeners):
            await listener(self)
