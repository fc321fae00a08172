"""Agent guardrails: tool-usage audit log and confirmation checks.

All guardrail logic lives here to keep nodes.py and graph.py focused on
their primary responsibilities.
"""

import json
import os
import time
from typing import Any, Optional

from agent import config
from tools.registry import ToolRegistry


# ── Tool-usage logger ─────────────────────────────────────────────────────────


class ToolUsageLogger:
    """Append-only JSON-lines logger for every tool invocation."""

    def __init__(self, log_dir: Optional[str] = None):
        self._log_dir = log_dir or config.TOOL_LOG_DIR
        self._log_path = os.path.join(self._log_dir, "tool_usage.jsonl")

    @property
    def path(self) -> str:
        return self._log_path

    def log(
        self,
        tool_name: str,
        tool_args: dict,
        result_summary: str,
        status: str = "success",
    ) -> None:
        """Write a single log entry."""
        os.makedirs(self._log_dir, exist_ok=True)
        entry = {
            "ts": time.strftime("%Y-%m-%dT%H:%M:%S%z"),
            "tool": tool_name,
            "args": tool_args,
            "status": status,
            "result": result_summary[:500],  # keep logs compact
        }
        with open(self._log_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry) + "\n")


# Shared singleton
tool_logger = ToolUsageLogger()


# ── Human confirmation ───────────────────────────────────────────────────────


def split_tool_calls(
    tool_calls: list[dict[str, Any]],
    registry: ToolRegistry,
) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    """Split tool calls into (auto-executing, confirmation-required).

    Calls to unknown tools count as auto-executing so the tool node can
    answer them with an error instead of leaving the run paused forever.
    """
    auto: list[dict[str, Any]] = []
    confirm: list[dict[str, Any]] = []
    for tc in tool_calls:
        if registry.requires_confirmation(tc.get("name", "")):
            confirm.append(tc)
        else:
            auto.append(tc)
    return auto, confirm
