"""Interactive CLI for chatting with the agent without the web UI.

Usage:
    python scripts/run_cli.py
"""

import asyncio
import logging
import os
import sys

# Ensure the project root is on the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from agent import config  # noqa: E402
from agent.chat_client import ChatAgentClient  # noqa: E402
from agent.graph import build_graph  # noqa: E402
from agent.messages import TextPart, ToolInvocationState  # noqa: E402
from agent.reconciler import ToolInvocationReconciler  # noqa: E402
from tools.registry import get_registry  # noqa: E402


def _render(client: ChatAgentClient, shown: set[str]) -> None:
    """Print parts of the assistant reply that have not been shown yet."""
    for m in client.messages:
        if m.role != "assistant":
            continue
        for i, part in enumerate(m.parts):
            if isinstance(part, TextPart):
                key = f"{m.id}-{i}-text"
                if key not in shown and part.text:
                    shown.add(key)
                    print(f"\033[1;35mAgent:\033[0m {part.text}")
                continue

            key = f"{part.tool_call_id}-{part.state.value}"
            if key in shown:
                continue
            shown.add(key)
            if part.state == ToolInvocationState.INPUT_AVAILABLE:
                print(f"  \033[1;33m🔧 Tool: {part.tool_name}\033[0m")
                for k, v in part.input.items():
                    print(f"     {k}: {v}")
            elif part.state == ToolInvocationState.OUTPUT_AVAILABLE:
                print(f"  \033[1;32m✅ {part.tool_name}:\033[0m {str(part.output)[:300]}")
            elif part.state == ToolInvocationState.OUTPUT_ERROR:
                print(f"  \033[1;31m❌ {part.tool_name}:\033[0m {part.error_text}")


async def _read_line(prompt: str) -> str:
    return (await asyncio.to_thread(input, prompt)).strip()


async def main():
    """Run an interactive chat loop in the terminal."""
    logging.basicConfig(level=config.LOG_LEVEL)
    print("=" * 60)
    print("  📚 Canvas Helper — CLI Mode")
    print("  Type 'clear' to reset, 'quit' or 'exit' to stop.")
    print("=" * 60)
    print()

    registry = get_registry()
    client = ChatAgentClient(build_graph(registry))
    reconciler = ToolInvocationReconciler(client, registry)
    shown: set[str] = set()

    async def on_update(c: ChatAgentClient) -> None:
        _render(c, shown)

    client.subscribe(on_update)

    try:
        while True:
            # Resolve pending confirmations before accepting new input
            for part in reconciler.pending_confirmations():
                answer = await _read_line(
                    f"\033[1;33mRun {part.tool_name}({part.input})? [y/N]:\033[0m "
                )
                await reconciler.confirm(part.tool_call_id, answer.lower() in ("y", "yes"))
            if reconciler.is_blocked():
                continue

            try:
                user_input = await _read_line("\033[1;36mYou:\033[0m ")
            except (KeyboardInterrupt, EOFError):
                print("\nGoodbye!")
                break

            if not user_input:
                continue
            if user_input.lower() in ("quit", "exit"):
                print("Goodbye!")
                break
            if user_input.lower() == "clear":
                await client.clear_history()
                shown.clear()
                continue

            print()
            await client.send_message(user_input)
            if client.error:
                print(f"\033[1;31mError:\033[0m {client.error}")
            print()
    finally:
        await registry.aclose()


if __name__ == "__main__":
    asyncio.run(main())
