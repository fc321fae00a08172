"""FastAPI server with WebSocket streaming for the chat UI."""

import asyncio
import json
import logging
import os

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles

from agent import config
from agent.chat_client import ChatAgentClient, ChatStatus
from agent.graph import build_graph
from agent.reconciler import ToolInvocationReconciler, UnknownToolCallError
from tools.registry import get_registry

logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)

STATIC_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "static")

app = FastAPI(title="Canvas Helper")

# Serve static files (HTML, CSS, JS)
app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

_graph = None


def get_graph():
    """Return (and lazily build) the shared agent graph."""
    global _graph
    if _graph is None:
        _graph = build_graph(get_registry())
    return _graph


@app.get("/")
async def root():
    """Serve the chat UI."""
    with open(os.path.join(STATIC_DIR, "index.html"), encoding="utf-8") as f:
        return HTMLResponse(content=f.read())


@app.get("/check-open-ai-key")
async def check_open_ai_key():
    """Report whether the model provider key is configured."""
    return {"success": bool(config.GOOGLE_API_KEY)}


@app.get("/api/tools")
async def list_tools():
    """List all available tools the agent can use."""
    registry = get_registry()
    return [
        {
            "name": d.name,
            "description": d.description,
            "requiresConfirmation": d.requires_confirmation,
        }
        for d in registry.tools.values()
    ]


def _snapshot(client: ChatAgentClient, reconciler: ToolInvocationReconciler) -> dict:
    messages = client.messages
    return {
        "type": "snapshot",
        "status": client.status.value,
        "messages": [m.model_dump(mode="json", by_alias=True) for m in messages],
        "pendingConfirmation": reconciler.is_blocked(messages),
        "placeholder": reconciler.input_placeholder(messages),
    }


@app.websocket("/ws/chat")
async def websocket_chat(websocket: WebSocket):
    """WebSocket endpoint for streaming agent responses."""
    await websocket.accept()

    # Each WebSocket connection gets its own conversation thread
    client = ChatAgentClient(get_graph())
    reconciler = ToolInvocationReconciler(client, get_registry())
    running: set[asyncio.Task] = set()

    async def send_json(payload: dict) -> None:
        await websocket.send_text(json.dumps(payload))

    async def push_update(c: ChatAgentClient) -> None:
        await send_json(_snapshot(c, reconciler))
        if c.error and c.status is ChatStatus.IDLE:
            await send_json({"type": "error", "content": c.error})

    def spawn(coro) -> None:
        task = asyncio.create_task(coro)
        running.add(task)
        task.add_done_callback(running.discard)

    client.subscribe(push_update)
    await send_json(_snapshot(client, reconciler))

    try:
        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                await send_json({"type": "error", "content": "Malformed frame: expected JSON"})
                continue
            if not isinstance(message, dict):
                await send_json({"type": "error", "content": "Malformed frame: expected a JSON object"})
                continue
            kind = message.get("type", "message")

            if kind == "message":
                user_input = message.get("content", "")
                if not isinstance(user_input, str) or not user_input.strip():
                    continue
                if client.status is not ChatStatus.IDLE:
                    await send_json({"type": "error", "content": "A response is still streaming"})
                    continue
                if reconciler.is_blocked():
                    await send_json({"type": "error", "content": reconciler.input_placeholder()})
                    continue
                spawn(client.send_message(user_input))

            elif kind in ("tool_result", "confirm"):
                tool_call_id = message.get("toolCallId", "")
                try:
                    reconciler.find_part(tool_call_id)
                except UnknownToolCallError as e:
                    await send_json({"type": "error", "content": str(e)})
                    continue
                if kind == "confirm":
                    spawn(reconciler.confirm(tool_call_id, bool(message.get("approved"))))
                else:
                    spawn(reconciler.submit(tool_call_id, message.get("result")))

            elif kind == "stop":
                client.stop()

            elif kind == "clear":
                await client.clear_history()

            else:
                await send_json({"type": "error", "content": f"Unknown message type '{kind}'"})

    except WebSocketDisconnect:
        logger.info("Chat thread %s disconnected", client.thread_id)
    finally:
        for task in list(running):
            task.cancel()


@app.on_event("shutdown")
async def shutdown_event():
    """Close the MCP session when the server stops."""
    await get_registry().aclose()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
