"""Centralized agent configuration.

Reads from environment variables with sensible defaults so that the chat
agent works out of the box while remaining fully customizable.
"""

import os

from dotenv import load_dotenv

load_dotenv()


# ── LLM Settings ──────────────────────────────────────────────────────────────
MODEL_NAME: str = os.getenv("AGENT_MODEL", "gemini-2.0-flash")
TEMPERATURE: float = float(os.getenv("AGENT_TEMPERATURE", "0.0"))
MAX_ITERATIONS: int = int(os.getenv("AGENT_MAX_ITERATIONS", "10"))

# ── API Keys ──────────────────────────────────────────────────────────────────
GOOGLE_API_KEY: str = os.getenv("GOOGLE_API_KEY", "")

# ── Canvas MCP server ─────────────────────────────────────────────────────────
MCP_SERVER_URL: str = os.getenv(
    "MCP_SERVER_URL", "https://server.smithery.ai/@aryankeluskar/canvas-mcp/mcp"
)
SMITHERY_API_KEY: str = os.getenv("SMITHERY_API_KEY", "")
SMITHERY_PROFILE: str = os.getenv("SMITHERY_PROFILE", "")
MCP_CLIENT_NAME: str = os.getenv("MCP_CLIENT_NAME", "Canvas Helper")
MCP_CLIENT_VERSION: str = os.getenv("MCP_CLIENT_VERSION", "1.0.0")

# ── Logging ───────────────────────────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
TOOL_LOG_DIR: str = os.path.abspath(os.getenv("TOOL_LOG_DIR", "./.tool_logs"))

# ── System prompt ─────────────────────────────────────────────────────────────
SYSTEM_PROMPT: str = os.getenv(
    "AGENT_SYSTEM_PROMPT",
    (
        "You are a helpful assistant for students using Canvas. "
        "Use the getCourses tool to look up the user's courses and the "
        "getAssignments tool to list the assignments of a course by its exact name. "
        "If the user names a course loosely, call getCourses first to find the "
        "matching course name. Summarize assignments with their due dates."
    ),
)
