"""Remote tool executor backed by an MCP client session.

Holds a single streamable-HTTP MCP session to the Canvas server.  The
session is opened lazily on the first tool call and shared by every call
after that.  Concurrent first calls wait on the same in-flight connection
attempt instead of racing to open duplicate sessions.

Usage::

    executor = RemoteToolExecutor(url, api_key="...", profile="...")
    payload = await executor.call_tool("get_courses", {})
    await executor.close()
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncContextManager, Callable, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from mcp import ClientSession
from mcp.client.streamable_http import streamablehttp_client
from mcp.types import Implementation

logger = logging.getLogger(__name__)

SessionFactory = Callable[[str], AsyncContextManager[ClientSession]]


class MCPConnectionError(RuntimeError):
    """Raised when the MCP client cannot connect to the remote server."""


def build_endpoint(url: str, api_key: str, profile: str) -> str:
    """Return *url* with the ``api_key`` and ``profile`` query parameters set."""
    parts = urlsplit(url)
    query = dict(parse_qsl(parts.query, keep_blank_values=True))
    query["api_key"] = api_key
    query["profile"] = profile
    return urlunsplit(parts._replace(query=urlencode(query)))


def streamable_http_session(client_name: str, client_version: str) -> SessionFactory:
    """Session factory that opens and initializes a streamable-HTTP session."""

    @asynccontextmanager
    async def _open(endpoint: str):
        async with streamablehttp_client(endpoint) as (read, write, _):
            async with ClientSession(
                read,
                write,
                client_info=Implementation(name=client_name, version=client_version),
            ) as session:
                await session.initialize()
                yield session

    return _open


class RemoteToolExecutor:
    """Owns the MCP session used to call remote Canvas tools."""

    def __init__(
        self,
        url: str,
        api_key: str = "",
        profile: str = "",
        session_factory: Optional[SessionFactory] = None,
        client_name: str = "Canvas Helper",
        client_version: str = "1.0.0",
    ) -> None:
        self._endpoint = build_endpoint(url, api_key, profile)
        self._session_factory = session_factory or streamable_http_session(
            client_name, client_version
        )

        self._session: Optional[ClientSession] = None
        # Shared in-flight connection attempt (single-flight guard)
        self._connecting: Optional[asyncio.Future] = None
        self._holder: Optional[asyncio.Task] = None
        self._closed: Optional[asyncio.Event] = None

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @property
    def connected(self) -> bool:
        return self._session is not None

    # ── Public API ────────────────────────────────────────────────────────

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        """Call remote tool *name* and return the JSON form of its result."""
        session = await self.connect()
        result = await session.call_tool(name, arguments)
        return result.model_dump(mode="json", by_alias=True, exclude_none=True)

    async def connect(self) -> ClientSession:
        """Return the live session, opening it first if needed.

        Raises:
            MCPConnectionError: If the session could not be established.
                The failure is not cached; the next call tries again.
        """
        if self._session is not None:
            return self._session

        if self._connecting is None:
            loop = asyncio.get_running_loop()
            self._connecting = loop.create_future()
            self._closed = asyncio.Event()
            self._holder = asyncio.create_task(
                self._hold_session(self._connecting, self._closed)
            )

        attempt = self._connecting
        try:
            session = await asyncio.shield(attempt)
        except Exception as exc:
            if self._connecting is attempt:
                self._connecting = None
                self._holder = None
            logger.error("Failed to connect MCP client: %s", exc)
            raise MCPConnectionError(f"MCP connection failed: {exc}") from exc

        self._session = session
        return session

    async def close(self) -> None:
        """Close the session and release the background holder task."""
        holder = self._holder
        if self._closed is not None:
            self._closed.set()
        if holder is not None:
            await holder
        self._session = None
        self._connecting = None
        self._holder = None

    # ── Session lifecycle ─────────────────────────────────────────────────

    async def _hold_session(self, ready: asyncio.Future, closed: asyncio.Event) -> None:
        """Open the session and keep it alive until *closed* is set.

        The transport's cancel scopes have to be exited by the task that
        entered them, so the whole session lives inside this one task.
        """
        try:
            async with self._session_factory(self._endpoint) as session:
                ready.set_result(session)
                logger.info("MCP client connected successfully")
                await closed.wait()
        except Exception as exc:
            if not ready.done():
                ready.set_exception(exc)
            else:
                logger.warning("MCP session ended with an error: %s", exc)
        finally:
            if ready.done() and self._connecting is ready:
                # Session is gone; the next call reconnects.
                self._session = None
                self._connecting = None
                self._holder = None
