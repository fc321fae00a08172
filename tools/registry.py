"""Static tool registry.

Maps tool names to their definitions and owns the RemoteToolExecutor the
tools run through.  A tool either executes automatically (it has an
``execute`` function) or requires human confirmation (it has none, and a
confirmation handler is registered for it in ``executions``).

Usage::

    from tools.registry import get_registry
    registry = get_registry()
    model.bind_tools(registry.bindable_tools())
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Optional

from langchain_core.tools import BaseTool, StructuredTool
from pydantic import BaseModel

from tools.mcp_client import RemoteToolExecutor

ToolFunction = Callable[..., Awaitable[str]]


@dataclass(frozen=True)
class ToolDefinition:
    """A tool the agent can call.

    Attributes:
        name:         Name the model uses to call the tool.
        description:  Description shown to the model.
        input_schema: Pydantic model validating the tool arguments.
        execute:      Coroutine run automatically on invocation.  It receives
                      the registry's executor followed by the validated
                      arguments.  ``None`` marks the tool as requiring
                      human confirmation.
    """

    name: str
    description: str
    input_schema: type[BaseModel]
    execute: Optional[ToolFunction] = None

    @property
    def requires_confirmation(self) -> bool:
        return self.execute is None


class ToolRegistry:
    """Name-indexed set of tool definitions bound to one executor."""

    def __init__(
        self,
        definitions: list[ToolDefinition],
        executor: RemoteToolExecutor,
        executions: Optional[Mapping[str, ToolFunction]] = None,
    ) -> None:
        self._tools: dict[str, ToolDefinition] = {}
        for definition in definitions:
            if definition.name in self._tools:
                raise ValueError(f"Duplicate tool name '{definition.name}'")
            self._tools[definition.name] = definition

        self._executions: dict[str, ToolFunction] = dict(executions or {})
        self._executor = executor
        self._validate()

    def _validate(self) -> None:
        for name in self._executions:
            definition = self._tools.get(name)
            if definition is None:
                raise ValueError(f"Confirmation handler for unknown tool '{name}'")
            if not definition.requires_confirmation:
                raise ValueError(
                    f"Tool '{name}' executes automatically and cannot "
                    "also have a confirmation handler"
                )
        for name in self.confirmation_required():
            if name not in self._executions:
                raise ValueError(f"Tool '{name}' requires confirmation but has no handler")

    # ── Public API ────────────────────────────────────────────────────────

    @property
    def tools(self) -> Mapping[str, ToolDefinition]:
        return dict(self._tools)

    @property
    def executions(self) -> Mapping[str, ToolFunction]:
        return dict(self._executions)

    @property
    def executor(self) -> RemoteToolExecutor:
        return self._executor

    def get(self, name: str) -> Optional[ToolDefinition]:
        return self._tools.get(name)

    def requires_confirmation(self, name: str) -> bool:
        """True if *name* is a registered tool that needs human approval."""
        definition = self._tools.get(name)
        return definition is not None and definition.requires_confirmation

    def confirmation_required(self) -> list[str]:
        return [n for n, d in self._tools.items() if d.requires_confirmation]

    def _bind_executor(self, execute: ToolFunction) -> ToolFunction:
        """Wrap *execute* as a keyword-only coroutine running through the executor."""

        async def run(**kwargs: Any) -> str:
            return await execute(self._executor, **kwargs)

        return run

    def executable_tools(self) -> list[BaseTool]:
        """LangChain tools for every auto-executing definition."""
        return [
            StructuredTool.from_function(
                coroutine=self._bind_executor(d.execute),
                name=d.name,
                description=d.description,
                args_schema=d.input_schema,
            )
            for d in self._tools.values()
            if not d.requires_confirmation
        ]

    def bindable_tools(self) -> list[Any]:
        """Every tool in a form a chat model's ``bind_tools`` accepts.

        Confirmation-required tools are bound as plain function schemas:
        the model may request them, but nothing runs them automatically.
        """
        bindable: list[Any] = self.executable_tools()
        for d in self._tools.values():
            if d.requires_confirmation:
                bindable.append(
                    {
                        "name": d.name,
                        "description": d.description,
                        "parameters": d.input_schema.model_json_schema(),
                    }
                )
        return bindable

    async def run_confirmed(self, name: str, tool_input: dict[str, Any]) -> str:
        """Run the confirmation handler of an approved tool call."""
        handler = self._executions.get(name)
        if handler is None:
            raise KeyError(f"No confirmation handler registered for '{name}'")
        args = self._tools[name].input_schema.model_validate(tool_input)
        return await handler(self._executor, **args.model_dump())

    async def aclose(self) -> None:
        await self._executor.close()


# ── Module-level singleton ────────────────────────────────────────────────────

_registry: Optional[ToolRegistry] = None


def get_registry() -> ToolRegistry:
    """Return (and lazily create) the process-wide ToolRegistry."""
    global _registry
    if _registry is None:
        from agent import config
        from tools.canvas import CANVAS_TOOLS

        executor = RemoteToolExecutor(
            config.MCP_SERVER_URL,
            api_key=config.SMITHERY_API_KEY,
            profile=config.SMITHERY_PROFILE,
            client_name=config.MCP_CLIENT_NAME,
            client_version=config.MCP_CLIENT_VERSION,
        )
        _registry = ToolRegistry(CANVAS_TOOLS, executor)
    return _registry
