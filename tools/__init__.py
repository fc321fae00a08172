"""Agent tools.

Tool definitions live in sibling modules (``tools.canvas``) and are
collected by the registry in ``tools.registry``, which also owns the
remote MCP executor they call through.
"""
