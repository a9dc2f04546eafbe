"""Tool tables, one module per category."""

from typing import Mapping, Optional

from huly_mcp.config import parse_toolsets
from huly_mcp.dispatch.registry import ToolRegistry
from huly_mcp.tools import documents, issues, projects, storage, workspace

ALL_TOOLS = [
    *projects.TOOLS,
    *issues.TOOLS,
    *documents.TOOLS,
    *storage.TOOLS,
    *workspace.TOOLS,
]

TOOL_REGISTRY = ToolRegistry(ALL_TOOLS)


def build_registry(env: Optional[Mapping[str, str]] = None) -> ToolRegistry:
    """Registry for this process, restricted by TOOLSETS when set."""
    enabled = parse_toolsets((env or {}).get("TOOLSETS"), TOOL_REGISTRY.categories)
    if enabled is None:
        return TOOL_REGISTRY
    return TOOL_REGISTRY.filtered(enabled)
