"""
Tool registry and dispatcher.

Every tool call goes through ``run_tool``:

  1. validate the raw arguments against the tool's input model
  2. check that the service handles the tool requires are available
  3. inject exactly those handles and await the operation
  4. classify the failure, or render the result

One response is produced per call and no exception escapes.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, ValidationError

from huly_mcp.dispatch.cause import Die, from_exception, leaves
from huly_mcp.dispatch.error_mapping import (
    UNEXPECTED_ERROR_MESSAGE,
    UNEXPECTED_ERROR_TAG,
    ClassifiedError,
    classify_cause,
    classify_error,
    classify_validation_error,
)
from huly_mcp.dispatch.responses import (
    ToolResponse,
    error_response,
    success_response,
    to_wire,
    unknown_tool_response,
)
from huly_mcp.errors import HulyError, McpErrorCode

logger = logging.getLogger(__name__)

# ─── Service Handles ─────────────────────────────────────────────────────────

HULY_CLIENT = "huly_client"
STORAGE_CLIENT = "storage_client"
WORKSPACE_CLIENT = "workspace_client"

_CAPABILITY_NAMES = {
    HULY_CLIENT: "HulyClient",
    STORAGE_CLIENT: "HulyStorageClient",
    WORKSPACE_CLIENT: "WorkspaceClient",
}


@dataclass(frozen=True)
class Services:
    """Backend handles available to this process.

    ``workspace_client`` may be ``None``: some deployments run without
    account-level access.
    """

    huly_client: Any = None
    storage_client: Any = None
    workspace_client: Any = None

    def select(self, names: Iterable[str]) -> Tuple[Dict[str, Any], List[str]]:
        """Return the requested handles and the names of the missing ones."""
        selected: Dict[str, Any] = {}
        missing: List[str] = []
        for name in names:
            handle = getattr(self, name)
            if handle is None:
                missing.append(name)
            else:
                selected[name] = handle
        return selected, missing


# ─── Tool Definitions ────────────────────────────────────────────────────────

Operation = Callable[..., Awaitable[Any]]


class EmptyParams(BaseModel):
    """Input for tools that take no parameters."""

    model_config = ConfigDict(extra="forbid")


@dataclass(frozen=True)
class RegisteredTool:
    """A tool exposed over MCP.

    ``operation`` is awaited as ``operation(params, **handles)`` where the
    keyword arguments are exactly the handles named in ``requires``.
    """

    name: str
    description: str
    category: str
    input_model: Type[BaseModel]
    operation: Operation
    requires: Tuple[str, ...] = (HULY_CLIENT,)

    def __post_init__(self) -> None:
        unknown = [name for name in self.requires if name not in _CAPABILITY_NAMES]
        if unknown:
            raise ValueError(f"Tool {self.name} requires unknown handles: {', '.join(unknown)}")

    @property
    def input_schema(self) -> Dict[str, Any]:
        return self.input_model.model_json_schema()


def _missing_capability(names: List[str]) -> ToolResponse:
    described = ", ".join(_CAPABILITY_NAMES[name] for name in names)
    return error_response(classify_error(HulyError(reason=f"{described} not available")))


def _log_failure(tool_name: str, response: ToolResponse) -> None:
    meta = response.meta
    level = logging.INFO if meta.error_code == McpErrorCode.INVALID_PARAMS else logging.WARNING
    logger.log(level, "tool_failed tool=%s code=%d tag=%s", tool_name, meta.error_code, meta.error_tag)


def _failure(tool_name: str, exc: BaseException) -> ToolResponse:
    try:
        cause = from_exception(exc)
        if any(isinstance(node, Die) for node in leaves(cause)):
            logger.error("tool_defect tool=%s", tool_name, exc_info=exc)
        response = error_response(classify_cause(cause))
    except Exception:
        logger.exception("classification_failed tool=%s", tool_name)
        response = error_response(
            ClassifiedError(McpErrorCode.INTERNAL_ERROR, UNEXPECTED_ERROR_MESSAGE, UNEXPECTED_ERROR_TAG)
        )
    _log_failure(tool_name, response)
    return response


async def run_tool(tool: RegisteredTool, args: Any, services: Services) -> ToolResponse:
    """Run one tool call end to end.

    Args:
        tool: The registered tool.
        args: Raw, untrusted arguments from the caller.
        services: Handles available to this process.

    Returns:
        ToolResponse: Success or classified failure, with local ``meta``.
    """
    try:
        params = tool.input_model.model_validate(args)
    except ValidationError as e:
        response = error_response(classify_validation_error(e, tool.name))
        _log_failure(tool.name, response)
        return response
    except BaseException as e:
        # A validator that raised something pydantic does not wrap.
        return _failure(tool.name, e)

    handles, missing = services.select(tool.requires)
    if missing:
        response = _missing_capability(missing)
        _log_failure(tool.name, response)
        return response

    try:
        value = await tool.operation(params, **handles)
        return success_response(value)
    except BaseException as e:
        # Includes cancellation and SystemExit/KeyboardInterrupt raised by the operation.
        return _failure(tool.name, e)


# ─── Registry ────────────────────────────────────────────────────────────────


class ToolRegistry:
    """Fixed table of tools, looked up by name per request."""

    def __init__(self, tools: Iterable[RegisteredTool]):
        self.tools: Dict[str, RegisteredTool] = {}
        for tool in tools:
            if tool.name in self.tools:
                raise ValueError(f"Duplicate tool name: {tool.name}")
            self.tools[tool.name] = tool

    @property
    def definitions(self) -> List[RegisteredTool]:
        return list(self.tools.values())

    @property
    def categories(self) -> List[str]:
        return sorted({tool.category for tool in self.tools.values()})

    def has(self, name: str) -> bool:
        return name in self.tools

    def get(self, name: str) -> Optional[RegisteredTool]:
        return self.tools.get(name)

    def filtered(self, categories: Iterable[str]) -> "ToolRegistry":
        """Registry restricted to the given categories (case-insensitive)."""
        wanted = {category.lower() for category in categories}
        return ToolRegistry(tool for tool in self.tools.values() if tool.category.lower() in wanted)

    async def call(self, name: str, args: Any, services: Services) -> ToolResponse:
        tool = self.tools.get(name)
        if tool is None:
            response = unknown_tool_response(name)
            _log_failure(name, response)
            return response
        return await run_tool(tool, args, services)

    async def dispatch(self, name: str, args: Any, services: Services) -> Dict[str, Any]:
        """Handle a tool call and return the wire envelope (no ``meta``)."""
        return to_wire(await self.call(name, args, services))
