"""Tool response envelopes."""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from pydantic import TypeAdapter

from huly_mcp.dispatch.error_mapping import ClassifiedError
from huly_mcp.errors import McpErrorCode

JSON_INDENT = 2
UNKNOWN_TOOL_TAG = "UnknownTool"

_JSON = TypeAdapter(Any)


@dataclass(frozen=True)
class ErrorMeta:
    """Local diagnostics for a failed call. Never sent to the caller."""

    error_code: McpErrorCode
    error_tag: Optional[str] = None


@dataclass(frozen=True)
class ToolResponse:
    texts: Tuple[str, ...]
    is_error: bool = False
    meta: Optional[ErrorMeta] = None

    @property
    def text(self) -> str:
        return "\n".join(self.texts)

    @property
    def content(self) -> List[Dict[str, str]]:
        return [{"type": "text", "text": text} for text in self.texts]


def success_response(value: Any) -> ToolResponse:
    """Render an operation result as pretty-printed JSON text.

    Pydantic models, dataclasses and datetimes are converted the way pydantic
    serializes them.
    """
    text = _JSON.dump_json(value, indent=JSON_INDENT).decode("utf-8")
    return ToolResponse(texts=(text,))


def error_response(classified: ClassifiedError) -> ToolResponse:
    return ToolResponse(
        texts=(classified.message,),
        is_error=True,
        meta=ErrorMeta(error_code=classified.code, error_tag=classified.tag),
    )


def unknown_tool_response(tool_name: str) -> ToolResponse:
    return error_response(ClassifiedError(McpErrorCode.INVALID_PARAMS, f"Unknown tool: {tool_name}", UNKNOWN_TOOL_TAG))


def to_wire(response: ToolResponse) -> Dict[str, Any]:
    """Return the envelope as sent to the caller, without ``meta``."""
    wire: Dict[str, Any] = {"content": response.content}
    if response.is_error:
        wire["isError"] = True
    return wire
