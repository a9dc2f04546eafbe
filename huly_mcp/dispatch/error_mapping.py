"""
Collapse failures into MCP error codes.

  -32602 (Invalid params):  validation failures, reference and domain-rule errors
  -32603 (Internal error):  infrastructure errors, defects, interruption

Internal-error messages are sanitized; defect messages are never rendered.
"""

from dataclasses import dataclass
from typing import Optional

from pydantic import ValidationError

from huly_mcp.dispatch.cause import Cause, Die, Empty, Fail, Interrupt, leaves
from huly_mcp.dispatch.sanitize import sanitize_message
from huly_mcp.errors import McpErrorCode, error_code, is_domain_error

UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred"
INTERRUPTED_MESSAGE = "Operation was interrupted"

UNEXPECTED_ERROR_TAG = "UnexpectedError"
INTERRUPTED_TAG = "Interrupted"


@dataclass(frozen=True)
class ClassifiedError:
    code: McpErrorCode
    message: str
    tag: Optional[str] = None


def classify_error(error: object) -> ClassifiedError:
    """Classify a single expected failure.

    Taxonomy variants keep their rendered message when the code is
    ``INVALID_PARAMS``; internal errors are sanitized and tagged with their
    kind. Anything else is treated as an internal error.
    """
    if is_domain_error(error):
        code = error_code(error.kind)
        if code == McpErrorCode.INVALID_PARAMS:
            return ClassifiedError(code, error.message)
        return ClassifiedError(code, sanitize_message(error.message, error.label), error.kind)

    try:
        message = getattr(error, "message", None)
    except Exception:
        message = None
    if isinstance(message, str) and message:
        return ClassifiedError(McpErrorCode.INTERNAL_ERROR, sanitize_message(message), UNEXPECTED_ERROR_TAG)
    return ClassifiedError(McpErrorCode.INTERNAL_ERROR, UNEXPECTED_ERROR_MESSAGE, UNEXPECTED_ERROR_TAG)


def classify_cause(cause: Cause) -> ClassifiedError:
    """Classify a failure tree into one representative error.

    The left-most ``Fail`` wins, whether it sits under ``Sequential`` or
    ``Parallel``. Without one, the first structural failure decides: a defect,
    then an interruption, then the empty fallback.
    """
    first_other = None
    for node in leaves(cause):
        if isinstance(node, Fail):
            return classify_error(node.error)
        if first_other is None and not isinstance(node, Empty):
            first_other = node

    if isinstance(first_other, Die):
        return ClassifiedError(McpErrorCode.INTERNAL_ERROR, UNEXPECTED_ERROR_MESSAGE, UNEXPECTED_ERROR_TAG)
    if isinstance(first_other, Interrupt):
        return ClassifiedError(McpErrorCode.INTERNAL_ERROR, INTERRUPTED_MESSAGE, INTERRUPTED_TAG)
    return ClassifiedError(McpErrorCode.INTERNAL_ERROR, UNEXPECTED_ERROR_MESSAGE)


def format_validation_error(error: ValidationError) -> str:
    parts = []
    for issue in error.errors(include_url=False):
        path = ".".join(str(part) for part in issue["loc"])
        parts.append(f"{path}: {issue['msg']}" if path else issue["msg"])
    return "; ".join(parts)


def classify_validation_error(error: ValidationError, tool_name: Optional[str] = None) -> ClassifiedError:
    """Classify malformed tool input. Always ``INVALID_PARAMS``."""
    prefix = f"Invalid parameters for {tool_name}: " if tool_name else "Invalid parameters: "
    return ClassifiedError(McpErrorCode.INVALID_PARAMS, prefix + format_validation_error(error))
