"""
Error taxonomy for the Huly MCP server.

Every expected failure raised by an operation is one of the variants below.
A variant carries only the identifiers needed to render its message and is
bound to exactly one MCP error code when its class is defined:

  -32602 (Invalid params):  reference errors (NotFound) and domain-rule errors
  -32603 (Internal error):  connection, authentication and upload failures
"""

from dataclasses import dataclass, fields, is_dataclass
from enum import IntEnum
from typing import ClassVar, Dict, Optional, Tuple, Type

# ─── Protocol Codes ──────────────────────────────────────────────────────────


class McpErrorCode(IntEnum):
    """JSON-RPC error codes used for tool failures."""

    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603


BYTES_PER_MB = 1024 * 1024

_CODES_BY_KIND: Dict[str, McpErrorCode] = {}
_VARIANTS: Dict[str, Type["HulyDomainError"]] = {}


# ─── Base Class ──────────────────────────────────────────────────────────────


class HulyDomainError(Exception):
    """Base class of the taxonomy. Not raised directly.

    Subclasses are declared with their protocol code (and optionally a
    category label used to prefix internal-error messages)::

        @dataclass(eq=False)
        class ProjectNotFoundError(HulyDomainError, code=McpErrorCode.INVALID_PARAMS):
            identifier: str

    Declaring a subclass without a code raises ``TypeError`` at import time.
    """

    kind: ClassVar[str] = "HulyDomainError"
    code: ClassVar[McpErrorCode]
    label: ClassVar[Optional[str]] = None

    _sealed: bool = False

    def __init_subclass__(cls, code: Optional[McpErrorCode] = None, label: Optional[str] = None, **kwargs):
        super().__init_subclass__(**kwargs)
        if code is None:
            raise TypeError(f"{cls.__name__} must declare an MCP error code")
        if cls.__name__ in _VARIANTS:
            raise TypeError(f"Duplicate error kind: {cls.__name__}")
        cls.kind = cls.__name__
        cls.code = McpErrorCode(code)
        cls.label = label
        _VARIANTS[cls.kind] = cls
        _CODES_BY_KIND[cls.kind] = cls.code

    def __post_init__(self) -> None:
        Exception.__init__(self, self.message)
        object.__setattr__(self, "_sealed", True)

    def __setattr__(self, name: str, value) -> None:
        # Exception machinery (__traceback__, __context__, ...) stays writable.
        if self._sealed and not name.startswith("__"):
            raise AttributeError(f"{self.kind} is immutable")
        super().__setattr__(name, value)

    @property
    def message(self) -> str:
        # Variants override this; a bare base instance renders its args.
        return Exception.__str__(self)

    @property
    def field_values(self) -> Dict[str, object]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def __str__(self) -> str:
        return self.message

    def __reduce__(self):
        # Rebuild from fields so copy and pickle go through the dataclass __init__.
        if not is_dataclass(self):
            return super().__reduce__()
        return _rebuild, (type(self), self.field_values)


def _rebuild(cls: Type[HulyDomainError], values: Dict[str, object]) -> HulyDomainError:
    return cls(**values)


def error_code(kind: str) -> McpErrorCode:
    """Return the protocol code for a variant kind.

    Raises:
        KeyError: if ``kind`` is not part of the taxonomy.
    """
    return _CODES_BY_KIND[kind]


def variant_kinds() -> Tuple[str, ...]:
    """All registered variant kinds, in declaration order."""
    return tuple(_VARIANTS)


def is_domain_error(value: object) -> bool:
    return isinstance(value, HulyDomainError) and value.kind in _VARIANTS


def _not_found(entity: str, identifier: str, container: Optional[str] = None, value: Optional[str] = None) -> str:
    text = f"{entity} '{identifier}' not found"
    if container is not None:
        text += f" in {container} '{value}'"
    return text


# ─── Infrastructure Failures (Internal error) ────────────────────────────────


@dataclass(eq=False)
class HulyError(HulyDomainError, code=McpErrorCode.INTERNAL_ERROR):
    """Generic operational failure."""

    reason: str

    @property
    def message(self) -> str:
        return self.reason


@dataclass(eq=False)
class HulyConnectionError(HulyDomainError, code=McpErrorCode.INTERNAL_ERROR, label="Connection error"):
    """Network or transport failure talking to the platform."""

    reason: str

    @property
    def message(self) -> str:
        return self.reason


@dataclass(eq=False)
class HulyAuthError(HulyDomainError, code=McpErrorCode.INTERNAL_ERROR, label="Authentication error"):
    """Invalid credentials or expired session."""

    reason: str

    @property
    def message(self) -> str:
        return self.reason


@dataclass(eq=False)
class FileUploadError(HulyDomainError, code=McpErrorCode.INTERNAL_ERROR, label="File upload error"):
    reason: str

    @property
    def message(self) -> str:
        return self.reason


@dataclass(eq=False)
class FileFetchError(HulyDomainError, code=McpErrorCode.INTERNAL_ERROR):
    file_url: str
    reason: str

    @property
    def message(self) -> str:
        return f"Failed to fetch file from {self.file_url}: {self.reason}"


# ─── Domain-Rule Violations (Invalid params) ─────────────────────────────────


@dataclass(eq=False)
class InvalidStatusError(HulyDomainError, code=McpErrorCode.INVALID_PARAMS):
    status: str
    project: str

    @property
    def message(self) -> str:
        return f"Invalid status '{self.status}' for project '{self.project}'"


@dataclass(eq=False)
class InvalidPersonUuidError(HulyDomainError, code=McpErrorCode.INVALID_PARAMS):
    uuid: str

    @property
    def message(self) -> str:
        return f"Invalid person UUID '{self.uuid}'"


@dataclass(eq=False)
class InvalidFileDataError(HulyDomainError, code=McpErrorCode.INVALID_PARAMS):
    """Malformed file payload, e.g. bad base64."""

    reason: str

    @property
    def message(self) -> str:
        return self.reason


@dataclass(eq=False)
class FileTooLargeError(HulyDomainError, code=McpErrorCode.INVALID_PARAMS):
    filename: str
    size: int
    max_size: int

    @property
    def message(self) -> str:
        size_mb = self.size / BYTES_PER_MB
        max_mb = self.max_size / BYTES_PER_MB
        return f"File '{self.filename}' is too large ({size_mb:.2f} MB). Maximum allowed size is {max_mb:.2f} MB"


@dataclass(eq=False)
class InvalidContentTypeError(HulyDomainError, code=McpErrorCode.INVALID_PARAMS):
    filename: str
    content_type: str

    @property
    def message(self) -> str:
        return f"Content type '{self.content_type}' is not allowed for file '{self.filename}'"


# ─── Reference Errors (Invalid params) ───────────────────────────────────────


@dataclass(eq=False)
class FileNotFoundError(HulyDomainError, code=McpErrorCode.INVALID_PARAMS):
    file_path: str

    @property
    def message(self) -> str:
        return f"File not found: {self.file_path}"


# The kind tag is the class name; this alias avoids shadowing the builtin in importers.
HulyFileNotFoundError = FileNotFoundError


@dataclass(eq=False)
class IssueNotFoundError(HulyDomainError, code=McpErrorCode.INVALID_PARAMS):
    identifier: str
    project: str

    @property
    def message(self) -> str:
        return _not_found("Issue", self.identifier, "project", self.project)


@dataclass(eq=False)
class ProjectNotFoundError(HulyDomainError, code=McpErrorCode.INVALID_PARAMS):
    identifier: str

    @property
    def message(self) -> str:
        return _not_found("Project", self.identifier)


@dataclass(eq=False)
class PersonNotFoundError(HulyDomainError, code=McpErrorCode.INVALID_PARAMS):
    identifier: str

    @property
    def message(self) -> str:
        return _not_found("Person", self.identifier)


@dataclass(eq=False)
class TeamspaceNotFoundError(HulyDomainError, code=McpErrorCode.INVALID_PARAMS):
    identifier: str

    @property
    def message(self) -> str:
        return _not_found("Teamspace", self.identifier)


@dataclass(eq=False)
class DocumentNotFoundError(HulyDomainError, code=McpErrorCode.INVALID_PARAMS):
    identifier: str
    teamspace: str

    @property
    def message(self) -> str:
        return _not_found("Document", self.identifier, "teamspace", self.teamspace)


@dataclass(eq=False)
class CommentNotFoundError(HulyDomainError, code=McpErrorCode.INVALID_PARAMS):
    comment_id: str
    issue: str

    @property
    def message(self) -> str:
        return _not_found("Comment", self.comment_id, "issue", self.issue)


@dataclass(eq=False)
class MilestoneNotFoundError(HulyDomainError, code=McpErrorCode.INVALID_PARAMS):
    identifier: str
    project: str

    @property
    def message(self) -> str:
        return _not_found("Milestone", self.identifier, "project", self.project)


@dataclass(eq=False)
class ComponentNotFoundError(HulyDomainError, code=McpErrorCode.INVALID_PARAMS):
    identifier: str
    project: str

    @property
    def message(self) -> str:
        return _not_found("Component", self.identifier, "project", self.project)


@dataclass(eq=False)
class IssueTemplateNotFoundError(HulyDomainError, code=McpErrorCode.INVALID_PARAMS):
    identifier: str
    project: str

    @property
    def message(self) -> str:
        return _not_found("Issue template", self.identifier, "project", self.project)


@dataclass(eq=False)
class ChannelNotFoundError(HulyDomainError, code=McpErrorCode.INVALID_PARAMS):
    identifier: str

    @property
    def message(self) -> str:
        return _not_found("Channel", self.identifier)


@dataclass(eq=False)
class MessageNotFoundError(HulyDomainError, code=McpErrorCode.INVALID_PARAMS):
    message_id: str
    channel: str

    @property
    def message(self) -> str:
        return _not_found("Message", self.message_id, "channel", self.channel)


@dataclass(eq=False)
class ThreadReplyNotFoundError(HulyDomainError, code=McpErrorCode.INVALID_PARAMS):
    reply_id: str
    message_id: str

    @property
    def message(self) -> str:
        return _not_found("Thread reply", self.reply_id, "message", self.message_id)


@dataclass(eq=False)
class EventNotFoundError(HulyDomainError, code=McpErrorCode.INVALID_PARAMS):
    event_id: str

    @property
    def message(self) -> str:
        return _not_found("Event", self.event_id)


@dataclass(eq=False)
class RecurringEventNotFoundError(HulyDomainError, code=McpErrorCode.INVALID_PARAMS):
    event_id: str

    @property
    def message(self) -> str:
        return _not_found("Recurring event", self.event_id)


@dataclass(eq=False)
class ActivityMessageNotFoundError(HulyDomainError, code=McpErrorCode.INVALID_PARAMS):
    message_id: str

    @property
    def message(self) -> str:
        return _not_found("Activity message", self.message_id)


@dataclass(eq=False)
class ReactionNotFoundError(HulyDomainError, code=McpErrorCode.INVALID_PARAMS):
    message_id: str
    emoji: str

    @property
    def message(self) -> str:
        return f"Reaction '{self.emoji}' not found on message '{self.message_id}'"


@dataclass(eq=False)
class SavedMessageNotFoundError(HulyDomainError, code=McpErrorCode.INVALID_PARAMS):
    message_id: str

    @property
    def message(self) -> str:
        return _not_found("Saved message", self.message_id)


@dataclass(eq=False)
class AttachmentNotFoundError(HulyDomainError, code=McpErrorCode.INVALID_PARAMS):
    attachment_id: str

    @property
    def message(self) -> str:
        return _not_found("Attachment", self.attachment_id)


@dataclass(eq=False)
class NotificationNotFoundError(HulyDomainError, code=McpErrorCode.INVALID_PARAMS):
    notification_id: str

    @property
    def message(self) -> str:
        return _not_found("Notification", self.notification_id)


@dataclass(eq=False)
class NotificationContextNotFoundError(HulyDomainError, code=McpErrorCode.INVALID_PARAMS):
    context_id: str

    @property
    def message(self) -> str:
        return _not_found("Notification context", self.context_id)


@dataclass(eq=False)
class CardNotFoundError(HulyDomainError, code=McpErrorCode.INVALID_PARAMS):
    identifier: str

    @property
    def message(self) -> str:
        return _not_found("Card", self.identifier)


@dataclass(eq=False)
class CardTypeNotFoundError(HulyDomainError, code=McpErrorCode.INVALID_PARAMS):
    identifier: str

    @property
    def message(self) -> str:
        return _not_found("Card type", self.identifier)
