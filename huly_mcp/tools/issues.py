"""Issue tools."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from huly_mcp.dispatch.registry import HULY_CLIENT, RegisteredTool
from huly_mcp.errors import InvalidStatusError
from huly_mcp.huly.client import HulyClient
from huly_mcp.tools.shared import (
    ISSUE_CLASS,
    MAX_LIMIT,
    PRIORITY_NAMES,
    StatusInfo,
    clamp_limit,
    find_person_by_email_or_name,
    find_project,
    find_project_and_issue,
    load_statuses,
    person_names,
    status_name,
)

CATEGORY = "issues"

STATUS_GROUPS = ("open", "done", "canceled")


# ─── Input Models ────────────────────────────────────────────────────────────


class ListIssuesInput(BaseModel):
    """Input for listing issues in a project."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    project: str = Field(..., description="Project identifier (e.g., 'HULY')", min_length=1)
    status: Optional[str] = Field(
        default=None,
        description="Filter by status name, or one of 'open', 'done', 'canceled'",
        min_length=1,
    )
    assignee: Optional[str] = Field(default=None, description="Filter by assignee email or name", min_length=1)
    limit: Optional[int] = Field(default=None, description="Max results (default 50)", ge=1, le=MAX_LIMIT)


class GetIssueInput(BaseModel):
    """Input for fetching a single issue."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    project: str = Field(..., description="Project identifier (e.g., 'HULY')", min_length=1)
    identifier: str = Field(..., description="Issue identifier (e.g., 'HULY-123' or '123')", min_length=1)


class UpdateIssueStatusInput(BaseModel):
    """Input for moving an issue to another status."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    project: str = Field(..., description="Project identifier (e.g., 'HULY')", min_length=1)
    identifier: str = Field(..., description="Issue identifier (e.g., 'HULY-123' or '123')", min_length=1)
    status: str = Field(..., description="Target status name (case-insensitive)", min_length=1)


# ─── Results ─────────────────────────────────────────────────────────────────


class IssueSummary(BaseModel):
    identifier: str
    title: str
    status: str
    priority: str
    assignee: Optional[str] = None
    modified_on: Optional[int] = None


class IssueDetail(IssueSummary):
    project: str
    due_date: Optional[int] = None
    created_on: Optional[int] = None


class UpdateIssueResult(BaseModel):
    identifier: str
    status: str
    updated: bool


def _priority(value: Any) -> str:
    return PRIORITY_NAMES.get(value, "no-priority")


def _find_status(statuses: List[StatusInfo], name: str) -> Optional[StatusInfo]:
    wanted = name.lower()
    return next((status for status in statuses if status.name.lower() == wanted), None)


def _status_query(statuses: List[StatusInfo], status: str, project: str) -> Optional[Dict[str, Any]]:
    """Build the status filter. ``None`` means nothing can match."""
    group = status.lower()
    if group == "open":
        closed = [s.id for s in statuses if s.is_done or s.is_canceled]
        return {"$nin": closed} if closed else {}
    if group in ("done", "canceled"):
        ids = [s.id for s in statuses if (s.is_done if group == "done" else s.is_canceled)]
        return {"$in": ids} if ids else None

    match = _find_status(statuses, status)
    if match is None:
        raise InvalidStatusError(status=status, project=project)
    return {"$eq": match.id}


# ─── Operations ──────────────────────────────────────────────────────────────


async def list_issues(params: ListIssuesInput, huly_client: HulyClient) -> List[IssueSummary]:
    """List issues in a project, most recently modified first.

    Raises:
        ProjectNotFoundError: if the project does not exist.
        InvalidStatusError: if ``status`` names no known status.
    """
    project = await find_project(huly_client, params.project)
    statuses = await load_statuses(huly_client)

    query: Dict[str, Any] = {"space": project["_id"]}
    if params.status is not None:
        status_filter = _status_query(statuses, params.status, params.project)
        if status_filter is None:
            return []
        if status_filter:
            query["status"] = status_filter

    if params.assignee is not None:
        person = await find_person_by_email_or_name(huly_client, params.assignee)
        if person is None:
            return []
        query["assignee"] = person["_id"]

    issues = await huly_client.find_all(
        ISSUE_CLASS,
        query,
        {"limit": clamp_limit(params.limit), "sort": {"modifiedOn": -1}},
    )
    names = await person_names(huly_client, [issue.get("assignee") for issue in issues])

    return [
        IssueSummary(
            identifier=issue["identifier"],
            title=issue.get("title", ""),
            status=status_name(statuses, issue.get("status")) or "Unknown",
            priority=_priority(issue.get("priority")),
            assignee=names.get(issue.get("assignee")),
            modified_on=issue.get("modifiedOn"),
        )
        for issue in issues
    ]


async def get_issue(params: GetIssueInput, huly_client: HulyClient) -> IssueDetail:
    project, issue = await find_project_and_issue(huly_client, params.project, params.identifier)
    statuses = await load_statuses(huly_client)
    names = await person_names(huly_client, [issue.get("assignee")])

    return IssueDetail(
        identifier=issue["identifier"],
        title=issue.get("title", ""),
        status=status_name(statuses, issue.get("status")) or "Unknown",
        priority=_priority(issue.get("priority")),
        assignee=names.get(issue.get("assignee")),
        modified_on=issue.get("modifiedOn"),
        project=project["identifier"],
        due_date=issue.get("dueDate"),
        created_on=issue.get("createdOn"),
    )


async def update_issue_status(params: UpdateIssueStatusInput, huly_client: HulyClient) -> UpdateIssueResult:
    """Move an issue to the named status.

    Raises:
        ProjectNotFoundError: if the project does not exist.
        IssueNotFoundError: if the issue does not exist in the project.
        InvalidStatusError: if no status has that name.
    """
    project, issue = await find_project_and_issue(huly_client, params.project, params.identifier)
    statuses = await load_statuses(huly_client)

    target = _find_status(statuses, params.status)
    if target is None:
        raise InvalidStatusError(status=params.status, project=params.project)

    if issue.get("status") == target.id:
        return UpdateIssueResult(identifier=issue["identifier"], status=target.name, updated=False)

    await huly_client.update_doc(ISSUE_CLASS, project["_id"], issue["_id"], {"status": target.id})
    return UpdateIssueResult(identifier=issue["identifier"], status=target.name, updated=True)


TOOLS = [
    RegisteredTool(
        name="list_issues",
        description=(
            "Query Huly issues with optional filters. Returns issues sorted by modification date "
            "(newest first). Supports filtering by project, status, and assignee."
        ),
        category=CATEGORY,
        input_model=ListIssuesInput,
        operation=list_issues,
        requires=(HULY_CLIENT,),
    ),
    RegisteredTool(
        name="get_issue",
        description="Retrieve full details for a Huly issue. Use this to view issue status, priority and assignee.",
        category=CATEGORY,
        input_model=GetIssueInput,
        operation=get_issue,
        requires=(HULY_CLIENT,),
    ),
    RegisteredTool(
        name="update_issue_status",
        description="Change the status of a Huly issue. Status names are matched case-insensitively.",
        category=CATEGORY,
        input_model=UpdateIssueStatusInput,
        operation=update_issue_status,
        requires=(HULY_CLIENT,),
    ),
]
