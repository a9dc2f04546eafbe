"""Lookups shared by the tool operations."""

import re
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel

from huly_mcp.errors import IssueNotFoundError, ProjectNotFoundError
from huly_mcp.huly.client import HulyClient

# ─── Platform Classes ────────────────────────────────────────────────────────

PROJECT_CLASS = "tracker:class:Project"
ISSUE_CLASS = "tracker:class:Issue"
ISSUE_STATUS_CLASS = "tracker:class:IssueStatus"
PERSON_CLASS = "contact:class:Person"
CHANNEL_CLASS = "contact:class:Channel"
TEAMSPACE_CLASS = "document:class:Teamspace"
DOCUMENT_CLASS = "document:class:Document"

DONE_CATEGORY = "task:statusCategory:Won"
CANCELED_CATEGORY = "task:statusCategory:Lost"

PRIORITY_NAMES = {0: "no-priority", 1: "urgent", 2: "high", 3: "medium", 4: "low"}

DEFAULT_LIMIT = 50
MAX_LIMIT = 200

_FULL_IDENTIFIER = re.compile(r"^([A-Z]+)-(\d+)$", re.IGNORECASE)


def clamp_limit(limit: Optional[int]) -> int:
    return max(1, min(limit or DEFAULT_LIMIT, MAX_LIMIT))


class StatusInfo(BaseModel):
    id: str
    name: str
    is_done: bool = False
    is_canceled: bool = False


def parse_issue_identifier(identifier: str, project: str) -> Tuple[str, Optional[int]]:
    """Normalize ``HULY-123`` or ``123`` to a full identifier and number.

    Returns the identifier unchanged with no number if neither form matches.
    """
    text = str(identifier).strip()
    match = _FULL_IDENTIFIER.match(text)
    if match:
        return f"{match.group(1).upper()}-{match.group(2)}", int(match.group(2))
    if text.isdigit():
        return f"{project.upper()}-{int(text)}", int(text)
    return text, None


async def find_project(client: HulyClient, identifier: str) -> Dict[str, Any]:
    project = await client.find_one(PROJECT_CLASS, {"identifier": identifier})
    if project is None:
        raise ProjectNotFoundError(identifier=identifier)
    return project


async def find_project_and_issue(
    client: HulyClient, project_identifier: str, issue_identifier: str
) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Resolve a project and one of its issues, by full identifier then by number."""
    project = await find_project(client, project_identifier)
    full_identifier, number = parse_issue_identifier(issue_identifier, project_identifier)

    issue = await client.find_one(ISSUE_CLASS, {"space": project["_id"], "identifier": full_identifier})
    if issue is None and number is not None:
        issue = await client.find_one(ISSUE_CLASS, {"space": project["_id"], "number": number})
    if issue is None:
        raise IssueNotFoundError(identifier=issue_identifier, project=project_identifier)
    return project, issue


async def load_statuses(client: HulyClient) -> List[StatusInfo]:
    docs = await client.find_all(ISSUE_STATUS_CLASS, {})
    return [
        StatusInfo(
            id=doc["_id"],
            name=doc.get("name", ""),
            is_done=doc.get("category") == DONE_CATEGORY,
            is_canceled=doc.get("category") == CANCELED_CATEGORY,
        )
        for doc in docs
    ]


def status_name(statuses: List[StatusInfo], status_id: Optional[str]) -> Optional[str]:
    for status in statuses:
        if status.id == status_id:
            return status.name
    return None


async def person_names(client: HulyClient, person_ids: List[str]) -> Dict[str, str]:
    ids = sorted({pid for pid in person_ids if pid})
    if not ids:
        return {}
    people = await client.find_all(PERSON_CLASS, {"_id": {"$in": ids}})
    return {person["_id"]: person.get("name", "") for person in people}


async def find_person_by_email_or_name(client: HulyClient, email_or_name: str) -> Optional[Dict[str, Any]]:
    """Find a person by an email channel first, then by exact name."""
    channel = await client.find_one(CHANNEL_CLASS, {"value": email_or_name})
    if channel is not None:
        person = await client.find_one(PERSON_CLASS, {"_id": channel.get("attachedTo")})
        if person is not None:
            return person
    return await client.find_one(PERSON_CLASS, {"name": email_or_name})
