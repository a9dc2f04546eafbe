"""Shared fixtures: in-memory stand-ins for the service handles."""

from typing import Any, Dict, List, Optional

import pytest

from huly_mcp.tools.shared import (
    CANCELED_CATEGORY,
    CHANNEL_CLASS,
    DOCUMENT_CLASS,
    DONE_CATEGORY,
    ISSUE_CLASS,
    ISSUE_STATUS_CLASS,
    PERSON_CLASS,
    PROJECT_CLASS,
    TEAMSPACE_CLASS,
)


def _matches(doc: Dict[str, Any], query: Dict[str, Any]) -> bool:
    for key, expected in query.items():
        value = doc.get(key)
        if isinstance(expected, dict):
            if "$in" in expected and value not in expected["$in"]:
                return False
            if "$nin" in expected and value in expected["$nin"]:
                return False
            if "$eq" in expected and value != expected["$eq"]:
                return False
        elif value != expected:
            return False
    return True


class FakeHulyClient:
    """Answers queries from a dict of documents keyed by class."""

    def __init__(self, docs: Dict[str, List[Dict[str, Any]]]):
        self.docs = docs
        self.updates: List[tuple] = []

    async def find_all(self, _class, query=None, options=None):
        found = [doc for doc in self.docs.get(_class, []) if _matches(doc, query or {})]
        limit = (options or {}).get("limit")
        return found[:limit] if limit else found

    async def find_one(self, _class, query=None, options=None):
        found = await self.find_all(_class, query, {"limit": 1})
        return found[0] if found else None

    async def update_doc(self, _class, space, object_id, operations):
        self.updates.append((_class, space, object_id, operations))


class FakeWorkspaceClient:
    def __init__(self, info: Optional[Dict[str, Any]] = None, members: Optional[List[Dict[str, Any]]] = None):
        self.info = info or {}
        self.members = members or []
        self.role_updates: List[tuple] = []

    async def get_workspace_info(self):
        return self.info

    async def get_workspace_members(self):
        return self.members

    async def update_workspace_role(self, account, role):
        self.role_updates.append((account, role))


@pytest.fixture
def huly_client() -> FakeHulyClient:
    return FakeHulyClient({
        PROJECT_CLASS: [
            {"_id": "proj-1", "identifier": "HULY", "name": "Huly", "description": "Main", "archived": False},
            {"_id": "proj-2", "identifier": "OLD", "name": "Old", "archived": True},
        ],
        ISSUE_STATUS_CLASS: [
            {"_id": "s-todo", "name": "Todo", "category": "task:statusCategory:ToDo"},
            {"_id": "s-done", "name": "Done", "category": DONE_CATEGORY},
            {"_id": "s-canceled", "name": "Canceled", "category": CANCELED_CATEGORY},
        ],
        ISSUE_CLASS: [
            {
                "_id": "issue-1", "space": "proj-1", "identifier": "HULY-1", "number": 1, "title": "First",
                "status": "s-todo", "priority": 2, "assignee": "person-1", "modifiedOn": 200,
            },
            {
                "_id": "issue-2", "space": "proj-1", "identifier": "HULY-2", "number": 2, "title": "Second",
                "status": "s-done", "priority": 0, "assignee": None, "modifiedOn": 100,
            },
        ],
        PERSON_CLASS: [{"_id": "person-1", "name": "Ada Lovelace"}],
        CHANNEL_CLASS: [{"_id": "ch-1", "value": "ada@example.com", "attachedTo": "person-1"}],
        TEAMSPACE_CLASS: [{"_id": "ts-1", "name": "Docs", "archived": False}],
        DOCUMENT_CLASS: [{"_id": "doc-1", "space": "ts-1", "title": "Onboarding", "content": "Welcome"}],
    })


@pytest.fixture
def workspace_client() -> FakeWorkspaceClient:
    return FakeWorkspaceClient(
        info={"uuid": "ws-uuid", "name": "Acme", "versionMajor": 0, "versionMinor": 7, "versionPatch": 1},
        members=[{"person": "p1", "role": "OWNER"}, {"person": "p2", "role": "USER"}],
    )
