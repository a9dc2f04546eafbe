"""Project tools."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from huly_mcp.dispatch.registry import HULY_CLIENT, RegisteredTool
from huly_mcp.huly.client import HulyClient
from huly_mcp.tools.shared import MAX_LIMIT, PROJECT_CLASS, clamp_limit

CATEGORY = "projects"


class ListProjectsInput(BaseModel):
    """Input for listing projects."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    include_archived: bool = Field(default=False, description="Include archived projects")
    limit: Optional[int] = Field(default=None, description="Max results (default 50)", ge=1, le=MAX_LIMIT)


class ProjectSummary(BaseModel):
    identifier: str
    name: str
    description: Optional[str] = None
    archived: bool = False


class ListProjectsResult(BaseModel):
    projects: List[ProjectSummary]
    total: int


async def list_projects(params: ListProjectsInput, huly_client: HulyClient) -> ListProjectsResult:
    """List tracker projects, sorted by name."""
    query = {} if params.include_archived else {"archived": False}
    docs = await huly_client.find_all(
        PROJECT_CLASS,
        query,
        {"limit": clamp_limit(params.limit), "sort": {"name": 1}},
    )
    projects = [
        ProjectSummary(
            identifier=doc["identifier"],
            name=doc.get("name", ""),
            description=doc.get("description") or None,
            archived=bool(doc.get("archived", False)),
        )
        for doc in docs
    ]
    return ListProjectsResult(projects=projects, total=len(projects))


TOOLS = [
    RegisteredTool(
        name="list_projects",
        description="List all Huly projects. Returns projects sorted by name. Supports filtering by archived status.",
        category=CATEGORY,
        input_model=ListProjectsInput,
        operation=list_projects,
        requires=(HULY_CLIENT,),
    ),
]
