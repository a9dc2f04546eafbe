"""Document tools."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from huly_mcp.dispatch.registry import HULY_CLIENT, RegisteredTool
from huly_mcp.errors import DocumentNotFoundError, TeamspaceNotFoundError
from huly_mcp.huly.client import HulyClient
from huly_mcp.tools.shared import DOCUMENT_CLASS, TEAMSPACE_CLASS

CATEGORY = "documents"


class GetDocumentInput(BaseModel):
    """Input for fetching a document."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    teamspace: str = Field(..., description="Teamspace name", min_length=1)
    document: str = Field(..., description="Document title or ID", min_length=1)


class DocumentDetail(BaseModel):
    id: str
    title: str
    teamspace: str
    content: Optional[str] = None
    modified_on: Optional[int] = None
    created_on: Optional[int] = None


async def get_document(params: GetDocumentInput, huly_client: HulyClient) -> DocumentDetail:
    """Fetch a document by title, falling back to its id.

    Raises:
        TeamspaceNotFoundError: if no teamspace has that name.
        DocumentNotFoundError: if the teamspace has no such document.
    """
    teamspace = await huly_client.find_one(TEAMSPACE_CLASS, {"name": params.teamspace, "archived": False})
    if teamspace is None:
        raise TeamspaceNotFoundError(identifier=params.teamspace)

    doc = await huly_client.find_one(DOCUMENT_CLASS, {"space": teamspace["_id"], "title": params.document})
    if doc is None:
        doc = await huly_client.find_one(DOCUMENT_CLASS, {"space": teamspace["_id"], "_id": params.document})
    if doc is None:
        raise DocumentNotFoundError(identifier=params.document, teamspace=params.teamspace)

    return DocumentDetail(
        id=doc["_id"],
        title=doc.get("title", ""),
        teamspace=teamspace.get("name", params.teamspace),
        content=doc.get("content") or None,
        modified_on=doc.get("modifiedOn"),
        created_on=doc.get("createdOn"),
    )


TOOLS = [
    RegisteredTool(
        name="get_document",
        description="Retrieve a Huly document by title or ID from a teamspace.",
        category=CATEGORY,
        input_model=GetDocumentInput,
        operation=get_document,
        requires=(HULY_CLIENT,),
    ),
]
