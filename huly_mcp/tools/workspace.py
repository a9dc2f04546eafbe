"""Workspace tools. All of them need the account-level WorkspaceClient."""

import uuid
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from huly_mcp.dispatch.registry import WORKSPACE_CLIENT, EmptyParams, RegisteredTool
from huly_mcp.errors import InvalidPersonUuidError
from huly_mcp.huly.workspace import WorkspaceClient
from huly_mcp.tools.shared import MAX_LIMIT, clamp_limit

CATEGORY = "workspace"

Role = Literal["READONLYGUEST", "DocGuest", "GUEST", "USER", "MAINTAINER", "OWNER", "ADMIN"]


class ListWorkspaceMembersInput(BaseModel):
    """Input for listing workspace members."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    limit: Optional[int] = Field(default=None, description="Max results (default 50)", ge=1, le=MAX_LIMIT)


class UpdateMemberRoleInput(BaseModel):
    """Input for changing a member's workspace role."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    account_id: str = Field(..., description="Account UUID of the member", min_length=1)
    role: Role = Field(..., description="New role (e.g., 'USER', 'MAINTAINER', 'OWNER')")


class WorkspaceInfo(BaseModel):
    uuid: str
    name: Optional[str] = None
    url: Optional[str] = None
    region: Optional[str] = None
    created_on: Optional[int] = None
    version: Optional[str] = None
    mode: Optional[str] = None


class WorkspaceMember(BaseModel):
    person_id: str
    role: str


class UpdateMemberRoleResult(BaseModel):
    account_id: str
    role: str
    updated: bool


async def get_workspace_info(params: EmptyParams, workspace_client: WorkspaceClient) -> WorkspaceInfo:
    info = await workspace_client.get_workspace_info()
    version = None
    if info.get("versionMajor") is not None:
        version = f"{info.get('versionMajor')}.{info.get('versionMinor')}.{info.get('versionPatch')}"
    return WorkspaceInfo(
        uuid=info.get("uuid", ""),
        name=info.get("name"),
        url=info.get("url"),
        region=info.get("region"),
        created_on=info.get("createdOn"),
        version=version,
        mode=info.get("mode"),
    )


async def list_workspace_members(
    params: ListWorkspaceMembersInput, workspace_client: WorkspaceClient
) -> List[WorkspaceMember]:
    members = await workspace_client.get_workspace_members()
    return [
        WorkspaceMember(person_id=member.get("person", ""), role=member.get("role", ""))
        for member in members[: clamp_limit(params.limit)]
    ]


async def update_member_role(params: UpdateMemberRoleInput, workspace_client: WorkspaceClient) -> UpdateMemberRoleResult:
    """Change a member's role.

    Raises:
        InvalidPersonUuidError: if ``account_id`` is not a UUID.
    """
    try:
        account = str(uuid.UUID(params.account_id))
    except ValueError:
        raise InvalidPersonUuidError(uuid=params.account_id) from None

    await workspace_client.update_workspace_role(account, params.role)
    return UpdateMemberRoleResult(account_id=account, role=params.role, updated=True)


TOOLS = [
    RegisteredTool(
        name="get_workspace_info",
        description="Get information about the current Huly workspace: name, URL, region and version.",
        category=CATEGORY,
        input_model=EmptyParams,
        operation=get_workspace_info,
        requires=(WORKSPACE_CLIENT,),
    ),
    RegisteredTool(
        name="list_workspace_members",
        description="List members of the current Huly workspace with their roles.",
        category=CATEGORY,
        input_model=ListWorkspaceMembersInput,
        operation=list_workspace_members,
        requires=(WORKSPACE_CLIENT,),
    ),
    RegisteredTool(
        name="update_member_role",
        description="Change a workspace member's role. Requires the member's account UUID.",
        category=CATEGORY,
        input_model=UpdateMemberRoleInput,
        operation=update_member_role,
        requires=(WORKSPACE_CLIENT,),
    ),
]
