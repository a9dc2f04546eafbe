"""WorkspaceClient: account-level workspace operations."""

from typing import Any, Dict, List

import httpx

from huly_mcp.huly.connection import WorkspaceLogin, account_rpc


class WorkspaceClient:
    """Thin wrapper over the account service for the selected workspace."""

    def __init__(self, http: httpx.AsyncClient, login: WorkspaceLogin):
        self._http = http
        self._login = login

    async def _call(self, method: str, params: Dict[str, Any]) -> Any:
        return await account_rpc(self._http, self._login.accounts_url, method, params, self._login.token)

    async def get_workspace_info(self) -> Dict[str, Any]:
        info = await self._call("getWorkspaceInfo", {"updateLastVisit": False})
        return info if isinstance(info, dict) else {}

    async def get_workspace_members(self) -> List[Dict[str, Any]]:
        members = await self._call("getWorkspaceMembers", {})
        return list(members or [])

    async def update_workspace_role(self, account: str, role: str) -> None:
        await self._call("updateWorkspaceRole", {"targetAccount": account, "targetRole": role})
