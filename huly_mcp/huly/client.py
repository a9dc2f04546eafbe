"""
HulyClient: document queries and transactions over the workspace REST API.

  GET  <endpoint>/api/v1/find-all/<workspace>   query documents of a class
  POST <endpoint>/api/v1/tx/<workspace>         apply a transaction
"""

import json
import time
import uuid
from typing import Any, Dict, List, Optional

import httpx

from huly_mcp.huly.connection import WorkspaceLogin, auth_headers, concat_link, translate_http_error

TX_SPACE = "core:space:Tx"
TX_CREATE_DOC = "core:class:TxCreateDoc"
TX_UPDATE_DOC = "core:class:TxUpdateDoc"
TX_REMOVE_DOC = "core:class:TxRemoveDoc"


def generate_id() -> str:
    return uuid.uuid4().hex[:24]


def _now_ms() -> int:
    return int(time.time() * 1000)


class HulyClient:
    """Authenticated handle on one Huly workspace."""

    def __init__(self, http: httpx.AsyncClient, login: WorkspaceLogin):
        self._http = http
        self._login = login

    @property
    def workspace_id(self) -> str:
        return self._login.workspace_id

    def _url(self, operation: str) -> str:
        return concat_link(self._login.endpoint, f"/api/v1/{operation}/{self._login.workspace_id}")

    async def _get(self, operation: str, params: Dict[str, Any]) -> Any:
        try:
            response = await self._http.get(
                self._url(operation),
                headers=auth_headers(self._login.token),
                params=params,
            )
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise translate_http_error(e, operation) from e

    async def _post(self, operation: str, data: Dict[str, Any]) -> Any:
        try:
            response = await self._http.post(
                self._url(operation),
                headers=auth_headers(self._login.token),
                json=data,
            )
            response.raise_for_status()
            return response.json() if response.content else None
        except (httpx.HTTPError, ValueError) as e:
            raise translate_http_error(e, operation) from e

    # ─── Queries ─────────────────────────────────────────────────────────

    async def find_all(
        self,
        _class: str,
        query: Optional[Dict[str, Any]] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """Return documents of ``_class`` matching ``query``.

        Args:
            _class: Document class, e.g. ``tracker:class:Issue``.
            query: Mongo-style field filter.
            options: Find options such as ``limit`` and ``sort``.
        """
        params: Dict[str, Any] = {"class": _class, "query": json.dumps(query or {})}
        if options:
            params["options"] = json.dumps(options)
        data = await self._get("find-all", params)
        if isinstance(data, dict):
            return list(data.get("value") or [])
        return list(data or [])

    async def find_one(
        self,
        _class: str,
        query: Optional[Dict[str, Any]] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        docs = await self.find_all(_class, query, {**(options or {}), "limit": 1})
        return docs[0] if docs else None

    # ─── Transactions ────────────────────────────────────────────────────

    def _tx(self, _class: str, object_class: str, object_space: str, object_id: str, **extra: Any) -> Dict[str, Any]:
        return {
            "_id": generate_id(),
            "_class": _class,
            "space": TX_SPACE,
            "objectId": object_id,
            "objectClass": object_class,
            "objectSpace": object_space,
            "modifiedOn": _now_ms(),
            "modifiedBy": self._login.account,
            **extra,
        }

    async def create_doc(
        self,
        _class: str,
        space: str,
        attributes: Dict[str, Any],
        object_id: Optional[str] = None,
    ) -> str:
        """Create a document and return its id."""
        object_id = object_id or generate_id()
        await self._post("tx", self._tx(TX_CREATE_DOC, _class, space, object_id, attributes=attributes))
        return object_id

    async def update_doc(self, _class: str, space: str, object_id: str, operations: Dict[str, Any]) -> None:
        await self._post("tx", self._tx(TX_UPDATE_DOC, _class, space, object_id, operations=operations))

    async def remove_doc(self, _class: str, space: str, object_id: str) -> None:
        await self._post("tx", self._tx(TX_REMOVE_DOC, _class, space, object_id))
