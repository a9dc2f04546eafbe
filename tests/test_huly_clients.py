"""Tests for the Huly HTTP clients, against a mocked transport."""

import asyncio
import json

import httpx
import pytest

from huly_mcp.config import HulyConfig
from huly_mcp.errors import FileUploadError, HulyAuthError, HulyConnectionError
from huly_mcp.huly.client import TX_CREATE_DOC, TX_UPDATE_DOC, HulyClient
from huly_mcp.huly.connection import (
    WorkspaceLogin,
    account_rpc,
    connect,
    translate_http_error,
    with_connection_retry,
)
from huly_mcp.huly.storage import HulyStorageClient
from huly_mcp.huly.workspace import WorkspaceClient

BASE_URL = "https://huly.example.com"
ACCOUNTS_URL = f"{BASE_URL}/_accounts"

LOGIN = WorkspaceLogin(
    endpoint="https://ws.example.com",
    token="ws-token",
    workspace_id="ws-uuid",
    account="acc-1",
    accounts_url=ACCOUNTS_URL,
    upload_url=f"{BASE_URL}/upload",
    files_url=f"{BASE_URL}/files",
)


def _http(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _run(coro_factory, handler):
    async def main():
        async with _http(handler) as http:
            return await coro_factory(http)

    return asyncio.run(main())


def _config(**overrides) -> HulyConfig:
    values = {"url": BASE_URL, "workspace": "acme", "token": "acct-token"}
    values.update(overrides)
    return HulyConfig(**values)


def _platform(requests, login_result=None, select_result=None):
    select_result = select_result or {
        "endpoint": "wss://ws.example.com",
        "token": "ws-token",
        "workspace": "ws-uuid",
        "account": "acc-1",
    }

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.url.path == "/config.json":
            return httpx.Response(200, json={"ACCOUNTS_URL": ACCOUNTS_URL, "UPLOAD_URL": "/upload"})
        body = json.loads(request.content)
        if body["method"] == "login":
            return httpx.Response(200, json={"result": login_result})
        if body["method"] == "selectWorkspace":
            return httpx.Response(200, json={"result": select_result})
        return httpx.Response(404)

    return handler


class TestConnect:
    """Authentication flow."""

    def test_token_flow(self):
        requests = []
        login = _run(lambda http: connect(http, _config()), _platform(requests))
        assert login.endpoint == "https://ws.example.com"
        assert login.token == "ws-token"
        assert login.workspace_id == "ws-uuid"
        assert login.upload_url == f"{BASE_URL}/upload"
        assert login.files_url == f"{BASE_URL}/files"
        methods = [json.loads(r.content)["method"] for r in requests if r.method == "POST"]
        assert methods == ["selectWorkspace"]
        assert requests[1].headers["Authorization"] == "Bearer acct-token"

    def test_password_flow(self):
        requests = []
        config = _config(token=None, email="me@example.com", password="pw")
        _run(lambda http: connect(http, config), _platform(requests, login_result={"token": "login-token"}))
        bodies = [json.loads(r.content) for r in requests if r.method == "POST"]
        assert bodies[0] == {"method": "login", "params": {"email": "me@example.com", "password": "pw"}}
        assert requests[2].headers["Authorization"] == "Bearer login-token"

    def test_login_without_token_is_auth_error(self):
        config = _config(token=None, email="me@example.com", password="pw")
        with pytest.raises(HulyAuthError):
            _run(lambda http: connect(http, config), _platform([], login_result=None))

    def test_workspace_not_selected(self):
        with pytest.raises(HulyConnectionError, match="could not be selected"):
            _run(lambda http: connect(http, _config()), _platform([], select_result={"mode": "deleted"}))

    def test_server_config_not_an_object(self):
        with pytest.raises(HulyConnectionError, match="Loading server config"):
            _run(lambda http: connect(http, _config()), lambda request: httpx.Response(200, json=["not", "a", "dict"]))

    def test_token_not_in_repr(self):
        assert "ws-token" not in repr(LOGIN)


class TestAccountRpc:
    def test_auth_status_code(self):
        def handler(request):
            return httpx.Response(200, json={"error": {"code": "platform:status:TokenExpired"}})

        with pytest.raises(HulyAuthError):
            _run(lambda http: account_rpc(http, ACCOUNTS_URL, "getWorkspaceInfo", {}), handler)

    def test_other_status_code(self):
        def handler(request):
            return httpx.Response(200, json={"error": {"code": "platform:status:WorkspaceNotFound"}})

        with pytest.raises(HulyConnectionError, match="WorkspaceNotFound"):
            _run(lambda http: account_rpc(http, ACCOUNTS_URL, "selectWorkspace", {}), handler)

    @pytest.mark.parametrize("code", [{"nested": "object"}, ["list"], 42, None])
    def test_malformed_status_code(self, code):
        def handler(request):
            return httpx.Response(200, json={"error": {"code": code}})

        with pytest.raises(HulyConnectionError, match="selectWorkspace failed: unknown"):
            _run(lambda http: account_rpc(http, ACCOUNTS_URL, "selectWorkspace", {}), handler)

    def test_http_401(self):
        with pytest.raises(HulyAuthError):
            _run(lambda http: account_rpc(http, ACCOUNTS_URL, "login", {}), lambda request: httpx.Response(401))

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(HulyConnectionError) as info:
            _run(lambda http: account_rpc(http, ACCOUNTS_URL, "login", {}), handler)
        assert isinstance(info.value.__cause__, httpx.ConnectError)


class TestTranslateHttpError:
    def _status_error(self, status):
        request = httpx.Request("GET", "https://huly.example.com/secret-path?token=abc")
        response = httpx.Response(status, request=request)
        return httpx.HTTPStatusError("failed", request=request, response=response)

    def test_auth_statuses(self):
        assert isinstance(translate_http_error(self._status_error(401), "find-all"), HulyAuthError)
        assert isinstance(translate_http_error(self._status_error(403), "find-all"), HulyAuthError)

    def test_server_error(self):
        e = translate_http_error(self._status_error(502), "find-all")
        assert isinstance(e, HulyConnectionError)
        assert e.message == "find-all failed with HTTP 502"

    def test_timeout(self):
        e = translate_http_error(httpx.ReadTimeout("slow"), "tx")
        assert e.message == "tx timed out"

    def test_url_is_not_rendered(self):
        assert "secret-path" not in translate_http_error(self._status_error(500), "tx").message

    def test_rejects_non_http_failures(self):
        with pytest.raises(TypeError):
            translate_http_error(KeyError("x"), "tx")


class TestRetry:
    """Connection retry with backoff."""

    def test_retries_connection_errors(self):
        attempts = []

        async def attempt():
            attempts.append(1)
            if len(attempts) < 3:
                raise HulyConnectionError(reason="down")
            return "ok"

        assert asyncio.run(with_connection_retry(attempt, base_delay_s=0)) == "ok"
        assert len(attempts) == 3

    def test_gives_up_after_max_attempts(self):
        attempts = []

        async def attempt():
            attempts.append(1)
            raise HulyConnectionError(reason="down")

        with pytest.raises(HulyConnectionError):
            asyncio.run(with_connection_retry(attempt, max_attempts=3, base_delay_s=0))
        assert len(attempts) == 3

    def test_auth_errors_not_retried(self):
        attempts = []

        async def attempt():
            attempts.append(1)
            raise HulyAuthError(reason="rejected")

        with pytest.raises(HulyAuthError):
            asyncio.run(with_connection_retry(attempt, base_delay_s=0))
        assert len(attempts) == 1


class TestHulyClient:
    """Queries and transactions."""

    def test_find_all(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"value": [{"_id": "p1"}], "total": 1})

        docs = _run(
            lambda http: HulyClient(http, LOGIN).find_all("tracker:class:Project", {"archived": False}, {"limit": 5}),
            handler,
        )
        assert docs == [{"_id": "p1"}]
        request = requests[0]
        assert request.url.path == "/api/v1/find-all/ws-uuid"
        assert request.url.params["class"] == "tracker:class:Project"
        assert json.loads(request.url.params["query"]) == {"archived": False}
        assert json.loads(request.url.params["options"]) == {"limit": 5}
        assert request.headers["Authorization"] == "Bearer ws-token"

    def test_find_one_limits_to_one(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json=[])

        doc = _run(lambda http: HulyClient(http, LOGIN).find_one("tracker:class:Issue", {"number": 1}), handler)
        assert doc is None
        assert json.loads(requests[0].url.params["options"]) == {"limit": 1}

    def test_update_doc(self):
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={})

        _run(lambda http: HulyClient(http, LOGIN).update_doc("tracker:class:Issue", "space-1", "issue-1", {"status": "s2"}), handler)
        tx = bodies[0]
        assert tx["_class"] == TX_UPDATE_DOC
        assert tx["objectId"] == "issue-1"
        assert tx["objectSpace"] == "space-1"
        assert tx["operations"] == {"status": "s2"}
        assert tx["modifiedBy"] == "acc-1"

    def test_create_doc_returns_id(self):
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return httpx.Response(200)

        object_id = _run(lambda http: HulyClient(http, LOGIN).create_doc("c", "s", {"title": "t"}), handler)
        assert bodies[0]["_class"] == TX_CREATE_DOC
        assert bodies[0]["objectId"] == object_id
        assert bodies[0]["attributes"] == {"title": "t"}

    def test_server_error_is_connection_error(self):
        with pytest.raises(HulyConnectionError):
            _run(lambda http: HulyClient(http, LOGIN).find_all("c"), lambda request: httpx.Response(500))

    def test_expired_token_is_auth_error(self):
        with pytest.raises(HulyAuthError):
            _run(lambda http: HulyClient(http, LOGIN).find_all("c"), lambda request: httpx.Response(401))


class TestStorageClient:
    def test_upload(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json=[{"key": "file", "id": "blob-1"}])

        result = _run(lambda http: HulyStorageClient(http, LOGIN).upload_file("a.png", b"png", "image/png"), handler)
        assert result.blob_id == "blob-1"
        assert result.size == 3
        assert result.url == f"{BASE_URL}/files?workspace=ws-uuid&file=blob-1"
        assert requests[0].url.params["workspace"] == "ws-uuid"
        assert b"a.png" in requests[0].content

    def test_upload_failure(self):
        with pytest.raises(FileUploadError, match="HTTP 500"):
            _run(
                lambda http: HulyStorageClient(http, LOGIN).upload_file("a.png", b"png", "image/png"),
                lambda request: httpx.Response(500),
            )

    def test_upload_rejected_token(self):
        with pytest.raises(HulyAuthError):
            _run(
                lambda http: HulyStorageClient(http, LOGIN).upload_file("a.png", b"png", "image/png"),
                lambda request: httpx.Response(403),
            )

    def test_missing_blob_id(self):
        with pytest.raises(FileUploadError, match="no blob id"):
            _run(
                lambda http: HulyStorageClient(http, LOGIN).upload_file("a.png", b"png", "image/png"),
                lambda request: httpx.Response(200, json=[]),
            )


class TestWorkspaceClient:
    def test_update_role(self):
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"result": None})

        _run(lambda http: WorkspaceClient(http, LOGIN).update_workspace_role("acc-2", "USER"), handler)
        assert bodies == [{"method": "updateWorkspaceRole", "params": {"targetAccount": "acc-2", "targetRole": "USER"}}]

    def test_members(self):
        def handler(request):
            return httpx.Response(200, json={"result": [{"person": "p1", "role": "OWNER"}]})

        members = _run(lambda http: WorkspaceClient(http, LOGIN).get_workspace_members(), handler)
        assert members == [{"person": "p1", "role": "OWNER"}]
