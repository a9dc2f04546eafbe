"""
Authentication and HTTP plumbing shared by the Huly service clients.

Connecting is three requests:
  1. GET  <url>/config.json            service URLs (accounts, upload, files)
  2. POST <accounts> login             skipped when a token is configured
  3. POST <accounts> selectWorkspace   workspace endpoint + workspace token

Connection failures are retried with exponential backoff; authentication
failures are not.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

import httpx

from huly_mcp.config import HulyConfig
from huly_mcp.errors import HulyAuthError, HulyConnectionError, HulyDomainError

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_ATTEMPTS = 3
BASE_DELAY_S = 0.1

AUTH_HTTP_STATUSES = {401, 403}

# Platform status codes that mean the credentials or session are bad.
AUTH_STATUS_CODES = {
    "platform:status:Unauthorized",
    "platform:status:TokenExpired",
    "platform:status:TokenNotActive",
    "platform:status:PasswordExpired",
    "platform:status:Forbidden",
    "platform:status:InvalidPassword",
    "platform:status:AccountNotFound",
    "platform:status:AccountNotConfirmed",
}


@dataclass(frozen=True)
class WorkspaceLogin:
    """Result of selecting a workspace."""

    endpoint: str
    token: str = field(repr=False)
    workspace_id: str
    account: str
    accounts_url: str
    upload_url: str
    files_url: str


def concat_link(host: str, path: str) -> str:
    return f"{host.rstrip('/')}/{path.lstrip('/')}"


def _http_endpoint(endpoint: str) -> str:
    if endpoint.startswith("wss://"):
        return "https://" + endpoint[len("wss://"):]
    if endpoint.startswith("ws://"):
        return "http://" + endpoint[len("ws://"):]
    return endpoint


def auth_headers(token: str) -> Dict[str, str]:
    return {
        "Authorization": f"Bearer {token}",
        "Accept": "application/json",
    }


def translate_http_error(e: Exception, action: str) -> HulyDomainError:
    """Map an httpx failure onto the taxonomy.

    Only the action, status and exception type are rendered; URLs and
    response bodies stay out of the message.
    """
    if isinstance(e, httpx.HTTPStatusError):
        status = e.response.status_code
        if status in AUTH_HTTP_STATUSES:
            return HulyAuthError(reason=f"{action} rejected with HTTP {status}")
        return HulyConnectionError(reason=f"{action} failed with HTTP {status}")
    if isinstance(e, httpx.TimeoutException):
        return HulyConnectionError(reason=f"{action} timed out")
    if isinstance(e, (httpx.HTTPError, ValueError)):
        return HulyConnectionError(reason=f"{action} failed ({type(e).__name__})")
    raise TypeError(f"Not an HTTP failure: {type(e).__name__}")


async def account_rpc(
    http: httpx.AsyncClient,
    accounts_url: str,
    method: str,
    params: Dict[str, Any],
    token: Optional[str] = None,
) -> Any:
    """Call a method on the account service.

    Raises:
        HulyAuthError: on rejected credentials or session.
        HulyConnectionError: on transport or protocol failures.
    """
    headers = auth_headers(token) if token else {"Accept": "application/json"}
    try:
        response = await http.post(accounts_url, json={"method": method, "params": params}, headers=headers)
        response.raise_for_status()
        body = response.json()
    except (httpx.HTTPError, ValueError) as e:
        raise translate_http_error(e, method) from e

    error = body.get("error") if isinstance(body, dict) else None
    if error:
        code = error.get("code") if isinstance(error, dict) else error
        if not isinstance(code, str):
            code = "unknown"
        if code in AUTH_STATUS_CODES:
            raise HulyAuthError(reason=f"{method} rejected: {code}")
        raise HulyConnectionError(reason=f"{method} failed: {code}")
    return body.get("result") if isinstance(body, dict) else None


async def load_server_config(http: httpx.AsyncClient, url: str) -> Dict[str, Any]:
    try:
        response = await http.get(concat_link(url, "/config.json"))
        response.raise_for_status()
        server_config = response.json()
    except (httpx.HTTPError, ValueError) as e:
        raise translate_http_error(e, "Loading server config") from e
    if not isinstance(server_config, dict):
        raise HulyConnectionError(reason="Loading server config failed (unexpected response)")
    return server_config


async def connect(http: httpx.AsyncClient, config: HulyConfig) -> WorkspaceLogin:
    """Authenticate and select the configured workspace (single attempt)."""
    server_config = await load_server_config(http, config.url)
    accounts_url = server_config.get("ACCOUNTS_URL") or concat_link(config.url, "/_accounts")

    if config.token is not None:
        token = config.token.get_secret_value()
    else:
        login = await account_rpc(
            http,
            accounts_url,
            "login",
            {"email": config.email, "password": config.password.get_secret_value()},
        )
        if not isinstance(login, dict) or not login.get("token"):
            raise HulyAuthError(reason="Login failed")
        token = login["token"]

    selected = await account_rpc(http, accounts_url, "selectWorkspace", {"workspaceUrl": config.workspace}, token)
    if not isinstance(selected, dict) or not selected.get("endpoint"):
        raise HulyConnectionError(reason=f"Workspace '{config.workspace}' could not be selected")

    return WorkspaceLogin(
        endpoint=_http_endpoint(selected["endpoint"]),
        token=selected.get("token") or token,
        workspace_id=selected.get("workspace") or config.workspace,
        account=selected.get("account") or "",
        accounts_url=accounts_url,
        upload_url=concat_link(config.url, server_config.get("UPLOAD_URL") or "/files"),
        files_url=concat_link(config.url, server_config.get("FILES_URL") or "/files"),
    )


async def with_connection_retry(
    attempt: Callable[[], Awaitable[T]],
    max_attempts: int = MAX_ATTEMPTS,
    base_delay_s: float = BASE_DELAY_S,
) -> T:
    """Run ``attempt``, retrying connection errors with exponential backoff."""
    for n in range(1, max_attempts + 1):
        try:
            return await attempt()
        except HulyConnectionError as e:
            if n == max_attempts:
                raise
            delay = base_delay_s * (2 ** (n - 1))
            logger.warning("connect_retry attempt=%d delay=%.2fs reason=%s", n, delay, e.reason)
            await asyncio.sleep(delay)
    raise AssertionError("unreachable")
