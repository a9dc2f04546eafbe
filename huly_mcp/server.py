"""
Huly MCP server.

Connects to the configured Huly workspace, then serves the tool registry
over stdio. Tool calls are handed to the dispatcher, which always produces
a single CallToolResult.
"""

import asyncio
import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Dict, List, Mapping, Optional

import httpx
from mcp import types
from mcp.server import Server
from mcp.server.stdio import stdio_server

from huly_mcp.config import ConfigError, HulyConfig, config_summary, env_flag, load_config, log_level
from huly_mcp.dispatch.cause import from_exception
from huly_mcp.dispatch.error_mapping import classify_cause
from huly_mcp.dispatch.registry import Services, ToolRegistry
from huly_mcp.errors import HulyDomainError
from huly_mcp.huly.client import HulyClient
from huly_mcp.huly.connection import connect, with_connection_retry
from huly_mcp.huly.storage import HulyStorageClient
from huly_mcp.huly.workspace import WorkspaceClient
from huly_mcp.tools import build_registry

logger = logging.getLogger(__name__)

SERVER_NAME = "huly-mcp"
INTERNAL_SERVER_ERROR = "Internal server error"

ServicesFactory = Callable[[], Any]


# ─── Services ────────────────────────────────────────────────────────────────


@asynccontextmanager
async def open_services(
    config: HulyConfig,
    env: Mapping[str, str],
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AsyncIterator[Services]:
    """Connect the backend handles for the lifetime of the server.

    The workspace client is optional: when it is disabled or the account
    service cannot be reached, workspace tools report it as unavailable and
    everything else keeps working.
    """
    async with httpx.AsyncClient(timeout=config.timeout_seconds, transport=transport) as http:
        login = await with_connection_retry(lambda: connect(http, config))
        logger.info("connected workspace=%s", login.workspace_id)

        workspace_client: Optional[WorkspaceClient] = None
        if env_flag(env, "HULY_DISABLE_WORKSPACE_CLIENT"):
            logger.info("workspace_client_disabled")
        else:
            candidate = WorkspaceClient(http, login)
            try:
                await with_connection_retry(candidate.get_workspace_info)
                workspace_client = candidate
            except HulyDomainError as e:
                logger.warning("workspace_client_unavailable kind=%s", e.kind)

        yield Services(
            huly_client=HulyClient(http, login),
            storage_client=HulyStorageClient(http, login),
            workspace_client=workspace_client,
        )


# ─── MCP Handlers ────────────────────────────────────────────────────────────


def tool_definitions(registry: ToolRegistry) -> List[types.Tool]:
    return [
        types.Tool(name=tool.name, description=tool.description, inputSchema=tool.input_schema)
        for tool in registry.definitions
    ]


async def handle_call(
    registry: ToolRegistry, services: Services, name: str, arguments: Optional[Dict[str, Any]]
) -> types.CallToolResult:
    """Dispatch one call. A failure of the dispatcher itself becomes a generic error result."""
    try:
        wire = await registry.dispatch(name, arguments if arguments is not None else {}, services)
    except Exception:
        logger.exception("dispatch_failed tool=%s", name)
        wire = {"content": [{"type": "text", "text": INTERNAL_SERVER_ERROR}], "isError": True}
    return types.CallToolResult.model_validate(wire)


def create_server(registry: ToolRegistry, services_factory: ServicesFactory) -> Server:
    """Build the MCP server.

    Args:
        registry: Tools to expose.
        services_factory: Returns an async context manager yielding ``Services``.
    """

    @asynccontextmanager
    async def lifespan(_server: Server) -> AsyncIterator[Services]:
        async with services_factory() as services:
            yield services

    server = Server(SERVER_NAME, lifespan=lifespan)

    @server.list_tools()
    async def list_tools() -> List[types.Tool]:
        return tool_definitions(registry)

    # Arguments are validated by the dispatcher against the tool's input model.
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: Dict[str, Any]) -> types.CallToolResult:
        services: Services = server.request_context.lifespan_context
        return await handle_call(registry, services, name, arguments)

    return server


# ─── Entry Point ─────────────────────────────────────────────────────────────


async def run_server(server: Server) -> None:
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


def main() -> None:
    env = os.environ
    logging.basicConfig(
        level=log_level(env),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    try:
        config = load_config(env)
    except ConfigError as e:
        print(f"Configuration error: {e.message}", file=sys.stderr)
        sys.exit(1)

    registry = build_registry(env)
    logger.info("starting config=%s tools=%d", config_summary(config), len(registry.definitions))
    server = create_server(registry, lambda: open_services(config, env))

    try:
        asyncio.run(run_server(server))
    except KeyboardInterrupt:
        pass
    except Exception as e:
        # Startup failures may arrive wrapped in an exception group by the transport.
        failure = classify_cause(from_exception(e))
        logger.error("startup_failed tag=%s message=%s", failure.tag, failure.message)
        sys.exit(1)


if __name__ == "__main__":
    main()
