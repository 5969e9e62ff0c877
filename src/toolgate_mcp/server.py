"""MCP server for toolgate-mcp.

Serves the runtime view of the tool catalog. Tool listings and results are
produced by plain functions so they can be exercised without a transport;
the MCP handlers only adapt them.

Client detection for the ``auto`` schema mode happens on a session's first
``tools/list`` or ``tools/call`` request rather than on the ``initialized``
notification: notification handlers of the low-level server run without a
request context, so the session and its ``clientInfo`` are out of reach
there. Both requests follow initialization, so no tool list is ever served
before the client name has been seen.
"""

from __future__ import annotations

import asyncio
import logging
import sys
import weakref
from typing import Any, Dict, List, Optional

import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from toolgate_mcp.config import ServerConfig, get_config
from toolgate_mcp.core.errors import ActionDeniedError, ToolNotFoundError
from toolgate_mcp.core.loader import load_registries
from toolgate_mcp.core.registry import RegistryAggregator, ToolDefinition
from toolgate_mcp.core.responses import (
    ToolResponse,
    action_denied_error,
    correlation_id_var,
    generate_correlation_id,
    internal_error,
    not_found_error,
    sanitize_error_message,
    success_response,
)

logger = logging.getLogger(__name__)


def to_mcp_tool(definition: ToolDefinition) -> types.Tool:
    return types.Tool(
        name=definition.name,
        description=definition.description,
        inputSchema=definition.input_schema,
    )


def list_tools_response(aggregator: RegistryAggregator) -> List[types.Tool]:
    """Runtime view of the catalog as MCP tool objects."""
    return [to_mcp_tool(d) for d in aggregator.get_all_tool_definitions()]


async def call_tool_response(
    aggregator: RegistryAggregator,
    name: str,
    arguments: Optional[Dict[str, Any]],
) -> ToolResponse:
    """Execute a tool and wrap the outcome in the response envelope.

    Handler results that are mappings become the payload; anything else is
    placed under ``data.result``.
    """
    request_id = generate_correlation_id()
    token = correlation_id_var.set(request_id)
    try:
        result = await aggregator.execute_tool(name, arguments or {})
    except ToolNotFoundError:
        logger.info("Call to unknown tool '%s'", name, extra={"tool": name})
        return not_found_error("Tool", name)
    except ActionDeniedError as e:
        return action_denied_error(e.tool_name, e.action)
    except Exception as e:
        logger.error(
            "Tool '%s' failed: %s: %s",
            name,
            type(e).__name__,
            e,
            extra={"tool": name},
        )
        return internal_error(
            sanitize_error_message(e, context=f"tool {name}"),
            request_id=request_id,
        )
    finally:
        correlation_id_var.reset(token)

    if isinstance(result, dict):
        return success_response(result, request_id=request_id)
    return success_response(result=result, request_id=request_id)


class SessionModeTracker:
    """Feeds each new session's client name to the schema mode state.

    The cache is rebuilt when a client changes the effective schema mode.
    """

    def __init__(self, aggregator: RegistryAggregator):
        self.aggregator = aggregator
        self._seen: "weakref.WeakSet[Any]" = weakref.WeakSet()

    def observe(self, session: Any) -> bool:
        """Record ``session``; returns True when the cache was refreshed."""
        if session is None or session in self._seen:
            return False
        self._seen.add(session)

        client_params = getattr(session, "client_params", None)
        client_info = getattr(client_params, "clientInfo", None)
        client_name = getattr(client_info, "name", None)

        mode_state = self.aggregator.mode_state
        before = mode_state.effective_mode()
        after = mode_state.on_client_initialized(client_name)
        if after is before:
            return False

        logger.info(
            "Schema mode changed to %s, refreshing tool cache",
            after.value,
            extra={"client": client_name, "schema_mode": after.value},
        )
        self.aggregator.rebuild_cache()
        return True


def create_server(
    config: Optional[ServerConfig] = None,
    aggregator: Optional[RegistryAggregator] = None,
) -> Server:
    """Create and configure the MCP server instance."""

    if config is None:
        config = get_config()

    config.setup_logging()

    if aggregator is None:
        registries = load_registries(config.registry_modules)
        if not registries:
            logger.warning(
                "No registry modules configured; set TOOLGATE_REGISTRY_MODULES"
            )
        aggregator = RegistryAggregator(registries)

    server: Server = Server(config.server_name, version=config.server_version)
    tracker = SessionModeTracker(aggregator)

    def _observe_session() -> None:
        try:
            ctx = server.request_context
        except LookupError:
            return
        tracker.observe(ctx.session)

    @server.list_tools()
    async def handle_list_tools() -> List[types.Tool]:
        _observe_session()
        return list_tools_response(aggregator)

    @server.call_tool()
    async def handle_call_tool(
        name: str, arguments: Dict[str, Any]
    ) -> List[types.TextContent]:
        _observe_session()
        response = await call_tool_response(aggregator, name, arguments)
        return [types.TextContent(type="text", text=response.to_json())]

    logger.info(
        "Server created: %s v%s with %d tools",
        config.server_name,
        config.server_version,
        len(aggregator.get_available_tool_names()),
    )
    return server


async def _run_stdio(server: Server) -> None:
    async with stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options(),
        )


def main() -> None:
    """Main entry point for the toolgate-mcp server."""

    try:
        config = get_config()
        server = create_server(config)

        logger.info("Starting %s v%s", config.server_name, config.server_version)
        asyncio.run(_run_stdio(server))

    except KeyboardInterrupt:
        logger.info("Server shutdown requested")
        sys.exit(0)
    except BaseException as exc:
        logger.error("Server error: %s: %s", type(exc).__name__, exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
