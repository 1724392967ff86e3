"""MCP SSE Server Application.

Creates the Starlette ASGI application with all routes.

Route organization:
- /health - Health check
- /sse - Push stream (one session per connection)
- /message/{session_id}, /message - Request leg
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.routing import Route

from .config import ServerConfig
from .protocol.dispatcher import Dispatcher
from .routes import health_routes, mcp_routes
from .session import SessionRegistry
from .tools import ToolRegistry, create_default_registry
from .transport.sse import SseTransport

logger = logging.getLogger(__name__)


def create_transport(
    config: ServerConfig | None = None,
    tools: ToolRegistry | None = None,
) -> SseTransport:
    """Wire registry, dispatcher and transport together."""
    config = config or ServerConfig.from_env()
    dispatcher = Dispatcher(
        tools if tools is not None else create_default_registry(),
        server_name=config.server_name,
        server_version=config.server_version,
        require_initialized=config.require_initialized,
    )
    return SseTransport(SessionRegistry(), dispatcher, config)


def create_app(
    config: ServerConfig | None = None,
    tools: ToolRegistry | None = None,
) -> Starlette:
    """Create the MCP SSE server application.

    Args:
        config: Server configuration (defaults to ``ServerConfig.from_env()``)
        tools: Capability registry (defaults to the built-in tools)

    Returns:
        Configured Starlette application
    """
    config = config or ServerConfig.from_env()
    transport = create_transport(config, tools)

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        logger.info(f"Starting {config.server_name} {config.server_version}")
        yield
        transport.shutdown()
        logger.info(f"Stopped {config.server_name}")

    # Combine all routes
    routes: list[Route] = []
    routes.extend(health_routes)
    routes.extend(mcp_routes)

    middleware = [
        Middleware(
            CORSMiddleware,
            allow_origins=config.cors_origins,
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=["Content-Type", "Cache-Control"],
            max_age=3600,
        ),
    ]

    app = Starlette(routes=routes, middleware=middleware, lifespan=lifespan)
    app.state.transport = transport
    app.state.config = config
    return app

