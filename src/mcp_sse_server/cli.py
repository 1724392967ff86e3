"""MCP SSE Server CLI.

Usage:
    mcp-sse-server                          # Serve on 127.0.0.1:8080
    mcp-sse-server --port 9000              # Custom port
    mcp-sse-server --require-initialized    # Gate tools/* on the handshake
    mcp-sse-server --health                 # Check a running server and exit
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys

import click
import httpx

from .config import ENV_PREFIX, ServerConfig

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def _configure_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, stream=sys.stderr)


@click.command()
@click.option("--host", default=None, help="Host to bind to [env: MCP_SSE_HOST]")
@click.option("--port", type=int, default=None, help="Port to bind to [env: MCP_SSE_PORT]")
@click.option(
    "--ping-interval",
    type=float,
    default=None,
    help="Seconds between push-stream pings [env: MCP_SSE_PING_INTERVAL]",
)
@click.option(
    "--require-initialized",
    is_flag=True,
    default=None,
    help="Reject tools/* until the client completes the handshake",
)
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default="info",
    help="Logging level",
)
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
@click.option("--health", "health_check", is_flag=True, help="Check server health and exit")
@click.option("--health-url", default="http://localhost:8080", help="Server URL for health check")
def main(
    host: str | None,
    port: int | None,
    ping_interval: float | None,
    require_initialized: bool | None,
    log_level: str,
    reload: bool,
    health_check: bool,
    health_url: str,
) -> None:
    """MCP SSE Server - JSON-RPC over Server-Sent Events."""
    _configure_logging(log_level)

    if health_check:
        _do_health_check(health_url)
        return

    # Pass overrides via environment variables for the app factory
    overrides = {
        "HOST": host,
        "PORT": port,
        "PING_INTERVAL": ping_interval,
        "REQUIRE_INITIALIZED": "true" if require_initialized else None,
    }
    for name, value in overrides.items():
        if value is not None:
            os.environ[ENV_PREFIX + name] = str(value)

    try:
        config = ServerConfig.from_env()
    except ValueError as e:
        raise click.UsageError(str(e)) from e

    _run_http_server(config, reload, log_level)


def _do_health_check(url: str) -> None:
    """Check server health."""

    async def check() -> None:
        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(f"{url}/health")
                if response.status_code == 200:
                    data = response.json()
                    click.echo(f"Server is healthy: {data}")
                else:
                    click.echo(f"Server returned {response.status_code}", err=True)
                    sys.exit(1)
        except httpx.ConnectError:
            click.echo(f"Cannot connect to server at {url}", err=True)
            sys.exit(1)

    asyncio.run(check())


def _run_http_server(config: ServerConfig, reload: bool, log_level: str) -> None:
    """Run the HTTP server."""
    import uvicorn

    click.echo(f"Starting {config.server_name} on http://{config.host}:{config.port}", err=True)
    click.echo(f"  SSE endpoint: http://{config.host}:{config.port}/sse", err=True)
    click.echo("Press Ctrl+C to stop", err=True)

    uvicorn.run(
        "mcp_sse_server.app:create_app",
        factory=True,
        host=config.host,
        port=config.port,
        reload=reload,
        log_level=log_level.lower(),
    )


if __name__ == "__main__":
    main()
