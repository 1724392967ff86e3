"""MCP SSE SDK - Client for connecting to an MCP SSE server."""

from .client import McpSseClient, SseParser, parse_sse_lines

__all__ = [
    "McpSseClient",
    "SseParser",
    "parse_sse_lines",
]
