"""MCP SSE Server - JSON-RPC over a Server-Sent Events push stream.

Clients open ``GET /sse`` to receive events and post JSON-RPC envelopes to
the ``/message/{sessionId}`` endpoint announced on that stream.
"""

__version__ = "0.1.0"
