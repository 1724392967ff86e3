"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import pytest

from mcp_sse_server.config import ServerConfig
from mcp_sse_server.protocol.dispatcher import Dispatcher
from mcp_sse_server.session import SessionRegistry
from mcp_sse_server.tools import create_default_registry
from mcp_sse_server.transport.sse import SseTransport


@pytest.fixture
def config() -> ServerConfig:
    """Default configuration, independent of the environment."""
    return ServerConfig()


@pytest.fixture
def tools():
    return create_default_registry()


@pytest.fixture
def dispatcher(tools) -> Dispatcher:
    return Dispatcher(tools)


@pytest.fixture
def registry() -> SessionRegistry:
    return SessionRegistry()


@pytest.fixture
def transport(registry: SessionRegistry, dispatcher: Dispatcher, config: ServerConfig) -> SseTransport:
    return SseTransport(registry, dispatcher, config)
