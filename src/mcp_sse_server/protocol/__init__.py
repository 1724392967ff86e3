"""JSON-RPC protocol layer: envelope types, wire codec and dispatcher."""

from .codec import decode_request, decode_response, encode_request, encode_response
from .dispatcher import Dispatcher
from .types import (
    PROTOCOL_VERSION,
    JsonRpcError,
    JsonRpcErrorCode,
    JsonRpcRequest,
    JsonRpcResponse,
)

__all__ = [
    "PROTOCOL_VERSION",
    "Dispatcher",
    "JsonRpcError",
    "JsonRpcErrorCode",
    "JsonRpcRequest",
    "JsonRpcResponse",
    "decode_request",
    "decode_response",
    "encode_request",
    "encode_response",
]
