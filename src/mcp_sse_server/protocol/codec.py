"""Wire codec for JSON-RPC envelopes.

Decoding is strict about the envelope shape and maps every failure onto a
JSON-RPC error code; encoding omits absent fields instead of sending null.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError

from ..errors import EnvelopeError
from .types import (
    JSONRPC_VERSION,
    JsonRpcError,
    JsonRpcErrorCode,
    JsonRpcRequest,
    JsonRpcResponse,
    RequestId,
)


def _readable_id(message: dict[str, Any]) -> RequestId | None:
    request_id = message.get("id")
    if isinstance(request_id, bool) or not isinstance(request_id, str | int):
        return None
    return request_id


def decode_request(data: str | bytes) -> JsonRpcRequest:
    """Decode a request or notification.

    Raises:
        EnvelopeError: PARSE_ERROR for malformed JSON, INVALID_REQUEST for a
            structurally invalid envelope.
    """
    try:
        message = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise EnvelopeError(JsonRpcErrorCode.PARSE_ERROR, f"Parse error: {e}") from e

    if not isinstance(message, dict):
        raise EnvelopeError(
            JsonRpcErrorCode.INVALID_REQUEST,
            "Invalid request: envelope must be a JSON object",
        )

    request_id = _readable_id(message)

    if "method" not in message:
        raise EnvelopeError(
            JsonRpcErrorCode.INVALID_REQUEST,
            "Invalid request: missing 'method' field",
            request_id,
        )

    # Clients that omit the protocol tag are tolerated
    message.setdefault("jsonrpc", JSONRPC_VERSION)

    try:
        return JsonRpcRequest.model_validate(message)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise EnvelopeError(
            JsonRpcErrorCode.INVALID_REQUEST,
            f"Invalid request: {fields}",
            request_id,
        ) from e


def encode_request(request: JsonRpcRequest) -> str:
    """Encode a request or notification, omitting absent fields."""
    return request.model_dump_json(exclude_none=True)


def response_to_dict(response: JsonRpcResponse) -> dict[str, Any]:
    """Wire form of a response.

    ``id`` is always present (null only when the request id was unreadable);
    exactly one of ``result``/``error`` is present.
    """
    payload: dict[str, Any] = {"jsonrpc": response.jsonrpc, "id": response.id}
    if response.error is not None:
        payload["error"] = response.error.model_dump(exclude_none=True)
    else:
        payload["result"] = response.result
    return payload


def encode_response(response: JsonRpcResponse) -> str:
    """Encode a response envelope to its JSON text."""
    return json.dumps(response_to_dict(response), ensure_ascii=False)


def decode_response(data: str | bytes) -> JsonRpcResponse:
    """Decode a response envelope (client side).

    Raises:
        EnvelopeError: If the payload is not a valid response.
    """
    try:
        message = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise EnvelopeError(JsonRpcErrorCode.PARSE_ERROR, f"Parse error: {e}") from e

    if not isinstance(message, dict) or ("result" in message) == ("error" in message):
        raise EnvelopeError(
            JsonRpcErrorCode.INVALID_REQUEST,
            "Invalid response: expected exactly one of 'result' or 'error'",
        )

    try:
        if "error" in message:
            return JsonRpcResponse(
                id=message.get("id"),
                error=JsonRpcError.model_validate(message["error"]),
            )
        return JsonRpcResponse(id=message.get("id"), result=message["result"])
    except ValidationError as e:
        raise EnvelopeError(
            JsonRpcErrorCode.INVALID_REQUEST,
            f"Invalid response: {e.error_count()} validation error(s)",
            _readable_id(message),
        ) from e
