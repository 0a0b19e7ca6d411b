"""Serialization of JSON-RPC envelopes.

Envelopes are assembled from individually serialized parts so the id can
be spliced in as its original JSON text.
"""

import json
from typing import Any

import structlog

from .schemas import JSONRPC_VERSION, MCPErrorCodes, MCPErrorDetail, RequestId

logger = structlog.get_logger(__name__)

_FALLBACK_MESSAGE = "Gateway error marshalling response"


def _dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"), allow_nan=False)


def _envelope(request_id: RequestId, key: str, body: str) -> bytes:
    return (
        f'{{"jsonrpc":"{JSONRPC_VERSION}","id":{request_id.to_json()},"{key}":{body}}}\n'
    ).encode("utf-8")


def fallback_error(request_id: RequestId | None = None) -> bytes:
    """Minimal hand-built error envelope that cannot fail to serialize."""
    raw_id = request_id.to_json() if request_id is not None else "null"
    return (
        f'{{"jsonrpc":"{JSONRPC_VERSION}","id":{raw_id},'
        f'"error":{{"code":{MCPErrorCodes.INTERNAL_ERROR},"message":"{_FALLBACK_MESSAGE}"}}}}\n'
    ).encode("utf-8")


def encode_error(
    request_id: RequestId | None,
    code: int,
    message: str,
    data: Any | None = None,
) -> bytes:
    """Encode an error response.

    Args:
        request_id: Id of the failed request; None when none was recoverable.
        code: JSON-RPC error code.
        message: Human-readable error message.
        data: Optional additional error data.

    Returns:
        One newline-terminated JSON line. Falls back to a minimal envelope
        when the error itself cannot be serialized.
    """
    if request_id is None:
        request_id = RequestId.null()
    try:
        detail = MCPErrorDetail(code=code, message=message, data=data)
        body = _dumps(detail.model_dump(exclude_none=True))
    except (TypeError, ValueError) as e:
        logger.critical("error_response_encode_failed", request_id=str(request_id), error=str(e))
        return fallback_error(request_id)
    return _envelope(request_id, "error", body)


def encode_success(request_id: RequestId, result: Any) -> bytes:
    """Encode a success response, degrading to an InternalError on failure."""
    try:
        body = _dumps(result)
    except (TypeError, ValueError) as e:
        logger.error("success_response_encode_failed", request_id=str(request_id), error=str(e))
        return encode_error(
            request_id,
            MCPErrorCodes.INTERNAL_ERROR,
            "Failed to marshal success response",
            str(e),
        )
    return _envelope(request_id, "result", body)


def encode_request(method: str, request_id: RequestId, params: Any | None = None) -> bytes:
    """Encode a request the gateway originates itself."""
    message = f'{{"jsonrpc":"{JSONRPC_VERSION}","method":{_dumps(method)},"id":{request_id.to_json()}'
    if params is not None:
        message += f',"params":{_dumps(params)}'
    return (message + "}\n").encode("utf-8")


def encode_notification(method: str, params: Any | None = None) -> bytes:
    """Encode a notification (no id, no response expected)."""
    message: dict[str, Any] = {"jsonrpc": JSONRPC_VERSION, "method": method}
    if params is not None:
        message["params"] = params
    return (_dumps(message) + "\n").encode("utf-8")
