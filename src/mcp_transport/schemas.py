"""Pydantic schemas for MCP JSON-RPC protocol messages."""

import json
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


JSONRPC_VERSION = "2.0"


# Standard JSON-RPC error codes
class MCPErrorCodes:
    """JSON-RPC error codes used by the gateway."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INTERNAL_ERROR = -32603

    # Custom gateway errors (-32000 to -32099)
    SERVER_TIMEOUT = -32001


class MessageParseError(ValueError):
    """Raised when a line is not valid JSON."""


class InvalidEnvelopeError(ValueError):
    """Raised when valid JSON is not a usable JSON-RPC envelope.

    Attributes:
        request_id: Whatever id could be recovered before the failure.
    """

    def __init__(self, message: str, request_id: "RequestId | None" = None):
        super().__init__(message)
        self.request_id = request_id if request_id is not None else RequestId.null()


class _NumberLiteral(str):
    """Exact source text of a JSON number."""


def _is_string(value: Any) -> bool:
    return isinstance(value, str) and not isinstance(value, _NumberLiteral)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON constant: {name}")


def _parse_int(text: str) -> Any:
    # Payload numbers are never used arithmetically; integers too long for
    # int() are kept as their literal text.
    try:
        return int(text)
    except ValueError:
        return _NumberLiteral(text)


def _loads(text: str | bytes) -> Any:
    return json.loads(text, parse_int=_parse_int, parse_constant=_reject_constant)


class RequestId(BaseModel):
    """JSON-RPC id kept as its original JSON text.

    Numbers keep their literal spelling so ``1.50`` is echoed back as
    ``1.50``, never as ``1.5``. An absent id is distinct from an explicit
    ``null`` but both render as ``null`` in responses.

    Attributes:
        kind: One of ``absent``, ``null``, ``string`` or ``number``.
        raw: JSON text of the id.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["absent", "null", "string", "number"]
    raw: str = "null"

    @classmethod
    def absent(cls) -> "RequestId":
        return cls(kind="absent")

    @classmethod
    def null(cls) -> "RequestId":
        return cls(kind="null")

    @classmethod
    def string(cls, value: str) -> "RequestId":
        return cls(kind="string", raw=json.dumps(value, ensure_ascii=False))

    @classmethod
    def number(cls, literal: int | float | str) -> "RequestId":
        """Build a numeric id; pass a string to keep an exact literal."""
        if isinstance(literal, bool):
            raise ValueError("boolean is not a valid JSON-RPC id")
        return cls(kind="number", raw=str(literal) if isinstance(literal, str) else json.dumps(literal))

    @classmethod
    def from_message(cls, text: str | bytes, message: dict[str, Any]) -> "RequestId":
        """Recover the id of an already-decoded message.

        Args:
            text: The JSON text ``message`` was decoded from.
            message: The decoded object.

        Raises:
            InvalidEnvelopeError: If the id is not a string, number or null.
        """
        if "id" not in message:
            return cls.absent()

        value = message["id"]
        if value is None:
            return cls.null()
        if _is_string(value):
            return cls.string(value)
        if isinstance(value, (int, float, _NumberLiteral)) and not isinstance(value, bool):
            # Decode again keeping number literals as text; only ids need it.
            literal = json.loads(text, parse_int=_NumberLiteral, parse_float=_NumberLiteral)["id"]
            return cls.number(str(literal))
        raise InvalidEnvelopeError(f"invalid id type: {type(value).__name__}")

    def to_json(self) -> str:
        return self.raw

    def matches(self, other: "RequestId") -> bool:
        """Whether two ids identify the same request."""
        mine = "null" if self.kind == "absent" else self.kind
        theirs = "null" if other.kind == "absent" else other.kind
        if mine != theirs:
            return False
        if mine == "string":
            return json.loads(self.raw) == json.loads(other.raw)
        return self.raw == other.raw

    def __str__(self) -> str:
        return "<absent>" if self.kind == "absent" else self.raw


class MCPEnvelope(BaseModel):
    """One decoded JSON-RPC message.

    Attributes:
        id: Request id as it appeared on the wire.
        method: Method name on requests and notifications.
        params: Request parameters, untouched.
        result: Result on success responses.
        error: Error object on failure responses.
        raw: The message text as received, without the trailing newline.
    """

    model_config = ConfigDict(frozen=True)

    id: RequestId
    method: str | None = None
    params: Any | None = None
    result: Any | None = None
    error: Any | None = None
    raw: str

    @property
    def is_error(self) -> bool:
        return self.error is not None


def parse_envelope(text: str | bytes) -> MCPEnvelope:
    """Decode one line into an envelope.

    Raises:
        MessageParseError: If the line is not valid JSON.
        InvalidEnvelopeError: If the JSON is not a JSON-RPC object.
    """
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")
    text = text.strip()

    try:
        data = _loads(text)
    except ValueError as e:
        raise MessageParseError(str(e)) from e

    if not isinstance(data, dict):
        raise InvalidEnvelopeError(f"expected a JSON object, got {type(data).__name__}")

    request_id = RequestId.from_message(text, data)

    method = data.get("method")
    if method is not None and not _is_string(method):
        raise InvalidEnvelopeError("method must be a string", request_id)

    return MCPEnvelope(
        id=request_id,
        method=method,
        params=data.get("params"),
        result=data.get("result"),
        error=data.get("error"),
        raw=text,
    )


class MCPErrorDetail(BaseModel):
    """Error details in JSON-RPC format.

    Attributes:
        code: Error code (negative integers for protocol errors).
        message: Human-readable error message.
        data: Optional additional error data.
    """

    code: int = Field(..., description="Error code")
    message: str = Field(..., description="Error message")
    data: Any | None = Field(default=None, description="Additional error data")


class MCPInitializeParams(BaseModel):
    """Parameters for initialize request."""

    protocolVersion: str = Field(description="MCP protocol version")
    capabilities: dict[str, Any] = Field(default_factory=dict)
    clientInfo: dict[str, str] = Field(default_factory=dict)


class MCPServerInfo(BaseModel):
    """Identity advertised in an initialize result."""

    name: str
    version: str


class MCPInitializeResult(BaseModel):
    """Result for initialize."""

    protocolVersion: str
    capabilities: dict[str, Any] = Field(default_factory=lambda: {"tools": {}})
    serverInfo: MCPServerInfo


class MCPToolCallParams(BaseModel):
    """Parameters for tools/call.

    Only ``name`` is needed for routing; the request itself is forwarded
    to the worker untouched.
    """

    name: str = Field(..., description="Name of the tool to invoke")
    arguments: Any | None = Field(default=None, description="Tool arguments, interpreted by the worker only")

    @field_validator("name", mode="before")
    @classmethod
    def _name_is_string(cls, value: Any) -> Any:
        if isinstance(value, _NumberLiteral):
            raise ValueError("name must be a string")
        return value


class MCPToolListResult(BaseModel):
    """Result for tools/list. Tool descriptors are passed through as-is."""

    tools: list[Any]
