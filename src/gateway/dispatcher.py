"""JSON-RPC request routing."""

from typing import Any

import structlog
from pydantic import ValidationError

from src.audit import audit_call
from src.config import Settings, get_settings
from src.mcp_transport.encoder import encode_error, encode_success
from src.mcp_transport.framing import frame
from src.mcp_transport.schemas import (
    InvalidEnvelopeError,
    MCPEnvelope,
    MCPErrorCodes,
    MCPInitializeResult,
    MCPServerInfo,
    MCPToolCallParams,
    MessageParseError,
    parse_envelope,
)
from src.registry.routes import RouteTable
from src.worker.exceptions import WorkerError, WorkerTimeoutError
from src.worker.session import SessionConfig, SessionRunner, session_runner

from .catalog import CatalogAggregator
from .exceptions import InvalidToolCallParamsError, ToolNotFoundError

logger = structlog.get_logger(__name__)


class RequestDispatcher:
    """Routes one client message to a local responder or to workers.

    Attributes:
        routes: Tool name to worker mapping.
        aggregator: Fan-out used for tools/list.
    """

    def __init__(
        self,
        routes: RouteTable,
        run_session: SessionRunner | None = None,
        settings: Settings | None = None,
    ):
        settings = settings or get_settings()
        self.routes = routes
        self._run_session = run_session or session_runner(SessionConfig.from_settings(settings))
        self.aggregator = CatalogAggregator(routes, self._run_session)
        self._initialize_result = MCPInitializeResult(
            protocolVersion=settings.PROTOCOL_VERSION,
            serverInfo=MCPServerInfo(name=settings.APP_NAME, version=settings.APP_VERSION),
        ).model_dump()

    async def dispatch(self, message: str, client: str | None = None) -> bytes | None:
        """Handle one raw message.

        Args:
            message: One line received from the client.
            client: Peer description, for logs.

        Returns:
            The encoded response line, or None for notifications.
        """
        try:
            envelope = parse_envelope(message)
        except MessageParseError as e:
            logger.warning("parse_error", client=client, error=str(e), raw=message)
            return encode_error(None, MCPErrorCodes.PARSE_ERROR, "Parse error")
        except InvalidEnvelopeError as e:
            logger.warning("invalid_request", client=client, error=str(e), raw=message)
            return encode_error(e.request_id, MCPErrorCodes.INVALID_REQUEST, "Invalid Request", str(e))

        request_id = envelope.id
        method = envelope.method
        logger.debug("request_received", client=client, request_id=str(request_id), method=method)

        try:
            if method == "initialize":
                return encode_success(request_id, self._initialize_result)
            if method == "ping":
                return encode_success(request_id, {})
            if method == "notifications/initialized":
                logger.info("client_initialized", client=client)
                return None
            if method == "tools/call":
                return await self._call_tool(envelope, client)
            if method == "tools/list":
                return await self._list_tools(envelope, client)
        except ToolNotFoundError as e:
            logger.warning("tool_not_found", client=client, tool_name=e.tool_name)
            return encode_error(request_id, MCPErrorCodes.METHOD_NOT_FOUND, e.message)
        except InvalidToolCallParamsError as e:
            logger.warning("invalid_tool_call_params", client=client, detail=e.detail)
            return encode_error(request_id, MCPErrorCodes.INVALID_REQUEST, e.message)
        except Exception as e:
            logger.error("dispatch_failed", client=client, method=method, error=str(e), exc_info=True)
            return encode_error(request_id, MCPErrorCodes.INTERNAL_ERROR, f"Internal error: {e}")

        logger.info("method_not_found", client=client, method=method)
        return encode_error(request_id, MCPErrorCodes.METHOD_NOT_FOUND, "Method not found")

    def _tool_call_params(self, params: Any) -> MCPToolCallParams:
        try:
            return MCPToolCallParams.model_validate(params)
        except ValidationError as e:
            raise InvalidToolCallParamsError(str(e)) from e

    async def _call_tool(self, envelope: MCPEnvelope, client: str | None) -> bytes:
        """Forward a tools/call to the worker serving the named tool.

        The client's request is sent to the worker unchanged; the worker's
        reply is forwarded unchanged once its id has been checked.
        """
        request_id = envelope.id
        params = self._tool_call_params(envelope.params)
        tool_name = params.name

        with audit_call(str(request_id), "tools/call", client=client, tool_name=tool_name) as audit:
            worker_path = self.routes.resolve(tool_name)
            if worker_path is None:
                raise ToolNotFoundError(tool_name)
            audit.add_worker(worker_path)

            logger.info("tool_call_routed", client=client, tool_name=tool_name, worker_path=worker_path)
            try:
                response = await self._run_session(worker_path, frame(envelope.raw))
            except WorkerError as e:
                if isinstance(e, WorkerTimeoutError):
                    audit.mark_timeout(e.code)
                else:
                    audit.mark_error(e.code)
                logger.error("tool_call_failed", tool_name=tool_name, worker_path=worker_path, error=e.message)
                return encode_error(
                    request_id,
                    MCPErrorCodes.INTERNAL_ERROR,
                    f"Error executing tool '{tool_name}'",
                    e.message,
                )

            try:
                reply = parse_envelope(response)
            except (MessageParseError, InvalidEnvelopeError) as e:
                audit.mark_error("INVALID_RESPONSE")
                logger.error(
                    "tool_response_invalid",
                    tool_name=tool_name,
                    worker_path=worker_path,
                    error=str(e),
                    raw=response.decode("utf-8", errors="replace"),
                )
                return encode_error(
                    request_id,
                    MCPErrorCodes.INTERNAL_ERROR,
                    f"Invalid response from tool '{tool_name}'",
                )

            if not reply.id.matches(request_id):
                audit.mark_error("ID_MISMATCH")
                logger.error(
                    "tool_response_id_mismatch",
                    tool_name=tool_name,
                    worker_path=worker_path,
                    expected=str(request_id),
                    got=str(reply.id),
                )
                return encode_error(
                    request_id,
                    MCPErrorCodes.INTERNAL_ERROR,
                    f"Mismatched response ID from tool '{tool_name}'",
                )

            if reply.is_error:
                audit.mark_error("TOOL_ERROR")

        logger.info("tool_call_forwarded", client=client, tool_name=tool_name)
        return response

    async def _list_tools(self, envelope: MCPEnvelope, client: str | None) -> bytes:
        with audit_call(str(envelope.id), "tools/list", client=client) as audit:
            for worker_path in self.routes.worker_paths:
                audit.add_worker(worker_path)
            catalog = await self.aggregator.aggregate(envelope.id)
            audit.mark_partial(catalog.failed_workers)
        return encode_success(envelope.id, {"tools": catalog.tools})
