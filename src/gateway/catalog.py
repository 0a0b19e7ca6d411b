"""Fan-out of tools/list across every distinct worker."""

import asyncio
from typing import Any, NamedTuple

import structlog
from pydantic import ValidationError

from src.mcp_transport.encoder import encode_request
from src.mcp_transport.schemas import (
    InvalidEnvelopeError,
    MCPToolListResult,
    MessageParseError,
    RequestId,
    parse_envelope,
)
from src.registry.routes import RouteTable
from src.worker.exceptions import WorkerError, WorkerResponseError
from src.worker.session import SessionRunner, describe_error

logger = structlog.get_logger(__name__)


class WorkerCatalog(NamedTuple):
    """Outcome of querying one worker.

    Attributes:
        worker_path: Worker that was queried.
        tools: Tool descriptors it returned; empty on failure.
        error: Why the worker was excluded, None on success.
    """

    worker_path: str
    tools: list[Any]
    error: str | None = None


class CatalogResult(NamedTuple):
    """Merged catalog.

    Attributes:
        tools: Concatenation of every valid worker's tools.
        errors: One entry per excluded worker.
        failed_workers: Paths of excluded workers.
    """

    tools: list[Any]
    errors: list[str]
    failed_workers: list[str]


def extract_tools(worker_path: str, response: bytes | str, request_id: RequestId) -> list[Any]:
    """Validate a tools/list response and return its tool descriptors.

    Args:
        worker_path: Worker that produced the response.
        response: Raw response line.
        request_id: Id the query was sent with.

    Raises:
        WorkerResponseError: If the response is not JSON, carries an error,
            has a different id, or lacks a ``result.tools`` list.
    """
    try:
        envelope = parse_envelope(response)
    except (MessageParseError, InvalidEnvelopeError) as e:
        raise WorkerResponseError(worker_path, f"invalid response: {e}") from e

    if envelope.is_error:
        raise WorkerResponseError(worker_path, f"error: {describe_error(envelope.error)}")

    if not envelope.id.matches(request_id):
        raise WorkerResponseError(
            worker_path,
            f"mismatched response ID. Expected: {request_id}, Got: {envelope.id}",
        )

    try:
        result = MCPToolListResult.model_validate(envelope.result)
    except ValidationError as e:
        raise WorkerResponseError(
            worker_path, f"invalid result format: {e.error_count()} validation error(s)"
        ) from e
    return result.tools


class CatalogAggregator:
    """Answers tools/list by querying every distinct worker in parallel.

    Each worker runs in its own task and produces a local WorkerCatalog;
    results are merged only after all tasks have finished, so no state is
    shared while sessions are in flight. Failing workers are logged and
    left out, never surfaced to the client.

    Attributes:
        routes: Route table whose distinct workers are queried.
    """

    def __init__(self, routes: RouteTable, run_session: SessionRunner):
        self.routes = routes
        self._run_session = run_session

    async def aggregate(self, request_id: RequestId) -> CatalogResult:
        """Query all workers with the client's own request id and merge.

        Args:
            request_id: The client's tools/list id, reused for each worker.

        Returns:
            CatalogResult with merged tools and per-worker errors.
        """
        payload = encode_request("tools/list", request_id)
        targets = self.routes.worker_paths

        outcomes = await asyncio.gather(
            *(self._query(worker_path, payload, request_id) for worker_path in targets),
            return_exceptions=True,
        )

        tools: list[Any] = []
        errors: list[str] = []
        failed_workers: list[str] = []
        for worker_path, outcome in zip(targets, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(
                    "catalog_query_crashed",
                    worker_path=worker_path,
                    exc_info=(type(outcome), outcome, outcome.__traceback__),
                )
                outcome = WorkerCatalog(worker_path, [], f"unexpected error: {outcome!r}")
            if outcome.error is not None:
                errors.append(f"Worker {worker_path} {outcome.error}")
                failed_workers.append(worker_path)
                continue
            tools.extend(outcome.tools)

        logger.info(
            "catalog_aggregated",
            request_id=str(request_id),
            tools=len(tools),
            workers=len(targets),
            failed=len(failed_workers),
        )
        if errors:
            logger.warning("catalog_partial", request_id=str(request_id), errors="; ".join(errors))

        return CatalogResult(tools=tools, errors=errors, failed_workers=failed_workers)

    async def _query(self, worker_path: str, payload: bytes, request_id: RequestId) -> WorkerCatalog:
        logger.debug("catalog_query_started", worker_path=worker_path)
        try:
            response = await self._run_session(worker_path, payload)
            tools = extract_tools(worker_path, response, request_id)
        except WorkerError as e:
            logger.warning("catalog_worker_excluded", worker_path=worker_path, code=e.code, error=e.message)
            return WorkerCatalog(worker_path, [], f"failed: {e.message}")

        logger.debug("catalog_query_finished", worker_path=worker_path, tools=len(tools))
        return WorkerCatalog(worker_path, tools)
