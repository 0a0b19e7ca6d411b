"""Command-line entry point for the MCP TCP gateway."""

import argparse
import asyncio
import logging
import sys

import structlog
import yaml

from .config import Settings, get_settings
from .gateway.dispatcher import RequestDispatcher
from .registry.routes import RouteTable
from .server.listener import GatewayServer, ListenerBindError

logger = structlog.get_logger(__name__)


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output to stderr, filtered at ``level``."""
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mcp-tcp-gateway",
        description="Expose stdio MCP tool workers to TCP clients.",
    )
    parser.add_argument("--host", default=settings.HOST, help="Listen address")
    parser.add_argument("--port", type=int, default=settings.PORT, help="Listen port")
    parser.add_argument(
        "--routes",
        default=settings.ROUTES_CONFIG_PATH,
        help="Path to the tool route YAML (default: config/routes.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default=settings.LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        help="Minimum log level",
    )
    return parser


def apply_args(settings: Settings, args: argparse.Namespace) -> Settings:
    """Return a copy of ``settings`` with command-line overrides applied."""
    return settings.model_copy(
        update={
            "HOST": args.host,
            "PORT": args.port,
            "ROUTES_CONFIG_PATH": args.routes,
            "LOG_LEVEL": args.log_level,
        }
    )


async def serve(settings: Settings, routes: RouteTable) -> None:
    """Run the listener until a shutdown signal arrives.

    Raises:
        ListenerBindError: If the listen address cannot be bound.
    """
    dispatcher = RequestDispatcher(routes, settings=settings)
    server = GatewayServer(
        dispatcher,
        host=settings.HOST,
        port=settings.PORT,
        stream_limit=settings.STREAM_LIMIT_BYTES,
    )
    await server.start()
    logger.info(
        "gateway_started",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        tools=list(routes.tool_names),
        workers=len(routes.worker_paths),
    )
    await server.serve_forever()


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()
    args = build_parser(settings).parse_args(argv)
    settings = apply_args(settings, args)
    configure_logging(settings.LOG_LEVEL)

    try:
        routes = RouteTable.load(settings.ROUTES_CONFIG_PATH)
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.critical("route_config_invalid", path=settings.ROUTES_CONFIG_PATH, error=str(e))
        return 1

    if not len(routes):
        logger.warning("no_tools_configured", path=settings.ROUTES_CONFIG_PATH)

    try:
        asyncio.run(serve(settings, routes))
    except ListenerBindError as e:
        logger.critical("listener_bind_failed", host=e.host, port=e.port, error=e.message)
        return 1
    logger.info("gateway_stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
