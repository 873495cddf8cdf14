"""Command line entry point: ``http-to-ws URL [--host H] [--port P]``."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional, Sequence

from http_to_ws.core.config import (
    DEFAULT_HOST,
    DEFAULT_MAX_BODY,
    DEFAULT_PORT,
    BridgeConfig,
    get_config_bool,
    read_config_file,
    resolve_config_path,
    split_listen_address,
)
from http_to_ws.core.connection import ConnectionSupervisor, RetryPolicy, build_observer
from http_to_ws.core.connection.retry_policy import DEFAULT_CONNECT_TIMEOUT, DEFAULT_RETRY_DELAY
from http_to_ws.core.logging_config import LOG_LEVELS, configure_logging
from http_to_ws.core.logging_utils import get_module_logger
from http_to_ws.core.shutdown_coordinator import ShutdownCoordinator

logger = get_module_logger("Main")

EXIT_OK = 0
EXIT_FATAL = 1


def _port(value: str) -> int:
    try:
        port = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("port must be an integer") from exc
    if not 0 <= port <= 65535:
        raise argparse.ArgumentTypeError("port must be between 0 and 65535")
    return port


def _positive_float(value: str) -> float:
    try:
        parsed = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("value must be a number") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be positive")
    return parsed


def _positive_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("value must be an integer") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be positive")
    return parsed


def _non_negative_float(value: str) -> float:
    try:
        parsed = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("value must be a number") from exc
    if parsed < 0:
        raise argparse.ArgumentTypeError("value must not be negative")
    return parsed


def _listen_address(value: str) -> tuple[str, int]:
    try:
        return split_listen_address(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def build_parser(defaults: Optional[dict] = None) -> argparse.ArgumentParser:
    config = defaults or {}
    parser = argparse.ArgumentParser(
        prog="http-to-ws",
        description="Convert HTTP requests to websocket messages",
    )
    parser.add_argument(
        "url",
        help="Websocket URL to forward request bodies to (e.g. ws://host/socket)",
    )
    parser.add_argument(
        "--host",
        default=config.get("host", DEFAULT_HOST),
        help=f"Interface for the HTTP server (default: {DEFAULT_HOST})",
    )
    parser.add_argument(
        "--port",
        type=_port,
        default=config.get("port", DEFAULT_PORT),
        help=f"Port for the HTTP server (default: {DEFAULT_PORT})",
    )
    parser.add_argument(
        "--listen",
        type=_listen_address,
        default=None,
        metavar="HOST:PORT",
        help="Combined bind address; overrides --host and --port",
    )
    parser.add_argument(
        "--connect-timeout",
        type=_positive_float,
        default=config.get("connect_timeout", DEFAULT_CONNECT_TIMEOUT),
        help=f"Seconds allowed for each connection attempt (default: {DEFAULT_CONNECT_TIMEOUT:g})",
    )
    parser.add_argument(
        "--retry-delay",
        type=_non_negative_float,
        default=config.get("retry_delay", DEFAULT_RETRY_DELAY),
        help=f"Seconds to wait between connection attempts (default: {DEFAULT_RETRY_DELAY:g})",
    )
    parser.add_argument(
        "--max-body",
        type=_positive_int,
        default=config.get("max_body", DEFAULT_MAX_BODY),
        metavar="BYTES",
        help=f"Largest request body forwarded (default: {DEFAULT_MAX_BODY})",
    )
    parser.add_argument(
        "--log-level",
        choices=sorted(LOG_LEVELS.keys()),
        default=config.get("log_level", "info").lower(),
        help="Logging verbosity (default: info)",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=config.get("log_file") or None,
        help="Optional rotating log file",
    )
    parser.add_argument(
        "--no-echo",
        dest="echo",
        action="store_false",
        default=get_config_bool(config, "echo", True),
        help="Do not echo message bodies to the console",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="key = value file supplying defaults for the options above",
    )
    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> BridgeConfig:
    """Parse ``argv`` into a BridgeConfig; usage errors exit with status 2."""
    pre_parser = argparse.ArgumentParser(add_help=False)
    pre_parser.add_argument("--config", type=Path, default=None)
    pre_args, _ = pre_parser.parse_known_args(argv)

    file_config = read_config_file(resolve_config_path(pre_args.config))
    parser = build_parser(file_config)
    args = parser.parse_args(argv)
    if args.log_level not in LOG_LEVELS:
        # choices are not checked against defaults taken from the config file
        parser.error(f"argument --log-level: invalid choice: '{args.log_level}'")

    host, port = args.listen if args.listen is not None else (args.host, args.port)
    return BridgeConfig(
        target_url=args.url,
        host=host,
        port=port,
        retry=RetryPolicy(connect_timeout=args.connect_timeout, delay=args.retry_delay),
        max_body=args.max_body,
        echo=args.echo,
        log_level=args.log_level,
        log_file=args.log_file,
    )


def install_exception_handlers(loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
    def handle_exception(exc_type, exc_value, exc_traceback):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return
        logger.critical("Uncaught exception", exc_info=(exc_type, exc_value, exc_traceback))

    sys.excepthook = handle_exception

    if loop is not None:
        def handle_asyncio_exception(loop, context):
            exception = context.get("exception")
            message = context.get("message", "Unhandled asyncio exception")
            if exception:
                logger.error("Asyncio exception: %s", message, exc_info=exception)
            else:
                logger.error("Asyncio error: %s, context: %s", message, context)

        loop.set_exception_handler(handle_asyncio_exception)


async def main(config: BridgeConfig, shutdown: Optional[ShutdownCoordinator] = None) -> None:
    """Run the bridge until a shutdown signal has been handled."""
    loop = asyncio.get_running_loop()
    install_exception_handlers(loop)

    shutdown = shutdown or ShutdownCoordinator(logger=get_module_logger("Shutdown"))
    shutdown.install_signal_handlers(loop)

    supervisor = ConnectionSupervisor(
        config.target_url,
        shutdown,
        host=config.host,
        port=config.port,
        max_body=config.max_body,
        retry=config.retry,
        observer=build_observer(config.echo),
    )
    try:
        await supervisor.run()
    finally:
        shutdown.remove_signal_handlers()


def cli(argv: Optional[Sequence[str]] = None) -> int:
    config = parse_args(argv)
    configure_logging(config.log_level, log_file=config.log_file)
    logger.info("Starting http-to-ws (listen=%s, target=%s)", config.listen_address, config.target_url)

    try:
        asyncio.run(main(config))
    except KeyboardInterrupt:
        # Signal handlers could not be installed (e.g. Windows); Ctrl+C lands here.
        logger.info("Interrupted")
    except Exception:
        logger.critical("Bridge stopped on an unexpected error", exc_info=True)
        return EXIT_FATAL
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(cli())
