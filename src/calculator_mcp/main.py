import asyncio
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from calculator_mcp.capabilities import SERVER_NAME, SERVER_VERSION, build_registry
from calculator_mcp.dispatcher import Dispatcher
from calculator_mcp.settings import ServerConfig, TransportType
from calculator_mcp.transport import McpBridge


def configure_logging(level: str = "INFO", logfile: Optional[Path] = None) -> None:
    """stdout carries the stdio transport, so logs go to stderr"""
    logger.remove()
    logger.add(sys.stderr, level=level.upper())
    if logfile:
        logger.add(logfile, level="DEBUG", rotation="10 MB")


def create_bridge(config: ServerConfig) -> McpBridge:
    logger.info(f"Initializing MCP server: {SERVER_NAME} v{SERVER_VERSION}")
    registry = build_registry()
    dispatcher = Dispatcher(
        registry,
        random_seed=config.random_seed,
        default_timeout=config.request_timeout,
    )
    return McpBridge(dispatcher)


def main():
    config = ServerConfig.from_env()
    configure_logging(config.log_level, config.logfile)
    logger.debug(f"config:\n{config}")

    bridge = create_bridge(config)
    if config.transport == TransportType.STDIO:
        asyncio.run(bridge.run_stdio())
    else:
        bridge.run_http(config.host, config.port, config.log_level)


if __name__ == "__main__":
    main()
