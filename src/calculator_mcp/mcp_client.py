"""
Calculator MCP client (fastmcp)
Connects to a calculator server over stdio or streamable HTTP and exercises
its tools, resources and prompts.
"""

import asyncio
import os
import sys
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from fastmcp import Client
from fastmcp.client.transports import StdioTransport, StreamableHttpTransport
from loguru import logger
from mcp.shared.exceptions import McpError

from calculator_mcp.settings import ClientConfig, TransportType


@dataclass
class ToolOutcome:
    text: str
    is_error: bool
    structured: Optional[Dict[str, Any]] = None


def create_transport(
    config: ClientConfig,
) -> Union[StdioTransport, StreamableHttpTransport]:
    """Spawn the server over stdio, or point at a running HTTP server"""
    if config.transport == TransportType.STREAMABLE_HTTP:
        logger.info(f"Connecting to server via HTTP: {config.server_url}")
        return StreamableHttpTransport(config.server_url)
    logger.info(f"Connecting to server via stdio: {config.server_command}")
    env = {**os.environ, "TRANSPORT": TransportType.STDIO.value}
    return StdioTransport(command=config.server_command, args=[], env=env)


class CalculatorClient:
    """
    Thin wrapper around fastmcp.Client.
    Each call enters the client context; nested entries reuse the open session.
    """

    def __init__(self, client: Client):
        self._client = client

    @classmethod
    def from_config(cls, config: ClientConfig) -> "CalculatorClient":
        return cls(Client(create_transport(config)))

    async def __aenter__(self) -> "CalculatorClient":
        await self._client.__aenter__()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self._client.__aexit__(*exc_info)

    async def ping(self) -> None:
        async with self._client as client:
            await client.ping()
            logger.info("Connected to server successfully!")

    async def list_tools(self) -> List[str]:
        async with self._client as client:
            tools = await client.list_tools()
            return [tool.name for tool in tools]

    async def list_resources(self) -> List[str]:
        async with self._client as client:
            resources = await client.list_resources()
            return [str(resource.uri) for resource in resources]

    async def list_resource_templates(self) -> List[str]:
        async with self._client as client:
            templates = await client.list_resource_templates()
            return [template.uriTemplate for template in templates]

    async def list_prompts(self) -> List[str]:
        async with self._client as client:
            prompts = await client.list_prompts()
            return [prompt.name for prompt in prompts]

    async def call_tool(self, name: str, arguments: Dict[str, Any]) -> ToolOutcome:
        logger.debug(f"Calling tool '{name}' with args: {arguments}")
        async with self._client as client:
            result = await client.call_tool_mcp(name, arguments)
        text = "\n".join(
            block.text for block in result.content if getattr(block, "text", None) is not None
        )
        return ToolOutcome(
            text=text,
            is_error=bool(result.isError),
            structured=result.structuredContent,
        )

    async def read_resource(self, uri: str) -> str:
        async with self._client as client:
            contents = await client.read_resource(uri)
        if not contents:
            logger.warning(f"No content for {uri}")
            return ""
        return getattr(contents[0], "text", "")

    async def get_prompt(self, name: str, arguments: Dict[str, str]) -> List[str]:
        async with self._client as client:
            result = await client.get_prompt(name, arguments)
        return [
            f"{message.role}: {getattr(message.content, 'text', message.content)}"
            for message in result.messages
        ]


CALCULATIONS = [("add", 10, 5), ("subtract", 10, 5), ("multiply", 10, 5), ("divide", 10, 5)]

RANDOM_NUMBER_CASES = [
    ("default (uniform 1-100)", {}),
    ("custom range", {"min": 10, "max": 50}),
    ("normal distribution", {"min": 1, "max": 100, "distribution": "normal"}),
    ("exponential distribution", {"min": 1, "max": 100, "distribution": "exponential"}),
]


async def run_demo(calculator: CalculatorClient) -> None:
    """Exercise every capability of the server and log what comes back"""
    await calculator.ping()

    logger.info("=== Testing Calculate Tool ===")
    for operation, num1, num2 in CALCULATIONS:
        args = {"operation": operation, "num1": num1, "num2": num2}
        try:
            outcome = await calculator.call_tool("calculate", args)
        except McpError as e:
            logger.error(f"Error calling calculate ({operation}): {e}")
            continue
        if outcome.is_error:
            logger.warning(f"Calculate ({operation}) returned error: {outcome.text}")
            continue
        logger.info(f"{operation}: {outcome.text}")

    logger.info("=== Testing Generate Random Number Tool ===")
    for label, args in RANDOM_NUMBER_CASES:
        try:
            outcome = await calculator.call_tool("generate-random-number", args)
        except McpError as e:
            logger.error(f"Error ({label}): {e}")
            continue
        if outcome.is_error:
            logger.warning(f"{label} returned error: {outcome.text}")
            continue
        logger.info(f"{label}: {outcome.text}")

    logger.info("=== Testing Math Constants Resource ===")
    try:
        logger.info(f"All constants: {await calculator.read_resource('math://constants')}")
        for constant in ("pi", "e", "golden_ratio"):
            value = await calculator.read_resource(f"math://constants/{constant}")
            logger.info(f"{constant} = {value}")
    except McpError as e:
        logger.error(f"Error reading math constants: {e}")

    logger.info("=== Testing Prompts ===")
    prompts = [
        ("calculation-explanation", {"operation": "multiply", "num1": "7", "num2": "8"}),
        ("generate-random-number-prompt", {"min": "1", "max": "50", "distribution": "normal"}),
    ]
    for name, args in prompts:
        try:
            for line in await calculator.get_prompt(name, args):
                logger.info(f"{name}: {line}")
        except McpError as e:
            logger.error(f"Error getting prompt {name}: {e}")


async def _main(config: ClientConfig) -> None:
    async with CalculatorClient.from_config(config) as calculator:
        await run_demo(calculator)


def main():
    logger.remove()
    logger.add(sys.stderr, level="INFO")
    asyncio.run(_main(ClientConfig.from_env()))


if __name__ == "__main__":
    main()
