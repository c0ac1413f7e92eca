from unittest.mock import AsyncMock, MagicMock

import mcp.types as types
import pytest
from fastmcp.client.transports import StdioTransport, StreamableHttpTransport
from mcp.shared.exceptions import McpError

from calculator_mcp.mcp_client import (
    CalculatorClient,
    ToolOutcome,
    create_transport,
    run_demo,
)
from calculator_mcp.settings import ClientConfig, TransportType


@pytest.fixture
def fastmcp_client():
    client = MagicMock()
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=None)
    client.ping = AsyncMock(return_value=True)
    return client


@pytest.fixture
def calculator(fastmcp_client) -> CalculatorClient:
    return CalculatorClient(fastmcp_client)


def text_result(text: str, is_error: bool = False, structured=None) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        isError=is_error,
        structuredContent=structured,
    )


def test_stdio_transport():
    transport = create_transport(ClientConfig(transport=TransportType.STDIO))

    assert isinstance(transport, StdioTransport)


def test_http_transport():
    transport = create_transport(
        ClientConfig(
            transport=TransportType.STREAMABLE_HTTP,
            server_url="http://localhost:9000/mcp",
        )
    )

    assert isinstance(transport, StreamableHttpTransport)
    assert transport.url == "http://localhost:9000/mcp"


@pytest.mark.asyncio
async def test_call_tool(calculator, fastmcp_client):
    fastmcp_client.call_tool_mcp = AsyncMock(
        return_value=text_result("Result: 15.000000", structured={"result": 15})
    )

    outcome = await calculator.call_tool(
        "calculate", {"operation": "add", "num1": 10, "num2": 5}
    )

    assert outcome == ToolOutcome("Result: 15.000000", False, {"result": 15})
    fastmcp_client.call_tool_mcp.assert_awaited_once_with(
        "calculate", {"operation": "add", "num1": 10, "num2": 5}
    )


@pytest.mark.asyncio
async def test_call_tool_error(calculator, fastmcp_client):
    fastmcp_client.call_tool_mcp = AsyncMock(
        return_value=text_result("Invalid parameters: num2: cannot divide by zero", True)
    )

    outcome = await calculator.call_tool(
        "calculate", {"operation": "divide", "num1": 1, "num2": 0}
    )

    assert outcome.is_error
    assert outcome.text == "Invalid parameters: num2: cannot divide by zero"


@pytest.mark.asyncio
async def test_listings(calculator, fastmcp_client):
    fastmcp_client.list_tools = AsyncMock(
        return_value=[types.Tool(name="calculate", inputSchema={"type": "object"})]
    )
    fastmcp_client.list_prompts = AsyncMock(
        return_value=[types.Prompt(name="calculation-explanation")]
    )
    fastmcp_client.list_resource_templates = AsyncMock(
        return_value=[
            types.ResourceTemplate(name="math-constant", uriTemplate="math://constants/{name}")
        ]
    )

    assert await calculator.list_tools() == ["calculate"]
    assert await calculator.list_prompts() == ["calculation-explanation"]
    assert await calculator.list_resource_templates() == ["math://constants/{name}"]


@pytest.mark.asyncio
async def test_read_resource(calculator, fastmcp_client):
    fastmcp_client.read_resource = AsyncMock(
        return_value=[
            types.TextResourceContents(
                uri="math://constants/pi", mimeType="text/plain", text="3.141593"
            )
        ]
    )

    assert await calculator.read_resource("math://constants/pi") == "3.141593"


@pytest.mark.asyncio
async def test_read_empty_resource(calculator, fastmcp_client):
    fastmcp_client.read_resource = AsyncMock(return_value=[])

    assert await calculator.read_resource("math://constants") == ""


@pytest.mark.asyncio
async def test_get_prompt(calculator, fastmcp_client):
    fastmcp_client.get_prompt = AsyncMock(
        return_value=types.GetPromptResult(
            description="Calculation explanation",
            messages=[
                types.PromptMessage(
                    role="user", content=types.TextContent(type="text", text="7 × 8 = 56")
                )
            ],
        )
    )

    lines = await calculator.get_prompt(
        "calculation-explanation", {"operation": "multiply", "num1": "7", "num2": "8"}
    )

    assert lines == ["user: 7 × 8 = 56"]


@pytest.mark.asyncio
async def test_demo_exercises_every_capability(calculator, fastmcp_client):
    fastmcp_client.call_tool_mcp = AsyncMock(return_value=text_result("ok"))
    fastmcp_client.read_resource = AsyncMock(
        return_value=[
            types.TextResourceContents(uri="math://constants", mimeType="text/plain", text="1")
        ]
    )
    fastmcp_client.get_prompt = AsyncMock(
        return_value=types.GetPromptResult(messages=[])
    )

    await run_demo(calculator)

    fastmcp_client.ping.assert_awaited_once()
    assert fastmcp_client.call_tool_mcp.await_count == 8
    assert fastmcp_client.read_resource.await_count == 4
    assert fastmcp_client.get_prompt.await_count == 2


@pytest.mark.asyncio
async def test_demo_keeps_going_after_protocol_errors(calculator, fastmcp_client):
    fault = McpError(types.ErrorData(code=-32601, message="Unknown tool: calculate"))
    fastmcp_client.call_tool_mcp = AsyncMock(side_effect=fault)
    fastmcp_client.read_resource = AsyncMock(side_effect=fault)
    fastmcp_client.get_prompt = AsyncMock(side_effect=fault)

    await run_demo(calculator)

    assert fastmcp_client.call_tool_mcp.await_count == 8
    assert fastmcp_client.get_prompt.await_count == 2
