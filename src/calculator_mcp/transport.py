"""
Transport bridge between the mcp SDK and the capability dispatcher.

The SDK owns JSON-RPC framing and sessions (stdio or streamable HTTP); this
module decodes each request into (kind, name, payload), hands it to the
Dispatcher and encodes the returned envelope as an MCP result or fault.
"""

import contextlib
from typing import Any, Dict, List, Optional

import mcp.types as types
import uvicorn
from loguru import logger
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server
from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
from mcp.shared.exceptions import McpError
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import PlainTextResponse
from starlette.routing import Route
from starlette.types import Receive, Scope, Send

from calculator_mcp.capabilities import SERVER_NAME, SERVER_VERSION
from calculator_mcp.dispatcher import Dispatcher, InvocationContext, InvocationResult
from calculator_mcp.errors import ErrorCodes
from calculator_mcp.registry import CapabilityKind
from calculator_mcp.schemagenerators import McpAdapter


class McpBridge:
    """Exposes a Dispatcher (and its Registry) as an MCP low-level server"""

    def __init__(
        self,
        dispatcher: Dispatcher,
        name: str = SERVER_NAME,
        version: str = SERVER_VERSION,
    ):
        self.dispatcher = dispatcher
        self.registry = dispatcher.registry
        self.server: Server = Server(name, version=version)
        # registered directly so unknown names surface as JSON-RPC errors
        self.server.request_handlers.update(
            {
                types.ListToolsRequest: self.list_tools,
                types.CallToolRequest: self.call_tool,
                types.ListResourcesRequest: self.list_resources,
                types.ListResourceTemplatesRequest: self.list_resource_templates,
                types.ReadResourceRequest: self.read_resource,
                types.ListPromptsRequest: self.list_prompts,
                types.GetPromptRequest: self.get_prompt,
            }
        )
        logger.debug(f"MCP bridge created for {name} v{version}")

    def _context(self) -> InvocationContext:
        try:
            request_id = str(self.server.request_context.request_id)
        except LookupError:
            request_id = None
        return self.dispatcher.new_context(request_id)

    @staticmethod
    def _raise_for_fault(result: InvocationResult) -> None:
        if result.is_protocol_error:
            code = result.error_code or ErrorCodes.INTERNAL_ERROR
            raise McpError(types.ErrorData(code=int(code), message=result.message or ""))

    async def list_tools(self, req: types.ListToolsRequest) -> types.ServerResult:
        tools = [
            types.Tool(
                name=schema.name,
                description=schema.description,
                inputSchema=McpAdapter.format_schema(schema),
            )
            for schema in self.registry.list(CapabilityKind.TOOL)
        ]
        return types.ServerResult(types.ListToolsResult(tools=tools))

    async def call_tool(self, req: types.CallToolRequest) -> types.ServerResult:
        result = await self.dispatcher.invoke(
            CapabilityKind.TOOL,
            req.params.name,
            req.params.arguments or {},
            self._context(),
        )
        self._raise_for_fault(result)
        if result.is_error:
            return types.ServerResult(
                types.CallToolResult(
                    content=[types.TextContent(type="text", text=result.message or "")],
                    isError=True,
                )
            )
        structured = result.payload if isinstance(result.payload, dict) else {"result": result.payload}
        return types.ServerResult(
            types.CallToolResult(
                content=[types.TextContent(type="text", text=result.text or "")],
                structuredContent=structured,
            )
        )

    async def list_resources(self, req: types.ListResourcesRequest) -> types.ServerResult:
        resources = [
            types.Resource(
                uri=schema.uri,
                name=schema.name,
                description=schema.description,
                mimeType=schema.mime_type,
            )
            for schema in self.registry.list_resources()
        ]
        return types.ServerResult(types.ListResourcesResult(resources=resources))

    async def list_resource_templates(
        self, req: types.ListResourceTemplatesRequest
    ) -> types.ServerResult:
        templates = [
            types.ResourceTemplate(
                uriTemplate=schema.uri_template,
                name=schema.name,
                description=schema.description,
                mimeType=schema.mime_type,
            )
            for schema in self.registry.list_resource_templates()
        ]
        return types.ServerResult(
            types.ListResourceTemplatesResult(resourceTemplates=templates)
        )

    async def read_resource(self, req: types.ReadResourceRequest) -> types.ServerResult:
        uri = str(req.params.uri)
        result = await self.dispatcher.read_resource(uri, self._context())
        self._raise_for_fault(result)
        if result.is_error:
            raise McpError(
                types.ErrorData(code=int(ErrorCodes.INVALID_PARAMS), message=result.message or "")
            )
        mime_type = result.schema.mime_type if result.schema else "text/plain"
        contents = [
            types.TextResourceContents(uri=uri, mimeType=mime_type, text=result.text or "")
        ]
        return types.ServerResult(types.ReadResourceResult(contents=contents))

    async def list_prompts(self, req: types.ListPromptsRequest) -> types.ServerResult:
        prompts = [
            types.Prompt(
                name=schema.name,
                description=schema.description,
                arguments=[
                    types.PromptArgument(**argument)
                    for argument in McpAdapter.format_prompt_arguments(schema)
                ],
            )
            for schema in self.registry.list(CapabilityKind.PROMPT)
        ]
        return types.ServerResult(types.ListPromptsResult(prompts=prompts))

    async def get_prompt(self, req: types.GetPromptRequest) -> types.ServerResult:
        name = req.params.name
        result = await self.dispatcher.invoke(
            CapabilityKind.PROMPT, name, req.params.arguments or {}, self._context()
        )
        self._raise_for_fault(result)
        if result.is_error:
            # bad prompt arguments are explained to the user in the prompt itself
            description = f"{name} (invalid arguments)"
            messages = [{"role": "user", "content": result.message or ""}]
        else:
            description = result.payload["description"]
            messages = result.payload["messages"]
        return types.ServerResult(
            types.GetPromptResult(
                description=description,
                messages=self._prompt_messages(messages),
            )
        )

    @staticmethod
    def _prompt_messages(messages: List[Dict[str, Any]]) -> List[types.PromptMessage]:
        return [
            types.PromptMessage(
                role=message["role"],
                content=types.TextContent(type="text", text=message["content"]),
            )
            for message in messages
        ]

    async def run_stdio(self) -> None:
        logger.info("Starting server with stdio transport")
        async with stdio_server() as (read_stream, write_stream):
            await self.server.run(
                read_stream,
                write_stream,
                self.server.create_initialization_options(),
            )

    def http_app(self, json_response: bool = False) -> Starlette:
        """Starlette app serving MCP at /mcp and a readiness check at /health"""
        session_manager = StreamableHTTPSessionManager(
            app=self.server,
            json_response=json_response,
            stateless=True,
        )

        async def health(request: Request) -> PlainTextResponse:
            if self.registry.ready:
                return PlainTextResponse("OK")
            return PlainTextResponse("starting", status_code=503)

        @contextlib.asynccontextmanager
        async def lifespan(app: Starlette):
            async with session_manager.run():
                logger.info("Streamable HTTP session manager started")
                yield
            logger.info("Streamable HTTP session manager stopped")

        return Starlette(
            routes=[
                Route("/health", health, methods=["GET"]),
                Route("/mcp", endpoint=StreamableHTTPEndpoint(session_manager)),
            ],
            lifespan=lifespan,
        )

    def run_http(self, host: str, port: int, log_level: Optional[str] = None) -> None:
        logger.info(f"Starting server with streamable-http transport on {host}:{port}")
        uvicorn.run(
            self.http_app(),
            host=host,
            port=port,
            log_level=(log_level or "info").lower(),
        )


class StreamableHTTPEndpoint:
    """Raw ASGI endpoint, so starlette passes every HTTP method through"""

    def __init__(self, session_manager: StreamableHTTPSessionManager):
        self.session_manager = session_manager

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self.session_manager.handle_request(scope, receive, send)
