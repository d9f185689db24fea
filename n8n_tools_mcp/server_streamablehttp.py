import contextlib
import json
import logging
import os
import sys
from collections.abc import AsyncIterator

from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Mount, Route
from starlette.types import Receive, Scope, Send

from n8n_tools_mcp.adapter import AdapterConfig, N8nClient, ToolExecutor
from n8n_tools_mcp.adapter.auth import extract_api_key
from n8n_tools_mcp.adapter.errors import AuthError, UnknownOperationError, ValidationError
from n8n_tools_mcp.adapter.mcp_server import N8nMCPServer
from n8n_tools_mcp.adapter.tools import status_for

logging.basicConfig(stream=sys.stderr, level=os.getenv("LOG_LEVEL", "INFO").upper(), format='[%(levelname)s] %(message)s')


def create_app(config: AdapterConfig = None, executor: ToolExecutor = None) -> Starlette:
    """Build the Starlette app serving tool calls over HTTP and MCP

    Args:
        config: Upstream settings; read from the environment when omitted
        executor: ToolExecutor to use instead of one built from config

    Returns:
        The Starlette application
    """
    executor = executor or ToolExecutor(N8nClient(config or AdapterConfig.from_env()))
    mcp_server = N8nMCPServer("n8n-tools-mcp", executor)

    session_manager = StreamableHTTPSessionManager(
        app=mcp_server.get_server(),
        event_store=None,
        json_response=True,
        stateless=True,
    )

    async def handle_streamable_http(scope: Scope, receive: Receive, send: Send) -> None:
        await session_manager.handle_request(scope, receive, send)

    async def tool_handler(request: Request) -> JSONResponse:
        """Run one tool with the JSON request body as its parameters"""
        tool_name = request.path_params["toolName"]
        try:
            executor.resolve(tool_name)
        except UnknownOperationError as exc:
            return JSONResponse(exc.to_dict(), status_code=404)

        try:
            raw = await request.body()
            params = json.loads(raw) if raw.strip() else {}
        except ValueError as exc:
            logging.warning(f"[HTTP] Invalid JSON body for {tool_name}: {exc}")
            error = ValidationError(
                "Invalid JSON body",
                400,
                f"VALIDATION ERROR: The request body must be a JSON object of tool parameters.\nParse error: {exc}",
            )
            return JSONResponse(error.to_dict(), status_code=400)

        try:
            credential = extract_api_key(request.headers)
        except AuthError as exc:
            return JSONResponse(exc.to_dict(), status_code=exc.http_status)

        result = await executor.invoke(tool_name, params, credential)
        return JSONResponse(result, status_code=status_for(result))

    async def list_tools_handler(request: Request) -> JSONResponse:
        tools = executor.list_tools()
        return JSONResponse({"success": True, "tools": tools, "count": len(tools)})

    async def health_handler(request: Request) -> JSONResponse:
        return JSONResponse({
            "status": "healthy",
            "server": "n8n-tools-mcp",
            "upstream": executor.client.config.base_url,
            "tools_count": len(executor.client.operations),
        })

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        """Context manager for session manager lifecycle."""
        async with session_manager.run():
            logging.info(f"[HTTP] n8n tools server ready, upstream {executor.client.config.base_url}")
            logging.info("[HTTP] Available endpoints:")
            logging.info("[HTTP]   - POST /tools/{toolName} (Execute a tool)")
            logging.info("[HTTP]   - GET /tools (List tools)")
            logging.info("[HTTP]   - GET /health (Health check)")
            logging.info("[HTTP]   - POST / (MCP protocol)")
            try:
                yield
            finally:
                logging.info("[HTTP] n8n tools server shutting down...")

    return Starlette(
        routes=[
            Route("/tools", list_tools_handler, methods=["GET"]),
            Route("/tools/{toolName}", tool_handler, methods=["POST"]),
            Route("/health", health_handler, methods=["GET"]),
            Mount("/", app=handle_streamable_http),
        ],
        lifespan=lifespan,
    )


def main():
    port = int(os.getenv("PORT", 8080))
    host = os.getenv("HOST", "0.0.0.0")

    app = create_app()

    import uvicorn
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
