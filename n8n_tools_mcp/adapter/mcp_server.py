"""MCP server exposing the n8n operation catalog as tools.

This module provides the N8nMCPServer class which builds one ADK
FunctionTool per catalog operation for tool listing and routes call_tool
requests through the ToolExecutor.
"""

import inspect
import json
import logging
from typing import Any, Callable, Dict, Optional

from google.adk.tools.function_tool import FunctionTool
from google.adk.tools.mcp_tool.conversion_utils import adk_to_mcp_tool_type
from mcp import types as mcp_types
from mcp.server.lowlevel import Server

from .auth import extract_api_key
from .errors import AuthError
from .models import Operation, ParamType
from .tools import TOOL_PREFIX, ToolExecutor

_ANNOTATIONS = {
    ParamType.STRING: str,
    ParamType.INTEGER: int,
    ParamType.NUMBER: float,
    ParamType.BOOLEAN: bool,
    ParamType.ARRAY: list,
    ParamType.OBJECT: dict,
}


def build_tool_function(operation: Operation, executor: ToolExecutor,
                        credential_provider: Callable[[], Optional[str]]):
    """Create a coroutine function whose signature mirrors the operation's parameters"""
    tool_name = f"{TOOL_PREFIX}{operation.name}"
    sig_params = []
    annotations = {}

    required = [p for p in operation.parameters if p.required]
    optional = [p for p in operation.parameters if not p.required]
    for param in required + optional:
        param_type = _ANNOTATIONS[param.type]
        if param.required:
            sig_params.append(
                inspect.Parameter(param.name, inspect.Parameter.POSITIONAL_OR_KEYWORD, annotation=param_type)
            )
        else:
            param_type = Optional[param_type]
            sig_params.append(
                inspect.Parameter(
                    param.name, inspect.Parameter.POSITIONAL_OR_KEYWORD, default=None, annotation=param_type
                )
            )
        annotations[param.name] = param_type

    sig = inspect.Signature(sig_params, return_annotation=dict)

    async def tool_function(*args, **kwargs):
        bound = sig.bind(*args, **kwargs)
        arguments = {key: value for key, value in bound.arguments.items() if value is not None}
        return await executor.invoke(tool_name, arguments, credential_provider())

    tool_function.__name__ = tool_name
    tool_function.__doc__ = f"{operation.description} ({operation.method.value} {operation.path})"
    tool_function.__signature__ = sig
    tool_function.__annotations__ = {**annotations, "return": dict}
    return tool_function


class N8nMCPServer:
    """MCP server serving every n8n operation as a tool

    Args:
        server_name: Name for the MCP server instance
        executor: ToolExecutor that runs the invocations
    """

    def __init__(self, server_name: str = "n8n-tools-mcp", executor: ToolExecutor = None):
        self.server_name = server_name
        self.server = Server(server_name)
        self.executor = executor or ToolExecutor()
        self.tools: Dict[str, FunctionTool] = {
            f"{TOOL_PREFIX}{operation.name}": FunctionTool(build_tool_function(operation, self.executor, self._credential))
            for operation in self.executor.client.operations.values()
        }
        self._setup_server()
        logging.info(f"[MCP] Initialized MCP server '{server_name}' with {len(self.tools)} tools")

    def _credential(self) -> Optional[str]:
        """API key from the HTTP request carrying the MCP call, else the configured default"""
        try:
            request = getattr(self.server.request_context, "request", None)
        except LookupError:
            request = None
        if request is not None and hasattr(request, "headers"):
            try:
                return extract_api_key(request.headers)
            except AuthError:
                pass
        return self.executor.client.config.api_key

    def _setup_server(self) -> None:
        """Setup the MCP server with list_tools and call_tool handlers"""

        @self.server.list_tools()
        async def list_tools():
            tool_list = []
            for tool in self.tools.values():
                try:
                    tool_list.append(adk_to_mcp_tool_type(tool))
                except Exception as e:
                    logging.error(f"[MCP] Error converting tool {tool.name} to MCP type: {e}")
            logging.info(f"[MCP] Returning {len(tool_list)} tools to MCP client")
            return tool_list

        @self.server.call_tool()
        async def call_tool(name: str, arguments: dict):
            logging.info(f"[MCP] Tool call: {name} with args: {json.dumps(arguments, default=str)}")
            result = await self.executor.invoke(name, arguments, self._credential())
            return mcp_types.CallToolResult(
                content=[mcp_types.TextContent(type="text", text=format_result(result))],
                isError=not result.get("success"),
            )

    def get_server(self) -> Server:
        return self.server


def format_result(result: Dict[str, Any]) -> str:
    """Render an envelope as text for MCP clients"""
    if result.get("success"):
        return f"Success\n\nResponse Data:\n{json.dumps(result.get('data'), indent=2, default=str)}"
    error = result.get("error", {})
    return (
        f"Error ({error.get('code')}): {error.get('message')}\n\n"
        f"{error.get('details', '')}"
    )


__all__ = [
    "N8nMCPServer",
    "build_tool_function",
    "format_result",
]
