"""Tool dispatch for n8n operations.

This module provides the ToolExecutor class which resolves inbound tool
names to catalog operations, strips internal tracking parameters, and wraps
every outcome in a success or error envelope. It never raises.
"""

import json
import logging
from typing import Any, Dict, List, Mapping, Optional

from .client import N8nClient
from .errors import N8nAPIError, UnexpectedError, UnknownOperationError

TOOL_PREFIX = "customn8n_"

INTERNAL_PARAMS = (
    "toolName",
    "userId",
    "executionId",
    "chatId",
    "sessionId",
    "requestId",
    "timestamp",
    "source",
    "context",
)


def clean_params(params: Any) -> Any:
    """Drop tracking fields that callers attach but n8n must not receive"""
    if not isinstance(params, Mapping):
        return params
    return {key: value for key, value in params.items() if key not in INTERNAL_PARAMS}


def success_envelope(payload: Any) -> dict:
    data = dict(payload) if isinstance(payload, Mapping) else {"items": payload}
    data.update({"tool_type": "n8n", "authenticated": True})
    return {"success": True, "responseType": "mixed", "data": data}


class ToolExecutor:
    """Routes tool invocations to the n8n client

    Args:
        client: N8nClient used for every invocation
    """

    def __init__(self, client: N8nClient = None):
        self.client = client or N8nClient()

    def tool_names(self) -> List[str]:
        return [f"{TOOL_PREFIX}{name}" for name in self.client.operations]

    def resolve(self, tool_name: str) -> str:
        """Map a tool name, with or without the customn8n_ prefix, to an operation name

        Raises:
            UnknownOperationError: If no operation matches
        """
        base_name = tool_name[len(TOOL_PREFIX):] if tool_name.startswith(TOOL_PREFIX) else tool_name
        if base_name not in self.client.operations:
            available = "\n".join(f"- {name}" for name in self.tool_names())
            raise UnknownOperationError(
                f"Unknown or unimplemented n8n tool: {tool_name}",
                404,
                f"TOOL NOT FOUND: The requested n8n tool is not implemented or doesn't exist.\n"
                f"Requested tool: {tool_name}\n"
                f"Base tool name: {base_name}\n\n"
                f"Available n8n tools:\n{available}\n\n"
                f"Check:\n"
                f"1. Tool name spelling and format\n"
                f"2. Use '{TOOL_PREFIX}' prefix for n8n tools\n"
                f"3. Refer to available tools list above",
            )
        return base_name

    async def invoke(self, tool_name: str, params: Optional[Mapping[str, Any]], credential: str) -> dict:
        """Run a tool and return its envelope

        Returns:
            {"success": True, ...} with the upstream payload under "data",
            or {"success": False, "error": {...}} with the normalized error
        """
        try:
            operation = self.resolve(tool_name)
            result = await self.client.execute(operation, clean_params(params), credential)
        except N8nAPIError as exc:
            logging.warning(f"[ToolExecutor] {tool_name} failed with code {exc.code}: {exc.message}")
            return exc.to_dict()
        except Exception as exc:
            logging.exception(f"[ToolExecutor] Unexpected error in '{tool_name}': {exc}")
            return UnexpectedError(
                f"Unexpected error in n8n tool execution: {exc}",
                500,
                f"INTERNAL ERROR: An unexpected error occurred while executing n8n tool.\n"
                f"Tool: {tool_name}\n"
                f"Parameters: {json.dumps(clean_params(params), indent=2, default=str)}\n"
                f"Error type: {type(exc).__name__}\n"
                f"Error message: {exc}",
            ).to_dict()

        logging.info(f"[ToolExecutor] {tool_name} succeeded")
        return success_envelope(result)

    def list_tools(self) -> List[Dict[str, Any]]:
        tools = []
        for operation in self.client.operations.values():
            described = operation.describe()
            described["name"] = f"{TOOL_PREFIX}{operation.name}"
            tools.append(described)
        return tools


def status_for(envelope: dict) -> int:
    """HTTP status to answer an envelope with; symbolic codes map to 500"""
    if envelope.get("success"):
        return 200
    code = envelope.get("error", {}).get("code")
    return code if isinstance(code, int) and not isinstance(code, bool) else 500


__all__ = [
    "INTERNAL_PARAMS",
    "TOOL_PREFIX",
    "ToolExecutor",
    "clean_params",
    "status_for",
    "success_envelope",
]
