"""n8n tool adapter package.

This package translates named tool invocations into n8n public API calls
and normalizes every outcome into a payload or a single structured error.
"""

from .catalog import OPERATIONS
from .client import N8nClient
from .errors import N8nAPIError
from .models import AdapterConfig, APIParameter, HTTPMethod, Operation, OutboundCall, ParamLocation, ParamType
from .tools import ToolExecutor

__all__ = [
    "AdapterConfig",
    "APIParameter",
    "HTTPMethod",
    "N8nAPIError",
    "N8nClient",
    "OPERATIONS",
    "Operation",
    "OutboundCall",
    "ParamLocation",
    "ParamType",
    "ToolExecutor",
]
