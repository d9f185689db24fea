"""Data models for n8n tool operations and outbound calls.

This module contains the immutable structures that describe each supported
operation, its parameters, and the HTTP call derived from an invocation.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


DEFAULT_BASE_URL = "http://localhost:5678/api/v1"
DEFAULT_TIMEOUT_MS = 10_000


class HTTPMethod(Enum):
    """Supported HTTP methods for upstream calls"""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"


class ParamType(Enum):
    """Primitive types a parameter value must match exactly"""
    STRING = "string"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"


class ParamLocation(Enum):
    """Where a validated parameter ends up in the outbound call"""
    PATH = "path"
    QUERY = "query"
    BODY = "body"


@dataclass(frozen=True)
class APIParameter:
    """Declaration of a single operation parameter

    Args:
        name: Public parameter name accepted from callers
        type: Expected primitive type
        location: Path segment, query string entry or body field
        required: Whether the parameter must be present and non-null
        description: Parameter description for tool documentation
        upstream_name: Field name the n8n API expects, when it differs
        choices: Allowed values, if the parameter is an enum
        minimum: Lowest accepted integer value
        maximum: Highest accepted integer value
        non_empty: Reject empty or whitespace-only strings
        length: Exact length in code points for string values
        min_items: Minimum number of entries for array values
        items: Schema of the objects inside an array value
    """
    name: str
    type: ParamType
    location: ParamLocation = ParamLocation.BODY
    required: bool = False
    description: str = ""
    upstream_name: Optional[str] = None
    choices: Optional[Tuple[str, ...]] = None
    minimum: Optional[int] = None
    maximum: Optional[int] = None
    non_empty: bool = False
    length: Optional[int] = None
    min_items: Optional[int] = None
    items: Optional[Tuple["APIParameter", ...]] = None

    @property
    def wire_name(self) -> str:
        return self.upstream_name or self.name


@dataclass(frozen=True)
class Operation:
    """Descriptor of one tool operation backed by one n8n REST call

    Args:
        name: Unique operation name (becomes the tool name)
        method: HTTP method to use
        path: Path template relative to the API base, e.g. /workflows/{id}
        description: Operation description for tool documentation
        parameters: Declared parameters in documentation order
        unwrap_body: Body parameter whose value is sent as the whole body
    """
    name: str
    method: HTTPMethod
    path: str
    description: str
    parameters: Tuple[APIParameter, ...] = ()
    unwrap_body: Optional[str] = None

    def parameters_in(self, location: ParamLocation) -> Tuple[APIParameter, ...]:
        return tuple(p for p in self.parameters if p.location is location)

    @property
    def has_body(self) -> bool:
        return bool(self.parameters_in(ParamLocation.BODY))

    def describe(self) -> dict:
        """Describe the operation as a JSON-serializable dict"""
        return {
            "name": self.name,
            "method": self.method.value,
            "path": self.path,
            "description": self.description,
            "parameters": [_describe_parameter(p) for p in self.parameters],
        }


def _describe_parameter(param: APIParameter) -> dict:
    described: Dict[str, Any] = {
        "name": param.name,
        "type": param.type.value,
        "in": param.location.value,
        "required": param.required,
    }
    if param.description:
        described["description"] = param.description
    if param.choices:
        described["enum"] = list(param.choices)
    if param.minimum is not None:
        described["minimum"] = param.minimum
    if param.maximum is not None:
        described["maximum"] = param.maximum
    if param.items:
        described["items"] = [_describe_parameter(p) for p in param.items]
    return described


@dataclass(frozen=True)
class OutboundCall:
    """A fully validated HTTP call, consumed once by the transport"""
    operation: str
    method: HTTPMethod
    path: str
    url: str
    headers: Dict[str, str]
    query: Dict[str, Any] = field(default_factory=dict)
    path_params: Dict[str, Any] = field(default_factory=dict)
    body: Any = None
    has_body: bool = False

    def to_dict(self, mask_header: Optional[str] = None) -> dict:
        """Render the call for diagnostics, masking the credential header"""
        headers = dict(self.headers)
        if mask_header and mask_header in headers:
            headers[mask_header] = "***"
        return {
            "operation": self.operation,
            "method": self.method.value,
            "url": self.url,
            "path": self.path,
            "headers": headers,
            "query": self.query,
            "body": self.body,
        }


@dataclass(frozen=True)
class AdapterConfig:
    """Upstream connection settings

    Args:
        base_url: n8n public API root, without trailing slash
        timeout_ms: Per-call timeout in milliseconds
        api_key_header: Header carrying the credential
        user_agent: User-Agent sent with every call
        api_key: Default credential for callers that cannot send headers
    """
    base_url: str = DEFAULT_BASE_URL
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    api_key_header: str = "X-N8N-API-KEY"
    user_agent: str = "n8n-tools-mcp/1.0"
    api_key: Optional[str] = None

    def __post_init__(self):
        if self.timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {self.timeout_ms}")
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

    @classmethod
    def from_env(cls) -> "AdapterConfig":
        return cls(
            base_url=os.getenv("N8N_BASE_URL", DEFAULT_BASE_URL),
            timeout_ms=int(os.getenv("N8N_TIMEOUT_MS", DEFAULT_TIMEOUT_MS)),
            api_key=os.getenv("N8N_API_KEY") or None,
        )


__all__ = [
    "AdapterConfig",
    "APIParameter",
    "HTTPMethod",
    "Operation",
    "OutboundCall",
    "ParamLocation",
    "ParamType",
]
