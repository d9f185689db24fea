"""Credential extraction from inbound request headers."""

import json
import logging
from typing import Any, List, Mapping, Optional

from .errors import AuthError

API_KEY_HEADERS = ("x-apikey", "x-api-key")
BEARER_PREFIX = "Bearer "


def _header_values(headers: Mapping[str, Any], name: str) -> Optional[List[Any]]:
    if hasattr(headers, "getlist"):
        values = headers.getlist(name)
        return values or None
    value = headers.get(name)
    if value is None:
        return None
    return list(value) if isinstance(value, (list, tuple)) else [value]


def extract_bearer_token(headers: Mapping[str, Any]) -> Optional[str]:
    values = _header_values(headers, "authorization") or []
    for value in values:
        if isinstance(value, str) and value.startswith(BEARER_PREFIX):
            return value[len(BEARER_PREFIX):]
    return None


def extract_api_key(headers: Mapping[str, Any]) -> str:
    """Find the n8n API key in request headers

    Dedicated API-key headers take priority over an Authorization Bearer
    token; an empty header value counts as absent. Header names are expected
    in lower case, as ASGI delivers them.

    Raises:
        AuthError: If no usable credential is present
    """
    for name in API_KEY_HEADERS:
        values = _header_values(headers, name)
        if values is None or values[:1] == [""]:
            continue
        if not values:
            raise AuthError(
                "Empty API key array provided",
                401,
                f"AUTHENTICATION ERROR: API key header contains an empty array.\n"
                f"Header found: {name}\n\n"
                f"To fix:\n"
                f"1. Provide a single API key value in the header\n"
                f"2. Example: x-api-key: your-actual-api-key-here",
            )
        api_key = values[0]
        if not isinstance(api_key, str) or not api_key.strip():
            raise AuthError(
                "Invalid API key format",
                401,
                f"AUTHENTICATION ERROR: API key must be a non-empty string.\n"
                f"Header: {name}\n"
                f"Received type: {type(api_key).__name__}\n\n"
                f"Requirements:\n"
                f"1. API key must be a string\n"
                f"2. Cannot be empty or whitespace only\n"
                f"3. Should be your n8n API key from n8n settings",
            )
        return api_key

    token = extract_bearer_token(headers)
    if token:
        return token

    logging.warning("[Auth] Request without n8n API key")
    raise AuthError(
        "n8n API key required",
        401,
        f"AUTHENTICATION ERROR: No API key found for n8n tools.\n"
        f"Provide API key using one of these methods:\n"
        f"1. Header: x-api-key: your-n8n-api-key\n"
        f"2. Header: x-apikey: your-n8n-api-key\n"
        f"3. Header: Authorization: Bearer your-n8n-api-key\n\n"
        f"To get your n8n API key open n8n, go to Settings > n8n API and create a key.\n\n"
        f"Current headers: {json.dumps(sorted(headers.keys()))}",
    )


__all__ = [
    "API_KEY_HEADERS",
    "extract_api_key",
    "extract_bearer_token",
]
