"""HTTP transport and error normalization for n8n API calls.

This module provides the N8nTransport class which executes an OutboundCall
with a bounded timeout and turns every outcome into either a parsed payload
or a single N8nAPIError carrying a stable code and a diagnostic message.
"""

import asyncio
import json
import logging
import socket
import traceback
from datetime import datetime, timezone
from typing import Any

import aiohttp
from yarl import URL

from .errors import (
    AuthError,
    BusinessRuleError,
    DNSResolutionError,
    N8nAPIError,
    NotFoundError,
    PermissionDeniedError,
    UnexpectedError,
    UpstreamConnectionError,
    UpstreamHTTPError,
    UpstreamServerError,
    UpstreamTimeoutError,
    ValidationError,
)
from .models import AdapterConfig, OutboundCall

NO_CONTENT_PAYLOAD = {"success": True, "message": "Operation successful."}
MAX_CONTEXT_CHARS = 1000
MAX_TRACE_CHARS = 500


def _dump(value: Any) -> str:
    return json.dumps(value, indent=2, default=str)


def _lines(*lines: str) -> str:
    return "\n".join(lines)


class N8nTransport:
    """Executes outbound calls against the n8n API

    A new ClientSession is opened per call; nothing is shared between calls.

    Args:
        config: Base URL, timeout and credential header settings
    """

    def __init__(self, config: AdapterConfig):
        self.config = config

    async def send(self, call: OutboundCall) -> Any:
        """Execute the call and return the parsed payload

        Raises:
            N8nAPIError: For every failure, already normalized
        """
        logging.info(f"[Transport] {call.method.value} {call.path}")
        timeout = aiohttp.ClientTimeout(total=self.config.timeout_ms / 1000)
        request_kwargs = {"headers": call.headers}
        if call.has_body:
            request_kwargs["json"] = call.body

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.request(
                    call.method.value,
                    URL(call.url, encoded=True),
                    **request_kwargs,
                ) as response:
                    return await self._process_response(response, call)
        except N8nAPIError:
            raise
        except asyncio.TimeoutError:
            logging.error(f"[Transport] {call.method.value} {call.path} timed out after {self.config.timeout_ms}ms")
            raise self._timeout_error(call) from None
        except (aiohttp.ClientConnectorError, aiohttp.ServerDisconnectedError, aiohttp.ClientOSError,
                aiohttp.ClientPayloadError) as exc:
            logging.error(f"[Transport] Connection to n8n failed for {call.path}: {exc}")
            raise self.connection_error(exc, call) from exc
        except Exception as exc:
            logging.exception(f"[Transport] Unexpected error calling {call.path}: {exc}")
            raise self._unexpected_error(exc, call) from exc

    async def _process_response(self, response: aiohttp.ClientResponse, call: OutboundCall) -> Any:
        """Interpret the HTTP response as a payload or a normalized error"""
        if response.status == 204:
            return dict(NO_CONTENT_PAYLOAD)

        if not 200 <= response.status < 300:
            error_body = await self._read_error_body(response)
            logging.warning(f"[Transport] {call.operation} failed: n8n returned {response.status}")
            raise self.status_error(response.status, response.reason, error_body, call,
                                    dict(response.headers))

        try:
            payload = await response.json(content_type=None)
        except ValueError:
            payload = None
        if payload is None:
            return {"message": "No JSON body returned", "status": response.status}
        logging.info(f"[Transport] {call.operation} returned {response.status}")
        return payload

    @staticmethod
    async def _read_error_body(response: aiohttp.ClientResponse) -> Any:
        try:
            text = await response.text()
        except (aiohttp.ClientError, UnicodeDecodeError):
            return {"raw": "Failed to read error response"}
        try:
            return json.loads(text)
        except ValueError:
            return {"raw": text}

    def status_error(self, status: int, reason: str, error_body: Any, call: OutboundCall,
                     response_headers: dict = None) -> N8nAPIError:
        """Map a non-2xx response to its normalized error"""
        body = error_body if isinstance(error_body, dict) else {}

        if status == 401:
            return AuthError(
                "Authentication failed with n8n API",
                401,
                _lines(
                    "AUTHENTICATION ERROR: The provided API key is invalid, expired, or missing. Please verify:",
                    "1. API key is correct and active",
                    "2. API key has proper format (check n8n documentation)",
                    "3. n8n instance is running and accessible",
                    f"4. API endpoint URL is correct: {self.config.base_url}",
                    f"Endpoint attempted: {call.path}",
                    f"Response: {_dump(error_body)}",
                ),
            )

        if status == 403:
            return PermissionDeniedError(
                "Permission denied or rate limit exceeded",
                403,
                _lines(
                    "ACCESS DENIED: The operation was forbidden. Possible causes:",
                    "1. API key lacks required permissions for this operation",
                    "2. Rate limit exceeded - wait before retrying",
                    "3. Resource access restrictions",
                    "4. n8n instance configuration prevents this action",
                    f"Endpoint: {call.path}",
                    "Required permissions may include: workflow management, user management, or admin access",
                    f"Response details: {_dump(error_body)}",
                ),
            )

        if status == 404:
            return NotFoundError(
                "Resource not found",
                404,
                _lines(
                    "RESOURCE NOT FOUND: The requested resource does not exist. Check:",
                    "1. Resource ID is correct and exists",
                    "2. Resource hasn't been deleted",
                    "3. You have permission to access this resource",
                    "4. n8n instance contains the expected data",
                    f"Endpoint: {call.path}",
                    f"Path parameters: {_dump(call.path_params)}",
                    f"Request parameters: {_dump(call.query)}",
                    f"Response: {_dump(error_body)}",
                ),
            )

        if status == 400:
            reported = body.get("errors") or body.get("details") or []
            if not isinstance(reported, list):
                reported = [reported]
            if reported:
                itemized = "\n".join(
                    f"{index}. {item if isinstance(item, str) else json.dumps(item, default=str)}"
                    for index, item in enumerate(reported, start=1)
                )
            else:
                itemized = "Check parameter format, required fields, and data types"
            return ValidationError(
                "Invalid request parameters",
                400,
                _lines(
                    "VALIDATION ERROR: The request contains invalid data. Fix these issues:",
                    itemized,
                    f"Endpoint: {call.path}",
                    f"Request body: {_dump(call.body)}",
                    f"Query params: {_dump(call.query)}",
                    f"Server response: {_dump(error_body)}",
                ),
            )

        if status == 422:
            return BusinessRuleError(
                "Unprocessable entity - business logic validation failed",
                422,
                _lines(
                    "BUSINESS LOGIC ERROR: The request is syntactically correct but violates business rules:",
                    str(body.get("message") or "Unknown validation error"),
                    "Common issues:",
                    "1. Dependencies not met (e.g., trying to delete a resource in use)",
                    "2. State conflicts (e.g., activating already active workflow)",
                    "3. Data constraints violated",
                    f"Endpoint: {call.path}",
                    f"Full error details: {_dump(error_body)}",
                ),
            )

        if status == 500:
            return UpstreamServerError(
                "Internal server error in n8n",
                500,
                _lines(
                    "SERVER ERROR: n8n encountered an internal error. This usually indicates:",
                    "1. n8n instance issues (check n8n logs)",
                    "2. Database connectivity problems",
                    "3. Resource exhaustion (memory, disk space)",
                    "4. Configuration errors in n8n",
                    f"Endpoint: {call.path}",
                    f"Error response: {_dump(error_body)}",
                    "Recommend checking n8n instance health and logs",
                ),
            )

        error_context = {
            "endpoint": call.path,
            "method": call.method.value,
            "status": status,
            "statusText": reason,
            "headers": response_headers or {},
            "responseBody": error_body,
            "requestBody": call.body,
            "queryParams": call.query or None,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        summary = body.get("message") or body.get("error") or f"HTTP {status} {reason or ''}".rstrip()
        error_class = UpstreamServerError if status >= 500 else UpstreamHTTPError
        return error_class(
            f"n8n API error: {summary}",
            status,
            _lines(
                f"UNEXPECTED ERROR ({status}):",
                f"Endpoint: {call.path}",
                f"Method: {call.method.value}",
                f"Request details: {_dump({'body': call.body, 'query': call.query})[:MAX_CONTEXT_CHARS]}",
                f"Response: {_dump(error_body)[:MAX_CONTEXT_CHARS]}",
                f"Full error context: {_dump(error_context)[:MAX_CONTEXT_CHARS]}",
            ),
        )

    def _timeout_error(self, call: OutboundCall) -> UpstreamTimeoutError:
        timeout_ms = self.config.timeout_ms
        return UpstreamTimeoutError(
            f"Request to n8n timed out after {timeout_ms}ms",
            details=_lines(
                f"TIMEOUT ERROR: The request took longer than {timeout_ms}ms to complete.",
                "Possible causes:",
                "1. n8n instance is slow or overloaded",
                "2. Network connectivity issues",
                "3. Large data processing operation",
                "4. n8n instance is not responding",
                f"Endpoint: {call.path}",
                f"Method: {call.method.value}",
                "Suggestions:",
                "- Check n8n instance performance and logs",
                f"- Verify network connectivity to {self.config.base_url}",
                "- Consider increasing N8N_TIMEOUT_MS for large operations",
            ),
        )

    def connection_error(self, exc: Exception, call: OutboundCall) -> UpstreamConnectionError:
        """Classify a transport-level failure as a DNS or connection error"""
        base_url = self.config.base_url
        os_error = getattr(exc, "os_error", None)
        if isinstance(exc, aiohttp.ClientConnectorError) and isinstance(os_error, socket.gaierror):
            return DNSResolutionError(
                "Cannot resolve n8n hostname",
                details=_lines(
                    "DNS RESOLUTION FAILED: Cannot resolve hostname for n8n instance.",
                    f"Hostname: {URL(base_url).host}",
                    f"Full URL: {call.url}",
                    f"Error details: {exc}",
                    "",
                    "Check:",
                    "1. Hostname is correct in N8N_BASE_URL",
                    "2. DNS resolution is working",
                    "3. n8n instance is accessible from this network",
                    "4. Use IP address instead of hostname if DNS issues persist",
                ),
            )
        return UpstreamConnectionError(
            "Cannot connect to n8n instance",
            details=_lines(
                "CONNECTION FAILED: Unable to establish connection to n8n instance.",
                f"Error details: {exc}",
                f"Error type: {type(exc).__name__}",
                f"Target URL: {call.url}",
                "",
                "Troubleshooting steps:",
                "1. Verify n8n instance is running and accessible",
                f"2. Check the base URL configuration: {base_url}",
                "3. Verify network connectivity",
                "4. Check firewall settings",
                "5. Confirm n8n API is enabled and accessible",
                f"6. Try accessing {base_url}/healthz in a browser",
            ),
        )

    def _unexpected_error(self, exc: Exception, call: OutboundCall) -> UnexpectedError:
        trace = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        request_context = call.to_dict(mask_header=self.config.api_key_header)
        request_context["timeout_ms"] = self.config.timeout_ms
        return UnexpectedError(
            f"Failed to execute n8n request: {exc}",
            500,
            _lines(
                "UNEXPECTED ERROR: An unexpected error occurred while calling n8n API.",
                f"Error type: {type(exc).__name__}",
                f"Error message: {exc}",
                f"Endpoint: {call.path}",
                f"Method: {call.method.value}",
                f"Request context: {_dump(request_context)}",
                f"Stack trace: {trace[:MAX_TRACE_CHARS] if trace else 'Not available'}",
            ),
        )


__all__ = [
    "N8nTransport",
    "NO_CONTENT_PAYLOAD",
]
