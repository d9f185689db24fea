"""Request translation for n8n tool operations.

This module provides the RequestTranslator class which validates a loosely
typed parameter mapping against an Operation descriptor and shapes it into
an OutboundCall: substituted path, encoded query string, JSON body and
headers. No network I/O happens here.
"""

import json
import logging
import re
from typing import Any, Dict, Mapping, Optional, Tuple
from urllib.parse import quote

from yarl import URL

from .catalog import OPERATIONS
from .errors import AuthError, UnknownOperationError, ValidationError
from .models import AdapterConfig, APIParameter, Operation, OutboundCall, ParamLocation, ParamType

_PLACEHOLDER = re.compile(r"\{(\w+)\}")

_PYTHON_TYPES = {
    ParamType.STRING: str,
    ParamType.INTEGER: int,
    ParamType.NUMBER: (int, float),
    ParamType.BOOLEAN: bool,
    ParamType.ARRAY: (list, tuple),
    ParamType.OBJECT: Mapping,
}


def json_type(value: Any) -> str:
    """Name of a value's type in JSON vocabulary"""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    return type(value).__name__


def to_json(value: Any) -> str:
    return json.dumps(value, indent=2, default=str)


def matches_type(value: Any, param_type: ParamType) -> bool:
    if isinstance(value, bool) and param_type is not ParamType.BOOLEAN:
        return False
    return isinstance(value, _PYTHON_TYPES[param_type])


def expected_shape(params: Tuple[APIParameter, ...]) -> str:
    """Render declared parameters as e.g. { id: string, limit?: integer }"""
    fields = []
    for param in params:
        type_name = param.type.value
        if param.choices:
            type_name = " | ".join(f'"{choice}"' for choice in param.choices)
        elif param.items:
            type_name = f"{expected_shape(param.items)}[]"
        fields.append(f"{param.name}{'' if param.required else '?'}: {type_name}")
    return "{ " + ", ".join(fields) + " }"


def _invalid(summary: str, headline: str, *lines: str) -> ValidationError:
    return ValidationError(summary, 400, "\n".join((headline,) + lines))


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_value(param: APIParameter, value: Any, label: str) -> Any:
    """Check a present, non-null value against its declaration

    Args:
        param: Declaration of the parameter
        value: Value supplied by the caller
        label: Parameter path used in messages, e.g. relations[0].role

    Returns:
        The value to send upstream, with nested field renames applied

    Raises:
        ValidationError: If the value violates the declaration
    """
    if not matches_type(value, param.type):
        raise _invalid(
            f"Invalid parameter type: {label} must be {param.type.value}",
            f"TYPE ERROR: The '{label}' parameter must be {param.type.value}.",
            f"Expected: {param.type.value}",
            f"Received: {json_type(value)} with value: {json.dumps(value, default=str)}",
        )

    if param.type is ParamType.STRING:
        if param.non_empty and not value.strip():
            raise _invalid(
                f"Invalid parameter: {label} cannot be empty",
                f"VALIDATION ERROR: The '{label}' parameter cannot be empty or whitespace only.",
                f'Received: "{value}"',
            )
        if param.length is not None and len(value) != param.length:
            raise _invalid(
                f"Invalid {label} parameter",
                f"VALIDATION ERROR: '{label}' must be exactly {param.length} character(s) long.",
                f"Received {len(value)} character(s): {json.dumps(value)}",
            )

    if param.choices is not None and value not in param.choices:
        raise _invalid(
            f"Invalid {label} parameter",
            f"VALIDATION ERROR: '{label}' must be one of: {', '.join(param.choices)}.",
            f"Received: {json.dumps(value, default=str)}",
        )

    if param.type is ParamType.INTEGER:
        if param.minimum is not None and value < param.minimum:
            raise _invalid(
                f"Invalid {label} parameter",
                f"VALIDATION ERROR: '{label}' must be an integer of at least {param.minimum}.",
                f"Received: {value}",
            )
        if param.maximum is not None and value > param.maximum:
            raise _invalid(
                f"{label.capitalize()} too large",
                f"VALIDATION ERROR: '{label}' cannot exceed {param.maximum}.",
                f"Requested: {value}",
                f"Maximum allowed: {param.maximum}",
                "",
                "Use pagination with cursor to retrieve more results:",
                f"1. Set {label} to {param.maximum} or less",
                "2. Use the nextCursor from the response to get the next page",
            )

    if param.type is ParamType.ARRAY:
        if param.min_items is not None and len(value) < param.min_items:
            raise _invalid(
                f"Empty {label} array" if not value else f"Too few entries in {label}",
                f"VALIDATION ERROR: '{label}' must contain at least {param.min_items} item(s).",
                f"Received {len(value)} item(s).",
            )
        if param.items:
            return [_validate_item(param, item, f"{label}[{index}]") for index, item in enumerate(value)]
        return list(value)

    if param.type is ParamType.OBJECT:
        return dict(value)
    return value


def _validate_item(param: APIParameter, item: Any, label: str) -> dict:
    if not isinstance(item, Mapping):
        raise _invalid(
            f"Invalid parameter type: {label} must be object",
            f"TYPE ERROR: Each entry of '{param.name}' must be an object shaped like {expected_shape(param.items)}.",
            f"Received: {json_type(item)} with value: {json.dumps(item, default=str)}",
        )
    shaped = dict(item)
    for field in param.items:
        value = shaped.pop(field.name, None)
        field_label = f"{label}.{field.name}"
        if field.required and _is_blank(value):
            raise _missing(field, field_label, param.items, item)
        if value is None:
            continue
        shaped[field.wire_name] = validate_value(field, value, field_label)
    return shaped


def _missing(param: APIParameter, label: str, declared: Tuple[APIParameter, ...], received: Any) -> ValidationError:
    return _invalid(
        f"Missing required parameter: {label}",
        f"PARAMETER ERROR: The '{label}' parameter is required and must be a non-empty {param.type.value}.",
        f"Expected: {expected_shape(declared)}",
        f"Received: {to_json(received)}",
    )


class RequestTranslator:
    """Validates tool parameters and shapes them into outbound calls

    Args:
        config: Upstream base URL and header settings
        operations: Operation table to look names up in
    """

    def __init__(self, config: AdapterConfig, operations: Mapping[str, Operation] = OPERATIONS):
        self.config = config
        self.operations = operations

    def lookup(self, name: str) -> Operation:
        try:
            return self.operations[name]
        except KeyError:
            available = "\n".join(f"- {op}" for op in self.operations)
            raise UnknownOperationError(
                f"Unknown or unimplemented n8n tool: {name}",
                404,
                f"TOOL NOT FOUND: No operation is registered under '{name}'.\n\nAvailable operations:\n{available}",
            ) from None

    def translate(self, name: str, params: Optional[Mapping[str, Any]], credential: str) -> OutboundCall:
        """Build the outbound call for one invocation

        Raises:
            UnknownOperationError: If the operation name is not registered
            ValidationError: If any parameter is missing or malformed
            AuthError: If no credential was supplied
        """
        operation = self.lookup(name)
        values = self.validate(operation, params)

        if not isinstance(credential, str) or not credential.strip():
            raise AuthError(
                "n8n API key required",
                401,
                f"AUTHENTICATION ERROR: No API key was supplied for '{operation.name}'.",
            )

        declared = {p.name: p for p in operation.parameters}
        path_params = {p.name: values[p.name] for p in operation.parameters_in(ParamLocation.PATH)}
        path = _PLACEHOLDER.sub(lambda m: quote(str(path_params[m.group(1)]), safe=""), operation.path)

        query = {
            name: value for name, value in values.items() if declared[name].location is ParamLocation.QUERY
        }
        url = URL(f"{self.config.base_url}{path}", encoded=True)
        if query:
            url = url.with_query({key: _query_value(value) for key, value in query.items()})

        headers = {
            "Accept": "application/json",
            "User-Agent": self.config.user_agent,
            self.config.api_key_header: credential,
        }
        body = None
        if operation.has_body:
            body = {
                declared[name].wire_name: value
                for name, value in values.items()
                if declared[name].location is ParamLocation.BODY
            }
            if operation.unwrap_body:
                body = values[operation.unwrap_body]
            headers["Content-Type"] = "application/json"

        logging.info(f"[Translator] {operation.name} -> {operation.method.value} {path}")
        return OutboundCall(
            operation=operation.name,
            method=operation.method,
            path=path,
            url=str(url),
            headers=headers,
            query=query,
            path_params=path_params,
            body=body,
            has_body=operation.has_body,
        )

    def validate(self, operation: Operation, params: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        """Validate every declared parameter, returning only the present ones

        Query parameters keep the caller's ordering.
        """
        if params is None:
            params = {}
        if not isinstance(params, Mapping):
            raise _invalid(
                "Invalid parameters",
                f"VALIDATION ERROR: Parameters for '{operation.name}' must be an object.",
                f"Expected: {expected_shape(operation.parameters)}",
                f"Received: {json_type(params)} with value: {json.dumps(params, default=str)}",
            )

        declared = {p.name: p for p in operation.parameters}
        undeclared = [key for key in params if key not in declared]
        if undeclared:
            logging.debug(f"[Translator] {operation.name}: ignoring undeclared parameters {undeclared}")

        values: Dict[str, Any] = {}
        ordered = [declared[key] for key in params if key in declared]
        ordered += [p for p in operation.parameters if p.name not in params]
        for param in ordered:
            value = params.get(param.name)
            if _is_blank(value) and (param.required or value is None):
                if param.required:
                    raise _missing(param, param.name, operation.parameters, dict(params))
                continue
            values[param.name] = validate_value(param, value, param.name)
        return values


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


__all__ = [
    "RequestTranslator",
    "expected_shape",
    "json_type",
    "validate_value",
]
