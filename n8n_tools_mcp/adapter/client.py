"""Entry point combining request translation and transport."""

import logging
from typing import Any, Mapping, Optional

from .catalog import OPERATIONS
from .errors import N8nAPIError, UnexpectedError
from .models import AdapterConfig, Operation
from .transport import N8nTransport
from .translator import RequestTranslator


class N8nClient:
    """Runs one n8n operation per call: validate, shape, send, normalize

    Holds configuration only; no session or cache survives a call.

    Args:
        config: Upstream settings; read from the environment when omitted
        operations: Operation table, the built-in catalog by default
    """

    def __init__(self, config: AdapterConfig = None, operations: Mapping[str, Operation] = OPERATIONS):
        self.config = config or AdapterConfig.from_env()
        self.translator = RequestTranslator(self.config, operations)
        self.transport = N8nTransport(self.config)

    @property
    def operations(self) -> Mapping[str, Operation]:
        return self.translator.operations

    async def execute(self, operation: str, params: Optional[Mapping[str, Any]], credential: str) -> Any:
        """Execute a named operation

        Returns:
            The parsed upstream payload

        Raises:
            N8nAPIError: For validation, upstream and transport failures
        """
        try:
            call = self.translator.translate(operation, params, credential)
        except N8nAPIError as exc:
            logging.warning(f"[N8nClient] {operation} rejected before sending: {exc.message}")
            raise
        except Exception as exc:
            logging.exception(f"[N8nClient] Error preparing '{operation}': {exc}")
            raise UnexpectedError(
                f"Failed to prepare n8n request: {exc}",
                500,
                f"UNEXPECTED ERROR: Could not build the request for '{operation}'.\n"
                f"Error type: {type(exc).__name__}\nError message: {exc}",
            ) from exc
        return await self.transport.send(call)


__all__ = [
    "N8nClient",
]
