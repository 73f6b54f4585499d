"""
Send-to-client dispatch.

Hands a normalized program to the delivery endpoint, which writes it into the
client's program collection. One request per send; a failed send is retried
by the trainer, not by this module.
"""

import logging
from typing import Any, Dict, Iterable, Optional

import httpx

from program_review_api.config import settings
from program_review_api.models import Client, DispatchReceipt, Program

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_MESSAGE = "Failed to send program to client"


class NoClientSelectedError(ValueError):
    def __init__(self, message: str = "Please select a client first"):
        super().__init__(message)


class DispatchTransportError(RuntimeError):
    """The delivery endpoint could not be reached or rejected the program."""

    def __init__(self, message: str = DEFAULT_FAILURE_MESSAGE, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def _server_message(response: httpx.Response) -> Optional[str]:
    """Pull the ``message``/``error`` text out of an error payload, if any."""
    try:
        data = response.json()
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    for key in ("error", "message"):
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return None


class ProgramDispatcher:
    """Posts programs to the delivery endpoint."""

    def __init__(
        self,
        endpoint_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.endpoint_url = endpoint_url or settings.DISPATCH_API_URL
        self.timeout = timeout if timeout is not None else settings.DISPATCH_TIMEOUT_SECONDS
        self.transport = transport

    @staticmethod
    def _check_client(client_id: Optional[str], known_clients: Optional[Iterable[Client]]) -> str:
        if not client_id or not client_id.strip():
            raise NoClientSelectedError()
        if known_clients is not None and client_id not in {c.id for c in known_clients}:
            raise NoClientSelectedError(f"Client {client_id} is not one of your active clients")
        return client_id

    @staticmethod
    def build_payload(
        client_id: str,
        program: Program,
        custom_message: Optional[str],
        import_id: Optional[str],
    ) -> Dict[str, Any]:
        return {
            "clientId": client_id,
            "programData": program.model_dump(),
            "customMessage": custom_message or "",
            "importId": import_id,
        }

    async def send(
        self,
        client_id: Optional[str],
        program: Program,
        custom_message: Optional[str] = None,
        import_id: Optional[str] = None,
        known_clients: Optional[Iterable[Client]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> DispatchReceipt:
        """
        Send ``program`` to a client.

        Args:
            client_id: Target client; must be one of ``known_clients`` when given
            program: Normalized program
            custom_message: Note shown to the client with the program
            import_id: Sheets import the program came from
            known_clients: The trainer's client list
            headers: Extra request headers, e.g. forwarded auth

        Returns:
            DispatchReceipt from the delivery endpoint

        Raises:
            NoClientSelectedError: No usable client id; nothing was sent
            DispatchTransportError: Network failure or error response
        """
        client_id = self._check_client(client_id, known_clients)
        payload = self.build_payload(client_id, program, custom_message, import_id)

        logger.info(f"Sending program {program.name!r} to client {client_id}")
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.endpoint_url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Send to client {client_id} failed: {e}")
            raise DispatchTransportError() from e

        if not response.is_success:
            message = _server_message(response) or DEFAULT_FAILURE_MESSAGE
            logger.error(f"Send to client {client_id} rejected ({response.status_code}): {message}")
            raise DispatchTransportError(message, status_code=response.status_code)

        try:
            data = response.json()
        except ValueError:
            data = {}
        if isinstance(data, dict) and data.get("success") is False:
            message = _server_message(response) or DEFAULT_FAILURE_MESSAGE
            logger.error(f"Send to client {client_id} reported failure: {message}")
            raise DispatchTransportError(message, status_code=response.status_code)

        message = data.get("message") if isinstance(data, dict) else None
        return DispatchReceipt(
            success=True,
            client_id=client_id,
            import_id=import_id,
            message=message if isinstance(message, str) else None,
        )
