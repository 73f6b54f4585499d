"""Tests for ProgramDispatcher.send().

The delivery endpoint is replaced with an httpx.MockTransport so every test
can see exactly which requests were (or were not) issued.
"""

import json

import httpx
import pytest

from program_review_api.models import Client
from program_review_api.services.dispatcher import (
    DispatchTransportError,
    NoClientSelectedError,
    ProgramDispatcher,
)
from program_review_api.services.program_normalizer import normalize_program

ENDPOINT = "https://dashboard.test/api/programs/send-to-client"
CLIENTS = [Client(id="client-1", name="Alex"), Client(id="client-2", name="Sam")]


@pytest.fixture
def program(flat_routines):
    return normalize_program({"name": "Base", "program": {"routines": flat_routines}})


def _dispatcher(handler, requests):
    def record(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    return ProgramDispatcher(endpoint_url=ENDPOINT, timeout=5, transport=httpx.MockTransport(record))


class TestClientSelection:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("client_id", [None, "", "   "])
    async def test_no_client_fails_before_network(self, program, client_id):
        requests = []
        dispatcher = _dispatcher(lambda r: httpx.Response(200, json={"success": True}), requests)
        with pytest.raises(NoClientSelectedError):
            await dispatcher.send(client_id, program, "Hi", "import-1")
        assert requests == []

    @pytest.mark.asyncio
    async def test_unknown_client_fails_before_network(self, program):
        requests = []
        dispatcher = _dispatcher(lambda r: httpx.Response(200, json={"success": True}), requests)
        with pytest.raises(NoClientSelectedError):
            await dispatcher.send("client-9", program, None, "import-1", known_clients=CLIENTS)
        assert requests == []


class TestSend:

    @pytest.mark.asyncio
    async def test_success_returns_receipt(self, program):
        requests = []
        dispatcher = _dispatcher(
            lambda r: httpx.Response(200, json={"success": True, "message": "Program sent"}),
            requests,
        )
        receipt = await dispatcher.send("client-2", program, "Enjoy", "import-1", known_clients=CLIENTS)

        assert receipt.success is True
        assert receipt.client_id == "client-2"
        assert receipt.import_id == "import-1"
        assert receipt.message == "Program sent"

        assert len(requests) == 1
        body = json.loads(requests[0].content)
        assert body["clientId"] == "client-2"
        assert body["customMessage"] == "Enjoy"
        assert body["importId"] == "import-1"
        assert body["programData"]["name"] == "Base"
        assert body["programData"]["routines"] == []

    @pytest.mark.asyncio
    async def test_non_text_server_message_still_succeeds(self, program):
        dispatcher = _dispatcher(
            lambda r: httpx.Response(200, json={"success": True, "message": {"id": "p1"}}),
            [],
        )
        receipt = await dispatcher.send("client-1", program, import_id="import-1")

        assert receipt.success is True
        assert receipt.client_id == "client-1"
        assert receipt.message is None

    @pytest.mark.asyncio
    async def test_missing_message_sent_as_empty_string(self, program):
        requests = []
        dispatcher = _dispatcher(lambda r: httpx.Response(200, json={"success": True}), requests)
        await dispatcher.send("client-1", program)
        assert json.loads(requests[0].content)["customMessage"] == ""

    @pytest.mark.asyncio
    async def test_forwards_headers(self, program):
        requests = []
        dispatcher = _dispatcher(lambda r: httpx.Response(200, json={"success": True}), requests)
        await dispatcher.send("client-1", program, headers={"Authorization": "Bearer abc"})
        assert requests[0].headers["Authorization"] == "Bearer abc"


class TestTransportFailures:

    @pytest.mark.asyncio
    async def test_error_response_uses_server_message(self, program):
        requests = []
        dispatcher = _dispatcher(
            lambda r: httpx.Response(500, json={"message": "Failed", "error": "Client has no account"}),
            requests,
        )
        with pytest.raises(DispatchTransportError) as exc_info:
            await dispatcher.send("client-1", program)
        assert str(exc_info.value) == "Client has no account"
        assert exc_info.value.status_code == 500
        assert len(requests) == 1

    @pytest.mark.asyncio
    async def test_error_response_without_body_uses_generic_message(self, program):
        dispatcher = _dispatcher(lambda r: httpx.Response(502, text="Bad Gateway"), [])
        with pytest.raises(DispatchTransportError, match="Failed to send program to client"):
            await dispatcher.send("client-1", program)

    @pytest.mark.asyncio
    async def test_success_false_is_a_failure(self, program):
        dispatcher = _dispatcher(
            lambda r: httpx.Response(200, json={"success": False, "message": "Quota reached"}),
            [],
        )
        with pytest.raises(DispatchTransportError, match="Quota reached"):
            await dispatcher.send("client-1", program)

    @pytest.mark.asyncio
    async def test_network_error_not_retried(self, program):
        requests = []

        def fail(request):
            raise httpx.ConnectError("connection refused", request=request)

        dispatcher = _dispatcher(fail, requests)
        with pytest.raises(DispatchTransportError) as exc_info:
            await dispatcher.send("client-1", program)
        assert str(exc_info.value) == "Failed to send program to client"
        assert exc_info.value.status_code is None
        assert len(requests) == 1
