"""End-to-end tests: FishbowlClient against the in-process fake server."""

from __future__ import annotations

import asyncio

import pytest

from fishbowl_link.client import FishbowlClient
from fishbowl_link.config import FishbowlConfig
from fishbowl_link.protocol.exceptions import FishbowlStatusError
from fishbowl_link.protocol.operations import PartGet
from fishbowl_link.session import SessionPhase
from fishbowl_link.transport.exceptions import FishbowlConnectionError, RequestTimeoutError
from fishbowl_link.transport.types import ResponseMode
from tests.helpers.expectations import assert_reason, expect_async_exception
from tests.helpers.fake_server import (
    CLOSE,
    Envelope,
    FakeFishbowlServer,
    default_handler,
    inactivity_response,
    login_response,
    request_body,
    request_name,
    response,
)

# Mark all tests in this module as integration tests
pytestmark = pytest.mark.integration


@pytest.mark.asyncio
async def test_login_captures_ticket(fishbowl_server: FakeFishbowlServer, client_config: FishbowlConfig):
    config = client_config.model_copy(update={"auto_login": False})
    async with FishbowlClient(config) as client:
        result = await client.login()

        assert result == {"statusCode": 1000}
        assert client.phase is SessionPhase.CONNECTED_LOGGED_IN
        assert client.session.session_key == "K1"
        assert client.session.user_id == 7

        login = fishbowl_server.requests[0]
        assert login.key == ""
        assert login.body["UserName"] == "admin"
        assert login.body["UserPassword"] == "ISMvKXpXpadDiUoOSoAfww=="
        assert login.body["IAID"] == 54321


@pytest.mark.asyncio
async def test_second_login_is_noop(fishbowl_server: FakeFishbowlServer, client_config: FishbowlConfig):
    config = client_config.model_copy(update={"auto_login": False})
    async with FishbowlClient(config) as client:
        _ = await client.login()
        assert await client.login() is None

    assert fishbowl_server.request_names == ["Login"]


@pytest.mark.asyncio
async def test_fifo_with_single_in_flight(fishbowl_server: FakeFishbowlServer, client_config: FishbowlConfig):
    async def slow_handler(request: Envelope):
        await asyncio.sleep(0.01)
        return await default_handler(request)

    fishbowl_server.handler = slow_handler

    async with FishbowlClient(client_config) as client:
        results = await asyncio.gather(*(client.part_get(f"P{n}") for n in range(5)))

    assert [r["Number"] for r in results] == [f"P{n}" for n in range(5)]
    assert fishbowl_server.request_names == ["Login"] + ["PartGet"] * 5
    assert [r.body["Number"] for r in fishbowl_server.requests[1:]] == [f"P{n}" for n in range(5)]
    assert all(r.key == "K1" for r in fishbowl_server.requests[1:])
    assert fishbowl_server.max_outstanding == 1


@pytest.mark.asyncio
async def test_request_waits_for_login_in_flight(
    fishbowl_server: FakeFishbowlServer,
    client_config: FishbowlConfig,
):
    async def slow_login(request: Envelope):
        if request_name(request) == "Login":
            await asyncio.sleep(0.05)
        return await default_handler(request)

    fishbowl_server.handler = slow_login
    config = client_config.model_copy(update={"auto_login": False})

    async with FishbowlClient(config) as client:
        login = asyncio.create_task(client.login())
        await asyncio.sleep(0.01)
        part = await client.part_get("B201")
        _ = await login

    assert fishbowl_server.request_names == ["Login", "PartGet"]
    assert fishbowl_server.requests[1].key == "K1"
    assert part["Number"] == "B201"


@pytest.mark.asyncio
async def test_inactivity_triggers_reconnect_and_relogin(
    fishbowl_server: FakeFishbowlServer,
    client_config: FishbowlConfig,
):
    expired = {"sent": False}

    async def expiring_handler(request: Envelope):
        if request_name(request) == "PartGet" and not expired["sent"]:
            expired["sent"] = True
            return inactivity_response()
        if request_name(request) == "Login":
            return login_response(key=f"K{fishbowl_server.connections}")
        return await default_handler(request)

    fishbowl_server.handler = expiring_handler

    async with FishbowlClient(client_config) as client:
        part = await client.part_get("B201")

    assert part["Number"] == "B201"
    assert fishbowl_server.request_names == ["Login", "PartGet", "Login", "PartGet"]
    assert [r.connection for r in fishbowl_server.requests] == [1, 1, 2, 2]
    assert fishbowl_server.requests[-1].key == "K2"


@pytest.mark.asyncio
async def test_connection_refused_is_fatal(closed_port: int):
    config = FishbowlConfig(port=closed_port, connect_timeout=1.0, request_timeout=5.0, max_connect_attempts=3)
    client = FishbowlClient(config)
    try:
        error = await expect_async_exception(client.part_get, FishbowlConnectionError, "B201")
    finally:
        await client.close()

    assert error.fatal is True


@pytest.mark.asyncio
async def test_io_fault_surfaces_then_reconnects(
    fishbowl_server: FakeFishbowlServer,
    client_config: FishbowlConfig,
):
    async def faulty_handler(request: Envelope):
        if request_name(request) == "PartGet" and request_body(request)["Number"] == "boom":
            return CLOSE
        return await default_handler(request)

    fishbowl_server.handler = faulty_handler

    async with FishbowlClient(client_config) as client:
        results = await asyncio.gather(
            client.part_get("boom"),
            client.part_get("B201"),
            return_exceptions=True,
        )

    assert isinstance(results[0], FishbowlConnectionError)
    assert results[0].fatal is False
    assert results[1]["Number"] == "B201"
    assert fishbowl_server.request_names == ["Login", "PartGet", "Login", "PartGet"]
    assert fishbowl_server.connections == 2


@pytest.mark.asyncio
async def test_in_flight_timeout_resets_and_recovers(
    fishbowl_server: FakeFishbowlServer,
    client_config: FishbowlConfig,
):
    async def silent_handler(request: Envelope):
        if request_name(request) == "PartGet" and request_body(request)["Number"] == "slow":
            return None
        return await default_handler(request)

    fishbowl_server.handler = silent_handler

    async with FishbowlClient(client_config) as client:
        error = await expect_async_exception(client.request, RequestTimeoutError, PartGet("slow"), timeout=0.1)
        part = await client.part_get("B201")

    assert error.in_flight is True
    assert part["Number"] == "B201"
    assert fishbowl_server.connections == 2


@pytest.mark.asyncio
async def test_status_error_does_not_break_session(
    fishbowl_server: FakeFishbowlServer,
    client_config: FishbowlConfig,
):
    async def handler(request: Envelope):
        if request_name(request) == "IssueSO":
            return response("IssueSORs", {"statusMessage": "SO 999 not found"}, inner_status=4101)
        return await default_handler(request)

    fishbowl_server.handler = handler

    async with FishbowlClient(client_config) as client:
        error = await expect_async_exception(client.issue_so, FishbowlStatusError, "999")
        part = await client.part_get("B201")

    assert error.code == 4101
    assert error.message == "SO 999 not found"
    assert part["Number"] == "B201"
    assert fishbowl_server.connections == 1


@pytest.mark.asyncio
async def test_query_and_import_round_trip(fishbowl_server: FakeFishbowlServer, client_config: FishbowlConfig):
    async def handler(request: Envelope):
        match request_name(request):
            case "ExecuteQuery":
                return response("ExecuteQueryRs", {"Rows": {"Row": ["ID,Name", '1,"A"', '2,"B"']}})
            case "ImportHeader":
                return response("ImportHeaderRs", {"Header": {"Row": ['"PartNumber","UOM"']}})
            case _:
                return await default_handler(request)

    fishbowl_server.handler = handler

    async with FishbowlClient(client_config) as client:
        records = await client.execute_query(query="SELECT id, name FROM part")
        raw = await client.execute_query(name="Parts", mode=ResponseMode.PASSTHROUGH)
        header = await client.import_header("ImportPart")
        imported = await client.import_rows("ImportPart", [{"PartNumber": "B201", "UOM": "ea"}], header=header)

    assert records == [{"ID": "1", "Name": "A"}, {"ID": "2", "Name": "B"}]
    assert raw["Rows"]["Row"][0] == "ID,Name"
    assert header == ["PartNumber", "UOM"]
    assert imported["Rows"] == {"Row": ['"PartNumber","UOM"', '"B201","ea"']}
    assert fishbowl_server.requests[1].body == {"Query": "SELECT id, name FROM part"}


@pytest.mark.asyncio
async def test_close_fails_outstanding_requests(
    fishbowl_server: FakeFishbowlServer,
    client_config: FishbowlConfig,
):
    async def never_answer(request: Envelope):
        if request_name(request) == "Login":
            return await default_handler(request)
        return None

    fishbowl_server.handler = never_answer
    client = FishbowlClient(client_config)
    pending = asyncio.create_task(client.part_get("B201"))
    await asyncio.sleep(0.05)

    await client.close()

    error = await expect_async_exception(pending, FishbowlConnectionError)
    assert_reason(error, "client closed")


@pytest.mark.asyncio
async def test_unanswered_auto_login_reconnects(
    fishbowl_server: FakeFishbowlServer,
    client_config: FishbowlConfig,
):
    logins = 0

    async def drop_first_login(request: Envelope):
        nonlocal logins
        if request_name(request) == "Login":
            logins += 1
            if logins == 1:
                return None
        return await default_handler(request)

    fishbowl_server.handler = drop_first_login
    config = client_config.model_copy(update={"request_timeout": 0.3})

    async with FishbowlClient(config) as client:
        part = await client.request(PartGet("B201"), timeout=2.0)

    assert part["Number"] == "B201"
    assert fishbowl_server.connections == 2
    assert fishbowl_server.request_names == ["Login", "Login", "PartGet"]


@pytest.mark.asyncio
async def test_connect_joins_connect_started_by_request(
    fishbowl_server: FakeFishbowlServer,
    client_config: FishbowlConfig,
):
    client = FishbowlClient(client_config)
    try:
        part = asyncio.create_task(client.part_get("B201"))
        await asyncio.sleep(0)
        await client.connect()

        assert (await part)["Number"] == "B201"
    finally:
        await client.close()

    assert fishbowl_server.connections == 1
    assert fishbowl_server.request_names == ["Login", "PartGet"]
