"""Tests for ledger read operations against an in-process node."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from ledger_rpc.application.ledger_client import LedgerClient
from ledger_rpc.domain import LookupStatus, TransactionChainStatus
from ledger_rpc.exceptions import (
    JsonObjectExpectedError,
    MalformedResponseError,
    ProgramNotFoundError,
    RequestFailedError,
    ServerResponseError,
)
from ledger_rpc.infrastructure import AdmissionGate
from tests.fakes import FakeClock, FakeLedgerNode, build_test_client

PROGRAM = "token.aleo"
MAPPING_PATH = f"/program/{PROGRAM}/mapping/balances"


@pytest.fixture
def client(node: FakeLedgerNode, clock: FakeClock, gate: AdmissionGate) -> LedgerClient:
    return build_test_client(node, clock=clock, gate=gate)


class TestHeight:
    """Tests for get_height."""

    async def test_height_is_cached_for_five_seconds(
        self, node: FakeLedgerNode, clock: FakeClock, client: LedgerClient
    ) -> None:
        node.respond("/latest/height", (200, "100"), (200, "101"))

        assert await client.get_height() == 100
        clock.advance(3.0)
        assert await client.get_height() == 100
        assert node.calls_to("/latest/height") == 1

        clock.advance(3.0)
        assert await client.get_height() == 101
        assert node.calls_to("/latest/height") == 2

    async def test_quoted_height_is_accepted(
        self, node: FakeLedgerNode, client: LedgerClient
    ) -> None:
        node.respond("/latest/height", (200, '"12"\n'))
        assert await client.get_height() == 12

    async def test_malformed_height_raises(
        self, node: FakeLedgerNode, client: LedgerClient
    ) -> None:
        node.respond("/latest/height", (200, "<html>oops</html>"))
        with pytest.raises(MalformedResponseError):
            await client.get_height()

    async def test_client_error_raises_without_retry(
        self, node: FakeLedgerNode, client: LedgerClient
    ) -> None:
        node.respond("/latest/height", (400, "bad"))

        with pytest.raises(RequestFailedError) as exc_info:
            await client.get_height()

        assert exc_info.value.status_code == 400
        assert node.calls_to("/latest/height") == 1

    async def test_server_errors_propagate_after_retries(
        self, node: FakeLedgerNode, client: LedgerClient
    ) -> None:
        node.respond("/latest/height", (503, "busy"))

        with pytest.raises(ServerResponseError):
            await client.get_height()

        assert node.calls_to("/latest/height") == 3


class TestProgram:
    """Tests for get_program and program_exists."""

    async def test_program_is_cached(
        self, node: FakeLedgerNode, clock: FakeClock, client: LedgerClient
    ) -> None:
        node.respond(f"/program/{PROGRAM}", (200, "program token.aleo;"))

        assert await client.get_program(PROGRAM) == "program token.aleo;"
        clock.advance(59.0)
        assert await client.get_program(PROGRAM) == "program token.aleo;"
        assert node.calls_to(f"/program/{PROGRAM}") == 1

        clock.advance(1.0)
        await client.get_program(PROGRAM)
        assert node.calls_to(f"/program/{PROGRAM}") == 2

    async def test_missing_program_raises_not_found(self, client: LedgerClient) -> None:
        with pytest.raises(ProgramNotFoundError) as exc_info:
            await client.get_program("missing.aleo")

        assert exc_info.value.program_id == "missing.aleo"
        assert exc_info.value.status_code == 404

    async def test_program_exists(self, node: FakeLedgerNode, client: LedgerClient) -> None:
        node.respond(f"/program/{PROGRAM}", (200, "program token.aleo;"))

        assert await client.program_exists(PROGRAM) is True
        assert await client.program_exists("missing.aleo") is False

    async def test_program_exists_is_false_when_node_is_down(
        self, node: FakeLedgerNode, client: LedgerClient
    ) -> None:
        node.respond(f"/program/{PROGRAM}", (502, "bad gateway"))
        assert await client.program_exists(PROGRAM) is False


class TestMappingValue:
    """Tests for get_mapping_value."""

    async def test_value_is_returned_and_cached(
        self, node: FakeLedgerNode, clock: FakeClock, client: LedgerClient
    ) -> None:
        node.respond(f"{MAPPING_PATH}/alice", (200, '"1000u64"'))

        assert await client.get_mapping_value(PROGRAM, "balances", "alice") == '"1000u64"'
        clock.advance(9.0)
        await client.get_mapping_value(PROGRAM, "balances", "alice")

        assert node.calls_to(f"{MAPPING_PATH}/alice") == 1

    async def test_missing_key_is_cached_as_none(
        self, node: FakeLedgerNode, clock: FakeClock, client: LedgerClient
    ) -> None:
        assert await client.get_mapping_value(PROGRAM, "balances", "nobody") is None
        clock.advance(5.0)
        assert await client.get_mapping_value(PROGRAM, "balances", "nobody") is None
        assert node.calls_to(f"{MAPPING_PATH}/nobody") == 1

        clock.advance(5.0)
        await client.get_mapping_value(PROGRAM, "balances", "nobody")
        assert node.calls_to(f"{MAPPING_PATH}/nobody") == 2

    async def test_network_failure_is_raised_not_none(
        self, node: FakeLedgerNode, client: LedgerClient
    ) -> None:
        node.respond(f"{MAPPING_PATH}/alice", httpx.ReadTimeout("slow"))

        with pytest.raises(httpx.ReadTimeout):
            await client.get_mapping_value(PROGRAM, "balances", "alice")

    async def test_failures_are_not_cached(
        self, node: FakeLedgerNode, client: LedgerClient
    ) -> None:
        busy = (503, "busy")
        node.respond(f"{MAPPING_PATH}/alice", busy, busy, busy, (200, "1u8"))

        with pytest.raises(ServerResponseError):
            await client.get_mapping_value(PROGRAM, "balances", "alice")

        assert await client.get_mapping_value(PROGRAM, "balances", "alice") == "1u8"


class TestBatchedMappings:
    """Tests for lookup_mapping_values and get_mapping_values."""

    async def test_one_failing_key_does_not_fail_the_batch(
        self, node: FakeLedgerNode, client: LedgerClient
    ) -> None:
        node.respond(f"{MAPPING_PATH}/a", (200, "1u64"))
        node.respond(f"{MAPPING_PATH}/c", (503, "busy"))

        results = await client.lookup_mapping_values(PROGRAM, "balances", ["a", "b", "c"])

        assert list(results) == ["a", "b", "c"]
        assert results["a"].status is LookupStatus.FOUND
        assert results["a"].value == "1u64"
        assert results["b"].status is LookupStatus.ABSENT
        assert results["c"].status is LookupStatus.UNAVAILABLE
        assert isinstance(results["c"].error, ServerResponseError)

    async def test_collapsed_batch_maps_failures_to_none(
        self, node: FakeLedgerNode, client: LedgerClient
    ) -> None:
        node.respond(f"{MAPPING_PATH}/a", (200, "1u64"))
        node.respond(f"{MAPPING_PATH}/c", httpx.ReadError("reset"))

        values = await client.get_mapping_values(PROGRAM, "balances", ["a", "b", "c"])

        assert values == {"a": "1u64", "b": None, "c": None}

    async def test_duplicate_keys_are_fetched_once(
        self, node: FakeLedgerNode, client: LedgerClient
    ) -> None:
        node.respond(f"{MAPPING_PATH}/a", (200, "1u64"))

        results = await client.lookup_mapping_values(PROGRAM, "balances", ["a", "a"])

        assert list(results) == ["a"]
        assert node.calls_to(f"{MAPPING_PATH}/a") == 1

    async def test_empty_batch(self, node: FakeLedgerNode, client: LedgerClient) -> None:
        assert await client.lookup_mapping_values(PROGRAM, "balances", []) == {}
        assert node.calls == []


class TestTransactionsAndBlocks:
    """Tests for structured lookups."""

    async def test_transaction_found(self, node: FakeLedgerNode, client: LedgerClient) -> None:
        payload = {"id": "at1", "type": "execute"}
        node.respond("/transaction/at1", (200, json.dumps(payload)))

        assert await client.get_transaction("at1") == payload

    async def test_missing_transaction_is_absent(self, client: LedgerClient) -> None:
        lookup = await client.lookup_transaction("at404")

        assert lookup.is_absent
        assert await client.get_transaction("at404") is None

    async def test_server_failure_is_unavailable(
        self, node: FakeLedgerNode, client: LedgerClient
    ) -> None:
        node.respond("/transaction/at1", (500, "oops"))

        lookup = await client.lookup_transaction("at1")

        assert lookup.is_unavailable
        assert isinstance(lookup.error, ServerResponseError)
        assert lookup.value_or_none() is None

    async def test_terminal_client_error_is_unavailable(
        self, node: FakeLedgerNode, client: LedgerClient
    ) -> None:
        node.respond("/transaction/at1", (422, "bad id"))

        lookup = await client.lookup_transaction("at1")

        assert lookup.is_unavailable
        assert isinstance(lookup.error, RequestFailedError)
        assert node.calls_to("/transaction/at1") == 1

    async def test_malformed_body_is_unavailable(
        self, node: FakeLedgerNode, client: LedgerClient
    ) -> None:
        node.respond("/transaction/at1", (200, "<html>gateway</html>"))

        lookup = await client.lookup_transaction("at1")

        assert lookup.is_unavailable
        assert isinstance(lookup.error, MalformedResponseError)

    async def test_non_object_json_is_unavailable(
        self, node: FakeLedgerNode, client: LedgerClient
    ) -> None:
        node.respond("/block/5", (200, "[1, 2, 3]"))

        lookup = await client.lookup_block(5)

        assert isinstance(lookup.error, JsonObjectExpectedError)

    async def test_block_found(self, node: FakeLedgerNode, client: LedgerClient) -> None:
        node.respond("/block/5", (200, '{"block_hash": "ab1", "header": {}}'))

        block = await client.get_block(5)

        assert block == {"block_hash": "ab1", "header": {}}

    @pytest.mark.parametrize(
        ("body", "expected"),
        [
            ('{"type": "accepted"}', TransactionChainStatus.FINALIZED),
            ('{"status": "rejected"}', TransactionChainStatus.REJECTED),
            ('{"id": "at1", "block_height": 10}', TransactionChainStatus.FINALIZED),
            ('{"id": "at1"}', TransactionChainStatus.PROCESSING),
        ],
    )
    async def test_transaction_status(
        self,
        node: FakeLedgerNode,
        client: LedgerClient,
        body: str,
        expected: TransactionChainStatus,
    ) -> None:
        node.respond("/transaction/at1", (200, body))
        assert await client.get_transaction_status("at1") is expected

    async def test_unknown_transaction_status(self, client: LedgerClient) -> None:
        assert await client.get_transaction_status("at404") is TransactionChainStatus.UNKNOWN


class TestClientBehaviour:
    """Tests for cache ownership, bursts and lifecycle."""

    async def test_burst_of_ten_never_exceeds_six_in_flight(self, gate: AdmissionGate) -> None:
        node = FakeLedgerNode(latency_seconds=0.01)
        keys = [f"k{index}" for index in range(10)]
        for key in keys:
            node.respond(f"{MAPPING_PATH}/{key}", (200, f"{key}u8"))
        client = build_test_client(node, gate=gate)

        results = await asyncio.gather(
            *(client.get_mapping_value(PROGRAM, "balances", key) for key in keys)
        )

        assert results == [f"{key}u8" for key in keys]
        assert node.peak_in_flight == 6
        assert gate.active_count == 0

    async def test_caches_are_per_client(
        self, node: FakeLedgerNode, clock: FakeClock, gate: AdmissionGate
    ) -> None:
        node.respond("/latest/height", (200, "1"))
        first = build_test_client(node, clock=clock, gate=gate)
        second = build_test_client(node, clock=clock, gate=gate)

        await first.get_height()
        await second.get_height()

        assert node.calls_to("/latest/height") == 2

    async def test_clear_cache_forces_refetch(
        self, node: FakeLedgerNode, client: LedgerClient
    ) -> None:
        node.respond("/latest/height", (200, "1"))
        await client.get_height()

        client.clear_cache()
        await client.get_height()

        assert node.calls_to("/latest/height") == 2

    async def test_set_verbose(self, client: LedgerClient) -> None:
        client.set_verbose(True)
        assert client.verbose is True

    def test_trailing_slash_is_stripped(self) -> None:
        client = LedgerClient("https://node.test/v1/", "testnet", http=None)
        assert client.base_url == "https://node.test/v1"
        assert client.network == "testnet"

    async def test_default_session_follows_redirects(self) -> None:
        client = LedgerClient("https://node.test/v1", "testnet")
        assert client._http.session.follow_redirects is True
        await client.aclose()

    async def test_redirected_height_is_read_from_the_target(
        self, node: FakeLedgerNode, client: LedgerClient
    ) -> None:
        node.respond(
            "/latest/height",
            (308, "", {"Location": "https://node.test/v1/testnet/moved/height"}),
        )
        node.respond("/moved/height", (200, "31"))

        assert await client.get_height() == 31
        assert node.calls_to("/latest/height") == 1

    async def test_async_context_manager_closes_transport(self, node: FakeLedgerNode) -> None:
        client = build_test_client(node)
        async with client as entered:
            assert entered is client
        node.respond("/latest/height", (200, "1"))
        with pytest.raises(RuntimeError):
            await client.get_height()
