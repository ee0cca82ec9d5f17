from __future__ import annotations

import asyncio
from types import SimpleNamespace
from typing import Any

import pytest
import requests
from hexbytes import HexBytes
from requests import Session

from xcm_api.builder import XcmApiTransferBuilder
from xcm_api.config import RetryPolicy
from xcm_api.exceptions import BuildFailure, ExhaustedRetries, ValidationFailure
from xcm_api.orchestrator import SubmissionOrchestrator
from xcm_api.pool import EndpointPool
from xcm_api.registry import StaticAssetRegistry
from xcm_api.signer import EvmSigner
from xcm_api.types import AttemptContext, AttemptStage, EndpointPair, RouteDescriptor


class DummyResponse:
    def __init__(
        self,
        payload: Any,
        *,
        status_code: int = 200,
        content_type: str = "application/json",
    ) -> None:
        self._payload = payload
        self.status_code = status_code
        self.headers = {"Content-Type": content_type}
        self.text = payload if isinstance(payload, str) else repr(payload)

    def json(self) -> Any:
        if isinstance(self._payload, str):
            raise ValueError("not json")
        return self._payload


class DummySession(Session):
    def __init__(self, responses: dict[str, Any]) -> None:
        super().__init__()
        self._responses = responses
        self.calls: list[tuple[str, dict[str, Any], float]] = []
        self.closed = 0

    def post(self, url: str, json: dict[str, Any], timeout: float) -> Any:  # type: ignore[override]
        self.calls.append((url, json, timeout))
        for suffix, response in self._responses.items():
            if url.endswith(suffix):
                if isinstance(response, Exception):
                    raise response
                return response
        raise AssertionError(f"unexpected url {url}")

    def close(self) -> None:
        self.closed += 1
        super().close()


def _context(*, amount: str = "0.1", abstract_decimals: bool = True) -> AttemptContext:
    route = RouteDescriptor(
        source_chain="Moonbeam",
        destination_chain="Hydration",
        asset_symbol="DOT",
        amount=amount,
        source_address="0x0000000000000000000000000000000000000001",
        destination_address="7KqMfyEXGMAg8V2hBCvbXfFxoxhqGG8bYgaMjN9EoG6Jya9x",
        abstract_decimals=abstract_decimals,
    )
    return AttemptContext(route=route, endpoints=EndpointPair("wss://m2", "wss://h2"), attempt=2)


def _builder(session: DummySession, **kwargs: Any) -> XcmApiTransferBuilder:
    return XcmApiTransferBuilder(
        "https://builder.example/v4/", timeout=3.0, session_factory=lambda: session, **kwargs
    )


def test_request_body_binds_selected_endpoints() -> None:
    session = DummySession({})
    body = _builder(session).request_body(_context())

    assert body == {
        "from": "Moonbeam",
        "to": "Hydration",
        "currency": {"symbol": "DOT", "amount": "0.1"},
        "address": "7KqMfyEXGMAg8V2hBCvbXfFxoxhqGG8bYgaMjN9EoG6Jya9x",
        "senderAddress": "0x0000000000000000000000000000000000000001",
        "options": {
            "abstractDecimals": True,
            "xcmFormatCheck": True,
            "apiOverrides": {"Moonbeam": ["wss://m2"], "Hydration": ["wss://h2"]},
        },
    }


def test_non_abstract_amount_scaled_with_registry_decimals() -> None:
    registry = StaticAssetRegistry([{"symbol": "DOT", "assetId": 5, "decimals": 10}])
    body = _builder(DummySession({}), registry=registry).request_body(
        _context(amount="1.5", abstract_decimals=False)
    )

    assert body["currency"]["amount"] == "15000000000"
    assert body["options"]["abstractDecimals"] is False


def test_non_abstract_amount_with_too_many_digits_fails_build() -> None:
    with pytest.raises(BuildFailure):
        _builder(DummySession({})).request_body(
            _context(amount="0.00000000001", abstract_decimals=False)
        )


def test_build_returns_payload_and_disconnect_closes_session() -> None:
    tx = {"to": "0x0000000000000000000000000000000000000804", "data": "0x1234", "value": "0"}
    session = DummySession({"/x-transfer": DummyResponse(tx)})

    async def flow() -> Any:
        prepared = await _builder(session).prepare(_context())
        payload = await prepared.build()
        await prepared.disconnect()
        await prepared.disconnect()
        return prepared, payload

    prepared, payload = asyncio.run(flow())

    assert payload == tx
    assert prepared.closed
    assert session.closed == 1
    url, body, timeout = session.calls[0]
    assert url == "https://builder.example/v4/x-transfer"
    assert body["options"]["apiOverrides"]["Moonbeam"] == ["wss://m2"]
    assert timeout == 3.0


def test_build_unwraps_tx() -> None:
    session = DummySession({"/x-transfer": DummyResponse({"tx": {"to": "0x01"}})})

    async def build() -> Any:
        prepared = await _builder(session).prepare(_context())
        return await prepared.build()

    assert asyncio.run(build()) == {"to": "0x01"}


@pytest.mark.parametrize(
    "response",
    [
        DummyResponse("0xdeadbeef", content_type="text/plain"),
        DummyResponse({"tx": "0xdeadbeef"}),
    ],
)
def test_raw_call_data_fails_build(response: DummyResponse) -> None:
    session = DummySession({"/x-transfer": response})

    async def build() -> Any:
        prepared = await _builder(session).prepare(_context())
        return await prepared.build()

    with pytest.raises(BuildFailure) as excinfo:
        asyncio.run(build())
    assert excinfo.value.attempt == 2
    assert excinfo.value.details["payload_type"] == "str"


def test_http_error_raises_build_failure() -> None:
    session = DummySession({"/x-transfer": DummyResponse({"message": "bad"}, status_code=502)})

    async def build() -> Any:
        prepared = await _builder(session).prepare(_context())
        return await prepared.build()

    with pytest.raises(BuildFailure) as excinfo:
        asyncio.run(build())
    assert excinfo.value.status_code == 502
    assert excinfo.value.attempt == 2


def test_unreachable_service_raises_build_failure() -> None:
    session = DummySession({"/x-transfer": requests.ConnectionError("refused")})

    async def build() -> Any:
        prepared = await _builder(session).prepare(_context())
        return await prepared.build()

    with pytest.raises(BuildFailure):
        asyncio.run(build())


def test_dry_run_rejection_raises_validation_failure() -> None:
    session = DummySession(
        {"/dry-run": DummyResponse({"origin": {"success": False, "failureReason": "Funds"}})}
    )

    async def dry_run() -> Any:
        prepared = await _builder(session).prepare(_context())
        return await prepared.dry_run()

    with pytest.raises(ValidationFailure):
        asyncio.run(dry_run())


def test_dry_run_success_returns_result() -> None:
    session = DummySession({"/dry-run": DummyResponse({"origin": {"success": True}})})

    async def dry_run() -> Any:
        prepared = await _builder(session).prepare(_context())
        return await prepared.dry_run()

    assert asyncio.run(dry_run()) == {"origin": {"success": True}}


def test_calls_after_disconnect_fail() -> None:
    session = DummySession({"/x-transfer": DummyResponse({"to": "0x01"})})

    async def build_after_disconnect() -> Any:
        prepared = await _builder(session).prepare(_context())
        await prepared.disconnect()
        return await prepared.build()

    with pytest.raises(BuildFailure):
        asyncio.run(build_after_disconnect())
    assert session.calls == []


class DummyEth:
    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []

    def send_transaction(self, transaction: dict[str, Any]) -> HexBytes:
        self.sent.append(transaction)
        return HexBytes("0x" + "cd" * 32)


def _wired(
    monkeypatch: pytest.MonkeyPatch, response: DummyResponse, *, max_attempts: int = 3
) -> tuple[SubmissionOrchestrator, DummyEth, list[float]]:
    eth = DummyEth()
    signer = EvmSigner("0x" + "11" * 32, "https://rpc.example")
    monkeypatch.setattr(signer, "_connect", lambda: SimpleNamespace(eth=eth))
    builder = XcmApiTransferBuilder(
        "https://builder.example/v4",
        session_factory=lambda: DummySession(
            {"/dry-run": DummyResponse({"origin": {"success": True}}), "/x-transfer": response}
        ),
    )
    sleeps: list[float] = []

    async def sleep(seconds: float) -> None:
        sleeps.append(seconds)

    orchestrator = SubmissionOrchestrator(
        EndpointPool.default(),
        builder,
        signer,
        policy=RetryPolicy(max_attempts=max_attempts, backoff_seconds=0.5),
        sleep=sleep,
    )
    return orchestrator, eth, sleeps


class TestBuilderWithEvmSigner:
    """Run the bundled builder and signer together through the orchestrator."""

    def test_transaction_payload_is_signed_and_sent(self, monkeypatch: pytest.MonkeyPatch):
        tx = {"to": "0x0000000000000000000000000000000000000804", "data": "0x1234", "value": "0"}
        orchestrator, eth, sleeps = _wired(monkeypatch, DummyResponse({"tx": tx}))

        result = asyncio.run(orchestrator.submit(_context().route))

        assert result.transaction_hash == "0x" + "cd" * 32
        assert result.attempts == 1
        assert sleeps == []
        assert eth.sent[0]["data"] == "0x1234"
        assert eth.sent[0]["value"] == 0

    def test_raw_call_data_fails_at_build_without_signing(
        self, monkeypatch: pytest.MonkeyPatch
    ):
        """Call data the EVM signer cannot carry never reaches the signer."""
        orchestrator, eth, sleeps = _wired(
            monkeypatch, DummyResponse("0xdeadbeef", content_type="text/plain")
        )

        with pytest.raises(ExhaustedRetries) as excinfo:
            asyncio.run(orchestrator.submit(_context().route))

        assert eth.sent == []
        assert sleeps == [0.5, 0.5]
        assert [failure.stage for failure in excinfo.value.failures] == [AttemptStage.BUILD] * 3
        assert isinstance(excinfo.value.last_error, BuildFailure)
