"""Tests for asset resolution and quote discovery."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import pytest

from xcm_api.base import AssetRegistry, TradeRouter
from xcm_api.exceptions import ValidationError
from xcm_api.quote import QuoteResolver
from xcm_api.registry import StaticAssetRegistry, guess_asset, resolve_asset
from xcm_api.types import AssetInfo

COINS = [
    {"symbol": "DOT", "assetId": 5, "decimals": 10},
    {
        "symbol": "USDT",
        "assetId": 10,
        "decimals": 6,
        "variants": [{"symbol": "USDT.wh"}, {"symbol": "xcUSDT", "decimals": 6, "id": 1984}],
    },
]


class DummyRouter(TradeRouter):
    def __init__(self, result: Any) -> None:
        self._result = result
        self.calls: list[tuple[Any, Any, str]] = []

    async def best_trade(self, token_in: Any, token_out: Any, amount_in: str) -> Any:
        self.calls.append((token_in, token_out, amount_in))
        return self._result


class BrokenRegistry(AssetRegistry):
    def lookup(self, symbol: str) -> AssetInfo:
        raise ConnectionError("registry offline")


class TestStaticAssetRegistry:
    def test_lookup_is_case_insensitive(self):
        registry = StaticAssetRegistry(COINS)
        assert registry.lookup("dot") == AssetInfo(symbol="DOT", id=5, decimals=10)

    def test_variants_inherit_decimals(self):
        registry = StaticAssetRegistry(COINS)
        assert registry.lookup("usdt.wh").decimals == 6
        assert registry.lookup("XCUSDT").id == 1984

    def test_unknown_symbol_raises(self):
        with pytest.raises(ValidationError):
            StaticAssetRegistry(COINS).lookup("BTC")

    def test_mapping_entries(self):
        registry = StaticAssetRegistry({"glmr": {"id": 0, "decimals": 18}})
        assert "GLMR" in registry
        assert registry.lookup("GLMR").decimals == 18

    def test_load_json_coin_list(self, tmp_path: Path):
        path = tmp_path / "coins.json"
        path.write_text(json.dumps({"coins": COINS}), encoding="utf-8")
        registry = StaticAssetRegistry.load_json(path)
        assert len(registry) == 4


class TestFallback:
    def test_guess_known_decimals(self):
        assert guess_asset("glmr").decimals == 18
        assert guess_asset("DOT").decimals == 10
        assert guess_asset("HDX") == AssetInfo(symbol="HDX", id="HDX", decimals=12)

    def test_resolve_falls_back_when_registry_fails(self):
        assert resolve_asset(BrokenRegistry(), "DOT") == guess_asset("DOT")

    def test_resolve_without_registry(self):
        assert resolve_asset(None, "GLMR").id == "GLMR"


def test_quote_uses_registry_ids_and_amount_out() -> None:
    router = DummyRouter({"amountOut": 4200, "route": [{"pool": "omnipool"}]})
    resolver = QuoteResolver(StaticAssetRegistry(COINS), router)

    quote = asyncio.run(resolver.quote("usdt", "DOT", "1000000"))

    assert router.calls == [(10, 5, "1000000")]
    assert quote.as_dict() == {
        "tokenIn": 10,
        "tokenOut": 5,
        "amountIn": "1000000",
        "amountOut": "4200",
        "route": [{"pool": "omnipool"}],
    }


def test_quote_reads_nested_amount_and_paths() -> None:
    router = DummyRouter({"route": {"amountOut": "77"}})
    quote = asyncio.run(QuoteResolver(None, router).quote("GLMR", "DOT", 10**18))
    assert quote.amount_out == "77"
    assert quote.token_in == "GLMR"

    router = DummyRouter({"outAmount": "5", "paths": ["GLMR>DOT"]})
    quote = asyncio.run(QuoteResolver(None, router).quote("GLMR", "DOT", "1"))
    assert quote.amount_out == "5"
    assert quote.route == ["GLMR>DOT"]


def test_quote_defaults_when_router_returns_nothing() -> None:
    quote = asyncio.run(QuoteResolver(None, DummyRouter(None)).quote("GLMR", "DOT", "1"))
    assert quote.amount_out == "0"
    assert quote.route is None
