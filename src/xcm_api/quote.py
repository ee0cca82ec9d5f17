"""Best-effort quote discovery between two assets."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from .base import AssetRegistry, TradeRouter
from .registry import resolve_asset
from .types import Quote

logger = logging.getLogger(__name__)


class QuoteResolver:
    """Resolve asset symbols and ask a trade router for the best output amount.

    Lookups that fail in the registry fall back to a local guess. There is no
    retry: a router failure propagates to the caller.
    """

    def __init__(self, registry: AssetRegistry | None, router: TradeRouter) -> None:
        self._registry = registry
        self._router = router

    async def quote(self, token_in: str, token_out: str, amount_in: str | int) -> Quote:
        asset_in = resolve_asset(self._registry, token_in)
        asset_out = resolve_asset(self._registry, token_out)
        amount = str(amount_in)

        logger.debug("Requesting quote %s %s -> %s", amount, asset_in.id, asset_out.id)
        result = await self._router.best_trade(asset_in.id, asset_out.id, amount)
        raw = dict(result) if isinstance(result, Mapping) else {}

        return Quote(
            token_in=asset_in.id,
            token_out=asset_out.id,
            amount_in=amount,
            amount_out=_amount_out(raw),
            route=raw.get("route") or raw.get("paths") or None,
            raw_response=raw,
        )


def _amount_out(result: Mapping[str, Any]) -> str:
    for key in ("amountOut", "outAmount"):
        value = result.get(key)
        if value is not None:
            return str(value)

    route = result.get("route")
    if isinstance(route, Mapping) and route.get("amountOut") is not None:
        return str(route["amountOut"])

    return "0"
