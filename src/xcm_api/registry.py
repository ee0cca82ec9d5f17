"""Asset registry helpers resolving symbols to identifiers and decimals."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from .base import AssetRegistry
from .constants import DEFAULT_FALLBACK_DECIMALS, FALLBACK_DECIMALS
from .exceptions import ValidationError
from .types import AssetInfo

logger = logging.getLogger(__name__)


class StaticAssetRegistry(AssetRegistry):
    """Case-insensitive registry backed by an in-memory coin list."""

    def __init__(self, entries: Any = None) -> None:
        self._assets: dict[str, AssetInfo] = {}
        if entries is not None:
            self.register(entries)

    @classmethod
    def load_json(cls, path: str | Path) -> StaticAssetRegistry:
        """Load a registry from a JSON file holding a ``coins`` list or a mapping."""

        with Path(path).open("r", encoding="utf-8") as handle:
            data = json.load(handle)
        if isinstance(data, Mapping) and "coins" in data:
            data = data["coins"]
        registry = cls(data)
        logger.info("Loaded %d assets from %s", len(registry), path)
        return registry

    def register(self, entries: Any) -> None:
        """Register assets from a ``{symbol: {...}}`` mapping or a list of records.

        Records may carry ``variants`` which inherit the parent's decimals when
        they do not declare their own.
        """
        if isinstance(entries, Mapping):
            for symbol, value in entries.items():
                record = dict(value) if isinstance(value, Mapping) else {"id": value}
                record.setdefault("symbol", symbol)
                self._register_record(record, parent_decimals=None)
            return

        if isinstance(entries, Sequence) and not isinstance(entries, (str, bytes)):
            for entry in entries:
                if isinstance(entry, Mapping):
                    self._register_record(entry, parent_decimals=None)
            return

        raise ValidationError(
            "Registry entries must be a mapping or a sequence of mappings",
            field="entries",
            value=entries,
        )

    def lookup(self, symbol: str) -> AssetInfo:
        key = symbol.strip().upper()
        try:
            return self._assets[key]
        except KeyError:
            raise ValidationError(
                f"Unknown asset symbol: {symbol}", field="symbol", value=symbol
            ) from None

    def __len__(self) -> int:
        return len(self._assets)

    def __contains__(self, symbol: object) -> bool:
        return isinstance(symbol, str) and symbol.strip().upper() in self._assets

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _register_record(self, record: Mapping[str, Any], parent_decimals: int | None) -> None:
        symbol = record.get("symbol") or record.get("name")
        if not symbol:
            return

        decimals = _coerce_int(record.get("decimals"))
        if decimals is None:
            decimals = parent_decimals
        if decimals is None:
            logger.warning("Asset %s has no decimals; skipping", symbol)
            return

        asset_id = record.get("assetId")
        if asset_id is None:
            asset_id = record.get("id", str(symbol))

        key = str(symbol).upper()
        self._assets[key] = AssetInfo(symbol=str(symbol), id=asset_id, decimals=decimals)

        for variant in record.get("variants") or []:
            if isinstance(variant, Mapping):
                self._register_record(variant, parent_decimals=decimals)


def guess_asset(symbol: str) -> AssetInfo:
    """Local fallback when the registry cannot resolve a symbol."""

    key = symbol.strip().upper()
    return AssetInfo(
        symbol=symbol,
        id=symbol,
        decimals=FALLBACK_DECIMALS.get(key, DEFAULT_FALLBACK_DECIMALS),
    )


def resolve_asset(registry: AssetRegistry | None, symbol: str) -> AssetInfo:
    """Resolve ``symbol`` through ``registry``, falling back to a local guess."""

    if registry is not None:
        try:
            return registry.lookup(symbol)
        except Exception as exc:
            logger.warning("Registry lookup failed for %s (%s); using fallback guess", symbol, exc)
    return guess_asset(symbol)


def _coerce_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
