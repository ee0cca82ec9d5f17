"""Round-robin endpoint pools keyed by chain."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from math import lcm
from types import MappingProxyType

from .constants import DEFAULT_ENDPOINTS, Chain
from .exceptions import ValidationError
from .types import EndpointPair, RouteDescriptor

logger = logging.getLogger(__name__)


class EndpointPool:
    """Immutable mapping from chain to an ordered, non-empty list of endpoints.

    Attempt ``n`` always selects index ``(n - 1) % len(pool)``, so every
    endpoint of a chain is tried once before any endpoint repeats and the
    same attempt number always yields the same endpoint.
    """

    def __init__(self, pools: Mapping[Chain | str, Sequence[str]]) -> None:
        normalised: dict[Chain, tuple[str, ...]] = {}
        for chain_key, endpoints in pools.items():
            chain = Chain.parse(chain_key)
            normalised[chain] = self._normalise_endpoints(chain, endpoints)
        self._pools: Mapping[Chain, tuple[str, ...]] = MappingProxyType(normalised)

    @classmethod
    def default(cls, overrides: Mapping[Chain | str, str] | None = None) -> EndpointPool:
        """Return the built-in pools with each override as the primary endpoint."""

        pools: dict[Chain, list[str]] = {
            chain: list(endpoints) for chain, endpoints in DEFAULT_ENDPOINTS.items()
        }
        for chain_key, url in (overrides or {}).items():
            chain = Chain.parse(chain_key)
            primary = url.strip() if isinstance(url, str) else ""
            if not primary:
                continue
            existing = pools.get(chain, [])
            # An override replaces the built-in primary unless it is already pooled.
            if primary in existing:
                fallback = [endpoint for endpoint in existing if endpoint != primary]
            else:
                fallback = existing[1:]
            pools[chain] = [primary, *fallback]
            logger.debug("Primary endpoint for %s set to %s", chain, primary)
        return cls(pools)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------
    def select(self, chain: Chain | str, attempt: int) -> str:
        if attempt < 1:
            raise ValidationError("Attempt numbers start at 1", field="attempt", value=attempt)

        endpoints = self.endpoints(chain)
        return endpoints[(attempt - 1) % len(endpoints)]

    def select_pair(self, route: RouteDescriptor, attempt: int) -> EndpointPair:
        return EndpointPair(
            source=self.select(route.source_chain, attempt),
            destination=self.select(route.destination_chain, attempt),
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    def endpoints(self, chain: Chain | str) -> tuple[str, ...]:
        resolved = Chain.parse(chain)
        try:
            return self._pools[resolved]
        except KeyError:
            raise ValidationError(
                f"No endpoint pool configured for {resolved.value}",
                field="chain",
                value=resolved.value,
            ) from None

    def chains(self) -> tuple[Chain, ...]:
        return tuple(self._pools)

    def cycle_length(self, route: RouteDescriptor) -> int:
        """Number of attempts after which the endpoint pair sequence repeats."""
        return lcm(
            len(self.endpoints(route.source_chain)),
            len(self.endpoints(route.destination_chain)),
        )

    def __contains__(self, chain: object) -> bool:
        try:
            return Chain.parse(chain) in self._pools  # type: ignore[arg-type]
        except ValidationError:
            return False

    def __repr__(self) -> str:
        sizes = ", ".join(f"{chain.value}={len(urls)}" for chain, urls in self._pools.items())
        return f"EndpointPool({sizes})"

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _normalise_endpoints(chain: Chain, endpoints: Iterable[str]) -> tuple[str, ...]:
        if isinstance(endpoints, str):
            endpoints = [endpoints]

        cleaned: list[str] = []
        for endpoint in endpoints:
            if not isinstance(endpoint, str) or not endpoint.strip():
                raise ValidationError(
                    f"Blank endpoint in pool for {chain.value}",
                    field="endpoints",
                    value=endpoint,
                )
            url = endpoint.strip()
            if url in cleaned:
                raise ValidationError(
                    f"Duplicate endpoint in pool for {chain.value}",
                    field="endpoints",
                    value=url,
                )
            cleaned.append(url)

        if not cleaned:
            raise ValidationError(
                f"Endpoint pool for {chain.value} is empty",
                field="endpoints",
                value=chain.value,
            )
        return tuple(cleaned)
