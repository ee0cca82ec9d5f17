"""Capability interfaces consumed by the submission orchestrator."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from .exceptions import MethodNotImplementedError
from .types import AssetInfo, AttemptContext


class PreparedTransfer(ABC):
    """A connection-bound transfer scoped to a single attempt."""

    supports_dry_run: bool = False

    async def dry_run(self) -> Any:
        raise MethodNotImplementedError("dry_run")

    @abstractmethod
    async def build(self) -> Any:
        """Return a payload the signer can authorise and submit."""

    @abstractmethod
    async def disconnect(self) -> None:
        pass


class TransferBuilder(ABC):
    """Construct prepared transfers against a concrete endpoint pair."""

    @abstractmethod
    async def prepare(self, context: AttemptContext) -> PreparedTransfer:
        pass


class Signer(ABC):
    """Authorise and submit a signable payload."""

    @abstractmethod
    async def submit(self, payload: Any, context: AttemptContext) -> str:
        """Return the transaction identifier of the submitted payload."""


class AssetRegistry(ABC):
    """Resolve asset symbols to protocol identifiers and decimals."""

    @abstractmethod
    def lookup(self, symbol: str) -> AssetInfo:
        pass


class TradeRouter(ABC):
    """Discover the best trade between two assets."""

    @abstractmethod
    async def best_trade(self, token_in: Any, token_out: Any, amount_in: str) -> Mapping[str, Any]:
        pass
