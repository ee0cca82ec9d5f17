"""Type definitions and data models for the XCM transfer submission engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

from .constants import Chain
from .exceptions import ValidationError
from .utils import parse_amount


class AttemptStage(Enum):
    """Pipeline stage at which an attempt failed."""

    BUILD = "build"
    DRY_RUN = "dry_run"
    SUBMIT = "submit"


class DryRunOutcome(Enum):
    """Result of the advisory dry-run for the successful attempt."""

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class RouteDescriptor:
    """Immutable description of one requested cross-chain transfer.

    ``amount`` is always the human-readable decimal string supplied by the
    caller. Scaling to minor units is left to the transfer builder.
    """

    source_chain: Chain
    destination_chain: Chain
    asset_symbol: str
    amount: str
    source_address: str
    destination_address: str
    abstract_decimals: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "source_chain", Chain.parse(self.source_chain))
        object.__setattr__(self, "destination_chain", Chain.parse(self.destination_chain))

        if self.source_chain is self.destination_chain:
            raise ValidationError(
                "Source and destination chain must differ",
                field="destination_chain",
                value=self.destination_chain.value,
            )

        for name in ("asset_symbol", "source_address", "destination_address"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ValidationError(f"{name} must be a non-empty string", field=name, value=value)
            object.__setattr__(self, name, value.strip())

        quantity = parse_amount(self.amount)
        amount = self.amount.strip() if isinstance(self.amount, str) else format(quantity, "f")
        object.__setattr__(self, "amount", amount)

    @property
    def asset_key(self) -> str:
        """Upper-cased symbol used for case-insensitive registry lookups."""
        return self.asset_symbol.upper()

    @property
    def decimal_amount(self) -> Decimal:
        return parse_amount(self.amount)

    def describe(self) -> str:
        return (
            f"{self.amount} {self.asset_symbol} "
            f"{self.source_chain.value} -> {self.destination_chain.value}"
        )


@dataclass(frozen=True)
class EndpointPair:
    """Concrete source/destination endpoints bound to one attempt."""

    source: str
    destination: str


@dataclass(frozen=True)
class AttemptContext:
    """A route descriptor bound to the endpoint pair chosen for one attempt."""

    route: RouteDescriptor
    endpoints: EndpointPair
    attempt: int

    @property
    def api_overrides(self) -> dict[str, list[str]]:
        return {
            self.route.source_chain.value: [self.endpoints.source],
            self.route.destination_chain.value: [self.endpoints.destination],
        }


@dataclass(frozen=True)
class AttemptFailure:
    """Diagnostic record of a failed attempt."""

    attempt: int
    stage: AttemptStage
    endpoints: EndpointPair
    error: BaseException

    def describe(self) -> str:
        return (
            f"attempt {self.attempt} failed at {self.stage.value} "
            f"({self.endpoints.source}, {self.endpoints.destination}): {self.error}"
        )


@dataclass(frozen=True)
class SubmissionResult:
    """Outcome of a successful orchestration run."""

    transaction_hash: str
    attempts: int
    endpoints: EndpointPair
    dry_run: DryRunOutcome = DryRunOutcome.SKIPPED


@dataclass(frozen=True)
class AssetInfo:
    """Protocol identifier and decimals for an asset symbol."""

    symbol: str
    id: Any
    decimals: int


@dataclass(frozen=True)
class Quote:
    """Best-effort trade quote between two assets."""

    token_in: Any
    token_out: Any
    amount_in: str
    amount_out: str
    route: Any | None = None
    raw_response: dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        return {
            "tokenIn": self.token_in,
            "tokenOut": self.token_out,
            "amountIn": self.amount_in,
            "amountOut": self.amount_out,
            "route": self.route,
        }
