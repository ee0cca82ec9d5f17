"""XCM API - resilient cross-chain transfer submission.

This library submits cross-chain transfers across a pool of interchangeable
RPC endpoints, retrying the whole build/dry-run/submit pipeline with a fixed
backoff until one attempt succeeds or the retry budget is exhausted.
"""

from .base import AssetRegistry, PreparedTransfer, Signer, TradeRouter, TransferBuilder
from .builder import XcmApiPreparedTransfer, XcmApiTransferBuilder
from .config import RetryPolicy, TransferConfig
from .constants import Chain
from .exceptions import (
    BuildFailure,
    ConfigurationError,
    ExhaustedRetries,
    MethodNotImplementedError,
    NetworkError,
    SubmissionFailure,
    ValidationError,
    ValidationFailure,
    XCMError,
)
from .orchestrator import SubmissionOrchestrator
from .pool import EndpointPool
from .quote import QuoteResolver
from .registry import StaticAssetRegistry, guess_asset, resolve_asset
from .signer import EvmSigner
from .types import (
    AssetInfo,
    AttemptContext,
    AttemptFailure,
    AttemptStage,
    DryRunOutcome,
    EndpointPair,
    Quote,
    RouteDescriptor,
    SubmissionResult,
)
from .utils import from_minor_units, parse_amount, to_minor_units

__version__ = "0.1.0"

__all__ = [
    # Engine
    "SubmissionOrchestrator",
    "EndpointPool",
    "RetryPolicy",
    "TransferConfig",
    # Capabilities
    "TransferBuilder",
    "PreparedTransfer",
    "Signer",
    "AssetRegistry",
    "TradeRouter",
    "XcmApiTransferBuilder",
    "XcmApiPreparedTransfer",
    "EvmSigner",
    "StaticAssetRegistry",
    "QuoteResolver",
    # Types and enums
    "Chain",
    "RouteDescriptor",
    "EndpointPair",
    "AttemptContext",
    "AttemptFailure",
    "AttemptStage",
    "DryRunOutcome",
    "SubmissionResult",
    "AssetInfo",
    "Quote",
    # Exceptions
    "XCMError",
    "ConfigurationError",
    "ValidationError",
    "NetworkError",
    "BuildFailure",
    "ValidationFailure",
    "SubmissionFailure",
    "ExhaustedRetries",
    "MethodNotImplementedError",
    # Utility functions
    "parse_amount",
    "to_minor_units",
    "from_minor_units",
    "guess_asset",
    "resolve_asset",
]
