"""Configuration containers for the XCM transfer submission engine."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from .constants import (
    DEFAULT_AMOUNT,
    DEFAULT_ASSET,
    DEFAULT_BACKOFF_SECONDS,
    DEFAULT_DESTINATION_CHAIN,
    DEFAULT_FAILURE_HISTORY,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MOONBEAM_RPC_URL,
    DEFAULT_RECEIPT_TIMEOUT,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_SOURCE_CHAIN,
    DEFAULT_XCM_API_URL,
    WS_URL_ENV_KEYS,
    Chain,
)
from .exceptions import ConfigurationError, ValidationError
from .types import RouteDescriptor

_REQUIRED_KEYS = ("DEST_ADDRESS", "SOURCE_ADDRESS", "PRIVATE_KEY")

# RetryPolicy field -> environment key that sets it.
RETRY_ENV_KEYS = {
    "max_attempts": "XCM_MAX_ATTEMPTS",
    "backoff_seconds": "XCM_BACKOFF_MS",
    "abort_on_dry_run_failure": "XCM_ABORT_ON_DRY_RUN_FAILURE",
    "failure_history": "XCM_FAILURE_HISTORY",
}

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry budget with a fixed backoff between attempts."""

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    backoff_seconds: float = DEFAULT_BACKOFF_SECONDS
    abort_on_dry_run_failure: bool = False
    failure_history: int = DEFAULT_FAILURE_HISTORY

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValidationError(
                "max_attempts must be at least 1", field="max_attempts", value=self.max_attempts
            )
        if self.backoff_seconds < 0:
            raise ValidationError(
                "backoff_seconds must be non-negative",
                field="backoff_seconds",
                value=self.backoff_seconds,
            )
        if self.failure_history < 1:
            raise ValidationError(
                "failure_history must be at least 1",
                field="failure_history",
                value=self.failure_history,
            )


@dataclass(frozen=True)
class TransferConfig:
    """Aggregated configuration for one deployment of the transfer runner."""

    source_address: str
    destination_address: str
    private_key: str
    source_chain: Chain = DEFAULT_SOURCE_CHAIN
    destination_chain: Chain = DEFAULT_DESTINATION_CHAIN
    amount: str = DEFAULT_AMOUNT
    asset: str = DEFAULT_ASSET
    abstract_decimals: bool = True
    source_rpc_url: str = DEFAULT_MOONBEAM_RPC_URL
    endpoint_overrides: Mapping[Chain, str] = field(default_factory=dict)
    builder_api_url: str = DEFAULT_XCM_API_URL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    wait_for_receipt: bool = False
    receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT
    retry: RetryPolicy = RetryPolicy()

    def route(self) -> RouteDescriptor:
        """Build the route descriptor described by this configuration."""

        return RouteDescriptor(
            source_chain=self.source_chain,
            destination_chain=self.destination_chain,
            asset_symbol=self.asset,
            amount=self.amount,
            source_address=self.source_address,
            destination_address=self.destination_address,
            abstract_decimals=self.abstract_decimals,
        )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> TransferConfig:
        """Read configuration from environment-style key/value pairs.

        Raises:
            ConfigurationError: If a required key is missing or a value is malformed
        """
        env = os.environ if environ is None else environ

        missing = [key for key in _REQUIRED_KEYS if not _get(env, key)]
        if missing:
            raise ConfigurationError(
                f"Set {', '.join(missing)} in the environment or .env",
                key=missing[0],
                details={"missing": missing},
            )

        try:
            source_chain = Chain.parse(_get(env, "SOURCE_CHAIN") or DEFAULT_SOURCE_CHAIN)
            destination_chain = Chain.parse(
                _get(env, "DESTINATION_CHAIN") or DEFAULT_DESTINATION_CHAIN
            )
        except ValidationError as exc:
            raise ConfigurationError(str(exc), key="SOURCE_CHAIN/DESTINATION_CHAIN") from exc

        overrides = {
            chain: url for chain, key in WS_URL_ENV_KEYS.items() if (url := _get(env, key))
        }

        try:
            retry = RetryPolicy(
                max_attempts=_int(env, "XCM_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS),
                backoff_seconds=_int(env, "XCM_BACKOFF_MS", int(DEFAULT_BACKOFF_SECONDS * 1000))
                / 1000,
                abort_on_dry_run_failure=_bool(env, "XCM_ABORT_ON_DRY_RUN_FAILURE", False),
                failure_history=_int(env, "XCM_FAILURE_HISTORY", DEFAULT_FAILURE_HISTORY),
            )
        except ValidationError as exc:
            key = RETRY_ENV_KEYS.get(exc.field or "", exc.field)
            raise ConfigurationError(
                f"{key}: {exc}", key=key, details={"value": exc.value}
            ) from exc

        return cls(
            source_address=_get(env, "SOURCE_ADDRESS"),
            destination_address=_get(env, "DEST_ADDRESS"),
            private_key=_get(env, "PRIVATE_KEY"),
            source_chain=source_chain,
            destination_chain=destination_chain,
            amount=_get(env, "AMOUNT") or DEFAULT_AMOUNT,
            asset=_get(env, "ASSET") or DEFAULT_ASSET,
            source_rpc_url=_get(env, "MOONBEAM_RPC_URL") or DEFAULT_MOONBEAM_RPC_URL,
            endpoint_overrides=overrides,
            builder_api_url=(_get(env, "XCM_API_URL") or DEFAULT_XCM_API_URL).rstrip("/"),
            request_timeout=_float(env, "XCM_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT),
            wait_for_receipt=_bool(env, "XCM_WAIT_FOR_RECEIPT", False),
            retry=retry,
        )


def _get(env: Mapping[str, str], key: str) -> str:
    return (env.get(key) or "").strip()


def _int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = _get(env, key)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{key} must be an integer", key=key) from exc


def _float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = _get(env, key)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{key} must be a number", key=key) from exc


def _bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = _get(env, key).lower()
    if not raw:
        return default
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise ConfigurationError(
        f"{key} must be one of {', '.join(_TRUE_VALUES + _FALSE_VALUES)}",
        key=key,
        details={"value": raw},
    )
