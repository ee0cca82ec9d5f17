"""EVM signer submitting transfer payloads from an EVM-origin chain."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any, cast

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import HTTPProvider, Web3
from web3.middleware import SignAndSendRawMiddlewareBuilder

from .base import Signer
from .constants import DEFAULT_RECEIPT_TIMEOUT, DEFAULT_REQUEST_TIMEOUT
from .exceptions import ConfigurationError, SubmissionFailure
from .types import AttemptContext

logger = logging.getLogger(__name__)

_TX_FIELDS = ("to", "data", "value", "gas", "gasPrice", "maxFeePerGas", "maxPriorityFeePerGas")


class EvmSigner(Signer):
    """Sign and send EVM transaction payloads with a local private key."""

    def __init__(
        self,
        private_key: str,
        rpc_url: str,
        *,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        wait_for_receipt: bool = False,
        receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT,
    ) -> None:
        try:
            self._account = cast(LocalAccount, Account.from_key(private_key))
        except Exception as exc:
            raise ConfigurationError(
                "Failed to derive signer account from provided private key",
                key="PRIVATE_KEY",
                details={"error": str(exc)},
            ) from exc

        self._rpc_url = rpc_url
        self._request_timeout = request_timeout
        self._wait_for_receipt = wait_for_receipt
        self._receipt_timeout = receipt_timeout

    @property
    def address(self) -> str:
        return self._account.address

    async def submit(self, payload: Any, context: AttemptContext) -> str:
        transaction = self.transaction_from_payload(payload, context)
        return await asyncio.to_thread(self._send, transaction, context)

    def transaction_from_payload(self, payload: Any, context: AttemptContext) -> dict[str, Any]:
        """Extract the EVM transaction fields from a builder payload."""

        if not isinstance(payload, Mapping):
            raise SubmissionFailure(
                "EVM signer requires a transaction mapping payload",
                endpoint=self._rpc_url,
                attempt=context.attempt,
                details={"payload_type": type(payload).__name__},
            )

        if not payload.get("to"):
            raise SubmissionFailure(
                "Transaction payload is missing 'to'",
                endpoint=self._rpc_url,
                attempt=context.attempt,
            )

        transaction: dict[str, Any] = {
            key: payload[key] for key in _TX_FIELDS if payload.get(key) is not None
        }
        transaction["to"] = Web3.to_checksum_address(str(payload["to"]))
        for key in ("value", "gas", "gasPrice", "maxFeePerGas", "maxPriorityFeePerGas"):
            if key in transaction:
                transaction[key] = _coerce_quantity(transaction[key])
        transaction["from"] = self._account.address
        return transaction

    # ------------------------------------------------------------------
    # Internal wiring
    # ------------------------------------------------------------------
    def _connect(self) -> Web3:
        provider = HTTPProvider(self._rpc_url, request_kwargs={"timeout": self._request_timeout})
        web3 = Web3(provider)
        if not web3.is_connected():
            raise SubmissionFailure("Unable to connect to signer RPC", endpoint=self._rpc_url)
        web3.middleware_onion.add(SignAndSendRawMiddlewareBuilder.build(self._account))  # type: ignore[arg-type]
        web3.eth.default_account = self._account.address
        return web3

    def _send(self, transaction: dict[str, Any], context: AttemptContext) -> str:
        web3 = self._connect()
        try:
            tx_hash = web3.eth.send_transaction(transaction)  # type: ignore[arg-type]
        except Exception as exc:
            raise SubmissionFailure(
                f"Transaction rejected: {exc}",
                endpoint=self._rpc_url,
                attempt=context.attempt,
                details={"error": str(exc)},
            ) from exc

        tx_hex = tx_hash.to_0x_hex()
        logger.info("Transaction sent from %s hash=%s", self._account.address, tx_hex)

        if self._wait_for_receipt:
            # Already broadcast: a missing receipt is not a submission failure.
            try:
                receipt = web3.eth.wait_for_transaction_receipt(
                    tx_hash, timeout=self._receipt_timeout
                )
            except Exception as exc:
                logger.warning(
                    "No receipt for %s within %.0fs: %s", tx_hex, self._receipt_timeout, exc
                )
                return tx_hex

            if receipt.get("status", 0) != 1:
                raise SubmissionFailure(
                    f"Transaction {tx_hex} reverted",
                    endpoint=self._rpc_url,
                    attempt=context.attempt,
                    details={"tx_hash": tx_hex, "block_number": receipt.get("blockNumber")},
                )
            logger.info(
                "Transaction confirmed hash=%s block=%s", tx_hex, receipt.get("blockNumber")
            )

        return tx_hex


def _coerce_quantity(value: Any) -> int:
    if isinstance(value, str):
        return int(value, 16) if value.lower().startswith("0x") else int(value)
    return int(value)
