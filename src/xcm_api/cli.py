"""Command-line runner submitting the configured cross-chain transfer."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from collections.abc import Sequence
from dataclasses import replace

from dotenv import load_dotenv

from .builder import XcmApiTransferBuilder
from .config import TransferConfig
from .constants import EVM_CHAINS
from .exceptions import ConfigurationError, ExhaustedRetries, ValidationError
from .orchestrator import SubmissionOrchestrator
from .pool import EndpointPool
from .signer import EvmSigner
from .types import SubmissionResult

logger = logging.getLogger("xcm_submit")

_RETRY_FLAGS = {
    "max_attempts": "--max-attempts",
    "backoff_seconds": "--backoff-ms",
}


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="xcm-submit",
        description="Submit the cross-chain transfer described by the environment (.env).",
    )
    parser.add_argument("--max-attempts", type=int, help="override XCM_MAX_ATTEMPTS")
    parser.add_argument("--backoff-ms", type=int, help="override XCM_BACKOFF_MS")
    parser.add_argument(
        "--dry-run-strict",
        action="store_true",
        help="treat a failed dry run as a failed attempt",
    )
    return parser.parse_args(argv)


def _apply_overrides(config: TransferConfig, args: argparse.Namespace) -> TransferConfig:
    retry = config.retry
    try:
        if args.max_attempts is not None:
            retry = replace(retry, max_attempts=args.max_attempts)
        if args.backoff_ms is not None:
            retry = replace(retry, backoff_seconds=args.backoff_ms / 1000)
    except ValidationError as exc:
        flag = _RETRY_FLAGS.get(exc.field or "", exc.field)
        raise ConfigurationError(f"{flag}: {exc}", key=flag, details={"value": exc.value}) from exc
    if args.dry_run_strict:
        retry = replace(retry, abort_on_dry_run_failure=True)
    return replace(config, retry=retry)


def build_orchestrator(config: TransferConfig) -> SubmissionOrchestrator:
    """Wire the endpoint pool, builder and signer described by ``config``."""

    if config.source_chain not in EVM_CHAINS:
        raise ConfigurationError(
            f"No signer available for source chain {config.source_chain.value}",
            key="SOURCE_CHAIN",
        )

    pool = EndpointPool.default(config.endpoint_overrides)
    builder = XcmApiTransferBuilder(config.builder_api_url, timeout=config.request_timeout)
    signer = EvmSigner(
        config.private_key,
        config.source_rpc_url,
        request_timeout=config.request_timeout,
        wait_for_receipt=config.wait_for_receipt,
        receipt_timeout=config.receipt_timeout,
    )
    return SubmissionOrchestrator(pool, builder, signer, policy=config.retry)


async def run(config: TransferConfig) -> SubmissionResult:
    route = config.route()
    orchestrator = build_orchestrator(config)
    return await orchestrator.submit(route)


def main(argv: Sequence[str] | None = None) -> int:
    load_dotenv()
    logging.basicConfig(
        level=os.getenv("LOGLEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args = _parse_args(argv)

    try:
        config = _apply_overrides(TransferConfig.from_env(), args)
        logger.info(
            "XCM transfer %s -> %s (%s %s)",
            config.source_chain.value,
            config.destination_chain.value,
            config.amount,
            config.asset,
        )
        result = asyncio.run(run(config))
    except (ConfigurationError, ValidationError) as exc:
        print(f"XCM submission setup failed: {exc}", file=sys.stderr)
        return 1
    except ExhaustedRetries as exc:
        print(f"XCM submission failed: {exc}", file=sys.stderr)
        for failure in exc.failures:
            print(f"  {failure.describe()}", file=sys.stderr)
        return 1

    print(f"OK {result.transaction_hash}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
