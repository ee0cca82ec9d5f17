"""Example: Send DOT from Moonbeam to Hydration with a custom endpoint pool."""

from __future__ import annotations

import asyncio
import logging
import os

from dotenv import load_dotenv

from xcm_api import (
    EndpointPool,
    EvmSigner,
    ExhaustedRetries,
    RetryPolicy,
    RouteDescriptor,
    SubmissionOrchestrator,
    XcmApiTransferBuilder,
)
from xcm_api.types import AttemptFailure

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOGLEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

logger = logging.getLogger("moonbeam_to_hydration")


def _require_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise ValueError(f"{name} not found in environment variables")
    return value


def _report(failure: AttemptFailure) -> None:
    logger.info("  %s", failure.describe())


async def main() -> None:
    private_key = _require_env("PRIVATE_KEY")
    route = RouteDescriptor(
        source_chain="Moonbeam",
        destination_chain="Hydration",
        asset_symbol=os.getenv("ASSET", "DOT"),
        amount=os.getenv("AMOUNT", "0.1"),
        source_address=_require_env("SOURCE_ADDRESS"),
        destination_address=_require_env("DEST_ADDRESS"),
    )

    pool = EndpointPool(
        {
            "Moonbeam": [
                os.getenv("MOONBEAM_WS_URL", "wss://wss.api.moonbeam.network"),
                "wss://moonbeam.api.onfinality.io/public-ws",
            ],
            "Hydration": [
                os.getenv("HYDRATION_WS_URL", "wss://rpc.hydradx.cloud"),
                "wss://hydration-rpc.publicnode.com",
            ],
        }
    )
    orchestrator = SubmissionOrchestrator(
        pool,
        XcmApiTransferBuilder(),
        EvmSigner(
            private_key,
            os.getenv("MOONBEAM_RPC_URL", "https://rpc.api.moonbeam.network"),
            wait_for_receipt=True,
        ),
        policy=RetryPolicy(max_attempts=6, backoff_seconds=2.0),
        on_attempt=_report,
    )

    logger.info("Sending %s", route.describe())
    try:
        result = await orchestrator.submit(route)
    except ExhaustedRetries as exc:
        logger.error("Transfer failed after %s attempts", exc.attempts)
        return

    logger.info("Transfer submitted on attempt %s", result.attempts)
    logger.info("  tx: %s", result.transaction_hash)
    logger.info("  endpoints: %s / %s", result.endpoints.source, result.endpoints.destination)
    logger.info("  dry run: %s", result.dry_run.value)


if __name__ == "__main__":
    asyncio.run(main())
