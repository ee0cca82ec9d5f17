"""Retrying submission of cross-chain transfers across an endpoint pool."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from typing import Any

from .base import PreparedTransfer, Signer, TransferBuilder
from .config import RetryPolicy
from .exceptions import (
    BuildFailure,
    ExhaustedRetries,
    SubmissionFailure,
    ValidationFailure,
)
from .pool import EndpointPool
from .types import (
    AttemptContext,
    AttemptFailure,
    AttemptStage,
    DryRunOutcome,
    RouteDescriptor,
    SubmissionResult,
)

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[Any]]
AttemptCallback = Callable[[AttemptFailure], None]


class _AttemptError(Exception):
    """Internal carrier tagging an attempt failure with its pipeline stage."""

    def __init__(self, stage: AttemptStage, error: BaseException) -> None:
        super().__init__(str(error))
        self.stage = stage
        self.error = error


class SubmissionOrchestrator:
    """Drive build -> dry-run -> submit attempts until one succeeds.

    Attempts are strictly sequential. Attempt ``i`` is bound to the endpoint
    pair the pool selects for ``i``; a failed attempt disconnects its prepared
    transfer, waits ``policy.backoff_seconds`` and moves on to ``i + 1``.
    After ``policy.max_attempts`` failures the run ends with
    :class:`ExhaustedRetries` carrying the most recent failures.
    """

    def __init__(
        self,
        pool: EndpointPool,
        builder: TransferBuilder,
        signer: Signer,
        *,
        policy: RetryPolicy | None = None,
        sleep: SleepFn = asyncio.sleep,
        on_attempt: AttemptCallback | None = None,
    ) -> None:
        self._pool = pool
        self._builder = builder
        self._signer = signer
        self._policy = policy or RetryPolicy()
        self._sleep = sleep
        self._on_attempt = on_attempt
        self._lock = asyncio.Lock()

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    # ------------------------------------------------------------------
    # Public entry point
    # ------------------------------------------------------------------
    async def submit(self, route: RouteDescriptor) -> SubmissionResult:
        async with self._lock:
            return await self._run(route)

    # ------------------------------------------------------------------
    # Internal workflow
    # ------------------------------------------------------------------
    async def _run(self, route: RouteDescriptor) -> SubmissionResult:
        policy = self._policy
        failures: deque[AttemptFailure] = deque(maxlen=policy.failure_history)
        logger.info(
            "Submitting %s (max_attempts=%s, backoff=%.1fs)",
            route.describe(),
            policy.max_attempts,
            policy.backoff_seconds,
        )

        for attempt in range(1, policy.max_attempts + 1):
            context = AttemptContext(
                route=route,
                endpoints=self._pool.select_pair(route, attempt),
                attempt=attempt,
            )
            logger.debug(
                "Stage XCM [attempt %s/%s]: select endpoints (source=%s, dest=%s)",
                attempt,
                policy.max_attempts,
                context.endpoints.source,
                context.endpoints.destination,
            )

            try:
                tx_hash, dry_run = await self._attempt(context)
            except _AttemptError as exc:
                failure = AttemptFailure(
                    attempt=attempt,
                    stage=exc.stage,
                    endpoints=context.endpoints,
                    error=exc.error,
                )
                failures.append(failure)
                logger.warning(
                    "Attempt %s/%s failed: %s", attempt, policy.max_attempts, failure.describe()
                )
                self._notify(failure)
            else:
                logger.info(
                    "Transfer submitted on attempt %s/%s (tx=%s)",
                    attempt,
                    policy.max_attempts,
                    tx_hash,
                )
                return SubmissionResult(
                    transaction_hash=tx_hash,
                    attempts=attempt,
                    endpoints=context.endpoints,
                    dry_run=dry_run,
                )

            if attempt == policy.max_attempts:
                break

            logger.debug(
                "Stage XCM [attempt %s/%s]: backoff %.1fs",
                attempt,
                policy.max_attempts,
                policy.backoff_seconds,
            )
            await self._sleep(policy.backoff_seconds)

        logger.error(
            "All %s submission attempts failed for %s", policy.max_attempts, route.describe()
        )
        raise ExhaustedRetries(
            f"All {policy.max_attempts} submission attempts failed",
            attempts=policy.max_attempts,
            failures=list(failures),
            details={
                "route": route.describe(),
                "recent_failures": [failure.describe() for failure in failures],
            },
        )

    async def _attempt(self, context: AttemptContext) -> tuple[str, DryRunOutcome]:
        prefix = f"Stage XCM [attempt {context.attempt}/{self._policy.max_attempts}]"

        logger.debug("%s: build transfer", prefix)
        try:
            prepared = await self._builder.prepare(context)
        except Exception as exc:
            raise _AttemptError(AttemptStage.BUILD, _as_build_failure(exc, context)) from exc

        try:
            dry_run = await self._dry_run(prepared, context, prefix)

            logger.debug("%s: build payload", prefix)
            try:
                payload = await prepared.build()
            except Exception as exc:
                raise _AttemptError(AttemptStage.BUILD, _as_build_failure(exc, context)) from exc

            logger.debug("%s: sign and submit", prefix)
            try:
                tx_hash = await self._signer.submit(payload, context)
            except Exception as exc:
                raise _AttemptError(
                    AttemptStage.SUBMIT, _as_submission_failure(exc, context)
                ) from exc
        finally:
            await self._disconnect(prepared, prefix)

        return tx_hash, dry_run

    async def _dry_run(
        self, prepared: PreparedTransfer, context: AttemptContext, prefix: str
    ) -> DryRunOutcome:
        if not prepared.supports_dry_run:
            return DryRunOutcome.SKIPPED

        logger.debug("%s: dry run", prefix)
        try:
            await prepared.dry_run()
        except Exception as exc:
            if self._policy.abort_on_dry_run_failure:
                failure = (
                    exc
                    if isinstance(exc, ValidationFailure)
                    else ValidationFailure(
                        f"Dry run failed: {exc}",
                        attempt=context.attempt,
                        details={"error": str(exc)},
                    )
                )
                raise _AttemptError(AttemptStage.DRY_RUN, failure) from exc
            logger.warning("%s: dry run failed, continuing (%s)", prefix, exc)
            return DryRunOutcome.FAILED
        return DryRunOutcome.PASSED

    def _notify(self, failure: AttemptFailure) -> None:
        if self._on_attempt is None:
            return
        try:
            self._on_attempt(failure)
        except Exception as exc:
            logger.warning("Attempt callback failed for attempt %s (%s)", failure.attempt, exc)

    async def _disconnect(self, prepared: PreparedTransfer, prefix: str) -> None:
        try:
            await prepared.disconnect()
        except Exception as exc:
            logger.warning("%s: disconnect failed (%s)", prefix, exc)
        else:
            logger.debug("%s: disconnected", prefix)


def _as_build_failure(exc: Exception, context: AttemptContext) -> BuildFailure:
    if isinstance(exc, BuildFailure):
        return exc
    return BuildFailure(
        f"Failed to build transfer: {exc}",
        endpoint=context.endpoints.source,
        attempt=context.attempt,
        details={"error": str(exc), "type": type(exc).__name__},
    )


def _as_submission_failure(exc: Exception, context: AttemptContext) -> SubmissionFailure:
    if isinstance(exc, SubmissionFailure):
        return exc
    return SubmissionFailure(
        f"Failed to submit transfer: {exc}",
        endpoint=context.endpoints.source,
        attempt=context.attempt,
        details={"error": str(exc), "type": type(exc).__name__},
    )
