"""Transfer builder backed by an XCM transfer-construction HTTP service."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from typing import Any

import requests

from .base import AssetRegistry, PreparedTransfer, TransferBuilder
from .constants import DEFAULT_REQUEST_TIMEOUT, DEFAULT_XCM_API_URL
from .exceptions import BuildFailure, ValidationError, ValidationFailure
from .registry import resolve_asset
from .types import AttemptContext
from .utils import to_minor_units

logger = logging.getLogger(__name__)

TRANSFER_PATH = "/x-transfer"
DRY_RUN_PATH = "/dry-run"


class XcmApiPreparedTransfer(PreparedTransfer):
    """Transfer request bound to one endpoint pair and one HTTP session."""

    supports_dry_run = True

    def __init__(
        self,
        context: AttemptContext,
        body: Mapping[str, Any],
        session: requests.Session,
        *,
        base_url: str,
        timeout: float,
    ) -> None:
        self._context = context
        self._body = dict(body)
        self._session = session
        self._base_url = base_url
        self._timeout = timeout
        self._closed = False

    @property
    def body(self) -> dict[str, Any]:
        return dict(self._body)

    @property
    def closed(self) -> bool:
        return self._closed

    async def dry_run(self) -> Any:
        result = await asyncio.to_thread(self._post, DRY_RUN_PATH)
        if _dry_run_rejected(result):
            raise ValidationFailure(
                "Dry run rejected transfer",
                attempt=self._context.attempt,
                details={"response": result},
            )
        logger.debug("Dry run passed for attempt %s", self._context.attempt)
        return result

    async def build(self) -> Any:
        payload = await asyncio.to_thread(self._post, TRANSFER_PATH)
        if isinstance(payload, Mapping) and "tx" in payload:
            payload = payload["tx"]
        if payload in (None, "", {}):
            raise BuildFailure(
                "Transfer service returned an empty payload",
                endpoint=self._base_url + TRANSFER_PATH,
                attempt=self._context.attempt,
            )
        # Signers consume transaction objects; raw call data cannot be signed.
        if not isinstance(payload, Mapping):
            raise BuildFailure(
                "Transfer service returned raw call data instead of a transaction",
                endpoint=self._base_url + TRANSFER_PATH,
                attempt=self._context.attempt,
                details={"payload_type": type(payload).__name__, "payload": str(payload)[:200]},
            )
        return dict(payload)

    async def disconnect(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._session.close()

    def _post(self, path: str) -> Any:
        if self._closed:
            raise BuildFailure(
                "Prepared transfer is disconnected",
                endpoint=self._base_url + path,
                attempt=self._context.attempt,
            )

        url = self._base_url + path
        try:
            response = self._session.post(url, json=self._body, timeout=self._timeout)
        except requests.RequestException as exc:
            raise BuildFailure(
                f"Transfer service unreachable: {exc}",
                endpoint=url,
                attempt=self._context.attempt,
                details={"error": str(exc)},
            ) from exc

        if response.status_code >= 400:
            raise BuildFailure(
                f"Transfer service returned HTTP {response.status_code}",
                endpoint=url,
                status_code=response.status_code,
                attempt=self._context.attempt,
                details={"body": response.text[:500]},
            )

        content_type = response.headers.get("Content-Type", "")
        if "json" not in content_type:
            return response.text.strip()

        try:
            return response.json()
        except ValueError as exc:
            raise BuildFailure(
                "Transfer service returned malformed JSON",
                endpoint=url,
                status_code=response.status_code,
                attempt=self._context.attempt,
                details={"error": str(exc)},
            ) from exc


class XcmApiTransferBuilder(TransferBuilder):
    """Prepare transfers through an HTTP XCM construction service.

    Each prepared transfer owns a fresh ``requests.Session`` so that nothing
    opened for one attempt is reused by the next. The selected endpoints are
    forwarded as per-chain API overrides.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_XCM_API_URL,
        *,
        registry: AssetRegistry | None = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        xcm_format_check: bool = True,
        session_factory: Callable[[], requests.Session] = requests.Session,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._registry = registry
        self._timeout = timeout
        self._xcm_format_check = xcm_format_check
        self._session_factory = session_factory

    async def prepare(self, context: AttemptContext) -> XcmApiPreparedTransfer:
        body = self.request_body(context)
        session = self._session_factory()
        logger.debug(
            "Prepared %s via %s (attempt %s)",
            context.route.describe(),
            self._base_url,
            context.attempt,
        )
        return XcmApiPreparedTransfer(
            context,
            body,
            session,
            base_url=self._base_url,
            timeout=self._timeout,
        )

    def request_body(self, context: AttemptContext) -> dict[str, Any]:
        route = context.route
        try:
            amount = self._request_amount(context)
        except ValidationError as exc:
            raise BuildFailure(
                str(exc),
                attempt=context.attempt,
                details={"field": exc.field, "value": exc.value},
            ) from exc

        return {
            "from": route.source_chain.value,
            "to": route.destination_chain.value,
            "currency": {"symbol": route.asset_symbol, "amount": amount},
            "address": route.destination_address,
            "senderAddress": route.source_address,
            "options": {
                "abstractDecimals": route.abstract_decimals,
                "xcmFormatCheck": self._xcm_format_check,
                "apiOverrides": context.api_overrides,
            },
        }

    def _request_amount(self, context: AttemptContext) -> str:
        route = context.route
        if route.abstract_decimals:
            return route.amount

        asset = resolve_asset(self._registry, route.asset_symbol)
        return str(to_minor_units(route.amount, asset.decimals))


def _dry_run_rejected(result: Any) -> bool:
    if not isinstance(result, Mapping):
        return False

    if result.get("success") is False or result.get("failureReason"):
        return True

    origin = result.get("origin")
    return isinstance(origin, Mapping) and origin.get("success") is False
