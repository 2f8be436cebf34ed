"""
Atomic bundle submission. Transactions in a bundle land together, in order,
or not at all.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import httpx

logger = logging.getLogger(__name__)

_TIMEOUT = 10.0
# Block engine rejects tips below this
MIN_TIP_LAMPORTS = 1_000
MAX_BUNDLE_SIZE = 5


class SubmissionFailure(Exception):
    """Bundle rejected by the block engine, or the request itself failed."""
    pass


@dataclass(frozen=True)
class PriorityFee:
    tip_lamports: int
    compute_unit_limit: int
    compute_unit_price_micro_lamports: int


@runtime_checkable
class TransactionBundler(Protocol):
    def submit(self, signed_txs: list[str], priority_fee: PriorityFee) -> str:
        """Submit base64 signed transactions atomically. Returns a bundle id."""
        ...

    def wait_for_landing(self, bundle_id: str) -> bool:
        """True once the bundle is confirmed on chain."""
        ...


class JitoBundler:
    """Block-engine bundle client over JSON-RPC."""

    def __init__(
        self,
        url: str = "https://mainnet.block-engine.jito.wtf/api/v1/bundles",
        timeout: float = _TIMEOUT,
        poll_attempts: int = 10,
        poll_interval_sec: float = 0.5,
    ):
        self._url = url
        self._timeout = timeout
        self._poll_attempts = poll_attempts
        self._poll_interval_sec = poll_interval_sec

    def _call(self, method: str, params: list):
        try:
            resp = httpx.post(
                self._url,
                json={"jsonrpc": "2.0", "id": 1, "method": method, "params": params},
                timeout=self._timeout,
            )
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPError as e:
            raise SubmissionFailure(f"{method} request failed: {e}") from e
        if body.get("error"):
            err = body["error"]
            raise SubmissionFailure(f"{method} rejected: {err.get('message', err)}")
        return body.get("result")

    def submit(self, signed_txs: list[str], priority_fee: PriorityFee) -> str:
        if not signed_txs:
            raise SubmissionFailure("Empty bundle")
        if len(signed_txs) > MAX_BUNDLE_SIZE:
            raise SubmissionFailure(f"Bundle has {len(signed_txs)} txs, max {MAX_BUNDLE_SIZE}")
        if priority_fee.tip_lamports < MIN_TIP_LAMPORTS:
            raise SubmissionFailure(
                f"Tip {priority_fee.tip_lamports} lamports below minimum {MIN_TIP_LAMPORTS}"
            )
        bundle_id = self._call("sendBundle", [signed_txs, {"encoding": "base64"}])
        logger.info(
            "Bundle %s submitted: %d txs, tip=%d lamports, cu_limit=%d",
            bundle_id, len(signed_txs), priority_fee.tip_lamports, priority_fee.compute_unit_limit,
        )
        return str(bundle_id)

    def wait_for_landing(self, bundle_id: str) -> bool:
        for _ in range(self._poll_attempts):
            result = self._call("getBundleStatuses", [[bundle_id]]) or {}
            for status in result.get("value") or []:
                if not status:
                    continue
                err = status.get("err")
                if err and "Ok" not in err:
                    logger.debug("Bundle %s failed: %s", bundle_id, err)
                    return False
                if status.get("confirmation_status") in ("confirmed", "finalized"):
                    return True
            time.sleep(self._poll_interval_sec)
        logger.debug("Bundle %s not confirmed after %d polls", bundle_id, self._poll_attempts)
        return False
