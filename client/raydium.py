"""
Raydium REST client. Pool discovery via the v3 pool API, swap building via
the public trade API. Pure REST, no SDK dependency.
"""

from __future__ import annotations

import logging

import httpx

from client.venue import parse_float
from scanner.models import PoolSnapshot, UnsignedTransaction, Venue, now_ms

logger = logging.getLogger(__name__)

_TIMEOUT = 10.0
_PAGE_SIZE = 100


class RaydiumError(Exception):
    """Raised when the Raydium API answers with success=false or an unusable payload."""
    pass


def _unwrap(resp: httpx.Response):
    """Raydium wraps every payload in {"success": bool, "data": ...}."""
    resp.raise_for_status()
    body = resp.json()
    if not body.get("success", False):
        raise RaydiumError(body.get("msg") or "Raydium request failed")
    return body["data"]


def parse_pool(raw: dict, observed_at: int | None = None) -> PoolSnapshot:
    """
    Convert a v3 pool-info dict into a PoolSnapshot.

    Reserves arrive decimal-adjusted and are converted back to base units.
    Raydium charges one fee rate on both sides; per-side rates are used
    when the payload carries them.
    """
    mint_a = raw.get("mintA") or {}
    mint_b = raw.get("mintB") or {}
    decimals_a = int(mint_a.get("decimals", 0) or 0)
    decimals_b = int(mint_b.get("decimals", 0) or 0)
    fee_rate = parse_float(raw.get("feeRate"))
    day = raw.get("day") or {}
    # openTime is unix seconds; 0 means not reported
    open_time = parse_float(raw.get("openTime"))
    return PoolSnapshot(
        address=str(raw["id"]),
        venue=Venue.RAYDIUM,
        mint_a=str(mint_a.get("address", "")),
        mint_b=str(mint_b.get("address", "")),
        reserve_a=parse_float(raw.get("mintAmountA")) * 10 ** decimals_a,
        reserve_b=parse_float(raw.get("mintAmountB")) * 10 ** decimals_b,
        fee_a=parse_float(raw.get("feeRateA"), fee_rate),
        fee_b=parse_float(raw.get("feeRateB"), fee_rate),
        tvl=parse_float(raw.get("tvl")),
        volume_24h=parse_float(day.get("volume")),
        observed_at=now_ms() if observed_at is None else observed_at,
        opened_at=int(open_time * 1000) if open_time > 0 else None,
    )


class RaydiumClient:
    """VenueClient for Raydium pools."""

    def __init__(
        self,
        host: str = "https://api-v3.raydium.io",
        trade_host: str = "https://transaction-v1.raydium.io",
        wallet: str = "",
        compute_unit_price_micro_lamports: int = 0,
        timeout: float = _TIMEOUT,
        max_pages: int = 1,
    ):
        self._host = host.rstrip("/")
        self._trade_host = trade_host.rstrip("/")
        self._wallet = wallet
        self._cu_price = compute_unit_price_micro_lamports
        self._timeout = timeout
        self._max_pages = max_pages
        self._fee_fallback_logged = False

    @property
    def venue(self) -> Venue:
        return Venue.RAYDIUM

    def list_pools(self) -> list[PoolSnapshot]:
        """Fetch the most recent pool listing pages. Malformed entries are skipped."""
        observed_at = now_ms()
        pools: list[PoolSnapshot] = []
        single_fee = 0
        for page in range(1, self._max_pages + 1):
            resp = httpx.get(
                f"{self._host}/pools/info/list",
                params={
                    "poolType": "all",
                    "poolSortField": "default",
                    "sortType": "desc",
                    "pageSize": _PAGE_SIZE,
                    "page": page,
                },
                timeout=self._timeout,
            )
            data = _unwrap(resp)
            for raw in data.get("data", []):
                try:
                    pools.append(parse_pool(raw, observed_at))
                    if "feeRateA" not in raw and "feeRateB" not in raw:
                        single_fee += 1
                except (KeyError, TypeError, ValueError) as e:
                    logger.debug("Skipping malformed Raydium pool entry: %s", e)
            if not data.get("hasNextPage"):
                break
        logger.debug("Raydium listing: %d pools", len(pools))
        if single_fee and not self._fee_fallback_logged:
            self._fee_fallback_logged = True
            logger.warning(
                "Raydium: %d of %d pools report only a pool-wide fee rate; both sides use it and score 0",
                single_fee, len(pools), extra={"venue": Venue.RAYDIUM.value},
            )
        return pools

    def fetch_pool(self, address: str) -> PoolSnapshot:
        resp = httpx.get(
            f"{self._host}/pools/info/ids",
            params={"ids": address},
            timeout=self._timeout,
        )
        data = _unwrap(resp)
        entries = [d for d in (data or []) if d]
        if not entries:
            raise RaydiumError(f"Pool {address} not found")
        return parse_pool(entries[0])

    def build_swap(
        self,
        amount_in: int,
        token_in: str,
        token_out: str,
        slippage_tolerance: float,
    ) -> UnsignedTransaction:
        """Quote then serialize a base-in swap. Returns the first transaction of the route."""
        slippage_bps = int(round(slippage_tolerance * 10_000))
        quote = _unwrap(httpx.get(
            f"{self._trade_host}/compute/swap-base-in",
            params={
                "inputMint": token_in,
                "outputMint": token_out,
                "amount": str(int(amount_in)),
                "slippageBps": slippage_bps,
                "txVersion": "V0",
            },
            timeout=self._timeout,
        ))
        txs = _unwrap(httpx.post(
            f"{self._trade_host}/transaction/swap-base-in",
            json={
                "computeUnitPriceMicroLamports": str(self._cu_price),
                "swapResponse": {"success": True, "data": quote},
                "txVersion": "V0",
                "wallet": self._wallet,
                "wrapSol": True,
                "unwrapSol": True,
            },
            timeout=self._timeout,
        ))
        if not txs:
            raise RaydiumError("Swap builder returned no transactions")
        return UnsignedTransaction(
            venue=Venue.RAYDIUM,
            payload=txs[0]["transaction"],
            description=f"raydium swap {amount_in} {token_in[:8]}->{token_out[:8]}",
        )
