"""
Meteora DLMM client. Pair discovery via the DLMM REST API; swaps are built
through the Jupiter swap API restricted to Meteora DLMM liquidity.
"""

from __future__ import annotations

import logging

import httpx

from client.venue import parse_float
from scanner.models import PoolSnapshot, UnsignedTransaction, Venue, now_ms

logger = logging.getLogger(__name__)

_TIMEOUT = 10.0
_DEX_LABEL = "Meteora DLMM"


def parse_pair(raw: dict, observed_at: int | None = None) -> PoolSnapshot:
    """
    Convert a DLMM pair dict into a PoolSnapshot.

    reserve_*_amount fields are already base units. Fee percentages arrive as
    strings in percent and are stored as fractions.
    """
    base_fee_pct = parse_float(raw.get("base_fee_percentage"))
    return PoolSnapshot(
        address=str(raw["address"]),
        venue=Venue.METEORA,
        mint_a=str(raw.get("mint_x", "")),
        mint_b=str(raw.get("mint_y", "")),
        reserve_a=parse_float(raw.get("reserve_x_amount")),
        reserve_b=parse_float(raw.get("reserve_y_amount")),
        fee_a=parse_float(raw.get("fee_x_percentage"), base_fee_pct) / 100.0,
        fee_b=parse_float(raw.get("fee_y_percentage"), base_fee_pct) / 100.0,
        tvl=parse_float(raw.get("liquidity")),
        volume_24h=parse_float(raw.get("trade_volume_24h")),
        observed_at=now_ms() if observed_at is None else observed_at,
    )


class MeteoraClient:
    """VenueClient for Meteora DLMM pairs."""

    def __init__(
        self,
        host: str = "https://dlmm-api.meteora.ag",
        swap_host: str = "https://quote-api.jup.ag/v6",
        wallet: str = "",
        compute_unit_price_micro_lamports: int = 0,
        timeout: float = _TIMEOUT,
    ):
        self._host = host.rstrip("/")
        self._swap_host = swap_host.rstrip("/")
        self._wallet = wallet
        self._cu_price = compute_unit_price_micro_lamports
        self._timeout = timeout
        self._fee_fallback_logged = False

    @property
    def venue(self) -> Venue:
        return Venue.METEORA

    def list_pools(self) -> list[PoolSnapshot]:
        resp = httpx.get(f"{self._host}/pair/all", timeout=self._timeout)
        resp.raise_for_status()
        observed_at = now_ms()
        pools: list[PoolSnapshot] = []
        single_fee = 0
        for raw in resp.json():
            if raw.get("hide"):
                continue
            try:
                pools.append(parse_pair(raw, observed_at))
                if "fee_x_percentage" not in raw and "fee_y_percentage" not in raw:
                    single_fee += 1
            except (KeyError, TypeError, ValueError) as e:
                logger.debug("Skipping malformed Meteora pair entry: %s", e)
        logger.debug("Meteora listing: %d pairs", len(pools))
        if single_fee and not self._fee_fallback_logged:
            self._fee_fallback_logged = True
            logger.warning(
                "Meteora: %d of %d pairs report only a base fee; both sides use it and score 0",
                single_fee, len(pools), extra={"venue": Venue.METEORA.value},
            )
        return pools

    def fetch_pool(self, address: str) -> PoolSnapshot:
        resp = httpx.get(f"{self._host}/pair/{address}", timeout=self._timeout)
        resp.raise_for_status()
        return parse_pair(resp.json())

    def build_swap(
        self,
        amount_in: int,
        token_in: str,
        token_out: str,
        slippage_tolerance: float,
    ) -> UnsignedTransaction:
        slippage_bps = int(round(slippage_tolerance * 10_000))
        quote_resp = httpx.get(
            f"{self._swap_host}/quote",
            params={
                "inputMint": token_in,
                "outputMint": token_out,
                "amount": str(int(amount_in)),
                "slippageBps": slippage_bps,
                "dexes": _DEX_LABEL,
                "onlyDirectRoutes": "true",
            },
            timeout=self._timeout,
        )
        quote_resp.raise_for_status()
        swap_resp = httpx.post(
            f"{self._swap_host}/swap",
            json={
                "quoteResponse": quote_resp.json(),
                "userPublicKey": self._wallet,
                "wrapAndUnwrapSol": True,
                "computeUnitPriceMicroLamports": self._cu_price,
            },
            timeout=self._timeout,
        )
        swap_resp.raise_for_status()
        return UnsignedTransaction(
            venue=Venue.METEORA,
            payload=swap_resp.json()["swapTransaction"],
            description=f"meteora swap {amount_in} {token_in[:8]}->{token_out[:8]}",
        )
