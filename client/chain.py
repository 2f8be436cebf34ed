"""
Solana JSON-RPC connection. Reads cluster state; transaction submission goes
through the bundler, so this stays read-only.
"""

from __future__ import annotations

import itertools
import logging

import httpx

logger = logging.getLogger(__name__)

_TIMEOUT = 10.0


class ChainError(Exception):
    """RPC answered with a JSON-RPC error object."""
    pass


class ChainConnection:
    """Minimal JSON-RPC client over httpx. One request per call, no caching."""

    def __init__(self, rpc_url: str = "https://api.mainnet-beta.solana.com", timeout: float = _TIMEOUT):
        self._rpc_url = rpc_url
        self._timeout = timeout
        self._ids = itertools.count(1)

    @property
    def rpc_url(self) -> str:
        return self._rpc_url

    def _call(self, method: str, params: list | None = None):
        resp = httpx.post(
            self._rpc_url,
            json={"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params or []},
            timeout=self._timeout,
        )
        resp.raise_for_status()
        body = resp.json()
        if body.get("error"):
            err = body["error"]
            raise ChainError(f"{method}: {err.get('message', err)}")
        return body["result"]

    def get_slot(self) -> int:
        return int(self._call("getSlot", [{"commitment": "confirmed"}]))

    def get_balance(self, public_key: str) -> int:
        """Lamport balance of an account."""
        result = self._call("getBalance", [public_key, {"commitment": "confirmed"}])
        return int(result["value"])
