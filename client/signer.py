"""
Signer protocol. Key custody is external: this process only ever holds the
public half unless an embedding application injects a real signer.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from scanner.models import UnsignedTransaction


class SigningUnavailable(Exception):
    """Raised by signers that cannot produce signatures."""
    pass


@runtime_checkable
class Signer(Protocol):
    @property
    def public_key(self) -> str:
        ...

    def sign(self, tx: UnsignedTransaction) -> str:
        """Return the signed transaction, base64-encoded."""
        ...


class WatchOnlySigner:
    """Public key only. Used for dry-run and paper modes."""

    def __init__(self, public_key: str = ""):
        self._public_key = public_key

    @property
    def public_key(self) -> str:
        return self._public_key

    def sign(self, tx: UnsignedTransaction) -> str:
        raise SigningUnavailable(f"watch-only wallet {self._public_key or '<unset>'} cannot sign")
