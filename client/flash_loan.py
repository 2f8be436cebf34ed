"""
Flash-loan providers. A provider borrows, runs the action transactions and
repays inside one atomic bundle; if repayment fails everything reverts.

Borrow/repay instruction encoding is lender-specific and supplied from
outside through a LoanWrapper.
"""

from __future__ import annotations

import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from client.bundler import PriorityFee, TransactionBundler
from client.signer import Signer
from scanner.models import UnsignedTransaction

logger = logging.getLogger(__name__)


class LoanFailure(Exception):
    """Lender liquidity insufficient, or the borrow/trade/repay sequence reverted."""
    pass


@dataclass(frozen=True)
class Settlement:
    handle: str
    settled_at: float = field(default_factory=time.time)


@runtime_checkable
class FlashLoanProvider(Protocol):
    def execute(
        self,
        loan_amount: int,
        loan_token: str,
        actions: list[UnsignedTransaction],
        signer: Signer,
        priority_fee: PriorityFee,
    ) -> Settlement:
        ...


@runtime_checkable
class LoanWrapper(Protocol):
    def wrap(
        self,
        loan_amount: int,
        loan_token: str,
        actions: list[UnsignedTransaction],
        priority_fee: PriorityFee,
    ) -> list[UnsignedTransaction]:
        """Return [borrow, *actions, repay] with compute-budget and tip instructions attached."""
        ...


class PaperFlashLoanProvider:
    """Simulated provider for paper trading. Never touches the network."""

    def __init__(self, max_loan: float | None = None):
        self._max_loan = max_loan
        self._counter = itertools.count(1)
        self.executions: list[tuple[int, str, int]] = []

    def execute(
        self,
        loan_amount: int,
        loan_token: str,
        actions: list[UnsignedTransaction],
        signer: Signer,
        priority_fee: PriorityFee,
    ) -> Settlement:
        if loan_amount <= 0:
            raise LoanFailure(f"Invalid loan amount {loan_amount}")
        if not actions:
            raise LoanFailure("No actions to run inside the loan")
        if self._max_loan is not None and loan_amount > self._max_loan:
            raise LoanFailure(
                f"Insufficient lender liquidity: requested {loan_amount}, available {self._max_loan:.0f}"
            )
        self.executions.append((loan_amount, loan_token, len(actions)))
        handle = f"paper_{next(self._counter)}"
        logger.info(
            "[PAPER] Flash loan %s: borrow %d of %s, %d action(s), tip=%d",
            handle, loan_amount, loan_token[:8], len(actions), priority_fee.tip_lamports,
        )
        return Settlement(handle=handle)


class BundledFlashLoanProvider:
    """Wraps actions with lender legs, signs every transaction and submits one bundle."""

    def __init__(self, wrapper: LoanWrapper, bundler: TransactionBundler, confirm: bool = True):
        self._wrapper = wrapper
        self._bundler = bundler
        self._confirm = confirm

    def execute(
        self,
        loan_amount: int,
        loan_token: str,
        actions: list[UnsignedTransaction],
        signer: Signer,
        priority_fee: PriorityFee,
    ) -> Settlement:
        if loan_amount <= 0:
            raise LoanFailure(f"Invalid loan amount {loan_amount}")
        txs = self._wrapper.wrap(loan_amount, loan_token, actions, priority_fee)
        if len(txs) < len(actions) + 2:
            raise LoanFailure("Loan wrapper did not add borrow and repay legs")
        signed = [signer.sign(tx) for tx in txs]
        bundle_id = self._bundler.submit(signed, priority_fee)
        if self._confirm and not self._bundler.wait_for_landing(bundle_id):
            raise LoanFailure(f"Bundle {bundle_id} did not land (reverted or dropped)")
        return Settlement(handle=bundle_id)
