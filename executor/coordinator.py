"""
Execution coordinator. Sequences and guards the borrow -> swap -> swap back
-> repay attempt for one candidate.

At most one attempt per pool address is in flight at any time. Every
collaborator failure is contained here and returned as a FAILED
ExecutionAttempt; nothing propagates to the tick. One try per call, no retry.
"""

from __future__ import annotations

import logging
import threading
import time

from client.bundler import PriorityFee
from client.flash_loan import FlashLoanProvider, LoanFailure
from client.signer import Signer
from client.venue import VenueClient
from executor.safety import CircuitBreaker
from executor.sizing import (
    DEFAULT_LOAN_FRACTION,
    compute_loan_amount,
    expected_output,
    min_output_after_slippage,
)
from scanner.models import (
    AttemptStatus,
    ExecutionAttempt,
    OpportunityCandidate,
    UnsignedTransaction,
    Venue,
)

logger = logging.getLogger(__name__)


class ExecutionCoordinator:
    def __init__(
        self,
        venues: dict[Venue, VenueClient],
        flash_loan: FlashLoanProvider,
        signer: Signer,
        priority_fee: PriorityFee,
        loan_fraction: float = DEFAULT_LOAN_FRACTION,
        slippage_tolerance: float = 0.01,
        breaker: CircuitBreaker | None = None,
        paper_swaps: bool = False,
    ):
        """
        paper_swaps replaces venue swap building with placeholder legs, so
        paper mode never calls the trade APIs (they need a funded wallet).
        """
        self._venues = dict(venues)
        self._flash_loan = flash_loan
        self._signer = signer
        self._priority_fee = priority_fee
        self._loan_fraction = loan_fraction
        self._slippage = slippage_tolerance
        self._breaker = breaker
        self._paper_swaps = paper_swaps
        self._lock = threading.Lock()
        self._in_flight: set[str] = set()

    def in_flight(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._in_flight)

    def attempt(self, candidate: OpportunityCandidate) -> ExecutionAttempt:
        address = candidate.address
        with self._lock:
            if address in self._in_flight:
                logger.info("Skipping %s: attempt already in flight", address)
                return ExecutionAttempt(
                    candidate=candidate,
                    status=AttemptStatus.SKIPPED,
                    error_reason="attempt already in flight",
                )
            self._in_flight.add(address)

        start = time.time()
        try:
            result = self._run(candidate)
        finally:
            with self._lock:
                self._in_flight.discard(address)
        result.elapsed_ms = (time.time() - start) * 1000
        return result

    def _run(self, candidate: OpportunityCandidate) -> ExecutionAttempt:
        attempt = ExecutionAttempt(candidate=candidate)
        pool = candidate.pool

        if self._breaker is not None:
            with self._lock:
                breaker_open = self._breaker.is_open()
            if breaker_open:
                attempt.status = AttemptStatus.SKIPPED
                attempt.error_reason = "circuit breaker open"
                return attempt

        attempt.loan_amount = compute_loan_amount(pool, self._loan_fraction)
        if attempt.loan_amount <= 0:
            return self._fail(attempt, "loan size is zero (empty reserve)")

        loan_token = candidate.direction.token_in(pool)
        try:
            actions = self._build_actions(candidate, attempt.loan_amount)
            settlement = self._flash_loan.execute(
                attempt.loan_amount, loan_token, actions, self._signer, self._priority_fee,
            )
        except Exception as e:
            # LoanFailure, SubmissionFailure, HTTP errors, builder rejections, signing
            return self._fail(attempt, f"{type(e).__name__}: {e}")

        attempt.status = AttemptStatus.SUCCEEDED
        attempt.settlement_handle = settlement.handle
        if self._breaker is not None:
            with self._lock:
                self._breaker.record_success()
        logger.info(
            "Executed %s on %s: loan=%d score=%.3f settlement=%s",
            pool.address, candidate.venue.value, attempt.loan_amount,
            candidate.imbalance_score, settlement.handle,
            extra={"pool": pool.address, "venue": candidate.venue.value, "status": "succeeded"},
        )
        return attempt

    def _build_actions(self, candidate: OpportunityCandidate, loan_amount: int) -> list[UnsignedTransaction]:
        """
        Two legs: sell the loan token into the candidate pool, then swap the
        proceeds back on the other venue (or the same venue if it is the only one).
        """
        pool = candidate.pool
        direction = candidate.direction
        token_in = direction.token_in(pool)
        token_out = direction.token_out(pool)

        out_venue = self._venues.get(candidate.venue)
        if out_venue is None:
            raise LoanFailure(f"No client configured for venue {candidate.venue.value}")
        back_venue = self._venues.get(self._return_venue(candidate.venue), out_venue)

        reserve_in, reserve_out = direction.reserves(pool)
        proceeds = expected_output(loan_amount, reserve_in, reserve_out)
        back_amount = min_output_after_slippage(proceeds, self._slippage)
        if back_amount <= 0:
            raise LoanFailure("Expected proceeds too small to route back")

        if self._paper_swaps:
            return [
                _paper_leg(candidate.venue, loan_amount, token_in, token_out),
                _paper_leg(self._return_venue(candidate.venue), back_amount, token_out, token_in),
            ]
        out_leg = out_venue.build_swap(loan_amount, token_in, token_out, self._slippage)
        back_leg = back_venue.build_swap(back_amount, token_out, token_in, self._slippage)
        return [out_leg, back_leg]

    def _return_venue(self, venue: Venue) -> Venue:
        for other in self._venues:
            if other is not venue:
                return other
        return venue

    def _fail(self, attempt: ExecutionAttempt, reason: str) -> ExecutionAttempt:
        attempt.status = AttemptStatus.FAILED
        attempt.error_reason = reason
        if self._breaker is not None:
            with self._lock:
                self._breaker.record_failure()
        logger.warning(
            "Attempt failed for %s on %s: %s",
            attempt.candidate.address, attempt.candidate.venue.value, reason,
            extra={"pool": attempt.candidate.address, "venue": attempt.candidate.venue.value, "status": "failed"},
        )
        return attempt


def _paper_leg(venue: Venue, amount: int, token_in: str, token_out: str) -> UnsignedTransaction:
    return UnsignedTransaction(
        venue=venue,
        payload="",
        description=f"paper swap {amount} {token_in[:8]} -> {token_out[:8]} on {venue.value}",
    )
