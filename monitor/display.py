"""
Clean, scannable console output for the pool scanner.

Pure formatting functions that emit structured log lines using box-drawing
characters. No side effects beyond logging. All data arrives via arguments.
"""

from __future__ import annotations

import logging
import time

from config import Config
from monitor.tick_stats import TickStats
from pipeline.tick import TickReport
from scanner.models import AttemptStatus, ExecutionAttempt
from scanner.scorer import rank_candidates

logger = logging.getLogger(__name__)

_TOP = "\u250c"  # ┌
_MID = "\u2502"  # │
_BOT = "\u2514"  # └
_DASH = "\u2500"  # ─
_VERT_SEP = "\u2502"  # │ (inline separator)

_MAX_ROWS = 10

_STATUS_TAGS = {
    AttemptStatus.SUCCEEDED: "OK",
    AttemptStatus.FAILED: "FAIL",
    AttemptStatus.SKIPPED: "SKIP",
    AttemptStatus.PENDING: "...",
}


def _short(address: str, length: int = 12) -> str:
    if len(address) <= length:
        return address
    return address[: length - 1] + "\u2026"


def mode_label(dry_run: bool, cfg: Config) -> str:
    if dry_run:
        return "DRY-RUN"
    if cfg.paper_trading:
        return "PAPER"
    return "LIVE"


def print_startup(cfg: Config, dry_run: bool, venues: list[str]) -> None:
    """Compact config block emitted once after the banner."""
    logger.info(
        "  Mode: %-8s TVL >= $%.0f  Vol24h >= $%.0f  Imbalance > %.1f%%",
        mode_label(dry_run, cfg), cfg.min_tvl, cfg.min_volume_24h, cfg.eligibility_threshold * 100,
    )
    logger.info("  Venues: %s", "  ".join(venues))
    logger.info(
        "  Interval: %.1fs  Window: %.0fs  Loan: %.1f%% of min reserve  Slippage: %.2f%%",
        cfg.scan_interval_ms / 1000.0,
        cfg.freshness_window_ms / 1000.0,
        cfg.loan_fraction * 100,
        cfg.slippage_tolerance * 100,
    )
    logger.info(
        "  Priority: tip=%d lamports  CU limit=%d  CU price=%d micro-lamports",
        cfg.priority_fee_lamports, cfg.compute_unit_limit, cfg.compute_unit_price_micro_lamports,
    )


def print_tick_header(tick: int) -> None:
    ts = time.strftime("%H:%M:%S")
    label = f" Tick {tick} "
    left_dashes = _DASH * 2
    right_pad = max(2, 60 - len(left_dashes) - len(label) - len(ts) - 3)
    logger.info(f"{left_dashes}{label}{_DASH * right_pad} {ts} {_DASH * 2}")


def print_tick_result(report: TickReport) -> None:
    baseline = f", {report.baseline:,} baseline" if report.baseline else ""
    logger.info(
        "  Listed %s pools (%d new%s, %d evicted), %d fresh, %d refreshed in %.1fs",
        f"{report.listed:,}", report.new_pools, baseline, report.evicted,
        report.fresh, report.refreshed, report.elapsed_ms / 1000.0,
    )
    for failure in report.failures:
        logger.info("  %s fetch warning: %s", _MID, failure)

    if not report.candidates:
        logger.info("  %s No candidates", _TOP)
        return

    n = len(report.candidates)
    logger.info(
        "  %s %d candidate%s, %d actionable",
        _TOP, n, "" if n == 1 else "s", len(report.actionable),
    )
    logger.info("  %s  %-3s %-9s %-14s %9s %8s %-13s", _MID, "#", "Venue", "Pool", "Score", "Ratio", "Direction")
    for idx, candidate in enumerate(rank_candidates(report.candidates)[:_MAX_ROWS], 1):
        logger.info(
            "  %s  %-3d %-9s %-14s %9.4f %8.3f %-13s",
            _MID, idx, candidate.venue.value, _short(candidate.address),
            candidate.imbalance_score, candidate.fee_ratio, candidate.direction.value,
        )
    for attempt in report.attempts:
        print_attempt(attempt)


def print_attempt(attempt: ExecutionAttempt) -> None:
    tag = _STATUS_TAGS.get(attempt.status, "?")
    detail = attempt.settlement_handle if attempt.succeeded else attempt.error_reason
    logger.info(
        "  %s  [%s] %s loan=%d %s %s",
        _MID, tag, _short(attempt.candidate.address), attempt.loan_amount, _VERT_SEP, detail or "",
    )


def print_tick_footer(stats: TickStats) -> None:
    logger.info(
        "  %s Session: %d ticks %s %d new pools %s %d attempts (%d ok, %d failed)",
        _BOT, stats.total_ticks, _VERT_SEP, stats.total_new_pools, _VERT_SEP,
        sum(stats.attempts_by_status.values()), stats.succeeded, stats.failed,
    )
