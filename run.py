#!/usr/bin/env python3
"""
New-pool imbalance scanner -- single pipeline script.

Each tick:
  1. List pools on every enabled venue
  2. Register unseen pools, evict pools past the freshness window
  3. Refetch live data for fresh pools and score fee imbalance
  4. Attempt one flash-loan rebalance per actionable pool
  5. Repeat every scan interval, never overlapping ticks

Usage:
  python run.py --dry-run     # scan and score only, no execution
  python run.py               # paper execution (default)
  python run.py --once        # single tick, then exit
"""

from __future__ import annotations

import argparse
import json
import logging
import signal
import sys
import threading

from client.bundler import JitoBundler, PriorityFee
from client.chain import ChainConnection
from client.flash_loan import (
    BundledFlashLoanProvider,
    FlashLoanProvider,
    LoanWrapper,
    PaperFlashLoanProvider,
)
from client.meteora import MeteoraClient
from client.raydium import RaydiumClient
from client.signer import Signer, WatchOnlySigner
from client.venue import VenueClient
from config import Config, ConfigurationError, load_config, venues_from_config
from executor.coordinator import ExecutionCoordinator
from executor.safety import CircuitBreaker
from monitor.display import print_startup, print_tick_footer, print_tick_header, print_tick_result
from monitor.logger import setup_logging
from monitor.tick_stats import TickStats
from pipeline.scheduler import Scheduler
from pipeline.tick import ScanPipeline
from scanner.feed_merger import FeedMerger
from scanner.models import Venue
from scanner.registry import PoolRegistry
from scanner.scorer import OpportunityScorer

logger = logging.getLogger(__name__)


_BANNER = r"""
 _  _                ___          _   ___
| \| |_____ __ __   | _ \___  ___| | / __| __ __ _ _ _  _ _  ___ _ _
| .` / -_) V  V /   |  _/ _ \/ _ \ | \__ \/ _/ _` | ' \| ' \/ -_) '_|
|_|\_\___|\_/\_/    |_| \___/\___/_| |___/\__\__,_|_||_|_||_\___|_|
"""


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="New-pool imbalance scanner")
    parser.add_argument("--dry-run", action="store_true", help="Scan and score only, never execute")
    parser.add_argument("--once", action="store_true", help="Run a single tick and exit")
    parser.add_argument("--json-log", type=str, default=None, help="Path to JSON log file for machine-readable output")
    return parser.parse_args(argv)


def build_venue_clients(cfg: Config) -> dict[Venue, VenueClient]:
    clients: dict[Venue, VenueClient] = {}
    for venue in venues_from_config(cfg):
        if venue is Venue.RAYDIUM:
            clients[venue] = RaydiumClient(
                host=cfg.raydium_host,
                trade_host=cfg.raydium_trade_host,
                wallet=cfg.wallet_public_key,
                compute_unit_price_micro_lamports=cfg.compute_unit_price_micro_lamports,
                timeout=cfg.http_timeout_sec,
            )
        elif venue is Venue.METEORA:
            clients[venue] = MeteoraClient(
                host=cfg.meteora_host,
                swap_host=cfg.meteora_swap_host,
                wallet=cfg.wallet_public_key,
                compute_unit_price_micro_lamports=cfg.compute_unit_price_micro_lamports,
                timeout=cfg.http_timeout_sec,
            )
    return clients


def build_pipeline(
    cfg: Config,
    dry_run: bool = False,
    venues: dict[Venue, VenueClient] | None = None,
    flash_loan: FlashLoanProvider | None = None,
    signer: Signer | None = None,
    loan_wrapper: LoanWrapper | None = None,
) -> ScanPipeline:
    """
    Wire the pipeline. Live execution needs an injected signer plus either a
    flash-loan provider or a lender-specific LoanWrapper, which is bundled
    through the configured block engine. This process never holds keys.
    """
    if venues is None:
        venues = build_venue_clients(cfg)

    coordinator: ExecutionCoordinator | None = None
    if not dry_run:
        paper_swaps = False
        if flash_loan is None:
            if cfg.paper_trading:
                flash_loan = PaperFlashLoanProvider()
                paper_swaps = True
            elif loan_wrapper is not None and signer is not None:
                flash_loan = BundledFlashLoanProvider(
                    loan_wrapper,
                    JitoBundler(url=cfg.jito_block_engine_url, timeout=cfg.http_timeout_sec),
                )
            else:
                raise ConfigurationError(
                    "PAPER_TRADING=false requires an injected signer and loan wrapper; "
                    "use --dry-run or paper mode from the command line"
                )
        coordinator = ExecutionCoordinator(
            venues=venues,
            flash_loan=flash_loan,
            signer=signer or WatchOnlySigner(cfg.wallet_public_key),
            priority_fee=PriorityFee(
                tip_lamports=cfg.priority_fee_lamports,
                compute_unit_limit=cfg.compute_unit_limit,
                compute_unit_price_micro_lamports=cfg.compute_unit_price_micro_lamports,
            ),
            loan_fraction=cfg.loan_fraction,
            slippage_tolerance=cfg.slippage_tolerance,
            breaker=CircuitBreaker(
                max_consecutive_failures=cfg.max_consecutive_failures,
                cooldown_ms=cfg.breaker_cooldown_ms,
            ),
            paper_swaps=paper_swaps,
        )

    return ScanPipeline(
        registry=PoolRegistry(window_ms=cfg.freshness_window_ms),
        feeds=FeedMerger(venues, max_workers=cfg.fetch_workers),
        scorer=OpportunityScorer(min_tvl=cfg.min_tvl, min_volume=cfg.min_volume_24h),
        coordinator=coordinator,
        eligibility_threshold=cfg.eligibility_threshold,
        baseline_first_listing=cfg.baseline_first_listing,
    )


def check_chain(cfg: Config) -> bool:
    """Log cluster slot and wallet balance. Connectivity problems are not fatal."""
    chain = ChainConnection(cfg.rpc_url, timeout=cfg.http_timeout_sec)
    try:
        slot = chain.get_slot()
        logger.info("  RPC: %s (slot %d)", cfg.rpc_url, slot)
        if cfg.wallet_public_key:
            lamports = chain.get_balance(cfg.wallet_public_key)
            logger.info("  Wallet: %s (%.4f SOL)", cfg.wallet_public_key, lamports / 1e9)
        return True
    except Exception as e:
        logger.warning("RPC check failed for %s: %s", cfg.rpc_url, e)
        return False


def make_tick(pipeline: ScanPipeline, stats: TickStats):
    def _tick() -> None:
        print_tick_header(pipeline.ticks_run + 1)
        report = pipeline.run_tick()
        stats.record(report)
        print_tick_result(report)
        print_tick_footer(stats)
    return _tick


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        cfg = load_config()
        log_file_path = setup_logging(cfg.log_level, json_log_file=args.json_log)
        logger.info(_BANNER.strip("\n"))
        logger.info("  Log file: %s", log_file_path)
        pipeline = build_pipeline(cfg, dry_run=args.dry_run)
    except ConfigurationError as e:
        if not logging.getLogger().handlers:
            setup_logging("INFO", json_log_file=args.json_log)
        logger.error("Invalid configuration: %s", e)
        return 1

    print_startup(cfg, args.dry_run, [v.value for v in pipeline.feeds.venues])
    check_chain(cfg)

    stop = threading.Event()

    def _handle_signal(signum, frame):
        logger.info("Shutdown requested (signal %d), finishing current tick...", signum)
        stop.set()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    stats = TickStats()
    scheduler = Scheduler(make_tick(pipeline, stats), interval_ms=cfg.scan_interval_ms)
    scheduler.run_forever(stop, max_ticks=1 if args.once else None)

    logger.info("")
    logger.info("Session summary: %s", json.dumps(stats.summary()))
    if scheduler.ticks_deferred or scheduler.ticks_failed:
        logger.info("  Deferred ticks: %d  Failed ticks: %d", scheduler.ticks_deferred, scheduler.ticks_failed)
    return 0


if __name__ == "__main__":
    sys.exit(main())
