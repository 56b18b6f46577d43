#!/usr/bin/env python3
"""
supply-countdown: Issuance Milestone Countdown Daemon

Main entry point for the supply-countdown daemon. This service:
1. Computes the block height at which cumulative issuance reaches the target
2. Polls a block feed for the tip height and recent block timestamps
3. Estimates the block time (trailing average or fixed nominal)
4. Projects the wall-clock instant of the target block
5. Publishes the countdown to a status file and an HTTP status endpoint

Usage:
    # Start daemon
    supply-countdown --config /etc/supply-countdown/config.toml

    # One poll, print JSON, exit
    supply-countdown --once

Architecture:
    ┌─────────────────────────────────────────────────────────────────┐
    │                       supply-countdown                           │
    │                                                                  │
    │  ┌──────────┐   ┌──────────────────┐   ┌─────────────────────┐  │
    │  │  block   │──▶│ Feed Update      │──▶│ EstimateState       │  │
    │  │  feed    │   │ Coordinator      │   │ (immutable snapshot)│  │
    │  └──────────┘   └──────────────────┘   └─────────────────────┘  │
    │   poll thread    rate estimator +               │                │
    │   (30 s / on     projection engine              ▼                │
    │    request)                           display loop (1 s)         │
    │                              ┌────────────────┴──────────────┐   │
    │                              ▼                               ▼   │
    │                    status file (JSON)            HTTP /status    │
    └─────────────────────────────────────────────────────────────────┘

Signals:
    SIGTERM/SIGINT - stop
    SIGUSR1        - poll the feed now (the "became active" trigger)
    SIGUSR2        - toggle rate mode
"""

import argparse
import logging
import signal
import sys
import threading
import time
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Optional
import toml

# Set up logging before imports that use it
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger('supply-countdown')

from .engine.feed_coordinator import FeedUpdateCoordinator
from .feed.mempool_feed import MempoolFeed
from .interfaces.countdown_result import CountdownResult, build_countdown_result
from .interfaces.feed_result import PollStatus
from .issuance.constants import (
    API_POLL_INTERVAL_S,
    BLOCKS_API_URL,
    DISPLAY_INTERVAL_S,
    FEED_TIMEOUT_S,
    FIXED_BLOCK_TIME_S,
    HALVING_INTERVAL,
    HEIGHT_API_URL,
    INITIAL_SUBSIDY_SATS,
    SATS_PER_BTC,
    TARGET_BTC,
    TOTAL_BTC_SUPPLY,
)
from .issuance.issuance_model import EraSchedule, UnreachableThresholdError, counter_value_for_threshold
from .issuance.projection import RateMode
from .issuance.rate_estimator import RateEstimator
from .output.formatting import format_amount, format_number, mode_label, render_summary
from .output.status_writer import StatusWriter


def to_base_units(amount, unit_scale: int) -> int:
    """
    Convert a whole-coin config amount to integer base units.

    Examples:
        50 BTC at 10^8 -> 5_000_000_000
        "0.5" at 10^8  -> 50_000_000
    """
    return int(Decimal(str(amount)) * unit_scale)


class CountdownDaemon:
    """
    Main supply-countdown daemon.

    Owns the feed coordinator, polls the feed on a slow cadence and rebuilds
    the countdown view on a fast one. The fast loop never touches the feed.
    """

    def __init__(self, config: Dict[str, Any], feed: Any = None):
        """
        Initialize the daemon.

        Args:
            config: Configuration dictionary (see load_config)
            feed: Feed override (for testing); must provide fetch()

        Raises:
            UnreachableThresholdError: Target exceeds total issuance
            ValueError: Invalid schedule or rate mode
        """
        self.config = config
        schedule_cfg = config.get('schedule', {})
        feed_cfg = config.get('feed', {})
        timing_cfg = config.get('timing', {})
        output_cfg = config.get('output', {})

        # Issuance schedule (config amounts are whole coins)
        self.unit_scale = int(schedule_cfg.get('unit_scale', SATS_PER_BTC))
        self.unit_symbol = schedule_cfg.get('unit_symbol', 'BTC')
        self.schedule = EraSchedule(
            initial_amount=to_base_units(schedule_cfg.get('initial_amount', INITIAL_SUBSIDY_SATS // SATS_PER_BTC), self.unit_scale),
            era_length=int(schedule_cfg.get('era_length', HALVING_INTERVAL))
        )
        self.target_amount = to_base_units(schedule_cfg.get('target_amount', TARGET_BTC), self.unit_scale)
        self.supply_cap = to_base_units(schedule_cfg.get('supply_cap', TOTAL_BTC_SUPPLY), self.unit_scale)

        # Computed once; a bad target must stop start-up
        self.target_height = counter_value_for_threshold(self.target_amount, self.schedule)

        # Timing
        self.poll_interval = float(timing_cfg.get('poll_interval', API_POLL_INTERVAL_S))
        self.display_interval = float(timing_cfg.get('display_interval', DISPLAY_INTERVAL_S))
        self.nominal_block_time = float(timing_cfg.get('nominal_block_time', FIXED_BLOCK_TIME_S))
        self.log_every = int(timing_cfg.get('log_every', 60))

        # Estimation
        rate_mode = RateMode(config.get('estimate', {}).get('mode', RateMode.AVERAGE.value))
        self.estimator = RateEstimator(self.nominal_block_time)
        self.coordinator = FeedUpdateCoordinator(
            target_height=self.target_height,
            estimator=self.estimator,
            rate_mode=rate_mode,
            nominal_block_time=self.nominal_block_time
        )

        # Feed
        self.feed = feed or MempoolFeed(
            blocks_url=feed_cfg.get('blocks_url', BLOCKS_API_URL),
            height_url=feed_cfg.get('height_url', HEIGHT_API_URL),
            timeout=float(feed_cfg.get('timeout', FEED_TIMEOUT_S))
        )

        # Outputs
        self.status_path = output_cfg.get('status_path')
        self.status_writer: Optional[StatusWriter] = None
        if self.status_path:
            self.status_writer = StatusWriter(self.status_path)

        # State
        self.running = False
        self.start_time = 0.0
        self.display_ticks = 0
        self.poll_thread: Optional[threading.Thread] = None
        self._refresh_event = threading.Event()
        self.last_result: Optional[CountdownResult] = None

        logger.info("=" * 60)
        logger.info("supply-countdown initializing")
        logger.info(f"  Target: {format_amount(self.target_amount, self.unit_scale)} {self.unit_symbol} "
                    f"at block {format_number(self.target_height)}")
        logger.info(f"  Schedule: {format_amount(self.schedule.initial_amount, self.unit_scale)} "
                    f"{self.unit_symbol}/block, halving every {format_number(self.schedule.era_length)} blocks")
        logger.info(f"  Rate mode: {mode_label(rate_mode, nominal_block_time=self.nominal_block_time)}")
        logger.info(f"  Poll interval: {self.poll_interval:.0f}s")
        logger.info(f"  Status file: {self.status_path or 'disabled'}")
        logger.info("=" * 60)

    # ------------------------------------------------------------------
    # Controls
    # ------------------------------------------------------------------

    def poll_once(self) -> PollStatus:
        """Run one feed poll cycle."""
        status = self.coordinator.poll(self.feed)
        logger.debug(f"Poll finished: {status.value}")
        return status

    def request_refresh(self):
        """Ask the poll thread to poll now instead of waiting."""
        self._refresh_event.set()

    def set_rate_mode(self, mode):
        """Switch rate mode; the projection is recomputed from the current anchor."""
        self.coordinator.set_rate_mode(mode)
        self._refresh_display()

    def toggle_rate_mode(self):
        self.coordinator.toggle_rate_mode()
        self._refresh_display()

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def current_result(self, now: Optional[float] = None) -> CountdownResult:
        """Build the countdown view from the current snapshot."""
        coordinator = self.coordinator
        return build_countdown_result(
            state=coordinator.state,
            feed_status=coordinator.feed_status,
            target_height=self.target_height,
            target_amount=self.target_amount,
            schedule=self.schedule,
            supply_cap=self.supply_cap,
            rate_mode=coordinator.rate_mode,
            block_time=coordinator.block_time,
            now=now,
            unit_scale=self.unit_scale
        )

    def get_status(self) -> Dict[str, Any]:
        """Status dictionary for the HTTP server."""
        status = self.current_result().to_dict()
        status.update(self.coordinator.get_status())
        status['uptime_seconds'] = time.time() - self.start_time if self.start_time else 0.0
        return status

    def _refresh_display(self):
        result = self.current_result()
        self.last_result = result
        if self.status_writer:
            self.status_writer.write(result)
        return result

    # ------------------------------------------------------------------
    # Loops
    # ------------------------------------------------------------------

    def start(self):
        """Start the daemon (blocks until stopped)."""
        logger.info("Starting supply-countdown daemon")

        self.running = True
        self.start_time = time.time()

        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)
        if hasattr(signal, 'SIGUSR1'):
            signal.signal(signal.SIGUSR1, lambda signum, frame: self.request_refresh())
            signal.signal(signal.SIGUSR2, lambda signum, frame: self.toggle_rate_mode())

        # Initial fetch before the first display tick
        self.poll_once()

        self.poll_thread = threading.Thread(
            target=self._poll_loop,
            name="PollLoop",
            daemon=True
        )
        self.poll_thread.start()

        try:
            self._display_loop()
        except Exception as e:
            logger.exception(f"Fatal error in display loop: {e}")
            raise
        finally:
            self._cleanup()

    def _poll_loop(self):
        """Poll the feed every poll_interval, or sooner on request."""
        logger.info("Poll loop started")

        while self.running:
            self._refresh_event.wait(timeout=self.poll_interval)
            self._refresh_event.clear()
            if not self.running:
                break
            try:
                self.poll_once()
            except Exception as e:
                logger.exception(f"Poll loop error: {e}")

        logger.info("Poll loop stopped")

    def _display_loop(self):
        """Rebuild the countdown view every display_interval."""
        logger.info("Entering display loop")

        while self.running:
            try:
                result = self._refresh_display()
                self.display_ticks += 1
                if self.log_every <= 1 or self.display_ticks % self.log_every == 1:
                    logger.info(render_summary(result, self.unit_symbol))
            except Exception as e:
                logger.exception(f"Error in display loop iteration: {e}")
            time.sleep(self.display_interval)

    def stop(self):
        """Ask both loops to exit."""
        self.running = False
        self._refresh_event.set()

    def _signal_handler(self, signum, frame):
        """Handle shutdown signals."""
        logger.info(f"Received signal {signum}, shutting down...")
        self.stop()

    def _cleanup(self):
        """Clean up resources on shutdown."""
        logger.info("Cleaning up...")

        if self.poll_thread:
            self.poll_thread.join(timeout=2.0)
        if hasattr(self.feed, 'close'):
            self.feed.close()

        stats = self.coordinator.stats
        logger.info(f"Polls: {stats['polls']} (primary {stats['primary']}, fallback {stats['fallback']}, "
                    f"failed {stats['failures']}, superseded {stats['superseded']})")
        logger.info("supply-countdown stopped")

    def run_once(self) -> CountdownResult:
        """Single poll, then return the resulting countdown view."""
        self.start_time = time.time()
        self.poll_once()
        result = self._refresh_display()
        logger.info(render_summary(result, self.unit_symbol))
        return result


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from TOML file."""
    if config_path and Path(config_path).exists():
        with open(config_path, 'r') as f:
            return toml.load(f)

    if config_path:
        logger.warning(f"Config file not found: {config_path}, using defaults")

    # Default configuration
    return {
        'schedule': {
            'initial_amount': INITIAL_SUBSIDY_SATS // SATS_PER_BTC,
            'era_length': HALVING_INTERVAL,
            'unit_scale': SATS_PER_BTC,
            'unit_symbol': 'BTC',
            'target_amount': TARGET_BTC,
            'supply_cap': TOTAL_BTC_SUPPLY,
        },
        'feed': {
            'blocks_url': BLOCKS_API_URL,
            'height_url': HEIGHT_API_URL,
            'timeout': FEED_TIMEOUT_S,
        },
        'timing': {
            'poll_interval': API_POLL_INTERVAL_S,
            'display_interval': DISPLAY_INTERVAL_S,
            'nominal_block_time': FIXED_BLOCK_TIME_S,
            'log_every': 60,
        },
        'estimate': {
            'mode': RateMode.AVERAGE.value,
        },
        'output': {
            'status_path': '/dev/shm/supply_countdown.json',
            'health_port': 8080,
            'bind_address': '127.0.0.1',
        },
    }


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='supply-countdown: Issuance Milestone Countdown Daemon',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Start with config file
    supply-countdown --config /etc/supply-countdown/config.toml

    # Single poll, JSON to stdout
    supply-countdown --once

    # Project with fixed 10-minute blocks
    supply-countdown --mode fixed
        """
    )

    parser.add_argument(
        '--config', '-c',
        help='Path to TOML configuration file'
    )
    parser.add_argument(
        '--mode',
        choices=[m.value for m in RateMode],
        help='Rate mode (overrides config)'
    )
    parser.add_argument(
        '--once',
        action='store_true',
        help='Poll once, print the countdown as JSON and exit'
    )
    parser.add_argument(
        '--poll-interval',
        type=float,
        help='Seconds between feed polls (overrides config)'
    )
    parser.add_argument(
        '--status-path',
        help='Status file path (overrides config, empty string disables)'
    )
    parser.add_argument(
        '--health-port',
        type=int,
        help='HTTP port for status endpoints (overrides config, 0 to disable)'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging'
    )

    args = parser.parse_args()

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    config = load_config(args.config)

    # Apply command-line overrides
    if args.mode:
        config.setdefault('estimate', {})['mode'] = args.mode
    if args.poll_interval:
        config.setdefault('timing', {})['poll_interval'] = args.poll_interval
    if args.status_path is not None:
        config.setdefault('output', {})['status_path'] = args.status_path or None
    if args.health_port is not None:
        config.setdefault('output', {})['health_port'] = args.health_port

    try:
        daemon = CountdownDaemon(config)
    except UnreachableThresholdError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    if args.once:
        result = daemon.run_once()
        print(result.to_json())
        sys.exit(0 if result.feed_status == "OK" else 2)

    health_server = None
    output_cfg = config.get('output', {})
    health_port = output_cfg.get('health_port', 8080)
    if health_port and health_port > 0:
        from .output.health_server import HealthServer
        health_server = HealthServer(port=health_port, bind_address=output_cfg.get('bind_address', '127.0.0.1'))
        health_server.set_daemon(daemon)
        health_server.start()

    try:
        daemon.start()
    finally:
        if health_server:
            health_server.stop()


if __name__ == '__main__':
    main()
