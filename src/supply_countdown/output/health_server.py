"""
Health Monitoring HTTP Server for supply-countdown.

Provides a small HTTP surface for monitoring the countdown and for the two
user-facing controls (rate mode toggle and "became active" refresh).

Endpoints:
    GET  /health              - Basic health check (200 OK if running)
    GET  /status              - JSON countdown result and feed statistics
    GET  /metrics             - Prometheus-compatible metrics
    POST /refresh             - Request an immediate feed poll
    POST /mode?value=<mode>   - Set rate mode: average, fixed or toggle

Usage:
    from supply_countdown.output.health_server import HealthServer

    server = HealthServer(port=8080)
    server.set_daemon(countdown_daemon)
    server.start()
"""

import json
import logging
import threading
from http.server import HTTPServer, BaseHTTPRequestHandler
from typing import Any, Callable, Dict, Optional
from urllib.parse import parse_qs, urlparse

logger = logging.getLogger(__name__)


class HealthRequestHandler(BaseHTTPRequestHandler):
    """HTTP request handler for health endpoints."""

    # Class-level callbacks wired by HealthServer.set_daemon()
    get_status: Optional[Callable[[], Dict[str, Any]]] = None
    request_refresh: Optional[Callable[[], None]] = None
    set_rate_mode: Optional[Callable[[str], Any]] = None

    def log_message(self, format, *args):
        """Suppress default HTTP logging."""
        pass

    def do_GET(self):
        """Handle GET requests."""
        path = urlparse(self.path).path
        if path == '/health':
            self._handle_health()
        elif path == '/status':
            self._handle_status()
        elif path == '/metrics':
            self._handle_metrics()
        else:
            self.send_error(404, "Not Found")

    def do_POST(self):
        """Handle POST requests (controls)."""
        parsed = urlparse(self.path)
        if parsed.path == '/refresh':
            self._handle_refresh()
        elif parsed.path == '/mode':
            value = parse_qs(parsed.query).get('value', ['toggle'])[0]
            self._handle_mode(value)
        else:
            self.send_error(404, "Not Found")

    def _send_json(self, data: Any, status: int = 200):
        self.send_response(status)
        self.send_header('Content-Type', 'application/json')
        self.end_headers()
        self.wfile.write(json.dumps(data, indent=2).encode())

    def _handle_health(self):
        """Basic health check - returns 200 if server is running."""
        self.send_response(200)
        self.send_header('Content-Type', 'text/plain')
        self.end_headers()
        self.wfile.write(b'OK\n')

    def _handle_status(self):
        """Return JSON countdown status."""
        if not self.get_status:
            self._send_json({'error': 'No daemon connected'}, 503)
            return
        try:
            self._send_json(self.get_status())
        except Exception as e:
            self._send_json({'error': str(e)}, 500)

    def _handle_metrics(self):
        """Return Prometheus-compatible metrics."""
        if self.get_status:
            try:
                metrics = self._format_prometheus_metrics(self.get_status())
                self.send_response(200)
                self.send_header('Content-Type', 'text/plain; version=0.0.4')
                self.end_headers()
                self.wfile.write(metrics.encode())
            except Exception as e:
                self.send_response(500)
                self.send_header('Content-Type', 'text/plain')
                self.end_headers()
                self.wfile.write(f'# Error: {e}\n'.encode())
        else:
            self.send_response(503)
            self.send_header('Content-Type', 'text/plain')
            self.end_headers()
            self.wfile.write(b'# No daemon connected\n')

    def _handle_refresh(self):
        """Trigger an out-of-band feed poll."""
        if not self.request_refresh:
            self._send_json({'error': 'No daemon connected'}, 503)
            return
        self.request_refresh()
        self._send_json({'refresh': 'requested'}, 202)

    def _handle_mode(self, value: str):
        """Set or toggle the rate mode."""
        if not self.set_rate_mode:
            self._send_json({'error': 'No daemon connected'}, 503)
            return
        try:
            mode = self.set_rate_mode(value)
        except ValueError:
            self._send_json({'error': f'Unknown mode: {value}'}, 400)
            return
        self._send_json({'rate_mode': mode})

    def _format_prometheus_metrics(self, status: Dict[str, Any]) -> str:
        """Format status as Prometheus metrics."""
        stats = status.get('stats', {})
        height = status.get('current_height')
        seconds_remaining = status.get('seconds_remaining')

        lines = [
            '# HELP supply_countdown_block_height Current block height (-1 on feed error)',
            '# TYPE supply_countdown_block_height gauge',
            f'supply_countdown_block_height {height if height is not None else -1}',
            '',
            '# HELP supply_countdown_target_height Block height at which the milestone is reached',
            '# TYPE supply_countdown_target_height gauge',
            f'supply_countdown_target_height {status.get("target_height", 0)}',
            '',
            '# HELP supply_countdown_blocks_remaining Blocks until the milestone',
            '# TYPE supply_countdown_blocks_remaining gauge',
            f'supply_countdown_blocks_remaining {status.get("blocks_remaining") or 0}',
            '',
            '# HELP supply_countdown_seconds_remaining Projected seconds until the milestone',
            '# TYPE supply_countdown_seconds_remaining gauge',
            f'supply_countdown_seconds_remaining {(seconds_remaining or 0.0):.1f}',
            '',
            '# HELP supply_countdown_progress_percent Issued share of the supply cap',
            '# TYPE supply_countdown_progress_percent gauge',
            f'supply_countdown_progress_percent {(status.get("progress_percent") or 0.0):.4f}',
            '',
            '# HELP supply_countdown_block_time_seconds Active seconds per block',
            '# TYPE supply_countdown_block_time_seconds gauge',
            f'supply_countdown_block_time_seconds {(status.get("block_time_seconds") or 0.0):.3f}',
            '',
            '# HELP supply_countdown_feed_ok Last poll succeeded (1) or failed (0)',
            '# TYPE supply_countdown_feed_ok gauge',
            f'supply_countdown_feed_ok {1 if status.get("feed_status") == "OK" else 0}',
            '',
            '# HELP supply_countdown_polls_total Feed polls started',
            '# TYPE supply_countdown_polls_total counter',
            f'supply_countdown_polls_total {stats.get("polls", 0)}',
            '',
            '# HELP supply_countdown_poll_failures_total Polls where both endpoints failed',
            '# TYPE supply_countdown_poll_failures_total counter',
            f'supply_countdown_poll_failures_total {stats.get("failures", 0)}',
            '',
            '# HELP supply_countdown_fallback_polls_total Polls served by the fallback endpoint',
            '# TYPE supply_countdown_fallback_polls_total counter',
            f'supply_countdown_fallback_polls_total {stats.get("fallback", 0)}',
            '',
            '# HELP supply_countdown_rate_mode Rate mode (1=average, 2=fixed)',
            '# TYPE supply_countdown_rate_mode gauge',
        ]

        mode_map = {'average': 1, 'fixed': 2}
        lines.append(f'supply_countdown_rate_mode {mode_map.get(status.get("rate_mode"), 0)}')
        lines.append('')
        return '\n'.join(lines)


class HealthServer:
    """
    HTTP server for health monitoring and controls.

    Runs in a background thread alongside the countdown daemon.
    """

    def __init__(self, port: int = 8080, bind_address: str = '127.0.0.1'):
        """
        Initialize the health server.

        Args:
            port: HTTP port to listen on
            bind_address: Address to bind to (default: loopback only)
        """
        self.port = port
        self.bind_address = bind_address
        self.server: Optional[HTTPServer] = None
        self.thread: Optional[threading.Thread] = None
        self.daemon = None
        self._running = False

    def set_daemon(self, daemon):
        """
        Connect to a CountdownDaemon for status and controls.

        Args:
            daemon: CountdownDaemon instance
        """
        self.daemon = daemon
        HealthRequestHandler.get_status = daemon.get_status
        HealthRequestHandler.request_refresh = daemon.request_refresh
        HealthRequestHandler.set_rate_mode = self._set_rate_mode

    def _set_rate_mode(self, value: str) -> str:
        """Apply a mode request; returns the resulting mode name."""
        if value == 'toggle':
            self.daemon.toggle_rate_mode()
        else:
            self.daemon.set_rate_mode(value)
        return self.daemon.coordinator.rate_mode.value

    def start(self):
        """Start the health server in a background thread."""
        if self._running:
            logger.warning("Health server already running")
            return

        try:
            self.server = HTTPServer(
                (self.bind_address, self.port),
                HealthRequestHandler
            )
            # Set timeout so handle_request doesn't block forever
            self.server.timeout = 1.0
            self._running = True

            self.thread = threading.Thread(
                target=self._serve,
                name="HealthServer",
                daemon=True
            )
            self.thread.start()

            logger.info(f"Health server started on http://{self.bind_address}:{self.port}")
            logger.info("  GET  /health  - Health check")
            logger.info("  GET  /status  - JSON status")
            logger.info("  GET  /metrics - Prometheus metrics")
            logger.info("  POST /refresh - Immediate feed poll")
            logger.info("  POST /mode    - Rate mode (average|fixed|toggle)")

        except Exception as e:
            logger.error(f"Failed to start health server: {e}")
            self._running = False

    def _serve(self):
        """Server loop (runs in background thread)."""
        while self._running:
            try:
                self.server.handle_request()
            except Exception as e:
                logger.debug(f"Health server request error: {e}")

    def stop(self):
        """Stop the health server."""
        self._running = False
        if self.server:
            try:
                self.server.server_close()
            except OSError as e:
                logger.debug(f"Health server close: {e}")
            self.server = None
        if self.thread:
            self.thread.join(timeout=2.0)
        logger.info("Health server stopped")
