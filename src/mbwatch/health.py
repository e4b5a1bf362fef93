"""
Health check and status endpoint for the sync service.
"""

from __future__ import annotations
import json
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Optional, Callable
from threading import Thread
from mbwatch.logging import logger


class HealthCheckHandler(BaseHTTPRequestHandler):
    """HTTP handler for health and status endpoints."""

    health_func: Optional[Callable[[], dict]] = None
    status_func: Optional[Callable[[], dict]] = None

    def do_GET(self) -> None:
        """Handle GET requests."""
        if self.path in ("/health", "/health/"):
            self._handle_health()
        elif self.path in ("/", "/status", "/status/"):
            self._handle_status()
        else:
            self._send_response(404, {"error": "Not found"})

    def _handle_health(self) -> None:
        """Handle /health endpoint."""
        if not self.health_func:
            self._send_response(503, {"status": "unavailable", "message": "Health check not configured"})
            return
        try:
            health_data = self.health_func()
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            self._send_response(500, {"status": "error", "error": str(e)})
            return
        status_code = 200 if health_data.get("status") == "healthy" else 503
        self._send_response(status_code, health_data)

    def _handle_status(self) -> None:
        """Handle /status endpoint: the current mailbox snapshot."""
        if not self.status_func:
            self._send_response(200, {"service": "mbwatch", "status": "running"})
            return
        try:
            self._send_response(200, self.status_func())
        except Exception as e:
            logger.error(f"Status snapshot failed: {e}")
            self._send_response(500, {"status": "error", "error": str(e)})

    def _send_response(self, status_code: int, data: dict) -> None:
        """Send JSON response."""
        try:
            self.send_response(status_code)
            self.send_header("Content-Type", "application/json")
            self.end_headers()
            self.wfile.write(json.dumps(data, indent=2).encode("utf-8"))
        except BrokenPipeError:
            # Client went away before the response was written
            pass

    def log_message(self, format: str, *args) -> None:
        """Route request logging through loguru."""
        logger.debug(f"HTTP {format % args}")


class HealthCheckServer:
    """
    Small HTTP server running in a background thread.

    Provides endpoints:
    - GET /health - Scheduler health (200 healthy, 503 otherwise)
    - GET /status - Snapshot of every account's mailbox counts
    """

    def __init__(
        self,
        port: int = 8080,
        health_func: Optional[Callable[[], dict]] = None,
        status_func: Optional[Callable[[], dict]] = None,
        host: str = "0.0.0.0",
    ) -> None:
        """
        Initialize health check server.

        Args:
            port: Port to listen on
            health_func: Function that returns health status dict
            status_func: Function that returns the status payload
            host: Interface to bind
        """
        self.port = port
        self.host = host
        self.server: Optional[ThreadingHTTPServer] = None
        self.thread: Optional[Thread] = None
        self.set_health_func(health_func)
        HealthCheckHandler.status_func = staticmethod(status_func) if status_func else None

    def set_health_func(self, health_func: Optional[Callable[[], dict]]) -> None:
        HealthCheckHandler.health_func = staticmethod(health_func) if health_func else None

    def start(self) -> None:
        """Start health check server in background thread."""
        if self.server:
            logger.warning("Health check server is already running")
            return

        try:
            self.server = ThreadingHTTPServer((self.host, self.port), HealthCheckHandler)
        except OSError as e:
            logger.error(f"Failed to start health check server: {e}")
            raise
        self.port = self.server.server_address[1]
        self.thread = Thread(target=self.server.serve_forever, daemon=True)
        self.thread.start()
        logger.info(f"Health check server started on port {self.port}")

    def stop(self) -> None:
        """Stop health check server."""
        if self.server:
            self.server.shutdown()
            self.server.server_close()
            self.server = None
            logger.info("Health check server stopped")
