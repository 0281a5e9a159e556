"""Ephemeral local HTTP server that brokers one Plaid Link handshake.

The server serves the Plaid Link page on ``/`` and receives the widget's
result on the callback path. The first result resolves a single-assignment
``HandshakeSignal``; repeated callbacks (browser retries, double clicks) are
acknowledged but ignored.

Lifecycle of one server::

    IDLE -> LISTENING -> AWAITING_CALLBACK -> DELIVERED | REJECTED | TIMED_OUT
                                                                -> STOPPED
    IDLE -> BIND_FAILED -> STOPPED
"""

import json
import logging
import threading
import urllib.parse
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FuturesTimeoutError
from enum import Enum
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any

from ..errors import (
    BindFailureError,
    HandshakeError,
    HandshakeRejectedError,
    HandshakeTimeoutError,
)
from ..schemas import LinkWidgetConfig
from .page import render_link_page

logger = logging.getLogger(__name__)

CALLBACK_PATH = "/callback"
MAX_CALLBACK_BYTES = 1024 * 1024


class HandshakeState(Enum):
    """States of a callback server over one handshake."""

    IDLE = "idle"
    LISTENING = "listening"
    AWAITING_CALLBACK = "awaiting_callback"
    DELIVERED = "delivered"
    REJECTED = "rejected"
    TIMED_OUT = "timed_out"
    BIND_FAILED = "bind_failed"
    STOPPED = "stopped"


class HandshakeSignal:
    """Single-assignment result of a handshake.

    Resolved at most once with either a public token or a rejection; later
    resolutions are no-ops that return False.
    """

    def __init__(self) -> None:
        self._future: Future[str] = Future()
        self._lock = threading.Lock()

    @property
    def resolved(self) -> bool:
        return self._future.done()

    def deliver(self, public_token: str) -> bool:
        """Resolve with a public token. Returns False if already resolved."""
        with self._lock:
            if self._future.done():
                return False
            self._future.set_result(public_token)
            return True

    def reject(self, error: HandshakeRejectedError) -> bool:
        """Resolve with a rejection. Returns False if already resolved."""
        with self._lock:
            if self._future.done():
                return False
            self._future.set_exception(error)
            return True

    def wait(self, timeout: float | None = None) -> str:
        """Block until resolved.

        Raises:
            HandshakeRejectedError: If the handshake was rejected
            HandshakeTimeoutError: If ``timeout`` seconds pass first
        """
        try:
            return self._future.result(timeout=timeout)
        except FuturesTimeoutError:
            raise HandshakeTimeoutError(timeout or 0) from None


def _rejection_from(error: Any) -> HandshakeRejectedError:
    """Build a rejection from the ``error`` argument of Plaid Link's onExit."""
    if not isinstance(error, dict):
        return HandshakeRejectedError()
    return HandshakeRejectedError(
        error_code=error.get("error_code"),
        error_message=error.get("display_message") or error.get("error_message"),
        error_type=error.get("error_type"),
    )


class _CallbackHTTPServer(ThreadingHTTPServer):
    """HTTP server carrying the state shared with its request handlers."""

    def __init__(
        self,
        address: tuple[str, int],
        page: bytes,
        callback_path: str,
        signal: HandshakeSignal,
    ):
        self.page = page
        self.callback_path = callback_path
        self.signal = signal
        super().__init__(address, _CallbackRequestHandler)


class _CallbackRequestHandler(BaseHTTPRequestHandler):
    server: _CallbackHTTPServer

    def do_GET(self) -> None:
        parsed = urllib.parse.urlparse(self.path)
        if parsed.path != "/":
            self.send_error(HTTPStatus.NOT_FOUND, "Not Found")
            return
        self._send(HTTPStatus.OK, self.server.page, "text/html; charset=utf-8")

    def do_POST(self) -> None:
        parsed = urllib.parse.urlparse(self.path)
        if parsed.path != self.server.callback_path:
            self.send_error(HTTPStatus.NOT_FOUND, "Not Found")
            return

        try:
            content_length = int(self.headers.get("Content-Length", "0"))
        except ValueError:
            content_length = 0
        if content_length > MAX_CALLBACK_BYTES:
            self._send_json(HTTPStatus.REQUEST_ENTITY_TOO_LARGE, {"accepted": False})
            return

        raw_body = self.rfile.read(content_length) if content_length > 0 else b""
        try:
            payload = json.loads(raw_body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            payload = None

        if not isinstance(payload, dict):
            self._send_json(
                HTTPStatus.BAD_REQUEST,
                {"accepted": False, "error": "expected a JSON object"},
            )
            return

        public_token = payload.get("public_token")
        if isinstance(public_token, str) and public_token:
            accepted = self.server.signal.deliver(public_token)
        elif "error" in payload:
            accepted = self.server.signal.reject(_rejection_from(payload["error"]))
        else:
            self._send_json(
                HTTPStatus.BAD_REQUEST,
                {"accepted": False, "error": "expected public_token or error"},
            )
            return

        if accepted:
            logger.debug("Received Plaid Link result")
        else:
            logger.debug("Ignoring repeated Plaid Link callback")
        self._send_json(HTTPStatus.OK, {"accepted": accepted})

    def _send_json(self, status: HTTPStatus, body: dict[str, Any]) -> None:
        self._send(status, json.dumps(body).encode("utf-8"), "application/json")

    def _send(self, status: HTTPStatus, body: bytes, content_type: str) -> None:
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.send_header("Cache-Control", "no-store")
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args: Any) -> None:  # noqa: A002
        # Route request logs through logging instead of stderr
        logger.debug(f"{self.address_string()} - {format % args}")


class CallbackServer:
    """Local server hosting Plaid Link and capturing its single result.

    Example:
        server = CallbackServer(widget, port=8080)
        try:
            server.start()
            public_token = server.await_public_token(timeout=600)
        finally:
            server.stop()
    """

    def __init__(
        self,
        widget: LinkWidgetConfig,
        host: str = "127.0.0.1",
        port: int = 8080,
        callback_path: str = CALLBACK_PATH,
    ):
        self.widget = widget
        self.host = host
        self.port = port
        self.callback_path = callback_path
        self.signal = HandshakeSignal()
        self.state = HandshakeState.IDLE
        self._httpd: _CallbackHTTPServer | None = None
        self._thread: threading.Thread | None = None

    @property
    def url(self) -> str:
        """URL of the Plaid Link page."""
        host = self.host if self.host not in ("", "0.0.0.0") else "localhost"  # noqa: S104
        if ":" in host:
            host = f"[{host}]"
        return f"http://{host}:{self.port}/"

    def start(self) -> "CallbackServer":
        """Bind the port and start serving in a background thread.

        Raises:
            BindFailureError: If the port cannot be bound
        """
        if self.state is not HandshakeState.IDLE:
            raise HandshakeError(
                f"Callback server cannot start from state {self.state.value}"
            )

        page = render_link_page(self.widget, self.callback_path).encode("utf-8")
        try:
            self._httpd = _CallbackHTTPServer(
                (self.host, self.port), page, self.callback_path, self.signal
            )
        except OSError as e:
            self.state = HandshakeState.BIND_FAILED
            raise BindFailureError(self.host, self.port, e) from e

        # Resolves an ephemeral port when 0 was requested
        self.port = self._httpd.server_address[1]

        self._thread = threading.Thread(
            target=self._httpd.serve_forever,
            name="LinkCallbackServer",
            daemon=True,
        )
        self._thread.start()
        self.state = HandshakeState.LISTENING
        logger.debug(f"Callback server listening on {self.host}:{self.port}")
        return self

    def await_public_token(self, timeout: float | None = None) -> str:
        """Block until the browser reports the Plaid Link result.

        Args:
            timeout: Seconds to wait, or None to wait indefinitely

        Returns:
            str: Public token reported by Plaid Link

        Raises:
            HandshakeRejectedError: If Plaid Link reported an error or exit
            HandshakeTimeoutError: If no result arrived in time
        """
        if self.state is not HandshakeState.LISTENING:
            raise HandshakeError(
                f"Cannot await a handshake from state {self.state.value}"
            )

        self.state = HandshakeState.AWAITING_CALLBACK
        try:
            public_token = self.signal.wait(timeout)
        except HandshakeTimeoutError:
            self.state = HandshakeState.TIMED_OUT
            raise
        except HandshakeRejectedError:
            self.state = HandshakeState.REJECTED
            raise

        self.state = HandshakeState.DELIVERED
        return public_token

    def stop(self) -> None:
        """Release the port. Safe to call more than once and after failures."""
        if self.state is HandshakeState.STOPPED:
            return

        if self._httpd is not None:
            self._httpd.shutdown()
            self._httpd.server_close()
            self._httpd = None
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None

        self.state = HandshakeState.STOPPED
        logger.debug(f"Callback server on port {self.port} stopped")

    def __enter__(self) -> "CallbackServer":
        try:
            return self.start()
        except BaseException:
            self.stop()
            raise

    def __exit__(self, *exc_info: object) -> None:
        self.stop()
