"""Ephemeral localhost HTTP listener for OAuth2 redirect capture.

Binds a fixed local port, serves exactly one redirect on a registered
callback path, hands the authorization code to the waiting flow through
a one-shot future, then shuts itself down and releases the socket.

Uses only stdlib (http.server, threading, concurrent.futures, urllib.parse).
"""

# pylint: disable=C0103,W0212

from __future__ import annotations

import logging
import threading
import time

from concurrent.futures import Future
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any
from urllib.parse import parse_qs, urlparse

from ..exceptions import AuthorizationDenied, ListenerBindError
from ..log import redact_params
from .types import AuthorizationCallback, ListenerState


logger = logging.getLogger("pkgauth.auth")

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 51321
DEFAULT_PATH = "/auth-code/callback"

_CLOSE_HTML = """<!DOCTYPE html>
<html>
<head><title>pkgauth</title>
<style>
  body { font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, sans-serif;
         display: flex; align-items: center; justify-content: center;
         height: 100vh; margin: 0; background: #f0f2f5; color: #1a1a2e; }
  a { font-size: 1.25rem; }
</style></head>
<body><a href="#" onclick="window.close();return false;">Close Window</a></body>
</html>"""

_WAITING_HTML = """<!DOCTYPE html>
<html>
<head><title>Waiting for Authentication</title></head>
<body>
  <h1>Waiting for authentication&hellip;</h1>
  <p>Please complete the login in the browser window.</p>
</body></html>"""


class _ExclusiveHTTPServer(HTTPServer):
    """HTTPServer that never shares its port with another listener."""

    allow_reuse_port = False


class CallbackListener:
    """Short-lived localhost HTTP server that catches one OAuth2 redirect.

    The socket is bound inside :meth:`start`, so it is accepting connections
    before ``start`` returns and before any browser is pointed at it.

    Parameters
    ----------
    host : str
        Bind address (default ``"127.0.0.1"``).
    port : int
        Port number (default ``51321``; ``0`` auto-assigns, for tests).
    path : str
        Callback route (default ``"/auth-code/callback"``).
    fail_on_missing_code : bool
        When a redirect arrives without a ``code``, fail the future with
        :class:`AuthorizationDenied`. When false the future stays pending,
        and only a timeout or :meth:`stop` ends the wait.
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        path: str = DEFAULT_PATH,
        fail_on_missing_code: bool = True,
    ) -> None:
        """Initialize the callback listener."""
        self._host = host
        self._port = port
        self._path = path
        self.fail_on_missing_code = fail_on_missing_code

        self._server: HTTPServer | None = None
        self._thread: threading.Thread | None = None
        self._future: Future[AuthorizationCallback] = Future()
        self._state = ListenerState.UNBOUND
        self._lock = threading.Lock()
        self._closed = threading.Event()
        self._actual_port: int = 0
        self.bound_at: float | None = None

    @property
    def state(self) -> ListenerState:
        """Current lifecycle state."""
        return self._state

    @property
    def port(self) -> int:
        """The bound port (``0`` until started)."""
        return self._actual_port

    @property
    def path(self) -> str:
        """The registered callback route."""
        return self._path

    @property
    def future(self) -> Future[AuthorizationCallback]:
        """One-shot future resolved by the callback handler."""
        return self._future

    @property
    def redirect_uri(self) -> str:
        """Get the redirect URI for this listener.

        Returns
        -------
        str
            The full redirect URI (e.g. ``http://localhost:51321/auth-code/callback``).
        """
        host = "localhost" if self._host in {"127.0.0.1", "0.0.0.0"} else self._host  # noqa: S104
        return f"http://{host}:{self._actual_port}{self._path}"

    def start(self) -> Future[AuthorizationCallback]:
        """Bind the port and serve on a daemon thread.

        Returns
        -------
        Future[AuthorizationCallback]
            Resolved with the code once the redirect arrives.

        Raises
        ------
        ListenerBindError
            If the port cannot be bound.
        """
        if self._state is not ListenerState.UNBOUND:
            msg = "CallbackListener can only be started once"
            raise RuntimeError(msg)

        listener = self

        class _CallbackHandler(BaseHTTPRequestHandler):
            """HTTP request handler for OAuth2 callbacks."""

            def do_GET(self) -> None:
                """Handle GET requests."""
                parsed = urlparse(self.path)

                if parsed.path == listener._path:
                    params = {k: v[0] for k, v in parse_qs(parsed.query).items()}
                    first = listener._handle_callback(params)
                    self._send_html(_CLOSE_HTML)
                    if first:
                        # Shut down from another thread; shutdown() blocks until
                        # serve_forever() returns, which cannot happen from here.
                        threading.Thread(target=listener._close, daemon=True).start()
                elif parsed.path == "/":
                    self._send_html(_WAITING_HTML)
                else:
                    self.send_error(404)

            def _send_html(self, html_content: str) -> None:
                """Send an HTML response with security headers."""
                encoded = html_content.encode("utf-8")
                self.send_response(200)
                self.send_header("Content-Type", "text/html; charset=utf-8")
                self.send_header("Content-Length", str(len(encoded)))
                self.send_header("Cache-Control", "no-store")
                self.send_header(
                    "Content-Security-Policy",
                    "default-src 'none'; style-src 'unsafe-inline'; script-src 'unsafe-inline'",
                )
                self.send_header("X-Content-Type-Options", "nosniff")
                self.end_headers()
                self.wfile.write(encoded)

            def log_message(self, *args: Any) -> None:
                """Redirect HTTP server logging to the pkgauth logger."""
                # The query string carries the code; log the route only.
                route = urlparse(getattr(self, "path", "") or "").path
                logger.debug("Callback listener: %s %s", getattr(self, "command", None), route)

        try:
            self._server = _ExclusiveHTTPServer((self._host, self._port), _CallbackHandler)
        except OSError as exc:
            msg = f"Could not bind the callback listener on {self._host}:{self._port}: {exc}"
            raise ListenerBindError(msg, host=self._host, port=self._port) from exc

        self._actual_port = self._server.server_address[1]
        self.bound_at = time.monotonic()
        self._state = ListenerState.BOUND

        self._thread = threading.Thread(
            target=self._server.serve_forever, name="pkgauth-callback", daemon=True
        )
        self._thread.start()

        logger.debug("Callback listener bound on %s", self.redirect_uri)
        return self._future

    def _handle_callback(self, params: dict[str, str]) -> bool:
        """Settle the future from a redirect's query parameters.

        Returns
        -------
        bool
            True if this request was the first callback, False if ignored.
        """
        with self._lock:
            if self._state is not ListenerState.BOUND:
                logger.debug("Ignoring callback received in state %s", self._state.value)
                return False

            code = params.get("code")
            if code:
                self._state = ListenerState.FULFILLED
                self._future.set_result(AuthorizationCallback(code=code, state=params.get("state")))
                return True

            self._state = ListenerState.ERRORED
            logger.error("Failed to authenticate: %s", redact_params(params))
            if self.fail_on_missing_code:
                error = params.get("error_description") or params.get("error") or "no code"
                msg = f"Authorization was not granted: {error}"
                self._future.set_exception(
                    AuthorizationDenied(msg, provider="github", error=params.get("error"))
                )
            return True

    def wait(self, timeout: float | None = None) -> AuthorizationCallback:
        """Block until the redirect arrives.

        Parameters
        ----------
        timeout : float or None
            Maximum seconds to wait; None waits forever.

        Returns
        -------
        AuthorizationCallback
            The delivered code and state.

        Raises
        ------
        TimeoutError
            If ``timeout`` expires first.
        concurrent.futures.CancelledError
            If the listener was stopped before a callback arrived.
        AuthorizationDenied
            If the redirect carried no code and ``fail_on_missing_code`` is set.
        """
        return self._future.result(timeout=timeout)

    def wait_closed(self, timeout: float | None = None) -> bool:
        """Block until the socket has been released."""
        return self._closed.wait(timeout=timeout)

    def _close(self) -> None:
        """Shut the server down and release its socket."""
        server = self._server
        if server is not None:
            server.shutdown()
            server.server_close()
        self._closed.set()
        logger.debug("Callback listener closed")

    def stop(self) -> None:
        """Force-shutdown the listener. Safe to call repeatedly."""
        with self._lock:
            if self._state is ListenerState.BOUND:
                self._state = ListenerState.ERRORED
            # No-op once the future is settled
            self._future.cancel()

        server, thread = self._server, self._thread
        if server is not None:
            self._close()
        if thread is not None and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=5)
        self._server = None
        self._thread = None

    def __enter__(self) -> CallbackListener:
        """Start the listener when entering a ``with`` block."""
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        """Stop the listener when leaving a ``with`` block."""
        self.stop()
