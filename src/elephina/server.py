"""
=============================================================================
HTTP SERVER
=============================================================================

The transport around an App: a listening socket, an accept loop and a
pool of worker threads.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   main thread                        worker threads                 │
    │                                                                      │
    │   bind() ─► listen(backlog)                                         │
    │      │                                                               │
    │      ▼                                                               │
    │   accept() ──── Connection ────►  read_request()                    │
    │      ▲          (submit)            │                                │
    │      │                              ▼                                │
    │      │                           RequestParser.parse()              │
    │      │                              │          │ HTTPParseError     │
    │      │                              ▼          ▼                    │
    │      │                           app.handle()  error_response()     │
    │      │                              │          │                    │
    │      │                              ▼          ▼                    │
    │      │                           send_response() + close            │
    │      └── loop until shutdown()                                      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

One request per connection: every response carries "Connection: close".

=============================================================================
SHUTDOWN
=============================================================================

accept() runs with a one second timeout so the loop notices shutdown()
promptly. SIGINT/SIGTERM call shutdown() when serve_forever() runs on the
main thread. In-flight requests finish before serve_forever() returns.

=============================================================================
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Tuple
import logging
import signal
import socket
import threading

from .app import App
from .config import AppConfig
from .core import Connection, ConnectionState, RequestTooLarge
from .http import HTTPParseError, HTTPResponse, HTTPStatus, RequestParser, error_response


logger = logging.getLogger(__name__)

# One request per connection.
CLOSE = {"Connection": "close"}


class Server:
    """
    Serves an App over HTTP/1.1.

        app = create_app(config)
        Server(app, config).serve_forever()

    In tests, bind to port 0 and run the loop on a thread:

        server = Server(app, AppConfig(port=0))
        server.bind()
        threading.Thread(target=server.serve_forever, daemon=True).start()
        host, port = server.server_address
        ...
        server.shutdown()

    Args:
        app: The application to dispatch to.
        config: Network settings; defaults to app.config.
    """

    ACCEPT_TIMEOUT = 1.0

    def __init__(self, app: App, config: Optional[AppConfig] = None):
        self.app = app
        self.config = config or app.config
        self.parser = RequestParser(self.config.max_request_size)

        self._socket: Optional[socket.socket] = None
        self._running = threading.Event()
        self._stopped = threading.Event()
        self._stopped.set()

    @property
    def server_address(self) -> Tuple[str, int]:
        """Bound (host, port); the real port when config.port is 0."""
        if self._socket is None:
            raise RuntimeError("Server is not bound")
        return self._socket.getsockname()[:2]

    @property
    def is_running(self) -> bool:
        return self._running.is_set()

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def bind(self) -> Tuple[str, int]:
        """Create the listening socket. Safe to call more than once."""
        if self._socket is not None:
            return self.server_address

        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((self.config.host, self.config.port))
        except OSError as e:
            sock.close()
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            raise
        sock.listen(self.config.backlog)
        sock.settimeout(self.ACCEPT_TIMEOUT)

        self._socket = sock
        host, port = self.server_address
        logger.info(f"Listening on http://{host}:{port}")
        return host, port

    def serve_forever(self) -> None:
        """Accept connections until shutdown() (blocks)."""
        self.bind()
        self._running.set()
        self._stopped.clear()
        restore = self._install_signal_handlers()

        logger.info(f"Serving with {self.config.max_workers} worker threads")
        try:
            with ThreadPoolExecutor(
                max_workers=self.config.max_workers,
                thread_name_prefix="elephina-worker",
            ) as pool:
                self._accept_loop(pool)
                logger.info("Waiting for in-flight requests")
        finally:
            restore()
            self._close_socket()
            self._stopped.set()
            logger.info("Server stopped")

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None) -> None:
        """
        Stop accepting connections.

        Args:
            wait: Block until serve_forever() has returned.
            timeout: Upper bound on that wait, in seconds.
        """
        if self._running.is_set():
            logger.info("Shutting down server...")
        self._running.clear()
        if wait:
            self._stopped.wait(timeout)

    def _accept_loop(self, pool: ThreadPoolExecutor) -> None:
        while self._running.is_set():
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._running.is_set():
                    logger.error(f"Accept error: {e}")
                break

            conn = Connection(
                socket=client_socket,
                address=client_address,
                timeout=self.config.timeout,
                max_request_size=self.config.max_request_size,
            )
            logger.debug(f"[{conn.id}] Accepted {client_address[0]}:{client_address[1]}")
            pool.submit(self._process_connection, conn)

    def _install_signal_handlers(self):
        if threading.current_thread() is not threading.main_thread():
            return lambda: None

        def handler(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, initiating shutdown...")
            self.shutdown(wait=False)

        previous = {
            sig: signal.signal(sig, handler) for sig in (signal.SIGINT, signal.SIGTERM)
        }

        def restore():
            for sig, original in previous.items():
                signal.signal(sig, original)

        return restore

    def _close_socket(self) -> None:
        if self._socket is not None:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

    # =========================================================================
    # PER-CONNECTION WORK (worker threads)
    # =========================================================================

    def _process_connection(self, conn: Connection) -> None:
        with conn:
            try:
                raw_request = conn.read_request()
            except TimeoutError:
                self._send(conn, error_response("Request timeout", HTTPStatus.REQUEST_TIMEOUT, CLOSE))
                return
            except RequestTooLarge as e:
                self._send(conn, error_response(str(e), HTTPStatus.PAYLOAD_TOO_LARGE, CLOSE))
                return
            if raw_request is None:
                return

            conn.state = ConnectionState.PROCESSING
            try:
                ctx = self.parser.parse(raw_request, conn.address)
            except HTTPParseError as e:
                logger.info(f"[{conn.id}] Rejected malformed request: {e}")
                self._send(conn, error_response(str(e), e.status_code, CLOSE))
                return

            try:
                response = self.app.handle(ctx, headers=CLOSE)
            except Exception:
                logger.exception(f"[{conn.id}] Unhandled error for {ctx.method} {ctx.path}")
                response = error_response("Internal Server Error", HTTPStatus.INTERNAL_SERVER_ERROR, CLOSE)

            self._send(conn, response)

    def _send(self, conn: Connection, response: HTTPResponse) -> None:
        conn.send_response(response.to_bytes(self.config.server_name))
