"""
pytest configuration and fixtures.
"""

import json
import socket
import threading
import time
from typing import Any, Dict, Generator, Optional, Tuple
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from elephina import App, AppConfig, Server, create_app
from elephina.http import RequestContext
from elephina.security import encode_token


TEST_SECRET = "test-secret"


def make_ctx(
    method: str,
    path: str,
    body: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> RequestContext:
    """Build a RequestContext the way the parser would, with a JSON body."""
    headers = dict(headers or {})
    raw_body = b""
    if body is not None:
        raw_body = json.dumps(body).encode()
        headers.setdefault("Content-Type", "application/json")
        headers["Content-Length"] = str(len(raw_body))
    path, _, query = path.partition("?")
    query_params: Dict[str, list] = {}
    for pair in filter(None, query.split("&")):
        name, _, value = pair.partition("=")
        query_params.setdefault(name, []).append(value)
    return RequestContext(
        method=method,
        path=path,
        headers=headers,
        query_params=query_params,
        raw_body=raw_body,
        client_address=("127.0.0.1", 50000),
    )


def bearer(user_id: int = 1, secret: str = TEST_SECRET) -> Dict[str, str]:
    """Authorization header carrying a fresh token."""
    token = encode_token({"user_id": user_id}, secret, ttl=600)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /users/42?page=1&limit=10 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: application/json\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with JSON body."""
    body = b'{"username": "alice", "email": "alice@example.com", "password": "secret1"}'
    return (
        b"POST /users HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"\r\n"
        + body
    )


@pytest.fixture
def config() -> AppConfig:
    """Test configuration: in-memory database, OS-picked port."""
    return AppConfig(
        host="127.0.0.1",
        port=0,
        max_workers=4,
        timeout=5.0,
        jwt_secret=TEST_SECRET,
        jwt_expiration=600,
        database_path=":memory:",
    )


@pytest.fixture
def app(config: AppConfig) -> Generator[App, None, None]:
    """The bundled API on a fresh in-memory database."""
    application = create_app(config)
    yield application
    application.db.close()


@pytest.fixture
def auth_headers() -> Dict[str, str]:
    return bearer()


class RunningServer:
    """A Server serving on a background thread."""

    def __init__(self, server: Server):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def address(self) -> Tuple[str, int]:
        return self.server.server_address

    def start(self):
        """Start the accept loop and wait until it is live."""
        self.server.bind()
        self._thread = threading.Thread(target=self.server.serve_forever, daemon=True)
        self._thread.start()

        deadline = time.time() + 5
        while not self.server.is_running:
            if time.time() > deadline:
                raise RuntimeError("Server failed to start")
            time.sleep(0.01)

    def stop(self):
        self.server.shutdown(timeout=5)
        if self._thread:
            self._thread.join(timeout=5)

    def send(self, raw: bytes) -> bytes:
        """Send raw bytes and read until the server closes the connection."""
        with socket.create_connection(self.address, timeout=5) as sock:
            sock.sendall(raw)
            chunks = []
            while True:
                chunk = sock.recv(8192)
                if not chunk:
                    break
                chunks.append(chunk)
        return b"".join(chunks)


@pytest.fixture
def running_server(app: App, config: AppConfig) -> Generator[RunningServer, None, None]:
    runner = RunningServer(Server(app, config))
    runner.start()
    yield runner
    runner.stop()


def split_response(raw: bytes) -> Tuple[int, Dict[str, str], Any]:
    """(status, headers, decoded JSON body) from raw response bytes."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode().split("\r\n")
    status = int(lines[0].split(" ")[1])
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name.strip().lower()] = value.strip()
    return status, headers, json.loads(body) if body else None
