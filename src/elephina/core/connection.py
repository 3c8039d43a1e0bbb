"""
=============================================================================
CLIENT CONNECTION
=============================================================================

Wraps one accepted socket. Every connection carries exactly one request:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  NEW ──► READING ──► PROCESSING ──► WRITING ──► CLOSED             │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
READING A REQUEST
=============================================================================

TCP hands us a byte stream, not messages. A request may arrive in many
recv() chunks, so we buffer:

    1. recv() until the buffer contains b"\\r\\n\\r\\n" (end of headers)
    2. pull Content-Length out of the header block
    3. recv() until the body has that many bytes

The buffer is capped at max_request_size; past it the read stops with
RequestTooLarge so the server can answer 413 instead of reading forever.

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple
import logging
import socket
import time
import uuid


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    CLOSED = "closed"


class RequestTooLarge(Exception):
    """The client sent more than max_request_size bytes."""

    def __init__(self, size: int):
        super().__init__(f"Request too large: {size} bytes")
        self.size = size


@dataclass
class Connection:
    """
    A client socket with buffered request reading.

        with Connection(client_socket, address, timeout=30.0) as conn:
            raw = conn.read_request()
            conn.send_response(response_bytes)

    Attributes:
        socket: The accepted client socket.
        address: Client (ip, port).
        id: Short identifier used in log lines.
        state: Where the connection is in its lifecycle.
    """

    socket: socket.socket
    address: Tuple[str, int]
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    max_request_size: int = 10 * 1024 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def age(self) -> float:
        """Seconds since the connection was accepted."""
        return time.time() - self.created_at

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete HTTP request.

        Returns:
            The request bytes (headers, blank line, body), or None when the
            client closed the connection before sending a full header block.

        Raises:
            TimeoutError: The client stopped sending before the request
                was complete.
            RequestTooLarge: The request exceeds max_request_size.
        """
        self.state = ConnectionState.READING

        try:
            while b"\r\n\r\n" not in self._buffer:
                chunk = self._recv()
                if not chunk:
                    return None
                self._append(chunk)

            header_end = self._buffer.find(b"\r\n\r\n")
            body_start = header_end + 4
            content_length = self._parse_content_length(self._buffer[:header_end])

            # A short body is left for the parser to reject.
            while len(self._buffer) - body_start < content_length:
                chunk = self._recv()
                if not chunk:
                    break
                self._append(chunk)

            request_end = body_start + content_length
            request_data = self._buffer[:request_end]
            self._buffer = self._buffer[request_end:]
            return request_data

        except socket.timeout:
            raise TimeoutError("Request read timeout")

    def _append(self, chunk: bytes) -> None:
        self._buffer += chunk
        if len(self._buffer) > self.max_request_size:
            raise RequestTooLarge(len(self._buffer))

    def _recv(self) -> bytes:
        try:
            return self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return b""

    def _parse_content_length(self, headers: bytes) -> int:
        """
        Content-Length from the raw header block, 0 when absent or invalid.

        Invalid values are reported properly by the RequestParser later;
        here we only need to know how much more to read.
        """
        for line in headers.decode("latin-1").lower().split("\r\n"):
            if line.startswith("content-length:"):
                try:
                    return max(0, int(line.split(":", 1)[1].strip()))
                except ValueError:
                    return 0
        return 0

    def send_response(self, data: bytes) -> bool:
        """
        Send all of `data`.

        Returns:
            False if the client went away mid-write.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    def close(self) -> None:
        """
        Half-close, drain, then release the socket.

            shutdown(SHUT_WR)  ──► client sees EOF after our response
            recv() until empty ──► nothing left in kernel buffers
            close()
        """
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
