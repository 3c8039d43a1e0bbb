"""
=============================================================================
ACCESS LOG
=============================================================================

One line per dispatched request on the "elephina.access" logger.

    TEXT FORMAT (default):

        127.0.0.1 - - [19/Oct/2026:10:15:32 +0000] "GET /users/7" 200 85 1.42ms

    JSON FORMAT (for log aggregators):

        {"request_id": "a1b2c3d4", "method": "GET", "path": "/users/7",
         "status_code": 200, "duration_ms": 1.42, ...}

Middleware here only runs before the handler, so the access log is not a
chain member: the application wraps the whole dispatch with
AccessLogger.record() and sees every outcome, including 404/405 and
middleware rejections.

Never logged: request bodies, Authorization headers, tokens.

=============================================================================
"""

from dataclasses import dataclass
from typing import Dict, Optional
import json
import logging
import time
import uuid

from ..http.request import RequestContext
from ..http.response import HTTPResponse


logger = logging.getLogger("elephina.access")


@dataclass
class RequestLog:
    """Structured log entry for one request."""

    request_id: str
    method: str
    path: str
    query: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        return {
            "request_id": self.request_id,
            "method": self.method,
            "path": self.path,
            "query": self.query,
            "client_ip": self.client_ip,
            "user_agent": self.user_agent,
            "status_code": self.status_code,
            "content_length": self.content_length,
            "duration_ms": round(self.duration_ms, 2),
            "timestamp": self.timestamp,
        }

    def to_text(self) -> str:
        return (
            f'{self.client_ip or "-"} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class AccessLogger:
    """
    Emits RequestLog entries.

    Args:
        log_format: "text" or "json".
        include_request_id: Give each response an X-Request-ID header.
        log_level: Level for access lines.
        skip_paths: Paths never logged (e.g. ["/"] for noisy probes).
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
        skip_paths: Optional[list] = None,
    ):
        if log_format not in ("text", "json"):
            raise ValueError(f"Unknown access log format: {log_format}")
        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level
        self.skip_paths = set(skip_paths or [])

    @staticmethod
    def new_request_id() -> str:
        return str(uuid.uuid4())[:8]

    def response_headers(self, request_id: str) -> Dict[str, str]:
        """Headers to put on the response builder before dispatch."""
        if self.include_request_id:
            return {"X-Request-ID": request_id}
        return {}

    def record(
        self,
        ctx: RequestContext,
        response: HTTPResponse,
        duration_ms: float,
        request_id: Optional[str] = None,
    ) -> Optional[RequestLog]:
        """
        Log one finished request.

        Returns the entry, or None when the path is skipped.
        """
        request_id = request_id or self.new_request_id()
        if ctx.path in self.skip_paths:
            return None

        query = "&".join(
            f"{name}={value}" for name, values in ctx.query_params.items() for value in values
        )
        entry = RequestLog(
            request_id=request_id,
            method=ctx.method,
            path=ctx.path,
            query=query,
            client_ip=ctx.client_address[0],
            user_agent=ctx.get_header("User-Agent") or "-",
            status_code=int(response.status),
            content_length=len(response.body),
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.to_dict()))
        else:
            logger.log(self.log_level, entry.to_text())
        return entry
