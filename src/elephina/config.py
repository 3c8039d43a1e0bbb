"""
=============================================================================
APPLICATION CONFIGURATION
=============================================================================

One dataclass for the whole application, filled from the environment.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      PRECEDENCE (highest first)                     │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. Explicit arguments       AppConfig(port=3000)                  │
    │   2. Process environment      HTTP_PORT=3000 python -m elephina     │
    │   3. .env file                HTTP_PORT=3000  (never overrides 2)   │
    │   4. Defaults                 port = 8080                           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A .env file is plain KEY=VALUE lines:

    # database
    DATABASE_PATH=/var/lib/elephina/api.db
    JWT_SECRET="change-me"

=============================================================================
"""

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Optional, Union
import logging
import os


logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def load_env_file(path: Union[str, Path]) -> int:
    """
    Load KEY=VALUE lines into os.environ.

    Blank lines and "#" comments are skipped, surrounding quotes are
    stripped, and variables already set in the environment win.

    Returns:
        Number of variables set. A missing file sets none.
    """
    env_path = Path(path)
    if not env_path.is_file():
        return 0

    loaded = 0
    for line in env_path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        if key.startswith("export "):
            key = key[len("export "):].strip()
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
            value = value[1:-1]
        if key and key not in os.environ:
            os.environ[key] = value
            loaded += 1
    return loaded


@dataclass
class AppConfig:
    """
    Configuration for the API server and application.

        Development:
            AppConfig(log_level="DEBUG", database_path=":memory:")

        Production:
            AppConfig.from_env(".env")
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """Address to bind. "0.0.0.0" listens on every interface."""

    port: int = 8080
    """TCP port to listen on."""

    backlog: int = 128
    """Pending connections the OS queues before refusing."""

    timeout: Optional[float] = 30.0
    """Socket timeout in seconds for reading a request."""

    max_request_size: int = 10 * 1024 * 1024
    """Largest accepted request (headers + body); bigger ones get 413."""

    max_workers: int = 16
    """Worker threads handling connections."""

    server_name: str = "Elephina/1.0"
    """Value of the Server response header."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """DEBUG, INFO, WARNING, ERROR or CRITICAL."""

    log_file: Optional[str] = None
    """Also write log records to this file when set."""

    access_log_format: str = "text"
    """"text" (one line per request) or "json"."""

    # ─────────────────────────────────────────────────────────────────────
    # AUTHENTICATION
    # ─────────────────────────────────────────────────────────────────────

    jwt_secret: str = "default_secret"
    """HS256 signing secret. Always override outside development."""

    jwt_expiration: int = 3600
    """Token lifetime in seconds."""

    # ─────────────────────────────────────────────────────────────────────
    # STORAGE
    # ─────────────────────────────────────────────────────────────────────

    database_path: str = "elephina.db"
    """SQLite database file; ":memory:" for a throwaway database."""

    @classmethod
    def from_env(cls, env_file: Optional[Union[str, Path]] = None) -> "AppConfig":
        """
        Build a configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

            HTTP_HOST              Bind address (default: 127.0.0.1)
            HTTP_PORT              Port (default: 8080)
            HTTP_WORKERS           Worker threads (default: 16)
            HTTP_TIMEOUT           Socket timeout in seconds (default: 30)
            HTTP_MAX_REQUEST_SIZE  Bytes (default: 10 MiB)
            LOG_LEVEL              Logging level (default: INFO)
            LOG_FILE               Log file path (default: none)
            ACCESS_LOG_FORMAT      text or json (default: text)
            JWT_SECRET             Token secret (default: default_secret)
            JWT_EXPIRATION         Token lifetime in seconds (default: 3600)
            DATABASE_PATH          SQLite file (default: elephina.db)

        =====================================================================

        Args:
            env_file: Optional .env file loaded first.
        """
        if env_file is not None:
            count = load_env_file(env_file)
            logger.debug(f"Loaded {count} variables from {env_file}")

        return cls(
            host=os.getenv("HTTP_HOST", "127.0.0.1"),
            port=int(os.getenv("HTTP_PORT", "8080")),
            max_workers=int(os.getenv("HTTP_WORKERS", "16")),
            timeout=float(os.getenv("HTTP_TIMEOUT", "30")),
            max_request_size=int(os.getenv("HTTP_MAX_REQUEST_SIZE", str(10 * 1024 * 1024))),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_file=os.getenv("LOG_FILE") or None,
            access_log_format=os.getenv("ACCESS_LOG_FORMAT", "text"),
            jwt_secret=os.getenv("JWT_SECRET", "default_secret"),
            jwt_expiration=int(os.getenv("JWT_EXPIRATION", "3600")),
            database_path=os.getenv("DATABASE_PATH", "elephina.db"),
        )

    def get(self, key: str, default: Any = None) -> Any:
        """
        Look up a setting by name.

            config.get("JWT_SECRET")      → config.jwt_secret
            config.get("APP_NAME", "x")   → os.environ["APP_NAME"] or "x"
        """
        name = key.lower()
        if name in {f.name for f in fields(self)}:
            return getattr(self, name)
        return os.environ.get(key, default)

    def validate(self) -> None:
        """Fail fast on values the server cannot run with."""
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")
        if self.max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")
        if self.max_request_size < 1024:
            raise ValueError("max_request_size must be >= 1024")
        if self.jwt_expiration <= 0:
            raise ValueError("jwt_expiration must be > 0")
        if not self.jwt_secret:
            raise ValueError("jwt_secret must not be empty")
        if self.access_log_format not in ("text", "json"):
            raise ValueError(f"Unknown access_log_format: {self.access_log_format}")
        if getattr(logging, self.log_level.upper(), None) is None:
            raise ValueError(f"Unknown log level: {self.log_level}")


def setup_logging(config: AppConfig) -> None:
    """
    Configure the root logger from the config.

    Records go to stderr, and to config.log_file as well when it is set.
    """
    level = getattr(logging, config.log_level.upper(), logging.INFO)

    handlers = [logging.StreamHandler()]
    if config.log_file:
        handlers.append(logging.FileHandler(config.log_file, encoding="utf-8"))

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=handlers,
    )
    logging.getLogger("elephina").setLevel(level)

    if config.jwt_secret == "default_secret":
        logger.warning("JWT_SECRET is not set; using the insecure default secret")
