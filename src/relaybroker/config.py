# src/relaybroker/config.py

import os
from dataclasses import dataclass, replace

from dotenv import load_dotenv

from relaybroker.logger import get_logger

logger = get_logger(__name__)

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8000
DEFAULT_WS_PATH = "/"


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={value!r}, using {default}")
        return default


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_optional(name: str) -> str | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


@dataclass(frozen=True)
class BrokerConfig:
    """Runtime settings for the broker server."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    ws_path: str = DEFAULT_WS_PATH
    index_file: str | None = None
    debug_endpoints: bool = True
    log_level: str = "INFO"
    log_file: str | None = None

    @classmethod
    def from_env(cls, load_env_file: bool = True) -> "BrokerConfig":
        """Build a config from environment variables (and ``.env`` if present)."""
        if load_env_file:
            load_dotenv()

        ws_path = os.getenv("BROKER_WS_PATH", DEFAULT_WS_PATH).strip() or "/"
        if not ws_path.startswith("/"):
            ws_path = "/" + ws_path

        return cls(
            host=os.getenv("BROKER_HOST", DEFAULT_HOST),
            port=_env_int("BROKER_PORT", DEFAULT_PORT),
            ws_path=ws_path,
            index_file=_env_optional("BROKER_INDEX_FILE"),
            debug_endpoints=_env_bool("BROKER_DEBUG_ENDPOINTS", True),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_file=_env_optional("LOG_FILE"),
        )

    def with_overrides(self, **changes) -> "BrokerConfig":
        """Return a copy with the given non-None fields replaced."""
        updates = {k: v for k, v in changes.items() if v is not None}
        return replace(self, **updates) if updates else self
