"""
Application configuration for the running app.
"""
import logging
import os
from dataclasses import dataclass
from pathlib import Path

log = logging.getLogger(__name__)

DEFAULT_KEY_PATTERN = "*"


def _env_number(name: str, default, cast):
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw)
    except ValueError:
        log.warning("Ignoring invalid %s=%r, using %r", name, raw, default)
        return default


@dataclass
class AppConfig:
    """Settings shared by the backend and the stores."""
    data_root: Path = Path("./data")
    default_key_pattern: str = DEFAULT_KEY_PATTERN
    redis_socket_timeout: float = 5.0
    scan_count: int = 500
    log_level: str = "INFO"
    notifier: str = "log"

    @property
    def app_db_path(self) -> Path:
        return self.data_root / "app.sqlite"

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Build config from REDIS_BROWSER_* environment variables."""
        return cls(
            data_root=Path(os.environ.get("REDIS_BROWSER_DATA_ROOT", "./data")),
            redis_socket_timeout=_env_number("REDIS_BROWSER_SOCKET_TIMEOUT", 5.0, float),
            scan_count=_env_number("REDIS_BROWSER_SCAN_COUNT", 500, int),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
            notifier=os.environ.get("REDIS_BROWSER_NOTIFIER", "log").strip().lower(),
        )
