"""Runtime configuration for storefront.

All settings come from environment variables so the API server, the CLI and
tests can point at different data directories and backends.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

# Can be overridden via STOREFRONT_DATA_DIR environment variable
_default_data_dir = Path(__file__).parent.parent.parent / "data"

DEFAULT_API_URL = "http://localhost:8080/api/v1"
DEFAULT_PRODUCT_ID = "847694"
DEFAULT_DRAFT_TTL = 7 * 24 * 60 * 60
DEFAULT_AUTH_POLL_INTERVAL = 1.0
DRAFT_KEY = "order_selection"

CARD_VALIDATION_MODES = ("presence", "strict")


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}, using {default}")
        return default
    if value <= 0:
        logger.warning(f"Ignoring non-positive {name}={raw!r}, using {default}")
        return default
    return value


@dataclass
class Settings:
    """Resolved configuration values."""

    data_dir: Path
    api_url: str = DEFAULT_API_URL
    product_id: str = DEFAULT_PRODUCT_ID
    draft_ttl: float = DEFAULT_DRAFT_TTL
    auth_poll_interval: float = DEFAULT_AUTH_POLL_INTERVAL
    card_validation: str = "presence"
    log_level: str = "INFO"

    @property
    def session_file(self) -> Path:
        return self.data_dir / "session.json"

    @classmethod
    def from_env(cls) -> "Settings":
        card_validation = os.environ.get("STOREFRONT_CARD_VALIDATION", "presence").lower()
        if card_validation not in CARD_VALIDATION_MODES:
            logger.warning(
                f"Unknown STOREFRONT_CARD_VALIDATION={card_validation!r}, using 'presence'"
            )
            card_validation = "presence"

        return cls(
            data_dir=Path(os.environ.get("STOREFRONT_DATA_DIR", _default_data_dir)),
            api_url=os.environ.get("STOREFRONT_API_URL", DEFAULT_API_URL),
            product_id=os.environ.get("STOREFRONT_PRODUCT_ID", DEFAULT_PRODUCT_ID),
            draft_ttl=_env_float("STOREFRONT_DRAFT_TTL", DEFAULT_DRAFT_TTL),
            auth_poll_interval=_env_float(
                "STOREFRONT_AUTH_POLL_INTERVAL", DEFAULT_AUTH_POLL_INTERVAL
            ),
            card_validation=card_validation,
            log_level=os.environ.get("STOREFRONT_LOG_LEVEL", "INFO").upper(),
        )


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the CLI and API server."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
