"""Configuration management utilities for the Chanda dashboard.

Provides:
- A small ``Config`` base class (dict/JSON round-tripping for diagnostics)
- ``AppConfig``: application settings read from environment variables
- ``PaymentMode``: the fixed set of payment modes the backend accepts
"""

import os as _os
from enum import Enum
from typing import Any, Dict


class PaymentMode(str, Enum):
    """Payment modes accepted by ``/api/v1/contributions``.

    Values are the backend's ``payment_mode_id`` strings.
    """

    UPI = "1"
    CASH = "2"
    BANK_TRANSFER = "3"
    CHEQUE = "4"

    @property
    def label(self) -> str:
        return _PAYMENT_MODE_LABELS[self]

    @classmethod
    def choices(cls) -> list[tuple[str, str]]:
        """Return ``(value, label)`` pairs in the order shown on forms."""
        order = (cls.CASH, cls.UPI, cls.BANK_TRANSFER, cls.CHEQUE)
        return [(m.value, m.label) for m in order]

    @classmethod
    def label_for(cls, value: str | None) -> str:
        """Return the display label for a raw mode id, or ``"-"``."""
        try:
            return cls(str(value)).label
        except ValueError:
            return "-"


_PAYMENT_MODE_LABELS = {
    PaymentMode.UPI: "UPI",
    PaymentMode.CASH: "Cash",
    PaymentMode.BANK_TRANSFER: "Bank Transfer",
    PaymentMode.CHEQUE: "Cheque",
}


class Config:
    """Base configuration class for organizing application settings."""

    def __init__(self):
        pass

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary.

        Returns:
            Dictionary of all config attributes
        """
        return {k: v for k, v in self.__dict__.items() if not k.startswith("_")}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create config from dictionary, starting from the defaults.

        Args:
            data: Configuration dictionary

        Returns:
            Config instance with values from dictionary
        """
        config = cls()
        for key, value in data.items():
            setattr(config, key, value)
        return config


def _env_bool(name: str, default: bool = False) -> bool:
    raw = _os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class AppConfig(Config):
    """Application-level configuration loaded from environment variables.

    All env vars have sensible defaults so the dashboard starts without any
    configuration (pointing at a backend on localhost).

    Environment variables:
        CHANDA_API_URL: Base URL of the Chanda REST backend (default: http://localhost:8080)
        APP_HOST: Web server bind address (default: 127.0.0.1)
        APP_PORT: Web server port (default: 8000)
        APP_LOG_FORMAT: Logging format, "text" or "json" (default: text)
        CHANDA_EVENT_ID: Fundraising event the dashboard records against (default: 1)
        CHANDA_EVENT_NAME: Display name of that event (default: Durga Pooja 2025)
        CHANDA_FINANCIAL_YEAR_ID: Financial year id sent with new records (default: 5)
        CHANDA_PAGE_SIZE: Rows per page in the browse tables (default: 20)
        CHANDA_HTTP_TIMEOUT: Seconds before a backend call times out (default: 15)
        CHANDA_HTTP_RETRIES: Transport retries for idempotent GETs (default: 0)
        CHANDA_SESSION_TTL: Seconds an idle browser session is kept (default: 3600)
        CHANDA_MAX_SESSIONS: Upper bound on tracked browser sessions (default: 1000)
        CHANDA_COOKIE_SECURE: Mark cookies Secure (default: false)
    """

    def __init__(self) -> None:
        super().__init__()
        self.api_url = _os.getenv("CHANDA_API_URL", "http://localhost:8080").rstrip("/")
        self.api_host = _os.getenv("APP_HOST", "127.0.0.1")
        self.api_port = int(_os.getenv("APP_PORT", "8000"))
        self.log_format = _os.getenv("APP_LOG_FORMAT", "text")
        self.event_id = int(_os.getenv("CHANDA_EVENT_ID", "1"))
        self.event_name = _os.getenv("CHANDA_EVENT_NAME", "Durga Pooja 2025")
        self.financial_year_id = int(_os.getenv("CHANDA_FINANCIAL_YEAR_ID", "5"))
        self.page_size = max(1, int(_os.getenv("CHANDA_PAGE_SIZE", "20")))
        self.http_timeout = float(_os.getenv("CHANDA_HTTP_TIMEOUT", "15"))
        self.http_retries = int(_os.getenv("CHANDA_HTTP_RETRIES", "0"))
        self.session_ttl = float(_os.getenv("CHANDA_SESSION_TTL", "3600"))
        self.max_sessions = int(_os.getenv("CHANDA_MAX_SESSIONS", "1000"))
        self.cookie_secure = _env_bool("CHANDA_COOKIE_SECURE")

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create an AppConfig instance populated from environment variables."""
        return cls()
