"""Runtime configuration read from the environment (and an optional .env file)."""

import math
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from .errors import ConfigurationError

_default_data_dir = Path(__file__).parent.parent.parent / "data"

DEFAULT_CORS_ORIGINS = (
    "http://localhost:3000",
    "http://127.0.0.1:3000",
)


@dataclass
class Settings:
    data_dir: Path = _default_data_dir
    stripe_secret_key: str | None = None
    stripe_webhook_secret: str | None = None
    app_url: str = "http://localhost:3000"
    api_url: str = "http://127.0.0.1:8000"
    currency: str = "usd"
    cors_origins: list[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))
    allowed_countries: list[str] = field(default_factory=lambda: ["US"])
    request_timeout: float = 10.0
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @classmethod
    def from_env(cls, load_dotenv_file: bool = True) -> "Settings":
        """
        Build settings from CICADACOVE_* and provider environment variables.

        Raises:
            ConfigurationError: If a numeric setting can't be parsed.
        """
        if load_dotenv_file:
            load_dotenv()

        defaults = cls()
        return cls(
            data_dir=Path(os.getenv("CICADACOVE_DATA_DIR", str(defaults.data_dir))),
            stripe_secret_key=os.getenv("STRIPE_SECRET_KEY"),
            stripe_webhook_secret=os.getenv("STRIPE_WEBHOOK_SECRET"),
            app_url=os.getenv("APP_URL", defaults.app_url).rstrip("/"),
            api_url=os.getenv("CICADACOVE_API_URL", defaults.api_url).rstrip("/"),
            currency=os.getenv("CURRENCY", defaults.currency).lower(),
            cors_origins=_split(os.getenv("CORS_ORIGINS")) or defaults.cors_origins,
            allowed_countries=_split(os.getenv("ALLOWED_COUNTRIES")) or defaults.allowed_countries,
            request_timeout=_seconds("CICADACOVE_REQUEST_TIMEOUT", defaults.request_timeout),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level),
            log_format=os.getenv("LOG_FORMAT", defaults.log_format),
        )


def _seconds(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        seconds = float(value)
    except ValueError:
        raise ConfigurationError(name, value, "a number of seconds") from None
    if not (math.isfinite(seconds) and seconds > 0):
        raise ConfigurationError(name, value, "a positive number of seconds")
    return seconds


def _split(value: str | None) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]
