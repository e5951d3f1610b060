"""FXBands — application configuration.

Loads .env variables into a typed config object.
Validates required variables on startup.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv


_REQUIRED_VARS = [
    "FOREX_API_KEY",
]


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    forex_api_key: str
    forex_api_base_url: str
    dataset_path: str
    default_pair: str
    bb_period: int
    bb_std_dev: float
    min_strength: float
    position_size_fraction: float
    initial_balance: float
    backtest_days: int
    rate_refresh_seconds: float
    rate_max_errors: int
    log_level: str
    api_port: int

    @property
    def rate_api_url(self) -> str:
        """Return the keyed ExchangeRate-API base URL."""
        return f"{self.forex_api_base_url.rstrip('/')}/{self.forex_api_key}"


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Raises ``ValueError`` with a message naming the missing variable when a
    required variable is absent.
    """
    load_dotenv(dotenv_path=env_path)

    missing = [v for v in _REQUIRED_VARS if not os.environ.get(v)]
    if missing:
        raise ValueError(
            f"Missing required environment variable(s): {', '.join(missing)}"
        )

    return Config(
        forex_api_key=os.environ["FOREX_API_KEY"],
        forex_api_base_url=os.environ.get(
            "FOREX_API_BASE_URL", "https://v6.exchangerate-api.com/v6"
        ),
        dataset_path=os.environ.get("DATASET_PATH", "data/fx_history.csv"),
        default_pair=os.environ.get("DEFAULT_PAIR", "EUR/USD"),
        bb_period=int(os.environ.get("BB_PERIOD", "20")),
        bb_std_dev=float(os.environ.get("BB_STD_DEV", "2.0")),
        min_strength=float(os.environ.get("MIN_STRENGTH", "70")),
        position_size_fraction=float(
            os.environ.get("POSITION_SIZE_FRACTION", "0.1")
        ),
        initial_balance=float(os.environ.get("INITIAL_BALANCE", "10000")),
        backtest_days=int(os.environ.get("BACKTEST_DAYS", "90")),
        rate_refresh_seconds=float(os.environ.get("RATE_REFRESH_SECONDS", "30")),
        rate_max_errors=int(os.environ.get("RATE_MAX_ERRORS", "5")),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        api_port=int(os.environ.get("API_PORT", "5002")),
    )
