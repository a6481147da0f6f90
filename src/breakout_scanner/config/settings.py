"""Application settings and configuration management using Pydantic."""

from functools import lru_cache
from typing import List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Main application settings combining all configuration sections."""

    # Environment and deployment
    environment: str = "development"
    debug: bool = False

    # Request scheduler settings
    request_min_interval_seconds: float = 1.0
    request_max_retries: int = 3
    request_retry_delay_seconds: float = 2.0
    request_timeout_seconds: float = 10.0

    # Acquisition settings
    batch_size: int = 10
    batch_delay_seconds: float = 1.0
    price_cache_ttl_minutes: int = 1440
    universe_cache_ttl_minutes: int = 7 * 24 * 60

    # Strategy defaults
    breakout_factor: float = 0.6
    volatility_min: float = 2.0
    volatility_max: float = 8.0
    min_volume: int = 1_000_000
    min_price: float = 10.0
    proximity_percent: float = 2.0

    # Tracking settings
    tracking_interval_seconds: int = 30
    max_watchlist_size: int = 30
    watchlist_min_score: int = 60
    rate_limit_pause_threshold: int = 3
    risk_amount: float = 1000.0
    market_timezone: str = "America/New_York"

    # Provider settings
    price_providers: List[str] = ["yfinance", "yahoo_chart"]
    yahoo_chart_base_url: str = "https://query1.finance.yahoo.com/v8/finance/chart/"
    universe_url: Optional[str] = (
        "https://raw.githubusercontent.com/datasets/s-and-p-500-companies"
        "/master/data/constituents.csv"
    )

    # Database settings
    database_url: Optional[str] = None
    data_directory: str = "data"
    database_echo_sql: bool = False

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "structured"  # 'structured' or 'plain'
    log_file_enabled: bool = False
    log_file_path: str = "data/breakout_scanner.log"
    log_max_file_size: str = "10MB"
    log_backup_count: int = 5

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",  # Ignore extra environment variables
    }

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment setting."""
        valid_environments = ["development", "testing", "production"]
        if v.lower() not in valid_environments:
            raise ValueError(f"Environment must be one of: {valid_environments}")
        return v.lower()

    @field_validator(
        "request_min_interval_seconds",
        "request_retry_delay_seconds",
        "batch_delay_seconds",
    )
    @classmethod
    def validate_non_negative_delay(cls, v):
        """Delays may be zero but never negative."""
        if v < 0:
            raise ValueError("Delays must be zero or positive")
        return v

    @field_validator("request_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v):
        """Validate request timeout."""
        if v <= 0:
            raise ValueError("Request timeout must be positive")
        return v

    @field_validator("request_max_retries")
    @classmethod
    def validate_max_retries(cls, v):
        """Validate retry budget."""
        if v < 0 or v > 10:
            raise ValueError("Max retries must be between 0 and 10")
        return v

    @field_validator("batch_size")
    @classmethod
    def validate_batch_size(cls, v):
        """Validate acquisition batch size."""
        if v < 1 or v > 100:
            raise ValueError("Batch size must be between 1 and 100")
        return v

    @field_validator("breakout_factor")
    @classmethod
    def validate_breakout_factor(cls, v):
        """Validate breakout factor."""
        if v <= 0 or v > 1:
            raise ValueError("Breakout factor must be in (0, 1]")
        return v

    @field_validator("tracking_interval_seconds")
    @classmethod
    def validate_interval(cls, v):
        """Validate tracking interval is reasonable."""
        if v < 5 or v > 3600:  # 5 seconds to 1 hour
            raise ValueError("Tracking interval must be between 5 and 3600 seconds")
        return v

    @field_validator("max_watchlist_size")
    @classmethod
    def validate_watchlist_size(cls, v):
        """Validate watchlist bound."""
        if v < 1 or v > 200:
            raise ValueError("Watchlist size must be between 1 and 200")
        return v

    @field_validator("price_providers")
    @classmethod
    def validate_providers(cls, v):
        """Validate configured price providers."""
        valid_providers = ["yfinance", "yahoo_chart"]
        if not v:
            raise ValueError("At least one price provider is required")
        for name in v:
            if name not in valid_providers:
                raise ValueError(f"Price provider must be one of: {valid_providers}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v):
        """Validate log format."""
        valid_formats = ["structured", "plain"]
        if v.lower() not in valid_formats:
            raise ValueError(f"Log format must be one of: {valid_formats}")
        return v.lower()

    def get_database_url(self) -> str:
        """Get the complete database URL."""
        if self.database_url:
            return self.database_url

        # Default to SQLite in data directory
        from pathlib import Path

        db_dir = Path(self.data_directory)
        db_dir.mkdir(exist_ok=True)
        db_path = db_dir / "breakout_scanner.db"
        return f"sqlite:///{db_path}"

    def strategy_parameters(self):
        """Build the default strategy parameters from settings."""
        from ..services.analysis.models import StrategyParameters

        return StrategyParameters(
            breakout_factor=self.breakout_factor,
            volatility_min=self.volatility_min,
            volatility_max=self.volatility_max,
            min_volume=self.min_volume,
            min_price=self.min_price,
            proximity_percent=self.proximity_percent,
        )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application configuration instance
    """
    return Settings()
