"""Application bootstrap utilities."""

from pathlib import Path
from typing import Optional

from ..config.logging import get_logger, setup_logging
from ..config.settings import Settings, get_settings
from ..exceptions import ConfigurationError


def ensure_data_directory(settings: Settings) -> Path:
    """Ensure the data directory exists."""
    path = Path(settings.data_directory)
    path.mkdir(parents=True, exist_ok=True)
    get_logger(__name__).info("Ensured data directory exists", path=str(path))
    return path


def validate_settings(settings: Settings) -> None:
    """
    Check cross-field constraints that single-field validators cannot.

    Raises:
        ConfigurationError: If the settings are inconsistent
    """
    if settings.volatility_min > settings.volatility_max:
        raise ConfigurationError(
            "volatility_min", "must not be greater than volatility_max"
        )
    if settings.watchlist_min_score < 0 or settings.watchlist_min_score > 100:
        raise ConfigurationError("watchlist_min_score", "must be between 0 and 100")
    if settings.rate_limit_pause_threshold < 1:
        raise ConfigurationError("rate_limit_pause_threshold", "must be at least 1")


def initialize_application(settings: Optional[Settings] = None) -> Settings:
    """Initialize configuration, logging and the data directory."""
    settings = settings or get_settings()

    setup_logging(
        level=settings.log_level,
        format_type=settings.log_format,
        file_enabled=settings.log_file_enabled,
        file_path=settings.log_file_path,
        max_file_size=settings.log_max_file_size,
        backup_count=settings.log_backup_count,
    )

    validate_settings(settings)
    ensure_data_directory(settings)

    logger = get_logger(__name__)
    logger.info(
        "Application initialized successfully",
        environment=settings.environment,
        debug=settings.debug,
        data_dir=settings.data_directory,
    )
    return settings
