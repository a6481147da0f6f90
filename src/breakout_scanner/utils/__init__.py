"""Utility helpers."""

from .config import ensure_data_directory, initialize_application, validate_settings

__all__ = ["initialize_application", "ensure_data_directory", "validate_settings"]
