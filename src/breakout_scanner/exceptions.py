"""Exception taxonomy for the breakout scanner."""

from typing import Any, Dict, Optional


class BreakoutScannerError(Exception):
    """Base exception for the breakout scanner."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    @property
    def error_type(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        """Serialisable form used in events and failure reports."""
        return {
            "type": self.error_type,
            "message": self.message,
            "details": self.details,
        }


class NetworkError(BreakoutScannerError):
    """Upstream request failed at the transport level."""

    def __init__(
        self,
        message: str = "Network request failed",
        ticker: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = dict(details or {})
        if ticker:
            details["ticker"] = ticker
        super().__init__(message=message, details=details)
        self.ticker = ticker


class RequestTimeoutError(NetworkError):
    """Upstream request did not complete in time."""

    def __init__(
        self,
        ticker: Optional[str] = None,
        timeout: Optional[float] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = dict(details or {})
        if timeout is not None:
            details["timeout"] = timeout
        super().__init__(
            message=f"Request for {ticker or 'unknown'} timed out",
            ticker=ticker,
            details=details,
        )
        self.timeout = timeout


class RateLimitError(NetworkError):
    """Upstream provider signalled that we are being rate limited."""

    def __init__(
        self,
        provider: str,
        ticker: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = dict(details or {})
        details["provider"] = provider
        super().__init__(
            message=f"Rate limit exceeded for {provider}",
            ticker=ticker,
            details=details,
        )
        self.provider = provider


class DataValidationError(BreakoutScannerError):
    """Malformed or inconsistent price data."""

    def __init__(
        self,
        message: str,
        ticker: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = dict(details or {})
        if ticker:
            details["ticker"] = ticker
        super().__init__(message=message, details=details)
        self.ticker = ticker


class DuplicateRequestError(BreakoutScannerError):
    """A request for the same key is already queued or in flight."""

    def __init__(self, key: str):
        super().__init__(
            message=f"Request for {key} is already in progress",
            details={"key": key},
        )
        self.key = key


class RequestCancelledError(BreakoutScannerError):
    """A pending request was cancelled before it completed."""

    def __init__(self, key: str):
        super().__init__(
            message=f"Request for {key} was cancelled",
            details={"key": key},
        )
        self.key = key


class ScanInProgressError(BreakoutScannerError):
    """A scan was requested while another one is still running."""

    def __init__(self):
        super().__init__(message="A scan is already in progress")


class ConfigurationError(BreakoutScannerError):
    """Exception for configuration errors."""

    def __init__(self, setting: str, message: str):
        super().__init__(
            message=f"Configuration error for '{setting}': {message}",
            details={"setting": setting},
        )
