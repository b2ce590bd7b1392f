"""Custom exception classes for the aggregation core"""

from typing import Any, Dict, Optional, Sequence


# ============================================================================
# BASE
# ============================================================================

class TrendlineError(Exception):
    """Base error for everything raised inside the aggregation core"""
    pass


# ============================================================================
# TRANSPORT ERRORS
# ============================================================================

class APIError(TrendlineError):
    """Base exception for upstream API errors"""

    def __init__(
        self,
        platform: str,
        operation: str,
        status_code: Optional[int] = None,
        message: str = "",
        details: Optional[Dict] = None
    ):
        self.platform = platform
        self.operation = operation
        self.status_code = status_code
        self.details = details or {}

        full_message = f"[{platform}] {operation}"
        if status_code:
            full_message += f" (HTTP {status_code})"
        if message:
            full_message += f": {message}"

        super().__init__(full_message)


class RateLimitError(APIError):
    """Raised when the provider rate-limits us (HTTP 429)"""

    def __init__(self, platform: str, retry_after: Optional[int] = None):
        super().__init__(
            platform=platform,
            operation="Rate limit exceeded",
            status_code=429,
            details={'retry_after': retry_after}
        )
        self.retry_after = retry_after or 60


class ServerError(APIError):
    """Raised when the provider returns a 5xx error"""

    def __init__(self, platform: str, status_code: int, response_text: str = ""):
        super().__init__(
            platform=platform,
            operation="Server error",
            status_code=status_code,
            message=response_text[:100]
        )


class ClientError(APIError):
    """Raised when a request is rejected (HTTP 4xx except 429)"""

    def __init__(self, platform: str, status_code: int, message: str = ""):
        super().__init__(
            platform=platform,
            operation="Client error",
            status_code=status_code,
            message=message
        )


class TransportError(APIError):
    """Network failure or timeout talking to one upstream source"""

    def __init__(self, platform: str, operation: str, cause: Optional[BaseException] = None):
        self.cause = cause
        reason = type(cause).__name__ if cause is not None else "unknown"
        if cause is not None and str(cause):
            reason = f"{reason}: {cause}"
        super().__init__(platform=platform, operation=operation, message=reason)


# ============================================================================
# DATA ERRORS
# ============================================================================

class PayloadShapeError(TrendlineError):
    """Upstream payload is missing an expected structure"""

    def __init__(self, resource: str, message: str, data: Optional[Any] = None):
        self.resource = resource
        self.data = data

        full_msg = f"[{resource}] {message}"
        if data is not None:
            full_msg += f" (got {type(data).__name__})"

        super().__init__(full_msg)


class SourceUnavailableError(TrendlineError):
    """Every source backing a resource failed"""

    def __init__(self, resource: str, failed_sources: Sequence[str] = ()):
        self.resource = resource
        self.failed_sources = list(failed_sources)

        msg = f"All sources unavailable for {resource}"
        if self.failed_sources:
            msg += f": {', '.join(self.failed_sources)}"
        super().__init__(msg)


class OperationCancelled(TrendlineError):
    """A fetch was abandoned because its cancel token fired"""

    def __init__(self, operation: str = ""):
        self.operation = operation
        msg = "Operation cancelled"
        if operation:
            msg += f": {operation}"
        super().__init__(msg)


# ============================================================================
# CONFIGURATION ERRORS
# ============================================================================

class ConfigError(TrendlineError, ValueError):
    """Error in configuration"""

    def __init__(self, message: str, config_key: Optional[str] = None):
        self.config_key = config_key
        if config_key:
            message = f"{message} (config: {config_key})"
        super().__init__(message)
