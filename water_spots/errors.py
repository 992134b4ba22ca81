"""
Error Kinds for the Water Spot Discovery Engine
Each error carries a stable message and an HTTP-like status code
"""

from typing import Dict, Optional


class DiscoveryError(Exception):
    """Base class for every error raised by the discovery engine"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_response(self) -> dict:
        return {
            'success': False,
            'error': self.message,
            'status': self.status_code,
        }


class ValidationError(DiscoveryError):
    """
    A record failed entity validation.

    Record-level and non-fatal during batch loads: the record is skipped.
    """

    status_code = 400

    def __init__(self, errors: Dict[str, str], message: str = 'Validation failed',
                 record_id: Optional[str] = None):
        details = '; '.join(f"{field}: {reason}" for field, reason in errors.items())
        super().__init__(f"{message} ({details})" if details else message)
        self.errors = errors
        self.record_id = record_id


class NotFoundError(DiscoveryError):
    """No water spot matches the given identifier"""

    status_code = 404


class UsageError(DiscoveryError):
    """The caller violated a precondition (short search term, missing location, ...)"""

    status_code = 400


class UpstreamError(DiscoveryError):
    """The underlying data source is unreadable or corrupt"""

    status_code = 502


def error_status_code(error: Exception) -> int:
    """
    Map any exception to the status code returned by the tool surface

    Args:
        error: Raised exception

    Returns:
        Status code (500 for anything that is not a DiscoveryError)
    """
    if isinstance(error, DiscoveryError):
        return error.status_code
    return 500
