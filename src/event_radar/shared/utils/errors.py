"""
Error handling for the application.
"""

from event_radar.shared.utils.types import ErrorType


class RadarError(Exception):
    """Base exception for radar pipeline errors.

    Every error carries a category and an HTTP-style status code so admin
    endpoints can report both without inspecting the exception class.
    """

    default_error_type = ErrorType.GENERAL_ERROR
    default_status_code = 500

    def __init__(
        self,
        message: str,
        error_type: ErrorType = None,
        status_code: int = None,
    ):
        """
        Initialize a RadarError.

        Args:
            message (str): A human-readable error message.
            error_type (ErrorType): The category of the error (default: class default).
            status_code (int): HTTP-style status code associated with the error.
        """
        self.message = message
        self.error_type = error_type or self.default_error_type
        self.status_code = status_code or self.default_status_code
        super().__init__(self.message)


class FetchError(RadarError):
    """Raised or returned when source content cannot be acquired.

    Common status codes:
    - 502: Bad Gateway (default) - External website or provider issues
    - 404: Not Found - Page doesn't exist
    - 429: Too Many Requests - Rate limiting
    - 504: Gateway Timeout - Fetch ran past its timeout
    """

    default_error_type = ErrorType.FETCH_ERROR
    default_status_code = 502


class ExtractionError(RadarError):
    """Raised when the AI extraction provider fails or returns malformed JSON.

    The extraction service never lets this escape; it degrades to zero
    candidates for the source.
    """

    default_error_type = ErrorType.EXTRACTION_ERROR
    default_status_code = 502


class StoreError(RadarError):
    """Custom exception for Redis persistence errors.

    Common status codes:
    - 503: Service Unavailable (default) - Redis is down or unreachable
    """

    default_error_type = ErrorType.REDIS_ERROR
    default_status_code = 503


class ReviewError(RadarError):
    """Raised for invalid review actions or request bodies."""

    default_error_type = ErrorType.VALUE_ERROR
    default_status_code = 400


class SourceNotFoundError(RadarError):
    """Raised when a source name is not in the registry."""

    default_error_type = ErrorType.NOT_FOUND
    default_status_code = 404


class NotificationError(RadarError):
    """Custom exception for SES/SNS delivery failures."""

    default_error_type = ErrorType.NOTIFICATION_ERROR
    default_status_code = 502
