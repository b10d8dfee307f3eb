"""Custom exceptions for the Cesium tiler client."""

from typing import Any, Optional


class TilerError(Exception):
    """Base exception for all tiler errors.

    ``step`` is filled in by the workflow with the step that was running
    when the error was raised (e.g. ``"POLL_ASSET"``).
    """

    def __init__(self, message: str = "", step: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.step = step


class ConfigurationError(TilerError):
    """Raised when the auth token, a setting or an argument is missing or invalid."""

    def __init__(self, message: str, key: str = None):
        super().__init__(message)
        self.key = key


class RequestError(TilerError):
    """Raised when an API call fails or returns a non-success status."""

    def __init__(
            self,
            message: str,
            status_code: int = None,
            error_body: Any = None,
            method: str = None,
            path: str = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.error_body = error_body
        self.method = method
        self.path = path


class ResponseFormatError(TilerError):
    """Raised when an API response is missing required fields."""

    pass


class UploadError(TilerError):
    """A single source file failed to upload.

    Recorded in the upload report rather than raised out of the batch.
    """

    def __init__(self, message: str, path: str = None, key: str = None):
        super().__init__(message)
        self.path = path
        self.key = key


class ProcessingError(TilerError):
    """Raised when a remote asset or archive ends in a failure status."""

    def __init__(self, message: str, status: str = None):
        super().__init__(message)
        self.status = status


class PollTimeoutError(TilerError):
    """Raised when a poll loop exceeds its time or attempt limit."""

    def __init__(self, message: str, attempts: int = 0):
        super().__init__(message)
        self.attempts = attempts


class PollCancelledError(TilerError):
    """Raised when a poll loop is cancelled by the caller."""

    pass


class ValidationError(TilerError):
    """Raised when input validation fails."""

    pass
