"""Exception hierarchy for the Jimeng client.

Every error raised by the client derives from :class:`JimengError` and carries the
HTTP status (0 when no response was received), the vendor business code when one
was returned, and whether retrying the same call can help.
"""

from __future__ import annotations


class JimengError(Exception):
    """Structured client error with status code, vendor code and retriable flag."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int = 0,
        code: int | str | None = None,
        retriable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
        self.retriable = retriable


class ConfigurationError(JimengError):
    """Credentials or client options are missing or invalid."""


class ValidationError(JimengError):
    """A required call parameter is missing or cannot be honoured."""


class TransportError(JimengError):
    """Non-200 HTTP status or a network failure."""

    def __init__(self, message: str, *, status_code: int = 0, code: int | str | None = None):
        super().__init__(message, status_code=status_code, code=code, retriable=True)


class RateLimitError(TransportError):
    """HTTP 429 or a vendor concurrency-limit code."""


class VendorBusinessError(JimengError):
    """HTTP 200 carrying a vendor error envelope or a non-success code."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int = 200,
        code: int | str | None = None,
        retriable: bool = True,
    ):
        super().__init__(message, status_code=status_code, code=code, retriable=retriable)


class PollTimeoutError(JimengError):
    """The polling budget ran out while the task was still running."""

    def __init__(self, task_id: str, attempts: int, last_status: str | None = None):
        super().__init__(
            f"Task {task_id} still {last_status or 'pending'} after {attempts} polls; "
            f"query it again later with this task_id"
        )
        self.task_id = task_id
        self.attempts = attempts
        self.last_status = last_status
