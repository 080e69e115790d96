"""Error taxonomy reported to callers of the browser toolkit.

Every error carries a short, human readable ``message`` that is safe to return
to HTTP clients. Driver-level details are logged where the error is raised and
never copied into the message.
"""

from __future__ import annotations


class ToolkitError(RuntimeError):
    """Base class for failures surfaced to toolkit callers."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class AuthError(ToolkitError):
    """Raised when the API key header is missing or does not match."""

    status_code = 401


class SetupError(ToolkitError):
    """Raised when opening, focusing or navigating the request tab fails."""


class ExtractionError(ToolkitError):
    """Raised when the requested content cannot be read from a ready tab."""


class CleanupError(ToolkitError):
    """Raised when closing the request tab or restoring focus fails."""


class FatalSessionError(CleanupError):
    """The home window vanished; the browser session cannot be reused.

    The process should be restarted rather than retried in place.
    """

    status_code = 503


class IllegalTransitionError(RuntimeError):
    """Raised when the tab lifecycle is driven out of order."""
