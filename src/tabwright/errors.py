"""Error taxonomy for the browser control plane.

Every error carries an HTTP-like ``status`` so the dispatch and route layers
can answer with a fixed ``{"error": message}`` shape.
"""

from __future__ import annotations

from typing import Optional


class BrowserControlError(Exception):
    """Base class for control-plane failures."""

    status: int = 500

    def __init__(self, message: str = "", *, status: Optional[int] = None) -> None:
        super().__init__(message or self.__class__.__name__)
        if status is not None:
            self.status = int(status)

    @property
    def message(self) -> str:
        return str(self)


class NotStarted(BrowserControlError):
    status = 503

    def __init__(self, message: str = "browser server not started") -> None:
        super().__init__(message)


class AttachOnlyViolation(BrowserControlError):
    def __init__(
        self,
        message: str = "Browser attachOnly is enabled and no browser is running.",
    ) -> None:
        super().__init__(message)


class BrowserUnreachable(BrowserControlError):
    pass


class BrowserTimeout(BrowserUnreachable):
    pass


class AmbiguousTarget(BrowserControlError):
    status = 409

    def __init__(self, message: str = "ambiguous target id prefix") -> None:
        super().__init__(message)


class TargetNotFound(BrowserControlError):
    status = 404

    def __init__(self, message: str = "tab not found") -> None:
        super().__init__(message)


class ValidationError(BrowserControlError):
    status = 400


class UnknownTool(ValidationError):
    def __init__(self, message: str = "unknown tool name") -> None:
        super().__init__(message)


class UpstreamProtocolError(BrowserControlError):
    """A raw-channel or automation-channel call failed."""

    def __init__(self, message: str, *, http_status: Optional[int] = None) -> None:
        super().__init__(message)
        self.http_status = http_status


class ProcessLaunchFailure(BrowserControlError):
    pass


class VerificationFailed(BrowserControlError):
    """A verify_* check ran and the page did not match."""


_DISPATCH_STATUS = (
    (AmbiguousTarget, 409),
    (TargetNotFound, 404),
    (ValidationError, 400),
    (NotStarted, 503),
)


def status_for_error(exc: BaseException) -> int:
    """Caller-visible status for ``exc``; anything unclassified is a 500."""
    for error_type, status in _DISPATCH_STATUS:
        if isinstance(exc, error_type):
            return status
    return 500
