"""
Tabwright: a browser control plane.

Launches or attaches to a Chromium-family browser over CDP, resolves tab
identifiers, keeps one Playwright connection per endpoint and exposes a flat
table of browser tools.
"""

from .config import BrowserConfig
from .context import BrowserControlPlane, BrowserServerState
from .errors import (
    AmbiguousTarget,
    AttachOnlyViolation,
    BrowserControlError,
    NotStarted,
    TargetNotFound,
    UnknownTool,
    ValidationError,
)
from .media_store import MediaStore
from .service import BrowserToolService, ToolInvocation

__all__ = [
    "AmbiguousTarget",
    "AttachOnlyViolation",
    "BrowserConfig",
    "BrowserControlError",
    "BrowserControlPlane",
    "BrowserServerState",
    "BrowserToolService",
    "MediaStore",
    "NotStarted",
    "TargetNotFound",
    "ToolInvocation",
    "UnknownTool",
    "ValidationError",
]
