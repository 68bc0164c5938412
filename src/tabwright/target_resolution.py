"""Resolve a caller-supplied target id against a live tab listing."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

from .errors import AmbiguousTarget, TargetNotFound


class _HasTargetId(Protocol):
    target_id: str


@dataclass(frozen=True)
class TargetResolution:
    ok: bool
    target_id: Optional[str] = None
    reason: Optional[str] = None

    def raise_for_reason(self) -> str:
        if self.ok and self.target_id:
            return self.target_id
        if self.reason == "ambiguous":
            raise AmbiguousTarget()
        raise TargetNotFound()


def resolve_target_id_from_tabs(
    identifier: Optional[str],
    tabs: Sequence[_HasTargetId],
) -> TargetResolution:
    """
    Pick one tab for ``identifier``.

    Exact id wins, then a unique prefix. Two or more prefix matches are
    ambiguous. An empty identifier selects the first tab in listing order.
    """
    needle = (identifier or "").strip()
    if not needle:
        if not tabs:
            return TargetResolution(ok=False, reason="not_found")
        return TargetResolution(ok=True, target_id=tabs[0].target_id)

    for tab in tabs:
        if tab.target_id == needle:
            return TargetResolution(ok=True, target_id=tab.target_id)

    matches = [tab for tab in tabs if tab.target_id.startswith(needle)]
    if len(matches) == 1:
        return TargetResolution(ok=True, target_id=matches[0].target_id)
    if len(matches) > 1:
        return TargetResolution(ok=False, reason="ambiguous")
    return TargetResolution(ok=False, reason="not_found")
