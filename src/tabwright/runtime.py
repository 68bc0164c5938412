"""Page-level automation runtime composed from focused mixins."""

from __future__ import annotations

from typing import Any, Callable, List, Optional, Tuple

from .page_events import PageEventRecorder
from .runtime_interaction import RuntimeInteractionMixin
from .runtime_observe import RuntimeObserveMixin
from .session_manager import PlaywrightConnectionManager


class PlaywrightRuntime(RuntimeInteractionMixin, RuntimeObserveMixin):
    """
    Runs page operations on pages reached through the connection manager.

    Every page that passes through :meth:`page_for_target` is registered with
    the event recorder before any operation touches it.
    """

    def __init__(self, connections: PlaywrightConnectionManager) -> None:
        self.connections = connections
        self._tracing_contexts: List[Tuple[Any, Callable[..., None]]] = []

    @property
    def recorder(self) -> PageEventRecorder:
        return self.connections.recorder

    async def page_for_target(self, cdp_port: int, target_id: Optional[str] = None) -> Any:
        page = await self.connections.get_page_for_target_id(cdp_port, target_id)
        self.recorder.ensure_page_state(page)
        return page

    def _locator(self, page: Any, ref: str) -> Any:
        return self.connections.ref_locator(page, str(ref).strip())
