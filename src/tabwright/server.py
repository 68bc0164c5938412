"""HTTP routes for the browser control plane."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .context import BrowserControlPlane
from .errors import AmbiguousTarget, NotStarted, TargetNotFound, status_for_error
from .service import BrowserToolService
from .service_utils import _as_str

logger = logging.getLogger(__name__)


class ToolRequest(BaseModel):
    name: Optional[Any] = None
    args: Optional[Any] = None
    targetId: Optional[Any] = None


class OpenTabRequest(BaseModel):
    url: Optional[Any] = None


class FocusTabRequest(BaseModel):
    targetId: Optional[Any] = None


def json_error(status: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": message})


def _tab_error(exc: Exception) -> JSONResponse:
    if isinstance(exc, (AmbiguousTarget, TargetNotFound)):
        return json_error(status_for_error(exc), str(exc))
    logger.warning("browser route failed error=%s", exc)
    return json_error(500, str(exc))


def create_app(
    plane: BrowserControlPlane,
    service: Optional[BrowserToolService] = None,
) -> FastAPI:
    tools = service or BrowserToolService(plane)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        plane.start()
        logger.info("Browser control plane ready at %s", plane.config.control_url)
        try:
            yield
        finally:
            logger.info("Shutting down the browser control plane.")
            await plane.shutdown()

    app = FastAPI(lifespan=lifespan)
    app.state.plane = plane
    app.state.tools = tools

    @app.get("/")
    async def status():
        try:
            return await plane.status()
        except NotStarted as exc:
            return json_error(exc.status, str(exc))

    @app.post("/start")
    async def start():
        try:
            await plane.ensure_browser_available()
        except Exception as exc:
            return json_error(500, str(exc))
        return {"ok": True}

    @app.post("/stop")
    async def stop():
        try:
            result = await plane.stop_running_browser()
        except Exception as exc:
            return json_error(500, str(exc))
        return {"ok": True, "stopped": result["stopped"]}

    @app.get("/tabs")
    async def list_tabs():
        try:
            if not await plane.is_reachable():
                return {"running": False, "tabs": []}
            tabs = await plane.list_tabs()
        except Exception as exc:
            return json_error(500, str(exc))
        return {"running": True, "tabs": [tab.to_dict() for tab in tabs]}

    @app.post("/tabs/open")
    async def open_tab(request: OpenTabRequest):
        url = _as_str(request.url)
        if not url:
            return json_error(400, "url is required")
        try:
            await plane.ensure_browser_available()
            tab = await plane.open_tab(url)
        except Exception as exc:
            return json_error(500, str(exc))
        return tab.to_dict()

    @app.post("/tabs/focus")
    async def focus_tab(request: FocusTabRequest):
        target_id = _as_str(request.targetId)
        if not target_id:
            return json_error(400, "targetId is required")
        try:
            if not await plane.is_reachable():
                return json_error(409, "browser not running")
            await plane.focus_tab(target_id)
        except Exception as exc:
            return _tab_error(exc)
        return {"ok": True}

    @app.delete("/tabs/{target_id}")
    async def close_tab(target_id: str):
        clean_id = _as_str(target_id)
        if not clean_id:
            return json_error(400, "targetId is required")
        try:
            if not await plane.is_reachable():
                return json_error(409, "browser not running")
            await plane.close_tab(clean_id)
        except Exception as exc:
            return _tab_error(exc)
        return {"ok": True}

    @app.post("/tool")
    async def run_tool(request: ToolRequest):
        status_code, body = await tools.handle_request(request.model_dump())
        if status_code != 200:
            return JSONResponse(status_code=status_code, content=body)
        return body

    return app
