"""Browser process launch and teardown."""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import sys
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .cdp_client import CdpHttpClient
from .config import BrowserConfig
from .errors import ProcessLaunchFailure
from .logging_utils import _log_browser_event

logger = logging.getLogger(__name__)

LAUNCH_READY_TIMEOUT_MS = 15_000
LAUNCH_POLL_INTERVAL_MS = 200
STOP_GRACE_SECONDS = 2.5


@dataclass(frozen=True)
class BrowserExecutable:
    kind: str
    path: str


@dataclass
class RunningBrowser:
    pid: int
    exe: BrowserExecutable
    user_data_dir: str
    cdp_port: int
    proc: Any
    started_at: float = field(default_factory=time.time)

    async def wait(self) -> Optional[int]:
        return await self.proc.wait()


def discover_browser_executables(explicit_path: Optional[str] = None) -> List[BrowserExecutable]:
    discovered: List[BrowserExecutable] = []
    seen_paths: set[str] = set()

    def add(kind: str, path: Optional[str]) -> None:
        if not path:
            return
        expanded = os.path.expanduser(str(path).strip())
        if not expanded or not os.path.isabs(expanded):
            return
        if not os.path.isfile(expanded):
            return
        normalized = os.path.realpath(expanded)
        if normalized in seen_paths:
            return
        seen_paths.add(normalized)
        discovered.append(BrowserExecutable(kind=kind, path=expanded))

    add("custom", explicit_path)

    if sys.platform == "darwin":
        home = os.path.expanduser("~")
        for kind, path in (
            ("chrome", "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome"),
            ("chrome", f"{home}/Applications/Google Chrome.app/Contents/MacOS/Google Chrome"),
            ("canary", "/Applications/Google Chrome Canary.app/Contents/MacOS/Google Chrome Canary"),
            ("chromium", "/Applications/Chromium.app/Contents/MacOS/Chromium"),
            ("brave", "/Applications/Brave Browser.app/Contents/MacOS/Brave Browser"),
            ("edge", "/Applications/Microsoft Edge.app/Contents/MacOS/Microsoft Edge"),
        ):
            add(kind, path)
    elif sys.platform.startswith("win"):
        program_files = os.environ.get("ProgramFiles", r"C:\Program Files")
        program_files_x86 = os.environ.get("ProgramFiles(x86)", r"C:\Program Files (x86)")
        local_app_data = os.environ.get("LOCALAPPDATA", "")
        candidates = [
            ("chrome", fr"{program_files}\Google\Chrome\Application\chrome.exe"),
            ("chrome", fr"{program_files_x86}\Google\Chrome\Application\chrome.exe"),
            ("edge", fr"{program_files}\Microsoft\Edge\Application\msedge.exe"),
            ("edge", fr"{program_files_x86}\Microsoft\Edge\Application\msedge.exe"),
        ]
        if local_app_data:
            candidates.append(("chrome", fr"{local_app_data}\Google\Chrome\Application\chrome.exe"))
        for kind, path in candidates:
            add(kind, path)
    else:
        for kind, path in (
            ("chrome", "/usr/bin/google-chrome"),
            ("chrome", "/usr/bin/google-chrome-stable"),
            ("chromium", "/usr/bin/chromium"),
            ("chromium", "/usr/bin/chromium-browser"),
            ("brave", "/usr/bin/brave-browser"),
            ("edge", "/usr/bin/microsoft-edge"),
        ):
            add(kind, path)

    for kind, name in (
        ("chrome", "google-chrome"),
        ("chrome", "google-chrome-stable"),
        ("chromium", "chromium"),
        ("chromium", "chromium-browser"),
        ("brave", "brave-browser"),
        ("edge", "microsoft-edge"),
    ):
        add(kind, shutil.which(name))

    return discovered


def build_browser_args(config: BrowserConfig, user_data_dir: str) -> List[str]:
    args = [
        f"--remote-debugging-port={config.cdp_port}",
        f"--user-data-dir={user_data_dir}",
        "--no-first-run",
        "--no-default-browser-check",
        "--disable-sync",
        "--disable-background-networking",
        "--disable-component-update",
        "--disable-features=Translate,MediaRouter",
        "--password-store=basic",
    ]
    if config.headless:
        args.extend(["--headless=new", "--disable-gpu"])
    if config.no_sandbox:
        args.extend(["--no-sandbox", "--disable-setuid-sandbox"])
    if sys.platform.startswith("linux"):
        args.append("--disable-dev-shm-usage")
    args.append("about:blank")
    return list(dict.fromkeys(args))


class BrowserLauncher:
    """Spawns a Chromium-family browser exposing CDP on the configured port."""

    def __init__(
        self,
        *,
        ready_timeout_ms: int = LAUNCH_READY_TIMEOUT_MS,
        stop_grace_seconds: float = STOP_GRACE_SECONDS,
    ) -> None:
        self._ready_timeout_ms = ready_timeout_ms
        self._stop_grace_seconds = stop_grace_seconds

    def resolve_executable(self, config: BrowserConfig) -> BrowserExecutable:
        found = discover_browser_executables(config.executable_path)
        if not found:
            raise ProcessLaunchFailure(
                "No supported browser found (Chrome/Chromium/Brave/Edge). "
                "Set TABWRIGHT_BROWSER_EXECUTABLE_PATH and retry."
            )
        return found[0]

    async def launch(self, config: BrowserConfig) -> RunningBrowser:
        exe = self.resolve_executable(config)
        user_data_dir = config.resolved_user_data_dir
        user_data_dir.mkdir(parents=True, exist_ok=True)
        args = build_browser_args(config, str(user_data_dir))

        try:
            proc = await asyncio.create_subprocess_exec(
                exe.path,
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as exc:
            raise ProcessLaunchFailure(f"Failed to launch {exe.kind} at {exe.path}: {exc}") from exc

        running = RunningBrowser(
            pid=proc.pid,
            exe=exe,
            user_data_dir=str(user_data_dir),
            cdp_port=config.cdp_port,
            proc=proc,
        )
        probe = CdpHttpClient(config.cdp_port)
        deadline = time.monotonic() + self._ready_timeout_ms / 1000
        while time.monotonic() < deadline:
            if proc.returncode is not None:
                raise ProcessLaunchFailure(
                    f"{exe.kind} exited during startup with code {proc.returncode}"
                )
            if await probe.is_reachable(500):
                _log_browser_event(
                    logger,
                    level=logging.INFO,
                    event="launched",
                    kind=exe.kind,
                    pid=proc.pid,
                    cdp_port=config.cdp_port,
                    headless=config.headless,
                    user_data_dir=str(user_data_dir),
                )
                return running
            await asyncio.sleep(LAUNCH_POLL_INTERVAL_MS / 1000)

        await self.stop(running)
        raise ProcessLaunchFailure(
            f"Failed to start {exe.kind} CDP on port {config.cdp_port} "
            f"within {self._ready_timeout_ms}ms"
        )

    async def stop(self, running: RunningBrowser) -> None:
        proc = running.proc
        if proc.returncode is not None:
            return
        try:
            proc.terminate()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(proc.wait(), timeout=self._stop_grace_seconds)
        except asyncio.TimeoutError:
            logger.warning(
                "Browser pid=%s ignored SIGTERM after %.1fs; killing",
                running.pid,
                self._stop_grace_seconds,
            )
            try:
                proc.kill()
            except ProcessLookupError:
                return
            await proc.wait()
        _log_browser_event(logger, level=logging.INFO, event="stopped", pid=running.pid)

    @staticmethod
    def describe(running: Optional[RunningBrowser]) -> Dict[str, Any]:
        if running is None:
            return {"pid": None, "chosenBrowser": None, "userDataDir": None}
        return {
            "pid": running.pid,
            "chosenBrowser": running.exe.kind,
            "userDataDir": running.user_data_dir,
        }
