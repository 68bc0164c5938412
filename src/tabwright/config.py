"""Resolved configuration for the browser control plane."""

from __future__ import annotations

import json
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from .runtime_common import _parse_bool_env, _parse_int_env, _parse_str_env


DEFAULT_CONTROL_PORT = 18791
DEFAULT_CDP_PORT = 18792
DEFAULT_COLOR = "#FF4500"

_ENV_PREFIX = "TABWRIGHT_BROWSER_"

# camelCase spellings as written in JSON config files.
_KEY_ALIASES = {
    "attachOnly": "attach_only",
    "controlPort": "control_port",
    "controlUrl": "control_url",
    "cdpPort": "cdp_port",
    "executablePath": "executable_path",
    "userDataDir": "user_data_dir",
    "noSandbox": "no_sandbox",
}


def _coerce_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    text = str(value or "").strip().lower()
    if text in {"1", "true", "yes", "on"}:
        return True
    if text in {"0", "false", "no", "off"}:
        return False
    return default


def _coerce_port(value: Any, default: int) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    if parsed <= 0 or parsed > 65535:
        return default
    return parsed


@dataclass(frozen=True)
class BrowserConfig:
    enabled: bool = True
    control_port: int = DEFAULT_CONTROL_PORT
    cdp_port: int = DEFAULT_CDP_PORT
    color: str = DEFAULT_COLOR
    headless: bool = False
    attach_only: bool = False
    no_sandbox: bool = False
    executable_path: Optional[str] = None
    user_data_dir: Optional[str] = None
    control_url: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.control_url:
            object.__setattr__(self, "control_url", f"http://127.0.0.1:{self.control_port}")

    @property
    def resolved_user_data_dir(self) -> Path:
        if self.user_data_dir:
            return Path(self.user_data_dir).expanduser()
        return Path.home() / ".tabwright" / "browser" / "user-data"

    @classmethod
    def from_mapping(cls, raw: Optional[Mapping[str, Any]]) -> "BrowserConfig":
        data: Dict[str, Any] = {}
        for key, value in (raw or {}).items():
            data[_KEY_ALIASES.get(str(key), str(key))] = value

        defaults = cls()
        known = {item.name for item in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for name in known:
            if name not in data or data[name] is None:
                continue
            value = data[name]
            default_value = getattr(defaults, name)
            if isinstance(default_value, bool):
                kwargs[name] = _coerce_bool(value, default_value)
            elif name in {"control_port", "cdp_port"}:
                kwargs[name] = _coerce_port(value, default_value)
            else:
                text = str(value).strip()
                if text:
                    kwargs[name] = text
        if "cdp_port" not in kwargs and "control_port" in kwargs:
            kwargs["cdp_port"] = kwargs["control_port"] + 1
        return cls(**kwargs)

    @classmethod
    def from_env(cls, base: Optional["BrowserConfig"] = None) -> "BrowserConfig":
        current = base or cls()
        control_port = _parse_int_env(f"{_ENV_PREFIX}CONTROL_PORT", current.control_port, 1)
        control_url = _parse_str_env(f"{_ENV_PREFIX}CONTROL_URL")
        if control_url is None and control_port != current.control_port:
            control_url = f"http://127.0.0.1:{control_port}"
        return replace(
            current,
            enabled=_parse_bool_env(f"{_ENV_PREFIX}ENABLED", current.enabled),
            control_port=control_port,
            cdp_port=_parse_int_env(f"{_ENV_PREFIX}CDP_PORT", current.cdp_port, 1),
            color=_parse_str_env(f"{_ENV_PREFIX}COLOR", current.color) or DEFAULT_COLOR,
            headless=_parse_bool_env(f"{_ENV_PREFIX}HEADLESS", current.headless),
            attach_only=_parse_bool_env(f"{_ENV_PREFIX}ATTACH_ONLY", current.attach_only),
            no_sandbox=_parse_bool_env(f"{_ENV_PREFIX}NO_SANDBOX", current.no_sandbox),
            executable_path=_parse_str_env(
                f"{_ENV_PREFIX}EXECUTABLE_PATH", current.executable_path
            ),
            user_data_dir=_parse_str_env(f"{_ENV_PREFIX}USER_DATA_DIR", current.user_data_dir),
            control_url=control_url or current.control_url,
        )

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "BrowserConfig":
        """
        Load a YAML or JSON config file.

        The browser section may sit at the top level or under a ``browser`` key.
        Environment variables override file values.
        """
        raw = load_config_file(path)
        section = raw.get("browser") if isinstance(raw.get("browser"), dict) else raw
        return cls.from_env(cls.from_mapping(section))

    def is_loopback_control(self) -> bool:
        host = (self.control_url or "").split("://", 1)[-1].split("/", 1)[0]
        host = host.rsplit(":", 1)[0].strip("[]").lower()
        return host in {"127.0.0.1", "localhost", "::1"}

    def as_status(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "controlUrl": self.control_url,
            "cdpPort": self.cdp_port,
            "color": self.color,
            "headless": self.headless,
            "attachOnly": self.attach_only,
        }


def load_config_file(path: Union[str, Path]) -> Dict[str, Any]:
    file_path = Path(path)
    text = file_path.read_text(encoding="utf-8")
    if file_path.suffix.lower() == ".json":
        loaded = json.loads(text)
    else:
        loaded = yaml.safe_load(text)
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ValueError(f"Config file must contain a mapping: {file_path}")
    return loaded
