"""Argument coercion helpers for tool dispatch."""

from __future__ import annotations

import math
from typing import Any, Dict, List, Optional

from .errors import ValidationError


def _as_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def _as_bool(value: Any, *, default: bool = False) -> bool:
    parsed = _to_bool(value)
    return default if parsed is None else parsed


def _to_bool(value: Any) -> Optional[bool]:
    """Tri-state parse: ``None`` when the caller gave nothing recognizable."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        if text in {"true", "1", "yes"}:
            return True
        if text in {"false", "0", "no"}:
            return False
    return None


def _to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str) and value.strip():
        try:
            parsed = float(value)
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def _to_index(value: Any) -> Optional[int]:
    number = _to_number(value)
    if number is None or not number.is_integer():
        return None
    return int(number)


def _as_str_list(value: Any) -> Optional[List[str]]:
    if not isinstance(value, (list, tuple)):
        return None
    items = [_as_str(item) for item in value]
    strings = [item for item in items if item]
    return strings or None


def _as_args(value: Any) -> Dict[str, Any]:
    if not isinstance(value, dict):
        return {}
    return value


def _require_str(args: Dict[str, Any], key: str, message: Optional[str] = None) -> str:
    value = _as_str(args.get(key))
    if not value:
        raise ValidationError(message or f"{key} is required")
    return value
