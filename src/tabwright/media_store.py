"""File-system store for binary tool outputs (screenshots, PDFs, traces)."""

from __future__ import annotations

import asyncio
import logging
import mimetypes
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .errors import ValidationError

logger = logging.getLogger(__name__)

_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "application/pdf": ".pdf",
    "application/zip": ".zip",
    "text/plain": ".txt",
}


def default_media_root() -> Path:
    return Path.home() / ".tabwright" / "media"


def extension_for(content_type: str) -> str:
    clean = (content_type or "").split(";", 1)[0].strip().lower()
    if clean in _EXTENSIONS:
        return _EXTENSIONS[clean]
    return mimetypes.guess_extension(clean) or ".bin"


@dataclass(frozen=True)
class SavedMedia:
    path: str
    content_type: str
    size: int


class MediaStore:
    def __init__(self, root: Optional[Union[str, Path]] = None) -> None:
        self.root = Path(root).expanduser() if root else default_media_root()

    async def ensure_dir(self, subdir: Optional[str] = None) -> Path:
        target = self.root / subdir if subdir else self.root
        await asyncio.to_thread(target.mkdir, parents=True, exist_ok=True)
        return target

    async def save_buffer(
        self,
        data: bytes,
        content_type: str,
        subdir: str = "browser",
        max_bytes: Optional[int] = None,
    ) -> SavedMedia:
        size = len(data)
        if max_bytes is not None and size > max_bytes:
            raise ValidationError(f"Media exceeds {max_bytes} bytes (got {size})")
        directory = await self.ensure_dir(subdir)
        path = (directory / f"{uuid.uuid4()}{extension_for(content_type)}").resolve()
        await asyncio.to_thread(path.write_bytes, data)
        logger.debug("Saved media path=%s content_type=%s size=%d", path, content_type, size)
        return SavedMedia(path=str(path), content_type=content_type, size=size)
