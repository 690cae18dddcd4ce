"""Directory store for raw uploaded import files."""
from __future__ import annotations

import logging
import re
import time
from pathlib import Path
from typing import Optional

LOGGER = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def sanitize_filename(filename: str) -> str:
    """Reduce an uploaded filename to a safe basename."""

    name = Path(filename.replace("\\", "/")).name
    cleaned = _UNSAFE_CHARS.sub("_", name).strip("._")
    return cleaned or "upload"


class UploadStore:
    """Keeps every uploaded file so it can be downloaded from import history."""

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def save(self, data: bytes, original_filename: str, *, timestamp_ms: Optional[int] = None) -> str:
        """Write ``data`` as ``{timestamp}_{sanitized name}`` and return that name."""

        self._directory.mkdir(parents=True, exist_ok=True)
        stamp = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
        base = f"{stamp}_{sanitize_filename(original_filename)}"
        filename = base
        counter = 1
        while (self._directory / filename).exists():
            filename = f"{stamp}-{counter}_{sanitize_filename(original_filename)}"
            counter += 1
        (self._directory / filename).write_bytes(data)
        LOGGER.info("Stored upload %s as %s (%s bytes)", original_filename, filename, len(data))
        return filename

    def path_for(self, filename: str) -> Path:
        if not filename or filename != Path(filename).name or filename in {".", ".."}:
            raise ValueError(f"Invalid stored filename '{filename}'")
        return self._directory / filename

    def read(self, filename: str) -> bytes:
        path = self.path_for(filename)
        if not path.exists():
            raise FileNotFoundError(path)
        return path.read_bytes()


__all__ = ["UploadStore", "sanitize_filename"]
