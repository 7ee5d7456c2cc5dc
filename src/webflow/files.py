"""File access used by multipart uploads.

The client never touches the filesystem directly; it asks its `fs` for a
readable stream. `OSFileOpener` reads local disk, `MemoryFileOpener` serves
bytes held in memory (tests, generated assets).
"""

from __future__ import annotations

import io
from typing import BinaryIO, Dict, Mapping, Protocol


class FileOpener(Protocol):
    def open(self, name: str) -> BinaryIO:
        """Open `name` for reading; raise OSError (FileNotFoundError, PermissionError) on failure."""
        ...


class OSFileOpener:
    """Opens files from disk."""

    def open(self, name: str) -> BinaryIO:
        return open(name, "rb")

    def __repr__(self) -> str:
        return "OSFileOpener()"


class MemoryFileOpener:
    """Serves named byte strings as if they were files."""

    def __init__(self, files: Mapping[str, bytes] | None = None) -> None:
        self.files: Dict[str, bytes] = dict(files or {})

    def open(self, name: str) -> BinaryIO:
        try:
            data = self.files[name]
        except KeyError:
            raise FileNotFoundError(2, "No such file", name) from None
        return io.BytesIO(data)
