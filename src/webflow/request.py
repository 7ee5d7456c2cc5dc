from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import urlencode


@dataclass
class Param:
    """Page parameters appended to a path's query string."""

    page: int = 0
    per_page: int = 0

    def query(self) -> str:
        values = {}
        if self.page:
            values["page"] = self.page
        if self.per_page:
            values["per_page"] = self.per_page
        return urlencode(values)


@dataclass
class FileUpload:
    """A file to attach to a multipart request.

    `path` is handed to the client's file opener; `filename` is what the
    server sees and defaults to the basename of `path`.
    """

    field: str
    path: str
    filename: Optional[str] = None
    content_type: str = "application/octet-stream"

    @property
    def name(self) -> str:
        return self.filename if self.filename is not None else os.path.basename(self.path)


@dataclass
class ClientRequest:
    """One API call before encoding: method, path and payload."""

    method: str
    path: str
    payload: Any = None
    params: Optional[Param] = None
    file: Optional[FileUpload] = None

    def url(self, host: str) -> str:
        url = host + self.path
        query = self.params.query() if self.params is not None else ""
        if query:
            url += ("&" if "?" in url else "?") + query
        return url
