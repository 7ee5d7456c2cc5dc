"""
webflow – Python client for the Webflow content-management API

Public surface:
- Clients: Webflow (requests), AsyncWebflow (httpx), new_client
- Requests: ClientRequest, Param, FileUpload
- Results: APIResult, RateLimit
- File access: FileOpener, OSFileOpener, MemoryFileOpener
- Config: configure, config (context manager), settings

Per-endpoint helpers (sites, collections, items) build a `ClientRequest`
and hand it to `Webflow.request`.
"""

__version__ = "0.1.0"

from .config import configure, config, settings, Settings
from .client import Webflow, AsyncWebflow, new_client
from .encoding import escape_quotes
from .envelope import APIResult, RateLimit
from .errors import (
    DEFAULT_CODE,
    WebflowError,
    MissingTokenError,
    EncodeError,
    TransportError,
    TimeoutError,
    RateLimitHeaderError,
    DecodeError,
    APIError,
)
from .files import FileOpener, OSFileOpener, MemoryFileOpener
from .request import ClientRequest, Param, FileUpload

__all__ = [
    # Config
    "configure",
    "config",
    "settings",
    "Settings",
    # Clients
    "Webflow",
    "AsyncWebflow",
    "new_client",
    # Requests & results
    "ClientRequest",
    "Param",
    "FileUpload",
    "APIResult",
    "RateLimit",
    "escape_quotes",
    # File access
    "FileOpener",
    "OSFileOpener",
    "MemoryFileOpener",
    # Errors
    "DEFAULT_CODE",
    "WebflowError",
    "MissingTokenError",
    "EncodeError",
    "TransportError",
    "TimeoutError",
    "RateLimitHeaderError",
    "DecodeError",
    "APIError",
    "__version__",
]
